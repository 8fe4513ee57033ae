"""
Service layer.

Each service encapsulates the business logic of one domain.  The
service request lifecycle lives in ``permohonan_controller`` and talks
to its backend only through a request store (``request_store``), so the
same controller runs against the local database or the hosted backend.
"""
