"""
Pydantic schema definitions for API payloads.

Each domain (permohonan, pelaku usaha, artikel, notifikasi) defines its
own models for request and response bodies.  Field names follow the
backend's Indonesian column names so rows validate without mapping.
"""
