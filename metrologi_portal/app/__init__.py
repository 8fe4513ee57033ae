"""
FastAPI application for the Metrologi portal.

Subpackages:

* ``core`` - configuration, logging, database, security and the hosted
  backend client.
* ``schemas`` - Pydantic request and response models.
* ``services`` - business logic, including the service request
  lifecycle controller.
* ``api`` - versioned HTTP routers.
"""
