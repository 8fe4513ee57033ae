"""
Endpoint subpackage for API v1.

Each module defines an APIRouter for one domain (service requests,
businesses, articles, ...).  The routers are aggregated in
``router.py`` at the package level.
"""
