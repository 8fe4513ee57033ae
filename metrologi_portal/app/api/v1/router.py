"""
Top-level router for version 1 of the API.

Domain routers are included here under their URL prefix.  When a new
domain is added, include its router below.
"""

from fastapi import APIRouter

from .endpoints import (
    artikel,
    audit,
    auth,
    dashboard,
    notifikasi,
    pelaku_usaha,
    permohonan,
)

router = APIRouter()

router.include_router(auth.router, prefix="/auth", tags=["auth"])
router.include_router(permohonan.router, prefix="/permohonan", tags=["permohonan"])
router.include_router(pelaku_usaha.router, prefix="/pelaku-usaha", tags=["pelaku-usaha"])
router.include_router(dashboard.router, prefix="/dashboard", tags=["dashboard"])
router.include_router(notifikasi.router, prefix="/notifikasi", tags=["notifikasi"])
router.include_router(artikel.router, prefix="/artikel", tags=["artikel"])
router.include_router(audit.router, prefix="/audit", tags=["audit"])
