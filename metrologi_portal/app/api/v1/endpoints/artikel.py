"""
Article endpoints for API v1.

Listing and reading published articles is public (the landing page
shows the newest three).  Drafts are only visible through the admin
routes, which also create, edit and delete articles.
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status

from metrologi_portal.app.core.security import get_current_admin
from metrologi_portal.app.schemas.artikel import (
    ArtikelCreate,
    ArtikelDetail,
    ArtikelRead,
    ArtikelStatus,
    ArtikelUpdate,
)
from metrologi_portal.app.services.artikel_service import ArtikelService
from metrologi_portal.app.services.audit_service import AuditService

router = APIRouter()


@router.get("/", response_model=List[ArtikelRead])
async def list_published(
    limit: int = Query(3, ge=1, le=100),
    offset: int = Query(0, ge=0),
) -> List[ArtikelRead]:
    """Published articles, newest first.  No authentication required."""
    return await ArtikelService.list_artikel(
        status=ArtikelStatus.PUBLISHED.value, limit=limit, offset=offset
    )


@router.get("/admin/all", response_model=List[ArtikelRead])
async def list_all(
    status_filter: Optional[ArtikelStatus] = Query(None, alias="status"),
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
    current_admin: dict = Depends(get_current_admin),
) -> List[ArtikelRead]:
    return await ArtikelService.list_artikel(
        status=status_filter.value if status_filter else None, limit=limit, offset=offset
    )


@router.get("/{artikel_id}", response_model=ArtikelDetail)
async def get_artikel(artikel_id: int) -> ArtikelDetail:
    """Return a published article with its reading time in minutes."""
    try:
        return await ArtikelService.get_artikel(artikel_id)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))


@router.post("/", response_model=ArtikelRead, status_code=status.HTTP_201_CREATED)
async def create_artikel(
    data: ArtikelCreate,
    current_admin: dict = Depends(get_current_admin),
) -> ArtikelRead:
    artikel = await ArtikelService.create_artikel(data)
    await AuditService.record(current_admin, "create", "artikel", artikel.id)
    return artikel


@router.put("/{artikel_id}", response_model=ArtikelRead)
async def update_artikel(
    artikel_id: int,
    data: ArtikelUpdate,
    current_admin: dict = Depends(get_current_admin),
) -> ArtikelRead:
    try:
        artikel = await ArtikelService.update_artikel(artikel_id, data)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    await AuditService.record(current_admin, "update", "artikel", artikel_id)
    return artikel


@router.delete("/{artikel_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_artikel(
    artikel_id: int,
    current_admin: dict = Depends(get_current_admin),
) -> None:
    try:
        await ArtikelService.delete_artikel(artikel_id)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    await AuditService.record(current_admin, "delete", "artikel", artikel_id)
    return None
