"""
Business (pelaku usaha) endpoints for API v1.

Admins list, register, edit and remove market businesses and record
the measuring equipment (UTTP) each one uses.  Filters follow the
admin table: ``semua`` disables a filter.
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status

from metrologi_portal.app.core.security import get_current_admin
from metrologi_portal.app.schemas.pelaku_usaha import (
    PelakuUsahaCreate,
    PelakuUsahaDetail,
    PelakuUsahaRead,
    PelakuUsahaUpdate,
    UttpCreate,
    UttpRead,
)
from metrologi_portal.app.services.audit_service import AuditService
from metrologi_portal.app.services.pelaku_usaha_service import SEMUA, PelakuUsahaService

router = APIRouter()


def _not_found_or_bad_request(e: ValueError) -> HTTPException:
    msg = str(e)
    if "not found" in msg.lower():
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=msg)
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=msg)


@router.get("/", response_model=List[PelakuUsahaRead])
async def list_pelaku_usaha(
    q: str = Query("", description="Search owner name or location"),
    jenis_lapak: str = Query(SEMUA),
    status_tera: str = Query(SEMUA),
    limit: Optional[int] = Query(None, ge=1, le=1000),
    current_admin: dict = Depends(get_current_admin),
) -> List[PelakuUsahaRead]:
    return await PelakuUsahaService.list_pelaku_usaha(
        search=q, jenis_lapak=jenis_lapak, status_tera=status_tera, limit=limit
    )


@router.get("/{pelaku_usaha_id}", response_model=PelakuUsahaDetail)
async def get_pelaku_usaha(
    pelaku_usaha_id: int,
    current_admin: dict = Depends(get_current_admin),
) -> PelakuUsahaDetail:
    """Return a business together with its registered equipment."""
    try:
        return await PelakuUsahaService.get_pelaku_usaha(pelaku_usaha_id)
    except ValueError as e:
        raise _not_found_or_bad_request(e)


@router.post("/", response_model=PelakuUsahaRead, status_code=status.HTTP_201_CREATED)
async def create_pelaku_usaha(
    data: PelakuUsahaCreate,
    current_admin: dict = Depends(get_current_admin),
) -> PelakuUsahaRead:
    created = await PelakuUsahaService.create_pelaku_usaha(data)
    await AuditService.record(current_admin, "create", "pelaku_usaha", created.id)
    return created


@router.put("/{pelaku_usaha_id}", response_model=PelakuUsahaRead)
async def update_pelaku_usaha(
    pelaku_usaha_id: int,
    data: PelakuUsahaUpdate,
    current_admin: dict = Depends(get_current_admin),
) -> PelakuUsahaRead:
    try:
        updated = await PelakuUsahaService.update_pelaku_usaha(pelaku_usaha_id, data)
    except ValueError as e:
        raise _not_found_or_bad_request(e)
    await AuditService.record(
        current_admin,
        "update",
        "pelaku_usaha",
        pelaku_usaha_id,
        data.model_dump(exclude_unset=True, mode="json"),
    )
    return updated


@router.delete("/{pelaku_usaha_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_pelaku_usaha(
    pelaku_usaha_id: int,
    current_admin: dict = Depends(get_current_admin),
) -> None:
    """Delete a business along with its equipment and notifications."""
    try:
        await PelakuUsahaService.delete_pelaku_usaha(pelaku_usaha_id)
    except ValueError as e:
        raise _not_found_or_bad_request(e)
    await AuditService.record(current_admin, "delete", "pelaku_usaha", pelaku_usaha_id)
    return None


@router.post("/{pelaku_usaha_id}/uttp", response_model=UttpRead, status_code=status.HTTP_201_CREATED)
async def add_uttp(
    pelaku_usaha_id: int,
    data: UttpCreate,
    current_admin: dict = Depends(get_current_admin),
) -> UttpRead:
    try:
        uttp = await PelakuUsahaService.add_uttp(pelaku_usaha_id, data)
    except ValueError as e:
        raise _not_found_or_bad_request(e)
    await AuditService.record(current_admin, "create", "uttp", uttp.id, {"pelaku_usaha_id": pelaku_usaha_id})
    return uttp
