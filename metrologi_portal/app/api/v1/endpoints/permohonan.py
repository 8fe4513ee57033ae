"""
API endpoints for service requests (permohonan).

Every request builds a fresh ``PermohonanController``, loads the full
list from the configured request store once and derives the response
from it, exactly as the admin table does: search, status and kind
filters are applied client-side over the complete list.

Processing a request is the only write.  Store failures are mapped to
HTTP errors: unknown id -> 404, already approved/rejected -> 409,
unreachable or failing backend -> 502.
"""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status

from metrologi_portal.app.core.security import get_current_admin
from metrologi_portal.app.schemas.permohonan import (
    PermohonanPage,
    PermohonanProcess,
    PermohonanProcessResult,
    PermohonanRead,
    PermohonanStats,
)
from metrologi_portal.app.services.audit_service import AuditService
from metrologi_portal.app.services.permohonan_controller import (
    ALL,
    LOAD_FAILED_MESSAGE,
    PROCESS_FAILED_MESSAGE,
    PROCESS_OK_MESSAGE,
    PermohonanController,
)
from metrologi_portal.app.services.request_store import get_request_store


router = APIRouter()


async def _loaded_controller(store, page_size: Optional[int] = None) -> PermohonanController:
    controller = PermohonanController(store, page_size=page_size)
    if not await controller.load_all():
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=LOAD_FAILED_MESSAGE)
    return controller


@router.get("/", response_model=PermohonanPage, summary="List service requests")
async def list_permohonan(
    q: str = Query("", description="Search applicant name, email, equipment type or brand"),
    status_filter: str = Query(ALL, alias="status", description="'all' or pending/processing/approved/rejected"),
    jenis: str = Query(ALL, description="'all' or tera_baru/tera_ulang"),
    page: int = Query(1, ge=1),
    page_size: Optional[int] = Query(None, ge=1, le=100),
    store=Depends(get_request_store),
    current_admin: dict = Depends(get_current_admin),
) -> PermohonanPage:
    """Return one page of the filtered request table with status counts."""
    controller = await _loaded_controller(store, page_size)
    controller.set_query(q)
    controller.set_status_filter(status_filter)
    controller.set_kind_filter(jenis)
    controller.set_page(page)
    return controller.view()


@router.get("/stats", response_model=PermohonanStats, summary="Count requests by status")
async def permohonan_stats(
    store=Depends(get_request_store),
    current_admin: dict = Depends(get_current_admin),
) -> PermohonanStats:
    controller = await _loaded_controller(store)
    return controller.view().stats


@router.get("/{permohonan_id}", response_model=PermohonanRead, summary="Get request details")
async def get_permohonan(
    permohonan_id: int,
    store=Depends(get_request_store),
    current_admin: dict = Depends(get_current_admin),
) -> PermohonanRead:
    controller = await _loaded_controller(store)
    item = controller.find(permohonan_id)
    if item is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Permohonan {permohonan_id} not found")
    return item


@router.put(
    "/{permohonan_id}/process",
    response_model=PermohonanProcessResult,
    summary="Process a request",
)
async def process_permohonan(
    permohonan_id: int,
    body: PermohonanProcess,
    store=Depends(get_request_store),
    current_admin: dict = Depends(get_current_admin),
) -> PermohonanProcessResult:
    """Move a request to processing, approved or rejected.

    The response carries the request as re-read from the store after
    the update.
    """
    controller = PermohonanController(store)
    ok = await controller.process(permohonan_id, body.status, body.catatan_admin)
    if not ok:
        error = controller.last_error
        code = error.status_code if error else None
        detail = f"{PROCESS_FAILED_MESSAGE}: {error.message}" if error else PROCESS_FAILED_MESSAGE
        if code == status.HTTP_404_NOT_FOUND:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=detail)
        if code == status.HTTP_409_CONFLICT:
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=detail)
        if code in (status.HTTP_400_BAD_REQUEST, status.HTTP_422_UNPROCESSABLE_ENTITY):
            raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=detail)
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=detail)

    await AuditService.record(
        current_admin,
        action="process",
        object_type="permohonan",
        object_id=permohonan_id,
        details={"status": body.status.value, "catatan_admin": body.catatan_admin},
    )
    item = controller.find(permohonan_id)
    if item is None:
        return PermohonanProcessResult(message=f"{PROCESS_OK_MESSAGE}; {LOAD_FAILED_MESSAGE}")
    return PermohonanProcessResult(message=PROCESS_OK_MESSAGE, permohonan=item)
