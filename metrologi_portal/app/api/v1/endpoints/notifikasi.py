"""
Notification endpoints for API v1.

Admins read the notification feed, mark entries as read and trigger
the calibration expiry sweep that creates ``tera_expired`` and
``tera_exp_warning`` notifications.
"""

from typing import List

from fastapi import APIRouter, Depends, HTTPException, Query, status

from metrologi_portal.app.core.security import get_current_admin
from metrologi_portal.app.schemas.notifikasi import NotifikasiRead, ReminderResult, UnreadCount
from metrologi_portal.app.services.audit_service import AuditService
from metrologi_portal.app.services.notifikasi_service import NotifikasiService

router = APIRouter()


@router.get("/", response_model=List[NotifikasiRead])
async def list_notifikasi(
    unread_only: bool = Query(False),
    limit: int = Query(50, ge=1, le=500),
    offset: int = Query(0, ge=0),
    current_admin: dict = Depends(get_current_admin),
) -> List[NotifikasiRead]:
    return await NotifikasiService.list_notifikasi(unread_only=unread_only, limit=limit, offset=offset)


@router.get("/unread-count", response_model=UnreadCount)
async def unread_count(current_admin: dict = Depends(get_current_admin)) -> UnreadCount:
    return UnreadCount(unread=await NotifikasiService.unread_count())


@router.put("/read-all", response_model=UnreadCount)
async def mark_all_read(current_admin: dict = Depends(get_current_admin)) -> UnreadCount:
    """Mark every notification as read; returns the remaining unread count."""
    await NotifikasiService.mark_all_read()
    return UnreadCount(unread=0)


@router.put("/{notifikasi_id}/read", status_code=status.HTTP_204_NO_CONTENT)
async def mark_read(
    notifikasi_id: int,
    current_admin: dict = Depends(get_current_admin),
) -> None:
    try:
        await NotifikasiService.mark_read(notifikasi_id)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    return None


@router.post("/generate-tera-reminders", response_model=ReminderResult)
async def generate_tera_reminders(current_admin: dict = Depends(get_current_admin)) -> ReminderResult:
    result = await NotifikasiService.generate_tera_reminders()
    await AuditService.record(
        current_admin, "generate", "notifikasi", details=result.model_dump()
    )
    return result
