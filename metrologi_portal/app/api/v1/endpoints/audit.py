"""
Audit log endpoints for API v1.

Every admin write (processing a request, editing businesses or
articles, sign-ins) leaves an audit record.  Any signed-in admin may
read the trail.
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, Query

from metrologi_portal.app.core.security import get_current_admin
from metrologi_portal.app.services.audit_service import AuditService

router = APIRouter()


@router.get("/logs")
async def list_audit_logs(
    admin_id: Optional[int] = Query(None, description="Filter by acting admin ID"),
    object_type: Optional[str] = Query(None, description="Filter by object type (permohonan, pelaku_usaha, artikel)"),
    action: Optional[str] = Query(None, description="Filter by action (process, create, update, delete)"),
    start_date: Optional[str] = Query(None, description="Start date (ISO format) for filtering"),
    end_date: Optional[str] = Query(None, description="End date (ISO format) for filtering"),
    limit: int = Query(100, ge=1, le=500, description="Maximum number of logs to return"),
    offset: int = Query(0, ge=0, description="Number of logs to skip"),
    current_admin: dict = Depends(get_current_admin),
) -> List[dict]:
    """Retrieve audit logs, newest first."""
    return await AuditService.list_logs(
        admin_id=admin_id,
        object_type=object_type,
        action=action,
        start_date=start_date,
        end_date=end_date,
        limit=limit,
        offset=offset,
    )
