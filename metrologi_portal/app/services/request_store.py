"""
Request stores: where service requests (permohonan) live.

The lifecycle controller consumes a store through two coroutines:

``list_all() -> (rows, error)``
    Every row of the ``permohonan`` table, newest first
    (``created_at`` descending).  No server-side filtering.
``update(request_id, fields) -> (ok, error)``
    Apply ``status``, ``tanggal_diproses`` and ``catatan_admin`` to one
    row in a single statement.

Hosted calls go through the blocking ``requests`` client, so the
Supabase store runs them in a worker thread to keep the event loop
free.  Failures never raise; they come back as a
:class:`~metrologi_portal.app.core.supabase.BackendError`.  The store
is the final arbiter of the lifecycle: an update aimed at a row that
is already ``approved`` or ``rejected`` is refused with status 409, and
an update for an unknown id with status 404.
"""

import asyncio
import logging
import sqlite3
from typing import Any, Dict, List, Optional, Tuple

from ..core.config import settings
from ..core.db import get_connection
from ..core.supabase import BackendError, SupabaseClient
from ..schemas.permohonan import PermohonanStatus, ProcessStatus


logger = logging.getLogger(__name__)

UPDATABLE_FIELDS = frozenset({"status", "tanggal_diproses", "catatan_admin"})
OPEN_STATUSES = (PermohonanStatus.PENDING.value, PermohonanStatus.PROCESSING.value)
TARGET_STATUSES = frozenset(s.value for s in ProcessStatus)


class StoreUnavailableError(RuntimeError):
    """Raised by callers that cannot continue without the store's data."""

    def __init__(self, error: BackendError) -> None:
        super().__init__(error.message)
        self.error = error


def _check_fields(fields: Dict[str, Any]) -> Optional[BackendError]:
    unknown = set(fields) - UPDATABLE_FIELDS
    if unknown:
        return BackendError(status_code=400, message=f"Unsupported fields: {', '.join(sorted(unknown))}")
    if fields.get("status") not in TARGET_STATUSES:
        return BackendError(status_code=422, message=f"Invalid status {fields.get('status')!r}")
    return None


class SqliteRequestStore:
    """Request store over the local SQLite ``permohonan`` table."""

    async def list_all(self) -> Tuple[List[Dict[str, Any]], Optional[BackendError]]:
        try:
            conn = get_connection()
            try:
                rows = conn.execute(
                    "SELECT * FROM permohonan ORDER BY created_at DESC, id DESC"
                ).fetchall()
            finally:
                conn.close()
        except sqlite3.Error as e:
            logger.error("Failed to list permohonan: %s", e)
            return [], BackendError(status_code=None, message=str(e))
        return [dict(row) for row in rows], None

    async def update(
        self, request_id: int, fields: Dict[str, Any]
    ) -> Tuple[bool, Optional[BackendError]]:
        error = _check_fields(fields)
        if error:
            return False, error
        columns = sorted(fields)
        assignments = ", ".join(f"{column} = ?" for column in columns)
        params = [fields[column] for column in columns]
        try:
            conn = get_connection()
            try:
                cursor = conn.cursor()
                cursor.execute(
                    f"UPDATE permohonan SET {assignments} WHERE id = ? AND status IN (?, ?)",
                    (*params, request_id, *OPEN_STATUSES),
                )
                if cursor.rowcount == 0:
                    row = cursor.execute(
                        "SELECT status FROM permohonan WHERE id = ?", (request_id,)
                    ).fetchone()
                    if not row:
                        return False, BackendError(status_code=404, message=f"Permohonan {request_id} not found")
                    return False, BackendError(
                        status_code=409,
                        message=f"Permohonan {request_id} is already {row['status']}",
                    )
                conn.commit()
            finally:
                conn.close()
        except sqlite3.Error as e:
            logger.error("Failed to update permohonan %s: %s", request_id, e)
            return False, BackendError(status_code=None, message=str(e))
        return True, None


class SupabaseRequestStore:
    """Request store over the hosted PostgREST ``permohonan`` table."""

    table = "permohonan"

    def __init__(self, client: SupabaseClient) -> None:
        self.client = client

    async def list_all(self) -> Tuple[List[Dict[str, Any]], Optional[BackendError]]:
        data, error = await asyncio.to_thread(
            self.client.select, self.table, params={"order": "created_at.desc"}
        )
        if error:
            return [], error
        if not isinstance(data, list):
            return [], BackendError(status_code=None, message="Unexpected response shape from backend")
        return data, None

    async def update(
        self, request_id: int, fields: Dict[str, Any]
    ) -> Tuple[bool, Optional[BackendError]]:
        error = _check_fields(fields)
        if error:
            return False, error
        data, error = await asyncio.to_thread(
            self.client.update,
            self.table,
            filters={"id": f"eq.{request_id}", "status": f"in.({','.join(OPEN_STATUSES)})"},
            values=fields,
        )
        if error:
            return False, error
        if not data:
            # PATCH matched nothing: either unknown id or a terminal row
            existing, error = await asyncio.to_thread(
                self.client.select,
                self.table,
                params={"id": f"eq.{request_id}", "select": "status"},
            )
            if error:
                return False, error
            if not existing:
                return False, BackendError(status_code=404, message=f"Permohonan {request_id} not found")
            return False, BackendError(
                status_code=409,
                message=f"Permohonan {request_id} is already {existing[0].get('status')}",
            )
        return True, None


def build_request_store():
    """Instantiate the store named by ``settings.request_store``."""
    if settings.request_store == "supabase":
        return SupabaseRequestStore(
            SupabaseClient(
                base_url=settings.supabase_url,
                anon_key=settings.supabase_anon_key,
                timeout=settings.supabase_timeout,
            )
        )
    return SqliteRequestStore()


def get_request_store():
    """FastAPI dependency returning the configured store."""
    return build_request_store()
