"""
Aggregates for the admin dashboard.

Business and equipment counts come from the local database.  The
"re-calibration requests this month" figure is counted over the
request store's full list, so it follows whichever backend holds the
service requests.
"""

from __future__ import annotations

import logging
from datetime import date
from typing import Optional

from pydantic import ValidationError

from ..core.db import get_connection
from ..core.supabase import BackendError
from ..schemas.dashboard import DashboardOverview, RecentPelakuUsaha
from ..schemas.permohonan import JenisPermohonan, PermohonanRead
from .request_store import StoreUnavailableError


logger = logging.getLogger(__name__)

RECENT_LIMIT = 5


class DashboardService:
    """Service providing the dashboard overview."""

    @classmethod
    async def overview(cls, store, today: Optional[date] = None) -> DashboardOverview:
        """Return headline counts and the newest businesses.

        Raises
        ------
        StoreUnavailableError
            If the request store cannot be read.
        """
        today = today or date.today()
        month_prefix = f"{today.year:04d}-{today.month:02d}"

        rows, error = await store.list_all()
        if error:
            raise StoreUnavailableError(error)
        try:
            requests_ = [PermohonanRead.model_validate(row) for row in rows]
        except ValidationError as e:
            raise StoreUnavailableError(BackendError(status_code=None, message=str(e))) from e
        tera_ulang = sum(
            1
            for item in requests_
            if item.jenis_permohonan == JenisPermohonan.TERA_ULANG.value
            and item.created_at is not None
            and (item.created_at.year, item.created_at.month) == (today.year, today.month)
        )

        conn = get_connection()
        try:
            cursor = conn.cursor()
            total_pelaku = cursor.execute("SELECT COUNT(*) FROM pelaku_usaha").fetchone()[0]
            uttp_count = cursor.execute("SELECT COUNT(*) FROM uttp").fetchone()[0]
            pelaku_baru = cursor.execute(
                "SELECT COUNT(*) FROM pelaku_usaha WHERE substr(created_at, 1, 7) = ?",
                (month_prefix,),
            ).fetchone()[0]
            recent_rows = cursor.execute(
                """
                SELECT p.id, p.nama_pemilik, p.jenis_lapak, p.lokasi, p.status_tera,
                       (SELECT COUNT(*) FROM uttp u WHERE u.pelaku_usaha_id = p.id) AS uttp_count
                FROM pelaku_usaha p
                ORDER BY p.created_at DESC, p.id DESC
                LIMIT ?
                """,
                (RECENT_LIMIT,),
            ).fetchall()
        finally:
            conn.close()

        logger.debug("Dashboard overview computed for %s", month_prefix)
        return DashboardOverview(
            total_pelaku_usaha=total_pelaku,
            uttp_terdaftar=uttp_count,
            tera_ulang_bulan_ini=tera_ulang,
            pelaku_usaha_baru=pelaku_baru,
            recent=[
                RecentPelakuUsaha(
                    id=r["id"],
                    nama=r["nama_pemilik"],
                    jenis=r["jenis_lapak"],
                    lokasi=r["lokasi"],
                    status=r["status_tera"],
                    uttp_count=r["uttp_count"],
                )
                for r in recent_rows
            ],
        )
