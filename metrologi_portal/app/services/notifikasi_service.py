"""
Business logic for admin notifications.

Besides listing and read-marking, this module runs the calibration
reminder sweep: every business whose ``tanggal_exp_tera`` has passed
gets a ``tera_expired`` notification, and every business expiring
within the warning window gets a ``tera_exp_warning``.  A business
that already has an unread notification of the same kind is skipped so
repeated sweeps do not pile up duplicates.
"""

import logging
from datetime import date, timedelta
from typing import List, Optional

from ..core.config import settings
from ..core.db import get_connection
from ..schemas.notifikasi import JenisNotifikasi, NotifikasiRead, ReminderResult


logger = logging.getLogger(__name__)


class NotifikasiService:
    """Service for admin notifications."""

    @classmethod
    async def list_notifikasi(
        cls,
        unread_only: bool = False,
        limit: int = 50,
        offset: int = 0,
    ) -> List[NotifikasiRead]:
        conn = get_connection()
        try:
            query = """
                SELECT n.id, n.jenis, n.judul, n.pesan, n.pelaku_usaha_id, n.dibaca, n.created_at,
                       p.nama_pemilik
                FROM notifikasi n LEFT JOIN pelaku_usaha p ON p.id = n.pelaku_usaha_id
            """
            if unread_only:
                query += " WHERE n.dibaca = 0"
            query += " ORDER BY n.created_at DESC, n.id DESC LIMIT ? OFFSET ?"
            rows = conn.execute(query, (limit, offset)).fetchall()
            return [NotifikasiRead.model_validate(dict(row)) for row in rows]
        finally:
            conn.close()

    @classmethod
    async def unread_count(cls) -> int:
        conn = get_connection()
        try:
            return conn.execute("SELECT COUNT(*) FROM notifikasi WHERE dibaca = 0").fetchone()[0]
        finally:
            conn.close()

    @classmethod
    async def mark_read(cls, notifikasi_id: int) -> None:
        """Mark one notification as read.

        Raises
        ------
        ValueError
            If the notification does not exist.
        """
        conn = get_connection()
        try:
            cursor = conn.cursor()
            cursor.execute("UPDATE notifikasi SET dibaca = 1 WHERE id = ?", (notifikasi_id,))
            if cursor.rowcount == 0:
                raise ValueError(f"Notifikasi {notifikasi_id} not found")
            conn.commit()
        finally:
            conn.close()

    @classmethod
    async def mark_all_read(cls) -> int:
        conn = get_connection()
        try:
            cursor = conn.cursor()
            cursor.execute("UPDATE notifikasi SET dibaca = 1 WHERE dibaca = 0")
            conn.commit()
            return cursor.rowcount
        finally:
            conn.close()

    @classmethod
    async def generate_tera_reminders(
        cls,
        today: Optional[date] = None,
        warning_days: Optional[int] = None,
    ) -> ReminderResult:
        """Create expiry notifications for businesses due for re-calibration."""
        today = today or date.today()
        warning_days = settings.tera_warning_days if warning_days is None else warning_days
        horizon = today + timedelta(days=warning_days)
        expired = warnings = 0
        conn = get_connection()
        try:
            cursor = conn.cursor()
            rows = cursor.execute(
                """
                SELECT id, nama_pemilik, lokasi, tanggal_exp_tera FROM pelaku_usaha
                WHERE tanggal_exp_tera IS NOT NULL AND tanggal_exp_tera <= ?
                ORDER BY tanggal_exp_tera
                """,
                (horizon.isoformat(),),
            ).fetchall()
            for row in rows:
                exp_date = date.fromisoformat(row["tanggal_exp_tera"][:10])
                if exp_date < today:
                    jenis = JenisNotifikasi.TERA_EXPIRED
                    judul = "Masa tera habis"
                    pesan = (
                        f"Masa berlaku tera UTTP milik {row['nama_pemilik']} ({row['lokasi']}) "
                        f"telah habis sejak {exp_date.isoformat()}."
                    )
                else:
                    jenis = JenisNotifikasi.TERA_EXP_WARNING
                    judul = "Masa tera segera habis"
                    pesan = (
                        f"Masa berlaku tera UTTP milik {row['nama_pemilik']} ({row['lokasi']}) "
                        f"akan habis pada {exp_date.isoformat()}."
                    )
                duplicate = cursor.execute(
                    "SELECT 1 FROM notifikasi WHERE pelaku_usaha_id = ? AND jenis = ? AND dibaca = 0",
                    (row["id"], jenis.value),
                ).fetchone()
                if duplicate:
                    continue
                cursor.execute(
                    "INSERT INTO notifikasi (jenis, judul, pesan, pelaku_usaha_id) VALUES (?, ?, ?, ?)",
                    (jenis.value, judul, pesan, row["id"]),
                )
                if jenis is JenisNotifikasi.TERA_EXPIRED:
                    expired += 1
                else:
                    warnings += 1
            conn.commit()
        finally:
            conn.close()
        logger.info("Tera reminder sweep: %s expired, %s warnings", expired, warnings)
        return ReminderResult(created=expired + warnings, expired=expired, warnings=warnings)
