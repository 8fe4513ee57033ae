"""
Business logic for registered businesses (pelaku usaha) and their UTTP.

Listing supports a free-text search over owner name and location plus
exact filters on stall type and calibration status.  ``"semua"``
("all") disables a filter, matching the values the admin filter
controls send.  Every listed business carries the number of UTTP
registered to it.
"""

import logging
from typing import Any, Dict, List, Optional

from ..core.db import get_connection
from ..schemas.pelaku_usaha import (
    PelakuUsahaCreate,
    PelakuUsahaDetail,
    PelakuUsahaRead,
    PelakuUsahaUpdate,
    UttpCreate,
    UttpRead,
)


logger = logging.getLogger(__name__)

SEMUA = "semua"

_SELECT_WITH_COUNT = """
    SELECT p.*, (SELECT COUNT(*) FROM uttp u WHERE u.pelaku_usaha_id = p.id) AS uttp_count
    FROM pelaku_usaha p
"""


def _to_db(value: Any) -> Any:
    # enums and dates are stored as their string form
    if hasattr(value, "value"):
        return value.value
    if hasattr(value, "isoformat"):
        return value.isoformat()
    return value


def _escape_like(text: str) -> str:
    # search text is a literal substring, not a LIKE pattern
    return text.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


class PelakuUsahaService:
    """Service for managing businesses and their equipment."""

    @classmethod
    async def list_pelaku_usaha(
        cls,
        search: str = "",
        jenis_lapak: str = SEMUA,
        status_tera: str = SEMUA,
        limit: Optional[int] = None,
    ) -> List[PelakuUsahaRead]:
        """Return businesses newest first, filtered as the admin table does."""
        conn = get_connection()
        try:
            where_clauses: List[str] = []
            params: List[Any] = []
            if search:
                where_clauses.append(
                    "(LOWER(p.nama_pemilik) LIKE ? ESCAPE '\\' OR LOWER(p.lokasi) LIKE ? ESCAPE '\\')"
                )
                pattern = f"%{_escape_like(search.lower())}%"
                params.extend([pattern, pattern])
            if jenis_lapak and jenis_lapak != SEMUA:
                where_clauses.append("p.jenis_lapak = ?")
                params.append(jenis_lapak)
            if status_tera and status_tera != SEMUA:
                where_clauses.append("p.status_tera = ?")
                params.append(status_tera)
            query = _SELECT_WITH_COUNT
            if where_clauses:
                query += " WHERE " + " AND ".join(where_clauses)
            query += " ORDER BY p.created_at DESC, p.id DESC"
            if limit is not None:
                query += " LIMIT ?"
                params.append(limit)
            rows = conn.execute(query, tuple(params)).fetchall()
            return [PelakuUsahaRead.model_validate(dict(row)) for row in rows]
        finally:
            conn.close()

    @classmethod
    async def get_pelaku_usaha(cls, pelaku_usaha_id: int) -> PelakuUsahaDetail:
        """Return one business with its UTTP.

        Raises
        ------
        ValueError
            If the business does not exist.
        """
        conn = get_connection()
        try:
            row = conn.execute(
                _SELECT_WITH_COUNT + " WHERE p.id = ?", (pelaku_usaha_id,)
            ).fetchone()
            if not row:
                raise ValueError(f"Pelaku usaha {pelaku_usaha_id} not found")
            uttp_rows = conn.execute(
                "SELECT * FROM uttp WHERE pelaku_usaha_id = ? ORDER BY id", (pelaku_usaha_id,)
            ).fetchall()
            return PelakuUsahaDetail(
                pelaku_usaha=PelakuUsahaRead.model_validate(dict(row)),
                uttp=[UttpRead.model_validate(dict(u)) for u in uttp_rows],
            )
        finally:
            conn.close()

    @classmethod
    async def create_pelaku_usaha(cls, data: PelakuUsahaCreate) -> PelakuUsahaRead:
        values = {key: _to_db(value) for key, value in data.model_dump().items()}
        columns = list(values)
        conn = get_connection()
        try:
            cursor = conn.cursor()
            cursor.execute(
                f"INSERT INTO pelaku_usaha ({', '.join(columns)}) VALUES ({', '.join('?' for _ in columns)})",
                tuple(values[c] for c in columns),
            )
            new_id = cursor.lastrowid
            conn.commit()
        finally:
            conn.close()
        logger.info("Registered pelaku usaha %s (%s)", new_id, data.nama_pemilik)
        detail = await cls.get_pelaku_usaha(new_id)
        return detail.pelaku_usaha

    @classmethod
    async def update_pelaku_usaha(cls, pelaku_usaha_id: int, data: PelakuUsahaUpdate) -> PelakuUsahaRead:
        """Apply a partial update.

        Raises
        ------
        ValueError
            If the business does not exist.
        """
        updates: Dict[str, Any] = {
            key: _to_db(value) for key, value in data.model_dump(exclude_unset=True).items()
        }
        conn = get_connection()
        try:
            cursor = conn.cursor()
            exists = cursor.execute(
                "SELECT id FROM pelaku_usaha WHERE id = ?", (pelaku_usaha_id,)
            ).fetchone()
            if not exists:
                raise ValueError(f"Pelaku usaha {pelaku_usaha_id} not found")
            if updates:
                assignments = ", ".join(f"{column} = ?" for column in updates)
                cursor.execute(
                    f"UPDATE pelaku_usaha SET {assignments}, updated_at = CURRENT_TIMESTAMP WHERE id = ?",
                    (*updates.values(), pelaku_usaha_id),
                )
                conn.commit()
        finally:
            conn.close()
        detail = await cls.get_pelaku_usaha(pelaku_usaha_id)
        return detail.pelaku_usaha

    @classmethod
    async def delete_pelaku_usaha(cls, pelaku_usaha_id: int) -> None:
        """Delete a business together with its UTTP and notifications."""
        conn = get_connection()
        try:
            cursor = conn.cursor()
            row = cursor.execute(
                "SELECT id FROM pelaku_usaha WHERE id = ?", (pelaku_usaha_id,)
            ).fetchone()
            if not row:
                raise ValueError(f"Pelaku usaha {pelaku_usaha_id} not found")
            cursor.execute("DELETE FROM uttp WHERE pelaku_usaha_id = ?", (pelaku_usaha_id,))
            cursor.execute("DELETE FROM notifikasi WHERE pelaku_usaha_id = ?", (pelaku_usaha_id,))
            cursor.execute("DELETE FROM pelaku_usaha WHERE id = ?", (pelaku_usaha_id,))
            conn.commit()
            logger.info("Deleted pelaku usaha %s", pelaku_usaha_id)
        finally:
            conn.close()

    @classmethod
    async def add_uttp(cls, pelaku_usaha_id: int, data: UttpCreate) -> UttpRead:
        conn = get_connection()
        try:
            cursor = conn.cursor()
            row = cursor.execute(
                "SELECT id FROM pelaku_usaha WHERE id = ?", (pelaku_usaha_id,)
            ).fetchone()
            if not row:
                raise ValueError(f"Pelaku usaha {pelaku_usaha_id} not found")
            cursor.execute(
                "INSERT INTO uttp (pelaku_usaha_id, jenis, merk, kondisi, tahun_tera) VALUES (?, ?, ?, ?, ?)",
                (pelaku_usaha_id, data.jenis, data.merk, data.kondisi.value, data.tahun_tera),
            )
            uttp_id = cursor.lastrowid
            conn.commit()
            created = cursor.execute("SELECT * FROM uttp WHERE id = ?", (uttp_id,)).fetchone()
            return UttpRead.model_validate(dict(created))
        finally:
            conn.close()
