"""
Business logic for articles.

The public landing page shows the latest published articles and a
single-article page with an estimated reading time.  Admins manage
drafts and published articles.
"""

import logging
import math
import re
from typing import List, Optional

from ..core.db import get_connection
from ..schemas.artikel import (
    ArtikelCreate,
    ArtikelDetail,
    ArtikelRead,
    ArtikelStatus,
    ArtikelUpdate,
)


logger = logging.getLogger(__name__)

WORDS_PER_MINUTE = 200
_TAG_RE = re.compile(r"<[^>]*>")


def reading_time(konten: str) -> int:
    """Minutes needed to read ``konten`` (HTML) at 200 words per minute."""
    words = _TAG_RE.sub("", konten or "").split()
    return max(1, math.ceil(len(words) / WORDS_PER_MINUTE))


class ArtikelService:
    """Service for article listing and management."""

    @classmethod
    async def list_artikel(
        cls,
        status: Optional[str] = None,
        limit: int = 20,
        offset: int = 0,
    ) -> List[ArtikelRead]:
        """Return articles newest first, optionally only one status."""
        conn = get_connection()
        try:
            query = "SELECT * FROM artikel"
            params: list = []
            if status:
                query += " WHERE status = ?"
                params.append(status)
            query += " ORDER BY created_at DESC, id DESC LIMIT ? OFFSET ?"
            params.extend([limit, offset])
            rows = conn.execute(query, tuple(params)).fetchall()
            return [ArtikelRead.model_validate(dict(row)) for row in rows]
        finally:
            conn.close()

    @classmethod
    async def get_artikel(cls, artikel_id: int, published_only: bool = True) -> ArtikelDetail:
        """Return one article with its reading time.

        Raises
        ------
        ValueError
            If the article does not exist (or is a draft and
            ``published_only`` is set).
        """
        conn = get_connection()
        try:
            row = conn.execute("SELECT * FROM artikel WHERE id = ?", (artikel_id,)).fetchone()
        finally:
            conn.close()
        if not row or (published_only and row["status"] != ArtikelStatus.PUBLISHED.value):
            raise ValueError(f"Artikel {artikel_id} not found")
        return ArtikelDetail(**dict(row), reading_time=reading_time(row["konten"]))

    @classmethod
    async def create_artikel(cls, data: ArtikelCreate) -> ArtikelRead:
        conn = get_connection()
        try:
            cursor = conn.cursor()
            cursor.execute(
                """
                INSERT INTO artikel (judul, konten, excerpt, gambar_url, status, author)
                VALUES (?, ?, ?, ?, ?, ?)
                """,
                (data.judul, data.konten, data.excerpt, data.gambar_url, data.status.value, data.author),
            )
            artikel_id = cursor.lastrowid
            conn.commit()
            row = cursor.execute("SELECT * FROM artikel WHERE id = ?", (artikel_id,)).fetchone()
            logger.info("Created artikel %s (%s)", artikel_id, data.status.value)
            return ArtikelRead.model_validate(dict(row))
        finally:
            conn.close()

    @classmethod
    async def update_artikel(cls, artikel_id: int, data: ArtikelUpdate) -> ArtikelRead:
        updates = data.model_dump(exclude_unset=True)
        if "status" in updates and updates["status"] is not None:
            updates["status"] = updates["status"].value
        conn = get_connection()
        try:
            cursor = conn.cursor()
            if not cursor.execute("SELECT id FROM artikel WHERE id = ?", (artikel_id,)).fetchone():
                raise ValueError(f"Artikel {artikel_id} not found")
            if updates:
                assignments = ", ".join(f"{column} = ?" for column in updates)
                cursor.execute(
                    f"UPDATE artikel SET {assignments}, updated_at = CURRENT_TIMESTAMP WHERE id = ?",
                    (*updates.values(), artikel_id),
                )
                conn.commit()
            row = cursor.execute("SELECT * FROM artikel WHERE id = ?", (artikel_id,)).fetchone()
            return ArtikelRead.model_validate(dict(row))
        finally:
            conn.close()

    @classmethod
    async def delete_artikel(cls, artikel_id: int) -> None:
        conn = get_connection()
        try:
            cursor = conn.cursor()
            cursor.execute("DELETE FROM artikel WHERE id = ?", (artikel_id,))
            if cursor.rowcount == 0:
                raise ValueError(f"Artikel {artikel_id} not found")
            conn.commit()
        finally:
            conn.close()
