"""
Audit service for recording and querying admin actions.

Every state-changing admin action (processing a service request,
editing a business or article, signing in) is written to the
``audit_logs`` table.  ``record`` wraps ``log`` for callers that must
not fail because the audit write failed: the failure is logged as a
warning and the action continues.
"""

from __future__ import annotations

import json
import logging
import sqlite3
from typing import Optional, List, Dict, Any

from metrologi_portal.app.core.db import get_connection


logger = logging.getLogger(__name__)


class AuditService:
    """Service class for writing and retrieving audit logs."""

    @classmethod
    async def log(
        cls,
        admin_id: Optional[int],
        action: str,
        object_type: str,
        object_id: Optional[int] = None,
        details: Optional[dict] = None,
    ) -> None:
        """Insert a new audit record.

        Parameters
        ----------
        admin_id : Optional[int]
            ID of the admin performing the action.  ``None`` for
            system-initiated actions (e.g. reminder sweeps).
        action : str
            Short description of the action ("process", "create", "update", "delete").
        object_type : str
            Type of object affected ("permohonan", "pelaku_usaha", "artikel").
        object_id : Optional[int]
            Primary key of the affected object, if applicable.
        details : Optional[dict]
            Additional structured data about the action, stored as JSON.
        """
        conn = get_connection()
        try:
            details_json = json.dumps(details) if details else None
            conn.execute(
                """
                INSERT INTO audit_logs (admin_id, action, object_type, object_id, details)
                VALUES (?, ?, ?, ?, ?)
                """,
                (admin_id, action, object_type, object_id, details_json),
            )
            conn.commit()
        finally:
            conn.close()

    @classmethod
    async def record(
        cls,
        admin: Optional[dict],
        action: str,
        object_type: str,
        object_id: Optional[int] = None,
        details: Optional[dict] = None,
    ) -> None:
        """Write an audit record for ``admin``; never raises on storage errors."""
        admin_id = admin.get("admin_id") if admin else None
        # hosted identities carry UUID ids that do not reference the admins table
        if not isinstance(admin_id, int):
            admin_id = None
        try:
            await cls.log(admin_id, action, object_type, object_id, details)
        except sqlite3.Error as e:
            logger.warning("Failed to write audit log for %s %s %s: %s", action, object_type, object_id, e)

    @classmethod
    async def list_logs(
        cls,
        admin_id: Optional[int] = None,
        object_type: Optional[str] = None,
        action: Optional[str] = None,
        start_date: Optional[str] = None,
        end_date: Optional[str] = None,
        limit: int = 100,
        offset: int = 0,
    ) -> List[Dict[str, Any]]:
        """Retrieve audit records with optional filters and pagination.

        Date filters accept ISO date strings ("YYYY-MM-DD") and apply to
        the ``timestamp`` column.  Results are newest first.
        """
        conn = get_connection()
        try:
            where_clauses: List[str] = []
            params: List[Any] = []
            if admin_id is not None:
                where_clauses.append("admin_id = ?")
                params.append(admin_id)
            if object_type:
                where_clauses.append("object_type = ?")
                params.append(object_type)
            if action:
                where_clauses.append("action = ?")
                params.append(action)
            if start_date:
                where_clauses.append("timestamp >= ?")
                params.append(start_date)
            if end_date:
                where_clauses.append("timestamp <= ?")
                params.append(end_date)
            query = "SELECT id, admin_id, action, object_type, object_id, timestamp, details FROM audit_logs"
            if where_clauses:
                query += " WHERE " + " AND ".join(where_clauses)
            query += " ORDER BY timestamp DESC, id DESC LIMIT ? OFFSET ?"
            params.extend([limit, offset])
            rows = conn.execute(query, tuple(params)).fetchall()
            logs = []
            for row in rows:
                details_data = None
                if row["details"]:
                    try:
                        details_data = json.loads(row["details"])
                    except json.JSONDecodeError:
                        details_data = row["details"]
                logs.append(
                    {
                        "id": row["id"],
                        "admin_id": row["admin_id"],
                        "action": row["action"],
                        "object_type": row["object_type"],
                        "object_id": row["object_id"],
                        "timestamp": row["timestamp"],
                        "details": details_data,
                    }
                )
            return logs
        finally:
            conn.close()
