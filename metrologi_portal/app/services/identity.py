"""
Identity capability for admin sessions.

The portal never keeps "who is signed in" in module globals.  Route
guards and the auth endpoints call an identity object exposing four
coroutines:

``sign_in(email, password) -> Optional[str]``
    Return an access token, or ``None`` for bad credentials.
``is_authenticated(token) -> bool``
    Whether the token belongs to a live session.
``current_admin(token) -> Optional[dict]``
    The admin behind a live session (``admin_id``, ``email``).
``sign_out(token) -> bool``
    End the session.  Returns ``False`` if there was nothing to end.

``LocalIdentity`` backs this with the ``admins``/``admin_sessions``
tables and signed tokens; ``SupabaseIdentity`` delegates to the hosted
GoTrue auth API.  ``build_identity`` picks one from settings.
"""

import asyncio
import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from ..core.config import settings
from ..core.db import get_connection
from ..core.security import (
    create_access_token,
    decode_access_token,
    hash_password,
    verify_password,
)
from ..core.supabase import SupabaseClient


logger = logging.getLogger(__name__)


class LocalIdentity:
    """Session authentication against the local SQLite database."""

    async def sign_in(self, email: str, password: str) -> Optional[str]:
        conn = get_connection()
        try:
            cursor = conn.cursor()
            row = cursor.execute(
                "SELECT id, email, password, disabled FROM admins WHERE email = ?",
                (email,),
            ).fetchone()
            if not row or row["disabled"] or not verify_password(password, row["password"]):
                logger.info("Rejected sign-in for %s", email)
                return None
            token = create_access_token({"sub": row["email"], "admin_id": row["id"]})
            claims = decode_access_token(token)
            cursor.execute(
                "INSERT INTO admin_sessions (jti, admin_id) VALUES (?, ?)",
                (claims["jti"], row["id"]),
            )
            conn.commit()
            logger.info("Admin %s signed in", row["id"])
            return token
        finally:
            conn.close()

    async def current_admin(self, token: str) -> Optional[Dict[str, Any]]:
        claims = decode_access_token(token)
        if not claims or not claims.get("jti"):
            return None
        conn = get_connection()
        try:
            row = conn.execute(
                """
                SELECT a.id, a.email, a.full_name, a.disabled, s.revoked_at
                FROM admin_sessions s JOIN admins a ON a.id = s.admin_id
                WHERE s.jti = ?
                """,
                (claims["jti"],),
            ).fetchone()
        finally:
            conn.close()
        if not row or row["revoked_at"] is not None or row["disabled"]:
            return None
        return {"admin_id": row["id"], "email": row["email"], "full_name": row["full_name"]}

    async def is_authenticated(self, token: str) -> bool:
        return await self.current_admin(token) is not None

    async def sign_out(self, token: str) -> bool:
        claims = decode_access_token(token)
        if not claims or not claims.get("jti"):
            return False
        conn = get_connection()
        try:
            cursor = conn.cursor()
            cursor.execute(
                "UPDATE admin_sessions SET revoked_at = ? WHERE jti = ? AND revoked_at IS NULL",
                (datetime.now(timezone.utc).isoformat(), claims["jti"]),
            )
            conn.commit()
            revoked = cursor.rowcount > 0
        finally:
            conn.close()
        if revoked:
            logger.info("Admin %s signed out", claims.get("admin_id"))
        return revoked


class SupabaseIdentity:
    """Session authentication delegated to the hosted GoTrue API.

    Tokens are the access tokens GoTrue issues; validity is checked by
    asking ``/auth/v1/user`` on every call.  The blocking client runs
    in a worker thread.
    """

    def __init__(self, client: SupabaseClient) -> None:
        self.client = client

    async def sign_in(self, email: str, password: str) -> Optional[str]:
        data, error = await asyncio.to_thread(
            self.client.request,
            "POST",
            "/auth/v1/token",
            params={"grant_type": "password"},
            json_body={"email": email, "password": password},
        )
        if error or not data:
            return None
        return data.get("access_token")

    async def current_admin(self, token: str) -> Optional[Dict[str, Any]]:
        data, error = await asyncio.to_thread(
            self.client.request, "GET", "/auth/v1/user", access_token=token
        )
        if error or not data:
            return None
        metadata = data.get("user_metadata") or {}
        return {
            "admin_id": data.get("id"),
            "email": data.get("email"),
            "full_name": metadata.get("full_name"),
        }

    async def is_authenticated(self, token: str) -> bool:
        return await self.current_admin(token) is not None

    async def sign_out(self, token: str) -> bool:
        _, error = await asyncio.to_thread(
            self.client.request, "POST", "/auth/v1/logout", access_token=token
        )
        return error is None


def build_identity():
    """Instantiate the identity provider named by ``settings.identity_provider``."""
    if settings.identity_provider == "supabase":
        return SupabaseIdentity(
            SupabaseClient(
                base_url=settings.supabase_url,
                anon_key=settings.supabase_anon_key,
                timeout=settings.supabase_timeout,
            )
        )
    return LocalIdentity()


# ---------------------------------------------------------------------------
# Local admin account management (used by create_admin.py and tests)
# ---------------------------------------------------------------------------

def create_admin(email: str, password: str, full_name: Optional[str] = None) -> int:
    """Insert a new admin account and return its id.

    Raises
    ------
    ValueError
        If the password is empty or the email is already registered.
    """
    if not password:
        raise ValueError("Empty password is not allowed")
    conn = get_connection()
    try:
        cursor = conn.cursor()
        exists = cursor.execute("SELECT id FROM admins WHERE email = ?", (email,)).fetchone()
        if exists:
            raise ValueError(f"Admin {email} already exists")
        cursor.execute(
            "INSERT INTO admins (email, full_name, password) VALUES (?, ?, ?)",
            (email, full_name, hash_password(password)),
        )
        conn.commit()
        return cursor.lastrowid
    finally:
        conn.close()


def set_admin_password(email: str, password: str) -> None:
    """Replace an admin's password hash and revoke their open sessions."""
    if not password:
        raise ValueError("Empty password is not allowed")
    conn = get_connection()
    try:
        cursor = conn.cursor()
        row = cursor.execute("SELECT id FROM admins WHERE email = ?", (email,)).fetchone()
        if not row:
            raise ValueError(f"No admin found with email: {email}")
        cursor.execute(
            "UPDATE admins SET password = ?, updated_at = CURRENT_TIMESTAMP WHERE id = ?",
            (hash_password(password), row["id"]),
        )
        cursor.execute(
            "UPDATE admin_sessions SET revoked_at = CURRENT_TIMESTAMP WHERE admin_id = ? AND revoked_at IS NULL",
            (row["id"],),
        )
        conn.commit()
    finally:
        conn.close()
