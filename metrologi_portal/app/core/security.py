"""
Security helpers: password hashing, signed session tokens and the
FastAPI dependencies that guard admin routes.

Tokens are compact JWTs signed with HMAC-SHA256 over the settings'
secret key.  Besides ``sub`` and ``exp`` every token carries a ``jti``
(session id) so that an identity provider can revoke it on sign-out.
Passwords are hashed with PBKDF2-HMAC-SHA256 and stored as
``salthex$hashhex``.

Route protection does not talk to a concrete identity backend.  It
asks the injected identity capability (see ``get_identity``) whether a
bearer token is authenticated, which keeps session state out of module
globals and lets tests substitute their own provider.
"""

import base64
import binascii
import hashlib
import hmac
import json
import os
import time
import uuid
from typing import Any, Dict, Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from .config import settings


PBKDF2_ITERATIONS = 100_000


def _b64_url_encode(data: bytes) -> str:
    return base64.urlsafe_b64encode(data).rstrip(b"=").decode("utf-8")


def _b64_url_decode(data: str) -> bytes:
    padding = "=" * (-len(data) % 4)
    return base64.urlsafe_b64decode(data + padding)


def _sign(message: bytes) -> bytes:
    return hmac.new(settings.secret_key.encode("utf-8"), message, hashlib.sha256).digest()


def create_access_token(claims: Dict[str, Any], expires_in: Optional[int] = None) -> str:
    """Create a signed token for the given claims.

    ``exp`` is set to now plus ``expires_in`` seconds (defaults to
    ``settings.access_token_expire_minutes``) and a fresh ``jti`` is
    added unless the caller supplied one.

    Returns
    -------
    str
        ``header.payload.signature``, each part base64url encoded.
    """
    payload = dict(claims)
    lifetime = expires_in or settings.access_token_expire_minutes * 60
    payload["exp"] = int(time.time()) + lifetime
    payload.setdefault("jti", uuid.uuid4().hex)
    header = {"alg": "HS256", "typ": "JWT"}
    header_b64 = _b64_url_encode(json.dumps(header, separators=(",", ":")).encode("utf-8"))
    payload_b64 = _b64_url_encode(json.dumps(payload, separators=(",", ":")).encode("utf-8"))
    signature = _sign(f"{header_b64}.{payload_b64}".encode("utf-8"))
    return f"{header_b64}.{payload_b64}.{_b64_url_encode(signature)}"


def decode_access_token(token: str) -> Optional[Dict[str, Any]]:
    """Verify a token's signature and expiry and return its claims.

    Returns ``None`` for malformed, tampered or expired tokens.
    """
    parts = token.split(".")
    if len(parts) != 3:
        return None
    header_b64, payload_b64, signature_b64 = parts
    try:
        actual_sig = _b64_url_decode(signature_b64)
        expected_sig = _sign(f"{header_b64}.{payload_b64}".encode("utf-8"))
        if not hmac.compare_digest(expected_sig, actual_sig):
            return None
        claims = json.loads(_b64_url_decode(payload_b64).decode("utf-8"))
    except (binascii.Error, ValueError):
        return None
    if not isinstance(claims, dict):
        return None
    if claims.get("exp") is None or int(claims["exp"]) < int(time.time()):
        return None
    return claims


def hash_password(password: str) -> str:
    """Hash a password with a random 16-byte salt.

    Returns
    -------
    str
        Salt and hash in hex, joined with ``$``.
    """
    salt = os.urandom(16)
    dk = hashlib.pbkdf2_hmac("sha256", password.encode("utf-8"), salt, PBKDF2_ITERATIONS)
    return f"{salt.hex()}${dk.hex()}"


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Check a plain password against a stored ``salt$hash`` string."""
    try:
        salt_hex, hash_hex = hashed_password.split("$", 1)
        salt = bytes.fromhex(salt_hex)
        stored_hash = bytes.fromhex(hash_hex)
    except ValueError:
        return False
    dk = hashlib.pbkdf2_hmac("sha256", plain_password.encode("utf-8"), salt, PBKDF2_ITERATIONS)
    return hmac.compare_digest(dk, stored_hash)


# ---------------------------------------------------------------------------
# FastAPI dependencies
# ---------------------------------------------------------------------------

bearer = HTTPBearer(auto_error=False)


def get_identity():
    """Return the configured identity capability.

    Endpoints depend on this function rather than on a concrete
    provider; override it via ``app.dependency_overrides`` in tests.
    """
    from metrologi_portal.app.services.identity import build_identity

    return build_identity()


def get_bearer_token(credentials: HTTPAuthorizationCredentials = Depends(bearer)) -> str:
    """Extract the bearer token or fail with 401."""
    if credentials is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return credentials.credentials


async def get_current_admin(
    token: str = Depends(get_bearer_token),
    identity=Depends(get_identity),
) -> Dict[str, Any]:
    """Dependency that resolves the signed-in admin.

    Raises 401 when the identity provider does not recognise the token
    (expired, revoked by sign-out, or never issued).
    """
    admin = await identity.current_admin(token)
    if admin is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired session",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return admin
