"""
Authentication endpoints for API v1.

Admins sign in with email and password and receive a bearer token.
Which backend checks the credentials depends on ``IDENTITY_PROVIDER``;
these routes only talk to the injected identity capability.
"""

from fastapi import APIRouter, Depends, HTTPException, status

from metrologi_portal.app.core.security import get_bearer_token, get_current_admin, get_identity
from metrologi_portal.app.schemas.auth import AdminRead, LoginRequest, TokenResponse
from metrologi_portal.app.services.audit_service import AuditService

router = APIRouter()


@router.post("/login", response_model=TokenResponse)
async def login(credentials: LoginRequest, identity=Depends(get_identity)) -> TokenResponse:
    """Exchange email and password for an access token.

    Returns 401 on bad credentials without saying which part was wrong.
    """
    token = await identity.sign_in(credentials.email, credentials.password)
    if token is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Incorrect email or password",
            headers={"WWW-Authenticate": "Bearer"},
        )
    admin = await identity.current_admin(token)
    await AuditService.record(admin, action="login", object_type="admin")
    return TokenResponse(access_token=token)


@router.post("/logout", status_code=status.HTTP_204_NO_CONTENT)
async def logout(token: str = Depends(get_bearer_token), identity=Depends(get_identity)) -> None:
    """End the session behind the bearer token."""
    if not await identity.sign_out(token):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired session",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return None


@router.get("/me", response_model=AdminRead)
async def me(current_admin: dict = Depends(get_current_admin)) -> AdminRead:
    return AdminRead(**current_admin)
