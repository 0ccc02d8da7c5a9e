"""Authentication middleware - token verification and role checks."""

from typing import Annotated

from fastapi import Depends, HTTPException, status
from fastapi.security import APIKeyHeader

from services.auth_service import AuthContext, AuthService

token_header = APIKeyHeader(name="x-auth-token", auto_error=False)


async def get_auth_context(
    token: Annotated[str | None, Depends(token_header)],
) -> AuthContext:
    """Decode the ``x-auth-token`` header into the caller's identity."""
    if not token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="No token, authorization denied",
        )

    auth = AuthService.decode_access_token(token)
    if auth is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Token is not valid",
        )
    return auth


async def require_editor(
    auth: Annotated[AuthContext, Depends(get_auth_context)],
) -> AuthContext:
    """Only editors pass."""
    if not auth.is_editor:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Access denied. Editor role required.",
        )
    return auth


CurrentAuth = Annotated[AuthContext, Depends(get_auth_context)]
EditorAuth = Annotated[AuthContext, Depends(require_editor)]
