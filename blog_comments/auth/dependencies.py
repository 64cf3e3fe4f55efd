"""FastAPI dependencies for caller resolution.

Provides dependency injection for:
- Current principal extraction from the Bearer token
- Optional principal for public read endpoints
- Admin-only guard
"""

from typing import Annotated
from uuid import UUID

from fastapi import Depends, HTTPException, Request, status
from jose import JWTError

from blog_comments.core.context import set_principal

from .permissions import UserRole
from .schemas import Principal
from .security import decode_access_token


def get_token_from_header(request: Request) -> str | None:
    """Extract Bearer token from Authorization header."""
    auth_header = request.headers.get("Authorization")
    if not auth_header:
        return None

    expected_parts = 2
    parts = auth_header.split()
    if len(parts) != expected_parts or parts[0].lower() != "bearer":
        return None

    return parts[1]


def principal_from_token(token: str) -> Principal:
    """Turn a verified token into a Principal.

    Raises:
        JWTError: If the token is invalid or its claims are malformed
    """
    payload = decode_access_token(token)
    try:
        role = UserRole(payload.get("role", UserRole.USER.value))
        principal = Principal(id=UUID(str(payload["sub"])), role=role, name=payload.get("name"))
    except ValueError as e:
        msg = "Malformed token claims"
        raise JWTError(msg) from e

    set_principal(principal.id, principal.role.value)
    return principal


async def get_current_user(
    token: Annotated[str | None, Depends(get_token_from_header)],
) -> Principal:
    """Get the authenticated caller.

    Raises:
        HTTPException(401): If token is missing, invalid, or expired
    """
    if not token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Access token required",
            headers={"WWW-Authenticate": "Bearer"},
        )

    try:
        return principal_from_token(token)
    except JWTError as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
            headers={"WWW-Authenticate": "Bearer"},
        ) from e


async def get_current_user_optional(
    token: Annotated[str | None, Depends(get_token_from_header)],
) -> Principal | None:
    """Get the caller if authenticated, None for anonymous readers."""
    if not token:
        return None

    try:
        return principal_from_token(token)
    except JWTError:
        return None


async def require_admin(
    user: Annotated[Principal, Depends(get_current_user)],
) -> Principal:
    """Require the ADMIN role."""
    if not user.is_admin:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Insufficient permissions",
        )
    return user


CurrentUser = Annotated[Principal, Depends(get_current_user)]
OptionalUser = Annotated[Principal | None, Depends(get_current_user_optional)]
AdminUser = Annotated[Principal, Depends(require_admin)]
