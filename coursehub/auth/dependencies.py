"""FastAPI dependencies for authentication.

Provides dependency injection for:
- Principal extraction from the bearer token
- Role gating, layered on top of token verification
"""

from typing import Annotated

from fastapi import Depends, HTTPException, Request, status
from jose import JWTError
from pydantic import ValidationError

from coursehub.auth.permissions import UserRole, parse_role
from coursehub.auth.schemas import Principal
from coursehub.auth.security import decode_access_token
from coursehub.core.context import set_user_id, set_user_role


def get_token_from_header(request: Request) -> str | None:
    """Extract Bearer token from Authorization header.

    Returns:
        Token string or None if not present
    """
    auth_header = request.headers.get("Authorization")
    if not auth_header:
        return None

    expected_parts = 2
    parts = auth_header.split()
    if len(parts) != expected_parts or parts[0].lower() != "bearer":
        return None

    return parts[1]


async def get_current_principal(
    token: Annotated[str | None, Depends(get_token_from_header)],
) -> Principal:
    """Get the authenticated principal from the access token.

    A missing token and a bad token are different outcomes: the first is
    401 (authenticate, please), the second 403 (we will not honour this
    credential).

    Raises:
        HTTPException(401): If no token was supplied
        HTTPException(403): If the token is invalid, expired or malformed
    """
    if not token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Access token not provided",
            headers={"WWW-Authenticate": "Bearer"},
        )

    try:
        payload = decode_access_token(token)
        role = parse_role(payload["role"])
        if role is None:
            msg = f"Unknown role claim: {payload['role']}"
            raise JWTError(msg)
        principal = Principal(id=payload["sub"], role=role, issued_at=payload.get("iat"))
    except (JWTError, ValidationError) as e:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Invalid or expired token",
        ) from e

    set_user_id(principal.id)
    set_user_role(principal.role.value)
    return principal


def require_role(*allowed_roles: UserRole):
    """Create dependency requiring specific role(s).

    Runs after token verification, so a valid token with the wrong role
    yields its own 403 rather than the invalid-token one.

    Example:
        @router.post("/admin/course")
        async def create_course(
            admin: Annotated[Principal, Depends(require_role(UserRole.ADMIN))]
        ):
            ...
    """

    async def role_checker(
        principal: Annotated[Principal, Depends(get_current_principal)],
    ) -> Principal:
        if principal.role not in allowed_roles:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Insufficient permission",
            )
        return principal

    return role_checker


# ==============================================================================
# Type Aliases for Cleaner Code
# ==============================================================================

CurrentUser = Annotated[Principal, Depends(require_role(UserRole.USER))]
AdminUser = Annotated[Principal, Depends(require_role(UserRole.ADMIN))]
