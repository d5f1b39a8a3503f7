"""Authentication API endpoints.

Provides routes for:
- User registration and login
- Admin login
"""

from collections.abc import Callable
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, status

from coursehub.auth.permissions import UserRole
from coursehub.auth.schemas import (
    AdminLoginRequest,
    AdminSummary,
    AdminTokenResponse,
    LoginRequest,
    RegisterRequest,
    RegisterResponse,
    UserSummary,
    UserTokenResponse,
)
from coursehub.auth.service import AuthError, AuthService


router = APIRouter(prefix="/auth", tags=["auth"])


# ==============================================================================
# Dependency for AuthService
# ==============================================================================

# Module-level reference to be overridden by main.py
_auth_service_getter: Callable[[], AuthService] | None = None


def set_auth_service_getter(getter: Callable[[], AuthService]) -> None:
    """Set the auth service getter function.

    Called by main.py during app initialization.
    """
    global _auth_service_getter  # noqa: PLW0603 - Required for DI pattern
    _auth_service_getter = getter


def get_auth_service() -> AuthService:
    """Get AuthService instance.

    Uses the getter function set by main.py at startup.
    """
    if _auth_service_getter is None:
        raise RuntimeError(
            "AuthService not configured - call set_auth_service_getter first"
        )
    return _auth_service_getter()


AuthServiceDep = Annotated[AuthService, Depends(get_auth_service)]


# ==============================================================================
# Error Handling
# ==============================================================================


def handle_auth_error(error: AuthError) -> HTTPException:
    """Convert AuthError to HTTPException."""
    status_map = {
        "invalid_credentials": status.HTTP_401_UNAUTHORIZED,
        "user_exists": status.HTTP_409_CONFLICT,
        "auth_error": status.HTTP_400_BAD_REQUEST,
    }
    headers = (
        {"WWW-Authenticate": "Bearer"} if error.code == "invalid_credentials" else None
    )
    return HTTPException(
        status_code=status_map.get(error.code, status.HTTP_400_BAD_REQUEST),
        detail=error.message,
        headers=headers,
    )


# ==============================================================================
# Public Endpoints (No Auth Required)
# ==============================================================================


@router.post(
    "/register",
    response_model=RegisterResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Register new user",
    responses={
        400: {"description": "Validation error"},
        409: {"description": "Email already registered"},
    },
)
async def register(
    data: RegisterRequest,
    auth_service: AuthServiceDep,
) -> RegisterResponse:
    """Register a new user account."""
    try:
        user = await auth_service.register_user(data)
    except AuthError as e:
        raise handle_auth_error(e) from e
    return RegisterResponse(user_id=user.id)


@router.post(
    "/login",
    response_model=UserTokenResponse,
    summary="User login",
    responses={401: {"description": "Invalid credentials"}},
)
async def login(
    data: LoginRequest,
    auth_service: AuthServiceDep,
) -> UserTokenResponse:
    """Authenticate a user and return a 7-day access token."""
    try:
        user = await auth_service.authenticate_user(data.email, data.password)
    except AuthError as e:
        raise handle_auth_error(e) from e

    token, expires_in = auth_service.create_token(user.id, UserRole.USER)
    return UserTokenResponse(
        token=token,
        expires_in=expires_in,
        user=UserSummary(id=user.id, name=user.name, email=user.email),
    )


@router.post(
    "/admin/login",
    response_model=AdminTokenResponse,
    summary="Admin login",
    responses={401: {"description": "Invalid credentials"}},
)
async def admin_login(
    data: AdminLoginRequest,
    auth_service: AuthServiceDep,
) -> AdminTokenResponse:
    """Authenticate an administrator and return a 1-day access token."""
    try:
        admin = await auth_service.authenticate_admin(data.username, data.password)
    except AuthError as e:
        raise handle_auth_error(e) from e

    token, expires_in = auth_service.create_token(admin.id, UserRole.ADMIN)
    return AdminTokenResponse(
        token=token,
        expires_in=expires_in,
        admin=AdminSummary(id=admin.id, username=admin.username),
    )
