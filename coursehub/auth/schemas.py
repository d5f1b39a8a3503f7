"""Pydantic schemas for authentication.

Request and response models for:
- User registration and login
- Admin login
- Token responses and the authenticated principal
"""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, EmailStr, Field, field_validator

from coursehub.auth.permissions import UserRole


# ==============================================================================
# Request Schemas
# ==============================================================================


class RegisterRequest(BaseModel):
    """User registration request."""

    name: str = Field(..., min_length=1, max_length=100, description="Full name")
    email: EmailStr = Field(..., description="Email address")
    password: str = Field(..., min_length=1, max_length=256, description="Password")

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            msg = "Name must not be blank"
            raise ValueError(msg)
        return v


class LoginRequest(BaseModel):
    """User login request."""

    email: EmailStr = Field(..., description="Email address")
    password: str = Field(..., min_length=1, description="Password")


class AdminLoginRequest(BaseModel):
    """Admin login request."""

    username: str = Field(..., min_length=1, max_length=100, description="Username")
    password: str = Field(..., min_length=1, description="Password")


# ==============================================================================
# Response Schemas
# ==============================================================================


class UserSummary(BaseModel):
    id: UUID
    name: str
    email: str


class AdminSummary(BaseModel):
    id: UUID
    username: str


class RegisterResponse(BaseModel):
    """Registration confirmation."""

    message: str = "User registered successfully"
    user_id: UUID


class UserTokenResponse(BaseModel):
    """Access token issued to a user."""

    token: str
    token_type: str = "Bearer"
    expires_in: int = Field(..., description="Token expiration in seconds")
    type: UserRole = UserRole.USER
    user: UserSummary


class AdminTokenResponse(BaseModel):
    """Access token issued to an administrator."""

    token: str
    token_type: str = "Bearer"
    expires_in: int = Field(..., description="Token expiration in seconds")
    type: UserRole = UserRole.ADMIN
    admin: AdminSummary


class Principal(BaseModel):
    """Authenticated caller, reconstructed from token claims only."""

    id: UUID
    role: UserRole
    issued_at: datetime | None = None
