"""Security utilities for authentication.

Provides:
- Password hashing with Argon2id
- Signed access tokens (HS256 JWT) carrying subject and role
"""

from datetime import UTC, datetime, timedelta
from typing import Any

from argon2 import PasswordHasher
from argon2.exceptions import InvalidHashError, VerificationError, VerifyMismatchError
from jose import JWTError, jwt

from coursehub.auth.permissions import UserRole
from coursehub.config.settings import get_settings


# argon2-cffi defaults (Argon2id, RFC 9106 low-memory profile)
_password_hasher = PasswordHasher()


def hash_password(password: str) -> str:
    """Hash a password using Argon2id.

    The returned hash embeds salt and parameters, so it is self-contained
    for verification.

    Example:
        >>> hash_password("my-secure-password").startswith("$argon2id$")
        True
    """
    return _password_hasher.hash(password)


def verify_password(password: str, password_hash: str) -> tuple[bool, str | None]:
    """Verify a password against its hash.

    Also checks whether the stored hash was produced with outdated
    parameters, so callers can transparently upgrade it.

    Returns:
        Tuple of (is_valid, new_hash) where new_hash is set only when a
        rehash is needed.
    """
    try:
        _password_hasher.verify(password_hash, password)
    except (VerifyMismatchError, VerificationError, InvalidHashError):
        return False, None

    if _password_hasher.check_needs_rehash(password_hash):
        return True, hash_password(password)
    return True, None


def token_lifetime(role: UserRole) -> timedelta:
    """Access token lifetime for a role: 7 days for users, 1 day for admins."""
    settings = get_settings()
    if role is UserRole.ADMIN:
        return timedelta(days=settings.auth_admin_token_expire_days)
    return timedelta(days=settings.auth_user_token_expire_days)


def create_access_token(
    data: dict[str, Any],
    expires_delta: timedelta | None = None,
) -> str:
    """Create a JWT access token.

    Args:
        data: Claims, typically {"sub": principal_id, "role": role}
        expires_delta: Token lifetime (defaults to the lifetime of the role)

    Token payload includes, besides the given claims:
        - exp: Expiration timestamp
        - iat: Issued at timestamp
        - type: "access"
    """
    settings = get_settings()

    if expires_delta is None:
        role = UserRole(data.get("role", UserRole.USER.value))
        expires_delta = token_lifetime(role)

    now = datetime.now(UTC)
    to_encode = data.copy()
    to_encode.update(
        {
            "exp": now + expires_delta,
            "iat": now,
            "type": "access",
        }
    )

    return jwt.encode(
        to_encode,
        settings.auth_secret_key,
        algorithm=settings.auth_algorithm,
    )


def decode_access_token(token: str) -> dict[str, Any]:
    """Decode and validate an access token.

    Validates signature, expiration, token type and the presence of the
    ``sub`` and ``role`` claims.

    Raises:
        JWTError: If the token is invalid, expired or malformed
    """
    settings = get_settings()

    payload = jwt.decode(
        token,
        settings.auth_secret_key,
        algorithms=[settings.auth_algorithm],
    )

    if payload.get("type") != "access":
        msg = "Invalid token type: expected 'access'"
        raise JWTError(msg)

    if not payload.get("sub") or not payload.get("role"):
        msg = "Token missing subject or role claim"
        raise JWTError(msg)

    return payload
