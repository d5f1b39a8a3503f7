"""Principal roles.

Two flat roles, no hierarchy: a ``user`` buys and consumes courses, an
``admin`` manages the catalog. Neither role implies the other.
"""

from enum import Enum


class UserRole(str, Enum):
    """Role carried in the access token."""

    USER = "user"
    ADMIN = "admin"


def parse_role(role: "UserRole | str") -> UserRole | None:
    """Return the role for a raw claim value, or None if it is unknown."""
    if isinstance(role, UserRole):
        return role
    try:
        return UserRole(role)
    except ValueError:
        return None
