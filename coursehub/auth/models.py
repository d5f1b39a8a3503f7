"""Database models for authentication.

Cassandra table definitions for:
- users: Registered learners
- users_by_email: Lookup table that also claims email uniqueness (LWT)
- admins: Administrator accounts keyed by username

Uses cassandra-driver directly (no ORM). Tables are created via the CQL
statements below in the database module.
"""

from datetime import UTC, datetime
from typing import Any
from uuid import UUID, uuid4


USER_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.users (
    id UUID PRIMARY KEY,
    name TEXT,
    email TEXT,
    password_hash TEXT,
    created_at TIMESTAMP
)
"""

USER_BY_EMAIL_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.users_by_email (
    email TEXT PRIMARY KEY,
    user_id UUID
)
"""

ADMIN_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.admins (
    username TEXT PRIMARY KEY,
    id UUID,
    password_hash TEXT,
    created_at TIMESTAMP
)
"""

AUTH_TABLES_CQL = [
    USER_TABLE_CQL,
    USER_BY_EMAIL_TABLE_CQL,
    ADMIN_TABLE_CQL,
]


def ensure_utc_aware(dt: datetime | None) -> datetime | None:
    """Ensure datetime is UTC-aware (Cassandra returns naive datetimes)."""
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=UTC)
    return dt


def normalize_email(email: str) -> str:
    return email.strip().lower()


class User:
    """Learner account.

    Attributes:
        id: Unique identifier (UUID)
        name: Display name
        email: Unique, lower-cased email address
        password_hash: Argon2id hash
        created_at: Registration timestamp
    """

    def __init__(
        self,
        id: UUID | None = None,
        name: str = "",
        email: str = "",
        password_hash: str = "",
        created_at: datetime | None = None,
    ):
        self.id = id or uuid4()
        self.name = name.strip()
        self.email = normalize_email(email)
        self.password_hash = password_hash
        self.created_at = ensure_utc_aware(created_at) or datetime.now(UTC)

    @classmethod
    def from_row(cls, row: Any) -> "User":
        """Create User instance from Cassandra row."""
        return cls(
            id=row.id,
            name=row.name,
            email=row.email,
            password_hash=row.password_hash,
            created_at=row.created_at,
        )

    def __repr__(self) -> str:
        return f"<User {self.email}>"


class Admin:
    """Administrator account, identified by username."""

    def __init__(
        self,
        username: str,
        password_hash: str = "",
        id: UUID | None = None,
        created_at: datetime | None = None,
    ):
        self.id = id or uuid4()
        self.username = username
        self.password_hash = password_hash
        self.created_at = ensure_utc_aware(created_at) or datetime.now(UTC)

    @classmethod
    def from_row(cls, row: Any) -> "Admin":
        """Create Admin instance from Cassandra row."""
        return cls(
            id=row.id,
            username=row.username,
            password_hash=row.password_hash,
            created_at=row.created_at,
        )

    def __repr__(self) -> str:
        return f"<Admin {self.username}>"
