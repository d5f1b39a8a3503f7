"""Purchase and refund request models and Cassandra schema.

- purchases: one row per (user, course); the insert is a lightweight
  transaction, so the storage engine itself rejects a second purchase.
- refund_requests: refund requests of a user for a course, newest first.
"""

from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import TYPE_CHECKING
from uuid import UUID, uuid4


if TYPE_CHECKING:
    from cassandra.cluster import Row


class RefundStatus(str, Enum):
    """Lifecycle of a refund request."""

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


# ==============================================================================
# CQL Table Definitions
# ==============================================================================

PURCHASES_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.purchases (
    user_id UUID,
    course_id UUID,
    purchase_id UUID,
    purchased_at TIMESTAMP,
    PRIMARY KEY ((user_id), course_id)
)
"""

REFUND_REQUESTS_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.refund_requests (
    user_id UUID,
    course_id UUID,
    requested_at TIMESTAMP,
    request_id UUID,
    message TEXT,
    status TEXT,
    PRIMARY KEY ((user_id, course_id), requested_at, request_id)
) WITH CLUSTERING ORDER BY (requested_at DESC, request_id ASC)
"""

PURCHASES_TABLES_CQL = [
    PURCHASES_TABLE_CQL,
    REFUND_REQUESTS_TABLE_CQL,
]


def ensure_utc_aware(dt: datetime | None) -> datetime | None:
    """Ensure datetime is UTC-aware."""
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=UTC)
    return dt


# ==============================================================================
# Entities
# ==============================================================================


@dataclass
class Purchase:
    """A user's purchase of a course."""

    user_id: UUID
    course_id: UUID
    purchase_id: UUID = field(default_factory=uuid4)
    purchased_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    @classmethod
    def from_row(cls, row: "Row") -> "Purchase":
        """Create instance from Cassandra row."""
        return cls(
            user_id=row.user_id,
            course_id=row.course_id,
            purchase_id=row.purchase_id,
            purchased_at=ensure_utc_aware(row.purchased_at) or datetime.now(UTC),
        )


@dataclass
class RefundRequest:
    """A refund request awaiting (or past) administrator review."""

    user_id: UUID
    course_id: UUID
    message: str
    status: RefundStatus = RefundStatus.PENDING
    request_id: UUID = field(default_factory=uuid4)
    requested_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    @classmethod
    def from_row(cls, row: "Row") -> "RefundRequest":
        """Create instance from Cassandra row."""
        return cls(
            user_id=row.user_id,
            course_id=row.course_id,
            message=row.message,
            status=RefundStatus(row.status),
            request_id=row.request_id,
            requested_at=ensure_utc_aware(row.requested_at) or datetime.now(UTC),
        )

    @property
    def is_pending(self) -> bool:
        return self.status == RefundStatus.PENDING
