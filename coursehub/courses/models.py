"""Database models for the course catalog.

Cassandra table definitions for:
- courses: Catalog entries
- modules: Modules by id (existence checks)
- modules_by_course: Modules of a course, clustered by order_index
- lessons_by_module: Lessons of a module, clustered by order_index

Ownership is strictly hierarchical (course -> module -> lesson), so the
listing tables are partitioned by parent id and read in clustering order.
Callers assign order_index themselves; duplicates and gaps are allowed,
which is why the entity id is the last clustering column.
"""

import json
from dataclasses import dataclass, field
from datetime import UTC, datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import TYPE_CHECKING, Any
from uuid import UUID, uuid4


if TYPE_CHECKING:
    from cassandra.cluster import Row


# ==============================================================================
# CQL Table Definitions
# ==============================================================================

COURSE_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.courses (
    id UUID PRIMARY KEY,
    name TEXT,
    description TEXT,
    image_url TEXT,
    price DECIMAL,
    created_at TIMESTAMP
)
"""

MODULE_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.modules (
    id UUID PRIMARY KEY,
    course_id UUID,
    name TEXT,
    order_index INT,
    created_at TIMESTAMP
)
"""

MODULES_BY_COURSE_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.modules_by_course (
    course_id UUID,
    order_index INT,
    module_id UUID,
    name TEXT,
    created_at TIMESTAMP,
    PRIMARY KEY ((course_id), order_index, module_id)
) WITH CLUSTERING ORDER BY (order_index ASC, module_id ASC)
"""

LESSONS_BY_MODULE_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.lessons_by_module (
    module_id UUID,
    order_index INT,
    lesson_id UUID,
    title TEXT,
    video_url TEXT,
    description_text TEXT,
    links_json TEXT,
    drip_days INT,
    created_at TIMESTAMP,
    PRIMARY KEY ((module_id), order_index, lesson_id)
) WITH CLUSTERING ORDER BY (order_index ASC, lesson_id ASC)
"""

COURSES_TABLES_CQL = [
    COURSE_TABLE_CQL,
    MODULE_TABLE_CQL,
    MODULES_BY_COURSE_TABLE_CQL,
    LESSONS_BY_MODULE_TABLE_CQL,
]

# Column limits: order_index and drip_days are CQL INT, price is money.
INT32_MIN = -(2**31)
INT32_MAX = 2**31 - 1
MAX_DRIP_DAYS = 36_500
MAX_PRICE = Decimal("9999999999.99")


def ensure_utc_aware(dt: datetime | None) -> datetime | None:
    """Ensure datetime is UTC-aware (Cassandra returns naive datetimes)."""
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=UTC)
    return dt


def quantize_price(price: Decimal) -> Decimal:
    """Round a price to two decimal places (fixed-point currency)."""
    return price.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)


def _now() -> datetime:
    return datetime.now(UTC)


# ==============================================================================
# Entities
# ==============================================================================


@dataclass
class Course:
    """A purchasable course; owns modules."""

    name: str
    description: str
    image_url: str
    price: Decimal
    id: UUID = field(default_factory=uuid4)
    created_at: datetime = field(default_factory=_now)

    def __post_init__(self) -> None:
        self.price = quantize_price(self.price)

    @classmethod
    def from_row(cls, row: "Row") -> "Course":
        """Create instance from Cassandra row."""
        return cls(
            id=row.id,
            name=row.name,
            description=row.description or "",
            image_url=row.image_url or "",
            price=row.price if row.price is not None else Decimal("0"),
            created_at=ensure_utc_aware(row.created_at) or _now(),
        )


@dataclass
class Module:
    """A module of a course; owns lessons."""

    course_id: UUID
    name: str
    order_index: int
    id: UUID = field(default_factory=uuid4)
    created_at: datetime = field(default_factory=_now)

    @classmethod
    def from_row(cls, row: "Row") -> "Module":
        """Create instance from a ``modules`` or ``modules_by_course`` row."""
        return cls(
            id=getattr(row, "module_id", None) or row.id,
            course_id=row.course_id,
            name=row.name,
            order_index=row.order_index,
            created_at=ensure_utc_aware(row.created_at) or _now(),
        )


@dataclass
class Lesson:
    """A lesson of a module.

    ``links_json`` holds the raw JSON text supplied by the admin; it is
    decoded only when a released lesson is presented.
    """

    module_id: UUID
    title: str
    drip_days: int
    order_index: int
    video_url: str = ""
    description_text: str | None = None
    links_json: str | None = None
    id: UUID = field(default_factory=uuid4)
    created_at: datetime = field(default_factory=_now)

    @classmethod
    def from_row(cls, row: "Row") -> "Lesson":
        """Create instance from a ``lessons_by_module`` row."""
        return cls(
            id=row.lesson_id,
            module_id=row.module_id,
            title=row.title,
            drip_days=row.drip_days or 0,
            order_index=row.order_index,
            video_url=row.video_url or "",
            description_text=row.description_text,
            links_json=row.links_json,
            created_at=ensure_utc_aware(row.created_at) or _now(),
        )

    def decoded_links(self) -> Any:
        """Links as a Python value, or None when nothing was stored."""
        if not self.links_json:
            return None
        return json.loads(self.links_json)
