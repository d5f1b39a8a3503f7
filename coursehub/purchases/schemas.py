"""Pydantic schemas for purchases, the learner dashboard and refunds."""

from datetime import date, datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel, Field, field_validator


# ==============================================================================
# Requests
# ==============================================================================


class PurchaseRequest(BaseModel):
    """Purchase a course."""

    course_id: UUID = Field(..., description="Course to purchase")


class RefundRequestCreate(BaseModel):
    """Ask for a refund of a purchased course."""

    course_id: UUID = Field(..., description="Purchased course")
    message: str = Field(..., min_length=1, max_length=5000, description="Reason")

    @field_validator("message")
    @classmethod
    def validate_message(cls, v: str) -> str:
        v = v.strip()
        if not v:
            msg = "Message must not be blank"
            raise ValueError(msg)
        return v


# ==============================================================================
# Responses
# ==============================================================================


class PurchaseResponse(BaseModel):
    message: str = "Course purchased successfully"
    purchase_id: UUID
    course_id: UUID
    purchased_at: datetime


class DashboardCourse(BaseModel):
    """A purchased course annotated with refund eligibility."""

    course_id: UUID
    name: str
    image_url: str
    description: str
    purchased_at: datetime
    days_since_purchase: int
    is_refund_eligible: bool


class DashboardResponse(BaseModel):
    items: list[DashboardCourse]
    total: int


class LessonContent(BaseModel):
    """A lesson as seen by a purchaser; media fields are null while locked."""

    id: UUID
    title: str
    order_index: int
    is_released: bool
    release_date: date | None = None
    drip_days: int | None = None
    video_url: str | None = None
    description_text: str | None = None
    links: Any = None


class ModuleContent(BaseModel):
    id: UUID
    name: str
    order_index: int
    lessons: list[LessonContent]


class CourseSummary(BaseModel):
    id: UUID
    name: str


class CourseContentResponse(BaseModel):
    """Module/lesson tree of a purchased course."""

    course: CourseSummary
    purchased_at: datetime
    modules: list[ModuleContent]


class RefundRequestResponse(BaseModel):
    message: str = "Refund request submitted. The administrator has been notified."
    request_id: UUID
    status: str
