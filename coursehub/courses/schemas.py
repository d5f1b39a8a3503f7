"""Pydantic schemas for the course catalog.

Request and response models for:
- Public catalog listing and detail
- Admin creation of courses, modules and lessons
"""

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from coursehub.courses.models import INT32_MAX, INT32_MIN


# ==============================================================================
# Course Schemas
# ==============================================================================


class CourseResponse(BaseModel):
    """Public course view."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: str
    description: str
    image_url: str
    price: Decimal
    created_at: datetime


class CourseListResponse(BaseModel):
    """Catalog listing."""

    items: list[CourseResponse]
    total: int


class CourseCreatedResponse(BaseModel):
    message: str = "Course created successfully"
    course_id: UUID
    image_url: str


# ==============================================================================
# Module Schemas
# ==============================================================================


class CreateModuleRequest(BaseModel):
    """Module creation request."""

    course_id: UUID = Field(..., description="Owning course")
    name: str = Field(..., min_length=1, max_length=200, description="Module name")
    order_index: int = Field(
        ..., ge=INT32_MIN, le=INT32_MAX, description="Position within the course"
    )


class ModuleCreatedResponse(BaseModel):
    message: str = "Module created successfully"
    module_id: UUID


# ==============================================================================
# Lesson Schemas
# ==============================================================================


class LessonCreatedResponse(BaseModel):
    message: str = "Lesson created successfully"
    lesson_id: UUID
    video_url: str
