"""Course catalog API endpoints.

Provides routes for:
- Public catalog: listing and course detail
- Admin: course creation (with cover upload), modules, lessons (with video)
"""

from decimal import Decimal
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, File, Form, HTTPException, UploadFile, status

from coursehub.auth.dependencies import AdminUser
from coursehub.courses.dependencies import CatalogServiceDep, handle_catalog_error
from coursehub.courses.models import INT32_MAX, INT32_MIN, MAX_DRIP_DAYS
from coursehub.courses.schemas import (
    CourseCreatedResponse,
    CourseListResponse,
    CourseResponse,
    CreateModuleRequest,
    LessonCreatedResponse,
    ModuleCreatedResponse,
)
from coursehub.courses.service import CatalogError
from coursehub.storage.service import StorageError


def _require_text(value: str, field: str) -> str:
    value = value.strip()
    if not value:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Field '{field}' is required",
        )
    return value


# ==============================================================================
# Public Catalog Router
# ==============================================================================

router_courses = APIRouter(prefix="/courses", tags=["courses"])


@router_courses.get(
    "",
    response_model=CourseListResponse,
    summary="List courses",
)
async def list_courses(catalog: CatalogServiceDep) -> CourseListResponse:
    """List every course in the catalog, newest first (public)."""
    courses = await catalog.list_courses()
    items = [CourseResponse.model_validate(c) for c in courses]
    return CourseListResponse(items=items, total=len(items))


@router_courses.get(
    "/{course_id}",
    response_model=CourseResponse,
    summary="Get course detail",
    responses={404: {"description": "Course not found"}},
)
async def get_course(course_id: UUID, catalog: CatalogServiceDep) -> CourseResponse:
    """Public course detail."""
    try:
        course = await catalog.require_course(course_id)
    except CatalogError as e:
        raise handle_catalog_error(e) from e
    return CourseResponse.model_validate(course)


# ==============================================================================
# Admin Router
# ==============================================================================

router_admin = APIRouter(prefix="/admin", tags=["admin"])


@router_admin.post(
    "/course",
    response_model=CourseCreatedResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create course",
    responses={
        400: {"description": "Missing fields or cover is not a PNG"},
        500: {"description": "Cover upload failed"},
    },
)
async def create_course(
    admin: AdminUser,
    catalog: CatalogServiceDep,
    name: Annotated[str, Form()],
    description: Annotated[str, Form()],
    price: Annotated[Decimal, Form(ge=0, max_digits=12)],
    image: Annotated[UploadFile, File(description="PNG cover image")],
) -> CourseCreatedResponse:
    """Create a course; the cover image is uploaded to storage first."""
    name = _require_text(name, "name")
    description = _require_text(description, "description")
    content = await image.read()
    if not content:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Field 'image' is required",
        )

    try:
        course = await catalog.create_course(
            name=name,
            description=description,
            price=price,
            image=content,
            image_content_type=image.content_type or "",
            image_filename=image.filename,
        )
    except (CatalogError, StorageError) as e:
        raise handle_catalog_error(e) from e

    return CourseCreatedResponse(course_id=course.id, image_url=course.image_url)


@router_admin.post(
    "/module",
    response_model=ModuleCreatedResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create module",
    responses={404: {"description": "Course not found"}},
)
async def create_module(
    data: CreateModuleRequest,
    admin: AdminUser,
    catalog: CatalogServiceDep,
) -> ModuleCreatedResponse:
    """Create a module under an existing course."""
    try:
        module = await catalog.create_module(
            course_id=data.course_id,
            name=_require_text(data.name, "name"),
            order_index=data.order_index,
        )
    except CatalogError as e:
        raise handle_catalog_error(e) from e
    return ModuleCreatedResponse(module_id=module.id)


@router_admin.post(
    "/lesson",
    response_model=LessonCreatedResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create lesson",
    responses={
        400: {"description": "Missing fields, invalid links or non-video upload"},
        404: {"description": "Module not found"},
        500: {"description": "Video upload failed"},
    },
)
async def create_lesson(
    admin: AdminUser,
    catalog: CatalogServiceDep,
    module_id: Annotated[UUID, Form()],
    title: Annotated[str, Form()],
    drip_days: Annotated[int, Form(ge=-MAX_DRIP_DAYS, le=MAX_DRIP_DAYS)],
    order_index: Annotated[int, Form(ge=INT32_MIN, le=INT32_MAX)],
    description_text: Annotated[str | None, Form()] = None,
    links_json: Annotated[str | None, Form()] = None,
    video: Annotated[UploadFile | None, File(description="Optional video")] = None,
) -> LessonCreatedResponse:
    """Create a lesson under an existing module.

    ``links_json`` must be a JSON document (typically a list of
    ``{label: url}`` objects); it is stored as given.
    """
    title = _require_text(title, "title")

    video_content: bytes | None = None
    if video is not None and video.filename:
        video_content = await video.read() or None

    try:
        lesson = await catalog.create_lesson(
            module_id=module_id,
            title=title,
            drip_days=drip_days,
            order_index=order_index,
            description_text=description_text,
            links_json=links_json,
            video=video_content,
            video_content_type=video.content_type if video is not None else None,
            video_filename=video.filename if video is not None else None,
        )
    except (CatalogError, StorageError) as e:
        raise handle_catalog_error(e) from e

    return LessonCreatedResponse(lesson_id=lesson.id, video_url=lesson.video_url)
