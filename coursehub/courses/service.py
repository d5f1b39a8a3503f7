"""Course catalog service layer.

Business logic for:
- Public course listing and detail
- Course creation with cover upload
- Module and lesson creation under an existing parent
- Reading the module/lesson tree in order_index order
"""

import json
from decimal import Decimal
from typing import TYPE_CHECKING
from uuid import UUID

from coursehub.core.logging import get_logger
from coursehub.courses.models import MAX_PRICE, Course, Lesson, Module


if TYPE_CHECKING:
    from cassandra.cluster import Session

    from coursehub.storage.service import FirebaseStorageService


logger = get_logger(__name__)


# ==============================================================================
# Custom Exceptions
# ==============================================================================


class CatalogError(Exception):
    """Base catalog error."""

    def __init__(self, message: str, code: str = "catalog_error"):
        self.message = message
        self.code = code
        super().__init__(message)


class CourseNotFoundError(CatalogError):
    """Course not found."""

    def __init__(self, message: str = "Course not found"):
        super().__init__(message, "course_not_found")


class ModuleNotFoundError(CatalogError):
    """Module not found."""

    def __init__(self, message: str = "Module not found"):
        super().__init__(message, "module_not_found")


class InvalidLinksError(CatalogError):
    """Lesson links are not valid JSON."""

    def __init__(self, message: str = "links_json must be valid JSON"):
        super().__init__(message, "invalid_links")


class InvalidPriceError(CatalogError):
    def __init__(
        self, message: str = f"Price must be between 0 and {MAX_PRICE}"
    ):
        super().__init__(message, "invalid_price")


# ==============================================================================
# Catalog Service
# ==============================================================================


class CatalogService:
    """Service for courses, modules and lessons."""

    def __init__(
        self,
        session: "Session",
        keyspace: str,
        storage_service: "FirebaseStorageService",
    ):
        """Initialize with Cassandra session and blob storage."""
        self.session = session
        self.keyspace = keyspace
        self.storage = storage_service
        self._prepare_statements()

    def _prepare_statements(self) -> None:
        """Prepare CQL statements."""
        # Courses
        self._list_courses = self.session.prepare(
            f"SELECT * FROM {self.keyspace}.courses"
        )
        self._get_course = self.session.prepare(
            f"SELECT * FROM {self.keyspace}.courses WHERE id = ?"
        )
        self._insert_course = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.courses
            (id, name, description, image_url, price, created_at)
            VALUES (?, ?, ?, ?, ?, ?)
        """)

        # Modules
        self._get_module = self.session.prepare(
            f"SELECT * FROM {self.keyspace}.modules WHERE id = ?"
        )
        self._insert_module = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.modules
            (id, course_id, name, order_index, created_at)
            VALUES (?, ?, ?, ?, ?)
        """)
        self._insert_module_by_course = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.modules_by_course
            (course_id, order_index, module_id, name, created_at)
            VALUES (?, ?, ?, ?, ?)
        """)
        self._list_modules_by_course = self.session.prepare(
            f"SELECT * FROM {self.keyspace}.modules_by_course WHERE course_id = ?"
        )

        # Lessons
        self._insert_lesson = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.lessons_by_module
            (module_id, order_index, lesson_id, title, video_url,
             description_text, links_json, drip_days, created_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
        """)
        self._list_lessons_by_module = self.session.prepare(
            f"SELECT * FROM {self.keyspace}.lessons_by_module WHERE module_id = ?"
        )

    # ==========================================================================
    # Courses
    # ==========================================================================

    async def list_courses(self) -> list[Course]:
        """List all courses, newest first."""
        rows = await self.session.aexecute(self._list_courses)
        courses = [Course.from_row(row) for row in rows]
        courses.sort(key=lambda c: c.created_at, reverse=True)
        return courses

    async def get_course(self, course_id: UUID) -> Course | None:
        result = await self.session.aexecute(self._get_course, [course_id])
        row = result.one()
        return Course.from_row(row) if row else None

    async def require_course(self, course_id: UUID) -> Course:
        """Get a course or raise CourseNotFoundError."""
        course = await self.get_course(course_id)
        if course is None:
            raise CourseNotFoundError
        return course

    async def create_course(
        self,
        name: str,
        description: str,
        price: Decimal,
        image: bytes,
        image_content_type: str,
        image_filename: str | None = None,
    ) -> Course:
        """Upload the cover image and create the course.

        Raises:
            InvalidPriceError: If price is negative or out of range
            StorageError: If the cover is rejected or the upload fails
        """
        if not price.is_finite() or price < 0 or price > MAX_PRICE:
            raise InvalidPriceError

        upload = await self.storage.upload_course_image(
            content=image,
            content_type=image_content_type,
            filename=image_filename,
        )

        course = Course(
            name=name.strip(),
            description=description.strip(),
            image_url=upload["file_url"],
            price=price,
        )
        await self.session.aexecute(
            self._insert_course,
            [
                course.id,
                course.name,
                course.description,
                course.image_url,
                course.price,
                course.created_at,
            ],
        )
        logger.info("course_created", course_id=str(course.id), price=str(course.price))
        return course

    # ==========================================================================
    # Modules
    # ==========================================================================

    async def get_module(self, module_id: UUID) -> Module | None:
        result = await self.session.aexecute(self._get_module, [module_id])
        row = result.one()
        return Module.from_row(row) if row else None

    async def create_module(
        self,
        course_id: UUID,
        name: str,
        order_index: int,
    ) -> Module:
        """Create a module under an existing course.

        Raises:
            CourseNotFoundError: If the course does not exist
        """
        await self.require_course(course_id)

        module = Module(course_id=course_id, name=name.strip(), order_index=order_index)
        await self.session.aexecute(
            self._insert_module,
            [
                module.id,
                module.course_id,
                module.name,
                module.order_index,
                module.created_at,
            ],
        )
        await self.session.aexecute(
            self._insert_module_by_course,
            [
                module.course_id,
                module.order_index,
                module.id,
                module.name,
                module.created_at,
            ],
        )
        logger.info(
            "module_created",
            module_id=str(module.id),
            course_id=str(course_id),
            order_index=order_index,
        )
        return module

    async def list_modules(self, course_id: UUID) -> list[Module]:
        """Modules of a course in order_index order."""
        rows = await self.session.aexecute(self._list_modules_by_course, [course_id])
        return [Module.from_row(row) for row in rows]

    # ==========================================================================
    # Lessons
    # ==========================================================================

    async def create_lesson(
        self,
        module_id: UUID,
        title: str,
        drip_days: int,
        order_index: int,
        description_text: str | None = None,
        links_json: str | None = None,
        video: bytes | None = None,
        video_content_type: str | None = None,
        video_filename: str | None = None,
    ) -> Lesson:
        """Create a lesson under an existing module.

        The optional video is uploaded only after the links and the parent
        module have been validated.

        Raises:
            InvalidLinksError: If links_json is not valid JSON
            ModuleNotFoundError: If the module does not exist
            StorageError: If the video is rejected or the upload fails
        """
        links_json = (links_json or "").strip() or None
        if links_json is not None:
            try:
                json.loads(links_json)
            except ValueError as e:
                raise InvalidLinksError from e

        if await self.get_module(module_id) is None:
            raise ModuleNotFoundError

        video_url = ""
        if video:
            upload = await self.storage.upload_lesson_video(
                content=video,
                content_type=video_content_type or "",
                filename=video_filename,
            )
            video_url = upload["file_url"]

        lesson = Lesson(
            module_id=module_id,
            title=title.strip(),
            drip_days=drip_days,
            order_index=order_index,
            video_url=video_url,
            description_text=description_text or None,
            links_json=links_json,
        )
        await self.session.aexecute(
            self._insert_lesson,
            [
                lesson.module_id,
                lesson.order_index,
                lesson.id,
                lesson.title,
                lesson.video_url,
                lesson.description_text,
                lesson.links_json,
                lesson.drip_days,
                lesson.created_at,
            ],
        )
        logger.info(
            "lesson_created",
            lesson_id=str(lesson.id),
            module_id=str(module_id),
            drip_days=drip_days,
            has_video=bool(video_url),
        )
        return lesson

    async def list_lessons(self, module_id: UUID) -> list[Lesson]:
        """Lessons of a module in order_index order."""
        rows = await self.session.aexecute(self._list_lessons_by_module, [module_id])
        return [Lesson.from_row(row) for row in rows]
