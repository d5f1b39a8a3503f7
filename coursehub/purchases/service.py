"""Purchase service layer.

Business logic for:
- Recording a purchase (one per user and course, enforced by Cassandra LWT)
- The learner dashboard with refund-eligibility annotations
- Drip-filtered course content for purchasers
- Refund requests and the administrator notification
"""

from datetime import UTC, datetime
from typing import TYPE_CHECKING
from uuid import UUID

from coursehub.core.logging import get_logger
from coursehub.purchases import policy
from coursehub.purchases.models import Purchase, RefundRequest, RefundStatus
from coursehub.purchases.schemas import (
    CourseContentResponse,
    CourseSummary,
    DashboardCourse,
    ModuleContent,
)


if TYPE_CHECKING:
    from cassandra.cluster import Session

    from coursehub.auth.service import AuthService
    from coursehub.courses.service import CatalogService
    from coursehub.email.service import EmailService


logger = get_logger(__name__)


# ==============================================================================
# Custom Exceptions
# ==============================================================================


class PurchaseError(Exception):
    """Base purchase error."""

    def __init__(self, message: str, code: str = "purchase_error"):
        self.message = message
        self.code = code
        super().__init__(message)


class AlreadyPurchasedError(PurchaseError):
    """The user already owns this course."""

    def __init__(self, message: str = "Course already purchased"):
        super().__init__(message, "already_purchased")


class PurchaseRequiredError(PurchaseError):
    """Content requested for a course the user never bought."""

    def __init__(self, message: str = "You have not purchased this course"):
        super().__init__(message, "purchase_required")


class PurchaseNotFoundError(PurchaseError):
    def __init__(self, message: str = "Purchase not found"):
        super().__init__(message, "purchase_not_found")


class RefundWindowExpiredError(PurchaseError):
    """Refund requested after the refund window closed."""

    def __init__(self, days_since_purchase: int, window_days: int):
        self.days_since_purchase = days_since_purchase
        super().__init__(
            f"Refund window expired: the course was purchased "
            f"{days_since_purchase} days ago (limit is {window_days} days)",
            "refund_window_expired",
        )


class PendingRefundExistsError(PurchaseError):
    def __init__(self, message: str = "A refund request is already pending"):
        super().__init__(message, "refund_pending")


class NotificationError(PurchaseError):
    """The administrator could not be notified."""

    def __init__(self, message: str = "Failed to notify the administrator"):
        super().__init__(message, "notification_failed")


# ==============================================================================
# Purchase Service
# ==============================================================================


class PurchaseService:
    """Service for purchases, course content access and refunds."""

    def __init__(
        self,
        session: "Session",
        keyspace: str,
        catalog_service: "CatalogService",
        auth_service: "AuthService",
        email_service: "EmailService | None" = None,
        admin_email: str | None = None,
        refund_window_days: int = policy.DEFAULT_REFUND_WINDOW_DAYS,
    ):
        """Initialize with Cassandra session and collaborating services.

        Args:
            session: Cassandra driver session (with aexecute support)
            keyspace: Keyspace name for queries
            catalog_service: Course/module/lesson reads
            auth_service: User lookup for refund notifications
            email_service: Gmail sender; None disables notifications
            admin_email: Recipient of refund notifications
            refund_window_days: Length of the refund window
        """
        self.session = session
        self.keyspace = keyspace
        self.catalog = catalog_service
        self.auth = auth_service
        self.email = email_service
        self.admin_email = admin_email
        self.refund_window_days = refund_window_days
        self._prepare_statements()

    def _prepare_statements(self) -> None:
        """Prepare CQL statements."""
        self._insert_purchase = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.purchases
            (user_id, course_id, purchase_id, purchased_at)
            VALUES (?, ?, ?, ?)
            IF NOT EXISTS
        """)
        self._get_purchase = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.purchases
            WHERE user_id = ? AND course_id = ?
        """)
        self._list_purchases = self.session.prepare(
            f"SELECT * FROM {self.keyspace}.purchases WHERE user_id = ?"
        )

        self._list_refund_requests = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.refund_requests
            WHERE user_id = ? AND course_id = ?
        """)
        self._insert_refund_request = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.refund_requests
            (user_id, course_id, requested_at, request_id, message, status)
            VALUES (?, ?, ?, ?, ?, ?)
        """)

    # ==========================================================================
    # Purchases
    # ==========================================================================

    async def get_purchase(self, user_id: UUID, course_id: UUID) -> Purchase | None:
        result = await self.session.aexecute(self._get_purchase, [user_id, course_id])
        row = result.one()
        return Purchase.from_row(row) if row else None

    async def purchase(self, user_id: UUID, course_id: UUID) -> Purchase:
        """Record a purchase of an existing course.

        Raises:
            CourseNotFoundError: If the course does not exist
            AlreadyPurchasedError: If the user already owns the course
        """
        await self.catalog.require_course(course_id)

        purchase = Purchase(user_id=user_id, course_id=course_id)
        result = await self.session.aexecute(
            self._insert_purchase,
            [
                purchase.user_id,
                purchase.course_id,
                purchase.purchase_id,
                purchase.purchased_at,
            ],
        )
        if not result.was_applied:
            logger.info(
                "purchase_rejected_duplicate",
                user_id=str(user_id),
                course_id=str(course_id),
            )
            raise AlreadyPurchasedError

        logger.info(
            "purchase_recorded",
            purchase_id=str(purchase.purchase_id),
            user_id=str(user_id),
            course_id=str(course_id),
        )
        return purchase

    async def dashboard(
        self,
        user_id: UUID,
        now: datetime | None = None,
    ) -> list[DashboardCourse]:
        """Purchased courses, newest purchase first, with refund annotations."""
        now = now or datetime.now(UTC)
        rows = await self.session.aexecute(self._list_purchases, [user_id])
        purchases = [Purchase.from_row(row) for row in rows]
        purchases.sort(key=lambda p: p.purchased_at, reverse=True)

        items = []
        for purchase in purchases:
            course = await self.catalog.get_course(purchase.course_id)
            if course is None:
                logger.warning(
                    "dashboard_course_missing",
                    user_id=str(user_id),
                    course_id=str(purchase.course_id),
                )
                continue
            items.append(
                DashboardCourse(
                    course_id=course.id,
                    name=course.name,
                    image_url=course.image_url,
                    description=course.description,
                    purchased_at=purchase.purchased_at,
                    days_since_purchase=policy.days_since_purchase(
                        purchase.purchased_at, now
                    ),
                    is_refund_eligible=policy.is_refund_eligible(
                        purchase.purchased_at, now, self.refund_window_days
                    ),
                )
            )
        return items

    async def course_content(
        self,
        user_id: UUID,
        course_id: UUID,
        now: datetime | None = None,
    ) -> CourseContentResponse:
        """Module/lesson tree of a purchased course, drip-filtered.

        Purchase is checked before the course itself, so an unpurchased
        course is a 403 whether or not it exists.

        Raises:
            PurchaseRequiredError: If the user has not bought the course
            CourseNotFoundError: If the course no longer exists
        """
        purchase = await self.get_purchase(user_id, course_id)
        if purchase is None:
            raise PurchaseRequiredError

        course = await self.catalog.require_course(course_id)

        modules = []
        for module in await self.catalog.list_modules(course_id):
            lessons = await self.catalog.list_lessons(module.id)
            modules.append(
                ModuleContent(
                    id=module.id,
                    name=module.name,
                    order_index=module.order_index,
                    lessons=[
                        policy.present_lesson(lesson, purchase.purchased_at, now)
                        for lesson in lessons
                    ],
                )
            )

        return CourseContentResponse(
            course=CourseSummary(id=course.id, name=course.name),
            purchased_at=purchase.purchased_at,
            modules=modules,
        )

    # ==========================================================================
    # Refunds
    # ==========================================================================

    async def list_refund_requests(
        self, user_id: UUID, course_id: UUID
    ) -> list[RefundRequest]:
        """Refund requests for a purchase, newest first."""
        rows = await self.session.aexecute(
            self._list_refund_requests, [user_id, course_id]
        )
        return [RefundRequest.from_row(row) for row in rows]

    async def request_refund(
        self,
        user_id: UUID,
        course_id: UUID,
        message: str,
        now: datetime | None = None,
    ) -> RefundRequest:
        """Persist a refund request and notify the administrator.

        The request row is kept even when the notification fails.

        Raises:
            PurchaseNotFoundError: If the user has not bought the course
            RefundWindowExpiredError: If the refund window has closed
            PendingRefundExistsError: If a pending request already exists
            NotificationError: If the notification email could not be sent
        """
        now = now or datetime.now(UTC)

        purchase = await self.get_purchase(user_id, course_id)
        if purchase is None:
            raise PurchaseNotFoundError

        if not policy.is_refund_eligible(
            purchase.purchased_at, now, self.refund_window_days
        ):
            raise RefundWindowExpiredError(
                policy.days_since_purchase(purchase.purchased_at, now),
                self.refund_window_days,
            )

        existing = await self.list_refund_requests(user_id, course_id)
        if any(r.is_pending for r in existing):
            raise PendingRefundExistsError

        refund = RefundRequest(
            user_id=user_id,
            course_id=course_id,
            message=message,
            status=RefundStatus.PENDING,
            requested_at=now,
        )
        await self.session.aexecute(
            self._insert_refund_request,
            [
                refund.user_id,
                refund.course_id,
                refund.requested_at,
                refund.request_id,
                refund.message,
                refund.status.value,
            ],
        )
        logger.info(
            "refund_requested",
            request_id=str(refund.request_id),
            user_id=str(user_id),
            course_id=str(course_id),
        )

        await self._notify_admin(refund)
        return refund

    async def _notify_admin(self, refund: RefundRequest) -> None:
        if self.email is None or not self.admin_email:
            logger.warning(
                "refund_notification_skipped",
                request_id=str(refund.request_id),
                reason="email not configured",
            )
            return

        user = await self.auth.get_user_by_id(refund.user_id)
        course = await self.catalog.get_course(refund.course_id)
        if user is None or course is None:
            logger.error(
                "refund_notification_context_missing",
                request_id=str(refund.request_id),
                user_found=user is not None,
                course_found=course is not None,
            )
            raise NotificationError

        result = await self.email.send_refund_notification(
            admin_address=self.admin_email,
            user_name=user.name,
            user_email=user.email,
            course_name=course.name,
            message=refund.message,
        )
        if not result.success:
            logger.error(
                "refund_notification_failed",
                request_id=str(refund.request_id),
                error=result.error,
            )
            raise NotificationError

        logger.info(
            "refund_notification_sent",
            request_id=str(refund.request_id),
            message_id=result.message_id,
        )
