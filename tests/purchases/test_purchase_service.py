"""Tests for PurchaseService against a mocked Cassandra session."""

from datetime import UTC, datetime, timedelta
from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock
from uuid import uuid4

import pytest

from coursehub.auth.models import User
from coursehub.auth.service import AuthService
from coursehub.courses.models import Course, Lesson, Module
from coursehub.courses.service import CatalogService, CourseNotFoundError
from coursehub.email.schemas import SendEmailResponse
from coursehub.email.service import EmailService
from coursehub.purchases.models import RefundStatus
from coursehub.purchases.policy import LOCKED_LESSON_PLACEHOLDER
from coursehub.purchases.service import (
    AlreadyPurchasedError,
    NotificationError,
    PendingRefundExistsError,
    PurchaseNotFoundError,
    PurchaseRequiredError,
    PurchaseService,
    RefundWindowExpiredError,
)


NOW = datetime(2024, 5, 20, 12, 0, tzinfo=UTC)


# ==============================================================================
# Fixtures
# ==============================================================================


@pytest.fixture
def course() -> Course:
    return Course(
        name="Python 101",
        description="Basics",
        image_url="https://cdn.example.com/c.png",
        price=Decimal("49.90"),
    )


@pytest.fixture
def learner() -> User:
    return User(name="Ana Souza", email="ana@example.com", password_hash="x")


@pytest.fixture
def catalog(course) -> MagicMock:
    catalog = MagicMock(spec=CatalogService)
    catalog.require_course = AsyncMock(return_value=course)
    catalog.get_course = AsyncMock(return_value=course)
    catalog.list_modules = AsyncMock(return_value=[])
    catalog.list_lessons = AsyncMock(return_value=[])
    return catalog


@pytest.fixture
def auth(learner) -> MagicMock:
    auth = MagicMock(spec=AuthService)
    auth.get_user_by_id = AsyncMock(return_value=learner)
    return auth


@pytest.fixture
def email() -> MagicMock:
    email = MagicMock(spec=EmailService)
    email.send_refund_notification = AsyncMock(
        return_value=SendEmailResponse(success=True, message_id="msg-1")
    )
    return email


@pytest.fixture
def service(mock_session, catalog, auth, email) -> PurchaseService:
    return PurchaseService(
        session=mock_session,
        keyspace="coursehub_test",
        catalog_service=catalog,
        auth_service=auth,
        email_service=email,
        admin_email="admin@example.com",
    )


@pytest.fixture
def route(mock_session, make_result):
    """Route aexecute calls by prepared statement; unrouted calls succeed."""

    def _route(responses: dict) -> None:
        async def _aexecute(statement, params=None):
            return responses.get(statement, make_result())

        mock_session.aexecute.side_effect = _aexecute

    return _route


@pytest.fixture
def purchase_row(row):
    def _make(user_id, course_id, purchased_at):
        return row(
            user_id=user_id,
            course_id=course_id,
            purchase_id=uuid4(),
            purchased_at=purchased_at,
        )

    return _make


def executed(mock_session, statement) -> list:
    """Params of every execution of a given prepared statement."""
    return [
        c.args[1] if len(c.args) > 1 else None
        for c in mock_session.aexecute.call_args_list
        if c.args[0] == statement
    ]


# ==============================================================================
# Purchases
# ==============================================================================


class TestPurchase:
    @pytest.mark.asyncio
    async def test_purchase_uses_lightweight_transaction(
        self, service, mock_session, course
    ) -> None:
        user_id = uuid4()

        purchase = await service.purchase(user_id, course.id)

        assert "IF NOT EXISTS" in service._insert_purchase
        params = executed(mock_session, service._insert_purchase)[0]
        assert params[:3] == [user_id, course.id, purchase.purchase_id]
        assert purchase.purchased_at.tzinfo is not None

    @pytest.mark.asyncio
    async def test_duplicate_purchase_is_conflict(
        self, service, route, make_result, course
    ) -> None:
        route({service._insert_purchase: make_result(was_applied=False)})

        with pytest.raises(AlreadyPurchasedError) as exc_info:
            await service.purchase(uuid4(), course.id)

        assert exc_info.value.code == "already_purchased"

    @pytest.mark.asyncio
    async def test_second_purchase_never_writes_a_second_row(
        self, service, make_result, course, mock_session
    ) -> None:
        applied = iter([make_result(was_applied=True), make_result(was_applied=False)])

        async def _aexecute(statement, params=None):
            return next(applied)

        mock_session.aexecute.side_effect = _aexecute
        user_id = uuid4()

        await service.purchase(user_id, course.id)
        with pytest.raises(AlreadyPurchasedError):
            await service.purchase(user_id, course.id)

        # Both attempts went through the conditional insert only
        assert len(executed(mock_session, service._insert_purchase)) == 2
        assert mock_session.aexecute.await_count == 2

    @pytest.mark.asyncio
    async def test_unknown_course(self, service, catalog, mock_session) -> None:
        catalog.require_course.side_effect = CourseNotFoundError()

        with pytest.raises(CourseNotFoundError):
            await service.purchase(uuid4(), uuid4())

        mock_session.aexecute.assert_not_awaited()


# ==============================================================================
# Dashboard
# ==============================================================================


class TestDashboard:
    @pytest.mark.asyncio
    async def test_newest_first_with_refund_annotation(
        self, service, route, make_result, purchase_row, catalog
    ) -> None:
        user_id = uuid4()
        recent = Course(name="Recent", description="", image_url="", price=Decimal(1))
        old = Course(name="Old", description="", image_url="", price=Decimal(1))
        catalog.get_course.side_effect = lambda cid: {
            recent.id: recent,
            old.id: old,
        }[cid]
        route(
            {
                service._list_purchases: make_result(
                    [
                        purchase_row(user_id, old.id, NOW - timedelta(days=30)),
                        purchase_row(user_id, recent.id, NOW - timedelta(hours=5)),
                    ]
                )
            }
        )

        items = await service.dashboard(user_id, now=NOW)

        assert [i.name for i in items] == ["Recent", "Old"]
        assert items[0].days_since_purchase == 1
        assert items[0].is_refund_eligible is True
        assert items[1].days_since_purchase == 30
        assert items[1].is_refund_eligible is False

    @pytest.mark.asyncio
    async def test_skips_deleted_courses(
        self, service, route, make_result, purchase_row, catalog
    ) -> None:
        user_id = uuid4()
        catalog.get_course.return_value = None
        route(
            {
                service._list_purchases: make_result(
                    [purchase_row(user_id, uuid4(), NOW)]
                )
            }
        )

        assert await service.dashboard(user_id, now=NOW) == []

    @pytest.mark.asyncio
    async def test_empty(self, service) -> None:
        assert await service.dashboard(uuid4(), now=NOW) == []


# ==============================================================================
# Course content
# ==============================================================================


class TestCourseContent:
    @pytest.mark.asyncio
    async def test_unpurchased_course_is_forbidden(
        self, service, catalog
    ) -> None:
        with pytest.raises(PurchaseRequiredError) as exc_info:
            await service.course_content(uuid4(), uuid4(), now=NOW)

        assert exc_info.value.code == "purchase_required"
        # Purchase is checked before the course is looked up
        catalog.require_course.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_purchased_but_deleted_course(
        self, service, route, make_result, purchase_row, catalog
    ) -> None:
        user_id, course_id = uuid4(), uuid4()
        route(
            {
                service._get_purchase: make_result(
                    [purchase_row(user_id, course_id, NOW)]
                )
            }
        )
        catalog.require_course.side_effect = CourseNotFoundError()

        with pytest.raises(CourseNotFoundError):
            await service.course_content(user_id, course_id, now=NOW)

    @pytest.mark.asyncio
    async def test_tree_is_drip_filtered(
        self, service, route, make_result, purchase_row, catalog, course
    ) -> None:
        user_id = uuid4()
        purchased_at = NOW - timedelta(days=2)
        route(
            {
                service._get_purchase: make_result(
                    [purchase_row(user_id, course.id, purchased_at)]
                )
            }
        )
        module = Module(course_id=course.id, name="Intro", order_index=0)
        open_lesson = Lesson(
            module_id=module.id,
            title="Welcome",
            drip_days=0,
            order_index=0,
            video_url="https://cdn.example.com/welcome.mp4",
            links_json='{"slides": "https://example.com/s"}',
        )
        locked_lesson = Lesson(
            module_id=module.id,
            title="Generators",
            drip_days=3,
            order_index=1,
            video_url="https://cdn.example.com/gen.mp4",
        )
        catalog.list_modules.return_value = [module]
        catalog.list_lessons.return_value = [open_lesson, locked_lesson]

        content = await service.course_content(user_id, course.id, now=NOW)

        assert content.course.id == course.id
        assert content.course.name == "Python 101"
        lessons = content.modules[0].lessons
        assert lessons[0].is_released is True
        assert lessons[0].links == {"slides": "https://example.com/s"}
        assert lessons[1].is_released is False
        assert lessons[1].video_url is None
        assert lessons[1].description_text == LOCKED_LESSON_PLACEHOLDER
        assert lessons[1].release_date == (purchased_at + timedelta(days=3)).date()


# ==============================================================================
# Refunds
# ==============================================================================


class TestRequestRefund:
    @pytest.fixture
    def purchased(self, service, route, make_result, purchase_row, course):
        """Route a purchase made ``age`` ago plus existing refund requests."""

        def _purchased(user_id, age: timedelta, refunds=()):
            route(
                {
                    service._get_purchase: make_result(
                        [purchase_row(user_id, course.id, NOW - age)]
                    ),
                    service._list_refund_requests: make_result(list(refunds)),
                }
            )

        return _purchased

    @pytest.mark.asyncio
    async def test_refund_persisted_and_admin_notified(
        self, service, purchased, mock_session, email, course
    ) -> None:
        user_id = uuid4()
        purchased(user_id, timedelta(days=2))

        refund = await service.request_refund(
            user_id, course.id, "Not what I expected", now=NOW
        )

        assert refund.status is RefundStatus.PENDING
        params = executed(mock_session, service._insert_refund_request)[0]
        assert params == [
            user_id,
            course.id,
            NOW,
            refund.request_id,
            "Not what I expected",
            "pending",
        ]
        kwargs = email.send_refund_notification.call_args.kwargs
        assert kwargs["admin_address"] == "admin@example.com"
        assert kwargs["user_email"] == "ana@example.com"
        assert kwargs["course_name"] == "Python 101"
        assert kwargs["message"] == "Not what I expected"

    @pytest.mark.asyncio
    async def test_no_purchase(self, service, mock_session, email) -> None:
        with pytest.raises(PurchaseNotFoundError):
            await service.request_refund(uuid4(), uuid4(), "please", now=NOW)

        email.send_refund_notification.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_window_expired(
        self, service, purchased, mock_session, course
    ) -> None:
        user_id = uuid4()
        purchased(user_id, timedelta(days=7, seconds=1))

        with pytest.raises(RefundWindowExpiredError) as exc_info:
            await service.request_refund(user_id, course.id, "please", now=NOW)

        assert exc_info.value.days_since_purchase == 8
        assert "8 days" in exc_info.value.message
        assert executed(mock_session, service._insert_refund_request) == []

    @pytest.mark.asyncio
    async def test_pending_request_blocks_new_one(
        self, service, purchased, row, mock_session, course
    ) -> None:
        user_id = uuid4()
        pending = row(
            user_id=user_id,
            course_id=course.id,
            requested_at=NOW - timedelta(days=1),
            request_id=uuid4(),
            message="first",
            status="pending",
        )
        purchased(user_id, timedelta(days=2), refunds=[pending])

        with pytest.raises(PendingRefundExistsError):
            await service.request_refund(user_id, course.id, "again", now=NOW)

        assert executed(mock_session, service._insert_refund_request) == []

    @pytest.mark.asyncio
    async def test_rejected_request_allows_new_one(
        self, service, purchased, row, course
    ) -> None:
        user_id = uuid4()
        rejected = row(
            user_id=user_id,
            course_id=course.id,
            requested_at=NOW - timedelta(days=1),
            request_id=uuid4(),
            message="first",
            status="rejected",
        )
        purchased(user_id, timedelta(days=2), refunds=[rejected])

        refund = await service.request_refund(user_id, course.id, "again", now=NOW)

        assert refund.is_pending

    @pytest.mark.asyncio
    async def test_notification_failure_keeps_request(
        self, service, purchased, mock_session, email, course
    ) -> None:
        user_id = uuid4()
        purchased(user_id, timedelta(days=1))
        email.send_refund_notification.return_value = SendEmailResponse(
            success=False, error="Gmail API error: 503"
        )

        with pytest.raises(NotificationError):
            await service.request_refund(user_id, course.id, "please", now=NOW)

        assert len(executed(mock_session, service._insert_refund_request)) == 1

    @pytest.mark.asyncio
    async def test_email_disabled_skips_notification(
        self, mock_session, catalog, auth, purchase_row, make_result, course
    ) -> None:
        service = PurchaseService(
            session=mock_session,
            keyspace="coursehub_test",
            catalog_service=catalog,
            auth_service=auth,
        )
        user_id = uuid4()

        async def _aexecute(statement, params=None):
            if statement == service._list_refund_requests:
                return make_result()
            return make_result(
                [purchase_row(user_id, course.id, NOW - timedelta(hours=1))]
            )

        mock_session.aexecute.side_effect = _aexecute

        refund = await service.request_refund(user_id, course.id, "please", now=NOW)

        assert refund.is_pending
        auth.get_user_by_id.assert_not_awaited()
