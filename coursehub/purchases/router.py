"""Learner API endpoints.

Provides routes for:
- Purchasing a course
- Dashboard of purchased courses
- Drip-filtered course content
- Refund requests
"""

from uuid import UUID

from fastapi import APIRouter, status

from coursehub.auth.dependencies import CurrentUser
from coursehub.courses.service import CatalogError
from coursehub.purchases.dependencies import PurchaseServiceDep, handle_purchase_error
from coursehub.purchases.schemas import (
    CourseContentResponse,
    DashboardResponse,
    PurchaseRequest,
    PurchaseResponse,
    RefundRequestCreate,
    RefundRequestResponse,
)
from coursehub.purchases.service import PurchaseError


router = APIRouter(prefix="/user", tags=["user"])


@router.post(
    "/purchase",
    response_model=PurchaseResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Purchase a course",
    responses={
        404: {"description": "Course not found"},
        409: {"description": "Course already purchased"},
    },
)
async def purchase_course(
    data: PurchaseRequest,
    user: CurrentUser,
    purchases: PurchaseServiceDep,
) -> PurchaseResponse:
    try:
        purchase = await purchases.purchase(user.id, data.course_id)
    except (PurchaseError, CatalogError) as e:
        raise handle_purchase_error(e) from e

    return PurchaseResponse(
        purchase_id=purchase.purchase_id,
        course_id=purchase.course_id,
        purchased_at=purchase.purchased_at,
    )


@router.get(
    "/dashboard",
    response_model=DashboardResponse,
    summary="Purchased courses",
)
async def dashboard(
    user: CurrentUser,
    purchases: PurchaseServiceDep,
) -> DashboardResponse:
    """Purchased courses, newest first, annotated with refund eligibility."""
    items = await purchases.dashboard(user.id)
    return DashboardResponse(items=items, total=len(items))


@router.get(
    "/course/{course_id}/content",
    response_model=CourseContentResponse,
    summary="Course content",
    responses={
        403: {"description": "Course not purchased"},
        404: {"description": "Course not found"},
    },
)
async def course_content(
    course_id: UUID,
    user: CurrentUser,
    purchases: PurchaseServiceDep,
) -> CourseContentResponse:
    """Module and lesson tree; lessons not yet released are redacted."""
    try:
        return await purchases.course_content(user.id, course_id)
    except (PurchaseError, CatalogError) as e:
        raise handle_purchase_error(e) from e


@router.post(
    "/refund",
    response_model=RefundRequestResponse,
    summary="Request a refund",
    responses={
        403: {"description": "Refund window expired"},
        404: {"description": "Purchase not found"},
        409: {"description": "Refund request already pending"},
    },
)
async def request_refund(
    data: RefundRequestCreate,
    user: CurrentUser,
    purchases: PurchaseServiceDep,
) -> RefundRequestResponse:
    """Submit a refund request and notify the administrator by email."""
    try:
        refund = await purchases.request_refund(user.id, data.course_id, data.message)
    except PurchaseError as e:
        raise handle_purchase_error(e) from e

    return RefundRequestResponse(
        request_id=refund.request_id,
        status=refund.status.value,
    )
