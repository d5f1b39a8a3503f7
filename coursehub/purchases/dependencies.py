"""FastAPI dependencies for purchases and refunds."""

from collections.abc import Callable
from typing import Annotated

from fastapi import Depends, HTTPException, status

from coursehub.core.logging import get_logger
from coursehub.courses.service import CatalogError
from coursehub.purchases.service import PurchaseError, PurchaseService


logger = get_logger(__name__)


# ==============================================================================
# Service Getter (set by main.py)
# ==============================================================================

_purchase_service_getter: Callable[[], PurchaseService] | None = None


def set_purchase_service_getter(getter: Callable[[], PurchaseService]) -> None:
    """Set the purchase service getter function."""
    global _purchase_service_getter  # noqa: PLW0603
    _purchase_service_getter = getter


def get_purchase_service() -> PurchaseService:
    """Get PurchaseService instance from app state."""
    if _purchase_service_getter is None:
        msg = "PurchaseService not configured"
        raise RuntimeError(msg)
    return _purchase_service_getter()


PurchaseServiceDep = Annotated[PurchaseService, Depends(get_purchase_service)]


# ==============================================================================
# Error Handling
# ==============================================================================


def handle_purchase_error(error: PurchaseError | CatalogError) -> HTTPException:
    """Convert purchase (and course lookup) errors to HTTPException."""
    status_map = {
        "course_not_found": status.HTTP_404_NOT_FOUND,
        "purchase_not_found": status.HTTP_404_NOT_FOUND,
        "already_purchased": status.HTTP_409_CONFLICT,
        "refund_pending": status.HTTP_409_CONFLICT,
        "purchase_required": status.HTTP_403_FORBIDDEN,
        "refund_window_expired": status.HTTP_403_FORBIDDEN,
        "notification_failed": status.HTTP_500_INTERNAL_SERVER_ERROR,
    }

    status_code = status_map.get(error.code, status.HTTP_400_BAD_REQUEST)
    if status_code >= status.HTTP_500_INTERNAL_SERVER_ERROR:
        logger.error("purchase_upstream_failure", code=error.code, error=error.message)

    return HTTPException(status_code=status_code, detail=error.message)
