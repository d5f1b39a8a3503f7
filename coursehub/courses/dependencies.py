"""FastAPI dependencies for the course catalog."""

from collections.abc import Callable
from typing import Annotated

from fastapi import Depends, HTTPException, status

from coursehub.core.logging import get_logger
from coursehub.courses.service import CatalogError, CatalogService
from coursehub.storage.service import StorageError


logger = get_logger(__name__)


# ==============================================================================
# Service Getter (set by main.py)
# ==============================================================================

_catalog_service_getter: Callable[[], CatalogService] | None = None


def set_catalog_service_getter(getter: Callable[[], CatalogService]) -> None:
    """Set the catalog service getter function."""
    global _catalog_service_getter  # noqa: PLW0603
    _catalog_service_getter = getter


def get_catalog_service() -> CatalogService:
    """Get CatalogService instance from app state."""
    if _catalog_service_getter is None:
        msg = "CatalogService not configured"
        raise RuntimeError(msg)
    return _catalog_service_getter()


CatalogServiceDep = Annotated[CatalogService, Depends(get_catalog_service)]


# ==============================================================================
# Error Handling
# ==============================================================================


def handle_catalog_error(error: CatalogError | StorageError) -> HTTPException:
    """Convert catalog and storage errors to HTTPException.

    Upload rejections caused by the client's file are 400s. Storage being
    unavailable or failing is logged and surfaced as a generic 500.
    """
    status_map = {
        "course_not_found": status.HTTP_404_NOT_FOUND,
        "module_not_found": status.HTTP_404_NOT_FOUND,
        "invalid_links": status.HTTP_400_BAD_REQUEST,
        "invalid_price": status.HTTP_400_BAD_REQUEST,
        "invalid_content_type": status.HTTP_400_BAD_REQUEST,
        "validation_error": status.HTTP_400_BAD_REQUEST,
        "file_too_large": status.HTTP_400_BAD_REQUEST,
        "storage_not_configured": status.HTTP_500_INTERNAL_SERVER_ERROR,
        "upload_error": status.HTTP_500_INTERNAL_SERVER_ERROR,
    }

    status_code = status_map.get(error.code, status.HTTP_400_BAD_REQUEST)
    if status_code >= status.HTTP_500_INTERNAL_SERVER_ERROR:
        logger.error("catalog_upstream_failure", code=error.code, error=error.message)

    return HTTPException(status_code=status_code, detail=error.message)
