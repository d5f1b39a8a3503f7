"""CourseHub API - Main Application."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import ORJSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from coursehub.auth.router import router as auth_router
from coursehub.auth.router import set_auth_service_getter
from coursehub.auth.service import AuthService
from coursehub.config import get_settings
from coursehub.core.context import get_request_id
from coursehub.core.database import init_async_cassandra, shutdown_async_cassandra
from coursehub.core.logging import configure_structlog, get_logger
from coursehub.core.middleware import RequestContextMiddleware
from coursehub.courses.dependencies import set_catalog_service_getter
from coursehub.courses.router import router_admin, router_courses
from coursehub.courses.service import CatalogService
from coursehub.email.service import EmailService
from coursehub.health import router as health_router
from coursehub.purchases.dependencies import set_purchase_service_getter
from coursehub.purchases.router import router as user_router
from coursehub.purchases.service import PurchaseService
from coursehub.storage.dependencies import get_storage_service


# Configure logging early (before creating logger)
settings = get_settings()
configure_structlog(settings, log_dir=Path(settings.log_dir))

logger = get_logger(__name__)


# Application state for dependency injection
class AppState:
    """Application state container."""

    cassandra_session: Any = None
    auth_service: AuthService | None = None
    catalog_service: CatalogService | None = None
    purchase_service: PurchaseService | None = None
    email_service: EmailService | None = None


app_state = AppState()


def get_auth_service() -> AuthService:
    """Get AuthService instance from app state."""
    if app_state.auth_service is None:
        msg = "AuthService not initialized"
        raise RuntimeError(msg)
    return app_state.auth_service


def get_catalog_service() -> CatalogService:
    """Get CatalogService instance from app state."""
    if app_state.catalog_service is None:
        msg = "CatalogService not initialized"
        raise RuntimeError(msg)
    return app_state.catalog_service


def get_purchase_service() -> PurchaseService:
    """Get PurchaseService instance from app state."""
    if app_state.purchase_service is None:
        msg = "PurchaseService not initialized"
        raise RuntimeError(msg)
    return app_state.purchase_service


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager."""
    settings = get_settings()
    logger.info(
        "starting_application",
        app_name=settings.app_name,
        version=settings.app_version,
        environment=settings.environment,
    )

    # Email is independent of the database; refunds need it only to notify
    if settings.email_configured:
        try:
            app_state.email_service = EmailService(
                credentials_path=settings.email_credentials_path,
                sender_address=settings.email_sender_address,
                sender_name=settings.email_sender_name,
            )
            logger.info(
                "email_service_initialized",
                sender=settings.email_sender_address,
            )
        except Exception as e:
            logger.warning(
                "email_service_init_skipped",
                error=str(e),
                message="Running without email service",
            )
    else:
        logger.warning(
            "email_service_disabled",
            message="Refund notifications will not be sent",
        )

    try:
        app_state.cassandra_session = await init_async_cassandra()

        app_state.auth_service = AuthService(
            session=app_state.cassandra_session,
            keyspace=settings.cassandra_keyspace,
        )
        await app_state.auth_service.ensure_bootstrap_admin(
            settings.bootstrap_admin_username,
            settings.bootstrap_admin_password,
        )
        logger.info("auth_service_initialized")

        app_state.catalog_service = CatalogService(
            session=app_state.cassandra_session,
            keyspace=settings.cassandra_keyspace,
            storage_service=get_storage_service(settings),
        )
        logger.info("catalog_service_initialized")

        app_state.purchase_service = PurchaseService(
            session=app_state.cassandra_session,
            keyspace=settings.cassandra_keyspace,
            catalog_service=app_state.catalog_service,
            auth_service=app_state.auth_service,
            email_service=app_state.email_service,
            admin_email=settings.email_admin_address,
            refund_window_days=settings.refund_window_days,
        )
        logger.info(
            "purchase_service_initialized",
            notifications_enabled=app_state.email_service is not None,
        )
    except Exception as e:
        logger.warning(
            "database_init_skipped",
            error=str(e),
            message="Running without database connection",
        )

    yield

    logger.info("shutting_down_application")
    await shutdown_async_cassandra()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    # debug stays off so Starlette never renders tracebacks; the handlers
    # below log full details and return sanitized bodies.
    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description="Online course platform - API",
        debug=False,
        lifespan=lifespan,
        default_response_class=ORJSONResponse,
        docs_url="/docs" if settings.is_development else None,
        redoc_url="/redoc" if settings.is_development else None,
        openapi_url="/openapi.json" if settings.is_development else None,
    )

    # Request context middleware (must be added first - outermost)
    app.add_middleware(
        RequestContextMiddleware,
        log_requests=settings.log_requests,
        exclude_paths=settings.log_exclude_paths,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=settings.cors_allow_credentials,
        allow_methods=settings.cors_allow_methods,
        allow_headers=settings.cors_allow_headers,
        max_age=settings.cors_max_age,
    )

    def _get_request_id_safe(request: Request) -> str | None:
        """Get request_id from request state or context."""
        if hasattr(request.state, "request_id"):
            return request.state.request_id
        return get_request_id()

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(
        request: Request, exc: StarletteHTTPException
    ) -> ORJSONResponse:
        """Handle HTTP exceptions with safe error messages."""
        request_id = _get_request_id_safe(request)

        logger.warning(
            "http_exception",
            status_code=exc.status_code,
            detail=str(exc.detail),
            path=request.url.path,
            method=request.method,
        )

        return ORJSONResponse(
            status_code=exc.status_code,
            content={
                "error": True,
                "message": str(exc.detail)
                if exc.status_code < status.HTTP_500_INTERNAL_SERVER_ERROR
                else "Internal server error",
                "status_code": exc.status_code,
                "request_id": request_id,
            },
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(
        request: Request, exc: RequestValidationError
    ) -> ORJSONResponse:
        """Handle validation errors as 400 with field details."""
        request_id = _get_request_id_safe(request)

        logger.warning(
            "validation_error",
            errors=exc.errors(),
            path=request.url.path,
            method=request.method,
        )

        return ORJSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={
                "error": True,
                "message": "Validation error",
                "status_code": status.HTTP_400_BAD_REQUEST,
                "request_id": request_id,
                "details": [
                    {
                        "field": ".".join(str(loc) for loc in err.get("loc", [])),
                        "message": err.get("msg", "Invalid value"),
                    }
                    for err in exc.errors()
                ],
            },
        )

    @app.exception_handler(Exception)
    async def global_exception_handler(
        request: Request, exc: Exception
    ) -> ORJSONResponse:
        """Catch-all handler for unhandled exceptions.

        Details are logged internally; the client gets a generic message.
        """
        request_id = _get_request_id_safe(request)

        logger.exception(
            "unhandled_exception",
            error_type=type(exc).__name__,
            error_message=str(exc),
            path=request.url.path,
            method=request.method,
        )

        return ORJSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "error": True,
                "message": "An unexpected error occurred. Please try again later.",
                "status_code": 500,
                "request_id": request_id,
            },
        )

    app.include_router(health_router)
    app.include_router(auth_router)
    app.include_router(router_courses)
    app.include_router(router_admin)
    app.include_router(user_router)

    @app.get("/", include_in_schema=False)
    async def root(request: Request) -> dict[str, str]:
        """Root endpoint."""
        return {
            "message": "CourseHub API",
            "version": settings.app_version,
            "docs": f"{request.url}docs",
        }

    return app


set_auth_service_getter(get_auth_service)
set_catalog_service_getter(get_catalog_service)
set_purchase_service_getter(get_purchase_service)


app = create_app()
