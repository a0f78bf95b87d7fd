"""
patchguard - FastAPI Application Entry Point.

Profile service whose write endpoints accept client payloads only through
allowlist projection.
"""
import uuid
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from patchguard.api.health import router as health_router
from patchguard.api.profiles import router as profiles_router
from patchguard.core.config import get_settings
from patchguard.core.logging import get_safe_logger, setup_logging
from patchguard.core.metrics import get_metrics_collector
from patchguard.schemas.response import ErrorDetail, ErrorResponse, ResponseMetadata
from patchguard.services.exceptions import ProfileError
from patchguard.services.profile_store import ProfileStore, seed_demo_workspace


# Initialize logging first
setup_logging()
logger = get_safe_logger(__name__)

SERVICE_VERSION = "0.1.0"


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Application lifespan handler.
    Seeds the demo workspace when configured.
    """
    settings = get_settings()
    logger.info("Starting patchguard service")

    if settings.seed_demo_workspace:
        seed_demo_workspace(ProfileStore.get_instance(), admin_id=settings.dev_uid)
        logger.info("Demo workspace seeded")

    yield

    logger.info("Shutting down patchguard service")


def _request_id(request: Request) -> str:
    return request.headers.get("X-Request-ID", str(uuid.uuid4()))


def _error_response(
    request_id: str,
    status_code: int,
    code: str,
    message: str,
    retryable: bool = False,
) -> JSONResponse:
    get_metrics_collector().record_error(code)
    error_response = ErrorResponse(
        success=False,
        error=ErrorDetail(code=code, message=message, retryable=retryable),
        metadata=ResponseMetadata(requestId=request_id),
    )
    return JSONResponse(
        status_code=status_code,
        content=error_response.model_dump(by_alias=True)
    )


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title="patchguard",
        description="Profile service with allowlist projection of client payloads",
        version=SERVICE_VERSION,
        docs_url="/docs" if settings.service_env == "dev" else None,
        redoc_url="/redoc" if settings.service_env == "dev" else None,
        openapi_url="/openapi.json" if settings.service_env == "dev" else None,
        lifespan=lifespan
    )

    app.include_router(health_router)
    app.include_router(profiles_router)

    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(ProfileError, profile_exception_handler)
    app.add_exception_handler(Exception, generic_exception_handler)

    return app


async def validation_exception_handler(
    request: Request,
    exc: RequestValidationError
) -> JSONResponse:
    """
    Handle Pydantic validation errors.
    PII-safe: validation details may echo request values, so they are dropped.
    """
    request_id = _request_id(request)
    logger.error(
        "Request validation failed",
        error_code="BAD_REQUEST",
        request_id=request_id,
        status_code=400
    )
    return _error_response(
        request_id,
        status.HTTP_400_BAD_REQUEST,
        "BAD_REQUEST",
        "Invalid request format",
    )


async def http_exception_handler(
    request: Request,
    exc: HTTPException
) -> JSONResponse:
    """
    Handle HTTP exceptions (including auth errors).
    """
    request_id = _request_id(request)

    if exc.status_code == 401:
        error_code = "UNAUTHORIZED"
    elif exc.status_code == 403:
        error_code = "FORBIDDEN"
    elif exc.status_code == 404:
        error_code = "NOT_FOUND"
    elif exc.status_code < 500:
        error_code = "BAD_REQUEST"
    else:
        error_code = "INTERNAL_ERROR"

    logger.error(
        "HTTP exception",
        error_code=error_code,
        request_id=request_id,
        status_code=exc.status_code
    )
    return _error_response(
        request_id,
        exc.status_code,
        error_code,
        exc.detail if isinstance(exc.detail, str) else "Request failed",
        retryable=exc.status_code >= 500,
    )


async def profile_exception_handler(
    request: Request,
    exc: ProfileError
) -> JSONResponse:
    """
    Handle profile service errors.
    Messages are PII-safe by construction.
    """
    request_id = _request_id(request)
    logger.error(
        "Profile request rejected",
        error_code=exc.error_code.value,
        request_id=request_id,
        status_code=exc.status_code
    )
    return _error_response(
        request_id,
        exc.status_code,
        exc.error_code.value,
        exc.message,
    )


async def generic_exception_handler(
    request: Request,
    exc: Exception
) -> JSONResponse:
    """
    Handle unexpected exceptions.
    PII-safe: Never log exception details.
    """
    request_id = _request_id(request)
    logger.error(
        "Unexpected error",
        error_code="INTERNAL_ERROR",
        request_id=request_id,
        status_code=500,
        exception_class=type(exc).__name__
    )
    return _error_response(
        request_id,
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        "INTERNAL_ERROR",
        "Internal server error",
        retryable=True,
    )


# Create the application instance
app = create_app()


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "patchguard.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.service_env == "dev"
    )
