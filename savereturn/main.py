"""FastAPI application entry point.

This module creates and configures the FastAPI application, including:
- Exception handlers rendering every error as {"code", "name"}
- Publisher routers (save progress, email tokens, legacy save-return)
- Health and readiness endpoints
"""

import logging

import structlog
from fastapi import FastAPI, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse
from slowapi.errors import RateLimitExceeded
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint

from savereturn.api.v1.router import router as v1_router
from savereturn.core.config import settings
from savereturn.core.errors import APIError, InternalError, InvalidRequestError
from savereturn.core.rate_limiting import limiter, rate_limit_exceeded_handler
from savereturn.core.responses import ErrorResponse

logger = structlog.get_logger()


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Middleware to add security headers to all responses.

    Headers added:
    - X-Content-Type-Options: Prevents MIME sniffing
    - Cache-Control: Responses carry encrypted user data and must not be cached
    - Content-Security-Policy: Restricts resource loading (API returns no HTML)
    - Strict-Transport-Security: Forces HTTPS (production only)
    """

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        """Add security headers to response."""
        response = await call_next(request)

        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["Cache-Control"] = "no-store, max-age=0"
        response.headers["Content-Security-Policy"] = (
            "default-src 'none'; frame-ancestors 'none'"
        )

        # HSTS only in production (assumes HTTPS via reverse proxy)
        if settings.environment == "production":
            response.headers["Strict-Transport-Security"] = (
                "max-age=31536000; includeSubDomains"
            )

        return response


def _error_response(error: APIError) -> JSONResponse:
    return JSONResponse(
        status_code=error.status_code,
        content=ErrorResponse(code=error.status_code, name=error.name).model_dump(),
    )


def api_error_handler(request: Request, exc: APIError) -> JSONResponse:
    """Handle custom API errors.

    Args:
        request: The incoming request.
        exc: The APIError that was raised.

    Returns:
        JSONResponse with {"code", "name"} and the error's status code.
    """
    logger.info(
        "API error",
        name=exc.name,
        status_code=exc.status_code,
        path=str(request.url.path),
    )
    return _error_response(exc)


def validation_error_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Handle Pydantic validation errors from FastAPI.

    Field-level details are logged, not returned: publishers only branch on
    the error name.

    Args:
        request: The incoming request.
        exc: The RequestValidationError from Pydantic.

    Returns:
        JSONResponse with 400 invalid.request.
    """
    logger.info(
        "Request validation failed",
        path=str(request.url.path),
        errors=[{"loc": list(e["loc"]), "type": e["type"]} for e in exc.errors()],
    )
    return _error_response(InvalidRequestError())


def internal_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all for unhandled exceptions.

    Returns 500 internal.error without exposing stack traces.

    Args:
        request: The incoming request.
        exc: The unhandled exception.

    Returns:
        JSONResponse with generic error body (500).
    """
    logger.exception("Unhandled exception", exc_info=exc, path=str(request.url.path))
    return _error_response(InternalError())


def create_app() -> FastAPI:
    """Create and configure the FastAPI application.

    WHY FACTORY FUNCTION:
    - Enables testing with different configurations
    - Clear separation between app creation and startup

    Returns:
        Configured FastAPI application instance.
    """
    logging.basicConfig(level=settings.log_level)

    app = FastAPI(
        title="Save and Return API",
        version="1.0.0",
        description="Saved form progress and email confirmation tokens",
    )

    # Middleware order: Starlette uses LIFO, so the LAST added runs FIRST.
    # CORS must run first to handle preflight requests, so add it last.
    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_credentials=False,
        allow_methods=["GET", "POST", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", "Accept", settings.service_token_header],
    )

    # Order matters: specific handlers first, then catch-all
    app.add_exception_handler(APIError, api_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)
    app.add_exception_handler(Exception, internal_error_handler)

    app.state.limiter = limiter

    app.include_router(v1_router)

    # Health checks stay outside the authenticated router
    @app.get("/health", response_class=PlainTextResponse)
    def health_check() -> str:
        """Liveness check."""
        return "healthy"

    @app.get("/readiness", response_class=PlainTextResponse)
    def readiness_check() -> str:
        """Readiness check."""
        return "ready"

    return app


# Create the application instance
# Used by uvicorn: uvicorn savereturn.main:app
app = create_app()
