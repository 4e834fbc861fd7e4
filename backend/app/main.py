"""FastAPI application entry point.

create_app() wires the onboarding and notification API:

- structlog configuration
- response headers for the JSON API
- CORS and rate limiting
- error envelope handlers
- /api/v1 routers, the /hubs/notifications WebSocket and /health
"""

from typing import Any

import structlog
from fastapi import FastAPI, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint

from app.api.v1.realtime import router as realtime_router
from app.api.v1.router import router as v1_router
from app.core.config import settings
from app.core.errors import APIError, InternalError
from app.core.logging import configure_logging
from app.core.rate_limiting import limiter, rate_limit_exceeded_handler
from app.core.responses import ErrorDetail, ErrorResponse

logger = structlog.get_logger()

API_PREFIX = "/api/v1"

# Every HTTP response is JSON; nothing here is meant to be framed or to load
# sub-resources.
_STATIC_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
    "Referrer-Policy": "no-referrer",
    "Content-Security-Policy": "default-src 'none'; frame-ancestors 'none'",
}


class ApiHeadersMiddleware(BaseHTTPMiddleware):
    """Add the JSON API's response headers.

    Drafts, profiles and notifications are per-user data, so responses
    under /api/v1 are never cached. HSTS is sent only in production, where
    TLS terminates at the proxy. WebSocket traffic (/hubs/notifications)
    does not pass through this middleware.
    """

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        response = await call_next(request)
        response.headers.update(_STATIC_HEADERS)
        if request.url.path.startswith(API_PREFIX):
            response.headers["Cache-Control"] = "no-store"
        if settings.environment == "production":
            response.headers["Strict-Transport-Security"] = (
                "max-age=31536000; includeSubDomains"
            )
        return response


def _envelope(error: APIError) -> JSONResponse:
    body = ErrorResponse(
        error=ErrorDetail(code=error.code, message=error.message, details=error.details)
    )
    return JSONResponse(status_code=error.status_code, content=body.model_dump())


def api_error_handler(_request: Request, exc: APIError) -> JSONResponse:
    return _envelope(exc)


def validation_error_handler(
    _request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Report malformed bodies and query params as 400 VALIDATION_ERROR.

    A body carrying a field the endpoint does not accept (``userId``, an
    unknown draft key) lands here too.
    """
    details: list[dict[str, Any]] = [
        {"loc": list(err["loc"]), "msg": err["msg"], "type": err["type"]}
        for err in exc.errors()
    ]
    return _envelope(
        APIError(
            code="VALIDATION_ERROR",
            message="Request validation failed",
            status_code=400,
            details=details,
        )
    )


def internal_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """Log the failure and answer with a generic 500 INTERNAL_ERROR."""
    logger.exception("Unhandled exception", exc_info=exc, path=request.url.path)
    return _envelope(InternalError())


def create_app() -> FastAPI:
    """Build the application.

    Returns:
        Configured FastAPI instance.
    """
    configure_logging(
        settings.log_level,
        json_output=settings.environment != "development",
    )

    app = FastAPI(
        title="Vertex Onboarding API",
        version="1.0.0",
        description="Professional profile onboarding and notifications",
    )

    # Last added runs first: CORS answers preflights before anything else.
    app.add_middleware(ApiHeadersMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "OPTIONS"],
        allow_headers=["Content-Type", "Accept", "Authorization"],
    )

    app.add_exception_handler(APIError, api_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)
    app.add_exception_handler(Exception, internal_error_handler)

    app.state.limiter = limiter

    app.include_router(v1_router, prefix=API_PREFIX)
    app.include_router(realtime_router)

    @app.get("/health")
    def health_check() -> dict[str, str]:
        return {"status": "healthy"}

    return app


# uvicorn app.main:app
app = create_app()
