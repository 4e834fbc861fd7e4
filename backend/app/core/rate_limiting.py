"""Rate limiting configuration using slowapi.

Security: Prevents abuse of write-heavy endpoints (every onboarding save
writes a draft row and a notification).

When auth is enabled, rate limiting keys on the JWT subject (per-user) to
prevent abuse from shared IP addresses. Unauthenticated requests fall back
to IP-based keying.

Usage in routers:
    from app.core.rate_limiting import limiter

    @router.post("/save")
    @limiter.limit(settings.rate_limit_onboarding)
    async def save_progress(request: Request, ...):
        ...
"""

from fastapi import Request, Response
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address
from starlette.responses import JSONResponse

from app.core.auth import InvalidTokenError, decode_access_token, extract_token
from app.core.config import settings


def _rate_limit_key_func(request: Request) -> str:
    """Get rate limit key from request.

    Key format:
    - Auth disabled: "{ip}" (local dev mode)
    - Auth enabled + valid JWT: "user:{sub}"
    - Auth enabled + no/invalid JWT: "unauth:{ip}"

    Args:
        request: The incoming request.

    Returns:
        Rate limit key string.
    """
    if not settings.auth_enabled:
        return get_remote_address(request)

    # Note: rate limiting only needs the sub claim for keying. Full auth
    # validation happens in deps.py.
    token = extract_token(request)
    if token:
        try:
            return f"user:{decode_access_token(token)}"
        except InvalidTokenError:
            pass

    return f"unauth:{get_remote_address(request)}"


# Global limiter instance
# Configured with in-memory storage (suitable for single-instance deployment)
# For multi-instance, configure Redis storage via RATELIMIT_STORAGE_URL
limiter = Limiter(
    key_func=_rate_limit_key_func,
    enabled=settings.rate_limit_enabled,
)


def rate_limit_exceeded_handler(
    _request: Request,
    exc: RateLimitExceeded,
) -> Response:
    """Handle rate limit exceeded errors.

    Security: Returns 429 Too Many Requests with standard error envelope.

    Args:
        request: The incoming request.
        exc: The rate limit exception.

    Returns:
        JSONResponse with 429 status and retry-after header.
    """
    # Parse retry-after from exception detail (e.g., "10 per 1 minute")
    # Fallback to 60 seconds if parsing fails
    try:
        retry_after = str(exc.detail.split()[-1])
        int(retry_after.rstrip("s"))
    except (ValueError, AttributeError, IndexError):
        retry_after = "60"

    return JSONResponse(
        status_code=429,
        content={
            "error": {
                "code": "RATE_LIMITED",
                "message": f"Rate limit exceeded: {exc.detail}",
            }
        },
        headers={"Retry-After": retry_after},
    )
