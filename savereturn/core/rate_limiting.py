"""Rate limiting configuration using slowapi.

Security: Throttles token confirmation so a client cannot walk the token
space. Keys on the client IP; behind a proxy, run uvicorn with
``--proxy-headers`` so the forwarded address is used.

Usage in routers:
    from savereturn.core.rate_limiting import limiter

    @router.post("/email/confirm")
    @limiter.limit(settings.rate_limit_confirm)
    async def confirm_email(request: Request, ...):
        ...
"""

from fastapi import Request, Response
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address
from starlette.responses import JSONResponse

from savereturn.core.config import settings
from savereturn.core.responses import ErrorResponse

# Global limiter instance
# In-memory storage (single instance). For several replicas, configure Redis
# storage via RATELIMIT_STORAGE_URL.
limiter = Limiter(
    key_func=get_remote_address,
    enabled=settings.rate_limit_enabled,
)


def rate_limit_exceeded_handler(
    _request: Request,
    exc: RateLimitExceeded,
) -> Response:
    """Handle rate limit exceeded errors.

    Returns 429 Too Many Requests with the standard error body.

    Args:
        request: The incoming request.
        exc: The rate limit exception.

    Returns:
        JSONResponse with 429 status and retry-after header.
    """
    # Window length of the exceeded limit, e.g. 60 for "10/minute"
    try:
        retry_after = str(exc.limit.limit.get_expiry())
    except AttributeError:
        retry_after = "60"

    return JSONResponse(
        status_code=429,
        content=ErrorResponse(code=429, name="rate.limited").model_dump(),
        headers={"Retry-After": retry_after},
    )
