"""Shared dependencies for API endpoints.

Database session injection and service token authentication.

WHY DEPENDENCY INJECTION:
- One auth check for every publisher-facing router
- Tests swap the database with app.dependency_overrides
"""

from typing import Annotated

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from savereturn.core.auth import verify_service_token
from savereturn.core.config import settings
from savereturn.core.database import get_db
from savereturn.core.errors import UnauthorizedError


async def require_service_token(request: Request) -> None:
    """Reject requests without a valid service token.

    No-op when AUTH_ENABLED is false (local development).

    Args:
        request: HTTP request (injected by FastAPI).

    Raises:
        UnauthorizedError: Header missing or token rejected.
    """
    if not settings.auth_enabled:
        return

    token = request.headers.get(settings.service_token_header)
    if not token:
        raise UnauthorizedError()

    verify_service_token(
        token,
        secret=settings.service_token_secret.get_secret_value(),
        leeway_seconds=settings.service_token_leeway_seconds,
    )


# Reusable type aliases for dependency injection
DbSession = Annotated[AsyncSession, Depends(get_db)]
ServiceAuth = Depends(require_service_token)
