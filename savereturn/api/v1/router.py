"""API v1 router aggregator.

Publisher paths are fixed, so routers are mounted at the application root
rather than under a version prefix. Every router here requires a service
token when AUTH_ENABLED is true.
"""

from fastapi import APIRouter

from savereturn.api.deps import ServiceAuth
from savereturn.api.v1 import emails, save_progress, save_returns

router = APIRouter(dependencies=[ServiceAuth])

# =============================================================================
# v2 runner: save progress
# =============================================================================

router.include_router(
    save_progress.router, prefix="/save-progress", tags=["save-progress"]
)

# =============================================================================
# Email tokens and legacy publisher, scoped by service
# =============================================================================

_SERVICE_PREFIX = "/service/{service_slug}/savereturn"

router.include_router(emails.router, prefix=_SERVICE_PREFIX, tags=["emails"])
router.include_router(
    save_returns.router, prefix=_SERVICE_PREFIX, tags=["save-returns"]
)
