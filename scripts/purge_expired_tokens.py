"""Purge expired email tokens and magic links.

Standalone maintenance script. Deletes rows whose expires_at is older than
PURGE_RETENTION_DAYS (default 7).

Usage:
    python -m scripts.purge_expired_tokens
    PURGE_RETENTION_DAYS=30 python -m scripts.purge_expired_tokens
"""

import logging
from datetime import timedelta

from savereturn.core.config import settings
from savereturn.services.token_cleanup import TokenCleanupResult, purge_expired_tokens

logger = logging.getLogger(__name__)


async def main(retention_days: int | None = None) -> TokenCleanupResult:
    """Purge against the configured database.

    Args:
        retention_days: Days to keep expired rows. Defaults to
            PURGE_RETENTION_DAYS.

    Returns:
        Deletion counts.
    """
    from savereturn.core.database import engine, session_scope

    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    days = settings.purge_retention_days if retention_days is None else retention_days
    if days < 0:
        msg = f"Retention cannot be negative. Got: {days}"
        raise ValueError(msg)

    async with session_scope() as session:
        result = await purge_expired_tokens(session, retention=timedelta(days=days))

    await engine.dispose()

    logger.info("Final stats: %s", result)
    return result


if __name__ == "__main__":
    import asyncio

    asyncio.run(main())
