"""Expired token cleanup.

Removes email tokens and magic links whose expiry is older than the
retention window. Run from ``scripts/purge_expired_tokens.py``; the API never
schedules it.
"""

import logging
from dataclasses import dataclass
from datetime import timedelta

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from savereturn.core.errors import APIError
from savereturn.models.base import utcnow
from savereturn.repositories.email_repository import EmailRepository
from savereturn.repositories.magic_link_repository import MagicLinkRepository

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TokenCleanupResult:
    """Result of an expired token purge.

    Attributes:
        emails: Email tokens deleted.
        magic_links: Magic links deleted.
    """

    emails: int
    magic_links: int


class CleanupError(APIError):
    """Raised when a cleanup operation fails at the database level."""

    def __init__(self, message: str) -> None:
        super().__init__(name="cleanup.failed", message=message, status_code=500)


async def purge_expired_tokens(
    db: AsyncSession, *, retention: timedelta
) -> TokenCleanupResult:
    """Delete tokens that expired more than ``retention`` ago.

    Does not commit; the caller owns the transaction.

    Args:
        db: Database session.
        retention: How long expired rows are kept.

    Returns:
        TokenCleanupResult with deletion counts.

    Raises:
        CleanupError: If the database operation fails.
    """
    cutoff = utcnow() - retention
    try:
        emails = await EmailRepository.delete_expired(db, before=cutoff)
        magic_links = await MagicLinkRepository.delete_expired(db, before=cutoff)
    except SQLAlchemyError as exc:
        logger.error("Expired token cleanup failed: %s", type(exc).__name__)
        raise CleanupError("Expired token cleanup failed") from exc

    logger.info(
        "Purged tokens expired before %s: %d emails, %d magic links",
        cutoff.isoformat(),
        emails,
        magic_links,
    )
    return TokenCleanupResult(emails=emails, magic_links=magic_links)
