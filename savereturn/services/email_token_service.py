"""Email confirmation token lifecycle.

Issue, supersede, expire and consume the single-use tokens that let a user
come back to a saved form from an emailed link.

State rules:
- A new token for (service_slug, encrypted_email) supersedes every earlier
  token for that identity in the same transaction.
- Confirmation checks run in a fixed order: missing, used, superseded,
  expired. A superseded token reports "superseded" even when it is also past
  its expiry, and a used token reports "used".
- Expiry never mutates the row.
- The valid -> used transition is a conditional UPDATE, so of two concurrent
  confirmations exactly one succeeds.
"""

import logging
import uuid
from datetime import datetime, timedelta

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from savereturn.core.config import settings
from savereturn.core.errors import (
    DetailsMissingError,
    EmailMissingError,
    ServiceUnavailableError,
    TokenExpiredError,
    TokenInvalidError,
    TokenSupersededError,
    TokenUsedError,
)
from savereturn.models.base import utcnow
from savereturn.models.email import Email, Validity
from savereturn.repositories.email_repository import EmailRepository

logger = logging.getLogger(__name__)


def _parse_token(token: str) -> uuid.UUID:
    """Parse a token string, treating anything that is not a UUID as unknown."""
    try:
        return uuid.UUID(token)
    except (ValueError, TypeError, AttributeError) as exc:
        raise TokenInvalidError() from exc


def _check_confirmable(email: Email, now: datetime) -> None:
    """Raise the error matching a token that cannot be confirmed.

    Args:
        email: Token row as currently stored.
        now: Reference time for the expiry check.

    Raises:
        TokenUsedError: Token already confirmed.
        TokenSupersededError: A newer token exists for the identity.
        TokenExpiredError: Token is valid but past expires_at.
    """
    if email.validity == Validity.USED.value:
        raise TokenUsedError()
    if email.validity == Validity.SUPERSEDED.value:
        raise TokenSupersededError()
    if email.is_expired(now):
        raise TokenExpiredError()


class EmailTokenService:
    """Issues and confirms email tokens.

    The service owns the transaction: it commits on success and rolls back
    before raising a storage error. Token-state errors are raised before
    anything is written.

    Args:
        db: Async database session.
    """

    def __init__(self, db: AsyncSession) -> None:
        self._db = db

    async def issue(
        self,
        *,
        service_slug: str,
        encrypted_email: str | None,
        encrypted_details: str | None,
        duration_minutes: int | None = None,
    ) -> uuid.UUID:
        """Issue a new token and supersede the identity's earlier ones.

        Args:
            service_slug: Owning form service.
            encrypted_email: Encrypted address of the user.
            encrypted_details: Encrypted data returned on confirmation.
            duration_minutes: Token lifetime. Defaults to
                EMAIL_TOKEN_DEFAULT_DURATION_MINUTES.

        Returns:
            The new token value.

        Raises:
            EmailMissingError: encrypted_email absent or empty.
            DetailsMissingError: encrypted_details absent or empty.
            ServiceUnavailableError: Storage failed; nothing was written.
        """
        # Validation runs before any write
        if not encrypted_email:
            raise EmailMissingError()
        if not encrypted_details:
            raise DetailsMissingError()

        minutes = duration_minutes or settings.email_token_default_duration_minutes
        expires_at = utcnow() + timedelta(minutes=minutes)

        try:
            superseded = await EmailRepository.supersede_all(
                self._db,
                service_slug=service_slug,
                encrypted_email=encrypted_email,
            )
            email = await EmailRepository.create(
                self._db,
                service_slug=service_slug,
                encrypted_email=encrypted_email,
                encrypted_payload=encrypted_details,
                expires_at=expires_at,
            )
            token = email.id
            await self._db.commit()
        except IntegrityError as exc:
            # Lost the race against a concurrent issue for the same identity
            await self._db.rollback()
            logger.warning(
                "Concurrent email token issue for service %s: %s",
                service_slug,
                exc.__class__.__name__,
            )
            raise ServiceUnavailableError("Concurrent token issue") from exc
        except SQLAlchemyError as exc:
            await self._db.rollback()
            logger.error(
                "Email token issue failed for service %s: %s",
                service_slug,
                type(exc).__name__,
            )
            raise ServiceUnavailableError() from exc

        logger.info(
            "Issued email token for service %s (%d earlier superseded, %d min)",
            service_slug,
            superseded,
            minutes,
        )
        return token

    async def confirm(self, *, service_slug: str, token: str) -> str:
        """Consume a token and return its encrypted details.

        Args:
            service_slug: Service the token must belong to.
            token: Token value from the emailed link.

        Returns:
            The encrypted details stored when the token was issued.

        Raises:
            TokenInvalidError: No such token for this service.
            TokenUsedError: Token already confirmed.
            TokenSupersededError: A newer token was issued.
            TokenExpiredError: Token past its expiry.
            ServiceUnavailableError: Storage failed while consuming the token.
        """
        token_id = _parse_token(token)
        now = utcnow()

        # Row lock held until commit/rollback; the request session rolls back
        # on any raised error
        email = await EmailRepository.get_for_service(
            self._db,
            service_slug=service_slug,
            token_id=token_id,
            for_update=True,
        )
        if email is None:
            raise TokenInvalidError()
        _check_confirmable(email, now)

        try:
            swapped = await EmailRepository.mark_used(self._db, token_id)
            if not swapped:
                # Another request changed the row after our read
                await self._db.refresh(email)
                _check_confirmable(email, now)
                raise TokenUsedError()

            encrypted_details = email.encrypted_payload
            await self._db.commit()
        except SQLAlchemyError as exc:
            await self._db.rollback()
            logger.error(
                "Email token confirm failed for service %s: %s",
                service_slug,
                type(exc).__name__,
            )
            raise ServiceUnavailableError() from exc

        logger.info("Confirmed email token for service %s", service_slug)
        return encrypted_details
