"""Legacy save-return store used by the v1 publisher.

One record per (service_slug, encrypted_email). Save is an upsert; delete
removes the record together with the identity's email tokens and magic links
in a single transaction.
"""

import logging
from dataclasses import dataclass

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from savereturn.core.errors import PersistenceError
from savereturn.repositories.email_repository import EmailRepository
from savereturn.repositories.magic_link_repository import MagicLinkRepository
from savereturn.repositories.save_return_repository import SaveReturnRepository

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class IdentityDeleteResult:
    """Rows removed by a legacy delete.

    Attributes:
        save_returns: SaveReturn rows deleted.
        emails: Email token rows deleted.
        magic_links: MagicLink rows deleted.
    """

    save_returns: int
    emails: int
    magic_links: int


class SaveReturnService:
    """Upserts and deletes legacy save-return records.

    Args:
        db: Async database session.
    """

    def __init__(self, db: AsyncSession) -> None:
        self._db = db

    async def upsert(
        self,
        *,
        service_slug: str,
        encrypted_email: str,
        encrypted_details: str,
    ) -> bool:
        """Create or update the record of an identity.

        If two requests insert the same identity concurrently, the loser
        hits the unique constraint and updates the winner's row instead.

        Args:
            service_slug: Owning form service.
            encrypted_email: Encrypted address of the user.
            encrypted_details: Encrypted form data.

        Returns:
            True if a record was created, False if one was updated.

        Raises:
            PersistenceError: Write failed.
        """
        try:
            existing = await SaveReturnRepository.get_by_identity(
                self._db,
                service_slug=service_slug,
                encrypted_email=encrypted_email,
            )
            if existing is None:
                try:
                    await SaveReturnRepository.create(
                        self._db,
                        service_slug=service_slug,
                        encrypted_email=encrypted_email,
                        encrypted_payload=encrypted_details,
                    )
                    await self._db.commit()
                    logger.info(
                        "Created save-return record for service %s", service_slug
                    )
                    return True
                except IntegrityError:
                    await self._db.rollback()
                    existing = await SaveReturnRepository.get_by_identity(
                        self._db,
                        service_slug=service_slug,
                        encrypted_email=encrypted_email,
                    )
                    if existing is None:
                        raise

            await SaveReturnRepository.update_payload(
                self._db, existing, encrypted_payload=encrypted_details
            )
            await self._db.commit()
        except SQLAlchemyError as exc:
            await self._db.rollback()
            logger.error(
                "Save-return upsert failed for service %s: %s",
                service_slug,
                type(exc).__name__,
            )
            raise PersistenceError() from exc

        logger.info("Updated save-return record for service %s", service_slug)
        return False

    async def delete(
        self,
        *,
        service_slug: str,
        encrypted_email: str,
    ) -> IdentityDeleteResult:
        """Delete every record of an identity atomically.

        Args:
            service_slug: Owning form service.
            encrypted_email: Encrypted address of the user.

        Returns:
            Per-table deletion counts.

        Raises:
            PersistenceError: Any deletion failed; none were applied.
        """
        try:
            result = IdentityDeleteResult(
                save_returns=await SaveReturnRepository.delete_for_identity(
                    self._db,
                    service_slug=service_slug,
                    encrypted_email=encrypted_email,
                ),
                emails=await EmailRepository.delete_for_identity(
                    self._db,
                    service_slug=service_slug,
                    encrypted_email=encrypted_email,
                ),
                magic_links=await MagicLinkRepository.delete_for_identity(
                    self._db,
                    service_slug=service_slug,
                    encrypted_email=encrypted_email,
                ),
            )
            await self._db.commit()
        except SQLAlchemyError as exc:
            await self._db.rollback()
            logger.error(
                "Save-return delete failed for service %s: %s",
                service_slug,
                type(exc).__name__,
            )
            raise PersistenceError() from exc

        logger.info(
            "Deleted identity for service %s: "
            "%d save returns, %d emails, %d magic links",
            service_slug,
            result.save_returns,
            result.emails,
            result.magic_links,
        )
        return result
