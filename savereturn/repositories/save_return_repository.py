"""Repository for SaveReturn (legacy publisher) operations.

One row per (service_slug, encrypted_email), backed by a unique constraint.
"""

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from savereturn.models.save_return import SaveReturn


class SaveReturnRepository:
    """Stateless repository for SaveReturn table operations.

    All methods are static; no instance state. Pass an AsyncSession
    for every call so the caller controls transaction boundaries.
    """

    @staticmethod
    async def get_by_identity(
        db: AsyncSession,
        *,
        service_slug: str,
        encrypted_email: str,
    ) -> SaveReturn | None:
        """Fetch the saved record of an identity.

        Args:
            db: Async database session.
            service_slug: Owning form service.
            encrypted_email: Encrypted address of the user.

        Returns:
            SaveReturn if found, None otherwise.
        """
        stmt = select(SaveReturn).where(
            SaveReturn.service_slug == service_slug,
            SaveReturn.encrypted_email == encrypted_email,
        )
        result = await db.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    async def create(
        db: AsyncSession,
        *,
        service_slug: str,
        encrypted_email: str,
        encrypted_payload: str,
    ) -> SaveReturn:
        """Insert a saved record.

        Args:
            db: Async database session.
            service_slug: Owning form service.
            encrypted_email: Encrypted address of the user.
            encrypted_payload: Encrypted form data.

        Returns:
            Created SaveReturn.

        Raises:
            sqlalchemy.exc.IntegrityError: If the identity already has a row.
        """
        save_return = SaveReturn(
            service_slug=service_slug,
            encrypted_email=encrypted_email,
            encrypted_payload=encrypted_payload,
        )
        db.add(save_return)
        await db.flush()
        return save_return

    @staticmethod
    async def update_payload(
        db: AsyncSession,
        save_return: SaveReturn,
        *,
        encrypted_payload: str,
    ) -> SaveReturn:
        """Replace the payload of an existing record in place."""
        save_return.encrypted_payload = encrypted_payload
        await db.flush()
        return save_return

    @staticmethod
    async def delete_for_identity(
        db: AsyncSession,
        *,
        service_slug: str,
        encrypted_email: str,
    ) -> int:
        """Delete the saved record(s) of an identity.

        Returns:
            Number of deleted rows.
        """
        stmt = delete(SaveReturn).where(
            SaveReturn.service_slug == service_slug,
            SaveReturn.encrypted_email == encrypted_email,
        )
        result = await db.execute(stmt)
        row_count: int = result.rowcount  # type: ignore[attr-defined]
        return row_count
