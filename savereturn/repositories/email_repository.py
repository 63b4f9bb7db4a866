"""Repository for Email (confirmation token) operations.

Tokens are looked up by id within a service. State changes are expressed
as conditional UPDATEs so that the database decides which of two racing
requests wins.
"""

import uuid
from datetime import datetime

from sqlalchemy import delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from savereturn.models.email import Email, Validity


class EmailRepository:
    """Stateless repository for Email table operations.

    All methods are static; no instance state. Pass an AsyncSession
    for every call so the caller controls transaction boundaries.
    """

    @staticmethod
    async def create(
        db: AsyncSession,
        *,
        service_slug: str,
        encrypted_email: str,
        encrypted_payload: str,
        expires_at: datetime,
    ) -> Email:
        """Insert a new token in the ``valid`` state.

        Args:
            db: Async database session.
            service_slug: Owning form service.
            encrypted_email: Encrypted address of the user.
            encrypted_payload: Encrypted details to return on confirmation.
            expires_at: Token expiry timestamp.

        Returns:
            Created Email; its id is the token value.

        Raises:
            sqlalchemy.exc.IntegrityError: If another valid token for the same
                identity was committed concurrently.
        """
        email = Email(
            service_slug=service_slug,
            encrypted_email=encrypted_email,
            encrypted_payload=encrypted_payload,
            expires_at=expires_at,
            validity=Validity.VALID.value,
        )
        db.add(email)
        await db.flush()
        return email

    @staticmethod
    async def supersede_all(
        db: AsyncSession,
        *,
        service_slug: str,
        encrypted_email: str,
    ) -> int:
        """Mark every token for an identity as ``superseded``.

        Already used or superseded tokens are included; only the state of
        currently valid ones actually changes meaning.

        Args:
            db: Async database session.
            service_slug: Owning form service.
            encrypted_email: Encrypted address of the user.

        Returns:
            Number of rows updated.
        """
        stmt = (
            update(Email)
            .where(
                Email.service_slug == service_slug,
                Email.encrypted_email == encrypted_email,
            )
            .values(validity=Validity.SUPERSEDED.value)
        )
        result = await db.execute(stmt)
        row_count: int = result.rowcount  # type: ignore[attr-defined]
        return row_count

    @staticmethod
    async def get_for_service(
        db: AsyncSession,
        *,
        service_slug: str,
        token_id: uuid.UUID,
        for_update: bool = False,
    ) -> Email | None:
        """Look up a token by id within a service.

        Args:
            db: Async database session.
            service_slug: Owning form service.
            token_id: Token value.
            for_update: Lock the row until the transaction ends (ignored by
                backends without row locks).

        Returns:
            Email if found, None otherwise.
        """
        stmt = select(Email).where(
            Email.id == token_id,
            Email.service_slug == service_slug,
        )
        if for_update:
            stmt = stmt.with_for_update()
        result = await db.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    async def mark_used(db: AsyncSession, token_id: uuid.UUID) -> bool:
        """Transition a token from ``valid`` to ``used``.

        Compare-and-swap: the UPDATE only matches while the row is still
        valid, so at most one caller ever gets True for a given token.

        Args:
            db: Async database session.
            token_id: Token value.

        Returns:
            True if this call performed the transition, False otherwise.
        """
        stmt = (
            update(Email)
            .where(
                Email.id == token_id,
                Email.validity == Validity.VALID.value,
            )
            .values(validity=Validity.USED.value)
        )
        result = await db.execute(stmt)
        return bool(result.rowcount)  # type: ignore[attr-defined]

    @staticmethod
    async def list_valid(
        db: AsyncSession,
        *,
        service_slug: str,
        encrypted_email: str,
    ) -> list[Email]:
        """List the valid tokens of an identity (at most one by invariant).

        Args:
            db: Async database session.
            service_slug: Owning form service.
            encrypted_email: Encrypted address of the user.

        Returns:
            Valid Email rows, oldest first.
        """
        stmt = (
            select(Email)
            .where(
                Email.service_slug == service_slug,
                Email.encrypted_email == encrypted_email,
                Email.validity == Validity.VALID.value,
            )
            .order_by(Email.created_at)
        )
        result = await db.execute(stmt)
        return list(result.scalars().all())

    @staticmethod
    async def delete_for_identity(
        db: AsyncSession,
        *,
        service_slug: str,
        encrypted_email: str,
    ) -> int:
        """Delete all tokens for an identity.

        Args:
            db: Async database session.
            service_slug: Owning form service.
            encrypted_email: Encrypted address of the user.

        Returns:
            Number of deleted rows.
        """
        stmt = delete(Email).where(
            Email.service_slug == service_slug,
            Email.encrypted_email == encrypted_email,
        )
        result = await db.execute(stmt)
        row_count: int = result.rowcount  # type: ignore[attr-defined]
        return row_count

    @staticmethod
    async def delete_expired(db: AsyncSession, *, before: datetime) -> int:
        """Delete tokens that expired before a cut-off (maintenance).

        Args:
            db: Async database session.
            before: Rows with expires_at earlier than this are removed.

        Returns:
            Number of deleted rows.
        """
        stmt = delete(Email).where(Email.expires_at < before)
        result = await db.execute(stmt)
        row_count: int = result.rowcount  # type: ignore[attr-defined]
        return row_count
