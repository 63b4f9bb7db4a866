"""Repository for MagicLink operations.

Magic links are created by the publisher's sign-in flow; this service only
needs to remove them, either for an identity or once they have expired.
"""

from datetime import datetime

from sqlalchemy import delete
from sqlalchemy.ext.asyncio import AsyncSession

from savereturn.models.magic_link import MagicLink


class MagicLinkRepository:
    """Stateless repository for MagicLink table operations."""

    @staticmethod
    async def delete_for_identity(
        db: AsyncSession,
        *,
        service_slug: str,
        encrypted_email: str,
    ) -> int:
        """Delete all magic links for an identity.

        Returns:
            Number of deleted rows.
        """
        stmt = delete(MagicLink).where(
            MagicLink.service_slug == service_slug,
            MagicLink.encrypted_email == encrypted_email,
        )
        result = await db.execute(stmt)
        row_count: int = result.rowcount  # type: ignore[attr-defined]
        return row_count

    @staticmethod
    async def delete_expired(db: AsyncSession, *, before: datetime) -> int:
        """Delete magic links that expired before a cut-off (maintenance).

        Returns:
            Number of deleted rows.
        """
        stmt = delete(MagicLink).where(MagicLink.expires_at < before)
        result = await db.execute(stmt)
        row_count: int = result.rowcount  # type: ignore[attr-defined]
        return row_count
