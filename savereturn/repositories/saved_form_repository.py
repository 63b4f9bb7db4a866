"""Repository for SavedForm operations.

Saved forms are insert-only: there is no update path.
"""

import uuid
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from savereturn.models.saved_form import SavedForm


class SavedFormRepository:
    """Stateless repository for SavedForm table operations."""

    @staticmethod
    async def create(db: AsyncSession, *, payload: dict[str, Any]) -> SavedForm:
        """Store a form payload.

        Args:
            db: Async database session.
            payload: Form fields as submitted.

        Returns:
            Created SavedForm with its generated id.
        """
        saved_form = SavedForm(payload=payload)
        db.add(saved_form)
        await db.flush()
        return saved_form

    @staticmethod
    async def get_by_id(db: AsyncSession, form_id: uuid.UUID) -> SavedForm | None:
        """Fetch a saved form by primary key.

        Args:
            db: Async database session.
            form_id: UUID primary key.

        Returns:
            SavedForm if found, None otherwise.
        """
        return await db.get(SavedForm, form_id)
