"""Save-progress store for the v2 form runner.

Stores the runner's form state as an opaque JSON object and hands it back
by id. Records are never updated.
"""

import logging
import uuid
from typing import Any

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from savereturn.core.errors import InvalidPayloadError, NotFoundError, PersistenceError
from savereturn.repositories.saved_form_repository import SavedFormRepository

logger = logging.getLogger(__name__)

# Runner bookkeeping that is never persisted
_IGNORED_KEYS: frozenset[str] = frozenset({"validation_context", "errors"})


def clean_payload(payload: Any) -> dict[str, Any]:
    """Strip runner bookkeeping and check the payload has content.

    Args:
        payload: Parsed request body.

    Returns:
        The payload without ignored keys.

    Raises:
        InvalidPayloadError: Body is not a JSON object, or nothing is left
            after stripping.
    """
    if not isinstance(payload, dict):
        raise InvalidPayloadError("Form payload must be a JSON object")

    cleaned = {k: v for k, v in payload.items() if k not in _IGNORED_KEYS}
    if not cleaned:
        raise InvalidPayloadError()
    return cleaned


class SaveProgressService:
    """Creates and fetches saved forms.

    Args:
        db: Async database session.
    """

    def __init__(self, db: AsyncSession) -> None:
        self._db = db

    async def save(self, payload: Any) -> uuid.UUID:
        """Persist a form payload.

        Args:
            payload: Parsed request body.

        Returns:
            Generated id of the saved form.

        Raises:
            InvalidPayloadError: Payload failed validation; nothing written.
            PersistenceError: Write failed.
        """
        cleaned = clean_payload(payload)

        try:
            saved_form = await SavedFormRepository.create(self._db, payload=cleaned)
            form_id = saved_form.id
            await self._db.commit()
        except SQLAlchemyError as exc:
            await self._db.rollback()
            logger.error("Saving form progress failed: %s", type(exc).__name__)
            raise PersistenceError() from exc

        logger.info("Saved form progress (%d fields)", len(cleaned))
        return form_id

    async def fetch(self, form_id: str) -> dict[str, Any]:
        """Return a saved payload verbatim.

        Args:
            form_id: Id returned by ``save``.

        Returns:
            Stored payload.

        Raises:
            NotFoundError: Unknown id, or id is not a UUID.
        """
        try:
            key = uuid.UUID(form_id)
        except ValueError as exc:
            raise NotFoundError("Saved form", form_id) from exc

        saved_form = await SavedFormRepository.get_by_id(self._db, key)
        if saved_form is None:
            raise NotFoundError("Saved form", form_id)
        return saved_form.payload
