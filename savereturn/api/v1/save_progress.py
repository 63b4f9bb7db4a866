"""Save-progress endpoints (v2 form runner).

Endpoints:
- POST /save-progress: store form progress, returns its id
- GET /save-progress/{form_id}: return stored progress verbatim
"""

from typing import Annotated, Any

from fastapi import APIRouter, Body, status

from savereturn.api.deps import DbSession
from savereturn.core.responses import SavedFormCreated
from savereturn.services.save_progress_service import SaveProgressService

router = APIRouter()


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_save_progress(
    payload: Annotated[Any, Body()],
    db: DbSession,
) -> SavedFormCreated:
    """Store in-progress form data.

    Returns 400 when the payload is not an object or has no fields left
    after runner bookkeeping is removed.
    """
    form_id = await SaveProgressService(db).save(payload)
    return SavedFormCreated(id=form_id)


@router.get("/{form_id}")
async def get_save_progress(form_id: str, db: DbSession) -> dict[str, Any]:
    """Return stored form data, or 404."""
    return await SaveProgressService(db).fetch(form_id)
