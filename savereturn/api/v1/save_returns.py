"""Legacy save-return endpoints (v1 publisher).

Endpoints:
- POST /service/{service_slug}/savereturn/create: upsert the saved record
- DELETE /service/{service_slug}/savereturn/delete: delete the record,
  email tokens and magic links of an email address
"""

from fastapi import APIRouter, Response, status
from pydantic import BaseModel, ConfigDict, Field

from savereturn.api.deps import DbSession
from savereturn.core.responses import SaveReturnDeleted
from savereturn.services.save_return_service import SaveReturnService

router = APIRouter()


class SaveReturnUpsertRequest(BaseModel):
    """Request body for POST .../savereturn/create."""

    model_config = ConfigDict(extra="ignore")

    encrypted_email: str = Field(min_length=1)
    encrypted_details: str = Field(min_length=1)


class SaveReturnDeleteRequest(BaseModel):
    """Request body for DELETE .../savereturn/delete."""

    model_config = ConfigDict(extra="ignore")

    encrypted_email: str = Field(min_length=1)


@router.post("/create")
async def upsert_save_return(
    service_slug: str,
    body: SaveReturnUpsertRequest,
    response: Response,
    db: DbSession,
) -> dict:
    """Create (201) or update (200) the saved record of an email address."""
    created = await SaveReturnService(db).upsert(
        service_slug=service_slug,
        encrypted_email=body.encrypted_email,
        encrypted_details=body.encrypted_details,
    )
    response.status_code = status.HTTP_201_CREATED if created else status.HTTP_200_OK
    return {}


@router.delete("/delete")
async def delete_save_return(
    service_slug: str,
    body: SaveReturnDeleteRequest,
    db: DbSession,
) -> SaveReturnDeleted:
    """Delete everything stored for an email address, atomically."""
    result = await SaveReturnService(db).delete(
        service_slug=service_slug,
        encrypted_email=body.encrypted_email,
    )
    return SaveReturnDeleted(
        save_returns=result.save_returns,
        emails=result.emails,
        magic_links=result.magic_links,
    )
