"""Email confirmation token endpoints.

Endpoints:
- POST /service/{service_slug}/savereturn/email/add: issue a token
- POST /service/{service_slug}/savereturn/email/confirm: consume a token

Request fields are optional at the schema level so that a missing email or
missing details is reported with its own error name instead of a generic
request validation failure.
"""

from fastapi import APIRouter, Request, status
from pydantic import BaseModel, ConfigDict, Field

from savereturn.api.deps import DbSession
from savereturn.core.config import settings
from savereturn.core.rate_limiting import limiter
from savereturn.core.responses import EmailTokenConfirmed, EmailTokenIssued
from savereturn.services.email_token_service import EmailTokenService

router = APIRouter()


# ===================================================================
# Request models
# ===================================================================


class EmailAddRequest(BaseModel):
    """Request body for POST .../email/add.

    Attributes:
        encrypted_email: Encrypted address to send the token to.
        encrypted_details: Encrypted data returned on confirmation.
        duration: Token lifetime in minutes.
    """

    model_config = ConfigDict(extra="ignore")

    encrypted_email: str | None = None
    encrypted_details: str | None = None
    duration: int | None = Field(
        default=None,
        gt=0,
        le=settings.email_token_max_duration_minutes,
    )


class EmailConfirmRequest(BaseModel):
    """Request body for POST .../email/confirm."""

    model_config = ConfigDict(extra="ignore")

    email_token: str | None = None


# ===================================================================
# POST .../email/add
# ===================================================================


@router.post("/email/add", status_code=status.HTTP_201_CREATED)
async def add_email(
    service_slug: str,
    body: EmailAddRequest,
    db: DbSession,
) -> EmailTokenIssued:
    """Issue an email token, superseding earlier tokens for the same email.

    401 email.missing / details.missing on missing fields,
    503 unavailable when storage fails.
    """
    token = await EmailTokenService(db).issue(
        service_slug=service_slug,
        encrypted_email=body.encrypted_email,
        encrypted_details=body.encrypted_details,
        duration_minutes=body.duration,
    )
    return EmailTokenIssued(token=token)


# ===================================================================
# POST .../email/confirm
# ===================================================================


@router.post("/email/confirm")
@limiter.limit(settings.rate_limit_confirm)
async def confirm_email(
    request: Request,  # noqa: ARG001 - required by @limiter.limit()
    service_slug: str,
    body: EmailConfirmRequest,
    db: DbSession,
) -> EmailTokenConfirmed:
    """Consume an email token and return the saved details.

    401 with token.invalid / token.used / token.superseded / token.expired
    when the token cannot be confirmed.

    Rate limit: RATE_LIMIT_CONFIRM per IP.
    """
    encrypted_details = await EmailTokenService(db).confirm(
        service_slug=service_slug,
        token=body.email_token or "",
    )
    return EmailTokenConfirmed(encrypted_details=encrypted_details)
