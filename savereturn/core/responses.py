"""Response body models.

Publishers parse these bodies directly, so there is no envelope: success
responses carry only the fields the publisher needs and every error is a
bare ``{"code": ..., "name": ...}`` pair.
"""

import uuid

from pydantic import BaseModel


class ErrorResponse(BaseModel):
    """Error body for every non-2xx JSON response.

    Attributes:
        code: HTTP status code, repeated in the body.
        name: Dotted error name the publisher branches on.
    """

    code: int
    name: str


class SavedFormCreated(BaseModel):
    """Body of POST /save-progress."""

    id: uuid.UUID


class EmailTokenIssued(BaseModel):
    """Body of POST .../email/add."""

    token: uuid.UUID


class EmailTokenConfirmed(BaseModel):
    """Body of POST .../email/confirm."""

    encrypted_details: str


class SaveReturnDeleted(BaseModel):
    """Body of DELETE .../savereturn/delete.

    Attributes:
        save_returns: Number of legacy save records removed.
        emails: Number of email tokens removed.
        magic_links: Number of magic links removed.
    """

    save_returns: int
    emails: int
    magic_links: int
