"""SavedForm model - in-progress form data for the v2 save flow.

The payload is opaque to this service: whatever form fields the runner
posts are stored as one JSON object and handed back verbatim.
"""

from datetime import datetime
from typing import Any

from sqlalchemy import DateTime, func
from sqlalchemy.orm import Mapped, mapped_column

from savereturn.models.base import Base, JSONPayload, UUIDPrimaryKeyMixin


class SavedForm(Base, UUIDPrimaryKeyMixin):
    """Saved form progress. Immutable once created.

    Attributes:
        id: Generated UUID returned to the caller.
        payload: Form fields as submitted.
        created_at: Insert timestamp.
    """

    __tablename__ = "saved_forms"

    payload: Mapped[dict[str, Any]] = mapped_column(
        JSONPayload,
        nullable=False,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )
