"""MagicLink model - sign-in links sent by the publisher.

Written by the publisher's magic-link flow. This service only removes them
as part of the legacy save-return delete.
"""

from datetime import datetime

from sqlalchemy import DateTime, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from savereturn.models.base import (
    Base,
    ServiceIdentityMixin,
    TimestampMixin,
    UUIDPrimaryKeyMixin,
)
from savereturn.models.email import Validity


class MagicLink(Base, UUIDPrimaryKeyMixin, ServiceIdentityMixin, TimestampMixin):
    """Magic sign-in link for a (service_slug, encrypted_email) identity."""

    __tablename__ = "magic_links"
    __table_args__ = (
        Index("idx_magic_links_service_email", "service_slug", "encrypted_email"),
    )

    expires_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
    )
    validity: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=Validity.VALID.value,
        server_default=Validity.VALID.value,
    )
