"""SaveReturn model - legacy publisher save records.

One row per (service_slug, encrypted_email). The legacy publisher upserts
it on every save and deletes it, together with the identity's email tokens
and magic links, when the user abandons the form.
"""

from sqlalchemy import UniqueConstraint

from savereturn.models.base import (
    Base,
    ServiceIdentityMixin,
    TimestampMixin,
    UUIDPrimaryKeyMixin,
)


class SaveReturn(Base, UUIDPrimaryKeyMixin, ServiceIdentityMixin, TimestampMixin):
    """Legacy saved form, keyed by service and encrypted email."""

    __tablename__ = "save_returns"
    __table_args__ = (
        UniqueConstraint(
            "service_slug",
            "encrypted_email",
            name="uq_save_returns_service_email",
        ),
    )
