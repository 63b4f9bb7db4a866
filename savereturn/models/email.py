"""Email model - confirmation tokens for save and return.

The row id doubles as the token value emailed to the user. Tokens are
time-limited and single-use; issuing a new token for the same identity
supersedes every earlier one.
"""

from datetime import datetime
from enum import Enum

from sqlalchemy import CheckConstraint, DateTime, Index, String, text
from sqlalchemy.orm import Mapped, mapped_column

from savereturn.models.base import (
    Base,
    ServiceIdentityMixin,
    TimestampMixin,
    UUIDPrimaryKeyMixin,
    as_utc,
)


class Validity(str, Enum):
    """Stored token state. Expiry is derived from expires_at, not stored."""

    VALID = "valid"
    SUPERSEDED = "superseded"
    USED = "used"


_VALIDITY_VALUES = ", ".join(f"'{v.value}'" for v in Validity)
_ONLY_VALID = text("validity = 'valid'")


class Email(Base, UUIDPrimaryKeyMixin, ServiceIdentityMixin, TimestampMixin):
    """Email confirmation token.

    Invariant: at most one ``valid`` row per (service_slug, encrypted_email).
    The partial unique index enforces it, so two concurrent issuers for the
    same identity cannot both commit.

    Attributes:
        id: Token value (UUID).
        service_slug: Owning form service.
        encrypted_email: Encrypted address the token was sent to.
        encrypted_payload: Encrypted details returned on confirmation.
        expires_at: Moment after which a valid token is rejected.
        validity: One of valid / superseded / used.
    """

    __tablename__ = "emails"
    __table_args__ = (
        CheckConstraint(
            f"validity IN ({_VALIDITY_VALUES})",
            name="ck_emails_validity",
        ),
        Index(
            "uq_emails_one_valid_per_identity",
            "service_slug",
            "encrypted_email",
            unique=True,
            postgresql_where=_ONLY_VALID,
            sqlite_where=_ONLY_VALID,
        ),
        Index("idx_emails_service_email", "service_slug", "encrypted_email"),
        Index("idx_emails_expires_at", "expires_at"),
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

    def is_expired(self, now: datetime) -> bool:
        """Check whether the token is past its expiry at ``now``."""
        return now > as_utc(self.expires_at)
