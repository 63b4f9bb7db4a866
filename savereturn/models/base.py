"""SQLAlchemy base classes and common mixins.

Defines the declarative base and reusable mixins for generated UUID keys,
timestamp tracking, and the (service_slug, encrypted_email) identity pair
shared by every save-and-return table.
"""

import uuid
from datetime import UTC, datetime

from sqlalchemy import JSON, DateTime, String, Text, Uuid, func
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

# JSONB on PostgreSQL, plain JSON elsewhere (SQLite in tests)
JSONPayload = JSON().with_variant(JSONB(), "postgresql")


def utcnow() -> datetime:
    """Current time as a timezone-aware UTC datetime."""
    return datetime.now(UTC)


def as_utc(value: datetime) -> datetime:
    """Attach UTC to a naive datetime read back from a tz-less backend.

    PostgreSQL returns aware values for ``timestamptz``; SQLite drops the
    offset, and stored values are always UTC.
    """
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


class Base(DeclarativeBase):
    """Base class for all ORM models."""

    type_annotation_map = {
        datetime: DateTime(timezone=True),
    }


class UUIDPrimaryKeyMixin:
    """Mixin for a generated UUID primary key.

    Generated client-side so the id is known before flush; migrations add
    ``gen_random_uuid()`` as the server default for rows inserted by hand.
    """

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(),
        primary_key=True,
        default=uuid.uuid4,
    )


class TimestampMixin:
    """Mixin that adds created_at and updated_at columns.

    Attributes:
        created_at: Timestamp when the record was created. Set automatically
            by the database on insert.
        updated_at: Timestamp when the record was last modified. Updated
            automatically on each update.
    """

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )


class ServiceIdentityMixin:
    """Mixin for records keyed by service and encrypted email.

    Attributes:
        service_slug: Slug of the form service the record belongs to.
        encrypted_email: Email address, encrypted by the publisher. This
            service never sees the plain address.
        encrypted_payload: Encrypted form data to restore for the user.
    """

    service_slug: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )
    encrypted_email: Mapped[str] = mapped_column(
        Text(),
        nullable=False,
    )
    encrypted_payload: Mapped[str] = mapped_column(
        Text(),
        nullable=False,
    )
