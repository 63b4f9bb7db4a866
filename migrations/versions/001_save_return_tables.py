"""Create save-and-return tables: saved_forms, emails, magic_links, save_returns.

Revision ID: 001_save_return_tables
Revises:
Create Date: 2026-10-19

- saved_forms: v2 runner progress (JSONB payload, insert-only)
- emails: confirmation tokens; partial unique index allows one valid token
  per (service_slug, encrypted_email)
- magic_links: publisher sign-in links, removed with the identity
- save_returns: legacy publisher records, one per identity
"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects.postgresql import JSONB, UUID

revision: str = "001_save_return_tables"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None

_DEFAULT_UUID = sa.text("gen_random_uuid()")


def _id_column() -> sa.Column:
    return sa.Column(
        "id",
        UUID(as_uuid=True),
        server_default=_DEFAULT_UUID,
        primary_key=True,
    )


def _timestamp_columns() -> list[sa.Column]:
    return [
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
    ]


def _identity_columns() -> list[sa.Column]:
    return [
        sa.Column("service_slug", sa.String(255), nullable=False),
        sa.Column("encrypted_email", sa.Text(), nullable=False),
        sa.Column("encrypted_payload", sa.Text(), nullable=False),
    ]


def upgrade() -> None:
    # gen_random_uuid() is built in from PostgreSQL 13
    # =========================================================================
    # saved_forms
    # =========================================================================
    op.create_table(
        "saved_forms",
        _id_column(),
        sa.Column("payload", JSONB(), nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
    )

    # =========================================================================
    # emails
    # =========================================================================
    op.create_table(
        "emails",
        _id_column(),
        *_identity_columns(),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column(
            "validity",
            sa.String(20),
            server_default="valid",
            nullable=False,
        ),
        *_timestamp_columns(),
        sa.CheckConstraint(
            "validity IN ('valid', 'superseded', 'used')",
            name="ck_emails_validity",
        ),
    )
    op.create_index(
        "uq_emails_one_valid_per_identity",
        "emails",
        ["service_slug", "encrypted_email"],
        unique=True,
        postgresql_where=sa.text("validity = 'valid'"),
    )
    op.create_index(
        "idx_emails_service_email", "emails", ["service_slug", "encrypted_email"]
    )
    op.create_index("idx_emails_expires_at", "emails", ["expires_at"])

    # =========================================================================
    # magic_links
    # =========================================================================
    op.create_table(
        "magic_links",
        _id_column(),
        *_identity_columns(),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column(
            "validity",
            sa.String(20),
            server_default="valid",
            nullable=False,
        ),
        *_timestamp_columns(),
    )
    op.create_index(
        "idx_magic_links_service_email",
        "magic_links",
        ["service_slug", "encrypted_email"],
    )

    # =========================================================================
    # save_returns
    # =========================================================================
    op.create_table(
        "save_returns",
        _id_column(),
        *_identity_columns(),
        *_timestamp_columns(),
        sa.UniqueConstraint(
            "service_slug",
            "encrypted_email",
            name="uq_save_returns_service_email",
        ),
    )


def downgrade() -> None:
    # Reverse order of creation
    op.drop_table("save_returns")

    op.drop_index("idx_magic_links_service_email", table_name="magic_links")
    op.drop_table("magic_links")

    op.drop_index("idx_emails_expires_at", table_name="emails")
    op.drop_index("idx_emails_service_email", table_name="emails")
    op.drop_index("uq_emails_one_valid_per_identity", table_name="emails")
    op.drop_table("emails")

    op.drop_table("saved_forms")
