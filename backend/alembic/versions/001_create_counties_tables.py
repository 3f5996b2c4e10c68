"""Create companies and counties tables

Revision ID: 001
Revises: None
Create Date: 2026-10-19 00:00:00.000000+00:00

What:  Initial schema: `companies` (referenced by counties) and `counties`.
How:   UNIQUE constraints on counties.name and counties.slug back the
       duplicate check done by the service; JSONB holds companies, robots
       and pass-through fields.

Rollback: downgrade() drops both tables (destructive).
"""

from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

JSONDocument = sa.JSON().with_variant(postgresql.JSONB(), "postgresql")


def upgrade() -> None:
    op.create_table(
        "companies",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column(
            "company_name",
            sa.String(255),
            nullable=False,
            comment="Display name resolved into county detail responses",
        ),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("CURRENT_TIMESTAMP"),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("id"),
    )

    op.create_table(
        "counties",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("name", sa.String(255), nullable=False, comment="Display name, unique across counties"),
        sa.Column("slug", sa.String(255), nullable=False, comment="URL-safe identifier, unique across counties"),
        sa.Column("excerpt", sa.Text(), nullable=False, server_default=sa.text("''")),
        sa.Column("icon", sa.String(512), nullable=True),
        sa.Column("companies", JSONDocument, nullable=False, server_default=sa.text("'[]'")),
        sa.Column("robots", JSONDocument, nullable=False, server_default=sa.text("'{}'")),
        sa.Column(
            "extra",
            JSONDocument,
            nullable=False,
            server_default=sa.text("'{}'"),
            comment="Pass-through fields supplied by clients",
        ),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("CURRENT_TIMESTAMP"),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("CURRENT_TIMESTAMP"),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("name", name="uq_counties_name"),
        sa.UniqueConstraint("slug", name="uq_counties_slug"),
    )

    op.create_index(
        "idx_counties_created_at",
        "counties",
        [sa.text("created_at DESC")],
    )


def downgrade() -> None:
    op.drop_index("idx_counties_created_at", table_name="counties")
    op.drop_table("counties")
    op.drop_table("companies")
