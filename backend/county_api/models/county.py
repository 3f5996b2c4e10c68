"""
County Directory Backend: County SQLAlchemy Model
===================================================

What:  ORM model representing the `counties` table.
How:   Inherits from the shared DeclarativeBase; Alembic reads it for migrations.
Who:   Used by CountyService for all CRUD operations.

Table Design:
    - UUID primary key, generated in Python so SQLite and PostgreSQL behave alike
    - name / slug: UNIQUE constraints; violations surface as IntegrityError and
      are translated to ConflictError by the service
    - companies / robots: JSON documents (JSONB on PostgreSQL), stored verbatim
    - extra: pass-through body fields that have no column of their own
    - created_at / updated_at: UTC with timezone

    Index on created_at DESC:
        Default list ordering is newest first.
"""

import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from sqlalchemy import JSON, DateTime, Index, String, Text, UniqueConstraint, Uuid, text
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from county_api.database import Base

# JSON on SQLite, JSONB on PostgreSQL
JSONDocument = JSON().with_variant(JSONB(), "postgresql")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class County(Base):
    """
    A county record.

    Lifecycle:
        1. Created by POST /api/counties (icon set only when a file is uploaded)
        2. Partially updated by PUT /api/counties/{id}
        3. Hard-deleted by DELETE /api/counties/{id} (no soft delete)
    """

    __tablename__ = "counties"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4,
    )

    name: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        comment="Display name, unique across counties",
    )

    slug: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        comment="URL-safe identifier, unique across counties",
    )

    excerpt: Mapped[str] = mapped_column(
        Text,
        nullable=False,
        default="",
    )

    # Public path: /uploads/<filename>
    icon: Mapped[Optional[str]] = mapped_column(
        String(512),
        nullable=True,
        default=None,
    )

    # [{"companyId": "<uuid>", ...associated data}]
    companies: Mapped[List[Dict[str, Any]]] = mapped_column(
        JSONDocument,
        nullable=False,
        default=list,
    )

    # SEO directives, e.g. {"index": true, "follow": false}
    robots: Mapped[Dict[str, Any]] = mapped_column(
        JSONDocument,
        nullable=False,
        default=dict,
    )

    extra: Mapped[Dict[str, Any]] = mapped_column(
        JSONDocument,
        nullable=False,
        default=dict,
        comment="Pass-through fields supplied by clients",
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=_utcnow,
        server_default=text("CURRENT_TIMESTAMP"),
    )

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=_utcnow,
        server_default=text("CURRENT_TIMESTAMP"),
    )

    __table_args__ = (
        UniqueConstraint("name", name="uq_counties_name"),
        UniqueConstraint("slug", name="uq_counties_slug"),
        Index("idx_counties_created_at", created_at.desc()),
    )

    def __repr__(self) -> str:
        return f"<County(id={self.id}, slug='{self.slug}')>"
