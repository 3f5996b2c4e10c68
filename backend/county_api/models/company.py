"""
County Directory Backend: Company SQLAlchemy Model
====================================================

What:  ORM model for the `companies` table.
Who:   Read by CountyService when expanding `companies[].companyId`
       references on the detail endpoint.

Companies are managed by another part of the platform; this backend only
reads their display name.
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import DateTime, String, Uuid, text
from sqlalchemy.orm import Mapped, mapped_column

from county_api.database import Base


class Company(Base):
    """A company a county can reference through its `companies` list."""

    __tablename__ = "companies"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4,
    )

    company_name: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        comment="Display name resolved into county detail responses",
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        server_default=text("CURRENT_TIMESTAMP"),
    )

    def __repr__(self) -> str:
        return f"<Company(id={self.id}, company_name='{self.company_name}')>"
