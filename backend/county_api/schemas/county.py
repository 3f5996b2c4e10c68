"""
County Directory Backend: Pydantic Request/Response Schemas
=============================================================

What:  Pydantic models defining the API contract of the county resource.
How:   FastAPI serializes route return values through these models and
       builds the OpenAPI document from them.
Who:   Returned by route handlers; CompanyReference is also used by
       CountyService to validate decoded `companies` entries.

Envelope:
    Every success body is {success, message, data}; the paginated list adds
    currentPage / totalPages / totalCounties. Entity ids are exposed as `_id`
    and pass-through fields are flattened next to the fixed fields, matching
    what existing clients already read.
"""

import uuid
from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


# ══════════════════════════════════════════════════════════════════════════
# Embedded Documents
# ══════════════════════════════════════════════════════════════════════════


class CompanyReference(BaseModel):
    """
    One entry of a county's `companies` list.

    `companyId` is required; any other keys are associated data and are
    kept verbatim.
    """
    model_config = ConfigDict(extra="allow")

    companyId: uuid.UUID = Field(description="Referenced company identifier")


class CompanySummary(BaseModel):
    """Expanded `companyId` on the county detail endpoint."""
    model_config = ConfigDict(populate_by_name=True)

    id: uuid.UUID = Field(alias="_id")
    companyName: str


# ══════════════════════════════════════════════════════════════════════════
# Response Models
# ══════════════════════════════════════════════════════════════════════════


class CountyData(BaseModel):
    """
    Full representation of a county.

    Extra keys (pass-through fields) are allowed and serialized as-is.
    """
    model_config = ConfigDict(extra="allow", populate_by_name=True)

    id: uuid.UUID = Field(alias="_id", description="Unique county identifier")
    name: str
    slug: str
    excerpt: str = ""
    icon: Optional[str] = Field(default=None, description="Public icon path (/uploads/...)")
    companies: List[Dict[str, Any]] = Field(default_factory=list)
    robots: Dict[str, Any] = Field(default_factory=dict)
    createdAt: datetime
    updatedAt: datetime


class CountyEnvelope(BaseModel):
    """Single-county response (create, get, update, delete)."""
    success: bool = True
    message: str
    data: CountyData


class CountyCollectionEnvelope(BaseModel):
    """Unpaginated collection (list-all)."""
    success: bool = True
    message: str
    data: List[CountyData]


class CountyListEnvelope(BaseModel):
    """
    Paginated, searchable listing.

    totalPages is ceil(totalCounties / limit).
    """
    success: bool = True
    message: str
    currentPage: int
    totalPages: int
    totalCounties: int
    data: List[CountyData]


# ══════════════════════════════════════════════════════════════════════════
# Error / Health
# ══════════════════════════════════════════════════════════════════════════


class ErrorResponse(BaseModel):
    """
    Error body. 400/404 responses carry only `message`; 500 responses
    also carry `success: false`.
    """
    success: Optional[bool] = None
    message: str


class HealthResponse(BaseModel):
    status: str = Field(description="Overall service status: healthy, degraded, unhealthy")
    version: str
    database: str = Field(description="Database connectivity: connected, disconnected")
    storage: str = Field(description="Uploads directory: writable, unavailable")
    uptime_seconds: float
