"""
County Directory Backend: County Service (Business Logic)
===========================================================

What:  Create / list / list-all / get / update / delete for counties.
How:   Validates and normalizes request payloads, decodes structured fields,
       enforces name/slug uniqueness and coordinates icon storage with the
       database write.
Who:   Called by the county route handlers; calls FileService and the session.

Create flow:
    ┌──────────┐    ┌─────────────┐    ┌──────────────┐    ┌──────────┐
    │ Validate │───▶│  Decode     │───▶│  Uniqueness  │───▶│ Store    │
    │ payload  │    │  companies/ │    │  check       │    │ icon +   │
    │          │    │  robots     │    │  (name|slug) │    │ insert   │
    └──────────┘    └─────────────┘    └──────────────┘    └──────────┘

    The existence query is followed by the INSERT; the unique constraints
    on name/slug catch whatever slips between the two and surface as
    ConflictError as well. A stored icon is removed again when the write fails.

CountyService is stateless: it receives the session for each call.
"""

import logging
import math
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Optional

from pydantic import ValidationError as PydanticValidationError
from sqlalchemy import asc, desc, func, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from county_api.exceptions import (
    ConflictError,
    CountyAPIError,
    DatabaseError,
    NotFoundError,
    ValidationError,
)
from county_api.models.company import Company
from county_api.models.county import County
from county_api.schemas.county import (
    CompanyReference,
    CompanySummary,
    CountyCollectionEnvelope,
    CountyData,
    CountyEnvelope,
    CountyListEnvelope,
)
from county_api.services.field_decoder import decode_companies, decode_robots
from county_api.services.file_service import IconUpload, StoredFile, file_service

logger = logging.getLogger(__name__)

REQUIRED_FIELDS = ("name", "slug", "excerpt")
STRUCTURED_FIELDS = ("companies", "robots")

# Never accepted as pass-through fields
RESERVED_FIELDS = frozenset({
    "_id", "id", "__v", "icon", "extra",
    "createdAt", "updatedAt", "created_at", "updated_at",
})

SORTABLE_FIELDS = {
    "createdAt": County.created_at,
    "created_at": County.created_at,
    "updatedAt": County.updated_at,
    "updated_at": County.updated_at,
    "name": County.name,
    "slug": County.slug,
    "excerpt": County.excerpt,
}
DEFAULT_SORT_FIELD = "createdAt"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _escape_like(term: str) -> str:
    """Escape LIKE wildcards so the search text matches literally."""
    return term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def _text_field(payload: Mapping[str, Any], field: str, required: bool) -> str:
    value = payload.get(field)
    if not isinstance(value, str):
        raise ValidationError(message="All fields are required.", field=field)
    value = value.strip()
    if required and not value:
        raise ValidationError(message="All fields are required.", field=field)
    return value


def _pass_through(payload: Mapping[str, Any]) -> Dict[str, Any]:
    """Body fields without a column of their own."""
    return {
        key: value
        for key, value in payload.items()
        if key not in REQUIRED_FIELDS
        and key not in STRUCTURED_FIELDS
        and key not in RESERVED_FIELDS
    }


def _validate_companies(value: Any) -> List[Dict[str, Any]]:
    if not isinstance(value, list):
        raise ValidationError(
            message="companies must be a list of {companyId, ...} objects.",
            field="companies",
        )
    companies = []
    for entry in value:
        try:
            ref = CompanyReference.model_validate(entry)
        except PydanticValidationError as e:
            raise ValidationError(
                message="Each companies entry needs a valid companyId.",
                field="companies",
                context={"errors": e.errors(include_url=False)},
            ) from e
        companies.append(ref.model_dump(mode="json"))
    return companies


def _validate_robots(value: Any) -> Dict[str, Any]:
    if not isinstance(value, dict):
        raise ValidationError(message="robots must be an object.", field="robots")
    return value


def _to_data(county: County, companies: Optional[List[Dict[str, Any]]] = None) -> CountyData:
    """Flatten a County row (plus pass-through fields) into the API shape."""
    document: Dict[str, Any] = dict(county.extra or {})
    document.update(
        _id=county.id,
        name=county.name,
        slug=county.slug,
        excerpt=county.excerpt,
        icon=county.icon,
        companies=companies if companies is not None else list(county.companies or []),
        robots=dict(county.robots or {}),
        createdAt=county.created_at,
        updatedAt=county.updated_at,
    )
    return CountyData.model_validate(document)


class CountyService:
    """
    Business logic layer for county operations.

    Error Handling Strategy:
        Application errors (ValidationError, ConflictError, NotFoundError)
        propagate unchanged. Unique constraint violations become
        ConflictError. Anything else raised by the store is wrapped in
        DatabaseError carrying the original message.
    """

    def _decode_structured(self, payload: Mapping[str, Any]) -> Dict[str, Any]:
        """Decoded and validated companies/robots present in the payload."""
        decoded: Dict[str, Any] = {}
        if payload.get("companies") is not None:
            result = decode_companies(payload["companies"])
            decoded["companies"] = _validate_companies(result.value)
        if payload.get("robots") is not None:
            result = decode_robots(payload["robots"])
            decoded["robots"] = _validate_robots(result.value)
        return decoded

    async def _store_icon(self, icon: Optional[IconUpload]) -> Optional[StoredFile]:
        if icon is None:
            return None
        return await file_service.validate_and_store(icon)

    async def _discard_icon(self, stored: Optional[StoredFile]) -> None:
        if stored is not None:
            await file_service.cleanup_file(stored.absolute_path)

    async def _get_or_404(self, db: AsyncSession, county_id: uuid.UUID) -> County:
        result = await db.execute(select(County).where(County.id == county_id))
        county = result.scalar_one_or_none()
        if county is None:
            raise NotFoundError(resource="County", resource_id=str(county_id))
        return county

    async def create_county(
        self,
        db: AsyncSession,
        payload: Mapping[str, Any],
        icon: Optional[IconUpload] = None,
    ) -> CountyEnvelope:
        """
        Create a county.

        Args:
            db: Async database session
            payload: Body fields (JSON object or form fields)
            icon: Uploaded icon, if the request carried one

        Raises:
            ValidationError: name/slug/excerpt missing, malformed companies/robots,
                             rejected icon
            ConflictError: name or slug already taken
            DatabaseError: store failure
        """
        name = _text_field(payload, "name", required=True)
        slug = _text_field(payload, "slug", required=True)
        excerpt = _text_field(payload, "excerpt", required=True)
        structured = self._decode_structured(payload)
        extra = _pass_through(payload)

        stored: Optional[StoredFile] = None
        try:
            existing = await db.execute(
                select(County.id)
                .where(or_(County.name == name, County.slug == slug))
                .limit(1)
            )
            if existing.scalar_one_or_none() is not None:
                raise ConflictError(context={"name": name, "slug": slug})

            stored = await self._store_icon(icon)
            county = County(
                name=name,
                slug=slug,
                excerpt=excerpt,
                icon=stored.public_path if stored else None,
                companies=structured.get("companies", []),
                robots=structured.get("robots", {}),
                extra=extra,
            )
            db.add(county)
            await db.flush()
            logger.info("County created: %s (slug=%s)", county.id, county.slug)
            return CountyEnvelope(message="County created successfully.", data=_to_data(county))

        except CountyAPIError:
            await self._discard_icon(stored)
            raise
        except IntegrityError as e:
            await self._discard_icon(stored)
            await db.rollback()
            raise ConflictError(context={"name": name, "slug": slug}) from e
        except Exception as e:
            await self._discard_icon(stored)
            logger.error("Unexpected error in create_county: %s", str(e), exc_info=True)
            raise DatabaseError(
                message=str(e),
                context={"original_error": type(e).__name__},
            ) from e

    async def list_counties(
        self,
        db: AsyncSession,
        page: int = 1,
        limit: int = 10,
        search: Optional[str] = None,
        sort_by: Optional[str] = None,
        sort_order: Optional[str] = None,
    ) -> CountyListEnvelope:
        """
        Offset-paginated listing with optional text search.

        Query plan:
            SELECT count(*) FROM counties WHERE <search>
            SELECT * FROM counties WHERE <search>
            ORDER BY <sort> <dir>, id <dir> OFFSET (page-1)*limit LIMIT limit

        Args:
            page: 1-based page number
            limit: Page size
            search: Case-insensitive substring matched against name, slug, excerpt
            sort_by: Field to sort on; unknown fields fall back to createdAt
            sort_order: "asc" for ascending, anything else descending
        """
        try:
            conditions = []
            if search:
                pattern = f"%{_escape_like(search)}%"
                conditions.append(or_(
                    County.name.ilike(pattern, escape="\\"),
                    County.slug.ilike(pattern, escape="\\"),
                    County.excerpt.ilike(pattern, escape="\\"),
                ))

            sort_field = sort_by or DEFAULT_SORT_FIELD
            sort_column = SORTABLE_FIELDS.get(sort_field)
            if sort_column is None:
                logger.warning("Unsupported sortBy '%s', using %s", sort_field, DEFAULT_SORT_FIELD)
                sort_column = SORTABLE_FIELDS[DEFAULT_SORT_FIELD]
            direction = asc if sort_order == "asc" else desc

            count_query = select(func.count(County.id))
            query = select(County)
            if conditions:
                count_query = count_query.where(*conditions)
                query = query.where(*conditions)

            total = (await db.execute(count_query)).scalar() or 0

            query = (
                query.order_by(direction(sort_column), direction(County.id))
                .offset((page - 1) * limit)
                .limit(limit)
            )
            counties = list((await db.execute(query)).scalars().all())

            return CountyListEnvelope(
                message="Counties fetched successfully.",
                currentPage=page,
                totalPages=math.ceil(total / limit),
                totalCounties=total,
                data=[_to_data(county) for county in counties],
            )

        except Exception as e:
            logger.error("Database error listing counties: %s", str(e), exc_info=True)
            raise DatabaseError(
                message=str(e),
                context={"error_type": type(e).__name__},
            ) from e

    async def list_all_counties(self, db: AsyncSession) -> CountyCollectionEnvelope:
        """Every county, oldest first, without filtering or pagination."""
        try:
            result = await db.execute(
                select(County).order_by(asc(County.created_at), asc(County.id))
            )
            counties = list(result.scalars().all())
        except Exception as e:
            logger.error("Database error listing all counties: %s", str(e), exc_info=True)
            raise DatabaseError(message=str(e), context={"error_type": type(e).__name__}) from e

        return CountyCollectionEnvelope(
            message="Counties fetched successfully.",
            data=[_to_data(county) for county in counties],
        )

    async def _expand_companies(
        self,
        db: AsyncSession,
        companies: List[Dict[str, Any]],
    ) -> List[Dict[str, Any]]:
        """
        Replace each `companyId` with {_id, companyName}, or None when the
        company does not exist (or the stored id is malformed).
        """
        ids = {}
        for entry in companies:
            try:
                ids[entry.get("companyId")] = uuid.UUID(str(entry.get("companyId")))
            except ValueError:
                continue

        names: Dict[uuid.UUID, str] = {}
        if ids:
            result = await db.execute(
                select(Company.id, Company.company_name).where(Company.id.in_(set(ids.values())))
            )
            names = {row.id: row.company_name for row in result}

        expanded = []
        for entry in companies:
            company_id = ids.get(entry.get("companyId"))
            summary = None
            if company_id in names:
                summary = CompanySummary(id=company_id, companyName=names[company_id]).model_dump(
                    mode="json", by_alias=True
                )
            expanded.append({**entry, "companyId": summary})
        return expanded

    async def get_county(self, db: AsyncSession, county_id: uuid.UUID) -> CountyEnvelope:
        """
        Retrieve a single county with its company references expanded.

        Raises:
            NotFoundError: no county with this id (→ 404)
            DatabaseError: query failed (→ 500)
        """
        try:
            county = await self._get_or_404(db, county_id)
            companies = await self._expand_companies(db, list(county.companies or []))
            return CountyEnvelope(
                message="County fetched successfully.",
                data=_to_data(county, companies=companies),
            )
        except NotFoundError:
            raise
        except Exception as e:
            logger.error("Database error fetching county %s: %s", county_id, str(e))
            raise DatabaseError(message=str(e), context={"county_id": str(county_id)}) from e

    async def update_county(
        self,
        db: AsyncSession,
        county_id: uuid.UUID,
        payload: Mapping[str, Any],
        icon: Optional[IconUpload] = None,
    ) -> CountyEnvelope:
        """
        Partially update a county.

        Only fields present in the payload change. A body `icon` value is
        ignored: the icon only changes when a new file is uploaded.
        Pass-through fields are merged into the existing ones.

        Raises:
            NotFoundError: no county with this id
            ValidationError: blank name/slug, malformed companies/robots, rejected icon
            ConflictError: name or slug taken by another county
            DatabaseError: store failure
        """
        changes: Dict[str, Any] = {}
        for field in REQUIRED_FIELDS:
            if payload.get(field) is not None:
                changes[field] = _text_field(payload, field, required=field != "excerpt")
        changes.update(self._decode_structured(payload))
        extra = _pass_through(payload)

        stored: Optional[StoredFile] = None
        try:
            county = await self._get_or_404(db, county_id)

            stored = await self._store_icon(icon)
            if stored is not None:
                county.icon = stored.public_path

            for field, value in changes.items():
                setattr(county, field, value)
            if extra:
                county.extra = {**(county.extra or {}), **extra}
            county.updated_at = _utcnow()

            await db.flush()
            logger.info("County updated: %s (fields=%s)", county.id, sorted(changes) + sorted(extra))
            return CountyEnvelope(message="County updated successfully.", data=_to_data(county))

        except CountyAPIError:
            await self._discard_icon(stored)
            raise
        except IntegrityError as e:
            await self._discard_icon(stored)
            await db.rollback()
            raise ConflictError(context={"county_id": str(county_id)}) from e
        except Exception as e:
            await self._discard_icon(stored)
            logger.error("Unexpected error updating county %s: %s", county_id, str(e), exc_info=True)
            raise DatabaseError(message=str(e), context={"county_id": str(county_id)}) from e

    async def delete_county(self, db: AsyncSession, county_id: uuid.UUID) -> CountyEnvelope:
        """
        Hard-delete a county and return the data it held.

        The icon file stays on disk.
        """
        try:
            county = await self._get_or_404(db, county_id)
            data = _to_data(county)
            await db.delete(county)
            await db.flush()
            logger.info("County deleted: %s (slug=%s)", county_id, data.slug)
            return CountyEnvelope(message="County deleted successfully", data=data)
        except NotFoundError:
            raise
        except Exception as e:
            logger.error("Database error deleting county %s: %s", county_id, str(e))
            raise DatabaseError(message=str(e), context={"county_id": str(county_id)}) from e


# ── Singleton Instance ────────────────────────────────────────────────────
county_service = CountyService()
