"""
County Directory Backend: County Route Handlers
=================================================

What:  The county resource under /api/counties.
How:   Parses the request (JSON or multipart/form-data, query strings),
       delegates to CountyService, returns the response envelope.
Who:   Called by the admin frontend.

Route Inventory:
    POST   /api/counties            create (optional `icon` file)
    GET    /api/counties            paginated list with search and sort
    GET    /api/counties/all        every county, unpaginated
    GET    /api/counties/{id}       detail, company references expanded
    PUT    /api/counties/{id}       partial update (optional new `icon` file)
    DELETE /api/counties/{id}       delete, returns the removed county
"""

import logging
from typing import Any, Dict, Optional, Tuple
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.datastructures import UploadFile

from county_api.config import settings
from county_api.database import get_db_session
from county_api.exceptions import ValidationError
from county_api.schemas.county import (
    CountyCollectionEnvelope,
    CountyEnvelope,
    CountyListEnvelope,
    ErrorResponse,
)
from county_api.services.county_service import county_service
from county_api.services.file_service import IconUpload

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/counties", tags=["Counties"])

ERROR_RESPONSES = {
    400: {"description": "Invalid input or duplicate name/slug", "model": ErrorResponse},
    500: {"description": "Server error", "model": ErrorResponse},
}
NOT_FOUND_RESPONSE = {404: {"description": "County not found", "model": ErrorResponse}}

STRUCTURED_FIELDS_NOTE = (
    "`companies` and `robots` may be sent as JSON text. Text that is not valid "
    "JSON is stored as an empty list / object; valid JSON of the wrong shape "
    "(e.g. `companies=\"null\"`, `robots=\"[1]\"`) is rejected with 400."
)

# Shown in the OpenAPI document; the handlers read the body themselves
COUNTY_BODY = {
    "requestBody": {
        "content": {
            "application/json": {"schema": {"type": "object"}},
            "multipart/form-data": {
                "schema": {
                    "type": "object",
                    "properties": {
                        "name": {"type": "string"},
                        "slug": {"type": "string"},
                        "excerpt": {"type": "string"},
                        "companies": {"type": "string", "description": "JSON-encoded list"},
                        "robots": {"type": "string", "description": "JSON-encoded object"},
                        "icon": {"type": "string", "format": "binary"},
                    },
                },
            },
        },
    },
}


async def read_county_body(request: Request) -> Tuple[Dict[str, Any], Optional[IconUpload]]:
    """
    Extract body fields and the optional icon upload.

    JSON bodies must be objects. Form bodies may carry one file; a file part
    without a filename and without content (what browsers send for an
    untouched file input) counts as no upload.
    """
    content_type = request.headers.get("content-type", "")

    if content_type.startswith("application/json"):
        try:
            body = await request.json()
        except ValueError:
            raise ValidationError(message="Request body is not valid JSON.")
        if not isinstance(body, dict):
            raise ValidationError(message="Request body must be a JSON object.")
        return body, None

    form = await request.form()
    payload: Dict[str, Any] = {}
    icon: Optional[IconUpload] = None
    for key, value in form.multi_items():
        if isinstance(value, UploadFile):
            try:
                content = await value.read()
            finally:
                await value.close()
            if not value.filename and not content:
                continue
            if icon is not None:
                raise ValidationError(message="Only one icon file can be uploaded.", field=key)
            icon = IconUpload(
                filename=value.filename or "",
                content=content,
                content_length=value.size,
            )
        else:
            payload[key] = value
    return payload, icon


def _positive_int(raw: Optional[str], default: int) -> int:
    """
    Lenient integer parsing: missing, non-numeric or < 1 → default.

    The whole value must be an integer; "2abc" or "1.5" count as
    non-numeric and give the default rather than their leading digits.
    """
    try:
        value = int(raw) if raw is not None else default
    except ValueError:
        return default
    return value if value >= 1 else default


@router.post(
    "",
    status_code=201,
    response_model=CountyEnvelope,
    responses=ERROR_RESPONSES,
    summary="Create a county",
    description=STRUCTURED_FIELDS_NOTE,
    openapi_extra=COUNTY_BODY,
)
async def create_county(
    request: Request,
    db: AsyncSession = Depends(get_db_session),
) -> CountyEnvelope:
    payload, icon = await read_county_body(request)
    logger.info(
        "Create county request: slug=%s, icon=%s",
        payload.get("slug"),
        icon.filename if icon else None,
    )
    return await county_service.create_county(db=db, payload=payload, icon=icon)


@router.get(
    "",
    response_model=CountyListEnvelope,
    responses={500: ERROR_RESPONSES[500]},
    summary="List counties with pagination, search and sorting",
)
async def list_counties(
    page: str | None = Query(default=None, description="1-based page number (default 1)"),
    limit: str | None = Query(default=None, description="Page size (default 10)"),
    search: str | None = Query(
        default=None,
        description="Case-insensitive match against name, slug or excerpt",
    ),
    sort_by: str | None = Query(default=None, alias="sortBy", description="Sort field (default createdAt)"),
    sort_order: str | None = Query(
        default=None,
        alias="sortOrder",
        description="'asc' for ascending; anything else sorts descending",
    ),
    db: AsyncSession = Depends(get_db_session),
) -> CountyListEnvelope:
    return await county_service.list_counties(
        db=db,
        page=_positive_int(page, 1),
        limit=_positive_int(limit, settings.default_page_size),
        search=search,
        sort_by=sort_by,
        sort_order=sort_order,
    )


# Declared before /{county_id} so "all" is not parsed as an id
@router.get(
    "/all",
    response_model=CountyCollectionEnvelope,
    responses={500: ERROR_RESPONSES[500]},
    summary="List every county",
)
async def list_all_counties(
    db: AsyncSession = Depends(get_db_session),
) -> CountyCollectionEnvelope:
    return await county_service.list_all_counties(db=db)


@router.get(
    "/{county_id}",
    response_model=CountyEnvelope,
    responses={**NOT_FOUND_RESPONSE, 500: ERROR_RESPONSES[500]},
    summary="Get a county by id",
)
async def get_county(
    county_id: UUID,
    db: AsyncSession = Depends(get_db_session),
) -> CountyEnvelope:
    return await county_service.get_county(db=db, county_id=county_id)


@router.put(
    "/{county_id}",
    response_model=CountyEnvelope,
    responses={**ERROR_RESPONSES, **NOT_FOUND_RESPONSE},
    summary="Update a county",
    description=(
        "Partial update: only supplied fields change. The icon changes only when "
        "a new file is uploaded; an `icon` body field is ignored. "
        + STRUCTURED_FIELDS_NOTE
    ),
    openapi_extra=COUNTY_BODY,
)
async def update_county(
    county_id: UUID,
    request: Request,
    db: AsyncSession = Depends(get_db_session),
) -> CountyEnvelope:
    payload, icon = await read_county_body(request)
    return await county_service.update_county(db=db, county_id=county_id, payload=payload, icon=icon)


@router.delete(
    "/{county_id}",
    response_model=CountyEnvelope,
    responses={**NOT_FOUND_RESPONSE, 500: ERROR_RESPONSES[500]},
    summary="Delete a county",
)
async def delete_county(
    county_id: UUID,
    db: AsyncSession = Depends(get_db_session),
) -> CountyEnvelope:
    return await county_service.delete_county(db=db, county_id=county_id)
