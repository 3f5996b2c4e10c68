"""
County Directory Backend: Uploaded File Route
===============================================

What:  GET /uploads/{filename} serves stored county icons.
Who:   <img> tags pointing at a county's `icon` path.

Paths are resolved inside <storage_root>/uploads only; anything that would
escape it is rejected.
"""

import logging

from fastapi import APIRouter
from fastapi.responses import FileResponse

from county_api.exceptions import NotFoundError
from county_api.schemas.county import ErrorResponse
from county_api.services.file_service import file_service

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Files"])


@router.get(
    "/uploads/{filename}",
    summary="Serve an uploaded county icon",
    responses={
        200: {"description": "Icon file"},
        404: {"description": "File not found", "model": ErrorResponse},
    },
)
async def serve_upload(filename: str) -> FileResponse:
    full_path = file_service.resolve_upload(filename)
    if not full_path.is_file():
        raise NotFoundError(resource="File", resource_id=filename)

    # media type is guessed from the extension
    return FileResponse(
        path=str(full_path),
        headers={"Cache-Control": "public, max-age=86400"},
    )
