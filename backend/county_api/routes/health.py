"""
County Directory Backend: Health Check Route
==============================================

What:  GET /health for load balancer probes and monitoring.
How:   Runs SELECT 1 against the database and checks that the uploads
       directory is writable.

Status levels:
    - healthy:   database reachable, uploads writable (HTTP 200)
    - degraded:  database reachable, icon uploads would fail (HTTP 200)
    - unhealthy: database unreachable (HTTP 503)
"""

import logging
import os
import time

from fastapi import APIRouter, Response
from sqlalchemy import text

from county_api import __version__
from county_api.database import engine
from county_api.schemas.county import HealthResponse
from county_api.services.file_service import file_service

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Health"])

_start_time = time.time()


async def _database_status() -> str:
    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
    except Exception as e:
        logger.warning("Health check: database unreachable: %s", str(e))
        return "disconnected"
    return "connected"


def _storage_status() -> str:
    uploads = file_service.uploads_dir
    if uploads.is_dir() and os.access(uploads, os.W_OK):
        return "writable"
    logger.warning("Health check: uploads directory not writable: %s", uploads)
    return "unavailable"


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Service health check",
    responses={503: {"description": "Database unreachable", "model": HealthResponse}},
)
async def health_check(response: Response) -> HealthResponse:
    db_status = await _database_status()
    storage_status = _storage_status()

    if db_status != "connected":
        overall = "unhealthy"
        response.status_code = 503
    elif storage_status != "writable":
        overall = "degraded"
    else:
        overall = "healthy"

    return HealthResponse(
        status=overall,
        version=__version__,
        database=db_status,
        storage=storage_status,
        uptime_seconds=round(time.time() - _start_time, 2),
    )
