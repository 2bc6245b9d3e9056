"""
Liveness and readiness checks.

/health answers as long as the process is up. /health/ready also checks
configuration, the catalog database, object storage and the YouTube key,
and answers 503 when any of them would make real requests fail.
"""

import logging
from typing import Any

from fastapi import APIRouter, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from ... import __version__
from ...infrastructure.snowflake.repositories import VideoRepository
from ..dependencies import SettingsDep, get_storage_client, open_catalog_connection

logger = logging.getLogger(__name__)

router = APIRouter()


class HealthResponse(BaseModel):
    status: str
    version: str
    details: dict[str, Any] = {}


class ReadinessCheck(BaseModel):
    name: str
    status: str  # "ok" or "error"
    error: str | None = None


class ReadinessResponse(BaseModel):
    status: str  # "ready" or "not_ready"
    version: str
    checks: list[ReadinessCheck]


@router.get(
    "",
    response_model=HealthResponse,
    summary="Liveness check",
    description="200 while the process is running. Touches no external service.",
)
async def health_check(settings: SettingsDep) -> HealthResponse:
    return HealthResponse(
        status="ok",
        version=__version__,
        details={
            "mock_mode": {
                "snowflake": settings.snowflake_mock_mode,
                "r2": settings.r2_mock_mode,
            }
        }
    )


@router.get(
    "/ready",
    response_model=ReadinessResponse,
    summary="Readiness check",
    description="200 when catalog, storage and search dependencies are usable, 503 otherwise.",
    responses={503: {"description": "Service not ready", "model": ReadinessResponse}},
)
async def readiness_check(settings: SettingsDep):
    missing_fields = settings.validate_required_fields()
    checks = [
        ReadinessCheck(
            name="configuration",
            status="error" if missing_fields else "ok",
            error=f"Missing required fields: {', '.join(missing_fields)}" if missing_fields else None,
        )
    ]

    # Connecting happens inside the check so a down warehouse reports 503
    try:
        with open_catalog_connection(settings) as conn:
            VideoRepository(conn).list_public(limit=1)
        checks.append(ReadinessCheck(name="database", status="ok"))
    except Exception as e:
        logger.error("Database readiness check failed", extra={"error": str(e)})
        checks.append(ReadinessCheck(name="database", status="error", error=str(e)))

    # Presigning is local, so a client that can be built can sign
    try:
        get_storage_client(settings)
        checks.append(ReadinessCheck(name="storage", status="ok"))
    except Exception as e:
        logger.error("Storage readiness check failed", extra={"error": str(e)})
        checks.append(ReadinessCheck(name="storage", status="error", error=str(e)))

    checks.append(ReadinessCheck(
        name="youtube",
        status="ok" if settings.youtube_api_key else "error",
        error=None if settings.youtube_api_key else "API key not configured",
    ))

    ready = all(check.status == "ok" for check in checks)
    response = ReadinessResponse(
        status="ready" if ready else "not_ready",
        version=__version__,
        checks=checks,
    )

    if not ready:
        logger.warning(
            "Readiness check failed",
            extra={"failed": [c.name for c in checks if c.status != "ok"]}
        )
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content=response.model_dump(),
        )

    return response
