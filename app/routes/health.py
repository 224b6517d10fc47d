"""
app/routes/health.py – liveness and readiness endpoints.
"""
from __future__ import annotations

import logging

from fastapi import APIRouter

from app.config import settings
from app.errors import StorageError
from app.models import HealthResponse, ReadinessResponse
from app.services.storage import get_record_store

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Health"])


@router.get(
    "/healthz",
    response_model=HealthResponse,
    summary="Liveness probe",
    description="Returns 200 as long as the application process is running.",
)
async def healthz() -> HealthResponse:
    return HealthResponse(
        status="ok",
        version=settings.app_version,
        model=settings.gemini_generation_model,
        gemini_key_configured=bool(settings.gemini_api_key),
    )


@router.get(
    "/readyz",
    response_model=ReadinessResponse,
    summary="Readiness probe",
    description=(
        "Returns 200 when the service is ready to handle requests. "
        "Checks that the record store answers. A missing Gemini key is "
        "reported but does not block readiness: ad copy falls back to "
        "static content."
    ),
)
async def readyz() -> ReadinessResponse:
    checks: dict = {}

    checks["gemini_api_key_configured"] = bool(settings.gemini_api_key)
    checks["semrush_api_key_configured"] = bool(settings.semrush_api_key)
    checks["planning_model"] = settings.gemini_planning_model or "NOT SET"
    checks["generation_model"] = settings.gemini_generation_model or "NOT SET"

    # Check storage backend
    checks["storage_backend"] = settings.storage_backend
    try:
        storage_ok = get_record_store().ping()
    except (StorageError, ValueError) as exc:
        logger.warning("Record store not ready", extra={"error": str(exc)})
        storage_ok = False
    checks["storage_ok"] = storage_ok

    return ReadinessResponse(ready=storage_ok, checks=checks)
