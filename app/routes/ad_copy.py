"""
app/routes/ad_copy.py – ad copy generation, normalization and validation endpoints.
"""
from __future__ import annotations

import logging
import random
import uuid
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Request, status

from app.errors import RecordNotFoundError, StorageError
from app.models import (
    AdCopyRequest,
    AdCopyResponse,
    BandSpec,
    NormalizeRequest,
    NormalizeResponse,
    ValidationIssue,
    ValidationResponse,
)
from app.services.gemini_client import GeminiClient, get_optional_gemini_client
from app.services.normalizer import LengthBand, normalize
from app.services.orchestrator import BANDS, generate_ad_copy
from app.services.semrush import SemrushClient, get_semrush_client
from app.services.storage import RecordStore, get_record_store
from app.services.validators import validate_ad_copy_request

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1/ad-copy", tags=["Ad Copy"])


def _get_request_id(request: Request) -> str:
    return request.state.request_id if hasattr(request.state, "request_id") else str(uuid.uuid4())


def _error_detail(issues: list[ValidationIssue]) -> list[dict]:
    return [
        {"field": i.field, "message": i.message, "suggestion": i.suggestion}
        for i in issues
    ]


# ── Routes ────────────────────────────────────────────────────────────────────


@router.post(
    "/generate",
    response_model=AdCopyResponse,
    status_code=status.HTTP_200_OK,
    summary="Generate Google Ads headlines, descriptions and paths",
    description=(
        "Runs the two-pass workflow: optional keyword research, a planning pass "
        "that writes the copy strategy, and a generation pass that writes the "
        "assets. Every list is normalized to its length band, so the response "
        "always holds 11 headlines (25–30 chars), 4 descriptions (85–90 chars) "
        "and 2 paths. When the model is unavailable the response carries "
        "fallback copy and `source` is `fallback`."
    ),
    responses={
        200: {"description": "Ad copy generated (from the model or the fallback)."},
        404: {"description": "`ad_group_id` does not exist."},
        422: {"description": "Validation error in the request payload."},
        503: {"description": "Storage unavailable."},
    },
)
async def generate(
    payload: AdCopyRequest,
    request: Request,
    client: Optional[GeminiClient] = Depends(get_optional_gemini_client),
    provider: Optional[SemrushClient] = Depends(get_semrush_client),
    store: RecordStore = Depends(get_record_store),
) -> AdCopyResponse:
    request_id = _get_request_id(request)
    logger.info(
        "POST /ad-copy/generate",
        extra={"request_id": request_id, "client_name": payload.client.name},
    )

    _, issues = validate_ad_copy_request(payload)
    errors = [i for i in issues if i.severity == "error"]
    if errors:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=_error_detail(errors),
        )

    if payload.ad_group_id:
        try:
            store.get_ad_group(payload.ad_group_id)
        except RecordNotFoundError as exc:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
        except StorageError as exc:
            raise HTTPException(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc)
            ) from exc

    try:
        return generate_ad_copy(
            req=payload,
            request_id=request_id,
            client=client,
            provider=provider,
            store=store,
        )
    except Exception as exc:
        logger.exception(
            "Unexpected error during ad copy generation",
            extra={"request_id": request_id},
        )
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Ad copy generation failed. Please retry.",
        ) from exc


@router.post(
    "/normalize",
    response_model=NormalizeResponse,
    status_code=status.HTTP_200_OK,
    summary="Force candidate strings into a length band",
    description=(
        "Returns exactly `count` strings, each between `min_length` and "
        "`max_length` characters. Pass `band` for an explicit range or "
        "`preset` for the Google Ads headline, description or path band. "
        "`seed` makes placeholder selection reproducible. No LLM call."
    ),
)
async def normalize_candidates(
    payload: NormalizeRequest,
    request: Request,
) -> NormalizeResponse:
    request_id = _get_request_id(request)

    if payload.band is not None:
        spec = payload.band
        band = LengthBand(
            spec.count,
            spec.min_length,
            spec.max_length,
            kind=spec.kind.value if spec.kind else None,
        )
    else:
        band = BANDS[payload.preset.value]
        spec = BandSpec(
            count=band.count,
            min_length=band.min_length,
            max_length=band.max_length,
            kind=band.kind,
        )

    logger.info(
        "POST /ad-copy/normalize",
        extra={
            "request_id": request_id,
            "candidates": len(payload.candidates),
            "band": f"{band.count}x{band.min_length}-{band.max_length}",
        },
    )

    rng = random.Random(payload.seed) if payload.seed is not None else None
    result = normalize(payload.candidates, band, context=payload.context, rng=rng)
    return NormalizeResponse(result=result, band=spec)


@router.post(
    "/validate",
    response_model=ValidationResponse,
    status_code=status.HTTP_200_OK,
    summary="Validate an ad copy request",
    description=(
        "Resolves the campaign variant and checks the client, campaign and ad "
        "group context WITHOUT generating copy. Fast and free."
    ),
)
async def validate(
    payload: AdCopyRequest,
    request: Request,
) -> ValidationResponse:
    request_id = _get_request_id(request)
    logger.info("POST /ad-copy/validate", extra={"request_id": request_id})

    variant, issues = validate_ad_copy_request(payload)

    recommendations: list[str] = []
    if not issues:
        recommendations.append("Request appears complete. Ready to generate.")
    else:
        error_count = sum(1 for i in issues if i.severity == "error")
        warn_count = sum(1 for i in issues if i.severity == "warning")
        if error_count:
            recommendations.append(
                f"Fix {error_count} error(s) before generating to avoid failures."
            )
        if warn_count:
            recommendations.append(
                f"Address {warn_count} warning(s) to improve output quality."
            )

    return ValidationResponse(
        valid=not any(i.severity == "error" for i in issues),
        variant=variant,
        issues=issues,
        recommendations=recommendations,
    )

