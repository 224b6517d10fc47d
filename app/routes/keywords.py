"""
app/routes/keywords.py – keyword research endpoint.
"""
from __future__ import annotations

import logging
import uuid
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Request, status

from app.errors import KeywordProviderError, describe_provider_error
from app.models import KeywordResearch, KeywordResearchRequest
from app.services.gemini_client import GeminiClient, get_gemini_client
from app.services.keyword_research import research_keywords
from app.services.semrush import SemrushClient, get_semrush_client

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1/keywords", tags=["Keywords"])


def _get_request_id(request: Request) -> str:
    return request.state.request_id if hasattr(request.state, "request_id") else str(uuid.uuid4())


def _gemini_or_503() -> GeminiClient:
    try:
        return get_gemini_client()
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc)) from exc


@router.post(
    "/research",
    response_model=KeywordResearch,
    status_code=status.HTTP_200_OK,
    summary="Research keywords for a client, campaign and ad group",
    description=(
        "Gemini turns the context into seed keywords, Semrush returns volume, "
        "CPC and competition for each seed, and the results come back bucketed "
        "with primary, long-tail and branded recommendations. Results are cached."
    ),
    responses={
        502: {"description": "Semrush failed for every seed term."},
        503: {"description": "Gemini or Semrush is not configured, or Gemini failed."},
    },
)
async def research(
    payload: KeywordResearchRequest,
    request: Request,
    client: GeminiClient = Depends(_gemini_or_503),
    provider: Optional[SemrushClient] = Depends(get_semrush_client),
) -> KeywordResearch:
    request_id = _get_request_id(request)
    logger.info(
        "POST /keywords/research",
        extra={"request_id": request_id, "client_name": payload.client.name},
    )

    if provider is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="SEMRUSH_API_KEY is not set. Keyword research is unavailable.",
        )

    try:
        return research_keywords(payload, client, provider)
    except KeywordProviderError as exc:
        logger.error(
            "Keyword provider failed",
            extra={"request_id": request_id, "error": str(exc), "status_code": exc.status_code},
        )
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail=describe_provider_error(exc),
        ) from exc
    except Exception as exc:
        logger.exception("Keyword research failed", extra={"request_id": request_id})
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=describe_provider_error(exc),
        ) from exc
