"""
app/services/orchestrator.py – two-pass ad copy generation workflow.

Phases
──────
0. Research   – optional keyword research (failures become notices).
1. Planning   – free-text strategy from the planning model.
2. Generation – headlines, descriptions and paths as JSON from the generation model.
3. Normalize  – every list forced into its length band.
4. Review     – Google Ads policy checks, reported as notices.

Any LLM failure, or a missing LLM client, switches to a static fallback
payload that goes through the same normalization, so callers always get a
complete, compliant ad.
"""
from __future__ import annotations

import logging
import random
import time
from typing import Any, Optional

from app.config import settings
from app.errors import StorageError, describe_provider_error
from app.models import (
    AdCopyRequest,
    AdCopyResponse,
    AdCreate,
    CampaignVariant,
    ClientInfo,
    CopySource,
    KeywordResearch,
    KeywordResearchRequest,
    PhaseTimings,
    ResponseMetadata,
)
from app.services import prompting
from app.services.extraction import extract_candidates
from app.services.gemini_client import GeminiClient
from app.services.keyword_research import KeywordProvider, research_keywords
from app.services.normalizer import (
    DESCRIPTION_BAND,
    HEADLINE_BAND,
    PATH_BAND,
    LengthBand,
    normalize,
)
from app.services.storage import RecordStore
from app.services.validators import run_ad_rules

logger = logging.getLogger(__name__)

FALLBACK_MODEL = "static-fallback"

BANDS: dict[str, LengthBand] = {
    "headlines": HEADLINE_BAND,
    "descriptions": DESCRIPTION_BAND,
    "paths": PATH_BAND,
}


def _ms(start: float) -> float:
    return round((time.perf_counter() - start) * 1000, 1)


# ── Helpers ───────────────────────────────────────────────────────────────────


def context_terms(req: AdCopyRequest) -> list[str]:
    """Campaign terms that steer suffix and placeholder choice in the normalizer."""
    client = req.client
    terms = [client.industry, client.geographic_targeting, client.unique_selling_points]
    if req.ad_group is not None:
        terms.insert(0, req.ad_group.name)
    return [t.strip() for t in terms if t and t.strip()]


def rank_candidates(candidates: list[Any], band: LengthBand) -> list[Any]:
    """
    Drop case-insensitive duplicates and move in-band strings to the front.

    Order is otherwise preserved, so the model's own ranking survives.
    """
    seen: set[str] = set()
    unique: list[Any] = []
    for candidate in candidates:
        if isinstance(candidate, str):
            key = candidate.strip().lower()
            if not key or key in seen:
                continue
            seen.add(key)
        unique.append(candidate)
    fitting = [c for c in unique if isinstance(c, str) and band.fits(c)]
    rest = [c for c in unique if not (isinstance(c, str) and band.fits(c))]
    return fitting + rest


def fallback_candidates(client: ClientInfo) -> dict[str, list[str]]:
    """Static, keyword-first ad copy customised with location and call to action."""
    location = client.geographic_targeting.split(",")[0].strip() or "Downtown"
    cta = (client.call_to_action or "Schedule a tour today").split(",")[0].strip()
    return {
        "headlines": [
            "Luxury Apartments Available",
            f"{location} Apartments For Rent",
            "Brand New Apartments Now Open",
            "Apartments Near Top Schools",
            "Downtown Apartments For Rent",
            "Luxury Rentals With Amenities",
            "Spacious Units Available Now",
            "Modern Apartment Living Here",
            "Premium Apartments For Rent",
            "Quality Apartment Homes Ready",
            "Professional Management Team",
        ],
        "descriptions": [
            f"Find luxury apartments with modern amenities in a prime location. {cta[:30]}.",
            "Discover apartments for rent with premium features and convenient access. Contact us now.",
            "Brand new apartments available with luxury amenities and professional management services.",
            "Modern apartment community designed for contemporary living. Schedule your tour today.",
        ],
        "paths": ["apartments", location.lower().replace(" ", "-")],
    }


def _lists_from_generation(result: dict[str, Any]) -> dict[str, list[Any]]:
    parsed = result.get("parsed")
    text = result.get("text") or ""
    lists: dict[str, list[Any]] = {}
    for field, band in BANDS.items():
        values = parsed.get(field) if isinstance(parsed, dict) else None
        if isinstance(values, list) and values:
            lists[field] = values
        else:
            lists[field] = extract_candidates(text, field, band)
    return lists


def _normalize_all(
    candidates: dict[str, list[Any]],
    terms: list[str],
    rng: Optional[random.Random],
) -> dict[str, list[str]]:
    return {
        field: normalize(rank_candidates(candidates.get(field, []), band), band, context=terms, rng=rng)
        for field, band in BANDS.items()
    }


# ── Phases ────────────────────────────────────────────────────────────────────


def _phase_research(
    req: AdCopyRequest,
    client: GeminiClient,
    provider: Optional[KeywordProvider],
    notices: list[str],
) -> Optional[KeywordResearch]:
    """Phase 0 – keyword research. Never raises; problems become notices."""
    if req.keyword_research is not None:
        return req.keyword_research
    if not req.research_keywords:
        return None
    if provider is None:
        notices.append("Keyword research skipped: no keyword provider is configured.")
        return None
    try:
        return research_keywords(
            KeywordResearchRequest(client=req.client, campaign=req.campaign, ad_group=req.ad_group),
            client,
            provider,
        )
    except Exception as exc:
        logger.warning("Keyword research failed; continuing without it", exc_info=True)
        notices.append(describe_provider_error(exc))
        return None


def _phase_planning(
    req: AdCopyRequest,
    variant: CampaignVariant,
    research: Optional[KeywordResearch],
    client: GeminiClient,
) -> tuple[str, int]:
    """Phase 1 – strategy text from the planning model."""
    messages = prompting.build_planning_messages(
        variant, req.client, req.campaign, req.ad_group, research
    )
    result = client.complete(messages, model=settings.gemini_planning_model)
    return (result.get("text") or "").strip(), result.get("tokens_used", 0)


def _phase_generation(
    req: AdCopyRequest,
    variant: CampaignVariant,
    strategy: str,
    research: Optional[KeywordResearch],
    client: GeminiClient,
) -> tuple[dict[str, list[Any]], int]:
    """Phase 2 – raw candidate lists from the generation model."""
    messages = prompting.build_generation_messages(
        variant, strategy, req.client, req.campaign, req.ad_group, research
    )
    result = client.complete(
        messages,
        model=settings.gemini_generation_model,
        json_schema=prompting.AD_COPY_SCHEMA,
    )
    return _lists_from_generation(result), result.get("tokens_used", 0)


def _phase_review(copy: dict[str, list[str]]) -> list[str]:
    """Phase 4 – policy findings as notices."""
    rules = run_ad_rules(copy["headlines"], copy["descriptions"], HEADLINE_BAND, DESCRIPTION_BAND)
    return rules.issues


# ── Entry point ───────────────────────────────────────────────────────────────


def generate_ad_copy(
    req: AdCopyRequest,
    request_id: str,
    client: Optional[GeminiClient],
    provider: Optional[KeywordProvider] = None,
    store: Optional[RecordStore] = None,
    rng: Optional[random.Random] = None,
) -> AdCopyResponse:
    """
    Run the full generation workflow for one ad.

    Always returns a complete AdCopyResponse; `source` tells whether the
    copy came from the model or from the static fallback.
    """
    timings = PhaseTimings()
    total_start = time.perf_counter()
    notices: list[str] = []
    tokens = 0
    strategy = ""
    variant = prompting.resolve_variant(req.client, req.campaign, req.ad_group)

    logger.info(
        "Ad copy orchestration started",
        extra={"request_id": request_id, "variant": variant.value},
    )

    source = CopySource.GENERATED
    model_used = FALLBACK_MODEL
    candidates: dict[str, list[Any]]

    if client is None:
        notices.append(describe_provider_error(None))
        source = CopySource.FALLBACK
        candidates = fallback_candidates(req.client)
    else:
        t = time.perf_counter()
        research = _phase_research(req, client, provider, notices)
        timings.research_ms = _ms(t)

        try:
            t = time.perf_counter()
            strategy, used = _phase_planning(req, variant, research, client)
            timings.planning_ms = _ms(t)
            tokens += used

            t = time.perf_counter()
            candidates, used = _phase_generation(req, variant, strategy, research, client)
            timings.generation_ms = _ms(t)
            tokens += used
            model_used = settings.gemini_generation_model
        except Exception as exc:
            logger.exception(
                "LLM generation failed; using fallback ad copy",
                extra={"request_id": request_id},
            )
            notices.append(describe_provider_error(exc))
            source = CopySource.FALLBACK
            candidates = fallback_candidates(req.client)

    t = time.perf_counter()
    copy = _normalize_all(candidates, context_terms(req), rng)
    timings.normalization_ms = _ms(t)

    notices.extend(_phase_review(copy))

    ad_id: Optional[str] = None
    if req.ad_group_id and store is not None:
        try:
            ad = store.create_ad(req.ad_group_id, AdCreate(**copy, source=source))
            ad_id = ad.id
        except StorageError as exc:
            logger.error("Saving ad failed", extra={"request_id": request_id, "error": str(exc)})
            notices.append(f"Ad copy was generated but could not be saved: {exc}")

    timings.total_ms = _ms(total_start)
    logger.info(
        "Ad copy orchestration complete",
        extra={
            "request_id": request_id,
            "source": source.value,
            "notices": len(notices),
            "total_ms": timings.total_ms,
        },
    )

    return AdCopyResponse(
        headlines=copy["headlines"],
        descriptions=copy["descriptions"],
        paths=copy["paths"],
        variant=variant,
        source=source,
        strategy=strategy,
        notices=notices,
        ad_id=ad_id,
        metadata=ResponseMetadata(
            request_id=request_id,
            model_used=model_used,
            tokens_estimate=tokens,
            timings=timings,
        ),
    )
