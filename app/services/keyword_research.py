"""
app/services/keyword_research.py – LLM seed analysis + keyword provider lookup.

Steps
─────
1. Analysis – the LLM turns client/campaign/ad-group context into topics,
   industry terms and seed keywords.
2. Lookup   – every seed term goes to the keyword provider.
3. Buckets  – results are grouped by volume and competition and the
   primary / long-tail / branded recommendations are picked.
"""
from __future__ import annotations

import logging
from typing import Any, Optional, Protocol

from app.models import (
    AdGroupContext,
    CampaignContext,
    ClientInfo,
    KeywordAnalysis,
    KeywordBuckets,
    KeywordMetric,
    KeywordRecommendations,
    KeywordResearch,
    KeywordResearchRequest,
)
from app.services import prompting
from app.services.cache import keyword_cache
from app.services.gemini_client import GeminiClient

logger = logging.getLogger(__name__)

HIGH_VOLUME_THRESHOLD = 500
MEDIUM_VOLUME_FLOOR = 100
LOW_COMPETITION_CEILING = 0.3
ALL_KEYWORDS_LIMIT = 200
PRIMARY_LIMIT = 10
LONG_TAIL_LIMIT = 15
LONG_TAIL_MIN_WORDS = 3


class KeywordProvider(Protocol):
    def lookup(self, seed_terms: list[str]) -> list[KeywordMetric]:
        ...


# ── Analysis ──────────────────────────────────────────────────────────────────


def _string_list(value: Any) -> list[str]:
    if isinstance(value, str):
        return [value] if value.strip() else []
    if isinstance(value, list):
        return [v.strip() for v in value if isinstance(v, str) and v.strip()]
    return []


def analyze_context(
    client: GeminiClient,
    client_info: Optional[ClientInfo],
    campaign: Optional[CampaignContext] = None,
    ad_group: Optional[AdGroupContext] = None,
) -> KeywordAnalysis:
    """Ask the LLM for topics and seed keywords for this campaign context."""
    variant = prompting.resolve_variant(client_info, campaign, ad_group)
    messages = prompting.build_keyword_analysis_messages(variant, client_info, campaign, ad_group)
    result = client.complete(
        messages,
        json_schema=prompting.KEYWORD_ANALYSIS_SCHEMA,
        temperature=0.3,
    )
    raw: dict[str, Any] = result.get("parsed") or {}
    if not isinstance(raw, dict):
        raw = {}

    return KeywordAnalysis(
        core_topics=_string_list(raw.get("core_topics")),
        industry_terms=_string_list(raw.get("industry_terms")),
        seed_keywords=_string_list(raw.get("seed_keywords")),
        geo_modifiers=_string_list(raw.get("geo_modifiers")),
        targeting_insights=str(raw.get("targeting_insights") or ""),
        campaign_alignment=str(raw.get("campaign_alignment") or ""),
        ad_group_alignment=str(raw.get("ad_group_alignment") or ""),
    )


# ── Bucketing ─────────────────────────────────────────────────────────────────


def bucket_keywords(metrics: list[KeywordMetric]) -> KeywordBuckets:
    return KeywordBuckets(
        high_volume=[k for k in metrics if k.search_volume > HIGH_VOLUME_THRESHOLD],
        medium_volume=[
            k for k in metrics
            if MEDIUM_VOLUME_FLOOR <= k.search_volume <= HIGH_VOLUME_THRESHOLD
        ],
        low_volume=[k for k in metrics if 0 < k.search_volume < MEDIUM_VOLUME_FLOOR],
        low_competition=[k for k in metrics if k.competition < LOW_COMPETITION_CEILING],
        all=metrics[:ALL_KEYWORDS_LIMIT],
    )


def recommend_keywords(
    metrics: list[KeywordMetric], client_name: str = ""
) -> KeywordRecommendations:
    name = client_name.strip().lower()
    return KeywordRecommendations(
        primary=metrics[:PRIMARY_LIMIT],
        long_tail=[
            k for k in metrics if len(k.keyword.split()) >= LONG_TAIL_MIN_WORDS
        ][:LONG_TAIL_LIMIT],
        branded=[k for k in metrics if name and name in k.keyword.lower()],
    )


def contextual_insights(
    analysis: KeywordAnalysis,
    campaign: Optional[CampaignContext],
    ad_group: Optional[AdGroupContext],
) -> str:
    parts: list[str] = []
    if campaign is not None:
        parts.append(
            f'Campaign "{campaign.name}" focus: prioritize keywords that align with the '
            "campaign objective."
        )
    if ad_group is not None:
        parts.append(
            f'Ad Group "{ad_group.name}" theme: focus on keywords that match the ad '
            "group's specific targeting."
        )
    if parts and analysis.targeting_insights:
        parts.append(f"Targeting insight: {analysis.targeting_insights}")
    return " ".join(parts)


# ── Entry point ───────────────────────────────────────────────────────────────


def research_keywords(
    req: KeywordResearchRequest,
    client: GeminiClient,
    provider: KeywordProvider,
    use_cache: bool = True,
) -> KeywordResearch:
    """
    Run analysis, lookup and bucketing for one request.

    LLM and provider errors propagate; callers decide whether research is
    optional for them.
    """
    cache_key = {"keyword_research": req.model_dump(mode="json")}
    if use_cache:
        cached = keyword_cache.get(cache_key)
        if cached is not None:
            logger.info("Keyword research cache hit")
            return cached

    variant = prompting.resolve_variant(req.client, req.campaign, req.ad_group)
    analysis = analyze_context(client, req.client, req.campaign, req.ad_group)
    seeds = analysis.seed_terms()
    metrics = provider.lookup(seeds) if seeds else []

    research = KeywordResearch(
        variant=variant,
        analysis=analysis,
        keywords=bucket_keywords(metrics),
        recommendations=recommend_keywords(metrics, req.client.name),
        contextual_insights=contextual_insights(analysis, req.campaign, req.ad_group),
        total_keywords=len(metrics),
    )
    logger.info(
        "Keyword research complete",
        extra={"variant": variant.value, "seeds": len(seeds), "keywords": len(metrics)},
    )

    if use_cache:
        keyword_cache.set(cache_key, research)
    return research
