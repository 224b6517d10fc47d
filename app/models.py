"""
app/models.py – Pydantic v2 request / response schemas for the Ad Copy API.
"""
from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, Field, model_validator


def _now() -> datetime:
    return datetime.now(timezone.utc)


# ── Enumerations ──────────────────────────────────────────────────────────────


class CampaignVariant(str, Enum):
    STANDARD = "standard"
    UNIT_TYPE = "unit_type"
    GENERAL_SEARCH = "general_search"


class CopySource(str, Enum):
    GENERATED = "generated"
    FALLBACK = "fallback"


class AssetKind(str, Enum):
    HEADLINE = "headline"
    DESCRIPTION = "description"
    PATH = "path"


class BandName(str, Enum):
    HEADLINES = "headlines"
    DESCRIPTIONS = "descriptions"
    PATHS = "paths"


# ── Sub-models: Request ───────────────────────────────────────────────────────


class ClientInfo(BaseModel):
    """Business profile. Leave every field empty for a unit-type campaign."""

    name: str = Field(default="", examples=["Aero Apartments"])
    website: str = Field(default="", examples=["https://aeroapartments.com"])
    industry: str = Field(default="", examples=["Luxury apartments"])
    target_audience: str = Field(
        default="", examples=["Young professionals relocating to Austin"]
    )
    geographic_targeting: str = Field(default="", examples=["Austin, TX"])
    unique_selling_points: str = Field(
        default="", examples=["Rooftop pool, pet friendly, 5 minutes from downtown"]
    )
    competitors: str = Field(default="", examples=["The Bowie, Windsor on the Lake"])
    brand_voice: str = Field(default="", examples=["Upscale, warm, confident"])
    call_to_action: str = Field(default="", examples=["Schedule a tour"])
    budget: str = Field(default="", examples=["$3,000 / month"])

    def is_empty(self) -> bool:
        return not any(str(v).strip() for v in self.model_dump().values())


class CampaignContext(BaseModel):
    name: str = Field(default="", examples=["Aero – Brand Search"])
    objective: str = Field(default="", examples=["Lease-ups for Q3"])
    budget: str = Field(default="")
    is_unit_type: Optional[bool] = Field(
        default=None,
        description="True for unit-type campaigns, False for general search campaigns.",
    )


class AdGroupContext(BaseModel):
    name: str = Field(default="", examples=["2 Bedroom"])
    theme: str = Field(default="", examples=["Spacious two bedroom floor plans"])
    target_audience: str = Field(default="")


# ── Keyword research ──────────────────────────────────────────────────────────


class KeywordMetric(BaseModel):
    keyword: str
    search_volume: int = 0
    cpc: float = 0.0
    competition: float = 0.0
    results: int = 0
    intent: str = ""


class KeywordAnalysis(BaseModel):
    core_topics: list[str] = Field(default_factory=list)
    industry_terms: list[str] = Field(default_factory=list)
    seed_keywords: list[str] = Field(default_factory=list)
    geo_modifiers: list[str] = Field(default_factory=list)
    targeting_insights: str = ""
    campaign_alignment: str = ""
    ad_group_alignment: str = ""

    def seed_terms(self) -> list[str]:
        seen: set[str] = set()
        terms: list[str] = []
        for term in [*self.seed_keywords, *self.core_topics, *self.industry_terms]:
            key = term.strip().lower()
            if key and key not in seen:
                seen.add(key)
                terms.append(term.strip())
        return terms


class KeywordBuckets(BaseModel):
    high_volume: list[KeywordMetric] = Field(default_factory=list)
    medium_volume: list[KeywordMetric] = Field(default_factory=list)
    low_volume: list[KeywordMetric] = Field(default_factory=list)
    low_competition: list[KeywordMetric] = Field(default_factory=list)
    all: list[KeywordMetric] = Field(default_factory=list)


class KeywordRecommendations(BaseModel):
    primary: list[KeywordMetric] = Field(default_factory=list)
    long_tail: list[KeywordMetric] = Field(default_factory=list)
    branded: list[KeywordMetric] = Field(default_factory=list)


class KeywordResearch(BaseModel):
    variant: CampaignVariant = CampaignVariant.STANDARD
    analysis: KeywordAnalysis = Field(default_factory=KeywordAnalysis)
    keywords: KeywordBuckets = Field(default_factory=KeywordBuckets)
    recommendations: KeywordRecommendations = Field(default_factory=KeywordRecommendations)
    contextual_insights: str = ""
    total_keywords: int = 0


class KeywordResearchRequest(BaseModel):
    client: ClientInfo = Field(default_factory=ClientInfo)
    campaign: Optional[CampaignContext] = None
    ad_group: Optional[AdGroupContext] = None


# ── Ad copy ───────────────────────────────────────────────────────────────────


class AdCopyRequest(BaseModel):
    client: ClientInfo = Field(default_factory=ClientInfo)
    campaign: Optional[CampaignContext] = None
    ad_group: Optional[AdGroupContext] = None
    keyword_research: Optional[KeywordResearch] = Field(
        default=None,
        description="Pre-computed keyword research to ground the copy.",
    )
    research_keywords: bool = Field(
        default=False,
        description="Run keyword research before generating (ignored when keyword_research is given).",
    )
    ad_group_id: Optional[str] = Field(
        default=None,
        description="When set, the generated ad is saved under this ad group.",
    )


class PhaseTimings(BaseModel):
    research_ms: Optional[float] = None
    planning_ms: Optional[float] = None
    generation_ms: Optional[float] = None
    normalization_ms: Optional[float] = None
    total_ms: Optional[float] = None


class ResponseMetadata(BaseModel):
    request_id: str
    model_used: str
    tokens_estimate: int = Field(default=0)
    timings: PhaseTimings = Field(default_factory=PhaseTimings)


class AdCopyResponse(BaseModel):
    headlines: list[str]
    descriptions: list[str]
    paths: list[str] = Field(default_factory=list)
    variant: CampaignVariant
    source: CopySource
    strategy: str = Field(default="", description="Planning-pass output used for generation.")
    notices: list[str] = Field(
        default_factory=list,
        description="Non-fatal problems: provider errors, policy findings, fallbacks.",
    )
    ad_id: Optional[str] = None
    metadata: Optional[ResponseMetadata] = None


# Widest band the API accepts; normalization work grows with the gap to fill.
MAX_BAND_LENGTH = 1000


class BandSpec(BaseModel):
    count: int = Field(..., ge=0, le=100, examples=[11])
    min_length: int = Field(..., ge=0, le=MAX_BAND_LENGTH, examples=[25])
    max_length: int = Field(..., ge=1, le=MAX_BAND_LENGTH, examples=[30])
    kind: Optional[AssetKind] = Field(
        default=None,
        description="Asset type for wording. Only `path` joins words with hyphens; "
        "omit for plain text.",
    )

    @model_validator(mode="after")
    def _check_range(self) -> "BandSpec":
        if self.min_length > self.max_length:
            raise ValueError("min_length must not exceed max_length")
        return self


class NormalizeRequest(BaseModel):
    candidates: list[Any] = Field(
        default_factory=list,
        examples=[["Luxury Apartments, Prime Location", "Prime Locat", None]],
    )
    band: Optional[BandSpec] = Field(
        default=None, description="Explicit band. Overrides `preset` when given."
    )
    preset: BandName = Field(default=BandName.HEADLINES)
    context: list[str] = Field(default_factory=list, examples=[["luxury apartments", "Austin"]])
    seed: Optional[int] = Field(
        default=None, description="Seed for reproducible placeholder selection."
    )


class NormalizeResponse(BaseModel):
    result: list[str]
    band: BandSpec


# ── Persistence records ───────────────────────────────────────────────────────


class ClientRecord(ClientInfo):
    id: str
    created_at: datetime = Field(default_factory=_now)


class CampaignCreate(CampaignContext):
    client_id: str


class CampaignRecord(CampaignCreate):
    id: str
    created_at: datetime = Field(default_factory=_now)


class AdGroupCreate(AdGroupContext):
    campaign_id: str


class AdGroupRecord(AdGroupCreate):
    id: str
    created_at: datetime = Field(default_factory=_now)


class KeywordRecord(KeywordMetric):
    id: str
    ad_group_id: str
    created_at: datetime = Field(default_factory=_now)


class AdCreate(BaseModel):
    headlines: list[str] = Field(default_factory=list)
    descriptions: list[str] = Field(default_factory=list)
    paths: list[str] = Field(default_factory=list)
    source: CopySource = CopySource.GENERATED


class AdRecord(AdCreate):
    id: str
    ad_group_id: str
    created_at: datetime = Field(default_factory=_now)


# ── Validation endpoint ───────────────────────────────────────────────────────


class ValidationIssue(BaseModel):
    field: str
    severity: str = Field(examples=["error", "warning", "info"])
    message: str
    suggestion: Optional[str] = None


class ValidationResponse(BaseModel):
    valid: bool
    variant: CampaignVariant
    issues: list[ValidationIssue] = Field(default_factory=list)
    recommendations: list[str] = Field(default_factory=list)


# ── Health ────────────────────────────────────────────────────────────────────


class HealthResponse(BaseModel):
    status: str
    version: str
    model: str
    gemini_key_configured: bool


class ReadinessResponse(BaseModel):
    ready: bool
    checks: dict[str, Any]
