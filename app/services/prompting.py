"""
app/services/prompting.py – prompt templates for planning, generation and keyword analysis.

Design principles
─────────────────
• One `VariantTemplate` per `CampaignVariant`; builders never branch on the
  variant themselves, they read the table.
• Builders return ordered ``[{"role", "content"}]`` message lists for
  `GeminiClient.complete()`.
• Generation prompts state the exact character bands; the normalizer still
  enforces them afterwards.
• Templates use simple string formatting (no heavy templating engine dependency).
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from app.models import (
    AdGroupContext,
    CampaignContext,
    CampaignVariant,
    ClientInfo,
    KeywordResearch,
)
from app.services.normalizer import DESCRIPTION_BAND, HEADLINE_BAND, PATH_BAND

# Ad group name that marks the location ad group of a general search campaign.
LOCATION_AD_GROUP = "Location"

# Headlines are over-generated so the orchestrator can prefer in-band ones.
HEADLINE_REQUEST_COUNT = 15


def resolve_variant(
    client: Optional[ClientInfo],
    campaign: Optional[CampaignContext] = None,
    ad_group: Optional[AdGroupContext] = None,
) -> CampaignVariant:
    """Classify a request as standard, unit-type or general-search."""
    if (
        campaign is not None
        and campaign.is_unit_type is False
        and ad_group is not None
        and ad_group.name.strip() == LOCATION_AD_GROUP
    ):
        return CampaignVariant.GENERAL_SEARCH
    if client is None or client.is_empty():
        return CampaignVariant.UNIT_TYPE
    return CampaignVariant.STANDARD


# ── Variant table ─────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class VariantTemplate:
    label: str
    # (display label, ClientInfo attribute, default when blank)
    client_fields: tuple[tuple[str, str, str], ...]
    planning_system: str
    planning_task: str
    copy_focus: str
    headline_examples: tuple[str, ...]
    keyword_system: str


_STANDARD_CLIENT_FIELDS: tuple[tuple[str, str, str], ...] = (
    ("Client Name", "name", "N/A"),
    ("Website", "website", "N/A"),
    ("Industry", "industry", "N/A"),
    ("Target Audience", "target_audience", "N/A"),
    ("Location", "geographic_targeting", "N/A"),
    ("Unique Selling Points", "unique_selling_points", "N/A"),
    ("Competitors", "competitors", "N/A"),
    ("Brand Voice", "brand_voice", "N/A"),
    ("Call to Action", "call_to_action", "N/A"),
)

_GENERAL_SEARCH_CLIENT_FIELDS: tuple[tuple[str, str, str], ...] = (
    ("Client Name", "name", "Property Management"),
    ("Industry", "industry", "Real Estate"),
    ("Geographic Targeting", "geographic_targeting", "Metropolitan Area"),
    ("Target Audience", "target_audience", "Apartment/Home Seekers"),
    ("Unique Selling Points", "unique_selling_points", "Quality Living"),
    ("Brand Voice", "brand_voice", "Professional and welcoming"),
    ("Call to Action", "call_to_action", "Contact us today"),
    ("Budget", "budget", "Competitive pricing"),
)

_KEYWORD_RESEARCH_SYSTEM = """\
You are a keyword research strategist specializing in Google Ads campaign optimization. \
Analyze the provided client information and campaign context to extract the most relevant \
topics, themes, and seed keywords for keyword research.

Your task is to:
1. Identify core business topics aligned with campaign goals.
2. Extract relevant industry terms specific to the campaign or ad group focus.
3. Generate targeted seed keywords that support the campaign objective and ad group theme.
4. Consider geographic and demographic targeting.
5. Prefer keywords that work for both keyword targeting and ad copy.

Return ONLY valid JSON matching the supplied schema.
"""

VARIANT_TEMPLATES: dict[CampaignVariant, VariantTemplate] = {
    CampaignVariant.STANDARD: VariantTemplate(
        label="business",
        client_fields=_STANDARD_CLIENT_FIELDS,
        planning_system=(
            "You are an expert Google Ads strategist specializing in keyword-driven ad copy. "
            "Analyze client information, campaign context and keyword research data to plan "
            "highly effective Google Ads copy. When keyword data is present it is the primary "
            "driver of the messaging."
        ),
        planning_task=(
            "Identify 3-5 key themes or angles to highlight, using the keyword data as the "
            "primary driver alongside target audience and unique selling points."
        ),
        copy_focus=(
            "Include business benefits and call-to-action elements. Add appeal words "
            "naturally (expert, quality, top, available)."
        ),
        headline_examples=(),
        keyword_system=_KEYWORD_RESEARCH_SYSTEM,
    ),
    CampaignVariant.UNIT_TYPE: VariantTemplate(
        label="unit type",
        client_fields=(),
        planning_system=(
            "You are an expert Google Ads strategist specializing in unit type campaigns "
            "(e.g. \"3 bedroom homes\", \"luxury apartments\"). The keywords are based ONLY on "
            "the ad group name. Never reference business names or client-specific details."
        ),
        planning_task=(
            "Identify 3-5 key themes or angles that appeal to anyone searching for this type "
            "of property, using the saved keywords as the primary driver."
        ),
        copy_focus=(
            "Focus on the property type matching the keywords. Do NOT include business names. "
            "Add appeal words naturally (available, new, luxury, open)."
        ),
        headline_examples=(
            "Luxury Apartments Available",
            "Modern Units Open for Touring",
            "Studio Apartments Ready Now",
        ),
        keyword_system=(
            "You are a keyword research specialist for real estate unit type campaigns. "
            "Generate keyword variations and related terms based STRICTLY on the ad group "
            "name: direct variations, related property search terms, intent variations "
            "(for rent, for sale, new) and location-agnostic terms. "
            "Return ONLY valid JSON matching the supplied schema."
        ),
    ),
    CampaignVariant.GENERAL_SEARCH: VariantTemplate(
        label="location-based",
        client_fields=_GENERAL_SEARCH_CLIENT_FIELDS,
        planning_system=(
            "You are an expert Google Ads strategist specializing in General Search "
            "location-based real estate campaigns. Saved keywords cover four classifications: "
            "Location, New Apartments, Near, and Access To. Highlight proximity to schools, "
            "transit, amenities and key landmarks."
        ),
        planning_task=(
            "Identify 3-5 key themes or angles for apartment and home seekers in the target "
            "area, using the location-based keywords as the primary driver alongside the "
            "client's selling points and geographic advantages."
        ),
        copy_focus=(
            "Prioritize location benefits and proximity advantages (near, minutes from, "
            "walking distance to)."
        ),
        headline_examples=(
            "San Diego Luxury Apartments",
            "New Downtown Apartments Open",
            "Apartments Near Top Schools",
        ),
        keyword_system=_KEYWORD_RESEARCH_SYSTEM,
    ),
}


# ── Schemas ───────────────────────────────────────────────────────────────────

AD_COPY_SCHEMA: dict = {
    "type": "object",
    "required": ["headlines", "descriptions", "paths"],
    "properties": {
        "headlines": {"type": "array", "items": {"type": "string"}},
        "descriptions": {"type": "array", "items": {"type": "string"}},
        "paths": {"type": "array", "items": {"type": "string"}},
    },
}

KEYWORD_ANALYSIS_SCHEMA: dict = {
    "type": "object",
    "required": ["core_topics", "industry_terms", "seed_keywords"],
    "properties": {
        "core_topics": {"type": "array", "items": {"type": "string"}},
        "industry_terms": {"type": "array", "items": {"type": "string"}},
        "seed_keywords": {"type": "array", "items": {"type": "string"}},
        "geo_modifiers": {"type": "array", "items": {"type": "string"}},
        "targeting_insights": {"type": "string"},
        "campaign_alignment": {"type": "string"},
        "ad_group_alignment": {"type": "string"},
    },
}


# ── Context rendering ─────────────────────────────────────────────────────────


def _or(value: str, default: str) -> str:
    return value.strip() if value and value.strip() else default


def render_context(
    template: VariantTemplate,
    client: Optional[ClientInfo],
    campaign: Optional[CampaignContext],
    ad_group: Optional[AdGroupContext],
) -> str:
    client = client or ClientInfo()
    blocks: list[str] = []

    if template.client_fields:
        lines = [
            f"- {label}: {_or(getattr(client, attr), default)}"
            for label, attr, default in template.client_fields
        ]
        blocks.append("Client Information:\n" + "\n".join(lines))

    if ad_group is not None:
        blocks.append(
            "Ad Group Context:\n"
            f"- Ad Group Name: {_or(ad_group.name, 'N/A')}\n"
            f"- Ad Group Theme: {_or(ad_group.theme, 'Not specified')}\n"
            f"- Ad Group Target Audience: {_or(ad_group.target_audience, 'Not specified')}"
        )

    if campaign is not None:
        blocks.append(
            "Campaign Context:\n"
            f"- Campaign Name: {_or(campaign.name, 'N/A')}\n"
            f"- Campaign Objective: {_or(campaign.objective, 'Not specified')}\n"
            f"- Campaign Budget: {_or(campaign.budget, 'Not specified')}"
        )

    return "\n\n".join(blocks) if blocks else "No additional context provided."


def render_keywords(research: Optional[KeywordResearch]) -> str:
    if research is None or not research.keywords.all:
        return ""

    def _lines(metrics: list, limit: int) -> str:
        if not metrics:
            return "None available"
        return "\n".join(
            f"- {k.keyword} ({k.search_volume} searches/month, competition {k.competition:.2f})"
            for k in metrics[:limit]
        )

    buckets = research.keywords
    analysis = research.analysis
    text = f"""

KEYWORD RESEARCH DATA (PRIMARY DRIVERS):
High Volume Keywords (prioritize these):
{_lines(buckets.high_volume, 10)}

Medium Volume Keywords:
{_lines(buckets.medium_volume, 8)}

Low Competition Keywords (good for cost efficiency):
{_lines(buckets.low_competition, 8)}

Long Tail Keywords:
{_lines(research.recommendations.long_tail, 8)}"""
    if analysis.core_topics or analysis.targeting_insights:
        text += (
            "\n\nKeyword Analysis Insights:\n"
            f"- Core Topics: {', '.join(analysis.core_topics) or 'N/A'}\n"
            f"- Industry Terms: {', '.join(analysis.industry_terms) or 'N/A'}\n"
            f"- Targeting Insights: {analysis.targeting_insights or 'N/A'}"
        )
    return text


# ── Planning pass ─────────────────────────────────────────────────────────────


def build_planning_messages(
    variant: CampaignVariant,
    client: Optional[ClientInfo],
    campaign: Optional[CampaignContext] = None,
    ad_group: Optional[AdGroupContext] = None,
    research: Optional[KeywordResearch] = None,
) -> list[dict[str, str]]:
    template = VARIANT_TEMPLATES[variant]
    context = render_context(template, client, campaign, ad_group)
    return [
        {"role": "system", "content": template.planning_system},
        {
            "role": "user",
            "content": (
                f"Create a strategic approach for Google Ads copy for this "
                f"{template.label} campaign:\n\n"
                f"{context}{render_keywords(research)}\n\n"
                f"{template.planning_task} Do not write the actual ad copy yet."
            ),
        },
    ]


# ── Generation pass ───────────────────────────────────────────────────────────


def build_generation_messages(
    variant: CampaignVariant,
    strategy: str,
    client: Optional[ClientInfo],
    campaign: Optional[CampaignContext] = None,
    ad_group: Optional[AdGroupContext] = None,
    research: Optional[KeywordResearch] = None,
) -> list[dict[str, str]]:
    template = VARIANT_TEMPLATES[variant]
    context = render_context(template, client, campaign, ad_group)
    examples = ""
    if template.headline_examples:
        examples = "\n\nHEADLINE EXAMPLES:\n" + "\n".join(
            f'- "{e}" ({len(e)} chars)' for e in template.headline_examples
        )

    system = f"""\
You are an expert Google Ads copywriter. You write responsive search ad assets that \
maximize click-through and conversion while following Google Ads editorial policy.

CRITICAL REQUIREMENTS:
1. Exactly {HEADLINE_REQUEST_COUNT} headlines, each {HEADLINE_BAND.min_length}-{HEADLINE_BAND.max_length} characters.
2. Exactly {DESCRIPTION_BAND.count} descriptions, each {DESCRIPTION_BAND.min_length}-{DESCRIPTION_BAND.max_length} characters.
3. Exactly {PATH_BAND.count} display paths, each at most {PATH_BAND.max_length} characters, lowercase, words joined with hyphens.
4. Use FULL WORDS. Never abbreviate and never cut a word off.
5. No exclamation marks in headlines; at most one per description. No ALL CAPS words.
6. {template.copy_focus}

Count characters carefully, including spaces and punctuation.
Return ONLY valid JSON: {{"headlines": [...], "descriptions": [...], "paths": [...]}}"""

    user = (
        f"Write the ad copy for this {template.label} campaign.\n\n"
        f"{context}{render_keywords(research)}{examples}\n\n"
        f"Strategic direction from the planning pass:\n{strategy or 'None provided.'}"
    )
    return [
        {"role": "system", "content": system},
        {"role": "user", "content": user},
    ]


# ── Keyword analysis ──────────────────────────────────────────────────────────


def build_keyword_analysis_messages(
    variant: CampaignVariant,
    client: Optional[ClientInfo],
    campaign: Optional[CampaignContext] = None,
    ad_group: Optional[AdGroupContext] = None,
) -> list[dict[str, str]]:
    template = VARIANT_TEMPLATES[variant]
    if variant == CampaignVariant.UNIT_TYPE and ad_group is not None and ad_group.name.strip():
        user = (
            f'Generate keyword research terms based ONLY on this ad group name: "{ad_group.name}"\n\n'
            "Include direct matches, property type variations, search intent variations "
            "and feature variations. Do NOT include business names or locations."
        )
    else:
        context = render_context(VARIANT_TEMPLATES[CampaignVariant.STANDARD], client, campaign, ad_group)
        user = (
            "Analyze this information for targeted keyword research:\n\n"
            f"{context}\n\n"
            "Extract terms that will find relevant keywords for this campaign strategy and "
            "ad group focus."
        )
    return [
        {"role": "system", "content": template.keyword_system},
        {"role": "user", "content": user},
    ]
