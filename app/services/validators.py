"""
app/services/validators.py – deterministic rule-based validation & Google Ads policy checks.

These validators operate on plain text without any LLM calls, making them
fast, free, and predictable. Findings are reported as notices; they never
block a response because the normalizer has already enforced length.
"""
from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Optional

from app.models import (
    AdCopyRequest,
    AdGroupContext,
    CampaignContext,
    CampaignVariant,
    ClientInfo,
    ValidationIssue,
)
from app.services.normalizer import LengthBand
from app.services.prompting import resolve_variant

# Acronyms Google Ads accepts in capitals
LEGITIMATE_ACRONYMS: frozenset[str] = frozenset(
    {"HOA", "HVAC", "USA", "FAQ", "CEO", "SUV", "LLC", "ATM", "WIFI", "NYC", "ADA"}
)

_MAX_HEADLINE_EXCLAMATIONS = 0
_MAX_DESCRIPTION_EXCLAMATIONS = 1


# ── Dataclass for rule results ─────────────────────────────────────────────────


@dataclass
class RuleCheckResult:
    passed: bool
    issues: list[str] = field(default_factory=list)
    risk_flags: list[str] = field(default_factory=list)
    fixes: list[str] = field(default_factory=list)

    def merge(self, other: "RuleCheckResult") -> None:
        self.passed = self.passed and other.passed
        self.issues.extend(other.issues)
        self.risk_flags.extend(other.risk_flags)
        self.fixes.extend(other.fixes)


# ── Individual rule checks ─────────────────────────────────────────────────────


def check_length_band(text: str, band: LengthBand, context: str) -> RuleCheckResult:
    """Verify a single asset is inside its character band."""
    length = len(text)
    if band.fits(text):
        return RuleCheckResult(passed=True)
    return RuleCheckResult(
        passed=False,
        issues=[
            f"{context}: {length} characters (allowed {band.min_length}–{band.max_length})."
        ],
        risk_flags=[f"DISAPPROVAL – {context}: outside Google Ads length limits."]
        if length > band.max_length
        else [],
        fixes=[f"Rewrite {context} to {band.min_length}–{band.max_length} characters."],
    )


def check_exclamation_marks(text: str, limit: int, context: str) -> RuleCheckResult:
    """Google Ads allows no '!' in headlines and one per description."""
    count = text.count("!")
    if count > limit:
        return RuleCheckResult(
            passed=False,
            issues=[f"{context}: {count} exclamation mark(s) (allowed: {limit})."],
            risk_flags=[f"DISAPPROVAL – {context}: excessive exclamation marks."],
            fixes=[f"Reduce exclamation marks in {context} to {limit} or fewer."],
        )
    return RuleCheckResult(passed=True)


def check_all_caps(text: str, context: str) -> RuleCheckResult:
    """Flag words written in ALL CAPS (gimmicky capitalization policy)."""
    all_caps_words = re.findall(r"\b[A-Z]{4,}\b", text)
    offenders = sorted({w for w in all_caps_words if w not in LEGITIMATE_ACRONYMS})
    if offenders:
        return RuleCheckResult(
            passed=False,
            issues=[f"{context}: ALL CAPS words detected: {offenders}"],
            risk_flags=[f"DISAPPROVAL – {context}: gimmicky capitalization."],
            fixes=[f"Replace ALL CAPS words {offenders} with title case in {context}."],
        )
    return RuleCheckResult(passed=True)


def check_repeated_punctuation(text: str, context: str) -> RuleCheckResult:
    """Flag repeated punctuation or symbols such as '!!', '??' or '$$'."""
    repeats = re.findall(r"([!?$*#@%])\1+", text)
    if repeats:
        return RuleCheckResult(
            passed=False,
            issues=[f"{context}: repeated punctuation or symbols ({sorted(set(repeats))})."],
            risk_flags=[f"DISAPPROVAL – {context}: gimmicky punctuation."],
            fixes=[f"Use single punctuation marks in {context}."],
        )
    return RuleCheckResult(passed=True)


def check_duplicate_assets(assets: list[str], context: str) -> RuleCheckResult:
    """Responsive search ads reject duplicate headlines or descriptions."""
    seen: set[str] = set()
    duplicates: list[str] = []
    for asset in assets:
        key = asset.strip().lower()
        if key in seen and asset not in duplicates:
            duplicates.append(asset)
        seen.add(key)
    if duplicates:
        return RuleCheckResult(
            passed=False,
            issues=[f"{context}: duplicate assets {duplicates}."],
            fixes=[f"Make every entry in {context} unique."],
        )
    return RuleCheckResult(passed=True)


# ── Aggregate validator ────────────────────────────────────────────────────────


def run_ad_rules(
    headlines: list[str],
    descriptions: list[str],
    headline_band: LengthBand,
    description_band: LengthBand,
) -> RuleCheckResult:
    """Run every policy check on one ad's headlines and descriptions."""
    result = RuleCheckResult(passed=True)

    for i, headline in enumerate(headlines):
        ctx = f"Headline {i + 1}"
        for check in (
            check_length_band(headline, headline_band, ctx),
            check_exclamation_marks(headline, _MAX_HEADLINE_EXCLAMATIONS, ctx),
            check_all_caps(headline, ctx),
            check_repeated_punctuation(headline, ctx),
        ):
            result.merge(check)

    for i, description in enumerate(descriptions):
        ctx = f"Description {i + 1}"
        for check in (
            check_length_band(description, description_band, ctx),
            check_exclamation_marks(description, _MAX_DESCRIPTION_EXCLAMATIONS, ctx),
            check_all_caps(description, ctx),
            check_repeated_punctuation(description, ctx),
        ):
            result.merge(check)

    result.merge(check_duplicate_assets(headlines, "Headlines"))
    result.merge(check_duplicate_assets(descriptions, "Descriptions"))
    return result


# ── Request validation ────────────────────────────────────────────────────────

# (ClientInfo attribute, display label) required for a standard campaign
REQUIRED_CLIENT_FIELDS: tuple[tuple[str, str], ...] = (
    ("name", "Business name"),
    ("website", "Website"),
    ("industry", "Industry"),
    ("target_audience", "Target audience"),
    ("geographic_targeting", "Geographic targeting"),
    ("unique_selling_points", "Unique selling points"),
    ("brand_voice", "Brand voice"),
    ("call_to_action", "Call to action"),
)


def validate_client_info(
    client: Optional[ClientInfo],
    campaign: Optional[CampaignContext] = None,
    ad_group: Optional[AdGroupContext] = None,
) -> tuple[CampaignVariant, list[ValidationIssue]]:
    """
    Pre-generation validation of the request context.
    Returns the resolved variant and a list of issues (empty = fully valid).
    """
    client = client or ClientInfo()
    variant = resolve_variant(client, campaign, ad_group)
    issues: list[ValidationIssue] = []

    if variant == CampaignVariant.STANDARD:
        for attr, label in REQUIRED_CLIENT_FIELDS:
            if not getattr(client, attr).strip():
                issues.append(
                    ValidationIssue(
                        field=f"client.{attr}",
                        severity="error",
                        message=f"{label} is required.",
                    )
                )
        website = client.website.strip()
        if website and not re.match(r"^(https?://)?[\w.-]+\.[a-z]{2,}(/.*)?$", website, re.IGNORECASE):
            issues.append(
                ValidationIssue(
                    field="client.website",
                    severity="warning",
                    message="Website does not look like a valid URL.",
                    suggestion="Use a full domain such as https://example.com.",
                )
            )

    elif variant == CampaignVariant.UNIT_TYPE:
        if ad_group is None or not ad_group.name.strip():
            issues.append(
                ValidationIssue(
                    field="ad_group.name",
                    severity="error",
                    message="Unit type campaigns need an ad group name describing the property type.",
                    suggestion='For example "2 Bedroom Apartments".',
                )
            )

    elif variant == CampaignVariant.GENERAL_SEARCH:
        if not client.geographic_targeting.strip():
            issues.append(
                ValidationIssue(
                    field="client.geographic_targeting",
                    severity="error",
                    message="Location campaigns need geographic targeting.",
                    suggestion="Name the city or neighbourhood the ads should target.",
                )
            )
        if not client.name.strip():
            issues.append(
                ValidationIssue(
                    field="client.name",
                    severity="warning",
                    message="No client name; a generic property management name will be used.",
                )
            )

    if variant != CampaignVariant.UNIT_TYPE and len(client.unique_selling_points.strip()) in range(1, 15):
        issues.append(
            ValidationIssue(
                field="client.unique_selling_points",
                severity="warning",
                message="Unique selling points are very short; more detail improves output quality.",
                suggestion="List amenities, pricing advantages or nearby landmarks.",
            )
        )

    return variant, issues


def validate_ad_copy_request(req: AdCopyRequest) -> tuple[CampaignVariant, list[ValidationIssue]]:
    return validate_client_info(req.client, req.campaign, req.ad_group)
