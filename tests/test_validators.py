"""
tests/test_validators.py – unit tests for rule-based validators.
"""
from __future__ import annotations

from app.models import AdCopyRequest, AdGroupContext, CampaignContext, CampaignVariant, ClientInfo
from app.services.normalizer import DESCRIPTION_BAND, HEADLINE_BAND
from app.services.validators import (
    check_all_caps,
    check_duplicate_assets,
    check_exclamation_marks,
    check_length_band,
    check_repeated_punctuation,
    run_ad_rules,
    validate_ad_copy_request,
    validate_client_info,
)

FULL_CLIENT = ClientInfo(
    name="Aero Apartments",
    website="https://aeroapartments.com",
    industry="Luxury apartments",
    target_audience="Young professionals",
    geographic_targeting="Austin, TX",
    unique_selling_points="Rooftop pool, pet friendly, 5 minutes from downtown",
    brand_voice="Upscale and warm",
    call_to_action="Schedule a tour",
)


# ── Individual rule checks ─────────────────────────────────────────────────────


class TestCheckLengthBand:
    def test_in_band_passes(self):
        assert check_length_band("Modern Amenities Await You", HEADLINE_BAND, "Headline 1").passed

    def test_too_long_is_a_disapproval_risk(self):
        result = check_length_band("x" * 31, HEADLINE_BAND, "Headline 1")
        assert not result.passed
        assert len(result.risk_flags) == 1
        assert "31 characters" in result.issues[0]

    def test_too_short_is_an_issue_only(self):
        result = check_length_band("Short", HEADLINE_BAND, "Headline 1")
        assert not result.passed
        assert result.risk_flags == []


class TestCheckExclamationMarks:
    def test_headline_allows_none(self):
        assert not check_exclamation_marks("Tour Today!", 0, "Headline").passed

    def test_description_allows_one(self):
        assert check_exclamation_marks("Tour today!", 1, "Description").passed
        assert not check_exclamation_marks("Tour today! Now!", 1, "Description").passed


class TestCheckAllCaps:
    def test_shouting_flagged(self):
        result = check_all_caps("HUGE Savings On Rent", "Headline")
        assert not result.passed
        assert "HUGE" in result.issues[0]

    def test_acronyms_allowed(self):
        assert check_all_caps("HVAC Included In Every Unit", "Headline").passed

    def test_short_capitals_allowed(self):
        assert check_all_caps("Pet Friendly In DT Austin", "Headline").passed


class TestCheckRepeatedPunctuation:
    def test_repeats_flagged(self):
        assert not check_repeated_punctuation("Move in now!! Save $$", "Description").passed

    def test_single_marks_pass(self):
        assert check_repeated_punctuation("Move in now. Save today!", "Description").passed


class TestCheckDuplicateAssets:
    def test_case_insensitive_duplicates(self):
        result = check_duplicate_assets(["Luxury Living", "luxury living", "Other"], "Headlines")
        assert not result.passed

    def test_unique_passes(self):
        assert check_duplicate_assets(["A", "B"], "Headlines").passed


class TestRunAdRules:
    def test_clean_ad_passes(self):
        headlines = ["Modern Amenities Await You", "Luxury Apartments Downtown"]
        descriptions = [
            "Discover upscale living with state-of-the-art amenities and prime location. Call now!"
        ]
        result = run_ad_rules(headlines, descriptions, HEADLINE_BAND, DESCRIPTION_BAND)
        assert result.passed
        assert result.issues == []

    def test_problems_aggregated(self):
        result = run_ad_rules(
            ["FREE RENT Now!", "FREE RENT Now!"],
            ["Too short!!"],
            HEADLINE_BAND,
            DESCRIPTION_BAND,
        )
        assert not result.passed
        joined = " ".join(result.issues)
        assert "Headline 1" in joined
        assert "Description 1" in joined
        assert "duplicate" in joined


# ── Request validation ────────────────────────────────────────────────────────


class TestValidateClientInfo:
    def test_complete_standard_client_is_valid(self):
        variant, issues = validate_client_info(FULL_CLIENT)
        assert variant == CampaignVariant.STANDARD
        assert issues == []

    def test_missing_standard_fields(self):
        variant, issues = validate_client_info(ClientInfo(name="Aero Apartments"))
        assert variant == CampaignVariant.STANDARD
        fields = {i.field for i in issues if i.severity == "error"}
        assert "client.website" in fields
        assert "client.call_to_action" in fields
        assert "client.name" not in fields

    def test_invalid_website_warns(self):
        client = FULL_CLIENT.model_copy(update={"website": "not a site"})
        _, issues = validate_client_info(client)
        assert [i.field for i in issues] == ["client.website"]
        assert issues[0].severity == "warning"

    def test_unit_type_needs_ad_group_name(self):
        variant, issues = validate_client_info(ClientInfo())
        assert variant == CampaignVariant.UNIT_TYPE
        assert issues[0].field == "ad_group.name"

        _, issues = validate_client_info(ClientInfo(), ad_group=AdGroupContext(name="Studio Apartments"))
        assert issues == []

    def test_general_search_needs_location(self):
        variant, issues = validate_client_info(
            ClientInfo(industry="Apartments"),
            CampaignContext(is_unit_type=False),
            AdGroupContext(name="Location"),
        )
        assert variant == CampaignVariant.GENERAL_SEARCH
        by_field = {i.field: i.severity for i in issues}
        assert by_field["client.geographic_targeting"] == "error"
        assert by_field["client.name"] == "warning"

    def test_short_selling_points_warn(self):
        client = FULL_CLIENT.model_copy(update={"unique_selling_points": "Pool"})
        _, issues = validate_client_info(client)
        assert [i.field for i in issues] == ["client.unique_selling_points"]

    def test_request_wrapper(self):
        variant, issues = validate_ad_copy_request(AdCopyRequest(client=FULL_CLIENT))
        assert variant == CampaignVariant.STANDARD
        assert issues == []
