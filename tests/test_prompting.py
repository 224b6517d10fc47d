"""
tests/test_prompting.py – variant resolution and prompt builders.
"""
from __future__ import annotations

from app.models import (
    AdGroupContext,
    CampaignContext,
    CampaignVariant,
    ClientInfo,
    KeywordBuckets,
    KeywordMetric,
    KeywordResearch,
)
from app.services import prompting

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


class TestResolveVariant:
    def test_client_info_means_standard(self):
        assert prompting.resolve_variant(FULL_CLIENT) == CampaignVariant.STANDARD

    def test_empty_client_means_unit_type(self):
        assert prompting.resolve_variant(ClientInfo()) == CampaignVariant.UNIT_TYPE
        assert prompting.resolve_variant(None) == CampaignVariant.UNIT_TYPE

    def test_location_ad_group_in_general_campaign(self):
        variant = prompting.resolve_variant(
            FULL_CLIENT,
            CampaignContext(name="General", is_unit_type=False),
            AdGroupContext(name="Location"),
        )
        assert variant == CampaignVariant.GENERAL_SEARCH

    def test_location_ad_group_needs_explicit_general_campaign(self):
        variant = prompting.resolve_variant(
            FULL_CLIENT, CampaignContext(name="Unknown"), AdGroupContext(name="Location")
        )
        assert variant == CampaignVariant.STANDARD


class TestBuilders:
    def test_every_variant_has_a_template(self):
        for variant in CampaignVariant:
            assert variant in prompting.VARIANT_TEMPLATES

    def test_planning_messages(self):
        messages = prompting.build_planning_messages(CampaignVariant.STANDARD, FULL_CLIENT)
        assert [m["role"] for m in messages] == ["system", "user"]
        assert "Aero Apartments" in messages[1]["content"]
        assert "Do not write the actual ad copy yet." in messages[1]["content"]

    def test_generation_messages_state_the_bands(self):
        messages = prompting.build_generation_messages(
            CampaignVariant.STANDARD, "Lead with the rooftop pool.", FULL_CLIENT
        )
        system, user = messages[0]["content"], messages[1]["content"]
        assert "25-30 characters" in system
        assert "85-90 characters" in system
        assert "Lead with the rooftop pool." in user

    def test_generation_without_strategy(self):
        messages = prompting.build_generation_messages(CampaignVariant.UNIT_TYPE, "", None)
        assert "None provided." in messages[1]["content"]

    def test_ad_group_and_campaign_context_rendered(self):
        messages = prompting.build_planning_messages(
            CampaignVariant.STANDARD,
            FULL_CLIENT,
            CampaignContext(name="Spring Lease-Up", objective="Fill 20 units"),
            AdGroupContext(name="2 Bedroom", theme="Spacious floor plans"),
        )
        content = messages[1]["content"]
        assert "Spring Lease-Up" in content
        assert "Fill 20 units" in content
        assert "Spacious floor plans" in content

    def test_keyword_data_included_when_present(self):
        research = KeywordResearch(
            keywords=KeywordBuckets(
                high_volume=[KeywordMetric(keyword="austin apartments", search_volume=9000)],
                all=[KeywordMetric(keyword="austin apartments", search_volume=9000)],
            )
        )
        messages = prompting.build_planning_messages(
            CampaignVariant.STANDARD, FULL_CLIENT, research=research
        )
        assert "KEYWORD RESEARCH DATA" in messages[1]["content"]
        assert "austin apartments (9000 searches/month" in messages[1]["content"]

    def test_empty_research_adds_nothing(self):
        assert prompting.render_keywords(KeywordResearch()) == ""
        assert prompting.render_keywords(None) == ""

    def test_unit_type_keyword_analysis_uses_ad_group_only(self):
        messages = prompting.build_keyword_analysis_messages(
            CampaignVariant.UNIT_TYPE, ClientInfo(), None, AdGroupContext(name="Studio Apartments")
        )
        user = messages[1]["content"]
        assert '"Studio Apartments"' in user
        assert "Client Information" not in user

    def test_standard_keyword_analysis_uses_client_context(self):
        messages = prompting.build_keyword_analysis_messages(CampaignVariant.STANDARD, FULL_CLIENT)
        assert "Austin, TX" in messages[1]["content"]
