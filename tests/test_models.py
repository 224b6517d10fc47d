"""
tests/test_models.py – unit tests for Pydantic v2 schemas.
"""
from __future__ import annotations

import pytest
from pydantic import ValidationError

from app.models import (
    AdCopyRequest,
    AdRecord,
    BandName,
    BandSpec,
    ClientInfo,
    CopySource,
    KeywordAnalysis,
    NormalizeRequest,
)


class TestClientInfo:
    def test_all_fields_optional(self):
        assert ClientInfo().is_empty()

    def test_whitespace_counts_as_empty(self):
        assert ClientInfo(name="   ").is_empty()

    def test_any_field_makes_it_non_empty(self):
        assert not ClientInfo(budget="$3,000").is_empty()


class TestAdCopyRequest:
    def test_minimal_request(self):
        req = AdCopyRequest.model_validate({})
        assert req.client.is_empty()
        assert req.research_keywords is False
        assert req.ad_group_id is None

    def test_nested_context(self):
        req = AdCopyRequest.model_validate(
            {
                "client": {"name": "Aero Apartments"},
                "campaign": {"name": "General", "is_unit_type": False},
                "ad_group": {"name": "Location"},
            }
        )
        assert req.campaign.is_unit_type is False
        assert req.ad_group.name == "Location"

    def test_unknown_client_field_ignored(self):
        req = AdCopyRequest.model_validate({"client": {"name": "Aero", "favourite_colour": "blue"}})
        assert req.client.name == "Aero"


class TestBandSpec:
    def test_valid(self):
        band = BandSpec(count=11, min_length=25, max_length=30)
        assert band.count == 11

    def test_min_above_max_rejected(self):
        with pytest.raises(ValidationError):
            BandSpec(count=1, min_length=31, max_length=30)

    def test_negative_count_rejected(self):
        with pytest.raises(ValidationError):
            BandSpec(count=-1, min_length=0, max_length=30)

    def test_zero_max_rejected(self):
        with pytest.raises(ValidationError):
            BandSpec(count=1, min_length=0, max_length=0)


class TestNormalizeRequest:
    def test_defaults_to_headline_preset(self):
        req = NormalizeRequest()
        assert req.preset == BandName.HEADLINES
        assert req.band is None
        assert req.candidates == []

    def test_accepts_mixed_candidates(self):
        req = NormalizeRequest(candidates=["ok", None, 3, {"x": 1}])
        assert len(req.candidates) == 4

    def test_invalid_preset_rejected(self):
        with pytest.raises(ValidationError):
            NormalizeRequest(preset="sitelinks")


class TestRecords:
    def test_ad_record_defaults(self):
        record = AdRecord(id="a1", ad_group_id="g1")
        assert record.source == CopySource.GENERATED
        assert record.headlines == []
        assert record.created_at.tzinfo is not None

    def test_record_requires_id(self):
        with pytest.raises(ValidationError):
            AdRecord(ad_group_id="g1")


class TestKeywordAnalysis:
    def test_seed_terms_skip_blanks(self):
        analysis = KeywordAnalysis(seed_keywords=["  ", "austin apartments"], core_topics=[""])
        assert analysis.seed_terms() == ["austin apartments"]
