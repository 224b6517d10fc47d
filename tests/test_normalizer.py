"""
tests/test_normalizer.py – unit tests for length-band normalization.
"""
from __future__ import annotations

import random

import pytest

from app.services.normalizer import (
    DESCRIPTION_BAND,
    HEADLINE_BAND,
    PATH_BAND,
    PLACEHOLDERS,
    LengthBand,
    clean_candidate,
    normalize,
    select_placeholder,
    truncate_at_word_boundary,
)

VALID_HEADLINES = [
    "Modern Amenities Await You",
    "Luxury Apartments Downtown",
    "Rooftop Pool With City Views",
    "Pet Friendly Apartment Homes",
    "Schedule Your Private Tour",
    "Spacious Two Bedroom Layouts",
    "Walk To Shops And Restaurants",
    "Resort Style Pool And Spa",
    "Luxury Living Available Now",
]

MESSY_CANDIDATES = [
    "Luxury Apartments, Prime Location",
    "Prime Locat",
    "",
    "   ",
    None,
    42,
    {"headline": "not a string"},
    "Short",
    "Book Your Tour Today...",
    "An extremely long headline that keeps going well past every limit Google Ads allows",
    "Supercalifragilisticexpialidociousnessandthensomemoreletters",
    "Modern Amenities Await You",
    "Modern Amenities Await You",
]


def _assert_in_band(result: list[str], band: LengthBand) -> None:
    assert len(result) == band.count
    for text in result:
        assert isinstance(text, str)
        assert band.min_length <= len(text) <= band.max_length, repr(text)


# ── LengthBand ────────────────────────────────────────────────────────────────


class TestLengthBand:
    def test_google_ads_presets(self):
        assert (HEADLINE_BAND.count, HEADLINE_BAND.min_length, HEADLINE_BAND.max_length) == (11, 25, 30)
        assert (DESCRIPTION_BAND.count, DESCRIPTION_BAND.min_length, DESCRIPTION_BAND.max_length) == (4, 85, 90)
        assert PATH_BAND.count == 2
        assert PATH_BAND.max_length == 15

    def test_min_above_max_rejected(self):
        with pytest.raises(ValueError):
            LengthBand(count=1, min_length=10, max_length=5)

    def test_negative_count_rejected(self):
        with pytest.raises(ValueError):
            LengthBand(count=-1, min_length=0, max_length=5)

    def test_zero_max_rejected(self):
        with pytest.raises(ValueError):
            LengthBand(count=1, min_length=0, max_length=0)

    def test_fits_is_inclusive(self):
        band = LengthBand(count=1, min_length=3, max_length=5)
        assert band.fits("abc")
        assert band.fits("abcde")
        assert not band.fits("ab")
        assert not band.fits("abcdef")

    def test_tiers(self):
        assert PATH_BAND.tier == "path"
        assert HEADLINE_BAND.tier == "headline"
        assert DESCRIPTION_BAND.tier == "description"

    def test_plain_bands_never_use_path_tier(self):
        assert LengthBand(count=1, min_length=5, max_length=15).tier == "headline"
        assert LengthBand(count=1, min_length=60, max_length=120).tier == "description"
        assert LengthBand(count=1, min_length=5, max_length=40, kind="path").tier == "path"

    def test_unknown_kind_rejected(self):
        with pytest.raises(ValueError):
            LengthBand(count=1, min_length=5, max_length=15, kind="sitelink")


# ── Length invariant ──────────────────────────────────────────────────────────


@pytest.mark.parametrize(
    "band",
    [
        HEADLINE_BAND,
        DESCRIPTION_BAND,
        PATH_BAND,
        LengthBand(count=3, min_length=10, max_length=20),
        LengthBand(count=5, min_length=3, max_length=3),
        LengthBand(count=2, min_length=0, max_length=1),
        LengthBand(count=4, min_length=40, max_length=40),
        LengthBand(count=3, min_length=60, max_length=120),
        LengthBand(count=20, min_length=25, max_length=30),
    ],
    ids=lambda b: f"{b.count}x{b.min_length}-{b.max_length}",
)
@pytest.mark.parametrize(
    "candidates",
    [[], None, MESSY_CANDIDATES, VALID_HEADLINES, "not a list"],
    ids=["empty", "none", "messy", "valid", "string"],
)
def test_length_invariant(band, candidates):
    result = normalize(candidates, band, rng=random.Random(0))
    _assert_in_band(result, band)


@pytest.mark.parametrize("context", [None, [], ["luxury apartments", "Austin, TX"], "home services"])
def test_length_invariant_with_context(context):
    for band in (HEADLINE_BAND, DESCRIPTION_BAND, PATH_BAND, LengthBand(15, 25, 30)):
        _assert_in_band(normalize(MESSY_CANDIDATES, band, context=context), band)


def test_zero_count_returns_empty_list():
    assert normalize(VALID_HEADLINES, LengthBand(count=0, min_length=25, max_length=30)) == []


def test_extra_candidates_are_ignored():
    result = normalize(VALID_HEADLINES, LengthBand(count=3, min_length=25, max_length=30))
    assert result == VALID_HEADLINES[:3]


# ── Scenarios ─────────────────────────────────────────────────────────────────


class TestScenarios:
    def test_nine_valid_and_two_missing(self):
        result = normalize(VALID_HEADLINES, HEADLINE_BAND)
        _assert_in_band(result, HEADLINE_BAND)
        assert result[:9] == VALID_HEADLINES
        assert result[9] == PLACEHOLDERS[30][9]
        assert result[10] == PLACEHOLDERS[30][10]

    def test_prime_locat_is_repaired(self):
        result = normalize(["Prime Locat"], LengthBand(count=1, min_length=25, max_length=30))
        text = result[0]
        assert text.startswith("Prime Loc")
        assert "Locat" not in text
        assert 25 <= len(text) <= 30

    def test_compliant_headline_unchanged(self):
        result = normalize(["Modern Amenities Await You"], LengthBand(count=1, min_length=25, max_length=30))
        assert result == ["Modern Amenities Await You"]

    def test_long_headline_is_abbreviated(self):
        result = normalize(["Luxury Apartments, Prime Location"], LengthBand(count=1, min_length=25, max_length=30))
        assert result == ["Luxury Apts, Prime Location"]

    def test_short_headline_is_extended(self):
        result = normalize(["Luxury Living"], LengthBand(count=1, min_length=25, max_length=30))
        assert result == ["Luxury Living Available Now"]

    def test_path_band(self):
        result = normalize(["Luxury Apartments"], PATH_BAND)
        assert result == ["Luxury-Apts", "apartments-now"]

    def test_missing_descriptions_use_placeholder_table(self):
        result = normalize([], DESCRIPTION_BAND)
        assert result == list(PLACEHOLDERS[90])

    def test_context_steers_placeholders_past_the_table(self):
        band = LengthBand(count=12, min_length=25, max_length=30)
        result = normalize([], band, context=["plumbing"])
        _assert_in_band(result, band)
        assert "Plumbing" in result[11]

    def test_trailing_ellipsis_is_not_kept(self):
        result = normalize(["Book Your Tour Today..."], LengthBand(count=1, min_length=25, max_length=30))
        assert "..." not in result[0]
        assert result[0].startswith("Book Your Tour Today")

    def test_plain_narrow_band_keeps_spaces(self):
        band = LengthBand(count=1, min_length=12, max_length=15)
        assert normalize(["Great Deals"], band) == ["Great Deals Now"]
        assert normalize(["Austin Luxury Homes"], band) == ["Austin Luxury"]

    def test_plain_narrow_band_placeholders_have_no_slugs(self):
        band = LengthBand(count=3, min_length=5, max_length=15)
        result = normalize([], band, rng=random.Random(0))
        _assert_in_band(result, band)
        assert not any("-" in s for s in result)

    def test_truncation_drops_dangling_connector(self):
        result = normalize(
            ["Luxury Apartments Downtown Austin Texas With Pool"],
            LengthBand(count=1, min_length=25, max_length=30),
        )
        assert result == ["Luxury Apts DT Austin Texas"]

    def test_headline_extension_keeps_exclamation_in_place(self):
        result = normalize(["Call now!"], LengthBand(count=1, min_length=25, max_length=30))
        assert result == ["Call now! Book Today Visit Us"]

    def test_generic_placeholders_do_not_repeat(self):
        band = LengthBand(count=16, min_length=25, max_length=30)
        result = normalize([], band, rng=random.Random(0))
        _assert_in_band(result, band)
        assert len(set(result[11:])) == 5

    def test_wide_band_is_filled(self):
        band = LengthBand(count=1, min_length=900, max_length=1000)
        _assert_in_band(normalize(["Hi"], band), band)


# ── Truncation ────────────────────────────────────────────────────────────────


class TestTruncation:
    def test_never_ends_mid_word(self):
        source = "Luxury Apartments, Prime Location"
        result = truncate_at_word_boundary(source, HEADLINE_BAND)
        assert len(result) <= 30
        assert result == "Luxury Apartments, Prime"
        assert set(result.split()) <= set(source.split())

    def test_short_text_untouched(self):
        assert truncate_at_word_boundary("Already Short", HEADLINE_BAND) == "Already Short"

    def test_single_long_word_is_hard_cut(self):
        result = truncate_at_word_boundary("x" * 50, HEADLINE_BAND)
        assert result == "x" * 30

    def test_path_cuts_at_hyphen(self):
        result = truncate_at_word_boundary("luxury-apartments-austin", PATH_BAND)
        assert result == "luxury"

    def test_no_trailing_punctuation_after_cut(self):
        result = truncate_at_word_boundary("Great Pricing, Luxury Units and Amenities", HEADLINE_BAND)
        assert not result.endswith((",", " ", "&"))
        assert len(result) <= 30


# ── Cleaning ──────────────────────────────────────────────────────────────────


class TestCleanCandidate:
    def test_truncation_fix_applied(self):
        assert clean_candidate("Prime Locat", HEADLINE_BAND) == "Prime Loc"

    def test_longest_fix_wins(self):
        assert clean_candidate("Luxury Apartments, Prime Locat", HEADLINE_BAND) == "Luxury Apartments, Prime Loc"

    def test_complete_words_not_rewritten(self):
        assert clean_candidate("Luxury Apartments Await", HEADLINE_BAND) == "Luxury Apartments Await"

    def test_whitespace_collapsed(self):
        assert clean_candidate("  Modern   Living  ", HEADLINE_BAND) == "Modern Living"

    def test_dangling_punctuation_stripped(self):
        assert clean_candidate("Tour Today, &", HEADLINE_BAND) == "Tour Today"

    def test_path_spaces_become_hyphens(self):
        assert clean_candidate("Austin Homes", PATH_BAND) == "Austin-Homes"


# ── Idempotence & determinism ─────────────────────────────────────────────────


class TestStability:
    @pytest.mark.parametrize("band", [HEADLINE_BAND, DESCRIPTION_BAND, PATH_BAND])
    def test_idempotent(self, band):
        once = normalize(MESSY_CANDIDATES, band, rng=random.Random(3))
        twice = normalize(once, band, rng=random.Random(99))
        assert twice == once

    def test_seeded_rng_is_deterministic(self):
        band = LengthBand(count=6, min_length=20, max_length=40)
        first = normalize([], band, rng=random.Random(42))
        second = normalize([], band, rng=random.Random(42))
        assert first == second
        _assert_in_band(first, band)

    def test_table_placeholders_ignore_rng(self):
        assert normalize([], HEADLINE_BAND, rng=random.Random(1)) == normalize(
            [], HEADLINE_BAND, rng=random.Random(2)
        )

    def test_select_placeholder_uses_table_first(self):
        assert select_placeholder(HEADLINE_BAND, 0) == "Premium Living Space Today"
        assert select_placeholder(PATH_BAND, 1) == "apartments-now"

    def test_input_list_not_mutated(self):
        candidates = list(MESSY_CANDIDATES)
        normalize(candidates, HEADLINE_BAND)
        assert candidates == MESSY_CANDIDATES
