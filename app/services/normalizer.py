"""
app/services/normalizer.py – length-band normalization for ad copy.

Google Ads rejects headlines and descriptions outside fixed character
limits, and LLM output drifts on both sides of them. `normalize()` forces a
candidate list into a `LengthBand`:

    normalize(candidates, band) -> exactly band.count strings,
                                   each band.min_length <= len <= band.max_length

Pipeline per slot
─────────────────
• Compliant candidate      → returned untouched.
• Too long                 → redundant phrases, abbreviations, filler words,
                             then a word-boundary truncation.
• Too short                → context suffixes, generic suffixes, suffix pairs,
                             then padding words.
• Missing / empty / junk   → placeholder table, context template, or a
                             generic template picked with the injected `rng`.

Everything here is pure: no I/O, no module state is mutated, and the only
nondeterminism is the generic-template choice behind `rng`.
"""
from __future__ import annotations

import itertools
import random
import re
from dataclasses import dataclass
from typing import Any, Iterable, Optional, Sequence


# ── Bands ─────────────────────────────────────────────────────────────────────

TIERS: tuple[str, ...] = ("headline", "description", "path")


@dataclass(frozen=True)
class LengthBand:
    """Contract for one ad-asset list: how many strings and how long each."""

    count: int
    min_length: int
    max_length: int
    # headline, description or path; None means plain text sized by length
    kind: Optional[str] = None

    def __post_init__(self) -> None:
        if self.kind is not None and self.kind not in TIERS:
            raise ValueError(f"kind must be one of {TIERS}, got {self.kind!r}")
        if self.count < 0:
            raise ValueError(f"count must be >= 0, got {self.count}")
        if self.min_length < 0:
            raise ValueError(f"min_length must be >= 0, got {self.min_length}")
        if self.max_length < 1:
            raise ValueError(f"max_length must be >= 1, got {self.max_length}")
        if self.min_length > self.max_length:
            raise ValueError(
                f"min_length ({self.min_length}) exceeds max_length ({self.max_length})"
            )

    def fits(self, text: str) -> bool:
        return self.min_length <= len(text) <= self.max_length

    @property
    def tier(self) -> str:
        """
        Vocabulary tier used for suffixes and padding.

        Only bands declared as ``kind="path"`` get slug treatment (hyphens,
        lowercase suffixes); other bands pick headline or description wording
        by width.
        """
        if self.kind is not None:
            return self.kind
        return "headline" if self.max_length <= 30 else "description"


# Responsive search ad limits. Minimums keep copy from looking thin.
HEADLINE_BAND = LengthBand(count=11, min_length=25, max_length=30, kind="headline")
DESCRIPTION_BAND = LengthBand(count=4, min_length=85, max_length=90, kind="description")
PATH_BAND = LengthBand(count=2, min_length=5, max_length=15, kind="path")


# ── Vocabulary ────────────────────────────────────────────────────────────────

# Fragments the model leaves behind when it cuts its own output short.
# Longest first so compound fragments win over their parts.
TRUNCATION_FIXES: tuple[tuple[str, str], ...] = (
    ("Competitive Pricing, High Luxu", "Great Pricing, Luxury"),
    ("Luxury Apartments, Prime Locat", "Luxury Apartments, Prime Loc"),
    ("Amenities Galore in Aero", "Many Amenities at Aero"),
    ("Essential Amenit", "Key Amenities"),
    ("Comp Pricing", "Competitive Price"),
    ("Luxury Apart", "Luxury Apartments"),
    ("Prime Locat", "Prime Loc"),
    ("High Luxu", "High Luxury"),
)

REDUNDANT_PHRASES: tuple[tuple[str, str], ...] = (
    ("Now Available", "Available"),
    ("Now Leasing", "Leasing"),
    ("High Quality", "Quality"),
    ("Top Quality", "Quality"),
    ("Contact Us", "Call Us"),
)

ABBREVIATIONS: tuple[tuple[str, str], ...] = (
    ("Apartments", "Apts"),
    ("Apartment", "Apt"),
    ("Available", "Avail"),
    ("Location", "Loc"),
    ("Professional", "Pro"),
    ("Bedrooms", "Beds"),
    ("Bedroom", "Bed"),
    ("Management", "Mgmt"),
    ("Downtown", "DT"),
    ("and", "&"),
    ("with", "w/"),
)

FILLER_WORDS: tuple[str, ...] = ("and", "the", "in", "at", "for", "with", "near")

# (keyword in text or context, suffixes) per tier, checked before generic suffixes.
_CONTEXT_SUFFIXES: dict[str, tuple[tuple[str, tuple[str, ...]], ...]] = {
    "headline": (
        ("luxury", ("Awaits", "Living")),
        ("service", ("Pro", "Expert", "Quality")),
        ("apartment", ("Available", "Ready", "Open")),
        ("home", ("Available", "Ready", "Open")),
    ),
    "description": (
        ("quality", ("Experience the difference today.",)),
        ("premium", ("Experience the difference today.",)),
        ("luxury", ("Elevated living awaits you.",)),
        ("apartment", ("Schedule your tour today.",)),
    ),
    "path": (
        ("apartment", ("rent", "tour")),
        ("service", ("pros",)),
    ),
}

# Generic suffixes per tier, grouped by how many characters are still missing.
_GENERIC_SUFFIXES: dict[str, tuple[tuple[int, tuple[str, ...]], ...]] = {
    "headline": (
        (5, ("Now", "Pro", "Plus", "Here", "Open")),
        (10, ("Today", "Expert", "Quality", "Premium", "Trusted")),
        (10_000, ("Available Now", "Book Today", "Call Now", "Visit Us", "Get Started")),
    ),
    "description": (
        (15, ("Call us now.", "Learn more now.", "Book your visit.", "Contact us today.")),
        (25, ("Get in touch today.", "Schedule your visit now.", "Discover more today.")),
        (10_000, (
            "Contact us today to learn more.",
            "Schedule your personal tour today.",
            "Experience the difference today.",
        )),
    ),
    "path": (
        (3, ("pro", "top", "new")),
        (6, ("today", "offers", "deals")),
        (10_000, ("services", "solutions", "contact")),
    ),
}

PADDING_WORDS: dict[str, tuple[str, ...]] = {
    "headline": ("Pro", "Plus", "New", "Top", "Best", "Now"),
    "description": ("and more", "with quality", "plus service", "and value", "today", "now"),
    "path": ("pro", "plus", "new"),
}

# Positional placeholders keyed by max_length; slot i uses entry i.
PLACEHOLDERS: dict[int, tuple[str, ...]] = {
    30: (
        "Premium Living Space Today",
        "Luxury Apartments Available",
        "Modern Urban Homes Here Now",
        "Executive Residences Open",
        "Downtown Living Available",
        "Upscale Amenities Await You",
        "Prime Location Units Ready",
        "Quality Craftsmanship Here",
        "Move-In Ready Homes Today",
        "Professional Housing Plus",
        "Elite Communities Available",
    ),
    90: (
        "Experience the perfect blend of luxury and convenience in our apartments. Schedule today!",
        "Discover upscale living with state-of-the-art amenities and prime location. Call now!",
        "Premium apartments featuring modern design, top amenities, and an unbeatable location!",
        "Elevate your lifestyle with our luxury residences and professional management services!",
    ),
    15: ("luxury-today", "apartments-now"),
}

# Used past the end of the table when context terms are available.
_CONTEXT_TEMPLATES: dict[str, tuple[str, ...]] = {
    "headline": (
        "Trusted {term} Experts",
        "Top Rated {term} Today",
        "Discover {term} Near You",
        "Quality {term} Services",
        "Your {term} Solution",
    ),
    "description": (
        "Looking for {term}? Our team delivers results you can count on. Contact us today.",
        "Discover why customers choose us for {term}. Schedule your free consultation now.",
        "Experience {term} done right, with friendly experts ready to help. Call us today.",
    ),
    "path": ("{term}", "{term}-now", "{term}-info"),
}

# No context at all: one is chosen with the caller's rng.
_GENERIC_TEMPLATES: dict[str, tuple[str, ...]] = {
    "headline": (
        "Quality Service You Can Trust",
        "Your Search Ends Right Here",
        "Trusted Local Experts Ready",
        "Book Your Visit Online Today",
        "Find Exactly What You Need",
    ),
    "description": (
        "Discover quality service tailored to your needs. Contact our friendly team today to start.",
        "Trusted professionals ready to help you every step of the way. Get in touch with us today.",
        "Experience the difference dedicated service makes. Call now to learn about our offers.",
    ),
    "path": ("learn-more", "contact-us", "book-now", "get-started"),
}

_TRAILING_JUNK = re.compile(r"(?:\.{2,}|…|[\s,;:&\-–])+$")
# Connectors that read as cut off when they end a line.
_DANGLING_WORD = re.compile(
    r"\s+(?:w/|and|with|the|for|of|to|or|at|near|your|our)$", re.IGNORECASE
)
_SENTENCE_END = ".!?"


# ── Public API ────────────────────────────────────────────────────────────────


def normalize(
    candidates: Optional[Sequence[Any]],
    band: LengthBand,
    *,
    context: Optional[Iterable[str]] = None,
    rng: Optional[random.Random] = None,
) -> list[str]:
    """
    Force `candidates` into `band`.

    Parameters
    ----------
    candidates : sequence | None
        Raw model output. Entries that are not non-empty strings count as missing.
    band : LengthBand
        Target count and inclusive length range.
    context : iterable of str | None
        Campaign terms (industry, location, selling points). Drives suffix
        selection and placeholder wording.
    rng : random.Random | None
        Source for the generic placeholder choice. Pass a seeded instance
        for reproducible output.

    Returns
    -------
    list[str] of exactly `band.count` strings, every one inside the band.
    Never raises.
    """
    items = list(candidates) if isinstance(candidates, (list, tuple)) else []
    if isinstance(context, str):
        context = [context]
    terms = [t.strip() for t in (context or []) if isinstance(t, str) and t.strip()]
    rng = rng or random.Random()
    order = _shuffled_templates(band, rng)

    result: list[str] = []
    for index in range(band.count):
        candidate = items[index] if index < len(items) else None
        result.append(_normalize_slot(candidate, index, band, terms, order))
    return result


def clean_candidate(text: str, band: LengthBand) -> str:
    """Collapse whitespace, repair known truncated fragments and strip dangling punctuation."""
    text = re.sub(r"\s+", " ", text).strip()
    if band.tier == "path":
        text = text.replace(" ", "-")
    for fragment, replacement in TRUNCATION_FIXES:
        text = re.sub(
            re.escape(fragment) + r"(?![A-Za-z])", replacement, text, flags=re.IGNORECASE
        )
    return _strip_trailing(text)


def truncate_at_word_boundary(text: str, band: LengthBand) -> str:
    """
    Cut `text` to at most `band.max_length` without splitting a word.

    Looks backward from max_length to min_length for a position followed by
    a space or sentence punctuation. Failing that, cuts at the last space
    before max_length; a text with no space at all is hard-cut.
    """
    limit = band.max_length
    if len(text) <= limit:
        return text

    boundary = " -" if band.tier == "path" else " "
    for end in range(limit, max(band.min_length, 1) - 1, -1):
        if text[end] in boundary + _SENTENCE_END + ",;":
            cut = _strip_trailing(text[:end])
            if cut:
                return cut

    space = max(text.rfind(ch, 1, limit + 1) for ch in boundary)
    if space > 0:
        cut = _strip_trailing(text[:space])
        if cut:
            return cut
    return text[:limit]


def select_placeholder(
    band: LengthBand,
    index: int,
    terms: Sequence[str] = (),
    rng: Optional[random.Random] = None,
    order: Optional[Sequence[str]] = None,
) -> str:
    """
    Return the raw (not yet fitted) placeholder for slot `index`.

    Generic templates are taken in `order` (a shuffled copy drawn from `rng`
    when omitted), so consecutive slots only repeat once every template has
    been used.
    """
    table = PLACEHOLDERS.get(band.max_length, ())
    if band.max_length == PATH_BAND.max_length and band.tier != "path":
        # Slug table; plain-text bands of the same width skip it
        table = ()
    if index < len(table):
        return table[index]

    tier = band.tier
    if terms:
        templates = _CONTEXT_TEMPLATES[tier]
        term = terms[index % len(terms)]
        if tier == "path":
            term = re.sub(r"[^a-z0-9]+", "-", term.lower()).strip("-") or "info"
        else:
            term = term[0].upper() + term[1:]
        return templates[index % len(templates)].format(term=term)

    generic = order or _shuffled_templates(band, rng or random.Random())
    return generic[(index - len(table)) % len(generic)]


def _shuffled_templates(band: LengthBand, rng: random.Random) -> list[str]:
    templates = _GENERIC_TEMPLATES[band.tier]
    return rng.sample(templates, len(templates))


# ── Slot pipeline ─────────────────────────────────────────────────────────────


def _normalize_slot(
    candidate: Any,
    index: int,
    band: LengthBand,
    terms: Sequence[str],
    order: Sequence[str],
) -> str:
    if isinstance(candidate, str) and candidate:
        if band.fits(candidate):
            return candidate
        cleaned = clean_candidate(candidate, band)
        if cleaned:
            return _fit(cleaned, band, terms)

    placeholder = select_placeholder(band, index, terms, order=order)
    return _fit(placeholder, band, terms)


def _fit(text: str, band: LengthBand, terms: Sequence[str]) -> str:
    if len(text) > band.max_length:
        text = _shorten(text, band)
    if len(text) > band.max_length:
        text = truncate_at_word_boundary(text, band)
    if len(text) < band.min_length:
        text = _extend(text, band, terms)
    if not band.fits(text):
        text = _pad(text, band)
    return text


# ── Shortening ────────────────────────────────────────────────────────────────


def _shorten(text: str, band: LengthBand) -> str:
    """Apply one substitution at a time until the text fits under max_length."""
    for phrase, replacement in REDUNDANT_PHRASES:
        if len(text) <= band.max_length:
            return text
        text = _replace_word(text, phrase, replacement)

    for word, abbreviation in ABBREVIATIONS:
        while len(text) > band.max_length:
            shorter = _replace_word(text, word, abbreviation, count=1)
            if shorter == text:
                break
            text = shorter

    for word in FILLER_WORDS:
        while len(text) > band.max_length:
            shorter = re.sub(rf"\s+{word}\s+", " ", text, count=1, flags=re.IGNORECASE)
            if shorter == text:
                break
            text = shorter

    return text


def _replace_word(text: str, word: str, replacement: str, count: int = 0) -> str:
    pattern = re.compile(rf"(?<![\w&/]){re.escape(word)}(?![\w&/])", re.IGNORECASE)

    def _match_case(m: re.Match) -> str:
        found = m.group(0)
        if not replacement[0].isalpha() or replacement.isupper():
            return replacement
        if found.isupper() and len(found) > 1:
            return replacement.upper()
        if found[0].islower():
            return replacement.lower()
        return replacement

    return pattern.sub(_match_case, text, count=count)


def _strip_trailing(text: str) -> str:
    previous = None
    while text != previous:
        previous = text
        text = _DANGLING_WORD.sub("", _TRAILING_JUNK.sub("", text))
    return text


# ── Extension ─────────────────────────────────────────────────────────────────


def _extend(text: str, band: LengthBand, terms: Sequence[str]) -> str:
    """Append suffixes (single, then pairs, then padding) until min_length is met."""
    tier = band.tier
    suffixes = _suffix_candidates(text, band, terms)

    for suffix in suffixes:
        extended = _attach(text, suffix, tier)
        if band.fits(extended):
            return extended

    for first in suffixes:
        head = _attach(text, first, tier)
        if len(head) >= band.max_length:
            continue
        for second in suffixes:
            if second == first or _repeats(head, second, tier):
                continue
            extended = _attach(head, second, tier)
            if band.fits(extended):
                return extended

    padded = text
    used = _words(padded)
    while len(padded) < band.min_length:
        words = sorted(PADDING_WORDS[tier], key=lambda w: not used.isdisjoint(_words(w)))
        for word in words:
            extended = _attach(padded, word, tier)
            if len(extended) <= band.max_length:
                padded = extended
                used |= _words(word)
                break
        else:
            break
    return padded


def _suffix_candidates(text: str, band: LengthBand, terms: Sequence[str]) -> list[str]:
    tier = band.tier
    haystack = " ".join([text, *terms]).lower()
    needed = band.min_length - len(text)

    ordered: list[str] = []
    for keyword, suffixes in _CONTEXT_SUFFIXES[tier]:
        if keyword in haystack:
            ordered.extend(suffixes)

    groups = _GENERIC_SUFFIXES[tier]
    primary = next(
        (i for i, (limit, _) in enumerate(groups) if needed <= limit), len(groups) - 1
    )
    for _, suffixes in (groups[primary], *groups[:primary], *groups[primary + 1:]):
        ordered.extend(suffixes)

    seen: set[str] = set()
    unique: list[str] = []
    for suffix in ordered:
        if suffix not in seen and not _repeats(text, suffix, tier):
            seen.add(suffix)
            unique.append(suffix)
    return unique


def _attach(text: str, addition: str, tier: str) -> str:
    if not text:
        return addition
    if tier == "path":
        return f"{text}-{addition}"
    if tier == "description" and addition[0].isupper():
        # New sentence
        if text[-1] not in _SENTENCE_END:
            text += "."
        return f"{text} {addition}"
    if tier == "description" and text[-1] in _SENTENCE_END:
        # Continuation words go before the closing punctuation
        return f"{text[:-1]} {addition}{text[-1]}"
    return f"{text} {addition}"


def _words(text: str) -> set[str]:
    return set(re.findall(r"[a-z]+", text.lower()))


def _overlaps(text: str, addition: str) -> bool:
    return not _words(text).isdisjoint(_words(addition))


def _repeats(text: str, addition: str, tier: str) -> bool:
    # Sentences share common words freely; only skip exact repeats there.
    if tier == "description":
        return addition.lower() in text.lower()
    return _overlaps(text, addition)


def _pad(text: str, band: LengthBand) -> str:
    """Last resort for bands too tight for whole words: repeat padding, cut to max."""
    tier = band.tier
    padded = text
    for word in itertools.cycle(PADDING_WORDS[tier]):
        if len(padded) >= band.min_length:
            break
        padded = _attach(padded, word, tier)
    padded = padded[: band.max_length]
    if padded.endswith(" "):
        padded = padded[:-1] + "."
    return padded
