"""
Mention extraction from raw search-result text.

Locates review-platform URLs (direct links and search-engine redirect links),
captures a fixed text window around each hit, and pulls rating, review-count
and sub-rating evidence out of that window.

Fact extraction sits behind the EvidenceExtractor protocol so that scoring and
aggregation only ever see an Evidence record, whatever produced it.
"""

import re
from dataclasses import dataclass
from typing import List, Optional, Pattern, Protocol, Sequence, Tuple
from urllib.parse import parse_qs, unquote

from .normalize import canonical_url, hostname, strip_markup
from .schema import CandidateMention

REDIRECT_WINDOW = 500
DIRECT_WINDOW = 350

RATING_PATTERNS: Tuple[Pattern, ...] = tuple(
    re.compile(p, re.I)
    for p in (
        r"employee rating[^0-9]{0,25}(\d(?:\.\d)?)(?:\s*(?:out of|/)\s*5)?",
        r"overall(?:\s+rating)?[^0-9]{0,25}(\d(?:\.\d)?)(?:\s*(?:out of|/)\s*5)?",
        r"(\d(?:\.\d)?)\s*out of\s*5\s*stars?",
        r"(\d(?:\.\d)?)\s*/\s*5(?:\s*stars?)?",
    )
)

REVIEW_COUNT_PATTERNS: Tuple[Pattern, ...] = tuple(
    re.compile(p, re.I)
    for p in (
        r"based on\s+(\d[\d,.]*(?:\s*[km])?)\s+(?:company\s+)?reviews?",
        r"(\d[\d,.]*(?:\s*[km])?)\s+(?:company\s+)?reviews?",
    )
)

SUB_RATING_LABELS = {
    "work_life_balance": r"work[\s/-]*life balance",
    "career_opportunities": r"career opportunities",
    "compensation": r"compensation",
}

REDIRECT_PATTERN = re.compile(r"(?:https?:)?//duckduckgo\.com/l/\?([^\"'()\s<>]+)", re.I)
DIRECT_PATTERN = re.compile(
    r"https?://(?:www\.|[a-z]{2}\.)?(?:glassdoor|indeed)\.(?:co\.[a-z]{2}|com\.[a-z]{2}|com|[a-z]{2})\b",
    re.I,
)
URL_TAIL = re.compile(r"https?://[^\s<>\"')\]]+", re.I)

FALLBACK_PATTERNS = {
    "glassdoor": re.compile(
        r"(?:https?://)?(?:www\.)?glassdoor\.(?:com|co\.uk|[a-z]{2}|co\.[a-z]{2})"
        r"/(?:Reviews|Overview)/[A-Za-z0-9%._\-/]+",
        re.I,
    ),
    "indeed": re.compile(
        r"(?:https?://)?(?:www\.|[a-z]{2}\.)?indeed\.(?:com|co\.uk|[a-z]{2})"
        r"/cmp/[A-Za-z0-9%._\-]+(?:/reviews)?",
        re.I,
    ),
}


@dataclass(frozen=True)
class Evidence:
    context: str
    rating_hint: Optional[float] = None
    reviews_hint: Optional[int] = None
    work_life_balance: Optional[float] = None
    career_opportunities: Optional[float] = None
    compensation: Optional[float] = None


class EvidenceExtractor(Protocol):
    def extract(self, context: str) -> Evidence:
        ...


def parse_compact_number(value) -> Optional[int]:
    """Parse "28k", "1.2k", "1,234" or "5m" into an int; None if unparseable."""
    if value is None:
        return None
    normalized = re.sub(r"\s+", "", str(value).lower().replace(",", ""))
    match = re.fullmatch(r"(\d+(?:\.\d+)?)([km])?", normalized)
    if not match:
        return None
    numeric = float(match.group(1))
    multiplier = {"k": 1000, "m": 1000000}.get(match.group(2), 1)
    return int(numeric * multiplier + 0.5)


def _in_rating_range(raw: str) -> Optional[float]:
    try:
        value = float(raw)
    except ValueError:
        return None
    return value if 1 <= value <= 5 else None


def parse_rating(context: str) -> Optional[float]:
    for pattern in RATING_PATTERNS:
        match = pattern.search(context or "")
        if not match:
            continue
        value = _in_rating_range(match.group(1))
        if value is not None:
            return value
    return None


def parse_review_count(context: str) -> Optional[int]:
    for pattern in REVIEW_COUNT_PATTERNS:
        match = pattern.search(context or "")
        if not match:
            continue
        value = parse_compact_number(match.group(1).rstrip(".,"))
        if value is not None and value > 0:
            return value
    return None


def parse_sub_rating(context: str, label: str) -> Optional[float]:
    if not label:
        return None
    match = re.search(label + r"[^0-9]{0,20}(\d(?:\.\d)?)", context or "", re.I)
    if not match:
        return None
    return _in_rating_range(match.group(1))


class PatternEvidenceExtractor:
    """Regex-driven evidence extraction from free text."""

    def extract(self, context: str) -> Evidence:
        cleaned = strip_markup(context)
        return Evidence(
            context=cleaned,
            rating_hint=parse_rating(cleaned),
            reviews_hint=parse_review_count(cleaned),
            work_life_balance=parse_sub_rating(cleaned, SUB_RATING_LABELS["work_life_balance"]),
            career_opportunities=parse_sub_rating(cleaned, SUB_RATING_LABELS["career_opportunities"]),
            compensation=parse_sub_rating(cleaned, SUB_RATING_LABELS["compensation"]),
        )


DEFAULT_EXTRACTOR = PatternEvidenceExtractor()


def decode_redirect_target(fragment: str) -> Optional[str]:
    """Recover the target URL from a DuckDuckGo /l/?uddg= query string."""
    if not fragment:
        return None
    params = parse_qs(fragment.replace("&amp;", "&"))
    if params.get("uddg"):
        return params["uddg"][0]
    match = re.search(r"uddg=([^&]+)", fragment, re.I)
    if not match:
        return None
    return unquote(match.group(1))


def extract_mentions(raw_text: str, extractor: EvidenceExtractor = DEFAULT_EXTRACTOR) -> List[CandidateMention]:
    """Return a CandidateMention for every platform URL found in raw_text."""
    raw_text = raw_text or ""
    mentions: List[CandidateMention] = []

    def add_mention(url: str, index: int, span: int) -> None:
        canonical = canonical_url(url)
        if not canonical:
            return
        start = max(0, index - span)
        end = min(len(raw_text), index + span)
        evidence = extractor.extract(raw_text[start:end])
        mentions.append(CandidateMention(
            url=canonical,
            context=evidence.context,
            rating_hint=evidence.rating_hint,
            reviews_hint=evidence.reviews_hint,
            work_life_balance=evidence.work_life_balance,
            career_opportunities=evidence.career_opportunities,
            compensation=evidence.compensation,
        ))

    for match in REDIRECT_PATTERN.finditer(raw_text):
        target = decode_redirect_target(match.group(1))
        if target:
            add_mention(target, match.start(), REDIRECT_WINDOW)

    for match in DIRECT_PATTERN.finditer(raw_text):
        tail = URL_TAIL.match(raw_text, match.start())
        if tail:
            add_mention(tail.group(0), match.start(), DIRECT_WINDOW)

    return mentions


def extract_fallback_platform_url(raw_text: str, platform: str = "glassdoor") -> Optional[str]:
    """Last-resort scan for any URL shaped like a platform company page."""
    pattern = FALLBACK_PATTERNS.get(platform)
    if pattern is None or not raw_text:
        return None
    match = pattern.search(raw_text)
    if not match:
        return None
    return canonical_url(match.group(0))


def mentions_for_platform(mentions: Sequence[CandidateMention], platform: str) -> List[CandidateMention]:
    needle = f"{platform}."
    return [m for m in mentions if needle in hostname(m.url)]
