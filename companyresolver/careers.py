"""
Candidate-experience assessment from a company's careers pages.

Probes likely careers URLs (directly and through the text mirror), scores the
page content for hiring signals, and falls back to an estimate built from the
resolved identity when no careers page is reachable.
"""

import re
from dataclasses import dataclass
from typing import List, Optional

from bs4 import BeautifulSoup

from .fetcher import (
    BLOCKED_PAGE_PATTERNS,
    DEFAULT_SEARCH_POLICY,
    PROBE_TIMEOUT,
    FetchPolicy,
    fetch_text,
    gather,
    is_blocked_content,
    mirror_url,
    open_session,
)
from .logger import get_logger
from .normalize import canonical_url, decode_html_entities, hostname, normalize_whitespace
from .resolver import resolve_company_identity
from .schema import CareersAssessment, CompanyIdentity
from .search import unique_ordered

MAX_PROBED_URLS = 3

OPEN_ROLES = re.compile(r"(\d{1,4}(?:,\d{3})?)\s*\+?\s*(open roles|open positions|vacancies|jobs)", re.I)
APPLY = re.compile(r"(apply now|submit application|view jobs|search jobs|join our team)", re.I)
HIRING_PROCESS = re.compile(
    r"(interview process|hiring process|application process|candidate journey|recruitment process)", re.I
)
BENEFITS = re.compile(r"(benefits|compensation|healthcare|wellbeing|well-being|pension|perks)", re.I)
LOCATION = re.compile(r"(location|remote|hybrid|onsite|on-site|global offices|work from)", re.I)
EARLY_CAREERS = re.compile(r"(internship|graduate programme|early careers|student opportunities)", re.I)


@dataclass
class HiringSignals:
    open_roles: Optional[int] = None
    has_apply: bool = False
    has_hiring_process: bool = False
    has_benefits: bool = False
    has_location_signals: bool = False
    has_graduate_or_intern: bool = False


def page_text(raw: str) -> str:
    raw = raw or ""
    if "<" not in raw:
        return normalize_whitespace(decode_html_entities(raw))
    soup = BeautifulSoup(raw, "html.parser")
    for tag in soup(["script", "style"]):
        tag.decompose()
    return normalize_whitespace(soup.get_text(" "))


def extract_signals(raw: str) -> HiringSignals:
    text = page_text(raw)
    roles = OPEN_ROLES.search(text)
    return HiringSignals(
        open_roles=int(roles.group(1).replace(",", "")) if roles else None,
        has_apply=bool(APPLY.search(text)),
        has_hiring_process=bool(HIRING_PROCESS.search(text)),
        has_benefits=bool(BENEFITS.search(text)),
        has_location_signals=bool(LOCATION.search(text)),
        has_graduate_or_intern=bool(EARLY_CAREERS.search(text)),
    )


def score_signals(signals: HiringSignals, source_type: str = "direct") -> int:
    score = 58
    if source_type == "direct":
        score += 10
    elif source_type == "mirror":
        score += 6

    if signals.open_roles:
        score += 8
    if signals.has_apply:
        score += 5
    if signals.has_hiring_process:
        score += 5
    if signals.has_benefits:
        score += 4
    if signals.has_location_signals:
        score += 3
    if signals.has_graduate_or_intern:
        score += 3

    return max(45, min(92, score))


def careers_confidence(score: float) -> str:
    if score >= 75:
        return "high"
    if score >= 62:
        return "medium"
    return "low"


def build_careers_urls(company_url: str = "", company_name: str = "") -> List[str]:
    host = re.sub(r"^www\.", "", hostname(company_url))
    if not host and company_name:
        compact = re.sub(r"[^a-z0-9]", "", company_name.lower())
        host = f"{compact}.com" if compact else ""
    if not host:
        return []

    base = f"https://{host}"
    return unique_ordered([
        canonical_url(company_url),
        f"{base}/careers",
        f"{base}/careers/",
        f"{base}/jobs",
        f"{base}/jobs/",
        f"{base}/career",
        f"{base}/join-us",
        f"{base}/work-with-us",
        f"https://careers.{host}",
        f"https://jobs.{host}",
    ])


def _direct_insight(company_name: str, source_url: str, signals: HiringSignals) -> str:
    highlights = []
    if signals.open_roles:
        highlights.append(f"{signals.open_roles:,} open roles signals")
    if signals.has_apply:
        highlights.append("clear apply flow")
    if signals.has_hiring_process:
        highlights.append("hiring process guidance")
    if signals.has_benefits:
        highlights.append("benefits visibility")
    if signals.has_location_signals:
        highlights.append("location/remote clarity")
    if signals.has_graduate_or_intern:
        highlights.append("early-careers pathways")

    details = ", ".join(highlights) if highlights else "basic careers information"
    return (
        f"{company_name}'s careers experience was assessed from {source_url}. "
        f"Candidate journey indicators show {details}."
    )


def _fallback_assessment(
    company_name: str,
    identity: Optional[CompanyIdentity],
    talent_sentiment: Optional[dict],
    attempted: List[str],
) -> CareersAssessment:
    talent_sentiment = talent_sentiment or {}
    rating = talent_sentiment.get("aggregated_score")
    reviews = talent_sentiment.get("total_reviews")
    rating = rating if isinstance(rating, (int, float)) else None
    reviews = reviews if isinstance(reviews, int) else None

    glassdoor = identity.glassdoor if identity else None
    indeed = identity.indeed if identity else None
    sources = [label for label, ref in (("Glassdoor", glassdoor), ("Indeed", indeed)) if ref]

    score = 56
    if rating is not None:
        if rating >= 4.2:
            score += 12
        elif rating >= 3.7:
            score += 8
        elif rating >= 3.2:
            score += 4
        else:
            score += 1
    if reviews and reviews > 1000:
        score += 4
    elif reviews and reviews > 100:
        score += 2
    if indeed:
        score += 3
    if glassdoor:
        score += 3
    score = max(50, min(80, score))

    source_label = " and ".join(sources) if sources else "alternative public review sources"
    prefix = (
        f"Careers URL checks ({', '.join(attempted[:3])}) were restricted or inconsistent. " if attempted else ""
    )
    if rating is not None:
        review_part = f" from {reviews:,} reviews" if reviews else ""
        sentiment = f"{source_label} suggest an employee sentiment baseline of {rating}/5{review_part}."
    else:
        sentiment = f"{source_label} provide partial signals for candidate expectations and employer responsiveness."

    return CareersAssessment(
        score=score,
        insight=(
            f"{prefix}{company_name}'s candidate experience was estimated using {source_label} "
            f"when direct careers content was unavailable. {sentiment}"
        ),
        source_type="fallback",
        source_url=glassdoor.url if glassdoor else (indeed.url if indeed else None),
        confidence=careers_confidence(score),
        fallback_used=True,
        attempted_urls=list(attempted),
    )


def assess_candidate_experience(
    company_name: str = "",
    company_url: str = "",
    talent_sentiment: Optional[dict] = None,
    session=None,
    identity: Optional[CompanyIdentity] = None,
    policy: FetchPolicy = DEFAULT_SEARCH_POLICY,
    timeout: float = PROBE_TIMEOUT,
) -> CareersAssessment:
    """
    Score a company's candidate experience from its careers pages.

    Args:
        company_name: Company name as typed by the user
        company_url: Company website, if known
        talent_sentiment: Optional {"aggregated_score": float, "total_reviews": int}
        session: requests.Session-compatible client; a private one is used if None
        identity: Previously resolved identity; resolved here when omitted
        policy: Search policy used when the identity has to be resolved
        timeout: Per-probe timeout in seconds

    Returns:
        CareersAssessment; fallback_used is True when no careers page was usable.
    """
    logger = get_logger()
    display_name = normalize_whitespace(company_name) or "The company"

    with open_session(session) as s:
        if identity is None:
            identity = resolve_company_identity(company_name, company_url, session=s, policy=policy)

        urls = build_careers_urls(company_url, identity.canonical_company_name or company_name)
        attempted = urls[:MAX_PROBED_URLS]
        probes = []
        for url in attempted:
            probes.append(("direct", url, url))
            mirrored = mirror_url(url)
            if mirrored:
                probes.append(("mirror", url, mirrored))

        responses = gather(lambda probe: fetch_text(probe[2], s, timeout), probes)

    ranked = []
    for (source_type, url, _), response in zip(probes, responses):
        if not response.ok or is_blocked_content(response.text, BLOCKED_PAGE_PATTERNS):
            continue
        signals = extract_signals(response.text)
        ranked.append((score_signals(signals, source_type), source_type, url, signals))

    if not ranked:
        logger.info("No careers page usable, using fallback", company=display_name, attempted=attempted)
        return _fallback_assessment(display_name, identity, talent_sentiment, attempted)

    # Highest score first; direct beats mirror on ties.
    ranked.sort(key=lambda r: (-r[0], r[1] != "direct"))
    score, source_type, url, signals = ranked[0]
    logger.info("Assessed careers page", company=display_name, url=url, score=score)
    return CareersAssessment(
        score=score,
        insight=_direct_insight(display_name, url, signals),
        source_type=source_type,
        source_url=url,
        confidence=careers_confidence(score),
        fallback_used=False,
        attempted_urls=attempted,
    )
