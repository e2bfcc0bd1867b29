"""Glassdoor rating baseline for an already resolved company."""

from datetime import datetime, timezone
from typing import List, Optional, Sequence

from .aggregate import aggregate
from .extract import extract_mentions, mentions_for_platform
from .fetcher import DEFAULT_SEARCH_POLICY, FetchPolicy, fetch_search_pages, open_session
from .logger import get_logger
from .normalize import extract_domain_token, tokenize_name
from .platforms import glassdoor_company_id
from .schema import CandidateMention, CompanyIdentity, GlassdoorBaseline
from .scoring import CATEGORY_SIGNAL, OVERALL_SIGNAL, score_glassdoor_candidate, to_confidence
from .search import build_baseline_queries

EVIDENCE_CHARS = 220


def pick_best_rating(candidates: Sequence[CandidateMention]) -> Optional[float]:
    """Prefer ratings stated as overall, then ones without category wording, then the higher value."""
    rated = [c for c in candidates if c.rating_hint is not None]
    if not rated:
        return None

    def rank(c: CandidateMention):
        overall = bool(OVERALL_SIGNAL.search(c.context or ""))
        category = bool(CATEGORY_SIGNAL.search(c.context or ""))
        return (not overall, category, -c.rating_hint)

    return min(rated, key=rank).rating_hint


def pick_best_reviews(candidates: Sequence[CandidateMention]) -> Optional[int]:
    values = [c.reviews_hint for c in candidates if c.reviews_hint is not None and c.reviews_hint > 0]
    return max(values) if values else None


def scrape_glassdoor_baseline(
    identity: Optional[CompanyIdentity],
    session=None,
    policy: FetchPolicy = DEFAULT_SEARCH_POLICY,
) -> Optional[GlassdoorBaseline]:
    """
    Re-query search for a resolved identity and extract a rating/review baseline.

    When the identity carries a Glassdoor company ID, only mentions of that ID
    are considered, unless none were found.

    Returns:
        GlassdoorBaseline, or None when neither a rating nor a review count
        could be established. None means "no baseline", not zero.
    """
    if identity is None:
        return None

    logger = get_logger()
    search_name = identity.canonical_company_name or identity.normalized_company_name
    if not search_name:
        return None

    glassdoor = identity.glassdoor
    queries = build_baseline_queries(
        search_name,
        domain_token=extract_domain_token(identity.preferred_company_url or ""),
        glassdoor_url=glassdoor.url if glassdoor else None,
        preferred_url=identity.preferred_company_url,
    )

    with open_session(session) as s:
        pages = fetch_search_pages(queries, s, policy)

    mentions: List[CandidateMention] = mentions_for_platform(
        [m for _, text in pages for m in extract_mentions(text)], "glassdoor"
    )
    if not mentions and glassdoor is None:
        logger.info("No Glassdoor evidence for baseline", company=search_name)
        return None

    target_id = glassdoor.company_id if glassdoor else None
    anchored = [m for m in mentions if glassdoor_company_id(m.url) == target_id] if target_id else mentions
    candidates = anchored or mentions

    rating = pick_best_rating(candidates)
    if rating is None and glassdoor is not None:
        rating = glassdoor.rating_hint
    reviews = pick_best_reviews(candidates)
    if reviews is None and glassdoor is not None:
        reviews = glassdoor.reviews_hint

    if rating is None and reviews is None:
        logger.info("No Glassdoor baseline established", company=search_name, mentions=len(mentions))
        return None

    best = aggregate(candidates, tokenize_name(search_name), score_glassdoor_candidate)
    source_url = best.url if best else (glassdoor.url if glassdoor else None)

    baseline = GlassdoorBaseline(
        source_url=source_url,
        glassdoor_rating=rating,
        glassdoor_reviews=reviews,
        work_life_balance=best.work_life_balance if best else None,
        career_opportunities=best.career_opportunities if best else None,
        compensation=best.compensation if best else None,
        confidence=to_confidence(best.score if best else 0),
        evidence=best.context[:EVIDENCE_CHARS] if best and best.context else None,
        captured_at=datetime.now(timezone.utc).isoformat(),
    )
    logger.info(
        "Captured Glassdoor baseline",
        company=search_name,
        rating=rating,
        reviews=reviews,
        anchored=bool(target_id and anchored),
    )
    return baseline
