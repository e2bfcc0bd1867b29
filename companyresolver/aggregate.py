"""
Candidate aggregation.

Responsibilities:
- Merge mentions that point at the same canonical URL.
- Score each unique URL and pick the best one.

Non-Responsibilities:
- No fetching or text parsing.
- No confidence decisions.

Invariant:
Aggregation is deterministic and idempotent. Feeding the same mention twice
produces the same merged candidate as feeding it once, and equal scores are
resolved in favour of the URL seen first.
"""

from typing import Callable, Dict, Iterable, List, Optional

from .normalize import canonical_url
from .schema import CandidateMention, ScoredCandidate

ScoreFn = Callable[[CandidateMention, Iterable[str]], float]


def merge_mentions(mentions: Iterable[CandidateMention]) -> List[ScoredCandidate]:
    """Group mentions by canonical URL and merge their evidence, in first-seen order."""
    by_url: Dict[str, ScoredCandidate] = {}
    for mention in mentions:
        key = canonical_url(mention.url)
        if not key:
            continue

        existing = by_url.get(key)
        if existing is None:
            existing = ScoredCandidate(
                url=key,
                context=mention.context,
                rating_hint=mention.rating_hint,
                reviews_hint=mention.reviews_hint,
                work_life_balance=mention.work_life_balance,
                career_opportunities=mention.career_opportunities,
                compensation=mention.compensation,
            )
            by_url[key] = existing
        else:
            if existing.rating_hint is None:
                existing.rating_hint = mention.rating_hint
            if mention.reviews_hint is not None:
                existing.reviews_hint = max(existing.reviews_hint or 0, mention.reviews_hint)
            if existing.work_life_balance is None:
                existing.work_life_balance = mention.work_life_balance
            if existing.career_opportunities is None:
                existing.career_opportunities = mention.career_opportunities
            if existing.compensation is None:
                existing.compensation = mention.compensation
            if mention.context and len(mention.context) > len(existing.context or ""):
                existing.context = mention.context

        if mention.context and mention.context not in existing.contexts:
            existing.contexts.append(mention.context)

    return list(by_url.values())


def score_candidates(
    mentions: Iterable[CandidateMention], company_tokens: Iterable[str], score_fn: ScoreFn
) -> List[ScoredCandidate]:
    """Merged candidates sorted by descending score; ties keep first-seen order."""
    company_tokens = list(company_tokens)
    merged = merge_mentions(mentions)
    for candidate in merged:
        candidate.score = score_fn(candidate, company_tokens)
    return sorted(merged, key=lambda c: -c.score)


def aggregate(
    mentions: Iterable[CandidateMention], company_tokens: Iterable[str], score_fn: ScoreFn
) -> Optional[ScoredCandidate]:
    ranked = score_candidates(mentions, company_tokens, score_fn)
    return ranked[0] if ranked else None
