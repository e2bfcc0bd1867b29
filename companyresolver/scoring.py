"""
Scoring Logic for platform candidates.

Responsibilities:
- Compute a heuristic relevance score for a candidate page on Glassdoor or Indeed.
- Map a score onto a confidence level.

Non-Responsibilities:
- No fetching.
- No deduplication or candidate selection.

Invariant:
Adding corroborating evidence (a matching name token, a rating or review hint,
a canonical URL shape) never lowers a candidate's score. Negative scores are
allowed and only rank a page below better ones; they never exclude it.
"""

import re
from dataclasses import dataclass
from typing import Iterable, Optional

from .normalize import hostname, similarity_tokens, tokenize_name
from .platforms import (
    company_name_from_glassdoor_url,
    company_name_from_indeed_url,
    has_glassdoor_topic_slug,
    is_category_page,
    is_wrong_locale,
)
from .schema import CandidateMention

HIGH_CONFIDENCE_SCORE = 50
MEDIUM_CONFIDENCE_SCORE = 35

OVERALL_SIGNAL = re.compile(r"(employee rating|overall|company average)", re.I)
CATEGORY_SIGNAL = re.compile(r"(compensation|benefits|work life|work-life|career|culture|salary)", re.I)


@dataclass(frozen=True)
class GlassdoorWeights:
    host: int = 25
    reviews_path: int = 18
    overview_path: int = 14
    reviews_id: int = 10
    category_page: int = -12
    topic_slug: int = -20
    wrong_locale: int = -12
    per_token: int = 8
    exact_overlap: int = 6
    extra_tokens: int = -8
    overall_rating: int = 6
    plain_rating: int = 3
    category_rating: int = 1
    reviews_hint: int = 4


@dataclass(frozen=True)
class IndeedWeights:
    host: int = 25
    cmp_path: int = 16
    category_page: int = -8
    per_token: int = 8
    exact_overlap: int = 6
    rating_hint: int = 4
    reviews_hint: int = 4


GLASSDOOR_WEIGHTS = GlassdoorWeights()
INDEED_WEIGHTS = IndeedWeights()


def token_overlap(company_tokens: Iterable[str], candidate_name: Optional[str]) -> int:
    """Count candidate-name tokens that also appear in the query tokens."""
    if not candidate_name:
        return 0
    query = set(similarity_tokens(company_tokens))
    candidate = similarity_tokens(tokenize_name(candidate_name))
    if not query or not candidate:
        return 0
    return sum(1 for token in candidate if token in query)


def rating_bonus(context: str, weights: GlassdoorWeights = GLASSDOOR_WEIGHTS) -> int:
    """Bonus for a rating hint, reduced when the context reads like a category rating."""
    if OVERALL_SIGNAL.search(context or ""):
        return weights.overall_rating
    if CATEGORY_SIGNAL.search(context or ""):
        return weights.category_rating
    return weights.plain_rating


def score_glassdoor_candidate(
    candidate: CandidateMention,
    company_tokens: Iterable[str],
    weights: GlassdoorWeights = GLASSDOOR_WEIGHTS,
) -> int:
    url = candidate.url or ""
    score = 0

    if "glassdoor." in hostname(url):
        score += weights.host
    if re.search(r"/Reviews/", url, re.I):
        score += weights.reviews_path
    if re.search(r"/Overview/Working-at-", url, re.I):
        score += weights.overview_path
    if re.search(r"-Reviews-E", url, re.I):
        score += weights.reviews_id
    if is_category_page(url):
        score += weights.category_page
    if has_glassdoor_topic_slug(url):
        score += weights.topic_slug
    if is_wrong_locale(url):
        score += weights.wrong_locale

    company_name = company_name_from_glassdoor_url(url) or ""
    name_tokens = similarity_tokens(tokenize_name(company_name))
    overlap = token_overlap(company_tokens, company_name)
    score += overlap * weights.per_token
    if overlap > 0 and len(name_tokens) == overlap:
        score += weights.exact_overlap
    if overlap > 0 and len(name_tokens) >= overlap + 2:
        score += weights.extra_tokens

    if candidate.rating_hint is not None:
        score += rating_bonus(candidate.context, weights)
    if candidate.reviews_hint is not None:
        score += weights.reviews_hint

    return score


def score_indeed_candidate(
    candidate: CandidateMention,
    company_tokens: Iterable[str],
    weights: IndeedWeights = INDEED_WEIGHTS,
) -> int:
    url = candidate.url or ""
    score = 0

    if "indeed." in hostname(url):
        score += weights.host
    if re.search(r"/cmp/", url, re.I):
        score += weights.cmp_path
    if is_category_page(url):
        score += weights.category_page

    company_name = company_name_from_indeed_url(url) or ""
    overlap = token_overlap(company_tokens, company_name)
    score += overlap * weights.per_token
    if overlap > 0 and len(similarity_tokens(tokenize_name(company_name))) == overlap:
        score += weights.exact_overlap

    if candidate.rating_hint is not None:
        score += weights.rating_hint
    if candidate.reviews_hint is not None:
        score += weights.reviews_hint

    return score


def to_confidence(score: Optional[float]) -> str:
    score = score or 0
    if score >= HIGH_CONFIDENCE_SCORE:
        return "high"
    if score >= MEDIUM_CONFIDENCE_SCORE:
        return "medium"
    return "low"
