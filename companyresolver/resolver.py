"""
Company Identity Resolution Orchestrator.

Responsibilities:
- Short-circuit curated aliases.
- Normalize the input and run the search query pool in parallel.
- Extract, aggregate and score mentions per platform.
- Return a confidence-classified CompanyIdentity.

Non-Responsibilities:
- No persistence or caching between calls.
- No baseline rating extraction (see baseline.py).

Invariant:
Never raises for empty, malformed or unreachable input; the worst outcome is
an identity with confidence "low" and no platform references.
"""

from typing import List, Optional, Sequence, Tuple

from .aggregate import aggregate
from .aliases import DEFAULT_ALIASES, KnownAlias, match_alias
from .extract import extract_fallback_platform_url, extract_mentions, mentions_for_platform
from .fetcher import DEFAULT_SEARCH_POLICY, FetchPolicy, fetch_search_pages, open_session
from .logger import get_logger
from .normalize import normalize_company, normalize_whitespace, title_case
from .platforms import company_name_from_glassdoor_url, company_name_from_indeed_url, glassdoor_company_id
from .schema import CompanyIdentity, NormalizedCompany, PlatformRef, ScoredCandidate
from .scoring import score_glassdoor_candidate, score_indeed_candidate, to_confidence
from .search import build_identity_queries

GLASSDOOR_FALLBACK_SCORE = 24
INDEED_FALLBACK_SCORE = 20


def _empty_identity(company_name: str, company: NormalizedCompany) -> CompanyIdentity:
    return CompanyIdentity(
        input_company_name=normalize_whitespace(company_name),
        normalized_company_name=company.display_name,
        canonical_company_name=title_case(company.display_name),
        confidence="low",
        preferred_company_url=company.preferred_url,
    )


def _fallback_candidate(pages: Sequence[Tuple[str, str]], platform: str, score: int) -> Optional[ScoredCandidate]:
    for _, text in pages:
        url = extract_fallback_platform_url(text, platform)
        if url:
            return ScoredCandidate(url=url, score=score)
    return None


def _platform_ref(candidate: Optional[ScoredCandidate], name: Optional[str], fallback_name: str,
                  company_id: Optional[str]) -> Optional[PlatformRef]:
    if candidate is None:
        return None
    return PlatformRef(
        url=candidate.url,
        company_id=company_id,
        company_name=title_case(name or fallback_name),
        score=candidate.score,
        rating_hint=candidate.rating_hint,
        reviews_hint=candidate.reviews_hint,
    )


def resolve_company_identity(
    company_name: str = "",
    company_url: str = "",
    session=None,
    policy: FetchPolicy = DEFAULT_SEARCH_POLICY,
    aliases: Sequence[KnownAlias] = DEFAULT_ALIASES,
) -> CompanyIdentity:
    """
    Resolve a free-text company name and/or URL to its review-platform pages.

    Args:
        company_name: Company name as typed by the user
        company_url: Company website, with or without scheme
        session: requests.Session-compatible client; a private one is used if None
        policy: Mirror order, timeout and byte threshold for search fetches
        aliases: Curated identities that skip search entirely

    Returns:
        CompanyIdentity; confidence is "low" with no platform refs when
        nothing usable was found.
    """
    logger = get_logger()
    company_name = company_name or ""
    company_url = company_url or ""

    alias = match_alias(company_name, company_url, aliases)
    if alias is not None:
        logger.info("Resolved from known alias", company=alias.canonical_name)
        logger.record_resolution("high")
        return alias.to_identity(company_name)

    company = normalize_company(company_name, company_url)
    queries = build_identity_queries(company)
    if not queries:
        logger.warning("Nothing to resolve", company_name=company_name, company_url=company_url)
        logger.record_resolution("low")
        return _empty_identity(company_name, company)

    logger.debug("Running identity query pool", company=company.search_name, queries=len(queries))
    with open_session(session) as s:
        pages = fetch_search_pages(queries, s, policy)

    mentions = [m for _, text in pages for m in extract_mentions(text)]
    tokens: List[str] = sorted(company.tokens)

    glassdoor = aggregate(mentions_for_platform(mentions, "glassdoor"), tokens, score_glassdoor_candidate)
    indeed = aggregate(mentions_for_platform(mentions, "indeed"), tokens, score_indeed_candidate)

    if glassdoor is None:
        glassdoor = _fallback_candidate(pages, "glassdoor", GLASSDOOR_FALLBACK_SCORE)
    if indeed is None:
        indeed = _fallback_candidate(pages, "indeed", INDEED_FALLBACK_SCORE)

    glassdoor_name = company_name_from_glassdoor_url(glassdoor.url) if glassdoor else None
    indeed_name = company_name_from_indeed_url(indeed.url) if indeed else None
    best_score = max(glassdoor.score if glassdoor else 0, indeed.score if indeed else 0)
    confidence = to_confidence(best_score)

    identity = CompanyIdentity(
        input_company_name=normalize_whitespace(company_name),
        normalized_company_name=company.display_name,
        canonical_company_name=title_case(glassdoor_name or indeed_name or company.display_name),
        confidence=confidence,
        glassdoor=_platform_ref(
            glassdoor, glassdoor_name, company.display_name,
            glassdoor_company_id(glassdoor.url) if glassdoor else None,
        ),
        indeed=_platform_ref(indeed, indeed_name, company.display_name, None),
        preferred_company_url=company.preferred_url,
    )

    logger.record_resolution(confidence)
    logger.info(
        "Resolved company identity",
        company=identity.canonical_company_name,
        confidence=confidence,
        mentions=len(mentions),
        glassdoor=identity.glassdoor.url if identity.glassdoor else None,
        indeed=identity.indeed.url if identity.indeed else None,
    )
    return identity
