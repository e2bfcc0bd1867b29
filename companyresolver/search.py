from typing import Iterable, List, Optional, Sequence
from urllib.parse import quote

from .fetcher import SEARCH_MIRRORS
from .schema import NormalizedCompany

GLASSDOOR_SITES = ["site:glassdoor.com", "site:glassdoor.co.uk"]


def unique_ordered(values: Iterable[Optional[str]]) -> List[str]:
    """Deduplicate while preserving order, dropping empty values."""
    seen = set()
    result = []
    for v in values:
        if v and v not in seen:
            seen.add(v)
            result.append(v)
    return result


def build_identity_queries(company: NormalizedCompany) -> List[str]:
    """
    Returns the ordered query pool used to locate a company's review pages.

    Domain-token queries go first because a domain is less ambiguous than a
    display name; URL-anchored queries go last.
    """
    name = company.search_name
    if not name:
        return []

    queries: List[str] = []
    if company.domain_token:
        queries += [f'{site} "{company.domain_token}" "Reviews"' for site in reversed(GLASSDOOR_SITES)]

    queries += [
        f'site:glassdoor.com "{name}" "Reviews"',
        f'site:glassdoor.co.uk "{name}" "Working at"',
        f'site:glassdoor.com "{name}" "Working at"',
        f'site:indeed.com "{name}" reviews',
        f'"{name}" glassdoor reviews',
        f'"{name}" company reviews glassdoor',
    ]

    if company.domain_token:
        queries.append(f'"{company.domain_token}.com" glassdoor reviews')
    if company.preferred_url:
        queries.append(f'"{company.preferred_url}" glassdoor')
        queries.append(f'"{company.preferred_url}" indeed reviews')

    return unique_ordered(queries)


def build_baseline_queries(
    search_name: str,
    domain_token: str = "",
    glassdoor_url: Optional[str] = None,
    preferred_url: Optional[str] = None,
) -> List[str]:
    """Narrower pool hunting for overall-rating phrasing on an already resolved company."""
    if not search_name:
        return []

    queries: List[str] = []
    if glassdoor_url:
        queries.append(f'"{glassdoor_url}"')
    if domain_token:
        queries += [f'{site} "{domain_token}" "company reviews"' for site in reversed(GLASSDOOR_SITES)]

    queries += [
        f'site:glassdoor.com "{search_name}" "company reviews"',
        f'site:glassdoor.co.uk "{search_name}" "company reviews"',
        f'site:glassdoor.com "{search_name}" "out of 5 stars"',
        f'"{search_name}" glassdoor reviews',
    ]

    if domain_token:
        queries.append(f'"{domain_token}.com" glassdoor reviews')
    if preferred_url:
        queries.append(f'"{preferred_url}" glassdoor')

    return unique_ordered(queries)


def build_query_urls(queries: Sequence[str], mirrors: Sequence[str] = SEARCH_MIRRORS) -> List[str]:
    """Expand each query into its mirror URLs, in fallback order."""
    return [m.format(query=quote(q, safe="")) for q in queries for m in mirrors]
