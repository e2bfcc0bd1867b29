"""URL-shape knowledge for the supported review platforms."""

import re
from typing import Optional
from urllib.parse import unquote, urlparse

GLASSDOOR_TOPIC_SUFFIX = re.compile(
    r"-(work-environment|culture-and-values|compensation-and-benefits|career-opportunities"
    r"|senior-management|recommend-to-a-friend|ceo-approval)$",
    re.I,
)
GLASSDOOR_SECTION_SUFFIX = re.compile(r"-(interview-questions|salaries|benefits|photos)$", re.I)
GLASSDOOR_TOPIC_SLUG = re.compile(
    r"-(work-environment|culture-and-values|compensation-and-benefits|career-opportunities"
    r"|senior-management|recommend-to-a-friend|ceo-approval)-reviews",
    re.I,
)
GLASSDOOR_WRONG_LOCALE = re.compile(r"-US-Reviews-|_IL\.", re.I)
GLASSDOOR_COMPANY_ID = re.compile(r"(?:EI_IE|-E)(\d+)(?=[._]|$)", re.I)

# Matched against path segments and slug words, not the host.
CATEGORY_PAGE = re.compile(
    r"(?:^|[/\-_])(salary|salaries|interview|interviews|benefits|culture|work-life|worklife"
    r"|work-environment|career-opportunities|senior-management|ceo-approval|recommend-to-a-friend"
    r"|photos|jobs?|office|offices|intern|interns|internships?|engineer|developer|scientist"
    r"|analyst|manager)(?=$|[/\-_.])",
    re.I,
)


def _path(url: str) -> str:
    try:
        return urlparse(url or "").path
    except ValueError:
        return ""


def _sanitize_slug(slug: str) -> str:
    slug = GLASSDOOR_TOPIC_SUFFIX.sub("", slug)
    slug = GLASSDOOR_SECTION_SUFFIX.sub("", slug)
    deduped = []
    for part in (p for p in slug.split("-") if p):
        if not deduped or deduped[-1].lower() != part.lower():
            deduped.append(part)
    return "-".join(deduped).strip()


def company_name_from_glassdoor_url(url: str) -> Optional[str]:
    path = _path(url)
    match = re.search(r"/Reviews/([^/]+?)-Reviews-", path, re.I) or re.search(
        r"Working-at-([^/]+?)-EI_", path, re.I
    )
    if not match:
        return None
    name = _sanitize_slug(unquote(match.group(1))).replace("-", " ").strip()
    return name or None


def company_name_from_indeed_url(url: str) -> Optional[str]:
    match = re.search(r"/cmp/([^/?#]+)", _path(url), re.I)
    if not match:
        return None
    name = re.sub(r"[-_]+", " ", unquote(match.group(1))).strip()
    return name or None


def glassdoor_company_id(url: str) -> Optional[str]:
    match = GLASSDOOR_COMPANY_ID.search(_path(url))
    return match.group(1) if match else None


def is_category_page(url: str) -> bool:
    """True for review sub-pages (salaries, interviews, topic filters, job listings)."""
    return bool(CATEGORY_PAGE.search(_path(url)))


def has_glassdoor_topic_slug(url: str) -> bool:
    return bool(GLASSDOOR_TOPIC_SLUG.search(url or ""))


def is_wrong_locale(url: str) -> bool:
    return bool(GLASSDOOR_WRONG_LOCALE.search(url or ""))
