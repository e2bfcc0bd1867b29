"""Curated identities that bypass search entirely."""

import re
from dataclasses import dataclass
from typing import Optional, Sequence, Tuple

from .normalize import normalize_whitespace
from .schema import CompanyIdentity, PlatformRef


@dataclass(frozen=True)
class KnownAlias:
    canonical_name: str
    preferred_url: str
    names: Tuple[str, ...]
    domains: Tuple[str, ...] = ()
    glassdoor_url: Optional[str] = None
    glassdoor_company_id: Optional[str] = None
    indeed_url: Optional[str] = None

    def to_identity(self, input_company_name: str = "") -> CompanyIdentity:
        glassdoor = None
        if self.glassdoor_url:
            glassdoor = PlatformRef(
                url=self.glassdoor_url,
                company_id=self.glassdoor_company_id,
                company_name=self.canonical_name,
                score=100,
            )
        indeed = None
        if self.indeed_url:
            indeed = PlatformRef(url=self.indeed_url, company_id=None, company_name=self.canonical_name, score=100)
        return CompanyIdentity(
            input_company_name=normalize_whitespace(input_company_name),
            normalized_company_name=self.canonical_name,
            canonical_company_name=self.canonical_name,
            confidence="high",
            glassdoor=glassdoor,
            indeed=indeed,
            preferred_company_url=self.preferred_url,
        )


DEFAULT_ALIASES: Tuple[KnownAlias, ...] = (
    KnownAlias(
        canonical_name="Chapter 2",
        preferred_url="https://www.chapter2.group/",
        names=("chapter 2", "chapter 2 group"),
        domains=("chapter2.group",),
        glassdoor_url="https://www.glassdoor.co.uk/Overview/Working-at-Chapter-2-United-Kingdom-EI_IE6970558.11,35.htm",
        glassdoor_company_id="6970558",
    ),
)


def _compact(value: str) -> str:
    return re.sub(r"[^a-z0-9]", "", value.lower())


def _bare_domain(value: str) -> str:
    value = normalize_whitespace(value).lower()
    value = re.sub(r"^https?://", "", value)
    value = re.sub(r"^www\.", "", value)
    return value.rstrip("/")


def matches(alias: KnownAlias, value: Optional[str]) -> bool:
    """Case and punctuation insensitive match on a name, URL or bare domain."""
    raw = normalize_whitespace(value)
    if not raw:
        return False
    compact = _compact(raw)
    if compact and compact in {_compact(n) for n in alias.names}:
        return True
    host = _bare_domain(raw).split("/", 1)[0]
    return any(host == d or host.endswith("." + d) for d in alias.domains)


def match_alias(
    company_name: Optional[str],
    company_url: Optional[str],
    aliases: Sequence[KnownAlias] = DEFAULT_ALIASES,
) -> Optional[KnownAlias]:
    for alias in aliases:
        if matches(alias, company_name) or matches(alias, company_url):
            return alias
    return None
