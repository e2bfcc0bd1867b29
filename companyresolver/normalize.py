import html
import re
from typing import Iterable, List, Optional
from urllib.parse import urlparse

from bs4 import BeautifulSoup

from .schema import NormalizedCompany

KNOWN_COMPANY_URL_HINTS = (
    (re.compile(r"\bdragon\s*pass\b", re.I), "https://www.dragonpass.com/"),
    (re.compile(r"\bcollinson(\s*group)?\b", re.I), "https://www.collinsongroup.com/"),
)

CORPORATE_SUFFIXES = frozenset({
    "inc", "incorporated", "ltd", "limited", "llc", "llp", "plc", "corp",
    "corporation", "company", "co", "group", "holdings", "holding", "gmbh",
    "sa", "ag", "bv", "nv", "the",
})

_MARKDOWN_LINK = re.compile(r"\[(.*?)\]\([^)]+\)")


def normalize_whitespace(s: Optional[str]) -> str:
    return " ".join(str(s or "").split())


def decode_html_entities(s: Optional[str]) -> str:
    return html.unescape(str(s or ""))


def strip_markup(s: Optional[str]) -> str:
    """Reduce an HTML or markdown fragment to plain, single-spaced text."""
    raw = str(s or "")
    if not raw:
        return ""
    # Plain text (bare URLs from the text mirror) skips the HTML parser.
    if "<" in raw:
        text = BeautifulSoup(raw, "html.parser").get_text(" ")
    else:
        text = decode_html_entities(raw)
    text = _MARKDOWN_LINK.sub(r"\1", text)
    text = text.replace("**", "").replace("`", "")
    return normalize_whitespace(text)


def normalize_token(token: str) -> str:
    return re.sub(r"[^a-z0-9]", "", token.lower())


def tokenize_name(value: Optional[str]) -> List[str]:
    """Split a company name into comparable lower-case tokens.

    Single-character tokens carry no signal and are dropped.
    """
    parts = re.split(r"[\s\-_]+", normalize_whitespace(decode_html_entities(value)))
    tokens = [normalize_token(p) for p in parts]
    return [t for t in tokens if len(t) >= 2]


def similarity_tokens(tokens: Iterable[str]) -> List[str]:
    tokens = list(tokens)
    stripped = [t for t in tokens if t not in CORPORATE_SUFFIXES]
    return stripped or tokens


def title_case(value: Optional[str]) -> str:
    words = []
    for part in normalize_whitespace(value).split(" "):
        if not part:
            continue
        if len(part) <= 3 and part == part.upper():
            words.append(part)
        elif re.search(r"[A-Z]", part[1:]):
            words.append(part)
        else:
            words.append(part[:1].upper() + part[1:].lower())
    return " ".join(words)


def _parse(url: str):
    url = url.strip()
    if not url:
        return None
    if not re.match(r"^https?://", url, re.I):
        url = f"https://{url}"
    try:
        parsed = urlparse(url)
        host = (parsed.hostname or "").lower()
    except ValueError:
        return None
    if not host or not re.fullmatch(r"[a-z0-9.\-]+", host) or "." not in host:
        return None
    return parsed


def canonical_url(url: Optional[str]) -> Optional[str]:
    """Return scheme://host/path with query, fragment and trailing slash removed.

    Scheme-less input is treated as https. Returns None when no host can be parsed.
    """
    parsed = _parse(str(url or ""))
    if parsed is None:
        return None
    path = re.sub(r"/+$", "", parsed.path)
    netloc = parsed.netloc.lower()
    return f"{parsed.scheme.lower()}://{netloc}{path}"


def hostname(url: Optional[str]) -> str:
    parsed = _parse(str(url or ""))
    return (parsed.hostname or "").lower() if parsed is not None else ""


def _host_core(url: Optional[str]) -> str:
    host = re.sub(r"^www\.", "", hostname(url))
    parts = [p for p in host.split(".") if p]
    if not parts:
        return ""
    core = parts[0]
    if core == "careers" and len(parts) > 1:
        core = parts[1]
    return core


def extract_domain_token(url: Optional[str]) -> str:
    return re.sub(r"[^a-z0-9]", "", _host_core(url))


def company_name_from_url(url: Optional[str]) -> Optional[str]:
    core = _host_core(url)
    if not core:
        return None
    return title_case(re.sub(r"[-_]+", " ", core))


def infer_preferred_url(company_name: str) -> Optional[str]:
    cleaned = normalize_whitespace(company_name)
    if not cleaned:
        return None
    for pattern, url in KNOWN_COMPANY_URL_HINTS:
        if pattern.search(cleaned):
            return canonical_url(url)
    compact = re.sub(r"[^a-z0-9]", "", cleaned.lower())
    if 4 <= len(compact) <= 24:
        return f"https://www.{compact}.com"
    return None


def normalize_company(name: Optional[str], url: Optional[str] = None) -> NormalizedCompany:
    display = normalize_whitespace(decode_html_entities(name))
    preferred = canonical_url(url) or infer_preferred_url(display)
    from_url = company_name_from_url(preferred or url)
    display = display or from_url or ""
    domain_token = extract_domain_token(preferred or url)
    tokens = tokenize_name(" ".join(p for p in (display, domain_token) if p))
    return NormalizedCompany(
        display_name=display,
        search_name=display,
        tokens=frozenset(tokens),
        preferred_url=preferred,
        domain_token=domain_token,
    )
