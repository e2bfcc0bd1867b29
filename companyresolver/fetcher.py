"""Search-page and page-text fetching with ordered mirror fallback.

Every public function here returns a best-effort value. Network failures
(timeouts, connection errors, non-2xx statuses) and bot-wall pages are logged
and degrade to empty text; nothing is raised to the caller.
"""

import re
import time
from concurrent.futures import ThreadPoolExecutor
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Callable, Iterator, List, Optional, Pattern, Sequence, Tuple, TypeVar
from urllib.parse import quote

import requests

from .env import (
    DEFAULT_MAX_WORKERS,
    DEFAULT_MIN_BYTES,
    DEFAULT_PROBE_TIMEOUT,
    DEFAULT_SEARCH_TIMEOUT,
    Settings,
)
from .logger import get_logger
from .normalize import hostname

T = TypeVar("T")
R = TypeVar("R")

DEFAULT_HEADERS = {
    "User-Agent": (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/141.0.0.0 Safari/537.36"
    ),
    "Accept-Language": "en-US,en;q=0.9",
}

TEXT_MIRROR_PREFIX = "https://r.jina.ai/"

# Small reads keep the deadline check close to the wall clock on slow servers.
STREAM_CHUNK_BYTES = 64

# Tried in order; the first mirror returning enough text wins.
SEARCH_MIRRORS: Tuple[str, ...] = (
    TEXT_MIRROR_PREFIX + "http://duckduckgo.com/html/?q={query}",
    TEXT_MIRROR_PREFIX + "http://www.google.com/search?q={query}&hl=en",
    "https://duckduckgo.com/html/?q={query}&kl=us-en",
    TEXT_MIRROR_PREFIX + "http://www.bing.com/search?q={query}&setlang=en-us",
)

BOT_WALL_PATTERNS: Tuple[Pattern, ...] = tuple(
    re.compile(p, re.I)
    for p in (
        r"access denied",
        r"just a moment\.\.\.",
        r"verify you are a human",
        r"captcha",
        r"unusual traffic",
    )
)

# Careers-page probes also reject generic error and CDN pages.
BLOCKED_PAGE_PATTERNS: Tuple[Pattern, ...] = BOT_WALL_PATTERNS + tuple(
    re.compile(p, re.I)
    for p in (
        r"just a moment",
        r"forbidden",
        r"cloudflare",
        r"temporarily unavailable",
        r"error\s*403",
    )
)


@dataclass(frozen=True)
class FetchPolicy:
    """Mirror order, per-attempt deadline and minimum accepted response size."""

    mirrors: Tuple[str, ...] = SEARCH_MIRRORS
    timeout: float = DEFAULT_SEARCH_TIMEOUT
    min_bytes: int = DEFAULT_MIN_BYTES
    max_workers: int = DEFAULT_MAX_WORKERS

    @classmethod
    def from_settings(cls, settings: Settings) -> "FetchPolicy":
        return cls(
            timeout=settings.search_timeout,
            min_bytes=settings.min_bytes,
            max_workers=settings.max_workers,
        )


DEFAULT_SEARCH_POLICY = FetchPolicy()
PROBE_TIMEOUT = DEFAULT_PROBE_TIMEOUT


@dataclass
class FetchResult:
    ok: bool
    status: Optional[int]
    final_url: str
    text: str
    error: Optional[str] = None


def is_blocked_content(text: str, patterns: Sequence[Pattern] = BOT_WALL_PATTERNS) -> bool:
    if not text:
        return False
    return any(p.search(text) for p in patterns)


def mirror_url(url: str) -> Optional[str]:
    """Route a URL through the text-extraction mirror."""
    if not url:
        return None
    if url.startswith("http://"):
        return TEXT_MIRROR_PREFIX + url
    if url.startswith("https://"):
        return TEXT_MIRROR_PREFIX + "http://" + url[len("https://"):]
    return TEXT_MIRROR_PREFIX + "http://" + url


@contextmanager
def open_session(session=None) -> Iterator:
    """Yield the injected session, or a private one closed on exit."""
    if session is not None:
        yield session
        return
    own = requests.Session()
    try:
        yield own
    finally:
        own.close()


def gather(func: Callable[[T], R], items: Sequence[T], max_workers: int = DEFAULT_MAX_WORKERS) -> List[R]:
    """Run func over items on a thread pool and return results in input order.

    Every item gets its own worker up to the max_workers ceiling.
    """
    items = list(items)
    if not items:
        return []
    workers = max(1, min(len(items), max_workers))
    with ThreadPoolExecutor(max_workers=workers) as executor:
        return list(executor.map(func, items))


def _describe_failure(exc: requests.exceptions.RequestException) -> str:
    if isinstance(exc, requests.exceptions.HTTPError):
        status = exc.response.status_code if exc.response is not None else "HTTPError"
        return f"HTTPError_{status}"
    if isinstance(exc, requests.exceptions.Timeout):
        return "Timeout"
    if isinstance(exc, requests.exceptions.ConnectionError):
        return "ConnectionError"
    return "RequestException"


def _read_text(resp: requests.Response, deadline: float) -> str:
    """Read a streamed body, raising Timeout once the deadline has passed.

    requests' timeout= bounds each socket read, not the whole body.
    """
    body = bytearray()
    for chunk in resp.iter_content(chunk_size=STREAM_CHUNK_BYTES):
        if time.monotonic() >= deadline:
            raise requests.exceptions.Timeout(f"Body not complete before deadline: {resp.url}")
        body.extend(chunk)
    return bytes(body).decode(resp.encoding or "utf-8", errors="replace")


def fetch_search_page(query: str, session, policy: FetchPolicy = DEFAULT_SEARCH_POLICY) -> str:
    """Fetch raw search-result text for a query, falling through mirrors in order.

    Args:
        query: Search query string
        session: requests.Session-compatible client
        policy: Mirror order, per-attempt deadline and byte threshold

    Returns:
        Text of the first mirror that answers with more than policy.min_bytes
        of non-blocked content, or "" when every mirror fails.
    """
    logger = get_logger()
    logger.record_search_query()
    encoded = quote(query, safe="")

    for template in policy.mirrors:
        url = template.format(query=encoded)
        source = hostname(url)
        logger.record_fetch_attempt(source)
        deadline = time.monotonic() + policy.timeout
        try:
            with session.get(
                url, headers=DEFAULT_HEADERS, timeout=policy.timeout, allow_redirects=True, stream=True
            ) as resp:
                resp.raise_for_status()
                text = _read_text(resp, deadline)
        except requests.exceptions.RequestException as e:
            error_type = _describe_failure(e)
            logger.record_fetch_failure(source, error_type)
            logger.debug("Search mirror failed", source=source, query=query, error=error_type)
            continue

        if len(text) <= policy.min_bytes:
            logger.record_fetch_failure(source, "ShortResponse")
            continue
        if is_blocked_content(text, BOT_WALL_PATTERNS):
            logger.record_fetch_failure(source, "Blocked")
            logger.record_blocked(source)
            continue

        logger.record_fetch_success(source)
        return text

    logger.warning("All search mirrors failed", query=query)
    return ""


def fetch_search_pages(
    queries: Sequence[str], session, policy: FetchPolicy = DEFAULT_SEARCH_POLICY
) -> List[Tuple[str, str]]:
    """Fetch every query in parallel; returns (query, text) pairs in query order."""
    texts = gather(lambda q: fetch_search_page(q, session, policy), queries, policy.max_workers)
    return list(zip(queries, texts))


def fetch_text(url: str, session, timeout: float = PROBE_TIMEOUT) -> FetchResult:
    """Fetch a single page within timeout seconds, reporting status instead of raising.

    Bodies of non-2xx responses are not read.
    """
    logger = get_logger()
    source = hostname(url)
    logger.record_fetch_attempt(source)
    deadline = time.monotonic() + timeout
    try:
        with session.get(url, headers=DEFAULT_HEADERS, timeout=timeout, allow_redirects=True, stream=True) as resp:
            text = _read_text(resp, deadline) if resp.ok else ""
    except requests.exceptions.RequestException as e:
        error_type = _describe_failure(e)
        logger.record_fetch_failure(source, error_type)
        logger.debug("Page fetch failed", url=url, error=error_type)
        return FetchResult(ok=False, status=None, final_url=url, text="", error=str(e) or error_type)

    if resp.ok:
        logger.record_fetch_success(source)
    else:
        logger.record_fetch_failure(source, f"HTTPError_{resp.status_code}")
    return FetchResult(ok=resp.ok, status=resp.status_code, final_url=resp.url or url, text=text)
