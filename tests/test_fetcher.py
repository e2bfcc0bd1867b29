"""
Tests for search-page fetching and mirror fallback.
"""

import threading
import time

import requests
from conftest import StubSession
from companyresolver.fetcher import (
    BLOCKED_PAGE_PATTERNS,
    BOT_WALL_PATTERNS,
    DEFAULT_SEARCH_POLICY,
    FetchPolicy,
    fetch_search_page,
    fetch_search_pages,
    fetch_text,
    gather,
    is_blocked_content,
    mirror_url,
    open_session,
)
from companyresolver.env import Settings
from companyresolver.logger import get_logger
from companyresolver.normalize import normalize_company
from companyresolver.search import build_identity_queries

LONG_PAGE = "<html><body>" + "search results " * 30 + "</body></html>"


class BarrierSession(StubSession):
    """Blocks every request until `parties` requests are in flight at once."""

    def __init__(self, parties: int, **kwargs):
        super().__init__(**kwargs)
        self.barrier = threading.Barrier(parties, timeout=5)

    def get(self, url, **kwargs):
        self.barrier.wait()
        return super().get(url, **kwargs)


class TestMirrorFallback:
    """Test ordered mirror fallback."""

    def test_first_mirror_wins(self):
        """A long first answer should stop the chain after one request."""
        session = StubSession(default=LONG_PAGE)

        text = fetch_search_page('site:glassdoor.com "Acme" "Reviews"', session)

        assert text == LONG_PAGE
        assert len(session.calls) == 1
        assert session.calls[0].startswith("https://r.jina.ai/http://duckduckgo.com/html/?q=")

    def test_query_is_url_encoded(self):
        """Quotes, colons and spaces should be percent-encoded."""
        session = StubSession(default=LONG_PAGE)

        fetch_search_page('site:glassdoor.com "Acme Corp"', session)

        assert "site%3Aglassdoor.com%20%22Acme%20Corp%22" in session.calls[0]

    def test_falls_through_errors_short_and_blocked(self):
        """Errors, short bodies and bot walls should each move on to the next mirror."""
        session = StubSession(
            errors={"r.jina.ai/http://duckduckgo": requests.exceptions.ConnectionError("refused")},
            pages={
                "google.com/search": "too short",
                "https://duckduckgo.com/html": "Please verify you are a human. " * 20,
                "bing.com/search": LONG_PAGE,
            },
        )

        text = fetch_search_page("acme", session)

        assert text == LONG_PAGE
        assert len(session.calls) == 4
        metrics = get_logger().get_metrics()
        assert metrics["errors_by_type"] == {"ConnectionError": 1, "ShortResponse": 1, "Blocked": 1}
        assert metrics["blocked_pages"] == 1

    def test_http_error_falls_through(self):
        """Non-2xx statuses should count as failures and not end the chain."""
        session = StubSession(
            pages={"bing.com/search": LONG_PAGE},
            status=503,
        )

        assert fetch_search_page("acme", session) == LONG_PAGE
        assert get_logger().get_metrics()["errors_by_type"]["HTTPError_503"] == 3

    def test_all_mirrors_fail(self, offline_session):
        """Every mirror failing should give empty text, not an exception."""
        assert fetch_search_page("acme", offline_session) == ""
        assert len(offline_session.calls) == 4

    def test_timeout_is_handled(self):
        """A Timeout raised by the session should be recorded per mirror."""
        session = StubSession(errors={"": requests.exceptions.Timeout("slow")})

        assert fetch_search_page("acme", session) == ""
        assert get_logger().get_metrics()["errors_by_type"]["Timeout"] == 4

    def test_policy_mirrors_and_threshold(self):
        """A custom policy should replace the mirror list and byte threshold."""
        policy = FetchPolicy(mirrors=("https://search.example.com/?q={query}",), min_bytes=5)
        session = StubSession(default="enough text")

        assert fetch_search_page("acme", session, policy) == "enough text"
        assert session.calls == ["https://search.example.com/?q=acme"]

    def test_policy_from_settings(self):
        """Settings should carry over to the fetch policy."""
        policy = FetchPolicy.from_settings(Settings(search_timeout=5.0, min_bytes=50, max_workers=2))

        assert policy.timeout == 5.0
        assert policy.min_bytes == 50
        assert policy.max_workers == 2


class TestAttemptDeadline:
    """Test that a mirror trickling its body is cut off at the timeout."""

    def test_slow_body_times_out(self, trickle_server, real_session):
        """A body still arriving after the timeout should be abandoned as a Timeout."""
        policy = FetchPolicy(mirrors=(trickle_server + "/slow?q={query}",), timeout=0.5, min_bytes=10)

        started = time.monotonic()
        text = fetch_search_page("acme", real_session, policy)
        elapsed = time.monotonic() - started

        assert text == ""
        assert elapsed < 2.0
        assert get_logger().get_metrics()["errors_by_type"] == {"Timeout": 1}

    def test_slow_mirror_falls_through_to_next(self, trickle_server, real_session):
        """The next mirror should be tried once the slow one runs out of time."""
        policy = FetchPolicy(
            mirrors=(trickle_server + "/slow?q={query}", trickle_server + "/fast?q={query}"),
            timeout=0.5,
            min_bytes=10,
        )

        started = time.monotonic()
        text = fetch_search_page("acme", real_session, policy)
        elapsed = time.monotonic() - started

        assert text.startswith("search results")
        assert elapsed < 2.5
        metrics = get_logger().get_metrics()
        assert metrics["errors_by_type"] == {"Timeout": 1}
        assert metrics["fetches_successful"] == 1

    def test_fetch_text_slow_body(self, trickle_server, real_session):
        """Page fetches should honour the same whole-attempt deadline."""
        started = time.monotonic()
        result = fetch_text(trickle_server + "/careers", real_session, timeout=0.5)
        elapsed = time.monotonic() - started

        assert not result.ok
        assert result.status is None
        assert result.text == ""
        assert "deadline" in result.error
        assert elapsed < 2.0

    def test_fast_body_within_deadline(self, trickle_server, real_session):
        """A complete body inside the deadline should be returned as text."""
        result = fetch_text(trickle_server + "/fast", real_session, timeout=2.0)

        assert result.ok
        assert result.status == 200
        assert result.text == "search results " * 30


class TestParallelFetch:
    """Test parallel query dispatch."""

    def test_results_in_query_order(self):
        """Pairs should come back in query order whatever finishes first."""
        session = StubSession(
            pages={"alpha": "alpha " * 60, "beta": "beta " * 60},
        )

        pages = fetch_search_pages(["alpha", "beta", "gamma"], session)

        assert [q for q, _ in pages] == ["alpha", "beta", "gamma"]
        assert pages[0][1].startswith("alpha")
        assert pages[1][1].startswith("beta")
        assert pages[2][1] == ""

    def test_identity_pool_in_flight_together(self):
        """The largest identity query pool should be dispatched in one wave."""
        queries = build_identity_queries(normalize_company("Acme Corp"))
        assert len(queries) == 11
        session = BarrierSession(len(queries), default=LONG_PAGE)

        pages = fetch_search_pages(queries, session, DEFAULT_SEARCH_POLICY)

        assert [text for _, text in pages] == [LONG_PAGE] * 11

    def test_gather_one_worker_per_item(self):
        """gather should not queue items behind the default worker cap."""
        barrier = threading.Barrier(11, timeout=5)

        def wait(i):
            barrier.wait()
            return i

        assert gather(wait, range(11)) == list(range(11))

    def test_gather_preserves_order(self):
        """Results should line up with inputs."""
        assert gather(lambda x: x * 2, [3, 1, 2], max_workers=3) == [6, 2, 4]

    def test_gather_respects_cap(self):
        """No more than max_workers calls should run at once."""
        lock = threading.Lock()
        state = {"running": 0, "peak": 0}

        def work(i):
            with lock:
                state["running"] += 1
                state["peak"] = max(state["peak"], state["running"])
            time.sleep(0.05)
            with lock:
                state["running"] -= 1
            return i

        assert gather(work, range(6), max_workers=2) == list(range(6))
        assert state["peak"] <= 2

    def test_gather_empty(self):
        assert gather(lambda x: x, []) == []


class TestFetchText:
    """Test single-page fetching."""

    def test_success(self):
        """A 2xx page should come back with its text."""
        session = StubSession(pages={"acme.com/careers": "<h1>Careers</h1>"})

        result = fetch_text("https://acme.com/careers", session)

        assert result.ok
        assert result.status == 200
        assert result.text == "<h1>Careers</h1>"

    def test_http_error_reported(self):
        """A non-2xx page should report its status and skip the body."""
        session = StubSession(status=404, default="<h1>Not found</h1>")

        result = fetch_text("https://acme.com/careers", session)

        assert not result.ok
        assert result.status == 404
        assert result.text == ""

    def test_exception_reported(self, offline_session):
        """A request exception should become an error result."""
        result = fetch_text("https://acme.com/careers", offline_session)

        assert not result.ok
        assert result.status is None
        assert result.text == ""
        assert result.error == "offline"


class TestHelpers:

    def test_bot_wall_detection(self):
        """Challenge phrases are blocked; brand names only on careers probes."""
        assert is_blocked_content("Just a moment...", BOT_WALL_PATTERNS)
        assert is_blocked_content("Our systems have detected unusual traffic")
        assert not is_blocked_content("Cloudflare employee reviews", BOT_WALL_PATTERNS)
        assert is_blocked_content("Cloudflare Ray ID", BLOCKED_PAGE_PATTERNS)
        assert not is_blocked_content("")

    def test_mirror_url(self):
        """Any URL form should map onto the text mirror over http."""
        assert mirror_url("https://acme.com/careers") == "https://r.jina.ai/http://acme.com/careers"
        assert mirror_url("http://acme.com") == "https://r.jina.ai/http://acme.com"
        assert mirror_url("acme.com") == "https://r.jina.ai/http://acme.com"
        assert mirror_url("") is None

    def test_open_session_passes_through(self):
        session = StubSession()
        with open_session(session) as s:
            assert s is session

    def test_open_session_creates_private(self):
        with open_session() as s:
            assert isinstance(s, requests.Session)
