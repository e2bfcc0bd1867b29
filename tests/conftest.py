"""
Pytest configuration and shared fixtures.
"""

import threading
import time
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from typing import Dict, Optional

import pytest
import requests

from companyresolver.logger import get_logger, reset_logger
from companyresolver.schema import CompanyIdentity, PlatformRef


def make_response(url: str, text: str = "", status: int = 200) -> requests.Response:
    """Build a real requests.Response so raise_for_status/ok/text behave normally."""
    resp = requests.Response()
    resp.status_code = status
    resp.reason = "OK" if status < 400 else "Error"
    resp._content = text.encode("utf-8")
    resp.encoding = "utf-8"
    resp.url = url
    # Body is already in memory; iter_content slices it.
    resp._content_consumed = True
    return resp


class StubSession:
    """
    requests.Session stand-in routing URLs by substring.

    errors are checked before pages; anything unmatched gets the default
    text and status.
    """

    def __init__(
        self,
        pages: Optional[Dict[str, str]] = None,
        errors: Optional[Dict[str, Exception]] = None,
        default: str = "",
        status: int = 200,
    ):
        self.pages = pages or {}
        self.errors = errors or {}
        self.default = default
        self.status = status
        self.calls = []
        self._lock = threading.Lock()

    def get(self, url, headers=None, timeout=None, allow_redirects=True, stream=False):
        with self._lock:
            self.calls.append(url)
        for needle, exc in self.errors.items():
            if needle in url:
                raise exc
        for needle, body in self.pages.items():
            if needle in url:
                return make_response(url, body)
        return make_response(url, self.default, self.status)


class TrickleHandler(BaseHTTPRequestHandler):
    """Serves /fast in one write and every other path ten bytes per 0.1s for 6s."""

    def do_GET(self):
        self.send_response(200)
        self.send_header("Content-Type", "text/plain; charset=utf-8")
        if self.path.startswith("/fast"):
            body = ("search results " * 30).encode("utf-8")
            self.send_header("Content-Length", str(len(body)))
            self.end_headers()
            self.wfile.write(body)
            return
        self.end_headers()
        try:
            for _ in range(60):
                self.wfile.write(b"slow page ")
                time.sleep(0.1)
        except OSError:
            pass  # client gave up

    def log_message(self, format, *args):
        pass


FILLER = (
    "<p>Searches related to this company include office locations, leadership team, "
    "press coverage, annual reports, product announcements, partner programmes, "
    "customer stories, events and webinars, investor relations and newsroom archives. "
    "Further results were omitted because they were very similar to those already shown.</p>"
)

ACME_SEARCH_PAGE = (
    "<html><body><div class=\"results\">"
    "<div class=\"result\">"
    "<a class=\"result__a\" href=\"https://www.glassdoor.co.uk/Reviews/Acme-Reviews-E123.htm\">"
    "Acme Reviews | Glassdoor</a>"
    "<p class=\"result__snippet\">Acme Corp employee rating 4.2 out of 5 stars based on 3,400 reviews. "
    "See what employees say about working at Acme.</p>"
    "</div>"
    + FILLER * 3
    + "</div></body></html>"
)


@pytest.fixture(autouse=True)
def quiet_logger():
    """Fresh, console-less global logger for every test."""
    reset_logger()
    get_logger(enable_console=False)
    yield
    reset_logger()


@pytest.fixture
def acme_search_page() -> str:
    return ACME_SEARCH_PAGE


@pytest.fixture
def filler() -> str:
    return FILLER


@pytest.fixture
def acme_session() -> StubSession:
    """Every search mirror answers with the Acme result page."""
    return StubSession(default=ACME_SEARCH_PAGE)


@pytest.fixture
def offline_session() -> StubSession:
    """Every request fails with a connection error."""
    return StubSession(errors={"": requests.exceptions.ConnectionError("offline")})


@pytest.fixture
def trickle_server():
    """Base URL of a local server that drips its response body."""
    server = ThreadingHTTPServer(("127.0.0.1", 0), TrickleHandler)
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    yield f"http://127.0.0.1:{server.server_address[1]}"
    server.shutdown()
    server.server_close()


@pytest.fixture
def real_session():
    """Plain requests.Session that ignores proxy settings from the environment."""
    with requests.Session() as session:
        session.trust_env = False
        yield session


@pytest.fixture
def acme_identity() -> CompanyIdentity:
    return CompanyIdentity(
        input_company_name="Acme Corp",
        normalized_company_name="Acme Corp",
        canonical_company_name="Acme",
        confidence="high",
        glassdoor=PlatformRef(
            url="https://www.glassdoor.co.uk/Reviews/Acme-Reviews-E123.htm",
            company_id="123",
            company_name="Acme",
            score=77,
        ),
        preferred_company_url="https://www.acmecorp.com",
    )
