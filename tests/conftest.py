from __future__ import annotations

import os

# Loggers are configured at import time; keep test runs from writing log files
os.environ.setdefault("LOG_TO_FILE", "0")

from collections.abc import Generator  # noqa: E402

import pytest  # noqa: E402

from browsing.session_store import SessionStore  # noqa: E402
from scraper.content_cache import ContentCache  # noqa: E402
from scraper.fetcher import ContentFetcher  # noqa: E402
from scraper.navigator import LinkNavigator  # noqa: E402
from utils.config import NavigationConfig  # noqa: E402
from utils.errors import FetchError  # noqa: E402
from utils.http_helper import FetchedPage  # noqa: E402

FILLER = (
    "This paragraph carries enough ordinary prose for the extractor to treat it "
    "as main content rather than boilerplate, with several complete sentences. "
    "It keeps going for a while so that length thresholds are comfortably met."
)


def make_page(title: str, links: list[tuple[str, str, str]] | None = None, body: str = "", description: str = "") -> str:
    """
    Build a small article page.

    Args:
        title: Page title and h1
        links: (href, anchor text, surrounding sentence) tuples, one paragraph each
        body: Extra paragraph text
        description: Meta description
    """
    link_html = "".join(
        f"<p>{context} <a href=\"{href}\">{anchor}</a></p>" for href, anchor, context in (links or [])
    )
    meta = f'<meta name="description" content="{description}">' if description else ""
    return (
        f"<html><head><title>{title}</title>{meta}</head><body>"
        f"<nav><a href=\"/nav-home\">Home</a></nav>"
        f"<article><h1>{title}</h1><p>{body or FILLER}</p><p>{FILLER}</p>{link_html}</article>"
        f"</body></html>"
    )


class FakeClock:
    def __init__(self, start: float = 1_000_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeHTTPClient:
    """Serves registered pages; unknown URLs fail with HTTP 404."""

    def __init__(self) -> None:
        self.pages: dict[str, tuple[str, str | None]] = {}
        self.calls: list[str] = []

    def add(self, url: str, html: str, content_type: str | None = "text/html; charset=utf-8") -> None:
        self.pages[url] = (html, content_type)

    def fetch(self, url: str) -> FetchedPage:
        self.calls.append(url)
        if url not in self.pages:
            raise FetchError(url, "Not Found", status_code=404)
        html, content_type = self.pages[url]
        return FetchedPage(url=url, final_url=url, status_code=200, content_type=content_type, body=html.encode("utf-8"))

    def close(self) -> None:
        pass


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def fake_http() -> FakeHTTPClient:
    return FakeHTTPClient()


@pytest.fixture()
def cache(tmp_path, clock: FakeClock) -> Generator[ContentCache, None, None]:
    c = ContentCache(ttl_seconds=1800, max_entries=100, cache_dir=str(tmp_path / "cache"), clock=clock)
    yield c
    c.close()


@pytest.fixture()
def fetcher(fake_http: FakeHTTPClient, cache: ContentCache) -> ContentFetcher:
    return ContentFetcher(fake_http, cache)


@pytest.fixture()
def sessions(fetcher: ContentFetcher, clock: FakeClock) -> SessionStore:
    return SessionStore(fetcher=fetcher, timeout_seconds=1800, clock=clock)


@pytest.fixture()
def navigator(fetcher: ContentFetcher, sessions: SessionStore) -> LinkNavigator:
    return LinkNavigator(fetcher, sessions, config=NavigationConfig())
