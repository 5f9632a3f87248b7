"""
Composition root: builds the long-lived components once and exposes the
navigation operations behind a single object.
"""
from typing import Dict, Iterable, List, Optional, Union

from browsing.session_store import NavigationPath, SessionStore
from processor.relevance import RelevanceScorer
from scraper.content_cache import ContentCache
from scraper.fetcher import ContentFetcher
from scraper.models import Document, Link, NavigationResult, OutputForm
from scraper.navigator import LinkNavigator
from utils.config import AppConfig, clamp
from utils.errors import InvalidInputError
from utils.http_helper import BoundedHTTPClient
from utils.logger import level_from_name, set_level, setup_logger
from utils.rate_limiter import RateLimiter
from utils.url_tools import is_valid_url

logger = setup_logger(__name__)


class ContextualBrowser:
    """
    Facade over fetcher, cache, scorer, session store and navigator.

    Example:
        with ContextualBrowser(AppConfig.from_env()) as browser:
            result = browser.follow_links("https://example.com", keywords=["energy"], depth=1)
    """

    def __init__(
        self,
        config: Optional[AppConfig] = None,
        http_client=None,
        start_sweeper: bool = True,
    ):
        """
        Build every component from configuration.

        Args:
            config: Application configuration (defaults when None)
            http_client: Replacement for the bounded HTTP client (tests inject a fake)
            start_sweeper: Run the periodic session sweep on a background thread
        """
        self.config = config or AppConfig.default()
        problems = self.config.validate()
        for problem in problems:
            logger.warning(f"Configuration: {problem}")
        set_level(level_from_name(self.config.log_level))

        self.cache = ContentCache(
            ttl_seconds=self.config.cache.ttl_seconds,
            max_entries=self.config.cache.max_entries,
            cache_dir=self.config.cache.cache_dir,
        )
        self.http = http_client or BoundedHTTPClient(
            timeout=self.config.fetch.timeout_seconds,
            max_bytes=self.config.fetch.max_content_bytes,
            max_retries=self.config.fetch.max_retries,
            user_agent=self.config.fetch.user_agent,
        )
        self.fetcher = ContentFetcher(self.http, self.cache, self.config.fetch)
        self.sessions = SessionStore(
            fetcher=self.fetcher,
            timeout_seconds=self.config.session.timeout_seconds,
            auto_create=self.config.session.auto_create,
            sweep_interval_seconds=self.config.session.sweep_interval_seconds,
        )
        self.scorer = RelevanceScorer()
        self.navigator = LinkNavigator(self.fetcher, self.sessions, self.scorer, self.config.navigation)
        self.rate_limiter = RateLimiter(
            max_requests=self.config.rate_limit.max_requests,
            window_s=self.config.rate_limit.window_seconds,
        )
        self.sessions.add_sweep_hook(self._prune_idle_callers)
        if start_sweeper:
            self.sessions.start_sweeper()

    def _prune_idle_callers(self) -> None:
        dropped = self.rate_limiter.cleanup()
        if dropped:
            logger.debug(f"Dropped rate limit state of {dropped} idle callers")

    def follow_links(
        self,
        url: str,
        keywords: Optional[Iterable[str]] = None,
        session_id: Optional[str] = None,
        max_links: int = 3,
        depth: int = 1,
        stay_on_domain: bool = False,
        exclude_domains: Iterable[str] = (),
        deadline: Optional[float] = None,
        caller_id: Optional[str] = None,
    ) -> NavigationResult:
        """
        Follow relevant links from a URL.

        Depth is clamped to 1-3 and max_links to 1-5.

        Raises:
            InvalidInputError: If the URL is malformed
            RateLimitError: If the caller exceeded its request budget
        """
        if not is_valid_url(url):
            raise InvalidInputError(f"Invalid URL: {url!r}")
        self.rate_limiter.acquire(caller_id or session_id or 'anonymous')
        nav = self.config.navigation
        return self.navigator.follow_links(
            session_id,
            url,
            keywords=list(keywords or []),
            max_links_to_follow=clamp(int(max_links), 1, nav.max_links_per_level),
            depth=clamp(int(depth), 1, nav.max_depth),
            stay_on_domain=stay_on_domain,
            exclude_domains=tuple(exclude_domains),
            deadline=deadline,
        )

    def extract(self, url: str, output_form: Union[OutputForm, str] = OutputForm.MARKDOWN) -> Document:
        return self.fetcher.extract(url, output_form)

    def batch_extract(
        self, urls: Iterable[str], output_form: Union[OutputForm, str] = OutputForm.MARKDOWN
    ) -> Dict[str, Union[Document, str]]:
        return self.fetcher.batch_extract(urls, output_form)

    def suggest_links(self, session_id: str, url: str, context: Optional[str] = None,
                      max_suggestions: int = 5) -> List[Link]:
        return self.navigator.suggest_links(session_id, url, context, max_suggestions)

    def add_bookmark(self, session_id: str, url: str) -> bool:
        return self.sessions.add_bookmark(session_id, url)

    def session_summary(self, session_id: str) -> dict:
        return self.sessions.summary(session_id)

    def research_questions(self, session_id: str) -> List[str]:
        return self.sessions.generate_research_questions(session_id)

    def navigation_paths(self, session_id: str, from_url: str, to_url: str) -> List[NavigationPath]:
        """Recorded path between two pages of a session, or a direct path when none was taken."""
        return self.sessions.navigation_paths(session_id, from_url, to_url)

    def close(self) -> None:
        self.sessions.stop_sweeper()
        self.cache.close()
        close_http = getattr(self.http, 'close', None)
        if close_http is not None:
            close_http()
        logger.debug("Browser closed")

    def __enter__(self) -> 'ContextualBrowser':
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
