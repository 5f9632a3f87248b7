"""
Relevance-guided link following from a start page.
"""
import re
import time
from typing import Iterable, List, Optional, Sequence, Union

from processor.relevance import STOP_WORDS, DomainRules, RelevanceScorer, related_topics
from scraper.fetcher import ContentFetcher
from scraper.models import Document, Link, NavigationResult, OutputForm, PageVisit, SkippedLink
from utils.config import NavigationConfig
from utils.errors import InvalidInputError, NavigatorError
from utils.logger import setup_logger
from utils.url_tools import host_of, is_valid_url, normalize_url, resolve_href

logger = setup_logger(__name__)


class LinkNavigator:
    """
    Depth-first traversal that follows the best-scoring links of each page.

    Features:
    - Explicit stack instead of recursion, children visited before the next sibling
    - Visited-set owned by each traversal; URLs compared in normalized form
    - Breadth never grows with depth: each level follows at most as many links as the one above
    - Per-link failures are recorded and skipped, the start page must succeed
    - Optional monotonic deadline returning partial results
    """

    def __init__(
        self,
        fetcher: ContentFetcher,
        sessions,
        scorer: Optional[RelevanceScorer] = None,
        config: Optional[NavigationConfig] = None,
        clock=time.monotonic,
    ):
        """
        Initialize the navigator.

        Args:
            fetcher: Content fetcher (cache-backed)
            sessions: SessionStore recording visits
            scorer: Scoring strategy
            config: Threshold and breadth limits
            clock: Monotonic time source compared against deadlines
        """
        self.fetcher = fetcher
        self.sessions = sessions
        self.scorer = scorer or RelevanceScorer()
        self.config = config or NavigationConfig()
        self._clock = clock

    def follow_links(
        self,
        session_id: Optional[str],
        start_url: str,
        keywords: Optional[Sequence[str]] = None,
        max_links_to_follow: Optional[int] = None,
        depth: Optional[int] = None,
        stay_on_domain: bool = False,
        exclude_domains: Iterable[str] = (),
        deadline: Optional[float] = None,
        output_form: Union[OutputForm, str] = OutputForm.MARKDOWN,
    ) -> NavigationResult:
        """
        Follow relevant links starting from a URL.

        Args:
            session_id: Existing session id, or None to start a new session
            start_url: Page to start from
            keywords: Goal keywords guiding link selection
            max_links_to_follow: Links followed from the start page
            depth: Link levels below the start page (0 visits only the start page)
            stay_on_domain: Restrict links to the start page host and its subdomains
            exclude_domains: Hosts never followed
            deadline: Monotonic time after which the traversal stops early
            output_form: Output form requested from the fetcher

        Returns:
            NavigationResult with the visited pages in visit order

        Raises:
            InvalidInputError: If the start URL is malformed
            SessionNotFoundError: If the session is unknown and cannot be created
            FetchError, ParseError: If the start page cannot be extracted
        """
        if not is_valid_url(start_url):
            raise InvalidInputError(f"Invalid URL: {start_url!r}")
        keywords = [k for k in (keywords or []) if k and k.strip()]
        max_links = self.config.max_links_per_level if max_links_to_follow is None else max_links_to_follow
        depth = self.config.max_depth if depth is None else depth

        session = self.sessions.get_or_create(session_id, topic=", ".join(keywords) or None)
        logger.info(f"Navigating from {start_url} (depth={depth}, max_links={max_links}, session={session.id})")

        start_doc = self.fetcher.extract(start_url, output_form)
        result = NavigationResult(start_url=start_url, session_id=session.id)
        result.pages_visited.append(PageVisit(
            url=start_url, title=start_doc.title, relevance=1.0, summary=start_doc.summary, depth=0,
        ))
        result.navigation_path.append(start_url)
        self.sessions.record_visit(session.id, start_url, document=start_doc)

        visited = {normalize_url(start_url)}
        if depth > 0 and max_links > 0:
            rules = DomainRules(
                threshold=self.config.relevance_threshold,
                include_domains=(host_of(start_url),) if stay_on_domain else (),
                exclude_domains=tuple(d for d in exclude_domains if d),
            )
            self._traverse(result, start_doc, keywords, depth, max_links, rules, visited, deadline, output_form)

        result.related_topics = related_topics(p.title for p in result.pages_visited)
        logger.info(
            f"Navigation from {start_url} finished: {len(result.pages_visited)} pages, "
            f"{len(result.skipped)} skipped{' (truncated)' if result.truncated else ''}"
        )
        return result

    def _traverse(self, result, start_doc, keywords, depth, max_links, rules, visited, deadline, output_form):
        # Stack entries: (link, level, parent url); pushed in reverse so the best link pops first
        top = self._select(start_doc, keywords, rules, max_links, visited)
        stack = [(link, 1, start_doc.url) for link in reversed(top)]

        while stack:
            if deadline is not None and self._clock() >= deadline:
                logger.warning(f"Navigation deadline reached, {len(stack)} links left unvisited")
                result.truncated = True
                break

            link, level, parent_url = stack.pop()
            key = normalize_url(link.target_url)
            if key in visited:
                continue
            visited.add(key)

            try:
                document = self.fetcher.extract(link.target_url, output_form)
            except NavigatorError as e:
                logger.warning(f"Skipping {link.target_url}: {e}")
                result.skipped.append(SkippedLink(url=link.target_url, reason=str(e), depth=level))
                continue

            result.pages_visited.append(PageVisit(
                url=link.target_url,
                title=document.title,
                relevance=self.scorer.score_page(document, keywords),
                summary=document.summary,
                depth=level,
                parent_url=parent_url,
            ))
            result.navigation_path.append(link.target_url)
            result.followed_links.append(link.mark_visited())
            self.sessions.record_visit(result.session_id, link.target_url, parent_url=parent_url, document=document)
            logger.info(f"Visited {link.target_url} at depth {level} (score {link.relevance_score:.2f})")

            remaining = depth - level
            if remaining >= 1 and document.links:
                # Shrinks as remaining depth runs out and never exceeds the level above
                breadth = max(1, min(3, remaining + 1, max_links, self.config.max_links_per_level))
                children = self._select(document, keywords, rules, breadth, visited)
                stack.extend((child, level + 1, link.target_url) for child in reversed(children))

    def _select(self, document: Document, keywords, rules: DomainRules, limit: int, visited: set) -> List[Link]:
        """Top `limit` qualifying links of a page that were not visited yet."""
        candidates = []
        for link in document.links:
            target = link.target_url if is_valid_url(link.target_url) else resolve_href(link.target_url, document.url)
            if not target or normalize_url(target) in visited:
                continue
            candidates.append(link if target == link.target_url else Link(
                target_url=target,
                anchor_text=link.anchor_text,
                surrounding_context=link.surrounding_context,
            ))
        ranked = self.scorer.rank_links(candidates, keywords, document.url, rules)
        # The same target can be linked with different fragments or slashes
        selected, keys = [], set()
        for link in ranked:
            key = normalize_url(link.target_url)
            if key in keys:
                continue
            keys.add(key)
            selected.append(link)
            if len(selected) >= limit:
                break
        return selected

    def suggest_links(
        self,
        session_id: str,
        url: str,
        context: Optional[str] = None,
        max_suggestions: int = 5,
    ) -> List[Link]:
        """
        Suggest links worth opening from a page.

        Args:
            session_id: Existing session
            url: Page to look at
            context: Free text describing what the caller is after (defaults to the session topic)
            max_suggestions: Maximum number of links returned

        Returns:
            Scored links above the suggestion threshold, best first

        Raises:
            SessionNotFoundError: If the session does not exist
        """
        session = self.sessions.require(session_id)
        document = self.fetcher.extract(url)
        if session.current_url != url:
            self.sessions.record_visit(session.id, url, document=document)

        text = context if context is not None else (session.topic or '')
        keywords = [w for w in re.findall(r"[\w'-]+", text.lower()) if len(w) > 2 and w not in STOP_WORDS]

        scored = []
        for link in document.links:
            score = self.scorer.score_link(link, keywords, document.url)
            if score >= self.config.suggestion_threshold:
                scored.append(link.with_score(score))
        scored.sort(key=lambda l: l.relevance_score, reverse=True)
        return scored[:max_suggestions]
