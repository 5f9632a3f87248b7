"""
In-memory browsing sessions: history, bookmarks and research context.
"""
import threading
import time
import uuid
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional

from processor.relevance import extract_keywords
from scraper.models import Document
from utils.errors import InvalidInputError, SessionNotFoundError
from utils.logger import setup_logger
from utils.url_tools import normalize_url

logger = setup_logger(__name__)


@dataclass
class HistoryEntry:
    url: str
    title: str
    visit_time: float
    summary: str = ""
    keywords: List[str] = field(default_factory=list)
    parent_url: Optional[str] = None


@dataclass
class Session:
    """A browsing session. Mutated only through SessionStore."""
    id: str
    start_time: float
    last_activity_time: float
    topic: Optional[str] = None
    current_url: Optional[str] = None
    history: List[HistoryEntry] = field(default_factory=list)
    bookmarks: set = field(default_factory=set)
    research_questions: List[str] = field(default_factory=list)
    summary: str = ""


@dataclass(frozen=True)
class NavigationPath:
    start_url: str
    end_url: str
    intermediate_urls: tuple = ()
    relevance: float = 0.5


class SessionStore:
    """
    Thread-safe registry of sessions.

    Sessions live until they have been idle longer than the timeout; the
    sweep (run on demand or by the background sweeper) is the only thing that
    removes them.
    """

    def __init__(
        self,
        fetcher=None,
        timeout_seconds: float = 30 * 60,
        auto_create: bool = True,
        sweep_interval_seconds: float = 15 * 60,
        clock: Callable[[], float] = time.time,
    ):
        """
        Initialize the store.

        Args:
            fetcher: ContentFetcher used by record_visit when no document is given
            timeout_seconds: Idle time after which a session is swept
            auto_create: Whether navigation may create a session for an unknown id
            sweep_interval_seconds: Default period of the background sweeper
            clock: Epoch time source
        """
        self.fetcher = fetcher
        self.timeout_seconds = timeout_seconds
        self.auto_create = auto_create
        self.sweep_interval_seconds = sweep_interval_seconds
        self._clock = clock
        self._sessions: Dict[str, Session] = {}
        self._lock = threading.RLock()
        self._stop_event = threading.Event()
        self._sweeper: Optional[threading.Thread] = None
        self._sweep_hooks: List[Callable[[], object]] = []

    def add_sweep_hook(self, hook: Callable[[], object]) -> None:
        """Run `hook` after every sweep (used to prune state keyed by callers or sessions)."""
        self._sweep_hooks.append(hook)

    def create(self, topic: Optional[str] = None) -> Session:
        now = self._clock()
        session = Session(id=uuid.uuid4().hex, start_time=now, last_activity_time=now, topic=topic)
        with self._lock:
            self._sessions[session.id] = session
        logger.info(f"Created session {session.id} (topic: {topic or 'none'})")
        return session

    def get(self, session_id: Optional[str]) -> Optional[Session]:
        """Look up a session and refresh its activity time. Returns None when unknown."""
        if not session_id:
            return None
        with self._lock:
            session = self._sessions.get(session_id)
            if session is not None:
                session.last_activity_time = self._clock()
            return session

    def require(self, session_id: Optional[str]) -> Session:
        session = self.get(session_id)
        if session is None:
            raise SessionNotFoundError(session_id)
        return session

    def get_or_create(self, session_id: Optional[str], topic: Optional[str] = None) -> Session:
        """
        Resolve a session for a navigation request.

        Raises:
            SessionNotFoundError: If the id is unknown and auto-creation is disabled
        """
        session = self.get(session_id)
        if session is not None:
            return session
        if not self.auto_create:
            raise SessionNotFoundError(session_id)
        if session_id:
            logger.info(f"Session {session_id} not found, starting a new one")
        return self.create(topic)

    def record_visit(
        self,
        session_id: str,
        url: str,
        parent_url: Optional[str] = None,
        document: Optional[Document] = None,
    ) -> HistoryEntry:
        """
        Append a page to the session history.

        Args:
            session_id: Session to update
            url: Visited URL
            parent_url: Page the visit was reached from, if any
            document: Extracted page; fetched through the fetcher when None

        Returns:
            The new history entry

        Raises:
            SessionNotFoundError: If the session does not exist
        """
        self.require(session_id)
        if document is None:
            if self.fetcher is None:
                raise InvalidInputError("record_visit needs a document when no fetcher is configured")
            document = self.fetcher.extract(url)

        entry = HistoryEntry(
            url=url,
            title=document.title,
            visit_time=self._clock(),
            summary=document.summary,
            keywords=extract_keywords(document.title, document.description),
            parent_url=parent_url,
        )
        with self._lock:
            session = self._sessions.get(session_id)
            if session is None:
                # Swept while the page was being fetched
                raise SessionNotFoundError(session_id)
            session.history.append(entry)
            session.current_url = url
            session.last_activity_time = entry.visit_time
            session.summary = self._build_summary(session)
        logger.debug(f"Session {session_id} visited {url}")
        return entry

    @staticmethod
    def _build_summary(session: Session) -> str:
        if not session.history:
            return ""
        recent = [h.title or h.url for h in session.history[-3:]]
        topic = f" on '{session.topic}'" if session.topic else ""
        return (
            f"Research session{topic} covering {len(session.history)} pages. "
            f"Recent: {'; '.join(recent)}."
        )

    def add_bookmark(self, session_id: str, url: str) -> bool:
        """Bookmark a URL. Returns False when it was already bookmarked."""
        with self._lock:
            session = self.require(session_id)
            if url in session.bookmarks:
                return False
            session.bookmarks.add(url)
            return True

    def sweep_expired(self) -> int:
        """
        Remove sessions idle for longer than the timeout.

        Returns:
            Number of sessions removed
        """
        with self._lock:
            now = self._clock()
            expired = [
                sid for sid, s in self._sessions.items()
                if now - s.last_activity_time > self.timeout_seconds
            ]
            for sid in expired:
                del self._sessions[sid]
        if expired:
            logger.info(f"Swept {len(expired)} expired sessions")
        for hook in self._sweep_hooks:
            hook()
        return len(expired)

    def start_sweeper(self, interval_seconds: Optional[float] = None) -> None:
        """Run sweep_expired periodically on a daemon thread."""
        if self._sweeper is not None and self._sweeper.is_alive():
            return
        interval = interval_seconds or self.sweep_interval_seconds
        self._stop_event.clear()

        def _loop():
            while not self._stop_event.wait(interval):
                self.sweep_expired()

        self._sweeper = threading.Thread(target=_loop, name="session-sweeper", daemon=True)
        self._sweeper.start()
        logger.debug(f"Session sweeper started (every {interval:.0f}s)")

    def stop_sweeper(self) -> None:
        self._stop_event.set()
        if self._sweeper is not None:
            self._sweeper.join(timeout=5)
            self._sweeper = None

    def count(self) -> int:
        with self._lock:
            return len(self._sessions)

    def summary(self, session_id: str) -> dict:
        """Snapshot of a session for display."""
        with self._lock:
            session = self.require(session_id)
            return {
                'session_id': session.id,
                'topic': session.topic,
                'current_url': session.current_url,
                'pages_visited': len(session.history),
                'bookmarks': sorted(session.bookmarks),
                'research_questions': list(session.research_questions),
                'summary': session.summary,
                'duration_seconds': session.last_activity_time - session.start_time,
            }

    def generate_research_questions(self, session_id: str) -> List[str]:
        with self._lock:
            session = self.require(session_id)
            topic = session.topic or (session.history[0].title if session.history else "this topic")
            questions = [
                f"What are the key aspects of {topic}?",
                f"What recent developments have occurred in {topic}?",
                f"What are the different perspectives on {topic}?",
            ]
            session.research_questions = questions
            return list(questions)

    def navigation_paths(self, session_id: str, from_url: str, to_url: str) -> List[NavigationPath]:
        """
        Paths between two URLs using the parent links recorded in the history.

        Returns:
            The recorded chain (relevance 1.0) when `to_url` was reached from
            `from_url`, otherwise a single direct path with relevance 0.5
        """
        start, end = normalize_url(from_url), normalize_url(to_url)
        with self._lock:
            session = self.require(session_id)
            parents = {}
            for entry in session.history:
                if entry.parent_url:
                    parents[normalize_url(entry.url)] = normalize_url(entry.parent_url)

        chain = [end]
        seen = {end}
        current = end
        while current != start and current in parents:
            current = parents[current]
            if current in seen:
                break
            seen.add(current)
            chain.append(current)

        if chain[-1] == start and len(chain) > 1:
            chain.reverse()
            return [NavigationPath(start_url=from_url, end_url=to_url,
                                   intermediate_urls=tuple(chain[1:-1]), relevance=1.0)]
        return [NavigationPath(start_url=from_url, end_url=to_url, relevance=0.5)]
