"""
TTL-bounded cache of extracted documents keyed by (url, output form).
"""
import shutil
import threading
import time
from typing import Callable, Optional

import diskcache

from scraper.models import Document, OutputForm
from utils.logger import setup_logger

logger = setup_logger(__name__)


class ContentCache:
    """
    Memoizes extraction results on top of a diskcache store.

    Features:
    - Entries are valid while ``now - timestamp < ttl``; stale entries read as misses
    - Bounded entry count: a put beyond capacity evicts exactly one entry, the
      one with the oldest insertion timestamp (not least-recently-read)
    - Every read unpickles a fresh Document, so callers never share an
      instance with the stored entry
    - One lock around get/put/evict for concurrent extraction requests
    """

    def __init__(
        self,
        ttl_seconds: float = 30 * 60,
        max_entries: int = 100,
        cache_dir: Optional[str] = None,
        clock: Callable[[], float] = time.time,
    ):
        """
        Initialize the cache.

        Args:
            ttl_seconds: Validity window for an entry
            max_entries: Soft capacity, enforced one eviction per put
            cache_dir: Directory for the backing store (temporary directory when None)
            clock: Time source returning epoch seconds
        """
        self.ttl_seconds = ttl_seconds
        self.max_entries = max_entries
        self._clock = clock
        self._lock = threading.Lock()
        self._owns_directory = cache_dir is None
        # diskcache culling is disabled; capacity is enforced here by entry count
        self._store = diskcache.Cache(cache_dir, eviction_policy='none', size_limit=2 ** 40)
        self._timestamps: dict[str, float] = {}
        self.hits = 0
        self.misses = 0
        self.evictions = 0

        for key in list(self._store.iterkeys()):
            entry = self._store.get(key)
            if isinstance(entry, tuple) and len(entry) == 2:
                self._timestamps[key] = float(entry[0])
            else:
                self._store.delete(key)

        logger.info(
            f"Content cache ready at {self._store.directory} "
            f"(ttl={ttl_seconds:.0f}s, max_entries={max_entries}, restored={len(self._timestamps)})"
        )

    @staticmethod
    def _key(url: str, form: OutputForm | str) -> str:
        return f"{url}|{OutputForm.parse(form).value}"

    def _is_valid(self, timestamp: float) -> bool:
        return self._clock() - timestamp < self.ttl_seconds

    def get(self, url: str, form: OutputForm | str = OutputForm.MARKDOWN) -> Optional[Document]:
        """
        Return the cached document, or None on a miss or an expired entry.

        Args:
            url: Page URL
            form: Output form the document was extracted in

        Returns:
            A copy of the stored document, or None
        """
        key = self._key(url, form)
        with self._lock:
            timestamp = self._timestamps.get(key)
            if timestamp is None or not self._is_valid(timestamp):
                self.misses += 1
                logger.debug(f"Cache MISS for {key}")
                return None
            entry = self._store.get(key)
            if entry is None:
                # Backing store lost the entry (removed externally)
                del self._timestamps[key]
                self.misses += 1
                logger.debug(f"Cache MISS for {key}")
                return None
            self.hits += 1
            logger.debug(f"Cache HIT for {key}")
            return entry[1]

    def put(self, url: str, form: OutputForm | str, document: Document) -> None:
        """
        Store a document, evicting the oldest entry if capacity is exceeded.

        Args:
            url: Page URL
            form: Output form of the document
            document: Extraction result
        """
        key = self._key(url, form)
        with self._lock:
            now = self._clock()
            self._store.set(key, (now, document))
            # Re-insert so ties on equal timestamps resolve in insertion order
            self._timestamps.pop(key, None)
            self._timestamps[key] = now
            if len(self._timestamps) > self.max_entries:
                self._evict_oldest()
        logger.debug(f"Cached document: {key}")

    def _evict_oldest(self) -> None:
        oldest_key = min(self._timestamps, key=self._timestamps.__getitem__)
        del self._timestamps[oldest_key]
        self._store.delete(oldest_key)
        self.evictions += 1
        logger.debug(f"Evicted oldest cache entry: {oldest_key}")

    def size(self) -> int:
        """Number of physically stored entries, expired ones included until evicted or purged."""
        with self._lock:
            return len(self._timestamps)

    def purge_expired(self) -> int:
        """
        Remove expired entries.

        Returns:
            Number of entries removed
        """
        with self._lock:
            expired = [k for k, ts in self._timestamps.items() if not self._is_valid(ts)]
            for key in expired:
                del self._timestamps[key]
                self._store.delete(key)
        if expired:
            logger.info(f"Purged {len(expired)} expired cache entries")
        return len(expired)

    def clear(self) -> None:
        with self._lock:
            self._store.clear()
            self._timestamps.clear()
        logger.warning("Cleared all cache entries")

    def stats(self) -> dict:
        with self._lock:
            return {
                'entries': len(self._timestamps),
                'max_entries': self.max_entries,
                'ttl_seconds': self.ttl_seconds,
                'hits': self.hits,
                'misses': self.misses,
                'evictions': self.evictions,
            }

    def close(self) -> None:
        directory = self._store.directory
        self._store.close()
        if self._owns_directory:
            shutil.rmtree(directory, ignore_errors=True)
