import os
from dataclasses import dataclass, field
from typing import Callable, Mapping, Optional, TypeVar

from utils.errors import ConfigError

T = TypeVar("T")


def clamp(value: int, low: int, high: int) -> int:
    """Clamp an integer into the inclusive range [low, high]."""
    return max(low, min(high, value))


def _env_value(env: Mapping[str, str], name: str, default: T, parse: Callable[[str], T]) -> T:
    raw = env.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return parse(raw.strip())
    except ValueError as e:
        raise ConfigError(f"{name} has an invalid value: {raw!r}") from e


def _parse_bool(raw: str) -> bool:
    low = raw.lower()
    if low in {"1", "true", "yes", "on"}:
        return True
    if low in {"0", "false", "no", "off"}:
        return False
    raise ValueError(raw)


@dataclass
class CacheConfig:
    """Configuration for the extracted-content cache."""
    ttl_minutes: float = 30  # Entries older than this are treated as misses
    max_entries: int = 100  # Soft bound, one eviction per put beyond it
    cache_dir: Optional[str] = None  # None = private temporary directory

    @property
    def ttl_seconds(self) -> float:
        return self.ttl_minutes * 60


@dataclass
class FetchConfig:
    """Configuration for page retrieval and extraction."""
    timeout_ms: int = 30000  # Whole-download budget, not just connect/read
    max_content_mb: float = 50
    max_retries: int = 0  # Failed fetches are surfaced, callers retry
    concurrent_request_limit: int = 10  # Worker threads for batch extraction
    min_primary_chars: int = 100  # Readability result shorter than this falls back
    min_fallback_chars: int = 200  # Content selector must exceed this to win
    summary_chars: int = 500
    max_headings: int = 20
    context_chars: int = 300  # Link surrounding-context window
    user_agent: str = (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/131.0.0.0 Safari/537.36"
    )

    @property
    def timeout_seconds(self) -> float:
        return self.timeout_ms / 1000.0

    @property
    def max_content_bytes(self) -> int:
        return int(self.max_content_mb * 1024 * 1024)


@dataclass
class NavigationConfig:
    """Configuration for link following."""
    relevance_threshold: float = 0.1
    max_depth: int = 3  # Clamped to 1-3
    max_links_per_level: int = 5  # Clamped to 1-5
    suggestion_threshold: float = 0.2

    def __post_init__(self):
        self.max_depth = clamp(int(self.max_depth), 1, 3)
        self.max_links_per_level = clamp(int(self.max_links_per_level), 1, 5)


@dataclass
class SessionConfig:
    """Configuration for browsing sessions."""
    timeout_minutes: float = 30
    sweep_interval_minutes: float = 15
    auto_create: bool = True  # Create a session when the requested id is unknown

    @property
    def timeout_seconds(self) -> float:
        return self.timeout_minutes * 60

    @property
    def sweep_interval_seconds(self) -> float:
        return self.sweep_interval_minutes * 60


@dataclass
class RateLimitConfig:
    """Per-caller fixed window limits."""
    window_ms: int = 60000
    max_requests: int = 100

    @property
    def window_seconds(self) -> float:
        return self.window_ms / 1000.0


@dataclass
class AppConfig:
    """Main application configuration."""
    cache: CacheConfig = field(default_factory=CacheConfig)
    fetch: FetchConfig = field(default_factory=FetchConfig)
    navigation: NavigationConfig = field(default_factory=NavigationConfig)
    session: SessionConfig = field(default_factory=SessionConfig)
    rate_limit: RateLimitConfig = field(default_factory=RateLimitConfig)
    log_level: str = "info"

    @classmethod
    def default(cls) -> 'AppConfig':
        """Create default configuration."""
        return cls(
            cache=CacheConfig(),
            fetch=FetchConfig(),
            navigation=NavigationConfig(),
            session=SessionConfig(),
            rate_limit=RateLimitConfig(),
        )

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None) -> 'AppConfig':
        """
        Build configuration from environment variables, falling back to defaults.

        Args:
            env: Mapping to read from (defaults to os.environ)

        Returns:
            Populated AppConfig

        Raises:
            ConfigError: If a variable is set but cannot be parsed
        """
        env = os.environ if env is None else env
        defaults = cls.default()
        return cls(
            cache=CacheConfig(
                ttl_minutes=_env_value(env, "CONTENT_CACHE_TTL_MINUTES", defaults.cache.ttl_minutes, float),
                max_entries=_env_value(env, "MAX_CACHE_ENTRIES", defaults.cache.max_entries, int),
                cache_dir=env.get("CONTENT_CACHE_DIR") or None,
            ),
            fetch=FetchConfig(
                timeout_ms=_env_value(env, "REQUEST_TIMEOUT_MS", defaults.fetch.timeout_ms, int),
                max_content_mb=_env_value(env, "MAX_CONTENT_SIZE_MB", defaults.fetch.max_content_mb, float),
                concurrent_request_limit=_env_value(
                    env, "CONCURRENT_REQUEST_LIMIT", defaults.fetch.concurrent_request_limit, int
                ),
            ),
            navigation=NavigationConfig(
                relevance_threshold=_env_value(
                    env, "RELEVANCE_THRESHOLD", defaults.navigation.relevance_threshold, float
                ),
                max_depth=_env_value(env, "MAX_NAVIGATION_DEPTH", defaults.navigation.max_depth, int),
                max_links_per_level=_env_value(
                    env, "MAX_LINKS_PER_LEVEL", defaults.navigation.max_links_per_level, int
                ),
            ),
            session=SessionConfig(
                timeout_minutes=_env_value(
                    env, "SESSION_TIMEOUT_MINUTES", defaults.session.timeout_minutes, float
                ),
                sweep_interval_minutes=_env_value(
                    env, "SESSION_SWEEP_INTERVAL_MINUTES", defaults.session.sweep_interval_minutes, float
                ),
                auto_create=_env_value(env, "SESSION_AUTO_CREATE", defaults.session.auto_create, _parse_bool),
            ),
            rate_limit=RateLimitConfig(
                window_ms=_env_value(env, "RATE_LIMIT_WINDOW_MS", defaults.rate_limit.window_ms, int),
                max_requests=_env_value(env, "RATE_LIMIT_MAX_REQUESTS", defaults.rate_limit.max_requests, int),
            ),
            log_level=(env.get("LOG_LEVEL") or defaults.log_level).lower(),
        )

    def validate(self) -> list[str]:
        """
        Check numeric ranges.

        Returns:
            List of human-readable problems (empty when the config is usable)
        """
        errors: list[str] = []
        if not 10 <= self.cache.max_entries <= 1000:
            errors.append("MAX_CACHE_ENTRIES must be between 10 and 1000")
        if not 1 <= self.cache.ttl_minutes <= 1440:
            errors.append("CONTENT_CACHE_TTL_MINUTES must be between 1 and 1440 (24 hours)")
        if not 5000 <= self.fetch.timeout_ms <= 300000:
            errors.append("REQUEST_TIMEOUT_MS must be between 5000 and 300000 (5 minutes)")
        if self.fetch.max_content_mb <= 0:
            errors.append("MAX_CONTENT_SIZE_MB must be positive")
        if self.fetch.concurrent_request_limit < 1:
            errors.append("CONCURRENT_REQUEST_LIMIT must be at least 1")
        if not 0.0 <= self.navigation.relevance_threshold <= 1.0:
            errors.append("RELEVANCE_THRESHOLD must be between 0 and 1")
        if self.session.timeout_minutes <= 0:
            errors.append("SESSION_TIMEOUT_MINUTES must be positive")
        if self.rate_limit.max_requests < 1:
            errors.append("RATE_LIMIT_MAX_REQUESTS must be at least 1")
        if self.log_level not in {"error", "warn", "warning", "info", "debug"}:
            errors.append("LOG_LEVEL must be one of error, warn, info, debug")
        return errors
