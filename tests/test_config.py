from __future__ import annotations

import pytest

from utils.config import AppConfig, NavigationConfig
from utils.errors import ConfigError, InvalidInputError


def test_defaults() -> None:
    config = AppConfig.default()

    assert config.cache.ttl_seconds == 1800
    assert config.cache.max_entries == 100
    assert config.fetch.timeout_seconds == 30.0
    assert config.fetch.max_content_bytes == 50 * 1024 * 1024
    assert config.fetch.max_retries == 0
    assert config.navigation.relevance_threshold == 0.1
    assert config.navigation.max_depth == 3
    assert config.navigation.max_links_per_level == 5
    assert config.session.timeout_seconds == 1800
    assert config.session.sweep_interval_seconds == 900
    assert config.rate_limit.window_seconds == 60.0
    assert config.validate() == []


def test_from_env_reads_values() -> None:
    config = AppConfig.from_env({
        "CONTENT_CACHE_TTL_MINUTES": "5",
        "MAX_CACHE_ENTRIES": "50",
        "REQUEST_TIMEOUT_MS": "10000",
        "RELEVANCE_THRESHOLD": "0.25",
        "MAX_NAVIGATION_DEPTH": "2",
        "RATE_LIMIT_MAX_REQUESTS": "7",
        "SESSION_AUTO_CREATE": "false",
        "LOG_LEVEL": "DEBUG",
    })

    assert config.cache.ttl_seconds == 300
    assert config.cache.max_entries == 50
    assert config.fetch.timeout_seconds == 10.0
    assert config.navigation.relevance_threshold == 0.25
    assert config.navigation.max_depth == 2
    assert config.rate_limit.max_requests == 7
    assert config.session.auto_create is False
    assert config.log_level == "debug"


def test_empty_env_gives_defaults() -> None:
    assert AppConfig.from_env({}) == AppConfig.default()


def test_unparsable_value_raises() -> None:
    with pytest.raises(ConfigError, match="MAX_CACHE_ENTRIES"):
        AppConfig.from_env({"MAX_CACHE_ENTRIES": "lots"})
    # ConfigError is an input error for callers catching broadly
    assert issubclass(ConfigError, InvalidInputError)


def test_navigation_limits_are_clamped() -> None:
    nav = NavigationConfig(max_depth=10, max_links_per_level=0)
    assert nav.max_depth == 3
    assert nav.max_links_per_level == 1


def test_validate_reports_out_of_range() -> None:
    config = AppConfig.from_env({"MAX_CACHE_ENTRIES": "5", "REQUEST_TIMEOUT_MS": "1000", "LOG_LEVEL": "loud"})

    problems = config.validate()

    assert len(problems) == 3
    assert any("MAX_CACHE_ENTRIES" in p for p in problems)
    assert any("REQUEST_TIMEOUT_MS" in p for p in problems)
