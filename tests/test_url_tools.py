from __future__ import annotations

import pytest

from utils.url_tools import host_matches, host_of, is_valid_url, normalize_url, resolve_href


@pytest.mark.parametrize("url", ["https://example.com", "http://example.com:8080/a?b=1", "https://sub.example.org/x#y"])
def test_valid_urls(url: str) -> None:
    assert is_valid_url(url)


@pytest.mark.parametrize(
    "url",
    ["", "example.com", "mailto:a@b.c", "ftp://example.com", "https://", "https://exa mple.com", "http://host:port/", None],
)
def test_invalid_urls(url) -> None:
    assert not is_valid_url(url)


def test_normalize_url() -> None:
    assert normalize_url("https://example.com/a/#top") == "https://example.com/a"
    assert normalize_url("https://example.com/") == "https://example.com/"
    assert normalize_url("https://example.com/a?q=1") == "https://example.com/a?q=1"


@pytest.mark.parametrize("href", [None, "", "#section", "javascript:void(0)", "mailto:x@y.z", "tel:123", "data:text/plain,hi"])
def test_resolve_href_skips_non_navigational(href) -> None:
    assert resolve_href(href, "https://example.com/a/b") is None


def test_resolve_href_makes_absolute() -> None:
    assert resolve_href("../c#frag", "https://example.com/a/b") == "https://example.com/c"
    assert resolve_href("//cdn.example.com/x", "https://example.com/") == "https://cdn.example.com/x"


def test_host_matching() -> None:
    assert host_of("https://Sub.Example.com/x") == "sub.example.com"
    assert host_matches("sub.example.com", "example.com")
    assert host_matches("example.com", "Example.com")
    assert not host_matches("badexample.com", "example.com")
    assert not host_matches("", "example.com")
