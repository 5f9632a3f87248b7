"""
URL validation, normalization and domain matching helpers.
"""
import re
from typing import Iterable, Optional
from urllib.parse import urljoin, urlparse

_WHITESPACE_RE = re.compile(r'\s')
_SKIPPED_HREF_PREFIXES = ('#', 'javascript:', 'mailto:', 'tel:', 'sms:', 'data:', 'file:')


def is_valid_url(url: str) -> bool:
    """
    Basic syntactic check performed before any network call.

    Accepts absolute http(s) URLs with a host and no embedded whitespace.

    Args:
        url: URL to validate

    Returns:
        True if URL is usable, False otherwise
    """
    if not isinstance(url, str) or not url or _WHITESPACE_RE.search(url.strip()):
        return False
    try:
        parsed = urlparse(url.strip())
        # Accessing .port raises ValueError for malformed ports
        parsed.port
    except ValueError:
        return False
    return parsed.scheme in {'http', 'https'} and bool(parsed.hostname)


def normalize_url(url: str) -> str:
    """
    Normalize URL by removing fragments and trailing slashes.
    This helps prevent visiting the same page multiple times with different fragments.

    Args:
        url: URL to normalize

    Returns:
        Normalized URL without fragment
    """
    url_without_fragment = url.strip().split('#')[0]

    # Remove trailing slash for consistency (but keep it for domain roots)
    parsed = urlparse(url_without_fragment)
    if parsed.path and parsed.path != '/' and url_without_fragment.endswith('/'):
        url_without_fragment = url_without_fragment.rstrip('/')

    return url_without_fragment


def resolve_href(href: Optional[str], base_url: str) -> Optional[str]:
    """
    Resolve an href found in a document against the document base.

    Args:
        href: Raw attribute value
        base_url: Absolute URL of the document (or its <base href>)

    Returns:
        Absolute http(s) URL, or None when the href is empty, an in-page
        anchor, an action link or otherwise unresolvable
    """
    if not href:
        return None
    href = href.strip()
    if not href or href.lower().startswith(_SKIPPED_HREF_PREFIXES):
        return None
    try:
        absolute = urljoin(base_url, href)
    except ValueError:
        return None
    absolute = absolute.split('#')[0]
    return absolute if is_valid_url(absolute) else None


def host_of(url: str) -> str:
    """Lower-cased hostname of a URL, empty string when it has none."""
    try:
        return (urlparse(url).hostname or '').lower()
    except ValueError:
        return ''


def host_matches(host: str, domain: str) -> bool:
    """True when `host` is `domain` or one of its subdomains."""
    host = host.lower().strip('.')
    domain = domain.lower().strip().strip('.')
    if not host or not domain:
        return False
    return host == domain or host.endswith('.' + domain)


def host_matches_any(host: str, domains: Iterable[str]) -> bool:
    return any(host_matches(host, d) for d in domains)
