"""
Exception taxonomy shared by the fetcher, navigator and session store.
"""
from typing import Optional


class NavigatorError(Exception):
    """Base class for every error raised by this package."""


class InvalidInputError(NavigatorError, ValueError):
    """Malformed URL or arguments. Raised before any network call."""


class ConfigError(InvalidInputError):
    """A configuration value could not be parsed."""


class FetchError(NavigatorError):
    """
    Network failure, timeout, oversize body or HTTP error status.

    Never retried automatically; the attributes carry enough detail for a
    caller to decide whether a retry makes sense.
    """

    def __init__(self, url: str, reason: str, status_code: Optional[int] = None):
        self.url = url
        self.reason = reason
        self.status_code = status_code
        detail = f"HTTP {status_code}: {reason}" if status_code else reason
        super().__init__(f"Failed to fetch {url}: {detail}")


class ParseError(NavigatorError):
    """The document produced no usable content, even through the fallback extractor."""

    def __init__(self, url: str, reason: str = "no extractable content"):
        self.url = url
        self.reason = reason
        super().__init__(f"Could not extract content from {url}: {reason}")


class SessionNotFoundError(NavigatorError, KeyError):
    """Unknown session id with no way to create one."""

    def __init__(self, session_id: Optional[str]):
        self.session_id = session_id
        super().__init__(f"Session {session_id} not found")

    def __str__(self) -> str:
        return f"Session {self.session_id} not found"


class RateLimitError(NavigatorError):
    """Too many requests from one caller inside the current window."""

    def __init__(self, identifier: str, reset_at: float):
        self.identifier = identifier
        self.reset_at = reset_at
        super().__init__(f"Rate limit exceeded for {identifier}")
