"""
Lightweight HTTP helper enforcing a whole-download timeout and a body size cap.
Used by the content fetcher; any bound exceeded surfaces as FetchError.
"""
from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Callable, Optional

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from utils.errors import FetchError

logger = logging.getLogger(__name__)

DEFAULT_HEADERS = {
    'Accept': 'text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8',
    'Accept-Language': 'en-US,en;q=0.5',
    'Accept-Encoding': 'gzip, deflate',
    'Connection': 'keep-alive',
    'Upgrade-Insecure-Requests': '1',
}


@dataclass(frozen=True)
class FetchedPage:
    url: str
    final_url: str
    status_code: int
    content_type: str | None
    body: bytes

    @property
    def charset(self) -> str | None:
        if not self.content_type:
            return None
        for part in self.content_type.split(';')[1:]:
            key, _, value = part.strip().partition('=')
            if key.lower() == 'charset' and value:
                return value.strip('"\' ')
        return None

    @property
    def text(self) -> str:
        encoding = self.charset or 'utf-8'
        try:
            return self.body.decode(encoding, errors='replace')
        except LookupError:
            return self.body.decode('utf-8', errors='replace')


class BoundedHTTPClient:
    def __init__(
        self,
        timeout: float = 30.0,
        max_bytes: int = 50 * 1024 * 1024,
        max_retries: int = 0,
        backoff: float = 0.3,
        user_agent: Optional[str] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.timeout = timeout
        self.max_bytes = max_bytes
        self._clock = clock
        self.session = requests.Session()
        retries = Retry(total=max_retries, backoff_factor=backoff, status_forcelist=[429, 500, 502, 503, 504])
        adapter = HTTPAdapter(max_retries=retries)
        self.session.mount("https://", adapter)
        self.session.mount("http://", adapter)
        self.session.headers.update(DEFAULT_HEADERS)
        if user_agent:
            self.session.headers['User-Agent'] = user_agent

    def fetch(self, url: str) -> FetchedPage:
        """Fetch `url` within the configured time and size budget.

        The timeout covers the whole download: connect, headers and every body
        chunk. A declared Content-Length above the cap is rejected before the
        body is read.

        Raises:
            FetchError: on transport failure, HTTP status >= 400, timeout or oversize body
        Returns:
            FetchedPage with the raw body bytes
        """
        started = self._clock()
        logger.info("Fetching %s", url)
        try:
            with self.session.get(url, stream=True, timeout=self.timeout, allow_redirects=True) as resp:
                if resp.status_code >= 400:
                    raise FetchError(url, resp.reason or "error status", status_code=resp.status_code)

                declared = resp.headers.get('Content-Length')
                if declared and declared.isdigit() and int(declared) > self.max_bytes:
                    raise FetchError(url, f"content length {declared} exceeds limit of {self.max_bytes} bytes")

                chunks: list[bytes] = []
                received = 0
                for chunk in resp.iter_content(chunk_size=8192):
                    if self._clock() - started > self.timeout:
                        raise FetchError(url, f"timed out after {self.timeout:.1f}s")
                    if not chunk:
                        continue
                    received += len(chunk)
                    if received > self.max_bytes:
                        raise FetchError(url, f"body exceeds limit of {self.max_bytes} bytes")
                    chunks.append(chunk)

                if self._clock() - started > self.timeout:
                    raise FetchError(url, f"timed out after {self.timeout:.1f}s")

                return FetchedPage(
                    url=url,
                    final_url=resp.url or url,
                    status_code=resp.status_code,
                    content_type=resp.headers.get('Content-Type'),
                    body=b"".join(chunks),
                )
        except requests.Timeout as e:
            raise FetchError(url, f"timed out after {self.timeout:.1f}s") from e
        except requests.RequestException as e:
            raise FetchError(url, str(e) or e.__class__.__name__) from e

    def close(self) -> None:
        self.session.close()
