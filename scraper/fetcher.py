"""
Content fetcher: download a page, isolate its main content and normalize it
into the requested output form.
"""
import html as html_lib
import time
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Callable, Dict, Iterable, Optional, Union

import trafilatura
from bs4 import BeautifulSoup

from scraper import normalizer, page_parser
from scraper.content_cache import ContentCache
from scraper.models import Document, OutputForm
from utils.config import FetchConfig
from utils.errors import FetchError, InvalidInputError, ParseError
from utils.http_helper import BoundedHTTPClient, FetchedPage
from utils.logger import setup_logger
from utils.url_tools import is_valid_url

logger = setup_logger(__name__)

_HTML_CONTENT_TYPES = {'text/html', 'application/xhtml+xml', 'application/xml', 'text/xml'}
_TEXT_CONTENT_TYPES = {'text/plain'}

_NOISE_SELECTORS = 'script, style, noscript, nav, header, footer, aside, .advertisement, .ads, .sidebar'
_MAIN_CONTENT_SELECTORS = (
    'main', '[role="main"]', '.main-content', '.content', '.post-content',
    '.entry-content', '.article-content', '.page-content', 'article', '.article-body',
)
_BODY_NOISE_SELECTORS = 'nav, header, footer, aside, .nav, .navigation, .sidebar, .menu'
_TRAFILATURA_FORMATS = {OutputForm.MARKDOWN: 'markdown', OutputForm.TEXT: 'txt'}


class ContentFetcher:
    """
    Turns a URL into a Document.

    Features:
    - Cache-first: a valid cache entry is returned without network I/O
    - Bounded download (timeout and body size enforced by the HTTP client)
    - trafilatura for main-content extraction, BeautifulSoup fallback when
      trafilatura yields too little text
    - Markdown and text rendered by trafilatura on the primary path
    - Links, meta tags, structured data and credibility from the same response
    """

    def __init__(
        self,
        http_client: Optional[BoundedHTTPClient] = None,
        cache: Optional[ContentCache] = None,
        config: Optional[FetchConfig] = None,
        clock: Callable[[], float] = time.time,
    ):
        """
        Initialize the fetcher.

        Args:
            http_client: Object exposing ``fetch(url) -> FetchedPage``
            cache: Content cache; extraction results are not memoized when None
            config: Fetch limits and extraction thresholds
            clock: Epoch time source for ``Document.fetched_at``
        """
        self.config = config or FetchConfig()
        self.http = http_client or BoundedHTTPClient(
            timeout=self.config.timeout_seconds,
            max_bytes=self.config.max_content_bytes,
            max_retries=self.config.max_retries,
            user_agent=self.config.user_agent,
        )
        self.cache = cache
        self._clock = clock

    def extract(self, url: str, output_form: Union[OutputForm, str] = OutputForm.MARKDOWN) -> Document:
        """
        Fetch and extract one page.

        Args:
            url: Absolute http(s) URL
            output_form: text, markdown or html

        Returns:
            Document for the page

        Raises:
            InvalidInputError: If the URL is malformed or the output form unknown
            FetchError: On network failure, timeout, oversize body, HTTP error or unsupported content type
            ParseError: If no usable content could be extracted
        """
        form = OutputForm.parse(output_form)
        if not is_valid_url(url):
            raise InvalidInputError(f"Invalid URL: {url!r}")
        url = url.strip()

        if self.cache is not None:
            cached = self.cache.get(url, form)
            if cached is not None:
                logger.debug(f"Serving {url} from cache")
                return cached

        page = self.http.fetch(url)
        document = self._build_document(url, page, form)

        if self.cache is not None:
            self.cache.put(url, form, document)
        logger.info(
            f"Extracted {url} via {document.extractor}: "
            f"{document.raw_word_count} words, {len(document.links)} links"
        )
        return document

    def _build_document(self, url: str, page: FetchedPage, form: OutputForm) -> Document:
        raw_html = self._document_html(url, page)
        base_url = page.final_url or url

        fragment, extractor = self._extract_main_html(raw_html, base_url)
        content = self._render(raw_html, base_url, fragment, extractor, form)
        if not content.strip():
            raise ParseError(url, f"no {form.value} content left after normalization")

        plain_text = normalizer.html_to_plain_text(fragment)
        soup = page_parser.parse_html(raw_html)
        meta_tags = page_parser.extract_meta_tags(soup)
        headings = page_parser.extract_headings(soup, self.config.max_headings)
        title = page_parser.extract_title(soup) or (headings[0] if headings else '')

        return Document(
            url=url,
            title=title,
            description=page_parser.extract_description(soup, meta_tags),
            raw_word_count=normalizer.word_count(content),
            char_count=len(content),
            content_by_form={form: content},
            headings=headings,
            links=page_parser.extract_links(soup, base_url, self.config.context_chars),
            summary=normalizer.summarize(plain_text, self.config.summary_chars),
            meta_tags=meta_tags,
            structured=page_parser.extract_structured_data(soup, meta_tags),
            credibility=page_parser.assess_credibility(soup, base_url, meta_tags),
            extractor=extractor,
            fetched_at=self._clock(),
        )

    @staticmethod
    def _document_html(url: str, page: FetchedPage) -> str:
        """Decoded HTML of the response; plain text bodies are wrapped in paragraphs."""
        media_type = (page.content_type or '').split(';')[0].strip().lower()
        text = page.text
        if not media_type or media_type in _HTML_CONTENT_TYPES:
            return text
        if media_type in _TEXT_CONTENT_TYPES:
            paragraphs = [p.strip() for p in text.split('\n\n') if p.strip()]
            body = ''.join(f'<p>{html_lib.escape(p)}</p>' for p in paragraphs)
            return f'<html><body>{body}</body></html>'
        raise FetchError(url, f"unsupported content type {media_type}")

    def _trafilatura(self, raw_html: str, url: str, output_format: str) -> Optional[str]:
        try:
            return trafilatura.extract(
                raw_html,
                url=url,
                output_format=output_format,
                include_comments=False,
                include_tables=True,
                include_links=False,
                favor_precision=True,
            )
        except Exception as e:
            # trafilatura raises on some malformed trees; the fallback handles those
            logger.debug(f"trafilatura failed on {url}: {e}")
            return None

    def _render(self, raw_html: str, url: str, fragment: str, extractor: str, form: OutputForm) -> str:
        """Requested form, taken from trafilatura directly when it produced the main content."""
        if extractor == 'trafilatura' and form in _TRAFILATURA_FORMATS:
            rendered = self._trafilatura(raw_html, url, _TRAFILATURA_FORMATS[form])
            if rendered and rendered.strip():
                if form is OutputForm.MARKDOWN:
                    content = normalizer.enhance_markdown(normalizer.clean_markdown(rendered))
                else:
                    # trafilatura separates paragraphs with single line breaks
                    content = normalizer.enhance_text('\n\n'.join(normalizer.clean_text(rendered).splitlines()))
                if content:
                    return content
        return normalizer.render(fragment, form)

    def _extract_main_html(self, raw_html: str, url: str) -> tuple:
        """
        Main content as an HTML fragment.

        Returns:
            (fragment, extractor name)
        """
        extracted = self._trafilatura(raw_html, url, 'html')
        if extracted:
            text = BeautifulSoup(extracted, 'html.parser').get_text(' ', strip=True)
            if len(text) > self.config.min_primary_chars:
                return extracted, 'trafilatura'
            logger.debug(f"trafilatura returned {len(text)} chars for {url}, using fallback")

        fragment = self._fallback_html(raw_html)
        if not BeautifulSoup(fragment, 'html.parser').get_text(strip=True):
            raise ParseError(url)
        return fragment, 'fallback'

    def _fallback_html(self, raw_html: str) -> str:
        soup = BeautifulSoup(raw_html, 'html.parser')
        for el in soup.select(_NOISE_SELECTORS):
            el.decompose()

        for selector in _MAIN_CONTENT_SELECTORS:
            candidate = soup.select_one(selector)
            if candidate and len(candidate.get_text(' ', strip=True)) > self.config.min_fallback_chars:
                logger.debug(f"Fallback content selected with '{selector}'")
                return str(candidate)

        body = soup.body or soup
        for el in body.select(_BODY_NOISE_SELECTORS):
            el.decompose()
        return body.decode_contents() if body is not soup else str(soup)

    def batch_extract(
        self,
        urls: Iterable[str],
        output_form: Union[OutputForm, str] = OutputForm.MARKDOWN,
        max_workers: Optional[int] = None,
    ) -> Dict[str, Union[Document, str]]:
        """
        Extract several URLs concurrently.

        Args:
            urls: URLs to extract (duplicates are extracted once)
            output_form: Output form for every document
            max_workers: Thread pool size, defaults to the concurrent request limit

        Returns:
            Mapping of URL to Document, or to an error message when that URL failed
        """
        form = OutputForm.parse(output_form)
        unique = list(dict.fromkeys(urls))
        if not unique:
            return {}
        workers = max(1, min(max_workers or self.config.concurrent_request_limit, len(unique)))
        logger.info(f"Batch extracting {len(unique)} URLs with {workers} workers")

        results: Dict[str, Union[Document, str]] = {}
        with ThreadPoolExecutor(max_workers=workers) as executor:
            futures = {executor.submit(self.extract, url, form): url for url in unique}
            for future in as_completed(futures):
                url = futures[future]
                try:
                    results[url] = future.result()
                except Exception as e:
                    logger.warning(f"Batch extraction failed for {url}: {e}")
                    results[url] = str(e)
        return {url: results[url] for url in unique}
