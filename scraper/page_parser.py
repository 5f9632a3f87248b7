"""
Metadata, link and structured-data extraction from a fetched HTML document.

Everything here works on the parsed document that the fetcher already holds,
so one network request serves content, links and metadata alike.
"""
import re
from typing import Iterable, List, Optional

from bs4 import BeautifulSoup, Tag

from scraper.models import (
    KeyValuePair,
    Link,
    ListData,
    SourceCredibility,
    StructuredData,
    TableData,
)
from scraper.normalizer import table_to_markdown
from utils.url_tools import host_of, resolve_href

# Meta tag families worth keeping on the document
_IMPORTANT_META = {'description', 'keywords', 'author', 'date', 'robots'}
_IMPORTANT_META_PREFIXES = ('og:', 'twitter:', 'article:', 'citation_', 'dc.')
_CONTEXT_TAGS = ['p', 'section', 'div', 'li']
_NEWS_HOST_HINTS = ('news', 'times', 'post', 'herald', 'tribune', 'guardian', 'reuters', 'bbc', 'cnn')
_EMAIL_RE = re.compile(r'[\w.+-]+@[\w-]+\.[\w.-]+')


def parse_html(html: str) -> BeautifulSoup:
    return BeautifulSoup(html or '', 'html.parser')


def _clean(text: Optional[str]) -> str:
    return ' '.join((text or '').split())


def extract_title(soup: BeautifulSoup) -> str:
    if soup.title and soup.title.string:
        return _clean(soup.title.string)
    og_title = soup.find('meta', attrs={'property': 'og:title'})
    if og_title and og_title.get('content'):
        return _clean(og_title['content'])
    h1 = soup.find('h1')
    return _clean(h1.get_text(' ')) if h1 else ''


def extract_meta_tags(soup: BeautifulSoup) -> dict:
    """
    Collect meta tags from the important families.

    Returns:
        Mapping of lower-cased name/property to content
    """
    tags = {}
    for meta in soup.find_all('meta'):
        name = (meta.get('name') or meta.get('property') or '').strip().lower()
        content = meta.get('content')
        if not name or content is None:
            continue
        if name in _IMPORTANT_META or name.startswith(_IMPORTANT_META_PREFIXES):
            tags.setdefault(name, _clean(content))
    return tags


def extract_description(soup: BeautifulSoup, meta_tags: Optional[dict] = None) -> str:
    meta_tags = meta_tags if meta_tags is not None else extract_meta_tags(soup)
    return meta_tags.get('description') or meta_tags.get('og:description') or ''


def extract_headings(soup: BeautifulSoup, limit: int = 20) -> tuple:
    headings = []
    for heading in soup.find_all(['h1', 'h2', 'h3', 'h4', 'h5', 'h6']):
        text = _clean(heading.get_text(' '))
        if text:
            headings.append(text)
        if len(headings) >= limit:
            break
    return tuple(headings)


def document_base(soup: BeautifulSoup, url: str) -> str:
    """Base URL for relative hrefs, honouring <base href>."""
    base = soup.find('base', href=True)
    if base:
        resolved = resolve_href(base['href'], url)
        if resolved:
            return resolved
    return url


def _link_context(anchor: Tag, max_chars: int) -> str:
    block = anchor.find_parent(_CONTEXT_TAGS)
    text = _clean(block.get_text(' ')) if block else _clean(anchor.get_text(' '))
    if len(text) > max_chars:
        return text[:max_chars] + '...'
    return text


def extract_links(soup: BeautifulSoup, url: str, context_chars: int = 300) -> tuple:
    """
    Outbound links of a document with their anchor text and surrounding context.

    Args:
        soup: Parsed document (before any boilerplate removal)
        url: Final URL of the document
        context_chars: Maximum context length before truncation

    Returns:
        Tuple of Link with absolute target URLs, first occurrence of each target only
    """
    base = document_base(soup, url)
    links: List[Link] = []
    seen = set()
    for anchor in soup.find_all('a', href=True):
        target = resolve_href(anchor['href'], base)
        if not target or target in seen:
            continue
        seen.add(target)
        anchor_text = _clean(anchor.get_text(' ')) or _clean(anchor.get('title'))
        links.append(Link(
            target_url=target,
            anchor_text=anchor_text,
            surrounding_context=_link_context(anchor, context_chars),
        ))
    return tuple(links)


# ---------------------------------------------------------------- structured data

def _table_context(table: Tag) -> str:
    previous = table.find_previous(['h1', 'h2', 'h3', 'h4', 'h5', 'h6', 'p'])
    return _clean(previous.get_text(' '))[:200] if previous else ''


def extract_tables(soup: BeautifulSoup) -> List[TableData]:
    tables = []
    for table in soup.find_all('table'):
        caption_tag = table.find('caption')
        caption = _clean(caption_tag.get_text(' ')) if caption_tag else ''
        headers = tuple(_clean(th.get_text(' ')) for th in table.find_all('th'))
        rows = []
        for tr in table.find_all('tr'):
            cells = tuple(_clean(td.get_text(' ')) for td in tr.find_all('td'))
            if cells:
                rows.append(cells)
        if not headers and not rows:
            continue
        tables.append(TableData(
            caption=caption,
            context=_table_context(table),
            headers=headers,
            rows=tuple(rows),
            markdown=table_to_markdown(headers, rows, caption),
        ))
    return tables


def extract_lists(soup: BeautifulSoup) -> List[ListData]:
    lists = []
    for lst in soup.find_all(['ul', 'ol']):
        # Navigation menus are lists of links only; skip them
        if lst.find_parent(['nav', 'header', 'footer']):
            continue
        items = tuple(t for t in (_clean(li.get_text(' ')) for li in lst.find_all('li', recursive=False)) if t)
        if not items:
            continue
        if lst.name == 'ol':
            kind = 'ordered'
            markdown = '\n'.join(f'{i}. {item}' for i, item in enumerate(items, 1))
        else:
            kind = 'unordered'
            markdown = '\n'.join(f'- {item}' for item in items)
        lists.append(ListData(kind=kind, items=items, markdown=markdown))
    for dl in soup.find_all('dl'):
        items = tuple(
            f'{_clean(dt.get_text(" "))}: {_clean(dd.get_text(" "))}'
            for dt, dd in _definition_pairs(dl)
        )
        if items:
            markdown = '\n'.join(f'**{item.split(": ", 1)[0]}**: {item.split(": ", 1)[1]}' for item in items)
            lists.append(ListData(kind='definition', items=items, markdown=markdown))
    return lists


def _definition_pairs(dl: Tag) -> Iterable[tuple]:
    for dt in dl.find_all('dt'):
        dd = dt.find_next_sibling('dd')
        if dd is not None:
            yield dt, dd


def extract_key_values(soup: BeautifulSoup, meta_tags: dict) -> List[KeyValuePair]:
    pairs = []
    for dl in soup.find_all('dl'):
        for dt, dd in _definition_pairs(dl):
            key, value = _clean(dt.get_text(' ')), _clean(dd.get_text(' '))
            if key and value:
                pairs.append(KeyValuePair(key=key, value=value))
    for name, content in meta_tags.items():
        if content:
            pairs.append(KeyValuePair(key=name, value=content))
    return pairs


def extract_structured_data(soup: BeautifulSoup, meta_tags: Optional[dict] = None) -> StructuredData:
    meta_tags = meta_tags if meta_tags is not None else extract_meta_tags(soup)
    return StructuredData(
        tables=tuple(extract_tables(soup)),
        lists=tuple(extract_lists(soup)),
        key_values=tuple(extract_key_values(soup, meta_tags)),
    )


# ---------------------------------------------------------------- credibility

def assess_credibility(soup: BeautifulSoup, url: str, meta_tags: Optional[dict] = None) -> SourceCredibility:
    """
    Heuristic source credibility from URL and page signals.

    Starts at 0.5 and adds small bonuses for HTTPS, institutional or news
    domains, a named author, a publication date, citations and contact details.

    Args:
        soup: Parsed document
        url: Document URL
        meta_tags: Pre-extracted meta tags, if available

    Returns:
        SourceCredibility with the score clamped to [0, 1] and the matched factors
    """
    meta_tags = meta_tags if meta_tags is not None else extract_meta_tags(soup)
    score = 0.5
    factors = []
    host = host_of(url)

    if url.lower().startswith('https://'):
        score += 0.05
        factors.append('HTTPS secure connection')

    if host.endswith('.edu') or host.endswith('.gov'):
        score += 0.1
        factors.append('Educational or government domain')
    elif any(hint in host for hint in _NEWS_HOST_HINTS):
        score += 0.05
        factors.append('News organization domain')

    has_author = bool(
        meta_tags.get('author') or meta_tags.get('article:author') or meta_tags.get('citation_author')
        or soup.select_one('[rel="author"], .author, .byline, [itemprop="author"]')
    )
    if has_author:
        score += 0.1
        factors.append('Author information present')

    has_date = bool(
        meta_tags.get('article:published_time') or meta_tags.get('date')
        or meta_tags.get('citation_publication_date') or soup.find('time')
    )
    if has_date:
        score += 0.05
        factors.append('Publication date present')

    has_citations = bool(
        soup.select_one('cite, blockquote[cite], .references, .citations, #references, sup.reference')
        or any(k.startswith('citation_') for k in meta_tags)
    )
    if has_citations:
        score += 0.1
        factors.append('Contains citations or references')

    has_contact = bool(
        soup.select_one('a[href^="mailto:"], a[href^="tel:"], address, .contact')
        or _EMAIL_RE.search(soup.get_text(' ') if soup.body is None else soup.body.get_text(' '))
    )
    if has_contact:
        score += 0.05
        factors.append('Contact information available')

    return SourceCredibility(score=max(0.0, min(1.0, round(score, 4))), factors=tuple(factors))
