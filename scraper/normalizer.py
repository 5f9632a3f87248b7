"""
Post-processing of extracted HTML into the supported output forms.

The extractor hands over an HTML fragment (trafilatura output or the fallback
content element); this module turns it into plain text, Markdown or cleaned
HTML, normalizing whitespace and making sure blocks read as complete sentences.
"""
import re
from typing import Iterable, List

from bs4 import BeautifulSoup, NavigableString, Tag
from bs4.element import Comment

from scraper.models import OutputForm

_BLOCK_TAGS = {
    'p', 'div', 'section', 'article', 'main', 'header', 'footer', 'aside',
    'h1', 'h2', 'h3', 'h4', 'h5', 'h6', 'li', 'ul', 'ol', 'dl', 'dt', 'dd',
    'tr', 'table', 'blockquote', 'pre', 'figure', 'figcaption', 'hr', 'doc',
    'list', 'item', 'quote', 'row',
}
_SKIP_TAGS = {'head', 'script', 'style', 'noscript', 'template', 'iframe', 'svg'}
_HEADING_TAGS = {'h1': 1, 'h2': 2, 'h3': 3, 'h4': 4, 'h5': 5, 'h6': 6}
_SENTENCE_END_RE = re.compile(r'[.!?]$')
_SENTENCE_SPLIT_RE = re.compile(r'(?<=[.!?])\s+')
_SPACES_RE = re.compile(r'[ \t\r\f\v]+')
_MANY_BLANK_LINES_RE = re.compile(r'\n\s*\n\s*\n+')
_HEADING_LINE_RE = re.compile(r'^(#{1,6})[ \t]*([^#\n]+?)[ \t]*#*[ \t]*$', re.MULTILINE)
_LIST_ITEM_RE = re.compile(r'^([ \t]*[-*+][ \t]+)(.+)$', re.MULTILINE)


def clean_text(text: str) -> str:
    """Collapse runs of spaces and more than one blank line."""
    text = text.replace('\xa0', ' ').replace('\u200b', '')
    text = _SPACES_RE.sub(' ', text)
    text = '\n'.join(line.strip() for line in text.split('\n'))
    text = _MANY_BLANK_LINES_RE.sub('\n\n', text)
    return text.strip()


def ensure_sentence_end(text: str) -> str:
    text = text.rstrip()
    if text and not _SENTENCE_END_RE.search(text):
        return text + '.'
    return text


def _soup(html: str) -> BeautifulSoup:
    return BeautifulSoup(html or '', 'html.parser')


# ---------------------------------------------------------------- plain text

def html_to_plain_text(html: str) -> str:
    """Visible text of an HTML fragment with block boundaries kept as blank lines."""
    soup = _soup(html)
    for el in soup.find_all(list(_SKIP_TAGS)):
        el.decompose()
    for br in soup.find_all('br'):
        br.replace_with('\n')
    for el in soup.find_all(list(_BLOCK_TAGS)):
        el.insert_before('\n\n')
        el.insert_after('\n\n')
    return clean_text(soup.get_text())


def enhance_text(text: str) -> str:
    """
    Keep substantive paragraphs and terminate each with sentence punctuation.

    Paragraphs of 20 characters or fewer are dropped (menu crumbs, captions).
    """
    paragraphs = [p.strip() for p in re.split(r'\n\s*\n', text)]
    return '\n\n'.join(ensure_sentence_end(p) for p in paragraphs if len(p) > 20)


# ---------------------------------------------------------------- markdown

def _inline(node) -> str:
    """Render inline content of a node as Markdown."""
    parts: List[str] = []
    for child in node.children:
        if isinstance(child, Comment):
            continue
        if isinstance(child, NavigableString):
            parts.append(_SPACES_RE.sub(' ', str(child).replace('\n', ' ')))
            continue
        if not isinstance(child, Tag) or child.name in _SKIP_TAGS:
            continue
        name = child.name
        if name == 'br' or name == 'lb':
            parts.append('\n')
        elif name == 'a' or name == 'ref':
            text = _inline(child).strip()
            href = child.get('href') or child.get('target')
            parts.append(f'[{text}]({href})' if href and text else text)
        elif name in ('strong', 'b') or (name == 'hi' and 'bold' in (child.get('rend') or '')):
            text = _inline(child).strip()
            parts.append(f'**{text}**' if text else '')
        elif name in ('em', 'i') or name == 'hi':
            text = _inline(child).strip()
            parts.append(f'*{text}*' if text else '')
        elif name == 'code':
            parts.append(f'`{child.get_text()}`')
        elif name in ('img', 'graphic'):
            src = child.get('src')
            if src:
                parts.append(f"![{child.get('alt', '')}]({src})")
        else:
            parts.append(_inline(child))
    return ''.join(parts)


def table_to_markdown(headers: Iterable[str], rows: Iterable[Iterable[str]], caption: str = '') -> str:
    headers = [h.replace('|', '\\|') for h in headers]
    out = ''
    if caption:
        out += f'**{caption}**\n\n'
    if headers:
        out += '| ' + ' | '.join(headers) + ' |\n'
        out += '| ' + ' | '.join('---' for _ in headers) + ' |\n'
    for row in rows:
        out += '| ' + ' | '.join(cell.replace('|', '\\|') for cell in row) + ' |\n'
    return out


def _table_block(table: Tag) -> str:
    headers = [th.get_text(' ', strip=True) for th in table.find_all('th')]
    rows = []
    for tr in table.find_all(['tr', 'row']):
        cells = [td.get_text(' ', strip=True) for td in tr.find_all(['td', 'cell'])]
        if cells:
            rows.append(cells)
    return table_to_markdown(headers, rows).strip()


def _list_block(lst: Tag, depth: int) -> str:
    ordered = lst.name == 'ol' or (lst.name == 'list' and lst.get('rend') == 'ol')
    lines = []
    index = 0
    for item in lst.find_all(['li', 'item'], recursive=False):
        index += 1
        nested = [c for c in item.find_all(['ul', 'ol', 'list'], recursive=False)]
        for n in nested:
            n.extract()
        marker = f'{index}.' if ordered else '-'
        text = _SPACES_RE.sub(' ', _inline(item)).strip()
        lines.append(f"{'  ' * depth}{marker} {text}")
        for n in nested:
            lines.append(_list_block(n, depth + 1))
    return '\n'.join(line for line in lines if line.strip())


def _blocks(node, out: List[str]) -> None:
    """Append Markdown blocks for a container node."""
    buffer: List[str] = []

    def flush():
        text = ''.join(buffer).strip()
        if text:
            out.append(_SPACES_RE.sub(' ', text))
        buffer.clear()

    for child in node.children:
        if isinstance(child, Comment):
            continue
        if isinstance(child, NavigableString):
            buffer.append(str(child).replace('\n', ' '))
            continue
        if not isinstance(child, Tag) or child.name in _SKIP_TAGS:
            continue
        name = child.name
        if name in _HEADING_TAGS:
            flush()
            level = _HEADING_TAGS[name]
            text = child.get_text(' ', strip=True)
            if text:
                out.append('#' * level + ' ' + text)
        elif name in ('ul', 'ol', 'list'):
            flush()
            block = _list_block(child, 0)
            if block:
                out.append(block)
        elif name == 'table':
            flush()
            block = _table_block(child)
            if block:
                out.append(block)
        elif name == 'pre':
            flush()
            out.append('```\n' + child.get_text().strip('\n') + '\n```')
        elif name in ('blockquote', 'quote'):
            flush()
            inner: List[str] = []
            _blocks(child, inner)
            quoted = '\n>\n'.join('\n'.join('> ' + line for line in b.split('\n')) for b in inner)
            if quoted:
                out.append(quoted)
        elif name == 'hr':
            flush()
            out.append('---')
        elif name in ('p', 'dt', 'dd', 'figcaption'):
            flush()
            text = _inline(child).strip()
            if text:
                out.append(text)
        elif name in _BLOCK_TAGS or name in ('body', 'html', 'main'):
            flush()
            _blocks(child, out)
        else:
            buffer.append(_inline(child) if name != 'br' else '\n')
    flush()


def html_to_markdown(html: str) -> str:
    """Convert an HTML fragment to Markdown with ATX headings."""
    out: List[str] = []
    _blocks(_soup(html), out)
    return clean_markdown('\n\n'.join(out))


def clean_markdown(text: str) -> str:
    cleaned = clean_text(text)
    # Ensure headers have space after #
    return re.sub(r'^(#{1,6})([A-Za-z0-9])', r'\1 \2', cleaned, flags=re.MULTILINE)


def enhance_markdown(markdown: str) -> str:
    """Fix heading punctuation and make list items read as complete sentences."""
    enhanced = _HEADING_LINE_RE.sub(lambda m: f'{m.group(1)} {m.group(2).strip()}', markdown)

    def _finish_item(match):
        prefix, content = match.group(1), match.group(2).strip()
        if len(content) > 10 and not _SENTENCE_END_RE.search(content):
            return prefix + content + '.'
        return match.group(0)

    enhanced = _LIST_ITEM_RE.sub(_finish_item, enhanced)
    enhanced = re.sub(r'\n{3,}', '\n\n', enhanced)
    return enhanced.strip()


# ---------------------------------------------------------------- html

def enhance_html(html: str) -> str:
    """Drop empty or trivial paragraphs and terminate the rest with a period."""
    soup = _soup(html)
    for el in soup.find_all(list(_SKIP_TAGS)):
        el.decompose()
    for p in soup.find_all('p'):
        text = p.get_text().strip()
        if len(text) < 10:
            p.decompose()
        elif not _SENTENCE_END_RE.search(text):
            p.append('.')
    return str(soup).strip()


# ---------------------------------------------------------------- entry points

def render(html: str, form: OutputForm) -> str:
    """
    Produce the requested output form from an extracted HTML fragment.

    Args:
        html: Main-content HTML
        form: Requested output form

    Returns:
        Normalized content string
    """
    form = OutputForm.parse(form)
    if form is OutputForm.HTML:
        return enhance_html(html)
    if form is OutputForm.TEXT:
        return enhance_text(html_to_plain_text(html))
    return enhance_markdown(html_to_markdown(html))


def word_count(text: str) -> int:
    return len([w for w in text.split() if w])


def summarize(text: str, max_chars: int = 500) -> str:
    """
    First sentences of the text that fit inside the character budget.

    Args:
        text: Plain text content
        max_chars: Character budget for the summary

    Returns:
        Summary, suffixed with '...' when the text continues past it
    """
    text = ' '.join(text.split())
    if not text:
        return ''
    summary = ''
    for sentence in _SENTENCE_SPLIT_RE.split(text):
        candidate = f'{summary} {sentence}'.strip()
        if len(candidate) > max_chars:
            break
        summary = candidate
    if not summary:
        # First sentence alone is over budget: cut on a word boundary
        summary = text[:max_chars].rsplit(' ', 1)[0].strip()
    return summary + ('...' if len(summary) < len(text) else '')
