"""
Data model shared by the fetcher, the relevance scorer and the navigator.
"""
from __future__ import annotations

from dataclasses import asdict, dataclass, field, replace
from enum import Enum
from typing import Optional

from utils.errors import InvalidInputError


class OutputForm(str, Enum):
    """Normalized content representations a caller can request."""
    TEXT = "text"
    MARKDOWN = "markdown"
    HTML = "html"

    @classmethod
    def parse(cls, value: 'OutputForm | str | None') -> 'OutputForm':
        if value is None:
            return cls.MARKDOWN
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError as e:
            allowed = ", ".join(f.value for f in cls)
            raise InvalidInputError(f"Unknown output form {value!r} (expected one of: {allowed})") from e


@dataclass(frozen=True)
class Link:
    """
    Outbound link discovered on a page.

    Attributes:
        target_url: Absolute URL (resolved against the source document base)
        anchor_text: Visible link text
        surrounding_context: Text of the nearest enclosing block, bounded in length
        relevance_score: Set only by scoring, None beforehand
        visited: Owned by the navigator during a traversal
    """
    target_url: str
    anchor_text: str = ""
    surrounding_context: str = ""
    relevance_score: Optional[float] = None
    visited: bool = False

    def with_score(self, score: float) -> 'Link':
        return replace(self, relevance_score=score)

    def mark_visited(self) -> 'Link':
        return replace(self, visited=True)


@dataclass(frozen=True)
class TableData:
    caption: str
    context: str
    headers: tuple[str, ...]
    rows: tuple[tuple[str, ...], ...]
    markdown: str


@dataclass(frozen=True)
class ListData:
    kind: str  # ordered, unordered or definition
    items: tuple[str, ...]
    markdown: str


@dataclass(frozen=True)
class KeyValuePair:
    key: str
    value: str


@dataclass(frozen=True)
class StructuredData:
    tables: tuple[TableData, ...] = ()
    lists: tuple[ListData, ...] = ()
    key_values: tuple[KeyValuePair, ...] = ()


@dataclass(frozen=True)
class SourceCredibility:
    score: float = 0.5
    factors: tuple[str, ...] = ()


@dataclass(frozen=True)
class Document:
    """Result of extracting one URL. Immutable once produced."""
    url: str
    title: str
    description: str
    raw_word_count: int
    char_count: int
    content_by_form: dict[OutputForm, str]
    headings: tuple[str, ...]
    links: tuple[Link, ...]
    summary: str
    meta_tags: dict[str, str] = field(default_factory=dict)
    structured: StructuredData = field(default_factory=StructuredData)
    credibility: SourceCredibility = field(default_factory=SourceCredibility)
    extractor: str = "trafilatura"
    fetched_at: float = 0.0

    def content(self, form: 'OutputForm | str | None' = None) -> str:
        """Text for the requested output form (the only form stored, by default)."""
        if form is None:
            return next(iter(self.content_by_form.values()), "")
        return self.content_by_form.get(OutputForm.parse(form), "")

    def to_dict(self) -> dict:
        data = asdict(self)
        data['content_by_form'] = {f.value: text for f, text in self.content_by_form.items()}
        return data


@dataclass(frozen=True)
class PageVisit:
    url: str
    title: str
    relevance: float
    summary: str
    depth: int = 0
    parent_url: Optional[str] = None


@dataclass(frozen=True)
class SkippedLink:
    url: str
    reason: str
    depth: int


@dataclass
class NavigationResult:
    """Outcome of one traversal."""
    start_url: str
    session_id: str
    pages_visited: list[PageVisit] = field(default_factory=list)
    navigation_path: list[str] = field(default_factory=list)
    related_topics: list[str] = field(default_factory=list)
    skipped: list[SkippedLink] = field(default_factory=list)
    followed_links: list[Link] = field(default_factory=list)  # marked visited, in visit order
    truncated: bool = False

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization."""
        return asdict(self)
