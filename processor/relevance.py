"""
Deterministic relevance heuristics for links and pages.

Link relevance drives which links a traversal follows; page relevance is a
separate score used for display. The two are intentionally distinct functions.
"""
import re
from collections import Counter
from dataclasses import dataclass
from typing import Iterable, List, Optional, Sequence

from scraper.models import Document, Link
from utils.logger import setup_logger
from utils.url_tools import host_matches_any, host_of

logger = setup_logger(__name__)

BASE_SCORE_NO_KEYWORDS = 0.6
BASE_PAGE_SCORE_NO_KEYWORDS = 0.7
EXCLUDED_SCORE_FLOOR = 0.01

STOP_WORDS = {
    'the', 'a', 'an', 'and', 'or', 'but', 'in', 'on', 'at', 'to', 'for', 'of',
    'with', 'by', 'from', 'this', 'that', 'these', 'those', 'what', 'which',
    'when', 'where', 'who', 'why', 'how', 'into', 'about', 'your', 'their',
    'have', 'will', 'more', 'most', 'than', 'then', 'also', 'just', 'like',
    'home', 'page', 'welcome', 'official', 'site', 'website',
}
_WORD_RE = re.compile(r"[a-z0-9][a-z0-9'\-]*")


def _clamp(score: float) -> float:
    return max(0.0, min(1.0, score))


def normalize_keywords(keywords: Optional[Iterable[str]]) -> List[str]:
    """Lower-cased, stripped, de-duplicated keywords in their given order."""
    if not keywords:
        return []
    return list(dict.fromkeys(k.strip().lower() for k in keywords if k and k.strip()))


@dataclass(frozen=True)
class DomainRules:
    """
    Filtering rules applied after scoring.

    Attributes:
        threshold: Minimum score to qualify
        include_domains: When non-empty, the host must match one of these (subdomains allowed)
        exclude_domains: Hosts matching these are floored and never qualify
    """
    threshold: float = 0.1
    include_domains: tuple = ()
    exclude_domains: tuple = ()


def score_link(link: Link, keywords: Optional[Sequence[str]], source_url: str) -> float:
    """
    Score an outbound link for relevance to the keywords.

    Keyword matches are case-insensitive substring matches: +0.3 when the
    keyword occurs in the anchor text or context, +0.2 when it occurs in the
    target URL, +0.2 more when it occurs in the context. The per-keyword sum
    is averaged over the keywords. A same-host link gets +0.1, a very short
    anchor (< 5 chars) halves the score and a descriptive anchor (> 20 chars)
    adds 0.1.

    Args:
        link: Link to score
        keywords: Goal keywords (empty means no preference)
        source_url: URL of the page the link was found on

    Returns:
        Score in [0, 1]
    """
    terms = normalize_keywords(keywords)
    anchor = link.anchor_text.lower()
    context = link.surrounding_context.lower()
    target = link.target_url.lower()

    if not terms:
        score = BASE_SCORE_NO_KEYWORDS
    else:
        total = 0.0
        for term in terms:
            if term in anchor or term in context:
                total += 0.3
            if term in target:
                total += 0.2
            if term in context:
                total += 0.2
        score = _clamp(total / len(terms))

    source_host = host_of(source_url)
    if source_host and host_of(link.target_url) == source_host:
        score = _clamp(score + 0.1)

    anchor_length = len(link.anchor_text.strip())
    if anchor_length < 5:
        score *= 0.5
    elif anchor_length > 20:
        score += 0.1

    return _clamp(score)


def apply_domain_rules(score: float, link: Link, rules: DomainRules) -> float:
    """Floor the score of links on excluded domains; other scores pass through."""
    if rules.exclude_domains and host_matches_any(host_of(link.target_url), rules.exclude_domains):
        return EXCLUDED_SCORE_FLOOR
    return score


def qualifies(score: float, link: Link, rules: DomainRules) -> bool:
    """
    Decide whether a scored link may be followed.

    A link qualifies when its score reaches the threshold, its host matches an
    include domain (if any are configured) and it matches no exclude domain.
    """
    host = host_of(link.target_url)
    if score < rules.threshold:
        return False
    if rules.include_domains and not host_matches_any(host, rules.include_domains):
        return False
    if rules.exclude_domains and host_matches_any(host, rules.exclude_domains):
        return False
    return True


def mentions_keywords(link: Link, keywords: Optional[Sequence[str]]) -> bool:
    """True when any keyword occurs in the anchor text or surrounding context."""
    terms = normalize_keywords(keywords)
    if not terms:
        return True
    haystack = f"{link.anchor_text} {link.surrounding_context}".lower()
    return any(term in haystack for term in terms)


def score_page(document: Document, keywords: Optional[Sequence[str]]) -> float:
    """
    Relevance of an extracted page for display.

    Each keyword contributes min(0.1 * whole-word matches, 0.3), plus 0.2 when
    it appears in the title and 0.1 when it appears in the description. The
    sum is averaged over keywords and capped at 1.0.

    Args:
        document: Extracted page
        keywords: Goal keywords

    Returns:
        Score in [0, 1]; 0.7 when no keywords are given
    """
    terms = normalize_keywords(keywords)
    if not terms:
        return BASE_PAGE_SCORE_NO_KEYWORDS

    title = document.title.lower()
    description = document.description.lower()
    haystack = f"{title} {description} {document.content().lower()}"

    total = 0.0
    for term in terms:
        matches = len(re.findall(rf"\b{re.escape(term)}\b", haystack))
        total += min(matches * 0.1, 0.3)
        if term in title:
            total += 0.2
        if term in description:
            total += 0.1

    return min(total / len(terms), 1.0)


def _words(text: str) -> List[str]:
    return _WORD_RE.findall(text.lower())


def extract_keywords(title: str, description: str = '') -> List[str]:
    """
    Keywords describing a page, for session history entries.

    Args:
        title: Page title (words longer than 3 characters are kept)
        description: Page description (first 5 words longer than 4 characters are kept)

    Returns:
        Up to 10 unique keywords
    """
    keywords = [w for w in _words(title) if len(w) > 3]
    keywords += [w for w in _words(description) if len(w) > 4][:5]
    return list(dict.fromkeys(keywords))[:10]


def related_topics(titles: Iterable[str], limit: int = 10) -> List[str]:
    """
    Frequent significant words across page titles.

    Args:
        titles: Titles of visited pages
        limit: Maximum number of topics

    Returns:
        Topics ordered by frequency, ties broken by first appearance
    """
    counts: Counter = Counter()
    first_seen = {}
    for title in titles:
        for word in _words(title or ''):
            word = word.strip("'-")
            if len(word) <= 3 or word in STOP_WORDS:
                continue
            counts[word] += 1
            first_seen.setdefault(word, len(first_seen))
    ranked = sorted(counts, key=lambda w: (-counts[w], first_seen[w]))
    return ranked[:limit]


class RelevanceScorer:
    """
    Scoring strategy used by the navigator.

    Wraps the pure functions above so a traversal can be given a different
    strategy without touching the traversal code.
    """

    def score_link(self, link: Link, keywords: Optional[Sequence[str]], source_url: str) -> float:
        return score_link(link, keywords, source_url)

    def score_page(self, document: Document, keywords: Optional[Sequence[str]]) -> float:
        return score_page(document, keywords)

    def rank_links(
        self,
        links: Iterable[Link],
        keywords: Optional[Sequence[str]],
        source_url: str,
        rules: DomainRules,
    ) -> List[Link]:
        """
        Score, filter and sort links.

        Args:
            links: Candidate links of one page
            keywords: Goal keywords; when given, a link must mention one in
                its anchor text or context
            source_url: URL of the page the links come from
            rules: Threshold and domain rules

        Returns:
            Qualifying links with scores set, best first (stable for ties)
        """
        ranked = []
        for link in links:
            score = apply_domain_rules(self.score_link(link, keywords, source_url), link, rules)
            logger.debug(f"Link score {score:.2f}: {link.target_url}")
            if not qualifies(score, link, rules):
                continue
            if not mentions_keywords(link, keywords):
                continue
            ranked.append(link.with_score(score))
        ranked.sort(key=lambda l: l.relevance_score, reverse=True)
        return ranked
