from __future__ import annotations

from conftest import FakeClock

from scraper.content_cache import ContentCache
from scraper.models import Document, Link, OutputForm


def make_document(url: str, text: str = "Some content.") -> Document:
    return Document(
        url=url,
        title=f"Title of {url}",
        description="",
        raw_word_count=len(text.split()),
        char_count=len(text),
        content_by_form={OutputForm.MARKDOWN: text},
        headings=("Heading",),
        links=(Link(target_url="https://example.com/next", anchor_text="Next page"),),
        summary=text,
    )


def test_get_returns_stored_copy(cache: ContentCache) -> None:
    doc = make_document("https://example.com/a")
    cache.put(doc.url, OutputForm.MARKDOWN, doc)

    got = cache.get(doc.url, OutputForm.MARKDOWN)
    assert got == doc
    assert got is not doc
    assert cache.stats()["hits"] == 1


def test_forms_are_cached_separately(cache: ContentCache) -> None:
    doc = make_document("https://example.com/a")
    cache.put(doc.url, "markdown", doc)

    assert cache.get(doc.url, "text") is None
    assert cache.get(doc.url, "markdown") is not None


def test_entry_expires_after_ttl(cache: ContentCache, clock: FakeClock) -> None:
    doc = make_document("https://example.com/a")
    cache.put(doc.url, OutputForm.MARKDOWN, doc)

    clock.advance(1799)
    assert cache.get(doc.url, OutputForm.MARKDOWN) is not None
    clock.advance(1)
    assert cache.get(doc.url, OutputForm.MARKDOWN) is None
    # Stale entries stay stored until evicted or purged
    assert cache.size() == 1
    assert cache.purge_expired() == 1
    assert cache.size() == 0


def test_put_beyond_capacity_evicts_single_oldest(tmp_path, clock: FakeClock) -> None:
    cache = ContentCache(ttl_seconds=1800, max_entries=2, cache_dir=str(tmp_path / "c"), clock=clock)
    try:
        for name in ("a", "b", "c"):
            cache.put(f"https://example.com/{name}", OutputForm.MARKDOWN, make_document(f"https://example.com/{name}"))
            clock.advance(1)

        assert cache.size() == 2
        assert cache.stats()["evictions"] == 1
        assert cache.get("https://example.com/a", OutputForm.MARKDOWN) is None
        assert cache.get("https://example.com/b", OutputForm.MARKDOWN) is not None
        assert cache.get("https://example.com/c", OutputForm.MARKDOWN) is not None
    finally:
        cache.close()


def test_eviction_ignores_reads_but_honours_reinsertion(tmp_path, clock: FakeClock) -> None:
    cache = ContentCache(ttl_seconds=1800, max_entries=2, cache_dir=str(tmp_path / "c"), clock=clock)
    try:
        a, b, c = (make_document(f"https://example.com/{n}") for n in "abc")
        cache.put(a.url, OutputForm.MARKDOWN, a)
        clock.advance(1)
        cache.put(b.url, OutputForm.MARKDOWN, b)
        clock.advance(1)
        # Reading a does not protect it; re-putting it does
        cache.get(a.url, OutputForm.MARKDOWN)
        cache.put(a.url, OutputForm.MARKDOWN, a)
        clock.advance(1)
        cache.put(c.url, OutputForm.MARKDOWN, c)

        assert cache.get(b.url, OutputForm.MARKDOWN) is None
        assert cache.get(a.url, OutputForm.MARKDOWN) is not None
    finally:
        cache.close()


def test_entries_survive_reopening_the_directory(tmp_path, clock: FakeClock) -> None:
    directory = str(tmp_path / "persist")
    first = ContentCache(cache_dir=directory, clock=clock)
    first.put("https://example.com/a", OutputForm.TEXT, make_document("https://example.com/a"))
    first.close()

    second = ContentCache(cache_dir=directory, clock=clock)
    try:
        assert second.size() == 1
        assert second.get("https://example.com/a", OutputForm.TEXT) is not None
    finally:
        second.close()


def test_clear_removes_everything(cache: ContentCache) -> None:
    cache.put("https://example.com/a", OutputForm.MARKDOWN, make_document("https://example.com/a"))
    cache.clear()
    assert cache.size() == 0
    assert cache.get("https://example.com/a", OutputForm.MARKDOWN) is None
