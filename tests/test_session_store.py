from __future__ import annotations

import time

import pytest
from conftest import FakeClock, FakeHTTPClient, make_page

from browsing.session_store import SessionStore
from scraper.models import Document, OutputForm
from utils.errors import InvalidInputError, SessionNotFoundError


def make_document(url: str, title: str) -> Document:
    return Document(
        url=url, title=title, description="A description with several longer words",
        raw_word_count=3, char_count=10, content_by_form={OutputForm.TEXT: "Some text."},
        headings=(), links=(), summary="Some text.",
    )


def test_create_and_get_refreshes_activity(sessions: SessionStore, clock: FakeClock) -> None:
    session = sessions.create("solar power")
    created = session.last_activity_time

    clock.advance(60)
    fetched = sessions.get(session.id)

    assert fetched is session
    assert fetched.topic == "solar power"
    assert fetched.last_activity_time == created + 60
    assert sessions.get("unknown") is None
    assert sessions.get(None) is None


def test_idle_session_is_swept(sessions: SessionStore, clock: FakeClock) -> None:
    idle = sessions.create("idle")
    clock.advance(20 * 60)
    active = sessions.create("active")
    clock.advance(15 * 60)

    removed = sessions.sweep_expired()

    assert removed == 1
    assert sessions.get(idle.id) is None
    assert sessions.get(active.id) is not None


def test_record_visit_with_document(sessions: SessionStore) -> None:
    session = sessions.create("solar")
    doc = make_document("https://example.com/a", "Solar Panels Explained")

    entry = sessions.record_visit(session.id, doc.url, document=doc)

    assert entry.title == "Solar Panels Explained"
    assert "solar" in entry.keywords
    assert session.history == [entry]
    assert session.current_url == doc.url
    assert "1 pages" in session.summary


def test_record_visit_fetches_when_no_document(
    sessions: SessionStore, fake_http: FakeHTTPClient
) -> None:
    fake_http.add("https://example.com/a", make_page("Fetched Page"))
    session = sessions.create()

    entry = sessions.record_visit(session.id, "https://example.com/a", parent_url="https://example.com/")

    assert entry.title == "Fetched Page"
    assert entry.parent_url == "https://example.com/"
    assert fake_http.calls == ["https://example.com/a"]


def test_record_visit_without_fetcher_needs_document(clock: FakeClock) -> None:
    store = SessionStore(clock=clock)
    session = store.create()
    with pytest.raises(InvalidInputError):
        store.record_visit(session.id, "https://example.com/a")


def test_unknown_session_operations_raise(sessions: SessionStore) -> None:
    doc = make_document("https://example.com/a", "T")
    with pytest.raises(SessionNotFoundError):
        sessions.record_visit("missing", doc.url, document=doc)
    with pytest.raises(SessionNotFoundError):
        sessions.add_bookmark("missing", doc.url)
    with pytest.raises(KeyError):
        sessions.summary("missing")


def test_get_or_create(clock: FakeClock) -> None:
    store = SessionStore(clock=clock)
    created = store.get_or_create("missing", topic="wind")
    assert created.topic == "wind"
    assert store.get_or_create(created.id) is created

    strict = SessionStore(clock=clock, auto_create=False)
    with pytest.raises(SessionNotFoundError):
        strict.get_or_create("missing")


def test_bookmarks_have_set_semantics(sessions: SessionStore) -> None:
    session = sessions.create()
    assert sessions.add_bookmark(session.id, "https://example.com/a") is True
    assert sessions.add_bookmark(session.id, "https://example.com/a") is False
    assert sessions.summary(session.id)["bookmarks"] == ["https://example.com/a"]


def test_research_questions_are_stored(sessions: SessionStore) -> None:
    session = sessions.create("tidal energy")
    questions = sessions.generate_research_questions(session.id)
    assert len(questions) == 3
    assert all("tidal energy" in q for q in questions)
    assert session.research_questions == questions


def test_navigation_paths_follow_parent_links(sessions: SessionStore) -> None:
    session = sessions.create()
    a, b, c = "https://example.com/a", "https://example.com/b", "https://example.com/c"
    sessions.record_visit(session.id, a, document=make_document(a, "A"))
    sessions.record_visit(session.id, b, parent_url=a, document=make_document(b, "B"))
    sessions.record_visit(session.id, c, parent_url=b, document=make_document(c, "C"))

    [path] = sessions.navigation_paths(session.id, a, c)
    assert path.intermediate_urls == (b,)
    assert path.relevance == 1.0

    [direct] = sessions.navigation_paths(session.id, c, a)
    assert direct.intermediate_urls == ()
    assert direct.relevance == 0.5


def test_background_sweeper(sessions: SessionStore, clock: FakeClock) -> None:
    sessions.create()
    clock.advance(31 * 60)

    sessions.start_sweeper(interval_seconds=0.01)
    try:
        deadline = time.monotonic() + 2
        while sessions.count() and time.monotonic() < deadline:
            time.sleep(0.01)
    finally:
        sessions.stop_sweeper()

    assert sessions.count() == 0
