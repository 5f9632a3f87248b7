from __future__ import annotations

from scraper.page_parser import (
    assess_credibility,
    extract_headings,
    extract_links,
    extract_meta_tags,
    extract_structured_data,
    extract_title,
    parse_html,
)

URL = "https://example.com/dir/page"


def test_links_are_resolved_and_filtered() -> None:
    soup = parse_html(
        "<html><body><p>See <a href='other'>relative link</a>, "
        "<a href='/root#frag'>rooted</a>, <a href='#top'>top</a>, "
        "<a href='javascript:void(0)'>js</a>, <a href='mailto:a@b.c'>mail</a>, "
        "<a href='https://elsewhere.org/x'>external</a>, <a href='other'>again</a>.</p></body></html>"
    )

    links = extract_links(soup, URL)

    assert [l.target_url for l in links] == [
        "https://example.com/dir/other",
        "https://example.com/root",
        "https://elsewhere.org/x",
    ]
    assert links[0].anchor_text == "relative link"
    assert links[0].surrounding_context.startswith("See relative link")


def test_base_href_is_honoured() -> None:
    soup = parse_html(
        "<html><head><base href='https://cdn.example.com/docs/'></head>"
        "<body><a href='guide'>Guide</a></body></html>"
    )

    links = extract_links(soup, URL)

    assert links[0].target_url == "https://cdn.example.com/docs/guide"


def test_link_context_is_truncated() -> None:
    long_text = "word " * 100
    soup = parse_html(f"<div>{long_text}<a href='/x'>link text</a></div>")

    link = extract_links(soup, URL)[0]

    assert len(link.surrounding_context) == 303
    assert link.surrounding_context.endswith("...")


def test_title_and_headings() -> None:
    soup = parse_html(
        "<html><head><title>  Page   Title </title></head>"
        "<body><h1>Main</h1><h3>Detail</h3><h2></h2></body></html>"
    )
    assert extract_title(soup) == "Page Title"
    assert extract_headings(soup) == ("Main", "Detail")


def test_title_falls_back_to_og_then_h1() -> None:
    og = parse_html("<html><head><meta property='og:title' content='From OG'></head></html>")
    h1 = parse_html("<html><body><h1>From heading</h1></body></html>")
    assert extract_title(og) == "From OG"
    assert extract_title(h1) == "From heading"


def test_meta_tags_keep_important_families() -> None:
    soup = parse_html(
        "<head>"
        "<meta name='description' content='Desc'>"
        "<meta name='viewport' content='width=device-width'>"
        "<meta property='og:type' content='article'>"
        "<meta name='citation_author' content='Doe, J.'>"
        "</head>"
    )
    assert extract_meta_tags(soup) == {
        "description": "Desc",
        "og:type": "article",
        "citation_author": "Doe, J.",
    }


def test_structured_data() -> None:
    soup = parse_html(
        "<body><h2>Prices</h2>"
        "<table><caption>Fuel</caption><tr><th>Type</th><th>Cost</th></tr><tr><td>Solar</td><td>Low</td></tr></table>"
        "<nav><ul><li>Home</li></ul></nav>"
        "<ol><li>First</li><li>Second</li></ol>"
        "<dl><dt>Capacity</dt><dd>5 kW</dd></dl></body>"
    )

    data = extract_structured_data(soup, meta_tags={})

    table = data.tables[0]
    assert table.caption == "Fuel"
    assert table.context == "Prices"
    assert table.headers == ("Type", "Cost")
    assert table.rows == (("Solar", "Low"),)
    assert "| Solar | Low |" in table.markdown

    kinds = [l.kind for l in data.lists]
    assert kinds == ["ordered", "definition"]
    assert data.lists[0].markdown == "1. First\n2. Second"
    assert data.key_values[0].key == "Capacity"
    assert data.key_values[0].value == "5 kW"


def test_credibility_signals() -> None:
    soup = parse_html(
        "<html><head><meta name='author' content='Jane Doe'>"
        "<meta property='article:published_time' content='2024-01-01'></head>"
        "<body><p>Text</p><cite>Source</cite><a href='mailto:x@y.edu'>Contact</a></body></html>"
    )

    cred = assess_credibility(soup, "https://physics.mit.edu/paper")

    assert cred.score == 0.95
    assert "HTTPS secure connection" in cred.factors
    assert "Educational or government domain" in cred.factors


def test_credibility_baseline() -> None:
    soup = parse_html("<html><body><p>Plain page.</p></body></html>")
    cred = assess_credibility(soup, "http://example.com/")
    assert cred.score == 0.5
    assert cred.factors == ()
