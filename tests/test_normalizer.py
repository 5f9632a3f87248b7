from __future__ import annotations

from scraper.models import OutputForm
from scraper.normalizer import (
    enhance_html,
    enhance_markdown,
    html_to_markdown,
    html_to_plain_text,
    render,
    summarize,
)


def test_plain_text_keeps_block_boundaries() -> None:
    html = "<div><p>First   block of text.</p><p>Second <b>block</b><br>continues.</p></div>"
    assert html_to_plain_text(html) == "First block of text.\n\nSecond block\ncontinues."


def test_text_form_drops_short_paragraphs_and_adds_punctuation() -> None:
    html = "<p>Short one</p><p>This paragraph is definitely long enough</p><script>x()</script>"
    assert render(html, OutputForm.TEXT) == "This paragraph is definitely long enough."


def test_markdown_conversion() -> None:
    html = (
        "<h2>Sub heading</h2>"
        "<p>Hello <a href='https://x.org'>there</a> <em>friend</em>.</p>"
        "<ul><li>first item is long</li><li>short</li></ul>"
    )
    markdown = render(html, "markdown")
    assert markdown == (
        "## Sub heading\n\n"
        "Hello [there](https://x.org) *friend*.\n\n"
        "- first item is long.\n"
        "- short"
    )


def test_markdown_ordered_list_and_table() -> None:
    html = (
        "<ol><li>One</li><li>Two</li></ol>"
        "<table><tr><th>Name</th><th>Value</th></tr><tr><td>a</td><td>1</td></tr></table>"
    )
    markdown = html_to_markdown(html)
    assert "1. One\n2. Two" in markdown
    assert "| Name | Value |\n| --- | --- |\n| a | 1 |" in markdown


def test_enhance_markdown_fixes_headings_and_blank_lines() -> None:
    raw = "#Title ##\n\n\n\nSome text\n* a longer list entry"
    assert enhance_markdown(raw) == "# Title\n\nSome text\n* a longer list entry."


def test_enhance_html() -> None:
    html = "<div><p>tiny</p><p>A longer paragraph here</p><p>Already finished!</p></div>"
    assert enhance_html(html) == "<div><p>A longer paragraph here.</p><p>Already finished!</p></div>"


def test_summary_respects_budget() -> None:
    sentence = "A" * 199 + "."
    text = " ".join([sentence] * 3)

    summary = summarize(text, 500)

    assert summary == f"{sentence} {sentence}..."


def test_summary_of_short_text_has_no_ellipsis() -> None:
    assert summarize("One sentence. Two sentences.") == "One sentence. Two sentences."


def test_summary_of_single_long_sentence_is_cut_on_a_word() -> None:
    text = "word " * 200
    summary = summarize(text, 50)
    assert summary.endswith("...")
    assert len(summary) <= 53
    assert "wor..." not in summary
