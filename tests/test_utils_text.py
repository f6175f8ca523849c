"""Tests for text utility functions."""

from __future__ import annotations

from primeshards.utils.text import collapse_whitespace, display_title, make_snippet, strip_html


class TestStripHtml:
    """Test strip_html function."""

    def test_tags_become_spaces(self) -> None:
        assert strip_html("<p>Hello</p><i>world</i>") == " Hello  world "

    def test_decodes_common_entities(self) -> None:
        result = strip_html("&quot;a&quot; &#x27;b&#x27; &lt;c&gt; d &amp; e")
        assert result == "\"a\" 'b' <c> d & e"

    def test_double_escaped_ampersand_decodes_once(self) -> None:
        assert strip_html("&amp;lt;") == "&lt;"


class TestMakeSnippet:
    """Test make_snippet function."""

    def test_short_text(self) -> None:
        assert make_snippet("<p>Short   text</p>") == "Short text"

    def test_truncates_with_ellipsis(self) -> None:
        text = "word " * 40
        snippet = make_snippet(text)
        assert snippet.endswith("...")
        assert len(snippet) == 85 + 3

    def test_custom_length(self) -> None:
        assert make_snippet("abcdefghij", max_chars=4) == "abcd..."

    def test_exact_length_not_truncated(self) -> None:
        assert make_snippet("a" * 85) == "a" * 85

    def test_empty_input(self) -> None:
        assert make_snippet(None) == "[Untitled]"
        assert make_snippet("") == "[Untitled]"

    def test_only_markup(self) -> None:
        assert make_snippet("<p> </p><br>") == "[Untitled]"


class TestDisplayTitle:
    """Test display_title fallbacks."""

    def test_title_wins(self) -> None:
        assert display_title("Title", "<p>body</p>") == "Title"

    def test_body_snippet(self) -> None:
        assert display_title(None, "<p>Body &amp; soul</p>") == "Body & soul"

    def test_placeholder(self) -> None:
        assert display_title("", None) == "[Untitled]"


def test_collapse_whitespace() -> None:
    assert collapse_whitespace("  a \n\t b  ") == "a b"
