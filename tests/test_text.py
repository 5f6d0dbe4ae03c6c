"""Tests for the shared plain-text helpers."""

from drafter.text import TRUNCATION_MARKER, clamp, fold, strip_tags


class TestStripTags:
    """Tests for regex tag removal."""

    def test_plain_text_returned_unchanged(self) -> None:
        text = "No markup here,\njust  text & entities."
        assert strip_tags(text) is text

    def test_block_tags_become_newlines(self) -> None:
        result = strip_tags("<p>First</p><p>Second<br>line</p>")
        assert [line for line in result.split("\n") if line] == ["First", "Second", "line"]

    def test_inline_tags_removed(self) -> None:
        assert strip_tags('Go <a href="x">here</a> <strong>now</strong>') == "Go here now"

    def test_style_and_script_content_dropped(self) -> None:
        html = "<style>p { color: red; }</style><p>Hello</p><script>alert(1)</script>"
        assert strip_tags(html).strip() == "Hello"

    def test_entities_left_as_is(self) -> None:
        assert strip_tags("<p>Fish &amp; chips</p>").strip() == "Fish &amp; chips"


class TestFold:
    """Tests for accent folding."""

    def test_removes_diacritics(self) -> None:
        assert fold("Integração") == "Integracao"
        assert fold("datáfono") == "datafono"
        assert fold("prépaiement") == "prepaiement"

    def test_ascii_unchanged(self) -> None:
        assert fold("card reader") == "card reader"


class TestClamp:
    """Tests for the character cap."""

    def test_short_text_unchanged(self) -> None:
        assert clamp("hello", 10) == "hello"

    def test_exact_length_unchanged(self) -> None:
        assert clamp("x" * 50, 50) == "x" * 50

    def test_long_text_truncated_with_marker(self) -> None:
        result = clamp("x" * 200, 100)
        assert len(result) == 100
        assert result.endswith(TRUNCATION_MARKER)

    def test_idempotent(self) -> None:
        once = clamp("y" * 500, 120)
        assert clamp(once, 120) == once

    def test_tiny_limit_hard_cuts(self) -> None:
        assert clamp("abcdefgh", 3) == "abc"
