"""Tests for Pygments-backed highlighting of source and result lines."""

from __future__ import annotations

import unittest
from unittest import mock

from mqtui.ansi import strip_ansi
from mqtui.highlight import (
    DEFAULT_STYLE,
    LineStyler,
    colorize_lines,
    highlight_result,
    highlight_source,
    normalize_style,
    sanitize_terminal_text,
)
from pygments.lexers import MarkdownLexer


class SanitizeTests(unittest.TestCase):
    def test_control_bytes_are_escaped(self) -> None:
        self.assertEqual(sanitize_terminal_text("a\x07b\x1b[2J"), "a\\x07b\\x1b[2J")

    def test_tabs_are_kept(self) -> None:
        self.assertEqual(sanitize_terminal_text("a\tb"), "a\tb")


class HighlightTests(unittest.TestCase):
    def test_unknown_style_falls_back_to_default(self) -> None:
        self.assertEqual(normalize_style("no-such-style-xyz"), DEFAULT_STYLE)
        self.assertEqual(normalize_style(None), DEFAULT_STYLE)

    def test_source_keeps_line_count_including_blank_edges(self) -> None:
        lines = ("", "# Title", "", "text", "")
        styled = highlight_source(lines, "doc.md")
        self.assertEqual(len(styled), len(lines))
        self.assertEqual([strip_ansi(line) for line in styled], list(lines))

    def test_no_color_returns_plain_lines(self) -> None:
        self.assertEqual(highlight_source(("# A",), "doc.md", no_color=True), ["# A"])
        self.assertEqual(highlight_result(['{"a": 1}'], "json", no_color=True), ['{"a": 1}'])

    def test_json_result_is_colored(self) -> None:
        styled = highlight_result(["{", '  "a": 1', "}"], "json")
        self.assertEqual(len(styled), 3)
        self.assertIn("\033[", styled[1])
        self.assertEqual(strip_ansi(styled[1]), '  "a": 1')

    def test_lexer_failure_falls_back_to_plain_lines(self) -> None:
        with mock.patch("mqtui.highlight.pygments_highlight", side_effect=RuntimeError("boom")):
            with self.assertLogs("mqtui.highlight", level="ERROR"):
                self.assertEqual(colorize_lines(["a", "b"], MarkdownLexer()), ["a", "b"])


class LineStylerTests(unittest.TestCase):
    def test_source_is_highlighted_once_per_document(self) -> None:
        styler = LineStyler()
        lines = ("# A", "b")
        with mock.patch("mqtui.highlight.highlight_source", return_value=["x", "y"]) as highlight_mock:
            styler.source(lines, "a.md")
            styler.source(lines, "a.md")
        highlight_mock.assert_called_once()

    def test_result_cache_tracks_text_and_mode(self) -> None:
        styler = LineStyler(no_color=True)
        with mock.patch("mqtui.highlight.highlight_result", side_effect=lambda lines, *_: list(lines)) as highlight_mock:
            styler.result(["a"], "markdown")
            styler.result(["a"], "markdown")
            styler.result(["a"], "json")
            styler.result(["b"], "json")
        self.assertEqual(highlight_mock.call_count, 3)


if __name__ == "__main__":
    unittest.main()
