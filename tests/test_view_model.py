"""Tests for the pure screen-content derivation.

Checks pane clipping, scroll clamping on small terminals, horizontal query
scrolling, error markers and status text.
"""

from __future__ import annotations

from dataclasses import replace
import unittest

from mqtui.document import Document
from mqtui.editor import QueryBuffer
from mqtui.errors import QueryError
from mqtui.evaluation import Empty, Failure, Pending, Success
from mqtui.view_model import (
    BODY_TOP,
    QUERY_PROMPT,
    Pane,
    TerminalSize,
    ViewState,
    clamp_scroll,
    keep_cursor_visible,
    nudge_source_percent,
    render_model,
    split_widths,
)
from mqtui.values import RSequence, RString


def _document(line_count: int = 50) -> Document:
    return Document("\n".join(f"line {idx}" for idx in range(line_count)), "doc.md")


class LayoutHelperTests(unittest.TestCase):
    def test_clamp_scroll(self) -> None:
        self.assertEqual(clamp_scroll(100, 50, 10), 40)
        self.assertEqual(clamp_scroll(-3, 50, 10), 0)
        self.assertEqual(clamp_scroll(5, 3, 10), 0)

    def test_split_widths_leaves_one_divider_column(self) -> None:
        self.assertEqual(split_widths(81, 50), (40, 40))
        self.assertEqual(split_widths(2, 50), (0, 2))
        source, result = split_widths(10, 99)
        self.assertEqual((source, result), (8, 1))

    def test_nudge_source_percent_is_bounded(self) -> None:
        self.assertAlmostEqual(nudge_source_percent(50.0, 100, 2), 52.0)
        self.assertEqual(nudge_source_percent(94.0, 100, 10), 95.0)
        self.assertEqual(nudge_source_percent(50.0, 0, 10), 50.0)

    def test_keep_cursor_visible_returns_zero_when_text_fits(self) -> None:
        self.assertEqual(keep_cursor_visible("abc", 3, 2, 10), 0)

    def test_keep_cursor_visible_scrolls_right_for_cursor_at_end(self) -> None:
        text = "x" * 30
        scroll = keep_cursor_visible(text, 30, 0, 10)
        self.assertEqual(scroll, 21)

    def test_keep_cursor_visible_scrolls_left_when_cursor_moves_back(self) -> None:
        text = "x" * 30
        self.assertEqual(keep_cursor_visible(text, 5, 21, 10), 5)


class RenderModelTests(unittest.TestCase):
    def test_panes_share_width_and_clip_lines(self) -> None:
        document = Document("a" * 200, "wide.md")
        model = render_model(
            document,
            QueryBuffer(".", 1),
            Success(RSequence((RString("b" * 200),))),
            ViewState(),
            TerminalSize(41, 10),
        )

        self.assertEqual(model.source.width + model.result.width + 1, 41)
        self.assertEqual(model.source.lines[0], "a" * model.source.width)
        self.assertEqual(model.result.lines[0], "b" * model.result.width)
        self.assertEqual(model.source.rows, 7)
        self.assertEqual(model.result.col, model.source.width + 1)

    def test_small_terminal_clamps_scroll_offsets(self) -> None:
        model = render_model(
            _document(50),
            QueryBuffer("", 0),
            Empty(),
            ViewState(source_scroll=1000, result_scroll=9),
            TerminalSize(20, 5),
        )

        self.assertEqual(model.source.rows, 2)
        self.assertEqual(model.source.scroll, 48)
        self.assertEqual(model.source.lines, ("line 48", "line 49"))
        self.assertEqual(model.result.scroll, 0)
        self.assertEqual(model.view_state.source_scroll, 48)
        self.assertEqual(model.result.lines, ())

    def test_tiny_terminal_has_no_body(self) -> None:
        model = render_model(_document(3), QueryBuffer("", 0), Empty(), ViewState(), TerminalSize(1, 1))
        self.assertEqual(model.source.rows, 0)
        self.assertEqual(model.source.lines, ())
        self.assertEqual(model.query.prompt, "")

    def test_cursor_follows_query_focus(self) -> None:
        state = ViewState()
        model = render_model(_document(), QueryBuffer(".h1", 1), Empty(), state, TerminalSize(40, 10))
        self.assertEqual(model.cursor, (0, len(QUERY_PROMPT) + 1))

        model = render_model(
            _document(), QueryBuffer(".h1", 1), Empty(), replace(state, focused_pane=Pane.SOURCE), TerminalSize(40, 10)
        )
        self.assertIsNone(model.cursor)

    def test_long_query_scrolls_to_keep_cursor_visible(self) -> None:
        text = ".h1 | " + "x" * 60
        model = render_model(_document(), QueryBuffer(text, len(text)), Empty(), ViewState(), TerminalSize(24, 10))

        width = 24 - len(QUERY_PROMPT)
        self.assertEqual(model.query.width, width)
        self.assertGreater(model.query.scroll, 0)
        self.assertLessEqual(model.cursor[1], 23)
        self.assertEqual(model.view_state.query_scroll, model.query.scroll)

    def test_failure_marks_error_position_and_status(self) -> None:
        failure = Failure(QueryError("unexpected end of query, expected object key", 1))
        model = render_model(_document(), QueryBuffer("{", 1), failure, ViewState(), TerminalSize(60, 10))

        self.assertEqual(model.query.error_index, 1)
        self.assertTrue(model.status_is_error)
        self.assertIn("error: unexpected end of query", model.status_left)
        self.assertTrue(model.result.lines[0].startswith("error: "))

    def test_success_status_counts_results(self) -> None:
        success = Success(RSequence((RString("a"), RString("b"))), elapsed=0.012)
        model = render_model(_document(), QueryBuffer(".", 1), success, ViewState(), TerminalSize(80, 10))

        self.assertIn("doc.md", model.status_left)
        self.assertIn("2 results", model.status_left)
        self.assertIn("12 ms", model.status_left)
        self.assertFalse(model.status_is_error)
        self.assertEqual(model.result.lines, ("a", "", "b"))

    def test_empty_success_and_pending_placeholders(self) -> None:
        model = render_model(_document(), QueryBuffer(".", 1), Success(RSequence(())), ViewState(), TerminalSize(80, 10))
        self.assertEqual(model.result.lines, ("(no output)",))

        model = render_model(_document(), QueryBuffer(".", 1), Pending(), ViewState(), TerminalSize(80, 10))
        self.assertEqual(model.result.lines, ("evaluating…",))
        self.assertIn("evaluating…", model.status_left)

    def test_busy_keeps_previous_result_visible(self) -> None:
        success = Success(RSequence((RString("old"),)))
        model = render_model(_document(), QueryBuffer(".", 1), success, ViewState(), TerminalSize(80, 10), busy=True)
        self.assertEqual(model.result.lines, ("old",))
        self.assertIn("evaluating…", model.status_left)

    def test_help_rows_take_space_from_panes(self) -> None:
        help_lines = ("help 1", "help 2", "help 3")
        model = render_model(
            _document(),
            QueryBuffer("", 0),
            Empty(),
            ViewState(show_help=True),
            TerminalSize(80, 10),
            help_lines=help_lines,
        )
        self.assertEqual(model.help_lines, help_lines)
        self.assertEqual(model.source.rows, 4)
        self.assertEqual(model.help_row, BODY_TOP + 4)

    def test_pane_at_maps_cells_to_panes(self) -> None:
        model = render_model(_document(), QueryBuffer("", 0), Empty(), ViewState(), TerminalSize(41, 10))
        self.assertIs(model.pane_at(5, 0), Pane.QUERY)
        self.assertIs(model.pane_at(0, BODY_TOP), Pane.SOURCE)
        self.assertIs(model.pane_at(40, BODY_TOP + 1), Pane.RESULT)
        self.assertIsNone(model.pane_at(model.source.width, BODY_TOP))
        self.assertIsNone(model.pane_at(0, model.status_row))

    def test_status_right_names_focused_pane(self) -> None:
        model = render_model(
            _document(), QueryBuffer("", 0), Empty(), ViewState(focused_pane=Pane.RESULT), TerminalSize(80, 10)
        )
        self.assertTrue(model.status_right.startswith("result"))

    def test_status_message_is_shown(self) -> None:
        model = render_model(
            _document(), QueryBuffer("", 0), Empty(), ViewState(status_message="result mode: json"), TerminalSize(80, 10)
        )
        self.assertIn("result mode: json", model.status_left)


if __name__ == "__main__":
    unittest.main()
