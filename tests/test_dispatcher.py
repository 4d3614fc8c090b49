"""Tests for key dispatch to editor and view state.

Exercises focus cycling, quitting, query editing keys, pane scrolling,
mouse handling and the persisted toggles.
"""

from __future__ import annotations

import unittest

from mqtui.document import Document
from mqtui.editor import EditorState, QueryBuffer
from mqtui.evaluation import Empty
from mqtui.input import DispatcherCallbacks, InputDispatcher
from mqtui.view_model import BODY_TOP, Pane, TerminalSize, ViewState, render_model


def _dispatcher(text: str = "", **state) -> InputDispatcher:
    return InputDispatcher(EditorState.with_text(text), ViewState(**state), size=TerminalSize(40, 12))


def _attach_model(dispatcher: InputDispatcher, line_count: int = 100) -> None:
    document = Document("\n".join(f"row {idx}" for idx in range(line_count)), "doc.md")
    model = render_model(
        document,
        dispatcher.editor.buffer,
        Empty(),
        dispatcher.view_state,
        dispatcher.size,
    )
    dispatcher.model = model


class FocusAndQuitTests(unittest.TestCase):
    def test_tab_cycles_query_result_source(self) -> None:
        dispatcher = _dispatcher()
        seen = []
        for _ in range(3):
            dispatcher.dispatch("TAB")
            seen.append(dispatcher.view_state.focused_pane)
        self.assertEqual(seen, [Pane.RESULT, Pane.SOURCE, Pane.QUERY])

        dispatcher.dispatch("SHIFT_TAB")
        self.assertIs(dispatcher.view_state.focused_pane, Pane.SOURCE)

    def test_ctrl_c_quits_from_any_pane(self) -> None:
        for pane in Pane:
            dispatcher = _dispatcher(focused_pane=pane)
            dispatcher.dispatch("CTRL_C")
            self.assertTrue(dispatcher.quit_requested)

    def test_q_types_in_query_but_quits_in_panes(self) -> None:
        dispatcher = _dispatcher()
        dispatcher.dispatch("q")
        self.assertFalse(dispatcher.quit_requested)
        self.assertEqual(dispatcher.editor.current_text(), "q")

        dispatcher = _dispatcher(focused_pane=Pane.RESULT)
        dispatcher.dispatch("q")
        self.assertTrue(dispatcher.quit_requested)

    def test_escape_leaves_query_for_result(self) -> None:
        dispatcher = _dispatcher()
        dispatcher.dispatch("ESC")
        self.assertIs(dispatcher.view_state.focused_pane, Pane.RESULT)

    def test_alt_letter_in_query_neither_leaves_nor_quits(self) -> None:
        dispatcher = _dispatcher()
        dispatcher.dispatch("ALT_q")
        self.assertFalse(dispatcher.quit_requested)
        self.assertIs(dispatcher.view_state.focused_pane, Pane.QUERY)
        self.assertEqual(dispatcher.editor.current_text(), "")

    def test_unbound_key_changes_nothing(self) -> None:
        dispatcher = _dispatcher(focused_pane=Pane.SOURCE)
        dispatcher.needs_render = False
        self.assertFalse(dispatcher.dispatch("F12"))
        self.assertFalse(dispatcher.needs_render)


class QueryEditingTests(unittest.TestCase):
    def test_printable_keys_insert_and_mark_dirty(self) -> None:
        dispatcher = _dispatcher()
        for key in ".h1":
            dispatcher.dispatch(key)
        self.assertEqual(dispatcher.editor.buffer, QueryBuffer(".h1", 3))
        self.assertTrue(dispatcher.editor.dirty)

    def test_unicode_text_is_inserted(self) -> None:
        dispatcher = _dispatcher()
        dispatcher.dispatch("é")
        self.assertEqual(dispatcher.editor.current_text(), "é")

    def test_editing_keys(self) -> None:
        dispatcher = _dispatcher(".h1 | .text")
        dispatcher.dispatch("CTRL_W")
        self.assertEqual(dispatcher.editor.current_text(), ".h1 | .")
        dispatcher.dispatch("BACKSPACE")
        dispatcher.dispatch("HOME")
        dispatcher.dispatch("DELETE")
        self.assertEqual(dispatcher.editor.buffer, QueryBuffer("h1 | ", 0))
        dispatcher.dispatch("CTRL_K")
        self.assertEqual(dispatcher.editor.current_text(), "")
        dispatcher.dispatch("CTRL_Z")
        self.assertEqual(dispatcher.editor.current_text(), "h1 | ")

    def test_cursor_keys_move_without_editing(self) -> None:
        dispatcher = _dispatcher("abc")
        dispatcher.editor.mark_clean()
        dispatcher.dispatch("LEFT")
        dispatcher.dispatch("CTRL_A")
        dispatcher.dispatch("RIGHT")
        self.assertEqual(dispatcher.editor.cursor_offset, 1)
        self.assertFalse(dispatcher.editor.dirty)

    def test_enter_commits_history_and_crlf_counts_once(self) -> None:
        dispatcher = _dispatcher(".h1")
        dispatcher.dispatch("ENTER_CR")
        dispatcher.dispatch("ENTER_LF")
        self.assertEqual(dispatcher.editor.history, [".h1"])

        dispatcher.dispatch("CTRL_L")
        dispatcher.dispatch("UP")
        self.assertEqual(dispatcher.editor.current_text(), ".h1")


class PaneScrollTests(unittest.TestCase):
    def test_scroll_keys_move_focused_pane(self) -> None:
        dispatcher = _dispatcher(focused_pane=Pane.SOURCE)
        _attach_model(dispatcher)
        dispatcher.dispatch("j")
        dispatcher.dispatch("DOWN")
        self.assertEqual(dispatcher.view_state.source_scroll, 2)
        dispatcher.dispatch("k")
        self.assertEqual(dispatcher.view_state.source_scroll, 1)
        self.assertEqual(dispatcher.view_state.result_scroll, 0)

    def test_page_and_end_keys_respect_content_limits(self) -> None:
        dispatcher = _dispatcher(focused_pane=Pane.SOURCE)
        _attach_model(dispatcher, line_count=100)
        rows = dispatcher.model.source.rows

        dispatcher.dispatch("PAGE_DOWN")
        self.assertEqual(dispatcher.view_state.source_scroll, rows)
        dispatcher.dispatch("G")
        self.assertEqual(dispatcher.view_state.source_scroll, 100 - rows)
        dispatcher.dispatch("j")
        self.assertEqual(dispatcher.view_state.source_scroll, 100 - rows)
        dispatcher.dispatch("g")
        self.assertEqual(dispatcher.view_state.source_scroll, 0)
        dispatcher.dispatch("UP")
        self.assertEqual(dispatcher.view_state.source_scroll, 0)

    def test_query_pane_arrows_do_not_scroll(self) -> None:
        dispatcher = _dispatcher()
        _attach_model(dispatcher)
        dispatcher.dispatch("DOWN")
        self.assertEqual(dispatcher.view_state.source_scroll, 0)
        self.assertEqual(dispatcher.view_state.result_scroll, 0)


class MouseTests(unittest.TestCase):
    def test_wheel_scrolls_pane_under_pointer(self) -> None:
        dispatcher = _dispatcher()
        _attach_model(dispatcher)
        # Mouse coordinates are 1-based.
        dispatcher.dispatch(f"MOUSE_WHEEL_DOWN:1:{BODY_TOP + 1}")
        self.assertEqual(dispatcher.view_state.source_scroll, 3)
        self.assertIs(dispatcher.view_state.focused_pane, Pane.QUERY)

    def test_click_focuses_pane(self) -> None:
        dispatcher = _dispatcher()
        _attach_model(dispatcher)
        result_col = dispatcher.model.result.col + 1
        dispatcher.dispatch(f"MOUSE_LEFT_DOWN:{result_col}:{BODY_TOP + 2}")
        self.assertIs(dispatcher.view_state.focused_pane, Pane.RESULT)

    def test_mouse_without_frame_is_ignored(self) -> None:
        dispatcher = _dispatcher()
        self.assertFalse(dispatcher.dispatch("MOUSE_WHEEL_DOWN:1:3"))


class ToggleTests(unittest.TestCase):
    def test_result_mode_toggle_persists_and_reports(self) -> None:
        saved = []
        dispatcher = InputDispatcher(
            EditorState(),
            ViewState(result_scroll=4),
            DispatcherCallbacks(save_result_mode=saved.append),
        )
        dispatcher.dispatch("CTRL_T")

        self.assertEqual(dispatcher.view_state.result_mode, "json")
        self.assertEqual(dispatcher.view_state.result_scroll, 0)
        self.assertEqual(dispatcher.view_state.status_message, "result mode: json")
        self.assertEqual(saved, ["json"])

        dispatcher.dispatch("LEFT")
        self.assertIsNone(dispatcher.view_state.status_message)

    def test_pane_resize_persists_percent(self) -> None:
        saved = []
        dispatcher = InputDispatcher(
            EditorState(),
            ViewState(),
            DispatcherCallbacks(save_source_pane_percent=saved.append),
            TerminalSize(100, 20),
        )
        dispatcher.dispatch("SHIFT_RIGHT")
        self.assertAlmostEqual(dispatcher.view_state.source_percent, 52.0)
        self.assertEqual(saved, [dispatcher.view_state.source_percent])

    def test_help_toggles(self) -> None:
        dispatcher = _dispatcher()
        dispatcher.dispatch("CTRL_QUESTION")
        self.assertTrue(dispatcher.view_state.show_help)
        dispatcher.dispatch("CTRL_QUESTION")
        self.assertFalse(dispatcher.view_state.show_help)

    def test_handle_resize_requests_repaint(self) -> None:
        dispatcher = _dispatcher()
        dispatcher.needs_render = False
        self.assertFalse(dispatcher.handle_resize(TerminalSize(40, 12)))
        self.assertTrue(dispatcher.handle_resize(TerminalSize(100, 30)))
        self.assertTrue(dispatcher.needs_render)


if __name__ == "__main__":
    unittest.main()
