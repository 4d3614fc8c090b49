"""Input dispatcher: key tokens to editor and view-state transitions.

The focused pane selects which key table applies. Global keys (quit, focus
cycling, mode and help toggles, pane resizing) work everywhere. Unbound keys
are ignored.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, replace

from ..editor import Direction, EditorState, Unit
from ..values import RESULT_MODES
from ..view_model import (
    FOCUS_ORDER,
    Pane,
    TerminalSize,
    ViewModel,
    ViewState,
    nudge_source_percent,
)
from .key_registry import KeyComboBinding, KeyComboRegistry

logger = logging.getLogger(__name__)

WHEEL_SCROLL_LINES = 3
PANE_RESIZE_COLUMNS = 2


def _noop(_value: object) -> None:
    return None


@dataclass(frozen=True)
class DispatcherCallbacks:
    """Side effects the dispatcher triggers but does not own."""

    save_source_pane_percent: Callable[[float], None] = _noop
    save_result_mode: Callable[[str], None] = _noop


def _mouse_position(key: str) -> tuple[int, int] | None:
    """0-based ``(col, row)`` from a ``MOUSE_*:col:row`` token."""
    parts = key.split(":")
    if len(parts) != 3:
        return None
    try:
        return int(parts[1]) - 1, int(parts[2]) - 1
    except ValueError:
        return None


class InputDispatcher:
    """Applies decoded key tokens to ``EditorState`` and ``ViewState``.

    ``quit_requested`` is raised by the quit keys; ``needs_render`` tells the
    loop a repaint is due. Text edits set ``editor.dirty``, which the loop
    turns into an evaluation request.
    """

    def __init__(
        self,
        editor: EditorState,
        view_state: ViewState | None = None,
        callbacks: DispatcherCallbacks | None = None,
        size: TerminalSize | None = None,
    ) -> None:
        self.editor = editor
        self.view_state = view_state if view_state is not None else ViewState()
        self.callbacks = callbacks if callbacks is not None else DispatcherCallbacks()
        self.size = size if size is not None else TerminalSize(80, 24)
        self.model: ViewModel | None = None
        self.quit_requested = False
        self.needs_render = True
        self._skip_next_lf = False

        self._global_keys = KeyComboRegistry().register_bindings(
            KeyComboBinding(("CTRL_C", "CTRL_Q"), self.request_quit),
            KeyComboBinding(("TAB",), lambda: self.cycle_focus(1)),
            KeyComboBinding(("SHIFT_TAB",), lambda: self.cycle_focus(-1)),
            KeyComboBinding(("CTRL_T",), self.toggle_result_mode),
            KeyComboBinding(("CTRL_QUESTION",), self.toggle_help),
            KeyComboBinding(("SHIFT_LEFT",), lambda: self.resize_panes(-PANE_RESIZE_COLUMNS)),
            KeyComboBinding(("SHIFT_RIGHT",), lambda: self.resize_panes(PANE_RESIZE_COLUMNS)),
        )
        editor_ops = self.editor
        self._query_keys = KeyComboRegistry(fallback=self._insert_printable).register_bindings(
            KeyComboBinding(("BACKSPACE",), editor_ops.delete_before_cursor),
            KeyComboBinding(("DELETE",), editor_ops.delete_after_cursor),
            KeyComboBinding(("LEFT",), lambda: editor_ops.move_cursor(Direction.LEFT, Unit.CHAR)),
            KeyComboBinding(("RIGHT",), lambda: editor_ops.move_cursor(Direction.RIGHT, Unit.CHAR)),
            KeyComboBinding(("ALT_LEFT", "CTRL_LEFT"), lambda: editor_ops.move_cursor(Direction.LEFT, Unit.WORD)),
            KeyComboBinding(("ALT_RIGHT", "CTRL_RIGHT"), lambda: editor_ops.move_cursor(Direction.RIGHT, Unit.WORD)),
            KeyComboBinding(("HOME", "CTRL_A"), lambda: editor_ops.move_cursor(Direction.LEFT, Unit.LINE_START)),
            KeyComboBinding(("END", "CTRL_E"), lambda: editor_ops.move_cursor(Direction.RIGHT, Unit.LINE_END)),
            KeyComboBinding(("CTRL_W",), editor_ops.delete_word_before_cursor),
            KeyComboBinding(("CTRL_U",), editor_ops.delete_to_line_start),
            KeyComboBinding(("CTRL_K",), editor_ops.delete_to_line_end),
            KeyComboBinding(("CTRL_L",), editor_ops.clear),
            KeyComboBinding(("CTRL_Z",), editor_ops.undo),
            KeyComboBinding(("UP",), lambda: editor_ops.recall_history(-1)),
            KeyComboBinding(("DOWN",), lambda: editor_ops.recall_history(1)),
            KeyComboBinding(("ENTER",), editor_ops.commit_to_history),
            KeyComboBinding(("ESC",), lambda: self.focus(Pane.RESULT)),
        )
        self._pane_keys = KeyComboRegistry().register_bindings(
            KeyComboBinding(("UP", "k"), lambda: self.scroll_focused(-1)),
            KeyComboBinding(("DOWN", "j"), lambda: self.scroll_focused(1)),
            KeyComboBinding(("PAGE_UP", "b"), lambda: self.scroll_focused(-self._page_rows())),
            KeyComboBinding(("PAGE_DOWN", " "), lambda: self.scroll_focused(self._page_rows())),
            KeyComboBinding(("CTRL_U",), lambda: self.scroll_focused(-max(1, self._page_rows() // 2))),
            KeyComboBinding(("CTRL_D",), lambda: self.scroll_focused(max(1, self._page_rows() // 2))),
            KeyComboBinding(("g", "HOME"), lambda: self.scroll_focused_to(0)),
            KeyComboBinding(("G", "END"), lambda: self.scroll_focused_to(None)),
            KeyComboBinding(("q",), self.request_quit),
            KeyComboBinding(("?",), self.toggle_help),
        )

    # Transitions ---------------------------------------------------------

    def request_quit(self) -> bool:
        self.quit_requested = True
        return True

    def focus(self, pane: Pane) -> bool:
        if self.view_state.focused_pane is pane:
            return False
        self.view_state = replace(self.view_state, focused_pane=pane)
        return True

    def cycle_focus(self, step: int) -> bool:
        idx = FOCUS_ORDER.index(self.view_state.focused_pane)
        return self.focus(FOCUS_ORDER[(idx + step) % len(FOCUS_ORDER)])

    def toggle_help(self) -> bool:
        self.view_state = replace(self.view_state, show_help=not self.view_state.show_help)
        return True

    def toggle_result_mode(self) -> bool:
        modes = RESULT_MODES
        current = self.view_state.result_mode
        mode = modes[(modes.index(current) + 1) % len(modes)] if current in modes else modes[0]
        self.view_state = replace(
            self.view_state,
            result_mode=mode,
            result_scroll=0,
            status_message=f"result mode: {mode}",
        )
        self.callbacks.save_result_mode(mode)
        return True

    def resize_panes(self, delta_columns: int) -> bool:
        percent = nudge_source_percent(self.view_state.source_percent, self.size.columns, delta_columns)
        if percent == self.view_state.source_percent:
            return False
        self.view_state = replace(self.view_state, source_percent=percent)
        self.callbacks.save_source_pane_percent(percent)
        return True

    def handle_resize(self, size: TerminalSize) -> bool:
        if size == self.size:
            return False
        logger.debug("Terminal resized to %dx%d", size.columns, size.lines)
        self.size = size
        self.needs_render = True
        return True

    def _page_rows(self) -> int:
        if self.model is not None:
            return max(1, self.model.source.rows)
        return max(1, self.size.lines - 3)

    def _max_scroll(self, pane: Pane) -> int | None:
        if self.model is None:
            return None
        view = self.model.pane_view(pane)
        return view.max_scroll if view is not None else None

    def scroll_pane(self, pane: Pane, delta: int) -> bool:
        if pane is Pane.QUERY:
            return False
        field_name = "source_scroll" if pane is Pane.SOURCE else "result_scroll"
        current = getattr(self.view_state, field_name)
        target = current + delta
        limit = self._max_scroll(pane)
        target = max(0, target) if limit is None else max(0, min(target, limit))
        if target == current:
            return False
        self.view_state = replace(self.view_state, **{field_name: target})
        return True

    def scroll_focused(self, delta: int) -> bool:
        return self.scroll_pane(self.view_state.focused_pane, delta)

    def scroll_focused_to(self, line: int | None) -> bool:
        """Scroll to ``line``; ``None`` means the bottom."""
        pane = self.view_state.focused_pane
        field_name = "source_scroll" if pane is Pane.SOURCE else "result_scroll"
        current = getattr(self.view_state, field_name)
        if line is None:
            limit = self._max_scroll(pane)
            # Without a frame yet, overshoot and let render_model clamp.
            line = limit if limit is not None else 1 << 30
        return self.scroll_pane(pane, line - current)

    def _insert_printable(self, key: str) -> bool | None:
        if len(key) != 1 or not key.isprintable():
            return None
        return self.editor.insert_char(key)

    def _handle_mouse(self, key: str) -> bool:
        position = _mouse_position(key)
        if position is None or self.model is None:
            return False
        pane = self.model.pane_at(*position)
        if pane is None:
            return False
        if key.startswith("MOUSE_WHEEL_UP"):
            return self.scroll_pane(pane, -WHEEL_SCROLL_LINES)
        if key.startswith("MOUSE_WHEEL_DOWN"):
            return self.scroll_pane(pane, WHEEL_SCROLL_LINES)
        if key.startswith("MOUSE_LEFT_DOWN"):
            return self.focus(pane)
        return False

    # Entry point ---------------------------------------------------------

    def _normalize_enter(self, key: str) -> str | None:
        """Fold CR, LF and CRLF into one ``ENTER``; ``None`` drops the key."""
        if self._skip_next_lf and key == "ENTER_LF":
            self._skip_next_lf = False
            return None
        self._skip_next_lf = key == "ENTER_CR"
        if key in {"ENTER_CR", "ENTER_LF"}:
            return "ENTER"
        return key

    def dispatch(self, key: str) -> bool:
        """Apply one key token; returns whether anything changed."""
        if not key:
            return False
        normalized = self._normalize_enter(key)
        if normalized is None:
            return False
        key = normalized

        had_message = self.view_state.status_message is not None
        if had_message:
            self.view_state = replace(self.view_state, status_message=None)

        if key.startswith("MOUSE"):
            handled: bool | None = self._handle_mouse(key)
        else:
            handled = self._global_keys.dispatch(key)
            if handled is None:
                table = self._query_keys if self.view_state.focused_pane is Pane.QUERY else self._pane_keys
                handled = table.dispatch(key)

        changed = bool(handled) or had_message
        if changed:
            self.needs_render = True
        return changed
