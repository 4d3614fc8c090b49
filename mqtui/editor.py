"""Query buffer editing: cursor motion, insert/delete, undo, and history.

All operations clamp instead of raising, so ``0 <= cursor <= len(text)``
holds after any call. Text changes set ``dirty``; the runtime consumes it to
schedule evaluation.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

UNDO_LIMIT = 200
HISTORY_LIMIT = 100


class Direction(Enum):
    LEFT = -1
    RIGHT = 1


class Unit(Enum):
    CHAR = "char"
    WORD = "word"
    LINE_START = "line_start"
    LINE_END = "line_end"


@dataclass(frozen=True)
class QueryBuffer:
    text: str = ""
    cursor_offset: int = 0

    def clamped(self) -> QueryBuffer:
        cursor = max(0, min(self.cursor_offset, len(self.text)))
        if cursor == self.cursor_offset:
            return self
        return QueryBuffer(self.text, cursor)


def _is_word_char(ch: str) -> bool:
    return ch.isalnum() or ch == "_"


def word_start_before(text: str, cursor: int) -> int:
    """Offset of the start of the word left of ``cursor``."""
    idx = max(0, min(cursor, len(text)))
    while idx > 0 and not _is_word_char(text[idx - 1]):
        idx -= 1
    while idx > 0 and _is_word_char(text[idx - 1]):
        idx -= 1
    return idx


def word_end_after(text: str, cursor: int) -> int:
    """Offset just past the end of the word right of ``cursor``."""
    idx = max(0, min(cursor, len(text)))
    n = len(text)
    while idx < n and not _is_word_char(text[idx]):
        idx += 1
    while idx < n and _is_word_char(text[idx]):
        idx += 1
    return idx


@dataclass
class EditorState:
    """Owns the live ``QueryBuffer`` plus its undo stack and history."""

    buffer: QueryBuffer = field(default_factory=QueryBuffer)
    dirty: bool = False
    undo_stack: tuple[QueryBuffer, ...] = ()
    history: list[str] = field(default_factory=list)
    history_index: int | None = None
    _history_draft: QueryBuffer | None = None

    @classmethod
    def with_text(cls, text: str) -> EditorState:
        state = cls(buffer=QueryBuffer(text, len(text)))
        state.dirty = bool(text)
        return state

    @property
    def cursor_offset(self) -> int:
        return self.buffer.cursor_offset

    def current_text(self) -> str:
        return self.buffer.text

    def _replace(self, new_buffer: QueryBuffer, *, record_undo: bool = True) -> bool:
        new_buffer = new_buffer.clamped()
        if new_buffer == self.buffer:
            return False
        text_changed = new_buffer.text != self.buffer.text
        if text_changed and record_undo:
            self.undo_stack = (self.undo_stack + (self.buffer,))[-UNDO_LIMIT:]
        self.buffer = new_buffer
        if text_changed:
            self.dirty = True
            self.history_index = None
            self._history_draft = None
        return True

    def insert_char(self, ch: str) -> bool:
        if not ch:
            return False
        text = self.buffer.text
        cursor = self.buffer.cursor_offset
        return self._replace(QueryBuffer(text[:cursor] + ch + text[cursor:], cursor + len(ch)))

    def delete_before_cursor(self) -> bool:
        cursor = self.buffer.cursor_offset
        if cursor <= 0:
            return False
        text = self.buffer.text
        return self._replace(QueryBuffer(text[: cursor - 1] + text[cursor:], cursor - 1))

    def delete_after_cursor(self) -> bool:
        text = self.buffer.text
        cursor = self.buffer.cursor_offset
        if cursor >= len(text):
            return False
        return self._replace(QueryBuffer(text[:cursor] + text[cursor + 1 :], cursor))

    def delete_word_before_cursor(self) -> bool:
        text = self.buffer.text
        cursor = self.buffer.cursor_offset
        start = word_start_before(text, cursor)
        if start == cursor:
            return False
        return self._replace(QueryBuffer(text[:start] + text[cursor:], start))

    def delete_to_line_start(self) -> bool:
        text = self.buffer.text
        cursor = self.buffer.cursor_offset
        if cursor == 0:
            return False
        return self._replace(QueryBuffer(text[cursor:], 0))

    def delete_to_line_end(self) -> bool:
        text = self.buffer.text
        cursor = self.buffer.cursor_offset
        if cursor >= len(text):
            return False
        return self._replace(QueryBuffer(text[:cursor], cursor))

    def clear(self) -> bool:
        return self._replace(QueryBuffer("", 0))

    def set_text(self, text: str) -> bool:
        return self._replace(QueryBuffer(text, len(text)))

    def move_cursor(self, direction: Direction, unit: Unit) -> bool:
        text = self.buffer.text
        cursor = self.buffer.cursor_offset
        if unit is Unit.CHAR:
            target = cursor + direction.value
        elif unit is Unit.WORD:
            target = word_start_before(text, cursor) if direction is Direction.LEFT else word_end_after(text, cursor)
        elif unit is Unit.LINE_START:
            target = 0
        else:
            target = len(text)
        return self._replace(QueryBuffer(text, target))

    def undo(self) -> bool:
        if not self.undo_stack:
            return False
        previous = self.undo_stack[-1]
        self.undo_stack = self.undo_stack[:-1]
        return self._replace(previous, record_undo=False)

    def mark_clean(self) -> None:
        self.dirty = False

    def commit_to_history(self) -> bool:
        """Record the current text as the newest history entry."""
        text = self.buffer.text
        if not text.strip():
            return False
        if self.history and self.history[-1] == text:
            return False
        self.history.append(text)
        del self.history[:-HISTORY_LIMIT]
        self.history_index = None
        self._history_draft = None
        return True

    def recall_history(self, step: int) -> bool:
        """Walk history: ``-1`` is older, ``+1`` is newer (back to the draft)."""
        if not self.history:
            return False
        if self.history_index is None:
            if step > 0:
                return False
            draft = self.buffer
            index = len(self.history) - 1
        else:
            draft = self._history_draft
            index = self.history_index + step
        if index < 0:
            return False
        if index >= len(self.history):
            restored = draft or QueryBuffer()
            self._replace(restored)
            self.history_index = None
            self._history_draft = None
            return True
        entry = self.history[index]
        self._replace(QueryBuffer(entry, len(entry)))
        self.history_index = index
        self._history_draft = draft
        return True
