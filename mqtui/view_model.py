"""Pure derivation of what each pane shows.

``render_model`` turns the document, query buffer, current evaluation result
and view state into a ``ViewModel``: clipped per-pane lines, the cursor's
screen position and status text. It performs no I/O and returns the adjusted
view state instead of mutating the one it was given.

Screen layout, top to bottom: query row, pane title row, source | result
body, optional help rows, status row.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, replace
from enum import Enum

from .ansi import char_display_width, clip_ansi_line
from .document import Document
from .editor import QueryBuffer
from .evaluation import EvaluationResult, Failure, Pending, Success
from .highlight import LineStyler
from .values import DEFAULT_RESULT_MODE, format_outputs, output_count

QUERY_PROMPT = "mq> "
QUERY_ROW = 0
TITLE_ROW = 1
BODY_TOP = 2
MIN_SOURCE_PERCENT = 5.0
MAX_SOURCE_PERCENT = 95.0
DEFAULT_SOURCE_PERCENT = 50.0


class Pane(Enum):
    QUERY = "query"
    RESULT = "result"
    SOURCE = "source"

    @property
    def label(self) -> str:
        return self.value


# Tab order.
FOCUS_ORDER: tuple[Pane, ...] = (Pane.QUERY, Pane.RESULT, Pane.SOURCE)


@dataclass(frozen=True)
class TerminalSize:
    columns: int
    lines: int


@dataclass(frozen=True)
class ViewState:
    source_scroll: int = 0
    result_scroll: int = 0
    focused_pane: Pane = Pane.QUERY
    status_message: str | None = None
    query_scroll: int = 0
    show_help: bool = False
    result_mode: str = DEFAULT_RESULT_MODE
    source_percent: float = DEFAULT_SOURCE_PERCENT


@dataclass(frozen=True)
class PaneView:
    """Visible window of one scrollable pane."""

    pane: Pane
    title: str
    col: int
    row: int
    width: int
    rows: int
    lines: tuple[str, ...]
    scroll: int
    total: int

    @property
    def max_scroll(self) -> int:
        return max(0, self.total - self.rows)

    def contains(self, col: int, row: int) -> bool:
        return self.col <= col < self.col + self.width and self.row <= row < self.row + self.rows


@dataclass(frozen=True)
class QueryView:
    prompt: str
    text: str
    scroll: int
    width: int
    # Index into ``text`` of the character to mark as the error position.
    # May equal ``len(text)`` when the error is at the end of the query.
    error_index: int | None = None


@dataclass(frozen=True)
class ViewModel:
    size: TerminalSize
    query: QueryView
    source: PaneView
    result: PaneView
    help_lines: tuple[str, ...]
    help_row: int
    status_left: str
    status_right: str
    status_is_error: bool
    busy: bool
    cursor: tuple[int, int] | None
    focused_pane: Pane
    view_state: ViewState

    @property
    def status_row(self) -> int:
        return self.size.lines - 1

    def pane_at(self, col: int, row: int) -> Pane | None:
        """Pane under a 0-based screen cell, if any."""
        if row == QUERY_ROW:
            return Pane.QUERY
        for pane in (self.source, self.result):
            if pane.contains(col, row):
                return pane.pane
        return None

    def pane_view(self, pane: Pane) -> PaneView | None:
        if pane is Pane.SOURCE:
            return self.source
        if pane is Pane.RESULT:
            return self.result
        return None


def clamp_scroll(scroll: int, total: int, rows: int) -> int:
    """Clamp a scroll offset so the window never runs past the content."""
    return max(0, min(scroll, max(0, total - max(0, rows))))


def split_widths(columns: int, source_percent: float) -> tuple[int, int]:
    """Return ``(source_width, result_width)``; one column separates them."""
    if columns < 3:
        return 0, max(0, columns)
    source = int(round(columns * source_percent / 100.0))
    source = max(1, min(columns - 2, source))
    return source, columns - source - 1


def nudge_source_percent(percent: float, columns: int, delta_columns: int) -> float:
    """Move the pane split by ``delta_columns`` screen columns."""
    if columns <= 0:
        return percent
    updated = percent + (delta_columns * 100.0 / columns)
    return max(MIN_SOURCE_PERCENT, min(MAX_SOURCE_PERCENT, updated))


def _printable(text: str) -> str:
    # One cell per control character keeps indices and columns aligned.
    return "".join(" " if (ord(ch) < 32 or ord(ch) == 0x7F) else ch for ch in text)


def _span_width(text: str, start: int, end: int) -> int:
    col = 0
    for ch in text[start:end]:
        col += char_display_width(ch, col)
    return col


def keep_cursor_visible(text: str, cursor: int, scroll: int, width: int) -> int:
    """Return a horizontal scroll offset that keeps ``cursor`` on screen.

    Offsets are character indices. The cursor cell itself must fit, so the
    text left of it may use at most ``width - 1`` columns.
    """
    cursor = max(0, min(cursor, len(text)))
    if width <= 0:
        return cursor
    if _span_width(text, 0, len(text)) < width:
        return 0
    scroll = max(0, min(scroll, cursor))
    while scroll < cursor and _span_width(text, scroll, cursor) >= width:
        scroll += 1
    return scroll


def _visible_text(text: str, scroll: int, width: int) -> str:
    out: list[str] = []
    col = 0
    for ch in text[scroll:]:
        w = char_display_width(ch, col)
        if col + w > width:
            break
        out.append(ch)
        col += w
    return "".join(out)


def _result_lines(result: EvaluationResult, mode: str) -> list[str]:
    if isinstance(result, Success):
        lines = format_outputs(result.value, mode)
        return lines if lines else ["(no output)"]
    if isinstance(result, Failure):
        return [f"error: {line}" if idx == 0 else line for idx, line in enumerate(str(result.error).splitlines())]
    if isinstance(result, Pending):
        return ["evaluating…"]
    return []


def _status_text(
    document: Document,
    result: EvaluationResult,
    view_state: ViewState,
    busy: bool,
) -> tuple[str, bool]:
    parts = [f" {document.filename}"]
    is_error = False
    if isinstance(result, Success):
        count = output_count(result.value)
        parts.append(f"{count} result{'' if count == 1 else 's'}")
        parts.append(f"{result.elapsed * 1000:.0f} ms")
    elif isinstance(result, Failure):
        parts.append(f"error: {result.error}")
        is_error = True
    if busy or isinstance(result, Pending):
        parts.append("evaluating…")
    if view_state.status_message:
        parts.append(view_state.status_message)
    return " │ ".join(parts), is_error


def _pane(
    pane: Pane,
    title: str,
    lines: Sequence[str],
    scroll: int,
    col: int,
    width: int,
    rows: int,
) -> PaneView:
    scroll = clamp_scroll(scroll, len(lines), rows)
    visible = tuple(clip_ansi_line(line, width) for line in lines[scroll : scroll + rows]) if width > 0 else ()
    return PaneView(
        pane=pane,
        title=title,
        col=col,
        row=BODY_TOP,
        width=width,
        rows=rows,
        lines=visible,
        scroll=scroll,
        total=len(lines),
    )


def render_model(
    document: Document,
    query_buffer: QueryBuffer,
    result: EvaluationResult,
    view_state: ViewState,
    size: TerminalSize,
    *,
    styler: LineStyler | None = None,
    busy: bool = False,
    help_lines: Sequence[str] = (),
) -> ViewModel:
    """Derive the full screen content for one frame."""
    columns = max(1, size.columns)
    height = max(1, size.lines)
    size = TerminalSize(columns, height)

    # Query row.
    text = _printable(query_buffer.text)
    cursor = max(0, min(query_buffer.cursor_offset, len(text)))
    prompt = QUERY_PROMPT if len(QUERY_PROMPT) < columns else ""
    query_width = columns - len(prompt)
    query_scroll = keep_cursor_visible(text, cursor, view_state.query_scroll, query_width)
    visible_query = _visible_text(text, query_scroll, query_width)
    error_index: int | None = None
    if isinstance(result, Failure) and result.error.offset is not None:
        idx = max(0, min(result.error.offset, len(text))) - query_scroll
        if 0 <= idx < len(visible_query) or (idx == len(visible_query) and _span_width(visible_query, 0, idx) < query_width):
            error_index = idx
    query = QueryView(prompt, visible_query, query_scroll, query_width, error_index)

    # Body and help rows.
    body_total = max(0, height - 3)
    shown_help: tuple[str, ...] = ()
    if view_state.show_help and help_lines and body_total > 1:
        shown_help = tuple(clip_ansi_line(line, columns) for line in help_lines[: body_total - 1])
    body_rows = body_total - len(shown_help)

    source_width, result_width = split_widths(columns, view_state.source_percent)
    source_lines: Sequence[str]
    mode = view_state.result_mode
    plain_result = _result_lines(result, mode)
    if styler is not None:
        source_lines = styler.source(document.lines, document.filename)
        result_lines: Sequence[str] = (
            styler.result(plain_result, mode) if isinstance(result, Success) else plain_result
        )
    else:
        source_lines = document.lines
        result_lines = plain_result

    source = _pane(
        Pane.SOURCE,
        document.filename,
        source_lines,
        view_state.source_scroll,
        0,
        source_width,
        body_rows,
    )
    result_col = source_width + 1 if source_width else 0
    result_view = _pane(
        Pane.RESULT,
        f"result ({mode})",
        result_lines,
        view_state.result_scroll,
        result_col,
        result_width,
        body_rows,
    )

    status_left, status_is_error = _status_text(document, result, view_state, busy)
    status_right = f"{view_state.focused_pane.label} │ Ctrl+? Help"

    cursor_pos: tuple[int, int] | None = None
    if view_state.focused_pane is Pane.QUERY:
        cursor_col = len(prompt) + _span_width(text, query_scroll, cursor)
        cursor_pos = (QUERY_ROW, min(cursor_col, columns - 1))

    adjusted = replace(
        view_state,
        query_scroll=query_scroll,
        source_scroll=source.scroll,
        result_scroll=result_view.scroll,
    )
    return ViewModel(
        size=size,
        query=query,
        source=source,
        result=result_view,
        help_lines=shown_help,
        help_row=BODY_TOP + body_rows,
        status_left=status_left,
        status_right=status_right,
        status_is_error=status_is_error,
        busy=busy,
        cursor=cursor_pos,
        focused_pane=view_state.focused_pane,
        view_state=adjusted,
    )
