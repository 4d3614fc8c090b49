"""Rendering of a ``ViewModel`` to the terminal.

Composes one full ANSI frame per paint and writes it out at once.
Layout decisions live in ``view_model``; this module only draws.
"""

from __future__ import annotations

import os

from ..ansi import clip_ansi_line, display_width, pad_ansi_line
from ..errors import TerminalError
from ..ui_theme import DEFAULT_THEME, UITheme
from ..view_model import QueryView, ViewModel
from .help import help_lines

__all__ = ["Renderer", "build_status_line", "format_query_line", "compose_frame", "help_lines"]


def build_status_line(left_text: str, width: int, right_text: str = "│ ? Help") -> str:
    """Left-aligned status text with ``right_text`` pinned to the right edge."""
    usable = max(1, width - 1)
    right_width = display_width(right_text)
    if usable <= right_width:
        return right_text[-usable:]
    left = clip_ansi_line(left_text, max(0, usable - right_width - 1))
    gap = " " * (usable - display_width(left) - right_width)
    return f"{left}{gap}{right_text}"


def format_query_line(query: QueryView, theme: UITheme) -> str:
    """Prompt plus visible query text, with the error position marked."""
    text = query.text
    if query.error_index is None:
        body = f"{theme.query_text}{text}{theme.reset}"
    else:
        idx = query.error_index
        marked = text[idx] if idx < len(text) else " "
        body = (
            f"{theme.query_text}{text[:idx]}"
            f"{theme.query_error_marker}{theme.reverse}{marked}{theme.reset}"
            f"{theme.query_text}{text[idx + 1:]}{theme.reset}"
        )
    return f"{theme.query_prompt}{query.prompt}{theme.reset}{body}"


def _title_segment(title: str, width: int, style: str, reset: str) -> str:
    if width <= 0:
        return ""
    label = clip_ansi_line(f"─ {title} ", width)
    fill = "─" * max(0, width - display_width(label))
    return f"{style}{label}{fill}{reset}"


def compose_frame(model: ViewModel, theme: UITheme = DEFAULT_THEME) -> str:
    """Build the complete escape-sequence frame for ``model``."""
    columns = model.size.columns
    height = model.size.lines
    reset = theme.reset
    rows: list[str] = []

    rows.append(pad_ansi_line(format_query_line(model.query, theme), columns))

    if height >= 3:
        focused = model.focused_pane
        source, result = model.source, model.result
        left_style = theme.pane_title_focused if focused is source.pane else theme.pane_title
        right_style = theme.pane_title_focused if focused is result.pane else theme.pane_title
        title_row = _title_segment(source.title, source.width, left_style, reset)
        if source.width:
            title_row += f"{theme.divider}┬{reset}"
        title_row += _title_segment(result.title, result.width, right_style, reset)
        rows.append(title_row)

        result_style = theme.error_text if model.status_is_error else ""
        for idx in range(source.rows):
            left = source.lines[idx] if idx < len(source.lines) else ""
            right = result.lines[idx] if idx < len(result.lines) else ""
            line = ""
            if source.width:
                line += pad_ansi_line(left, source.width)
                line += f"{theme.divider}│{reset}"
            if result_style and right:
                right = f"{result_style}{right}{reset}"
            line += pad_ansi_line(right, result.width)
            rows.append(line)

        for help_line in model.help_lines:
            rows.append(pad_ansi_line(help_line, columns))

    if height >= 2:
        status = build_status_line(model.status_left, columns, model.status_right)
        style = theme.status_bar
        if model.status_is_error:
            style += theme.error_text
        elif model.busy:
            style += theme.status_busy
        rows.append(f"{style}{pad_ansi_line(status, columns)}{reset}")

    out: list[str] = ["\033[H\033[J", "\r\n".join(rows[:height])]
    if model.cursor is not None:
        row, col = model.cursor
        out.append(f"\033[{row + 1};{col + 1}H\033[?25h")
    else:
        out.append("\033[?25l")
    return "".join(out)


class Renderer:
    """Paints view models to a terminal file descriptor."""

    def __init__(self, stdout_fd: int, theme: UITheme = DEFAULT_THEME) -> None:
        self.stdout_fd = stdout_fd
        self.theme = theme
        self.frames_painted = 0

    def paint(self, model: ViewModel) -> None:
        data = memoryview(compose_frame(model, self.theme).encode("utf-8", errors="replace"))
        try:
            while data:
                written = os.write(self.stdout_fd, data)
                data = data[written:]
        except OSError as exc:
            raise TerminalError(f"cannot write to terminal: {exc}") from exc
        self.frames_painted += 1
