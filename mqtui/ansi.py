"""ANSI-aware text measurement and clipping.

Escape sequences are kept verbatim and take no columns; tabs expand to the
next 8-column stop and East Asian wide characters take two columns.
"""

from __future__ import annotations

import re
import unicodedata

ANSI_ESCAPE_RE = re.compile(r"\x1b\[[0-9;?]*[ -/]*[@-~]")
TAB_STOP = 8
RESET = "\033[0m"


def char_display_width(ch: str, col: int) -> int:
    """Return terminal column width for one character at visual column ``col``."""
    if ch == "\t":
        return TAB_STOP - (col % TAB_STOP)
    if unicodedata.combining(ch):
        return 0
    if unicodedata.east_asian_width(ch) in {"W", "F"}:
        return 2
    return 1


def strip_ansi(text: str) -> str:
    return ANSI_ESCAPE_RE.sub("", text)


def display_width(text: str) -> int:
    """Columns occupied by ``text`` once escapes are removed."""
    col = 0
    for ch in strip_ansi(text):
        col += char_display_width(ch, col)
    return col


def column_of_offset(text: str, offset: int) -> int:
    """Display column where character ``offset`` of plain ``text`` starts."""
    col = 0
    for ch in text[: max(0, offset)]:
        col += char_display_width(ch, col)
    return col


def slice_ansi_line(text: str, start_cols: int, max_cols: int) -> str:
    """Return the ``max_cols`` wide viewport of a styled line from ``start_cols``.

    The most recent SGR sequence before the viewport is re-emitted so visible
    text keeps its styling. A wide character that straddles either edge is
    dropped rather than split.
    """
    if max_cols <= 0 or not text:
        return ""
    start_cols = max(0, start_cols)

    out: list[str] = []
    col = 0
    shown = 0
    pending_sgr = ""
    pos = 0
    n = len(text)
    while pos < n and shown < max_cols:
        if text[pos] == "\x1b":
            match = ANSI_ESCAPE_RE.match(text, pos)
            if match:
                seq = match.group(0)
                if col >= start_cols:
                    out.append(seq)
                elif seq.endswith("m"):
                    pending_sgr = seq
                pos = match.end()
                continue
        ch = text[pos]
        pos += 1
        width = char_display_width(ch, col)
        if col < start_cols:
            col += width
            if col > start_cols:
                # Partially hidden tab or wide char: fill the visible part.
                fill = min(col - start_cols, max_cols)
                out.append(pending_sgr + " " * fill)
                pending_sgr = ""
                shown += fill
            continue
        if pending_sgr:
            out.append(pending_sgr)
            pending_sgr = ""
        if shown + width > max_cols:
            if ch == "\t":
                out.append(" " * (max_cols - shown))
                shown = max_cols
            break
        out.append(" " * width if ch == "\t" else ch)
        shown += width
        col += width
    return "".join(out)


def clip_ansi_line(text: str, max_cols: int) -> str:
    """Trim a styled line to at most ``max_cols`` display columns."""
    return slice_ansi_line(text, 0, max_cols)


def pad_ansi_line(text: str, width: int) -> str:
    """Clip ``text`` to ``width`` and right-pad it with spaces to exactly fill it."""
    clipped = clip_ansi_line(text, width)
    used = display_width(clipped)
    if "\x1b" in clipped:
        clipped += RESET
    if used < width:
        clipped += " " * (width - used)
    return clipped
