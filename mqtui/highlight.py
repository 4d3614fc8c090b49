"""Syntax highlighting for the source and result panes.

Uses Pygments' 256-color terminal formatter. Also neutralizes terminal
control bytes so document text cannot move the cursor or ring the bell.
"""

from __future__ import annotations

import logging
import re

from pygments import highlight as pygments_highlight
from pygments.formatters import Terminal256Formatter
from pygments.lexer import Lexer
from pygments.lexers import JsonLexer, MarkdownLexer, TextLexer, get_lexer_for_filename
from pygments.styles import get_style_by_name
from pygments.util import ClassNotFound

logger = logging.getLogger(__name__)

DEFAULT_STYLE = "monokai"
_CONTROL_RE = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f\x7f-\x9f]")

_FORMATTERS: dict[str, Terminal256Formatter] = {}
_VALID_STYLES: set[str] = set()
_INVALID_STYLES: set[str] = set()


def sanitize_terminal_text(source: str) -> str:
    """Escape terminal control bytes to avoid side effects (bell, cursor moves, etc.)."""
    if _CONTROL_RE.search(source) is None:
        return source
    return _CONTROL_RE.sub(lambda match: f"\\x{ord(match.group(0)):02x}", source)


def normalize_style(style: str | None) -> str:
    """Validate/canonicalize requested style name with cache-backed checks."""
    if not style:
        return DEFAULT_STYLE
    if style in _VALID_STYLES:
        return style
    if style in _INVALID_STYLES:
        return DEFAULT_STYLE
    try:
        get_style_by_name(style)
    except ClassNotFound:
        logger.warning("Unknown pygments style %r, using %s", style, DEFAULT_STYLE)
        _INVALID_STYLES.add(style)
        return DEFAULT_STYLE
    _VALID_STYLES.add(style)
    return style


def _formatter_for_style(style: str) -> Terminal256Formatter:
    formatter = _FORMATTERS.get(style)
    if formatter is None:
        formatter = Terminal256Formatter(style=style)
        _FORMATTERS[style] = formatter
    return formatter


def _lexer_for_filename(filename: str, text: str) -> Lexer:
    # Leading blank lines must survive or rows drift out of step with the source.
    if filename.lower().endswith((".md", ".markdown", ".mdx")) or not filename:
        return MarkdownLexer(stripnl=False)
    try:
        return get_lexer_for_filename(filename, text, stripnl=False)
    except ClassNotFound:
        return MarkdownLexer(stripnl=False)


def colorize_lines(lines: list[str], lexer: Lexer, style: str = DEFAULT_STYLE) -> list[str]:
    """Highlight ``lines`` as one text and return one styled string per input line.

    Falls back to the plain lines if Pygments fails, so the output always has
    exactly ``len(lines)`` entries.
    """
    if not lines:
        return []
    try:
        rendered = pygments_highlight("\n".join(lines), lexer, _formatter_for_style(normalize_style(style)))
    except Exception:
        logger.exception("Highlighting failed; showing plain text")
        return list(lines)
    if rendered.endswith("\n"):
        rendered = rendered[:-1]
    styled = rendered.split("\n")
    if len(styled) < len(lines):
        styled.extend(lines[len(styled) :])
    return styled[: len(lines)]


def highlight_source(
    lines: tuple[str, ...] | list[str],
    filename: str,
    style: str = DEFAULT_STYLE,
    no_color: bool = False,
) -> list[str]:
    """Lines for the source pane, colored by file type."""
    clean = [sanitize_terminal_text(line) for line in lines]
    if no_color:
        return clean
    return colorize_lines(clean, _lexer_for_filename(filename, "\n".join(clean)), style)


def highlight_result(
    lines: list[str],
    mode: str,
    style: str = DEFAULT_STYLE,
    no_color: bool = False,
) -> list[str]:
    """Lines for the result pane, colored as JSON or Markdown."""
    clean = [sanitize_terminal_text(line) for line in lines]
    if no_color:
        return clean
    if mode == "json":
        lexer: Lexer = JsonLexer(stripnl=False)
    elif mode == "markdown":
        lexer = MarkdownLexer(stripnl=False)
    else:
        lexer = TextLexer(stripnl=False)
    return colorize_lines(clean, lexer, style)


class LineStyler:
    """Memoize highlighted source and result lines between frames.

    The source is highlighted once per document; result lines are re-colored
    only when their text or display mode changes.
    """

    def __init__(self, style: str = DEFAULT_STYLE, no_color: bool = False) -> None:
        self.style = normalize_style(style)
        self.no_color = no_color
        self._source_key: tuple[tuple[str, ...], str] | None = None
        self._source_lines: list[str] = []
        self._result_key: tuple[tuple[str, ...], str] | None = None
        self._result_lines: list[str] = []

    def source(self, lines: tuple[str, ...], filename: str) -> list[str]:
        cached = self._source_key
        # Document lines are immutable, so identity is enough.
        if cached is None or cached[0] is not lines or cached[1] != filename:
            self._source_lines = highlight_source(lines, filename, self.style, self.no_color)
            self._source_key = (lines, filename)
        return self._source_lines

    def result(self, lines: list[str], mode: str) -> list[str]:
        key = (tuple(lines), mode)
        if key != self._result_key:
            self._result_lines = highlight_result(lines, mode, self.style, self.no_color)
            self._result_key = key
        return self._result_lines
