"""Help panel content.

Keybinding rows differ between the query pane and the scrollable panes.
Formatting is presentation-only and side-effect free.
"""

from __future__ import annotations

from ..ui_theme import DEFAULT_THEME, UITheme
from ..view_model import Pane

HelpRow = tuple[tuple[str, str], ...]

QUERY_HELP_TITLE = "QUERY"
QUERY_HELP_ROWS: tuple[HelpRow, ...] = (
    (("Type/Backspace/Del", "edit"), ("Left/Right", "move"), ("Alt+Left/Right", "word")),
    (("Home/Ctrl+A", "start"), ("End/Ctrl+E", "end"), ("Ctrl+W", "delete word")),
    (("Ctrl+U/K", "delete to start/end"), ("Ctrl+L", "clear"), ("Ctrl+Z", "undo")),
    (("Up/Down", "history"), ("Enter", "remember query"), ("Esc", "to results")),
)

PANE_HELP_TITLE = "SOURCE + RESULT"
PANE_HELP_ROWS: tuple[HelpRow, ...] = (
    (("Up/Down/j/k", "line"), ("PgUp/PgDn/b/Space", "page"), ("Ctrl+U/D", "half page")),
    (("g/G/Home/End", "top/bottom"), ("wheel", "scroll"), ("click", "focus")),
    (("?", "help"), ("q", "quit")),
)

GLOBAL_HELP_ROWS: tuple[HelpRow, ...] = (
    (("Tab/Shift+Tab", "focus"), ("Ctrl+T", "markdown/json"), ("Shift+Left/Right", "resize")),
    (("Ctrl+?", "help"), ("Ctrl+C/Ctrl+Q", "quit")),
)


def _format_row(row: HelpRow, theme: UITheme) -> str:
    parts = [f"{theme.help_key}{key}{theme.reset} {theme.help_dim}{desc}{theme.reset}" for key, desc in row]
    return "  ".join(parts)


def help_lines(focused_pane: Pane, theme: UITheme = DEFAULT_THEME) -> tuple[str, ...]:
    """Return help rows for the focused pane, most specific first."""
    if focused_pane is Pane.QUERY:
        title, rows = QUERY_HELP_TITLE, QUERY_HELP_ROWS
    else:
        title, rows = PANE_HELP_TITLE, PANE_HELP_ROWS
    lines = [f"{theme.help_heading}{title}{theme.reset}"]
    lines.extend(_format_row(row, theme) for row in rows)
    lines.extend(_format_row(row, theme) for row in GLOBAL_HELP_ROWS)
    return tuple(lines)
