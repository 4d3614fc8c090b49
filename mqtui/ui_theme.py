"""UI theme definitions and selection helpers.

Themes color the chrome only (pane titles, status row, query prompt, help).
Syntax highlighting of source and results is a separate Pygments style.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class UITheme:
    """Semantic ANSI palette used by the renderer."""

    name: str
    divider: str
    reverse: str
    reset: str
    pane_title: str
    pane_title_focused: str
    query_prompt: str
    query_text: str
    query_error_marker: str
    error_text: str
    status_bar: str
    status_busy: str
    help_heading: str
    help_key: str
    help_dim: str


DEFAULT_THEME = UITheme(
    name="default",
    divider="\033[2m",
    reverse="\033[7m",
    reset="\033[0m",
    pane_title="\033[2;38;5;250m",
    pane_title_focused="\033[1;38;5;81m",
    query_prompt="\033[1;38;5;44m",
    query_text="\033[38;5;252m",
    query_error_marker="\033[1;38;5;203m",
    error_text="\033[38;5;203m",
    status_bar="\033[7m",
    status_busy="\033[38;5;214m",
    help_heading="\033[1;38;5;81m",
    help_key="\033[38;5;229m",
    help_dim="\033[2;38;5;250m",
)

OCEAN_THEME = UITheme(
    name="ocean",
    divider="\033[2;38;5;31m",
    reverse="\033[7m",
    reset="\033[0m",
    pane_title="\033[2;38;5;110m",
    pane_title_focused="\033[1;38;5;45m",
    query_prompt="\033[1;38;5;39m",
    query_text="\033[38;5;153m",
    query_error_marker="\033[1;38;5;209m",
    error_text="\033[38;5;209m",
    status_bar="\033[48;5;24;38;5;255m",
    status_busy="\033[38;5;215m",
    help_heading="\033[1;38;5;45m",
    help_key="\033[38;5;153m",
    help_dim="\033[2;38;5;110m",
)

PLAIN_THEME = UITheme(
    name="plain",
    divider="",
    reverse="",
    reset="",
    pane_title="",
    pane_title_focused="",
    query_prompt="",
    query_text="",
    query_error_marker="",
    error_text="",
    status_bar="",
    status_busy="",
    help_heading="",
    help_key="",
    help_dim="",
)

_THEMES: dict[str, UITheme] = {
    DEFAULT_THEME.name: DEFAULT_THEME,
    OCEAN_THEME.name: OCEAN_THEME,
}


def available_theme_names() -> tuple[str, ...]:
    """Return selectable non-plain theme names."""
    return tuple(sorted(_THEMES.keys()))


def normalize_theme_name(name: str | None) -> str:
    """Return a valid theme name, falling back to default."""
    if not name:
        return DEFAULT_THEME.name
    candidate = str(name).strip().lower()
    if candidate in _THEMES:
        return candidate
    return DEFAULT_THEME.name


def resolve_theme(name: str | None, *, no_color: bool = False) -> UITheme:
    """Return concrete theme for requested name and color mode."""
    if no_color:
        return PLAIN_THEME
    return _THEMES[normalize_theme_name(name)]


__all__ = [
    "UITheme",
    "DEFAULT_THEME",
    "OCEAN_THEME",
    "PLAIN_THEME",
    "available_theme_names",
    "normalize_theme_name",
    "resolve_theme",
]
