"""Persistent JSON config helpers.

Stores the highlight style, UI theme, source pane width and result mode.
Malformed or missing config falls back to defaults; write failures are logged
and otherwise ignored.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path

from platformdirs import user_config_dir

from .values import DEFAULT_RESULT_MODE, RESULT_MODES

logger = logging.getLogger(__name__)

APP_NAME = "mq-tui"
CONFIG_FILENAME = "config.json"
CONFIG_PATH = Path(user_config_dir(APP_NAME, appauthor=False)) / CONFIG_FILENAME

DEFAULT_SOURCE_PANE_PERCENT = 50.0


def load_config() -> dict[str, object]:
    """Load the persisted JSON config object.

    Returns an empty dict when the file is missing, unreadable, malformed, or
    does not decode to a top-level JSON object.
    """
    try:
        data = json.loads(CONFIG_PATH.read_text(encoding="utf-8"))
    except FileNotFoundError:
        return {}
    except (OSError, ValueError) as exc:
        logger.warning("Ignoring unreadable config %s: %s", CONFIG_PATH, exc)
        return {}
    return data if isinstance(data, dict) else {}


def save_config(data: dict[str, object]) -> None:
    """Persist config data as pretty-printed JSON."""
    try:
        CONFIG_PATH.parent.mkdir(parents=True, exist_ok=True)
        CONFIG_PATH.write_text(json.dumps(data, indent=2) + "\n", encoding="utf-8")
    except (OSError, TypeError, ValueError) as exc:
        logger.warning("Could not write config %s: %s", CONFIG_PATH, exc)


def _load_string(key: str) -> str | None:
    value = load_config().get(key)
    if not isinstance(value, str):
        return None
    stripped = value.strip()
    return stripped if stripped else None


def _save_value(key: str, value: object) -> None:
    config = load_config()
    config[key] = value
    save_config(config)


def load_style_name() -> str | None:
    """Persisted Pygments style name, or ``None`` when unset."""
    return _load_string("style")


def load_theme_name() -> str | None:
    """Load persisted UI theme name, returning ``None`` when unset/invalid."""
    return _load_string("theme")


def load_source_pane_percent() -> float | None:
    """Read the source pane width, constrained to the open interval (0, 100)."""
    value = load_config().get("source_pane_percent")
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    if value <= 0 or value >= 100:
        return None
    return float(value)


def save_source_pane_percent(percent: float) -> None:
    """Persist the source pane width, clamped to ``[1.0, 99.0]``."""
    bounded = max(1.0, min(99.0, float(percent)))
    _save_value("source_pane_percent", round(bounded, 2))


def load_result_mode() -> str:
    value = _load_string("result_mode")
    if value in RESULT_MODES:
        return value
    return DEFAULT_RESULT_MODE


def save_result_mode(mode: str) -> None:
    if mode in RESULT_MODES:
        _save_value("result_mode", mode)
