"""Closed value type handed from the query adapter to the view.

``RenderableValue`` is a union of six frozen variants. Query outputs are
converted once, at the adapter boundary, so the view never sees query
runtime objects. Mappings converted from Markdown nodes remember the node
type so the result pane can show them as Markdown.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Union

from .document import MdNode
from .query.values import node_to_mapping

RESULT_MODES = ("markdown", "json")
DEFAULT_RESULT_MODE = "markdown"


@dataclass(frozen=True)
class RString:
    value: str


@dataclass(frozen=True)
class RNumber:
    value: int | float


@dataclass(frozen=True)
class RBool:
    value: bool


@dataclass(frozen=True)
class RNull:
    pass


@dataclass(frozen=True)
class RSequence:
    items: tuple[RenderableValue, ...]


@dataclass(frozen=True)
class RMapping:
    entries: tuple[tuple[str, RenderableValue], ...]
    node_type: str | None = None

    def get(self, key: str) -> RenderableValue | None:
        for entry_key, entry_value in self.entries:
            if entry_key == key:
                return entry_value
        return None


RenderableValue = Union[RString, RNumber, RBool, RNull, RSequence, RMapping]


def to_renderable(value: object) -> RenderableValue:
    """Convert a query runtime value into the closed variant."""
    if value is None:
        return RNull()
    if isinstance(value, bool):
        return RBool(value)
    if isinstance(value, (int, float)):
        return RNumber(value)
    if isinstance(value, str):
        return RString(value)
    if isinstance(value, MdNode):
        mapping = node_to_mapping(value)
        return RMapping(
            tuple((key, to_renderable(item)) for key, item in mapping.items()),
            node_type=value.type,
        )
    if isinstance(value, (list, tuple)):
        return RSequence(tuple(to_renderable(item) for item in value))
    if isinstance(value, dict):
        return RMapping(tuple((str(key), to_renderable(item)) for key, item in value.items()))
    return RString(str(value))


def to_plain(value: RenderableValue) -> object:
    """Project a renderable value back to JSON-compatible data."""
    if isinstance(value, RNull):
        return None
    if isinstance(value, (RString, RNumber, RBool)):
        return value.value
    if isinstance(value, RSequence):
        return [to_plain(item) for item in value.items]
    if isinstance(value, RMapping):
        return {key: to_plain(item) for key, item in value.entries}
    raise TypeError(f"not a renderable value: {value!r}")


def _json_text(value: RenderableValue, indent: int | None = 2) -> str:
    return json.dumps(to_plain(value), ensure_ascii=False, indent=indent)


def _markdown_text(value: RenderableValue) -> str:
    if isinstance(value, RString):
        return value.value
    if isinstance(value, RMapping) and value.node_type is not None:
        markdown = value.get("markdown")
        if isinstance(markdown, RString) and markdown.value:
            return markdown.value
        text = value.get("text")
        return text.value if isinstance(text, RString) else ""
    if isinstance(value, RSequence) and value.items and all(
        isinstance(item, RMapping) and item.node_type is not None for item in value.items
    ):
        return "\n\n".join(_markdown_text(item) for item in value.items)
    return _json_text(value)


def format_outputs(outputs: RSequence, mode: str = DEFAULT_RESULT_MODE) -> list[str]:
    """Format a stream of query outputs into display lines.

    ``markdown`` shows nodes as their Markdown source and strings raw, one
    output after another separated by blank lines. ``json`` pretty prints
    every output.
    """
    lines: list[str] = []
    for idx, item in enumerate(outputs.items):
        text = _json_text(item) if mode == "json" else _markdown_text(item)
        if idx and mode == "markdown":
            lines.append("")
        lines.extend(text.splitlines() or [""])
    return lines


def output_count(value: RenderableValue) -> int:
    return len(value.items) if isinstance(value, RSequence) else 1
