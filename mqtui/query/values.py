"""Runtime value helpers for the query evaluator.

Query values are plain Python data: ``None``, ``bool``, ``int``/``float``,
``str``, ``list``, ``dict`` and ``MdNode``.
"""

from __future__ import annotations

import json

from ..document import MdNode

NODE_FIELDS = ("type", "depth", "text", "lang", "url", "title", "ordered", "line", "markdown")

# jq ordering between kinds: null < false < true < numbers < strings < arrays < objects.
_KIND_ORDER = {"null": 0, "boolean": 1, "number": 3, "string": 4, "node": 5, "sequence": 6, "mapping": 7}


class EvaluationFailure(Exception):
    """Runtime failure tied to a query offset."""

    def __init__(self, message: str, pos: int | None) -> None:
        super().__init__(message)
        self.message = message
        self.pos = pos


class EvaluationCancelled(Exception):
    """Raised from inside evaluation when the cancellation probe fires."""


def type_name(value: object) -> str:
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, (int, float)):
        return "number"
    if isinstance(value, str):
        return "string"
    if isinstance(value, list):
        return "sequence"
    if isinstance(value, dict):
        return "mapping"
    if isinstance(value, MdNode):
        return "node"
    return type(value).__name__


def is_truthy(value: object) -> bool:
    return value is not None and value is not False


def node_to_mapping(node: MdNode, include_children: bool = True) -> dict[str, object]:
    """Project a node onto a plain mapping, dropping unset attributes."""
    out: dict[str, object] = {}
    for name in NODE_FIELDS:
        attr = getattr(node, name)
        if attr is None:
            continue
        if name == "text" and attr == "" and node.type in {"hr"}:
            continue
        out[name] = attr
    if include_children and node.children:
        out["children"] = list(node.children)
    return out


def to_text(value: object) -> str:
    """Plain-text rendering used by ``to_text``/``tostring`` and joins."""
    if isinstance(value, str):
        return value
    if isinstance(value, MdNode):
        return value.text
    if isinstance(value, list) and value and all(isinstance(item, MdNode) for item in value):
        return "\n".join(item.text for item in value)
    return json.dumps(to_plain(value), ensure_ascii=False)


def to_plain(value: object) -> object:
    """Convert nodes (recursively) into JSON-compatible data."""
    if isinstance(value, MdNode):
        return {key: to_plain(item) for key, item in node_to_mapping(value).items()}
    if isinstance(value, list):
        return [to_plain(item) for item in value]
    if isinstance(value, dict):
        return {str(key): to_plain(item) for key, item in value.items()}
    return value


def sort_key(value: object):
    kind = type_name(value)
    rank = _KIND_ORDER.get(kind, 8)
    if kind == "boolean":
        return (rank + (1 if value else 0), 0)
    if kind == "number":
        return (rank, value)
    if kind == "string":
        return (rank, value)
    if kind == "node":
        return (rank, value.text)
    if kind == "sequence":
        return (rank, tuple(sort_key(item) for item in value))
    if kind == "mapping":
        return (rank, tuple(sorted((str(k), sort_key(v)) for k, v in value.items())))
    return (rank, 0)


def compare_values(left: object, right: object) -> int:
    """Three-way comparison following the cross-kind ordering above."""
    if isinstance(left, MdNode) and isinstance(right, MdNode):
        return 0 if left == right else (-1 if sort_key(left) < sort_key(right) else 1)
    lkey = sort_key(left)
    rkey = sort_key(right)
    if lkey == rkey:
        return 0
    return -1 if lkey < rkey else 1
