"""Builtin functions of the query language.

Each builtin receives the running evaluator, its unevaluated argument
expressions, and the current input value, and yields output values.
Arguments are evaluated against the same input, jq-style.
"""

from __future__ import annotations

import re
from collections.abc import Callable, Iterator
from typing import TYPE_CHECKING

from ..document import MdNode
from .ast import Expr
from .values import (
    EvaluationFailure,
    compare_values,
    is_truthy,
    node_to_mapping,
    sort_key,
    to_text,
    type_name,
)

if TYPE_CHECKING:
    from .evaluator import Evaluator

Builtin = Callable[["Evaluator", tuple[Expr, ...], object, int], Iterator[object]]

_REGISTRY: dict[tuple[str, int], Builtin] = {}


def builtin(name: str, arity: int = 0):
    def register(fn: Builtin) -> Builtin:
        _REGISTRY[(name, arity)] = fn
        return fn

    return register


def lookup(name: str, arity: int) -> Builtin | None:
    return _REGISTRY.get((name, arity))


def known_name(name: str) -> bool:
    return any(key[0] == name for key in _REGISTRY)


def arities(name: str) -> list[int]:
    return sorted(arity for key_name, arity in _REGISTRY if key_name == name)


def _one(ev: Evaluator, expr: Expr, value: object) -> Iterator[object]:
    yield from ev.eval(expr, value)


def _string_arg(ev: Evaluator, expr: Expr, value: object, pos: int, fn: str) -> Iterator[str]:
    for arg in ev.eval(expr, value):
        if not isinstance(arg, str):
            raise EvaluationFailure(f"{fn}() expects a string argument, got {type_name(arg)}", pos)
        yield arg


def _require_string(value: object, pos: int, fn: str) -> str:
    if isinstance(value, MdNode):
        return value.text
    if not isinstance(value, str):
        raise EvaluationFailure(f"{fn}() cannot be applied to {type_name(value)}", pos)
    return value


def _require_sequence(value: object, pos: int, fn: str) -> list[object]:
    if isinstance(value, MdNode):
        return list(value.children)
    if not isinstance(value, list):
        raise EvaluationFailure(f"{fn}() cannot be applied to {type_name(value)}", pos)
    return value


@builtin("empty")
def _empty(ev, args, value, pos):
    return iter(())


@builtin("error", 1)
def _error(ev, args, value, pos):
    for message in ev.eval(args[0], value):
        raise EvaluationFailure(to_text(message), pos)
    return iter(())


@builtin("not")
def _not(ev, args, value, pos):
    yield not is_truthy(value)


@builtin("length")
def _length(ev, args, value, pos):
    if value is None:
        yield 0
    elif isinstance(value, bool):
        raise EvaluationFailure("boolean has no length", pos)
    elif isinstance(value, (int, float)):
        yield abs(value)
    elif isinstance(value, (str, list, dict)):
        yield len(value)
    elif isinstance(value, MdNode):
        yield len(value.children)
    else:
        raise EvaluationFailure(f"{type_name(value)} has no length", pos)


@builtin("type")
def _type(ev, args, value, pos):
    yield type_name(value)


@builtin("keys")
def _keys(ev, args, value, pos):
    if isinstance(value, dict):
        yield sorted(value.keys())
    elif isinstance(value, MdNode):
        yield sorted(node_to_mapping(value, include_children=False).keys())
    elif isinstance(value, list):
        yield list(range(len(value)))
    else:
        raise EvaluationFailure(f"{type_name(value)} has no keys", pos)


@builtin("values")
def _values(ev, args, value, pos):
    if isinstance(value, dict):
        yield list(value.values())
    elif isinstance(value, list):
        yield list(value)
    elif isinstance(value, MdNode):
        yield list(value.children)
    else:
        raise EvaluationFailure(f"{type_name(value)} has no values", pos)


@builtin("has", 1)
def _has(ev, args, value, pos):
    for key in ev.eval(args[0], value):
        if isinstance(value, dict):
            yield key in value
        elif isinstance(value, list) and isinstance(key, int) and not isinstance(key, bool):
            yield 0 <= key < len(value)
        elif isinstance(value, MdNode) and isinstance(key, str):
            yield node_to_mapping(value, include_children=False).get(key) is not None
        else:
            raise EvaluationFailure(
                f"cannot check whether {type_name(value)} has a {type_name(key)} key", pos
            )


@builtin("select", 1)
def _select(ev, args, value, pos):
    for cond in ev.eval(args[0], value):
        if is_truthy(cond):
            yield value


@builtin("map", 1)
def _map(ev, args, value, pos):
    items = _require_sequence(value, pos, "map") if not isinstance(value, dict) else list(value.values())
    out: list[object] = []
    for item in items:
        out.extend(ev.eval(args[0], item))
    yield out


@builtin("contains", 1)
def _contains(ev, args, value, pos):
    for needle in ev.eval(args[0], value):
        if isinstance(value, (str, MdNode)) and isinstance(needle, str):
            yield needle in _require_string(value, pos, "contains")
        elif isinstance(value, list):
            yield any(compare_values(item, needle) == 0 for item in value)
        elif isinstance(value, dict) and isinstance(needle, dict):
            yield all(k in value and compare_values(value[k], v) == 0 for k, v in needle.items())
        else:
            raise EvaluationFailure(
                f"{type_name(value)} and {type_name(needle)} cannot have their containment checked",
                pos,
            )


@builtin("startswith", 1)
def _startswith(ev, args, value, pos):
    text = _require_string(value, pos, "startswith")
    for prefix in _string_arg(ev, args[0], value, pos, "startswith"):
        yield text.startswith(prefix)


@builtin("endswith", 1)
def _endswith(ev, args, value, pos):
    text = _require_string(value, pos, "endswith")
    for suffix in _string_arg(ev, args[0], value, pos, "endswith"):
        yield text.endswith(suffix)


@builtin("test", 1)
def _test(ev, args, value, pos):
    text = _require_string(value, pos, "test")
    for pattern in _string_arg(ev, args[0], value, pos, "test"):
        try:
            yield re.search(pattern, text) is not None
        except re.error as exc:
            raise EvaluationFailure(f"invalid regular expression: {exc}", pos) from exc


@builtin("split", 1)
def _split(ev, args, value, pos):
    text = _require_string(value, pos, "split")
    for sep in _string_arg(ev, args[0], value, pos, "split"):
        yield text.split(sep) if sep else list(text)


@builtin("join", 1)
def _join(ev, args, value, pos):
    items = _require_sequence(value, pos, "join")
    for sep in _string_arg(ev, args[0], value, pos, "join"):
        yield sep.join("" if item is None else to_text(item) for item in items)


@builtin("ltrimstr", 1)
def _ltrimstr(ev, args, value, pos):
    for prefix in ev.eval(args[0], value):
        if isinstance(value, str) and isinstance(prefix, str) and value.startswith(prefix):
            yield value[len(prefix) :]
        else:
            yield value


@builtin("rtrimstr", 1)
def _rtrimstr(ev, args, value, pos):
    for suffix in ev.eval(args[0], value):
        if isinstance(value, str) and isinstance(suffix, str) and suffix and value.endswith(suffix):
            yield value[: -len(suffix)]
        else:
            yield value


@builtin("upcase")
def _upcase(ev, args, value, pos):
    yield _require_string(value, pos, "upcase").upper()


@builtin("downcase")
def _downcase(ev, args, value, pos):
    yield _require_string(value, pos, "downcase").lower()


@builtin("trim")
def _trim(ev, args, value, pos):
    yield _require_string(value, pos, "trim").strip()


@builtin("tostring")
def _tostring(ev, args, value, pos):
    yield to_text(value)


@builtin("to_text")
def _to_text(ev, args, value, pos):
    yield to_text(value)


@builtin("to_markdown")
def _to_markdown(ev, args, value, pos):
    if isinstance(value, MdNode):
        yield value.markdown
    elif isinstance(value, list) and all(isinstance(item, MdNode) for item in value):
        yield "\n\n".join(item.markdown for item in value)
    else:
        yield to_text(value)


@builtin("tonumber")
def _tonumber(ev, args, value, pos):
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        yield value
        return
    text = _require_string(value, pos, "tonumber").strip()
    try:
        yield int(text)
    except ValueError:
        try:
            yield float(text)
        except ValueError as exc:
            raise EvaluationFailure(f"cannot parse {text!r} as a number", pos) from exc


@builtin("first")
def _first(ev, args, value, pos):
    items = _require_sequence(value, pos, "first")
    yield items[0] if items else None


@builtin("last")
def _last(ev, args, value, pos):
    items = _require_sequence(value, pos, "last")
    yield items[-1] if items else None


@builtin("first", 1)
def _first_of(ev, args, value, pos):
    for item in ev.eval(args[0], value):
        yield item
        return


@builtin("reverse")
def _reverse(ev, args, value, pos):
    if isinstance(value, str):
        yield value[::-1]
    else:
        yield list(reversed(_require_sequence(value, pos, "reverse")))


@builtin("sort")
def _sort(ev, args, value, pos):
    yield sorted(_require_sequence(value, pos, "sort"), key=sort_key)


@builtin("unique")
def _unique(ev, args, value, pos):
    out: list[object] = []
    for item in sorted(_require_sequence(value, pos, "unique"), key=sort_key):
        if not out or compare_values(out[-1], item) != 0:
            out.append(item)
    yield out


@builtin("min")
def _min(ev, args, value, pos):
    items = _require_sequence(value, pos, "min")
    yield min(items, key=sort_key) if items else None


@builtin("max")
def _max(ev, args, value, pos):
    items = _require_sequence(value, pos, "max")
    yield max(items, key=sort_key) if items else None


@builtin("add")
def _add(ev, args, value, pos):
    items = _require_sequence(value, pos, "add")
    total: object = None
    for item in items:
        total = ev.add(total, item, pos)
    yield total


@builtin("range", 1)
def _range(ev, args, value, pos):
    for limit in ev.eval(args[0], value):
        if not isinstance(limit, (int, float)) or isinstance(limit, bool):
            raise EvaluationFailure("range() expects a number", pos)
        count = 0
        while count < limit:
            ev.checkpoint()
            yield count
            count += 1


@builtin("nodes")
def _nodes(ev, args, value, pos):
    yield list(ev.document_nodes)
