"""Stream evaluator for parsed queries.

Every expression maps one input value to a lazy stream of outputs. Markdown
selectors (``.h2``, ``.code``...) filter nodes; any other ``.name`` is field
access.
"""

from __future__ import annotations

import itertools
import math
from collections.abc import Callable, Iterator

from ..document import MdNode
from . import ast
from .builtins import lookup
from .values import (
    EvaluationCancelled,
    EvaluationFailure,
    compare_values,
    is_truthy,
    node_to_mapping,
    type_name,
)

SELECTOR_TYPES: dict[str, tuple[str, int | None]] = {
    "h": ("heading", None),
    "heading": ("heading", None),
    "paragraph": ("paragraph", None),
    "code": ("code", None),
    "inline_code": ("inline_code", None),
    "list": ("list", None),
    "item": ("item", None),
    "blockquote": ("blockquote", None),
    "table": ("table", None),
    "hr": ("hr", None),
    "html": ("html", None),
    "link": ("link", None),
    "image": ("image", None),
    "strong": ("strong", None),
    "emphasis": ("emphasis", None),
}
SELECTOR_TYPES.update({f"h{level}": ("heading", level) for level in range(1, 7)})

CHECKPOINT_INTERVAL = 256


class Evaluator:
    """Evaluate expressions against document nodes.

    ``should_cancel`` is polled every ``CHECKPOINT_INTERVAL`` steps; when it
    returns true evaluation stops with ``EvaluationCancelled``.
    """

    def __init__(
        self,
        document_nodes: tuple[MdNode, ...],
        should_cancel: Callable[[], bool] | None = None,
    ) -> None:
        self.document_nodes = document_nodes
        self._should_cancel = should_cancel
        self._steps = 0

    def checkpoint(self) -> None:
        if self._should_cancel is None:
            return
        self._steps += 1
        if self._steps % CHECKPOINT_INTERVAL == 0 and self._should_cancel():
            raise EvaluationCancelled()

    def run(self, expr: ast.Expr) -> list[object]:
        """Evaluate ``expr`` with the document sequence as input."""
        outputs: list[object] = []
        for value in self.eval(expr, list(self.document_nodes)):
            self.checkpoint()
            outputs.append(value)
        return outputs

    def eval(self, expr: ast.Expr, value: object) -> Iterator[object]:
        self.checkpoint()
        method = getattr(self, f"_eval_{type(expr).__name__}")
        return method(expr, value)

    def _eval_Identity(self, expr: ast.Identity, value: object) -> Iterator[object]:
        yield value

    def _eval_RecurseAll(self, expr: ast.RecurseAll, value: object) -> Iterator[object]:
        yield value
        if isinstance(value, MdNode):
            children: list[object] = list(value.children)
        elif isinstance(value, list):
            children = value
        elif isinstance(value, dict):
            children = list(value.values())
        else:
            return
        for child in children:
            yield from self._eval_RecurseAll(expr, child)

    def _eval_Literal(self, expr: ast.Literal, value: object) -> Iterator[object]:
        yield expr.value

    def _eval_Field(self, expr: ast.Field, value: object) -> Iterator[object]:
        for target in self.eval(expr.target, value):
            yield from self._field(target, expr.name, expr.pos)

    def _field(self, target: object, name: str, pos: int) -> Iterator[object]:
        if name in SELECTOR_TYPES and not isinstance(target, dict):
            node_type, depth = SELECTOR_TYPES[name]
            yield from self._select_nodes(target, node_type, depth)
            return
        if isinstance(target, MdNode):
            if name == "children":
                yield list(target.children)
            else:
                yield node_to_mapping(target, include_children=False).get(name)
            return
        if isinstance(target, dict):
            yield target.get(name)
            return
        if target is None:
            yield None
            return
        raise EvaluationFailure(f'cannot index {type_name(target)} with "{name}"', pos)

    def _select_nodes(self, target: object, node_type: str, depth: int | None) -> Iterator[object]:
        if isinstance(target, list):
            for item in target:
                yield from self._select_nodes(item, node_type, depth)
            return
        if not isinstance(target, MdNode):
            return
        for node in target.walk():
            self.checkpoint()
            if node.type == node_type and (depth is None or node.depth == depth):
                yield node

    def _indexable(self, target: object) -> object:
        if isinstance(target, MdNode):
            return list(target.children)
        return target

    def _eval_Index(self, expr: ast.Index, value: object) -> Iterator[object]:
        for target in self.eval(expr.target, value):
            for index in self.eval(expr.index, value):
                yield self._index(self._indexable(target), index, expr.pos)

    def _index(self, target: object, index: object, pos: int) -> object:
        if target is None:
            return None
        if isinstance(index, str):
            if isinstance(target, dict):
                return target.get(index)
            raise EvaluationFailure(f'cannot index {type_name(target)} with "{index}"', pos)
        if isinstance(index, (int, float)) and not isinstance(index, bool):
            if not isinstance(target, (list, str)):
                raise EvaluationFailure(f"cannot index {type_name(target)} with number", pos)
            position = math.floor(index)
            if position < 0:
                position += len(target)
            if 0 <= position < len(target):
                return target[position]
            return None
        raise EvaluationFailure(
            f"cannot index {type_name(target)} with {type_name(index)}", pos
        )

    def _eval_Slice(self, expr: ast.Slice, value: object) -> Iterator[object]:
        starts = list(self.eval(expr.start, value)) if expr.start is not None else [None]
        stops = list(self.eval(expr.stop, value)) if expr.stop is not None else [None]
        for target in self.eval(expr.target, value):
            target = self._indexable(target)
            if target is None:
                yield None
                continue
            if not isinstance(target, (list, str)):
                raise EvaluationFailure(f"cannot slice {type_name(target)}", expr.pos)
            for start in starts:
                for stop in stops:
                    for bound in (start, stop):
                        if bound is not None and (
                            not isinstance(bound, (int, float)) or isinstance(bound, bool)
                        ):
                            raise EvaluationFailure("slice bounds must be numbers", expr.pos)
                    lo = None if start is None else math.floor(start)
                    hi = None if stop is None else math.ceil(stop)
                    yield target[lo:hi]

    def _eval_Iterate(self, expr: ast.Iterate, value: object) -> Iterator[object]:
        for target in self.eval(expr.target, value):
            if isinstance(target, list):
                yield from target
            elif isinstance(target, dict):
                yield from target.values()
            elif isinstance(target, MdNode):
                yield from target.children
            else:
                raise EvaluationFailure(f"cannot iterate over {type_name(target)}", expr.pos)

    def _eval_Try(self, expr: ast.Try, value: object) -> Iterator[object]:
        try:
            yield from self.eval(expr.body, value)
        except EvaluationFailure:
            return

    def _eval_Pipe(self, expr: ast.Pipe, value: object) -> Iterator[object]:
        for intermediate in self.eval(expr.left, value):
            yield from self.eval(expr.right, intermediate)

    def _eval_Comma(self, expr: ast.Comma, value: object) -> Iterator[object]:
        yield from self.eval(expr.left, value)
        yield from self.eval(expr.right, value)

    def _eval_Alternative(self, expr: ast.Alternative, value: object) -> Iterator[object]:
        produced = False
        try:
            for item in self.eval(expr.left, value):
                if is_truthy(item):
                    produced = True
                    yield item
        except EvaluationFailure:
            pass
        if not produced:
            yield from self.eval(expr.right, value)

    def _eval_BoolOp(self, expr: ast.BoolOp, value: object) -> Iterator[object]:
        for left in self.eval(expr.left, value):
            if expr.op == "and" and not is_truthy(left):
                yield False
                continue
            if expr.op == "or" and is_truthy(left):
                yield True
                continue
            for right in self.eval(expr.right, value):
                yield is_truthy(right)

    def _eval_BinOp(self, expr: ast.BinOp, value: object) -> Iterator[object]:
        for right in self.eval(expr.right, value):
            for left in self.eval(expr.left, value):
                yield self._binary(expr.op, left, right, expr.pos)

    def _binary(self, op: str, left: object, right: object, pos: int) -> object:
        if op == "==":
            return compare_values(left, right) == 0
        if op == "!=":
            return compare_values(left, right) != 0
        if op == "<":
            return compare_values(left, right) < 0
        if op == "<=":
            return compare_values(left, right) <= 0
        if op == ">":
            return compare_values(left, right) > 0
        if op == ">=":
            return compare_values(left, right) >= 0
        if op == "+":
            return self.add(left, right, pos)
        if _is_number(left) and _is_number(right):
            if op == "-":
                return left - right
            if op == "*":
                return left * right
            if right == 0 and op in {"/", "%"}:
                raise EvaluationFailure("division by zero", pos)
            if op == "/":
                result = left / right
                if isinstance(left, int) and isinstance(right, int) and result.is_integer():
                    return int(result)
                return result
            return int(left) % int(right)
        if op == "-" and isinstance(left, list) and isinstance(right, list):
            return [item for item in left if all(compare_values(item, other) != 0 for other in right)]
        if op == "*" and isinstance(left, str) and _is_number(right):
            return left * int(right) if right > 0 else None
        if op == "/" and isinstance(left, str) and isinstance(right, str):
            return left.split(right) if right else list(left)
        raise EvaluationFailure(
            f"{type_name(left)} and {type_name(right)} cannot be combined with '{op}'", pos
        )

    def add(self, left: object, right: object, pos: int) -> object:
        if left is None:
            return right
        if right is None:
            return left
        if _is_number(left) and _is_number(right):
            return left + right
        if isinstance(left, str) and isinstance(right, str):
            return left + right
        if isinstance(left, list) and isinstance(right, list):
            return left + right
        if isinstance(left, dict) and isinstance(right, dict):
            return {**left, **right}
        raise EvaluationFailure(f"{type_name(left)} and {type_name(right)} cannot be added", pos)

    def _eval_Negate(self, expr: ast.Negate, value: object) -> Iterator[object]:
        for operand in self.eval(expr.operand, value):
            if not _is_number(operand):
                raise EvaluationFailure(f"{type_name(operand)} cannot be negated", expr.pos)
            yield -operand

    def _eval_ArrayCons(self, expr: ast.ArrayCons, value: object) -> Iterator[object]:
        if expr.body is None:
            yield []
            return
        yield list(self.eval(expr.body, value))

    def _eval_ObjectCons(self, expr: ast.ObjectCons, value: object) -> Iterator[object]:
        columns: list[list[tuple[str, object]]] = []
        for key_expr, value_expr in expr.entries:
            keys = list(self.eval(key_expr, value))
            for key in keys:
                if not isinstance(key, str):
                    raise EvaluationFailure(
                        f"object keys must be strings, got {type_name(key)}", key_expr.pos
                    )
            values = list(self.eval(value_expr, value))
            columns.append([(key, item) for key in keys for item in values])
        for combination in itertools.product(*columns):
            self.checkpoint()
            yield dict(combination)

    def _eval_IfElse(self, expr: ast.IfElse, value: object) -> Iterator[object]:
        yield from self._if_branches(expr, 0, value)

    def _if_branches(self, expr: ast.IfElse, index: int, value: object) -> Iterator[object]:
        if index >= len(expr.branches):
            if expr.otherwise is None:
                yield value
            else:
                yield from self.eval(expr.otherwise, value)
            return
        cond_expr, then_expr = expr.branches[index]
        for cond in self.eval(cond_expr, value):
            if is_truthy(cond):
                yield from self.eval(then_expr, value)
            else:
                yield from self._if_branches(expr, index + 1, value)

    def _eval_Call(self, expr: ast.Call, value: object) -> Iterator[object]:
        fn = lookup(expr.name, len(expr.args))
        if fn is None:
            raise EvaluationFailure(f"unknown function {expr.name!r}", expr.pos)
        return fn(self, expr.args, value, expr.pos)


def _is_number(value: object) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)
