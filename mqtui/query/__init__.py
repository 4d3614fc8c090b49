"""Bundled jq-flavoured query language over Markdown nodes."""

from __future__ import annotations

from collections.abc import Callable

from ..document import MdNode
from .evaluator import Evaluator
from .parser import parse
from .values import EvaluationCancelled, EvaluationFailure


def run_query(
    nodes: tuple[MdNode, ...],
    text: str,
    should_cancel: Callable[[], bool] | None = None,
) -> list[object]:
    """Parse ``text`` and return every output it produces for ``nodes``."""
    return Evaluator(nodes, should_cancel).run(parse(text))


__all__ = [
    "EvaluationCancelled",
    "EvaluationFailure",
    "Evaluator",
    "parse",
    "run_query",
]
