"""Query engine adapter: the only seam between the UI core and the language.

``evaluate`` is pure from the caller's point of view: the same document and
query text always give an equal result. It never raises for bad query text.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import Union

from .document import Document
from .errors import QueryError
from .query import EvaluationCancelled, EvaluationFailure, run_query
from .values import RSequence, to_renderable

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Ok:
    value: RSequence


@dataclass(frozen=True)
class Err:
    error: QueryError


EngineResult = Union[Ok, Err]


class QueryEngine:
    """Adapter over the bundled query language.

    Subclasses or stand-ins only need ``evaluate``; the evaluation
    schedulers depend on nothing else.
    """

    def evaluate(
        self,
        document: Document | str,
        query_text: str,
        should_cancel: Callable[[], bool] | None = None,
    ) -> EngineResult:
        """Run ``query_text`` against ``document``.

        Returns ``Ok`` holding the stream of outputs as an ``RSequence``, or
        ``Err`` with a human readable ``QueryError``. ``EvaluationCancelled``
        is the only exception that escapes, and only when ``should_cancel``
        fired.
        """
        if isinstance(document, str):
            document = Document(document, "query.md")
        try:
            outputs = run_query(document.nodes, query_text, should_cancel)
            return Ok(RSequence(tuple(to_renderable(item) for item in outputs)))
        except EvaluationCancelled:
            raise
        except QueryError as exc:
            logger.debug("Query %r failed to parse: %s", query_text, exc)
            return Err(exc)
        except EvaluationFailure as exc:
            logger.debug("Query %r failed at runtime: %s", query_text, exc.message)
            return Err(QueryError(exc.message, exc.pos))
        except RecursionError:
            return Err(QueryError("query is nested too deeply"))
        except Exception as exc:
            logger.exception("Unexpected failure evaluating %r", query_text)
            return Err(QueryError(f"internal error: {exc}"))


def evaluate(document: Document | str, query_text: str) -> EngineResult:
    """Module-level convenience wrapper around a default ``QueryEngine``."""
    return QueryEngine().evaluate(document, query_text)
