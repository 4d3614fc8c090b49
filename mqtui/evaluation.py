"""Evaluation results, the shared result slot, and request schedulers.

Scheduling policy is "latest wins": every buffer change gets a new sequence
number; a request that is superseded before it starts never runs, and one
that finishes after being superseded is discarded. The slot only ever moves
forward in sequence order.
"""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Union

from .document import Document
from .engine import Err, QueryEngine
from .errors import QueryError
from .query import EvaluationCancelled
from .values import RSequence

logger = logging.getLogger(__name__)

SHUTDOWN_JOIN_SECONDS = 1.0


@dataclass(frozen=True)
class Pending:
    pass


@dataclass(frozen=True)
class Success:
    value: RSequence
    elapsed: float = field(default=0.0, compare=False)


@dataclass(frozen=True)
class Failure:
    error: QueryError
    elapsed: float = field(default=0.0, compare=False)


@dataclass(frozen=True)
class Empty:
    pass


EvaluationResult = Union[Pending, Success, Failure, Empty]


@dataclass(frozen=True)
class EvaluationRequest:
    query_text: str
    sequence_number: int


class ResultSlot:
    """Single-writer holder of the current ``EvaluationResult``.

    ``offer`` applies a completed result only when its sequence number is
    newer than the applied one and no newer request has been submitted.
    Reads return the result and its sequence number as one consistent pair.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._result: EvaluationResult = Empty()
        self._applied_sequence = 0
        self._latest_requested = 0
        self.applied_count = 0

    def snapshot(self) -> tuple[EvaluationResult, int]:
        with self._lock:
            return self._result, self._applied_sequence

    @property
    def result(self) -> EvaluationResult:
        return self.snapshot()[0]

    @property
    def latest_requested(self) -> int:
        with self._lock:
            return self._latest_requested

    def note_request(self, sequence_number: int) -> None:
        with self._lock:
            self._latest_requested = max(self._latest_requested, sequence_number)

    def is_superseded(self, sequence_number: int) -> bool:
        with self._lock:
            return sequence_number < self._latest_requested

    def mark_pending(self) -> None:
        """Show ``Pending`` in place of ``Empty`` while the first result runs."""
        with self._lock:
            if isinstance(self._result, Empty):
                self._result = Pending()

    def offer(self, sequence_number: int, result: EvaluationResult) -> bool:
        with self._lock:
            if sequence_number <= self._applied_sequence:
                return False
            if sequence_number < self._latest_requested:
                return False
            self._result = result
            self._applied_sequence = sequence_number
            self.applied_count += 1
            return True


class EvaluationScheduler:
    """Base scheduler: sequence numbering, blank short-circuit, result slot.

    ``on_applied`` is invoked (from whichever thread applied it) after a new
    result lands in the slot; the runtime uses it to wake the event loop.
    """

    def __init__(
        self,
        engine: QueryEngine,
        document: Document,
        on_applied: Callable[[], None] | None = None,
    ) -> None:
        self.engine = engine
        self.document = document
        self.slot = ResultSlot()
        self._on_applied = on_applied
        self._sequence_number = 0

    @property
    def sequence_number(self) -> int:
        return self._sequence_number

    @property
    def result(self) -> EvaluationResult:
        return self.slot.result

    @property
    def busy(self) -> bool:
        return False

    def submit(self, query_text: str) -> EvaluationRequest:
        """Register a new buffer state and schedule its evaluation."""
        self._sequence_number += 1
        request = EvaluationRequest(query_text, self._sequence_number)
        self.slot.note_request(request.sequence_number)
        if not query_text.strip():
            self._drop_pending()
            self._apply(request, Empty())
            return request
        self.slot.mark_pending()
        logger.debug("Scheduling #%d: %r", request.sequence_number, query_text)
        self._schedule(request)
        return request

    def _schedule(self, request: EvaluationRequest) -> None:
        raise NotImplementedError

    def _drop_pending(self) -> None:
        pass

    def _should_cancel(self, request: EvaluationRequest) -> bool:
        return self.slot.is_superseded(request.sequence_number)

    def _evaluate(self, request: EvaluationRequest) -> EvaluationResult | None:
        """Run one request; ``None`` means it was cancelled."""
        started = time.monotonic()
        try:
            outcome = self.engine.evaluate(
                self.document,
                request.query_text,
                should_cancel=lambda: self._should_cancel(request),
            )
        except EvaluationCancelled:
            logger.debug("Cancelled superseded request #%d", request.sequence_number)
            return None
        except Exception as exc:
            logger.exception("Query engine raised for request #%d", request.sequence_number)
            return Failure(QueryError(f"internal error: {exc}"), time.monotonic() - started)
        elapsed = time.monotonic() - started
        if isinstance(outcome, Err):
            return Failure(outcome.error, elapsed)
        return Success(outcome.value, elapsed)

    def _apply(self, request: EvaluationRequest, result: EvaluationResult) -> bool:
        applied = self.slot.offer(request.sequence_number, result)
        if not applied:
            logger.debug("Discarded stale result #%d", request.sequence_number)
            return False
        if self._on_applied is not None:
            self._on_applied()
        return True

    def run_pending(self) -> bool:
        """Cooperative hook for the loop; returns whether work was done."""
        return False

    @property
    def has_pending(self) -> bool:
        return False

    def shutdown(self) -> None:
        pass


class ThreadedEvaluationScheduler(EvaluationScheduler):
    """Evaluate on one daemon worker thread at a time.

    Requests collapse to the newest pending one so work never piles up
    behind stale keystrokes. A running request that gets superseded is
    cancelled cooperatively, or finishes and is discarded.
    """

    def __init__(
        self,
        engine: QueryEngine,
        document: Document,
        on_applied: Callable[[], None] | None = None,
    ) -> None:
        super().__init__(engine, document, on_applied)
        self._lock = threading.Lock()
        self._pending: EvaluationRequest | None = None
        self._running = False
        self._closed = False
        self._thread: threading.Thread | None = None

    @property
    def busy(self) -> bool:
        with self._lock:
            return self._running

    def _is_closed(self) -> bool:
        with self._lock:
            return self._closed

    def _should_cancel(self, request: EvaluationRequest) -> bool:
        return self._is_closed() or super()._should_cancel(request)

    def _worker(self) -> None:
        """Drain pending requests until none is left."""
        while True:
            with self._lock:
                request = self._pending
                self._pending = None
                if request is None or self._closed:
                    self._running = False
                    return

            result = self._evaluate(request)
            if result is not None and not self._is_closed():
                self._apply(request, result)

    def _schedule(self, request: EvaluationRequest) -> None:
        with self._lock:
            if self._closed:
                return
            self._pending = request
            if self._running:
                return
            self._running = True
            self._thread = threading.Thread(
                target=self._worker,
                name="mqtui-evaluator",
                daemon=True,
            )
            worker = self._thread
        worker.start()

    def _drop_pending(self) -> None:
        with self._lock:
            self._pending = None

    def shutdown(self, timeout: float = SHUTDOWN_JOIN_SECONDS) -> None:
        """Stop taking work and wait briefly for the running evaluation.

        The running evaluation sees its cancel check turn true; after the
        join no result is applied and ``on_applied`` is not called again.
        """
        with self._lock:
            self._closed = True
            self._pending = None
            worker = self._thread
        if worker is None or worker is threading.current_thread():
            return
        worker.join(timeout)
        if worker.is_alive():
            logger.warning("Evaluator thread still running %.1fs after shutdown", timeout)


class InlineEvaluationScheduler(EvaluationScheduler):
    """Single-threaded cooperative scheduler.

    ``submit`` only records the newest request; the loop calls
    ``run_pending`` when no input is waiting, so keystrokes that arrive
    first simply replace the request.
    """

    def __init__(
        self,
        engine: QueryEngine,
        document: Document,
        on_applied: Callable[[], None] | None = None,
    ) -> None:
        super().__init__(engine, document, on_applied)
        self._pending: EvaluationRequest | None = None

    @property
    def busy(self) -> bool:
        return self._pending is not None

    @property
    def has_pending(self) -> bool:
        return self._pending is not None

    def _schedule(self, request: EvaluationRequest) -> None:
        self._pending = request

    def _drop_pending(self) -> None:
        self._pending = None

    def run_pending(self) -> bool:
        request = self._pending
        if request is None:
            return False
        self._pending = None
        result = self._evaluate(request)
        if result is not None:
            self._apply(request, result)
        return True

    def shutdown(self) -> None:
        self._pending = None


def make_scheduler(
    engine: QueryEngine,
    document: Document,
    *,
    threaded: bool = True,
    on_applied: Callable[[], None] | None = None,
) -> EvaluationScheduler:
    cls = ThreadedEvaluationScheduler if threaded else InlineEvaluationScheduler
    return cls(engine, document, on_applied)
