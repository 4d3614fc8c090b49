"""Main interactive event loop for the terminal UI.

Waits for the next key or wake-up, dispatches it, schedules evaluation of
edited query text and repaints when something changed. Feature logic lives
in the dispatcher and in the callbacks supplied by the application.
"""

from __future__ import annotations

import fcntl
import logging
import os
import select
import signal
import threading
from collections.abc import Callable
from dataclasses import dataclass

from ..input import InputDispatcher, has_pending_input, read_key
from ..view_model import TerminalSize
from .terminal import TerminalController

logger = logging.getLogger(__name__)

WAKE_EVENT = "WAKE"
INPUT_CLOSED_EVENT = "INPUT_CLOSED"


@dataclass(frozen=True)
class RuntimeLoopTiming:
    """Timing constants controlling interactive loop behavior."""

    idle_poll_ms: int = 120


class EventSource:
    """Blocking wait on the keyboard fd plus a self-pipe for wake-ups.

    ``wake`` may be called from any thread or from a signal handler; it makes
    a pending ``next_event`` return ``WAKE_EVENT`` immediately.
    """

    def __init__(self, input_fd: int) -> None:
        self.input_fd = input_fd
        self._wake_r, self._wake_w = os.pipe()
        for fd in (self._wake_r, self._wake_w):
            flags = fcntl.fcntl(fd, fcntl.F_GETFL)
            fcntl.fcntl(fd, fcntl.F_SETFL, flags | os.O_NONBLOCK)
        self._previous_winch: object | None = None
        self._closed = False
        self._lock = threading.Lock()

    def wake(self) -> None:
        # Never blocks: a signal handler may run while ``close`` holds the lock.
        if not self._lock.acquire(blocking=False):
            return
        try:
            if self._closed:
                return
            try:
                os.write(self._wake_w, b"\0")
            except OSError:
                # Pipe full; a wake-up is already pending.
                pass
        finally:
            self._lock.release()

    def _drain_wake_pipe(self) -> None:
        while True:
            try:
                if not os.read(self._wake_r, 512):
                    return
            except BlockingIOError:
                return

    def install_resize_handler(self) -> None:
        """Turn SIGWINCH into a wake-up so resizes repaint without input."""
        sigwinch = getattr(signal, "SIGWINCH", None)
        if sigwinch is None or threading.current_thread() is not threading.main_thread():
            return
        self._previous_winch = signal.signal(sigwinch, lambda _signum, _frame: self.wake())

    def next_event(self, timeout_ms: int) -> str:
        """Return the next key token, a wake or input-closed event, or ``""`` on timeout."""
        if has_pending_input():
            return read_key(self.input_fd, timeout_ms=0)
        ready, _, _ = select.select(
            [self.input_fd, self._wake_r], [], [], max(0.0, timeout_ms / 1000.0)
        )
        if self.input_fd in ready:
            if self._wake_r in ready:
                self._drain_wake_pipe()
            # A readable fd that yields nothing has reached end of input.
            return read_key(self.input_fd, timeout_ms=0) or INPUT_CLOSED_EVENT
        if self._wake_r in ready:
            self._drain_wake_pipe()
            return WAKE_EVENT
        return ""

    def close(self) -> None:
        sigwinch = getattr(signal, "SIGWINCH", None)
        if self._previous_winch is not None and sigwinch is not None:
            signal.signal(sigwinch, self._previous_winch)
            self._previous_winch = None
        with self._lock:
            if self._closed:
                return
            self._closed = True
            os.close(self._wake_r)
            os.close(self._wake_w)


@dataclass(frozen=True)
class RuntimeLoopCallbacks:
    """Injected operations used by ``run_main_loop``.

    Keeping the loop callback-driven isolates evaluation and painting from
    the event handling and makes the loop easy to unit test.
    """

    terminal_size: Callable[[], TerminalSize]
    next_event: Callable[[int], str]
    submit_query: Callable[[str], None]
    paint: Callable[[], None]
    result_changed: Callable[[], bool]
    has_pending_work: Callable[[], bool]
    run_pending: Callable[[], bool]


def run_main_loop(
    dispatcher: InputDispatcher,
    terminal: TerminalController,
    callbacks: RuntimeLoopCallbacks,
    timing: RuntimeLoopTiming | None = None,
) -> None:
    """Run the interactive loop until a quit key is dispatched.

    Each iteration picks up the terminal size, turns a dirty query buffer
    into an evaluation request, repaints if needed and then waits for input.
    Idle time is handed to ``run_pending`` for cooperative evaluation.
    """
    ops = callbacks
    timing = timing or RuntimeLoopTiming()
    editor = dispatcher.editor

    with terminal.raw_mode():
        while not dispatcher.quit_requested:
            dispatcher.handle_resize(ops.terminal_size())

            if editor.dirty:
                ops.submit_query(editor.current_text())
                editor.mark_clean()
                dispatcher.needs_render = True

            if ops.result_changed():
                dispatcher.needs_render = True

            if dispatcher.needs_render:
                ops.paint()
                dispatcher.needs_render = False

            timeout_ms = 0 if ops.has_pending_work() else timing.idle_poll_ms
            try:
                key = ops.next_event(timeout_ms)
            except KeyboardInterrupt:
                dispatcher.request_quit()
                break
            if key == "":
                if ops.run_pending():
                    dispatcher.needs_render = True
                continue
            if key == WAKE_EVENT:
                continue
            if key == INPUT_CLOSED_EVENT:
                logger.info("Keyboard input closed; quitting")
                dispatcher.request_quit()
                break
            dispatcher.dispatch(key)

    logger.info("Main loop finished")
