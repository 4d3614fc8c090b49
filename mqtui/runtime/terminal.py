"""Terminal control helpers for the TUI session.

Owns raw-mode lifecycle and alternate-screen switching with mouse reporting.
Restoration is idempotent and also runs from an ``atexit`` hook and on
SIGTERM/SIGHUP, so the shell is never left in raw mode.
"""

from __future__ import annotations

import atexit
import contextlib
import logging
import os
import signal
import termios
import threading
import tty

from ..errors import TerminalError

logger = logging.getLogger(__name__)

ENTER_TUI_SEQUENCE = b"\x1b[?1049h\x1b[?25l\x1b[?1000h\x1b[?1002h\x1b[?1006h"
EXIT_TUI_SEQUENCE = b"\x1b[?1000l\x1b[?1002l\x1b[?1006l\x1b[?25h\x1b[?1049l"
_EXIT_SIGNALS = tuple(
    sig for sig in (getattr(signal, "SIGTERM", None), getattr(signal, "SIGHUP", None)) if sig is not None
)


def _raise_system_exit(signum: int, _frame: object) -> None:
    # Unwinds through ``raw_mode``'s finally block.
    raise SystemExit(128 + signum)


class TerminalController:
    """Manage terminal mode transitions for one keyboard/screen fd pair."""

    def __init__(self, stdin_fd: int, stdout_fd: int) -> None:
        """Capture tty state and bind input/output file descriptors."""
        self.stdin_fd = stdin_fd
        self.stdout_fd = stdout_fd
        try:
            self._saved_tty_state = termios.tcgetattr(stdin_fd)
        except termios.error as exc:
            raise TerminalError(f"input is not a terminal: {exc}") from exc
        self._active = False
        self._previous_handlers: dict[int, object] = {}

    @property
    def active(self) -> bool:
        return self._active

    def _write(self, payload: bytes) -> None:
        try:
            os.write(self.stdout_fd, payload)
        except OSError as exc:
            raise TerminalError(f"cannot write to terminal: {exc}") from exc

    def _install_exit_guards(self) -> None:
        atexit.register(self._restore_at_exit)
        if threading.current_thread() is not threading.main_thread():
            return
        for sig in _EXIT_SIGNALS:
            self._previous_handlers[sig] = signal.signal(sig, _raise_system_exit)

    def _remove_exit_guards(self) -> None:
        atexit.unregister(self._restore_at_exit)
        for sig, handler in self._previous_handlers.items():
            signal.signal(sig, handler)
        self._previous_handlers.clear()

    def _restore_at_exit(self) -> None:
        try:
            self.disable_tui_mode()
        except TerminalError:
            logger.exception("Terminal restore at exit failed")

    def enable_tui_mode(self) -> None:
        """Enter raw alternate-screen mode with mouse reporting enabled."""
        if self._active:
            return
        try:
            tty.setraw(self.stdin_fd, termios.TCSAFLUSH)
        except termios.error as exc:
            raise TerminalError(f"cannot enter raw mode: {exc}") from exc
        self._active = True
        self._install_exit_guards()
        logger.info("Entered raw alternate-screen mode")
        # Enter alternate screen, enable mouse reporting, and hide cursor.
        self._write(ENTER_TUI_SEQUENCE)

    def disable_tui_mode(self) -> None:
        """Restore the saved terminal state; safe to call more than once.

        Both the screen reset and the tty attributes are attempted even when
        one of them fails; the first failure is raised afterwards.
        """
        if not self._active:
            return
        self._active = False
        self._remove_exit_guards()
        failure: TerminalError | None = None
        try:
            # Disable mouse reporting, show cursor, and restore the main screen buffer.
            self._write(EXIT_TUI_SEQUENCE)
        except TerminalError as exc:
            failure = exc
        try:
            termios.tcsetattr(self.stdin_fd, termios.TCSAFLUSH, self._saved_tty_state)
        except termios.error as exc:
            failure = failure or TerminalError(f"cannot restore terminal mode: {exc}")
        logger.info("Restored terminal mode")
        if failure is not None:
            raise failure

    @contextlib.contextmanager
    def raw_mode(self):
        """Context manager that brackets code with TUI enter/exit calls."""
        try:
            self.enable_tui_mode()
            yield self
        finally:
            self.disable_tui_mode()
