"""Tests for the interactive main loop and its event source.

The loop runs against a fake terminal and scripted callbacks so no real
TTY is needed.
"""

from __future__ import annotations

from contextlib import contextmanager
import os
import unittest
from unittest import mock

from mqtui.editor import EditorState
from mqtui.engine import QueryEngine
from mqtui.evaluation import Success, make_scheduler
from mqtui.input import InputDispatcher, keys as keys_mod
from mqtui.runtime import RuntimeLoopCallbacks, RuntimeLoopTiming, run_main_loop
from mqtui.runtime.app import App
from mqtui.runtime.loop import INPUT_CLOSED_EVENT, WAKE_EVENT, EventSource
from mqtui.values import RSequence, RString
from mqtui.view_model import TerminalSize


class _FakeTerminal:
    def __init__(self) -> None:
        self.entered = 0
        self.restored = 0

    @contextmanager
    def raw_mode(self):
        self.entered += 1
        try:
            yield self
        finally:
            self.restored += 1


class _Script:
    """Feeds scripted events to the loop and records callback traffic."""

    def __init__(self, events, sizes=None) -> None:
        self.events = list(events)
        self.sizes = list(sizes or [])
        self.size = TerminalSize(80, 24)
        self.submitted: list[str] = []
        self.paints = 0
        self.timeouts: list[int] = []
        self.pending_runs = 0
        self.pending = False

    def terminal_size(self) -> TerminalSize:
        if self.sizes:
            self.size = self.sizes.pop(0)
        return self.size

    def next_event(self, timeout_ms: int) -> str:
        self.timeouts.append(timeout_ms)
        if not self.events:
            return "CTRL_C"
        event = self.events.pop(0)
        if isinstance(event, BaseException):
            raise event
        return event

    def submit_query(self, text: str) -> None:
        self.submitted.append(text)

    def paint(self) -> None:
        self.paints += 1

    def run_pending(self) -> bool:
        self.pending_runs += 1
        ran = self.pending
        self.pending = False
        return ran

    def callbacks(self, **overrides) -> RuntimeLoopCallbacks:
        values = dict(
            terminal_size=self.terminal_size,
            next_event=self.next_event,
            submit_query=self.submit_query,
            paint=self.paint,
            result_changed=lambda: False,
            has_pending_work=lambda: self.pending,
            run_pending=self.run_pending,
        )
        values.update(overrides)
        return RuntimeLoopCallbacks(**values)


def _dispatcher(text: str = "") -> InputDispatcher:
    return InputDispatcher(EditorState.with_text(text), size=TerminalSize(80, 24))


class RunMainLoopTests(unittest.TestCase):
    def test_quit_key_ends_loop_and_restores_terminal(self) -> None:
        dispatcher = _dispatcher()
        terminal = _FakeTerminal()
        script = _Script(["CTRL_C"])

        run_main_loop(dispatcher, terminal, script.callbacks())

        self.assertTrue(dispatcher.quit_requested)
        self.assertEqual((terminal.entered, terminal.restored), (1, 1))
        self.assertEqual(script.paints, 1)

    def test_typing_submits_each_buffer_state(self) -> None:
        dispatcher = _dispatcher()
        script = _Script([".", "h", "1", "CTRL_Q"])

        run_main_loop(dispatcher, _FakeTerminal(), script.callbacks())

        self.assertEqual(script.submitted, [".", ".h", ".h1"])
        self.assertFalse(dispatcher.editor.dirty)

    def test_initial_query_is_submitted_before_first_paint(self) -> None:
        dispatcher = _dispatcher(".h1")
        script = _Script([])

        run_main_loop(dispatcher, _FakeTerminal(), script.callbacks())

        self.assertEqual(script.submitted, [".h1"])

    def test_resize_triggers_repaint_without_input(self) -> None:
        dispatcher = _dispatcher()
        script = _Script([WAKE_EVENT, "CTRL_C"], sizes=[TerminalSize(80, 24), TerminalSize(100, 30)])

        run_main_loop(dispatcher, _FakeTerminal(), script.callbacks())

        self.assertEqual(dispatcher.size, TerminalSize(100, 30))
        self.assertEqual(script.paints, 2)

    def test_idle_timeout_runs_pending_evaluation(self) -> None:
        dispatcher = _dispatcher()
        script = _Script(["", "CTRL_C"])
        script.pending = True

        run_main_loop(dispatcher, _FakeTerminal(), script.callbacks(), RuntimeLoopTiming(idle_poll_ms=50))

        self.assertEqual(script.pending_runs, 1)
        self.assertEqual(script.timeouts, [0, 50])
        self.assertEqual(script.paints, 2)

    def test_result_change_repaints(self) -> None:
        dispatcher = _dispatcher()
        changes = iter([False, True, False])
        script = _Script([WAKE_EVENT, "CTRL_C"])

        run_main_loop(dispatcher, _FakeTerminal(), script.callbacks(result_changed=lambda: next(changes)))

        self.assertEqual(script.paints, 2)

    def test_keyboard_interrupt_quits(self) -> None:
        dispatcher = _dispatcher()
        terminal = _FakeTerminal()

        run_main_loop(dispatcher, terminal, _Script([KeyboardInterrupt()]).callbacks())

        self.assertTrue(dispatcher.quit_requested)
        self.assertEqual(terminal.restored, 1)

    def test_closed_input_quits(self) -> None:
        dispatcher = _dispatcher()
        run_main_loop(dispatcher, _FakeTerminal(), _Script([INPUT_CLOSED_EVENT, "x"]).callbacks())
        self.assertTrue(dispatcher.quit_requested)
        self.assertEqual(dispatcher.editor.current_text(), "")

    def test_paint_error_still_restores_terminal(self) -> None:
        terminal = _FakeTerminal()

        def broken_paint() -> None:
            raise RuntimeError("paint failed")

        with self.assertRaises(RuntimeError):
            run_main_loop(_dispatcher(), terminal, _Script([]).callbacks(paint=broken_paint))

        self.assertEqual(terminal.restored, 1)


class EventSourceTests(unittest.TestCase):
    def setUp(self) -> None:
        keys_mod.reset_pending_input()
        self.read_fd, self.write_fd = os.pipe()
        self.events = EventSource(self.read_fd)

    def tearDown(self) -> None:
        self.events.close()
        for fd in (self.read_fd, self.write_fd):
            try:
                os.close(fd)
            except OSError:
                pass
        keys_mod.reset_pending_input()

    def test_timeout_returns_empty(self) -> None:
        self.assertEqual(self.events.next_event(0), "")

    def test_wake_interrupts_wait(self) -> None:
        self.events.wake()
        self.events.wake()
        self.assertEqual(self.events.next_event(1000), WAKE_EVENT)
        self.assertEqual(self.events.next_event(0), "")

    def test_key_bytes_are_decoded(self) -> None:
        os.write(self.write_fd, b"\x1b[A")
        self.assertEqual(self.events.next_event(1000), "UP")

    def test_end_of_input_is_reported(self) -> None:
        os.close(self.write_fd)
        self.assertEqual(self.events.next_event(1000), INPUT_CLOSED_EVENT)

    def test_wake_after_close_is_harmless(self) -> None:
        self.events.close()
        self.events.wake()

    def test_wake_during_close_returns_without_writing(self) -> None:
        with self.events._lock:
            with mock.patch("mqtui.runtime.loop.os.write") as write_mock:
                self.events.wake()
        write_mock.assert_not_called()
        self.assertEqual(self.events.next_event(0), "")

    def test_close_is_idempotent(self) -> None:
        with mock.patch("mqtui.runtime.loop.os.close", wraps=os.close) as close_mock:
            self.events.close()
            self.events.close()
        self.assertEqual(close_mock.call_count, 2)


class AppTests(unittest.TestCase):
    def _app(self, **options) -> App:
        return App.with_file(
            "# Title\n\nbody",
            "t.md",
            persist_config=False,
            threaded=False,
            input_fd=0,
            output_fd=1,
            terminal_size=lambda: TerminalSize(60, 12),
            **options,
        )

    def test_paint_renders_current_result(self) -> None:
        app = self._app(query=".h1 | .text", no_color=True)
        app.scheduler = make_scheduler(app.engine, app.document, threaded=False)
        app.scheduler.submit(app.editor.current_text())
        app.scheduler.run_pending()

        with mock.patch.object(app.renderer, "paint") as paint_mock:
            app.paint()

        model = paint_mock.call_args.args[0]
        self.assertEqual(model.result.lines, ("Title",))
        self.assertIs(app.dispatcher.model, model)
        self.assertEqual(app.scheduler.result, Success(RSequence((RString("Title"),))))

    def test_result_changed_reports_each_new_result_once(self) -> None:
        app = self._app()
        app.scheduler = make_scheduler(QueryEngine(), app.document, threaded=False)
        self.assertFalse(app._result_changed())
        app.scheduler.submit(".")
        self.assertTrue(app._result_changed())
        app.scheduler.run_pending()
        self.assertTrue(app._result_changed())
        self.assertFalse(app._result_changed())

    def test_run_quits_on_key_and_returns_zero(self) -> None:
        app = self._app(query=".h1")
        terminal = _FakeTerminal()
        events = mock.Mock()
        events.next_event.side_effect = ["", "CTRL_C"]

        with mock.patch("mqtui.runtime.app.TerminalController", return_value=terminal), mock.patch(
            "mqtui.runtime.app.EventSource", return_value=events
        ), mock.patch.object(app.renderer, "paint"):
            code = app.run()

        self.assertEqual(code, 0)
        self.assertEqual(terminal.restored, 1)
        events.close.assert_called_once()
        self.assertIsInstance(app.scheduler.result, Success)
        self.assertEqual(app.scheduler.slot.applied_count, 1)


if __name__ == "__main__":
    unittest.main()
