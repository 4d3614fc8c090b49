"""Application object wiring document, editor, evaluation and the loop."""

from __future__ import annotations

import logging
import shutil
import sys
from collections.abc import Callable

from .. import config
from ..document import Document
from ..editor import EditorState
from ..engine import QueryEngine
from ..evaluation import EvaluationScheduler, make_scheduler
from ..highlight import DEFAULT_STYLE, LineStyler
from ..input import DispatcherCallbacks, InputDispatcher
from ..render import Renderer, help_lines
from ..ui_theme import UITheme, resolve_theme
from ..view_model import DEFAULT_SOURCE_PERCENT, TerminalSize, ViewModel, ViewState, render_model
from .loop import EventSource, RuntimeLoopCallbacks, RuntimeLoopTiming, run_main_loop
from .terminal import TerminalController

logger = logging.getLogger(__name__)


def current_terminal_size() -> TerminalSize:
    term = shutil.get_terminal_size((80, 24))
    return TerminalSize(max(1, term.columns), max(1, term.lines))


class App:
    """Composed runtime app owning the query loop's collaborators."""

    def __init__(
        self,
        document: Document,
        *,
        query: str = "",
        style: str = DEFAULT_STYLE,
        theme: UITheme | None = None,
        no_color: bool = False,
        threaded: bool = True,
        engine: QueryEngine | None = None,
        input_fd: int | None = None,
        output_fd: int | None = None,
        persist_config: bool = True,
        timing: RuntimeLoopTiming | None = None,
        terminal_size: Callable[[], TerminalSize] = current_terminal_size,
    ) -> None:
        self.document = document
        self.editor = EditorState.with_text(query)
        self.engine = engine if engine is not None else QueryEngine()
        self.theme = theme if theme is not None else resolve_theme(None, no_color=no_color)
        self.styler = LineStyler(style, no_color)
        self.input_fd = input_fd if input_fd is not None else sys.stdin.fileno()
        self.output_fd = output_fd if output_fd is not None else sys.stdout.fileno()
        self.timing = timing or RuntimeLoopTiming()
        self._terminal_size = terminal_size
        self._threaded = threaded
        self._persist_config = persist_config
        self._last_seen: tuple[int, bool] = (0, False)

        view_state = ViewState()
        callbacks = DispatcherCallbacks()
        if persist_config:
            view_state = ViewState(
                source_percent=config.load_source_pane_percent() or DEFAULT_SOURCE_PERCENT,
                result_mode=config.load_result_mode(),
            )
            callbacks = DispatcherCallbacks(
                save_source_pane_percent=config.save_source_pane_percent,
                save_result_mode=config.save_result_mode,
            )
        self.dispatcher = InputDispatcher(self.editor, view_state, callbacks, terminal_size())
        self.renderer = Renderer(self.output_fd, self.theme)
        self.events: EventSource | None = None
        self.scheduler: EvaluationScheduler | None = None

    @classmethod
    def with_file(cls, content: str, filename: str, **options) -> App:
        """Build an app over an already loaded document."""
        return cls(Document(content, filename), **options)

    def build_model(self) -> ViewModel:
        assert self.scheduler is not None
        view_state = self.dispatcher.view_state
        return render_model(
            self.document,
            self.editor.buffer,
            self.scheduler.result,
            view_state,
            self.dispatcher.size,
            styler=self.styler,
            busy=self.scheduler.busy,
            help_lines=help_lines(view_state.focused_pane, self.theme),
        )

    def paint(self) -> None:
        model = self.build_model()
        self.dispatcher.view_state = model.view_state
        self.dispatcher.model = model
        self.renderer.paint(model)

    def _result_changed(self) -> bool:
        assert self.scheduler is not None
        seen = (self.scheduler.slot.applied_count, self.scheduler.busy)
        if seen == self._last_seen:
            return False
        self._last_seen = seen
        return True

    def _submit_query(self, text: str) -> None:
        assert self.scheduler is not None
        self.scheduler.submit(text)

    def loop_callbacks(self) -> RuntimeLoopCallbacks:
        assert self.scheduler is not None and self.events is not None
        scheduler = self.scheduler
        return RuntimeLoopCallbacks(
            terminal_size=self._terminal_size,
            next_event=self.events.next_event,
            submit_query=self._submit_query,
            paint=self.paint,
            result_changed=self._result_changed,
            has_pending_work=lambda: scheduler.has_pending,
            run_pending=scheduler.run_pending,
        )

    def run(self) -> int:
        """Run the interactive session; returns the process exit code."""
        terminal = TerminalController(self.input_fd, self.output_fd)
        self.events = EventSource(self.input_fd)
        self.scheduler = make_scheduler(
            self.engine,
            self.document,
            threaded=self._threaded,
            on_applied=self.events.wake,
        )
        logger.info(
            "Starting session on %s (%s scheduler)",
            self.document.filename,
            "threaded" if self._threaded else "inline",
        )
        try:
            self.events.install_resize_handler()
            run_main_loop(self.dispatcher, terminal, self.loop_callbacks(), self.timing)
        finally:
            self.scheduler.shutdown()
            self.events.close()
        return 0
