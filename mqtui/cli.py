"""Command-line front door for mq-tui.

Parses CLI options, loads the document from a file or standard input, and
either prints one query result or starts the interactive query loop.
"""

from __future__ import annotations

import argparse
import logging
import os
import sys
from dataclasses import replace
from pathlib import Path
from typing import IO

from . import __version__, config
from .document import Document, load_document, load_document_from_stream
from .engine import Err, QueryEngine
from .errors import MqTuiError, StartupError
from .highlight import DEFAULT_STYLE, highlight_result
from .logging_config import parse_level, setup_logging
from .ui_theme import available_theme_names, resolve_theme
from .values import RESULT_MODES, format_outputs

logger = logging.getLogger(__name__)

PROG = "mq-tui"
USAGE_HINT = "No file path provided. Usage: mq-tui <FILE>"
TTY_PATH = "/dev/tty"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog=PROG,
        description="Query a Markdown document with a jq-like language and see results as you type.",
    )
    parser.add_argument("path", nargs="?", default=None, help="Markdown file to query; '-' reads standard input.")
    parser.add_argument("-q", "--query", default="", help="Initial query text.")
    parser.add_argument(
        "--print",
        dest="print_only",
        action="store_true",
        help="Evaluate the query once, print the result and exit.",
    )
    parser.add_argument(
        "--mode",
        choices=RESULT_MODES,
        default=None,
        help="Result display mode (default: last used, else markdown).",
    )
    parser.add_argument("--style", default=None, help="Pygments style name for syntax highlighting.")
    parser.add_argument(
        "--theme",
        default=None,
        help=f"UI theme name ({', '.join(available_theme_names())}).",
    )
    parser.add_argument("--no-color", action="store_true", help="Disable color output even on TTY.")
    parser.add_argument(
        "--sync",
        action="store_true",
        help="Evaluate on the UI thread between keystrokes instead of a worker thread.",
    )
    parser.add_argument("--log-file", default=None, help="Append logs to this file (or set $MQ_TUI_LOG).")
    parser.add_argument("--log-level", default="info", help="Log level name (debug, info, warning, ...).")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


def load_input_document(path_arg: str | None, stdin: IO[str]) -> Document:
    """Load the document named on the command line, or piped standard input."""
    if path_arg is None or path_arg == "-":
        if path_arg is None and stdin.isatty():
            raise StartupError(USAGE_HINT)
        return load_document_from_stream(stdin)
    return load_document(Path(path_arg))


def print_result(
    document: Document,
    query: str,
    mode: str,
    *,
    style: str = DEFAULT_STYLE,
    color: bool = False,
    out: IO[str] | None = None,
    err: IO[str] | None = None,
) -> int:
    """Evaluate ``query`` once and write the result; returns the exit code."""
    out = out if out is not None else sys.stdout
    err = err if err is not None else sys.stderr
    outcome = QueryEngine().evaluate(document, query.strip() or ".")
    if isinstance(outcome, Err):
        err.write(f"{PROG}: {outcome.error}\n")
        return 1
    lines = format_outputs(outcome.value, mode)
    if color:
        lines = highlight_result(lines, mode, style)
        lines = [line + "\033[0m" if "\033" in line else line for line in lines]
    if lines:
        out.write("\n".join(lines) + "\n")
    return 0


def _open_keyboard(stdin_is_document: bool) -> tuple[int, bool]:
    """Return ``(fd, owned)`` to read keys from; opens the tty when stdin is piped."""
    if not stdin_is_document and sys.stdin.isatty():
        return sys.stdin.fileno(), False
    try:
        return os.open(TTY_PATH, os.O_RDONLY), True
    except OSError as exc:
        raise StartupError(f"cannot open {TTY_PATH} for keyboard input: {exc.strerror or exc}") from exc


def main(argv: list[str] | None = None) -> int:
    """Parse CLI arguments and run mq-tui; returns the process exit code."""
    args = build_parser().parse_args(argv)
    print_mode = args.print_only or not sys.stdout.isatty()

    try:
        setup_logging(parse_level(args.log_level), args.log_file, to_stderr=print_mode)
    except OSError as exc:
        sys.stderr.write(f"{PROG}: cannot open log file: {exc}\n")
        return 1

    style = args.style or config.load_style_name() or DEFAULT_STYLE
    mode = args.mode or config.load_result_mode()

    try:
        document = load_input_document(args.path, sys.stdin)
        if print_mode:
            color = not args.no_color and sys.stdout.isatty()
            return print_result(document, args.query, mode, style=style, color=color)

        from .runtime.app import App

        stdin_is_document = args.path is None or args.path == "-"
        keyboard_fd, owned = _open_keyboard(stdin_is_document)
        try:
            app = App(
                document,
                query=args.query,
                style=style,
                theme=resolve_theme(args.theme or config.load_theme_name(), no_color=args.no_color),
                no_color=args.no_color,
                threaded=not args.sync,
                input_fd=keyboard_fd,
            )
            if args.mode:
                app.dispatcher.view_state = replace(app.dispatcher.view_state, result_mode=args.mode)
            return app.run()
        finally:
            if owned:
                os.close(keyboard_fd)
    except MqTuiError as exc:
        logger.debug("Exiting with error: %s", exc)
        sys.stderr.write(f"{PROG}: {exc}\n")
        return 1


if __name__ == "__main__":
    sys.exit(main())
