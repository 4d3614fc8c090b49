"""Error taxonomy shared by the CLI, runtime, and query adapter."""

from __future__ import annotations


class MqTuiError(Exception):
    """Base class for all errors raised by mq-tui."""


class StartupError(MqTuiError):
    """Document could not be loaded; raised before the terminal is touched."""


class TerminalError(MqTuiError):
    """Failure to acquire, drive, or restore the terminal."""


class QueryError(MqTuiError):
    """Malformed or semantically invalid query text.

    ``offset`` is a character index into the query text when the failure can
    be pinned to a position, otherwise ``None``.
    """

    def __init__(self, message: str, offset: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.offset = offset

    def __str__(self) -> str:
        if self.offset is None:
            return self.message
        return f"{self.message} (at column {self.offset + 1})"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, QueryError):
            return NotImplemented
        return self.message == other.message and self.offset == other.offset

    def __hash__(self) -> int:
        return hash((self.message, self.offset))

    def __repr__(self) -> str:
        return f"QueryError({self.message!r}, offset={self.offset!r})"
