"""Key-combo dispatch tables used by the input dispatcher."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass


@dataclass(frozen=True)
class KeyComboBinding:
    """Mapping from one or more key tokens to a single action callback."""

    combos: tuple[str, ...]
    handler: Callable[[], bool | None]


class KeyComboRegistry:
    """Exact-match key table with an optional catch-all for unbound keys.

    Handlers return ``False`` to report that the key had no effect; ``None``
    from ``dispatch`` means nothing was bound to the key at all.
    """

    def __init__(self, fallback: Callable[[str], bool | None] | None = None) -> None:
        self._handlers: dict[str, Callable[[], bool | None]] = {}
        self._fallback = fallback

    def register_binding(self, binding: KeyComboBinding) -> KeyComboRegistry:
        """Register one binding, overwriting existing handlers for same combos."""
        for combo in binding.combos:
            self._handlers[combo] = binding.handler
        return self

    def register_bindings(self, *bindings: KeyComboBinding) -> KeyComboRegistry:
        for binding in bindings:
            self.register_binding(binding)
        return self

    def dispatch(self, key: str) -> bool | None:
        """Invoke the handler bound to ``key``, else the fallback."""
        handler = self._handlers.get(key)
        if handler is not None:
            result = handler()
            return True if result is None else result
        if self._fallback is not None:
            return self._fallback(key)
        return None
