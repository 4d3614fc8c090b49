"""Input-layer public API for key decoding and dispatch.

Low-level terminal decoding (``read_key``) is kept apart from the
pane-aware dispatcher used by the runtime loop.
"""

from .dispatcher import DispatcherCallbacks, InputDispatcher
from .key_registry import KeyComboBinding, KeyComboRegistry
from .keys import ESC_SEQUENCE_TIMEOUT_MS, has_pending_input, read_key

__all__ = [
    "read_key",
    "has_pending_input",
    "ESC_SEQUENCE_TIMEOUT_MS",
    "KeyComboBinding",
    "KeyComboRegistry",
    "DispatcherCallbacks",
    "InputDispatcher",
]
