"""Low-level terminal input decoding.

Reads raw bytes from the keyboard fd and translates them into normalized key
tokens. Handles ESC-sequence timing, modifier combos, UTF-8 text, and SGR
mouse events.
"""

from __future__ import annotations

import os
import select

ESC_SEQUENCE_TIMEOUT_MS = 25
_PENDING_BYTES: list[bytes] = []

_CONTROL_KEYS: dict[bytes, str] = {
    b"\t": "TAB",
    b"\x08": "BACKSPACE",
    b"\x7f": "BACKSPACE",
    b"\r": "ENTER_CR",
    b"\n": "ENTER_LF",
    b"\x1f": "CTRL_QUESTION",
    b"\x00": "CTRL_SPACE",
}

_CSI_FINAL_KEYS: dict[str, str] = {
    "A": "UP",
    "B": "DOWN",
    "C": "RIGHT",
    "D": "LEFT",
    "H": "HOME",
    "F": "END",
    "Z": "SHIFT_TAB",
}

_CSI_TILDE_KEYS: dict[str, str] = {
    "1": "HOME",
    "7": "HOME",
    "4": "END",
    "8": "END",
    "2": "INSERT",
    "3": "DELETE",
    "5": "PAGE_UP",
    "6": "PAGE_DOWN",
}

_MODIFIER_PREFIX: dict[str, str] = {
    "2": "SHIFT_",
    "3": "ALT_",
    "9": "ALT_",
    "5": "CTRL_",
}


def _read_ready_byte(fd: int, timeout_ms: int) -> bytes | None:
    ready, _, _ = select.select([fd], [], [], max(0.0, timeout_ms / 1000.0))
    if not ready:
        return None
    ch = os.read(fd, 1)
    if not ch:
        return None
    return ch


def has_pending_input() -> bool:
    """Whether bytes pushed back by a previous decode are waiting."""
    return bool(_PENDING_BYTES)


def reset_pending_input() -> None:
    _PENDING_BYTES.clear()


def _decode_utf8(fd: int, lead: bytes) -> str:
    first = lead[0]
    if first >= 0xF0:
        needed = 3
    elif first >= 0xE0:
        needed = 2
    elif first >= 0xC0:
        needed = 1
    else:
        needed = 0
    data = lead
    for _ in range(needed):
        part = _read_ready_byte(fd, ESC_SEQUENCE_TIMEOUT_MS)
        if part is None:
            break
        data += part
    return data.decode("utf-8", errors="replace")


def _decode_mouse(fd: int) -> str:
    # SGR mouse: ESC [ < btn ; col ; row (M/m)
    payload = []
    while True:
        part = _read_ready_byte(fd, ESC_SEQUENCE_TIMEOUT_MS)
        if part is None:
            return "ESC"
        if part in {b"M", b"m"}:
            break
        payload.append(part)
        if len(payload) > 64:
            return "ESC"
    try:
        btn_s, col_s, row_s = b"".join(payload).decode("ascii").split(";")
        btn = int(btn_s)
        col = int(col_s)
        row = int(row_s)
    except ValueError:
        return "ESC"
    button = btn & 0b11
    is_wheel = (btn & 0b0100_0000) != 0
    if is_wheel:
        if button == 0:
            return f"MOUSE_WHEEL_UP:{col}:{row}"
        if button == 1:
            return f"MOUSE_WHEEL_DOWN:{col}:{row}"
        if button == 2:
            return f"MOUSE_WHEEL_LEFT:{col}:{row}"
        return f"MOUSE_WHEEL_RIGHT:{col}:{row}"
    if button == 0 and not btn & 0b0010_0000:
        suffix = "DOWN" if part == b"M" else "UP"
        return f"MOUSE_LEFT_{suffix}:{col}:{row}"
    return "MOUSE"


def _decode_csi(fd: int) -> str:
    first = _read_ready_byte(fd, ESC_SEQUENCE_TIMEOUT_MS)
    if first is None:
        return "ESC"
    if first == b"<":
        return _decode_mouse(fd)

    params = b""
    final = first
    while not (0x40 <= final[0] <= 0x7E):
        params += final
        if len(params) > 16:
            return "ESC"
        nxt = _read_ready_byte(fd, ESC_SEQUENCE_TIMEOUT_MS)
        if nxt is None:
            return "ESC"
        final = nxt

    final_ch = final.decode("ascii", errors="replace")
    fields = params.decode("ascii", errors="replace").split(";") if params else []
    modifier = _MODIFIER_PREFIX.get(fields[1], "") if len(fields) >= 2 else ""

    if final_ch == "~":
        key = _CSI_TILDE_KEYS.get(fields[0] if fields else "")
        if key is None:
            return "ESC"
        return f"{modifier}{key}"
    key = _CSI_FINAL_KEYS.get(final_ch)
    if key is None:
        return "ESC"
    return f"{modifier}{key}"


def read_key(fd: int, timeout_ms: int | None = None) -> str:
    """Read and decode one key; returns ``""`` on timeout or end of input."""
    if _PENDING_BYTES:
        ch = _PENDING_BYTES.pop(0)
    else:
        if timeout_ms is not None:
            ready, _, _ = select.select([fd], [], [], max(0.0, timeout_ms / 1000.0))
            if not ready:
                return ""

        ch = os.read(fd, 1)
        if not ch:
            return ""

    named = _CONTROL_KEYS.get(ch)
    if named is not None:
        return named
    code = ch[0]
    if 1 <= code <= 26:
        return f"CTRL_{chr(code + 64)}"
    if code >= 0x80:
        return _decode_utf8(fd, ch)

    if ch != b"\x1b":
        return ch.decode("ascii", errors="replace")

    # Escape / arrow key sequences.
    seq = _read_ready_byte(fd, ESC_SEQUENCE_TIMEOUT_MS)
    if seq is None:
        return "ESC"
    if seq in {b"b", b"B"}:
        return "ALT_LEFT"
    if seq in {b"f", b"F"}:
        return "ALT_RIGHT"
    if seq == b"O":
        # SS3 form used by terminals in application cursor mode.
        final = _read_ready_byte(fd, ESC_SEQUENCE_TIMEOUT_MS)
        if final is None:
            return "ESC"
        return _CSI_FINAL_KEYS.get(final.decode("ascii", errors="replace"), "ESC")
    if seq != b"[":
        if 0x20 <= seq[0] <= 0x7E:
            # Meta-prefixed printable key (Alt+letter).
            return f"ALT_{seq.decode('ascii')}"
        _PENDING_BYTES.append(seq)
        return "ESC"
    return _decode_csi(fd)
