"""Tokenizer for the query language."""

from __future__ import annotations

from dataclasses import dataclass

from ..errors import QueryError

KEYWORDS = frozenset(
    {"and", "or", "not", "if", "then", "elif", "else", "end", "true", "false", "null"}
)

# Longest operators first so "==" wins over "=".
_OPERATORS = (
    "..",
    "//",
    "==",
    "!=",
    "<=",
    ">=",
    "|",
    ",",
    ".",
    "[",
    "]",
    "(",
    ")",
    "{",
    "}",
    ":",
    ";",
    "?",
    "<",
    ">",
    "+",
    "-",
    "*",
    "/",
    "%",
)

_ESCAPES = {'"': '"', "\\": "\\", "/": "/", "n": "\n", "t": "\t", "r": "\r", "b": "\b", "f": "\f"}


@dataclass(frozen=True)
class Token:
    kind: str
    value: object
    pos: int

    def is_op(self, *ops: str) -> bool:
        return self.kind == "op" and self.value in ops

    def is_keyword(self, *words: str) -> bool:
        return self.kind == "keyword" and self.value in words


def _read_string(text: str, start: int) -> tuple[str, int]:
    out: list[str] = []
    i = start + 1
    n = len(text)
    while i < n:
        ch = text[i]
        if ch == '"':
            return "".join(out), i + 1
        if ch == "\\":
            if i + 1 >= n:
                break
            esc = text[i + 1]
            if esc == "u":
                digits = text[i + 2 : i + 6]
                if len(digits) != 4 or any(c not in "0123456789abcdefABCDEF" for c in digits):
                    raise QueryError("invalid unicode escape", i)
                out.append(chr(int(digits, 16)))
                i += 6
                continue
            if esc not in _ESCAPES:
                raise QueryError(f"invalid escape \\{esc}", i)
            out.append(_ESCAPES[esc])
            i += 2
            continue
        out.append(ch)
        i += 1
    raise QueryError("unterminated string", start)


def _read_number(text: str, start: int) -> tuple[int | float, int]:
    i = start
    n = len(text)
    while i < n and text[i].isdigit():
        i += 1
    is_float = False
    if i < n and text[i] == "." and i + 1 < n and text[i + 1].isdigit():
        is_float = True
        i += 1
        while i < n and text[i].isdigit():
            i += 1
    if i < n and text[i] in "eE":
        j = i + 1
        if j < n and text[j] in "+-":
            j += 1
        if j < n and text[j].isdigit():
            is_float = True
            i = j
            while i < n and text[i].isdigit():
                i += 1
    literal = text[start:i]
    return (float(literal) if is_float else int(literal)), i


def tokenize(text: str) -> list[Token]:
    """Split ``text`` into tokens, ending with an ``eof`` token.

    Raises ``QueryError`` carrying the offending offset on bad input.
    """
    tokens: list[Token] = []
    i = 0
    n = len(text)
    while i < n:
        ch = text[i]
        if ch.isspace():
            i += 1
            continue
        if ch == "#":
            # Comment to end of line.
            while i < n and text[i] != "\n":
                i += 1
            continue
        if ch == '"':
            value, end = _read_string(text, i)
            tokens.append(Token("string", value, i))
            i = end
            continue
        if ch.isdigit():
            number, end = _read_number(text, i)
            tokens.append(Token("number", number, i))
            i = end
            continue
        if ch.isalpha() or ch == "_":
            end = i + 1
            while end < n and (text[end].isalnum() or text[end] == "_"):
                end += 1
            word = text[i:end]
            tokens.append(Token("keyword" if word in KEYWORDS else "ident", word, i))
            i = end
            continue
        for op in _OPERATORS:
            if text.startswith(op, i):
                tokens.append(Token("op", op, i))
                i += len(op)
                break
        else:
            raise QueryError(f"unexpected character {ch!r}", i)
    tokens.append(Token("eof", None, n))
    return tokens
