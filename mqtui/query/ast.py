"""Syntax tree nodes produced by the parser.

Every node records ``pos``, the character offset of the text it came from,
so runtime failures can point back into the query.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class Expr:
    pos: int


@dataclass(frozen=True)
class Identity(Expr):
    pass


@dataclass(frozen=True)
class RecurseAll(Expr):
    pass


@dataclass(frozen=True)
class Literal(Expr):
    value: object


@dataclass(frozen=True)
class Field(Expr):
    target: Expr
    name: str


@dataclass(frozen=True)
class Index(Expr):
    target: Expr
    index: Expr


@dataclass(frozen=True)
class Slice(Expr):
    target: Expr
    start: Expr | None
    stop: Expr | None


@dataclass(frozen=True)
class Iterate(Expr):
    target: Expr


@dataclass(frozen=True)
class Try(Expr):
    body: Expr


@dataclass(frozen=True)
class Pipe(Expr):
    left: Expr
    right: Expr


@dataclass(frozen=True)
class Comma(Expr):
    left: Expr
    right: Expr


@dataclass(frozen=True)
class Alternative(Expr):
    left: Expr
    right: Expr


@dataclass(frozen=True)
class BoolOp(Expr):
    op: str
    left: Expr
    right: Expr


@dataclass(frozen=True)
class BinOp(Expr):
    op: str
    left: Expr
    right: Expr


@dataclass(frozen=True)
class Negate(Expr):
    operand: Expr


@dataclass(frozen=True)
class ArrayCons(Expr):
    body: Expr | None


@dataclass(frozen=True)
class ObjectCons(Expr):
    entries: tuple[tuple[Expr, Expr], ...]


@dataclass(frozen=True)
class IfElse(Expr):
    branches: tuple[tuple[Expr, Expr], ...]
    otherwise: Expr | None


@dataclass(frozen=True)
class Call(Expr):
    name: str
    args: tuple[Expr, ...]
