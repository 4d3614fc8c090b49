"""Recursive-descent parser producing ``ast`` nodes.

Precedence, lowest first: ``|``, ``,``, ``//``, ``or``, ``and``, comparisons,
``+ -``, ``* / %``, unary minus, postfix paths.
"""

from __future__ import annotations

from ..errors import QueryError
from . import ast
from .builtins import arities, known_name
from .lexer import Token, tokenize

_COMPARISON_OPS = ("==", "!=", "<", "<=", ">", ">=")


def _describe(token: Token) -> str:
    if token.kind == "eof":
        return "end of query"
    if token.kind == "string":
        return f'string "{token.value}"'
    return repr(str(token.value))


class Parser:
    def __init__(self, text: str) -> None:
        self.text = text
        self.tokens = tokenize(text)
        self.index = 0

    @property
    def current(self) -> Token:
        return self.tokens[self.index]

    def peek(self, offset: int = 1) -> Token:
        return self.tokens[min(self.index + offset, len(self.tokens) - 1)]

    def advance(self) -> Token:
        token = self.tokens[self.index]
        if token.kind != "eof":
            self.index += 1
        return token

    def is_field_name(self, dot: Token, token: Token) -> bool:
        """True when ``token`` is a field name written directly after ``dot``."""
        return token.kind in {"ident", "keyword", "string"} and token.pos == dot.pos + 1

    def error(self, token: Token | None = None, expected: str | None = None) -> QueryError:
        token = token or self.current
        if token.kind == "eof":
            message = "unexpected end of query"
            if expected:
                message += f", expected {expected}"
            return QueryError(message, token.pos)
        message = f"unexpected {_describe(token)}"
        if expected:
            message += f", expected {expected}"
        return QueryError(message, token.pos)

    def expect_op(self, op: str) -> Token:
        if not self.current.is_op(op):
            raise self.error(expected=f"'{op}'")
        return self.advance()

    def expect_keyword(self, word: str) -> Token:
        if not self.current.is_keyword(word):
            raise self.error(expected=f"'{word}'")
        return self.advance()

    def parse(self) -> ast.Expr:
        if self.current.kind == "eof":
            raise QueryError("empty query", 0)
        expr = self.parse_pipe()
        if self.current.kind != "eof":
            raise self.error()
        return expr

    def parse_pipe(self) -> ast.Expr:
        left = self.parse_comma()
        while self.current.is_op("|"):
            op = self.advance()
            right = self.parse_comma()
            left = ast.Pipe(op.pos, left, right)
        return left

    def parse_comma(self) -> ast.Expr:
        left = self.parse_alternative()
        while self.current.is_op(","):
            op = self.advance()
            right = self.parse_alternative()
            left = ast.Comma(op.pos, left, right)
        return left

    def parse_alternative(self) -> ast.Expr:
        left = self.parse_or()
        if self.current.is_op("//"):
            op = self.advance()
            # Right associative.
            right = self.parse_alternative()
            left = ast.Alternative(op.pos, left, right)
        return left

    def parse_or(self) -> ast.Expr:
        left = self.parse_and()
        while self.current.is_keyword("or"):
            op = self.advance()
            left = ast.BoolOp(op.pos, "or", left, self.parse_and())
        return left

    def parse_and(self) -> ast.Expr:
        left = self.parse_comparison()
        while self.current.is_keyword("and"):
            op = self.advance()
            left = ast.BoolOp(op.pos, "and", left, self.parse_comparison())
        return left

    def parse_comparison(self) -> ast.Expr:
        left = self.parse_additive()
        if self.current.is_op(*_COMPARISON_OPS):
            op = self.advance()
            right = self.parse_additive()
            left = ast.BinOp(op.pos, str(op.value), left, right)
            if self.current.is_op(*_COMPARISON_OPS):
                raise self.error()
        return left

    def parse_additive(self) -> ast.Expr:
        left = self.parse_multiplicative()
        while self.current.is_op("+", "-"):
            op = self.advance()
            left = ast.BinOp(op.pos, str(op.value), left, self.parse_multiplicative())
        return left

    def parse_multiplicative(self) -> ast.Expr:
        left = self.parse_unary()
        while self.current.is_op("*", "/", "%"):
            op = self.advance()
            left = ast.BinOp(op.pos, str(op.value), left, self.parse_unary())
        return left

    def parse_unary(self) -> ast.Expr:
        if self.current.is_op("-"):
            op = self.advance()
            return ast.Negate(op.pos, self.parse_unary())
        return self.parse_postfix()

    def parse_postfix(self) -> ast.Expr:
        expr = self.parse_primary()
        while True:
            token = self.current
            if token.is_op(".") and self.is_field_name(token, self.peek()):
                self.advance()
                name_token = self.advance()
                expr = ast.Field(token.pos, expr, str(name_token.value))
            elif token.is_op(".") and self.peek().is_op("["):
                self.advance()
            elif token.is_op("["):
                expr = self.parse_bracket_suffix(expr)
            elif token.is_op("?"):
                self.advance()
                expr = ast.Try(token.pos, expr)
            else:
                return expr

    def parse_bracket_suffix(self, target: ast.Expr) -> ast.Expr:
        open_token = self.expect_op("[")
        if self.current.is_op("]"):
            self.advance()
            return ast.Iterate(open_token.pos, target)
        if self.current.is_op(":"):
            self.advance()
            stop = self.parse_pipe()
            self.expect_op("]")
            return ast.Slice(open_token.pos, target, None, stop)
        index = self.parse_pipe()
        if self.current.is_op(":"):
            self.advance()
            stop = None if self.current.is_op("]") else self.parse_pipe()
            self.expect_op("]")
            return ast.Slice(open_token.pos, target, index, stop)
        self.expect_op("]")
        return ast.Index(open_token.pos, target, index)

    def parse_primary(self) -> ast.Expr:
        token = self.current
        if token.is_op("."):
            self.advance()
            following = self.current
            if self.is_field_name(token, following):
                self.advance()
                return ast.Field(token.pos, ast.Identity(token.pos), str(following.value))
            return ast.Identity(token.pos)
        if token.is_op(".."):
            self.advance()
            return ast.RecurseAll(token.pos)
        if token.kind in {"number", "string"}:
            self.advance()
            return ast.Literal(token.pos, token.value)
        if token.is_keyword("true", "false", "null"):
            self.advance()
            return ast.Literal(token.pos, {"true": True, "false": False, "null": None}[str(token.value)])
        if token.is_keyword("not"):
            self.advance()
            return ast.Call(token.pos, "not", ())
        if token.is_keyword("if"):
            return self.parse_if()
        if token.is_op("("):
            self.advance()
            inner = self.parse_pipe()
            self.expect_op(")")
            return inner
        if token.is_op("["):
            self.advance()
            if self.current.is_op("]"):
                self.advance()
                return ast.ArrayCons(token.pos, None)
            body = self.parse_pipe()
            self.expect_op("]")
            return ast.ArrayCons(token.pos, body)
        if token.is_op("{"):
            return self.parse_object()
        if token.kind == "ident":
            return self.parse_call()
        raise self.error()

    def parse_if(self) -> ast.Expr:
        start = self.expect_keyword("if")
        branches: list[tuple[ast.Expr, ast.Expr]] = []
        cond = self.parse_pipe()
        self.expect_keyword("then")
        branches.append((cond, self.parse_pipe()))
        otherwise: ast.Expr | None = None
        while True:
            if self.current.is_keyword("elif"):
                self.advance()
                cond = self.parse_pipe()
                self.expect_keyword("then")
                branches.append((cond, self.parse_pipe()))
                continue
            if self.current.is_keyword("else"):
                self.advance()
                otherwise = self.parse_pipe()
            self.expect_keyword("end")
            return ast.IfElse(start.pos, tuple(branches), otherwise)

    def parse_object(self) -> ast.Expr:
        start = self.expect_op("{")
        entries: list[tuple[ast.Expr, ast.Expr]] = []
        while not self.current.is_op("}"):
            key_token = self.current
            shorthand: ast.Expr | None = None
            if key_token.kind in {"ident", "keyword", "string"}:
                self.advance()
                key: ast.Expr = ast.Literal(key_token.pos, str(key_token.value))
                shorthand = ast.Field(
                    key_token.pos, ast.Identity(key_token.pos), str(key_token.value)
                )
            elif key_token.is_op("("):
                self.advance()
                key = self.parse_pipe()
                self.expect_op(")")
            else:
                raise self.error(expected="object key")
            if self.current.is_op(":"):
                self.advance()
                value = self.parse_alternative()
            elif shorthand is not None:
                value = shorthand
            else:
                raise self.error(expected="':'")
            entries.append((key, value))
            if self.current.is_op(","):
                self.advance()
                continue
            if not self.current.is_op("}"):
                raise self.error(expected="',' or '}'")
        self.expect_op("}")
        return ast.ObjectCons(start.pos, tuple(entries))

    def parse_call(self) -> ast.Expr:
        name_token = self.advance()
        name = str(name_token.value)
        args: list[ast.Expr] = []
        if self.current.is_op("("):
            self.advance()
            args.append(self.parse_pipe())
            while self.current.is_op(";"):
                self.advance()
                args.append(self.parse_pipe())
            self.expect_op(")")
        if not known_name(name):
            raise QueryError(f"unknown function {name!r}", name_token.pos)
        if len(args) not in arities(name):
            expected = " or ".join(str(n) for n in arities(name))
            raise QueryError(
                f"{name}() takes {expected} argument(s), got {len(args)}",
                name_token.pos,
            )
        return ast.Call(name_token.pos, name, tuple(args))


def parse(text: str) -> ast.Expr:
    """Parse ``text`` into an expression tree or raise ``QueryError``."""
    return Parser(text).parse()
