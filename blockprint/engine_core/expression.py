"""
Integer Expression Evaluator for the blueprint DSL.

Evaluates the small arithmetic expressions a model writes for coordinates
and loop bounds, e.g. "(x+z)/2" or "-h + 1".

Supports:
- Integer literals (digit runs)
- Identifiers resolved through the current scope
- Binary operators: + - * /
- Unary sign: +x, -x
- Parentheses

Division truncates toward zero, so "-1/2" is 0, not -1.
There are no floats anywhere in the evaluator. Literals, bindings and
intermediate results must fit in MAX_INT_BITS bits.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Mapping, Union
import re

from ..errors import ParseError


ScopeValue = Union[int, str]
Scope = Mapping[str, ScopeValue]

DEFAULT_MAX_DEPTH = 64

# Same ceiling as a double's exponent range (about 1.8e308).
MAX_INT_BITS = 1024
_MAX_INT_DIGITS = 309

_NUMERIC_STRING = re.compile(r"^-?\d+$")
_IDENTIFIER = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")
_TOKEN = re.compile(
    r"(?P<ws>\s+)"
    r"|(?P<number>\d+)"
    r"|(?P<ident>[A-Za-z_][A-Za-z0-9_]*)"
    r"|(?P<op>[-+*/()])"
)


@dataclass(frozen=True)
class Token:
    kind: str  # "number", "ident", "op"
    text: str
    pos: int


def is_identifier(text: str) -> bool:
    """True when text is a bare identifier token."""
    return bool(_IDENTIFIER.match(text))


def tokenize(expr: str) -> list[Token]:
    """Split an expression into tokens, rejecting any unknown character."""
    tokens: list[Token] = []
    pos = 0
    while pos < len(expr):
        match = _TOKEN.match(expr, pos)
        if not match:
            raise ParseError(
                f"invalid character {expr[pos]!r} at position {pos}",
                expression=expr,
            )
        kind = match.lastgroup
        if kind != "ws":
            tokens.append(Token(kind=kind, text=match.group(), pos=pos))
        pos = match.end()
    return tokens


def scope_to_int(name: str, value: ScopeValue, expr: str | None = None) -> int:
    """
    Convert a scope binding to an integer.

    Strings are only accepted when they are a plain (optionally negative)
    digit run.
    """
    if isinstance(value, bool):
        raise ParseError(f"variable '{name}' is not numeric", expression=expr)
    if isinstance(value, int):
        return check_range(value, expr)
    if isinstance(value, str) and _NUMERIC_STRING.match(value):
        return parse_int(value, expr)
    raise ParseError(
        f"variable '{name}' is not numeric (value {value_text(value)})", expression=expr
    )


def check_range(value: int, expr: str | None = None) -> int:
    """Reject integers wider than MAX_INT_BITS."""
    if value.bit_length() > MAX_INT_BITS:
        raise ParseError("integer out of range", expression=expr)
    return value


def parse_int(text: str, expr: str | None = None) -> int:
    """Convert a digit run to an int, raising ParseError when out of range."""
    if len(text.lstrip("+-")) > _MAX_INT_DIGITS:
        raise ParseError("integer literal out of range", expression=expr)
    try:
        value = int(text)
    except ValueError:
        raise ParseError("integer literal out of range", expression=expr) from None
    return check_range(value, expr)


def value_text(value: object) -> str:
    """Printable form of a raw Expr for error messages."""
    if isinstance(value, str):
        return value
    if isinstance(value, int) and not isinstance(value, bool) and value.bit_length() > MAX_INT_BITS:
        return f"<integer of {value.bit_length()} bits>"
    try:
        return repr(value)
    except ValueError:
        return f"<{type(value).__name__}>"


def _trunc_div(left: int, right: int) -> int:
    quotient = abs(left) // abs(right)
    return quotient if (left >= 0) == (right >= 0) else -quotient


class ExpressionEvaluator:
    """
    Recursive-descent evaluator over a token list.

    Grammar:
        expr   := term (("+" | "-") term)*
        term   := factor (("*" | "/") factor)*
        factor := ("+" | "-") factor | number | identifier | "(" expr ")"
    """

    def __init__(self, expr: str, scope: Scope, max_depth: int = DEFAULT_MAX_DEPTH):
        self.expr = expr
        self.scope = scope
        self.max_depth = max_depth
        self.tokens = tokenize(expr)
        self.index = 0
        self.depth = 0

    def evaluate(self) -> int:
        if not self.tokens:
            raise ParseError("empty expression", expression=self.expr)
        value = self._expr()
        if self.index < len(self.tokens):
            token = self.tokens[self.index]
            raise ParseError(
                f"unexpected token {token.text!r} at position {token.pos}",
                expression=self.expr,
            )
        return value

    def _peek(self) -> Token | None:
        if self.index < len(self.tokens):
            return self.tokens[self.index]
        return None

    def _advance(self) -> Token:
        token = self._peek()
        if token is None:
            raise ParseError("unexpected end of expression", expression=self.expr)
        self.index += 1
        return token

    def _expr(self) -> int:
        value = self._term()
        while True:
            token = self._peek()
            if token is None or token.text not in ("+", "-"):
                return value
            self.index += 1
            right = self._term()
            value = check_range(
                value + right if token.text == "+" else value - right, self.expr
            )

    def _term(self) -> int:
        value = self._factor()
        while True:
            token = self._peek()
            if token is None or token.text not in ("*", "/"):
                return value
            self.index += 1
            right = self._factor()
            if token.text == "*":
                value = check_range(value * right, self.expr)
            else:
                if right == 0:
                    raise ParseError("division by zero", expression=self.expr)
                value = _trunc_div(value, right)

    def _factor(self) -> int:
        self.depth += 1
        if self.depth > self.max_depth:
            raise ParseError(
                f"expression nested deeper than {self.max_depth}",
                expression=self.expr,
            )
        try:
            token = self._advance()

            if token.text in ("+", "-"):
                value = self._factor()
                return -value if token.text == "-" else value

            if token.kind == "number":
                return parse_int(token.text, self.expr)

            if token.kind == "ident":
                if token.text not in self.scope:
                    raise ParseError(
                        f"unknown variable '{token.text}'", expression=self.expr
                    )
                return scope_to_int(token.text, self.scope[token.text], self.expr)

            if token.text == "(":
                value = self._expr()
                closing = self._peek()
                if closing is None or closing.text != ")":
                    raise ParseError("unmatched '('", expression=self.expr)
                self.index += 1
                return value

            raise ParseError(
                f"unexpected token {token.text!r} at position {token.pos}",
                expression=self.expr,
            )
        finally:
            self.depth -= 1


def evaluate_expression(
    expr: str,
    scope: Scope | None = None,
    max_depth: int = DEFAULT_MAX_DEPTH,
) -> int:
    """
    Evaluate an arithmetic expression against a scope.

    Raises ParseError on empty input, invalid characters, unmatched
    parentheses, trailing tokens, unbound or non-numeric variables,
    division by zero, or nesting deeper than max_depth.
    """
    return ExpressionEvaluator(expr, scope or {}, max_depth=max_depth).evaluate()


def coerce_value(
    value: object,
    scope: Scope | None = None,
    max_depth: int = DEFAULT_MAX_DEPTH,
) -> int:
    """
    Evaluate a DSL Expr: JSON numbers truncate, strings are evaluated.
    """
    if isinstance(value, bool) or value is None:
        raise ParseError(f"expected a number or expression, got {value!r}")
    if isinstance(value, int):
        return check_range(value)
    if isinstance(value, float):
        if value != value or value in (float("inf"), float("-inf")):
            raise ParseError(f"non-finite number {value!r}")
        return int(value)
    if isinstance(value, str):
        return evaluate_expression(value, scope, max_depth=max_depth)
    raise ParseError(f"expected a number or expression, got {type(value).__name__}")


def coerce_call_argument(
    value: object,
    scope: Scope | None = None,
    max_depth: int = DEFAULT_MAX_DEPTH,
) -> ScopeValue:
    """
    Resolve a call argument in the caller's scope.

    Order matters and is fixed:
    1. numeric literal -> truncated integer
    2. identifier bound in scope -> binding passed through as-is
    3. arithmetic expression -> its integer value
    4. anything else -> the raw string (e.g. a block type name)
    """
    scope = scope or {}
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return coerce_value(value, scope, max_depth=max_depth)
    if not isinstance(value, str):
        raise ParseError(f"unsupported argument value {value_text(value)}")

    name = value.strip()
    if is_identifier(name) and name in scope:
        return scope[name]

    try:
        return evaluate_expression(value, scope, max_depth=max_depth)
    except ParseError:
        return value
