"""Parser and evaluator for tracking-sheet formulas.

The grammar is deliberately tiny::

    expr    := term (('+' | '-') term)*
    term    := '-' term | '(' expr ')' | IDENT

Identifiers name tracking-sheet columns (``done``, ``deleted``, outcome
labels, target columns).  A formula is parsed once into a tree and evaluated
for every site.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Iterable, Mapping, Union

from hfc.engine.config import ConfigurationError

TOKEN_RE = re.compile(r"\s*(?:([A-Za-z_][A-Za-z0-9_]*)|(.))")


class FormulaError(ConfigurationError):
    """Raised for malformed formulas or unknown operands."""


@dataclass(frozen=True)
class Name:
    name: str


@dataclass(frozen=True)
class Negate:
    operand: "Expression"


@dataclass(frozen=True)
class BinaryOp:
    op: str
    left: "Expression"
    right: "Expression"


Expression = Union[Name, Negate, BinaryOp]


def tokenize(text: str) -> list[str]:
    tokens: list[str] = []
    for match in TOKEN_RE.finditer(text):
        ident, symbol = match.groups()
        if ident:
            tokens.append(ident)
        elif symbol and not symbol.isspace():
            if symbol not in "+-()":
                raise FormulaError(f"Unexpected character {symbol!r} in formula {text!r}")
            tokens.append(symbol)
    return tokens


class _Parser:
    def __init__(self, text: str) -> None:
        self.text = text
        self.tokens = tokenize(text)
        self.pos = 0

    def _peek(self) -> str | None:
        return self.tokens[self.pos] if self.pos < len(self.tokens) else None

    def _take(self) -> str:
        token = self._peek()
        if token is None:
            raise FormulaError(f"Unexpected end of formula {self.text!r}")
        self.pos += 1
        return token

    def parse(self) -> Expression:
        if not self.tokens:
            raise FormulaError("Formula is empty")
        expr = self._expr()
        if self._peek() is not None:
            raise FormulaError(
                f"Unexpected token {self._peek()!r} in formula {self.text!r}"
            )
        return expr

    def _expr(self) -> Expression:
        node = self._term()
        while self._peek() in ("+", "-"):
            op = self._take()
            node = BinaryOp(op, node, self._term())
        return node

    def _term(self) -> Expression:
        token = self._take()
        if token == "-":
            return Negate(self._term())
        if token == "(":
            node = self._expr()
            if self._take() != ")":
                raise FormulaError(f"Unbalanced parentheses in formula {self.text!r}")
            return node
        if token in "+)":
            raise FormulaError(f"Unexpected token {token!r} in formula {self.text!r}")
        return Name(token)


def parse_formula(text: str) -> Expression:
    return _Parser(text).parse()


def operands(expr: Expression) -> set[str]:
    if isinstance(expr, Name):
        return {expr.name}
    if isinstance(expr, Negate):
        return operands(expr.operand)
    return operands(expr.left) | operands(expr.right)


def check_operands(expr: Expression, known: Iterable[str], text: str = "") -> None:
    unknown = sorted(operands(expr) - set(known))
    if unknown:
        label = f" in formula {text!r}" if text else ""
        raise FormulaError(f"Unknown column(s){label}: {', '.join(unknown)}")


def evaluate(expr: Expression, values: Mapping[str, float]) -> float:
    if isinstance(expr, Name):
        try:
            return values[expr.name]
        except KeyError as exc:
            raise FormulaError(f"Unknown column: {expr.name}") from exc
    if isinstance(expr, Negate):
        return -evaluate(expr.operand, values)
    left = evaluate(expr.left, values)
    right = evaluate(expr.right, values)
    return left + right if expr.op == "+" else left - right
