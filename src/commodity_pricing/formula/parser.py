"""Recursive-descent parser turning formula tokens into an expression tree."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Union

from commodity_pricing.diagnostics import Result, Severity
from commodity_pricing.errors import FormulaParseError
from commodity_pricing.types import FormulaToken, PricingFormula, TokenType


@dataclass(slots=True, frozen=True)
class InstrumentNode:
    name: str


@dataclass(slots=True, frozen=True)
class ValueNode:
    value: float
    percentage: bool = False


@dataclass(slots=True, frozen=True)
class UnaryNode:
    operator: str
    operand: "ExpressionNode"


@dataclass(slots=True, frozen=True)
class BinaryNode:
    operator: str
    left: "ExpressionNode"
    right: "ExpressionNode"


ExpressionNode = Union[InstrumentNode, ValueNode, UnaryNode, BinaryNode]


def _as_tokens(source: PricingFormula | Iterable[FormulaToken]) -> list[FormulaToken]:
    if isinstance(source, PricingFormula):
        return list(source.tokens)
    return list(source)


class _Parser:
    """
    Grammar:
        expr    := term (('+' | '-') term)*
        term    := unary (('*' | '/') unary)*
        unary   := ('+' | '-') unary | primary
        primary := operand | '(' expr ')'
    """

    def __init__(self, tokens: list[FormulaToken]) -> None:
        self.tokens = tokens
        self.pos = 0

    def _peek(self) -> FormulaToken | None:
        return self.tokens[self.pos] if self.pos < len(self.tokens) else None

    def _is_operator(self, token: FormulaToken | None, symbols: tuple[str, ...]) -> bool:
        return token is not None and token.type is TokenType.OPERATOR and token.value in symbols

    def parse(self) -> ExpressionNode:
        node = self._expr()
        leftover = self._peek()
        if leftover is not None:
            raise FormulaParseError(f"Unexpected {leftover.type} '{leftover.value}'", self.pos)
        return node

    def _expr(self) -> ExpressionNode:
        node = self._term()
        while self._is_operator(self._peek(), ("+", "-")):
            operator = self.tokens[self.pos].value
            self.pos += 1
            node = BinaryNode(operator, node, self._term())
        return node

    def _term(self) -> ExpressionNode:
        node = self._unary()
        while self._is_operator(self._peek(), ("*", "/")):
            operator = self.tokens[self.pos].value
            self.pos += 1
            node = BinaryNode(operator, node, self._unary())
        return node

    def _unary(self) -> ExpressionNode:
        token = self._peek()
        if self._is_operator(token, ("+", "-")):
            self.pos += 1
            return UnaryNode(token.value, self._unary())
        return self._primary()

    def _primary(self) -> ExpressionNode:
        token = self._peek()
        if token is None:
            raise FormulaParseError("Formula ends where an operand was expected", self.pos)
        self.pos += 1
        if token.type is TokenType.INSTRUMENT:
            return InstrumentNode(token.value)
        if token.type in (TokenType.FIXED_VALUE, TokenType.PERCENTAGE):
            try:
                number = float(token.value)
            except ValueError as exc:
                raise FormulaParseError(f"'{token.value}' is not a number", self.pos - 1) from exc
            # percentages contribute their literal value (50% -> 50)
            return ValueNode(number, percentage=token.type is TokenType.PERCENTAGE)
        if token.type is TokenType.OPEN_BRACKET:
            node = self._expr()
            closing = self._peek()
            if closing is None or closing.type is not TokenType.CLOSE_BRACKET:
                raise FormulaParseError("Unclosed bracket", self.pos)
            self.pos += 1
            return node
        raise FormulaParseError(f"Unexpected {token.type} '{token.value}'", self.pos - 1)


def parse(tokens: PricingFormula | Iterable[FormulaToken]) -> ExpressionNode | None:
    """Parse tokens into a tree; None for an empty formula, FormulaParseError if malformed."""
    sequence = _as_tokens(tokens)
    if not sequence:
        return None
    return _Parser(sequence).parse()


def parse_formula_result(tokens: PricingFormula | Iterable[FormulaToken]) -> Result[ExpressionNode]:
    sequence = _as_tokens(tokens)
    if not sequence:
        return Result(value=None).with_diagnostic(Severity.DEBUG, "formula.parser", "Empty formula")
    try:
        return Result(value=_Parser(sequence).parse())
    except FormulaParseError as exc:
        return Result.failure(
            "formula.parser",
            f"Formula cannot be parsed: {exc}",
            {"position": exc.position, "tokens": [t.value for t in sequence]},
        )


def parse_formula(tokens: PricingFormula | Iterable[FormulaToken], router=None) -> ExpressionNode | None:
    """Lenient parse: malformed formulas yield None and a routed diagnostic."""
    return parse_formula_result(tokens).unwrap_or(None, router)


def iter_instruments(node: ExpressionNode | None) -> Iterable[str]:
    if node is None:
        return
    if isinstance(node, InstrumentNode):
        yield node.name
    elif isinstance(node, UnaryNode):
        yield from iter_instruments(node.operand)
    elif isinstance(node, BinaryNode):
        yield from iter_instruments(node.left)
        yield from iter_instruments(node.right)


def ordered_instruments(source: ExpressionNode | PricingFormula | Iterable[FormulaToken] | None) -> list[str]:
    """Distinct instrument names in first-appearance order."""
    if source is None:
        return []
    if isinstance(source, (InstrumentNode, ValueNode, UnaryNode, BinaryNode)):
        names = iter_instruments(source)
    else:
        names = (t.value for t in _as_tokens(source) if t.type is TokenType.INSTRUMENT)
    return list(dict.fromkeys(names))


def extract_instruments(source: ExpressionNode | PricingFormula | Iterable[FormulaToken] | None) -> set[str]:
    """
    Every instrument referenced by a tree, formula or token list.

    Token input is scanned directly, so a formula that does not parse still
    reports the prices it would need.
    """
    return set(ordered_instruments(source))
