"""Formula token factories, builder placement rules and display rendering."""

from __future__ import annotations

from dataclasses import replace
from typing import Iterable
from uuid import uuid4

from commodity_pricing.errors import InvalidTokenPlacement
from commodity_pricing.types import (
    OPERAND_TOKEN_TYPES,
    OPERATORS,
    ExposureResult,
    FormulaToken,
    PricingFormula,
    TokenType,
)


def _new_id() -> str:
    return uuid4().hex


def _number_text(value: float | int | str) -> str:
    if isinstance(value, str):
        return value.strip()
    if float(value).is_integer():
        return str(int(value))
    return repr(float(value))


def instrument_token(instrument: str) -> FormulaToken:
    return FormulaToken(id=_new_id(), type=TokenType.INSTRUMENT, value=instrument)


def fixed_value_token(value: float | int | str) -> FormulaToken:
    return FormulaToken(id=_new_id(), type=TokenType.FIXED_VALUE, value=_number_text(value))


def percentage_token(value: float | int | str) -> FormulaToken:
    return FormulaToken(id=_new_id(), type=TokenType.PERCENTAGE, value=_number_text(value))


def operator_token(operator: str) -> FormulaToken:
    return FormulaToken(id=_new_id(), type=TokenType.OPERATOR, value=operator)


def open_bracket_token() -> FormulaToken:
    return FormulaToken(id=_new_id(), type=TokenType.OPEN_BRACKET, value="(")


def close_bracket_token() -> FormulaToken:
    return FormulaToken(id=_new_id(), type=TokenType.CLOSE_BRACKET, value=")")


def empty_formula() -> PricingFormula:
    return PricingFormula(tokens=[], exposures=ExposureResult())


def _unclosed_brackets(tokens: Iterable[FormulaToken]) -> int:
    depth = 0
    for token in tokens:
        if token.type is TokenType.OPEN_BRACKET:
            depth += 1
        elif token.type is TokenType.CLOSE_BRACKET:
            depth -= 1
    return depth


def can_add_token_type(tokens: list[FormulaToken], token_type: TokenType | str) -> bool:
    """Return True when a token of token_type may be appended to tokens."""
    kind = TokenType(token_type)
    if not tokens:
        return kind in OPERAND_TOKEN_TYPES or kind is TokenType.OPEN_BRACKET

    last = tokens[-1]
    if last.is_operand or last.type is TokenType.CLOSE_BRACKET:
        if kind is TokenType.OPERATOR:
            return True
        if kind is TokenType.CLOSE_BRACKET:
            return _unclosed_brackets(tokens) > 0
        return False
    # last token is an operator or an open bracket
    return kind in OPERAND_TOKEN_TYPES or kind is TokenType.OPEN_BRACKET


def _validate_token_value(token: FormulaToken) -> None:
    if token.type is TokenType.OPERATOR and token.value not in OPERATORS:
        raise InvalidTokenPlacement(f"Unknown operator '{token.value}'")
    if token.type in (TokenType.FIXED_VALUE, TokenType.PERCENTAGE):
        try:
            float(token.value)
        except ValueError as exc:
            raise InvalidTokenPlacement(f"'{token.value}' is not a number") from exc
    if token.type is TokenType.INSTRUMENT and not token.value.strip():
        raise InvalidTokenPlacement("Instrument token requires a name")


def add_token(formula: PricingFormula, token: FormulaToken) -> PricingFormula:
    """Append token, raising InvalidTokenPlacement if the result could not parse."""
    _validate_token_value(token)
    if not can_add_token_type(formula.tokens, token.type):
        position = "start" if not formula.tokens else f"after {formula.tokens[-1].type}"
        raise InvalidTokenPlacement(f"Cannot place {token.type} at {position}")
    return replace(formula, tokens=[*formula.tokens, token])


def remove_token(formula: PricingFormula, index: int) -> PricingFormula:
    """Delete the token at index; the remaining sequence is not repaired."""
    if not -len(formula.tokens) <= index < len(formula.tokens):
        raise IndexError(f"Token index {index} out of range")
    tokens = list(formula.tokens)
    del tokens[index]
    return replace(formula, tokens=tokens)


def clear(formula: PricingFormula) -> PricingFormula:
    return replace(
        formula,
        tokens=[],
        exposures=ExposureResult(),
        monthly_distribution=None,
        daily_distribution=None,
    )


def build_formula(tokens: Iterable[FormulaToken] = ()) -> PricingFormula:
    """Build a formula by replaying every token through add_token."""
    formula = empty_formula()
    for token in tokens:
        formula = add_token(formula, token)
    return formula


def is_complete(formula: PricingFormula) -> bool:
    tokens = formula.tokens
    if not tokens:
        return True
    last = tokens[-1]
    if last.type in (TokenType.OPERATOR, TokenType.OPEN_BRACKET):
        return False
    return _unclosed_brackets(tokens) == 0


def format_fixed_value(value: str) -> str:
    """Group thousands and keep at most two decimals; non-numeric text passes through."""
    try:
        number = float(value)
    except ValueError:
        return value
    text = f"{number:,.2f}"
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return "0" if text == "-0" else text


def _display_piece(token: FormulaToken) -> str:
    if token.type is TokenType.PERCENTAGE:
        return f"{token.value}%"
    if token.type is TokenType.FIXED_VALUE:
        return format_fixed_value(token.value)
    return token.value


def formula_to_display_string(tokens: Iterable[FormulaToken]) -> str:
    """
    Render tokens for display.

    Operators are padded with single spaces, brackets hug their contents,
    and any other adjacent pieces are separated by one space.
    """
    out = ""
    previous: FormulaToken | None = None
    for token in tokens:
        piece = _display_piece(token)
        if token.type is TokenType.OPERATOR:
            out = f"{out.rstrip()} {piece} " if out else f"{piece} "
        elif previous is None or previous.type in (TokenType.OPERATOR, TokenType.OPEN_BRACKET):
            out += piece
        elif token.type is TokenType.CLOSE_BRACKET:
            out += piece
        else:
            out += f" {piece}"
        previous = token
    return out.strip()


def formula_to_string(tokens: Iterable[FormulaToken]) -> str:
    parts = []
    for token in tokens:
        parts.append(f"{token.value}%" if token.type is TokenType.PERCENTAGE else token.value)
    return " ".join(parts)


def fixed_components(tokens: Iterable[FormulaToken]) -> list[dict[str, float | str]]:
    """List fixed-value tokens with numeric and display values."""
    components: list[dict[str, float | str]] = []
    for token in tokens:
        if token.type is not TokenType.FIXED_VALUE:
            continue
        try:
            value = float(token.value)
        except ValueError:
            continue
        components.append({"value": value, "display_value": format_fixed_value(token.value)})
    return components
