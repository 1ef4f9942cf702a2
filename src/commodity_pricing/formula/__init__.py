"""Pricing formula token model, parser and evaluator."""

from .evaluator import (
    evaluate,
    evaluate_formula,
    evaluate_formula_result,
    evaluate_result,
    missing_prices,
)
from .parser import (
    BinaryNode,
    ExpressionNode,
    InstrumentNode,
    UnaryNode,
    ValueNode,
    extract_instruments,
    ordered_instruments,
    parse,
    parse_formula,
    parse_formula_result,
)
from .serialization import formula_from_dict, formula_to_dict, validate_and_parse_pricing_formula
from .tokens import (
    add_token,
    build_formula,
    can_add_token_type,
    clear,
    close_bracket_token,
    empty_formula,
    fixed_components,
    fixed_value_token,
    formula_to_display_string,
    formula_to_string,
    instrument_token,
    is_complete,
    open_bracket_token,
    operator_token,
    percentage_token,
    remove_token,
)

__all__ = [
    "BinaryNode",
    "ExpressionNode",
    "InstrumentNode",
    "UnaryNode",
    "ValueNode",
    "add_token",
    "build_formula",
    "can_add_token_type",
    "clear",
    "close_bracket_token",
    "empty_formula",
    "evaluate",
    "evaluate_formula",
    "evaluate_formula_result",
    "evaluate_result",
    "extract_instruments",
    "fixed_components",
    "fixed_value_token",
    "formula_from_dict",
    "formula_to_dict",
    "formula_to_display_string",
    "formula_to_string",
    "instrument_token",
    "is_complete",
    "missing_prices",
    "open_bracket_token",
    "operator_token",
    "ordered_instruments",
    "parse",
    "parse_formula",
    "parse_formula_result",
    "percentage_token",
    "remove_token",
    "validate_and_parse_pricing_formula",
]
