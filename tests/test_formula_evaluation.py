from __future__ import annotations

import pytest

from commodity_pricing.diagnostics import DiagnosticRouter, Severity
from commodity_pricing.errors import FormulaParseError
from commodity_pricing.formula import (
    BinaryNode,
    InstrumentNode,
    build_formula,
    close_bracket_token,
    evaluate,
    evaluate_formula,
    evaluate_formula_result,
    extract_instruments,
    fixed_value_token,
    instrument_token,
    missing_prices,
    open_bracket_token,
    operator_token,
    ordered_instruments,
    parse,
    parse_formula,
    percentage_token,
)


def _numbers(*items: object) -> list:
    tokens = []
    for item in items:
        if isinstance(item, (int, float)):
            tokens.append(fixed_value_token(item))
        elif item == "(":
            tokens.append(open_bracket_token())
        elif item == ")":
            tokens.append(close_bracket_token())
        elif item in ("+", "-", "*", "/"):
            tokens.append(operator_token(item))
        else:
            tokens.append(instrument_token(str(item)))
    return tokens


def test_worked_example_evaluates_to_1250() -> None:
    formula = build_formula(_numbers("Argus UCOME", "+", 50))
    assert evaluate_formula(formula, {"Argus UCOME": 1200.0}) == pytest.approx(1250.0)


def test_multiplication_binds_tighter_and_brackets_override() -> None:
    assert evaluate(parse(_numbers(2, "+", 3, "*", 4)), {}) == pytest.approx(14.0)
    assert evaluate(parse(_numbers("(", 2, "+", 3, ")", "*", 4)), {}) == pytest.approx(20.0)


def test_left_associativity_within_tier() -> None:
    assert evaluate(parse(_numbers(10, "-", 4, "-", 3)), {}) == pytest.approx(3.0)
    assert evaluate(parse(_numbers(8, "/", 4, "/", 2)), {}) == pytest.approx(1.0)


def test_parse_builds_binary_tree() -> None:
    tree = parse(_numbers("Argus UCOME", "*", 2))
    assert isinstance(tree, BinaryNode)
    assert tree.operator == "*"
    assert tree.left == InstrumentNode("Argus UCOME")


def test_percentage_contributes_literal_value() -> None:
    tokens = [percentage_token(50), operator_token("*"), fixed_value_token(2)]
    assert evaluate(parse(tokens), {}) == pytest.approx(100.0)


def test_missing_price_reads_as_zero_with_warning() -> None:
    formula = build_formula(_numbers("Argus UCOME", "+", 50))
    result = evaluate_formula_result(formula, {})
    assert result.value == pytest.approx(50.0)
    assert any(d.severity is Severity.WARNING for d in result.diagnostics)
    assert missing_prices(formula, {}) == {"Argus UCOME"}


def test_division_by_zero_resolves_to_zero() -> None:
    formula = build_formula(_numbers("Argus UCOME", "/", 0))
    assert evaluate_formula(formula, {"Argus UCOME": 900.0}) == 0.0


def test_trailing_operator_is_a_parse_error() -> None:
    tokens = [instrument_token("Argus UCOME"), operator_token("+")]
    with pytest.raises(FormulaParseError):
        parse(tokens)

    router, sink = DiagnosticRouter.collecting()
    assert parse_formula(tokens, router) is None
    assert evaluate_formula(tokens, {"Argus UCOME": 1.0}, router) == 0.0
    assert sink.messages(Severity.ERROR)


def test_unclosed_bracket_is_a_parse_error() -> None:
    with pytest.raises(FormulaParseError):
        parse([open_bracket_token(), instrument_token("Argus UCOME")])


def test_unary_minus_from_persisted_tokens() -> None:
    tokens = [operator_token("-"), instrument_token("Platts LSGO")]
    assert evaluate(parse(tokens), {"Platts LSGO": 700.0}) == pytest.approx(-700.0)


def test_empty_formula_evaluates_to_zero() -> None:
    assert parse([]) is None
    result = evaluate_formula_result([], {})
    assert result.value == 0.0
    assert result.ok


def test_evaluation_is_deterministic() -> None:
    formula = build_formula(_numbers("(", "Argus UCOME", "+", "Argus RME", ")", "/", 2))
    prices = {"Argus UCOME": 1010.0, "Argus RME": 990.0}
    values = {evaluate_formula(formula, prices) for _ in range(5)}
    assert values == {1000.0}


def test_extract_instruments_deduplicates() -> None:
    formula = build_formula(_numbers("Argus UCOME", "+", "Platts LSGO", "-", "Argus UCOME"))
    assert extract_instruments(formula) == {"Argus UCOME", "Platts LSGO"}
    assert extract_instruments(parse(formula)) == {"Argus UCOME", "Platts LSGO"}
    assert ordered_instruments(formula) == ["Argus UCOME", "Platts LSGO"]
