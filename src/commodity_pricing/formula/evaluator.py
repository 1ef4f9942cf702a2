"""Lenient evaluation of parsed pricing formulas."""

from __future__ import annotations

from typing import Iterable, Mapping
import math

from commodity_pricing.diagnostics import DiagnosticRouter, Result, Severity
from commodity_pricing.types import FormulaToken, PricingFormula

from .parser import (
    BinaryNode,
    ExpressionNode,
    InstrumentNode,
    UnaryNode,
    ValueNode,
    extract_instruments,
    parse_formula_result,
)


def _finite(value: float) -> float:
    return value if math.isfinite(value) else 0.0


def _walk(node: ExpressionNode, prices: Mapping[str, float], notes: list[tuple[str, str]] | None) -> float:
    if isinstance(node, ValueNode):
        return node.value
    if isinstance(node, InstrumentNode):
        price = prices.get(node.name)
        if price is None:
            if notes is not None:
                notes.append(("missing_price", node.name))
            return 0.0
        return float(price)
    if isinstance(node, UnaryNode):
        operand = _walk(node.operand, prices, notes)
        return -operand if node.operator == "-" else operand

    left = _walk(node.left, prices, notes)
    right = _walk(node.right, prices, notes)
    if node.operator == "+":
        return _finite(left + right)
    if node.operator == "-":
        return _finite(left - right)
    if node.operator == "*":
        return _finite(left * right)
    if right == 0:
        if notes is not None:
            notes.append(("division_by_zero", ""))
        return 0.0
    return _finite(left / right)


def evaluate(tree: ExpressionNode | None, prices: Mapping[str, float]) -> float:
    """
    Evaluate tree against instrument prices.

    Missing instruments read as 0 and division by zero yields 0, so the
    result is always a finite number.
    """
    if tree is None:
        return 0.0
    return _finite(_walk(tree, prices, None))


def evaluate_result(tree: ExpressionNode | None, prices: Mapping[str, float]) -> Result[float]:
    notes: list[tuple[str, str]] = []
    value = 0.0 if tree is None else _finite(_walk(tree, prices, notes))
    result: Result[float] = Result(value=value)
    missing = sorted({name for kind, name in notes if kind == "missing_price"})
    if missing:
        result.with_diagnostic(
            Severity.WARNING,
            "formula.evaluator",
            "Price missing for instruments; substituted 0",
            {"instruments": missing},
        )
    if any(kind == "division_by_zero" for kind, _ in notes):
        result.with_diagnostic(Severity.WARNING, "formula.evaluator", "Division by zero resolved to 0")
    return result


def evaluate_formula_result(
    formula: PricingFormula | Iterable[FormulaToken],
    prices: Mapping[str, float],
) -> Result[float]:
    parsed = parse_formula_result(formula)
    if parsed.value is None:
        # empty formulas evaluate to 0; malformed ones carry no value
        failed = any(d.severity is Severity.ERROR for d in parsed.diagnostics)
        return Result(value=None if failed else 0.0, diagnostics=list(parsed.diagnostics))
    return evaluate_result(parsed.value, prices).extend(parsed)


def evaluate_formula(
    formula: PricingFormula | Iterable[FormulaToken],
    prices: Mapping[str, float],
    router: DiagnosticRouter | None = None,
) -> float:
    """Parse and evaluate; a formula that cannot be parsed evaluates to 0."""
    return evaluate_formula_result(formula, prices).unwrap_or(0.0, router)


def missing_prices(
    formula: PricingFormula | Iterable[FormulaToken],
    prices: Mapping[str, float],
) -> set[str]:
    """Instruments referenced by formula that have no entry in prices."""
    return {name for name in extract_instruments(formula) if prices.get(name) is None}
