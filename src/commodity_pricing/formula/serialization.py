"""Defensive (de)serialization of persisted pricing formulas."""

from __future__ import annotations

from typing import Any
import json

from commodity_pricing.diagnostics import DiagnosticRouter, Result, Severity
from commodity_pricing.types import OPERATORS, ExposureResult, FormulaToken, PricingFormula, TokenType

from .tokens import empty_formula

_SOURCE = "formula.serialization"


def formula_to_dict(formula: PricingFormula) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "tokens": [token.to_dict() for token in formula.tokens],
        "exposures": formula.exposures.to_dict(),
    }
    if formula.monthly_distribution is not None:
        payload["monthlyDistribution"] = formula.monthly_distribution
    if formula.daily_distribution is not None:
        payload["dailyDistribution"] = formula.daily_distribution
    return payload


def _number_map(raw: Any) -> dict[str, float]:
    if not isinstance(raw, dict):
        return {}
    out: dict[str, float] = {}
    for key, value in raw.items():
        try:
            out[str(key)] = float(value)
        except (TypeError, ValueError):
            continue
    return out


def _nested_number_map(raw: Any) -> dict[str, dict[str, float]] | None:
    if not isinstance(raw, dict):
        return None
    return {str(key): _number_map(inner) for key, inner in raw.items() if isinstance(inner, dict)}


def _parse_tokens(raw_tokens: list[Any], result: Result[PricingFormula]) -> list[FormulaToken]:
    tokens: list[FormulaToken] = []
    valid_types = {str(t) for t in TokenType}
    for index, raw in enumerate(raw_tokens):
        malformed = (
            not isinstance(raw, dict)
            or raw.get("type") not in valid_types
            or not isinstance(raw.get("value"), (str, int, float))
            or (raw["type"] == TokenType.OPERATOR and raw["value"] not in OPERATORS)
        )
        if malformed:
            result.with_diagnostic(Severity.WARNING, _SOURCE, "Dropped malformed token", {"index": index, "token": raw})
            continue
        tokens.append(
            FormulaToken(
                id=str(raw.get("id") or f"token-{index}"),
                type=TokenType(raw["type"]),
                value=str(raw["value"]),
            )
        )
    return tokens


def validate_and_parse_pricing_formula(raw: Any) -> Result[PricingFormula]:
    """
    Coerce a persisted formula (dict, JSON string, or anything else).

    Unknown or missing shapes collapse to an empty formula with a
    diagnostic; the value is never None.
    """
    if raw is None:
        return Result(value=empty_formula())
    if isinstance(raw, PricingFormula):
        return Result(value=raw)

    payload = raw
    if isinstance(raw, (str, bytes)):
        try:
            payload = json.loads(raw)
        except ValueError as exc:
            return Result(value=empty_formula()).with_diagnostic(
                Severity.ERROR, _SOURCE, f"Formula JSON is invalid: {exc}"
            )

    if not isinstance(payload, dict) or not isinstance(payload.get("tokens"), list):
        return Result(value=empty_formula()).with_diagnostic(
            Severity.WARNING,
            _SOURCE,
            "Formula has no token list; treated as empty",
            {"type": type(payload).__name__},
        )

    result: Result[PricingFormula] = Result()
    tokens = _parse_tokens(payload["tokens"], result)
    exposures_raw = payload.get("exposures") if isinstance(payload.get("exposures"), dict) else {}
    exposures = ExposureResult(
        physical=_number_map(exposures_raw.get("physical")),
        pricing=_number_map(exposures_raw.get("pricing")),
        paper=_number_map(exposures_raw.get("paper")),
    )
    result.value = PricingFormula(
        tokens=tokens,
        exposures=exposures,
        monthly_distribution=_nested_number_map(payload.get("monthlyDistribution")),
        daily_distribution=_nested_number_map(payload.get("dailyDistribution")),
    )
    return result


def formula_from_dict(raw: Any, router: DiagnosticRouter | None = None) -> PricingFormula:
    return validate_and_parse_pricing_formula(raw).unwrap_or(empty_formula(), router)
