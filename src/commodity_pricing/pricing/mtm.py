"""Trade price, MTM price and MTM value calculations."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import Any

from commodity_pricing.config import ExposureConfig
from commodity_pricing.diagnostics import Severity
from commodity_pricing.exposure.calculator import paper_right_instrument, pricing_exposure_month
from commodity_pricing.exposure.legs import PaperTradeLeg, PhysicalTradeLeg
from commodity_pricing.exposure.products import map_product_to_canonical
from commodity_pricing.formula import evaluate_formula_result, fixed_components, ordered_instruments
from commodity_pricing.periods import classify_period, period_type_for_code
from commodity_pricing.types import BuySell, PeriodClassification, PricingFormula, RelationshipType

from .resolution import PriceResolution, PriceResolver

SOURCE = "pricing.mtm"


@dataclass(slots=True)
class PriceCalculation:
    price: float | None
    details: dict[str, Any] = field(default_factory=dict)
    period_type: PeriodClassification | None = None
    precision: int = 2

    @property
    def display_price(self) -> str:
        return "" if self.price is None else f"{self.price:,.{self.precision}f}"

    def to_dict(self) -> dict[str, Any]:
        return {
            "price": self.price,
            "period_type": str(self.period_type) if self.period_type else None,
            "details": self.details,
        }


def calculate_mtm_value(trade_price: float, mtm_price: float, quantity: float, buy_sell: BuySell | str) -> float:
    """(trade - mtm) * quantity, negated for buys."""
    factor = -1 if BuySell.parse(buy_sell) is BuySell.BUY else 1
    return (float(trade_price) - float(mtm_price)) * float(quantity) * factor


def calculate_efp_settlement_price(
    premium: float | None,
    is_agreed: bool,
    fixed_value: float | None = None,
    gasoil_price: float | None = None,
) -> float:
    """Agreed: fixed value + premium. Unagreed: gasoil + premium, or the premium alone without a gasoil price."""
    base_premium = float(premium or 0.0)
    if is_agreed:
        return float(fixed_value or 0.0) + base_premium
    if gasoil_price is None:
        return base_premium
    return float(gasoil_price) + base_premium


def calculate_paper_trade_price(leg: PaperTradeLeg) -> float | None:
    if leg.relationship_type is RelationshipType.FP:
        return leg.price
    right_price = leg.right_side.price if leg.right_side else None
    if leg.price is None or right_price is None:
        return None
    return float(leg.price) - float(right_price)


def calculate_paper_mtm_price(
    leg: PaperTradeLeg,
    resolver: PriceResolver,
    config: ExposureConfig | None = None,
) -> float | None:
    """
    Market price of a paper leg for its period.

    FP legs price the left instrument; DIFF and SPREAD legs price the
    difference between left and right. Any unresolved side yields None.
    """
    cfg = config or ExposureConfig()
    if not leg.period:
        return None
    left = resolver.resolve_price(map_product_to_canonical(leg.product), leg.period)
    if left is None:
        return None
    if leg.relationship_type is RelationshipType.FP:
        return left
    right_instrument = paper_right_instrument(leg, cfg)
    if right_instrument is None:
        if resolver.router is not None:
            resolver.router.warning(
                SOURCE,
                "Spread leg has no right-side product; no MTM price",
                {"leg_reference": leg.leg_reference, "product": leg.product},
            )
        return None
    right = resolver.resolve_price(right_instrument, leg.period)
    if right is None:
        return None
    return left - right


def _instrument_detail(resolution: PriceResolution | None, averaged: bool) -> dict[str, Any]:
    if resolution is None:
        return {"price": None, "date": None}
    latest = resolution.points[-1].date.isoformat() if resolution.points else None
    detail: dict[str, Any] = {"price": resolution.price, "date": latest, "stale": resolution.stale}
    if averaged:
        detail["average"] = resolution.price
        detail["prices"] = [p.to_dict() for p in resolution.points]
    return detail


def _price_formula(
    formula: PricingFormula,
    resolutions: dict[str, PriceResolution | None],
    resolver: PriceResolver,
    period_type: PeriodClassification | None,
    averaged: bool,
) -> PriceCalculation:
    precision = resolver.config.price_precision
    prices = {name: r.price for name, r in resolutions.items() if r is not None and r.price is not None}
    details: dict[str, Any] = {
        "instruments": {name: _instrument_detail(r, averaged) for name, r in resolutions.items()},
        "fixed_components": fixed_components(formula.tokens),
        "missing_instruments": sorted(set(resolutions) - set(prices)),
    }
    if formula.is_empty:
        details["evaluated_price"] = None
        return PriceCalculation(price=None, details=details, period_type=period_type, precision=precision)

    evaluated = evaluate_formula_result(formula, prices)
    price = evaluated.unwrap_or(None, resolver.router)
    details["evaluated_price"] = price
    return PriceCalculation(price=price, details=details, period_type=period_type, precision=precision)


def _efp_price(
    leg: PhysicalTradeLeg,
    gasoil: PriceResolution | None,
    resolver: PriceResolver,
    period_type: PeriodClassification | None,
) -> PriceCalculation:
    gasoil_price = gasoil.price if gasoil is not None else None
    if not leg.efp_agreed_status and gasoil_price is None and resolver.router is not None:
        resolver.router.warning(
            SOURCE,
            "No gasoil price for unagreed EFP; using premium only",
            {"leg_reference": leg.leg_reference},
        )
    price = calculate_efp_settlement_price(leg.efp_premium, leg.efp_agreed_status, leg.efp_fixed_value, gasoil_price)
    details = {
        "efp": {
            "premium": leg.efp_premium,
            "agreed": leg.efp_agreed_status,
            "fixed_value": leg.efp_fixed_value,
            "gasoil_price": gasoil_price,
            "designated_month": leg.efp_designated_month,
        },
        "evaluated_price": price,
    }
    return PriceCalculation(price=price, details=details, period_type=period_type, precision=resolver.config.price_precision)


def calculate_mtm_price(
    target: PhysicalTradeLeg | PaperTradeLeg | PricingFormula,
    resolver: PriceResolver,
    period: str | None = None,
    config: ExposureConfig | None = None,
) -> PriceCalculation:
    """
    Mark-to-market price for a leg or bare formula.

    Physical legs price their MTM formula (falling back to the pricing
    formula) for `period`, else the leg's MTM future month, else its pricing
    exposure month. A bare formula needs an explicit period.
    """
    cfg = config or ExposureConfig()
    precision = resolver.config.price_precision

    if isinstance(target, PaperTradeLeg):
        code = period or target.period
        price = calculate_paper_mtm_price(target.update_left_period(code), resolver, cfg) if code else None
        details = {"relationship_type": str(target.relationship_type), "period": code, "evaluated_price": price}
        period_type = period_type_for_code(code, resolver.reference_date) if code else None
        return PriceCalculation(price=price, details=details, period_type=period_type, precision=precision)

    if isinstance(target, PhysicalTradeLeg):
        code = period or target.mtm_future_month or pricing_exposure_month(target, cfg)
        period_type = period_type_for_code(code, resolver.reference_date)
        if target.is_efp:
            gasoil_month = target.efp_designated_month or code
            gasoil = None if target.efp_agreed_status else resolver.resolve(resolver.config.gasoil_instrument, gasoil_month)
            return _efp_price(target, gasoil, resolver, period_type)
        formula = target.mtm_formula if target.mtm_formula and not target.mtm_formula.is_empty else target.formula
    else:
        formula = target
        code = period
        if code is None:
            if resolver.router is not None:
                resolver.router.error(SOURCE, "No period given for formula MTM price")
            return PriceCalculation(price=None, details={"evaluated_price": None}, precision=precision)
        period_type = period_type_for_code(code, resolver.reference_date)

    resolutions = {name: resolver.resolve(name, code) for name in ordered_instruments(formula)}
    calculation = _price_formula(formula, resolutions, resolver, period_type, averaged=False)
    calculation.details["period"] = code
    return calculation


def calculate_trade_leg_price(
    target: PhysicalTradeLeg | PaperTradeLeg | PricingFormula,
    resolver: PriceResolver,
    start: date | None = None,
    end: date | None = None,
) -> PriceCalculation:
    """
    Trade price over a pricing window.

    Each formula instrument is priced with PriceResolver.range_price_result:
    the average of published historical prices, or the forward price when
    the window has not started. Paper legs use their traded prices.
    """
    precision = resolver.config.price_precision
    if isinstance(target, PaperTradeLeg):
        price = calculate_paper_trade_price(target)
        return PriceCalculation(price=price, details={"evaluated_price": price}, precision=precision)

    formula = target
    if isinstance(target, PhysicalTradeLeg):
        start = start or target.pricing_period_start
        end = end or target.pricing_period_end
        formula = target.formula

    if start is None or end is None:
        # agreed EFP legs are fully fixed and need no window
        if isinstance(target, PhysicalTradeLeg) and target.is_efp and target.efp_agreed_status:
            return _efp_price(target, None, resolver, None)
        if resolver.router is not None:
            resolver.router.error(SOURCE, "Pricing period has no start or end date")
        return PriceCalculation(price=None, details={"evaluated_price": None}, precision=precision)

    period_type = classify_period(start, end, resolver.reference_date)
    if isinstance(target, PhysicalTradeLeg) and target.is_efp:
        gasoil = None
        if not target.efp_agreed_status:
            gasoil = resolver.range_price_result(resolver.config.gasoil_instrument, start, end).unwrap_or(
                None, resolver.router
            )
        return _efp_price(target, gasoil, resolver, period_type)

    resolutions: dict[str, PriceResolution | None] = {}
    for name in ordered_instruments(formula):
        outcome = resolver.range_price_result(name, start, end)
        if outcome.value is not None and outcome.value.price is None:
            outcome.with_diagnostic(Severity.WARNING, SOURCE, "Instrument has no price for window", {"instrument": name})
        resolutions[name] = outcome.unwrap_or(None, resolver.router)
    calculation = _price_formula(formula, resolutions, resolver, period_type, averaged=True)
    calculation.details["start"] = start.isoformat()
    calculation.details["end"] = end.isoformat()
    return calculation
