"""Signed exposure per instrument for physical and paper trade legs."""

from __future__ import annotations

from dataclasses import replace

from commodity_pricing.config import ExposureConfig
from commodity_pricing.diagnostics import DiagnosticRouter, Result, Severity
from commodity_pricing.formula.parser import ordered_instruments
from commodity_pricing.periods import (
    daily_distribution,
    distribute_by_business_days,
    format_month_code,
    month_code_to_range,
)
from commodity_pricing.types import BuySell, DistributionMap, ExposureResult, PricingFormula, RelationshipType

from .legs import PaperTradeLeg, PhysicalTradeLeg
from .products import map_product_to_canonical

SOURCE = "exposure.calculator"

TradeLeg = PhysicalTradeLeg | PaperTradeLeg


def calculate_formula_exposures(
    formula: PricingFormula,
    quantity: float,
    buy_sell: BuySell,
    tolerance: float = 0.0,
    product: str | None = None,
) -> ExposureResult:
    """
    Exposure implied by a formula for a leg of the given size and direction.

    Every distinct instrument in the formula is booked once at
    `quantity_adjusted * direction * -1`; a precomputed monthly distribution
    replaces that with its per-instrument totals. Physical exposure is only
    filled when the owning product is known.
    """
    direction = BuySell.parse(buy_sell).direction
    adjusted = float(quantity) * (1.0 + float(tolerance or 0.0) / 100.0)
    result = ExposureResult()
    if product:
        result.add("physical", product, adjusted * direction)

    if formula.monthly_distribution:
        for instrument, months in formula.monthly_distribution.items():
            result.add("pricing", instrument, sum(months.values()))
        return result

    for instrument in ordered_instruments(formula):
        result.add("pricing", instrument, adjusted * direction * -1)
    return result


def update_formula_exposures(
    formula: PricingFormula,
    quantity: float,
    buy_sell: BuySell,
    tolerance: float = 0.0,
    product: str | None = None,
) -> PricingFormula:
    """Return formula with its cached exposures recomputed."""
    exposures = calculate_formula_exposures(formula, quantity, buy_sell, tolerance, product)
    return replace(formula, exposures=exposures)


def calculate_physical_leg_exposures(leg: PhysicalTradeLeg, config: ExposureConfig | None = None) -> ExposureResult:
    cfg = config or ExposureConfig()
    direction = leg.buy_sell.direction
    adjusted = leg.adjusted_quantity
    result = ExposureResult()

    product = map_product_to_canonical(leg.product)
    # futures legs hedge the price; they are not a physical delivery
    if product and product not in (cfg.futures_instrument, cfg.efp_instrument):
        result.add("physical", product, adjusted * direction)

    if leg.is_efp:
        if not leg.efp_agreed_status:
            result.add("pricing", cfg.efp_instrument, adjusted * direction * -1)
        return result

    formula_exposures = calculate_formula_exposures(leg.formula, leg.quantity, leg.buy_sell, leg.tolerance)
    result.pricing.update(formula_exposures.pricing)
    return result


def paper_right_instrument(leg: PaperTradeLeg, config: ExposureConfig) -> str | None:
    """Right-side instrument; only DIFF legs fall back to the reference instrument."""
    if leg.right_side is None:
        return None
    product = map_product_to_canonical(leg.right_side.product)
    if product:
        return product
    if leg.relationship_type is RelationshipType.DIFF:
        return config.diff_reference_instrument
    return None


def calculate_paper_leg_exposures_result(
    leg: PaperTradeLeg,
    config: ExposureConfig | None = None,
) -> Result[ExposureResult]:
    cfg = config or ExposureConfig()
    direction = leg.buy_sell.direction
    exposures = ExposureResult()
    result: Result[ExposureResult] = Result(value=exposures)

    left = map_product_to_canonical(leg.product)
    if left:
        exposures.add("paper", left, leg.quantity * direction)
        exposures.add("pricing", left, leg.quantity * direction)

    right = leg.right_side
    if right is not None:
        right_product = paper_right_instrument(leg, cfg)
        if right_product is None:
            return result.with_diagnostic(
                Severity.WARNING,
                SOURCE,
                "Spread leg has no right-side product; right side skipped",
                {"leg_reference": leg.leg_reference, "product": leg.product},
            )
        exposures.add("paper", right_product, right.quantity * direction)
        exposures.add("pricing", right_product, right.quantity * direction)
    return result


def calculate_paper_leg_exposures(
    leg: PaperTradeLeg,
    config: ExposureConfig | None = None,
    router: DiagnosticRouter | None = None,
) -> ExposureResult:
    return calculate_paper_leg_exposures_result(leg, config).unwrap_or(ExposureResult(), router)


def calculate_exposures(
    leg: TradeLeg,
    config: ExposureConfig | None = None,
    router: DiagnosticRouter | None = None,
) -> ExposureResult:
    if isinstance(leg, PaperTradeLeg):
        return calculate_paper_leg_exposures(leg, config, router)
    return calculate_physical_leg_exposures(leg, config)


def physical_exposure_month(leg: PhysicalTradeLeg, config: ExposureConfig | None = None) -> str:
    """Month a physical leg's delivery exposure is reported in."""
    cfg = config or ExposureConfig()
    if leg.loading_period_start is not None:
        return format_month_code(leg.loading_period_start)
    if leg.trading_period:
        return leg.trading_period
    if leg.pricing_period_start is not None:
        return format_month_code(leg.pricing_period_start)
    return cfg.fallback_month


def pricing_exposure_month(leg: TradeLeg, config: ExposureConfig | None = None) -> str:
    """Month a leg's pricing exposure is reported in when it has no monthly distribution."""
    cfg = config or ExposureConfig()
    if isinstance(leg, PaperTradeLeg):
        return leg.period or cfg.fallback_month
    if leg.is_efp and leg.efp_designated_month:
        return leg.efp_designated_month
    if leg.trading_period:
        return leg.trading_period
    if leg.pricing_period_start is not None:
        return format_month_code(leg.pricing_period_start)
    return cfg.fallback_month


def calculate_monthly_distribution(leg: TradeLeg, config: ExposureConfig | None = None) -> DistributionMap:
    """
    Pricing exposure per instrument and month code.

    Physical legs with a pricing period pro-rate each instrument across the
    period's months by business days; everything else lands in a single
    month (see pricing_exposure_month).
    """
    cfg = config or ExposureConfig()
    pricing = calculate_exposures(leg, cfg).pricing

    if isinstance(leg, PhysicalTradeLeg) and not leg.is_efp:
        if leg.formula.monthly_distribution:
            return {name: dict(months) for name, months in leg.formula.monthly_distribution.items()}
        if leg.pricing_period_start is not None and leg.pricing_period_end is not None:
            return {
                instrument: distribute_by_business_days(leg.pricing_period_start, leg.pricing_period_end, total)
                for instrument, total in pricing.items()
            }

    month = pricing_exposure_month(leg, cfg)
    return {instrument: {month: total} for instrument, total in pricing.items()}


def _month_daily(
    instrument: str,
    code: str | None,
    total: float,
    result: Result[DistributionMap],
) -> dict[str, float]:
    dates = month_code_to_range(code) if code else None
    if dates is None:
        result.with_diagnostic(
            Severity.WARNING,
            SOURCE,
            "Skipping daily distribution for unparseable period",
            {"instrument": instrument, "period": code},
        )
        return {}
    return daily_distribution(dates.start, dates.end, total)


def calculate_daily_distribution_result(
    leg: TradeLeg,
    config: ExposureConfig | None = None,
) -> Result[DistributionMap]:
    cfg = config or ExposureConfig()
    result: Result[DistributionMap] = Result(value={})
    distribution: DistributionMap = {}
    if isinstance(leg, PaperTradeLeg):
        paper = calculate_paper_leg_exposures_result(leg, cfg)
        result.extend(paper)
        pricing = paper.value.pricing
    else:
        pricing = calculate_physical_leg_exposures(leg, cfg).pricing

    for instrument, total in pricing.items():
        days: dict[str, float] = {}
        if isinstance(leg, PaperTradeLeg):
            days = _month_daily(instrument, leg.period, total, result)
        elif leg.is_efp:
            days = _month_daily(instrument, leg.efp_designated_month, total, result)
        elif leg.formula.monthly_distribution and instrument in leg.formula.monthly_distribution:
            for code, value in leg.formula.monthly_distribution[instrument].items():
                days.update(_month_daily(instrument, code, value, result))
        elif leg.pricing_period_start is not None and leg.pricing_period_end is not None:
            days = daily_distribution(leg.pricing_period_start, leg.pricing_period_end, total)
        else:
            days = _month_daily(instrument, leg.trading_period, total, result)

        # zero business days means no entry rather than a zero division
        if days:
            distribution[instrument] = days

    result.value = distribution
    return result


def calculate_daily_distribution(
    leg: TradeLeg,
    config: ExposureConfig | None = None,
    router: DiagnosticRouter | None = None,
) -> DistributionMap:
    """Spread each pricing exposure evenly over its business days, keyed by ISO date."""
    return calculate_daily_distribution_result(leg, config).unwrap_or({}, router)


def create_efp_formula(
    quantity: float,
    buy_sell: BuySell,
    is_agreed: bool,
    designated_month: str | None,
    config: ExposureConfig | None = None,
    router: DiagnosticRouter | None = None,
    tolerance: float = 0.0,
) -> PricingFormula:
    """Token-less formula carrying the EFP exposure and its designated-month daily split."""
    formula = PricingFormula()
    return update_formula_with_efp_exposure(
        formula, quantity, buy_sell, is_agreed, designated_month, config, router, tolerance=tolerance
    )


def update_formula_with_efp_exposure(
    formula: PricingFormula | None,
    quantity: float,
    buy_sell: BuySell,
    is_agreed: bool,
    designated_month: str | None,
    config: ExposureConfig | None = None,
    router: DiagnosticRouter | None = None,
    tolerance: float = 0.0,
) -> PricingFormula:
    """Refresh the EFP keys; tolerance scales the booked quantity as for the owning leg."""
    cfg = config or ExposureConfig()
    if formula is None:
        return create_efp_formula(quantity, buy_sell, is_agreed, designated_month, cfg, router, tolerance=tolerance)

    pricing = dict(formula.exposures.pricing)
    pricing[cfg.futures_instrument] = 0.0
    pricing[cfg.efp_instrument] = 0.0
    daily = dict(formula.daily_distribution or {})

    if is_agreed:
        daily.pop(cfg.efp_instrument, None)
    else:
        adjusted = float(quantity) * (1.0 + float(tolerance or 0.0) / 100.0)
        value = adjusted * BuySell.parse(buy_sell).direction * -1 + 0.0
        pricing[cfg.efp_instrument] = value
        result: Result[DistributionMap] = Result(value={})
        days = _month_daily(cfg.efp_instrument, designated_month, value, result)
        result.unwrap_or({}, router)
        daily[cfg.efp_instrument] = days

    exposures = replace(formula.exposures, pricing=pricing)
    return replace(formula, exposures=exposures, daily_distribution=daily or None)
