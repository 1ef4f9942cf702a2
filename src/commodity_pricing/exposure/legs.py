"""Trade leg snapshots consumed by the exposure and pricing calculators."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import date
from typing import Any

from commodity_pricing.diagnostics import DiagnosticRouter
from commodity_pricing.formula.serialization import formula_from_dict
from commodity_pricing.formula.tokens import empty_formula
from commodity_pricing.time_utils import to_date
from commodity_pricing.types import BuySell, PricingFormula, PricingType, RelationshipType

from .products import parse_paper_instrument

DEFAULT_DIFF_RIGHT_PRODUCT = "LSGO"

SOURCE = "exposure.legs"


def _optional_date(value: Any) -> date | None:
    if value in (None, ""):
        return None
    return to_date(value)


def _optional_float(value: Any) -> float | None:
    if value in (None, ""):
        return None
    return float(value)


def _coerce_float(payload: dict[str, Any], key: str, router: DiagnosticRouter | None) -> float:
    raw = payload.get(key)
    if raw in (None, ""):
        return 0.0
    try:
        return float(raw)
    except (TypeError, ValueError):
        if router is not None:
            router.warning(SOURCE, f"Leg {key} is not numeric; treated as 0", {"field": key, "value": raw})
        return 0.0


def _coerce_pricing_type(raw: Any, router: DiagnosticRouter | None) -> PricingType:
    if raw in (None, ""):
        return PricingType.STANDARD
    try:
        return PricingType(str(raw).lower())
    except ValueError:
        if router is not None:
            router.warning(SOURCE, "Unknown pricing type; treated as standard", {"pricing_type": raw})
        return PricingType.STANDARD


@dataclass(slots=True)
class PhysicalTradeLeg:
    product: str
    buy_sell: BuySell
    quantity: float
    tolerance: float = 0.0
    loading_period_start: date | None = None
    loading_period_end: date | None = None
    pricing_period_start: date | None = None
    pricing_period_end: date | None = None
    formula: PricingFormula = field(default_factory=empty_formula)
    mtm_formula: PricingFormula | None = None
    pricing_type: PricingType = PricingType.STANDARD
    efp_premium: float | None = None
    efp_agreed_status: bool = False
    efp_fixed_value: float | None = None
    efp_designated_month: str | None = None
    mtm_future_month: str | None = None
    trading_period: str | None = None
    leg_reference: str = ""

    @property
    def is_efp(self) -> bool:
        return self.pricing_type is PricingType.EFP

    @property
    def adjusted_quantity(self) -> float:
        return float(self.quantity) * (1.0 + float(self.tolerance or 0.0) / 100.0)

    @staticmethod
    def from_dict(payload: dict[str, Any], router: DiagnosticRouter | None = None) -> "PhysicalTradeLeg":
        mtm_raw = payload.get("mtm_formula")
        return PhysicalTradeLeg(
            product=str(payload.get("product") or ""),
            buy_sell=BuySell.parse(payload.get("buy_sell")),
            quantity=_coerce_float(payload, "quantity", router),
            tolerance=_coerce_float(payload, "tolerance", router),
            loading_period_start=_optional_date(payload.get("loading_period_start")),
            loading_period_end=_optional_date(payload.get("loading_period_end")),
            pricing_period_start=_optional_date(payload.get("pricing_period_start")),
            pricing_period_end=_optional_date(payload.get("pricing_period_end")),
            formula=formula_from_dict(payload.get("pricing_formula"), router),
            mtm_formula=formula_from_dict(mtm_raw, router) if mtm_raw else None,
            pricing_type=_coerce_pricing_type(payload.get("pricing_type"), router),
            efp_premium=_optional_float(payload.get("efp_premium")),
            efp_agreed_status=bool(payload.get("efp_agreed_status", False)),
            efp_fixed_value=_optional_float(payload.get("efp_fixed_value")),
            efp_designated_month=payload.get("efp_designated_month") or None,
            mtm_future_month=payload.get("mtm_future_month") or None,
            trading_period=payload.get("trading_period") or None,
            leg_reference=str(payload.get("leg_reference") or ""),
        )


@dataclass(slots=True, frozen=True)
class RightSide:
    product: str
    quantity: float = 0.0
    period: str | None = None
    price: float | None = None


@dataclass(slots=True, frozen=True)
class PaperTradeLeg:
    """
    Paper leg with its mirrored right side.

    For DIFF and SPREAD legs the right side always carries the negated left
    quantity and the left period; FP legs have no right side.
    """

    product: str
    buy_sell: BuySell
    quantity: float
    period: str | None = None
    price: float | None = None
    relationship_type: RelationshipType = RelationshipType.FP
    right_side: RightSide | None = None
    leg_reference: str = ""

    def __post_init__(self) -> None:
        object.__setattr__(self, "right_side", self._mirrored_right_side())

    def _mirrored_right_side(self) -> RightSide | None:
        if self.relationship_type is RelationshipType.FP:
            return None
        current = self.right_side or RightSide(
            product=DEFAULT_DIFF_RIGHT_PRODUCT if self.relationship_type is RelationshipType.DIFF else ""
        )
        return replace(current, quantity=-float(self.quantity) + 0.0, period=self.period)

    def update_left_quantity(self, quantity: float) -> "PaperTradeLeg":
        return replace(self, quantity=float(quantity))

    def update_left_period(self, period: str | None) -> "PaperTradeLeg":
        return replace(self, period=period)

    def with_relationship(self, relationship_type: RelationshipType, right_product: str | None = None) -> "PaperTradeLeg":
        right = self.right_side
        if right_product is not None:
            right = RightSide(product=right_product, price=right.price if right else None)
        return replace(self, relationship_type=relationship_type, right_side=right)

    def with_right_price(self, price: float | None) -> "PaperTradeLeg":
        if self.right_side is None:
            return self
        return replace(self, right_side=replace(self.right_side, price=price))

    @staticmethod
    def from_dict(payload: dict[str, Any], router: DiagnosticRouter | None = None) -> "PaperTradeLeg":
        relationship = payload.get("relationship_type")
        product = str(payload.get("product") or "")
        right_raw = payload.get("right_side") if isinstance(payload.get("right_side"), dict) else None
        right = (
            RightSide(product=str(right_raw.get("product") or ""), price=_optional_float(right_raw.get("price")))
            if right_raw
            else None
        )
        if not relationship and payload.get("instrument"):
            parsed = parse_paper_instrument(str(payload["instrument"]))
            relationship = parsed.relationship_type
            product = product or parsed.base_product
            if right is None and parsed.opposite_product:
                right = RightSide(product=parsed.opposite_product)
        return PaperTradeLeg(
            product=product,
            buy_sell=BuySell.parse(payload.get("buy_sell")),
            quantity=_coerce_float(payload, "quantity", router),
            period=payload.get("period") or payload.get("trading_period") or None,
            price=_optional_float(payload.get("price")),
            relationship_type=RelationshipType(str(relationship or "FP").upper()),
            right_side=right,
            leg_reference=str(payload.get("leg_reference") or ""),
        )
