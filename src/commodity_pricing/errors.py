"""Exception taxonomy for formula, period and price failures."""

from __future__ import annotations


class CommodityPricingError(Exception):
    """Base class for all engine errors."""


class InvalidTokenPlacement(CommodityPricingError):
    """A builder edit would make the token sequence unparsable."""


class FormulaParseError(CommodityPricingError):
    """Tokens cannot form a valid expression tree."""

    def __init__(self, message: str, position: int | None = None) -> None:
        super().__init__(message)
        self.position = position


class PeriodUnparseable(CommodityPricingError):
    """A period or month code could not be resolved to dates."""


class PriceUnavailable(CommodityPricingError):
    """An instrument has no resolvable price for the requested period."""

    def __init__(self, instrument: str, period: str | None = None) -> None:
        suffix = f" for {period}" if period else ""
        super().__init__(f"No price available for {instrument}{suffix}")
        self.instrument = instrument
        self.period = period
