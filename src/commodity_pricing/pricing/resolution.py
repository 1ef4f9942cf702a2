"""Month-period price resolution on top of a PriceDataAdapter."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import Iterable

import numpy as np

from commodity_pricing.config import PricingConfig
from commodity_pricing.diagnostics import DiagnosticRouter, Result, Severity
from commodity_pricing.errors import PriceUnavailable
from commodity_pricing.exposure.products import map_product_to_instrument_code
from commodity_pricing.periods import classify_period, format_month_code, month_code_to_range
from commodity_pricing.time_utils import to_date, today_local
from commodity_pricing.types import PeriodClassification

from .adapters import PriceDataAdapter, PricePoint

SOURCE = "pricing.resolution"


@dataclass(slots=True)
class PriceResolution:
    """A resolved price with the rows and classification behind it."""

    instrument: str
    price: float | None
    period_type: PeriodClassification | None = None
    points: list[PricePoint] = field(default_factory=list)
    stale: bool = False

    def to_dict(self) -> dict[str, object]:
        return {
            "instrument": self.instrument,
            "price": self.price,
            "period_type": str(self.period_type) if self.period_type else None,
            "prices": [p.to_dict() for p in self.points],
            "stale": self.stale,
        }


@dataclass(slots=True)
class PriceResolver:
    """
    Resolves instrument prices for month codes and date ranges.

    Historical months use the arithmetic mean of the month's daily prices;
    current and future months use the forward curve, falling back to the
    latest forward price when the exact month is missing.
    """

    adapter: PriceDataAdapter
    config: PricingConfig = field(default_factory=PricingConfig)
    router: DiagnosticRouter | None = None
    today: date | None = None

    @property
    def reference_date(self) -> date:
        return to_date(self.today) if self.today is not None else today_local()

    def _finish(self, result: Result[PriceResolution]) -> PriceResolution | None:
        return result.unwrap_or(None, self.router)

    def instrument_id(self, instrument: str) -> str | None:
        code = map_product_to_instrument_code(instrument, self.config.instrument_codes)
        return self.adapter.lookup_instrument_id(code)

    def monthly_average_result(self, instrument: str, period: str) -> Result[PriceResolution]:
        dates = month_code_to_range(period)
        if dates is None:
            return Result.failure(SOURCE, "Unparseable period", {"instrument": instrument, "period": period})
        return self.average_between_result(instrument, dates.start, dates.end)

    def average_between_result(self, instrument: str, start: date, end: date) -> Result[PriceResolution]:
        instrument_id = self.instrument_id(instrument)
        if instrument_id is None:
            return Result.failure(SOURCE, "Unknown instrument", {"instrument": instrument})
        points = self.adapter.fetch_historical_prices(instrument_id, start, end)
        if not points:
            return Result(value=PriceResolution(instrument=instrument, price=None)).with_diagnostic(
                Severity.WARNING,
                SOURCE,
                "No historical prices in range",
                {"instrument": instrument, "start": str(start), "end": str(end)},
            )
        average = float(np.mean([p.price for p in points]))
        return Result(value=PriceResolution(instrument=instrument, price=average, points=points))

    def monthly_average_price(self, instrument: str, period: str) -> float | None:
        resolved = self._finish(self.monthly_average_result(instrument, period))
        return resolved.price if resolved else None

    def forward_price_result(self, instrument: str, period: str) -> Result[PriceResolution]:
        dates = month_code_to_range(period)
        if dates is None:
            return Result.failure(SOURCE, "Unparseable period", {"instrument": instrument, "period": period})
        instrument_id = self.instrument_id(instrument)
        if instrument_id is None:
            return Result.failure(SOURCE, "Unknown instrument", {"instrument": instrument})

        price = self.adapter.fetch_forward_price(instrument_id, dates.start)
        if price is not None:
            return Result(value=PriceResolution(instrument=instrument, price=price))

        result: Result[PriceResolution] = Result(value=PriceResolution(instrument=instrument, price=None))
        if not self.config.stale_forward_fallback:
            return result.with_diagnostic(
                Severity.WARNING, SOURCE, "No forward price for month", {"instrument": instrument, "period": period}
            )
        latest = self.adapter.fetch_latest_forward_price(instrument_id)
        if latest is None:
            return result.with_diagnostic(
                Severity.WARNING, SOURCE, "No forward prices available", {"instrument": instrument, "period": period}
            )
        result.value = PriceResolution(instrument=instrument, price=latest, stale=True)
        return result.with_diagnostic(
            Severity.WARNING,
            SOURCE,
            "Using latest forward price",
            {"instrument": instrument, "period": period, "price": latest},
        )

    def forward_price(self, instrument: str, period: str) -> float | None:
        resolved = self._finish(self.forward_price_result(instrument, period))
        return resolved.price if resolved else None

    def resolve_price_result(self, instrument: str, period: str) -> Result[PriceResolution]:
        dates = month_code_to_range(period)
        if dates is None:
            return Result.failure(SOURCE, "Unparseable period", {"instrument": instrument, "period": period})
        period_type = classify_period(dates.start, dates.end, self.reference_date)
        if period_type is PeriodClassification.HISTORICAL:
            result = self.average_between_result(instrument, dates.start, dates.end)
        else:
            result = self.forward_price_result(instrument, period)
        if result.value is not None:
            result.value.period_type = period_type
        return result

    def resolve(self, instrument: str, period: str) -> PriceResolution | None:
        return self._finish(self.resolve_price_result(instrument, period))

    def resolve_price(self, instrument: str, period: str) -> float | None:
        resolved = self.resolve(instrument, period)
        return resolved.price if resolved else None

    def require_price(self, instrument: str, period: str) -> float:
        price = self.resolve_price(instrument, period)
        if price is None:
            raise PriceUnavailable(instrument, period)
        return price

    def resolve_prices(self, instruments: Iterable[str], period: str) -> dict[str, float]:
        """Prices for every instrument that resolves; unresolved ones are left out."""
        prices: dict[str, float] = {}
        for instrument in instruments:
            price = self.resolve_price(instrument, period)
            if price is not None:
                prices[instrument] = price
        return prices

    def previous_day_price(self, instrument: str) -> PricePoint | None:
        """Latest historical price strictly before the reference date."""
        instrument_id = self.instrument_id(instrument)
        if instrument_id is None:
            if self.router is not None:
                self.router.warning(SOURCE, "Unknown instrument", {"instrument": instrument})
            return None
        return self.adapter.fetch_latest_historical_price(instrument_id, before=self.reference_date)

    def range_price_result(self, instrument: str, start: date, end: date) -> Result[PriceResolution]:
        """
        Price over a pricing window.

        Past and in-progress windows average the historical prices published
        so far; future windows, or windows with no prices yet, use the
        forward price of the starting month.
        """
        first, last = to_date(start), to_date(end)
        period_type = classify_period(first, last, self.reference_date)
        result: Result[PriceResolution] = Result()
        if period_type is not PeriodClassification.FUTURE:
            cutoff = min(last, self.reference_date - timedelta(days=1)) if period_type is PeriodClassification.CURRENT else last
            result = self.average_between_result(instrument, first, cutoff)
            if result.value is not None and result.value.price is not None:
                result.value.period_type = period_type
                return result

        forward = self.forward_price_result(instrument, format_month_code(first)).extend(result)
        if forward.value is not None:
            forward.value.period_type = period_type
        return forward
