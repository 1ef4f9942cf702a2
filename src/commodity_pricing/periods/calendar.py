"""Month codes, period classification and business-day calendars."""

from __future__ import annotations

from calendar import monthrange
from dataclasses import dataclass
from datetime import date, timedelta
import re

import numpy as np
import pandas as pd

from commodity_pricing.diagnostics import Result
from commodity_pricing.errors import PeriodUnparseable
from commodity_pricing.time_utils import to_date, today_local
from commodity_pricing.types import PeriodClassification

MONTH_ABBREVIATIONS = ("Jan", "Feb", "Mar", "Apr", "May", "Jun", "Jul", "Aug", "Sep", "Oct", "Nov", "Dec")
_MONTH_INDEX = {name.lower(): i + 1 for i, name in enumerate(MONTH_ABBREVIATIONS)}
_MONTH_CODE = re.compile(r"^\s*([A-Za-z]{3})-(\d{2})\s*$")


@dataclass(slots=True, frozen=True)
class DateRange:
    start: date
    end: date

    @property
    def code(self) -> str:
        return format_month_code(self.start)


def format_month_code(value: object) -> str:
    day = to_date(value)
    return f"{MONTH_ABBREVIATIONS[day.month - 1]}-{day.year % 100:02d}"


def parse_month_code(code: str) -> DateRange:
    """Resolve `MMM-YY` to the full calendar month; raises PeriodUnparseable."""
    match = _MONTH_CODE.match(code or "")
    if match is None:
        raise PeriodUnparseable(f"Invalid month code format: {code!r}")
    month = _MONTH_INDEX.get(match.group(1).lower())
    if month is None:
        raise PeriodUnparseable(f"Unknown month abbreviation in {code!r}")
    year = 2000 + int(match.group(2))
    return DateRange(start=date(year, month, 1), end=date(year, month, monthrange(year, month)[1]))


def month_code_to_range_result(code: str) -> Result[DateRange]:
    try:
        return Result(value=parse_month_code(code))
    except PeriodUnparseable as exc:
        return Result.failure("periods.calendar", str(exc), {"code": code})


def month_code_to_range(code: str) -> DateRange | None:
    """Lenient form of parse_month_code: None for unparseable codes."""
    return month_code_to_range_result(code).value


def classify_period(start: object, end: object, today: object | None = None) -> PeriodClassification:
    """Compare a range with today at day granularity; boundaries count as current."""
    reference = to_date(today) if today is not None else today_local()
    if to_date(end) < reference:
        return PeriodClassification.HISTORICAL
    if to_date(start) > reference:
        return PeriodClassification.FUTURE
    return PeriodClassification.CURRENT


def period_type_for_code(code: str, today: object | None = None) -> PeriodClassification | None:
    dates = month_code_to_range(code)
    if dates is None:
        return None
    return classify_period(dates.start, dates.end, today)


def is_business_day(value: object) -> bool:
    return bool(np.is_busday(np.datetime64(to_date(value), "D")))


def count_business_days(start: object, end: object) -> int:
    first, last = to_date(start), to_date(end)
    if last < first:
        return 0
    return int(np.busday_count(np.datetime64(first, "D"), np.datetime64(last + timedelta(days=1), "D")))


def business_days_between(start: object, end: object) -> list[date]:
    """Mon-Fri days in [start, end], both ends inclusive. No holiday calendar."""
    first, last = to_date(start), to_date(end)
    if last < first:
        return []
    return [ts.date() for ts in pd.bdate_range(first, last)]


def business_days_by_month(start: object, end: object) -> dict[str, int]:
    counts: dict[str, int] = {}
    for day in business_days_between(start, end):
        code = format_month_code(day)
        counts[code] = counts.get(code, 0) + 1
    return counts


def distribute_by_business_days(start: object, end: object, total: float) -> dict[str, float]:
    """Pro-rate total across the months of [start, end] by business-day share."""
    if total == 0:
        return {}
    counts = business_days_by_month(start, end)
    total_days = sum(counts.values())
    if total_days == 0:
        return {}
    return {code: total * days / total_days for code, days in counts.items()}


def daily_distribution(start: object, end: object, total: float) -> dict[str, float]:
    """Split total evenly over business days, keyed by ISO date; empty when there are none."""
    days = business_days_between(start, end)
    if not days:
        return {}
    per_day = float(total) / len(days)
    return {day.isoformat(): per_day for day in days}


def months_in_range(start: object, end: object) -> list[str]:
    first, last = to_date(start).replace(day=1), to_date(end).replace(day=1)
    return [format_month_code(ts) for ts in pd.date_range(first, last, freq="MS")]


def next_months(count: int = 12, today: object | None = None) -> list[str]:
    reference = (to_date(today) if today is not None else today_local()).replace(day=1)
    return [format_month_code(ts) for ts in pd.date_range(reference, periods=count, freq="MS")]


def available_efp_months(today: object | None = None) -> list[str]:
    """Designated-month choices for EFP legs: the current and next eleven months."""
    return next_months(12, today)


def does_month_overlap_range(code: str, start: object, end: object) -> bool:
    dates = month_code_to_range(code)
    if dates is None:
        return False
    return dates.start <= to_date(end) and dates.end >= to_date(start)
