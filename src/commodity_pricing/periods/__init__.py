"""Period codes, date ranges and business-day calendars."""

from .calendar import (
    MONTH_ABBREVIATIONS,
    DateRange,
    available_efp_months,
    business_days_between,
    business_days_by_month,
    classify_period,
    count_business_days,
    daily_distribution,
    distribute_by_business_days,
    does_month_overlap_range,
    format_month_code,
    is_business_day,
    month_code_to_range,
    month_code_to_range_result,
    months_in_range,
    next_months,
    parse_month_code,
    period_type_for_code,
)

__all__ = [
    "MONTH_ABBREVIATIONS",
    "DateRange",
    "available_efp_months",
    "business_days_between",
    "business_days_by_month",
    "classify_period",
    "count_business_days",
    "daily_distribution",
    "distribute_by_business_days",
    "does_month_overlap_range",
    "format_month_code",
    "is_business_day",
    "month_code_to_range",
    "month_code_to_range_result",
    "months_in_range",
    "next_months",
    "parse_month_code",
    "period_type_for_code",
]
