"""Date normalization helpers."""

from __future__ import annotations

from datetime import date, datetime

import pandas as pd


def to_date(value: object) -> date:
    """Normalize date-like values to a calendar day (midnight, local time)."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return pd.Timestamp(value).date()


def today_local() -> date:
    return date.today()
