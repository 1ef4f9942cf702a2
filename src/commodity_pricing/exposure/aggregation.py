"""Monthly exposure report across physical and paper trade legs."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable

import pandas as pd

from commodity_pricing.config import ExposureConfig
from commodity_pricing.diagnostics import DiagnosticRouter

from .calculator import (
    calculate_paper_leg_exposures,
    calculate_physical_leg_exposures,
    physical_exposure_month,
    pricing_exposure_month,
)
from .legs import PaperTradeLeg, PhysicalTradeLeg
from .products import map_product_to_canonical

BOOKS = ("physical", "pricing", "paper", "net")


@dataclass(slots=True)
class ExposureReport:
    """Month x instrument frames per book; `net` is physical plus pricing."""

    physical: pd.DataFrame
    pricing: pd.DataFrame
    paper: pd.DataFrame
    net: pd.DataFrame

    def book(self, name: str) -> pd.DataFrame:
        if name not in BOOKS:
            raise KeyError(f"Unknown exposure book: {name}")
        return getattr(self, name)

    def totals_by_month(self) -> pd.DataFrame:
        return pd.DataFrame({name: self.book(name).sum(axis=1) for name in BOOKS})

    def grand_total(self) -> dict[str, float]:
        return {name: float(self.book(name).to_numpy().sum()) for name in BOOKS}

    def to_records(self) -> list[dict[str, Any]]:
        rows: list[dict[str, Any]] = []
        for name in BOOKS:
            frame = self.book(name)
            for month, row in frame.iterrows():
                for instrument, value in row.items():
                    rows.append({"book": name, "month": month, "instrument": instrument, "exposure": float(value)})
        return rows


def _frame(rows: list[dict[str, Any]], periods: list[str], columns: list[str]) -> pd.DataFrame:
    if rows:
        pivot = pd.DataFrame(rows).pivot_table(
            index="month",
            columns="instrument",
            values="exposure",
            aggfunc="sum",
            fill_value=0.0,
        )
    else:
        pivot = pd.DataFrame(dtype=float)
    frame = pivot.reindex(index=periods, columns=columns, fill_value=0.0).fillna(0.0).astype(float)
    frame.index.name = "month"
    frame.columns.name = "instrument"
    return frame


def build_exposure_report(
    physical_legs: Iterable[PhysicalTradeLeg],
    paper_legs: Iterable[PaperTradeLeg],
    periods: Iterable[str],
    config: ExposureConfig | None = None,
    router: DiagnosticRouter | None = None,
) -> ExposureReport:
    """
    Aggregate leg exposures into month rows and instrument columns.

    Columns are the configured canonical instruments followed by any other
    instrument seen, in first-seen order. Exposure attributed to a month not
    in periods is dropped.
    """
    cfg = config or ExposureConfig()
    months = list(periods)
    wanted = set(months)
    rows: dict[str, list[dict[str, Any]]] = {"physical": [], "pricing": [], "paper": []}
    seen: list[str] = []

    def book(name: str, month: str, instrument: str, value: float) -> None:
        if month not in wanted:
            return
        if instrument not in seen:
            seen.append(instrument)
        rows[name].append({"month": month, "instrument": instrument, "exposure": float(value)})

    for leg in physical_legs:
        exposures = calculate_physical_leg_exposures(leg, cfg)
        physical_month = physical_exposure_month(leg, cfg)
        for instrument, value in exposures.physical.items():
            book("physical", physical_month, instrument, value)

        distribution = leg.formula.monthly_distribution if not leg.is_efp else None
        if distribution:
            for instrument, by_month in distribution.items():
                for month, value in by_month.items():
                    book("pricing", month, map_product_to_canonical(instrument), value)
            continue

        pricing_month = pricing_exposure_month(leg, cfg)
        for instrument, value in exposures.pricing.items():
            book("pricing", pricing_month, map_product_to_canonical(instrument), value)

    for leg in paper_legs:
        exposures = calculate_paper_leg_exposures(leg, cfg, router)
        month = pricing_exposure_month(leg, cfg)
        for instrument, value in exposures.paper.items():
            book("paper", month, instrument, value)
        for instrument, value in exposures.pricing.items():
            book("pricing", month, instrument, value)

    columns = list(cfg.canonical_instruments) + [name for name in seen if name not in cfg.canonical_instruments]
    physical = _frame(rows["physical"], months, columns)
    pricing = _frame(rows["pricing"], months, columns)
    paper = _frame(rows["paper"], months, columns)
    return ExposureReport(physical=physical, pricing=pricing, paper=paper, net=physical + pricing)
