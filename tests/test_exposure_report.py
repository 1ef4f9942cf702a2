from __future__ import annotations

from datetime import date

import pytest

from commodity_pricing.config import ExposureConfig
from commodity_pricing.exposure import PaperTradeLeg, PhysicalTradeLeg, build_exposure_report
from commodity_pricing.formula import build_formula, instrument_token
from commodity_pricing.types import BuySell, PricingType, RelationshipType

PERIODS = ["Feb-24", "Mar-24", "Apr-24"]


def _legs() -> tuple[list[PhysicalTradeLeg], list[PaperTradeLeg]]:
    physical = [
        PhysicalTradeLeg(
            product="UCOME",
            buy_sell=BuySell.BUY,
            quantity=100,
            loading_period_start=date(2024, 3, 10),
            pricing_period_start=date(2024, 3, 1),
            pricing_period_end=date(2024, 3, 31),
            formula=build_formula([instrument_token("Argus UCOME")]),
        ),
        PhysicalTradeLeg(
            product="RME",
            buy_sell=BuySell.SELL,
            quantity=200,
            trading_period="Apr-24",
            pricing_type=PricingType.EFP,
            efp_designated_month="Mar-24",
        ),
        PhysicalTradeLeg(
            product="FAME0",
            buy_sell=BuySell.BUY,
            quantity=999,
            trading_period="Jan-25",
            formula=build_formula([instrument_token("Argus FAME0")]),
        ),
    ]
    paper = [
        PaperTradeLeg(product="FAME0", buy_sell=BuySell.SELL, quantity=50, period="Mar-24"),
        PaperTradeLeg(
            product="UCOME",
            buy_sell=BuySell.BUY,
            quantity=30,
            period="Apr-24",
            relationship_type=RelationshipType.DIFF,
        ),
    ]
    return physical, paper


def test_report_layout_uses_periods_and_canonical_columns() -> None:
    physical, paper = _legs()
    report = build_exposure_report(physical, paper, PERIODS)
    assert list(report.physical.index) == PERIODS
    canonical = ExposureConfig().canonical_instruments
    assert list(report.net.columns[: len(canonical)]) == canonical
    assert "ICE GASOIL FUTURES (EFP)" in report.pricing.columns
    assert report.paper.loc["Feb-24"].sum() == 0.0


def test_report_books_and_net() -> None:
    physical, paper = _legs()
    report = build_exposure_report(physical, paper, PERIODS)

    assert report.physical.loc["Mar-24", "Argus UCOME"] == pytest.approx(100.0)
    assert report.pricing.loc["Mar-24", "Argus UCOME"] == pytest.approx(-100.0)
    assert report.net.loc["Mar-24", "Argus UCOME"] == pytest.approx(0.0)

    assert report.physical.loc["Apr-24", "Argus RME"] == pytest.approx(-200.0)
    assert report.pricing.loc["Mar-24", "ICE GASOIL FUTURES (EFP)"] == pytest.approx(200.0)

    assert report.paper.loc["Mar-24", "Argus FAME0"] == pytest.approx(-50.0)
    assert report.net.loc["Mar-24", "Argus FAME0"] == pytest.approx(-50.0)
    assert report.paper.loc["Apr-24", "Platts LSGO"] == pytest.approx(-30.0)
    assert report.pricing.loc["Apr-24", "Argus UCOME"] == pytest.approx(30.0)


def test_legs_outside_periods_are_ignored() -> None:
    physical, paper = _legs()
    report = build_exposure_report(physical, paper, PERIODS)
    assert report.physical["Argus FAME0"].sum() == 0.0
    assert "Jan-25" not in report.net.index


def test_monthly_distribution_spreads_pricing_across_report_months() -> None:
    formula = build_formula([instrument_token("Argus RME")])
    formula.monthly_distribution = {"Argus RME": {"Feb-24": -40.0, "Mar-24": -60.0, "Dec-25": -5.0}}
    leg = PhysicalTradeLeg(product="RME", buy_sell=BuySell.BUY, quantity=100, trading_period="Feb-24", formula=formula)
    report = build_exposure_report([leg], [], PERIODS)
    assert report.pricing.loc["Feb-24", "Argus RME"] == pytest.approx(-40.0)
    assert report.pricing.loc["Mar-24", "Argus RME"] == pytest.approx(-60.0)
    assert report.net.loc["Feb-24", "Argus RME"] == pytest.approx(60.0)


def test_totals_and_records() -> None:
    physical, paper = _legs()
    report = build_exposure_report(physical, paper, PERIODS)
    totals = report.totals_by_month()
    assert list(totals.columns) == ["physical", "pricing", "paper", "net"]
    assert totals.loc["Mar-24", "paper"] == pytest.approx(-50.0)
    grand = report.grand_total()
    assert grand["net"] == pytest.approx(grand["physical"] + grand["pricing"])
    records = report.to_records()
    assert {"book", "month", "instrument", "exposure"} <= set(records[0])
    assert len(records) == 4 * len(PERIODS) * len(report.net.columns)


def test_empty_report_is_all_zero() -> None:
    report = build_exposure_report([], [], PERIODS)
    assert report.net.shape == (3, len(ExposureConfig().canonical_instruments))
    assert report.grand_total() == {"physical": 0.0, "pricing": 0.0, "paper": 0.0, "net": 0.0}


def test_unknown_book_raises() -> None:
    report = build_exposure_report([], [], PERIODS)
    with pytest.raises(KeyError):
        report.book("delivery")
