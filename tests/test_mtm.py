from __future__ import annotations

from datetime import date

import pandas as pd
import pytest

from commodity_pricing.diagnostics import DiagnosticRouter, Severity
from commodity_pricing.exposure import PaperTradeLeg, PhysicalTradeLeg, RightSide
from commodity_pricing.formula import build_formula, fixed_value_token, instrument_token, operator_token
from commodity_pricing.pricing import (
    InMemoryPriceAdapter,
    PriceResolver,
    calculate_efp_settlement_price,
    calculate_mtm_price,
    calculate_mtm_value,
    calculate_paper_mtm_price,
    calculate_paper_trade_price,
    calculate_trade_leg_price,
)
from commodity_pricing.types import BuySell, PeriodClassification, PricingType, RelationshipType

TODAY = date(2024, 6, 14)


def make_resolver(router: DiagnosticRouter | None = None) -> PriceResolver:
    adapter = InMemoryPriceAdapter(
        instruments={"Argus UCOME": "ucome", "Platts LSGO": "lsgo", "ICE GASOIL FUTURES": "gasoil"},
        historical=pd.DataFrame(
            [
                {"instrument_id": "ucome", "price_date": "2024-05-02", "price": 1000.0},
                {"instrument_id": "ucome", "price_date": "2024-05-15", "price": 1100.0},
                {"instrument_id": "ucome", "price_date": "2024-05-30", "price": 1200.0},
                {"instrument_id": "gasoil", "price_date": "2024-05-10", "price": 700.0},
            ]
        ),
        forward=pd.DataFrame(
            [
                {"instrument_id": "ucome", "forward_month": "2024-06-01", "price": 1260.0},
                {"instrument_id": "ucome", "forward_month": "2024-07-01", "price": 1250.0},
                {"instrument_id": "lsgo", "forward_month": "2024-06-01", "price": 800.0},
                {"instrument_id": "gasoil", "forward_month": "2024-07-01", "price": 650.0},
            ]
        ),
    )
    return PriceResolver(adapter=adapter, router=router, today=TODAY)


def ucome_plus_fifty():
    return build_formula([instrument_token("Argus UCOME"), operator_token("+"), fixed_value_token(50)])


def test_mtm_value_sign_depends_on_side() -> None:
    assert calculate_mtm_value(1050.0, 1000.0, 100, BuySell.BUY) == pytest.approx(-5000.0)
    assert calculate_mtm_value(1050.0, 1000.0, 100, "sell") == pytest.approx(5000.0)
    assert calculate_mtm_value(1000.0, 1000.0, 100, BuySell.BUY) == pytest.approx(0.0)


def test_efp_settlement_price() -> None:
    assert calculate_efp_settlement_price(20, True, fixed_value=700) == pytest.approx(720.0)
    assert calculate_efp_settlement_price(20, False, gasoil_price=650) == pytest.approx(670.0)
    assert calculate_efp_settlement_price(20, False) == pytest.approx(20.0)
    assert calculate_efp_settlement_price(None, True) == pytest.approx(0.0)


def test_paper_trade_and_mtm_prices() -> None:
    resolver = make_resolver()
    flat = PaperTradeLeg(product="UCOME", buy_sell=BuySell.BUY, quantity=30, period="Jun-24", price=1300.0)
    assert calculate_paper_trade_price(flat) == pytest.approx(1300.0)
    assert calculate_paper_mtm_price(flat, resolver) == pytest.approx(1260.0)

    diff = PaperTradeLeg(
        product="UCOME",
        buy_sell=BuySell.BUY,
        quantity=30,
        period="Jun-24",
        price=1300.0,
        relationship_type=RelationshipType.DIFF,
    )
    assert calculate_paper_trade_price(diff) is None
    assert calculate_paper_trade_price(diff.with_right_price(820.0)) == pytest.approx(480.0)
    assert calculate_paper_mtm_price(diff, resolver) == pytest.approx(460.0)
    assert calculate_paper_mtm_price(diff.update_left_period("May-24"), resolver) is None

    mtm = calculate_mtm_price(diff, resolver)
    assert mtm.price == pytest.approx(460.0)
    assert mtm.period_type is PeriodClassification.CURRENT


def test_spread_without_right_product_has_no_mtm_price() -> None:
    router, sink = DiagnosticRouter.collecting()
    resolver = make_resolver(router)
    spread = PaperTradeLeg(
        product="UCOME",
        buy_sell=BuySell.BUY,
        quantity=30,
        period="Jun-24",
        relationship_type=RelationshipType.SPREAD,
        right_side=RightSide(product=""),
    )
    assert calculate_paper_mtm_price(spread, resolver) is None
    assert "Spread leg has no right-side product; no MTM price" in sink.messages(Severity.WARNING)

    diff = PaperTradeLeg(
        product="UCOME",
        buy_sell=BuySell.BUY,
        quantity=30,
        period="Jun-24",
        relationship_type=RelationshipType.DIFF,
        right_side=RightSide(product=""),
    )
    assert calculate_paper_mtm_price(diff, resolver) == pytest.approx(460.0)


def test_formula_mtm_price_for_future_month() -> None:
    resolver = make_resolver()
    calculation = calculate_mtm_price(ucome_plus_fifty(), resolver, period="Jul-24")
    assert calculation.price == pytest.approx(1300.0)
    assert calculation.display_price == "1,300.00"
    assert calculation.period_type is PeriodClassification.FUTURE
    assert calculation.details["fixed_components"][0]["value"] == pytest.approx(50.0)
    assert calculation.details["missing_instruments"] == []


def test_formula_mtm_price_without_period_is_an_error() -> None:
    router, sink = DiagnosticRouter.collecting()
    calculation = calculate_mtm_price(ucome_plus_fifty(), make_resolver(router))
    assert calculation.price is None
    assert sink.messages(Severity.ERROR) == ["No period given for formula MTM price"]


def test_leg_mtm_prefers_mtm_formula() -> None:
    leg = PhysicalTradeLeg(
        product="UCOME",
        buy_sell=BuySell.BUY,
        quantity=100,
        trading_period="Jun-24",
        formula=ucome_plus_fifty(),
        mtm_formula=build_formula([instrument_token("Platts LSGO")]),
    )
    resolver = make_resolver()
    assert calculate_mtm_price(leg, resolver).price == pytest.approx(800.0)
    assert calculate_mtm_price(leg, resolver).details["period"] == "Jun-24"


def test_efp_leg_mtm_uses_gasoil_for_designated_month() -> None:
    unagreed = PhysicalTradeLeg(
        product="RME",
        buy_sell=BuySell.SELL,
        quantity=200,
        pricing_type=PricingType.EFP,
        efp_premium=20,
        efp_designated_month="Jul-24",
    )
    resolver = make_resolver()
    calculation = calculate_mtm_price(unagreed, resolver)
    assert calculation.price == pytest.approx(670.0)
    assert calculation.details["efp"]["gasoil_price"] == pytest.approx(650.0)

    agreed = PhysicalTradeLeg(
        product="RME",
        buy_sell=BuySell.SELL,
        quantity=200,
        pricing_type=PricingType.EFP,
        efp_premium=20,
        efp_agreed_status=True,
        efp_fixed_value=700,
        efp_designated_month="Jul-24",
    )
    assert calculate_mtm_price(agreed, resolver).price == pytest.approx(720.0)
    assert calculate_trade_leg_price(agreed, resolver).price == pytest.approx(720.0)


def test_trade_leg_price_averages_historical_window() -> None:
    leg = PhysicalTradeLeg(
        product="UCOME",
        buy_sell=BuySell.BUY,
        quantity=100,
        pricing_period_start=date(2024, 5, 1),
        pricing_period_end=date(2024, 5, 31),
        formula=ucome_plus_fifty(),
    )
    calculation = calculate_trade_leg_price(leg, make_resolver())
    assert calculation.price == pytest.approx(1150.0)
    assert calculation.period_type is PeriodClassification.HISTORICAL
    assert calculation.details["start"] == "2024-05-01"
    assert calculation.details["instruments"]["Argus UCOME"]["average"] == pytest.approx(1100.0)
    assert len(calculation.details["instruments"]["Argus UCOME"]["prices"]) == 3


def test_trade_leg_price_reports_missing_instruments() -> None:
    router, sink = DiagnosticRouter.collecting()
    formula = build_formula([instrument_token("Argus HVO"), operator_token("+"), instrument_token("Argus UCOME")])
    calculation = calculate_trade_leg_price(formula, make_resolver(router), date(2024, 5, 1), date(2024, 5, 31))
    assert calculation.details["missing_instruments"] == ["Argus HVO"]
    assert calculation.price == pytest.approx(1100.0)
    assert "Unknown instrument" in sink.messages(Severity.ERROR)
    assert "Price missing for instruments; substituted 0" in sink.messages(Severity.WARNING)


def test_trade_leg_price_for_empty_formula_or_missing_window() -> None:
    router, sink = DiagnosticRouter.collecting()
    resolver = make_resolver(router)
    empty = PhysicalTradeLeg(
        product="UCOME",
        buy_sell=BuySell.BUY,
        quantity=100,
        pricing_period_start=date(2024, 5, 1),
        pricing_period_end=date(2024, 5, 31),
    )
    assert calculate_trade_leg_price(empty, resolver).price is None

    undated = PhysicalTradeLeg(product="UCOME", buy_sell=BuySell.BUY, quantity=100, formula=ucome_plus_fifty())
    assert calculate_trade_leg_price(undated, resolver).price is None
    assert sink.messages(Severity.ERROR) == ["Pricing period has no start or end date"]
