"""Print the monthly exposure report and per-leg MTM for a JSON trade file."""

from __future__ import annotations

import argparse
from datetime import date
from pathlib import Path
import json

import pandas as pd

from commodity_pricing.config import EngineConfig, load_config
from commodity_pricing.diagnostics import DiagnosticRouter
from commodity_pricing.exposure import PaperTradeLeg, PhysicalTradeLeg, build_exposure_report
from commodity_pricing.periods import next_months
from commodity_pricing.pricing import (
    PriceResolver,
    SQLitePriceStore,
    calculate_mtm_price,
    calculate_mtm_value,
    calculate_trade_leg_price,
)


def _load_trades(path: Path, router: DiagnosticRouter) -> tuple[list[PhysicalTradeLeg], list[PaperTradeLeg]]:
    with path.open("r", encoding="utf-8") as handle:
        payload = json.load(handle)
    physical = [PhysicalTradeLeg.from_dict(raw, router) for raw in payload.get("physical", [])]
    paper = [PaperTradeLeg.from_dict(raw, router) for raw in payload.get("paper", [])]
    return physical, paper


def _mtm_rows(
    physical: list[PhysicalTradeLeg],
    paper: list[PaperTradeLeg],
    resolver: PriceResolver,
    config: EngineConfig,
) -> pd.DataFrame:
    rows = []
    for leg in [*physical, *paper]:
        trade = calculate_trade_leg_price(leg, resolver)
        mtm = calculate_mtm_price(leg, resolver, config=config.exposure)
        value = None
        if trade.price is not None and mtm.price is not None:
            value = calculate_mtm_value(trade.price, mtm.price, leg.quantity, leg.buy_sell)
        rows.append(
            {
                "leg_reference": leg.leg_reference,
                "product": leg.product,
                "buy_sell": str(leg.buy_sell),
                "quantity": leg.quantity,
                "trade_price": trade.price,
                "mtm_price": mtm.price,
                "mtm_value": value,
            }
        )
    return pd.DataFrame(rows)


def main() -> None:
    parser = argparse.ArgumentParser(description="Build the monthly exposure report for a set of trade legs.")
    parser.add_argument("trades", type=Path, help="JSON file with 'physical' and 'paper' leg lists.")
    parser.add_argument("--config", type=Path, default=None, help="YAML engine configuration.")
    parser.add_argument("--prices", type=Path, default=Path("outputs/prices.db"), help="SQLite price store.")
    parser.add_argument("--months", type=int, default=12, help="Number of months from --today to report.")
    parser.add_argument("--today", type=date.fromisoformat, default=None, help="Reference date (YYYY-MM-DD).")
    args = parser.parse_args()

    config = load_config(args.config) if args.config else EngineConfig()
    diag = config.diagnostics
    router = DiagnosticRouter.from_config(console=diag.console, file_path=diag.file_path, min_severity=diag.min_severity)

    physical, paper = _load_trades(args.trades, router)
    periods = next_months(args.months, args.today)
    report = build_exposure_report(physical, paper, periods, config.exposure, router)

    pd.set_option("display.width", 200)
    for book in ("physical", "pricing", "paper", "net"):
        print(f"\n== {book} exposure ==")
        print(report.book(book).round(config.pricing.price_precision).to_string())
    print("\n== totals ==")
    print(json.dumps(report.grand_total(), indent=2))

    store = SQLitePriceStore(args.prices, fuzzy=config.pricing.fuzzy_instrument_match)
    resolver = PriceResolver(adapter=store, config=config.pricing, router=router, today=args.today)
    print("\n== MTM ==")
    print(_mtm_rows(physical, paper, resolver, config).to_string(index=False))


if __name__ == "__main__":
    main()
