"""Price collaborators, period price resolution and MTM."""

from .adapters import (
    InMemoryPriceAdapter,
    PriceDataAdapter,
    PricePoint,
    RestPriceAdapter,
    SQLitePriceStore,
    match_instrument_code,
)
from .mtm import (
    PriceCalculation,
    calculate_efp_settlement_price,
    calculate_mtm_price,
    calculate_mtm_value,
    calculate_paper_mtm_price,
    calculate_paper_trade_price,
    calculate_trade_leg_price,
)
from .resolution import PriceResolution, PriceResolver

__all__ = [
    "InMemoryPriceAdapter",
    "PriceCalculation",
    "PriceDataAdapter",
    "PricePoint",
    "PriceResolution",
    "PriceResolver",
    "RestPriceAdapter",
    "SQLitePriceStore",
    "calculate_efp_settlement_price",
    "calculate_mtm_price",
    "calculate_mtm_value",
    "calculate_paper_mtm_price",
    "calculate_paper_trade_price",
    "calculate_trade_leg_price",
    "match_instrument_code",
]
