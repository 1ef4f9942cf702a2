"""Trade legs, product mapping and exposure calculation."""

from .aggregation import ExposureReport, build_exposure_report
from .calculator import (
    calculate_daily_distribution,
    calculate_daily_distribution_result,
    calculate_exposures,
    calculate_formula_exposures,
    calculate_monthly_distribution,
    calculate_paper_leg_exposures,
    calculate_paper_leg_exposures_result,
    calculate_physical_leg_exposures,
    create_efp_formula,
    paper_right_instrument,
    physical_exposure_month,
    pricing_exposure_month,
    update_formula_exposures,
    update_formula_with_efp_exposure,
)
from .legs import PaperTradeLeg, PhysicalTradeLeg, RightSide
from .products import (
    CANONICAL_PRODUCTS,
    PaperInstrument,
    map_product_to_canonical,
    map_product_to_instrument_code,
    parse_paper_instrument,
)

__all__ = [
    "CANONICAL_PRODUCTS",
    "ExposureReport",
    "PaperInstrument",
    "PaperTradeLeg",
    "PhysicalTradeLeg",
    "RightSide",
    "build_exposure_report",
    "calculate_daily_distribution",
    "calculate_daily_distribution_result",
    "calculate_exposures",
    "calculate_formula_exposures",
    "calculate_monthly_distribution",
    "calculate_paper_leg_exposures",
    "calculate_paper_leg_exposures_result",
    "calculate_physical_leg_exposures",
    "create_efp_formula",
    "map_product_to_canonical",
    "map_product_to_instrument_code",
    "paper_right_instrument",
    "parse_paper_instrument",
    "physical_exposure_month",
    "pricing_exposure_month",
    "update_formula_exposures",
    "update_formula_with_efp_exposure",
]
