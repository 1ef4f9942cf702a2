"""Product-name canonicalization and paper instrument parsing."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Mapping

from commodity_pricing.types import RelationshipType

CANONICAL_PRODUCTS = {
    "UCOME": "Argus UCOME",
    "RME": "Argus RME",
    "FAME0": "Argus FAME0",
    "LSGO": "Platts LSGO",
    "DIESEL": "Platts Diesel",
}


@dataclass(slots=True, frozen=True)
class PaperInstrument:
    base_product: str
    relationship_type: RelationshipType
    opposite_product: str | None = None


def map_product_to_canonical(product: str | None) -> str:
    """Map trade product names and codes onto pricing instrument names; unknown names pass through."""
    name = (product or "").strip()
    if not name:
        return ""
    for code in ("UCOME", "RME", "FAME0"):
        if name in (code, f"{code} FP") or f"{code}-" in name:
            return CANONICAL_PRODUCTS[code]
    if "LSGO" in name:
        return CANONICAL_PRODUCTS["LSGO"]
    if "diesel" in name.lower():
        return CANONICAL_PRODUCTS["DIESEL"]
    return name


def parse_paper_instrument(instrument: str | None, diff_reference: str = "Platts LSGO") -> PaperInstrument:
    """
    Split a paper instrument label into its legs.

    "UCOME DIFF" is UCOME against the DIFF reference, "UCOME-FAME0 SPREAD"
    (or "UCOME-FAME0") is a spread, anything else is a flat price.
    """
    label = (instrument or "").strip()
    if not label:
        return PaperInstrument(base_product="", relationship_type=RelationshipType.FP)

    if "DIFF" in label:
        base = label.replace(" DIFF", "").replace("DIFF", "").strip()
        return PaperInstrument(
            base_product=map_product_to_canonical(base),
            relationship_type=RelationshipType.DIFF,
            opposite_product=diff_reference,
        )

    if "SPREAD" in label or "-" in label:
        products = [p.strip() for p in label.replace(" SPREAD", "").split("-")]
        if len(products) >= 2 and products[0] and products[1]:
            return PaperInstrument(
                base_product=map_product_to_canonical(products[0]),
                relationship_type=RelationshipType.SPREAD,
                opposite_product=map_product_to_canonical(products[1]),
            )

    return PaperInstrument(
        base_product=map_product_to_canonical(label.replace(" FP", "")),
        relationship_type=RelationshipType.FP,
    )


def map_product_to_instrument_code(product: str, codes: Mapping[str, str] | None = None) -> str:
    """Translate a product or instrument name into the price store's instrument code."""
    canonical = map_product_to_canonical(product) or product
    return (codes or {}).get(canonical, canonical)
