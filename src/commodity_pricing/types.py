"""Core domain datatypes."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum


class BuySell(StrEnum):
    BUY = "buy"
    SELL = "sell"

    @property
    def direction(self) -> int:
        return 1 if self is BuySell.BUY else -1

    @staticmethod
    def parse(value: object) -> "BuySell":
        text = str(value or "").strip().lower()
        return BuySell.SELL if text == "sell" else BuySell.BUY


class RelationshipType(StrEnum):
    FP = "FP"
    DIFF = "DIFF"
    SPREAD = "SPREAD"


class PricingType(StrEnum):
    STANDARD = "standard"
    EFP = "efp"


class TokenType(StrEnum):
    INSTRUMENT = "instrument"
    FIXED_VALUE = "fixedValue"
    PERCENTAGE = "percentage"
    OPERATOR = "operator"
    OPEN_BRACKET = "openBracket"
    CLOSE_BRACKET = "closeBracket"


class PeriodClassification(StrEnum):
    HISTORICAL = "historical"
    CURRENT = "current"
    FUTURE = "future"


OPERAND_TOKEN_TYPES = frozenset({TokenType.INSTRUMENT, TokenType.FIXED_VALUE, TokenType.PERCENTAGE})
OPERATORS = ("+", "-", "*", "/")


@dataclass(slots=True, frozen=True)
class FormulaToken:
    id: str
    type: TokenType
    value: str

    @property
    def is_operand(self) -> bool:
        return self.type in OPERAND_TOKEN_TYPES

    def to_dict(self) -> dict[str, str]:
        return {"id": self.id, "type": str(self.type), "value": self.value}


@dataclass(slots=True)
class ExposureResult:
    """Signed net quantity per instrument, split by book."""

    physical: dict[str, float] = field(default_factory=dict)
    pricing: dict[str, float] = field(default_factory=dict)
    paper: dict[str, float] = field(default_factory=dict)

    def add(self, book: str, instrument: str, amount: float) -> None:
        bucket: dict[str, float] = getattr(self, book)
        # +0.0 folds negative zero so a zero-quantity entry reads as 0.0
        bucket[instrument] = bucket.get(instrument, 0.0) + float(amount) + 0.0

    def to_dict(self) -> dict[str, dict[str, float]]:
        out = {"physical": dict(self.physical), "pricing": dict(self.pricing)}
        if self.paper:
            out["paper"] = dict(self.paper)
        return out


@dataclass(slots=True)
class PricingFormula:
    tokens: list[FormulaToken] = field(default_factory=list)
    exposures: ExposureResult = field(default_factory=ExposureResult)
    monthly_distribution: dict[str, dict[str, float]] | None = None
    daily_distribution: dict[str, dict[str, float]] | None = None

    @property
    def is_empty(self) -> bool:
        return not self.tokens


DistributionMap = dict[str, dict[str, float]]
