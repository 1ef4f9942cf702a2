"""Engine configuration objects and helpers."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any

import yaml


def _default_instruments() -> list[str]:
    return ["Argus UCOME", "Argus RME", "Argus FAME0", "Platts LSGO", "Platts Diesel"]


@dataclass(slots=True)
class ExposureConfig:
    canonical_instruments: list[str] = field(default_factory=_default_instruments)
    efp_instrument: str = "ICE GASOIL FUTURES (EFP)"
    futures_instrument: str = "ICE GASOIL FUTURES"
    diff_reference_instrument: str = "Platts LSGO"
    fallback_month: str = "Dec-24"


@dataclass(slots=True)
class PricingConfig:
    timeout_seconds: int = 8
    fuzzy_instrument_match: bool = True
    stale_forward_fallback: bool = True
    gasoil_instrument: str = "ICE GASOIL FUTURES"
    price_precision: int = 2
    instrument_codes: dict[str, str] = field(default_factory=dict)


@dataclass(slots=True)
class DiagnosticsConfig:
    console: bool = False
    file_path: str | None = None
    min_severity: str = "info"


@dataclass(slots=True)
class EngineConfig:
    exposure: ExposureConfig = field(default_factory=ExposureConfig)
    pricing: PricingConfig = field(default_factory=PricingConfig)
    diagnostics: DiagnosticsConfig = field(default_factory=DiagnosticsConfig)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @staticmethod
    def from_dict(payload: dict[str, Any]) -> "EngineConfig":
        return EngineConfig(
            exposure=ExposureConfig(**payload.get("exposure", {})),
            pricing=PricingConfig(**payload.get("pricing", {})),
            diagnostics=DiagnosticsConfig(**payload.get("diagnostics", {})),
        )


def load_config(path: str | Path) -> EngineConfig:
    """Load engine configuration from YAML."""
    file_path = Path(path)
    with file_path.open("r", encoding="utf-8") as handle:
        payload = yaml.safe_load(handle) or {}
    return EngineConfig.from_dict(payload)


def save_config(config: EngineConfig, path: str | Path) -> None:
    """Persist engine configuration to YAML."""
    file_path = Path(path)
    file_path.parent.mkdir(parents=True, exist_ok=True)
    with file_path.open("w", encoding="utf-8") as handle:
        yaml.safe_dump(config.to_dict(), handle, sort_keys=False)
