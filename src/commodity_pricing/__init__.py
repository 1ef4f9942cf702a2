"""Commodity pricing formula and exposure engine."""

from .config import (
    DiagnosticsConfig,
    EngineConfig,
    ExposureConfig,
    PricingConfig,
    load_config,
    save_config,
)

__all__ = [
    "DiagnosticsConfig",
    "EngineConfig",
    "ExposureConfig",
    "PricingConfig",
    "load_config",
    "save_config",
]
