"""
PairDEX Configuration

Loads config.toml at startup.
Environment variables override TOML values.
"""

from .loader import (
    PairDexConfig,
    ExchangeSectionConfig,
    LoggingSectionConfig,
    load_config,
)

__all__ = [
    "PairDexConfig",
    "ExchangeSectionConfig",
    "LoggingSectionConfig",
    "load_config",
]
