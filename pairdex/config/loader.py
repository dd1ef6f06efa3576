"""
PairDEX TOML Configuration Loader

Loads config.toml at startup with environment variable overrides.
Each [section] is a dataclass with from_dict / apply_env.

Environment variable mapping:
    [exchange] pallet_id     → PAIRDEX_PALLET_ID
    [exchange] self_chain_id → PAIRDEX_SELF_CHAIN_ID
    [exchange] fee_admin     → PAIRDEX_FEE_ADMIN
    [exchange] fee_receiver  → PAIRDEX_FEE_RECEIVER
    [exchange] fee_point     → PAIRDEX_FEE_POINT
    [logging]  level         → PAIRDEX_LOG_LEVEL
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

try:
    import tomllib as tomli  # Python 3.11+
except ImportError:
    import tomli  # type: ignore[no-redef]

from ..constants import DEFAULT_FEE_POINT, DEFAULT_PALLET_ID, DEFAULT_SELF_CHAIN_ID, MAX_FEE_POINT
from ..exceptions import ConfigurationError

logger = logging.getLogger(__name__)

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


# ---------------------------------------------------------------------------
# Section dataclasses
# ---------------------------------------------------------------------------


@dataclass
class ExchangeSectionConfig:
    """[exchange] section: genesis settings of the exchange engine."""
    pallet_id: str = DEFAULT_PALLET_ID
    self_chain_id: int = DEFAULT_SELF_CHAIN_ID
    fee_admin: str = ""
    fee_receiver: Optional[str] = None
    fee_point: int = DEFAULT_FEE_POINT

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ExchangeSectionConfig":
        return cls(
            pallet_id=data.get("pallet_id", DEFAULT_PALLET_ID),
            self_chain_id=int(data.get("self_chain_id", DEFAULT_SELF_CHAIN_ID)),
            fee_admin=data.get("fee_admin", ""),
            # TOML has no null; an empty string means "no receiver"
            fee_receiver=data.get("fee_receiver") or None,
            fee_point=int(data.get("fee_point", DEFAULT_FEE_POINT)),
        )

    def apply_env(self) -> None:
        """Override from environment variables."""
        if v := os.environ.get("PAIRDEX_PALLET_ID"):
            self.pallet_id = v
        if v := os.environ.get("PAIRDEX_SELF_CHAIN_ID"):
            self.self_chain_id = int(v)
        if v := os.environ.get("PAIRDEX_FEE_ADMIN"):
            self.fee_admin = v
        if v := os.environ.get("PAIRDEX_FEE_RECEIVER"):
            self.fee_receiver = v
        if v := os.environ.get("PAIRDEX_FEE_POINT"):
            self.fee_point = int(v)

    def validate(self) -> None:
        if not self.pallet_id:
            raise ConfigurationError("pallet_id must not be empty")
        if self.self_chain_id < 0:
            raise ConfigurationError("self_chain_id must be >= 0")
        if not 0 <= self.fee_point <= MAX_FEE_POINT:
            raise ConfigurationError(
                f"fee_point must be in [0, {MAX_FEE_POINT}], got {self.fee_point}"
            )


@dataclass
class LoggingSectionConfig:
    """[logging] section."""
    level: str = "INFO"
    file_enabled: bool = False

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "LoggingSectionConfig":
        return cls(
            level=str(data.get("level", "INFO")).upper(),
            file_enabled=bool(data.get("file_enabled", False)),
        )

    def apply_env(self) -> None:
        if v := os.environ.get("PAIRDEX_LOG_LEVEL"):
            self.level = v.upper()

    def validate(self) -> None:
        if self.level not in LOG_LEVELS:
            raise ConfigurationError(f"Invalid log level: {self.level}")


# ---------------------------------------------------------------------------
# Root config
# ---------------------------------------------------------------------------


@dataclass
class PairDexConfig:
    """Root configuration object."""
    exchange: ExchangeSectionConfig = field(default_factory=ExchangeSectionConfig)
    logging: LoggingSectionConfig = field(default_factory=LoggingSectionConfig)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PairDexConfig":
        return cls(
            exchange=ExchangeSectionConfig.from_dict(data.get("exchange", {})),
            logging=LoggingSectionConfig.from_dict(data.get("logging", {})),
        )

    @classmethod
    def from_file(cls, config_path: str) -> "PairDexConfig":
        """
        Load configuration from a TOML file.

        A missing file is not an error: defaults are used, with env overrides.
        """
        path = Path(config_path)
        if not path.exists():
            logger.warning("Config file not found: %s, using defaults", config_path)
            cfg = cls()
            cfg.apply_env()
            return cfg

        try:
            with open(path, "rb") as f:
                raw = tomli.load(f)
        except tomli.TOMLDecodeError as e:
            raise ConfigurationError(f"Malformed config file {config_path}: {e}") from e

        cfg = cls.from_dict(raw)
        cfg.apply_env()
        return cfg

    def apply_env(self) -> None:
        """Apply environment variable overrides to all sections."""
        self.exchange.apply_env()
        self.logging.apply_env()

    def validate(self) -> bool:
        """
        Validate all configuration sections.

        Raises:
            ConfigurationError: on invalid config
        """
        self.exchange.validate()
        self.logging.validate()
        return True

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to dict (for diagnostics)."""
        return {
            "exchange": {
                "pallet_id": self.exchange.pallet_id,
                "self_chain_id": self.exchange.self_chain_id,
                "fee_admin": self.exchange.fee_admin,
                "fee_receiver": self.exchange.fee_receiver,
                "fee_point": self.exchange.fee_point,
            },
            "logging": {
                "level": self.logging.level,
                "file_enabled": self.logging.file_enabled,
            },
        }


# -----------------------------------------------------------------------
# Convenience function
# -----------------------------------------------------------------------

def load_config(path: Optional[str] = None) -> PairDexConfig:
    """
    Load exchange configuration.

    Resolution order:
        1. Explicit *path* argument
        2. PAIRDEX_CONFIG env var
        3. ./config.toml in current directory
        4. Defaults (with env overrides)
    """
    if path is None:
        path = os.environ.get("PAIRDEX_CONFIG", "config.toml")

    return PairDexConfig.from_file(path)
