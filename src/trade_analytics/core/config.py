"""Analytics settings: display timezone, fee schedules, import and export defaults.

Precedence, highest first: explicit overrides, values from the TOML file,
``TRADE_ANALYTICS_*`` environment variables (``__`` for nesting), defaults.
The file and overrides reach pydantic-settings as init values, which it
ranks above the environment; the environment fills whatever they leave out.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings

from .enums import FeeType, TradeType
from .errors import ConfigError
from .models import FeeConfig
from .timestamps import get_zone


# ---------------------------------------------------------------------------
# Exchange fee presets
# ---------------------------------------------------------------------------

EXCHANGE_FEE_PRESETS: dict[str, FeeConfig] = {
    # Crypto (percentages)
    "Binance": FeeConfig(maker=0.02, taker=0.05),
    "Bybit": FeeConfig(maker=0.02, taker=0.055),
    "OKX": FeeConfig(maker=0.02, taker=0.05),
    "KuCoin": FeeConfig(maker=0.02, taker=0.06),
    "Bitget": FeeConfig(maker=0.02, taker=0.04),
    # Forex (flat per lot)
    "IC Markets": FeeConfig(maker=3.5, taker=3.5, type=FeeType.FIXED),
    "Pepperstone": FeeConfig(maker=3.5, taker=3.5, type=FeeType.FIXED),
    # Indian equities / F&O (flat per order)
    "Zerodha": FeeConfig(maker=20.0, taker=20.0, type=FeeType.FIXED),
}


# ---------------------------------------------------------------------------
# Sub-configs
# ---------------------------------------------------------------------------

class FeeSettings(BaseModel):
    default: FeeConfig = Field(default_factory=FeeConfig)
    exchanges: dict[str, FeeConfig] = Field(
        default_factory=lambda: dict(EXCHANGE_FEE_PRESETS)
    )


class ImportConfig(BaseModel):
    default_exchange: str = "Imported"
    default_strategy: str | None = "Imported"
    trade_type: TradeType = TradeType.PAST
    timezone: str = "UTC"  # Zone used for naive timestamps in the file
    id_prefix: str = "imp"


class ExportConfig(BaseModel):
    decimal_places: int = 8
    list_separator: str = "|"


class ObservabilityConfig(BaseModel):
    log_level: str = "INFO"
    log_format: str = "console"  # "json" or "console"


# ---------------------------------------------------------------------------
# Top-level settings
# ---------------------------------------------------------------------------

class Settings(BaseSettings):
    """Top-level settings.

    Environment variables fill fields not given to the constructor.
    """

    timezone: str = "UTC"  # Local calendar for windows and day/hour buckets

    fees: FeeSettings = Field(default_factory=FeeSettings)
    importer: ImportConfig = Field(default_factory=ImportConfig)
    export: ExportConfig = Field(default_factory=ExportConfig)
    observability: ObservabilityConfig = Field(default_factory=ObservabilityConfig)

    model_config = {"env_prefix": "TRADE_ANALYTICS_", "env_nested_delimiter": "__"}

    @field_validator("timezone")
    @classmethod
    def _known_zone(cls, v: str) -> str:
        get_zone(v)
        return v


def load_settings(
    config_path: str | Path | None = None,
    overrides: dict[str, Any] | None = None,
) -> Settings:
    """Load settings from TOML file + env vars.

    Keys present in the file (or ``overrides``) win over the environment.

    Args:
        config_path: Path to TOML config file (optional).
        overrides: Dict of overrides to apply on top.
    """
    data: dict[str, Any] = {}

    if config_path:
        path = Path(config_path)
        if not path.exists():
            raise ConfigError(f"Config file not found: {path}")
        import tomli

        with open(path, "rb") as f:
            try:
                data = tomli.load(f)
            except tomli.TOMLDecodeError as exc:
                raise ConfigError(f"Invalid TOML in {path}: {exc}") from exc

    if overrides:
        data.update(overrides)

    return Settings(**data)
