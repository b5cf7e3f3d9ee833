"""Configuration loading for candlechart.

Settings live in ``~/.config/candlechart/config.toml``::

    [alphavantage]
    api_key = "..."
    timeout = 10

    [chart]
    default_symbol = "IBM"
    default_interval = "5m"
    refresh_seconds = 120

The ``ALPHAVANTAGE_API_KEY`` environment variable overrides the file.
"""

import os
from pathlib import Path
from typing import Optional

import toml
from pydantic import BaseModel, Field, ValidationError

from candlechart.errors import ConfigError
from candlechart.providers.alphavantage import DEFAULT_BASE_URL, DEFAULT_TIMEOUT

CONFIG_DIR = Path.home() / ".config" / "candlechart"
DEFAULT_CONFIG_PATH = CONFIG_DIR / "config.toml"

API_KEY_ENV = "ALPHAVANTAGE_API_KEY"


class AlphaVantageConfig(BaseModel):
    """Provider connection settings."""

    api_key: str = Field("demo", description="Alpha Vantage API key")
    base_url: str = Field(DEFAULT_BASE_URL, description="Query endpoint")
    timeout: float = Field(DEFAULT_TIMEOUT, gt=0, description="Request timeout in seconds")


class ChartSettings(BaseModel):
    """Chart defaults and refresh behavior."""

    default_symbol: str = Field("IBM", description="Symbol shown when none is given")
    default_interval: str = Field("5m", description="Interval shown when none is given")
    refresh_seconds: float = Field(120.0, gt=0, description="Auto-refresh period")
    max_candles: int = Field(100, gt=0, description="Candles kept from a live fetch")
    fallback_count: int = Field(100, ge=0, description="Synthetic candles on fallback")


class ChartConfig(BaseModel):
    """Top-level configuration."""

    alphavantage: AlphaVantageConfig = Field(default_factory=AlphaVantageConfig)
    chart: ChartSettings = Field(default_factory=ChartSettings)


def load_config(path: Optional[Path] = None) -> ChartConfig:
    """Load configuration from disk and the environment.

    A missing file yields the defaults.

    Args:
        path: Config file path, defaults to ~/.config/candlechart/config.toml.

    Returns:
        The loaded configuration.

    Raises:
        ConfigError: If the file exists but cannot be parsed.
    """
    config_path = path or DEFAULT_CONFIG_PATH
    raw: dict = {}

    if config_path.exists():
        try:
            raw = toml.load(config_path)
        except (toml.TomlDecodeError, OSError) as e:
            raise ConfigError(f"Could not read {config_path}: {e}") from e

    api_key = os.environ.get(API_KEY_ENV)
    if api_key and isinstance(raw.get("alphavantage", {}), dict):
        raw.setdefault("alphavantage", {})["api_key"] = api_key

    try:
        return ChartConfig.model_validate(raw)
    except ValidationError as e:
        raise ConfigError(f"Invalid configuration in {config_path}: {e}") from e
