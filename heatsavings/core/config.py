"""
Configuration management for heatsavings.
"""

from pathlib import Path
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings.

    Can be configured via environment variables or .env file.
    """

    model_config = SettingsConfigDict(
        env_prefix="HEATSAVINGS_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Logging
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(default="INFO")
    log_file: Path | None = Field(default=None, description="Also write JSON-lines logs to this file")

    # Unit prices used when the lookup store does not provide them
    electricity_price: float = Field(default=0.15, description="Electricity price (€/kWh)")
    oil_price: float = Field(default=1.3, description="Heating oil price (€/L)")
    gas_price_per_mwh: float = Field(default=55.0, description="Gas price (€/MWh)")

    # CO2 intensity factors
    co2_electricity_per_kwh: float = Field(default=0.181, description="kg CO2 per kWh electricity")
    co2_oil_per_liter: float = Field(default=2.66, description="kg CO2 per litre of oil")
    co2_gas_per_kwh: float = Field(default=0.201, description="kg CO2 per kWh of gas")

    # Lead normalization
    default_oil_price: float = Field(default=1.3, description="Oil price used when the lead gives none (€/L)")

    # Formula store
    formula_store_path: Path | None = Field(default=None, description="JSON file with formulas and lookups")
    max_formula_length: int = Field(default=1000, description="Longest accepted formula body")
    max_formula_depth: int = Field(default=10, description="Deepest [calc:] reference chain")


# Global settings instance
settings = Settings()
