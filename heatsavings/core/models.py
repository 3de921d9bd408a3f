"""
Pydantic models for lead data and calculation lookups.

Covers the loose input schema (as posted by the card form), the canonical
normalized lead, and the lookup context of unit prices and CO2 factors.
"""

from __future__ import annotations

from typing import Annotated, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from .config import Settings, settings as default_settings


# =============================================================================
# INPUT SCHEMA (form submission, canonical keys only)
# =============================================================================

# Numbers may arrive as JSON numbers or as Finnish-formatted strings ("2 500,5").
FormNumber = Optional[Union[float, str]]


class LeadInput(BaseModel):
    """
    Permissive shape check for a submission.

    Aliases are mapped before this model sees the data; unknown keys are
    dropped. Only values of the wrong kind (e.g. a list where a number or
    text is expected) fail validation.
    """

    model_config = ConfigDict(extra="ignore")

    neliot: FormNumber = Field(default=None, description="Heated floor area (m²)")
    huonekorkeus: FormNumber = Field(default=None, description="Ceiling height (m)")
    rakennusvuosi: FormNumber = Field(default=None, description="Construction year")
    henkilomaara: FormNumber = Field(default=None, description="Number of residents")

    lammitysmuoto: Optional[str] = Field(default=None, description="Heating type label")
    kokonaismenekki: FormNumber = Field(default=None, description="Annual fuel consumption (L, m³ or motti)")
    menekinhintavuosi: FormNumber = Field(default=None, description="Annual heating cost (€)")
    laskennallinenenergiantarve: FormNumber = Field(
        default=None, description="Computed annual energy need (kWh)"
    )

    oil_price: FormNumber = Field(default=None, alias="oilPrice", description="Oil price override (€/L)")


# =============================================================================
# NORMALIZED SCHEMA
# =============================================================================

Quantity = Annotated[float, Field(ge=0, allow_inf_nan=False)]


class LeadNormalized(BaseModel):
    """
    Canonical lead record.

    Every field is present; a value is either concrete or None. Numeric
    fields have been through the Finnish number parser.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    neliot: Optional[Quantity]
    huonekorkeus: Optional[Quantity]
    rakennusvuosi: Optional[int]
    henkilomaara: Optional[Quantity]

    lammitysmuoto: Optional[str]
    kokonaismenekki: Optional[Quantity]
    menekinhintavuosi: Optional[Quantity]
    laskennallinenenergiantarve: Optional[Quantity]

    oil_price: Optional[Quantity] = Field(alias="oilPrice")

    @property
    def heating_type(self) -> str:
        """Lower-cased heating type label, empty when unknown."""
        return (self.lammitysmuoto or "").lower()


# =============================================================================
# LOOKUP CONTEXT
# =============================================================================


class Co2Factors(BaseModel):
    """CO2 intensity factors."""

    model_config = ConfigDict(frozen=True)

    electricity_per_kwh: float = 0.181  # kg/kWh
    oil_per_liter: float = 2.66         # kg/L
    gas_per_kwh: Optional[float] = 0.201  # kg/kWh


class LookupContext(BaseModel):
    """
    Unit prices and emission factors for one calculation.

    Supplied by the lookup store; the defaults make the engine usable on
    its own.
    """

    model_config = ConfigDict(frozen=True)

    electricity_price: Optional[float] = 0.15   # €/kWh
    oil_price: Optional[float] = 1.3            # €/L
    gas_price_per_mwh: Optional[float] = 55.0   # €/MWh
    co2: Co2Factors = Field(default_factory=Co2Factors)

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None) -> "LookupContext":
        """Build the context from configuration (env / .env overrides)."""
        s = settings or default_settings
        return cls(
            electricity_price=s.electricity_price,
            oil_price=s.oil_price,
            gas_price_per_mwh=s.gas_price_per_mwh,
            co2=Co2Factors(
                electricity_per_kwh=s.co2_electricity_per_kwh,
                oil_per_liter=s.co2_oil_per_liter,
                gas_per_kwh=s.co2_gas_per_kwh,
            ),
        )

    def as_lookup_values(self) -> dict[str, Optional[float]]:
        """Flat names usable as [lookup:...] shortcodes."""
        return {
            "electricity_price": self.electricity_price,
            "oil_price": self.oil_price,
            "gas_price_per_mwh": self.gas_price_per_mwh,
            "co2_electricity_per_kwh": self.co2.electricity_per_kwh,
            "co2_oil_per_liter": self.co2.oil_per_liter,
            "co2_gas_per_kwh": self.co2.gas_per_kwh,
        }


DEFAULT_LOOKUPS = LookupContext()
