"""
Heating cost strategies.

One strategy per current heating fuel. Each computes the current system's
consumption, annual cost and CO2 from a normalized lead:

- Oil: litres, from reported consumption or energy need / 10 kWh per litre
- Gas: m³ as reported, cost from the reported yearly bill
- Wood: stacked cubic metres (puumotti), treated as carbon neutral
- OilWoodMixed: same numbers as Oil, separate variant for report labels

Selection is a first-match scan over a fixed order. The mixed strategy comes
first because the plain Oil and Wood predicates exclude the other fuel's
token; Oil is the fallback when nothing matches.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Optional, Tuple
import logging

from ..core.models import DEFAULT_LOOKUPS, LeadNormalized, LookupContext
from ..utils.numbers import round_half_up

logger = logging.getLogger(__name__)


OIL_TOKEN = "öljy"
WOOD_TOKEN = "puu"
GAS_TOKEN = "kaasu"

OIL_KWH_PER_LITER = 10.0
DEFAULT_OIL_PRICE = 1.3         # €/L
DEFAULT_OIL_CO2 = 2.66          # kg/L
DEFAULT_GAS_CO2 = 0.201         # kg/kWh

OIL_MAINTENANCE_YEARLY = 200    # €/year
GAS_MAINTENANCE_YEARLY = 300
WOOD_MAINTENANCE_YEARLY = 200


class StrategyId(str, Enum):
    """Heating strategy identifiers."""

    OIL = "oil"
    GAS = "gas"
    WOOD = "wood"
    OILWOOD = "oilwood"


@dataclass(frozen=True)
class PdfRow:
    """Line item descriptor for the current-system box of the report."""

    key: str    # consumption | price | maintenance | co2
    label: str
    unit: str


@dataclass(frozen=True)
class ConsumptionBreakdown:
    """Current consumption; exactly one unit is populated per strategy."""

    liters: Optional[int] = None     # oil
    m3: Optional[int] = None         # gas
    puumotti: Optional[int] = None   # wood

    @property
    def value(self) -> int:
        for amount in (self.liters, self.m3, self.puumotti):
            if amount is not None:
                return amount
        return 0

    def to_dict(self) -> Dict[str, int]:
        return {
            key: amount
            for key, amount in (("liters", self.liters), ("m3", self.m3), ("puumotti", self.puumotti))
            if amount is not None
        }


@dataclass(frozen=True)
class StrategyResultBasics:
    """Output of one strategy for one lead. Values are already rounded."""

    annual_current_cost: int           # €/year
    current_consumption: ConsumptionBreakdown
    current_co2_year: int              # kg/year
    maintenance_yearly: int            # €/year


class HeatingStrategy(ABC):
    """Base class for heating cost strategies."""

    id: StrategyId
    pdf_rows: Tuple[PdfRow, ...] = ()

    @abstractmethod
    def matches(self, lead: LeadNormalized) -> bool:
        """Check whether this strategy applies to the lead's heating type."""

    @abstractmethod
    def compute_basics(self, lead: LeadNormalized, lookups: LookupContext) -> StrategyResultBasics:
        """Compute current-system cost, consumption and CO2."""

    def __repr__(self) -> str:
        return f"{type(self).__name__}(id={self.id.value!r})"


def _oil_basics(lead: LeadNormalized, lookups: LookupContext) -> StrategyResultBasics:
    if lead.kokonaismenekki is not None:
        liters = lead.kokonaismenekki
    else:
        liters = (lead.laskennallinenenergiantarve or 0) / OIL_KWH_PER_LITER

    if lead.oil_price is not None:
        oil_price = lead.oil_price
    elif lookups.oil_price is not None:
        oil_price = lookups.oil_price
    else:
        oil_price = DEFAULT_OIL_PRICE

    if lead.menekinhintavuosi is not None:
        annual_cost = lead.menekinhintavuosi
    else:
        annual_cost = liters * oil_price

    co2 = (liters or 0) * (lookups.co2.oil_per_liter or DEFAULT_OIL_CO2)

    return StrategyResultBasics(
        annual_current_cost=round_half_up(annual_cost or 0),
        current_consumption=ConsumptionBreakdown(liters=round_half_up(liters or 0)),
        current_co2_year=round_half_up(co2),
        maintenance_yearly=OIL_MAINTENANCE_YEARLY,
    )


_OIL_ROWS = (
    PdfRow(key="consumption", label="Öljyn kulutus", unit="L/vuosi"),
    PdfRow(key="price", label="Öljyn hinta", unit="€/litra"),
    PdfRow(key="maintenance", label="Huoltokustannus", unit="€/vuosi"),
    PdfRow(key="co2", label="CO₂-päästöt", unit="kg/vuosi"),
)


class OilStrategy(HeatingStrategy):
    """Oil boiler. Matches "öljy" unless the label also names wood."""

    id = StrategyId.OIL
    pdf_rows = _OIL_ROWS

    def matches(self, lead: LeadNormalized) -> bool:
        heating = lead.heating_type
        return OIL_TOKEN in heating and WOOD_TOKEN not in heating

    def compute_basics(self, lead: LeadNormalized, lookups: LookupContext) -> StrategyResultBasics:
        return _oil_basics(lead, lookups)


class OilWoodMixedStrategy(HeatingStrategy):
    """Combined oil and wood heating. Numbers follow Oil."""

    id = StrategyId.OILWOOD
    pdf_rows = _OIL_ROWS

    def matches(self, lead: LeadNormalized) -> bool:
        heating = lead.heating_type
        return OIL_TOKEN in heating and WOOD_TOKEN in heating

    def compute_basics(self, lead: LeadNormalized, lookups: LookupContext) -> StrategyResultBasics:
        return _oil_basics(lead, lookups)


class GasStrategy(HeatingStrategy):
    """
    Gas heating.

    The annual cost is the reported yearly bill; gas_price_per_mwh is not
    used to derive it from the consumption.
    """

    id = StrategyId.GAS
    pdf_rows = (
        PdfRow(key="consumption", label="Kaasun kulutus", unit="m³/vuosi"),
        PdfRow(key="price", label="Kaasun hinta", unit="€/MWh"),
        PdfRow(key="maintenance", label="Huoltokustannus", unit="€/vuosi"),
        PdfRow(key="co2", label="CO₂-päästöt", unit="kg/vuosi"),
    )

    def matches(self, lead: LeadNormalized) -> bool:
        return GAS_TOKEN in lead.heating_type

    def compute_basics(self, lead: LeadNormalized, lookups: LookupContext) -> StrategyResultBasics:
        m3 = lead.kokonaismenekki or 0
        annual_cost = lead.menekinhintavuosi or 0
        co2 = (lead.laskennallinenenergiantarve or 0) * (lookups.co2.gas_per_kwh or DEFAULT_GAS_CO2)
        return StrategyResultBasics(
            annual_current_cost=round_half_up(annual_cost),
            current_consumption=ConsumptionBreakdown(m3=round_half_up(m3)),
            current_co2_year=round_half_up(co2),
            maintenance_yearly=GAS_MAINTENANCE_YEARLY,
        )


class WoodStrategy(HeatingStrategy):
    """Wood heating. Matches "puu" unless the label also names oil."""

    id = StrategyId.WOOD
    pdf_rows = (
        PdfRow(key="consumption", label="Puun menekki", unit="puumottia/vuosi"),
        PdfRow(key="price", label="Puun hinta", unit="€/vuosi"),
        PdfRow(key="maintenance", label="Huoltokustannus", unit="€/vuosi"),
        PdfRow(key="co2", label="CO₂-päästöt", unit="kg/vuosi"),
    )

    def matches(self, lead: LeadNormalized) -> bool:
        heating = lead.heating_type
        return WOOD_TOKEN in heating and OIL_TOKEN not in heating

    def compute_basics(self, lead: LeadNormalized, lookups: LookupContext) -> StrategyResultBasics:
        puumotti = lead.kokonaismenekki or 0
        annual_cost = lead.menekinhintavuosi or 0
        # Biomass counted as carbon neutral
        return StrategyResultBasics(
            annual_current_cost=round_half_up(annual_cost),
            current_consumption=ConsumptionBreakdown(puumotti=round_half_up(puumotti)),
            current_co2_year=0,
            maintenance_yearly=WOOD_MAINTENANCE_YEARLY,
        )


OIL = OilStrategy()
OILWOOD = OilWoodMixedStrategy()
GAS = GasStrategy()
WOOD = WoodStrategy()

# Order matters: the mixed strategy must be tested before Oil and Wood.
STRATEGIES: Tuple[HeatingStrategy, ...] = (OILWOOD, OIL, GAS, WOOD)

DEFAULT_STRATEGY = OIL


def pick_strategy(lead: LeadNormalized) -> HeatingStrategy:
    """
    Select the strategy for a lead.

    Returns the first matching strategy in STRATEGIES, or Oil when the
    heating type is empty or unrecognised. Never fails.
    """
    for strategy in STRATEGIES:
        if strategy.matches(lead):
            return strategy

    logger.debug(
        f"No strategy matched heating type {lead.lammitysmuoto!r}, defaulting to oil",
        extra={"strategy": DEFAULT_STRATEGY.id.value},
    )
    return DEFAULT_STRATEGY


def get_strategy(strategy_id: "StrategyId | str") -> HeatingStrategy:
    """Look up a strategy by id ("oil", "gas", "wood", "oilwood")."""
    wanted = StrategyId(strategy_id)
    for strategy in STRATEGIES:
        if strategy.id is wanted:
            return strategy
    raise KeyError(wanted.value)


def compute_basics(
    lead: LeadNormalized,
    lookups: Optional[LookupContext] = None,
) -> Tuple[HeatingStrategy, StrategyResultBasics]:
    """Pick the strategy for `lead` and run it."""
    strategy = pick_strategy(lead)
    return strategy, strategy.compute_basics(lead, lookups or DEFAULT_LOOKUPS)
