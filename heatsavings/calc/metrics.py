"""
Metrics aggregation - current heating system vs. air-to-water heat pump.

The current system comes from the lead's heating strategy; the new system is
the same for every lead: electricity = energy need / COP 3.8.

Cost horizons multiply the already-rounded first-year cost, so that
year5 == 5 * year1 and year10 == 10 * year1 exactly in every report.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional
import logging

from ..core.models import DEFAULT_LOOKUPS, LeadNormalized, LookupContext
from ..utils.numbers import round_half_up
from .strategies import ConsumptionBreakdown, StrategyId, pick_strategy

logger = logging.getLogger(__name__)


HEAT_PUMP_COP = 3.8
DEFAULT_ELECTRICITY_PRICE = 0.15    # €/kWh
DEFAULT_ELECTRICITY_CO2 = 0.181     # kg/kWh


@dataclass(frozen=True)
class CostHorizon:
    """Cost over 1, 5 and 10 years."""

    year1: int
    year5: int
    year10: int

    @classmethod
    def from_year1(cls, year1: float) -> "CostHorizon":
        """Round year 1 once, then project it."""
        rounded = round_half_up(year1)
        return cls(
            year1=rounded,
            year5=round_half_up(rounded * 5),
            year10=round_half_up(rounded * 10),
        )

    def to_dict(self) -> Dict[str, int]:
        return {"year1": self.year1, "year5": self.year5, "year10": self.year10}


@dataclass(frozen=True)
class Co2Metrics:
    year: int   # kg/year


@dataclass(frozen=True)
class CurrentSystemMetrics:
    cost: CostHorizon
    consumption: ConsumptionBreakdown
    co2: Co2Metrics
    maintenance_yearly: int


@dataclass(frozen=True)
class NewSystemMetrics:
    cost: CostHorizon
    electricity_kwh: int
    co2_year: int


@dataclass(frozen=True)
class Metrics:
    """Current vs. new system comparison for one lead."""

    strategy_id: StrategyId
    current: CurrentSystemMetrics
    new_system: NewSystemMetrics

    @property
    def savings(self) -> CostHorizon:
        """Yearly saving projected with the same horizon rule."""
        return CostHorizon.from_year1(self.current.cost.year1 - self.new_system.cost.year1)

    @property
    def co2_reduction_year(self) -> int:
        return self.current.co2.year - self.new_system.co2_year

    def to_dict(self) -> Dict[str, Any]:
        """Wire shape stored alongside the lead record."""
        return {
            "strategy": self.strategy_id.value,
            "current": {
                "cost": self.current.cost.to_dict(),
                "consumption": self.current.consumption.to_dict(),
                "co2": {"year": self.current.co2.year},
                "maintenanceYearly": self.current.maintenance_yearly,
            },
            "newSystem": {
                "cost": self.new_system.cost.to_dict(),
                "electricityKWh": self.new_system.electricity_kwh,
                "co2Year": self.new_system.co2_year,
            },
            "savings": self.savings.to_dict(),
            "co2ReductionYear": self.co2_reduction_year,
        }


def compute_new_system(lead: LeadNormalized, lookups: LookupContext) -> NewSystemMetrics:
    """Heat pump running cost and emissions, independent of the current fuel."""
    electricity_kwh = round_half_up((lead.laskennallinenenergiantarve or 0) / HEAT_PUMP_COP)
    cost_year1 = electricity_kwh * (lookups.electricity_price or DEFAULT_ELECTRICITY_PRICE)
    co2 = electricity_kwh * (lookups.co2.electricity_per_kwh or DEFAULT_ELECTRICITY_CO2)
    return NewSystemMetrics(
        cost=CostHorizon.from_year1(cost_year1),
        electricity_kwh=electricity_kwh,
        co2_year=round_half_up(co2),
    )


def compute_metrics(lead: LeadNormalized, lookups: Optional[LookupContext] = None) -> Metrics:
    """
    Compute the comparison metrics for a normalized lead.

    Pure function of (lead, lookups); neither argument is modified.

    Args:
        lead: Normalized lead record
        lookups: Unit prices and CO2 factors (defaults when omitted)

    Returns:
        Metrics for the current system and the heat pump
    """
    lookups = lookups or DEFAULT_LOOKUPS
    strategy = pick_strategy(lead)
    basics = strategy.compute_basics(lead, lookups)

    logger.debug(
        f"Current system cost {basics.annual_current_cost} €/year, "
        f"CO2 {basics.current_co2_year} kg/year",
        extra={"strategy": strategy.id.value},
    )

    return Metrics(
        strategy_id=strategy.id,
        current=CurrentSystemMetrics(
            cost=CostHorizon.from_year1(basics.annual_current_cost),
            consumption=basics.current_consumption,
            co2=Co2Metrics(year=basics.current_co2_year),
            maintenance_yearly=basics.maintenance_yearly,
        ),
        new_system=compute_new_system(lead, lookups),
    )
