"""
Flat report context.

The PDF and email templates address values by flat names
(`current_heating_cost_5y`, `heat_pump_consumption`, ...). This module maps a
normalized lead plus its metrics onto those names.
"""

from __future__ import annotations

from typing import Any, Dict, Mapping, Optional

from ..calc.metrics import HEAT_PUMP_COP, Metrics
from ..calc.strategies import DEFAULT_OIL_PRICE
from ..core.models import DEFAULT_LOOKUPS, LeadNormalized, LookupContext


# Offer constants printed on every report
ELY_SUBSIDY = 4000                 # € energy subsidy for giving up oil heating
TAX_DEDUCTION_MAX = 3200           # € household deduction ceiling
MAINTENANCE_FIRST_5Y = 0           # €/year, heat pump under warranty
MAINTENANCE_NEXT_5Y = 30           # €/year

HEATING_TYPE_LABELS = {
    "oil": "Öljylämmitys",
    "gas": "Kaasulämmitys",
    "wood": "Puulämmitys",
    "oilwood": "Öljy- ja puulämmitys",
}


def effective_oil_price(lead: LeadNormalized, lookups: LookupContext) -> float:
    if lead.oil_price is not None:
        return lead.oil_price
    if lookups.oil_price is not None:
        return lookups.oil_price
    return DEFAULT_OIL_PRICE


def build_report_context(
    lead: LeadNormalized,
    metrics: Metrics,
    lookups: Optional[LookupContext] = None,
    extra: Optional[Mapping[str, Any]] = None,
) -> Dict[str, Any]:
    """
    Build the flat name -> value context used by report templates.

    Args:
        lead: Normalized lead
        metrics: Metrics computed for the lead
        lookups: Unit prices used for the calculation
        extra: Additional raw values (contact details etc.), overridden by
            computed names on conflict

    Returns:
        Dict of raw (unformatted) values
    """
    lookups = lookups or DEFAULT_LOOKUPS
    current, new = metrics.current, metrics.new_system
    savings = metrics.savings

    context: Dict[str, Any] = dict(extra or {})
    context.update(lead.model_dump())
    context.update({
        "strategy": metrics.strategy_id.value,
        "heating_type": metrics.strategy_id.value,
        "heating_type_fi": HEATING_TYPE_LABELS[metrics.strategy_id.value],
        # Property
        "square_meters": lead.neliot,
        "ceiling_height": lead.huonekorkeus,
        "construction_year": None if lead.rakennusvuosi is None else str(lead.rakennusvuosi),
        "residents": lead.henkilomaara,
        "annual_energy_need": lead.laskennallinenenergiantarve,
        # Current system
        "current_heating_cost": current.cost.year1,
        "current_heating_cost_5y": current.cost.year5,
        "current_heating_cost_10y": current.cost.year10,
        "current_consumption": current.consumption.value,
        "oil_consumption": current.consumption.liters or 0,
        "gas_consumption": current.consumption.m3 or 0,
        "wood_consumption": current.consumption.puumotti or 0,
        "current_co2": current.co2.year,
        "current_maintenance": current.maintenance_yearly,
        "oil_price": effective_oil_price(lead, lookups),
        "gas_price_per_mwh": lookups.gas_price_per_mwh,
        # Heat pump
        "heat_pump_cost_annual": new.cost.year1,
        "heat_pump_cost_5y": new.cost.year5,
        "heat_pump_cost_10y": new.cost.year10,
        "heat_pump_consumption": new.electricity_kwh,
        "electricity_price": lookups.electricity_price,
        "new_co2": new.co2_year,
        "cop_value": HEAT_PUMP_COP,
        "maintenance_first_5y": MAINTENANCE_FIRST_5Y,
        "maintenance_next_5y": MAINTENANCE_NEXT_5Y,
        # Comparison
        "annual_savings": savings.year1,
        "five_year_savings": savings.year5,
        "ten_year_savings": savings.year10,
        "co2_reduction": metrics.co2_reduction_year,
        "ely_subsidy": ELY_SUBSIDY,
        "tax_deduction_max": TAX_DEDUCTION_MAX,
    })
    return context
