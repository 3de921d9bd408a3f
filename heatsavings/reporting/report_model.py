"""
Report model - the two comparison boxes of the savings report.

The current-system box follows the strategy's pdf_rows, so an oil lead
shows litres and €/litra while a wood lead shows puumotti. The heat pump
box is the same for everyone. Values are display strings.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Tuple

from ..calc.metrics import CostHorizon, Metrics
from ..calc.strategies import HeatingStrategy, PdfRow, StrategyId
from ..core.models import DEFAULT_LOOKUPS, LeadNormalized, LookupContext
from ..utils.numbers import format_currency, format_decimal, format_number
from .context import HEATING_TYPE_LABELS, MAINTENANCE_FIRST_5Y, effective_oil_price


NEW_SYSTEM_TITLE = "Ilmavesilämpöpumppu"

NEW_SYSTEM_ROWS = (
    PdfRow(key="consumption", label="Sähkön kulutus", unit="kWh/vuosi"),
    PdfRow(key="price", label="Sähkön hinta", unit="€/kWh"),
    PdfRow(key="maintenance", label="Huoltokustannus", unit="€/vuosi"),
    PdfRow(key="co2", label="CO₂-päästöt", unit="kg/vuosi"),
)


@dataclass(frozen=True)
class ReportRow:
    key: str
    label: str
    value: str


@dataclass(frozen=True)
class ReportSection:
    """One comparison box."""

    title: str
    rows: Tuple[ReportRow, ...]
    cost_year1: str
    cost_year5: str
    cost_year10: str

    def row(self, key: str) -> Optional[ReportRow]:
        for row in self.rows:
            if row.key == key:
                return row
        return None


@dataclass(frozen=True)
class ReportModel:
    strategy_id: StrategyId
    current: ReportSection
    new_system: ReportSection
    savings: Dict[str, str] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        def _section(section: ReportSection) -> Dict[str, Any]:
            return {
                "title": section.title,
                "rows": [{"key": r.key, "label": r.label, "value": r.value} for r in section.rows],
                "cost": {
                    "year1": section.cost_year1,
                    "year5": section.cost_year5,
                    "year10": section.cost_year10,
                },
            }

        return {
            "strategy": self.strategy_id.value,
            "current": _section(self.current),
            "newSystem": _section(self.new_system),
            "savings": dict(self.savings),
        }


def _with_unit(text: str, unit: str) -> str:
    return f"{text} {unit}"


def _current_price(strategy: HeatingStrategy, lead: LeadNormalized, metrics: Metrics, lookups: LookupContext) -> str:
    if strategy.id is StrategyId.GAS:
        return format_number(lookups.gas_price_per_mwh or 0)
    if strategy.id is StrategyId.WOOD:
        return format_number(metrics.current.cost.year1)
    return format_decimal(effective_oil_price(lead, lookups), 2)


def _section(title: str, rows: Tuple[ReportRow, ...], cost: CostHorizon) -> ReportSection:
    return ReportSection(
        title=title,
        rows=rows,
        cost_year1=format_currency(cost.year1),
        cost_year5=format_currency(cost.year5),
        cost_year10=format_currency(cost.year10),
    )


def build_report_model(
    lead: LeadNormalized,
    metrics: Metrics,
    strategy: HeatingStrategy,
    lookups: Optional[LookupContext] = None,
) -> ReportModel:
    """
    Build the display model for the comparison boxes.

    Args:
        lead: Normalized lead
        metrics: Metrics computed for the lead
        strategy: Strategy that produced the metrics (decides row layout)
        lookups: Unit prices used for the calculation

    Returns:
        ReportModel with fi-FI formatted values
    """
    lookups = lookups or DEFAULT_LOOKUPS
    current = metrics.current

    current_values = {
        "consumption": format_number(current.consumption.value),
        "price": _current_price(strategy, lead, metrics, lookups),
        "maintenance": format_number(current.maintenance_yearly),
        "co2": format_number(current.co2.year),
    }
    new_values = {
        "consumption": format_number(metrics.new_system.electricity_kwh),
        "price": format_decimal(lookups.electricity_price or 0, 2),
        "maintenance": format_number(MAINTENANCE_FIRST_5Y),
        "co2": format_number(metrics.new_system.co2_year),
    }

    current_rows = tuple(
        ReportRow(key=row.key, label=row.label, value=_with_unit(current_values[row.key], row.unit))
        for row in strategy.pdf_rows
    )
    new_rows = tuple(
        ReportRow(key=row.key, label=row.label, value=_with_unit(new_values[row.key], row.unit))
        for row in NEW_SYSTEM_ROWS
    )

    savings = metrics.savings
    return ReportModel(
        strategy_id=strategy.id,
        current=_section(HEATING_TYPE_LABELS[strategy.id.value], current_rows, current.cost),
        new_system=_section(NEW_SYSTEM_TITLE, new_rows, metrics.new_system.cost),
        savings={
            "year1": format_currency(savings.year1),
            "year5": format_currency(savings.year5),
            "year10": format_currency(savings.year10),
        },
    )
