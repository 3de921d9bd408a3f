"""
End-to-end report generation.

raw submission -> normalize_lead -> compute_metrics -> report context
-> report model + resolved PDF field values.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Callable, Dict, List, Mapping, Optional

from ..calc.metrics import Metrics, compute_metrics
from ..calc.strategies import StrategyId, get_strategy
from ..core.models import DEFAULT_LOOKUPS, LeadNormalized, LookupContext
from ..formulas.resolver import ShortcodeResolver
from ..formulas.store import FormulaStore
from ..normalize.lead import normalize_lead
from .context import build_report_context
from .field_mappings import DEFAULT_FIELD_MAPPINGS, resolve_field_mappings
from .report_model import ReportModel, build_report_model

logger = logging.getLogger(__name__)


@dataclass
class ReportData:
    """Everything needed to render and store one lead's report."""

    normalized: LeadNormalized
    log: List[str]
    metrics: Metrics
    strategy_id: StrategyId
    model: ReportModel
    context: Dict[str, Any] = field(default_factory=dict)
    fields: Dict[str, str] = field(default_factory=dict)
    errors: Dict[str, List[str]] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "normalized": self.normalized.model_dump(by_alias=True),
            "log": list(self.log),
            "metrics": self.metrics.to_dict(),
            "strategy": self.strategy_id.value,
            "report": self.model.to_dict(),
            "fields": dict(self.fields),
            "errors": {name: list(errors) for name, errors in self.errors.items()},
        }


def generate_report(
    raw_lead: Optional[Mapping[str, Any]],
    store: Optional[FormulaStore] = None,
    lookups: Optional[LookupContext] = None,
    *,
    mappings: Optional[Mapping[str, str]] = None,
    today: Optional[date] = None,
    sequence_factory: Optional[Callable[[], str]] = None,
) -> ReportData:
    """
    Run the full pipeline for one submission.

    Never raises on bad lead data: normalization degrades, unresolved
    shortcodes are reported in `errors`.

    Args:
        raw_lead: Form submission as posted
        store: Formulas and lookups for [calc:]/[lookup:] shortcodes
        lookups: Unit prices and CO2 factors
        mappings: PDF field templates (DEFAULT_FIELD_MAPPINGS when omitted)
        today: Report date
        sequence_factory: Document number generator

    Returns:
        ReportData
    """
    lookups = lookups or DEFAULT_LOOKUPS
    raw = raw_lead if isinstance(raw_lead, Mapping) else {}
    lead_id = raw.get("id") or raw.get("lead_id") or "-"

    result = normalize_lead(raw_lead)
    metrics = compute_metrics(result.normalized, lookups)
    strategy = get_strategy(metrics.strategy_id)

    logger.info(
        f"Report for {strategy.id.value} lead: current {metrics.current.cost.year1} €/year, "
        f"heat pump {metrics.new_system.cost.year1} €/year",
        extra={"lead_id": lead_id, "strategy": strategy.id.value},
    )

    context = build_report_context(result.normalized, metrics, lookups, extra=raw)
    resolver = ShortcodeResolver(
        context,
        store,
        lookups=lookups,
        today=today,
        sequence_factory=sequence_factory,
    )
    fields = resolve_field_mappings(mappings if mappings is not None else DEFAULT_FIELD_MAPPINGS, resolver)

    return ReportData(
        normalized=result.normalized,
        log=list(result.log),
        metrics=metrics,
        strategy_id=strategy.id,
        model=build_report_model(result.normalized, metrics, strategy, lookups),
        context=context,
        fields=fields.values,
        errors=fields.errors,
    )
