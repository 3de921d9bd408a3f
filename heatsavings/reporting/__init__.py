"""Report context, report model and PDF field resolution."""

from .context import build_report_context, HEATING_TYPE_LABELS
from .report_model import ReportModel, ReportRow, ReportSection, build_report_model
from .field_mappings import (
    DEFAULT_FIELD_MAPPINGS,
    FieldMappingResult,
    resolve_field_mappings,
)
from .pipeline import ReportData, generate_report

__all__ = [
    "build_report_context",
    "HEATING_TYPE_LABELS",
    "ReportModel",
    "ReportRow",
    "ReportSection",
    "build_report_model",
    "DEFAULT_FIELD_MAPPINGS",
    "FieldMappingResult",
    "resolve_field_mappings",
    "ReportData",
    "generate_report",
]
