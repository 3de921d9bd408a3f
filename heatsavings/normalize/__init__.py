"""
Lead normalization - raw form submissions to canonical records.
"""

from .lead import (
    ALIAS_MAP,
    NUMERIC_FIELDS,
    NormalizationResult,
    apply_aliases,
    normalize_lead,
    parse_year,
)

__all__ = [
    "ALIAS_MAP",
    "NUMERIC_FIELDS",
    "NormalizationResult",
    "apply_aliases",
    "normalize_lead",
    "parse_year",
]
