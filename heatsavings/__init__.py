"""
Heatsavings - heating cost comparison for heat pump leads.

Normalizes form submissions, compares the current heating system with an
air-to-water heat pump, and resolves report templates.
"""

__version__ = "0.1.0"

from .normalize import normalize_lead
from .calc import compute_metrics, pick_strategy
from .formulas import ShortcodeResolver, FormulaStore
from .reporting import generate_report

__all__ = [
    "__version__",
    "normalize_lead",
    "compute_metrics",
    "pick_strategy",
    "ShortcodeResolver",
    "FormulaStore",
    "generate_report",
]
