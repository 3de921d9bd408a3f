"""Formula evaluation, formula/lookup store and shortcode resolution."""

from .evaluator import (
    FormulaError,
    FormulaSyntaxError,
    FormulaEvaluationError,
    FormulaValidation,
    SafeFormulaEvaluator,
    evaluate_formula,
    validate_formula,
)
from .store import (
    Formula,
    FormulaStore,
    FormulaVariable,
    Lookup,
    LookupCondition,
    StoreError,
)
from .resolver import (
    CircularReferenceError,
    ReferenceNotFoundError,
    FormulaExecutionResult,
    ResolveResult,
    ShortcodeResolver,
    format_value,
    resolve_template,
)

__all__ = [
    # Evaluator
    "FormulaError",
    "FormulaSyntaxError",
    "FormulaEvaluationError",
    "FormulaValidation",
    "SafeFormulaEvaluator",
    "evaluate_formula",
    "validate_formula",
    # Store
    "Formula",
    "FormulaStore",
    "FormulaVariable",
    "Lookup",
    "LookupCondition",
    "StoreError",
    # Resolver
    "CircularReferenceError",
    "ReferenceNotFoundError",
    "FormulaExecutionResult",
    "ResolveResult",
    "ShortcodeResolver",
    "format_value",
    "resolve_template",
]
