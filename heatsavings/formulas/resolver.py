"""
Shortcode resolver.

Turns template text into the literal strings placed into emails, previews
and PDF fields. Supported tokens:

    {field} / {nested.field}       context value
    [field:x] / [lead:x]           same as {x}
    [calc:name]                    formula result, fi-FI formatted, plus unit
    [lookup:name]                  scalar or conditional lookup
    [format:source:type[:opts]]    formatted value (opts: decimals=N,suffix=S,prefix=P)
    CURRENT_DATE / [CURRENT_DATE]  today's date, d.M.yyyy
    AUTO_GENERATE / [AUTO_GENERATE]  document number

Tokens are found by a single scan, left to right, so text produced by one
replacement is never scanned again. Resolution never raises: a token that
cannot be resolved stays in the output as written and an error is recorded.
"""

from __future__ import annotations

import logging
import re
import uuid
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple

from ..core.config import settings
from ..core.models import DEFAULT_LOOKUPS, LookupContext
from ..utils.numbers import (
    format_compact,
    format_currency,
    format_date,
    format_decimal,
    format_number,
    format_percentage,
    try_parse_number,
)
from .evaluator import (
    FormulaError,
    FormulaEvaluationError,
    SafeFormulaEvaluator,
    replace_references,
)
from .store import EMPTY_STORE, Formula, FormulaStore, normalize_name

logger = logging.getLogger(__name__)


TOKEN_PATTERN = re.compile(
    r"\[(?P<kind>field|lead|calc|lookup|format):(?P<body>[^\]]+)\]"
    r"|\{(?P<field>[^{}\s][^{}]*)\}"
    r"|\[(?P<bracketed>CURRENT_DATE|AUTO_GENERATE)\]"
    r"|\b(?P<sentinel>CURRENT_DATE|AUTO_GENERATE)\b"
)

_SINGLE_CALC = re.compile(r"^\s*\[(?:calc|formula):([^\]]+)\]\s*$")

_MISSING = object()


class CircularReferenceError(FormulaEvaluationError):
    """A formula refers back to itself through [calc:] references."""


class ReferenceNotFoundError(FormulaEvaluationError):
    """A formula, lookup or format source does not exist."""


@dataclass
class ResolveResult:
    """Outcome of resolving one template."""

    text: str
    success: bool = True
    error: Optional[str] = None
    errors: List[str] = field(default_factory=list)


@dataclass
class FormulaExecutionResult:
    success: bool
    result: Optional[float] = None
    error: Optional[str] = None


def default_sequence() -> str:
    """Document number: current year plus six hex characters."""
    return f"{date.today().year}-{uuid.uuid4().hex[:6].upper()}"


def value_to_text(value: Any) -> str:
    """Plain rendering of a context value."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float)):
        return format_number(value)
    if isinstance(value, date):
        return format_date(value)
    return str(value)


def format_value(
    value: Any,
    kind: str,
    decimals: Optional[int] = None,
    suffix: str = "",
    prefix: str = "",
    date_style: str = "short",
) -> str:
    """
    Format a value for display.

    Args:
        value: Raw value (number, numeric text or anything else)
        kind: currency | number | decimal | percentage | date | text
        decimals: Fraction digits, type default when None
        suffix: Appended after the formatted value
        prefix: Prepended before the formatted value
        date_style: short | long | iso, for the date kind

    Values that are not numbers are passed through as text for the numeric
    kinds.
    """
    kind = kind.strip().lower()
    if kind == "date":
        text = format_date(value, date_style)
    elif kind == "text":
        text = value_to_text(value)
    else:
        number = try_parse_number(value)
        if number is None:
            text = "" if value is None else str(value)
        elif kind == "currency":
            text = format_currency(number, decimals or 0)
        elif kind == "number":
            text = format_compact(number) if decimals is None else format_decimal(number, decimals)
        elif kind == "decimal":
            text = format_decimal(number, 1 if decimals is None else decimals)
        elif kind == "percentage":
            text = format_percentage(number, 1 if decimals is None else decimals)
        else:
            text = value_to_text(value)
    return f"{prefix}{text}{suffix}"


def parse_format_options(options: str) -> Tuple[Optional[int], str, str, str]:
    """Parse 'decimals=0,suffix= kWh/vuosi' into (decimals, suffix, prefix, date_style)."""
    decimals: Optional[int] = None
    suffix = prefix = ""
    date_style = "short"
    for part in options.split(",") if options else ():
        key, _, value = part.partition("=")
        key = key.strip().lower()
        if key == "decimals":
            try:
                decimals = int(value.strip())
            except ValueError:
                logger.debug(f"Ignoring decimals option {value!r}")
        elif key == "suffix":
            suffix = value
        elif key == "prefix":
            prefix = value
        elif key == "format":
            date_style = value.strip().lower()
    return decimals, suffix, prefix, date_style


def get_path(context: Mapping[str, Any], path: str) -> Any:
    """Read `a.b.c` from nested mappings; _MISSING when absent."""
    path = path.strip()
    if path in context:
        return context[path]
    current: Any = context
    for part in path.split("."):
        if not isinstance(current, Mapping) or part not in current:
            return _MISSING
        current = current[part]
    return current


class ShortcodeResolver:
    """
    Resolve shortcode templates against one report context.

    Formula results are memoised for one resolve() call, then discarded.

    Usage:
        resolver = ShortcodeResolver(context, store)
        result = resolver.resolve("Säästö [format:annual_savings:currency]")
        if not result.success:
            print(result.errors)
    """

    def __init__(
        self,
        context: Mapping[str, Any],
        store: Optional[FormulaStore] = None,
        *,
        lookups: Optional[LookupContext] = None,
        today: Optional[date] = None,
        sequence_factory: Optional[Callable[[], str]] = None,
    ):
        self.context = dict(context)
        self.store = store or EMPTY_STORE
        self.lookups = lookups or DEFAULT_LOOKUPS
        self.today = today or date.today()
        self.sequence_factory = sequence_factory or default_sequence
        self.evaluator = SafeFormulaEvaluator()
        self.max_depth = settings.max_formula_depth

        self._sequence: Optional[str] = None
        self._memo: Dict[str, float] = {}
        self._errors: List[str] = []

    # -------------------------------------------------------------------------
    # Public API
    # -------------------------------------------------------------------------

    def resolve(self, template: str) -> ResolveResult:
        """Resolve every token in `template`."""
        self._memo = {}
        self._errors = []
        text = self._substitute(template or "", [], strict=False)
        errors = list(self._errors)
        return ResolveResult(
            text=text,
            success=not errors,
            error=errors[0] if errors else None,
            errors=errors,
        )

    def resolve_text(self, template: str) -> str:
        return self.resolve(template).text

    def execute(self, name: str) -> FormulaExecutionResult:
        """Run one formula by name."""
        self._memo = {}
        try:
            return FormulaExecutionResult(success=True, result=self._run_formula(name, []))
        except FormulaError as exc:
            logger.warning(f"Formula execution failed: {exc}", extra={"formula": name})
            return FormulaExecutionResult(success=False, error=self._describe(exc))

    def sequence_value(self) -> str:
        """Document number, generated once per resolver."""
        if self._sequence is None:
            self._sequence = self.sequence_factory()
        return self._sequence

    # -------------------------------------------------------------------------
    # Token handling
    # -------------------------------------------------------------------------

    def _substitute(self, template: str, stack: List[str], strict: bool) -> str:
        def _replace(match: re.Match) -> str:
            token = match.group(0)
            try:
                return self._render_token(match, stack)
            except FormulaError as exc:
                if strict:
                    raise
                message = self._describe(exc)
                logger.warning(f"Could not resolve {token}: {message}", extra={"shortcode": token})
                self._errors.append(message)
                return token

        return TOKEN_PATTERN.sub(_replace, template)

    def _render_token(self, match: re.Match, stack: List[str]) -> str:
        if match.group("field") is not None:
            return self._render_field(match.group("field"))

        sentinel = match.group("bracketed") or match.group("sentinel")
        if sentinel == "CURRENT_DATE":
            return format_date(self.today)
        if sentinel == "AUTO_GENERATE":
            return self.sequence_value()

        kind, body = match.group("kind"), match.group("body")
        if kind == "format":
            return self._render_format(body, stack)

        name = body.strip()
        if kind in ("field", "lead"):
            return self._render_field(name)
        if kind == "calc":
            formula = self._find_formula(name)
            return self._render_calc(formula, self._run_formula(name, stack))
        _, text = self._lookup(name, stack)
        return text

    def _render_field(self, path: str) -> str:
        value = get_path(self.context, path)
        return "" if value is _MISSING else value_to_text(value)

    @staticmethod
    def _render_calc(formula: Formula, value: float) -> str:
        text = format_number(value)
        return f"{text} {formula.unit}" if formula.unit else text

    def _render_format(self, body: str, stack: List[str]) -> str:
        source, _, rest = body.partition(":")
        kind, _, options = rest.partition(":")
        decimals, suffix, prefix, date_style = parse_format_options(options)
        value = self._format_source(source.strip(), stack)
        return format_value(value, kind or "text", decimals, suffix, prefix, date_style)

    def _format_source(self, source: str, stack: List[str]) -> Any:
        value = get_path(self.context, source)
        if value is not _MISSING:
            return value
        if self.store.find_formula(source) is not None:
            return self._run_formula(source, stack)
        value, _ = self._lookup(source, stack)
        return value

    # -------------------------------------------------------------------------
    # Formulas
    # -------------------------------------------------------------------------

    def _find_formula(self, name: str) -> Formula:
        formula = self.store.find_formula(name)
        if formula is None:
            raise ReferenceNotFoundError(f"Formula '{name}' not found", name)
        return formula

    def _run_formula(self, name: str, stack: List[str]) -> float:
        key = normalize_name(name)
        if key in self._memo:
            return self._memo[key]
        if key in stack:
            chain = " -> ".join(stack + [key])
            raise CircularReferenceError(f"Circular reference: {chain}", name)
        if len(stack) >= self.max_depth:
            raise FormulaEvaluationError(f"Formula nesting deeper than {self.max_depth}", name)

        formula = self._find_formula(name)
        text, references = replace_references(formula.formula_text)
        scope = self._scope(formula.defaults)
        scope.update(self._bind(references, stack + [key]))

        try:
            result = self.evaluator.evaluate_number(text, scope)
        except (FormulaError, ArithmeticError) as exc:
            raise FormulaEvaluationError(f"Formula execution failed: {exc}", name) from exc

        logger.debug(f"Formula {formula.name} = {result}", extra={"formula": formula.name})
        self._memo[key] = result
        return result

    def _scope(self, defaults: Optional[Mapping[str, Any]] = None) -> Dict[str, Any]:
        """Flat context values; declared defaults only fill names the context lacks."""
        scope = {k: v for k, v in self.context.items() if not isinstance(v, Mapping)}
        for name, value in (defaults or {}).items():
            if scope.get(name) is None:
                scope[name] = value
        return scope

    def _bind(self, references: List[Tuple[str, str, str]], stack: List[str]) -> Dict[str, Any]:
        """Values for the placeholders left by replace_references."""
        bound: Dict[str, Any] = {}
        for placeholder, kind, name in references:
            if kind == "field":
                value = get_path(self.context, name)
                bound[placeholder] = None if value is _MISSING else value
            elif kind == "lookup":
                bound[placeholder], _ = self._lookup(name, stack)
            else:
                bound[placeholder] = self._run_formula(name, stack)
        return bound

    # -------------------------------------------------------------------------
    # Lookups
    # -------------------------------------------------------------------------

    def _lookup(self, name: str, stack: List[str]) -> Tuple[Any, str]:
        """Return (value, rendered text) for a lookup."""
        lookup = self.store.find_lookup(name)
        if lookup is not None and not lookup.is_conditional and lookup.value is not None:
            return lookup.value, value_to_text(lookup.value)

        builtin = self.lookups.as_lookup_values().get(name.strip())
        if builtin is not None:
            return builtin, value_to_text(builtin)

        if lookup is None or not lookup.is_conditional:
            raise ReferenceNotFoundError(f"Lookup '{name}' not found", name)

        for condition in lookup.conditions:
            if not condition.is_active:
                continue
            try:
                matched = self._evaluate_condition(condition.condition, stack)
            except FormulaError as exc:
                logger.warning(
                    f"Lookup condition {condition.condition!r} failed: {exc}",
                    extra={"shortcode": f"[lookup:{name}]"},
                )
                continue
            if matched:
                return self._resolve_target(condition.shortcode, stack)

        raise ReferenceNotFoundError(f"No condition matched for lookup '{name}'", name)

    def _evaluate_condition(self, condition: str, stack: List[str]) -> bool:
        text, references = replace_references(condition)
        scope = self._scope()
        scope.update(self._bind(references, stack))
        return bool(self.evaluator.evaluate(text, scope))

    def _resolve_target(self, shortcode: str, stack: List[str]) -> Tuple[Any, str]:
        single = _SINGLE_CALC.match(shortcode)
        if single:
            name = single.group(1).strip()
            value = self._run_formula(name, stack)
            return value, self._render_calc(self._find_formula(name), value)

        text = self._substitute(shortcode, stack, strict=True)
        number = try_parse_number(text)
        return (text if number is None else number), text

    @staticmethod
    def _describe(exc: FormulaError) -> str:
        message = str(exc)
        if isinstance(exc, ReferenceNotFoundError) or message.startswith("Formula execution failed"):
            return message
        return f"Formula execution failed: {message}"


def resolve_template(
    template: str,
    context: Mapping[str, Any],
    store: Optional[FormulaStore] = None,
    **kwargs: Any,
) -> ResolveResult:
    """Quick helper to resolve a single template."""
    return ShortcodeResolver(context, store, **kwargs).resolve(template)
