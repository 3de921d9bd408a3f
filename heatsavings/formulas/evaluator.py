"""
Safe formula evaluator.

Formula bodies are admin-editable text stored next to the lead data. They
are parsed with the Python `ast` module and walked by a small interpreter
that only knows arithmetic, comparisons, boolean logic, a handful of math
functions and variable reads. Nothing is ever passed to eval() or exec().

Bodies written in the older JavaScript flavour are accepted:

    return Math.round(data.laskennallinenenergiantarve / 3.8);
    [field:neliot] > 200 && [field:lammitysmuoto] === 'Öljylämmitys'

`[field:x]`, `[lookup:x]`, `[calc:x]` and `[formula:x]` references are
replaced by placeholder variables before parsing; binding them is the
resolver's job (see resolver.py).
"""

from __future__ import annotations

import ast
import math
import operator
import re
from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Context, Decimal
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple

from ..core.config import settings
from ..utils.numbers import round_half_up, try_parse_number


MAX_NODES = 200
MAX_EXPONENT = 100
MAX_RESULT = 1e15
MAX_ROUND_DIGITS = 20

REFERENCE_PATTERN = re.compile(r"\[(field|lookup|calc|formula):([^\]]+)\]")

_STRING_LITERAL = re.compile(r"""('(?:\\.|[^'\\])*'|"(?:\\.|[^"\\])*")""")

_JS_STATEMENT: Tuple[Tuple[re.Pattern, str], ...] = (
    (re.compile(r"^\s*return\b"), ""),
    (re.compile(r";+\s*$"), ""),
)

# Applied outside string literals only
_JS_REWRITES: Tuple[Tuple[re.Pattern, str], ...] = (
    (re.compile(r"==="), "=="),
    (re.compile(r"!=="), "!="),
    (re.compile(r"&&"), " and "),
    (re.compile(r"\|\|"), " or "),
    (re.compile(r"!(?!=)"), " not "),
    (re.compile(r"\btrue\b"), "True"),
    (re.compile(r"\bfalse\b"), "False"),
    (re.compile(r"\bnull\b"), "None"),
)


class FormulaError(ValueError):
    """Raised when a formula cannot be parsed or evaluated."""

    def __init__(self, message: str, formula: str = ""):
        super().__init__(message)
        self.formula = formula


class FormulaSyntaxError(FormulaError):
    """Formula text is not a valid expression or uses forbidden constructs."""


class FormulaEvaluationError(FormulaError):
    """Formula parsed but failed while running."""


@dataclass
class FormulaValidation:
    """Result of validating a formula without running it."""

    is_valid: bool
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    variables: List[str] = field(default_factory=list)
    references: List[Tuple[str, str]] = field(default_factory=list)


# =============================================================================
# FUNCTIONS
# =============================================================================


def _round(value: float, digits: int = 0) -> float:
    digits = max(-MAX_ROUND_DIGITS, min(int(digits), MAX_ROUND_DIGITS))
    if digits == 0:
        return round_half_up(value)
    exact = Decimal(repr(float(value)))
    context = Context(prec=max(exact.adjusted(), 0) + abs(digits) + 2)
    return float(exact.quantize(Decimal(1).scaleb(-digits), rounding=ROUND_HALF_UP, context=context))


def _sqrt(value: float) -> float:
    if value < 0:
        raise FormulaEvaluationError("sqrt of a negative number")
    return math.sqrt(value)


def _pow(base: float, exponent: float) -> float:
    if abs(exponent) > MAX_EXPONENT:
        raise FormulaEvaluationError(f"Exponent {exponent} exceeds {MAX_EXPONENT}")
    return math.pow(base, exponent)


def _min(*values: float) -> float:
    if not values:
        raise FormulaEvaluationError("min() needs at least one argument")
    return min(values)


def _max(*values: float) -> float:
    if not values:
        raise FormulaEvaluationError("max() needs at least one argument")
    return max(values)


FUNCTIONS: Dict[str, Callable[..., Any]] = {
    "abs": abs,
    "round": _round,
    "floor": math.floor,
    "ceil": math.ceil,
    "pow": _pow,
    "sqrt": _sqrt,
    "min": _min,
    "max": _max,
}

MATH_CONSTANTS: Dict[str, float] = {"PI": math.pi, "E": math.e}

_BIN_OPS: Dict[type, Callable[[Any, Any], Any]] = {
    ast.Add: operator.add,
    ast.Sub: operator.sub,
    ast.Mult: operator.mul,
    ast.Div: operator.truediv,
    ast.FloorDiv: operator.floordiv,
    ast.Mod: math.fmod,  # JS remainder keeps the dividend's sign
}

_COMPARE_OPS: Dict[type, Callable[[Any, Any], bool]] = {
    ast.Eq: operator.eq,
    ast.NotEq: operator.ne,
    ast.Lt: operator.lt,
    ast.LtE: operator.le,
    ast.Gt: operator.gt,
    ast.GtE: operator.ge,
}

_ALLOWED_NODES = (
    ast.Expression, ast.BinOp, ast.UnaryOp, ast.BoolOp, ast.Compare, ast.IfExp,
    ast.Call, ast.Name, ast.Attribute, ast.Subscript, ast.Constant, ast.Load,
    ast.Add, ast.Sub, ast.Mult, ast.Div, ast.FloorDiv, ast.Mod, ast.Pow,
    ast.UAdd, ast.USub, ast.Not, ast.And, ast.Or,
    ast.Eq, ast.NotEq, ast.Lt, ast.LtE, ast.Gt, ast.GtE,
)


# =============================================================================
# PREPARATION
# =============================================================================


def replace_references(text: str) -> Tuple[str, List[Tuple[str, str, str]]]:
    """
    Swap shortcode references for placeholder names.

    Returns the rewritten text and (placeholder, kind, name) triples.
    `[formula:x]` is reported as kind "calc".
    """
    references: List[Tuple[str, str, str]] = []

    def _swap(match: re.Match) -> str:
        kind, name = match.group(1), match.group(2).strip()
        placeholder = f"__ref{len(references)}"
        references.append((placeholder, "calc" if kind == "formula" else kind, name))
        return placeholder

    return REFERENCE_PATTERN.sub(_swap, text), references


def _code_segments(source: str) -> List[str]:
    """Source split around string literals; even indexes are code."""
    return _STRING_LITERAL.split(source)


def to_python_source(text: str) -> str:
    """Rewrite JavaScript-flavoured operators into Python syntax, leaving string literals as written."""
    source = text.strip()
    for pattern, replacement in _JS_STATEMENT:
        source = pattern.sub(replacement, source)

    parts = _code_segments(source)
    for i in range(0, len(parts), 2):
        for pattern, replacement in _JS_REWRITES:
            parts[i] = pattern.sub(replacement, parts[i])
    return "".join(parts).strip()


def _check_tree(tree: ast.AST, formula: str) -> List[str]:
    """Reject anything outside the whitelist; return variable names read."""
    variables: List[str] = []
    count = 0

    for node in ast.walk(tree):
        count += 1
        if count > MAX_NODES:
            raise FormulaSyntaxError(f"Formula is too complex (more than {MAX_NODES} elements)", formula)
        if not isinstance(node, _ALLOWED_NODES):
            raise FormulaSyntaxError(f"Unsupported syntax: {type(node).__name__}", formula)

        if isinstance(node, ast.Constant) and not isinstance(node.value, (int, float, str, bool, type(None))):
            raise FormulaSyntaxError(f"Unsupported constant {node.value!r}", formula)

        if isinstance(node, ast.Attribute):
            if not isinstance(node.value, ast.Name) or node.value.id not in ("data", "Math"):
                raise FormulaSyntaxError("Attribute access is limited to data.<name> and Math.<name>", formula)
            if node.value.id == "Math" and node.attr not in FUNCTIONS and node.attr not in MATH_CONSTANTS:
                raise FormulaSyntaxError(f"Unsupported function Math.{node.attr}", formula)
            if node.value.id == "data" and node.attr not in variables:
                variables.append(node.attr)

        if isinstance(node, ast.Subscript):
            if not (
                isinstance(node.value, ast.Name)
                and node.value.id == "data"
                and isinstance(node.slice, ast.Constant)
                and isinstance(node.slice.value, str)
            ):
                raise FormulaSyntaxError('Subscripts are limited to data["name"]', formula)
            if node.slice.value not in variables:
                variables.append(node.slice.value)

        if isinstance(node, ast.Call):
            if node.keywords:
                raise FormulaSyntaxError("Keyword arguments are not supported", formula)
            func = node.func
            if isinstance(func, ast.Name):
                if func.id not in FUNCTIONS:
                    raise FormulaSyntaxError(f"Unsupported function {func.id}()", formula)
            elif not (isinstance(func, ast.Attribute) and isinstance(func.value, ast.Name) and func.value.id == "Math"):
                raise FormulaSyntaxError("Only plain function calls are supported", formula)

    for node in ast.walk(tree):
        if isinstance(node, ast.Name) and node.id not in ("data", "Math") and node.id not in FUNCTIONS:
            if not node.id.startswith("__ref") and node.id not in variables:
                variables.append(node.id)

    return variables


def parse_formula(text: str, max_length: Optional[int] = None) -> Tuple[ast.Expression, List[str]]:
    """
    Parse formula text into a checked expression tree.

    References must already be replaced (see replace_references).

    Raises:
        FormulaSyntaxError: empty, too long, invalid or forbidden syntax
    """
    limit = max_length or settings.max_formula_length
    if not text or not text.strip():
        raise FormulaSyntaxError("Formula text cannot be empty", text)
    if len(text) > limit:
        raise FormulaSyntaxError(f"Formula is too long (maximum {limit} characters)", text)

    source = to_python_source(text)
    if any("?" in code for code in _code_segments(source)[::2]):
        raise FormulaSyntaxError("Ternary '? :' is not supported, use 'a if condition else b'", text)

    try:
        tree = ast.parse(source, mode="eval")
    except SyntaxError as exc:
        raise FormulaSyntaxError(f"Invalid formula syntax: {exc.msg}", text) from exc

    variables = _check_tree(tree, text)
    return tree, variables


# =============================================================================
# EVALUATION
# =============================================================================


def _as_number(value: Any, formula: str) -> float:
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, (int, float)):
        return value
    if value is None:
        return 0
    number = try_parse_number(value)
    if number is None:
        raise FormulaEvaluationError(f"Non-numeric value {value!r} in arithmetic", formula)
    return number


def _compare(op: ast.cmpop, left: Any, right: Any, formula: str) -> bool:
    func = _COMPARE_OPS[type(op)]
    if isinstance(left, str) and isinstance(right, str):
        return func(left, right)
    if isinstance(op, (ast.Eq, ast.NotEq)):
        left_num = left if isinstance(left, (int, float)) else try_parse_number(left)
        right_num = right if isinstance(right, (int, float)) else try_parse_number(right)
        if left_num is None or right_num is None:
            return func(left, right)
        return func(left_num, right_num)
    return func(_as_number(left, formula), _as_number(right, formula))


class _Interpreter:
    """Walks one checked tree against one scope."""

    def __init__(self, scope: Dict[str, Any], formula: str):
        self.scope = scope
        self.formula = formula

    def run(self, node: ast.AST) -> Any:
        method = getattr(self, f"_eval_{type(node).__name__}", None)
        if method is None:
            raise FormulaSyntaxError(f"Unsupported syntax: {type(node).__name__}", self.formula)
        return method(node)

    def _eval_Expression(self, node: ast.Expression) -> Any:
        return self.run(node.body)

    def _eval_Constant(self, node: ast.Constant) -> Any:
        return node.value

    def _eval_Name(self, node: ast.Name) -> Any:
        if node.id not in self.scope:
            raise FormulaEvaluationError(f"Undefined variable '{node.id}'", self.formula)
        return self.scope[node.id]

    def _read_data(self, name: str) -> Any:
        data = self.scope.get("data", {})
        if name not in data:
            raise FormulaEvaluationError(f"Undefined variable 'data.{name}'", self.formula)
        return data[name]

    def _eval_Attribute(self, node: ast.Attribute) -> Any:
        owner = node.value.id  # checked to be a Name
        if owner == "Math":
            if node.attr in MATH_CONSTANTS:
                return MATH_CONSTANTS[node.attr]
            return FUNCTIONS[node.attr]
        return self._read_data(node.attr)

    def _eval_Subscript(self, node: ast.Subscript) -> Any:
        return self._read_data(node.slice.value)

    def _eval_UnaryOp(self, node: ast.UnaryOp) -> Any:
        operand = self.run(node.operand)
        if isinstance(node.op, ast.Not):
            return not operand
        number = _as_number(operand, self.formula)
        return -number if isinstance(node.op, ast.USub) else +number

    def _eval_BinOp(self, node: ast.BinOp) -> Any:
        left = _as_number(self.run(node.left), self.formula)
        right = _as_number(self.run(node.right), self.formula)
        try:
            if isinstance(node.op, ast.Pow):
                return _pow(left, right)
            return _BIN_OPS[type(node.op)](left, right)
        except FormulaError:
            raise
        except ZeroDivisionError as exc:
            raise FormulaEvaluationError("Division by zero", self.formula) from exc
        except (ArithmeticError, ValueError) as exc:
            raise FormulaEvaluationError(f"Arithmetic error: {exc}", self.formula) from exc

    def _eval_BoolOp(self, node: ast.BoolOp) -> Any:
        if isinstance(node.op, ast.And):
            result: Any = True
            for value in node.values:
                result = self.run(value)
                if not result:
                    return result
            return result
        result = False
        for value in node.values:
            result = self.run(value)
            if result:
                return result
        return result

    def _eval_Compare(self, node: ast.Compare) -> bool:
        left = self.run(node.left)
        for op, comparator in zip(node.ops, node.comparators):
            right = self.run(comparator)
            if not _compare(op, left, right, self.formula):
                return False
            left = right
        return True

    def _eval_IfExp(self, node: ast.IfExp) -> Any:
        return self.run(node.body) if self.run(node.test) else self.run(node.orelse)

    def _eval_Call(self, node: ast.Call) -> Any:
        func = self.run(node.func) if isinstance(node.func, ast.Attribute) else FUNCTIONS[node.func.id]
        args = [_as_number(self.run(arg), self.formula) for arg in node.args]
        try:
            return func(*args)
        except FormulaError:
            raise
        except (TypeError, ValueError, ArithmeticError) as exc:
            raise FormulaEvaluationError(f"Function call failed: {exc}", self.formula) from exc


def _safe_scope(context: Mapping[str, Any]) -> Dict[str, Any]:
    """Copy primitive values only; missing values read as 0."""
    scope: Dict[str, Any] = {}
    for key, value in context.items():
        if value is None:
            scope[key] = 0
        elif isinstance(value, (str, bool, int, float)):
            scope[key] = value
        elif isinstance(value, Mapping) and key == "data":
            scope[key] = _safe_scope(value)
    return scope


class SafeFormulaEvaluator:
    """
    Evaluate formula text against a context of variables.

    Variables can be read bare (`neliot * 2`) or through the `data` object
    (`data.neliot * 2`). Each call works on its own copy of the context.

    Usage:
        evaluator = SafeFormulaEvaluator()
        evaluator.evaluate_number("data.a / data.b * 100", {"a": 1, "b": 4})
    """

    def __init__(self, max_length: Optional[int] = None):
        self.max_length = max_length or settings.max_formula_length

    def evaluate(self, formula: str, context: Optional[Mapping[str, Any]] = None) -> Any:
        """
        Evaluate a formula and return the raw result (number, bool or str).

        Raises:
            FormulaSyntaxError: invalid formula text
            FormulaEvaluationError: failure while running
        """
        tree, _ = parse_formula(formula, self.max_length)
        values = dict(context or {})
        scope = _safe_scope(values)
        scope["data"] = _safe_scope({k: v for k, v in values.items() if k != "data"})
        if isinstance(values.get("data"), Mapping):
            scope["data"].update(_safe_scope(values["data"]))
        return _Interpreter(scope, formula).run(tree)

    def evaluate_number(self, formula: str, context: Optional[Mapping[str, Any]] = None) -> float:
        """Evaluate and require a finite number within ±1e15."""
        result = self.evaluate(formula, context)
        if isinstance(result, bool):
            result = int(result)
        if not isinstance(result, (int, float)):
            number = try_parse_number(result)
            if number is None:
                raise FormulaEvaluationError(f"Formula result {result!r} is not a number", formula)
            result = number
        try:
            finite = math.isfinite(result)
        except OverflowError:
            finite = False
        if not finite:
            raise FormulaEvaluationError("Formula result is not a finite number", formula)
        if abs(result) > MAX_RESULT:
            raise FormulaEvaluationError("Formula result is too large", formula)
        return result

    def validate(self, formula: str) -> FormulaValidation:
        """Check a formula without running it."""
        stripped, references = replace_references(formula or "")
        validation = FormulaValidation(
            is_valid=True,
            references=[(kind, name) for _, kind, name in references],
        )
        try:
            _, validation.variables = parse_formula(stripped, self.max_length)
        except FormulaSyntaxError as exc:
            validation.is_valid = False
            validation.errors.append(str(exc))
            return validation

        if not re.search(r"[-+*/%()<>=]", stripped):
            validation.warnings.append("Formula should contain mathematical operations")
        return validation

    def get_variables(self, formula: str) -> List[str]:
        return self.validate(formula).variables


def evaluate_formula(formula: str, context: Optional[Mapping[str, Any]] = None) -> Any:
    """Quick helper to evaluate a formula."""
    return SafeFormulaEvaluator().evaluate(formula, context)


def validate_formula(formula: str) -> FormulaValidation:
    """Quick helper to validate a formula."""
    return SafeFormulaEvaluator().validate(formula)
