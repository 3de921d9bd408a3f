"""
Formula and lookup store.

Admin-defined formulas and lookup tables, loaded once into an immutable
snapshot that the resolver reads from. Two kinds of lookup exist:

- scalar lookups: a fixed value, e.g. "electricity_price": 0.15
- conditional lookups: an ordered list of (condition, shortcode) rules,
  the first true condition decides which shortcode the lookup resolves to

JSON layout:

    {
      "formulas": [
        {"name": "energy-need", "formula_text": "[field:neliot] * 100", "unit": "kWh"}
      ],
      "lookups": {
        "electricity_price": 0.15,
        "heating-calculation": {
          "conditions": [
            {"condition": "[field:lammitysmuoto] == 'Öljy'", "shortcode": "[calc:oil-cost]"},
            {"condition": "true", "shortcode": "[calc:default-cost]"}
          ]
        }
      }
    }

"formulas" may also be an object keyed by formula name. A formula's
"variables" is a list of descriptors ({"name", "type", "defaultValue", ...})
or an object of name -> type; context values always win over defaults.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

logger = logging.getLogger(__name__)


class StoreError(ValueError):
    """Raised when a store file cannot be read or has the wrong shape."""


# =============================================================================
# MODELS
# =============================================================================


class FormulaVariable(BaseModel):
    """Declared input of a formula. Only `default_value` affects evaluation."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    name: str
    type: str = "number"          # number | string | boolean
    description: Optional[str] = None
    default_value: Optional[Union[float, str, bool]] = Field(default=None, alias="defaultValue")
    required: bool = False
    unit: Optional[str] = None


def _variable_entries(value: Any) -> List[Any]:
    """Accept a descriptor list, or a mapping of name -> type / descriptor / default."""
    if value is None:
        return []
    if not isinstance(value, Mapping):
        return [{"name": item} if isinstance(item, str) else item for item in value]

    entries: List[Any] = []
    for name, spec in value.items():
        if isinstance(spec, Mapping):
            entries.append({"name": name, **spec})
        elif isinstance(spec, str):
            entries.append({"name": name, "type": spec})
        else:
            entries.append({"name": name, "default_value": spec})
    return entries


class Formula(BaseModel):
    """A named calculation, referenced as [calc:name]."""

    model_config = ConfigDict(frozen=True)

    name: str
    formula_text: str
    unit: Optional[str] = None
    description: Optional[str] = None
    formula_type: str = "energy_calculation"
    variables: Tuple[FormulaVariable, ...] = ()
    is_active: bool = True

    @field_validator("variables", mode="before")
    @classmethod
    def normalize_variables(cls, value: Any) -> List[Any]:
        return _variable_entries(value)

    @property
    def defaults(self) -> Dict[str, Any]:
        """Fallback values for declared variables that carry one."""
        return {v.name: v.default_value for v in self.variables if v.default_value is not None}


class LookupCondition(BaseModel):
    """One rule of a conditional lookup."""

    model_config = ConfigDict(frozen=True)

    condition: str        # e.g. "[field:neliot] > 200"
    shortcode: str        # e.g. "[calc:large-house-formula]"
    description: Optional[str] = None
    is_active: bool = True


class Lookup(BaseModel):
    """A lookup: either a scalar value or ordered conditions."""

    model_config = ConfigDict(frozen=True)

    name: str
    value: Optional[Union[float, str]] = None
    conditions: Tuple[LookupCondition, ...] = ()
    description: Optional[str] = None

    @property
    def is_conditional(self) -> bool:
        return bool(self.conditions)


# =============================================================================
# STORE
# =============================================================================


def normalize_name(name: str) -> str:
    """Formula names match case-insensitively, with spaces and hyphens equal."""
    return "-".join(name.strip().lower().replace("-", " ").split())


class FormulaStore:
    """
    Read-only snapshot of formulas and lookups.

    Usage:
        store = FormulaStore.from_json("formulas.json")
        formula = store.find_formula("Energy Need")
    """

    def __init__(self, formulas: Optional[List[Formula]] = None, lookups: Optional[List[Lookup]] = None):
        self._formulas: Tuple[Formula, ...] = tuple(formulas or ())
        self._lookups: Dict[str, Lookup] = {lookup.name: lookup for lookup in lookups or ()}
        self._index: Dict[str, Formula] = {}
        for formula in self._formulas:
            if formula.is_active:
                self._index.setdefault(normalize_name(formula.name), formula)

    @property
    def formulas(self) -> Tuple[Formula, ...]:
        return self._formulas

    @property
    def lookups(self) -> Dict[str, Lookup]:
        return dict(self._lookups)

    def find_formula(self, name: str) -> Optional[Formula]:
        """Active formula by name, or None."""
        return self._index.get(normalize_name(name))

    def find_lookup(self, name: str) -> Optional[Lookup]:
        lookup = self._lookups.get(name)
        if lookup is None:
            lookup = self._lookups.get(name.strip())
        return lookup

    def __len__(self) -> int:
        return len(self._formulas) + len(self._lookups)

    def __repr__(self) -> str:
        return f"FormulaStore(formulas={len(self._formulas)}, lookups={len(self._lookups)})"

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "FormulaStore":
        """
        Build a store from the JSON layout described in the module docstring.

        Raises:
            StoreError: wrong shape
        """
        if not isinstance(data, Mapping):
            raise StoreError(f"Store data must be an object, got {type(data).__name__}")

        raw_formulas = data.get("formulas") or []
        if isinstance(raw_formulas, Mapping):
            raw_formulas = [{"name": name, **body} for name, body in raw_formulas.items()]

        lookups: List[Lookup] = []
        try:
            formulas = [Formula.model_validate(item) for item in raw_formulas]
            for name, body in (data.get("lookups") or {}).items():
                if isinstance(body, Mapping):
                    lookups.append(Lookup.model_validate({"name": name, **body}))
                else:
                    lookups.append(Lookup(name=name, value=body))
        except (ValidationError, TypeError, AttributeError) as exc:
            raise StoreError(f"Invalid store data: {exc}") from exc

        logger.debug(f"Loaded {len(formulas)} formulas and {len(lookups)} lookups")
        return cls(formulas, lookups)

    @classmethod
    def from_json(cls, path: Union[Path, str]) -> "FormulaStore":
        """
        Load a store from a JSON file.

        Raises:
            StoreError: file missing, not JSON, or wrong shape
        """
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except OSError as exc:
            raise StoreError(f"Cannot read store file {path}: {exc}") from exc
        except json.JSONDecodeError as exc:
            raise StoreError(f"Store file {path} is not valid JSON: {exc}") from exc

        return cls.from_dict(data)


EMPTY_STORE = FormulaStore()
