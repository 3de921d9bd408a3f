"""
Lead normalization.

Maps a raw form submission onto the canonical LeadNormalized record:

1. Legacy/alternate keys are mapped onto canonical keys (only when the
   canonical key is missing); each mapping is written to the audit log.
2. The shape is checked with LeadInput. A malformed submission degrades to
   an empty input rather than raising.
3. Numeric fields go through the Finnish number parser.
4. The result is validated again; a failure is logged but the record is
   still returned. Saving the lead matters more than a perfect report.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Mapping, Optional

from pydantic import ValidationError

from ..core.config import settings
from ..core.models import LeadInput, LeadNormalized
from ..utils.numbers import parse_number

logger = logging.getLogger(__name__)


# Legacy/alias key -> canonical key
ALIAS_MAP: Dict[str, str] = {
    "menekin_hinta_vuosi": "menekinhintavuosi",
    "current_yearly_cost": "menekinhintavuosi",
    "current_cost_1year": "menekinhintavuosi",
    "kokonais_menekki": "kokonaismenekki",
    "oil_liters": "kokonaismenekki",
    "oil_consumption": "kokonaismenekki",
    "oil_price": "oilPrice",
}

NUMERIC_FIELDS = (
    "neliot",
    "huonekorkeus",
    "henkilomaara",
    "kokonaismenekki",
    "menekinhintavuosi",
    "laskennallinenenergiantarve",
)

_LEADING_INT = re.compile(r"^\s*([+-]?\d+)")


@dataclass(frozen=True)
class NormalizationResult:
    """Normalized lead plus the audit log of every alias and fallback applied."""

    normalized: LeadNormalized
    log: List[str] = field(default_factory=list)

    def __iter__(self) -> Iterator[Any]:
        # Allows `normalized, log = normalize_lead(raw)`
        yield self.normalized
        yield self.log


def apply_aliases(raw: Mapping[str, Any], log: List[str]) -> Dict[str, Any]:
    """Copy `raw` with alias keys mapped onto missing canonical keys."""
    canonical = dict(raw)
    for alias, canonical_key in ALIAS_MAP.items():
        if canonical.get(alias) is not None and canonical.get(canonical_key) is None:
            canonical[canonical_key] = canonical[alias]
            log.append(f"alias:{alias} -> {canonical_key}")
    return canonical


def parse_year(value: Any) -> Optional[int]:
    """
    Parse a construction year as an integer.

    Takes the leading integer of the text ("1985", "1985 ", 1985.0);
    returns None when there is none. Empty and zero values are unknown.
    """
    if value is None or value == "":
        return None
    match = _LEADING_INT.match(str(value))
    if not match:
        return None
    year = int(match.group(1))
    return year or None


def _optional_number(value: Any) -> Optional[float]:
    return None if value is None else parse_number(value)


def normalize_lead(raw: Optional[Mapping[str, Any]]) -> NormalizationResult:
    """
    Normalize a raw submission.

    Args:
        raw: Form data as posted (any keys, any value types)

    Returns:
        NormalizationResult with the canonical record and the audit log
    """
    log: List[str] = []

    if not isinstance(raw, Mapping):
        logger.warning(f"Lead input is not a mapping ({type(raw).__name__}), using empty input")
        log.append("input:validation_failed")
        raw = {}

    canonical = apply_aliases(raw, log)
    for entry in log:
        logger.debug(f"Lead {entry}")

    try:
        data = LeadInput.model_validate(canonical)
    except ValidationError as exc:
        logger.warning(f"Lead input failed shape validation ({exc.error_count()} errors), using empty input")
        if "input:validation_failed" not in log:
            log.append("input:validation_failed")
        data = LeadInput()

    values: Dict[str, Any] = {
        name: _optional_number(getattr(data, name)) for name in NUMERIC_FIELDS
    }
    values["rakennusvuosi"] = parse_year(data.rakennusvuosi)
    values["lammitysmuoto"] = data.lammitysmuoto
    values["oil_price"] = (
        parse_number(data.oil_price) if data.oil_price is not None else settings.default_oil_price
    )

    try:
        normalized = LeadNormalized.model_validate(values)
    except ValidationError as exc:
        logger.warning(f"Normalized lead failed validation: {exc.errors()[0].get('msg', exc)}")
        log.append("normalized:validation_failed")
        normalized = LeadNormalized.model_construct(**values)

    return NormalizationResult(normalized=normalized, log=log)
