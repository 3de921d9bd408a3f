"""Core models and configuration."""

from .config import Settings, settings
from .models import (
    DEFAULT_LOOKUPS,
    Co2Factors,
    LeadInput,
    LeadNormalized,
    LookupContext,
)

__all__ = [
    "Settings",
    "settings",
    "DEFAULT_LOOKUPS",
    "Co2Factors",
    "LeadInput",
    "LeadNormalized",
    "LookupContext",
]
