"""
Pytest configuration and fixtures for heatsavings tests.

Provides reusable test fixtures for:
- Raw lead submissions per heating type
- Normalized leads and lookup contexts
- A formula store with plain and conditional lookups
"""

import json
import shutil
import sys
import tempfile
from datetime import date
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).parent.parent))

from heatsavings.core.models import Co2Factors, LookupContext
from heatsavings.formulas.store import FormulaStore
from heatsavings.normalize.lead import normalize_lead


# =============================================================================
# PATH FIXTURES
# =============================================================================

@pytest.fixture
def temp_dir():
    """Temporary directory for test files, cleaned up after test."""
    tmp = tempfile.mkdtemp(prefix="heatsavings_test_")
    yield Path(tmp)
    shutil.rmtree(tmp, ignore_errors=True)


# =============================================================================
# LEAD FIXTURES
# =============================================================================

@pytest.fixture
def oil_lead_raw() -> dict:
    """Oil-heated house, 2000 L/year, price derived from the default oil price."""
    return {
        "id": "lead-oil-1",
        "first_name": "Matti",
        "last_name": "Meikäläinen",
        "email": "matti@example.fi",
        "neliot": "150",
        "huonekorkeus": "2,5",
        "rakennusvuosi": "1978",
        "henkilomaara": 4,
        "lammitysmuoto": "Öljylämmitys",
        "kokonaismenekki": "2 000",
        "laskennallinenenergiantarve": "20 000",
    }


@pytest.fixture
def gas_lead_raw() -> dict:
    """Gas-heated house with a reported yearly bill."""
    return {
        "neliot": 120,
        "lammitysmuoto": "Maakaasu",
        "kokonaismenekki": 1500,
        "menekinhintavuosi": 1800,
        "laskennallinenenergiantarve": 15000,
    }


@pytest.fixture
def wood_lead_raw() -> dict:
    """Wood-heated house, 12 stacked cubic metres a year."""
    return {
        "neliot": 140,
        "lammitysmuoto": "Puulämmitys",
        "kokonaismenekki": 12,
        "menekinhintavuosi": 900,
        "laskennallinenenergiantarve": 18000,
    }


@pytest.fixture
def oil_lead(oil_lead_raw):
    """Normalized oil lead."""
    return normalize_lead(oil_lead_raw).normalized


@pytest.fixture
def gas_lead(gas_lead_raw):
    return normalize_lead(gas_lead_raw).normalized


@pytest.fixture
def wood_lead(wood_lead_raw):
    return normalize_lead(wood_lead_raw).normalized


@pytest.fixture
def lead_file(temp_dir, oil_lead_raw) -> Path:
    """Oil lead written to a JSON file."""
    path = temp_dir / "lead.json"
    path.write_text(json.dumps(oil_lead_raw, ensure_ascii=False), encoding="utf-8")
    return path


# =============================================================================
# LOOKUP / STORE FIXTURES
# =============================================================================

@pytest.fixture
def lookups() -> LookupContext:
    """Default unit prices and CO2 factors."""
    return LookupContext(
        electricity_price=0.15,
        oil_price=1.3,
        gas_price_per_mwh=55.0,
        co2=Co2Factors(electricity_per_kwh=0.181, oil_per_liter=2.66, gas_per_kwh=0.201),
    )


@pytest.fixture
def store_data() -> dict:
    """Formula store in its JSON layout."""
    return {
        "formulas": [
            {
                "name": "Energy per m2",
                "formula_text": "return Math.round([field:annual_energy_need] / [field:square_meters]);",
                "unit": "kWh/m²",
            },
            {
                "name": "savings-percent",
                "formula_text": "[field:annual_savings] / [field:current_heating_cost] * 100",
                "unit": "%",
            },
            {
                "name": "double-energy",
                "formula_text": "[calc:energy-per-m2] * 2",
            },
            {
                "name": "large-house-bonus",
                "formula_text": "500",
                "unit": "€",
            },
            {
                "name": "small-house-bonus",
                "formula_text": "100",
                "unit": "€",
            },
            {
                "name": "broken",
                "formula_text": "data.not_there * 2",
            },
            {
                "name": "loop-a",
                "formula_text": "[calc:loop-b] + 1",
            },
            {
                "name": "loop-b",
                "formula_text": "[calc:loop-a] + 1",
            },
            {
                "name": "retired",
                "formula_text": "1",
                "is_active": False,
            },
        ],
        "lookups": {
            "ely_tuki": 4000,
            "house-bonus": {
                "conditions": [
                    {"condition": "[field:square_meters] > 200", "shortcode": "[calc:large-house-bonus]"},
                    {"condition": "true", "shortcode": "[calc:small-house-bonus]"},
                ]
            },
            "heating-label": {
                "conditions": [
                    {"condition": "[field:strategy] === 'gas'", "shortcode": "Kaasu"},
                    {"condition": "[field:strategy] == 'oil' && [field:square_meters] > 100", "shortcode": "Iso öljytalo"},
                ]
            },
        },
    }


@pytest.fixture
def store(store_data) -> FormulaStore:
    return FormulaStore.from_dict(store_data)


@pytest.fixture
def store_file(temp_dir, store_data) -> Path:
    path = temp_dir / "formulas.json"
    path.write_text(json.dumps(store_data, ensure_ascii=False), encoding="utf-8")
    return path


@pytest.fixture
def report_date() -> date:
    return date(2026, 10, 19)
