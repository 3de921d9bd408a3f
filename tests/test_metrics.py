"""
Tests for the current system vs. heat pump metrics.

Run with: pytest tests/test_metrics.py -v
"""

import pytest

from heatsavings.calc.metrics import HEAT_PUMP_COP, CostHorizon, compute_metrics
from heatsavings.calc.strategies import StrategyId
from heatsavings.core.models import LookupContext
from heatsavings.normalize import normalize_lead


class TestCostHorizon:
    """5- and 10-year values multiply the rounded first year."""

    def test_from_year1(self):
        assert CostHorizon.from_year1(1000) == CostHorizon(1000, 5000, 10000)

    def test_rounds_before_projecting(self):
        horizon = CostHorizon.from_year1(789.45)
        assert horizon.year1 == 789
        assert horizon.year5 == 3945
        assert horizon.year10 == 7890

    @pytest.mark.parametrize("value", [0, 0.5, 1234.49, 1234.5, 99999.99])
    def test_consistency(self, value):
        horizon = CostHorizon.from_year1(value)
        assert horizon.year5 == horizon.year1 * 5
        assert horizon.year10 == horizon.year1 * 10


class TestComputeMetrics:

    def test_oil_lead(self, oil_lead, lookups):
        metrics = compute_metrics(oil_lead, lookups)

        assert metrics.strategy_id is StrategyId.OIL
        assert metrics.current.cost == CostHorizon(2600, 13000, 26000)
        assert metrics.current.consumption.liters == 2000
        assert metrics.current.co2.year == 5320
        assert metrics.current.maintenance_yearly == 200

        assert metrics.new_system.electricity_kwh == 5263
        assert metrics.new_system.cost == CostHorizon(789, 3945, 7890)
        assert metrics.new_system.co2_year == 953

    def test_savings(self, oil_lead, lookups):
        metrics = compute_metrics(oil_lead, lookups)
        assert metrics.savings == CostHorizon(1811, 9055, 18110)
        assert metrics.co2_reduction_year == 5320 - 953

    def test_reported_cost_scenario(self, lookups):
        lead = normalize_lead({"lammitysmuoto": "öljy", "menekinhintavuosi": 1000}).normalized
        metrics = compute_metrics(lead, lookups)
        assert metrics.current.cost.to_dict() == {"year1": 1000, "year5": 5000, "year10": 10000}

    def test_gas_lead(self, gas_lead, lookups):
        metrics = compute_metrics(gas_lead, lookups)
        assert metrics.strategy_id is StrategyId.GAS
        assert metrics.new_system.electricity_kwh == round(15000 / HEAT_PUMP_COP)
        assert metrics.new_system.cost.year1 == 592

    def test_default_lookups(self, oil_lead, lookups):
        assert compute_metrics(oil_lead) == compute_metrics(oil_lead, lookups)

    def test_electricity_price_from_lookups(self, oil_lead):
        metrics = compute_metrics(oil_lead, LookupContext(electricity_price=0.2))
        assert metrics.new_system.cost.year1 == round(5263 * 0.2)

    def test_does_not_mutate_inputs(self, oil_lead, lookups):
        before_lead = oil_lead.model_dump()
        before_lookups = lookups.model_dump()
        compute_metrics(oil_lead, lookups)
        assert oil_lead.model_dump() == before_lead
        assert lookups.model_dump() == before_lookups

    def test_all_horizons_consistent(self, oil_lead, gas_lead, wood_lead):
        for lead in (oil_lead, gas_lead, wood_lead):
            metrics = compute_metrics(lead)
            for horizon in (metrics.current.cost, metrics.new_system.cost, metrics.savings):
                assert horizon.year5 == horizon.year1 * 5
                assert horizon.year10 == horizon.year1 * 10

    def test_to_dict(self, wood_lead):
        data = compute_metrics(wood_lead).to_dict()
        assert data["strategy"] == "wood"
        assert data["current"]["consumption"] == {"puumotti": 12}
        assert data["current"]["co2"] == {"year": 0}
        assert data["newSystem"]["electricityKWh"] == 4737
        assert set(data) == {"strategy", "current", "newSystem", "savings", "co2ReductionYear"}

    def test_empty_lead(self):
        metrics = compute_metrics(normalize_lead({}).normalized)
        assert metrics.strategy_id is StrategyId.OIL
        assert metrics.new_system.electricity_kwh == 0
        assert metrics.savings == CostHorizon(0, 0, 0)
