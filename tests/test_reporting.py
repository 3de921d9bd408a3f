"""
Tests for the report context, report model, PDF field mappings and the
end-to-end report pipeline.

Run with: pytest tests/test_reporting.py -v
"""

import pytest

from heatsavings.calc.metrics import compute_metrics
from heatsavings.calc.strategies import GAS, OIL, WOOD, StrategyId
from heatsavings.formulas.resolver import ShortcodeResolver
from heatsavings.reporting import (
    DEFAULT_FIELD_MAPPINGS,
    build_report_context,
    build_report_model,
    generate_report,
    resolve_field_mappings,
)

NBSP = "\u00a0"


class TestReportContext:

    def test_oil_values(self, oil_lead, oil_lead_raw, lookups):
        metrics = compute_metrics(oil_lead, lookups)
        context = build_report_context(oil_lead, metrics, lookups, extra=oil_lead_raw)

        assert context["current_heating_cost"] == 2600
        assert context["current_heating_cost_5y"] == 13000
        assert context["current_heating_cost_10y"] == 26000
        assert context["heat_pump_cost_annual"] == 789
        assert context["heat_pump_cost_5y"] == 3945
        assert context["annual_savings"] == 1811
        assert context["ten_year_savings"] == 18110
        assert context["oil_consumption"] == 2000
        assert context["current_co2"] == 5320
        assert context["new_co2"] == 953
        assert context["heat_pump_consumption"] == 5263
        assert context["square_meters"] == 150
        assert context["construction_year"] == "1978"
        assert context["heating_type_fi"] == "Öljylämmitys"

    def test_raw_lead_fields_included(self, oil_lead, oil_lead_raw):
        context = build_report_context(oil_lead, compute_metrics(oil_lead), extra=oil_lead_raw)
        assert context["email"] == "matti@example.fi"
        assert context["lammitysmuoto"] == "Öljylämmitys"
        assert context["neliot"] == 150

    def test_computed_values_win_over_raw(self, oil_lead):
        context = build_report_context(oil_lead, compute_metrics(oil_lead), extra={"annual_savings": "hack"})
        assert context["annual_savings"] == 1811

    def test_gas_consumption(self, gas_lead):
        context = build_report_context(gas_lead, compute_metrics(gas_lead))
        assert context["gas_consumption"] == 1500
        assert context["oil_consumption"] == 0
        assert context["current_maintenance"] == 300


class TestReportModel:

    def test_oil_rows(self, oil_lead, lookups):
        metrics = compute_metrics(oil_lead, lookups)
        model = build_report_model(oil_lead, metrics, OIL, lookups)

        assert model.strategy_id is StrategyId.OIL
        assert model.current.title == "Öljylämmitys"
        assert [r.label for r in model.current.rows] == [
            "Öljyn kulutus", "Öljyn hinta", "Huoltokustannus", "CO₂-päästöt",
        ]
        assert model.current.row("consumption").value == f"2{NBSP}000 L/vuosi"
        assert model.current.row("price").value == "1,30 €/litra"
        assert model.current.row("co2").value == f"5{NBSP}320 kg/vuosi"
        assert model.current.cost_year1 == f"2{NBSP}600{NBSP}€"

    def test_new_system(self, oil_lead, lookups):
        model = build_report_model(oil_lead, compute_metrics(oil_lead, lookups), OIL, lookups)
        assert model.new_system.title == "Ilmavesilämpöpumppu"
        assert model.new_system.row("consumption").value == f"5{NBSP}263 kWh/vuosi"
        assert model.new_system.row("price").value == "0,15 €/kWh"
        assert model.new_system.cost_year10 == f"7{NBSP}890{NBSP}€"
        assert model.savings["year1"] == f"1{NBSP}811{NBSP}€"

    def test_wood_rows(self, wood_lead):
        model = build_report_model(wood_lead, compute_metrics(wood_lead), WOOD)
        assert model.current.row("consumption").value == "12 puumottia/vuosi"
        assert model.current.row("co2").value == "0 kg/vuosi"

    def test_gas_price_row(self, gas_lead):
        model = build_report_model(gas_lead, compute_metrics(gas_lead), GAS)
        assert model.current.row("price").value == "55 €/MWh"

    def test_to_dict(self, oil_lead):
        data = build_report_model(oil_lead, compute_metrics(oil_lead), OIL).to_dict()
        assert data["strategy"] == "oil"
        assert len(data["current"]["rows"]) == 4
        assert set(data["newSystem"]["cost"]) == {"year1", "year5", "year10"}


class TestFieldMappings:

    @pytest.fixture
    def resolver(self, oil_lead, oil_lead_raw, report_date):
        context = build_report_context(oil_lead, compute_metrics(oil_lead), extra=oil_lead_raw)
        return ShortcodeResolver(context, today=report_date, sequence_factory=lambda: "2026-ABC123")

    def test_default_mappings(self, resolver):
        result = resolve_field_mappings(DEFAULT_FIELD_MAPPINGS, resolver)

        assert result.success
        assert set(result.values) == set(DEFAULT_FIELD_MAPPINGS)
        assert result.values["companyName"] == "ENERGIAYKKÖNEN OY"
        assert result.values["documentDate"] == "19.10.2026"
        assert result.values["documentNumber"] == "Laskelma #2026-ABC123"
        assert result.values["customerName"] == "Matti Meikäläinen"
        assert result.values["customerEmail"] == "matti@example.fi"
        assert result.values["customerPhone"] == ""
        assert result.values["constructionYear"] == "1978"
        assert result.values["propertyArea"] == "150 m²"
        assert result.values["annualEnergyNeed"] == f"20{NBSP}000 kWh/vuosi"
        assert result.values["currentSystemType"] == "Öljylämmitys"
        assert result.values["currentCost5Years"] == f"13{NBSP}000{NBSP}€"
        assert result.values["savings10Years"] == f"18{NBSP}110{NBSP}€"
        assert result.values["oilPrice"] == "1,30 €/litra"
        assert result.values["electricityPrice"] == "0,15 €/kWh"
        assert result.values["subsidyAmount"] == f"4{NBSP}000{NBSP}€"
        assert "3,8 hyötysuhdetta" in result.values["efficiencyNote"]

    def test_plain_text_untouched(self, resolver):
        result = resolve_field_mappings({"note": "50% [ei koodi] {", "x": "vakio"}, resolver)
        assert result.values == {"note": "50% [ei koodi] {", "x": "vakio"}

    def test_errors_per_field(self, resolver):
        result = resolve_field_mappings(
            {"ok": "{email}", "bad": "[calc:nope]", "worse": "[lookup:nope] [calc:nope]"},
            resolver,
        )
        assert result.values["ok"] == "matti@example.fi"
        assert result.values["bad"] == "[calc:nope]"
        assert set(result.errors) == {"bad", "worse"}
        assert len(result.errors["worse"]) == 2
        assert not result.success


class TestGenerateReport:

    def test_oil_report(self, oil_lead_raw, report_date):
        data = generate_report(oil_lead_raw, today=report_date, sequence_factory=lambda: "2026-000001")

        assert data.strategy_id is StrategyId.OIL
        assert data.metrics.current.cost.year1 == 2600
        assert data.fields["documentDate"] == "19.10.2026"
        assert data.fields["documentNumber"] == "Laskelma #2026-000001"
        assert data.errors == {}
        assert data.log == []

    def test_with_store(self, oil_lead_raw, store):
        data = generate_report(
            oil_lead_raw,
            store,
            mappings={"bonus": "[lookup:house-bonus]", "energy": "[calc:energy-per-m2]"},
        )
        assert data.fields == {"bonus": "100 €", "energy": "133 kWh/m²"}

    def test_alias_log_carried(self):
        data = generate_report({"lammitysmuoto": "Puu ja öljy", "oil_liters": 1000})
        assert data.strategy_id is StrategyId.OILWOOD
        assert data.log == ["alias:oil_liters -> kokonaismenekki"]
        assert data.metrics.current.consumption.liters == 1000

    @pytest.mark.parametrize("raw", [None, [], {"lammitysmuoto": 5}, {"neliot": "-1"}])
    def test_bad_input_never_raises(self, raw):
        data = generate_report(raw)
        assert data.strategy_id is StrategyId.OIL
        assert data.fields["companyName"] == "ENERGIAYKKÖNEN OY"

    def test_huge_consumption(self):
        """An absurd but finite consumption still renders a report."""
        data = generate_report({"lammitysmuoto": "Öljylämmitys", "kokonaismenekki": "1e100"})

        assert data.metrics.current.consumption.liters == int(1e100)
        assert data.model.current.row("consumption").value.endswith(" L/vuosi")
        assert data.fields["currentCost1Year"].endswith(f"{NBSP}€")

    def test_to_dict(self, gas_lead_raw):
        data = generate_report(gas_lead_raw).to_dict()
        assert data["strategy"] == "gas"
        assert data["metrics"]["current"]["consumption"] == {"m3": 1500}
        assert data["normalized"]["oilPrice"] == 1.3
        assert "fields" in data and "report" in data
