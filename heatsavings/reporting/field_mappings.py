"""
PDF field mappings.

Each PDF form field gets a template; templates are resolved against the
report context. Entries without any shortcode are printed as they are.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Mapping

from ..formulas.resolver import TOKEN_PATTERN, ShortcodeResolver

logger = logging.getLogger(__name__)


COMPANY_NAME = "ENERGIAYKKÖNEN OY"
COMPANY_ID = "2635343-7"

DEFAULT_FIELD_MAPPINGS: Dict[str, str] = {
    # Header
    "companyName": COMPANY_NAME,
    "companyRegistrationNumber": f"Y-tunnus: {COMPANY_ID}",
    "companyAddress": "Koivupurontie 6 b",
    "companyPostcode": "40320 Jyväskylä",
    "documentTitle": "SÄÄSTÖLASKELMA",
    "documentDate": "[CURRENT_DATE]",
    "documentNumber": "Laskelma #[AUTO_GENERATE]",

    # Customer
    "customerName": "{first_name} {last_name}",
    "customerEmail": "[lead:email]",
    "customerPhone": "[lead:phone]",
    "customerStreetAddress": "[lead:street_address]",
    "customerCity": "[lead:city]",

    # Property
    "residentsCount": "[format:residents:number:decimals=0] henkilöä",
    "constructionYear": "[lead:construction_year]",
    "propertyArea": "[format:square_meters:number:decimals=0] m²",
    "annualEnergyNeed": "[format:annual_energy_need:number:decimals=0,suffix= kWh/vuosi]",

    # Current heating system
    "currentSystemTitle": "Nykyinen lämmitysjärjestelmä",
    "currentSystemType": "{heating_type_fi}",
    "currentCost1Year": "[format:current_heating_cost:currency]",
    "currentCost5Years": "[format:current_heating_cost_5y:currency]",
    "currentCost10Years": "[format:current_heating_cost_10y:currency]",
    "currentConsumption": "[format:current_consumption:number:decimals=0]",
    "oilPrice": "[format:oil_price:decimal:decimals=2] €/litra",
    "currentMaintenanceCost": "[format:current_maintenance:number:decimals=0] €/vuosi",
    "currentCO2Emissions": "[format:current_co2:number:decimals=0] kg/vuosi",

    # Heat pump
    "newSystemTitle": "Ilmavesilämpöpumppu",
    "newSystemSubtitle": "Moderni VILP-järjestelmä",
    "newCost1Year": "[format:heat_pump_cost_annual:currency]",
    "newCost5Years": "[format:heat_pump_cost_5y:currency]",
    "newCost10Years": "[format:heat_pump_cost_10y:currency]",
    "savings1Year": "[format:annual_savings:currency]",
    "savings5Years": "[format:five_year_savings:currency]",
    "savings10Years": "[format:ten_year_savings:currency]",
    "subsidyAmount": "[format:ely_subsidy:currency]",
    "electricityConsumption": "[format:heat_pump_consumption:number:decimals=0] kWh/vuosi",
    "electricityPrice": "[format:electricity_price:decimal:decimals=2] €/kWh",
    "maintenanceCostFirst5Years": "[format:maintenance_first_5y:number:decimals=0] €/vuosi",
    "maintenanceCostNext5Years": "[format:maintenance_next_5y:number:decimals=0] €/vuosi",
    "newCO2Emissions": "[format:new_co2:number:decimals=0] kg/vuosi",

    # Notes
    "efficiencyNote": (
        "Arvio energiamäärästä, joka tarvitaan täyttämään laskennallinen energiantarve. "
        "Laskelmassa käytetty maltillista {cop_value} hyötysuhdetta."
    ),
    "subsidyNote": (
        "* ELY-keskuksen energiatuki öljylämmityksestä luopumiseen. Tuki on "
        "[format:ely_subsidy:currency] pientaloille. Edellyttää hakemuksen tekemistä "
        "ennen töiden aloittamista."
    ),

    # Benefits
    "benefitsTitle": "Moderni ilmavesilämpöpumppu Energiaykköseltä",
    "benefit1": "10 vuoden huoltovapaat laitteet modernilla tekniikalla",
    "benefit2": "5 vuoden täystakuu kaikille komponenteille",
    "benefit3": "Kotitalousvähennys 40% työn osuudesta (max [format:tax_deduction_max:currency])",
    "benefit4": "Kiinteistön arvon nousu ja parempi energialuokka",
    "benefit5": "Älykäs etäohjaus mobiilisovelluksella",

    # Footer
    "footerLeft": f"Energiaykkönen Oy | Y-tunnus: {COMPANY_ID}",
    "footerCenter": "www.energiaykkonen.fi | info@energiaykkonen.fi",
    "footerRight": "Sivu 1/1",
}


@dataclass
class FieldMappingResult:
    """Resolved PDF field values and the errors per field."""

    values: Dict[str, str] = field(default_factory=dict)
    errors: Dict[str, List[str]] = field(default_factory=dict)

    @property
    def success(self) -> bool:
        return not self.errors


def has_shortcodes(template: str) -> bool:
    return TOKEN_PATTERN.search(template) is not None


def resolve_field_mappings(
    mappings: Mapping[str, str],
    resolver: ShortcodeResolver,
) -> FieldMappingResult:
    """
    Resolve every template of a field mapping table.

    A field that fails keeps its unresolved tokens; the remaining fields are
    still resolved.
    """
    result = FieldMappingResult()
    for name, template in mappings.items():
        if not has_shortcodes(template):
            result.values[name] = template
            continue

        resolved = resolver.resolve(template)
        result.values[name] = resolved.text
        if not resolved.success:
            result.errors[name] = resolved.errors

    if result.errors:
        logger.warning(f"{len(result.errors)} of {len(mappings)} PDF fields had unresolved shortcodes")
    return result
