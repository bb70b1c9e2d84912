"""Build the LOXmlFormat loan document and the RunQuickPricerV2 SOAP envelope."""

from typing import List, Tuple

from quick_pricer.enums import (
    DocumentationType,
    DscrTier,
    ImpoundType,
    Occupancy,
    citizenship_code,
    documentation_code,
    dscr_tier_code,
    loan_purpose_code,
    occupancy_code,
    property_type_code,
)
from quick_pricer.scenario import LoanScenario
from quick_pricer.xml_text import escape_xml

SOAP_ACTION = "http://www.lendersoffice.com/los/webservices/RunQuickPricerV2"

DEFAULT_DSCR_TIER = DscrTier.FROM_1_000
# Placeholder income and assets; the engine requires them but Non-QM pricing
# does not vary on them.
NON_DSCR_MONTHLY_INCOME = 200000
LIQUID_ASSETS = 5000000
DSCR_OCCUPANCY_RATE = 100
INVESTMENT_OCCUPANCY_CODE = occupancy_code(Occupancy.INVESTMENT)


def _format_value(value) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def down_payment_percent(scenario: LoanScenario) -> str:
    if scenario.property_value <= 0:
        return "0.00"
    return f"{(scenario.property_value - scenario.loan_amount) / scenario.property_value * 100:.2f}"


def loan_fields(scenario: LoanScenario) -> List[Tuple[str, object]]:
    """Ordered (field id, value) pairs for the LOXmlFormat document."""
    is_dscr = scenario.is_dscr
    include_ppp = scenario.occupancy_type == Occupancy.INVESTMENT
    impound = 3 if scenario.impound_type == ImpoundType.NO_ESCROW else 2
    documentation = DocumentationType.DSCR if is_dscr else scenario.documentation_type

    loan = [
        ("sSpZip", escape_xml(scenario.property_zip)),
        ("sSpStatePe", escape_xml(scenario.property_state or "CA")),
        ("sSpCounty", escape_xml(scenario.property_county)),
        ("sOccTPe", INVESTMENT_OCCUPANCY_CODE if is_dscr else occupancy_code(scenario.occupancy_type)),
        ("sProdSpT", property_type_code(scenario.property_type)),
        ("sProdIsSpInRuralArea", scenario.is_rural_property),
        ("sProdIsNonwarrantableProj", scenario.is_non_warrantable_project),
        ("sLPurposeTPe", loan_purpose_code(scenario.loan_purpose)),
        ("sHouseValPe", scenario.property_value),
        ("sDownPmtPcPe", down_payment_percent(scenario)),
        ("sLAmtCalcPe", scenario.loan_amount),
        ("sTotalRenovationCosts", 0),
        ("sProdImpoundT", impound),
        ("sProdRLckdDays", scenario.lock_days),
        ("sCreditScoreEstimatePe", scenario.credit_score),
        ("aBTotalScoreIsFthbQP", scenario.is_first_time_buyer),
        ("sCitizenshipResidencyT", citizenship_code(scenario.citizenship)),
        ("aBTotalScoreIsITIN", scenario.citizenship == "itin" or scenario.has_itin),
        ("sIncomeDocumentationType", documentation_code(documentation)),
    ]
    if is_dscr:
        loan.append(("aDSCR %", dscr_tier_code(scenario.dscr_tier or DEFAULT_DSCR_TIER)))
        loan.append(("aOccupancyRate", DSCR_OCCUPANCY_RATE))
    else:
        loan.append(("sPrimAppTotNonspIPe", NON_DSCR_MONTHLY_INCOME))
    loan.extend([
        ("sAppTotLiqAsset", LIQUID_ASSETS),
        ("sProdFilterPrepayNone", True),
        ("sProdFilterPrepayHasPPP", include_ppp),
        ("sProdFilterInclNoPPP", True),
        ("sProdFilterInclPPP", include_ppp),
        ("sProdFilterPPP0", include_ppp),
        ("sProdIncludeNormalProc", True),
        ("sProdFilterProdNonQM", True),
        ("sProdFilterDue30Yrs", True),
        ("sProdFilterDue40Yrs", True),
        ("sProdFilterFinMethFixed", not scenario.is_arm),
        ("sProdFilterFinMethOther", scenario.is_arm),
        ("sProdFilterPmtTPI", not scenario.is_interest_only),
        ("sProdFilterPmtTIOnly", scenario.is_interest_only),
    ])
    return loan


def build_lo_xml(scenario: LoanScenario) -> str:
    """Render the scenario as an LOXmlFormat document.

    Prepayment penalty product filters are switched on only for investment
    properties; programs without a penalty are always included.
    """
    lines = "\n".join(
        f'    <field id="{field_id}">{_format_value(value)}</field>'
        for field_id, value in loan_fields(scenario)
    )
    return f'<LOXmlFormat version="1.0">\n  <loan>\n{lines}\n  </loan>\n</LOXmlFormat>'


def build_soap_request(auth_ticket: str, scenario: LoanScenario) -> str:
    """Wrap the escaped loan document and bearer ticket in a SOAP envelope."""
    lo_xml = build_lo_xml(scenario)
    return f"""<?xml version="1.0" encoding="utf-8"?>
<soap:Envelope xmlns:soap="http://schemas.xmlsoap.org/soap/envelope/" xmlns:los="http://www.lendersoffice.com/los/webservices/">
  <soap:Body>
    <los:RunQuickPricerV2>
      <los:authorizationTicket>{escape_xml(auth_ticket)}</los:authorizationTicket>
      <los:xmlInput>{escape_xml(lo_xml)}</los:xmlInput>
    </los:RunQuickPricerV2>
  </soap:Body>
</soap:Envelope>"""
