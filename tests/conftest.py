"""Shared fixtures: a realistic RunQuickPricerV2 response and scenario forms."""

import pytest

from quick_pricer.xml_text import escape_xml

PRICING_RESULTS_XML = """<PricingResults>
  <Program Name="NQM 30YR Fixed" Status="Eligible" Term="360" FinMethT="Fixed" LoanType="NonQM" ParRate="6.875" ParPoints="0.000" ProductType="Acme Wholesale" sProdRLckdDays="45">
    <RateOption Rate="6.750" Point="0.625" APR="6.912" Payment="2,594.39" Description="NQM 30YR Fixed" lLpInvestorNm="Acme" Status="Available" BestPrice="False" TotalClosingCost="5,210.00" CashToClose="125,000" lLpTemplateId="T-100" />
    <RateOption Rate="6.875" Point="0.125" APR="6.950" Payment="2,627.72" Description="NQM 30YR Fixed" lLpInvestorNm="Acme" Status="Available" BestPrice="True" TotalClosingCost="4,980.00" CashToClose="124,500" lLpTemplateId="T-100" />
    <RateOption Rate="7.000" Point="-0.500" APR="7.010" Payment="2,661.21" Description="NQM 30YR Fixed" lLpInvestorNm="Acme" Status="Available" BestPrice="False" lLpTemplateId="T-100" />
  </Program>
  <Program Name="NQM 30YR Fixed 3 YR PPP" Status="Eligible" Term="360" FinMethT="Fixed" LoanType="NonQM" ProductType="Acme Wholesale">
    <RateOption Rate="6.500" Point="0.250" APR="6.610" Payment="2,528.27" Description="NQM 30YR Fixed 3 YR PPP" lLpInvestorNm="Acme" lLpTemplateId="T-200" />
  </Program>
  <Program Name="NQM 40YR IO" Status="Ineligible" FinMethT="Fixed">
    <RateOption Rate="6.250" Point="0.000" Description="NQM 40YR IO" />
  </Program>
  <AdjustmentsTable>
    <Adjustment lLpTemplateId="T-100">
      <AdjustmentItem Description="FICO 740-759 &amp; LTV 75.01-80" Point="0.500%" Rate="0.000%" IsHidden="False" />
      <AdjustmentItem Description="PRICE GROUP A" Point="0.000%" Rate="0.000%" IsHidden="True" />
      <AdjustmentItem Description="DSCR: DSCR &gt;= 1.25" Point="-0.250%" Rate="0.125%" />
      <AdjustmentItem Description="CASHOUT LTV 70-75" Point="0.375%" Rate="0.000%" />
      <AdjustmentItem Description="" Point="1.000%" Rate="0.000%" />
    </Adjustment>
    <Adjustment lLpTemplateId="T-200">
      <AdjustmentItem Description="Prepay 3 YR" Point="-0.750%" Rate="0.000%" />
    </Adjustment>
  </AdjustmentsTable>
</PricingResults>"""

ENGINE_ERROR_BODY = escape_xml('<LoXmlFormat status="Error">Invalid property ZIP code</LoXmlFormat>')


def wrap_soap(result_text: str) -> str:
    """Place already-escaped result text in a RunQuickPricerV2 response envelope."""
    return (
        '<?xml version="1.0" encoding="utf-8"?>'
        '<soap:Envelope xmlns:soap="http://schemas.xmlsoap.org/soap/envelope/">'
        '<soap:Body>'
        '<RunQuickPricerV2Response xmlns="http://www.lendersoffice.com/los/webservices/">'
        f'<RunQuickPricerV2Result>{result_text}</RunQuickPricerV2Result>'
        '</RunQuickPricerV2Response>'
        '</soap:Body>'
        '</soap:Envelope>'
    )


def double_escape(xml: str) -> str:
    return escape_xml(escape_xml(xml))


@pytest.fixture
def pricing_xml():
    return PRICING_RESULTS_XML


@pytest.fixture
def soap_response():
    return wrap_soap(double_escape(PRICING_RESULTS_XML))


@pytest.fixture
def engine_error_response():
    return wrap_soap(ENGINE_ERROR_BODY)


@pytest.fixture
def primary_form():
    return {
        "loanPurpose": "purchase",
        "loanAmount": "400,000",
        "propertyValue": "$500k",
        "propertyZip": "90210",
        "propertyState": "CA",
        "propertyType": "sfr",
        "occupancyType": "primary",
        "creditScore": "745",
        "dti": "38",
        "loanTerm": "30",
        "documentationType": "fullDoc",
        "prepayPeriod": "3year",
    }


@pytest.fixture
def dscr_form(primary_form):
    form = dict(primary_form)
    form.update({
        "occupancyType": "investment",
        "documentationType": "dscr",
        "grossRent": "3,000",
        "presentHousingExpense": "2,500",
    })
    return form
