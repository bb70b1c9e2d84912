import itertools

import pytest

from quick_pricer.errors import PricingEngineError
from quick_pricer.models import Program
from quick_pricer.response import (
    UNKNOWN_ENGINE_ERROR,
    engine_error_message,
    extract_result_payload,
    has_engine_error,
    parse_pricing_response,
    parse_soap_response,
    sort_programs,
)
from tests.conftest import double_escape, wrap_soap


class TestAssembler:

    def test_programs_sorted_eligible_first_then_rate(self, soap_response):
        result = parse_soap_response(soap_response)

        assert [p.name for p in result.programs] == [
            "NQM 30YR Fixed 3 YR PPP",
            "NQM 30YR Fixed",
            "NQM 40YR IO",
        ]
        assert result.total_programs == 3

    def test_representative_option_prefers_best_price(self, soap_response):
        program = parse_soap_response(soap_response).programs[1]

        assert program.rate == pytest.approx(6.875)
        assert program.points == pytest.approx(0.125)
        assert program.apr == pytest.approx(6.95)
        assert program.payment == pytest.approx(2627.72)
        assert program.total_closing_cost == pytest.approx(4980.0)
        assert program.investor_name == "Acme"

    def test_program_fields_and_defaults(self, soap_response):
        by_name = {p.name: p for p in parse_soap_response(soap_response).programs}

        fixed = by_name["NQM 30YR Fixed"]
        assert fixed.lock_days == 45
        assert fixed.investor == "Acme Wholesale"
        assert fixed.par_rate == pytest.approx(6.875)
        assert len(fixed.rate_options) == 3

        interest_only = by_name["NQM 40YR IO"]
        assert interest_only.term == 360
        assert interest_only.lock_days == 30
        assert interest_only.status == "Ineligible"

    def test_rate_options_join_adjustment_table(self, soap_response):
        fixed = parse_soap_response(soap_response).programs[1]
        option = fixed.rate_options[0]

        assert option.payment == pytest.approx(2594.39)
        assert option.cash_to_close == pytest.approx(125000)
        assert option.price == pytest.approx(99.375)
        assert [adj.description for adj in option.adjustments][0] == "FICO 740-759 & LTV 75.01-80"

    def test_global_adjustments_and_diagnostics(self, soap_response):
        result = parse_soap_response(soap_response)

        assert len(result.global_adjustments) == 4
        assert "RateOption" in result.diagnostics.xml_sample or "rateoption" in result.diagnostics.xml_sample
        assert len(result.diagnostics.xml_sample) <= 2000
        assert result.diagnostics.adjustments_section.startswith("<adjustmentstable>")

    def test_no_global_adjustments_is_none(self):
        result = parse_pricing_response(double_escape(
            '<Program Name="Only" Status="Eligible"><RateOption Rate="7.0" Point="0" /></Program>'
        ))
        assert result.global_adjustments is None
        assert result.diagnostics.adjustments_section == "No AdjustmentsTable found"

    def test_programs_without_name_or_options_are_dropped(self):
        result = parse_pricing_response(double_escape(
            '<Program Status="Eligible"><RateOption Rate="7.0" /></Program>'
            '<Program Name="Empty" Status="Eligible"></Program>'
            '<Program Name="Kept" Status="Eligible"><RateOption Rate="7.125" /></Program>'
        ))
        assert [p.name for p in result.programs] == ["Kept"]

    def test_embedded_adjustments_when_template_missing(self):
        result = parse_pricing_response(double_escape(
            '<Program Name="P" Status="Eligible">'
            '<Adjustment Desc="Program fee" PriceAdj="-0.25" />'
            '<RateOption Rate="7.0" Point="0.5" lLpTemplateId="UNKNOWN">'
            '<Adjustment Name="Loan size" Price="-0.125" RateAdj="0.1" />'
            '</RateOption>'
            '</Program>'
        ))
        program = result.programs[0]

        assert [adj.description for adj in program.adjustments] == ["Program fee"]
        assert program.adjustments[0].amount == pytest.approx(-0.25)
        option_adjustment = program.rate_options[0].adjustments[0]
        assert option_adjustment.description == "Loan size"
        assert option_adjustment.amount == pytest.approx(-0.125)
        assert option_adjustment.rate_adj == pytest.approx(0.1)

    def test_malformed_numbers_never_raise(self):
        result = parse_pricing_response(double_escape(
            '<Program Name="P" Status="Eligible" Term="abc" sProdRLckdDays="">'
            '<RateOption Rate="n/a" Point="-" Payment="$" Status="Available" />'
            '</Program>'
        ))
        program = result.programs[0]

        assert program.term == 360
        assert program.lock_days == 30
        assert program.rate == 0.0
        assert program.payment == 0.0

    def test_unescapes_exactly_twice(self):
        # A third level of escaping must be left alone, so a literal "&lt;"
        # in a description stays literal.
        xml = '<Program Name="A &amp;lt; B" Status="Eligible"><RateOption Rate="7" /></Program>'
        result = parse_pricing_response(double_escape(xml))
        assert result.programs[0].name == "A &lt; B"


class TestSorting:

    def test_sort_is_stable_on_equal_keys(self):
        programs = [
            Program(name="ineligible", status="Ineligible", rate=5.0),
            Program(name="first", status="Eligible", rate=6.0),
            Program(name="second", status="Eligible", rate=6.0),
        ]
        assert [p.name for p in sort_programs(programs)] == ["first", "second", "ineligible"]

    @pytest.mark.parametrize("order", list(itertools.permutations(range(3))))
    def test_eligible_by_rate_then_ineligible(self, order):
        programs = [
            Program(name="low", status="Ineligible", rate=3.0),
            Program(name="high", status="Eligible", rate=5.0),
            Program(name="mid", status="Eligible", rate=4.0),
        ]
        ordered = sort_programs([programs[i] for i in order])

        assert [p.rate for p in ordered] == [4.0, 5.0, 3.0]
        assert [p.status for p in ordered] == ["Eligible", "Eligible", "Ineligible"]


class TestEngineErrors:

    def test_error_status_raises_with_engine_text(self, engine_error_response):
        assert has_engine_error(engine_error_response)
        with pytest.raises(PricingEngineError, match="Invalid property ZIP code"):
            parse_soap_response(engine_error_response)

    def test_unknown_error_text(self):
        response = wrap_soap('status="Error"')
        assert engine_error_message(response) == UNKNOWN_ENGINE_ERROR

    def test_payload_without_result_element_is_used_whole(self):
        assert extract_result_payload("plain text") == "plain text"
