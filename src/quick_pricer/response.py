"""Assemble a PricingResult from a RunQuickPricerV2 SOAP response."""

import logging
import re
from typing import List

from quick_pricer.adjustments import (
    adjustments_section,
    flatten_adjustment_table,
    parse_adjustments_table,
    parse_loose_adjustments,
)
from quick_pricer.errors import PricingEngineError
from quick_pricer.models import PricingDiagnostics, PricingResult, Program
from quick_pricer.programs import find_program_elements, parse_programs
from quick_pricer.xml_text import parse_markup, unescape_twice, unescape_xml

logger = logging.getLogger(__name__)

XML_SAMPLE_CHARS = 2000
UNKNOWN_ENGINE_ERROR = "Unknown pricing error"

_RESULT_ELEMENT = re.compile(r"<RunQuickPricerV2Result>([\s\S]*?)</RunQuickPricerV2Result>")
_ERROR_TEXT = re.compile(r"Error[>\"']>([^<]+)<")


def has_engine_error(response_text: str) -> bool:
    return 'status=&quot;Error&quot;' in response_text or 'status="Error"' in response_text


def engine_error_message(response_text: str) -> str:
    """Pull the engine's error text out of a response flagged status="Error"."""
    for candidate in (response_text, unescape_xml(response_text), unescape_twice(response_text)):
        match = _ERROR_TEXT.search(candidate)
        if match:
            return match.group(1).strip()
    return UNKNOWN_ENGINE_ERROR


def extract_result_payload(response_text: str) -> str:
    """Return the still-escaped contents of ``<RunQuickPricerV2Result>``.

    Responses without that element are treated as the payload itself.
    """
    match = _RESULT_ELEMENT.search(response_text)
    return match.group(1) if match else response_text


def sort_programs(programs: List[Program]) -> List[Program]:
    """Eligible programs first, then ascending representative rate."""
    return sorted(programs, key=lambda program: (0 if program.is_eligible else 1, program.rate))


def parse_pricing_response(payload: str) -> PricingResult:
    """Parse the escaped engine payload into sorted programs and diagnostics."""
    document = parse_markup(unescape_twice(payload))

    adjustments_by_template = parse_adjustments_table(document)
    programs = sort_programs(parse_programs(document, adjustments_by_template))

    global_adjustments = parse_loose_adjustments(document) + flatten_adjustment_table(adjustments_by_template)

    program_elements = find_program_elements(document)
    xml_sample = program_elements[0].decode_contents()[:XML_SAMPLE_CHARS] if program_elements else ""

    return PricingResult(
        programs=programs,
        global_adjustments=global_adjustments or None,
        diagnostics=PricingDiagnostics(
            xml_sample=xml_sample,
            adjustments_section=adjustments_section(document),
        ),
    )


def parse_soap_response(response_text: str) -> PricingResult:
    """Check for an engine-reported error, then parse the result payload.

    Raises:
        PricingEngineError: when the engine flags the request with status="Error".
    """
    if has_engine_error(response_text):
        message = engine_error_message(response_text)
        logger.warning(f"Pricing engine reported an error: {message}")
        raise PricingEngineError(message)

    result = parse_pricing_response(extract_result_payload(response_text))
    logger.info(f"Assembled {result.total_programs} programs from pricing response")
    return result
