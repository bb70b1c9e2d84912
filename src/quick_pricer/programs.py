"""Rebuild loan programs and their rate options from the parsed payload."""

import logging
from typing import Dict, List, Optional

from bs4 import BeautifulSoup, Tag

from quick_pricer.adjustments import parse_embedded_adjustments
from quick_pricer.models import Adjustment, Program, RateOption
from quick_pricer.xml_text import get_attr, parse_int, parse_number

logger = logging.getLogger(__name__)

DEFAULT_TERM = 360
DEFAULT_LOCK_DAYS = 30


def _outside_rate_options(element: Tag) -> bool:
    return element.find_parent("rateoption") is None


def parse_rate_option(element: Tag, adjustments_by_template: Dict[str, List[Adjustment]]) -> RateOption:
    """Parse one ``<RateOption>`` and resolve its adjustments.

    The adjustments table entry for the option's template id wins when it is
    non-empty, otherwise adjustments embedded in the option body are used.
    """
    template_id = get_attr(element, "lLpTemplateId")
    adjustments = adjustments_by_template.get(template_id, []) if template_id else []
    if not adjustments:
        adjustments = parse_embedded_adjustments(element.find_all("adjustment"))

    return RateOption(
        rate=parse_number(get_attr(element, "Rate")),
        points=parse_number(get_attr(element, "Point")),
        apr=parse_number(get_attr(element, "APR")),
        payment=parse_number(get_attr(element, "Payment").replace(",", "")),
        description=get_attr(element, "Description"),
        investor_name=get_attr(element, "lLpInvestorNm"),
        status=get_attr(element, "Status"),
        best_price=get_attr(element, "BestPrice") == "True",
        total_closing_cost=parse_number(get_attr(element, "TotalClosingCost")),
        cash_to_close=parse_number(get_attr(element, "CashToClose")),
        template_id=template_id,
        adjustments=list(adjustments),
    )


def representative_option(rate_options: List[RateOption]) -> Optional[RateOption]:
    """Best-price option, else the first Available one, else the first one."""
    for option in rate_options:
        if option.best_price:
            return option
    for option in rate_options:
        if option.status == "Available":
            return option
    return rate_options[0] if rate_options else None


def parse_program(element: Tag, adjustments_by_template: Dict[str, List[Adjustment]]) -> Optional[Program]:
    name = get_attr(element, "Name")
    rate_options = [
        parse_rate_option(option, adjustments_by_template)
        for option in element.find_all("rateoption")
    ]
    best = representative_option(rate_options)
    if not name or best is None:
        logger.debug(f"Skipping program {name!r} with {len(rate_options)} rate options")
        return None

    program_adjustments = parse_embedded_adjustments(
        filter(_outside_rate_options, element.find_all("adjustment")),
        amount_names=("Amount", "Price", "PriceAdj"),
        rate_names=("RateAdj", "Rate"),
        description_names=("Description", "Name", "Desc"),
    )

    return Program(
        name=name,
        status=get_attr(element, "Status"),
        # Kept as reported by the engine's Term attribute; the unit is not
        # interpreted here.
        term=parse_int(get_attr(element, "Term"), DEFAULT_TERM),
        fin_method=get_attr(element, "FinMethT"),
        loan_type=get_attr(element, "LoanType"),
        par_rate=parse_number(get_attr(element, "ParRate")),
        par_points=parse_number(get_attr(element, "ParPoints")),
        investor=get_attr(element, "ProductType"),
        lock_days=parse_int(get_attr(element, "sProdRLckdDays"), DEFAULT_LOCK_DAYS),
        rate_options=rate_options,
        adjustments=program_adjustments,
        rate=best.rate,
        apr=best.apr,
        points=best.points,
        payment=best.payment,
        description=best.description,
        investor_name=best.investor_name,
        total_closing_cost=best.total_closing_cost,
        cash_to_close=best.cash_to_close,
    )


def find_program_elements(document: BeautifulSoup) -> List[Tag]:
    """``<Program>`` elements that carry attributes."""
    return [element for element in document.find_all("program") if element.attrs]


def parse_programs(document: BeautifulSoup, adjustments_by_template: Dict[str, List[Adjustment]]) -> List[Program]:
    """Parse every program in document order, dropping nameless or empty ones."""
    programs = []
    for element in find_program_elements(document):
        program = parse_program(element, adjustments_by_template)
        if program is not None:
            programs.append(program)
    logger.info(f"Parsed {len(programs)} programs")
    return programs
