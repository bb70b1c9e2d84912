"""Parse price/rate adjustments out of the engine response.

The engine reports most adjustments once, in an ``<AdjustmentsTable>``
section keyed by rate template id. Rate options carry the template id and are
joined to the table afterwards.
"""

import logging
from typing import Dict, Iterable, List

from bs4 import BeautifulSoup, Tag

from quick_pricer.models import Adjustment
from quick_pricer.xml_text import first_attr, first_number, get_attr, parse_percent

logger = logging.getLogger(__name__)

ADJUSTMENTS_SECTION_CHARS = 3000
NO_TABLE_MARKER = "No AdjustmentsTable found"


def find_adjustments_table(document: BeautifulSoup):
    return document.find("adjustmentstable")


def parse_adjustment_item(item: Tag):
    """Build an Adjustment from an ``<AdjustmentItem>``.

    Returns None for hidden items (price group markers and the like) and for
    items without a description.
    """
    if get_attr(item, "IsHidden") == "True":
        return None
    description = get_attr(item, "Description")
    if not description:
        return None
    # A positive Point is a cost to the borrower, which the rest of the
    # pipeline expresses as a negative price number.
    amount = -parse_percent(get_attr(item, "Point") or "0")
    rate_adj = parse_percent(get_attr(item, "Rate") or "0")
    return Adjustment(description=description, amount=amount + 0.0, rate_adj=rate_adj)


def parse_adjustments_table(document: BeautifulSoup) -> Dict[str, List[Adjustment]]:
    """Map each rate template id to its ordered list of adjustments."""
    table = find_adjustments_table(document)
    by_template: Dict[str, List[Adjustment]] = {}
    if table is None:
        logger.debug("Response has no AdjustmentsTable")
        return by_template

    for block in table.find_all("adjustment"):
        template_id = get_attr(block, "lLpTemplateId")
        if not template_id:
            continue
        items = (parse_adjustment_item(item) for item in block.find_all("adjustmentitem"))
        by_template[template_id] = [adj for adj in items if adj is not None]

    logger.info(f"Parsed adjustments for {len(by_template)} rate templates")
    return by_template


def adjustments_section(document: BeautifulSoup) -> str:
    """Diagnostic snippet of the adjustments table."""
    table = find_adjustments_table(document)
    if table is None:
        return NO_TABLE_MARKER
    return str(table)[:ADJUSTMENTS_SECTION_CHARS]


def flatten_adjustment_table(by_template: Dict[str, List[Adjustment]]) -> List[Adjustment]:
    flattened = []
    for adjustments in by_template.values():
        flattened.extend(adjustments)
    return flattened


def parse_embedded_adjustments(elements: Iterable[Tag], amount_names=("Amount", "Price"),
                               rate_names=("RateAdj", "Rate"),
                               description_names=("Description", "Name")) -> List[Adjustment]:
    """Parse ``<Adjustment>`` elements that carry their values inline."""
    adjustments = []
    for element in elements:
        adjustments.append(Adjustment(
            description=first_attr(element, *description_names),
            amount=first_number(element, *amount_names),
            rate_adj=first_number(element, *rate_names),
        ))
    return adjustments


def parse_loose_adjustments(document: BeautifulSoup) -> List[Adjustment]:
    """Collect inline ``<Adjustment>``/``<PricingAdjustment>`` elements outside the table.

    Elements owned by a program or rate option are reported there instead, and
    template references without a description are skipped.
    """
    adjustments = []
    for element in document.find_all(["adjustment", "pricingadjustment"]):
        if element.find_parent(["adjustmentstable", "program", "rateoption"]) is not None:
            continue
        description = first_attr(element, "sAdjDescription", "Description", "Name")
        if not description:
            continue
        adjustments.append(Adjustment(
            description=description,
            amount=first_number(element, "dAdjPriceAdj", "Amount", "Price"),
            rate_adj=first_number(element, "dAdjRateAdj", "RateAdj"),
        ))
    return adjustments
