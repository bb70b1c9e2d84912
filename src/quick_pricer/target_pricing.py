"""Choose the single quote shown first, plus small helpers over rate options."""

import logging
import math
from typing import Dict, List, Optional

from quick_pricer.enums import PPP_PATTERNS, PrepayPeriod
from quick_pricer.filters import has_ppp, is_ppp_allowed
from quick_pricer.models import Adjustment, Program, RateOption, TargetPricingOption

logger = logging.getLogger(__name__)

PAR_PRICE = 100.0
MIN_TARGET_PRICE = 99.0
MAX_TARGET_PRICE = 101.0
DEFAULT_PPP_PATTERN = PPP_PATTERNS[PrepayPeriod.THREE_YEAR]


def get_ppp_pattern(prepay_period) -> str:
    """Map a prepay period such as ``"5year"`` to its description label."""
    try:
        return PPP_PATTERNS[PrepayPeriod(prepay_period)]
    except ValueError:
        return DEFAULT_PPP_PATTERN


def _matches_ppp_label(description: str, label: str) -> bool:
    label = label.upper()
    return label in description or label.replace(" YR ", "YR ") in description


def _closest_to_par(programs: List[Program], ppp_allowed: bool, label: Optional[str]) -> Optional[TargetPricingOption]:
    target = None
    closest_distance = math.inf
    for program in programs:
        program_name = program.name or "Unknown"
        for option in program.rate_options:
            description = (option.description or program_name).upper()
            if not ppp_allowed and has_ppp(description):
                continue
            if label is not None and not _matches_ppp_label(description, label):
                continue

            price = option.price
            if not MIN_TARGET_PRICE <= price <= MAX_TARGET_PRICE:
                continue
            distance = abs(price - PAR_PRICE)
            if distance < closest_distance:
                closest_distance = distance
                target = TargetPricingOption(
                    rate=option.rate,
                    points=option.points,
                    apr=option.apr,
                    price=price,
                    payment=option.payment,
                    program_name=option.description or program_name,
                    adjustments=list(option.adjustments),
                )
    return target


def get_target_pricing(programs: Optional[List[Program]], occupancy_type, prepay_period) -> Optional[TargetPricingOption]:
    """Pick the rate option priced closest to par.

    Investment scenarios first look for an option carrying the selected
    prepayment penalty label; other occupancies never see penalty options.
    When the first pass finds nothing, the search repeats without the label
    requirement. Only prices within [99, 101] qualify, and on equal distance
    the first option in program order wins.

    Args:
        programs: Filtered, sorted programs.
        occupancy_type: Scenario occupancy.
        prepay_period: Selected prepay period, e.g. ``"3year"``.

    Returns:
        The chosen option, or None when nothing is priced within range.
    """
    if not programs:
        return None

    ppp_allowed = is_ppp_allowed(occupancy_type)
    label = get_ppp_pattern(prepay_period) if ppp_allowed else None

    target = _closest_to_par(programs, ppp_allowed, label)
    if target is None and label is not None:
        logger.info(f"No option matches {label}, falling back to closest to par")
        target = _closest_to_par(programs, ppp_allowed, None)
    return target


def filter_rate_options_by_price(rate_options: List[RateOption], min_price: float = MIN_TARGET_PRICE,
                                 max_price: float = MAX_TARGET_PRICE) -> List[RateOption]:
    return [option for option in rate_options if min_price <= option.price <= max_price]


def sort_rate_options(rate_options: List[RateOption], sort_by: str = "rate") -> List[RateOption]:
    """Sort by ascending rate, or by distance from par when ``sort_by`` is ``"price"``."""
    if sort_by == "rate":
        return sorted(rate_options, key=lambda option: option.rate)
    return sorted(rate_options, key=lambda option: abs(option.price - PAR_PRICE))


def find_best_rate(rate_options: List[RateOption]) -> Optional[RateOption]:
    """Lowest rate; the earliest option wins ties."""
    if not rate_options:
        return None
    return min(rate_options, key=lambda option: option.rate)


def find_closest_to_par(rate_options: List[RateOption]) -> Optional[RateOption]:
    if not rate_options:
        return None
    return min(rate_options, key=lambda option: abs(option.price - PAR_PRICE))


def calculate_total_adjustments(adjustments: List[Adjustment]) -> Dict[str, float]:
    """Sum price and rate adjustments."""
    return {
        "price_adjustment": sum(adjustment.amount for adjustment in adjustments),
        "rate_adjustment": sum(adjustment.rate_adj for adjustment in adjustments),
    }
