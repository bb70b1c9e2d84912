"""Eligibility, prepayment-penalty and adjustment rules applied after parsing."""

import logging
import re
from dataclasses import replace
from typing import List, Optional

from quick_pricer.enums import LoanPurpose, Occupancy
from quick_pricer.models import Adjustment, PricingResult, Program, RateOption

logger = logging.getLogger(__name__)

# A zero-length penalty period means no penalty at all.
_NO_PENALTY_MARKERS = ("0MO PPP", "0 YR PPP", "0YR PPP")
_PENALTY_MARKERS = (" PPP", "YR PPP")
_PENALTY_PERIOD = re.compile(r"\d\s*YR\s*PPP", re.IGNORECASE)

_DSCR_THRESHOLD = re.compile(r"DSCR:\s*DSCR\s*>=?\s*[\d.]+", re.IGNORECASE)


def has_ppp(text: Optional[str]) -> bool:
    """Check if a program name or rate description carries a prepayment penalty.

    "0MO PPP" / "0 YR PPP" / "0YR PPP" mean no penalty and are allowed for
    every occupancy.
    """
    if not text:
        return False
    upper = text.upper()
    if any(marker in upper for marker in _NO_PENALTY_MARKERS):
        return False
    return any(marker in upper for marker in _PENALTY_MARKERS) or bool(_PENALTY_PERIOD.search(upper))


def is_ppp_allowed(occupancy_type) -> bool:
    """Prepayment penalties are only offered on investment properties."""
    return occupancy_type == Occupancy.INVESTMENT


def _copy_program(program: Program, rate_options: List[RateOption]) -> Program:
    return replace(program, rate_options=[replace(option) for option in rate_options])


def filter_eligible_programs(programs: List[Program], occupancy_type) -> List[Program]:
    """Keep Eligible programs and, outside investment scenarios, drop penalties.

    Programs and their rate options are copied, so sanitizing the result
    leaves the input list untouched as pre-filter context.
    """
    eligible = [program for program in programs if program.is_eligible]
    if is_ppp_allowed(occupancy_type):
        return [_copy_program(program, program.rate_options) for program in eligible]

    filtered = []
    for program in eligible:
        if has_ppp(program.name) or has_ppp(program.description):
            continue
        rate_options = [option for option in program.rate_options if not has_ppp(option.description)]
        if rate_options:
            filtered.append(_copy_program(program, rate_options))

    logger.info(f"{len(filtered)} of {len(eligible)} eligible programs survive the prepayment penalty filter")
    return filtered


def rewrite_dscr_description(description: str, dscr_value: float, dscr_tier: Optional[str]) -> str:
    """Replace the engine's coarse "DSCR: DSCR >= n" with the computed ratio and tier."""
    tier = getattr(dscr_tier, "value", dscr_tier) or "N/A"
    return _DSCR_THRESHOLD.sub(f"DSCR: {dscr_value:.3f} ({tier})", description, count=1)


def sanitize_adjustments(
        adjustments: Optional[List[Adjustment]],
        is_dscr: bool,
        loan_purpose,
        dscr_value: Optional[float] = None,
        dscr_tier: Optional[str] = None,
) -> List[Adjustment]:
    """Strip adjustments that do not apply to the scenario and rewrite DSCR lines.

    Args:
        adjustments: Adjustments of one rate option, or the global list.
        is_dscr: Whether the scenario uses DSCR documentation.
        loan_purpose: Scenario loan purpose; rate/term refinances lose CASHOUT lines.
        dscr_value: Computed DSCR ratio, used to rewrite DSCR descriptions.
        dscr_tier: Tier label for the computed ratio.

    Returns:
        A new list; amounts and rate adjustments are never changed.
    """
    sanitized = []
    for adjustment in adjustments or []:
        upper = (adjustment.description or "").upper()
        if not is_dscr and "DSCR" in upper:
            continue
        if loan_purpose == LoanPurpose.REFINANCE and "CASHOUT" in upper:
            continue
        if is_dscr and dscr_value and "DSCR" in upper:
            adjustment = adjustment.with_description(
                rewrite_dscr_description(adjustment.description, dscr_value, dscr_tier)
            )
        sanitized.append(adjustment)
    return sanitized


def sanitize_programs(programs: List[Program], is_dscr: bool, loan_purpose,
                      dscr_value: Optional[float] = None, dscr_tier: Optional[str] = None) -> List[Program]:
    """Apply ``sanitize_adjustments`` to every rate option, in place."""
    for program in programs:
        for option in program.rate_options:
            option.adjustments = sanitize_adjustments(
                option.adjustments, is_dscr, loan_purpose, dscr_value, dscr_tier
            )
    return programs


def sanitize_pricing_result(result: PricingResult, is_dscr: bool, loan_purpose,
                            dscr_value: Optional[float] = None, dscr_tier: Optional[str] = None) -> PricingResult:
    """Sanitize the programs and the global adjustment list of ``result`` in place."""
    sanitize_programs(result.programs, is_dscr, loan_purpose, dscr_value, dscr_tier)
    if result.global_adjustments is not None:
        result.global_adjustments = sanitize_adjustments(
            result.global_adjustments, is_dscr, loan_purpose, dscr_value, dscr_tier
        )
    return result
