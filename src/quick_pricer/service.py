"""Run a scenario through pricing, filtering, sanitizing and target selection."""

import logging
import time
from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Optional

from quick_pricer.client import QuickPricerClient
from quick_pricer.enums import (
    DscrTier,
    ImpoundType,
    Occupancy,
    dscr_tier_code,
    occupancy_display,
    property_type_display,
)
from quick_pricer.errors import PricingEngineError
from quick_pricer.filters import filter_eligible_programs, sanitize_pricing_result
from quick_pricer.memory import PricingMemoryStore
from quick_pricer.models import PricingResult, Program, TargetPricingOption
from quick_pricer.request_builder import DEFAULT_DSCR_TIER
from quick_pricer.scenario import LoanScenario
from quick_pricer.target_pricing import get_target_pricing

logger = logging.getLogger(__name__)

NO_PROGRAMS_MESSAGE = "No programs found. Please adjust your scenario."
SOURCE = "meridianlink"


def calculate_monthly_pi_payment(loan_amount: float, annual_rate: float, term_months: int) -> float:
    """Calculate monthly principal and interest payment.

    Args:
        loan_amount: The loan amount
        annual_rate: Annual interest rate as percentage
        term_months: Number of monthly payments

    Returns:
        Monthly P&I payment amount
    """
    monthly_rate = annual_rate / 12 / 100

    if monthly_rate > 0:
        return (
            loan_amount *
            (monthly_rate * (1 + monthly_rate) ** term_months)
            / ((1 + monthly_rate) ** term_months - 1)
        )
    else:
        return loan_amount / term_months


@dataclass
class QuoteSummary:
    """Headline numbers of the top program."""
    rate: float
    apr: float
    monthly_payment: int
    points: float
    closing_costs: float
    ltv_ratio: float
    program_name: str
    investor_name: str


@dataclass
class PricingOutcome:
    """What the caller gets back: a quote, an empty result, or an engine error."""
    success: bool
    result: Optional[PricingResult] = None
    """Filtered and sanitized programs. Empty unless ``success``."""

    target_pricing: Optional[TargetPricingOption] = None
    summary: Optional[QuoteSummary] = None
    sent_values: Dict[str, Any] = field(default_factory=dict)
    error: Optional[str] = None
    all_programs: Optional[List[Dict[str, Any]]] = None
    """Pre-filter program summaries, only when nothing survived filtering."""

    debug: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        if not self.success:
            body: Dict[str, Any] = {"success": False, "error": self.error}
            if self.all_programs is not None:
                body["all_programs"] = self.all_programs
                body["debug"] = self.debug
            return body

        result = self.result.to_dict()
        data = asdict(self.summary)
        data.update({
            "programs": result["programs"],
            "total_programs": result["total_programs"],
            "source": SOURCE,
            "sent_values": self.sent_values,
            "global_adjustments": result["global_adjustments"],
            "target_pricing": self.target_pricing.to_dict() if self.target_pricing else None,
            "xml_sample": result["diagnostics"]["xml_sample"],
            "adjustments_section": result["diagnostics"]["adjustments_section"],
        })
        return {"success": True, "data": data}


def summarize_top_program(program: Program, scenario: LoanScenario) -> QuoteSummary:
    monthly_payment = 0.0
    if program.rate > 0:
        monthly_payment = calculate_monthly_pi_payment(scenario.loan_amount, program.rate, program.term or 360)
    return QuoteSummary(
        rate=program.rate,
        apr=program.apr,
        monthly_payment=round(monthly_payment),
        points=program.points,
        closing_costs=program.total_closing_cost,
        ltv_ratio=scenario.ltv,
        program_name=program.name,
        investor_name=program.investor_name,
    )


def sent_values(scenario: LoanScenario) -> Dict[str, Any]:
    """The scenario values that drive pricing, echoed back for troubleshooting."""
    dscr_tier: Optional[DscrTier] = scenario.dscr_tier
    return {
        "dscr_tier": dscr_tier.value if dscr_tier else None,
        "dscr_code": dscr_tier_code(dscr_tier or DEFAULT_DSCR_TIER) if scenario.is_dscr else None,
        "dscr_value": scenario.dscr_value,
        "impound_type": scenario.impound_type.value,
        "escrow_waived": scenario.impound_type == ImpoundType.NO_ESCROW,
        "loan_purpose": scenario.loan_purpose.value,
        "occupancy_type": scenario.occupancy_type.value,
        "occupancy_label": occupancy_display[scenario.occupancy_type],
        "property_type": scenario.property_type.value,
        "property_type_label": property_type_display[scenario.property_type],
        "documentation_type": scenario.documentation_type.value,
        "is_non_warrantable": scenario.is_non_warrantable_project,
    }


def apply_business_rules(result: PricingResult, scenario: LoanScenario) -> PricingOutcome:
    """Filter, sanitize and select a target quote from an assembled result.

    ``result.programs`` keeps every program the engine returned so that an
    empty outcome can still report them.
    """
    programs = filter_eligible_programs(result.programs, scenario.occupancy_type)

    if not programs:
        logger.info(f"No eligible programs out of {result.total_programs}")
        return PricingOutcome(
            success=False,
            error=NO_PROGRAMS_MESSAGE,
            all_programs=[program.summary() for program in result.programs],
            debug={
                "is_investment": scenario.occupancy_type == Occupancy.INVESTMENT,
                "occupancy_type": scenario.occupancy_type.value,
                "eligible_count": sum(1 for program in result.programs if program.is_eligible),
            },
        )

    filtered = PricingResult(
        programs=programs,
        global_adjustments=result.global_adjustments,
        diagnostics=result.diagnostics,
    )
    sanitize_pricing_result(
        filtered,
        scenario.is_dscr,
        scenario.loan_purpose,
        dscr_value=scenario.dscr_value if scenario.is_dscr else None,
        dscr_tier=scenario.dscr_tier if scenario.is_dscr else None,
    )
    target = get_target_pricing(programs, scenario.occupancy_type, scenario.prepay_period)
    return PricingOutcome(
        success=True,
        result=filtered,
        target_pricing=target,
        summary=summarize_top_program(programs[0], scenario),
        sent_values=sent_values(scenario),
    )


class PricingService:
    """Prices scenarios and records each request in the pricing history."""

    def __init__(self, client: QuickPricerClient, memory: PricingMemoryStore):
        self.client = client
        self.memory = memory

    def price_scenario(self, scenario: LoanScenario) -> PricingOutcome:
        """Price ``scenario`` end to end.

        Engine-reported errors become an unsuccessful outcome. Transport
        failures are recorded and re-raised for the caller to map.

        Raises:
            TransportError: when the token or pricing call fails or times out.
        """
        started = time.monotonic()
        try:
            result = self.client.get_pricing(scenario)
        except PricingEngineError as e:
            outcome = PricingOutcome(success=False, error=str(e))
            self._record(scenario, None, outcome, started)
            return outcome
        except Exception as e:
            self.memory.add(scenario, None, None, self._elapsed_ms(started), error=str(e))
            raise

        outcome = apply_business_rules(result, scenario)
        self._record(scenario, result, outcome, started)
        return outcome

    @staticmethod
    def _elapsed_ms(started: float) -> float:
        return round((time.monotonic() - started) * 1000, 1)

    def _record(self, scenario: LoanScenario, result: Optional[PricingResult],
                outcome: PricingOutcome, started: float) -> None:
        self.memory.add(
            scenario,
            outcome.result or result,
            outcome.target_pricing,
            self._elapsed_ms(started),
            error=outcome.error,
        )
