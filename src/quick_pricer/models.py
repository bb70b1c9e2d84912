"""Define the pricing structures passed between the parser, filters and API."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field, replace
from typing import Any, Dict, List, Optional


@dataclass(frozen=True)
class Adjustment:
    """A single price or rate adjustment reported by the engine."""

    description: str
    amount: float = 0.0
    """Price points. Negative means a cost to the borrower."""

    rate_adj: float = 0.0
    """Rate delta in percent."""

    def with_description(self, description: str) -> Adjustment:
        return replace(self, description=description)


@dataclass
class RateOption:
    """One rate/price point offered under a program."""

    rate: float = 0.0
    points: float = 0.0
    apr: float = 0.0
    payment: float = 0.0
    description: str = ""
    investor_name: str = ""
    status: str = ""
    best_price: bool = False
    total_closing_cost: float = 0.0
    cash_to_close: float = 0.0
    template_id: str = ""
    """Join key into the adjustments table."""

    adjustments: List[Adjustment] = field(default_factory=list)

    @property
    def price(self) -> float:
        return 100 - self.points


@dataclass
class Program:
    """A loan program and the rate options it owns.

    The top-level rate/apr/points/... fields mirror the representative rate
    option chosen at parse time.
    """

    name: str
    status: str = ""
    term: int = 360
    fin_method: str = ""
    loan_type: str = ""
    par_rate: float = 0.0
    par_points: float = 0.0
    investor: str = ""
    lock_days: int = 30
    rate_options: List[RateOption] = field(default_factory=list)
    adjustments: List[Adjustment] = field(default_factory=list)
    """Program level adjustments, distinct from those on rate options."""

    rate: float = 0.0
    apr: float = 0.0
    points: float = 0.0
    payment: float = 0.0
    description: str = ""
    investor_name: str = ""
    total_closing_cost: float = 0.0
    cash_to_close: float = 0.0

    @property
    def is_eligible(self) -> bool:
        return self.status == "Eligible"

    def summary(self) -> Dict[str, Any]:
        return {
            "program_name": self.name,
            "status": self.status,
            "rate_options_count": len(self.rate_options),
            "sample_rate_desc": self.rate_options[0].description if self.rate_options else "N/A",
        }


@dataclass
class PricingDiagnostics:
    """Raw payload snippets kept for troubleshooting only."""

    xml_sample: str = ""
    adjustments_section: str = "No AdjustmentsTable found"


@dataclass
class PricingResult:
    """Programs assembled from one engine response."""

    programs: List[Program] = field(default_factory=list)
    global_adjustments: Optional[List[Adjustment]] = None
    diagnostics: PricingDiagnostics = field(default_factory=PricingDiagnostics)

    @property
    def total_programs(self) -> int:
        return len(self.programs)

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["total_programs"] = self.total_programs
        return data


@dataclass(frozen=True)
class TargetPricingOption:
    """The single quote chosen for primary display."""

    rate: float
    points: float
    apr: float
    price: float
    payment: float
    program_name: str
    adjustments: List[Adjustment] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)
