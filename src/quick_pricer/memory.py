"""In-process history of pricing requests."""

import json
import logging
import threading
import time
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from quick_pricer.models import PricingResult, TargetPricingOption
from quick_pricer.scenario import LoanScenario

logger = logging.getLogger(__name__)


@dataclass
class PricingMemoryEntry:
    id: str
    scenario: LoanScenario
    result: Optional[PricingResult]
    target_pricing: Optional[TargetPricingOption]
    duration_ms: float
    error: Optional[str] = None
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def succeeded(self) -> bool:
        return self.result is not None and self.error is None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "timestamp": self.timestamp.isoformat(),
            "scenario": self.scenario.to_dict(),
            "total_programs": self.result.total_programs if self.result else 0,
            "target_pricing": self.target_pricing.to_dict() if self.target_pricing else None,
            "duration_ms": self.duration_ms,
            "error": self.error,
        }


def _relative_difference(a: float, b: float) -> float:
    if not b:
        return 0.0 if a == b else float("inf")
    return abs(a - b) / b


class PricingMemoryStore:
    """Newest-first list of pricing requests, capped at ``max_entries``."""

    def __init__(self, max_entries: int = 100):
        self.max_entries = max_entries
        self._entries: List[PricingMemoryEntry] = []
        self._lock = threading.Lock()

    def add(self, scenario: LoanScenario, result: Optional[PricingResult],
            target_pricing: Optional[TargetPricingOption], duration_ms: float,
            error: Optional[str] = None) -> str:
        entry_id = f"pricing_{int(time.time() * 1000)}_{uuid.uuid4().hex[:9]}"
        entry = PricingMemoryEntry(
            id=entry_id,
            scenario=scenario,
            result=result,
            target_pricing=target_pricing,
            duration_ms=duration_ms,
            error=error,
        )
        with self._lock:
            self._entries = [entry] + self._entries[:self.max_entries - 1]
        return entry_id

    def get_all(self) -> List[PricingMemoryEntry]:
        return list(self._entries)

    def get_by_id(self, entry_id: str) -> Optional[PricingMemoryEntry]:
        return next((entry for entry in self._entries if entry.id == entry_id), None)

    def get_recent(self, count: int = 10) -> List[PricingMemoryEntry]:
        return self._entries[:count]

    def find_similar(self, scenario: LoanScenario, tolerance: float = 0.1) -> List[PricingMemoryEntry]:
        """Entries whose LTV, credit score and loan amount are within ``tolerance``
        (relative) of ``scenario`` with the same occupancy and purpose."""
        similar = []
        for entry in self._entries:
            past = entry.scenario
            if (past.occupancy_type == scenario.occupancy_type
                    and past.loan_purpose == scenario.loan_purpose
                    and _relative_difference(past.ltv, scenario.ltv) <= tolerance
                    and _relative_difference(past.credit_score, scenario.credit_score) <= tolerance
                    and _relative_difference(past.loan_amount, scenario.loan_amount) <= tolerance):
                similar.append(entry)
        return similar

    def get_stats(self) -> Dict[str, Any]:
        entries = self._entries
        successful = [entry for entry in entries if entry.succeeded]
        avg_duration = sum(entry.duration_ms for entry in entries) / len(entries) if entries else 0
        avg_rate = (
            sum(entry.target_pricing.rate if entry.target_pricing else 0 for entry in successful) / len(successful)
            if successful else 0
        )
        return {
            "total_queries": len(entries),
            "avg_duration_ms": round(avg_duration),
            "avg_rate": round(avg_rate, 3),
            "success_rate": round(len(successful) / len(entries) * 100) if entries else 0,
        }

    def clear(self) -> None:
        with self._lock:
            self._entries = []

    def export(self) -> str:
        return json.dumps([entry.to_dict() for entry in self._entries], indent=2)
