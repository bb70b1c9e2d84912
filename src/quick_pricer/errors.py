"""Errors raised at the pricing boundary."""

from typing import Optional


class QuickPricerError(Exception):
    """Base class for pricing failures surfaced to the caller."""


class TransportError(QuickPricerError):
    """An outbound call timed out, got a non-2xx status, or returned an unusable body."""

    def __init__(self, message: str, status_code: Optional[int] = None, timed_out: bool = False):
        super().__init__(message)
        self.status_code = status_code
        self.timed_out = timed_out


class PricingEngineError(QuickPricerError):
    """The engine answered HTTP 200 but reported status="Error" in the body."""


class ScenarioValidationError(QuickPricerError, ValueError):
    """A loan scenario breaks an invariant and cannot be priced."""

    def __init__(self, errors: list[str]):
        super().__init__(". ".join(errors))
        self.errors = errors
