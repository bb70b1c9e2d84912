"""FastAPI routes for the mortgage pricing service."""

from __future__ import annotations

import logging
from dataclasses import asdict
from typing import Any, Dict, Optional

from fastapi import FastAPI, HTTPException, Request
from fastapi.concurrency import run_in_threadpool

from quick_pricer.client import QuickPricerClient
from quick_pricer.configuration import Configuration
from quick_pricer.errors import ScenarioValidationError, TransportError
from quick_pricer.memory import PricingMemoryStore
from quick_pricer.scenario import LoanScenario, normalize_form_data, validate_scenario
from quick_pricer.service import PricingService
from quick_pricer.zip_lookup import ZipLookup

logger = logging.getLogger(__name__)


async def _json_body(request: Request) -> Dict[str, Any]:
    try:
        body = await request.json()
    except ValueError:
        raise HTTPException(status_code=400, detail="Request body must be JSON")
    if not isinstance(body, dict):
        raise HTTPException(status_code=400, detail="Request body must be a JSON object")
    return body


def create_app(
        config: Optional[Configuration] = None,
        client: Optional[QuickPricerClient] = None,
        memory: Optional[PricingMemoryStore] = None,
        zip_lookup: Optional[ZipLookup] = None,
) -> FastAPI:
    """Build the app; collaborators default to ones built from ``config``."""
    config = config or Configuration.from_env()
    logging.basicConfig(level=config.log_level.upper())

    memory = memory or PricingMemoryStore(max_entries=config.memory_max_entries)
    service = PricingService(client or QuickPricerClient(config), memory)
    zip_lookup = zip_lookup or ZipLookup(config.zip_lookup_url, config.zip_lookup_timeout)

    app = FastAPI(
        title="Quick Pricer API",
        version="1.0.0",
    )
    app.state.config = config
    app.state.service = service
    app.state.memory = memory
    app.state.zip_lookup = zip_lookup

    @app.get("/health")
    async def health_check():
        """Health check endpoint."""
        return {"status": "working", "service": "quick-pricer"}

    @app.post("/api/get-pricing")
    async def get_pricing(request: Request):
        """
        Price a loan scenario and return eligible programs with a target quote.

        Expects a JSON object with the quote form fields (camelCase, as the form
        posts them, or snake_case), e.g.:
        - loanAmount / propertyValue: "600,000", "$600k" or numbers
        - creditScore (or fico), dti
        - occupancyType: primary | secondary | investment
        - documentationType: fullDoc | bankStatement | dscr | ...
        - grossRent, presentHousingExpense: DSCR requests only

        Engine errors and empty results answer 200 with ``success: false``.
        """
        body = await _json_body(request)
        try:
            scenario = LoanScenario.from_form(normalize_form_data(body))
            outcome = await run_in_threadpool(service.price_scenario, scenario)
            return outcome.to_dict()

        except HTTPException:
            raise
        except ScenarioValidationError as e:
            raise HTTPException(status_code=422, detail={"success": False, "errors": e.errors})
        except TransportError as e:
            raise HTTPException(
                status_code=504 if e.timed_out else 502,
                detail={"success": False, "error": str(e)},
            )
        except Exception as e:
            logger.exception("Pricing request failed")
            raise HTTPException(
                status_code=500,
                detail={"success": False, "error": f"Failed to get pricing: {str(e)}"},
            )

    @app.post("/api/validate-scenario")
    async def validate(request: Request):
        """Run pre-submit validation without calling the pricing engine."""
        body = await _json_body(request)
        return asdict(validate_scenario(normalize_form_data(body)))

    @app.get("/api/zip/{zip_code}")
    async def lookup_zip(zip_code: str):
        """Resolve a ZIP code to city, county and state."""
        location = await zip_lookup.lookup(zip_code)
        if location is None:
            raise HTTPException(status_code=404, detail=f"Unknown ZIP code: {zip_code}")
        return {"zip": zip_code, **location.to_dict()}

    @app.get("/api/pricing-history")
    async def pricing_history(limit: int = 10):
        return {"entries": [entry.to_dict() for entry in memory.get_recent(limit)]}

    @app.get("/api/pricing-history/stats")
    async def pricing_history_stats():
        return memory.get_stats()

    @app.get("/api/pricing-history/{entry_id}")
    async def pricing_history_entry(entry_id: str):
        entry = memory.get_by_id(entry_id)
        if entry is None:
            raise HTTPException(status_code=404, detail=f"No pricing entry {entry_id}")
        return entry.to_dict()

    @app.delete("/api/pricing-history")
    async def clear_pricing_history():
        memory.clear()
        return {"status": "cleared"}

    return app


def main():
    import uvicorn

    config = Configuration.from_env()
    uvicorn.run(create_app(config), host="0.0.0.0", port=8000, log_level=config.log_level.lower())


if __name__ == "__main__":
    main()
