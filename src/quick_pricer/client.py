"""Outbound calls to the token endpoint and the QuickPricer SOAP service."""

import logging
import time
from dataclasses import dataclass
from typing import Callable, Optional

import requests

from quick_pricer.configuration import Configuration
from quick_pricer.errors import TransportError
from quick_pricer.models import PricingResult
from quick_pricer.request_builder import SOAP_ACTION, build_soap_request
from quick_pricer.response import parse_soap_response
from quick_pricer.scenario import LoanScenario

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CachedToken:
    """An access token and the epoch second after which it must be refreshed."""
    token: str
    expires_at: float

    def is_fresh(self, now: float) -> bool:
        return self.expires_at > now


def _post(url: str, timeout: float, what: str, **kwargs) -> requests.Response:
    """POST and turn timeouts, connection failures and non-2xx answers into TransportError."""
    try:
        response = requests.post(url, timeout=timeout, **kwargs)
    except requests.exceptions.Timeout as e:
        logger.error(f"{what} timed out after {timeout}s")
        raise TransportError(f"{what} timed out", timed_out=True) from e
    except requests.exceptions.RequestException as e:
        logger.error(f"{what} failed: {e}")
        raise TransportError(f"{what} failed: {e}") from e

    if not response.ok:
        logger.error(f"{what} returned HTTP {response.status_code}")
        raise TransportError(f"{what} returned HTTP {response.status_code}", status_code=response.status_code)
    return response


class OAuthTokenCache:
    """Client-credentials token, fetched lazily and reused until close to expiry.

    The cached value is an immutable CachedToken that is swapped as a whole on
    refresh. Two concurrent refreshes may both hit the token endpoint; the
    last one to finish is kept.
    """

    def __init__(self, config: Configuration, clock: Callable[[], float] = time.time):
        self.config = config
        self._clock = clock
        self._cached: Optional[CachedToken] = None

    @property
    def cached(self) -> Optional[CachedToken]:
        return self._cached

    def get_token(self) -> str:
        cached = self._cached
        if cached is not None and cached.is_fresh(self._clock()):
            return cached.token

        response = _post(
            self.config.oauth_url,
            self.config.auth_timeout,
            "OAuth token request",
            data={
                "grant_type": "client_credentials",
                "client_id": self.config.client_id,
                "client_secret": self.config.client_secret,
            },
        )
        try:
            data = response.json()
            token = data["access_token"]
            expires_in = float(data.get("expires_in") or 0)
        except (ValueError, KeyError, TypeError, AttributeError) as e:
            raise TransportError(f"OAuth token response is malformed: {e!r}") from e
        if not token:
            raise TransportError("OAuth token response has an empty access_token")

        self._cached = CachedToken(
            token=token,
            expires_at=self._clock() + expires_in - self.config.token_refresh_margin,
        )
        logger.info(f"Fetched OAuth token valid for {expires_in:.0f}s")
        return self._cached.token

    def clear(self) -> None:
        self._cached = None


class QuickPricerClient:
    """Prices a LoanScenario with RunQuickPricerV2."""

    def __init__(self, config: Configuration, token_cache: Optional[OAuthTokenCache] = None):
        self.config = config
        self.token_cache = token_cache or OAuthTokenCache(config)

    def run_quick_pricer(self, scenario: LoanScenario) -> str:
        """Send the SOAP request and return the raw response body.

        Raises:
            TransportError: on timeout or a non-2xx answer from either endpoint.
        """
        auth_ticket = f"Bearer {self.token_cache.get_token()}"
        soap_request = build_soap_request(auth_ticket, scenario)
        logger.info(f"Requesting pricing for {scenario.occupancy_type.value} "
                    f"{scenario.loan_purpose.value} loan of {scenario.loan_amount:,.0f}")
        response = _post(
            self.config.pricer_url,
            self.config.pricing_timeout,
            "Pricing request",
            data=soap_request.encode("utf-8"),
            headers={
                "Content-Type": "text/xml; charset=utf-8",
                "SOAPAction": SOAP_ACTION,
            },
        )
        return response.text

    def get_pricing(self, scenario: LoanScenario) -> PricingResult:
        """Price ``scenario`` and assemble the unfiltered result.

        Raises:
            TransportError: on timeout or a non-2xx answer.
            PricingEngineError: when the engine reports an error.
        """
        return parse_soap_response(self.run_quick_pricer(scenario))
