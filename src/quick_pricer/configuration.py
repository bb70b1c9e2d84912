"""Define the configurable parameters for the pricing service."""

from __future__ import annotations

import os
from dataclasses import dataclass, field, fields
from typing import Any

from dotenv import load_dotenv

PRICER_URL = "https://webservices.mortgage.meridianlink.com/los/webservice/QuickPricer.asmx"
OAUTH_URL = "https://secure.mortgage.meridianlink.com/oauth/token"
ZIP_LOOKUP_URL = "https://api.zippopotam.us/us/{zip_code}"

# Credentials are also accepted under the vendor-prefixed names.
_ENV_ALIASES = {
    "client_id": ("MERIDIANLINK_CLIENT_ID", "CLIENT_ID"),
    "client_secret": ("MERIDIANLINK_CLIENT_SECRET", "CLIENT_SECRET"),
}


@dataclass(kw_only=True)
class Configuration:
    """The configuration for the pricing service."""
    pricer_url: str = field(
        default=PRICER_URL,
        metadata={"description": "QuickPricer SOAP endpoint that runs RunQuickPricerV2."},
    )

    oauth_url: str = field(
        default=OAUTH_URL,
        metadata={"description": "OAuth token endpoint for the client-credentials grant."},
    )

    client_id: str = field(
        default="",
        metadata={"description": "OAuth client id issued by the loan origination system."},
    )

    client_secret: str = field(
        default="",
        metadata={"description": "OAuth client secret issued by the loan origination system."},
    )

    auth_timeout: float = field(
        default=10.0,
        metadata={"description": "Seconds to wait for the token endpoint."},
    )

    pricing_timeout: float = field(
        default=25.0,
        metadata={"description": "Seconds to wait for a pricing response."},
    )

    token_refresh_margin: int = field(
        default=300,
        metadata={
            "description": "Seconds before the reported token expiry at which a cached token "
            "is considered stale."
        },
    )

    zip_lookup_url: str = field(
        default=ZIP_LOOKUP_URL,
        metadata={"description": "ZIP code lookup URL template with a {zip_code} placeholder."},
    )

    zip_lookup_timeout: float = field(
        default=5.0,
        metadata={"description": "Seconds to wait for a ZIP code lookup."},
    )

    memory_max_entries: int = field(
        default=100,
        metadata={"description": "Maximum number of pricing requests kept in history."},
    )

    log_level: str = field(
        default="INFO",
        metadata={"description": "Root logging level for the web app."},
    )

    @classmethod
    def from_env(cls, **overrides: Any) -> Configuration:
        """Create a Configuration from environment variables.

        Each field is read from its upper-cased name; explicit keyword
        overrides take precedence. A ``.env`` file is loaded first if present.
        """
        load_dotenv()
        values: dict[str, Any] = {}
        for f in fields(cls):
            if not f.init:
                continue
            names = _ENV_ALIASES.get(f.name, ()) + (f.name.upper(),)
            raw = next((os.environ[name] for name in names if os.environ.get(name)), None)
            if raw is not None:
                values[f.name] = type(f.default)(raw)
        values.update(overrides)
        return cls(**values)
