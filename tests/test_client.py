import pytest
import requests

from quick_pricer.client import CachedToken, OAuthTokenCache, QuickPricerClient
from quick_pricer.configuration import Configuration
from quick_pricer.errors import PricingEngineError, TransportError
from quick_pricer.scenario import LoanScenario


class FakeResponse:

    def __init__(self, status_code=200, payload=None, text=""):
        self.status_code = status_code
        self._payload = payload
        self.text = text

    @property
    def ok(self):
        return 200 <= self.status_code < 300

    def json(self):
        if isinstance(self._payload, Exception):
            raise self._payload
        return self._payload


class FakeClock:

    def __init__(self, now=1000.0):
        self.now = now

    def __call__(self):
        return self.now


@pytest.fixture
def config():
    return Configuration(client_id="id-123", client_secret="secret-456")


@pytest.fixture
def calls(monkeypatch):
    recorded = []
    responses = []

    def fake_post(url, timeout=None, **kwargs):
        recorded.append({"url": url, "timeout": timeout, **kwargs})
        response = responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response

    monkeypatch.setattr(requests, "post", fake_post)
    return recorded, responses


class TestOAuthTokenCache:

    def test_fetches_with_client_credentials(self, config, calls):
        recorded, responses = calls
        responses.append(FakeResponse(payload={"access_token": "tok-1", "expires_in": 3600}))

        cache = OAuthTokenCache(config, clock=FakeClock())
        assert cache.get_token() == "tok-1"

        call = recorded[0]
        assert call["url"] == config.oauth_url
        assert call["timeout"] == 10.0
        assert call["data"] == {
            "grant_type": "client_credentials",
            "client_id": "id-123",
            "client_secret": "secret-456",
        }
        assert cache.cached == CachedToken(token="tok-1", expires_at=1000.0 + 3600 - 300)

    def test_reuses_token_until_margin(self, config, calls):
        recorded, responses = calls
        responses.extend([
            FakeResponse(payload={"access_token": "tok-1", "expires_in": 3600}),
            FakeResponse(payload={"access_token": "tok-2", "expires_in": 3600}),
        ])
        clock = FakeClock()
        cache = OAuthTokenCache(config, clock=clock)

        assert cache.get_token() == "tok-1"
        clock.now += 3299
        assert cache.get_token() == "tok-1"
        first = cache.cached
        clock.now += 1
        assert cache.get_token() == "tok-2"
        assert len(recorded) == 2
        assert first.token == "tok-1"

    def test_non_2xx_raises(self, config, calls):
        _, responses = calls
        responses.append(FakeResponse(status_code=401))

        with pytest.raises(TransportError) as excinfo:
            OAuthTokenCache(config).get_token()
        assert excinfo.value.status_code == 401
        assert not excinfo.value.timed_out

    def test_timeout_raises(self, config, calls):
        _, responses = calls
        responses.append(requests.exceptions.Timeout("slow"))

        with pytest.raises(TransportError) as excinfo:
            OAuthTokenCache(config).get_token()
        assert excinfo.value.timed_out

    @pytest.mark.parametrize("payload", [
        ValueError("Expecting value: line 1 column 1"),
        {"token_type": "Bearer", "expires_in": 3600},
        {"access_token": "", "expires_in": 3600},
        ["tok-1"],
    ])
    def test_malformed_token_body_raises(self, config, calls, payload):
        _, responses = calls
        responses.append(FakeResponse(payload=payload, text="<html>maintenance</html>"))

        cache = OAuthTokenCache(config)
        with pytest.raises(TransportError, match="OAuth token response"):
            cache.get_token()
        assert cache.cached is None


class TestQuickPricerClient:

    def test_posts_soap_request(self, config, calls, soap_response):
        recorded, responses = calls
        responses.extend([
            FakeResponse(payload={"access_token": "tok-1", "expires_in": 3600}),
            FakeResponse(text=soap_response),
        ])

        result = QuickPricerClient(config).get_pricing(LoanScenario(property_zip="90210"))

        assert result.total_programs == 3
        pricing_call = recorded[1]
        assert pricing_call["url"] == config.pricer_url
        assert pricing_call["timeout"] == 25.0
        assert pricing_call["headers"]["SOAPAction"] == (
            "http://www.lendersoffice.com/los/webservices/RunQuickPricerV2"
        )
        assert b"Bearer tok-1" in pricing_call["data"]

    def test_pricing_http_error(self, config, calls):
        _, responses = calls
        responses.extend([
            FakeResponse(payload={"access_token": "tok-1", "expires_in": 3600}),
            FakeResponse(status_code=503, text="unavailable"),
        ])

        with pytest.raises(TransportError) as excinfo:
            QuickPricerClient(config).get_pricing(LoanScenario())
        assert excinfo.value.status_code == 503

    def test_engine_error(self, config, calls, engine_error_response):
        _, responses = calls
        responses.extend([
            FakeResponse(payload={"access_token": "tok-1", "expires_in": 3600}),
            FakeResponse(text=engine_error_response),
        ])

        with pytest.raises(PricingEngineError, match="Invalid property ZIP code"):
            QuickPricerClient(config).get_pricing(LoanScenario())


class TestConfiguration:

    def test_from_env(self, monkeypatch):
        monkeypatch.setenv("MERIDIANLINK_CLIENT_ID", "env-id")
        monkeypatch.setenv("CLIENT_SECRET", "env-secret")
        monkeypatch.setenv("PRICING_TIMEOUT", "30")
        monkeypatch.setenv("MEMORY_MAX_ENTRIES", "5")

        config = Configuration.from_env(log_level="DEBUG")

        assert config.client_id == "env-id"
        assert config.client_secret == "env-secret"
        assert config.pricing_timeout == 30.0
        assert config.memory_max_entries == 5
        assert config.log_level == "DEBUG"
