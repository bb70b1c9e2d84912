"""API tests through FastAPI's TestClient with the pricing engine stubbed out."""

import pytest
from fastapi.testclient import TestClient

from quick_pricer.configuration import Configuration
from quick_pricer.errors import PricingEngineError, TransportError
from quick_pricer.memory import PricingMemoryStore
from quick_pricer.response import parse_soap_response
from quick_pricer.webapp import create_app
from quick_pricer.zip_lookup import ZipLookup


class StubPricerClient:

    def __init__(self, response_text=None, error=None):
        self.response_text = response_text
        self.error = error
        self.scenarios = []

    def get_pricing(self, scenario):
        self.scenarios.append(scenario)
        if self.error is not None:
            raise self.error
        return parse_soap_response(self.response_text)


@pytest.fixture
def make_client():
    def build(pricer):
        app = create_app(
            config=Configuration(),
            client=pricer,
            memory=PricingMemoryStore(),
            zip_lookup=ZipLookup(),
        )
        return TestClient(app)
    return build


class TestHealthEndpoint:

    def test_health_check(self, make_client):
        response = make_client(StubPricerClient()).get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "working"


class TestGetPricing:

    def test_success(self, make_client, soap_response, primary_form):
        pricer = StubPricerClient(soap_response)
        response = make_client(pricer).post("/api/get-pricing", json=primary_form)

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["data"]["program_name"] == "NQM 30YR Fixed"
        assert body["data"]["monthly_payment"] == 2628
        assert body["data"]["target_pricing"]["rate"] == 6.875
        assert pricer.scenarios[0].credit_score == 745

    def test_loose_synonyms_are_normalized(self, make_client, soap_response):
        pricer = StubPricerClient(soap_response)
        response = make_client(pricer).post("/api/get-pricing", json={
            "fico": "760",
            "zipCode": "75201",
            "occupancy": "Investment Property",
            "loanAmount": "300k",
            "purchasePrice": "450,000",
        })

        assert response.status_code == 200
        scenario = pricer.scenarios[0]
        assert scenario.credit_score == 760
        assert scenario.property_zip == "75201"
        assert scenario.occupancy_type.value == "investment"
        assert scenario.property_value == 450000.0

    def test_engine_error_is_200_with_failure(self, make_client, primary_form):
        pricer = StubPricerClient(error=PricingEngineError("Invalid property ZIP code"))
        response = make_client(pricer).post("/api/get-pricing", json=primary_form)

        assert response.status_code == 200
        assert response.json() == {"success": False, "error": "Invalid property ZIP code"}

    @pytest.mark.parametrize("error, status", [
        (TransportError("Pricing request timed out", timed_out=True), 504),
        (TransportError("Pricing request returned HTTP 500", status_code=500), 502),
    ])
    def test_transport_errors(self, make_client, primary_form, error, status):
        response = make_client(StubPricerClient(error=error)).post("/api/get-pricing", json=primary_form)

        assert response.status_code == status
        assert response.json()["detail"]["success"] is False

    def test_dscr_on_primary_is_rejected(self, make_client, primary_form):
        pricer = StubPricerClient()
        response = make_client(pricer).post(
            "/api/get-pricing", json=dict(primary_form, documentationType="dscr")
        )

        assert response.status_code == 422
        assert pricer.scenarios == []

    def test_unknown_prepay_period_is_priced(self, make_client, soap_response, primary_form):
        pricer = StubPricerClient(soap_response)
        response = make_client(pricer).post("/api/get-pricing", json=dict(primary_form, prepayPeriod="10year"))

        assert response.status_code == 200
        assert response.json()["success"] is True
        assert pricer.scenarios[0].prepay_period.value == "3year"

    def test_body_must_be_object(self, make_client):
        response = make_client(StubPricerClient()).post("/api/get-pricing", json=["not", "an", "object"])
        assert response.status_code == 400


class TestValidateScenario:

    def test_returns_errors_and_warnings(self, make_client, primary_form):
        response = make_client(StubPricerClient()).post(
            "/api/validate-scenario", json=dict(primary_form, creditScore="600")
        )

        body = response.json()
        assert body["is_valid"] is False
        assert "Credit score must be 620-999" in body["errors"]
        assert "Better rates available with 680+ credit score" in body["warnings"]


class TestZipEndpoint:

    def test_known_zip(self, make_client):
        response = make_client(StubPricerClient()).get("/api/zip/10001")

        assert response.status_code == 200
        assert response.json() == {"zip": "10001", "city": "New York", "county": "New York", "state": "NY"}

    def test_invalid_zip(self, make_client):
        assert make_client(StubPricerClient()).get("/api/zip/12").status_code == 404


class TestPricingHistory:

    def test_history_and_stats(self, make_client, soap_response, primary_form):
        client = make_client(StubPricerClient(soap_response))
        client.post("/api/get-pricing", json=primary_form)
        client.post("/api/get-pricing", json=primary_form)

        entries = client.get("/api/pricing-history").json()["entries"]
        assert len(entries) == 2
        assert entries[0]["target_pricing"]["rate"] == 6.875

        entry = client.get(f"/api/pricing-history/{entries[0]['id']}").json()
        assert entry["id"] == entries[0]["id"]

        stats = client.get("/api/pricing-history/stats").json()
        assert stats["total_queries"] == 2
        assert stats["success_rate"] == 100

        assert client.delete("/api/pricing-history").json() == {"status": "cleared"}
        assert client.get("/api/pricing-history").json() == {"entries": []}

    def test_unknown_entry(self, make_client):
        assert make_client(StubPricerClient()).get("/api/pricing-history/missing").status_code == 404
