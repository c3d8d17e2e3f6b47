"""HTTP surface through FastAPI's TestClient with test-bound engines."""

from decimal import Decimal

import pytest
from fastapi.testclient import TestClient

from payroute.rails.registry import RailRegistry
from payroute.services.router import main
from payroute.services.router.execution import ExecutionEngine


class AlwaysSucceeds:
    def random(self) -> float:
        return 0.0


@pytest.fixture
def client(session_factory, quote_engine, clock):
    engine = ExecutionEngine(session_factory, rng_factory=AlwaysSucceeds, clock=clock, rail_timeout_seconds=0)
    main.app.dependency_overrides[main.get_session_factory] = lambda: session_factory
    main.app.dependency_overrides[main.get_quote_engine] = lambda: quote_engine
    main.app.dependency_overrides[main.get_execution_engine] = lambda: engine
    yield TestClient(main.app)
    main.app.dependency_overrides.clear()


def create_quote(client, source="USD", target="EUR", amount="1000"):
    return client.post(
        "/api/quotes",
        json={"source_currency": source, "target_currency": target, "source_amount": amount},
        headers={"x-trace-id": "trace-test"},
    )


def test_create_and_fetch_quote(client):
    resp = create_quote(client)
    assert resp.status_code == 200
    assert resp.headers["x-trace-id"] == "trace-test"
    body = resp.json()
    assert body["status"] == "active"
    assert Decimal(body["target_amount"]) == Decimal("850")
    assert body["routes"][0]["method_name"] == "Same-Day Wire"

    fetched = client.get(f"/api/quotes/{body['quote_id']}")
    assert fetched.status_code == 200
    assert len(fetched.json()["routes"]) == len(body["routes"])


@pytest.mark.parametrize(
    ("payload", "status_code", "code"),
    [
        ({"source_currency": "XXX", "target_currency": "EUR", "source_amount": "10"}, 400, "invalid_currency"),
        ({"source_currency": "USD", "target_currency": "EUR", "source_amount": "0"}, 400, "invalid_amount"),
        ({"source_currency": "USD", "target_currency": "USDC", "source_amount": "10"}, 422, "no_route_available"),
    ],
)
def test_quote_errors(client, payload, status_code, code):
    resp = client.post("/api/quotes", json=payload)

    assert resp.status_code == status_code
    assert resp.json()["detail"]["code"] == code


def test_huge_amount_is_client_error(client):
    resp = client.post("/api/quotes", json={"source_currency": "USD", "target_currency": "EUR", "source_amount": "1e30"})

    assert resp.status_code == 422
    assert resp.json()["detail"]["code"] == "no_route_available"


def test_unknown_quote_is_404(client):
    assert client.get("/api/quotes/missing").status_code == 404


def test_execute_once_then_conflict(client):
    quote = create_quote(client).json()
    payload = {"quote_id": quote["quote_id"], "payment_method_id": quote["routes"][0]["payment_method_id"]}

    first = client.post("/api/execute", json=payload)
    assert first.status_code == 200
    assert first.json()["status"] == "processing"

    second = client.post("/api/execute", json=payload)
    assert second.status_code == 409
    assert second.json()["detail"]["code"] == "quote_not_usable"

    transaction = client.get(f"/api/transactions/{first.json()['transaction_id']}")
    assert transaction.status_code == 200
    assert transaction.json()["status"] == "processing"
    assert transaction.json()["quote_id"] == quote["quote_id"]


def test_execute_unknown_route_is_404(client):
    quote = create_quote(client).json()
    quoted = {route["payment_method_id"] for route in quote["routes"]}
    other = next(i for i in range(1, 100) if i not in quoted)

    resp = client.post("/api/execute", json={"quote_id": quote["quote_id"], "payment_method_id": other})
    assert resp.status_code == 404
    assert resp.json()["detail"]["code"] == "route_not_found"


def test_integrity_error_hides_detail(client, session_factory, clock):
    main.app.dependency_overrides[main.get_execution_engine] = lambda: ExecutionEngine(
        session_factory, registry=RailRegistry(factories={}), clock=clock
    )
    quote = create_quote(client).json()

    resp = client.post(
        "/api/execute",
        json={"quote_id": quote["quote_id"], "payment_method_id": quote["routes"][0]["payment_method_id"]},
    )
    assert resp.status_code == 500
    assert resp.json()["detail"] == {"code": "integrity_error", "message": "internal routing error"}


def test_execute_rejects_malformed_request(client):
    assert client.post("/api/execute", json={"quote_id": "", "payment_method_id": 0}).status_code == 422


def test_unknown_transaction_is_404(client):
    assert client.get("/api/transactions/missing").status_code == 404


def test_reference_data(client):
    currencies = client.get("/api/currencies").json()
    methods = client.get("/api/payment-methods").json()

    assert {c["code"] for c in currencies} >= {"USD", "EUR", "BTC", "USDC"}
    assert len(methods) == 12
    assert next(m for m in methods if m["name"] == "SEPA Instant")["source_currencies"] == ["EUR"]


def test_health_and_metrics(client):
    assert client.get("/health").json() == {"ok": True}
    metrics = client.get("/metrics")
    assert metrics.status_code == 200
    assert "quote_requests_total" in metrics.text
