"""Integration tests for API endpoints"""

import httpx
import pytest
from fastapi.testclient import TestClient
from budget_gateway.api.dependencies import get_reasoning_service, get_store
from budget_gateway.config import settings
from budget_gateway.domain.exceptions import StoreConflict
from budget_gateway.services.classifier import MANUAL_RATIONALE


@pytest.fixture
def synced_client(client: TestClient) -> TestClient:
    """Client whose principal already has the sample movements stored"""
    response = client.post(
        "/v1/links/webhook",
        params={"principal_id": "p1"},
        json={"link_token": "link_1", "holder_id": "Banco Estado"},
    )
    assert response.status_code == 200
    return client


def transactions_by_external_id(client: TestClient) -> dict:
    response = client.get("/v1/transactions", params={"principal_id": "p1"})
    return {t["external_id"]: t for t in response.json()["transactions"]}


def test_health_endpoint(client: TestClient):
    """Test health check endpoint"""
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "ok"


def test_metrics_endpoint(client: TestClient):
    """Test Prometheus metrics endpoint"""
    response = client.get("/metrics")
    assert response.status_code == 200
    assert "budget_classification_total" in response.text


def test_request_id_is_propagated(client: TestClient):
    response = client.get("/health", headers={"X-Request-ID": "req-123"})

    assert response.headers["X-Request-ID"] == "req-123"


def test_link_intent_returns_widget_token(client: TestClient, fake_source):
    response = client.post("/v1/links/intent", params={"principal_id": "p1"})

    assert response.status_code == 200
    assert response.json() == {"widget_token": "widget_token_test"}
    assert fake_source.calls[0] == f"intent:{settings.app_url.rstrip('/')}/v1/links/webhook?principal_id=p1"


def test_link_intent_requires_principal(client: TestClient):
    response = client.post("/v1/links/intent")

    assert response.status_code == 422


def test_provider_callback_to_registered_webhook_syncs(client: TestClient, fake_source):
    """The provider posts the link token to exactly the URL it was given"""
    client.post("/v1/links/intent", params={"principal_id": "p1"})
    registered = httpx.URL(fake_source.calls[0].removeprefix("intent:"))

    response = client.post(registered.raw_path.decode(), json={"link_token": "link_1"})

    assert response.status_code == 200
    assert response.json() == {"received": True, "synced": 6}
    assert len(client.get("/v1/transactions", params={"principal_id": "p1"}).json()["transactions"]) == 6


def test_webhook_registers_link_and_syncs(client: TestClient, fake_source):
    """Test POST /v1/links/webhook stores all sample movements"""
    response = client.post(
        "/v1/links/webhook",
        params={"principal_id": "p1"},
        json={"link_token": "link_1"},
    )

    assert response.status_code == 200
    assert response.json() == {"received": True, "synced": 6}
    assert fake_source.calls[0] == "accounts:link_1"


def test_webhook_rejects_empty_link_token(client: TestClient):
    response = client.post("/v1/links/webhook", params={"principal_id": "p1"}, json={"link_token": ""})

    assert response.status_code == 422


def test_sync_reuses_latest_link(synced_client: TestClient, fake_source):
    response = synced_client.post("/v1/sync", params={"principal_id": "p1"})

    assert response.status_code == 200
    assert response.json() == {"principal_id": "p1", "synced": 6}
    assert len(transactions_by_external_id(synced_client)) == 6


def test_sync_without_link_returns_404(client: TestClient):
    response = client.post("/v1/sync", params={"principal_id": "p1"})

    assert response.status_code == 404


def test_sync_with_provider_down_returns_503(client: TestClient, fake_source):
    fake_source.accounts_error = True

    response = client.post("/v1/links/webhook", params={"principal_id": "p1"}, json={"link_token": "link_1"})

    assert response.status_code == 503


def test_list_transactions(synced_client: TestClient):
    """Test GET /v1/transactions returns normalized rows"""
    rows = transactions_by_external_id(synced_client)

    assert rows["mov_2"]["amount"] == 45_990
    assert rows["mov_2"]["direction"] == "debit"
    assert rows["mov_2"]["value_date"] == "2024-03-02"
    assert rows["mov_2"]["category"] is None
    assert rows["mov_2"]["review_state"] == "pending"


def test_list_transactions_for_unknown_principal_is_empty(client: TestClient):
    response = client.get("/v1/transactions", params={"principal_id": "nobody"})

    assert response.status_code == 200
    assert response.json()["transactions"] == []


def test_classify_all_endpoint(synced_client: TestClient):
    """Test POST /v1/transactions/classify-all without a reasoning service"""
    response = synced_client.post("/v1/transactions/classify-all", params={"principal_id": "p1"})

    assert response.status_code == 200
    data = response.json()
    assert len(data["classified"]) == 6
    assert data["failed"] == []

    rows = transactions_by_external_id(synced_client)
    assert rows["mov_1"]["category"] == "Sueldo"
    assert rows["mov_1"]["review_state"] == "confirmed"
    assert rows["mov_4"]["category"] == "Por Definir"
    assert rows["mov_4"]["review_state"] == "pending"


def test_classify_single_transaction(synced_client: TestClient):
    target = transactions_by_external_id(synced_client)["mov_3"]

    response = synced_client.post(f"/v1/transactions/{target['id']}/classify")

    assert response.status_code == 200
    assert response.json()["category"] == "Cuentas Casa"
    assert response.json()["review_state"] == "confirmed"


def test_classify_unknown_transaction_returns_404(client: TestClient):
    response = client.post("/v1/transactions/999/classify")

    assert response.status_code == 404


def test_classify_confirmed_transaction_returns_409(synced_client: TestClient):
    target = transactions_by_external_id(synced_client)["mov_1"]
    synced_client.post(f"/v1/transactions/{target['id']}/classify")

    response = synced_client.post(f"/v1/transactions/{target['id']}/classify")

    assert response.status_code == 409


def test_classify_with_failing_reasoning_returns_502(synced_client: TestClient, make_reasoning):
    synced_client.app.dependency_overrides[get_reasoning_service] = lambda: make_reasoning(fail=True)
    target = transactions_by_external_id(synced_client)["mov_6"]

    response = synced_client.post(f"/v1/transactions/{target['id']}/classify")

    assert response.status_code == 502
    assert transactions_by_external_id(synced_client)["mov_6"]["category"] is None


def test_manual_category_override(synced_client: TestClient):
    """Test PUT /v1/transactions/{id}/category confirms the user's choice"""
    target = transactions_by_external_id(synced_client)["mov_2"]

    response = synced_client.put(
        f"/v1/transactions/{target['id']}/category",
        json={"category": "Entretenimiento"},
    )

    assert response.status_code == 200
    assert response.json() == {
        "transaction_id": target["id"],
        "category": "Entretenimiento",
        "review_state": "confirmed",
        "rationale": MANUAL_RATIONALE,
    }


def test_manual_category_outside_closed_set_returns_422(synced_client: TestClient):
    target = transactions_by_external_id(synced_client)["mov_2"]

    response = synced_client.put(f"/v1/transactions/{target['id']}/category", json={"category": "Viajes"})

    assert response.status_code == 422
    assert transactions_by_external_id(synced_client)["mov_2"]["category"] is None


def test_manual_category_unknown_transaction_returns_404(client: TestClient):
    response = client.put("/v1/transactions/999/category", json={"category": "Sueldo"})

    assert response.status_code == 404


def test_manual_category_store_failure_returns_500(synced_client: TestClient, store, monkeypatch):
    def broken_update(*args):
        raise StoreConflict("Database write failed: database is locked")

    monkeypatch.setattr(store, "update_transaction", broken_update)
    synced_client.app.dependency_overrides[get_store] = lambda: store
    target = transactions_by_external_id(synced_client)["mov_2"]

    response = synced_client.put(f"/v1/transactions/{target['id']}/category", json={"category": "Entretenimiento"})

    assert response.status_code == 500
    assert transactions_by_external_id(synced_client)["mov_2"]["category"] is None


def test_summary_before_classification(synced_client: TestClient):
    response = synced_client.get("/v1/summary", params={"principal_id": "p1"})

    assert response.status_code == 200
    data = response.json()
    assert data["net_savings"] == 1_833_810
    assert data["category_breakdown"] == {"Por Definir": 116_190}
    assert all(b["spent"] == 0 for b in data["budgets"])


def test_summary_after_classification(synced_client: TestClient):
    """Test GET /v1/summary reflects classified spending against configured budgets"""
    synced_client.post("/v1/transactions/classify-all", params={"principal_id": "p1"})

    data = synced_client.get("/v1/summary", params={"principal_id": "p1"}).json()

    budgets = {b["category"]: b for b in data["budgets"]}
    assert data["category_breakdown"] == {
        "Supermercado (Comida)": 45_990,
        "Cuentas Casa": 38_200,
        "Por Definir": 32_000,
    }
    assert budgets["Cuentas Casa"]["spent"] == 38_200
    assert budgets["Cuentas Casa"]["over_budget"] is False
    assert budgets["Entretenimiento"]["spent"] == 0
    assert data["savings"]["percent_achieved"] == 183
    assert data["savings"]["progress_ratio"] == 1.0


def test_recommendations_without_reasoning_returns_503(synced_client: TestClient):
    response = synced_client.post("/v1/recommendations", params={"principal_id": "p1"})

    assert response.status_code == 503


def test_recommendations_with_reasoning(synced_client: TestClient, make_reasoning):
    reasoning = make_reasoning(
        [{"title": "Cafe en casa", "description": "Menos cafeterias", "estimated_saving": "$10.000"}]
    )
    synced_client.app.dependency_overrides[get_reasoning_service] = lambda: reasoning

    response = synced_client.post("/v1/recommendations", params={"principal_id": "p1"})

    assert response.status_code == 200
    assert response.json()["recommendations"][0]["title"] == "Cafe en casa"
