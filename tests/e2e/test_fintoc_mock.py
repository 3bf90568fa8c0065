"""
E2E tests for bank sync against the mock Fintoc server.

These tests require the mock server to be running:
    uvicorn mock.fintoc_server.main:app --port 8001

The demo link exposes three accounts; acc_broken always answers 500 and
must be skipped without losing the movements of the other two.
"""

import os
import pytest
from fastapi.testclient import TestClient
from budget_gateway.api.dependencies import get_movement_source
from budget_gateway.infrastructure.clients.fintoc import FintocClient

MOCK_URL = os.environ.get("FINTOC_MOCK_URL", "http://localhost:8001/v1")
DEMO_LINK = "link_demo_token"


@pytest.fixture
def live_client(client: TestClient) -> TestClient:
    client.app.dependency_overrides[get_movement_source] = lambda: FintocClient(base_url=MOCK_URL, api_key="sk_mock")
    return client


@pytest.mark.integration
def test_webhook_sync_skips_broken_account(live_client: TestClient):
    response = live_client.post(
        "/v1/links/webhook",
        params={"principal_id": "demo"},
        json={"link_token": DEMO_LINK},
    )

    assert response.status_code == 200
    assert response.json()["synced"] == 6

    rows = live_client.get("/v1/transactions", params={"principal_id": "demo"}).json()["transactions"]
    by_id = {t["external_id"]: t for t in rows}
    assert set(by_id) == {"mov_1", "mov_2", "mov_3", "mov_4", "mov_5", "mov_6"}
    assert by_id["mov_5"]["description"] == "Sin descripción"
    assert by_id["mov_6"]["direction"] == "credit"


@pytest.mark.integration
def test_full_budget_flow(live_client: TestClient):
    live_client.post("/v1/links/webhook", params={"principal_id": "demo"}, json={"link_token": DEMO_LINK})
    live_client.post("/v1/transactions/classify-all", params={"principal_id": "demo"})

    summary = live_client.get("/v1/summary", params={"principal_id": "demo"}).json()

    budgets = {b["category"]: b for b in summary["budgets"]}
    assert budgets["Supermercado (Comida)"]["spent"] == 45_990
    assert budgets["Cuentas Casa"]["spent"] == 38_200
    assert summary["category_breakdown"]["Por Definir"] == 23_500


@pytest.mark.integration
def test_unknown_link_is_provider_error(live_client: TestClient):
    response = live_client.post(
        "/v1/links/webhook",
        params={"principal_id": "demo"},
        json={"link_token": "link_missing"},
    )

    assert response.status_code == 503


@pytest.mark.integration
def test_link_intent_against_mock(live_client: TestClient):
    response = live_client.post("/v1/links/intent", params={"principal_id": "demo"})

    assert response.status_code == 200
    assert response.json()["widget_token"] == "li_mock_sec_widget"
