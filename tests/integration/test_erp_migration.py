"""
Integration Tests — ERP Migration Endpoints

Covers:
- GET  /api/v1/integrations/erp/inventories/{id}/validate
- POST /api/v1/integrations/erp/inventories/{id}/migrate against a mocked ERP
- one-way migrated flag, ERP failure (502) and retry
"""

import json

import httpx
import pytest
from fastapi.testclient import TestClient

from stocktake.dependencies import get_erp_client
from stocktake.main import app
from stocktake.services.erp_client import ERPClient

BASE = "/api/v1/inventories"
ERP = "/api/v1/integrations/erp/inventories"


class FakeERP:
    """Records every batch and answers with the configured status/body."""

    def __init__(self):
        self.requests = []
        self.status_code = 200
        self.body = {"success": True}

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(json.loads(request.content))
        return httpx.Response(self.status_code, json=self.body)


@pytest.fixture
def erp(client: TestClient):
    fake = FakeERP()
    app.dependency_overrides[get_erp_client] = lambda: ERPClient(
        base_url="http://erp.test",
        token="test-token",
        transport=httpx.MockTransport(fake.handler),
    )
    yield fake
    app.dependency_overrides.pop(get_erp_client, None)


def _closed_inventory(client: TestClient, headers: dict, first: int, second: int) -> int:
    resp = client.post(BASE, json={"code": "INV-ERP"}, headers=headers)
    assert resp.status_code == 201, resp.text
    inventory_id = resp.json()["id"]
    for stage, qty in ((1, first), (2, second)):
        client.post(f"{BASE}/{inventory_id}/start-count", headers=headers)
        units = client.get(f"{BASE}/{inventory_id}/stages/{stage}/progress", headers=headers).json()["unresolved"]
        for unit in units:
            if unit["unit_kind"] == "quantity_line":
                payload = {"stage": stage, "stock_line_id": unit["unit_id"], "quantity": qty}
            else:
                payload = {"stage": stage, "serial_unit_id": unit["unit_id"], "found": True}
            assert client.post(f"{BASE}/{inventory_id}/counts", json=payload, headers=headers).status_code == 200
        assert client.post(f"{BASE}/{inventory_id}/stages/{stage}/close", headers=headers).status_code == 200
    assert client.post(f"{BASE}/{inventory_id}/close", headers=headers).status_code == 200
    return inventory_id


class TestERPMigration:
    def test_validate_then_migrate(self, client: TestClient, admin_headers: dict, erp: FakeERP, live_stock):
        inventory_id = _closed_inventory(client, admin_headers, 12, 12)

        check = client.get(f"{ERP}/{inventory_id}/validate", headers=admin_headers)
        assert check.status_code == 200
        assert check.json()["can_migrate"] is True
        assert check.json()["items_to_migrate"] == 1
        assert float(check.json()["total_adjustment_value"]) == 5.0
        assert erp.requests == []

        resp = client.post(f"{ERP}/{inventory_id}/migrate", headers=admin_headers)
        assert resp.status_code == 200, resp.text
        assert resp.json()["adjustment_count"] == 1
        assert erp.requests == [[{
            "productCode": "BOLT-10",
            "locationId": live_stock["location_a"].id,
            "finalQuantity": 12.0,
            "inventoryCode": "INV-ERP",
        }]]

        inv = client.get(f"{BASE}/{inventory_id}", headers=admin_headers).json()
        assert inv["erp_migrated"] is True
        assert inv["erp_migrated_at"] is not None

        summary = client.get(f"{BASE}/{inventory_id}/serial-discrepancies/summary", headers=admin_headers).json()
        assert summary["by_status"]["pending"] == 0
        assert summary["by_status"]["migrated"] == summary["total_discrepancies"]

    def test_second_migration_is_rejected(self, client: TestClient, admin_headers: dict, erp: FakeERP, live_stock):
        inventory_id = _closed_inventory(client, admin_headers, 12, 12)
        assert client.post(f"{ERP}/{inventory_id}/migrate", headers=admin_headers).status_code == 200

        for _ in range(2):
            again = client.post(f"{ERP}/{inventory_id}/migrate", headers=admin_headers)
            assert again.status_code == 409
            assert "already migrated" in again.json()["error"]["message"]
        assert len(erp.requests) == 1

        reprocess = client.post(f"{BASE}/{inventory_id}/serial-discrepancies/process", headers=admin_headers)
        assert reprocess.status_code == 409

    def test_erp_rejection_is_retryable(self, client: TestClient, admin_headers: dict, erp: FakeERP, live_stock):
        inventory_id = _closed_inventory(client, admin_headers, 12, 12)
        erp.status_code = 503
        erp.body = {"success": False, "message": "maintenance"}

        failed = client.post(f"{ERP}/{inventory_id}/migrate", headers=admin_headers)
        assert failed.status_code == 502
        assert failed.json()["error"]["code"] == "EXTERNAL_FAILURE"
        assert client.get(f"{BASE}/{inventory_id}", headers=admin_headers).json()["erp_migrated"] is False

        erp.status_code = 200
        erp.body = {"success": True}
        retry = client.post(f"{ERP}/{inventory_id}/migrate", headers=admin_headers)
        assert retry.status_code == 200
        assert len(erp.requests) == 2

    def test_counter_cannot_migrate(
        self, client: TestClient, admin_headers: dict, counter_headers: dict, erp: FakeERP, live_stock,
    ):
        inventory_id = _closed_inventory(client, admin_headers, 12, 12)

        check = client.get(f"{ERP}/{inventory_id}/validate", headers=counter_headers).json()
        assert check["can_migrate"] is False

        resp = client.post(f"{ERP}/{inventory_id}/migrate", headers=counter_headers)
        assert resp.status_code == 403
        assert erp.requests == []

    def test_open_inventory_cannot_migrate(self, client: TestClient, admin_headers: dict, erp: FakeERP, live_stock):
        inventory_id = client.post(BASE, json={"code": "INV-OPEN"}, headers=admin_headers).json()["id"]

        resp = client.post(f"{ERP}/{inventory_id}/migrate", headers=admin_headers)

        assert resp.status_code == 409
        assert resp.json()["error"]["code"] == "STATE_ERROR"

    def test_unconfigured_erp_fails_closed(self, client: TestClient, admin_headers: dict, live_stock, monkeypatch):
        from stocktake.config import settings

        monkeypatch.setattr(settings, "ERP_BASE_URL", "")
        inventory_id = _closed_inventory(client, admin_headers, 12, 12)

        resp = client.post(f"{ERP}/{inventory_id}/migrate", headers=admin_headers)

        assert resp.status_code == 502
        assert client.get(f"{BASE}/{inventory_id}", headers=admin_headers).json()["erp_migrated"] is False
