"""
Integration Tests — Count Submission Endpoint

Covers:
- POST /api/v1/inventories/{id}/counts validation (400) and state (409) errors
- last-writer-wins by counted_at
- stage-3 assignment and the stage-4 audit window
"""

from fastapi.testclient import TestClient

BASE = "/api/v1/inventories"


def _open_inventory(client: TestClient, headers: dict, code: str = "INV-C1") -> int:
    resp = client.post(BASE, json={"code": code}, headers=headers)
    assert resp.status_code == 201, resp.text
    inventory_id = resp.json()["id"]
    assert client.post(f"{BASE}/{inventory_id}/start-count", headers=headers).status_code == 200
    return inventory_id


def _line_id(client: TestClient, headers: dict, inventory_id: int) -> int:
    lines = client.get(f"{BASE}/{inventory_id}/reconciliation", headers=headers).json()["items"]
    return lines[0]["stock_line_id"]


def _submit(client, headers, inventory_id, **payload):
    return client.post(f"{BASE}/{inventory_id}/counts", json=payload, headers=headers)


def _finish_stage(client, headers, inventory_id, stage, quantity, serials):
    line_id = _line_id(client, headers, inventory_id)
    assert _submit(client, headers, inventory_id, stage=stage, stock_line_id=line_id, quantity=quantity).status_code == 200
    for serial, found in serials.items():
        assert _submit(client, headers, inventory_id, stage=stage, serial_number=serial, found=found).status_code == 200
    resp = client.post(f"{BASE}/{inventory_id}/stages/{stage}/close", headers=headers)
    assert resp.status_code == 200, resp.text
    return resp.json()


class TestCountSubmission:
    def test_counter_submits_quantity(self, client: TestClient, admin_headers: dict, counter_headers: dict, live_stock):
        inventory_id = _open_inventory(client, admin_headers)
        line_id = _line_id(client, admin_headers, inventory_id)

        resp = _submit(client, counter_headers, inventory_id, stage=1, stock_line_id=line_id, quantity="9.5")

        assert resp.status_code == 200
        data = resp.json()
        assert data["unit_kind"] == "quantity_line"
        assert float(data["quantity"]) == 9.5
        assert data["applied"] is True

        progress = client.get(f"{BASE}/{inventory_id}/stages/1/progress", headers=counter_headers).json()
        assert progress["assigned"] == 4
        assert progress["observed"] == 1
        assert progress["pending"] == 3

    def test_viewer_cannot_submit(self, client: TestClient, admin_headers: dict, viewer_headers: dict, live_stock):
        inventory_id = _open_inventory(client, admin_headers)
        line_id = _line_id(client, admin_headers, inventory_id)

        assert _submit(client, viewer_headers, inventory_id, stage=1, stock_line_id=line_id, quantity=1).status_code == 403

    def test_invalid_values_are_rejected(self, client: TestClient, admin_headers: dict, live_stock):
        inventory_id = _open_inventory(client, admin_headers)
        line_id = _line_id(client, admin_headers, inventory_id)

        negative = _submit(client, admin_headers, inventory_id, stage=1, stock_line_id=line_id, quantity=-3)
        assert negative.status_code == 400
        assert negative.json()["error"]["code"] == "VALIDATION_ERROR"

        unknown = _submit(client, admin_headers, inventory_id, stage=1, stock_line_id=9999, quantity=3)
        assert unknown.status_code == 400

        no_target = _submit(client, admin_headers, inventory_id, stage=1, quantity=3)
        assert no_target.status_code == 422

        progress = client.get(f"{BASE}/{inventory_id}/stages/1/progress", headers=admin_headers).json()
        assert progress["observed"] == 0

    def test_closed_stage_rejects_submissions(self, client: TestClient, admin_headers: dict, live_stock):
        inventory_id = _open_inventory(client, admin_headers)
        _finish_stage(client, admin_headers, inventory_id, 1, 10, {"SN-42": True, "SN-43": True, "SN-99": False})
        line_id = _line_id(client, admin_headers, inventory_id)

        late = _submit(client, admin_headers, inventory_id, stage=1, stock_line_id=line_id, quantity=11)

        assert late.status_code == 409
        assert late.json()["error"]["code"] == "STATE_ERROR"

    def test_older_resubmission_does_not_overwrite(self, client: TestClient, admin_headers: dict, live_stock):
        inventory_id = _open_inventory(client, admin_headers)
        line_id = _line_id(client, admin_headers, inventory_id)

        newer = _submit(
            client, admin_headers, inventory_id,
            stage=1, stock_line_id=line_id, quantity=4, counted_at="2026-03-01T10:30:00Z",
        )
        older = _submit(
            client, admin_headers, inventory_id,
            stage=1, stock_line_id=line_id, quantity=6, counted_at="2026-03-01T10:00:00Z",
        )

        assert newer.json()["applied"] is True
        assert older.status_code == 200
        assert older.json()["applied"] is False
        assert float(older.json()["quantity"]) == 4

    def test_stage3_only_accepts_assigned_units(self, client: TestClient, admin_headers: dict, live_stock):
        inventory_id = _open_inventory(client, admin_headers)
        serials = {"SN-42": True, "SN-43": True, "SN-99": False}
        _finish_stage(client, admin_headers, inventory_id, 1, 7, serials)
        client.post(f"{BASE}/{inventory_id}/start-count", headers=admin_headers)
        result = _finish_stage(client, admin_headers, inventory_id, 2, 8, serials)
        assert result["new_status"] == "count3_required"
        client.post(f"{BASE}/{inventory_id}/start-count", headers=admin_headers)

        settled = _submit(client, admin_headers, inventory_id, stage=3, serial_number="SN-42", found=True)
        assert settled.status_code == 409

        line_id = _line_id(client, admin_headers, inventory_id)
        skipped = _submit(client, admin_headers, inventory_id, stage=3, stock_line_id=line_id, skipped=True)
        assert skipped.status_code == 400

        assert _submit(client, admin_headers, inventory_id, stage=3, stock_line_id=line_id, quantity=9).status_code == 200

    def test_stage4_audit_window_opens_after_stage2(self, client: TestClient, admin_headers: dict, live_stock):
        inventory_id = _open_inventory(client, admin_headers)
        serials = {"SN-42": False, "SN-43": True, "SN-99": False}

        early = _submit(client, admin_headers, inventory_id, stage=4, serial_number="SN-42", found=True)
        assert early.status_code == 409

        _finish_stage(client, admin_headers, inventory_id, 1, 10, serials)
        client.post(f"{BASE}/{inventory_id}/start-count", headers=admin_headers)
        result = _finish_stage(client, admin_headers, inventory_id, 2, 10, serials)
        assert result["new_status"] == "count2_closed"

        audit = _submit(
            client, admin_headers, inventory_id,
            stage=4, serial_number="SN-42", found=True, found_location_id=live_stock["location_b"].id,
        )
        assert audit.status_code == 200
        assert audit.json()["stage"] == 4

        progress = client.get(f"{BASE}/{inventory_id}/stages/4/progress", headers=admin_headers).json()
        assert progress["assigned"] == 4
        assert progress["unresolved"] != []

    def test_audit_count_overrides_final_quantity(self, client: TestClient, admin_headers: dict, live_stock):
        inventory_id = _open_inventory(client, admin_headers)
        serials = {"SN-42": True, "SN-43": True, "SN-99": False}
        _finish_stage(client, admin_headers, inventory_id, 1, 10, serials)
        client.post(f"{BASE}/{inventory_id}/start-count", headers=admin_headers)
        _finish_stage(client, admin_headers, inventory_id, 2, 10, serials)
        line_id = _line_id(client, admin_headers, inventory_id)

        audit = _submit(client, admin_headers, inventory_id, stage=4, stock_line_id=line_id, quantity=7)
        assert audit.status_code == 200, audit.text
        assert audit.json()["unit_kind"] == "quantity_line"

        line = client.get(f"{BASE}/{inventory_id}/reconciliation", headers=admin_headers).json()["items"][0]
        assert float(line["count4"]) == 7
        assert float(line["final_quantity"]) == 7
        assert line["stage_used"] == "count4"
        assert line["is_divergent"] is True
        assert float(line["divergence_quantity"]) == -3

        skipped = _submit(client, admin_headers, inventory_id, stage=4, stock_line_id=line_id, skipped=True)
        assert skipped.status_code == 400

        assert client.post(f"{BASE}/{inventory_id}/close", headers=admin_headers).status_code == 200

    def test_unfound_serial_cannot_carry_a_location(self, client: TestClient, admin_headers: dict, live_stock):
        inventory_id = _open_inventory(client, admin_headers)

        resp = _submit(
            client, admin_headers, inventory_id,
            stage=1, serial_number="SN-42", found=False, found_location_id=live_stock["location_b"].id,
        )

        assert resp.status_code == 400
        assert resp.json()["error"]["code"] == "VALIDATION_ERROR"
        progress = client.get(f"{BASE}/{inventory_id}/stages/1/progress", headers=admin_headers).json()
        assert progress["observed"] == 0
