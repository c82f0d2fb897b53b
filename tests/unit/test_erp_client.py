import json

import httpx
import pytest

from stocktake.core.exceptions import ExternalServiceException
from stocktake.schemas.integration import ERPStockUpdateItem
from stocktake.services.erp_client import ERPClient

ITEMS = [ERPStockUpdateItem(product_code="BOLT-10", location_id=1, final_quantity=8.0, inventory_code="INV-1")]


def _client(handler, **kwargs):
    return ERPClient(
        base_url=kwargs.pop("base_url", "http://erp.test"),
        token=kwargs.pop("token", "secret"),
        timeout=5.0,
        transport=httpx.MockTransport(handler),
        **kwargs,
    )


def test_sends_patch_batch_with_bearer_token():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["method"] = request.method
        seen["path"] = request.url.path
        seen["auth"] = request.headers.get("Authorization")
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={"success": True, "updated": 1})

    body = _client(handler).send_stock_updates(ITEMS)

    assert body["success"] is True
    assert seen["method"] == "PATCH"
    assert seen["path"] == "/api/Estoque/atualizar-lista"
    assert seen["auth"] == "Bearer secret"
    assert seen["body"] == [
        {"productCode": "BOLT-10", "locationId": 1, "finalQuantity": 8.0, "inventoryCode": "INV-1"}
    ]


@pytest.mark.parametrize(
    "response",
    [
        httpx.Response(500, json={"success": True}),
        httpx.Response(401, json={"message": "bad token"}),
        httpx.Response(200, json={"success": False, "message": "lock timeout"}),
        httpx.Response(200, json={}),
        httpx.Response(200, json=[{"success": True}]),
        httpx.Response(200, text="OK"),
    ],
)
def test_anything_but_an_acknowledgment_is_a_failure(response):
    with pytest.raises(ExternalServiceException):
        _client(lambda request: response).send_stock_updates(ITEMS)


def test_transport_error_is_a_failure():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(ExternalServiceException) as exc_info:
        _client(handler).send_stock_updates(ITEMS)

    assert "unreachable" in exc_info.value.message


def test_unconfigured_client_never_reports_success():
    client = ERPClient(base_url="", token="")

    assert client.is_configured is False
    with pytest.raises(ExternalServiceException):
        client.send_stock_updates(ITEMS)
