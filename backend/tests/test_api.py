from decimal import Decimal

import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from wms.core.deps import get_inventory_service
from wms.main import app


@pytest_asyncio.fixture
async def client(service):
    app.dependency_overrides[get_inventory_service] = lambda: service
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client
    app.dependency_overrides.clear()


async def test_health(client):
    r = await client.get("/health")
    assert r.status_code == 200
    assert r.json() == {"status": "ok"}


async def test_stock_in_then_query(client, world):
    r = await client.post(
        "/api/documents/stock_in/submit",
        json={
            "header": {"warehouse_id": world.wh1.id},
            "lines": [{"material_id": world.m.id, "unit_id": world.box.id, "quantity": "2",
                       "location_id": world.l2.id}],
        },
    )
    assert r.status_code == 200, r.text
    body = r.json()
    assert body["ok"] is True
    assert body["status"] == "completed"
    assert Decimal(body["applied_deltas"][0]["quantity_change"]) == 24

    r = await client.get(f"/api/stocks/on-hand?material_id={world.m.id}")
    assert r.status_code == 200
    assert Decimal(r.json()["quantity"]) == 24

    r = await client.get(f"/api/stocks/flows?document_kind=stock_in&document_id={body['document_id']}")
    assert r.status_code == 200
    flows = r.json()
    assert len(flows) == 1
    assert flows[0]["type_display"] == "入库"


async def test_document_lifecycle(client, world):
    r = await client.post(
        "/api/documents/sales",
        json={
            "header": {"customer_id": world.customer.id, "warehouse_id": world.wh1.id},
            "lines": [{"material_id": world.m.id, "quantity": 3, "unit_price": 2.5}],
        },
    )
    assert r.status_code == 201, r.text
    draft = r.json()
    assert draft["status_display"] == "草稿"
    assert Decimal(draft["total_amount"]) == Decimal("7.5")

    r = await client.post(f"/api/documents/sales/{draft['id']}/approve")
    assert r.status_code == 200
    assert r.json()["status"] == "approved"

    r = await client.post(f"/api/documents/sales/{draft['id']}/approve")
    assert r.status_code == 409
    assert r.json()["detail"]["code"] == "INVALID_TRANSITION"

    # 没有库存
    r = await client.post(
        "/api/documents/sales/submit",
        json={"header": {"document_id": draft["id"], "location_id": world.l2.id}},
    )
    assert r.status_code == 409
    assert r.json()["detail"]["code"] == "INSUFFICIENT_STOCK"
    assert r.json()["detail"]["line_no"] == 1

    r = await client.post(f"/api/documents/sales/{draft['id']}/cancel")
    assert r.status_code == 200
    assert r.json()["status_display"] == "已取消"

    r = await client.get(f"/api/documents/sales/{draft['id']}")
    assert r.status_code == 200
    assert r.json()["status"] == "cancelled"


async def test_error_status_codes(client, world):
    r = await client.get("/api/documents/transfer/999")
    assert r.status_code == 404
    assert r.json()["detail"]["code"] == "NOT_FOUND"

    r = await client.post(
        "/api/documents/stock_out/submit",
        json={
            "header": {"warehouse_id": world.wh1.id},
            "lines": [{"material_id": world.m.id, "quantity": "-1", "location_id": world.l1.id}],
        },
    )
    assert r.status_code == 400
    assert r.json()["detail"]["line_no"] == 1

    r = await client.get("/api/documents/unknown/1")
    assert r.status_code == 422


async def test_alert_endpoints(client, world):
    r = await client.get(f"/api/alerts/{world.m.id}")
    assert r.status_code == 200
    assert r.json()["level"] == "below_min"

    r = await client.get("/api/alerts/")
    assert r.status_code == 200
    assert r.json()[str(world.m2.id)] == "normal"

    r = await client.get("/api/alerts/scheduler")
    assert r.status_code == 200
    assert r.json()["running"] is False
