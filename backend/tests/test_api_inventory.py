from __future__ import annotations


def add_item(client, headers, **fields):
    r = client.post("/inventory", json=fields, headers=headers)
    assert r.status_code == 201, r.text
    return r.json()


def test_levels_and_low_stock_order(client, owner_headers):
    add_item(client, owner_headers, name="Tote bag", quantity=40, min_quantity=10, price="12.50")
    add_item(client, owner_headers, name="Beanie", quantity=0, min_quantity=3, price="9.00")
    add_item(client, owner_headers, name="Scarf", quantity=4, price="20.00")
    add_item(client, owner_headers, name="Gloves", quantity=6, min_quantity=6, price="15.00")

    items = {i["name"]: i for i in client.get("/inventory", headers=owner_headers).json()}
    assert items["Tote bag"]["level"] == "healthy"
    assert items["Beanie"]["level"] == "out"
    assert items["Scarf"]["level"] == "low"
    assert items["Scarf"]["threshold"] == 5
    assert items["Gloves"]["level"] == "low"

    low = client.get("/inventory/low-stock", headers=owner_headers).json()
    assert [i["name"] for i in low] == ["Beanie", "Scarf", "Gloves"]

    out = client.get("/inventory", params={"level": "out"}, headers=owner_headers).json()
    assert [i["name"] for i in out] == ["Beanie"]


def test_restock_moves_item_out_of_low_stock(client, owner_headers):
    item = add_item(client, owner_headers, name="Scarf", quantity=2)
    r = client.patch(f"/inventory/{item['id']}", json={"quantity": 30}, headers=owner_headers)
    assert r.status_code == 200
    assert r.json()["level"] == "healthy"
    assert client.get("/inventory/low-stock", headers=owner_headers).json() == []


def test_duplicate_sku(client, owner_headers):
    add_item(client, owner_headers, name="Scarf", sku="SCF-1")
    r = client.post("/inventory", json={"name": "Scarf again", "sku": "SCF-1"}, headers=owner_headers)
    assert r.status_code == 409
    assert r.json()["error"] == "duplicate"


def test_delete(client, owner_headers):
    item = add_item(client, owner_headers, name="Scarf")
    assert client.delete(f"/inventory/{item['id']}", headers=owner_headers).status_code == 204
    assert client.delete(f"/inventory/{item['id']}", headers=owner_headers).status_code == 404


def test_channels_hide_credentials(client, owner_headers):
    r = client.post(
        "/channels",
        json={"name": "Main store", "type": "shopify", "api_key": "k-123", "api_secret": "s-456"},
        headers=owner_headers,
    )
    assert r.status_code == 201, r.text
    channel = r.json()
    assert "credentials" not in channel
    assert "api_secret" not in channel
    assert channel["status"] == "active"

    r = client.patch(f"/channels/{channel['id']}", json={"sync_enabled": False}, headers=owner_headers)
    assert r.json()["sync_enabled"] is False

    r = client.post(f"/channels/{channel['id']}/sync", headers=owner_headers)
    assert r.json()["last_sync_at"].startswith("2026-03-02T09:00")

    assert client.delete(f"/channels/{channel['id']}", headers=owner_headers).status_code == 204
    assert client.get("/channels", headers=owner_headers).json() == []


def test_dashboard_stats(client, owner_headers):
    add_item(client, owner_headers, name="Tote bag", quantity=4, min_quantity=10, price="12.50")
    add_item(client, owner_headers, name="Beanie", quantity=0, price="9.00")
    client.post("/orders", json={"customer_name": "Amara Okafor", "total_amount": "30"}, headers=owner_headers)

    stats = client.get("/dashboard/stats", headers=owner_headers).json()
    assert stats["orders"]["total"] == 1
    assert stats["orders"]["received"] == 1
    assert stats["returns"]["total"] == 0
    assert stats["stock"]["total_items"] == 2
    assert stats["stock"]["out"] == 1
    assert stats["stock"]["low"] == 1
    assert stats["stock"]["inventory_value"] == 50.0
