from __future__ import annotations

from datetime import date


def make_order(client, headers):
    r = client.post(
        "/orders",
        json={
            "customer_name": "Amara Okafor",
            "customer_email": "amara@example.com",
            "total_amount": "80.00",
            "shipping_address": "14 Quay St",
            "shipping_city": "Cork",
        },
        headers=headers,
    )
    assert r.status_code == 201, r.text
    return r.json()


def make_return(client, headers, **fields):
    order = make_order(client, headers)
    payload = {"order_id": order["id"], "reason": "Wrong size"}
    payload.update(fields)
    r = client.post("/returns", json=payload, headers=headers)
    assert r.status_code == 201, r.text
    return r.json()


PICKUP = {
    "carrier": "ups",
    "pickup_date": "2026-03-04",
    "pickup_time_slot": "12:00 PM - 3:00 PM",
    "contact_name": "Amara Okafor",
    "contact_phone": "+353 21 555 0101",
}


def test_create_defaults_from_order(client, owner_headers):
    ret = make_return(client, owner_headers)
    assert ret["status"] == "requested"
    assert float(ret["refund_amount"]) == 80.0
    assert ret["pickup_address"] == "14 Quay St, Cork"
    assert ret["customer_name"] == "Amara Okafor"
    assert ret["progress"]["next_action"] == "approved"
    assert ret["pickup"] is None


def test_refund_above_order_total_is_refused(client, owner_headers):
    order = make_order(client, owner_headers)
    r = client.post("/returns", json={"order_id": order["id"], "reason": "x", "refund_amount": "81"},
                    headers=owner_headers)
    assert r.status_code == 422
    assert r.json()["error"] == "validation_failed"


def test_return_for_missing_order(client, owner_headers):
    r = client.post("/returns", json={"order_id": 404, "reason": "x"}, headers=owner_headers)
    assert r.status_code == 404


def test_reject_is_final(client, owner_headers):
    ret = make_return(client, owner_headers)
    r = client.post(f"/returns/{ret['id']}/reject", headers=owner_headers)
    assert r.status_code == 200
    assert r.json()["status"] == "rejected"
    assert r.json()["progress"]["next_action"] is None

    r = client.post(f"/returns/{ret['id']}/approve", headers=owner_headers)
    assert r.status_code == 409


def test_full_return_flow(client, owner_headers, clock):
    ret = make_return(client, owner_headers)
    rid = ret["id"]

    r = client.post(f"/returns/{rid}/approve", headers=owner_headers)
    assert r.json()["status"] == "approved"
    assert r.json()["approved_at"] is not None

    clock.tick(minutes=5)
    r = client.post(f"/returns/{rid}/pickup", json=PICKUP, headers=owner_headers)
    assert r.status_code == 201, r.text
    body = r.json()
    assert body["status"] == "picked_up"
    assert body["carrier"] == "ups"
    assert body["pickup"]["pickup_date"] == "2026-03-04"
    assert body["pickup"]["pickup_address"] == "14 Quay St, Cork"
    assert body["pickup_scheduled_at"].startswith("2026-03-04T12:00")

    for target in ("received", "inspected", "refunded", "completed"):
        clock.tick(minutes=5)
        r = client.post(f"/returns/{rid}/advance", json={"status": target}, headers=owner_headers)
        assert r.status_code == 200, r.text
        assert r.json()["status"] == target

    detail = client.get(f"/returns/{rid}", headers=owner_headers).json()
    assert detail["integrity_error"] is None
    assert detail["pickup"]["carrier"] == "ups"
    assert all(step["done"] for step in detail["progress"]["timeline"])


def test_pickup_needs_approval(client, owner_headers):
    ret = make_return(client, owner_headers)
    r = client.post(f"/returns/{ret['id']}/pickup", json=PICKUP, headers=owner_headers)
    assert r.status_code == 409
    assert client.get(f"/returns/{ret['id']}", headers=owner_headers).json()["pickup"] is None


def test_pickup_in_the_past(client, owner_headers):
    ret = make_return(client, owner_headers)
    client.post(f"/returns/{ret['id']}/approve", headers=owner_headers)
    past = dict(PICKUP, pickup_date=date(2026, 3, 1).isoformat())
    r = client.post(f"/returns/{ret['id']}/pickup", json=past, headers=owner_headers)
    assert r.status_code == 422
    assert client.get(f"/returns/{ret['id']}", headers=owner_headers).json()["status"] == "approved"


def test_advance_cannot_skip_pickup(client, owner_headers):
    ret = make_return(client, owner_headers)
    client.post(f"/returns/{ret['id']}/approve", headers=owner_headers)
    r = client.post(f"/returns/{ret['id']}/advance", json={"status": "picked_up"}, headers=owner_headers)
    assert r.status_code == 409
    r = client.post(f"/returns/{ret['id']}/advance", json={"status": "received"}, headers=owner_headers)
    assert r.status_code == 409


def test_viewer_can_read_but_not_approve(client, owner_headers, viewer_headers):
    ret = make_return(client, owner_headers)
    assert client.get(f"/returns/{ret['id']}", headers=viewer_headers).status_code == 200
    r = client.post(f"/returns/{ret['id']}/approve", headers=viewer_headers)
    assert r.status_code == 403
    r = client.post(f"/returns/{ret['id']}/pickup", json=PICKUP, headers=viewer_headers)
    assert r.status_code == 403


def test_stats(client, owner_headers):
    a = make_return(client, owner_headers)
    make_return(client, owner_headers)
    client.post(f"/returns/{a['id']}/approve", headers=owner_headers)
    stats = client.get("/returns/stats", headers=owner_headers).json()
    assert stats == {"total": 2, "requested": 1, "approved": 1, "in_transit": 0, "completed": 0}


def test_zero_refund_for_an_exchange(client, owner_headers):
    ret = make_return(client, owner_headers, return_type="exchange", refund_amount="0")
    assert float(ret["refund_amount"]) == 0.0
