"""
HTTP-level tests for the order, kitchen and availability endpoints.
"""

import pytest


def make_table(client, name="T1", capacity=4, single_tab=True):
    response = client.post(
        "/api/tables",
        json={"name": name, "capacity": capacity, "single_tab": single_tab},
    )
    assert response.status_code == 201, response.text
    return response.json()


def make_product(client, name="Pasta", price=12.5, stock=10):
    response = client.post(
        "/api/products",
        json={"name": name, "price": price, "stock": stock},
    )
    assert response.status_code == 201, response.text
    return response.json()


def place_order(client, table_id, items, date="2024-03-10"):
    return client.post(
        "/api/orders",
        json={
            "table_id": table_id,
            "date": date,
            "items": [{"product_id": pid, "quantity": qty} for pid, qty in items],
        },
    )


def stock(client, product_id):
    return client.get(f"/api/products/{product_id}").json()["stock"]


def test_root_and_health(client):
    root = client.get("/")
    assert root.status_code == 200
    assert root.json()["health"] == "/health"

    health = client.get("/health")
    assert health.status_code == 200
    assert health.json()["database"] == "healthy"
    assert health.json()["status"] == "operational"


def test_single_tab_table_walkthrough(client):
    table = make_table(client, "T1", 4, True)
    product = make_product(client, "P1 Pasta", 9.5, 10)

    created = place_order(client, table["id"], [(product["id"], 3)])
    assert created.status_code == 201
    body = created.json()
    assert body["status"] == "open"
    assert body["kitchen_status"] == "Waiting"
    assert body["date"] == "2024-03-10"
    assert body["table"]["name"] == "T1"
    assert body["items"][0]["quantity"] == 3
    assert body["items"][0]["product"]["name"] == "P1 Pasta"
    assert stock(client, product["id"]) == 7

    available = [t["id"] for t in client.get("/api/tables/available").json()]
    assert table["id"] not in available

    rejected = place_order(client, table["id"], [(product["id"], 1)])
    assert rejected.status_code == 409
    assert rejected.json() == {
        "success": False,
        "error": "Conflict",
        "detail": f"Table T1 already has an open order (Order ID: {body['id']})",
    }
    assert stock(client, product["id"]) == 7

    closed = client.put(f"/api/orders/{body['id']}/close")
    assert closed.status_code == 200
    assert closed.json() == {
        "success": True,
        "message": "Order for table T1 closed successfully",
    }

    available = [t["id"] for t in client.get("/api/tables/available").json()]
    assert table["id"] in available
    assert stock(client, product["id"]) == 7

    again = client.put(f"/api/orders/{body['id']}/close")
    assert again.status_code == 400
    assert again.json()["error"] == "InvalidState"


def test_create_failures_map_to_status_codes(client):
    table = make_table(client, "Bar", 8, False)
    product = make_product(client, "Wine", 30.0, 1)

    unknown_table = place_order(client, 999, [(product["id"], 1)])
    assert unknown_table.status_code == 400
    assert unknown_table.json()["error"] == "NotFound"

    unknown_product = place_order(client, table["id"], [(999, 1)])
    assert unknown_product.status_code == 400
    assert unknown_product.json()["error"] == "InvalidInput"

    short = place_order(client, table["id"], [(product["id"], 2)])
    assert short.status_code == 400
    assert short.json()["error"] == "InsufficientStock"
    assert "Wine" in short.json()["detail"]

    no_items = place_order(client, table["id"], [])
    assert no_items.status_code == 400
    assert no_items.json()["error"] == "InvalidInput"

    zero = place_order(client, table["id"], [(product["id"], 0)])
    assert zero.status_code == 400

    bad_date = place_order(client, table["id"], [(product["id"], 1)], date="10/03/2024")
    assert bad_date.status_code == 400
    assert bad_date.json()["error"] == "InvalidInput"

    assert stock(client, product["id"]) == 1
    assert client.get("/api/orders").json() == []


def test_update_replaces_items_with_net_stock_effect(client):
    table = make_table(client, "T1", 4, True)
    p1 = make_product(client, "Pasta", 8.0, 5)
    p2 = make_product(client, "Salad", 4.0, 5)

    order = place_order(client, table["id"], [(p1["id"], 2), (p2["id"], 1)]).json()
    assert stock(client, p1["id"]) == 3

    response = client.put(
        f"/api/orders/{order['id']}",
        json={
            "table_id": table["id"],
            "date": "2024-03-11",
            "items": [{"product_id": p1["id"], "quantity": 5}],
        },
    )
    assert response.status_code == 200
    body = response.json()
    assert body["date"] == "2024-03-11"
    assert [(i["product_id"], i["quantity"]) for i in body["items"]] == [(p1["id"], 5)]
    assert stock(client, p1["id"]) == 0
    assert stock(client, p2["id"]) == 5

    too_many = client.put(
        f"/api/orders/{order['id']}",
        json={
            "table_id": table["id"],
            "date": "2024-03-11",
            "items": [{"product_id": p1["id"], "quantity": 6}],
        },
    )
    assert too_many.status_code == 400
    assert too_many.json()["error"] == "InsufficientStock"
    assert stock(client, p1["id"]) == 0
    assert client.get(f"/api/orders/{order['id']}").json()["items"][0]["quantity"] == 5

    missing = client.put(
        "/api/orders/999",
        json={
            "table_id": table["id"],
            "date": "2024-03-11",
            "items": [{"product_id": p1["id"], "quantity": 1}],
        },
    )
    assert missing.status_code == 404


def test_delete_restores_stock(client):
    table = make_table(client, "Bar", 8, False)
    product = make_product(client, "Beer", 5.0, 10)
    order = place_order(client, table["id"], [(product["id"], 4)]).json()
    assert stock(client, product["id"]) == 6

    deleted = client.delete(f"/api/orders/{order['id']}")
    assert deleted.status_code == 200
    assert deleted.json()["message"] == "Order deleted successfully and stock restored"
    assert stock(client, product["id"]) == 10

    assert client.get(f"/api/orders/{order['id']}").status_code == 404
    assert client.delete(f"/api/orders/{order['id']}").status_code == 404


def test_orders_by_date(client):
    table = make_table(client, "Bar", 8, False)
    product = make_product(client, "Beer", 5.0, 10)
    place_order(client, table["id"], [(product["id"], 1)], date="2024-03-09")
    wanted = place_order(client, table["id"], [(product["id"], 1)], date="2024-03-10").json()
    place_order(client, table["id"], [(product["id"], 1)], date="2024-03-11")

    for url in ("/api/orders/by-date?date=2024-03-10", "/api/orders?date=2024-03-10"):
        response = client.get(url)
        assert response.status_code == 200
        assert [o["id"] for o in response.json()] == [wanted["id"]]

    assert len(client.get("/api/orders").json()) == 3
    assert client.get("/api/orders/by-date?date=2023-01-01").json() == []


@pytest.mark.parametrize(
    "url",
    [
        "/api/orders/by-date",
        "/api/orders/by-date?date=",
        "/api/orders/by-date?date=2024-13-01",
        "/api/orders/by-date?date=2024-3-10",
        "/api/orders?date=yesterday",
    ],
)
def test_orders_by_date_rejects_bad_dates(client, url):
    response = client.get(url)
    assert response.status_code == 400
    assert response.json()["error"] == "InvalidInput"


def test_kitchen_flow(client):
    table = make_table(client, "Bar", 8, False)
    product = make_product(client, "Soup", 6.0, 10)
    first = place_order(client, table["id"], [(product["id"], 1)]).json()
    second = place_order(client, table["id"], [(product["id"], 1)]).json()

    queue = client.get("/api/kitchen-orders").json()
    assert [o["id"] for o in queue] == [first["id"], second["id"]]

    ready = client.put(f"/api/orders/{first['id']}/kitchen-status", json={"status": "Ready"})
    assert ready.status_code == 200
    assert ready.json()["kitchen_status"] == "Ready"

    invalid = client.put(f"/api/orders/{first['id']}/kitchen-status", json={"status": "Served"})
    assert invalid.status_code == 400
    assert invalid.json()["error"] == "InvalidInput"

    missing = client.put("/api/orders/999/kitchen-status", json={"status": "Ready"})
    assert missing.status_code == 404

    client.put(f"/api/orders/{first['id']}/close")
    frozen = client.put(f"/api/orders/{first['id']}/kitchen-status", json={"status": "Waiting"})
    assert frozen.status_code == 400
    assert frozen.json()["error"] == "InvalidState"

    queue = client.get("/api/kitchen-orders").json()
    assert [o["id"] for o in queue] == [second["id"]]
    assert stock(client, product["id"]) == 8
