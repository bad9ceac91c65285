def create(client, url, payload):
    response = client.post(url, json=payload)
    assert response.status_code == 201, response.text
    return response.json()


def test_product_crud(client):
    product = create(client, "/api/products", {"name": "Pizza", "price": 14.99, "stock": 25})
    assert product["stock"] == 25

    updated = client.put(
        f"/api/products/{product['id']}",
        json={"name": "Pizza Margherita", "price": 15.5, "stock": 30},
    )
    assert updated.status_code == 200
    assert updated.json()["name"] == "Pizza Margherita"
    assert updated.json()["stock"] == 30

    assert [p["id"] for p in client.get("/api/products").json()] == [product["id"]]

    assert client.delete(f"/api/products/{product['id']}").status_code == 200
    assert client.get(f"/api/products/{product['id']}").status_code == 404


def test_product_validation(client):
    for payload in (
        {"name": "Pi", "price": 5.0, "stock": 1},
        {"name": "Pizza", "price": 0, "stock": 1},
        {"name": "Pizza", "price": 5.0, "stock": -1},
    ):
        response = client.post("/api/products", json=payload)
        assert response.status_code == 400
        assert response.json()["error"] == "InvalidInput"


def test_product_used_by_an_order_cannot_be_deleted(client):
    table = create(client, "/api/tables", {"name": "Bar", "capacity": 8})
    product = create(client, "/api/products", {"name": "Beer", "price": 5.0, "stock": 3})
    client.post(
        "/api/orders",
        json={
            "table_id": table["id"],
            "date": "2024-03-10",
            "items": [{"product_id": product["id"], "quantity": 1}],
        },
    )

    response = client.delete(f"/api/products/{product['id']}")
    assert response.status_code == 409
    assert response.json()["error"] == "Conflict"
    assert client.get(f"/api/products/{product['id']}").status_code == 200


def test_table_crud(client):
    table = create(client, "/api/tables", {"name": "Terrace 1", "capacity": 4})
    assert table["single_tab"] is False

    updated = client.put(
        f"/api/tables/{table['id']}",
        json={"name": "Terrace 2", "capacity": 6, "single_tab": True},
    )
    assert updated.status_code == 200
    assert updated.json() == {
        "id": table["id"],
        "name": "Terrace 2",
        "capacity": 6,
        "single_tab": True,
    }

    # single_tab left out keeps its current value
    kept = client.put(f"/api/tables/{table['id']}", json={"name": "Terrace 2", "capacity": 2})
    assert kept.json()["single_tab"] is True

    assert client.get(f"/api/tables/{table['id']}").json()["capacity"] == 2
    assert client.delete(f"/api/tables/{table['id']}").status_code == 200
    assert client.get(f"/api/tables/{table['id']}").status_code == 404
    assert client.put(
        f"/api/tables/{table['id']}", json={"name": "Gone", "capacity": 2}
    ).status_code == 404


def test_table_delete_guards(client):
    table = create(client, "/api/tables", {"name": "T1", "capacity": 4, "single_tab": True})
    product = create(client, "/api/products", {"name": "Soup", "price": 6.0, "stock": 5})
    order = client.post(
        "/api/orders",
        json={
            "table_id": table["id"],
            "date": "2024-03-10",
            "items": [{"product_id": product["id"], "quantity": 1}],
        },
    ).json()

    busy = client.delete(f"/api/tables/{table['id']}")
    assert busy.status_code == 400
    assert busy.json() == {
        "success": False,
        "error": "InvalidState",
        "detail": "Cannot delete table with open orders",
    }

    client.put(f"/api/orders/{order['id']}/close")
    history = client.delete(f"/api/tables/{table['id']}")
    assert history.status_code == 409

    client.delete(f"/api/orders/{order['id']}")
    assert client.delete(f"/api/tables/{table['id']}").status_code == 200


def test_single_tab_cannot_be_enabled_on_a_shared_busy_table(client):
    table = create(client, "/api/tables", {"name": "Bar", "capacity": 8})
    product = create(client, "/api/products", {"name": "Beer", "price": 5.0, "stock": 5})
    for _ in range(2):
        client.post(
            "/api/orders",
            json={
                "table_id": table["id"],
                "date": "2024-03-10",
                "items": [{"product_id": product["id"], "quantity": 1}],
            },
        )

    response = client.put(
        f"/api/tables/{table['id']}",
        json={"name": "Bar", "capacity": 8, "single_tab": True},
    )
    assert response.status_code == 409
    assert client.get(f"/api/tables/{table['id']}").json()["single_tab"] is False
