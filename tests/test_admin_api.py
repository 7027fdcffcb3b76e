import json

import pytest

from sqlalchemy.exc import SQLAlchemyError

from app import db, CartItem, Order

CHECKOUT = {
    "customerName": "Ivan Petrov",
    "customerEmail": "ivan@example.com",
    "customerPhone": "+7 900 000 00 00",
    "comment": "Please call before delivery",
}

NEW_PRODUCT = {
    "name": "Bed Nova",
    "category": "bed",
    "basePrice": 39900,
    "sizes": [{"id": "double", "label": "140x200", "price": 0}],
    "fabricCategories": [{"id": "standard", "name": "Standard", "priceMultiplier": 1}],
    "fabrics": [{"id": "beige", "name": "Beige", "category": "standard"}],
    "hasLiftingMechanism": True,
    "liftingMechanismPrice": 7000,
}


@pytest.fixture()
def order_id(client, bed_id):
    client.post("/api/cart", json={"productId": bed_id, "quantity": 2})
    return client.post("/api/orders", json=CHECKOUT).get_json()["order"]["id"]


def test_admin_routes_need_auth(client, user_client, app):
    assert client.get("/api/admin/products").status_code == 401
    assert user_client.get("/api/admin/products").status_code == 403
    assert user_client.get("/api/admin/orders").get_json()["ok"] is False


def test_create_product(admin_client, client):
    res = admin_client.post("/api/admin/products", json=NEW_PRODUCT)
    assert res.status_code == 201
    product = res.get_json()
    assert product["base_price"] == 39900.0
    assert product["in_stock"] is True

    assert client.get(f"/api/products/{product['id']}").status_code == 200


def test_create_product_rejects_orphan_fabric(admin_client):
    bad = {**NEW_PRODUCT, "fabrics": [{"id": "silk", "category": "premium"}]}
    res = admin_client.post("/api/admin/products", json=bad)
    assert res.status_code == 400
    assert res.get_json()["errors"] == ["Fabric silk references unknown category premium."]


def test_update_product(admin_client, bed_id):
    res = admin_client.patch(f"/api/admin/products/{bed_id}", json={"discount": 25, "featured": False})
    assert res.status_code == 200
    body = res.get_json()
    assert body["discount"] == 25
    assert body["featured"] is False
    assert body["base_price"] == 41900.0

    assert admin_client.patch(f"/api/admin/products/{bed_id}", json={"discount": 120}).status_code == 400
    assert admin_client.patch("/api/admin/products/999", json={"discount": 1}).status_code == 404


def test_delete_product_keeps_order_snapshot(admin_client, client, app, bed_id, order_id):
    client.post("/api/cart", json={"productId": bed_id})
    res = admin_client.delete(f"/api/admin/products/{bed_id}")
    assert res.status_code == 200

    with app.app_context():
        assert CartItem.query.count() == 0
    order = admin_client.get(f"/api/admin/orders/{order_id}").get_json()
    assert order["items"][0]["product_name"] == 'Bed "Morpheus"'


def test_order_status_transitions(admin_client, order_id):
    url = f"/api/admin/orders/{order_id}"
    assert admin_client.patch(url, json={"status": "shipped"}).status_code == 400
    assert admin_client.patch(url, json={"status": "completed"}).status_code == 400

    assert admin_client.patch(url, json={"status": "processing"}).get_json()["status"] == "processing"
    assert admin_client.patch(url, json={"status": "completed"}).get_json()["status"] == "completed"
    assert admin_client.patch(url, json={"status": "cancelled"}).status_code == 400

    logs = admin_client.get(url).get_json()["logs"]
    assert [log["action"] for log in logs].count("status_change") == 2
    assert "created" in [log["action"] for log in logs]
    assert all(log["actor"] == "boss" for log in logs if log["action"] == "status_change")


def test_list_orders_by_status(admin_client, order_id):
    assert [o["id"] for o in admin_client.get("/api/admin/orders?status=pending").get_json()] == [order_id]
    assert admin_client.get("/api/admin/orders?status=completed").get_json() == []
    assert admin_client.get("/api/admin/orders?status=lost").status_code == 400


def test_order_pdf(admin_client, order_id):
    res = admin_client.get(f"/api/admin/orders/{order_id}/pdf")
    assert res.status_code == 200
    assert res.mimetype == "application/pdf"
    assert res.data.startswith(b"%PDF")
    assert admin_client.get("/api/admin/orders/999/pdf").status_code == 404


def test_review_moderation(admin_client, client, bed_id):
    review_id = client.post(f"/api/products/{bed_id}/reviews",
                            json={"customerName": "Olga", "rating": 4, "comment": "Comfy"}).get_json()["id"]

    reviews = admin_client.get("/api/admin/reviews").get_json()
    assert reviews[0]["product_name"] == 'Bed "Morpheus"'

    assert admin_client.delete(f"/api/admin/reviews/{review_id}").status_code == 200
    assert client.get(f"/api/products/{bed_id}/reviews").get_json() == []


def test_settings(admin_client, client):
    res = admin_client.put("/api/admin/settings", json={"delivery_price_local": "700", "bogus": 1})
    assert res.status_code == 200
    assert res.get_json()["delivery_price_local"] == 700
    assert "bogus" not in res.get_json()

    assert client.get("/api/settings").get_json()["delivery_price_local"] == 700
    assert admin_client.put("/api/admin/settings", json={"free_delivery_threshold": "lots"}).status_code == 400
    assert admin_client.put("/api/admin/settings", json=[1]).status_code == 400


def test_list_users(admin_client, user_client):
    names = [u["username"] for u in admin_client.get("/api/admin/users").get_json()]
    assert names == ["boss", "alice"]


def test_import_products(admin_client):
    res = admin_client.post("/api/admin/products/import", json=[NEW_PRODUCT, {"name": "Broken"}])
    assert res.status_code == 201
    body = res.get_json()
    assert body["imported"] == 1
    assert body["skipped"][0]["index"] == 1

    assert admin_client.post("/api/admin/products/import", json=[]).status_code == 400


def test_import_users(admin_client, app):
    rows = [
        {"username": "ivan", "email": "ivan@example.com", "password": "pass1234"},
        {"username": "ivan", "email": "other@example.com"},
        {"username": "no"},
    ]
    body = admin_client.post("/api/admin/users/import", json=rows).get_json()
    assert body["imported"] == 1
    assert [s["index"] for s in body["skipped"]] == [1, 2]

    assert app.test_client().post("/api/login", json={"username": "ivan", "password": "pass1234"}).status_code == 200


def test_import_orders(admin_client):
    rows = [
        {
            "customerName": "Petr",
            "deliveryMethod": "courier",
            "deliveryPrice": 500,
            "items": [{"productName": "Bed", "quantity": 2, "price": 1000, "discount": 10}],
        },
        {"customerName": "Empty", "items": []},
        {"status": "lost", "items": [{"price": 1}]},
    ]
    body = admin_client.post("/api/admin/orders/import", json=rows).get_json()
    assert body["imported"] == 1
    assert [s["index"] for s in body["skipped"]] == [1, 2]

    order = admin_client.get("/api/admin/orders").get_json()[0]
    assert order["subtotal"] == 2000.0
    assert order["discount_amount"] == 200.0
    assert order["total_amount"] == 2300.0


def test_export_json(admin_client, bed_id):
    res = admin_client.get("/api/admin/export/products?format=json")
    assert res.status_code == 200
    assert "attachment; filename=products_export_" in res.headers["Content-Disposition"]
    rows = json.loads(res.data)
    assert rows[0]["id"] == bed_id


def test_export_csv(admin_client, order_id):
    res = admin_client.get("/api/admin/export/orders")
    assert res.mimetype == "text/csv"
    lines = res.data.decode().splitlines()
    assert lines[0].startswith("id,customer_name,")
    assert "Ivan Petrov" in lines[1]


def test_export_unknown(admin_client):
    assert admin_client.get("/api/admin/export/secrets").status_code == 404
    assert admin_client.get("/api/admin/export/users?format=xml").status_code == 400


def test_create_product_rejects_non_finite_prices(admin_client, client):
    res = admin_client.post("/api/admin/products", json={**NEW_PRODUCT, "basePrice": "NaN"})
    assert res.status_code == 400

    sizes = [{"id": "double", "label": "140x200", "price": "Infinity"}]
    res = admin_client.post("/api/admin/products", json={**NEW_PRODUCT, "sizes": sizes})
    assert res.status_code == 400
    assert res.get_json()["errors"] == ["Size double has an invalid price."]

    assert client.get("/api/products").get_json() == []


def test_update_product_rejects_non_finite_price(admin_client, client, bed_id):
    res = admin_client.patch(f"/api/admin/products/{bed_id}", json={"base_price": "Infinity"})
    assert res.status_code == 400
    assert client.post(f"/api/products/{bed_id}/price", json={}).status_code == 200


def test_settings_reject_overflowing_numbers(admin_client):
    res = admin_client.put("/api/admin/settings", json={"free_delivery_threshold": "inf"})
    assert res.status_code == 400
    assert admin_client.get("/api/admin/settings").get_json()["free_delivery_threshold"] == 20000


def test_status_update_needs_object_body(admin_client, order_id):
    assert admin_client.patch(f"/api/admin/orders/{order_id}", json=["processing"]).status_code == 400


def test_import_orders_skips_non_finite_amounts(admin_client):
    rows = [
        {"items": [{"price": "NaN"}]},
        {"items": [{"price": 100}], "deliveryPrice": "Infinity"},
        {"items": [{"price": 100}], "comment": {"note": "call first"}},
    ]
    body = admin_client.post("/api/admin/orders/import", json=rows).get_json()
    assert body["imported"] == 1
    assert [s["index"] for s in body["skipped"]] == [0, 1]


def test_import_orders_rolls_back_on_database_error(admin_client, app, monkeypatch):
    def broken_flush(*args, **kwargs):
        raise SQLAlchemyError("disk full")

    monkeypatch.setattr(db.session, "flush", broken_flush)
    res = admin_client.post("/api/admin/orders/import", json=[{"items": [{"price": 100}]}])
    assert res.status_code == 500
    assert res.get_json()["ok"] is False

    monkeypatch.undo()
    with app.app_context():
        assert Order.query.count() == 0
