NEW_USER = {
    "username": "maria",
    "email": "maria@example.com",
    "password": "secret123",
    "confirmPassword": "secret123",
    "firstName": "Maria",
}


def test_register_logs_in(client, app):
    res = client.post("/api/register", json=NEW_USER)
    assert res.status_code == 201
    assert res.get_json()["first_name"] == "Maria"
    assert "password_hash" not in res.get_json()

    assert client.get("/api/session").get_json()["is_logged_in"] is True
    assert client.get("/api/user/profile").get_json()["username"] == "maria"


def test_register_validation(client, app):
    res = client.post("/api/register", json={**NEW_USER, "confirmPassword": "other", "email": "nope"})
    assert res.status_code == 400
    errors = res.get_json()["errors"]
    assert "Passwords do not match." in errors
    assert "Please enter a valid email." in errors


def test_register_duplicate(client, app):
    client.post("/api/register", json=NEW_USER)
    other = app.test_client()
    assert other.post("/api/register", json=NEW_USER).status_code == 409
    assert other.post("/api/register", json={**NEW_USER, "username": "maria2"}).status_code == 409


def test_login_and_logout(client, app):
    app.test_client().post("/api/register", json=NEW_USER)

    res = client.post("/api/login", json={"username": "maria", "password": "wrong"})
    assert res.status_code == 401

    res = client.post("/api/login", json={"username": "maria", "password": "secret123"})
    assert res.status_code == 200

    assert client.post("/api/logout").status_code == 200
    assert client.get("/api/user/profile").status_code == 401


def test_profile_requires_login(client, app):
    res = client.get("/api/user/profile")
    assert res.status_code == 401
    assert res.get_json()["ok"] is False


def test_update_profile(user_client):
    res = user_client.put("/api/user/profile", json={"phone": "+7 900 111 22 33", "lastName": "Smith"})
    assert res.status_code == 200
    body = res.get_json()
    assert body["phone"] == "+7 900 111 22 33"
    assert body["last_name"] == "Smith"

    assert user_client.put("/api/user/profile", json={"email": "broken"}).status_code == 400


def test_change_password(user_client, app):
    res = user_client.put("/api/user/password", json={
        "currentPassword": "wrong", "newPassword": "newpass1", "confirmPassword": "newpass1",
    })
    assert res.status_code == 401

    res = user_client.put("/api/user/password", json={
        "currentPassword": "secret123", "newPassword": "newpass1", "confirmPassword": "newpass1",
    })
    assert res.status_code == 200

    fresh = app.test_client()
    assert fresh.post("/api/login", json={"username": "alice", "password": "newpass1"}).status_code == 200


def test_orders_follow_logged_in_user(user_client, app, bed_id):
    user_client.post("/api/cart", json={"productId": bed_id})
    order_id = user_client.post("/api/orders", json={
        "customerName": "Alice", "customerEmail": "alice@example.com", "customerPhone": "1",
    }).get_json()["order"]["id"]

    # a new browser session for the same account still sees the order
    other = app.test_client()
    other.post("/api/login", json={"username": "alice", "password": "secret123"})
    assert [o["id"] for o in other.get("/api/orders").get_json()] == [order_id]
    assert other.get(f"/api/orders/{order_id}").status_code == 200
