import os

import pytest

os.environ["DATABASE_URL"] = "sqlite://"
os.environ["SECRET_KEY"] = "test-secret"

from app import app as flask_app, db, Product, User  # noqa: E402
from seed_data import SAMPLE_PRODUCTS  # noqa: E402


@pytest.fixture()
def app():
    flask_app.config.update(TESTING=True)
    with flask_app.app_context():
        db.create_all()
    yield flask_app
    with flask_app.app_context():
        db.session.remove()
        db.drop_all()


@pytest.fixture()
def client(app):
    return app.test_client()


def _add_product(app, data) -> int:
    with app.app_context():
        p = Product(**data)
        db.session.add(p)
        db.session.commit()
        return p.id


@pytest.fixture()
def bed_id(app):
    # Morpheus: base 41900, discount 10%, lifting mechanism 8500
    return _add_product(app, SAMPLE_PRODUCTS[0])


@pytest.fixture()
def mattress_id(app):
    # Comfort Lux: base 28900, discount 15%, no lifting mechanism
    return _add_product(app, SAMPLE_PRODUCTS[3])


def _make_user(app, username, password, is_admin=False):
    with app.app_context():
        u = User(username=username, email=f"{username}@example.com", is_admin=is_admin)
        u.set_password(password)
        db.session.add(u)
        db.session.commit()


@pytest.fixture()
def admin_client(app):
    _make_user(app, "boss", "secret123", is_admin=True)
    c = app.test_client()
    res = c.post("/api/login", json={"username": "boss", "password": "secret123"})
    assert res.status_code == 200
    return c


@pytest.fixture()
def user_client(app):
    _make_user(app, "alice", "secret123")
    c = app.test_client()
    res = c.post("/api/login", json={"username": "alice", "password": "secret123"})
    assert res.status_code == 200
    return c


@pytest.fixture()
def standard_bed_config():
    return {
        "selected_size": "double",
        "selected_fabric_category": "standard",
        "selected_fabric": "beige",
        "has_lifting_mechanism": False,
    }
