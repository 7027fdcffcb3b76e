import json
import os
import uuid
from datetime import datetime

import click
from dotenv import load_dotenv

from flask import Flask, abort, jsonify, request, session
from flask_sqlalchemy import SQLAlchemy
from flask_login import LoginManager, UserMixin, current_user
from werkzeug.exceptions import HTTPException
from werkzeug.security import generate_password_hash, check_password_hash

load_dotenv()

BASE_DIR = os.path.abspath(os.path.dirname(__file__))

app = Flask(__name__)
app.secret_key = os.getenv("SECRET_KEY", "dev-secret-change-me")

app.config["SQLALCHEMY_DATABASE_URI"] = os.getenv(
    "DATABASE_URL", "sqlite:///" + os.path.join(BASE_DIR, "luxbed_shop.db")
)
app.config["SQLALCHEMY_TRACK_MODIFICATIONS"] = False
app.config["SESSION_COOKIE_SECURE"] = (
    os.getenv("APP_ENV", os.getenv("FLASK_ENV", "")).lower() == "production"
)
app.config["ADMIN_USER"] = os.getenv("ADMIN_USER", "admin")
app.config["ADMIN_PASS"] = os.getenv("ADMIN_PASS", "admin123")

app.logger.setLevel(os.getenv("LOG_LEVEL", "INFO").upper())

# Initialize extensions
db = SQLAlchemy(app)

login_manager = LoginManager()
login_manager.init_app(app)

# ---- Order lifecycle ----
ORDER_STATUSES = ["pending", "processing", "completed", "cancelled"]

STATUS_TRANSITIONS = {
    "pending": {"processing", "cancelled"},
    "processing": {"completed", "cancelled"},
    "completed": set(),
    "cancelled": set(),
}

PAYMENT_METHODS = {"card": "Bank card", "cash": "Cash"}

DEFAULT_SETTINGS = {
    "shop_name": "LuxBed",
    "shop_description": "Quality mattresses and upholstered beds",
    "contact_email": "info@luxbed.example",
    "contact_phone": "+7 (495) 123-45-67",
    "address": "1 Mattress St., Moscow",
    "working_hours": "Mon-Sun: 10:00 - 20:00",
    "instagram_url": "",
    "facebook_url": "",
    "enable_free_delivery": True,
    "free_delivery_threshold": 20000,
    "delivery_price_local": 500,
    "delivery_price_regional": 3000,
    "enable_cash_payment": True,
    "enable_card_payment": True,
}


# -------------------- Models --------------------
class User(db.Model, UserMixin):
    __tablename__ = "users"

    id = db.Column(db.Integer, primary_key=True)
    username = db.Column(db.String(80), unique=True, nullable=False)
    email = db.Column(db.String(160), unique=True, nullable=False)
    password_hash = db.Column(db.String(255), nullable=False)
    first_name = db.Column(db.String(80), nullable=True)
    last_name = db.Column(db.String(80), nullable=True)
    phone = db.Column(db.String(40), nullable=True)
    address = db.Column(db.String(240), nullable=True)
    is_admin = db.Column(db.Boolean, default=False, nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def set_password(self, raw: str):
        self.password_hash = generate_password_hash(raw)

    def check_password(self, raw: str) -> bool:
        return check_password_hash(self.password_hash, raw)


class Product(db.Model):
    __tablename__ = "products"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(200), nullable=False)
    description = db.Column(db.Text, nullable=False, default="")
    category = db.Column(db.String(20), nullable=False)  # "mattress" or "bed"
    base_price = db.Column(db.Numeric(10, 2), nullable=False)
    images = db.Column(db.JSON, nullable=False, default=list)
    sizes = db.Column(db.JSON, nullable=False, default=list)
    fabric_categories = db.Column(db.JSON, nullable=False, default=list)
    fabrics = db.Column(db.JSON, nullable=False, default=list)
    has_lifting_mechanism = db.Column(db.Boolean, default=False, nullable=False)
    lifting_mechanism_price = db.Column(db.Numeric(10, 2), default=0, nullable=False)
    specifications = db.Column(db.JSON, nullable=False, default=list)
    discount = db.Column(db.Integer, default=0, nullable=False)  # percent
    featured = db.Column(db.Boolean, default=False, nullable=False)
    in_stock = db.Column(db.Boolean, default=True, nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)


class CartItem(db.Model):
    __tablename__ = "cart_items"

    id = db.Column(db.Integer, primary_key=True)
    session_id = db.Column(db.String(64), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False)
    quantity = db.Column(db.Integer, nullable=False, default=1)
    selected_size = db.Column(db.String(40), nullable=False)
    custom_width = db.Column(db.Integer, nullable=True)
    custom_length = db.Column(db.Integer, nullable=True)
    selected_fabric_category = db.Column(db.String(40), nullable=False)
    selected_fabric = db.Column(db.String(40), nullable=False)
    has_lifting_mechanism = db.Column(db.Boolean, default=False, nullable=False)
    price = db.Column(db.Numeric(10, 2), nullable=False)  # unit price when added
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

    product = db.relationship("Product")


class Order(db.Model):
    __tablename__ = "orders"

    id = db.Column(db.Integer, primary_key=True)
    session_id = db.Column(db.String(64), nullable=False, index=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True, index=True)
    customer_name = db.Column(db.String(120), nullable=False)
    customer_email = db.Column(db.String(160), nullable=False)
    customer_phone = db.Column(db.String(40), nullable=False)
    address = db.Column(db.String(240), nullable=False, default="")
    delivery_method = db.Column(db.String(20), nullable=False)
    delivery_price = db.Column(db.Numeric(10, 2), nullable=False, default=0)
    payment_method = db.Column(db.String(20), nullable=False)
    comment = db.Column(db.Text, nullable=True)
    subtotal = db.Column(db.Numeric(10, 2), nullable=False, default=0)
    discount_amount = db.Column(db.Numeric(10, 2), nullable=False, default=0)
    total_amount = db.Column(db.Numeric(10, 2), nullable=False)
    status = db.Column(db.String(20), nullable=False, default=ORDER_STATUSES[0])
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

    items = db.relationship(
        "OrderItem", backref="order", lazy=True, cascade="all, delete-orphan"
    )


class OrderItem(db.Model):
    __tablename__ = "order_items"

    id = db.Column(db.Integer, primary_key=True)
    order_id = db.Column(db.Integer, db.ForeignKey("orders.id"), nullable=False, index=True)
    product_id = db.Column(db.Integer, nullable=False)  # no FK: survives product deletion
    product_name = db.Column(db.String(200), nullable=False)
    quantity = db.Column(db.Integer, nullable=False)
    selected_size = db.Column(db.String(40), nullable=False)
    custom_width = db.Column(db.Integer, nullable=True)
    custom_length = db.Column(db.Integer, nullable=True)
    selected_fabric_category = db.Column(db.String(40), nullable=False)
    selected_fabric = db.Column(db.String(40), nullable=False)
    fabric_name = db.Column(db.String(120), nullable=False)
    has_lifting_mechanism = db.Column(db.Boolean, default=False, nullable=False)
    price = db.Column(db.Numeric(10, 2), nullable=False)
    discount = db.Column(db.Integer, nullable=False, default=0)


class OrderLog(db.Model):
    __tablename__ = "order_logs"

    id = db.Column(db.Integer, primary_key=True)
    order_id = db.Column(db.Integer, db.ForeignKey("orders.id"), nullable=False, index=True)
    timestamp = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

    actor_username = db.Column(db.String(80), nullable=True)
    action = db.Column(db.String(40), nullable=False)  # created / status_change / imported
    details = db.Column(db.Text, nullable=True)

    order = db.relationship(
        "Order",
        backref=db.backref(
            "logs", lazy=True, cascade="all, delete-orphan", order_by="desc(OrderLog.timestamp)"
        ),
    )


class Review(db.Model):
    __tablename__ = "reviews"

    id = db.Column(db.Integer, primary_key=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)
    session_id = db.Column(db.String(64), nullable=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    customer_name = db.Column(db.String(120), nullable=False)
    rating = db.Column(db.Integer, nullable=False)
    comment = db.Column(db.Text, nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)


class ShopSettings(db.Model):
    __tablename__ = "shop_settings"

    id = db.Column(db.Integer, primary_key=True)
    settings_json = db.Column(db.Text, nullable=False, default="{}")
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)


# -------------------- Auth --------------------
@login_manager.user_loader
def load_user(user_id):
    return db.session.get(User, int(user_id))


def admin_required():
    if not current_user.is_authenticated:
        return login_manager.unauthorized()
    if not current_user.is_admin:
        abort(403)


# -------------------- Helpers --------------------
def cart_session_id() -> str:
    """Per-browser cart key kept in the signed session cookie."""
    if not session.get("cart_sid"):
        session["cart_sid"] = uuid.uuid4().hex
    return session["cart_sid"]


def _num(v):
    return float(v) if v is not None else None


def _iso(dt):
    return dt.isoformat(timespec="seconds") if dt else None


def product_to_dict(p: Product) -> dict:
    return {
        "id": p.id,
        "name": p.name,
        "description": p.description,
        "category": p.category,
        "base_price": _num(p.base_price),
        "images": p.images or [],
        "sizes": p.sizes or [],
        "fabric_categories": p.fabric_categories or [],
        "fabrics": p.fabrics or [],
        "has_lifting_mechanism": p.has_lifting_mechanism,
        "lifting_mechanism_price": _num(p.lifting_mechanism_price),
        "specifications": p.specifications or [],
        "discount": p.discount or 0,
        "featured": p.featured,
        "in_stock": p.in_stock,
        "created_at": _iso(p.created_at),
    }


def cart_item_to_dict(item: CartItem) -> dict:
    p = item.product
    return {
        "id": item.id,
        "product_id": item.product_id,
        "quantity": item.quantity,
        "selected_size": item.selected_size,
        "custom_width": item.custom_width,
        "custom_length": item.custom_length,
        "selected_fabric_category": item.selected_fabric_category,
        "selected_fabric": item.selected_fabric,
        "has_lifting_mechanism": item.has_lifting_mechanism,
        "price": _num(item.price),
        "product": {
            "id": p.id,
            "name": p.name,
            "images": p.images or [],
            "base_price": _num(p.base_price),
            "discount": p.discount or 0,
        } if p else None,
    }


def order_item_to_dict(item: OrderItem) -> dict:
    return {
        "id": item.id,
        "product_id": item.product_id,
        "product_name": item.product_name,
        "quantity": item.quantity,
        "selected_size": item.selected_size,
        "custom_width": item.custom_width,
        "custom_length": item.custom_length,
        "selected_fabric_category": item.selected_fabric_category,
        "selected_fabric": item.selected_fabric,
        "fabric_name": item.fabric_name,
        "has_lifting_mechanism": item.has_lifting_mechanism,
        "price": _num(item.price),
        "discount": item.discount,
    }


def order_to_dict(order: Order, with_items: bool = False) -> dict:
    out = {
        "id": order.id,
        "customer_name": order.customer_name,
        "customer_email": order.customer_email,
        "customer_phone": order.customer_phone,
        "address": order.address,
        "delivery_method": order.delivery_method,
        "delivery_price": _num(order.delivery_price),
        "payment_method": order.payment_method,
        "comment": order.comment,
        "subtotal": _num(order.subtotal),
        "discount_amount": _num(order.discount_amount),
        "total_amount": _num(order.total_amount),
        "status": order.status,
        "created_at": _iso(order.created_at),
    }
    if with_items:
        out["items"] = [order_item_to_dict(i) for i in order.items]
    return out


def review_to_dict(r: Review) -> dict:
    return {
        "id": r.id,
        "product_id": r.product_id,
        "customer_name": r.customer_name,
        "rating": r.rating,
        "comment": r.comment,
        "created_at": _iso(r.created_at),
    }


def user_to_dict(u: User) -> dict:
    return {
        "id": u.id,
        "username": u.username,
        "email": u.email,
        "first_name": u.first_name,
        "last_name": u.last_name,
        "phone": u.phone,
        "address": u.address,
        "is_admin": u.is_admin,
        "created_at": _iso(u.created_at),
    }


def get_shop_settings() -> dict:
    row = db.session.get(ShopSettings, 1)
    stored = json.loads(row.settings_json) if row and row.settings_json else {}
    return {**DEFAULT_SETTINGS, **stored}


def save_shop_settings(updates: dict) -> dict:
    """Merge known keys into the stored settings, coercing to the default's type."""
    current = get_shop_settings()
    for key, default in DEFAULT_SETTINGS.items():
        if key not in updates:
            continue
        val = updates[key]
        if isinstance(default, bool):
            val = val if isinstance(val, bool) else str(val).strip().lower() in {"1", "true", "yes", "on"}
        elif isinstance(default, int):
            val = int(float(val or 0))
        else:
            val = "" if val is None else str(val).strip()
        current[key] = val

    row = db.session.get(ShopSettings, 1)
    if row is None:
        row = ShopSettings(id=1)
        db.session.add(row)
    row.settings_json = json.dumps(current)
    db.session.commit()
    return current


def log_order_event(order_id: int, action: str, details: str | None = None, actor: str | None = None):
    if actor is None and current_user and current_user.is_authenticated:
        actor = current_user.username
    db.session.add(OrderLog(order_id=order_id, actor_username=actor, action=action, details=details))


def api_error(message: str, status: int = 400, **extra):
    return jsonify({"ok": False, "error": message, **extra}), status


def json_body() -> dict:
    """Request JSON if it is an object, else {}."""
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}


@app.errorhandler(HTTPException)
def http_error(e):
    if request.path.startswith("/api/"):
        return api_error(e.description, e.code)
    return e


# -------------------- Blueprints --------------------
from shop_api import shop_api  # noqa: E402
from accounts_api import accounts_api  # noqa: E402
from admin_api import admin_api  # noqa: E402

app.register_blueprint(shop_api)
app.register_blueprint(accounts_api)
app.register_blueprint(admin_api)


# -------------------- One-time init --------------------
def seed_products() -> int:
    from seed_data import SAMPLE_PRODUCTS

    if db.session.query(Product.id).first():
        return 0
    for data in SAMPLE_PRODUCTS:
        db.session.add(Product(**data))
    db.session.commit()
    return len(SAMPLE_PRODUCTS)


def seed_admin() -> bool:
    admin_user = app.config["ADMIN_USER"]
    if User.query.filter_by(username=admin_user).first():
        return False
    u = User(username=admin_user, email=f"{admin_user}@luxbed.example", is_admin=True)
    u.set_password(app.config["ADMIN_PASS"])
    db.session.add(u)
    db.session.commit()
    return True


@app.cli.command("init-db")
def init_db_command():
    """Create tables, the admin account and the sample catalog."""
    db.create_all()
    if seed_admin():
        click.echo(f"Admin user created: {app.config['ADMIN_USER']}")
    else:
        click.echo("Admin user already exists.")
    click.echo(f"Sample products added: {seed_products()}")


@app.cli.command("seed-products")
def seed_products_command():
    """Add the sample catalog if the products table is empty."""
    click.echo(f"Sample products added: {seed_products()}")


if __name__ == "__main__":
    app.run(debug=True)
