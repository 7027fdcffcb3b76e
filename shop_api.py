from __future__ import annotations

# =========================================
# shop_api.py
# LuxBed storefront API
# =========================================
# - Catalog + live price preview for the product configurator
# - Session cart (unit price is computed here and snapshotted on the line)
# - Checkout, order history, product reviews, public shop settings
# =========================================

from decimal import Decimal

from flask import Blueprint, abort, current_app, jsonify, request
from flask_login import current_user
from sqlalchemy.exc import SQLAlchemyError

from catalog import (
    build_configuration,
    snake_keys,
    validate_configuration,
    validate_quantity,
)
from pricing import DELIVERY_METHODS, calculate_price, cart_totals, delivery_price

shop_api = Blueprint("shop_api", __name__, url_prefix="/api")


def _floats(d: dict) -> dict:
    return {k: float(v) if isinstance(v, Decimal) else v for k, v in d.items()}


def _get_product_or_404(product_id: int):
    from app import db, Product

    product = db.session.get(Product, product_id)
    if product is None:
        abort(404, description="Product not found")
    return product


def _session_cart():
    from app import CartItem, cart_session_id

    return (
        CartItem.query.filter_by(session_id=cart_session_id())
        .order_by(CartItem.created_at.asc(), CartItem.id.asc())
        .all()
    )


def _cart_lines(items) -> list[dict]:
    return [
        {
            "price": item.price,
            "quantity": item.quantity,
            "discount": item.product.discount if item.product else 0,
        }
        for item in items
    ]


def _own_cart_item_or_404(item_id: int):
    from app import db, CartItem, cart_session_id

    item = db.session.get(CartItem, item_id)
    if item is None or item.session_id != cart_session_id():
        abort(404, description="Cart item not found")
    return item


# -------------------- Session --------------------
@shop_api.get("/session")
def get_session():
    from app import cart_session_id

    return jsonify({
        "session_id": cart_session_id(),
        "is_logged_in": current_user.is_authenticated,
        "is_admin": bool(current_user.is_authenticated and current_user.is_admin),
    })


# -------------------- Catalog --------------------
@shop_api.get("/products")
def list_products():
    from app import Product, product_to_dict

    q = Product.query
    category = (request.args.get("category") or "").strip()
    if category:
        q = q.filter(Product.category == category)
    if (request.args.get("featured") or "").lower() in {"1", "true", "yes"}:
        q = q.filter(Product.featured.is_(True))

    products = q.order_by(Product.created_at.desc(), Product.id.desc()).all()
    return jsonify([product_to_dict(p) for p in products])


@shop_api.get("/products/<int:product_id>")
def get_product(product_id):
    from app import product_to_dict

    return jsonify(product_to_dict(_get_product_or_404(product_id)))


@shop_api.post("/products/<int:product_id>/price")
def preview_price(product_id):
    """Price breakdown for the configurator; called on every option change."""
    from app import api_error, product_to_dict

    product = product_to_dict(_get_product_or_404(product_id))
    config = build_configuration(product, request.get_json(silent=True))

    errors = validate_configuration(product, config)
    if errors:
        return api_error("Invalid configuration", 400, errors=errors, configuration=config)

    breakdown = calculate_price(product, config)
    return jsonify({
        "ok": True,
        "valid": breakdown["total"] >= 0,
        "configuration": config,
        "breakdown": _floats(breakdown),
    })


# -------------------- Cart --------------------
@shop_api.get("/cart")
def get_cart():
    from app import cart_item_to_dict

    items = _session_cart()
    return jsonify({
        "items": [cart_item_to_dict(i) for i in items],
        "totals": _floats(cart_totals(_cart_lines(items))),
    })


@shop_api.post("/cart")
def add_to_cart():
    from app import db, CartItem, api_error, cart_item_to_dict, cart_session_id, product_to_dict

    data = snake_keys(request.get_json(silent=True))
    try:
        product_id = int(data.get("product_id"))
    except (TypeError, ValueError, OverflowError):
        return api_error("Missing product_id")

    product = _get_product_or_404(product_id)
    if not product.in_stock:
        return api_error("Product is out of stock")

    quantity, qty_error = validate_quantity(data.get("quantity", 1))
    if qty_error:
        return api_error(qty_error)

    pdict = product_to_dict(product)
    config = build_configuration(pdict, data)
    errors = validate_configuration(pdict, config)
    if errors:
        return api_error("Invalid configuration", 400, errors=errors)

    unit_price = calculate_price(pdict, config)["total"]
    if unit_price < 0:
        current_app.logger.warning(
            "Rejected negative price %s for product %s config %s", unit_price, product.id, config
        )
        return api_error("This configuration cannot be priced. Please contact us.")

    sid = cart_session_id()

    # Same product + options at the same snapshot price -> bump quantity
    existing = CartItem.query.filter_by(
        session_id=sid,
        product_id=product.id,
        selected_size=config["selected_size"],
        custom_width=config["custom_width"],
        custom_length=config["custom_length"],
        selected_fabric_category=config["selected_fabric_category"],
        selected_fabric=config["selected_fabric"],
        has_lifting_mechanism=config["has_lifting_mechanism"],
        price=unit_price,
    ).first()

    if existing:
        existing.quantity = min(99, existing.quantity + quantity)
        item = existing
    else:
        item = CartItem(session_id=sid, product_id=product.id, quantity=quantity, price=unit_price, **config)
        db.session.add(item)

    db.session.commit()
    return jsonify(cart_item_to_dict(item)), 201


@shop_api.patch("/cart/<int:item_id>")
def update_cart_item(item_id):
    from app import db, api_error, cart_item_to_dict, json_body

    item = _own_cart_item_or_404(item_id)
    data = json_body()

    # Only quantity is mutable; the unit price stays as snapshotted.
    if "quantity" not in data:
        return api_error("Nothing to update (quantity required)")
    quantity, qty_error = validate_quantity(data.get("quantity"))
    if qty_error:
        return api_error(qty_error)

    item.quantity = quantity
    db.session.commit()
    return jsonify(cart_item_to_dict(item))


@shop_api.delete("/cart/<int:item_id>")
def remove_cart_item(item_id):
    from app import db

    item = _own_cart_item_or_404(item_id)
    db.session.delete(item)
    db.session.commit()
    return jsonify({"ok": True})


@shop_api.delete("/cart")
def clear_cart():
    from app import db, CartItem, cart_session_id

    CartItem.query.filter_by(session_id=cart_session_id()).delete()
    db.session.commit()
    return jsonify({"ok": True})


# -------------------- Orders --------------------
def _text(data: dict, *keys, default: str = "") -> str:
    for key in keys:
        if data.get(key):
            return str(data[key]).strip()
    return default


def _validate_checkout(data: dict, settings: dict) -> tuple[dict, list[str]]:
    from app import PAYMENT_METHODS

    fields = {
        "customer_name": _text(data, "customer_name", "customerName"),
        "customer_email": _text(data, "customer_email", "customerEmail"),
        "customer_phone": _text(data, "customer_phone", "customerPhone"),
        "address": _text(data, "address"),
        "delivery_method": _text(data, "delivery_method", "deliveryMethod", default="pickup"),
        "payment_method": _text(data, "payment_method", "paymentMethod", default="cash"),
        "comment": _text(data, "comment") or None,
    }

    errors = []
    if not fields["customer_name"]:
        errors.append("Name is required.")
    if "@" not in fields["customer_email"]:
        errors.append("A valid email is required.")
    if not fields["customer_phone"]:
        errors.append("Phone is required.")
    if fields["delivery_method"] not in DELIVERY_METHODS:
        errors.append("Unknown delivery method.")
    elif fields["delivery_method"] == "courier" and not fields["address"]:
        errors.append("Address is required for courier delivery.")
    if fields["payment_method"] not in PAYMENT_METHODS:
        errors.append("Unknown payment method.")
    elif not settings.get(f"enable_{fields['payment_method']}_payment", True):
        errors.append("This payment method is currently unavailable.")
    return fields, errors


def _fabric_name(product, fabric_id: str) -> str:
    for f in (product.fabrics if product else None) or []:
        if f.get("id") == fabric_id:
            return f.get("name") or fabric_id
    return fabric_id


@shop_api.post("/orders")
def create_order():
    from app import (
        db, Order, OrderItem, api_error, cart_session_id,
        get_shop_settings, json_body, log_order_event, order_to_dict,
    )

    items = _session_cart()
    if not items:
        return api_error("Your cart is empty. Add products before checking out.")

    settings = get_shop_settings()
    fields, errors = _validate_checkout(json_body(), settings)
    if errors:
        return api_error("Invalid checkout data", 400, errors=errors)

    totals = cart_totals(_cart_lines(items))
    delivery = delivery_price(fields["delivery_method"], totals["total"], settings)

    order = Order(
        session_id=cart_session_id(),
        user_id=current_user.id if current_user.is_authenticated else None,
        delivery_price=delivery,
        subtotal=totals["subtotal"],
        discount_amount=totals["discount"],
        total_amount=totals["total"] + delivery,
        status="pending",
        **fields,
    )

    try:
        db.session.add(order)
        db.session.flush()
        for item in items:
            product = item.product
            db.session.add(OrderItem(
                order_id=order.id,
                product_id=item.product_id,
                product_name=product.name if product else f"Product {item.product_id}",
                quantity=item.quantity,
                selected_size=item.selected_size,
                custom_width=item.custom_width,
                custom_length=item.custom_length,
                selected_fabric_category=item.selected_fabric_category,
                selected_fabric=item.selected_fabric,
                fabric_name=_fabric_name(product, item.selected_fabric),
                has_lifting_mechanism=item.has_lifting_mechanism,
                price=item.price,
                discount=product.discount if product else 0,
            ))
            db.session.delete(item)
        log_order_event(order.id, "created", f"Checkout: {totals['items_count']} item(s), total {order.total_amount}",
                        actor=current_user.username if current_user.is_authenticated else "website")
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        current_app.logger.exception("Order insert failed")
        return api_error("Could not place the order", 500)

    current_app.logger.info("Order %s created (total %s)", order.id, order.total_amount)
    return jsonify({"ok": True, "order": order_to_dict(order, with_items=True)}), 201


def _owns_order(order) -> bool:
    from app import cart_session_id

    if current_user.is_authenticated and (current_user.is_admin or order.user_id == current_user.id):
        return True
    return order.session_id == cart_session_id()


@shop_api.get("/orders")
def list_orders():
    from app import Order, cart_session_id, order_to_dict

    cond = Order.session_id == cart_session_id()
    if current_user.is_authenticated:
        cond = cond | (Order.user_id == current_user.id)
    orders = Order.query.filter(cond).order_by(Order.created_at.desc(), Order.id.desc()).all()
    return jsonify([order_to_dict(o) for o in orders])


@shop_api.get("/orders/<int:order_id>")
def get_order(order_id):
    from app import db, Order, api_error, order_to_dict

    order = db.session.get(Order, order_id)
    if order is None or not _owns_order(order):
        return api_error("Order not found", 404)
    return jsonify(order_to_dict(order, with_items=True))


# -------------------- Reviews --------------------
@shop_api.get("/products/<int:product_id>/reviews")
def list_reviews(product_id):
    from app import Review, review_to_dict

    _get_product_or_404(product_id)
    reviews = (
        Review.query.filter_by(product_id=product_id)
        .order_by(Review.created_at.desc(), Review.id.desc())
        .all()
    )
    return jsonify([review_to_dict(r) for r in reviews])


@shop_api.post("/products/<int:product_id>/reviews")
def create_review(product_id):
    from app import db, Review, api_error, cart_session_id, json_body, review_to_dict

    _get_product_or_404(product_id)
    data = json_body()

    name = _text(data, "customer_name", "customerName")
    if not name and current_user.is_authenticated:
        name = current_user.first_name or current_user.username
    comment = _text(data, "comment")
    try:
        rating = int(data.get("rating"))
    except (TypeError, ValueError, OverflowError):
        rating = None

    if not name or not comment or rating is None:
        return api_error("Name, rating and comment are required.")
    if not 1 <= rating <= 5:
        return api_error("Rating must be between 1 and 5.")

    review = Review(
        product_id=product_id,
        session_id=cart_session_id(),
        user_id=current_user.id if current_user.is_authenticated else None,
        customer_name=name,
        rating=rating,
        comment=comment,
    )
    db.session.add(review)
    db.session.commit()
    return jsonify(review_to_dict(review)), 201


@shop_api.delete("/products/<int:product_id>/reviews/<int:review_id>")
def delete_product_review(product_id, review_id):
    from app import db, Review, admin_required, api_error

    admin_required()
    review = db.session.get(Review, review_id)
    if review is None or review.product_id != product_id:
        return api_error("Review not found", 404)
    db.session.delete(review)
    db.session.commit()
    return jsonify({"ok": True})


# -------------------- Settings --------------------
PUBLIC_SETTINGS = {
    "shop_name", "shop_description", "contact_email", "contact_phone", "address",
    "working_hours", "instagram_url", "facebook_url", "enable_free_delivery",
    "free_delivery_threshold", "delivery_price_local", "enable_cash_payment",
    "enable_card_payment",
}


@shop_api.get("/settings")
def public_settings():
    from app import get_shop_settings

    settings = get_shop_settings()
    return jsonify({k: v for k, v in settings.items() if k in PUBLIC_SETTINGS})
