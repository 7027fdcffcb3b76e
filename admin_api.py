from __future__ import annotations

# =========================================
# admin_api.py
# LuxBed back office API (admin only)
# =========================================
# - Product CRUD (fabric/category invariants enforced via catalog.py)
# - Order list, status transitions + audit log, printable PDF sheet
# - Review moderation, shop settings, user list
# - Bulk JSON import and CSV/JSON export
# =========================================

import csv
import io
import json
import secrets
from datetime import datetime

from flask import Blueprint, Response, abort, current_app, jsonify, request
from flask_login import current_user
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from catalog import normalize_product_payload, snake_keys, validate_quantity
from pdf_utils import build_order_pdf_bytes
from pricing import DELIVERY_METHODS, cart_totals, money

admin_api = Blueprint("admin_api", __name__, url_prefix="/api/admin")


@admin_api.before_request
def _require_admin():
    from app import admin_required

    admin_required()


# -------------------- Products --------------------
@admin_api.get("/products")
def list_products():
    from app import Product, product_to_dict

    products = Product.query.order_by(Product.id.asc()).all()
    return jsonify([product_to_dict(p) for p in products])


@admin_api.post("/products")
def create_product():
    from app import db, Product, api_error, product_to_dict

    clean, errors = normalize_product_payload(request.get_json(silent=True) or {})
    if errors:
        return api_error("Invalid product", 400, errors=errors)

    product = Product(**clean)
    db.session.add(product)
    db.session.commit()
    current_app.logger.info("Product %s created by %s", product.id, current_user.username)
    return jsonify(product_to_dict(product)), 201


@admin_api.patch("/products/<int:product_id>")
def update_product(product_id):
    from app import db, Product, api_error, product_to_dict

    product = db.session.get(Product, product_id)
    if product is None:
        return api_error("Product not found", 404)

    clean, errors = normalize_product_payload(
        request.get_json(silent=True) or {}, partial=True, current=product_to_dict(product)
    )
    if errors:
        return api_error("Invalid product", 400, errors=errors)

    for key, val in clean.items():
        setattr(product, key, val)
    db.session.commit()
    return jsonify(product_to_dict(product))


@admin_api.delete("/products/<int:product_id>")
def delete_product(product_id):
    """Removes the product with its cart lines and reviews; order items keep their snapshot."""
    from app import db, CartItem, Product, Review, api_error

    product = db.session.get(Product, product_id)
    if product is None:
        return api_error("Product not found", 404)

    CartItem.query.filter_by(product_id=product.id).delete()
    Review.query.filter_by(product_id=product.id).delete()
    db.session.delete(product)
    db.session.commit()
    current_app.logger.info("Product %s deleted by %s", product_id, current_user.username)
    return jsonify({"ok": True})


# -------------------- Orders --------------------
@admin_api.get("/orders")
def list_orders():
    from app import ORDER_STATUSES, Order, api_error, order_to_dict

    q = Order.query
    status = (request.args.get("status") or "").strip()
    if status:
        if status not in ORDER_STATUSES:
            return api_error("Unknown status")
        q = q.filter(Order.status == status)
    orders = q.order_by(Order.created_at.desc(), Order.id.desc()).all()
    return jsonify([order_to_dict(o) for o in orders])


def _order_or_404(order_id: int):
    from app import db, Order

    order = db.session.get(Order, order_id)
    if order is None:
        abort(404, description="Order not found")
    return order


@admin_api.get("/orders/<int:order_id>")
def get_order(order_id):
    from app import order_to_dict

    order = _order_or_404(order_id)
    out = order_to_dict(order, with_items=True)
    out["logs"] = [
        {
            "timestamp": log.timestamp.isoformat(timespec="seconds"),
            "actor": log.actor_username,
            "action": log.action,
            "details": log.details,
        }
        for log in order.logs
    ]
    return jsonify(out)


@admin_api.patch("/orders/<int:order_id>")
def update_order_status(order_id):
    from app import ORDER_STATUSES, STATUS_TRANSITIONS, db, api_error, json_body, log_order_event, order_to_dict

    order = _order_or_404(order_id)
    new_status = str(json_body().get("status") or "").strip()

    if new_status not in ORDER_STATUSES:
        return api_error("Invalid order status")
    if new_status not in STATUS_TRANSITIONS[order.status]:
        current_app.logger.warning("Rejected order %s transition %s -> %s", order.id, order.status, new_status)
        return api_error(f"Cannot change status from {order.status} to {new_status}")

    old = order.status
    order.status = new_status
    log_order_event(order.id, "status_change", f"Status changed: {old} → {new_status}")
    db.session.commit()

    current_app.logger.info("Order %s status %s -> %s", order.id, old, new_status)
    return jsonify(order_to_dict(order))


@admin_api.get("/orders/<int:order_id>/pdf")
def order_pdf(order_id):
    from app import get_shop_settings, order_to_dict

    order = _order_or_404(order_id)
    data = order_to_dict(order, with_items=True)
    pdf_bytes = build_order_pdf_bytes(data, items=data["items"], shop_name=get_shop_settings()["shop_name"])
    return Response(
        pdf_bytes,
        mimetype="application/pdf",
        headers={"Content-Disposition": f"inline; filename=order_{order.id}.pdf"},
    )


# -------------------- Reviews --------------------
@admin_api.get("/reviews")
def list_reviews():
    from app import Product, Review, review_to_dict

    names = dict(Product.query.with_entities(Product.id, Product.name).all())
    reviews = Review.query.order_by(Review.created_at.desc(), Review.id.desc()).all()
    out = []
    for r in reviews:
        row = review_to_dict(r)
        row["product_name"] = names.get(r.product_id)
        out.append(row)
    return jsonify(out)


@admin_api.delete("/reviews/<int:review_id>")
def delete_review(review_id):
    from app import db, Review, api_error

    review = db.session.get(Review, review_id)
    if review is None:
        return api_error("Review not found", 404)
    db.session.delete(review)
    db.session.commit()
    return jsonify({"ok": True})


# -------------------- Settings --------------------
@admin_api.get("/settings")
def get_settings():
    from app import get_shop_settings

    return jsonify(get_shop_settings())


@admin_api.put("/settings")
def update_settings():
    from app import api_error, save_shop_settings

    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        return api_error("Expected a JSON object")
    try:
        settings = save_shop_settings(data)
    except (TypeError, ValueError, OverflowError):
        return api_error("Invalid settings value")

    current_app.logger.info("Shop settings updated by %s", current_user.username)
    return jsonify(settings)


# -------------------- Users --------------------
@admin_api.get("/users")
def list_users():
    from app import User, user_to_dict

    users = User.query.order_by(User.is_admin.desc(), User.username.asc()).all()
    return jsonify([user_to_dict(u) for u in users])


# -------------------- Import --------------------
def _import_rows():
    rows = request.get_json(silent=True)
    if not isinstance(rows, list) or not rows:
        return None
    return rows


@admin_api.post("/products/import")
def import_products():
    from app import db, Product, api_error, product_to_dict

    rows = _import_rows()
    if rows is None:
        return api_error("Expected a non-empty JSON array")

    imported, skipped = [], []
    for i, row in enumerate(rows):
        clean, errors = normalize_product_payload(row if isinstance(row, dict) else {})
        if errors:
            skipped.append({"index": i, "errors": errors})
            continue
        product = Product(**clean)
        db.session.add(product)
        imported.append(product)

    try:
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        current_app.logger.exception("Product import failed")
        return api_error("Product import failed", 500)

    current_app.logger.info("Imported %d products (%d skipped)", len(imported), len(skipped))
    return jsonify({
        "ok": True,
        "imported": len(imported),
        "skipped": skipped,
        "products": [product_to_dict(p) for p in imported],
    }), 201


@admin_api.post("/users/import")
def import_users():
    from app import db, User, api_error

    rows = _import_rows()
    if rows is None:
        return api_error("Expected a non-empty JSON array")

    imported, skipped = 0, []
    seen = set()
    for i, row in enumerate(rows):
        row = row if isinstance(row, dict) else {}
        username = str(row.get("username") or "").strip()
        email = str(row.get("email") or "").strip()
        if len(username) < 3 or "@" not in email:
            skipped.append({"index": i, "errors": ["username and email are required"]})
            continue
        if username in seen or email in seen or User.query.filter(
            (User.username == username) | (User.email == email)
        ).first():
            skipped.append({"index": i, "errors": ["duplicate username or email"]})
            continue
        seen.update({username, email})

        user = User(
            username=username,
            email=email,
            first_name=row.get("first_name") or row.get("firstName"),
            last_name=row.get("last_name") or row.get("lastName"),
            phone=row.get("phone"),
            address=row.get("address"),
            is_admin=bool(row.get("is_admin") or row.get("isAdmin")),
        )
        # no password given -> random one; the user resets it later
        user.set_password(str(row.get("password") or secrets.token_urlsafe(16)))
        db.session.add(user)
        imported += 1

    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        current_app.logger.warning("User import hit a uniqueness conflict")
        return api_error("Duplicate username or email in import", 409)

    current_app.logger.info("Imported %d users (%d skipped)", imported, len(skipped))
    return jsonify({"ok": True, "imported": imported, "skipped": skipped}), 201


def _import_order_item(row: dict):
    row = snake_keys(row)
    qty, err = validate_quantity(row.get("quantity", 1))
    if err:
        return None, err
    try:
        price = money(row.get("price"))
        product_id = int(row.get("product_id") or 0)
        discount = int(row.get("discount") or 0)
        custom_width = int(row["custom_width"]) if row.get("custom_width") else None
        custom_length = int(row["custom_length"]) if row.get("custom_length") else None
    except (ArithmeticError, TypeError, ValueError):
        return None, "invalid numeric field in item"
    return {
        "product_id": product_id,
        "product_name": str(row.get("product_name") or row.get("productName") or "Imported product"),
        "quantity": qty,
        "selected_size": str(row.get("selected_size") or "double"),
        "custom_width": custom_width,
        "custom_length": custom_length,
        "selected_fabric_category": str(row.get("selected_fabric_category") or "standard"),
        "selected_fabric": str(row.get("selected_fabric") or ""),
        "fabric_name": str(row.get("fabric_name") or row.get("fabricName") or ""),
        "has_lifting_mechanism": bool(row.get("has_lifting_mechanism")),
        "price": price,
        "discount": discount,
    }, None


def _imported_order(row: dict):
    """Returns (Order, errors) for one import row; nothing touches the session."""
    from app import ORDER_STATUSES, Order, OrderItem

    errors = []
    items = []
    raw_items = row.get("items")
    for raw in raw_items if isinstance(raw_items, list) else []:
        item, err = _import_order_item(raw if isinstance(raw, dict) else {})
        if err:
            errors.append(err)
        else:
            items.append(item)
    if not items:
        errors.append("order has no items")

    status = str(row.get("status") or "pending")
    if status not in ORDER_STATUSES:
        errors.append(f"unknown status {status}")
    delivery_method = str(row.get("delivery_method") or row.get("deliveryMethod") or "pickup")
    if delivery_method not in DELIVERY_METHODS:
        errors.append(f"unknown delivery method {delivery_method}")
    if errors:
        return None, errors

    totals = cart_totals(items)
    try:
        delivery = money(row.get("delivery_price") or row.get("deliveryPrice") or 0)
        total = row.get("total_amount") or row.get("totalAmount")
        total = money(total) if total not in (None, "") else totals["total"] + delivery
    except ArithmeticError:
        return None, ["invalid delivery price or total"]

    order = Order(
        session_id=str(row.get("session_id") or f"import_{datetime.utcnow():%Y%m%d%H%M%S}"),
        customer_name=str(row.get("customer_name") or row.get("customerName") or "Imported order"),
        customer_email=str(row.get("customer_email") or row.get("customerEmail") or ""),
        customer_phone=str(row.get("customer_phone") or row.get("customerPhone") or ""),
        address=str(row.get("address") or ""),
        delivery_method=delivery_method,
        delivery_price=delivery,
        payment_method=str(row.get("payment_method") or row.get("paymentMethod") or "cash"),
        comment=str(row["comment"]) if row.get("comment") else None,
        subtotal=totals["subtotal"],
        discount_amount=totals["discount"],
        total_amount=total,
        status=status,
    )
    order.items = [OrderItem(**item) for item in items]
    return order, []


@admin_api.post("/orders/import")
def import_orders():
    from app import db, api_error, log_order_event

    rows = _import_rows()
    if rows is None:
        return api_error("Expected a non-empty JSON array")

    imported, skipped = 0, []
    try:
        for i, row in enumerate(rows):
            order, errors = _imported_order(row if isinstance(row, dict) else {})
            if errors:
                skipped.append({"index": i, "errors": errors})
                continue
            db.session.add(order)
            db.session.flush()
            log_order_event(order.id, "imported", f"Imported by {current_user.username}")
            imported += 1
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        current_app.logger.exception("Order import failed")
        return api_error("Order import failed", 500)

    current_app.logger.info("Imported %d orders (%d skipped)", imported, len(skipped))
    return jsonify({"ok": True, "imported": imported, "skipped": skipped}), 201


# -------------------- Export --------------------
def _export_rows(entity: str) -> list[dict] | None:
    from app import Order, Product, User, order_to_dict, product_to_dict, user_to_dict

    if entity == "orders":
        return [order_to_dict(o, with_items=True) for o in Order.query.order_by(Order.id.asc()).all()]
    if entity == "products":
        return [product_to_dict(p) for p in Product.query.order_by(Product.id.asc()).all()]
    if entity == "users":
        return [user_to_dict(u) for u in User.query.order_by(User.id.asc()).all()]
    return None


def _to_csv(rows: list[dict]) -> str:
    buf = io.StringIO()
    if not rows:
        return ""
    writer = csv.DictWriter(buf, fieldnames=list(rows[0].keys()))
    writer.writeheader()
    for row in rows:
        writer.writerow({
            k: json.dumps(v, ensure_ascii=False) if isinstance(v, (list, dict)) else v
            for k, v in row.items()
        })
    return buf.getvalue()


@admin_api.get("/export/<entity>")
def export(entity):
    from app import api_error

    rows = _export_rows(entity)
    if rows is None:
        return api_error("Unknown export type", 404)

    fmt = (request.args.get("format") or "csv").lower()
    filename = f"{entity}_export_{datetime.utcnow():%Y%m%d}"
    if fmt == "json":
        body, mimetype = json.dumps(rows, ensure_ascii=False, indent=2), "application/json"
    elif fmt == "csv":
        body, mimetype = _to_csv(rows), "text/csv"
    else:
        return api_error("Format must be csv or json")

    return Response(
        body,
        mimetype=mimetype,
        headers={"Content-Disposition": f"attachment; filename={filename}.{fmt}"},
    )
