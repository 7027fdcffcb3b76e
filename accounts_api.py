from __future__ import annotations

# =========================================
# accounts_api.py
# LuxBed customer accounts
# =========================================
# Register / login / logout, profile and password changes.
# Auth state is the Flask-Login session cookie; the cart session id
# survives login so a guest cart follows the customer.
# =========================================

import re

from flask import Blueprint, current_app, jsonify, request
from flask_login import current_user, login_required, login_user, logout_user
from sqlalchemy.exc import IntegrityError

accounts_api = Blueprint("accounts_api", __name__, url_prefix="/api")

EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
PROFILE_FIELDS = ("first_name", "last_name", "phone", "address")

_CAMEL = {
    "firstName": "first_name",
    "lastName": "last_name",
    "confirmPassword": "confirm_password",
    "currentPassword": "current_password",
    "newPassword": "new_password",
}


def _payload() -> dict:
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        return {}
    return {_CAMEL.get(k, k): v for k, v in data.items()}


def _s(data: dict, key: str) -> str:
    return str(data.get(key) or "").strip()


@accounts_api.post("/register")
def register():
    from app import db, User, api_error, user_to_dict

    data = _payload()
    username = _s(data, "username")
    email = _s(data, "email")
    password = str(data.get("password") or "")

    errors = []
    if len(username) < 3:
        errors.append("Username must be at least 3 characters.")
    if not EMAIL_RE.match(email):
        errors.append("Please enter a valid email.")
    if len(password) < 6:
        errors.append("Password must be at least 6 characters.")
    if password != str(data.get("confirm_password") or ""):
        errors.append("Passwords do not match.")
    if errors:
        return api_error("Validation failed", 400, errors=errors)

    if User.query.filter_by(username=username).first():
        return api_error("That username already exists.", 409)
    if User.query.filter_by(email=email).first():
        return api_error("That email is already registered.", 409)

    user = User(username=username, email=email, **{k: _s(data, k) or None for k in PROFILE_FIELDS})
    user.set_password(password)
    db.session.add(user)
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        current_app.logger.warning("Duplicate registration for %s", username)
        return api_error("That username or email already exists.", 409)

    login_user(user)
    current_app.logger.info("User registered: %s", username)
    return jsonify(user_to_dict(user)), 201


@accounts_api.post("/login")
def login():
    from app import User, api_error, user_to_dict

    data = _payload()
    username = _s(data, "username")
    password = str(data.get("password") or "")

    user = User.query.filter_by(username=username).first()
    if user and user.check_password(password):
        login_user(user)
        return jsonify(user_to_dict(user))

    current_app.logger.warning("Failed login for %s", username)
    return api_error("Invalid username or password.", 401)


@accounts_api.post("/logout")
@login_required
def logout():
    logout_user()
    return jsonify({"ok": True})


@accounts_api.get("/user/profile")
@login_required
def get_profile():
    from app import user_to_dict

    return jsonify(user_to_dict(current_user))


@accounts_api.put("/user/profile")
@login_required
def update_profile():
    from app import db, User, api_error, user_to_dict

    data = _payload()

    if "email" in data:
        email = _s(data, "email")
        if not EMAIL_RE.match(email):
            return api_error("Please enter a valid email.")
        other = User.query.filter_by(email=email).first()
        if other and other.id != current_user.id:
            return api_error("That email is already registered.", 409)
        current_user.email = email

    for key in PROFILE_FIELDS:
        if key in data:
            setattr(current_user, key, _s(data, key) or None)

    db.session.commit()
    return jsonify(user_to_dict(current_user))


@accounts_api.put("/user/password")
@login_required
def change_password():
    from app import db, api_error

    data = _payload()
    new_password = str(data.get("new_password") or "")

    if not current_user.check_password(str(data.get("current_password") or "")):
        return api_error("Current password is incorrect.", 401)
    if len(new_password) < 6:
        return api_error("Password must be at least 6 characters.")
    if new_password != str(data.get("confirm_password") or ""):
        return api_error("Passwords do not match.")

    current_user.set_password(new_password)
    db.session.commit()
    return jsonify({"ok": True})
