from __future__ import annotations

# =========================================
# catalog.py
# Product configuration + input validation
# =========================================
# - Builds the per-request configuration dict fed to pricing.calculate_price()
# - Validates configurations and admin product payloads at the API boundary
# - Accepts camelCase (storefront JS) or snake_case keys
# =========================================

from decimal import InvalidOperation

from pricing import (
    BASELINE_SIZE_ID,
    CUSTOM_LENGTH_RANGE,
    CUSTOM_SIZE_ID,
    CUSTOM_WIDTH_RANGE,
    STANDARD_FABRIC_CATEGORY,
    lifting_mechanism_available,
    to_decimal,
)

PRODUCT_CATEGORIES = {"mattress", "bed"}

DEFAULT_CUSTOM_WIDTH = 160
DEFAULT_CUSTOM_LENGTH = 200

# camelCase -> snake_case for fields the storefront posts
_ALIASES = {
    "selectedSize": "selected_size",
    "customWidth": "custom_width",
    "customLength": "custom_length",
    "selectedFabricCategory": "selected_fabric_category",
    "selectedFabric": "selected_fabric",
    "hasLiftingMechanism": "has_lifting_mechanism",
    "productId": "product_id",
    "basePrice": "base_price",
    "fabricCategories": "fabric_categories",
    "liftingMechanismPrice": "lifting_mechanism_price",
    "inStock": "in_stock",
    "priceMultiplier": "price_multiplier",
}


def snake_keys(data: dict | None) -> dict:
    if not isinstance(data, dict):
        return {}
    return {_ALIASES.get(k, k): v for k, v in data.items()}


def _as_bool(val) -> bool:
    if isinstance(val, bool):
        return val
    if val is None:
        return False
    return str(val).strip().lower() in {"1", "true", "yes", "y", "on"}


def _finite(val, default="0"):
    """to_decimal() that also rejects Infinity and NaN."""
    d = to_decimal(val, default)
    if not d.is_finite():
        raise InvalidOperation(f"not a finite number: {val!r}")
    return d


def _rows(rows) -> list:
    return rows if isinstance(rows, list) else []


def _as_int(val):
    if val is None or val == "":
        return None
    try:
        return int(val)
    except (TypeError, ValueError, OverflowError):
        return None


def fabrics_in_category(product: dict, category_id: str) -> list[dict]:
    return [f for f in product.get("fabrics") or [] if f.get("category") == category_id]


def default_configuration(product: dict) -> dict:
    sizes = product.get("sizes") or []
    size_ids = [s.get("id") for s in sizes]
    size = BASELINE_SIZE_ID if BASELINE_SIZE_ID in size_ids or not size_ids else size_ids[0]

    cat_ids = [c.get("id") for c in product.get("fabric_categories") or []]
    category = STANDARD_FABRIC_CATEGORY if STANDARD_FABRIC_CATEGORY in cat_ids or not cat_ids else cat_ids[0]

    fabrics = fabrics_in_category(product, category)
    return {
        "selected_size": size,
        "custom_width": DEFAULT_CUSTOM_WIDTH,
        "custom_length": DEFAULT_CUSTOM_LENGTH,
        "selected_fabric_category": category,
        "selected_fabric": fabrics[0]["id"] if fabrics else None,
        "has_lifting_mechanism": False,
    }


def build_configuration(product: dict, payload: dict | None) -> dict:
    """Client selections layered over the product defaults."""
    data = snake_keys(payload)
    config = default_configuration(product)

    if data.get("selected_size"):
        config["selected_size"] = str(data["selected_size"])
    if data.get("selected_fabric_category"):
        config["selected_fabric_category"] = str(data["selected_fabric_category"])
        # switching category resets the fabric unless one is given
        if not data.get("selected_fabric"):
            fabrics = fabrics_in_category(product, config["selected_fabric_category"])
            config["selected_fabric"] = fabrics[0]["id"] if fabrics else None
    if data.get("selected_fabric"):
        config["selected_fabric"] = str(data["selected_fabric"])
    if "has_lifting_mechanism" in data:
        config["has_lifting_mechanism"] = _as_bool(data["has_lifting_mechanism"])

    if config["selected_size"] == CUSTOM_SIZE_ID:
        if "custom_width" in data:
            config["custom_width"] = _as_int(data["custom_width"])
        if "custom_length" in data:
            config["custom_length"] = _as_int(data["custom_length"])
    else:
        config["custom_width"] = None
        config["custom_length"] = None

    return config


def validate_configuration(product: dict, config: dict) -> list[str]:
    errors = []

    size_id = config.get("selected_size")
    size_ids = {s.get("id") for s in product.get("sizes") or []}
    if size_id == CUSTOM_SIZE_ID:
        w, l = config.get("custom_width"), config.get("custom_length")
        lo, hi = CUSTOM_WIDTH_RANGE
        if w is None or not lo <= w <= hi:
            errors.append(f"Custom width must be between {lo} and {hi} cm.")
        lo, hi = CUSTOM_LENGTH_RANGE
        if l is None or not lo <= l <= hi:
            errors.append(f"Custom length must be between {lo} and {hi} cm.")
    elif size_id not in size_ids:
        errors.append(f"Unknown size: {size_id}")

    cat_id = config.get("selected_fabric_category")
    cat_ids = {c.get("id") for c in product.get("fabric_categories") or []}
    if cat_id not in cat_ids:
        errors.append(f"Unknown fabric category: {cat_id}")

    fabric_id = config.get("selected_fabric")
    fabric = next((f for f in product.get("fabrics") or [] if f.get("id") == fabric_id), None)
    if fabric is None:
        errors.append("Please select a fabric.")
    elif fabric.get("category") != cat_id:
        errors.append(f"Fabric {fabric_id} does not belong to category {cat_id}.")

    if config.get("has_lifting_mechanism") and not lifting_mechanism_available(product):
        errors.append("This product has no lifting mechanism option.")

    return errors


def validate_quantity(val):
    """Returns (quantity, error)."""
    qty = _as_int(val)
    if qty is None or not 1 <= qty <= 99:
        return None, "Quantity must be between 1 and 99."
    return qty, None


def _clean_sizes(rows, errors):
    out = []
    for row in _rows(rows):
        row = snake_keys(row)
        if not row.get("id"):
            errors.append("Every size needs an id.")
            continue
        try:
            price = float(_finite(row.get("price")))
        except InvalidOperation:
            errors.append(f"Size {row['id']} has an invalid price.")
            continue
        out.append({"id": str(row["id"]), "label": str(row.get("label") or row["id"]), "price": price})
    return out


def _clean_fabric_categories(rows, errors):
    out = []
    for row in _rows(rows):
        row = snake_keys(row)
        if not row.get("id"):
            errors.append("Every fabric category needs an id.")
            continue
        try:
            mult = float(_finite(row.get("price_multiplier"), "1"))
        except InvalidOperation:
            errors.append(f"Fabric category {row['id']} has an invalid multiplier.")
            continue
        if mult <= 0:
            errors.append(f"Fabric category {row['id']} multiplier must be positive.")
            continue
        out.append({"id": str(row["id"]), "name": str(row.get("name") or row["id"]), "price_multiplier": mult})
    return out


def _clean_fabrics(rows, category_ids, errors):
    out = []
    for row in _rows(rows):
        row = snake_keys(row)
        if not row.get("id"):
            errors.append("Every fabric needs an id.")
            continue
        if not isinstance(row.get("category"), str) or row["category"] not in category_ids:
            errors.append(f"Fabric {row['id']} references unknown category {row.get('category')}.")
            continue
        out.append({
            "id": str(row["id"]),
            "name": str(row.get("name") or row["id"]),
            "category": row["category"],
            "thumbnail": row.get("thumbnail") or "",
            "image": row.get("image") or "",
        })
    return out


def normalize_product_payload(data: dict, partial: bool = False, current: dict | None = None):
    """
    Returns (clean, errors) for an admin product create/update/import row.
    With partial=True only the keys present are returned; fabric references
    are still checked against `current` categories when those are untouched.
    """
    data = snake_keys(data)
    current = current or {}
    clean, errors = {}, []

    def present(key):
        return key in data or not partial

    if present("name"):
        name = str(data.get("name") or "").strip()
        if not name:
            errors.append("Name is required.")
        clean["name"] = name
    if present("description"):
        clean["description"] = str(data.get("description") or "").strip()
    if present("category"):
        category = str(data.get("category") or "").strip()
        if category not in PRODUCT_CATEGORIES:
            errors.append("Category must be 'mattress' or 'bed'.")
        clean["category"] = category

    if not partial and data.get("base_price") in (None, ""):
        errors.append("base_price is required.")

    for key in ("base_price", "lifting_mechanism_price"):
        if present(key):
            try:
                val = _finite(data.get(key))
            except InvalidOperation:
                errors.append(f"{key} must be a number.")
                continue
            if val < 0:
                errors.append(f"{key} cannot be negative.")
            clean[key] = val

    if present("discount"):
        discount = _as_int(data.get("discount") or 0)
        if discount is None or not 0 <= discount <= 100:
            errors.append("Discount must be between 0 and 100.")
        clean["discount"] = discount or 0

    if present("images"):
        images = data.get("images") or []
        clean["images"] = [str(i) for i in images] if isinstance(images, list) else []
    if present("specifications"):
        specs = _rows(data.get("specifications"))
        clean["specifications"] = [
            {"key": str(s.get("key", "")), "value": str(s.get("value", ""))}
            for s in specs if isinstance(s, dict)
        ]
    if present("sizes"):
        clean["sizes"] = _clean_sizes(data.get("sizes"), errors)
    if present("fabric_categories"):
        clean["fabric_categories"] = _clean_fabric_categories(data.get("fabric_categories"), errors)

    if "fabrics" in data or "fabric_categories" in clean or not partial:
        categories = clean.get("fabric_categories", current.get("fabric_categories") or [])
        fabrics = data["fabrics"] if "fabrics" in data else current.get("fabrics") or []
        clean["fabrics"] = _clean_fabrics(fabrics, {c["id"] for c in categories}, errors)

    for key, default in (("has_lifting_mechanism", False), ("featured", False), ("in_stock", True)):
        if present(key):
            clean[key] = _as_bool(data[key]) if key in data else default

    return clean, errors
