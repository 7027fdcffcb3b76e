# Central pricing + cart totals shared by the storefront and admin APIs

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP

CENTS = Decimal("0.01")

# Custom sizes are priced against the "double" bed (140x200 cm).
BASELINE_SIZE_ID = "double"
CUSTOM_SIZE_ID = "custom"
BASELINE_WIDTH = 140
BASELINE_LENGTH = 200
CUSTOM_RATE_PER_100_CM2 = Decimal("10")

CUSTOM_WIDTH_RANGE = (80, 220)
CUSTOM_LENGTH_RANGE = (180, 220)

STANDARD_FABRIC_CATEGORY = "standard"

DELIVERY_METHODS = {"courier": "Courier", "pickup": "Pickup"}
DEFAULT_COURIER_PRICE = Decimal("500")


def to_decimal(v, default="0") -> Decimal:
    if v is None or v == "":
        return Decimal(default)
    if isinstance(v, Decimal):
        return v
    return Decimal(str(v))


def money(v) -> Decimal:
    d = to_decimal(v)
    if not d.is_finite():
        raise InvalidOperation(f"not a finite amount: {v!r}")
    return d.quantize(CENTS, rounding=ROUND_HALF_UP)


def _find(rows, row_id):
    return next((r for r in rows or [] if r.get("id") == row_id), None)


def size_price_difference(selected_size, sizes, custom_width=None, custom_length=None) -> Decimal:
    """
    Price delta for the chosen size.

    Catalog sizes carry their own delta. A custom size starts from the
    baseline size's delta and moves by a fixed rate per 100 cm2 of area
    difference, so the result is continuous around the baseline.
    Unknown ids give 0.
    """
    if selected_size == CUSTOM_SIZE_ID:
        baseline = _find(sizes, BASELINE_SIZE_ID)
        baseline_price = to_decimal(baseline.get("price")) if baseline else Decimal("0")
        base_area = BASELINE_WIDTH * BASELINE_LENGTH
        custom_area = int(custom_width or BASELINE_WIDTH) * int(custom_length or BASELINE_LENGTH)
        return baseline_price + Decimal(custom_area - base_area) / 100 * CUSTOM_RATE_PER_100_CM2

    size = _find(sizes, selected_size)
    return to_decimal(size.get("price")) if size else Decimal("0")


def fabric_price_difference(selected_category, fabric_categories, base_price) -> Decimal:
    # standard defines the base price; others scale it (economy < 1 < premium)
    if selected_category == STANDARD_FABRIC_CATEGORY:
        return Decimal("0")
    category = _find(fabric_categories, selected_category)
    multiplier = to_decimal(category.get("price_multiplier"), "1") if category else Decimal("1")
    return to_decimal(base_price) * (multiplier - 1)


def lifting_mechanism_available(product) -> bool:
    return bool(product.get("has_lifting_mechanism")) and product.get("category") == "bed"


def lifting_mechanism_price(product, selected) -> Decimal:
    if selected and lifting_mechanism_available(product):
        return to_decimal(product.get("lifting_mechanism_price"))
    return Decimal("0")


def calculate_price(product, configuration):
    """
    Unit price breakdown for one product configuration.

    product: dict with base_price, category, sizes, fabric_categories,
             has_lifting_mechanism, lifting_mechanism_price, discount
    configuration: dict with selected_size, custom_width, custom_length,
                   selected_fabric_category, has_lifting_mechanism
    """
    base_price = to_decimal(product.get("base_price"))

    size_diff = size_price_difference(
        configuration.get("selected_size"),
        product.get("sizes"),
        configuration.get("custom_width"),
        configuration.get("custom_length"),
    )
    fabric_diff = fabric_price_difference(
        configuration.get("selected_fabric_category"),
        product.get("fabric_categories"),
        base_price,
    )
    lifting = lifting_mechanism_price(product, configuration.get("has_lifting_mechanism"))

    subtotal = base_price + size_diff + fabric_diff + lifting

    discount = to_decimal(product.get("discount"))
    discount_amount = subtotal * (discount / 100) if discount > 0 else Decimal("0")

    subtotal, discount_amount = money(subtotal), money(discount_amount)
    return {
        "base_price": money(base_price),
        "size_difference": money(size_diff),
        "fabric_difference": money(fabric_diff),
        "lifting_mechanism": money(lifting),
        "subtotal": subtotal,
        "discount_percent": int(discount),
        "discount_amount": discount_amount,
        "total": subtotal - discount_amount,
    }


def cart_totals(lines):
    """
    Totals for a list of cart lines (dicts with price, quantity, discount).

    Uses the unit price stored on each line; product prices are never
    re-read here.
    """
    subtotal = Decimal("0")
    discount = Decimal("0")
    count = 0
    for line in lines:
        qty = int(line.get("quantity") or 0)
        line_total = to_decimal(line.get("price")) * qty
        subtotal += line_total
        pct = to_decimal(line.get("discount"))
        if pct > 0:
            discount += line_total * pct / 100
        count += qty

    subtotal, discount = money(subtotal), money(discount)
    return {
        "subtotal": subtotal,
        "discount": discount,
        "total": subtotal - discount,
        "items_count": count,
    }


def delivery_price(method, amount, settings=None) -> Decimal:
    settings = settings or {}
    if method != "courier":
        return Decimal("0")
    threshold = to_decimal(settings.get("free_delivery_threshold"))
    if settings.get("enable_free_delivery") and threshold > 0 and to_decimal(amount) >= threshold:
        return Decimal("0")
    return money(settings.get("delivery_price_local", DEFAULT_COURIER_PRICE))


def format_price(v) -> str:
    whole = to_decimal(v).quantize(Decimal("1"), rounding=ROUND_HALF_UP)
    return f"{int(whole):,}".replace(",", " ")
