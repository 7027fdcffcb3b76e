from __future__ import annotations

# =========================================
# pdf_utils.py
# LuxBed back office - printable order sheet
# =========================================
# Produces a simple, printable PDF of an order (ReportLab) for the
# workshop / delivery crew.
# =========================================

from io import BytesIO
from datetime import datetime

from reportlab.lib.pagesizes import letter
from reportlab.lib.units import inch
from reportlab.pdfgen import canvas

from pricing import format_price


def _safe(s) -> str:
    if s is None:
        return ""
    return str(s)


def _wrap(text: str, max_chars: int) -> list[str]:
    if len(text) <= max_chars:
        return [text]
    words = text.split()
    lines, cur = [], ""
    for w in words:
        if len(cur) + len(w) + 1 <= max_chars:
            cur = (cur + " " + w).strip()
        else:
            if cur:
                lines.append(cur)
            cur = w
    if cur:
        lines.append(cur)
    return lines


def describe_configuration(item: dict) -> str:
    if item.get("selected_size") == "custom":
        size = f"custom {_safe(item.get('custom_width'))}x{_safe(item.get('custom_length'))} cm"
    else:
        size = _safe(item.get("selected_size"))
    parts = [
        f"Size: {size}",
        f"Fabric: {_safe(item.get('fabric_name') or item.get('selected_fabric'))}"
        f" ({_safe(item.get('selected_fabric_category'))})",
    ]
    if item.get("has_lifting_mechanism"):
        parts.append("Lifting mechanism")
    return "; ".join(parts)


def build_order_pdf_bytes(order: dict, items: list[dict], shop_name: str = "LuxBed") -> bytes:
    """
    Returns PDF bytes.
    order: dict as produced by app.order_to_dict()
    items: list of order item dicts (product_name, quantity, price, configuration fields)
    """
    buf = BytesIO()
    c = canvas.Canvas(buf, pagesize=letter)
    width, height = letter

    # ---- Header
    margin = 0.6 * inch
    y = height - margin

    c.setFont("Helvetica-Bold", 16)
    c.drawString(margin, y, f"{shop_name} - Order #{_safe(order.get('id'))}")
    y -= 0.28 * inch

    c.setFont("Helvetica", 10)
    c.drawString(margin, y, f"Status: {_safe(order.get('status')).upper()}")
    c.drawRightString(width - margin, y, f"Delivery: {_safe(order.get('delivery_method'))}")
    y -= 0.18 * inch

    created_at = _safe(order.get("created_at")) or datetime.utcnow().isoformat(timespec="seconds")
    c.drawString(margin, y, f"Created: {created_at}")
    c.drawRightString(width - margin, y, f"Payment: {_safe(order.get('payment_method'))}")
    y -= 0.30 * inch

    # ---- Customer block
    c.setFont("Helvetica-Bold", 12)
    c.drawString(margin, y, "Customer")
    y -= 0.18 * inch

    c.setFont("Helvetica", 10)
    for label, key in (("Name", "customer_name"), ("Email", "customer_email"),
                       ("Phone", "customer_phone"), ("Address", "address")):
        c.drawString(margin, y, f"{label}: {_safe(order.get(key))}")
        y -= 0.16 * inch
    if order.get("comment"):
        for line in _wrap(f"Comment: {_safe(order.get('comment'))}", 95):
            c.drawString(margin, y, line)
            y -= 0.16 * inch
    y -= 0.12 * inch

    # ---- Items table header
    col_qty = margin
    col_name = margin + 0.5 * inch
    col_conf = margin + 2.9 * inch
    col_price = width - margin

    def table_header(title):
        nonlocal y
        c.setFont("Helvetica-Bold", 12)
        c.drawString(margin, y, title)
        y -= 0.22 * inch
        c.setFont("Helvetica-Bold", 9)
        c.drawString(col_qty, y, "Qty")
        c.drawString(col_name, y, "Product")
        c.drawString(col_conf, y, "Configuration")
        c.drawRightString(col_price, y, "Unit price")
        y -= 0.12 * inch
        c.setLineWidth(0.5)
        c.line(margin, y, width - margin, y)
        y -= 0.14 * inch
        c.setFont("Helvetica", 9)

    table_header("Items")

    if not items:
        c.drawString(margin, y, "(No items)")
        y -= 0.18 * inch
    else:
        for row in items:
            name_lines = _wrap(_safe(row.get("product_name")), 38)
            conf_lines = _wrap(describe_configuration(row), 48)
            row_lines = max(len(name_lines), len(conf_lines), 1)

            for i in range(row_lines):
                if y < margin + 1.2 * inch:
                    c.showPage()
                    y = height - margin
                    table_header("Items (cont.)")

                if i == 0:
                    c.drawString(col_qty, y, _safe(row.get("quantity")))
                    c.drawRightString(col_price, y, format_price(row.get("price") or 0))

                c.drawString(col_name, y, name_lines[i] if i < len(name_lines) else "")
                c.drawString(col_conf, y, conf_lines[i] if i < len(conf_lines) else "")
                y -= 0.14 * inch

            y -= 0.06 * inch

    # ---- Totals
    if y < margin + 1.2 * inch:
        c.showPage()
        y = height - margin
    y -= 0.10 * inch
    c.line(margin, y, width - margin, y)
    y -= 0.20 * inch
    c.setFont("Helvetica", 10)
    for label, key in (("Subtotal", "subtotal"), ("Discount", "discount_amount"),
                       ("Delivery", "delivery_price")):
        c.drawString(col_conf, y, label)
        c.drawRightString(col_price, y, format_price(order.get(key) or 0))
        y -= 0.16 * inch
    c.setFont("Helvetica-Bold", 11)
    c.drawString(col_conf, y, "Total")
    c.drawRightString(col_price, y, format_price(order.get("total_amount") or 0))

    # ---- Footer note
    c.setFont("Helvetica-Oblique", 8)
    c.drawString(margin, margin * 0.8, f"Generated by {shop_name} back office")

    c.showPage()
    c.save()

    buf.seek(0)
    return buf.read()
