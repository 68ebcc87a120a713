from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Any

from posledger.time_utils import parse_iso_date
from .services.errors import ValidationError

# Largest money value accepted from a client (minor currency units)
MAX_AMOUNT = 999_999_999_999


def coerce_int(value: Any, field: str, *, required: bool = True) -> int | None:
    """
    Strict integer coercion for JSON input.

    Accepts ints and plain digit strings; rejects bools, floats, decimals and
    scientific notation.
    """
    if value is None or (isinstance(value, str) and not value.strip()):
        if required:
            raise ValidationError(f"{field} is required")
        return None

    if isinstance(value, bool):
        raise ValidationError(f"{field} must be an integer")
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        raise ValidationError(f"{field} must be an integer, not a decimal")
    if isinstance(value, str):
        stripped = value.strip()
        if "e" in stripped.lower():
            raise ValidationError(f"{field} must be a plain integer (scientific notation not allowed)")
        if "." in stripped:
            raise ValidationError(f"{field} must be an integer (no decimals)")
        try:
            return int(stripped)
        except ValueError:
            raise ValidationError(f"{field} must be an integer")
    raise ValidationError(f"{field} must be an integer")


def coerce_bool(value: Any, field: str, *, default: bool) -> bool:
    """Strict boolean for JSON input; only true/false are accepted."""
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    raise ValidationError(f"{field} must be true or false")


def _text(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip()


def _amount(value: Any, field: str) -> int:
    amount = coerce_int(value, field)
    if amount < 0:
        raise ValidationError(f"{field} must not be negative")
    if amount > MAX_AMOUNT:
        raise ValidationError(f"{field} is too large")
    return amount


@dataclass(frozen=True)
class OrderPayload:
    payment_method: str
    amount: int
    items: list[dict]
    stylist: str = ""
    stylist_id: int | None = None
    shift_id: str | None = None
    customer_id: int | None = None
    customer: dict | None = None


def validate_order_payload(payload: Any) -> OrderPayload:
    """
    Validate a POST /api/orders body.

    Rules:
    - items is a non-empty list; every item has a name and qty > 0
    - price, qty, total are integers (no decimals)
    - customer may be a name string or an object with name/phone/email/address
    """
    if not isinstance(payload, dict):
        raise ValidationError("invalid payload")

    raw_items = payload.get("items")
    if not isinstance(raw_items, list) or not raw_items:
        raise ValidationError("items must be a non-empty list")

    items = []
    for index, raw in enumerate(raw_items):
        if not isinstance(raw, dict):
            raise ValidationError(f"items[{index}] must be an object")
        name = _text(raw.get("name"))
        if not name:
            raise ValidationError(f"items[{index}].name is required")
        qty = coerce_int(raw.get("qty"), f"items[{index}].qty")
        if qty <= 0:
            raise ValidationError(f"items[{index}].qty must be positive")
        items.append({
            "product_id": coerce_int(raw.get("product_id"), f"items[{index}].product_id", required=False),
            "name": name,
            "category": _text(raw.get("category")),
            "price": _amount(raw.get("price", 0), f"items[{index}].price"),
            "qty": qty,
        })

    customer = payload.get("customer")
    if isinstance(customer, str):
        customer = {"name": customer.strip()} if customer.strip() else None
    elif customer is not None and not isinstance(customer, dict):
        raise ValidationError("customer must be a name or an object")

    return OrderPayload(
        payment_method=_text(payload.get("payment_method")),
        amount=_amount(payload.get("total"), "total"),
        items=items,
        stylist=_text(payload.get("stylist")),
        stylist_id=coerce_int(payload.get("stylist_id"), "stylist_id", required=False),
        shift_id=_text(payload.get("shift_id")) or None,
        customer_id=coerce_int(payload.get("customer_id"), "customer_id", required=False),
        customer=customer,
    )


@dataclass(frozen=True)
class StockAdjustment:
    stock_id: int
    change: int
    type: str
    note: str


def validate_stock_adjustment(payload: Any) -> StockAdjustment:
    if not isinstance(payload, dict):
        raise ValidationError("invalid payload")

    stock_id = coerce_int(payload.get("stock_id"), "stock_id")
    change = coerce_int(payload.get("change"), "change")
    return StockAdjustment(
        stock_id=stock_id,
        change=change,
        type=_text(payload.get("type")).lower(),
        note=_text(payload.get("note")),
    )


def validate_date_range(start: str | None, end: str | None) -> tuple[date | None, date | None]:
    """Parse optional YYYY-MM-DD bounds; start must not be after end."""
    try:
        start_date = parse_iso_date(start) if start else None
    except ValueError:
        raise ValidationError("invalid start_date")
    try:
        end_date = parse_iso_date(end) if end else None
    except ValueError:
        raise ValidationError("invalid end_date")

    if start_date and end_date and start_date > end_date:
        raise ValidationError("start_date must be on or before end_date")
    return start_date, end_date
