"""
Order Transaction Manager

WHY: A sale touches several ledgers at once: the sale record, stock counts
and the owner's quota. They must change together or not at all.

DESIGN:
- create_sale() writes the header and line items, then runs an ordered list
  of side effects (callables taking the flushed Sale) in the SAME database
  transaction, then commits. The transaction boundary belongs here, never
  to a side effect.
- Default side effects: decrement stock for tracked items, then consume
  quota units (sum of quantities, floor of one).
- The sale code is allocated from a locked per-owner sequence row inside the
  same transaction, so a failed sale never issues a code.
- The caller's total is trusted; it is not recomputed from the items.
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from datetime import date
from typing import Callable, Iterable, Sequence

from flask import current_app
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import selectinload

from ..extensions import db
from ..models import Sale, SaleItem, SaleCodeSequence
from ..models.inventory import STOCK_TYPE_SALE
from ..models.sales import SALE_STATUS_PAID
from posledger.time_utils import utcnow
from . import membership_service, stock_service
from .concurrency import Deadline, lock_for_update, run_in_transaction
from .errors import NotFoundError, StorageError

SideEffect = Callable[[Sale], None]

SALE_CODE_PREFIX = "ORD-"


@dataclass(frozen=True)
class OrderLine:
    """One line of an incoming order, before it is snapshotted."""
    name: str
    price: int
    qty: int
    product_id: int | None = None
    category: str = ""

    @classmethod
    def coerce(cls, value) -> "OrderLine":
        if isinstance(value, cls):
            return value
        return cls(
            name=value.get("name") or "",
            price=int(value.get("price") or 0),
            qty=int(value.get("qty") or 0),
            product_id=value.get("product_id"),
            category=value.get("category") or "",
        )


# =============================================================================
# SIDE EFFECTS
# =============================================================================

def sale_stock_decrement(sale: Sale) -> None:
    """Take sold quantities out of stock for every tracked product."""
    for item in sale.items:
        if item.product_id is None or item.qty <= 0:
            continue
        stock_service.adjust_by_product(
            sale.owner_id,
            item.product_id,
            -item.qty,
            STOCK_TYPE_SALE,
            f"sale {sale.code}",
        )


def sale_quota_consumption(sale: Sale) -> None:
    """Consume the sale's units and remember which pools paid for them."""
    split = membership_service.consume(sale.owner_id, sale.units)
    sale.quota_free_units = split.free_units
    sale.quota_topup_units = split.topup_units
    sale.quota_window_start = split.window_start


DEFAULT_SALE_SIDE_EFFECTS: tuple[SideEffect, ...] = (
    sale_stock_decrement,
    sale_quota_consumption,
)


# =============================================================================
# SALE CREATION
# =============================================================================

def ensure_code_sequence(owner_id: int) -> None:
    """
    Ensure the owner has a code sequence row (committed on its own).

    Safe to call repeatedly (idempotent). An empty row issues no code, so it
    may outlive a sale that later fails.
    """
    try:
        exists = (
            db.session.query(SaleCodeSequence.id)
            .filter(SaleCodeSequence.owner_id == owner_id)
            .first()
        )
        if exists:
            return

        db.session.add(SaleCodeSequence(owner_id=owner_id, last_value=0))
        db.session.commit()
    except IntegrityError:
        # Another request created it first.
        db.session.rollback()
    except SQLAlchemyError as exc:
        db.session.rollback()
        raise StorageError("Database error; the sale was not saved") from exc


def _next_sale_code(owner_id: int) -> str:
    """
    Allocate the next sale code for an owner: "ORD-<epoch ms>".

    Monotonic per owner even when two sales land in the same millisecond.
    Must run inside the sale's transaction, after ensure_code_sequence().
    """
    seq = lock_for_update(
        db.session.query(SaleCodeSequence).filter(SaleCodeSequence.owner_id == owner_id)
    ).one()

    now_ms = int(time.time() * 1000)
    value = max(now_ms, (seq.last_value or 0) + 1)
    seq.last_value = value
    return f"{SALE_CODE_PREFIX}{value}"


def create_sale(
    owner_id: int,
    payment_method: str,
    items: Iterable[OrderLine | dict],
    amount: int,
    *,
    customer: dict | None = None,
    customer_id: int | None = None,
    stylist: str = "",
    stylist_id: int | None = None,
    shift_id: str | None = None,
    operator_name: str = "",
    side_effects: Sequence[SideEffect] | None = None,
    deadline: Deadline | None = None,
) -> Sale:
    """
    Record a paid sale and apply its side effects as one atomic unit.

    Args:
        side_effects: callables run after the sale is flushed; None means
            DEFAULT_SALE_SIDE_EFFECTS, an empty sequence means none.
        deadline: defaults to SALE_TRANSACTION_DEADLINE_SECONDS.

    Returns:
        The committed Sale, with its generated code.

    Raises:
        StorageError / DeadlineExceededError / anything a side effect raises;
        in every case nothing is persisted.
    """
    lines = [OrderLine.coerce(item) for item in items]
    customer = customer or {}
    effects = DEFAULT_SALE_SIDE_EFFECTS if side_effects is None else tuple(side_effects)
    if deadline is None:
        deadline = Deadline.from_config()

    def _primary() -> Sale:
        now = utcnow()
        sale = Sale(
            owner_id=owner_id,
            code=_next_sale_code(owner_id),
            status=SALE_STATUS_PAID,
            transacted_date=now.date(),
            transacted_time=now.strftime("%H:%M"),
            amount=amount,
            payment_method=payment_method or "",
            stylist=stylist or "",
            stylist_id=stylist_id,
            shift_id=shift_id or None,
            operator_name=operator_name or "",
            customer_id=customer_id,
            customer_name=customer.get("name") or "",
            customer_phone=customer.get("phone") or "",
            customer_email=customer.get("email") or "",
            customer_address=customer.get("address") or "",
            customer_visits=customer.get("visits"),
            customer_last_visit=customer.get("last_visit"),
            updated_at=now,
        )
        for line in lines:
            sale.items.append(SaleItem(
                owner_id=owner_id,
                product_id=line.product_id,
                name=line.name,
                category=line.category,
                price=line.price,
                qty=line.qty,
            ))
        db.session.add(sale)
        return sale

    ensure_code_sequence(owner_id)
    return run_in_transaction(_primary, effects, deadline=deadline)


# =============================================================================
# QUERIES
# =============================================================================

def list_sales(
    owner_id: int,
    start_date: date | None = None,
    end_date: date | None = None,
    *,
    include_hidden: bool = False,
    limit: int | None = None,
) -> list[Sale]:
    """Owner's sales, newest first; hidden (refunded and deleted) ones excluded by default."""
    if limit is None:
        limit = current_app.config.get("SALES_LIST_LIMIT", 200)

    query = (
        db.session.query(Sale)
        .options(selectinload(Sale.items))
        .filter(Sale.owner_id == owner_id)
    )
    if not include_hidden:
        query = query.filter(Sale.deleted_at.is_(None))
    if start_date is not None:
        query = query.filter(Sale.transacted_date >= start_date)
    if end_date is not None:
        query = query.filter(Sale.transacted_date <= end_date)

    return query.order_by(Sale.transacted_date.desc(), Sale.id.desc()).limit(limit).all()


def get_sale(owner_id: int, code: str) -> Sale:
    sale = (
        db.session.query(Sale)
        .options(selectinload(Sale.items))
        .filter(
            Sale.owner_id == owner_id,
            Sale.code == code,
            Sale.deleted_at.is_(None),
        )
        .first()
    )
    if sale is None:
        raise NotFoundError("Sale not found")
    return sale
