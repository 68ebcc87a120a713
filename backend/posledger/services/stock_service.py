# Overview: Stock Ledger; the only code that changes inventory counts.

from __future__ import annotations

from flask import current_app
from sqlalchemy import exists
from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import Product, Stock, StockHistory
from ..models.inventory import (
    STOCK_TYPE_ADJUST,
    STOCK_TYPE_CATALOG_SYNC,
    STOCK_TYPE_RECOUNT,
    STOCK_TYPE_REDUCE,
)
from posledger.time_utils import utcnow
from .concurrency import lock_for_update, run_in_transaction
from .errors import NotFoundError
"""
Stock Ledger Invariants (authoritative)

- One live Stock row per stock-tracked product; untracked products have none.
- quantity never goes negative: adjustments clamp at zero instead of failing.
- Every applied adjustment increments Stock.adjustments and appends exactly
  one immutable StockHistory row (requested delta + resulting quantity).
- Stock rows are locked (FOR UPDATE) before every read-modify-write.
- adjust_by_product() never commits; it runs inside the caller's unit.
"""


def _live_tracked_product(owner_id: int):
    return exists().where(
        Product.id == Stock.product_id,
        Product.owner_id == owner_id,
        Product.deleted_at.is_(None),
        Product.track_stock.is_(True),
    )


def _apply_change(stock: Stock, delta: int, typ: str, note: str) -> StockHistory:
    """Apply a signed delta to a locked stock row and record it."""
    new_quantity = stock.quantity + delta
    if new_quantity < 0:
        new_quantity = 0

    stock.quantity = new_quantity
    stock.adjustments = (stock.adjustments or 0) + 1
    stock.updated_at = utcnow()

    entry = StockHistory(
        owner_id=stock.owner_id,
        stock_id=stock.id,
        product_id=stock.product_id,
        change=delta,
        remaining=new_quantity,
        note=note or "",
        type=typ,
    )
    db.session.add(entry)
    db.session.flush()
    return entry


def adjust_by_product(
    owner_id: int,
    product_id: int,
    delta: int,
    typ: str,
    note: str = "",
) -> StockHistory | None:
    """
    Adjust the stock row of a tracked product inside the caller's transaction.

    Returns None, without locking anything, when the product is untracked or
    has no live stock row. That is the normal case for services and other
    untracked items, not an error.
    """
    query = db.session.query(Stock).filter(
        Stock.product_id == product_id,
        Stock.owner_id == owner_id,
        Stock.deleted_at.is_(None),
        _live_tracked_product(owner_id),
    )
    stock = lock_for_update(query).first()
    if stock is None:
        return None
    return _apply_change(stock, delta, typ, note)


def resolve_adjustment(typ: str, change: int, current: int) -> int:
    """
    Turn an operator's raw input into a signed delta.

    - "reduce": always negative
    - "recount": change is the counted quantity (negative counts as 0)
    - anything else: applied as given
    """
    kind = (typ or "").strip().lower()
    if kind == STOCK_TYPE_REDUCE:
        return -abs(change)
    if kind == STOCK_TYPE_RECOUNT:
        target = max(change, 0)
        return target - current
    return change


def adjust_stock(
    owner_id: int,
    stock_id: int,
    change: int,
    typ: str = STOCK_TYPE_ADJUST,
    note: str = "",
) -> Stock:
    """
    Manual stock adjustment by an operator, as one atomic unit.

    Raises:
        NotFoundError if the stock row is missing, deleted or belongs to
        another owner.
    """
    typ = (typ or "").strip() or STOCK_TYPE_ADJUST

    def _primary() -> Stock:
        stock = lock_for_update(
            db.session.query(Stock).filter(
                Stock.id == stock_id,
                Stock.owner_id == owner_id,
                Stock.deleted_at.is_(None),
            )
        ).first()
        if stock is None:
            raise NotFoundError("Stock not found")

        delta = resolve_adjustment(typ, change, stock.quantity)
        _apply_change(stock, delta, typ, note)
        return stock

    return run_in_transaction(_primary)


def list_stocks(owner_id: int, limit: int = 500) -> list[Stock]:
    return (
        db.session.query(Stock)
        .filter(
            Stock.owner_id == owner_id,
            Stock.deleted_at.is_(None),
            _live_tracked_product(owner_id),
        )
        .order_by(Stock.name.asc(), Stock.id.asc())
        .limit(limit)
        .all()
    )


def stock_history(owner_id: int, stock_id: int, limit: int = 100) -> list[StockHistory]:
    stock = (
        db.session.query(Stock)
        .filter(
            Stock.id == stock_id,
            Stock.owner_id == owner_id,
            Stock.deleted_at.is_(None),
        )
        .first()
    )
    if stock is None:
        raise NotFoundError("Stock not found")

    return (
        db.session.query(StockHistory)
        .filter(
            StockHistory.owner_id == owner_id,
            StockHistory.stock_id == stock_id,
            StockHistory.deleted_at.is_(None),
        )
        .order_by(StockHistory.created_at.desc(), StockHistory.id.desc())
        .limit(limit)
        .all()
    )


def _create_stock_row(product: Product) -> Stock | None:
    """
    Create the stock row for a tracked product inside a savepoint.

    Returns None when a concurrent sync or sale already created it; the
    unique constraint on product_id decides the race.
    """
    stock = Stock(
        owner_id=product.owner_id,
        product_id=product.id,
        name=product.name,
        category=product.category or "",
        image=product.image or "",
        quantity=max(product.stock or 0, 0),
        adjustments=0,
    )
    try:
        with db.session.begin_nested():
            db.session.add(stock)
            db.session.flush()
            if stock.quantity > 0:
                _apply_opening(stock)
    except IntegrityError:
        return None
    return stock


def _apply_opening(stock: Stock) -> None:
    stock.adjustments = 1
    db.session.add(StockHistory(
        owner_id=stock.owner_id,
        stock_id=stock.id,
        product_id=stock.product_id,
        change=stock.quantity,
        remaining=stock.quantity,
        note="opening stock",
        type=STOCK_TYPE_CATALOG_SYNC,
    ))
    db.session.flush()


def sync_from_products(owner_id: int) -> dict:
    """
    Reconcile stock rows with the owner's catalog.

    Idempotent: existing quantities, counters and history are never touched;
    only missing rows are created, snapshots refreshed and rows of untracked
    products soft-deleted (or revived when tracking is switched back on).

    Returns counts of what changed.
    """
    summary = {"created": 0, "revived": 0, "refreshed": 0, "retired": 0}

    def _primary() -> dict:
        products = db.session.query(Product).filter(Product.owner_id == owner_id).all()
        if not products:
            return summary

        by_product = {
            stock.product_id: stock
            for stock in db.session.query(Stock).filter(
                Stock.product_id.in_([p.id for p in products])
            )
        }
        now = utcnow()

        for product in products:
            tracked = bool(product.track_stock) and product.deleted_at is None
            stock = by_product.get(product.id)

            if not tracked:
                if stock is not None and stock.deleted_at is None:
                    stock.deleted_at = now
                    stock.updated_at = now
                    summary["retired"] += 1
                continue

            if stock is None:
                if _create_stock_row(product) is not None:
                    summary["created"] += 1
                continue

            if stock.deleted_at is not None:
                stock.deleted_at = None
                stock.updated_at = now
                summary["revived"] += 1

            if (stock.name, stock.category, stock.image) != (
                product.name, product.category or "", product.image or ""
            ):
                stock.name = product.name
                stock.category = product.category or ""
                stock.image = product.image or ""
                stock.updated_at = now
                summary["refreshed"] += 1

        return summary

    return run_in_transaction(_primary)


def sync_all_owners() -> int:
    """
    Best-effort sync of every owner's stock rows (startup / CLI job).

    A failing owner is logged and skipped; this never raises, so it cannot
    abort whatever triggered it. Returns the number of owners synced.
    """
    owner_ids = [row[0] for row in db.session.query(Product.owner_id).distinct().all()]
    synced = 0
    for owner_id in owner_ids:
        try:
            sync_from_products(owner_id)
            synced += 1
        except Exception:
            db.session.rollback()
            current_app.logger.exception("Stock sync failed for owner %s", owner_id)
    return synced
