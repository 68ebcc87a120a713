"""
Stock Ledger tests: clamping, adjustment types, owner scope and catalog sync.
"""

import pytest
from sqlalchemy.exc import IntegrityError

from posledger.extensions import db
from posledger.models import Product, Stock, StockHistory
from posledger.services import stock_service
from posledger.services.concurrency import run_in_transaction
from posledger.services.errors import NotFoundError


def _history(stock, typ=None):
    query = db.session.query(StockHistory).filter(StockHistory.stock_id == stock.id)
    if typ is not None:
        query = query.filter(StockHistory.type == typ)
    return query.order_by(StockHistory.id).all()


class TestAdjustByProduct:

    def test_negative_delta_clamps_at_zero(self, db_session, owner, stock, tracked_product):
        entry = stock_service.adjust_by_product(owner.id, tracked_product.id, -9, "sale", "sale ORD-1")
        db_session.commit()

        db_session.refresh(stock)
        assert stock.quantity == 0
        assert entry.change == -9
        assert entry.remaining == 0

    def test_counter_increments_per_change(self, db_session, owner, stock, tracked_product):
        before = stock.adjustments
        stock_service.adjust_by_product(owner.id, tracked_product.id, -1, "sale")
        stock_service.adjust_by_product(owner.id, tracked_product.id, 2, "refund")
        db_session.commit()

        db_session.refresh(stock)
        assert stock.adjustments == before + 2
        assert stock.quantity == 6

    def test_untracked_product_is_a_no_op(self, db_session, owner, stock, service_product):
        assert stock_service.adjust_by_product(owner.id, service_product.id, -1, "sale") is None

    def test_foreign_product_is_a_no_op(self, db_session, other_owner, stock, tracked_product):
        assert stock_service.adjust_by_product(other_owner.id, tracked_product.id, -1, "sale") is None
        db_session.refresh(stock)
        assert stock.quantity == 5

    def test_deleted_product_is_a_no_op(self, db_session, owner, stock, tracked_product):
        tracked_product.deleted_at = tracked_product.created_at
        db_session.commit()

        assert stock_service.adjust_by_product(owner.id, tracked_product.id, -1, "sale") is None


class TestResolveAdjustment:

    @pytest.mark.parametrize(
        "typ,change,current,expected",
        [
            ("reduce", 3, 10, -3),
            ("reduce", -3, 10, -3),
            ("recount", 4, 10, -6),
            ("recount", 12, 10, 2),
            ("recount", -5, 10, -10),
            ("adjust", -2, 10, -2),
            ("adjust", 7, 10, 7),
            ("", 7, 10, 7),
        ],
    )
    def test_delta(self, typ, change, current, expected):
        assert stock_service.resolve_adjustment(typ, change, current) == expected


class TestAdjustStock:

    def test_recount_sets_absolute_quantity(self, db_session, owner, stock):
        result = stock_service.adjust_stock(owner.id, stock.id, 2, "recount", "shelf count")

        assert result.quantity == 2
        last = _history(stock, "recount")[-1]
        assert last.change == -3
        assert last.remaining == 2
        assert last.note == "shelf count"

    def test_reduce_is_always_negative(self, db_session, owner, stock):
        result = stock_service.adjust_stock(owner.id, stock.id, 2, "reduce")
        assert result.quantity == 3

    def test_blank_type_defaults_to_adjust(self, db_session, owner, stock):
        stock_service.adjust_stock(owner.id, stock.id, 4, "")
        entries = _history(stock, "adjust")
        assert len(entries) == 1
        assert entries[0].remaining == 9

    def test_adjust_clamps_at_zero(self, db_session, owner, stock):
        result = stock_service.adjust_stock(owner.id, stock.id, -50, "adjust")
        assert result.quantity == 0

    def test_foreign_stock_is_not_found(self, db_session, other_owner, stock):
        with pytest.raises(NotFoundError):
            stock_service.adjust_stock(other_owner.id, stock.id, 1, "adjust")

        db_session.refresh(stock)
        assert stock.quantity == 5

    def test_missing_stock_is_not_found(self, db_session, owner):
        with pytest.raises(NotFoundError):
            stock_service.adjust_stock(owner.id, 99999, 1, "adjust")

    def test_history_is_owner_scoped(self, db_session, owner, other_owner, stock):
        stock_service.adjust_stock(owner.id, stock.id, 1, "adjust")

        assert len(stock_service.stock_history(owner.id, stock.id)) >= 1
        with pytest.raises(NotFoundError):
            stock_service.stock_history(other_owner.id, stock.id)

    def test_history_rows_carry_owner(self, db_session, owner, stock):
        stock_service.adjust_stock(owner.id, stock.id, 2, "adjust")

        rows = _history(stock)
        assert rows
        assert {r.owner_id for r in rows} == {owner.id}
        assert all(r.deleted_at is None for r in rows)

    def test_soft_deleted_history_is_hidden(self, db_session, owner, stock):
        stock_service.adjust_stock(owner.id, stock.id, 2, "adjust")
        entry = _history(stock, "adjust")[0]
        entry.deleted_at = entry.created_at
        db_session.commit()

        assert entry.id not in {r.id for r in stock_service.stock_history(owner.id, stock.id)}


class TestCatalogSync:

    def test_creates_row_with_opening_stock(self, db_session, owner, tracked_product, service_product):
        summary = stock_service.sync_from_products(owner.id)

        assert summary["created"] == 1
        rows = db_session.query(Stock).filter_by(owner_id=owner.id).all()
        assert len(rows) == 1
        assert rows[0].product_id == tracked_product.id
        assert rows[0].quantity == 5

        opening = _history(rows[0], "catalog-sync")
        assert len(opening) == 1
        assert opening[0].change == 5

    def test_sync_is_idempotent(self, db_session, owner, stock):
        stock_service.adjust_stock(owner.id, stock.id, -2, "adjust")
        before_history = len(_history(stock))

        summary = stock_service.sync_from_products(owner.id)

        assert summary == {"created": 0, "revived": 0, "refreshed": 0, "retired": 0}
        db_session.refresh(stock)
        assert stock.quantity == 3
        assert len(_history(stock)) == before_history
        assert db_session.query(Stock).filter_by(owner_id=owner.id).count() == 1

    def test_refreshes_name_without_touching_quantity(self, db_session, owner, stock, tracked_product):
        tracked_product.name = "Shampoo XL"
        tracked_product.stock = 99
        db_session.commit()

        summary = stock_service.sync_from_products(owner.id)

        assert summary["refreshed"] == 1
        db_session.refresh(stock)
        assert stock.name == "Shampoo XL"
        assert stock.quantity == 5

    def test_untracking_retires_and_retracking_revives(self, db_session, owner, stock, tracked_product):
        tracked_product.track_stock = False
        db_session.commit()

        assert stock_service.sync_from_products(owner.id)["retired"] == 1
        assert stock_service.list_stocks(owner.id) == []

        tracked_product.track_stock = True
        db_session.commit()

        assert stock_service.sync_from_products(owner.id)["revived"] == 1
        rows = stock_service.list_stocks(owner.id)
        assert [r.id for r in rows] == [stock.id]
        assert rows[0].quantity == 5

    def test_sync_all_owners_skips_nothing_when_healthy(self, db_session, owner, other_owner, tracked_product):
        db_session.add(Product(owner_id=other_owner.id, name="Gel", track_stock=True, stock=2))
        db_session.commit()

        assert stock_service.sync_all_owners() == 2
        assert db_session.query(Stock).count() == 2

    def test_sync_all_owners_logs_and_continues(self, db_session, owner, tracked_product, monkeypatch):
        def broken(owner_id):
            raise RuntimeError("boom")

        monkeypatch.setattr(stock_service, "sync_from_products", broken)

        assert stock_service.sync_all_owners() == 0


class TestConcurrentRowCreation:

    def test_losing_insert_returns_none_and_unit_commits(self, db_session, owner, stock, tracked_product):
        def _primary():
            tracked_product.category = "Hair care"
            db.session.flush()
            return stock_service._create_stock_row(tracked_product)

        assert run_in_transaction(_primary) is None

        db_session.expire_all()
        assert db_session.get(Product, tracked_product.id).category == "Hair care"
        assert db_session.query(Stock).filter_by(product_id=tracked_product.id).count() == 1

    def test_duplicate_row_rejected_by_unique_product(self, db_session, owner, stock, tracked_product):
        db_session.add(Stock(owner_id=owner.id, product_id=tracked_product.id, name="Dup", quantity=0))
        with pytest.raises(IntegrityError):
            db_session.commit()
        db_session.rollback()

        assert db_session.query(Stock).count() == 1
