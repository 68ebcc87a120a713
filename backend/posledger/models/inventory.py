from __future__ import annotations

from ..extensions import db
from posledger.time_utils import to_utc_z

STOCK_TYPE_SALE = "sale"
STOCK_TYPE_REFUND = "refund"
STOCK_TYPE_ADJUST = "adjust"
STOCK_TYPE_REDUCE = "reduce"
STOCK_TYPE_RECOUNT = "recount"
STOCK_TYPE_CATALOG_SYNC = "catalog-sync"


class Product(db.Model):
    """
    Catalog item, owned by a single business owner.

    Only products with track_stock=True get a Stock row. `stock` is the
    opening quantity used when that row is first created.
    """
    __tablename__ = "products"
    __table_args__ = (
        db.Index("ix_products_owner_name", "owner_id", "name"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    owner_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)

    name = db.Column(db.String(255), nullable=False)
    category = db.Column(db.String(120), nullable=False, default="")
    price = db.Column(db.BigInteger, nullable=False, default=0)
    image = db.Column(db.String(512), nullable=False, default="")

    track_stock = db.Column(db.Boolean, nullable=False, default=False)
    stock = db.Column(db.Integer, nullable=False, default=0)
    min_stock = db.Column(db.Integer, nullable=False, default=0)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    deleted_at = db.Column(db.DateTime(timezone=True), nullable=True)

    def __repr__(self) -> str:
        return f"<Product id={self.id} name={self.name!r} owner_id={self.owner_id}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "owner_id": self.owner_id,
            "name": self.name,
            "category": self.category,
            "price": self.price,
            "track_stock": self.track_stock,
            "stock": self.stock,
            "min_stock": self.min_stock,
        }


class Stock(db.Model):
    """
    Quantity on hand for one stock-tracked product.

    INVARIANTS:
    - At most one row per product (uq_stocks_product).
    - quantity never goes below zero; adjustments clamp at zero.
    - adjustments counts every change ever applied to the row.
    """
    __tablename__ = "stocks"
    __table_args__ = (
        db.UniqueConstraint("product_id", name="uq_stocks_product"),
        db.Index("ix_stocks_owner_name", "owner_id", "name"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    owner_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=True)

    name = db.Column(db.String(255), nullable=False)
    category = db.Column(db.String(120), nullable=False, default="")
    image = db.Column(db.String(512), nullable=False, default="")

    quantity = db.Column(db.Integer, nullable=False, default=0)
    adjustments = db.Column(db.Integer, nullable=False, default=0)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=True)
    deleted_at = db.Column(db.DateTime(timezone=True), nullable=True)

    product = db.relationship("Product")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "owner_id": self.owner_id,
            "product_id": self.product_id,
            "name": self.name,
            "category": self.category,
            "image": self.image,
            "stock": self.quantity,
            "transactions": self.adjustments,
            "updated_at": to_utc_z(self.updated_at),
        }


class StockHistory(db.Model):
    """Append-only record of one stock adjustment, scoped to the stock owner."""
    __tablename__ = "stock_history"
    __table_args__ = (
        db.Index("ix_stock_history_stock_created", "stock_id", "created_at"),
        db.Index("ix_stock_history_owner_created", "owner_id", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    owner_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)
    stock_id = db.Column(db.Integer, db.ForeignKey("stocks.id"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=True)

    change = db.Column(db.Integer, nullable=False)
    remaining = db.Column(db.Integer, nullable=False)
    note = db.Column(db.String(255), nullable=False, default="")
    type = db.Column(db.String(32), nullable=False, index=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    deleted_at = db.Column(db.DateTime(timezone=True), nullable=True)

    stock = db.relationship("Stock", backref=db.backref("history", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "owner_id": self.owner_id,
            "stock_id": self.stock_id,
            "product_id": self.product_id,
            "change": self.change,
            "remaining": self.remaining,
            "note": self.note,
            "type": self.type,
            "created_at": to_utc_z(self.created_at),
        }
