from __future__ import annotations

from ..extensions import db
from posledger.time_utils import to_utc_z, to_iso_date

SALE_STATUS_PAID = "paid"
SALE_STATUS_REFUNDED = "refunded"


class Sale(db.Model):
    """
    One completed checkout (a.k.a. transaction/order).

    LIFECYCLE: created once as paid, then only paid -> refunded -> paid.
    Never hard-deleted; deleted_at hides refunded sales from default listings.

    The quota_* columns record how the sale's units were split between the
    free allowance and the top-up balance, so a refund can give back exactly
    what was taken.
    """
    __tablename__ = "sales"
    __table_args__ = (
        db.UniqueConstraint("owner_id", "code", name="uq_sales_owner_code"),
        db.Index("ix_sales_owner_date", "owner_id", "transacted_date"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    owner_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)

    # Human-readable code, e.g. "ORD-1760000000000"
    code = db.Column(db.String(64), nullable=False, index=True)
    status = db.Column(db.String(16), nullable=False, default=SALE_STATUS_PAID, index=True)

    transacted_date = db.Column(db.Date, nullable=False)
    transacted_time = db.Column(db.String(5), nullable=False)

    amount = db.Column(db.BigInteger, nullable=False)
    payment_method = db.Column(db.String(32), nullable=False, default="")

    stylist = db.Column(db.String(255), nullable=False, default="")
    stylist_id = db.Column(db.Integer, nullable=True)
    shift_id = db.Column(db.String(64), nullable=True)
    operator_name = db.Column(db.String(255), nullable=False, default="")

    # Customer snapshot at checkout time
    customer_id = db.Column(db.Integer, nullable=True)
    customer_name = db.Column(db.String(255), nullable=False, default="")
    customer_phone = db.Column(db.String(64), nullable=False, default="")
    customer_email = db.Column(db.String(255), nullable=False, default="")
    customer_address = db.Column(db.String(512), nullable=False, default="")
    customer_visits = db.Column(db.Integer, nullable=True)
    customer_last_visit = db.Column(db.String(32), nullable=True)

    # Refund audit trail
    refunded_at = db.Column(db.DateTime(timezone=True), nullable=True)
    refunded_by = db.Column(db.Integer, nullable=True)
    refund_note = db.Column(db.String(255), nullable=False, default="")

    quota_free_units = db.Column(db.Integer, nullable=True)
    quota_topup_units = db.Column(db.Integer, nullable=True)
    quota_window_start = db.Column(db.Date, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=True)
    deleted_at = db.Column(db.DateTime(timezone=True), nullable=True)

    items = db.relationship(
        "SaleItem",
        backref="sale",
        lazy=True,
        order_by="SaleItem.id",
    )

    @property
    def units(self) -> int:
        """Quota units for this sale: total item quantity, never less than one."""
        total = sum(item.qty for item in self.items)
        return total if total > 0 else 1

    def customer_snapshot(self) -> dict:
        return {
            "name": self.customer_name,
            "phone": self.customer_phone,
            "email": self.customer_email,
            "address": self.customer_address,
            "visits": self.customer_visits,
            "last_visit": self.customer_last_visit,
        }

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "code": self.code,
            "date": to_iso_date(self.transacted_date),
            "time": self.transacted_time,
            "amount": self.amount,
            "payment_method": self.payment_method,
            "status": self.status,
            "stylist": self.stylist,
            "stylist_id": self.stylist_id,
            "shift_id": self.shift_id,
            "operator_name": self.operator_name,
            "customer_id": self.customer_id,
            "customer": self.customer_snapshot(),
            "refunded_at": to_utc_z(self.refunded_at),
            "refunded_by": self.refunded_by,
            "refund_note": self.refund_note,
            "items": [item.to_dict() for item in self.items],
        }


class SaleItem(db.Model):
    """Line item snapshot; later catalog edits never change it."""
    __tablename__ = "sale_items"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    sale_id = db.Column(db.Integer, db.ForeignKey("sales.id"), nullable=False, index=True)
    owner_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=True)

    name = db.Column(db.String(255), nullable=False)
    category = db.Column(db.String(120), nullable=False, default="")
    price = db.Column(db.BigInteger, nullable=False)
    qty = db.Column(db.Integer, nullable=False)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    deleted_at = db.Column(db.DateTime(timezone=True), nullable=True)

    def to_dict(self) -> dict:
        data = {
            "name": self.name,
            "category": self.category,
            "price": self.price,
            "qty": self.qty,
        }
        if self.product_id is not None:
            data["product_id"] = self.product_id
        return data


class SaleCodeSequence(db.Model):
    """
    Last issued sale code value per owner.

    Locked for the duration of a sale so codes stay monotonic, and rolled
    back together with a failed sale so no code is issued to it.
    """
    __tablename__ = "sale_code_sequences"
    __table_args__ = (
        db.UniqueConstraint("owner_id", name="uq_sale_code_sequences_owner"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    owner_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)
    last_value = db.Column(db.BigInteger, nullable=False, default=0)
