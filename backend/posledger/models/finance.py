from __future__ import annotations

from ..extensions import db
from posledger.time_utils import to_utc_z, to_iso_date

FINANCE_REVENUE = "revenue"
FINANCE_EXPENSE = "expense"

REFUND_CATEGORY = "Refund"


class FinanceEntry(db.Model):
    """
    Cash-flow ledger row.

    Append-only: the only mutation ever applied is the soft delete that
    undoing a refund performs on that refund's linked expense entry.
    """
    __tablename__ = "finance_entries"
    __table_args__ = (
        db.Index("ix_finance_entries_owner_date", "owner_id", "entry_date"),
        db.Index("ix_finance_entries_sale_category", "sale_id", "category", "type"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    owner_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)

    title = db.Column(db.String(255), nullable=False)
    amount = db.Column(db.BigInteger, nullable=False)
    category = db.Column(db.String(120), nullable=False, default="")
    entry_date = db.Column(db.Date, nullable=False)
    type = db.Column(db.String(16), nullable=False, index=True)
    note = db.Column(db.String(255), nullable=False, default="")

    sale_id = db.Column(db.Integer, db.ForeignKey("sales.id"), nullable=True)
    sale_code = db.Column(db.String(64), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    deleted_at = db.Column(db.DateTime(timezone=True), nullable=True)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "title": self.title,
            "amount": self.amount,
            "category": self.category,
            "date": to_iso_date(self.entry_date),
            "type": self.type,
            "note": self.note,
            "sale_id": self.sale_id,
            "sale_code": self.sale_code,
            "created_at": to_utc_z(self.created_at),
        }
