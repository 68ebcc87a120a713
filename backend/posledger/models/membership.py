from __future__ import annotations

from ..extensions import db
from posledger.time_utils import to_utc_z, to_iso_date


class MembershipState(db.Model):
    """
    Quota counters for one owner. Exactly one row per owner.

    INVARIANT (checked at every quiescent point):
        used_quota == free_used + (sum(live top-ups) - topup_balance)

    free_used resets, and free_window_start moves to the first of the
    month, the first time the row is touched in a new calendar month.
    """
    __tablename__ = "membership_state"
    __table_args__ = (
        db.UniqueConstraint("owner_id", name="uq_membership_state_owner"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    owner_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)

    used_quota = db.Column(db.Integer, nullable=False, default=0)
    free_used = db.Column(db.Integer, nullable=False, default=0)
    free_window_start = db.Column(db.Date, nullable=False)
    topup_balance = db.Column(db.Integer, nullable=False, default=0)

    updated_at = db.Column(db.DateTime(timezone=True), nullable=True)
    deleted_at = db.Column(db.DateTime(timezone=True), nullable=True)

    def to_dict(self, free_quota: int | None = None) -> dict:
        data = {
            "owner_id": self.owner_id,
            "used_quota": self.used_quota,
            "free_used": self.free_used,
            "free_window_start": to_iso_date(self.free_window_start),
            "topup_balance": self.topup_balance,
        }
        if free_quota is not None:
            data["free_quota"] = free_quota
        return data


class MembershipTopup(db.Model):
    """Append-only purchase of additional quota credits."""
    __tablename__ = "membership_topups"
    __table_args__ = (
        db.Index("ix_membership_topups_owner_date", "owner_id", "topup_date"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    owner_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)

    amount = db.Column(db.Integer, nullable=False)
    manager = db.Column(db.String(255), nullable=False)
    note = db.Column(db.String(255), nullable=False, default="")
    topup_date = db.Column(db.DateTime(timezone=True), nullable=False)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    deleted_at = db.Column(db.DateTime(timezone=True), nullable=True)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "amount": self.amount,
            "manager": self.manager,
            "note": self.note,
            "date": to_utc_z(self.topup_date),
        }
