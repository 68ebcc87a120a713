# Overview: Finance Ledger; append-only revenue/expense entries per owner.

from __future__ import annotations

from datetime import date

from ..extensions import db
from ..models import FinanceEntry
from ..models.finance import FINANCE_EXPENSE, FINANCE_REVENUE, REFUND_CATEGORY
from posledger.time_utils import utcnow
from .errors import ValidationError
"""
Finance Ledger Invariants (authoritative)

- Append-only: entries are never updated.
- The only delete is the soft delete of a refund's expense entry when that
  refund is undone, matched by sale id + category + type (never by text).
- Entries are written inside the same DB transaction as the event they
  record; helpers here flush, they never commit.
"""

ENTRY_TYPES = (FINANCE_REVENUE, FINANCE_EXPENSE)


def append_entry(
    *,
    owner_id: int,
    title: str,
    amount: int,
    category: str,
    entry_type: str,
    entry_date: date | None = None,
    note: str | None = None,
    sale_id: int | None = None,
    sale_code: str | None = None,
) -> FinanceEntry:
    """Append one entry to the owner's ledger (no commit)."""
    if entry_type not in ENTRY_TYPES:
        raise ValidationError(f"invalid finance entry type: {entry_type}")

    entry = FinanceEntry(
        owner_id=owner_id,
        title=title,
        amount=amount,
        category=category or "",
        entry_date=entry_date or utcnow().date(),
        type=entry_type,
        note=note or "",
        sale_id=sale_id,
        sale_code=sale_code,
    )
    db.session.add(entry)
    db.session.flush()
    return entry


def append_refund_entry(*, owner_id: int, sale, note: str | None = None) -> FinanceEntry:
    """The single expense entry that a refund of `sale` produces."""
    return append_entry(
        owner_id=owner_id,
        title=f"Refund {sale.code}",
        amount=sale.amount,
        category=REFUND_CATEGORY,
        entry_type=FINANCE_EXPENSE,
        note=note,
        sale_id=sale.id,
        sale_code=sale.code,
    )


def remove_refund_entries(*, owner_id: int, sale_id: int) -> int:
    """
    Soft-delete the live refund expense entry linked to a sale (no commit).

    Returns the number of entries removed.
    """
    entries = (
        db.session.query(FinanceEntry)
        .filter(
            FinanceEntry.owner_id == owner_id,
            FinanceEntry.sale_id == sale_id,
            FinanceEntry.category == REFUND_CATEGORY,
            FinanceEntry.type == FINANCE_EXPENSE,
            FinanceEntry.deleted_at.is_(None),
        )
        .all()
    )
    now = utcnow()
    for entry in entries:
        entry.deleted_at = now
    db.session.flush()
    return len(entries)


def list_entries(
    owner_id: int,
    start_date: date | None = None,
    end_date: date | None = None,
    *,
    sale_id: int | None = None,
    limit: int = 200,
) -> list[FinanceEntry]:
    query = db.session.query(FinanceEntry).filter(
        FinanceEntry.owner_id == owner_id,
        FinanceEntry.deleted_at.is_(None),
    )
    if start_date is not None:
        query = query.filter(FinanceEntry.entry_date >= start_date)
    if end_date is not None:
        query = query.filter(FinanceEntry.entry_date <= end_date)
    if sale_id is not None:
        query = query.filter(FinanceEntry.sale_id == sale_id)
    return query.order_by(FinanceEntry.entry_date.desc(), FinanceEntry.id.desc()).limit(limit).all()
