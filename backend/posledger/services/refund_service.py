"""
Refund / Void Workflow

WHY: A refund must exactly reverse the sale it targets across every ledger
the sale touched, and must never be half-applied.

REFUND (one atomic unit):
1. Lock the sale row by code (hidden sales included)
2. Flip status to refunded, stamp refunded_at/refunded_by/refund_note,
   optionally hide it (deleted_at)
3. Compensating actions, in order:
   - put sold quantities back into stock (type "refund")
   - append one expense entry linked to the sale for its full amount
   - restore the quota units the sale consumed

UNDO REFUND (a.k.a. mark paid):
- Back to paid, refund metadata and hide marker cleared, linked refund
  expense entry soft-deleted.
- KNOWN LIMITATION: stock and quota are NOT debited again. A refund
  followed by an undo leaves stock and quota as they were after the refund.
"""

from __future__ import annotations

from flask import current_app

from ..extensions import db
from ..models import Sale
from ..models.inventory import STOCK_TYPE_REFUND
from ..models.sales import SALE_STATUS_PAID, SALE_STATUS_REFUNDED
from posledger.time_utils import utcnow
from . import finance_service, membership_service, stock_service
from .concurrency import Deadline, lock_for_update, run_in_transaction
from .errors import ConflictError, NotFoundError
from .membership_service import QuotaSplit


# =============================================================================
# COMPENSATING ACTIONS
# =============================================================================

def refund_stock_increment(sale: Sale) -> None:
    for item in sale.items:
        if item.product_id is None or item.qty <= 0:
            continue
        stock_service.adjust_by_product(
            sale.owner_id,
            item.product_id,
            item.qty,
            STOCK_TYPE_REFUND,
            f"refund {sale.code}",
        )


def refund_finance_entry(sale: Sale) -> None:
    finance_service.append_refund_entry(
        owner_id=sale.owner_id,
        sale=sale,
        note=sale.refund_note,
    )


def refund_quota_restore(sale: Sale) -> None:
    split = None
    if sale.quota_free_units is not None and sale.quota_topup_units is not None:
        split = QuotaSplit(
            free_units=sale.quota_free_units,
            topup_units=sale.quota_topup_units,
            window_start=sale.quota_window_start,
        )
    membership_service.restore(sale.owner_id, sale.units, split=split)


REFUND_ACTIONS = (
    refund_stock_increment,
    refund_finance_entry,
    refund_quota_restore,
)


# =============================================================================
# WORKFLOWS
# =============================================================================

def _lock_sale(owner_id: int, code: str) -> Sale:
    sale = lock_for_update(
        db.session.query(Sale).filter(
            Sale.owner_id == owner_id,
            Sale.code == code,
        )
    ).first()
    if sale is None:
        raise NotFoundError("Sale not found")
    return sale


def refund_sale(
    owner_id: int,
    code: str,
    note: str = "",
    hide: bool = True,
    *,
    refunded_by: int | None = None,
    actions=REFUND_ACTIONS,
    deadline: Deadline | None = None,
) -> Sale:
    """
    Refund a paid sale and reverse its effects as one atomic unit.

    Args:
        hide: also soft-delete the sale so default listings skip it
        refunded_by: acting user id, for the audit trail
        actions: compensating actions; REFUND_ACTIONS unless a caller
            needs a different set

    Raises:
        NotFoundError: no such sale for this owner
        ConflictError: sale is already refunded
    """
    if deadline is None:
        deadline = Deadline.from_config()

    def _primary() -> Sale:
        sale = _lock_sale(owner_id, code)
        if sale.status == SALE_STATUS_REFUNDED:
            raise ConflictError("Sale already refunded")

        now = utcnow()
        sale.status = SALE_STATUS_REFUNDED
        sale.refunded_at = now
        sale.refunded_by = refunded_by
        sale.refund_note = note or ""
        sale.deleted_at = now if hide else None
        sale.updated_at = now
        return sale

    sale = run_in_transaction(_primary, actions, deadline=deadline)
    current_app.logger.info("Refunded sale %s for owner %s", code, owner_id)
    return sale


def undo_refund(owner_id: int, code: str) -> Sale:
    """
    Restore a refunded sale to paid and drop its refund expense entry.

    Raises:
        NotFoundError: no such sale for this owner
        ConflictError: sale is not refunded
    """
    def _primary() -> Sale:
        sale = _lock_sale(owner_id, code)
        if sale.status != SALE_STATUS_REFUNDED:
            raise ConflictError("Sale is not refunded")

        sale.status = SALE_STATUS_PAID
        sale.refunded_at = None
        sale.refunded_by = None
        sale.refund_note = ""
        sale.deleted_at = None
        sale.updated_at = utcnow()
        return sale

    def _remove_refund_entry(sale: Sale) -> None:
        finance_service.remove_refund_entries(owner_id=owner_id, sale_id=sale.id)

    sale = run_in_transaction(_primary, (_remove_refund_entry,))
    current_app.logger.info("Undid refund of sale %s for owner %s", code, owner_id)
    return sale
