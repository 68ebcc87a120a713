"""
Membership Quota Accountant

WHY: Every sold unit is metered against the owner's quota. Quota comes from
two pools: a free allowance that replenishes every calendar month, and a
purchased top-up balance that never expires.

RULES:
- Touching the state in a new calendar month resets free_used to 0 and
  moves free_window_start to the first of that month. This is the only way
  the free allowance replenishes.
- Consumption draws from the free allowance first, then from the top-up
  balance. Units neither pool can cover are absorbed: quota is a metering
  signal, never a reason to reject a sale.
- used_quota == free_used + (sum(live top-ups) - topup_balance), recomputed
  on every write.
- The state row is fetched fresh and locked on every operation; nothing is
  cached in-process.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime

from flask import current_app
from sqlalchemy import func
from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import MembershipState, MembershipTopup
from posledger.time_utils import month_start, same_month, utcnow
from .concurrency import lock_for_update, run_in_transaction
from .errors import ValidationError


@dataclass(frozen=True)
class QuotaSplit:
    """How many units one consumption took from each pool."""
    free_units: int
    topup_units: int
    window_start: date | None

    @property
    def total(self) -> int:
        return self.free_units + self.topup_units


def free_quota_monthly() -> int:
    return int(current_app.config.get("MEMBERSHIP_FREE_QUOTA_MONTHLY", 1000))


# =============================================================================
# STATE ACCESS (inside the caller's transaction)
# =============================================================================

def _sum_topups(owner_id: int) -> int:
    total = (
        db.session.query(func.coalesce(func.sum(MembershipTopup.amount), 0))
        .filter(
            MembershipTopup.owner_id == owner_id,
            MembershipTopup.deleted_at.is_(None),
        )
        .scalar()
    )
    return int(total or 0)


def _lock_state(owner_id: int) -> MembershipState:
    """Fetch-or-create the owner's state row and lock it."""
    query = db.session.query(MembershipState).filter(MembershipState.owner_id == owner_id)
    state = lock_for_update(query).first()
    if state is not None:
        return state

    state = MembershipState(
        owner_id=owner_id,
        used_quota=0,
        free_used=0,
        free_window_start=month_start(utcnow()),
        topup_balance=0,
        updated_at=utcnow(),
    )
    try:
        with db.session.begin_nested():
            db.session.add(state)
            db.session.flush()
    except IntegrityError:
        # Another request created it first; take theirs.
        state = lock_for_update(query).one()
    return state


def _recompute_used(state: MembershipState, total_topups: int) -> None:
    state.used_quota = state.free_used + (total_topups - state.topup_balance)
    state.updated_at = utcnow()


def touch_state(owner_id: int) -> MembershipState:
    """
    Lock the state row and apply the monthly reset rule.

    Flushes but never commits.
    """
    state = _lock_state(owner_id)
    current_window = month_start(utcnow())
    if not same_month(state.free_window_start, current_window):
        state.free_window_start = current_window
        state.free_used = 0
    _recompute_used(state, _sum_topups(owner_id))
    db.session.flush()
    return state


def consume(owner_id: int, units: int) -> QuotaSplit:
    """
    Consume quota units inside the caller's transaction.

    units <= 0 still performs the monthly reset check.
    """
    state = touch_state(owner_id)
    if units <= 0:
        return QuotaSplit(0, 0, state.free_window_start)

    free_available = max(0, free_quota_monthly() - state.free_used)
    take_free = min(units, free_available)
    take_topup = min(units - take_free, max(state.topup_balance, 0))

    state.free_used += take_free
    state.topup_balance -= take_topup
    _recompute_used(state, _sum_topups(owner_id))
    db.session.flush()
    return QuotaSplit(take_free, take_topup, state.free_window_start)


def restore(owner_id: int, units: int, *, split: QuotaSplit | None = None) -> MembershipState:
    """
    Give back quota taken by a sale, inside the caller's transaction.

    With a recorded split the top-up units are credited back, and the free
    units only when they were taken in the current monthly window (otherwise
    the reset already replenished them).

    The top-up balance never grows past what has been drawn from it; any
    top-up credit beyond that reduces free_used instead (never below zero).

    Without a split (sales recorded before splits were stored) the top-up
    balance is credited first, up to what has been drawn from it, and the
    rest reduces free_used (never below zero). This can drift when the sale
    originally drew from the free allowance.
    """
    state = touch_state(owner_id)
    if units <= 0:
        return state

    total_topups = _sum_topups(owner_id)
    drawn = max(0, total_topups - state.topup_balance)

    if split is not None:
        credit_topup = min(split.topup_units, drawn)
        state.topup_balance += credit_topup
        free_credit = split.topup_units - credit_topup
        if same_month(split.window_start, state.free_window_start):
            free_credit += split.free_units
        state.free_used = max(0, state.free_used - free_credit)
    else:
        credit_topup = min(units, drawn)
        state.topup_balance += credit_topup
        state.free_used = max(0, state.free_used - (units - credit_topup))

    _recompute_used(state, total_topups)
    db.session.flush()
    return state


# =============================================================================
# PUBLIC OPERATIONS (own their transaction)
# =============================================================================

def get_state(owner_id: int) -> MembershipState:
    """Current quota state; persists the monthly reset if one was due."""
    return run_in_transaction(lambda: touch_state(owner_id))


def set_used_quota(owner_id: int, used: int) -> MembershipState:
    """
    Administrative override of total used quota.

    The first `cap` units go to free_used, the rest is treated as top-up
    consumption; topup_balance becomes sum(top-ups) - top-up consumption
    (never negative).
    """
    if used < 0:
        raise ValidationError("usedQuota must not be negative")

    def _primary() -> MembershipState:
        state = touch_state(owner_id)
        total_topups = _sum_topups(owner_id)

        free_used = min(used, free_quota_monthly())
        topup_used = max(used - free_used, 0)

        state.free_used = free_used
        state.topup_balance = max(total_topups - topup_used, 0)
        _recompute_used(state, total_topups)
        return state

    return run_in_transaction(_primary)


def create_topup(
    owner_id: int,
    amount: int,
    manager: str,
    note: str = "",
    topup_date: datetime | None = None,
) -> MembershipTopup:
    """Record a top-up purchase and credit topup_balance in the same unit."""
    if amount is None or amount <= 0:
        raise ValidationError("amount must be positive")
    if not (manager or "").strip():
        raise ValidationError("manager is required")

    def _primary() -> MembershipTopup:
        state = touch_state(owner_id)
        topup = MembershipTopup(
            owner_id=owner_id,
            amount=amount,
            manager=manager.strip(),
            note=note or "",
            topup_date=topup_date or utcnow(),
        )
        db.session.add(topup)
        db.session.flush()

        state.topup_balance += amount
        _recompute_used(state, _sum_topups(owner_id))
        return topup

    return run_in_transaction(_primary)


def list_topups(owner_id: int, limit: int = 200) -> list[MembershipTopup]:
    return (
        db.session.query(MembershipTopup)
        .filter(
            MembershipTopup.owner_id == owner_id,
            MembershipTopup.deleted_at.is_(None),
        )
        .order_by(MembershipTopup.topup_date.desc(), MembershipTopup.id.desc())
        .limit(limit)
        .all()
    )
