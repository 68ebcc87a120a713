# Overview: Transaction boundary and row locking shared by the commerce services.

from __future__ import annotations

import time
from typing import Callable, Iterable, TypeVar

from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from ..extensions import db
from .errors import CommerceError, DeadlineExceededError, StorageError

T = TypeVar("T")

"""
Transaction rules (authoritative)

- One database transaction per logical operation (sale, refund, adjustment).
- The orchestrator owns the boundary: run_in_transaction() commits or rolls
  back; actions and services called inside it only flush.
- Rows in a read-modify-write are taken with SELECT ... FOR UPDATE.
- No retry loop: a lock conflict blocks until the holder finishes.
"""


def lock_for_update(query):
    """
    Apply row-level locking for critical operations.

    NOTE: SQLite ignores SELECT ... FOR UPDATE, but other DBs will honor it.
    """
    return query.with_for_update()


class Deadline:
    """Absolute point in time after which an open unit must roll back."""

    def __init__(self, seconds: float, clock: Callable[[], float] = time.monotonic):
        self._clock = clock
        self.expires_at = clock() + seconds

    @classmethod
    def from_config(cls) -> "Deadline | None":
        seconds = current_app.config.get("SALE_TRANSACTION_DEADLINE_SECONDS") or 0
        if seconds <= 0:
            return None
        return cls(seconds)

    def remaining(self) -> float:
        return self.expires_at - self._clock()

    def check(self) -> None:
        if self.remaining() <= 0:
            raise DeadlineExceededError("Request deadline exceeded; nothing was saved")


def run_in_transaction(
    primary: Callable[[], T],
    actions: Iterable[Callable[[T], None]] = (),
    *,
    deadline: Deadline | None = None,
) -> T:
    """
    Run primary() and then every action(result) as one atomic unit.

    primary performs the main writes and returns the object the actions work
    on (a sale, a stock row). Actions run in order; any exception from
    primary, an action, the deadline or the commit rolls everything back.
    SQLAlchemy failures surface as StorageError.
    """
    try:
        result = primary()
        db.session.flush()
        for action in actions:
            if deadline is not None:
                deadline.check()
            action(result)
            db.session.flush()
        if deadline is not None:
            deadline.check()
        db.session.commit()
        return result
    except CommerceError:
        db.session.rollback()
        raise
    except SQLAlchemyError as exc:
        db.session.rollback()
        raise StorageError("Database error; the operation was not saved") from exc
    except Exception:
        db.session.rollback()
        raise
