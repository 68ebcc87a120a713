"""
Ownership Resolver: maps an authenticated actor to the owner id that scopes
every ledger row.

SECURITY INVARIANTS:
1. Every ledger read/write is filtered by the resolved owner id.
2. Admin and manager accounts are their own owner.
3. Staff resolve through their Employee row (matched by email) to the
   manager that employs them.
4. A row that belongs to a different owner is reported as "not found".

USAGE:
    owner_id = resolve_owner_id(actor)
    sales = scoped_query(Sale, owner_id).filter(...).all()
"""

from __future__ import annotations

from dataclasses import dataclass

from ..extensions import db
from ..models import Employee
from ..models.tenancy import OWNER_ROLES, ROLE_STAFF
from .errors import ValidationError


class OwnershipError(ValidationError):
    """Raised when an actor cannot be mapped to an owner."""


@dataclass(frozen=True)
class Actor:
    """Authenticated caller as handed over by the token verifier."""
    id: int
    email: str
    role: str
    name: str = ""

    @classmethod
    def from_claims(cls, claims: dict) -> "Actor":
        return cls(
            id=int(claims["id"]),
            email=(claims.get("email") or "").strip(),
            role=(claims.get("role") or "").strip().lower(),
            name=claims.get("name") or "",
        )

    @property
    def is_owner(self) -> bool:
        return self.role in OWNER_ROLES


def resolve_owner_id(actor: Actor) -> int:
    """
    Resolve the owner id for an actor.

    Raises:
        OwnershipError if the role is unknown, a staff actor has no email,
        no live employee row matches, or the employee has no manager.
    """
    if actor.role in OWNER_ROLES:
        return actor.id

    if actor.role != ROLE_STAFF:
        raise OwnershipError("invalid role")

    if not actor.email:
        raise OwnershipError("staff email is required")

    employee = (
        db.session.query(Employee)
        .filter(
            db.func.lower(Employee.email) == actor.email.lower(),
            Employee.deleted_at.is_(None),
        )
        .order_by(Employee.id)
        .first()
    )
    if employee is None:
        raise OwnershipError("employee not found")
    if employee.manager_id is None:
        raise OwnershipError("employee has no manager")
    return employee.manager_id


def scoped_query(model, owner_id: int, *, include_deleted: bool = False):
    """
    Base query for an owner-scoped model.

    Soft-deleted rows are excluded unless include_deleted is set.
    """
    query = db.session.query(model).filter(model.owner_id == owner_id)
    if not include_deleted and hasattr(model, "deleted_at"):
        query = query.filter(model.deleted_at.is_(None))
    return query
