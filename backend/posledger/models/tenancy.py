from __future__ import annotations

from ..extensions import db
from posledger.time_utils import to_utc_z

ROLE_ADMIN = "admin"
ROLE_MANAGER = "manager"
ROLE_STAFF = "staff"

OWNER_ROLES = (ROLE_ADMIN, ROLE_MANAGER)


class User(db.Model):
    """
    Authenticated account.

    MULTI-TENANT: admin and manager users ARE owners; every ledger row they
    create is scoped by their id. Staff users act for the manager recorded on
    their Employee row (matched by email).
    """
    __tablename__ = "users"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    email = db.Column(db.String(255), nullable=False, unique=True, index=True)
    role = db.Column(db.String(16), nullable=False, default=ROLE_MANAGER, index=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    deleted_at = db.Column(db.DateTime(timezone=True), nullable=True)

    def __repr__(self) -> str:
        return f"<User id={self.id} email={self.email!r} role={self.role}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "role": self.role,
            "created_at": to_utc_z(self.created_at),
        }


class Employee(db.Model):
    """Staff member managed by an owner; links a staff login to its owner."""
    __tablename__ = "employees"
    __table_args__ = (
        db.Index("ix_employees_manager_email", "manager_id", "email"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    manager_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True, index=True)
    name = db.Column(db.String(255), nullable=False)
    email = db.Column(db.String(255), nullable=True, index=True)
    role = db.Column(db.String(64), nullable=False, default="")
    active = db.Column(db.Boolean, nullable=False, default=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    deleted_at = db.Column(db.DateTime(timezone=True), nullable=True)

    manager = db.relationship("User", backref=db.backref("employees", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "manager_id": self.manager_id,
            "name": self.name,
            "email": self.email,
            "role": self.role,
            "active": self.active,
        }
