from __future__ import annotations

from ..extensions import db
from ..permissions import permissions_for_role
from ..time_utils import as_utc_naive, to_utc_z, utcnow

USER_ROLES = ("admin", "manager", "employee", "viewer")
USER_STATUSES = ("active", "inactive", "suspended")


class User(db.Model):
    """
    User accounts for authentication and attribution.

    Permissions are never stored: they are derived from the role on every
    read (see permissions.permissions_for_role), so a role change can never
    leave a stale permission set behind.

    Users are never hard-deleted; deactivate them through status instead.
    """
    __tablename__ = "users"
    __table_args__ = (
        db.Index("ix_users_role_status", "role", "status"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    username = db.Column(db.String(30), nullable=False, unique=True, index=True)
    email = db.Column(db.String(255), nullable=False, unique=True)

    # Bcrypt hashed password
    password_hash = db.Column(db.String(255), nullable=False)

    first_name = db.Column(db.String(50), nullable=False)
    last_name = db.Column(db.String(50), nullable=False)
    phone = db.Column(db.String(32), nullable=True)

    role = db.Column(db.String(16), nullable=False, default="employee")
    status = db.Column(db.String(16), nullable=False, default="active")

    # Lockout state (see login_throttle_service)
    login_attempts = db.Column(db.Integer, nullable=False, default=0)
    lock_until = db.Column(db.DateTime(timezone=True), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())
    last_login_at = db.Column(db.DateTime(timezone=True), nullable=True)

    @property
    def permissions(self) -> frozenset[str]:
        return permissions_for_role(self.role)

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"

    @property
    def is_locked(self) -> bool:
        return self.lock_until is not None and as_utc_naive(self.lock_until) > utcnow()

    def has_permission(self, permission: str) -> bool:
        return permission in self.permissions

    def __repr__(self) -> str:
        return f"<User id={self.id} username={self.username!r} role={self.role!r}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "username": self.username,
            "email": self.email,
            "first_name": self.first_name,
            "last_name": self.last_name,
            "full_name": self.full_name,
            "phone": self.phone,
            "role": self.role,
            "permissions": sorted(self.permissions),
            "status": self.status,
            "is_locked": self.is_locked,
            "created_at": to_utc_z(self.created_at),
            "last_login_at": to_utc_z(self.last_login_at) if self.last_login_at else None,
        }
