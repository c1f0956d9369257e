# Overview: User administration: listing, role and status changes.

from __future__ import annotations

from flask import current_app
from sqlalchemy import or_

from ..errors import NotFoundError, ValidationError
from ..extensions import db
from ..models import User
from ..models.auth import USER_ROLES, USER_STATUSES
from .pagination import paginate


def get_user(user_id: int) -> User:
    user = db.session.get(User, user_id)
    if user is None:
        raise NotFoundError("User not found")
    return user


def list_users(
    *,
    page: int = 1,
    per_page: int = 10,
    role: str | None = None,
    status: str | None = None,
    search: str | None = None,
):
    q = User.query
    if role:
        q = q.filter(User.role == role)
    if status:
        q = q.filter(User.status == status)
    if search:
        like = f"%{search.strip()}%"
        q = q.filter(or_(
            User.username.ilike(like),
            User.email.ilike(like),
            User.first_name.ilike(like),
            User.last_name.ilike(like),
        ))
    q = q.order_by(User.username.asc(), User.id.asc())
    return paginate(q, page=page, per_page=per_page)


def _remaining_active_admins(excluding: User) -> int:
    return (
        db.session.query(User)
        .filter(User.role == "admin", User.status == "active", User.id != excluding.id)
        .count()
    )


def set_role(user_id: int, role: str, *, actor: User) -> User:
    """
    Change a user's role. Permissions follow immediately since they are
    derived from the role on every read.
    """
    if role not in USER_ROLES:
        raise ValidationError(f"role must be one of: {', '.join(USER_ROLES)}")

    user = get_user(user_id)
    if user.role == "admin" and role != "admin" and _remaining_active_admins(user) == 0:
        raise ValidationError("Cannot remove the last active administrator")

    user.role = role
    db.session.commit()
    current_app.logger.info("Role changed: %s -> %s by user=%s", user.username, role, actor.id)
    return user


def set_status(user_id: int, status: str, *, actor: User) -> User:
    """Activate, deactivate or suspend an account. Reactivation also clears a login lock."""
    if status not in USER_STATUSES:
        raise ValidationError(f"status must be one of: {', '.join(USER_STATUSES)}")

    user = get_user(user_id)
    if user.id == actor.id and status != "active":
        raise ValidationError("You cannot deactivate your own account")
    if user.role == "admin" and status != "active" and _remaining_active_admins(user) == 0:
        raise ValidationError("Cannot deactivate the last active administrator")

    user.status = status
    if status == "active":
        user.login_attempts = 0
        user.lock_until = None
    db.session.commit()
    current_app.logger.info("Status changed: %s -> %s by user=%s", user.username, status, actor.id)
    return user
