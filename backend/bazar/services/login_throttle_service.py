"""
Login Throttling Service

Counts failed login attempts per user and locks the account for a
fixed window once the limit is reached.

SECURITY FEATURES:
- Failed attempts are counted on the user row (users.login_attempts)
- Lockout after MAX_LOGIN_ATTEMPTS consecutive failures (default 5)
- Lockout duration: LOCKOUT_MINUTES (default 120)
- A failure after an expired lock starts a fresh count
- Clears failed count on successful login
"""

from datetime import timedelta

from flask import current_app

from ..extensions import db
from ..models import User
from ..time_utils import as_utc_naive, utcnow


def _max_attempts() -> int:
    return current_app.config["MAX_LOGIN_ATTEMPTS"]


def _lockout_duration() -> timedelta:
    return timedelta(minutes=current_app.config["LOCKOUT_MINUTES"])


def seconds_until_unlock(user: User) -> int | None:
    """Seconds left on an active lock, None when the account is not locked."""
    if not user.is_locked:
        return None
    return max(int((as_utc_naive(user.lock_until) - utcnow()).total_seconds()), 1)


def record_failed_attempt(user: User) -> int:
    """
    Record a failed login attempt and lock the account once the limit is hit.

    Returns the current failed-attempt count.
    """
    now = utcnow()

    if user.lock_until is not None and user.lock_until <= now:
        # Previous lock expired: this failure starts a new window
        user.lock_until = None
        user.login_attempts = 1
    else:
        user.login_attempts = (user.login_attempts or 0) + 1

    if user.login_attempts >= _max_attempts() and not user.is_locked:
        user.lock_until = now + _lockout_duration()
        current_app.logger.warning(
            "Account locked after %d failed logins: %s", user.login_attempts, user.username
        )

    db.session.commit()
    return user.login_attempts


def record_successful_login(user: User) -> None:
    user.login_attempts = 0
    user.lock_until = None
    user.last_login_at = utcnow()
    db.session.commit()


def get_lockout_status(user: User) -> dict:
    return {
        "locked": user.is_locked,
        "failed_attempts": user.login_attempts,
        "max_attempts": _max_attempts(),
        "seconds_until_unlock": seconds_until_unlock(user),
        "lockout_duration_minutes": int(_lockout_duration().total_seconds() / 60),
    }
