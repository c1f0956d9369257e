# Overview: Password hashing, registration and credential checks.

"""
Authentication Service

Password hashing with bcrypt, password strength rules, and the user
creation path shared by registration and the CLI.

SECURITY NOTES:
- Passwords hashed with bcrypt (cost factor from BCRYPT_ROUNDS, default 12)
- Minimum 8 characters required
- Must contain uppercase, lowercase, digit, and special char
- Access tokens are JWTs issued by flask-jwt-extended (identity = user id)
- The very first registered user becomes admin
"""

import re

import bcrypt
from flask import current_app
from flask_jwt_extended import create_access_token

from ..errors import (
    AccountLockedError,
    AuthenticationError,
    ConflictError,
    PermissionDeniedError,
    ValidationError,
)
from ..extensions import db
from ..models import User
from ..validation import ModelValidationPolicy, enforce_rules_user, validate_payload
from . import login_throttle_service


REGISTER_POLICY = ModelValidationPolicy(
    writable_fields={"username", "email", "first_name", "last_name", "phone", "role"},
    required_on_create={"username", "email", "first_name", "last_name"},
)

PROFILE_POLICY = ModelValidationPolicy(
    writable_fields={"first_name", "last_name", "phone", "email"},
)


class PasswordValidationError(ValidationError):
    """Raised when password doesn't meet strength requirements."""
    pass


def validate_password_strength(password: str) -> None:
    """
    Validate password meets strength requirements.

    Requirements:
    - Minimum 8 characters
    - At least one uppercase letter
    - At least one lowercase letter
    - At least one digit
    - At least one special character (!@#$%^&*(),.'":{}|<>)

    Raises PasswordValidationError if requirements not met.
    """
    if not isinstance(password, str) or len(password) < 8:
        raise PasswordValidationError("Password must be at least 8 characters long")

    if not re.search(r'[A-Z]', password):
        raise PasswordValidationError("Password must contain at least one uppercase letter")

    if not re.search(r'[a-z]', password):
        raise PasswordValidationError("Password must contain at least one lowercase letter")

    if not re.search(r'\d', password):
        raise PasswordValidationError("Password must contain at least one digit")

    if not re.search(r"[!@#$%^&*(),.'\":{}|<>_\-]", password):
        raise PasswordValidationError("Password must contain at least one special character")


def hash_password(password: str) -> str:
    """
    Hash password using bcrypt.

    Password is validated for strength before hashing.
    """
    validate_password_strength(password)
    salt = bcrypt.gensalt(rounds=current_app.config["BCRYPT_ROUNDS"])
    hashed = bcrypt.hashpw(password.encode('utf-8'), salt)
    return hashed.decode('utf-8')


def verify_password(password: str, password_hash: str) -> bool:
    """
    Verify password against bcrypt hash.

    bcrypt.checkpw() is timing-safe. A malformed stored hash never verifies.
    """
    if not password or not password_hash:
        return False
    try:
        return bcrypt.checkpw(password.encode('utf-8'), password_hash.encode('utf-8'))
    except ValueError:
        return False


def _ensure_unique(*, username: str | None = None, email: str | None = None, exclude_id: int | None = None) -> None:
    for field, value in (("username", username), ("email", email)):
        if value is None:
            continue
        q = db.session.query(User).filter(getattr(User, field) == value)
        if exclude_id is not None:
            q = q.filter(User.id != exclude_id)
        if q.first() is not None:
            raise ConflictError(f"A user with that {field} already exists")


def create_user(payload: dict, *, password: str) -> User:
    """
    Validate and store a new account without any caller checks.

    Used by registration and by the `flask users create` / seed commands.
    """
    patch = validate_payload(model=User, payload=payload, policy=REGISTER_POLICY, partial=False)
    enforce_rules_user(patch)
    _ensure_unique(username=patch["username"], email=patch["email"])

    user = User(password_hash=hash_password(password), status="active", **patch)
    db.session.add(user)
    db.session.commit()

    current_app.logger.info("User created: %s (%s) role=%s", user.username, user.id, user.role)
    return user


def register_user(payload: dict, *, actor: User | None = None) -> User:
    """
    Create a user account through the API.

    The first user ever created becomes admin and needs no actor. After that,
    the actor must hold users:write; the role defaults to employee.
    """
    payload = dict(payload)
    password = payload.pop("password", None)

    if db.session.query(User.id).first() is None:
        payload["role"] = "admin"
    else:
        if actor is None:
            raise AuthenticationError("Authentication required")
        if not actor.has_permission("users:write"):
            raise PermissionDeniedError("Only administrators can create users")
        payload.setdefault("role", "employee")

    return create_user(payload, password=password)


def authenticate(identifier: str, password: str) -> User:
    """
    Check credentials (username or email) and return the user.

    Raises:
        AuthenticationError: unknown user, wrong password, or inactive account (401)
        AccountLockedError: too many failed attempts (423)
    """
    if not identifier or not password:
        raise ValidationError("Username and password are required")

    identifier = identifier.strip()
    user = db.session.query(User).filter(
        db.or_(User.username == identifier, User.email == identifier.lower())
    ).first()

    if user is None:
        raise AuthenticationError("Invalid credentials")

    if user.is_locked:
        raise AccountLockedError(
            "Account temporarily locked due to too many failed login attempts",
            seconds_remaining=login_throttle_service.seconds_until_unlock(user),
        )

    if user.status != "active":
        raise AuthenticationError("Account is inactive or suspended")

    if not verify_password(password, user.password_hash):
        attempts = login_throttle_service.record_failed_attempt(user)
        current_app.logger.info("Failed login for %s (attempt %d)", user.username, attempts)
        raise AuthenticationError("Invalid credentials")

    login_throttle_service.record_successful_login(user)
    current_app.logger.info("User logged in: %s (%s)", user.username, user.id)
    return user


def issue_token(user: User) -> str:
    return create_access_token(identity=str(user.id), additional_claims={"role": user.role})


def update_profile(user: User, payload: dict) -> User:
    patch = validate_payload(model=User, payload=payload, policy=PROFILE_POLICY, partial=True)
    enforce_rules_user(patch)
    if "email" in patch:
        _ensure_unique(email=patch["email"], exclude_id=user.id)

    for key, value in patch.items():
        setattr(user, key, value)
    db.session.commit()
    return user


def change_password(user: User, *, current_password: str, new_password: str) -> None:
    if not verify_password(current_password or "", user.password_hash):
        raise AuthenticationError("Current password is incorrect")
    if current_password == new_password:
        raise ValidationError("New password must be different from the current password")

    user.password_hash = hash_password(new_password)
    db.session.commit()
    current_app.logger.info("Password changed: %s (%s)", user.username, user.id)

