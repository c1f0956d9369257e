# Overview: Domain error taxonomy and Flask error handlers that map it to HTTP.

"""
Error taxonomy

Domain code raises these before mutating anything; the handlers registered
by register_error_handlers() translate them into the JSON envelope.

    ValidationError         400  schema / payload constraint violated
    ConflictError           400  unique constraint (tax id, SKU, email, ...)
    InsufficientStockError  400  stock check failed (available vs requested)
    InvalidTransitionError  400  invoice status guard violated
    AuthenticationError     401  missing/invalid credentials or token
    PermissionDeniedError   403  missing permission
    NotFoundError           404  referenced entity missing
    AccountLockedError      423  too many failed logins
"""

from __future__ import annotations

from flask import current_app
from sqlalchemy.exc import IntegrityError
from werkzeug.exceptions import HTTPException

from .extensions import db, jwt
from .responses import fail


class BazarError(Exception):
    """Base class for errors that map onto an HTTP status."""

    status_code = 500

    def __init__(self, message: str, *, errors: list[str] | None = None):
        super().__init__(message)
        self.message = message
        self.errors = errors or []


class ValidationError(BazarError, ValueError):
    status_code = 400


class ConflictError(ValidationError):
    """Duplicate key on a unique field. Reported as 400 like other validation failures."""


class InsufficientStockError(BazarError):
    status_code = 400

    def __init__(self, product_name: str, available: int, requested: int):
        super().__init__(
            f"Insufficient stock for {product_name}: available {available}, requested {requested}"
        )
        self.product_name = product_name
        self.available = available
        self.requested = requested


class InvalidTransitionError(BazarError):
    status_code = 400


class NotFoundError(BazarError):
    status_code = 404


class AuthenticationError(BazarError):
    status_code = 401


class PermissionDeniedError(BazarError):
    status_code = 403


class AccountLockedError(BazarError):
    status_code = 423

    def __init__(self, message: str, *, seconds_remaining: int | None = None):
        super().__init__(message)
        self.seconds_remaining = seconds_remaining


def register_error_handlers(app) -> None:
    @app.errorhandler(BazarError)
    def handle_bazar_error(exc: BazarError):
        db.session.rollback()
        extra = {}
        if isinstance(exc, AccountLockedError) and exc.seconds_remaining is not None:
            extra["retry_after_seconds"] = exc.seconds_remaining
        return fail(exc.message, exc.status_code, errors=exc.errors, **extra)

    @app.errorhandler(IntegrityError)
    def handle_integrity_error(exc: IntegrityError):
        db.session.rollback()
        current_app.logger.warning("Integrity error: %s", exc.orig)
        return fail("A record with the same unique value already exists", 400)

    @app.errorhandler(HTTPException)
    def handle_http_exception(exc: HTTPException):
        return fail(exc.description or exc.name, exc.code or 500)

    @app.errorhandler(Exception)
    def handle_unexpected(exc: Exception):
        db.session.rollback()
        current_app.logger.exception("Unhandled error")
        if app.debug:
            return fail("Internal server error", 500, errors=[repr(exc)])
        return fail("Internal server error", 500)

    @jwt.expired_token_loader
    def expired_token(jwt_header, jwt_payload):
        return fail("Token expired", 401)

    @jwt.invalid_token_loader
    def invalid_token(reason: str):
        return fail("Invalid token", 401)

    @jwt.unauthorized_loader
    def missing_token(reason: str):
        return fail("Authentication required", 401)
