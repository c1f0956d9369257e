# Overview: Request and permission decorators for API routes.

from functools import wraps

from flask import current_app, g, request
from flask_jwt_extended import get_jwt_identity, verify_jwt_in_request

from .extensions import db
from .models import User
from .permissions import has_any_permission, validate_permission_code
from .responses import fail
from .services.login_throttle_service import seconds_until_unlock


def _is_authenticated() -> bool:
    return getattr(g, "current_user", None) is not None


def _check_codes(*permission_codes) -> None:
    """Fail at import time on a misspelled permission code."""
    for code in permission_codes:
        if not validate_permission_code(code):
            raise ValueError(f"Unknown permission code: {code}")


def require_auth(f):
    """
    Require a valid access token and load the caller.

    Sets g.current_user to the authenticated User.

    SECURITY: Returns 401 if:
    - No Authorization header / malformed token (flask-jwt-extended loaders)
    - Expired token
    - User no longer exists or is not active
    Returns 423 if the account is locked.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        verify_jwt_in_request()

        identity = get_jwt_identity()
        try:
            user_id = int(identity)
        except (TypeError, ValueError):
            return fail("Invalid token", 401)

        user = db.session.get(User, user_id)
        if user is None:
            return fail("Invalid token", 401)
        if user.status != "active":
            return fail("Account is inactive or suspended", 401)
        if user.is_locked:
            return fail(
                "Account temporarily locked",
                423,
                retry_after_seconds=seconds_until_unlock(user),
            )

        g.current_user = user
        return f(*args, **kwargs)

    return decorated_function


def require_permission(permission_code: str):
    """Require a specific permission. Must be stacked under @require_auth."""
    _check_codes(permission_code)

    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            if not _is_authenticated():
                return fail("Authentication required", 401)

            user = g.current_user
            if not user.has_permission(permission_code):
                current_app.logger.warning(
                    "Permission denied: user=%s role=%s needs %s on %s %s",
                    user.id, user.role, permission_code, request.method, request.path,
                )
                return fail(
                    "Permission denied",
                    403,
                    errors=[f"Requires permission: {permission_code}"],
                    required_permission=permission_code,
                )

            return f(*args, **kwargs)

        return decorated_function
    return decorator


def require_any_permission(*permission_codes):
    """Require any of the specified permissions."""
    _check_codes(*permission_codes)

    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            if not _is_authenticated():
                return fail("Authentication required", 401)

            user = g.current_user
            if not has_any_permission(user.permissions, *permission_codes):
                current_app.logger.warning(
                    "Permission denied: user=%s role=%s needs any of %s on %s %s",
                    user.id, user.role, ",".join(permission_codes), request.method, request.path,
                )
                return fail(
                    "Permission denied",
                    403,
                    errors=[f"Requires any of: {', '.join(permission_codes)}"],
                    required_permissions=list(permission_codes),
                )

            return f(*args, **kwargs)

        return decorated_function
    return decorator


def require_all_permissions(*permission_codes):
    """Require all of the specified permissions."""
    _check_codes(*permission_codes)

    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            if not _is_authenticated():
                return fail("Authentication required", 401)

            user = g.current_user
            missing = [code for code in permission_codes if not user.has_permission(code)]
            if missing:
                current_app.logger.warning(
                    "Permission denied: user=%s role=%s missing %s on %s %s",
                    user.id, user.role, ",".join(missing), request.method, request.path,
                )
                return fail(
                    "Permission denied",
                    403,
                    errors=[f"Missing: {', '.join(missing)}"],
                    missing_permissions=missing,
                )

            return f(*args, **kwargs)

        return decorated_function
    return decorator
