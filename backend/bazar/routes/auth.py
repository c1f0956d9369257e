# Overview: Flask API routes for auth operations; parses input and returns JSON responses.

"""
Authentication API routes

SECURITY FEATURES:
- Password strength validation on registration and password change
- Account lockout after repeated failed attempts (423 while locked)
- Stateless JWT access tokens (Authorization: Bearer <token>)
"""

from flask import Blueprint, g
from flask_jwt_extended import get_jwt_identity, verify_jwt_in_request

from ..decorators import require_auth
from ..extensions import db
from ..models import User
from ..responses import created, ok
from ..services import auth_service
from ..validation import json_body


auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")


def _optional_actor() -> User | None:
    verify_jwt_in_request(optional=True)
    identity = get_jwt_identity()
    if identity is None:
        return None
    return db.session.get(User, int(identity))


@auth_bp.post("/register")
def register_route():
    """
    Create a user account.

    The first account of a fresh installation becomes admin and needs no
    token. Every later registration needs a token with users:write.
    """
    payload = json_body()
    user = auth_service.register_user(payload, actor=_optional_actor())
    return created(
        {"user": user.to_dict(), "token": auth_service.issue_token(user)},
        message="User registered successfully",
    )


@auth_bp.post("/login")
def login_route():
    """
    Authenticate with username (or email) and password.

    Returns the user with its permissions and an access token.
    """
    data = json_body()
    identifier = data.get("username") or data.get("email")
    user = auth_service.authenticate(identifier, data.get("password"))
    return ok(
        {"user": user.to_dict(), "token": auth_service.issue_token(user)},
        message="Login successful",
    )


@auth_bp.get("/profile")
@require_auth
def profile_route():
    return ok(g.current_user.to_dict())


@auth_bp.put("/profile")
@require_auth
def update_profile_route():
    payload = json_body()
    user = auth_service.update_profile(g.current_user, payload)
    return ok(user.to_dict(), message="Profile updated successfully")


@auth_bp.put("/change-password")
@require_auth
def change_password_route():
    data = json_body()
    auth_service.change_password(
        g.current_user,
        current_password=data.get("current_password"),
        new_password=data.get("new_password"),
    )
    return ok(message="Password changed successfully")
