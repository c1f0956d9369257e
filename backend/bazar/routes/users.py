# Overview: Flask API routes for user administration.

from flask import Blueprint, g, request

from ..decorators import require_auth, require_permission
from ..responses import ok
from ..services import login_throttle_service, user_service
from ..services.pagination import read_page_args
from ..validation import json_body


users_bp = Blueprint("users", __name__, url_prefix="/api/users")


@users_bp.get("")
@require_auth
@require_permission("users:read")
def list_users_route():
    page, per_page = read_page_args(request.args)
    users, pagination = user_service.list_users(
        page=page,
        per_page=per_page,
        role=request.args.get("role"),
        status=request.args.get("status"),
        search=request.args.get("search"),
    )
    return ok([u.to_dict() for u in users], pagination=pagination)


@users_bp.get("/<int:user_id>")
@require_auth
@require_permission("users:read")
def get_user_route(user_id: int):
    user = user_service.get_user(user_id)
    data = user.to_dict()
    data["lockout"] = login_throttle_service.get_lockout_status(user)
    return ok(data)


@users_bp.put("/<int:user_id>/role")
@require_auth
@require_permission("users:write")
def set_role_route(user_id: int):
    data = json_body()
    user = user_service.set_role(user_id, data.get("role"), actor=g.current_user)
    return ok(user.to_dict(), message="Role updated successfully")


@users_bp.put("/<int:user_id>/status")
@require_auth
@require_permission("users:write")
def set_status_route(user_id: int):
    data = json_body()
    user = user_service.set_status(user_id, data.get("status"), actor=g.current_user)
    return ok(user.to_dict(), message="Status updated successfully")
