# Overview: Flask API routes for clients and their invoice history.

from flask import Blueprint, request

from ..decorators import require_all_permissions, require_auth, require_permission
from ..responses import created, ok
from ..services import client_service
from ..services.pagination import read_page_args
from ..validation import json_body


clients_bp = Blueprint("clients", __name__, url_prefix="/api/clients")


@clients_bp.get("")
@require_auth
@require_permission("clients:read")
def list_clients_route():
    page, per_page = read_page_args(request.args)
    clients, pagination = client_service.list_clients(
        page=page,
        per_page=per_page,
        search=request.args.get("search"),
        status=request.args.get("status"),
        client_type=request.args.get("client_type"),
        sort=request.args.get("sort"),
    )
    return ok([c.to_dict() for c in clients], pagination=pagination)


@clients_bp.get("/<int:client_id>")
@require_auth
@require_permission("clients:read")
def get_client_route(client_id: int):
    client = client_service.get_client(client_id)
    data = client.to_dict()
    data["total_purchases_cents"] = client_service.total_purchases_cents(client.id)
    return ok(data)


@clients_bp.post("")
@require_auth
@require_permission("clients:write")
def create_client_route():
    client = client_service.create_client(json_body())
    return created(client.to_dict(), message="Client created successfully")


@clients_bp.put("/<int:client_id>")
@require_auth
@require_permission("clients:write")
def update_client_route(client_id: int):
    client = client_service.update_client(client_id, json_body())
    return ok(client.to_dict(), message="Client updated successfully")


@clients_bp.delete("/<int:client_id>")
@require_auth
@require_permission("clients:delete")
def delete_client_route(client_id: int):
    client = client_service.delete_client(client_id)
    return ok(client.to_dict(), message="Client deactivated successfully")


@clients_bp.get("/<int:client_id>/invoices")
@require_auth
@require_all_permissions("clients:read", "invoices:read")
def client_invoices_route(client_id: int):
    page, per_page = read_page_args(request.args)
    invoices, pagination = client_service.list_client_invoices(
        client_id,
        page=page,
        per_page=per_page,
        status=request.args.get("status"),
    )
    return ok([i.to_summary_dict() for i in invoices], pagination=pagination)
