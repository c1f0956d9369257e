# Overview: Flask API routes for suppliers and supplier catalogs.

"""
Supplier routes.

SECURITY: All routes require authentication.
- Read operations require suppliers:read
- Create/update and catalog changes require suppliers:write
- Deactivation requires suppliers:delete
"""

from flask import Blueprint, request

from ..decorators import require_auth, require_permission
from ..responses import created, ok
from ..services import supplier_service
from ..services.pagination import read_page_args
from ..validation import json_body


suppliers_bp = Blueprint("suppliers", __name__, url_prefix="/api/suppliers")


@suppliers_bp.get("")
@require_auth
@require_permission("suppliers:read")
def list_suppliers_route():
    """
    Query params:
    - page, limit: pagination (default 10 per page, max 100)
    - search: company, contact, tax id, code or email
    - status: active | inactive
    - city: exact city (case-insensitive)
    - sort: company | supplier_code | created_at, "-" prefix for descending
    """
    page, per_page = read_page_args(request.args)
    suppliers, pagination = supplier_service.list_suppliers(
        page=page,
        per_page=per_page,
        search=request.args.get("search"),
        status=request.args.get("status"),
        city=request.args.get("city"),
        sort=request.args.get("sort"),
    )
    return ok([s.to_dict() for s in suppliers], pagination=pagination)


@suppliers_bp.get("/<int:supplier_id>")
@require_auth
@require_permission("suppliers:read")
def get_supplier_route(supplier_id: int):
    supplier = supplier_service.get_supplier(supplier_id)
    return ok(supplier.to_dict(include_catalog=True))


@suppliers_bp.post("")
@require_auth
@require_permission("suppliers:write")
def create_supplier_route():
    supplier = supplier_service.create_supplier(json_body())
    return created(supplier.to_dict(include_catalog=True), message="Supplier created successfully")


@suppliers_bp.put("/<int:supplier_id>")
@require_auth
@require_permission("suppliers:write")
def update_supplier_route(supplier_id: int):
    supplier = supplier_service.update_supplier(supplier_id, json_body())
    return ok(supplier.to_dict(include_catalog=True), message="Supplier updated successfully")


@suppliers_bp.delete("/<int:supplier_id>")
@require_auth
@require_permission("suppliers:delete")
def delete_supplier_route(supplier_id: int):
    supplier = supplier_service.delete_supplier(supplier_id)
    return ok(supplier.to_dict(), message="Supplier deactivated successfully")


@suppliers_bp.post("/<int:supplier_id>/catalog")
@require_auth
@require_permission("suppliers:write")
def add_catalog_item_route(supplier_id: int):
    item = supplier_service.add_catalog_item(supplier_id, json_body())
    return created(item.to_dict(), message="Catalog item added")


@suppliers_bp.put("/<int:supplier_id>/catalog/<int:item_id>")
@require_auth
@require_permission("suppliers:write")
def update_catalog_item_route(supplier_id: int, item_id: int):
    item = supplier_service.update_catalog_item(supplier_id, item_id, json_body())
    return ok(item.to_dict(), message="Catalog item updated")


@suppliers_bp.delete("/<int:supplier_id>/catalog/<int:item_id>")
@require_auth
@require_permission("suppliers:write")
def remove_catalog_item_route(supplier_id: int, item_id: int):
    supplier_service.remove_catalog_item(supplier_id, item_id)
    return ok(message="Catalog item removed")
