# Overview: Flask API routes for products, stock adjustments and supplier links.

"""
Product routes.

SECURITY: All routes require authentication.
- Read operations (list, detail, low stock, movements) require products:read
- Create/update, inventory adjustment and supplier links require products:write
- Discontinuing a product requires products:delete
"""

from flask import Blueprint, g, request

from ..decorators import require_auth, require_permission
from ..responses import created, ok
from ..services import inventory_service, product_service
from ..services.pagination import read_page_args
from ..validation import json_body


products_bp = Blueprint("products", __name__, url_prefix="/api/products")


@products_bp.get("")
@require_auth
@require_permission("products:read")
def list_products_route():
    """
    Query params:
    - page, limit: pagination (default 10 per page, max 100)
    - search: name, sku, barcode, brand or code
    - category, status
    - low_stock: "true" to keep only products at or below their reorder point
    - sort: name | sku | category | selling_price | stock | created_at ("-" = descending)
    """
    page, per_page = read_page_args(request.args)
    products, pagination = product_service.list_products(
        page=page,
        per_page=per_page,
        search=request.args.get("search"),
        category=request.args.get("category"),
        status=request.args.get("status"),
        low_stock=request.args.get("low_stock", "").lower() in ("1", "true", "yes"),
        sort=request.args.get("sort"),
    )
    return ok([p.to_dict() for p in products], pagination=pagination)


@products_bp.get("/low-stock")
@require_auth
@require_permission("products:read")
def low_stock_route():
    products = inventory_service.get_low_stock_products()
    return ok([p.to_dict() for p in products])


@products_bp.get("/<int:product_id>")
@require_auth
@require_permission("products:read")
def get_product_route(product_id: int):
    product = inventory_service.get_product(product_id)
    return ok(product.to_dict(include_suppliers=True))


@products_bp.post("")
@require_auth
@require_permission("products:write")
def create_product_route():
    product = product_service.create_product(json_body(), actor_user_id=g.current_user.id)
    return created(product.to_dict(include_suppliers=True), message="Product created successfully")


@products_bp.put("/<int:product_id>")
@require_auth
@require_permission("products:write")
def update_product_route(product_id: int):
    product = product_service.update_product(product_id, json_body())
    return ok(product.to_dict(include_suppliers=True), message="Product updated successfully")


@products_bp.delete("/<int:product_id>")
@require_auth
@require_permission("products:delete")
def delete_product_route(product_id: int):
    product = product_service.delete_product(product_id)
    return ok(product.to_dict(), message="Product discontinued successfully")


@products_bp.put("/<int:product_id>/inventory")
@require_auth
@require_permission("products:write")
def adjust_inventory_route(product_id: int):
    """
    Body: {"operation": "add" | "subtract" | "set", "quantity": int, "reason": str}
    """
    data = json_body()
    product, movement = inventory_service.adjust_stock(
        product_id=product_id,
        operation=data.get("operation"),
        quantity=data.get("quantity"),
        reason=data.get("reason"),
        actor_user_id=g.current_user.id,
    )
    return ok(
        {"product": product.to_dict(), "movement": movement.to_dict()},
        message="Inventory updated successfully",
    )


@products_bp.get("/<int:product_id>/movements")
@require_auth
@require_permission("products:read")
def list_movements_route(product_id: int):
    limit = min(max(request.args.get("limit", 50, type=int), 1), 500)
    movements = inventory_service.list_movements(
        product_id=product_id,
        limit=limit,
        movement_type=request.args.get("type"),
    )
    return ok([m.to_dict() for m in movements])


@products_bp.post("/<int:product_id>/suppliers")
@require_auth
@require_permission("products:write")
def link_supplier_route(product_id: int):
    data = json_body()
    link = product_service.link_supplier(
        product_id,
        supplier_id=data.get("supplier_id"),
        supplier_price_cents=data.get("supplier_price_cents"),
        lead_time_days=data.get("lead_time_days", 7),
        is_preferred=bool(data.get("is_preferred", False)),
    )
    return created(link.to_dict(), message="Supplier linked to product")
