# Overview: Product master data, SKU allocation and supplier links.

"""
Product Service

- Codes (PROD-001, ...) and generated SKUs (<CAT>-0001) come from document
  sequences. A generated SKU skips values already taken by manual SKUs.
- current_stock is not writable here. Initial stock given on create is
  booked as an "Initial stock" adjustment through inventory_service, later
  changes go through inventory_service.adjust_stock or invoices.
- Deleting a product is a soft delete (status='discontinued').
"""

from __future__ import annotations

import re

from flask import current_app
from sqlalchemy import or_

from ..errors import ConflictError, NotFoundError, ValidationError
from ..extensions import db
from ..models import Product, ProductSupplier, Supplier
from ..validation import ModelValidationPolicy, enforce_rules_product, validate_payload
from .concurrency import run_in_transaction
from .document_service import next_document_number
from .inventory_service import apply_stock_change, get_product
from .pagination import paginate, sort_clause


PRODUCT_POLICY = ModelValidationPolicy(
    writable_fields={
        "name", "description", "category", "subcategory", "brand",
        "sku", "barcode",
        "cost_price_cents", "selling_price_cents", "wholesale_price_cents", "currency", "tax_rate",
        "minimum_stock", "maximum_stock", "reorder_point", "location",
        "status",
    },
    required_on_create={"name", "category", "selling_price_cents"},
)

PRODUCT_SORT_FIELDS = {
    "name": Product.name,
    "sku": Product.sku,
    "category": Product.category,
    "selling_price": Product.selling_price_cents,
    "stock": Product.current_stock,
    "created_at": Product.created_at,
}

_SKU_PREFIX_RE = re.compile(r"[^A-Z0-9]")


def _sku_prefix(category: str) -> str:
    letters = _SKU_PREFIX_RE.sub("", category.upper())
    return (letters[:3] or "GEN").ljust(3, "X")


def _generate_sku(category: str) -> str:
    prefix = _sku_prefix(category)
    while True:
        sku = next_document_number(document_type=f"sku:{prefix}", prefix=prefix, pad=4)
        if db.session.query(Product.id).filter(Product.sku == sku).first() is None:
            return sku


def _ensure_unique(field: str, value, exclude_id: int | None = None) -> None:
    if value is None:
        return
    q = db.session.query(Product.id).filter(getattr(Product, field) == value)
    if exclude_id is not None:
        q = q.filter(Product.id != exclude_id)
    if q.first() is not None:
        raise ConflictError(f"A product with that {field} already exists")


def _normalize_codes(patch: dict) -> None:
    if "sku" in patch and patch["sku"] is not None:
        patch["sku"] = patch["sku"].upper()
    if patch.get("barcode") == "":
        patch["barcode"] = None


def list_products(
    *,
    page: int = 1,
    per_page: int = 10,
    search: str | None = None,
    category: str | None = None,
    status: str | None = None,
    low_stock: bool = False,
    sort: str | None = None,
):
    q = Product.query
    if status:
        q = q.filter(Product.status == status)
    if category:
        q = q.filter(Product.category.ilike(category.strip()))
    if low_stock:
        q = q.filter(Product.current_stock <= Product.reorder_point)
    if search:
        like = f"%{search.strip()}%"
        q = q.filter(or_(
            Product.name.ilike(like),
            Product.sku.ilike(like),
            Product.barcode.ilike(like),
            Product.brand.ilike(like),
            Product.product_code.ilike(like),
        ))
    q = q.order_by(*sort_clause(
        sort, PRODUCT_SORT_FIELDS,
        default=(Product.name.asc(), Product.id.asc()),
        tiebreak=Product.id,
    ))
    return paginate(q, page=page, per_page=per_page)


def create_product(payload: dict, *, actor_user_id: int | None = None) -> Product:
    payload = dict(payload or {})
    initial_stock = payload.pop("current_stock", 0)
    if isinstance(initial_stock, bool) or not isinstance(initial_stock, int) or initial_stock < 0:
        raise ValidationError("current_stock must be a non-negative integer")

    patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_POLICY, partial=False)
    _normalize_codes(patch)
    enforce_rules_product(patch)
    _ensure_unique("sku", patch.get("sku"))
    _ensure_unique("barcode", patch.get("barcode"))

    def _op() -> Product:
        fields = dict(patch)
        if not fields.get("sku"):
            fields["sku"] = _generate_sku(fields["category"])
        product = Product(
            product_code=next_document_number(document_type="product", prefix="PROD", pad=3),
            current_stock=0,
            **fields,
        )
        db.session.add(product)
        db.session.flush()

        if initial_stock:
            apply_stock_change(
                product,
                operation="add",
                quantity=initial_stock,
                movement_type="adjustment",
                reason="Initial stock",
                actor_user_id=actor_user_id,
            )
        db.session.commit()
        return product

    product = run_in_transaction(_op)
    current_app.logger.info("Product created: %s %s stock=%d", product.sku, product.name, product.current_stock)
    return product


def update_product(product_id: int, payload: dict) -> Product:
    patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_POLICY, partial=True)
    _normalize_codes(patch)
    if "sku" in patch and not patch["sku"]:
        raise ValidationError("sku cannot be blank")

    def _op() -> Product:
        product = get_product(product_id)
        # Cross-field rules see the merged values
        merged = {
            "minimum_stock": product.minimum_stock,
            "maximum_stock": product.maximum_stock,
            **patch,
        }
        enforce_rules_product(merged)
        _ensure_unique("sku", patch.get("sku"), exclude_id=product.id)
        _ensure_unique("barcode", patch.get("barcode"), exclude_id=product.id)

        for key, value in patch.items():
            setattr(product, key, value)
        db.session.commit()
        return product

    return run_in_transaction(_op)


def delete_product(product_id: int) -> Product:
    def _op() -> Product:
        product = get_product(product_id)
        product.status = "discontinued"
        db.session.commit()
        return product

    product = run_in_transaction(_op)
    current_app.logger.info("Product discontinued: %s", product.sku)
    return product


def link_supplier(
    product_id: int,
    *,
    supplier_id,
    supplier_price_cents,
    lead_time_days=7,
    is_preferred: bool = False,
) -> ProductSupplier:
    """Associate a supplier with a product. A preferred link demotes the others."""
    if isinstance(supplier_id, bool) or not isinstance(supplier_id, int):
        raise ValidationError("supplier_id is required")
    if isinstance(supplier_price_cents, bool) or not isinstance(supplier_price_cents, int) or supplier_price_cents < 0:
        raise ValidationError("supplier_price_cents must be a non-negative integer")
    if isinstance(lead_time_days, bool) or not isinstance(lead_time_days, int) or lead_time_days < 0:
        raise ValidationError("lead_time_days must be a non-negative integer")

    product = get_product(product_id)
    supplier = db.session.get(Supplier, supplier_id)
    if supplier is None:
        raise NotFoundError("Supplier not found")
    if any(link.supplier_id == supplier.id for link in product.supplier_links):
        raise ConflictError("Supplier is already linked to this product")

    if is_preferred:
        for link in product.supplier_links:
            link.is_preferred = False

    link = ProductSupplier(
        supplier_id=supplier.id,
        supplier_price_cents=supplier_price_cents,
        lead_time_days=lead_time_days,
        is_preferred=bool(is_preferred),
    )
    product.supplier_links.append(link)
    db.session.commit()
    return link
