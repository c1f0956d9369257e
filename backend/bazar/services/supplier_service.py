# Overview: Supplier master data and supplier catalogs.

"""
Supplier Service

- Codes (SUP-001, SUP-002, ...) come from the document sequence table.
- tax_id is unique across suppliers; duplicates raise ConflictError.
- Deleting a supplier is a soft delete (status='inactive').
"""

from __future__ import annotations

from flask import current_app
from sqlalchemy import or_

from ..errors import ConflictError, NotFoundError
from ..extensions import db
from ..models import Supplier, SupplierCatalogItem
from ..validation import (
    ModelValidationPolicy,
    enforce_rules_catalog_item,
    enforce_rules_supplier,
    flatten_address,
    validate_payload,
)
from .document_service import next_document_number
from .pagination import paginate, sort_clause


SUPPLIER_POLICY = ModelValidationPolicy(
    writable_fields={
        "tax_id", "company", "contact_name", "phone", "email",
        "bank_name", "bank_account",
        "address_street", "address_city", "address_state", "address_country", "address_zip_code",
        "status",
    },
    required_on_create={
        "tax_id", "company", "contact_name", "phone", "bank_name", "bank_account",
        "address_street", "address_city", "address_state",
    },
)

CATALOG_POLICY = ModelValidationPolicy(
    writable_fields={
        "product_name", "description", "category", "unit_price_cents", "currency",
        "available_quantity", "minimum_order", "is_active",
    },
    required_on_create={"product_name", "category", "unit_price_cents"},
)

SUPPLIER_SORT_FIELDS = {
    "company": Supplier.company,
    "supplier_code": Supplier.supplier_code,
    "created_at": Supplier.created_at,
}


def get_supplier(supplier_id: int) -> Supplier:
    supplier = db.session.get(Supplier, supplier_id)
    if supplier is None:
        raise NotFoundError("Supplier not found")
    return supplier


def list_suppliers(
    *,
    page: int = 1,
    per_page: int = 10,
    search: str | None = None,
    status: str | None = None,
    city: str | None = None,
    sort: str | None = None,
):
    q = Supplier.query
    if status:
        q = q.filter(Supplier.status == status)
    if city:
        q = q.filter(Supplier.address_city.ilike(city.strip()))
    if search:
        like = f"%{search.strip()}%"
        q = q.filter(or_(
            Supplier.company.ilike(like),
            Supplier.contact_name.ilike(like),
            Supplier.tax_id.ilike(like),
            Supplier.supplier_code.ilike(like),
            Supplier.email.ilike(like),
        ))
    q = q.order_by(*sort_clause(
        sort, SUPPLIER_SORT_FIELDS,
        default=(Supplier.company.asc(), Supplier.id.asc()),
        tiebreak=Supplier.id,
    ))
    return paginate(q, page=page, per_page=per_page)


def _ensure_unique_tax_id(tax_id: str, exclude_id: int | None = None) -> None:
    q = db.session.query(Supplier.id).filter(Supplier.tax_id == tax_id)
    if exclude_id is not None:
        q = q.filter(Supplier.id != exclude_id)
    if q.first() is not None:
        raise ConflictError("A supplier with that tax_id already exists")


def create_supplier(payload: dict) -> Supplier:
    patch = validate_payload(model=Supplier, payload=flatten_address(payload), policy=SUPPLIER_POLICY, partial=False)
    enforce_rules_supplier(patch)
    _ensure_unique_tax_id(patch["tax_id"])

    supplier = Supplier(
        supplier_code=next_document_number(document_type="supplier", prefix="SUP", pad=3),
        **patch,
    )
    db.session.add(supplier)
    db.session.commit()

    current_app.logger.info("Supplier created: %s %s", supplier.supplier_code, supplier.company)
    return supplier


def update_supplier(supplier_id: int, payload: dict) -> Supplier:
    supplier = get_supplier(supplier_id)
    patch = validate_payload(model=Supplier, payload=flatten_address(payload), policy=SUPPLIER_POLICY, partial=True)
    enforce_rules_supplier(patch)
    if "tax_id" in patch:
        _ensure_unique_tax_id(patch["tax_id"], exclude_id=supplier.id)

    for key, value in patch.items():
        setattr(supplier, key, value)
    db.session.commit()
    return supplier


def delete_supplier(supplier_id: int) -> Supplier:
    supplier = get_supplier(supplier_id)
    supplier.status = "inactive"
    db.session.commit()
    current_app.logger.info("Supplier deactivated: %s", supplier.supplier_code)
    return supplier


def _get_catalog_item(supplier: Supplier, item_id: int) -> SupplierCatalogItem:
    item = db.session.get(SupplierCatalogItem, item_id)
    if item is None or item.supplier_id != supplier.id:
        raise NotFoundError("Catalog item not found")
    return item


def add_catalog_item(supplier_id: int, payload: dict) -> SupplierCatalogItem:
    supplier = get_supplier(supplier_id)
    patch = validate_payload(model=SupplierCatalogItem, payload=payload, policy=CATALOG_POLICY, partial=False)
    enforce_rules_catalog_item(patch)

    item = SupplierCatalogItem(**patch)
    supplier.catalog.append(item)
    db.session.commit()
    return item


def update_catalog_item(supplier_id: int, item_id: int, payload: dict) -> SupplierCatalogItem:
    supplier = get_supplier(supplier_id)
    item = _get_catalog_item(supplier, item_id)
    patch = validate_payload(model=SupplierCatalogItem, payload=payload, policy=CATALOG_POLICY, partial=True)
    enforce_rules_catalog_item(patch)

    for key, value in patch.items():
        setattr(item, key, value)
    db.session.commit()
    return item


def remove_catalog_item(supplier_id: int, item_id: int) -> None:
    supplier = get_supplier(supplier_id)
    item = _get_catalog_item(supplier, item_id)
    supplier.catalog.remove(item)
    db.session.commit()
