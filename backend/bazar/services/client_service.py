# Overview: Client master data and client purchase history.

from __future__ import annotations

from flask import current_app
from sqlalchemy import or_

from ..errors import ConflictError, NotFoundError, ValidationError
from ..extensions import db
from ..models import Client, Invoice
from ..validation import (
    ModelValidationPolicy,
    enforce_rules_client,
    flatten_address,
    validate_payload,
)
from .document_service import next_document_number
from .invoice_service import paid_sales_total_cents
from .pagination import paginate, sort_clause


CLIENT_POLICY = ModelValidationPolicy(
    writable_fields={
        "tax_id", "client_type",
        "first_name", "last_name", "email", "phone",
        "company_name", "business_type", "registration_number",
        "address_street", "address_city", "address_state", "address_country", "address_zip_code",
        "preferred_payment_method", "discount_level", "notes",
        "status",
    },
    required_on_create={
        "tax_id", "first_name", "last_name", "phone",
        "address_street", "address_city", "address_state",
    },
)

CLIENT_SORT_FIELDS = {
    "first_name": Client.first_name,
    "last_name": Client.last_name,
    "company_name": Client.company_name,
    "client_code": Client.client_code,
    "created_at": Client.created_at,
}


def get_client(client_id: int) -> Client:
    client = db.session.get(Client, client_id)
    if client is None:
        raise NotFoundError("Client not found")
    return client


def list_clients(
    *,
    page: int = 1,
    per_page: int = 10,
    search: str | None = None,
    status: str | None = None,
    client_type: str | None = None,
    sort: str | None = None,
):
    q = Client.query
    if status:
        q = q.filter(Client.status == status)
    if client_type:
        q = q.filter(Client.client_type == client_type)
    if search:
        like = f"%{search.strip()}%"
        q = q.filter(or_(
            Client.first_name.ilike(like),
            Client.last_name.ilike(like),
            Client.company_name.ilike(like),
            Client.tax_id.ilike(like),
            Client.email.ilike(like),
            Client.client_code.ilike(like),
        ))
    q = q.order_by(*sort_clause(
        sort, CLIENT_SORT_FIELDS,
        default=(Client.created_at.desc(), Client.id.desc()),
        tiebreak=Client.id,
    ))
    return paginate(q, page=page, per_page=per_page)


def _ensure_unique_tax_id(tax_id: str, exclude_id: int | None = None) -> None:
    q = db.session.query(Client.id).filter(Client.tax_id == tax_id)
    if exclude_id is not None:
        q = q.filter(Client.id != exclude_id)
    if q.first() is not None:
        raise ConflictError("A client with that tax_id already exists")


def _check_business_block(client_type: str | None, company_name: str | None) -> None:
    if client_type == "registered" and not company_name:
        raise ValidationError("company_name is required for registered clients")


def create_client(payload: dict) -> Client:
    patch = validate_payload(model=Client, payload=flatten_address(payload), policy=CLIENT_POLICY, partial=False)
    enforce_rules_client(patch)
    _check_business_block(patch.get("client_type"), patch.get("company_name"))
    _ensure_unique_tax_id(patch["tax_id"])

    client = Client(
        client_code=next_document_number(document_type="client", prefix="CLI", pad=3),
        **patch,
    )
    db.session.add(client)
    db.session.commit()

    current_app.logger.info("Client created: %s %s", client.client_code, client.display_name)
    return client


def update_client(client_id: int, payload: dict) -> Client:
    client = get_client(client_id)
    patch = validate_payload(model=Client, payload=flatten_address(payload), policy=CLIENT_POLICY, partial=True)
    enforce_rules_client(patch)
    _check_business_block(
        patch.get("client_type", client.client_type),
        patch.get("company_name", client.company_name),
    )
    if "tax_id" in patch:
        _ensure_unique_tax_id(patch["tax_id"], exclude_id=client.id)

    for key, value in patch.items():
        setattr(client, key, value)
    db.session.commit()
    return client


def delete_client(client_id: int) -> Client:
    client = get_client(client_id)
    client.status = "inactive"
    db.session.commit()
    current_app.logger.info("Client deactivated: %s", client.client_code)
    return client


def list_client_invoices(client_id: int, *, page: int = 1, per_page: int = 10, status: str | None = None):
    get_client(client_id)
    q = Invoice.query.filter(Invoice.client_id == client_id)
    if status:
        q = q.filter(Invoice.status == status)
    q = q.order_by(Invoice.issue_date.desc(), Invoice.id.desc())
    return paginate(q, page=page, per_page=per_page)


def total_purchases_cents(client_id: int) -> int:
    """Sum of the client's paid invoices."""
    return paid_sales_total_cents(client_id=client_id)
