# Overview: Flask API routes for invoices: creation, edits, status and payments.

"""
Invoice routes.

SECURITY: All routes require authentication.
- Read operations require invoices:read
- Creation, edits, status changes, payments and the overdue sweep require invoices:write
- Deleting a draft invoice requires invoices:delete

Stock effects (creation decrements, cancellation/deletion restore) are
handled by invoice_service in a single transaction per request.
"""

from flask import Blueprint, g, request

from ..decorators import require_auth, require_permission
from ..responses import created, ok
from ..services import invoice_service
from ..services.pagination import read_page_args
from ..validation import json_body


invoices_bp = Blueprint("invoices", __name__, url_prefix="/api/invoices")


@invoices_bp.get("")
@require_auth
@require_permission("invoices:read")
def list_invoices_route():
    """
    Query params:
    - page, limit: pagination (default 10 per page, max 100)
    - status, payment_status, client_id
    - search: invoice number, client name or client tax id
    - start, end: ISO-8601 bounds on issue_date
    - sort: issue_date | due_date | created_at | final_amount | invoice_number ("-" = descending)
    """
    page, per_page = read_page_args(request.args)
    invoices, pagination = invoice_service.list_invoices(
        page=page,
        per_page=per_page,
        status=request.args.get("status"),
        payment_status=request.args.get("payment_status"),
        client_id=request.args.get("client_id", type=int),
        search=request.args.get("search"),
        start=request.args.get("start"),
        end=request.args.get("end"),
        sort=request.args.get("sort"),
    )
    return ok([i.to_summary_dict() for i in invoices], pagination=pagination)


@invoices_bp.get("/<int:invoice_id>")
@require_auth
@require_permission("invoices:read")
def get_invoice_route(invoice_id: int):
    return ok(invoice_service.get_invoice(invoice_id).to_dict())


@invoices_bp.post("")
@require_auth
@require_permission("invoices:write")
def create_invoice_route():
    """
    Body:
        {
          "client_id": int,
          "items": [{"product_id": int, "quantity": int, "unit_price_cents": int?, "description": str?}],
          "discount_cents": int?, "discount_percentage": number?,
          "taxes": [{"name": str, "rate": number}]?,
          "due_date": ISO-8601?, "notes": str?, "payment_method": str?
        }
    """
    data = json_body()
    client_id = data.get("client_id")
    invoice = invoice_service.create_invoice(
        client_id=client_id,
        items=data.get("items"),
        discount_cents=data.get("discount_cents"),
        discount_percentage=data.get("discount_percentage"),
        taxes=data.get("taxes"),
        due_date=data.get("due_date"),
        notes=data.get("notes"),
        payment_method=data.get("payment_method"),
        actor_user_id=g.current_user.id,
    )
    return created(invoice.to_dict(), message="Invoice created successfully")


@invoices_bp.put("/<int:invoice_id>")
@require_auth
@require_permission("invoices:write")
def update_invoice_route(invoice_id: int):
    invoice = invoice_service.update_invoice(invoice_id, payload=json_body(), actor_user_id=g.current_user.id)
    return ok(invoice.to_dict(), message="Invoice updated successfully")


@invoices_bp.delete("/<int:invoice_id>")
@require_auth
@require_permission("invoices:delete")
def delete_invoice_route(invoice_id: int):
    number = invoice_service.delete_invoice(invoice_id, actor_user_id=g.current_user.id)
    return ok({"invoice_number": number}, message="Invoice deleted successfully")


@invoices_bp.put("/<int:invoice_id>/status")
@require_auth
@require_permission("invoices:write")
def update_status_route(invoice_id: int):
    """Body: {"status": "sent" | "paid" | "cancelled" | "overdue", "reason": str?}"""
    data = json_body()
    invoice = invoice_service.transition_status(
        invoice_id,
        status=data.get("status"),
        reason=data.get("reason"),
        actor_user_id=g.current_user.id,
    )
    return ok(invoice.to_dict(), message=f"Invoice status changed to {invoice.status}")


@invoices_bp.put("/<int:invoice_id>/payment")
@require_auth
@require_permission("invoices:write")
def update_payment_route(invoice_id: int):
    """
    Body: {"payment_status": str, "method": str?, "payment_date": ISO-8601?,
           "transaction_id": str?, "amount_cents": int?}
    """
    data = json_body()
    invoice = invoice_service.update_payment(
        invoice_id,
        payment_status=data.get("payment_status"),
        method=data.get("method"),
        payment_date=data.get("payment_date"),
        transaction_id=data.get("transaction_id"),
        amount_cents=data.get("amount_cents"),
        actor_user_id=g.current_user.id,
    )
    return ok(invoice.to_dict(), message="Payment updated successfully")


@invoices_bp.post("/mark-overdue")
@require_auth
@require_permission("invoices:write")
def mark_overdue_route():
    invoices = invoice_service.mark_overdue_invoices(actor_user_id=g.current_user.id)
    return ok(
        {"count": len(invoices), "invoice_numbers": [i.invoice_number for i in invoices]},
        message=f"{len(invoices)} invoice(s) marked overdue",
    )
