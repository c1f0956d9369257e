# Overview: Invoice lifecycle: creation with stock decrement, edits, status machine, payments.

"""
Invoice Lifecycle Service

TOTALS:
    line_total   = quantity * unit_price            (unit_price defaults to product price)
    subtotal     = sum(line_total)
    discount     = discount_cents, or subtotal * discount_percentage / 100
    tax[i]       = (subtotal - discount) * rate[i] / 100
    final_amount = subtotal - discount + sum(tax[i])
All amounts are integer cents; percentage results round half-up to the cent.

STATUS MACHINE:
    draft   -> sent | paid | overdue | cancelled
    sent    -> paid | overdue | cancelled
    overdue -> paid | cancelled
    paid, cancelled: terminal

STOCK:
- Creation subtracts every line through inventory_service.apply_stock_change
  (movement_type="sale"); cancellation, deletion and edits give it back
  (movement_type="return").
- Each public operation is one DB transaction. Products are locked in id
  order and guarded by their version column, so two invoices racing for the
  same stock can never both succeed past the available quantity.
"""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass
from datetime import datetime, timedelta
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

from flask import current_app
from sqlalchemy import func, or_

from ..errors import (
    InsufficientStockError,
    InvalidTransitionError,
    NotFoundError,
    ValidationError,
)
from ..extensions import db
from ..models import (
    Client,
    Invoice,
    InvoiceItem,
    InvoicePayment,
    InvoiceStatusHistory,
    InvoiceTax,
    Product,
)
from ..models.invoices import INVOICE_STATUSES
from ..models.partners import PAYMENT_METHODS
from ..time_utils import as_utc_naive, parse_iso_datetime, start_of_day, utcnow
from .concurrency import lock_for_update, run_in_transaction
from .document_service import next_document_number
from .inventory_service import apply_stock_change, lock_product
from .pagination import paginate, sort_clause


ALLOWED_TRANSITIONS: dict[str, frozenset[str]] = {
    "draft": frozenset({"sent", "paid", "overdue", "cancelled"}),
    "sent": frozenset({"paid", "overdue", "cancelled"}),
    "overdue": frozenset({"paid", "cancelled"}),
    "paid": frozenset(),
    "cancelled": frozenset(),
}

# Payment statuses a caller may set; "cancelled" is reserved for cancellation
SETTABLE_PAYMENT_STATUSES = ("pending", "partial", "paid", "overdue")

INVOICE_SORT_FIELDS = {
    "issue_date": Invoice.issue_date,
    "due_date": Invoice.due_date,
    "created_at": Invoice.created_at,
    "final_amount": Invoice.final_amount_cents,
    "invoice_number": Invoice.invoice_number,
}

_CENT = Decimal("1")


@dataclass(frozen=True)
class LineRequest:
    product_id: int
    quantity: int
    unit_price_cents: int | None = None
    description: str | None = None


@dataclass(frozen=True)
class TaxRequest:
    name: str
    rate: Decimal


def percent_of(amount_cents: int, rate: Decimal) -> int:
    """amount * rate / 100, rounded half-up to the cent."""
    return int((Decimal(amount_cents) * rate / Decimal(100)).quantize(_CENT, rounding=ROUND_HALF_UP))


def _as_int(value, field: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError(f"{field} must be an integer")
    return value


def _as_rate(value, field: str) -> Decimal:
    if isinstance(value, bool) or value is None:
        raise ValidationError(f"{field} must be a number")
    try:
        rate = Decimal(str(value))
    except InvalidOperation:
        raise ValidationError(f"{field} must be a number")
    if not (Decimal(0) <= rate <= Decimal(100)):
        raise ValidationError(f"{field} must be between 0 and 100")
    return rate


def _as_datetime(value, field: str) -> datetime | None:
    if value is None:
        return None
    if isinstance(value, datetime):
        return as_utc_naive(value)
    if not isinstance(value, str):
        raise ValidationError(f"{field} must be an ISO-8601 datetime")
    try:
        return parse_iso_datetime(value)
    except ValueError:
        raise ValidationError(f"{field} must be an ISO-8601 datetime")


def parse_lines(items) -> list[LineRequest]:
    if not isinstance(items, list) or not items:
        raise ValidationError("Invoice must contain at least one item")

    lines: list[LineRequest] = []
    errors: list[str] = []
    for idx, raw in enumerate(items, start=1):
        if not isinstance(raw, dict):
            errors.append(f"item {idx}: must be an object")
            continue
        product_id = raw.get("product_id")
        quantity = raw.get("quantity")
        unit_price = raw.get("unit_price_cents")
        if isinstance(product_id, bool) or not isinstance(product_id, int):
            errors.append(f"item {idx}: product_id is required")
            continue
        if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity <= 0:
            errors.append(f"item {idx}: quantity must be a positive integer")
            continue
        if unit_price is not None and (
            isinstance(unit_price, bool) or not isinstance(unit_price, int) or unit_price < 0
        ):
            errors.append(f"item {idx}: unit_price_cents must be a non-negative integer")
            continue
        lines.append(LineRequest(product_id, quantity, unit_price, raw.get("description")))

    if errors:
        raise ValidationError("Invalid invoice items", errors=errors)
    return lines


def parse_taxes(taxes) -> list[TaxRequest]:
    """Explicit taxes, or the configured default (IVA 19%) when none are given."""
    if taxes is None:
        return [
            TaxRequest(
                current_app.config["DEFAULT_TAX_NAME"],
                Decimal(str(current_app.config["DEFAULT_TAX_RATE"])),
            )
        ]
    if not isinstance(taxes, list):
        raise ValidationError("taxes must be a list")

    parsed = []
    for idx, raw in enumerate(taxes, start=1):
        if not isinstance(raw, dict) or not str(raw.get("name") or "").strip():
            raise ValidationError(f"tax {idx}: name is required")
        parsed.append(TaxRequest(str(raw["name"]).strip(), _as_rate(raw.get("rate"), f"tax {idx} rate")))
    return parsed


def compute_totals(
    line_totals: list[int],
    *,
    taxes: list[TaxRequest],
    discount_cents: int | None = None,
    discount_percentage: Decimal | None = None,
) -> dict:
    subtotal = sum(line_totals)

    if discount_cents is not None:
        discount = discount_cents
    elif discount_percentage is not None:
        discount = percent_of(subtotal, discount_percentage)
    else:
        discount = 0

    if discount < 0:
        raise ValidationError("discount_cents must be >= 0")
    if discount > subtotal:
        raise ValidationError("Discount cannot exceed the invoice subtotal")

    taxable = subtotal - discount
    tax_lines = [(tax.name, tax.rate, percent_of(taxable, tax.rate)) for tax in taxes]
    tax_total = sum(amount for _, _, amount in tax_lines)

    return {
        "subtotal_cents": subtotal,
        "discount_cents": discount,
        "taxes": tax_lines,
        "tax_total_cents": tax_total,
        "final_amount_cents": subtotal - discount + tax_total,
    }


def get_invoice(invoice_id: int) -> Invoice:
    invoice = db.session.get(Invoice, invoice_id)
    if invoice is None:
        raise NotFoundError("Invoice not found")
    return invoice


def _lock_invoice(invoice_id: int) -> Invoice:
    query = db.session.query(Invoice).filter_by(id=invoice_id)
    invoice = lock_for_update(query).populate_existing().first()
    if invoice is None:
        raise NotFoundError("Invoice not found")
    return invoice


def _lock_products(product_ids) -> dict[int, Product]:
    """Lock every product in ascending id order so concurrent invoices cannot deadlock."""
    products = {}
    for product_id in sorted(set(product_ids)):
        product = lock_product(product_id)
        if product is None:
            raise ValidationError(f"Product {product_id} not found")
        products[product_id] = product
    return products


def _check_availability(lines: list[LineRequest], products: dict[int, Product], credit: dict[int, int] | None = None):
    """Raise before any mutation if a product cannot cover the summed quantity of its lines."""
    requested: dict[int, int] = defaultdict(int)
    for line in lines:
        requested[line.product_id] += line.quantity

    for product_id, quantity in requested.items():
        product = products[product_id]
        if product.status != "active":
            raise ValidationError(f"Product {product.name} is not available for sale")
        available = product.current_stock + (credit or {}).get(product_id, 0)
        if quantity > available:
            raise InsufficientStockError(product.name, available, quantity)


def _build_items(lines: list[LineRequest], products: dict[int, Product]) -> list[InvoiceItem]:
    items = []
    for position, line in enumerate(lines):
        product = products[line.product_id]
        unit_price = line.unit_price_cents if line.unit_price_cents is not None else product.selling_price_cents
        items.append(
            InvoiceItem(
                position=position,
                product_id=product.id,
                product_name=product.name,
                description=line.description or product.description,
                quantity=line.quantity,
                unit_price_cents=unit_price,
                line_total_cents=line.quantity * unit_price,
            )
        )
    return items


def _apply_totals(invoice: Invoice, totals: dict) -> None:
    invoice.subtotal_cents = totals["subtotal_cents"]
    invoice.discount_cents = totals["discount_cents"]
    invoice.tax_total_cents = totals["tax_total_cents"]
    invoice.final_amount_cents = totals["final_amount_cents"]
    invoice.taxes = [InvoiceTax(name=name, rate=rate, amount_cents=amount) for name, rate, amount in totals["taxes"]]


def _record_status(invoice: Invoice, status: str, *, reason: str | None, actor_user_id: int | None) -> None:
    invoice.status = status
    invoice.status_history.append(
        InvoiceStatusHistory(status=status, reason=reason, actor_user_id=actor_user_id, occurred_at=utcnow())
    )


def _sell_items(invoice: Invoice, products: dict[int, Product], actor_user_id: int | None) -> None:
    for item in invoice.items:
        apply_stock_change(
            products[item.product_id],
            operation="subtract",
            quantity=item.quantity,
            movement_type="sale",
            reason=f"Sale on invoice {invoice.invoice_number}",
            actor_user_id=actor_user_id,
            reference=invoice.invoice_number,
        )


def _restore_items(invoice: Invoice, products: dict[int, Product], reason: str, actor_user_id: int | None) -> None:
    for item in invoice.items:
        apply_stock_change(
            products[item.product_id],
            operation="add",
            quantity=item.quantity,
            movement_type="return",
            reason=reason,
            actor_user_id=actor_user_id,
            reference=invoice.invoice_number,
        )


def create_invoice(
    *,
    client_id: int,
    items,
    discount_cents: int | None = None,
    discount_percentage=None,
    taxes=None,
    due_date=None,
    notes: str | None = None,
    payment_method: str | None = None,
    actor_user_id: int | None = None,
) -> Invoice:
    """
    Create a draft invoice and take its quantities out of stock.

    Fails without touching stock when the client or a product is missing or
    when any product cannot cover the requested quantity.
    """
    if isinstance(client_id, bool) or not isinstance(client_id, int):
        raise ValidationError("client_id is required")
    lines = parse_lines(items)
    tax_requests = parse_taxes(taxes)
    if discount_cents is not None:
        _as_int(discount_cents, "discount_cents")
    pct = _as_rate(discount_percentage, "discount_percentage") if discount_percentage is not None else None
    due_dt = _as_datetime(due_date, "due_date")
    if payment_method is not None and payment_method not in PAYMENT_METHODS:
        raise ValidationError(f"payment_method must be one of: {', '.join(PAYMENT_METHODS)}")

    def _op() -> Invoice:
        client = db.session.get(Client, client_id)
        if client is None:
            raise NotFoundError("Client not found")
        if client.status != "active":
            raise ValidationError("Client is inactive")

        products = _lock_products(line.product_id for line in lines)
        _check_availability(lines, products)

        invoice_items = _build_items(lines, products)
        totals = compute_totals(
            [item.line_total_cents for item in invoice_items],
            taxes=tax_requests,
            discount_cents=discount_cents,
            discount_percentage=pct,
        )

        now = utcnow()
        issue_date = now
        due = due_dt or issue_date + timedelta(days=current_app.config["INVOICE_DUE_DAYS"])
        if due < start_of_day(issue_date):
            raise ValidationError("due_date cannot be before the issue date")

        invoice = Invoice(
            invoice_number=next_document_number(document_type="invoice", prefix="FAC", scope=str(now.year)),
            client_id=client.id,
            client_name=client.display_name,
            client_tax_id=client.tax_id,
            client_address=client.address_line(),
            client_phone=client.phone,
            client_email=client.email,
            discount_percentage=pct if discount_cents is None else None,
            currency=current_app.config["DEFAULT_CURRENCY"],
            payment_status="pending",
            payment_method=payment_method or client.preferred_payment_method,
            issue_date=issue_date,
            due_date=due,
            notes=notes,
            created_by_user_id=actor_user_id,
        )
        invoice.items = invoice_items
        _apply_totals(invoice, totals)
        _record_status(invoice, "draft", reason="Invoice created", actor_user_id=actor_user_id)
        db.session.add(invoice)
        db.session.flush()

        _sell_items(invoice, products, actor_user_id)

        db.session.commit()
        return invoice

    invoice = run_in_transaction(_op)
    current_app.logger.info(
        "Invoice created: %s client=%s total=%d by user=%s",
        invoice.invoice_number, invoice.client_id, invoice.final_amount_cents, actor_user_id,
    )
    return invoice


def update_invoice(invoice_id: int, *, payload: dict, actor_user_id: int | None = None) -> Invoice:
    """
    Edit a draft invoice.

    Writable: items, discount_cents, discount_percentage, taxes, due_date,
    notes, payment_method. Replacing items returns the old quantities to stock
    and takes the new ones; totals are always recomputed.
    """
    allowed = {"items", "discount_cents", "discount_percentage", "taxes", "due_date", "notes", "payment_method"}
    unknown = sorted(set(payload) - allowed)
    if unknown:
        raise ValidationError(f"Field not allowed: {', '.join(unknown)}")

    new_lines = parse_lines(payload["items"]) if "items" in payload else None
    tax_requests = parse_taxes(payload["taxes"]) if payload.get("taxes") is not None else None
    if payload.get("discount_cents") is not None:
        _as_int(payload["discount_cents"], "discount_cents")
    if payload.get("payment_method") is not None and payload["payment_method"] not in PAYMENT_METHODS:
        raise ValidationError(f"payment_method must be one of: {', '.join(PAYMENT_METHODS)}")
    due_dt = _as_datetime(payload.get("due_date"), "due_date")

    def _op() -> Invoice:
        invoice = _lock_invoice(invoice_id)
        if invoice.status != "draft":
            raise InvalidTransitionError("Only draft invoices can be edited")

        if new_lines is not None:
            old_qty: dict[int, int] = defaultdict(int)
            for item in invoice.items:
                old_qty[item.product_id] += item.quantity

            products = _lock_products(list(old_qty) + [line.product_id for line in new_lines])
            _check_availability(new_lines, products, credit=old_qty)

            _restore_items(invoice, products, f"Invoice {invoice.invoice_number} edited", actor_user_id)
            invoice.items = _build_items(new_lines, products)
            db.session.flush()
            _sell_items(invoice, products, actor_user_id)

        if "discount_percentage" in payload:
            pct = payload["discount_percentage"]
            invoice.discount_percentage = _as_rate(pct, "discount_percentage") if pct is not None else None
        if payload.get("discount_cents") is not None:
            # A typed-in amount replaces any percentage for later recomputes
            invoice.discount_percentage = None

        if "discount_cents" in payload:
            discount = payload["discount_cents"]
        elif "discount_percentage" in payload or invoice.discount_percentage is not None:
            discount = None
        else:
            discount = invoice.discount_cents

        if tax_requests is not None:
            taxes = tax_requests
        else:
            taxes = [TaxRequest(t.name, Decimal(t.rate)) for t in invoice.taxes]
        totals = compute_totals(
            [item.line_total_cents for item in invoice.items],
            taxes=taxes,
            discount_cents=discount,
            discount_percentage=invoice.discount_percentage,
        )
        _apply_totals(invoice, totals)

        if due_dt is not None:
            if due_dt < start_of_day(invoice.issue_date):
                raise ValidationError("due_date cannot be before the issue date")
            invoice.due_date = due_dt
        if "notes" in payload:
            invoice.notes = payload["notes"]
        if payload.get("payment_method"):
            invoice.payment_method = payload["payment_method"]

        db.session.commit()
        return invoice

    invoice = run_in_transaction(_op)
    current_app.logger.info("Invoice updated: %s by user=%s", invoice.invoice_number, actor_user_id)
    return invoice


def transition_status(
    invoice_id: int,
    *,
    status: str,
    reason: str | None = None,
    actor_user_id: int | None = None,
) -> Invoice:
    if status not in INVOICE_STATUSES:
        raise ValidationError(f"status must be one of: {', '.join(INVOICE_STATUSES)}")

    def _op() -> Invoice:
        invoice = _lock_invoice(invoice_id)
        current = invoice.status

        if current == status:
            raise InvalidTransitionError(f"Invoice is already {current}")
        if current == "cancelled":
            raise InvalidTransitionError("A cancelled invoice cannot change status")
        if current == "paid":
            if status == "cancelled":
                raise InvalidTransitionError("A paid invoice cannot be cancelled")
            raise InvalidTransitionError("A paid invoice cannot change status")
        if status not in ALLOWED_TRANSITIONS[current]:
            raise InvalidTransitionError(f"Cannot change invoice status from {current} to {status}")

        now = utcnow()
        if status == "cancelled":
            products = _lock_products(item.product_id for item in invoice.items)
            _restore_items(invoice, products, f"Invoice {invoice.invoice_number} cancelled", actor_user_id)
            invoice.payment_status = "cancelled"
        elif status == "paid":
            invoice.paid_date = now
            invoice.payment_status = "paid"
            if invoice.payment_date is None:
                invoice.payment_date = now
        elif status == "overdue" and invoice.payment_status in ("pending", "partial"):
            invoice.payment_status = "overdue"

        _record_status(invoice, status, reason=reason, actor_user_id=actor_user_id)
        db.session.commit()
        return invoice

    invoice = run_in_transaction(_op)
    current_app.logger.info(
        "Invoice %s status -> %s by user=%s", invoice.invoice_number, invoice.status, actor_user_id
    )
    return invoice


def update_payment(
    invoice_id: int,
    *,
    payment_status: str,
    method: str | None = None,
    payment_date=None,
    transaction_id: str | None = None,
    amount_cents=None,
    actor_user_id: int | None = None,
) -> Invoice:
    """
    Record payment information.

    payment_status="paid" also moves the invoice to status paid. A supplied
    amount is appended to the payment history and added to paid_amount_cents;
    cumulative amounts are not checked against the invoice total.
    """
    if payment_status not in SETTABLE_PAYMENT_STATUSES:
        raise ValidationError(f"payment_status must be one of: {', '.join(SETTABLE_PAYMENT_STATUSES)}")
    if method is not None and method not in PAYMENT_METHODS:
        raise ValidationError(f"method must be one of: {', '.join(PAYMENT_METHODS)}")
    if amount_cents is not None:
        _as_int(amount_cents, "amount_cents")
        if amount_cents <= 0:
            raise ValidationError("amount_cents must be greater than 0")
    paid_at = _as_datetime(payment_date, "payment_date")

    def _op() -> Invoice:
        invoice = _lock_invoice(invoice_id)
        if invoice.status == "cancelled":
            raise InvalidTransitionError("Cannot update payment of a cancelled invoice")
        if invoice.status == "paid" and payment_status != "paid":
            raise InvalidTransitionError("A paid invoice cannot change payment status")

        now = utcnow()
        invoice.payment_status = payment_status
        if method:
            invoice.payment_method = method
        if transaction_id is not None:
            invoice.transaction_id = transaction_id
        if paid_at is not None or amount_cents is not None or payment_status == "paid":
            invoice.payment_date = paid_at or now

        if amount_cents is not None:
            invoice.payments.append(
                InvoicePayment(
                    amount_cents=amount_cents,
                    method=method or invoice.payment_method,
                    payment_date=paid_at or now,
                    transaction_id=transaction_id,
                    recorded_by_user_id=actor_user_id,
                )
            )
            invoice.paid_amount_cents = (invoice.paid_amount_cents or 0) + amount_cents

        if payment_status == "paid" and invoice.status != "paid":
            invoice.paid_date = paid_at or now
            _record_status(invoice, "paid", reason="Payment completed", actor_user_id=actor_user_id)

        db.session.commit()
        return invoice

    invoice = run_in_transaction(_op)
    current_app.logger.info(
        "Invoice %s payment -> %s (paid %d of %d) by user=%s",
        invoice.invoice_number, invoice.payment_status, invoice.paid_amount_cents,
        invoice.final_amount_cents, actor_user_id,
    )
    return invoice


def delete_invoice(invoice_id: int, *, actor_user_id: int | None = None) -> str:
    """Delete a draft invoice and return its quantities to stock. Returns the invoice number."""
    def _op() -> str:
        invoice = _lock_invoice(invoice_id)
        if invoice.status != "draft":
            raise InvalidTransitionError("Only draft invoices can be deleted")

        products = _lock_products(item.product_id for item in invoice.items)
        _restore_items(invoice, products, f"Invoice {invoice.invoice_number} deleted", actor_user_id)

        number = invoice.invoice_number
        db.session.delete(invoice)
        db.session.commit()
        return number

    number = run_in_transaction(_op)
    current_app.logger.info("Invoice deleted: %s by user=%s", number, actor_user_id)
    return number


def mark_overdue_invoices(*, now: datetime | None = None, actor_user_id: int | None = None) -> list[Invoice]:
    """Move unpaid draft/sent invoices past their due date to overdue."""
    now = as_utc_naive(now) or utcnow()

    def _op() -> list[Invoice]:
        query = Invoice.query.filter(
            Invoice.status.in_(("draft", "sent")),
            Invoice.payment_status != "paid",
            Invoice.due_date < now,
        ).order_by(Invoice.id.asc())
        invoices = lock_for_update(query).all()
        for invoice in invoices:
            if invoice.payment_status in ("pending", "partial"):
                invoice.payment_status = "overdue"
            _record_status(invoice, "overdue", reason="Due date passed", actor_user_id=actor_user_id)
        db.session.commit()
        return invoices

    invoices = run_in_transaction(_op)
    if invoices:
        current_app.logger.info("Marked %d invoice(s) overdue", len(invoices))
    return invoices


def list_invoices(
    *,
    page: int = 1,
    per_page: int = 10,
    status: str | None = None,
    payment_status: str | None = None,
    client_id: int | None = None,
    search: str | None = None,
    start=None,
    end=None,
    sort: str | None = None,
):
    q = Invoice.query
    if status:
        if status not in INVOICE_STATUSES:
            raise ValidationError(f"status must be one of: {', '.join(INVOICE_STATUSES)}")
        q = q.filter(Invoice.status == status)
    if payment_status:
        q = q.filter(Invoice.payment_status == payment_status)
    if client_id:
        q = q.filter(Invoice.client_id == client_id)
    if search:
        like = f"%{search.strip()}%"
        q = q.filter(or_(
            Invoice.invoice_number.ilike(like),
            Invoice.client_name.ilike(like),
            Invoice.client_tax_id.ilike(like),
        ))
    start_dt = _as_datetime(start, "start")
    end_dt = _as_datetime(end, "end")
    if start_dt:
        q = q.filter(Invoice.issue_date >= start_dt)
    if end_dt:
        q = q.filter(Invoice.issue_date <= end_dt)

    q = q.order_by(*sort_clause(
        sort, INVOICE_SORT_FIELDS,
        default=(Invoice.issue_date.desc(), Invoice.id.desc()),
        tiebreak=Invoice.id,
    ))
    return paginate(q, page=page, per_page=per_page)


def paid_sales_total_cents(*, client_id: int | None = None, start=None, end=None) -> int:
    q = db.session.query(func.coalesce(func.sum(Invoice.final_amount_cents), 0)).filter(Invoice.status == "paid")
    if client_id is not None:
        q = q.filter(Invoice.client_id == client_id)
    if start is not None:
        q = q.filter(Invoice.issue_date >= start)
    if end is not None:
        q = q.filter(Invoice.issue_date <= end)
    return int(q.scalar() or 0)
