from __future__ import annotations

from ..extensions import db
from ..time_utils import as_utc_naive, to_utc_z, utcnow

INVOICE_STATUSES = ("draft", "sent", "paid", "cancelled", "overdue")
PAYMENT_STATUSES = ("pending", "partial", "paid", "overdue", "cancelled")


class Invoice(db.Model):
    """
    Sales invoice.

    TOTALS INVARIANT:
        final_amount_cents = subtotal_cents - discount_cents + tax_total_cents
    recomputed by invoice_service whenever items change.

    STATUS LIFECYCLE: draft -> sent -> paid, cancelled from any non-terminal
    state, overdue observed when the due date passes. paid and cancelled are
    terminal. Every transition appends an InvoiceStatusHistory row.

    The client identity is snapshotted at creation so later client edits do
    not rewrite issued invoices.
    """
    __tablename__ = "invoices"
    __table_args__ = (
        db.Index("ix_invoices_client", "client_id"),
        db.Index("ix_invoices_status", "status"),
        db.Index("ix_invoices_payment_status", "payment_status"),
        db.Index("ix_invoices_issue_date", "issue_date"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    invoice_number = db.Column(db.String(32), nullable=False, unique=True)

    client_id = db.Column(db.Integer, db.ForeignKey("clients.id"), nullable=False)

    # Client snapshot
    client_name = db.Column(db.String(200), nullable=False)
    client_tax_id = db.Column(db.String(32), nullable=False)
    client_address = db.Column(db.String(500), nullable=False)
    client_phone = db.Column(db.String(32), nullable=True)
    client_email = db.Column(db.String(255), nullable=True)

    # Totals (cents)
    subtotal_cents = db.Column(db.Integer, nullable=False, default=0)
    discount_cents = db.Column(db.Integer, nullable=False, default=0)
    discount_percentage = db.Column(db.Numeric(5, 2), nullable=True)
    tax_total_cents = db.Column(db.Integer, nullable=False, default=0)
    final_amount_cents = db.Column(db.Integer, nullable=False, default=0)
    currency = db.Column(db.String(3), nullable=False, default="COP")

    status = db.Column(db.String(16), nullable=False, default="draft")

    # Payment
    payment_status = db.Column(db.String(16), nullable=False, default="pending")
    payment_method = db.Column(db.String(16), nullable=False, default="cash")
    paid_amount_cents = db.Column(db.Integer, nullable=False, default=0)
    payment_date = db.Column(db.DateTime(timezone=True), nullable=True)
    transaction_id = db.Column(db.String(128), nullable=True)

    # Dates
    issue_date = db.Column(db.DateTime(timezone=True), nullable=False)
    due_date = db.Column(db.DateTime(timezone=True), nullable=False)
    paid_date = db.Column(db.DateTime(timezone=True), nullable=True)

    notes = db.Column(db.String(1000), nullable=True)

    created_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)

    version_id = db.Column(db.Integer, nullable=False, default=1)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    client = db.relationship("Client", backref=db.backref("invoices", lazy="dynamic"))
    items = db.relationship(
        "InvoiceItem", backref="invoice", lazy=True,
        cascade="all, delete-orphan", order_by="InvoiceItem.position",
    )
    taxes = db.relationship(
        "InvoiceTax", backref="invoice", lazy=True,
        cascade="all, delete-orphan", order_by="InvoiceTax.id",
    )
    payments = db.relationship(
        "InvoicePayment", backref="invoice", lazy=True,
        cascade="all, delete-orphan", order_by="InvoicePayment.id",
    )
    status_history = db.relationship(
        "InvoiceStatusHistory", backref="invoice", lazy=True,
        cascade="all, delete-orphan", order_by="InvoiceStatusHistory.id",
    )
    __mapper_args__ = {"version_id_col": version_id}

    @property
    def is_overdue(self) -> bool:
        if self.status in ("paid", "cancelled") or self.payment_status == "paid":
            return False
        return self.due_date is not None and as_utc_naive(self.due_date) < utcnow()

    @property
    def balance_due_cents(self) -> int:
        return max(self.final_amount_cents - (self.paid_amount_cents or 0), 0)

    def __repr__(self) -> str:
        return f"<Invoice id={self.id} number={self.invoice_number!r} status={self.status!r}>"

    def to_dict(self, include_history: bool = True) -> dict:
        data = {
            "id": self.id,
            "invoice_number": self.invoice_number,
            "client_id": self.client_id,
            "client_info": {
                "name": self.client_name,
                "tax_id": self.client_tax_id,
                "address": self.client_address,
                "phone": self.client_phone,
                "email": self.client_email,
            },
            "items": [item.to_dict() for item in self.items],
            "totals": {
                "subtotal_cents": self.subtotal_cents,
                "discount_cents": self.discount_cents,
                "discount_percentage": float(self.discount_percentage) if self.discount_percentage is not None else None,
                "taxes": [tax.to_dict() for tax in self.taxes],
                "tax_total_cents": self.tax_total_cents,
                "final_amount_cents": self.final_amount_cents,
                "currency": self.currency,
            },
            "payment": {
                "status": self.payment_status,
                "method": self.payment_method,
                "paid_amount_cents": self.paid_amount_cents,
                "balance_due_cents": self.balance_due_cents,
                "payment_date": to_utc_z(self.payment_date),
                "transaction_id": self.transaction_id,
                "history": [p.to_dict() for p in self.payments],
            },
            "status": self.status,
            "is_overdue": self.is_overdue,
            "dates": {
                "issue_date": to_utc_z(self.issue_date),
                "due_date": to_utc_z(self.due_date),
                "paid_date": to_utc_z(self.paid_date),
            },
            "notes": self.notes,
            "created_by_user_id": self.created_by_user_id,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
        if include_history:
            data["status_history"] = [h.to_dict() for h in self.status_history]
        return data

    def to_summary_dict(self) -> dict:
        return {
            "id": self.id,
            "invoice_number": self.invoice_number,
            "client_id": self.client_id,
            "client_name": self.client_name,
            "final_amount_cents": self.final_amount_cents,
            "currency": self.currency,
            "status": self.status,
            "payment_status": self.payment_status,
            "is_overdue": self.is_overdue,
            "issue_date": to_utc_z(self.issue_date),
            "due_date": to_utc_z(self.due_date),
        }


class InvoiceItem(db.Model):
    __tablename__ = "invoice_items"
    __table_args__ = (
        db.CheckConstraint("quantity > 0", name="ck_invoice_items_quantity_positive"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    invoice_id = db.Column(db.Integer, db.ForeignKey("invoices.id"), nullable=False, index=True)
    position = db.Column(db.Integer, nullable=False, default=0)

    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)
    product_name = db.Column(db.String(200), nullable=False)
    description = db.Column(db.String(500), nullable=True)

    quantity = db.Column(db.Integer, nullable=False)
    unit_price_cents = db.Column(db.Integer, nullable=False)
    line_total_cents = db.Column(db.Integer, nullable=False)

    product = db.relationship("Product")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "product_id": self.product_id,
            "product_name": self.product_name,
            "description": self.description,
            "quantity": self.quantity,
            "unit_price_cents": self.unit_price_cents,
            "line_total_cents": self.line_total_cents,
        }


class InvoiceTax(db.Model):
    """A tax applied to the discounted invoice subtotal."""
    __tablename__ = "invoice_taxes"
    __table_args__ = (
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    invoice_id = db.Column(db.Integer, db.ForeignKey("invoices.id"), nullable=False, index=True)
    name = db.Column(db.String(64), nullable=False)
    rate = db.Column(db.Numeric(5, 2), nullable=False)
    amount_cents = db.Column(db.Integer, nullable=False)

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "rate": float(self.rate),
            "amount_cents": self.amount_cents,
        }


class InvoicePayment(db.Model):
    """Append-only payment history entry (supports partial payments)."""
    __tablename__ = "invoice_payments"
    __table_args__ = (
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    invoice_id = db.Column(db.Integer, db.ForeignKey("invoices.id"), nullable=False, index=True)
    amount_cents = db.Column(db.Integer, nullable=False)
    method = db.Column(db.String(16), nullable=False)
    payment_date = db.Column(db.DateTime(timezone=True), nullable=False)
    transaction_id = db.Column(db.String(128), nullable=True)
    recorded_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "amount_cents": self.amount_cents,
            "method": self.method,
            "payment_date": to_utc_z(self.payment_date),
            "transaction_id": self.transaction_id,
            "recorded_by_user_id": self.recorded_by_user_id,
        }


class InvoiceStatusHistory(db.Model):
    """IMMUTABLE: one row per status transition, ordered by (occurred_at, id)."""
    __tablename__ = "invoice_status_history"
    __table_args__ = (
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    invoice_id = db.Column(db.Integer, db.ForeignKey("invoices.id"), nullable=False, index=True)
    status = db.Column(db.String(16), nullable=False)
    reason = db.Column(db.String(255), nullable=True)
    actor_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    occurred_at = db.Column(db.DateTime(timezone=True), nullable=False)

    def to_dict(self) -> dict:
        return {
            "status": self.status,
            "reason": self.reason,
            "actor_user_id": self.actor_user_id,
            "timestamp": to_utc_z(self.occurred_at),
        }
