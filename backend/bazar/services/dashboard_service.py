# Overview: Aggregates for the dashboard summary endpoint.

from __future__ import annotations

from datetime import datetime

from sqlalchemy import func

from ..extensions import db
from ..models import Client, Invoice, Product, Supplier
from ..models.invoices import INVOICE_STATUSES
from ..time_utils import to_utc_z, utcnow
from .inventory_service import get_low_stock_products
from .invoice_service import paid_sales_total_cents


def _invoice_counts_by_status() -> dict[str, int]:
    rows = db.session.query(Invoice.status, func.count(Invoice.id)).group_by(Invoice.status).all()
    counts = {status: 0 for status in INVOICE_STATUSES}
    counts.update({status: count for status, count in rows})
    return counts


def _overdue_count(now: datetime) -> int:
    """Invoices flagged overdue plus unpaid ones whose due date passed but were not swept yet."""
    return (
        db.session.query(func.count(Invoice.id))
        .filter(
            db.or_(
                Invoice.status == "overdue",
                db.and_(
                    Invoice.status.in_(("draft", "sent")),
                    Invoice.payment_status != "paid",
                    Invoice.due_date < now,
                ),
            )
        )
        .scalar()
    )


def get_summary(*, start: datetime | None = None, end: datetime | None = None, low_stock_limit: int = 10) -> dict:
    now = utcnow()
    low_stock = get_low_stock_products()

    return {
        "generated_at": to_utc_z(now),
        "counts": {
            "suppliers": Supplier.query.filter_by(status="active").count(),
            "clients": Client.query.filter_by(status="active").count(),
            "products": Product.query.filter_by(status="active").count(),
            "invoices": Invoice.query.count(),
        },
        "invoices_by_status": _invoice_counts_by_status(),
        "overdue_invoices": _overdue_count(now),
        "sales": {
            "paid_total_cents": paid_sales_total_cents(start=start, end=end),
            "start": to_utc_z(start),
            "end": to_utc_z(end),
        },
        "low_stock": {
            "count": len(low_stock),
            "products": [
                {
                    "id": p.id,
                    "name": p.name,
                    "sku": p.sku,
                    "current_stock": p.current_stock,
                    "reorder_point": p.reorder_point,
                }
                for p in low_stock[:low_stock_limit]
            ],
        },
    }
