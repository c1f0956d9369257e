"""
Invoice lifecycle tests.

Covers totals, stock decrement on creation, restoration on cancel/delete/edit,
numbering and validation failures that must leave stock untouched.
"""

from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest

from bazar.errors import (
    InsufficientStockError,
    InvalidTransitionError,
    NotFoundError,
    ValidationError,
)
from bazar.extensions import db
from bazar.models import Invoice, Product, StockMovement
from bazar.services import client_service, invoice_service, product_service
from bazar.services.invoice_service import TaxRequest, compute_totals, percent_of
from bazar.time_utils import as_utc_naive, utcnow


def _stock(product_id):
    return db.session.get(Product, product_id).current_stock


# =============================================================================
# TOTALS
# =============================================================================


class TestTotals:

    def test_percent_rounds_half_up(self):
        assert percent_of(250, Decimal("19")) == 48       # 47.5
        assert percent_of(1000, Decimal("19")) == 190
        assert percent_of(333, Decimal("10")) == 33       # 33.3

    def test_formula(self):
        totals = compute_totals(
            [20000, 5000],
            taxes=[TaxRequest("IVA", Decimal("19")), TaxRequest("ICA", Decimal("1"))],
            discount_percentage=Decimal("10"),
        )
        assert totals["subtotal_cents"] == 25000
        assert totals["discount_cents"] == 2500
        assert [t[2] for t in totals["taxes"]] == [4275, 225]
        assert totals["tax_total_cents"] == 4500
        assert totals["final_amount_cents"] == 25000 - 2500 + 4500

    def test_explicit_discount_wins(self):
        totals = compute_totals(
            [10000], taxes=[], discount_cents=1000, discount_percentage=Decimal("50"),
        )
        assert totals["discount_cents"] == 1000
        assert totals["final_amount_cents"] == 9000

    def test_discount_cannot_exceed_subtotal(self):
        with pytest.raises(ValidationError):
            compute_totals([100], taxes=[], discount_cents=101)


# =============================================================================
# CREATION
# =============================================================================


class TestCreateInvoice:

    def test_insufficient_then_sell_then_cancel(self, sample_client, sample_product, admin_user):
        """Stock 10: a 12-unit invoice fails, a 4-unit one leaves 6, cancelling returns to 10."""
        with pytest.raises(InsufficientStockError) as exc:
            invoice_service.create_invoice(
                client_id=sample_client.id,
                items=[{"product_id": sample_product.id, "quantity": 12}],
                actor_user_id=admin_user.id,
            )
        assert exc.value.available == 10
        assert exc.value.requested == 12
        assert _stock(sample_product.id) == 10
        assert db.session.query(Invoice).count() == 0

        invoice = invoice_service.create_invoice(
            client_id=sample_client.id,
            items=[{"product_id": sample_product.id, "quantity": 4}],
            actor_user_id=admin_user.id,
        )
        assert _stock(sample_product.id) == 6
        assert invoice.status == "draft"
        assert invoice.payment_status == "pending"
        assert invoice.subtotal_cents == 40000
        assert invoice.tax_total_cents == 7600
        assert invoice.final_amount_cents == 47600
        assert [t.name for t in invoice.taxes] == ["IVA"]

        invoice_service.transition_status(invoice.id, status="cancelled", actor_user_id=admin_user.id)
        assert _stock(sample_product.id) == 10

    def test_number_format_and_sequence(self, sample_client, sample_product):
        year = utcnow().year
        first = invoice_service.create_invoice(
            client_id=sample_client.id, items=[{"product_id": sample_product.id, "quantity": 1}],
        )
        second = invoice_service.create_invoice(
            client_id=sample_client.id, items=[{"product_id": sample_product.id, "quantity": 1}],
        )
        assert first.invoice_number == f"FAC-{year}-0001"
        assert second.invoice_number == f"FAC-{year}-0002"

    def test_failed_creation_does_not_consume_number(self, sample_client, sample_product):
        with pytest.raises(InsufficientStockError):
            invoice_service.create_invoice(
                client_id=sample_client.id, items=[{"product_id": sample_product.id, "quantity": 99}],
            )
        invoice = invoice_service.create_invoice(
            client_id=sample_client.id, items=[{"product_id": sample_product.id, "quantity": 1}],
        )
        assert invoice.invoice_number.endswith("-0001")

    def test_one_bad_line_aborts_everything(self, sample_client, make_product):
        plenty = make_product(name="Plenty", current_stock=100)
        scarce = make_product(name="Scarce", current_stock=1)
        with pytest.raises(InsufficientStockError):
            invoice_service.create_invoice(
                client_id=sample_client.id,
                items=[
                    {"product_id": plenty.id, "quantity": 5},
                    {"product_id": scarce.id, "quantity": 2},
                ],
            )
        assert _stock(plenty.id) == 100
        assert _stock(scarce.id) == 1

    def test_same_product_on_two_lines_is_summed(self, sample_client, sample_product):
        with pytest.raises(InsufficientStockError):
            invoice_service.create_invoice(
                client_id=sample_client.id,
                items=[
                    {"product_id": sample_product.id, "quantity": 6},
                    {"product_id": sample_product.id, "quantity": 6},
                ],
            )
        assert _stock(sample_product.id) == 10

    def test_sale_movements_reference_invoice(self, sample_client, sample_product, admin_user):
        invoice = invoice_service.create_invoice(
            client_id=sample_client.id,
            items=[{"product_id": sample_product.id, "quantity": 3}],
            actor_user_id=admin_user.id,
        )
        sale = db.session.query(StockMovement).filter_by(movement_type="sale").one()
        assert sale.reference == invoice.invoice_number
        assert sale.quantity == 3
        assert sale.new_stock == 7
        assert sale.actor_user_id == admin_user.id

    def test_client_snapshot_and_defaults(self, make_client, sample_product):
        company = make_client(
            client_type="registered", company_name="Tienda La Esquina", preferred_payment_method="transfer",
        )
        invoice = invoice_service.create_invoice(
            client_id=company.id, items=[{"product_id": sample_product.id, "quantity": 1}],
        )
        assert invoice.client_name == "Tienda La Esquina"
        assert invoice.client_tax_id == company.tax_id
        assert "Bogotá" in invoice.client_address
        assert invoice.payment_method == "transfer"
        assert invoice.currency == "COP"
        assert (invoice.due_date - invoice.issue_date).days == 30

        client_service.update_client(company.id, {"company_name": "Nuevo Nombre"})
        assert db.session.get(Invoice, invoice.id).client_name == "Tienda La Esquina"

    def test_custom_price_taxes_and_discount(self, sample_client, sample_product):
        invoice = invoice_service.create_invoice(
            client_id=sample_client.id,
            items=[{"product_id": sample_product.id, "quantity": 2, "unit_price_cents": 5000}],
            taxes=[],
            discount_cents=1000,
        )
        assert invoice.subtotal_cents == 10000
        assert invoice.discount_cents == 1000
        assert invoice.tax_total_cents == 0
        assert invoice.final_amount_cents == 9000

    def test_history_starts_with_draft(self, sample_client, sample_product, admin_user):
        invoice = invoice_service.create_invoice(
            client_id=sample_client.id,
            items=[{"product_id": sample_product.id, "quantity": 1}],
            actor_user_id=admin_user.id,
        )
        history = invoice.to_dict()["status_history"]
        assert len(history) == 1
        assert history[0]["status"] == "draft"
        assert history[0]["actor_user_id"] == admin_user.id

    @pytest.mark.parametrize(
        "items",
        [
            None,
            [],
            [{"product_id": 1}],
            [{"product_id": 1, "quantity": 0}],
            [{"product_id": 1, "quantity": -2}],
            [{"product_id": "1", "quantity": 1}],
            [{"product_id": 1, "quantity": 1, "unit_price_cents": -5}],
        ],
    )
    def test_invalid_items(self, sample_client, sample_product, items):
        with pytest.raises(ValidationError):
            invoice_service.create_invoice(client_id=sample_client.id, items=items)
        assert _stock(sample_product.id) == 10

    def test_missing_client(self, sample_product):
        with pytest.raises(NotFoundError):
            invoice_service.create_invoice(
                client_id=999, items=[{"product_id": sample_product.id, "quantity": 1}],
            )

    def test_inactive_client(self, sample_client, sample_product):
        client_service.delete_client(sample_client.id)
        with pytest.raises(ValidationError):
            invoice_service.create_invoice(
                client_id=sample_client.id, items=[{"product_id": sample_product.id, "quantity": 1}],
            )

    def test_missing_product(self, sample_client):
        with pytest.raises(ValidationError):
            invoice_service.create_invoice(client_id=sample_client.id, items=[{"product_id": 999, "quantity": 1}])

    def test_discontinued_product(self, sample_client, sample_product):
        product_service.delete_product(sample_product.id)
        with pytest.raises(ValidationError):
            invoice_service.create_invoice(
                client_id=sample_client.id, items=[{"product_id": sample_product.id, "quantity": 1}],
            )
        assert _stock(sample_product.id) == 10

    def test_due_date_before_issue_rejected(self, sample_client, sample_product):
        past = (utcnow() - timedelta(days=3)).isoformat()
        with pytest.raises(ValidationError):
            invoice_service.create_invoice(
                client_id=sample_client.id,
                items=[{"product_id": sample_product.id, "quantity": 1}],
                due_date=past,
            )
        assert _stock(sample_product.id) == 10


# =============================================================================
# EDIT / DELETE
# =============================================================================


class TestEditAndDelete:

    def test_delete_draft_restores_stock(self, sample_client, sample_product):
        invoice = invoice_service.create_invoice(
            client_id=sample_client.id, items=[{"product_id": sample_product.id, "quantity": 4}],
        )
        number = invoice_service.delete_invoice(invoice.id)
        assert number == invoice.invoice_number
        assert _stock(sample_product.id) == 10
        assert db.session.get(Invoice, invoice.id) is None

    def test_only_drafts_can_be_deleted(self, sample_client, sample_product):
        invoice = invoice_service.create_invoice(
            client_id=sample_client.id, items=[{"product_id": sample_product.id, "quantity": 4}],
        )
        invoice_service.transition_status(invoice.id, status="sent")
        with pytest.raises(InvalidTransitionError):
            invoice_service.delete_invoice(invoice.id)
        assert _stock(sample_product.id) == 6

    def test_edit_items_moves_stock(self, sample_client, make_product):
        a = make_product(name="A", current_stock=10)
        b = make_product(name="B", current_stock=10)
        invoice = invoice_service.create_invoice(
            client_id=sample_client.id, items=[{"product_id": a.id, "quantity": 8}],
        )
        assert _stock(a.id) == 2

        # 10 units of A are possible because the invoice already holds 8
        invoice = invoice_service.update_invoice(
            invoice.id,
            payload={"items": [{"product_id": a.id, "quantity": 10}, {"product_id": b.id, "quantity": 3}]},
        )
        assert _stock(a.id) == 0
        assert _stock(b.id) == 7
        assert invoice.subtotal_cents == 130000
        assert len(invoice.items) == 2

    def test_edit_beyond_stock_keeps_everything(self, sample_client, sample_product):
        invoice = invoice_service.create_invoice(
            client_id=sample_client.id, items=[{"product_id": sample_product.id, "quantity": 4}],
        )
        with pytest.raises(InsufficientStockError):
            invoice_service.update_invoice(
                invoice.id, payload={"items": [{"product_id": sample_product.id, "quantity": 11}]},
            )
        assert _stock(sample_product.id) == 6
        assert db.session.get(Invoice, invoice.id).items[0].quantity == 4

    def test_edit_recomputes_totals(self, sample_client, sample_product):
        invoice = invoice_service.create_invoice(
            client_id=sample_client.id, items=[{"product_id": sample_product.id, "quantity": 1}],
        )
        invoice = invoice_service.update_invoice(invoice.id, payload={"discount_percentage": 50, "taxes": []})
        assert invoice.discount_cents == 5000
        assert invoice.tax_total_cents == 0
        assert invoice.final_amount_cents == 5000

    def test_typed_discount_survives_later_edits(self, sample_client, sample_product):
        invoice = invoice_service.create_invoice(
            client_id=sample_client.id,
            items=[{"product_id": sample_product.id, "quantity": 1}],
            discount_percentage=10,
            taxes=[],
        )
        assert invoice.discount_cents == 1000

        invoice = invoice_service.update_invoice(invoice.id, payload={"discount_cents": 500})
        assert invoice.discount_cents == 500
        assert invoice.discount_percentage is None

        invoice = invoice_service.update_invoice(invoice.id, payload={"notes": "just a note"})
        assert invoice.discount_cents == 500
        assert invoice.final_amount_cents == 9500

    def test_typed_discount_from_creation_survives_edit(self, sample_client, sample_product):
        invoice = invoice_service.create_invoice(
            client_id=sample_client.id,
            items=[{"product_id": sample_product.id, "quantity": 1}],
            discount_cents=700,
            discount_percentage=50,
            taxes=[],
        )
        assert invoice.discount_cents == 700
        assert invoice.discount_percentage is None

        invoice = invoice_service.update_invoice(
            invoice.id, payload={"due_date": (utcnow() + timedelta(days=10)).isoformat()},
        )
        assert invoice.discount_cents == 700
        assert invoice.final_amount_cents == 9300

    def test_percentage_discount_follows_new_items(self, sample_client, sample_product):
        invoice = invoice_service.create_invoice(
            client_id=sample_client.id,
            items=[{"product_id": sample_product.id, "quantity": 1}],
            discount_percentage=10,
            taxes=[],
        )
        invoice = invoice_service.update_invoice(
            invoice.id, payload={"items": [{"product_id": sample_product.id, "quantity": 2}]},
        )
        assert invoice.discount_cents == 2000
        assert invoice.final_amount_cents == 18000

    def test_edit_accepts_aware_due_date(self, sample_client, sample_product):
        invoice = invoice_service.create_invoice(
            client_id=sample_client.id, items=[{"product_id": sample_product.id, "quantity": 1}],
        )
        due = datetime.now(timezone(timedelta(hours=-5))) + timedelta(days=3)
        invoice = invoice_service.update_invoice(invoice.id, payload={"due_date": due})
        assert as_utc_naive(invoice.due_date) == as_utc_naive(due)

        with pytest.raises(ValidationError):
            invoice_service.update_invoice(
                invoice.id, payload={"due_date": datetime.now(timezone.utc) - timedelta(days=2)},
            )

    def test_edit_rejects_unknown_fields(self, sample_client, sample_product):
        invoice = invoice_service.create_invoice(
            client_id=sample_client.id, items=[{"product_id": sample_product.id, "quantity": 1}],
        )
        with pytest.raises(ValidationError):
            invoice_service.update_invoice(invoice.id, payload={"final_amount_cents": 1})

    def test_only_drafts_can_be_edited(self, sample_client, sample_product):
        invoice = invoice_service.create_invoice(
            client_id=sample_client.id, items=[{"product_id": sample_product.id, "quantity": 1}],
        )
        invoice_service.transition_status(invoice.id, status="sent")
        with pytest.raises(InvalidTransitionError):
            invoice_service.update_invoice(invoice.id, payload={"notes": "late edit"})
