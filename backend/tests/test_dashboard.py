"""
Dashboard summary tests.
"""

from bazar.services import dashboard_service, invoice_service


def test_empty_summary(app):
    summary = dashboard_service.get_summary()
    assert summary["counts"] == {"suppliers": 0, "clients": 0, "products": 0, "invoices": 0}
    assert summary["invoices_by_status"] == {"draft": 0, "sent": 0, "paid": 0, "cancelled": 0, "overdue": 0}
    assert summary["sales"]["paid_total_cents"] == 0
    assert summary["low_stock"] == {"count": 0, "products": []}


def test_summary_counts(app, sample_client, sample_supplier, make_product):
    low = make_product(name="Bajo", current_stock=3, reorder_point=5)
    stocked = make_product(name="Alto", current_stock=100, reorder_point=5)
    items = [{"product_id": stocked.id, "quantity": 1}]

    paid = invoice_service.create_invoice(client_id=sample_client.id, items=items)
    invoice_service.create_invoice(client_id=sample_client.id, items=items)
    invoice_service.transition_status(paid.id, status="paid")

    summary = dashboard_service.get_summary()
    assert summary["counts"]["clients"] == 1
    assert summary["counts"]["suppliers"] == 1
    assert summary["counts"]["products"] == 2
    assert summary["counts"]["invoices"] == 2
    assert summary["invoices_by_status"]["paid"] == 1
    assert summary["invoices_by_status"]["draft"] == 1
    assert summary["sales"]["paid_total_cents"] == paid.final_amount_cents
    assert summary["low_stock"]["count"] == 1
    assert summary["low_stock"]["products"][0]["id"] == low.id


def test_summary_route(client, viewer_user, auth_headers):
    resp = client.get("/api/dashboard/summary?start=2026-01-01", headers=auth_headers(viewer_user))
    assert resp.status_code == 200
    assert resp.get_json()["data"]["sales"]["start"] == "2026-01-01T00:00:00Z"

    resp = client.get("/api/dashboard/summary?start=01/01/2026", headers=auth_headers(viewer_user))
    assert resp.status_code == 400
