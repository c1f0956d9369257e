"""
Invoice API tests: envelope shapes, error mapping and list filters.
"""

from bazar.extensions import db
from bazar.models import Product


def _create(client, headers, client_id, product_id, quantity=2, **extra):
    body = {"client_id": client_id, "items": [{"product_id": product_id, "quantity": quantity}], **extra}
    return client.post("/api/invoices", json=body, headers=headers)


class TestInvoiceRoutes:

    def test_create_returns_full_document(self, client, employee_user, auth_headers, sample_client, sample_product):
        resp = _create(client, auth_headers(employee_user), sample_client.id, sample_product.id, notes="Entrega lunes")
        assert resp.status_code == 201
        body = resp.get_json()
        assert body["success"] is True
        assert body["message"] == "Invoice created successfully"

        data = body["data"]
        assert data["status"] == "draft"
        assert data["client_info"]["tax_id"] == sample_client.tax_id
        assert data["items"][0]["line_total_cents"] == 20000
        assert data["totals"]["taxes"] == [{"name": "IVA", "rate": 19.0, "amount_cents": 3800}]
        assert data["totals"]["final_amount_cents"] == 23800
        assert data["payment"]["status"] == "pending"
        assert data["payment"]["balance_due_cents"] == 23800
        assert data["created_by_user_id"] == employee_user.id
        assert data["notes"] == "Entrega lunes"
        assert data["dates"]["issue_date"].endswith("Z")

    def test_insufficient_stock_is_400(self, client, admin_headers, sample_client, sample_product):
        resp = _create(client, admin_headers, sample_client.id, sample_product.id, quantity=12)
        assert resp.status_code == 400
        body = resp.get_json()
        assert body["success"] is False
        assert "available 10, requested 12" in body["message"]
        assert db.session.get(Product, sample_product.id).current_stock == 10

    def test_item_errors_listed(self, client, admin_headers, sample_client):
        resp = client.post(
            "/api/invoices",
            json={"client_id": sample_client.id, "items": [{"product_id": 1, "quantity": 0}, "junk"]},
            headers=admin_headers,
        )
        assert resp.status_code == 400
        assert resp.get_json()["errors"] == [
            "item 1: quantity must be a positive integer",
            "item 2: must be an object",
        ]

    def test_unknown_client_is_404(self, client, admin_headers, sample_product):
        resp = _create(client, admin_headers, 999, sample_product.id)
        assert resp.status_code == 404

    def test_status_and_payment_routes(self, client, admin_headers, sample_client, sample_product):
        invoice = _create(client, admin_headers, sample_client.id, sample_product.id).get_json()["data"]
        base = f"/api/invoices/{invoice['id']}"

        resp = client.put(f"{base}/status", json={"status": "sent"}, headers=admin_headers)
        assert resp.status_code == 200
        assert resp.get_json()["message"] == "Invoice status changed to sent"

        resp = client.put(f"{base}/status", json={"status": "draft"}, headers=admin_headers)
        assert resp.status_code == 400

        resp = client.put(
            f"{base}/payment",
            json={"payment_status": "paid", "amount_cents": invoice["totals"]["final_amount_cents"], "method": "transfer"},
            headers=admin_headers,
        )
        assert resp.status_code == 200
        data = resp.get_json()["data"]
        assert data["status"] == "paid"
        assert data["dates"]["paid_date"] is not None
        assert len(data["payment"]["history"]) == 1

        resp = client.put(f"{base}/status", json={"status": "cancelled"}, headers=admin_headers)
        assert resp.status_code == 400

    def test_edit_and_delete_draft(self, client, admin_headers, sample_client, sample_product):
        invoice = _create(client, admin_headers, sample_client.id, sample_product.id).get_json()["data"]
        base = f"/api/invoices/{invoice['id']}"

        resp = client.put(base, json={"items": [{"product_id": sample_product.id, "quantity": 5}]}, headers=admin_headers)
        assert resp.status_code == 200
        assert resp.get_json()["data"]["items"][0]["quantity"] == 5
        assert db.session.get(Product, sample_product.id).current_stock == 5

        resp = client.delete(base, headers=admin_headers)
        assert resp.status_code == 200
        assert resp.get_json()["data"]["invoice_number"] == invoice["invoice_number"]
        assert db.session.get(Product, sample_product.id).current_stock == 10

        resp = client.get(base, headers=admin_headers)
        assert resp.status_code == 404

    def test_list_filters_and_summary_shape(self, client, admin_headers, make_client, make_product):
        ana = make_client(first_name="Ana")
        beto = make_client(first_name="Beto")
        product = make_product(current_stock=50)
        for buyer in (ana, ana, beto):
            _create(client, admin_headers, buyer.id, product.id, quantity=1)

        resp = client.get(f"/api/invoices?client_id={ana.id}", headers=admin_headers)
        body = resp.get_json()
        assert body["pagination"]["total_docs"] == 2
        assert set(body["data"][0]) >= {"invoice_number", "client_name", "final_amount_cents", "status", "is_overdue"}

        resp = client.get("/api/invoices?search=beto", headers=admin_headers)
        assert resp.get_json()["pagination"]["total_docs"] == 1

        resp = client.get("/api/invoices?sort=invoice_number&per_page=2", headers=admin_headers)
        numbers = [i["invoice_number"] for i in resp.get_json()["data"]]
        assert numbers == sorted(numbers)
        assert resp.get_json()["pagination"]["has_next_page"] is True

        resp = client.get("/api/invoices?status=bogus", headers=admin_headers)
        assert resp.status_code == 400

    def test_mark_overdue_route(self, client, admin_headers):
        resp = client.post("/api/invoices/mark-overdue", headers=admin_headers)
        assert resp.status_code == 200
        assert resp.get_json()["data"] == {"count": 0, "invoice_numbers": []}

    def test_unknown_route_uses_envelope(self, client):
        resp = client.get("/api/nothing-here")
        assert resp.status_code == 404
        assert resp.get_json()["success"] is False
