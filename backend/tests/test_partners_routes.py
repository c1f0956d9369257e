"""
Supplier and client API tests: CRUD, codes, uniqueness, soft delete and listing.
"""

import pytest


SUPPLIER = {
    "tax_id": "900123456",
    "company": "Distribuidora Andina S.A.S.",
    "contact_name": "Carlos Pérez",
    "phone": "+57 1 555 0101",
    "email": "Ventas@Andina.Example",
    "bank_name": "Bancolombia",
    "bank_account": "001-234567-89",
    "address": {"street": "Calle 13 # 45-10", "city": "Bogotá", "state": "Cundinamarca"},
}

CLIENT = {
    "tax_id": "1012345678",
    "first_name": "María",
    "last_name": "López",
    "phone": "+57 300 555 0303",
    "address": {"street": "Calle 80 # 20-30", "city": "Medellín", "state": "Antioquia"},
}


# =============================================================================
# SUPPLIERS
# =============================================================================


class TestSuppliers:

    def test_create_assigns_code(self, client, admin_headers):
        resp = client.post("/api/suppliers", json=SUPPLIER, headers=admin_headers)
        assert resp.status_code == 201
        data = resp.get_json()["data"]
        assert data["supplier_code"] == "SUP-001"
        assert data["email"] == "ventas@andina.example"
        assert data["address"]["country"] == "Colombia"
        assert data["status"] == "active"
        assert data["catalog"] == []

        resp = client.post(
            "/api/suppliers", json={**SUPPLIER, "tax_id": "900999999"}, headers=admin_headers,
        )
        assert resp.get_json()["data"]["supplier_code"] == "SUP-002"

    def test_duplicate_tax_id(self, client, admin_headers):
        client.post("/api/suppliers", json=SUPPLIER, headers=admin_headers)
        resp = client.post("/api/suppliers", json=SUPPLIER, headers=admin_headers)
        assert resp.status_code == 400
        assert "tax_id" in resp.get_json()["message"]

    @pytest.mark.parametrize(
        "override",
        [
            {"tax_id": "12AB"},
            {"email": "not-an-email"},
            {"company": ""},
            {"status": "archived"},
            {"supplier_code": "SUP-999"},
        ],
    )
    def test_invalid_payloads(self, client, admin_headers, override):
        resp = client.post("/api/suppliers", json={**SUPPLIER, **override}, headers=admin_headers)
        assert resp.status_code == 400
        assert resp.get_json()["success"] is False

    def test_missing_fields(self, client, admin_headers):
        resp = client.post("/api/suppliers", json={"company": "Solo nombre"}, headers=admin_headers)
        assert resp.status_code == 400
        assert "tax_id is required" in resp.get_json()["errors"]

    def test_non_object_body(self, client, admin_headers):
        resp = client.post("/api/suppliers", json=["not", "an", "object"], headers=admin_headers)
        assert resp.status_code == 400

    def test_update_and_soft_delete(self, client, admin_headers, sample_supplier):
        resp = client.put(
            f"/api/suppliers/{sample_supplier.id}",
            json={"contact_name": "Lucía Gómez", "address": {"city": "Cali"}},
            headers=admin_headers,
        )
        assert resp.status_code == 200
        data = resp.get_json()["data"]
        assert data["contact_name"] == "Lucía Gómez"
        assert data["address"]["city"] == "Cali"
        assert data["address"]["street"] == "Calle 13 # 45-10"

        resp = client.delete(f"/api/suppliers/{sample_supplier.id}", headers=admin_headers)
        assert resp.status_code == 200
        assert resp.get_json()["data"]["status"] == "inactive"

        resp = client.get(f"/api/suppliers/{sample_supplier.id}", headers=admin_headers)
        assert resp.status_code == 200

    def test_not_found(self, client, admin_headers):
        resp = client.get("/api/suppliers/999", headers=admin_headers)
        assert resp.status_code == 404
        assert resp.get_json()["message"] == "Supplier not found"

    def test_catalog(self, client, admin_headers, sample_supplier):
        base = f"/api/suppliers/{sample_supplier.id}/catalog"
        resp = client.post(
            base,
            json={"product_name": "Arroz bulto 50kg", "category": "Alimentos", "unit_price_cents": 15000000},
            headers=admin_headers,
        )
        assert resp.status_code == 201
        item = resp.get_json()["data"]
        assert item["currency"] == "COP"
        assert item["minimum_order"] == 1

        resp = client.put(f"{base}/{item['id']}", json={"available_quantity": 40}, headers=admin_headers)
        assert resp.status_code == 200
        assert resp.get_json()["data"]["available_quantity"] == 40

        resp = client.put(f"{base}/{item['id']}", json={"minimum_order": 0}, headers=admin_headers)
        assert resp.status_code == 400

        resp = client.get(f"/api/suppliers/{sample_supplier.id}", headers=admin_headers)
        assert len(resp.get_json()["data"]["catalog"]) == 1

        resp = client.delete(f"{base}/{item['id']}", headers=admin_headers)
        assert resp.status_code == 200
        resp = client.delete(f"{base}/{item['id']}", headers=admin_headers)
        assert resp.status_code == 404

    def test_list_search_and_pagination(self, client, admin_headers, make_supplier):
        for n in range(12):
            make_supplier(company=f"Proveedor {n:02d}", address={"street": "x", "city": "Cali" if n % 2 else "Bogotá", "state": "y"})

        resp = client.get("/api/suppliers?limit=5&page=2&sort=company", headers=admin_headers)
        body = resp.get_json()
        assert resp.status_code == 200
        assert [s["company"] for s in body["data"]] == [f"Proveedor {n:02d}" for n in range(5, 10)]
        assert body["pagination"] == {
            "current_page": 2,
            "total_pages": 3,
            "total_docs": 12,
            "per_page": 5,
            "has_next_page": True,
            "has_prev_page": True,
        }

        resp = client.get("/api/suppliers?city=cali", headers=admin_headers)
        assert resp.get_json()["pagination"]["total_docs"] == 6

        resp = client.get("/api/suppliers", query_string={"search": "Proveedor 03"}, headers=admin_headers)
        assert [s["company"] for s in resp.get_json()["data"]] == ["Proveedor 03"]

        resp = client.get("/api/suppliers?sort=bogus", headers=admin_headers)
        assert resp.status_code == 400

    def test_limit_capped(self, client, admin_headers):
        resp = client.get("/api/suppliers?limit=1000", headers=admin_headers)
        assert resp.get_json()["pagination"]["per_page"] == 100


# =============================================================================
# CLIENTS
# =============================================================================


class TestClients:

    def test_create_final_consumer(self, client, admin_headers):
        resp = client.post("/api/clients", json=CLIENT, headers=admin_headers)
        assert resp.status_code == 201
        data = resp.get_json()["data"]
        assert data["client_code"] == "CLI-001"
        assert data["client_type"] == "final_consumer"
        assert data["preferred_payment_method"] == "cash"
        assert data["full_name"] == "María López"

    def test_registered_client_needs_company(self, client, admin_headers):
        resp = client.post("/api/clients", json={**CLIENT, "client_type": "registered"}, headers=admin_headers)
        assert resp.status_code == 400

        resp = client.post(
            "/api/clients",
            json={**CLIENT, "client_type": "registered", "company_name": "Tienda", "business_type": "retail"},
            headers=admin_headers,
        )
        assert resp.status_code == 201

    @pytest.mark.parametrize(
        "override",
        [
            {"client_type": "vip"},
            {"preferred_payment_method": "barter"},
            {"discount_level": 150},
            {"business_type": "mining"},
            {"tax_id": "12"},
        ],
    )
    def test_invalid_payloads(self, client, admin_headers, override):
        resp = client.post("/api/clients", json={**CLIENT, **override}, headers=admin_headers)
        assert resp.status_code == 400

    def test_duplicate_tax_id(self, client, admin_headers):
        client.post("/api/clients", json=CLIENT, headers=admin_headers)
        resp = client.post("/api/clients", json=CLIENT, headers=admin_headers)
        assert resp.status_code == 400

    def test_soft_delete_and_filters(self, client, admin_headers, make_client):
        keep = make_client(first_name="Ana")
        drop = make_client(first_name="Beto")

        resp = client.delete(f"/api/clients/{drop.id}", headers=admin_headers)
        assert resp.status_code == 200
        assert resp.get_json()["data"]["status"] == "inactive"

        resp = client.get("/api/clients?status=active", headers=admin_headers)
        assert [c["id"] for c in resp.get_json()["data"]] == [keep.id]

        resp = client.get("/api/clients?search=beto", headers=admin_headers)
        assert [c["id"] for c in resp.get_json()["data"]] == [drop.id]

    def test_detail_includes_purchases_and_history(self, client, admin_headers, sample_client, sample_product):
        resp = client.post(
            "/api/invoices",
            json={"client_id": sample_client.id, "items": [{"product_id": sample_product.id, "quantity": 1}]},
            headers=admin_headers,
        )
        invoice = resp.get_json()["data"]
        client.put(f"/api/invoices/{invoice['id']}/status", json={"status": "paid"}, headers=admin_headers)

        resp = client.get(f"/api/clients/{sample_client.id}", headers=admin_headers)
        assert resp.get_json()["data"]["total_purchases_cents"] == invoice["totals"]["final_amount_cents"]

        resp = client.get(f"/api/clients/{sample_client.id}/invoices", headers=admin_headers)
        body = resp.get_json()
        assert body["pagination"]["total_docs"] == 1
        assert body["data"][0]["invoice_number"] == invoice["invoice_number"]
        assert body["data"][0]["status"] == "paid"
