"""
HTTP API tests.

Verifies status codes and JSON shapes for every blueprint, including the
error mapping of the sale ledger (404 for unknown product/size, 400 for
insufficient stock).
"""

import pytest

from stockbook.models import Sale
from stockbook.services import reporting_service

from conftest import sale_payload, size_of


# =============================================================================
# System
# =============================================================================

class TestHealth:

    def test_degraded_when_catalog_empty(self, client, db_session):
        resp = client.get("/api/health")
        assert resp.status_code == 200
        assert resp.get_json()["status"] == "degraded"

    def test_healthy_with_catalog(self, client, soap):
        resp = client.get("/api/health")
        data = resp.get_json()
        assert resp.status_code == 200
        assert data["status"] == "healthy"
        assert data["checks"]["database"]["details"]["product_sizes"] == 2


# =============================================================================
# Products
# =============================================================================

class TestProductRoutes:

    def test_create_and_fetch(self, client, db_session):
        resp = client.post("/api/products", json={
            "name": "Toilet Cleaner",
            "sizes": [{"size": "750ml", "unit": "Bottles", "openingStock": 12, "stockIn": 3}],
        })
        assert resp.status_code == 201
        product = resp.get_json()
        assert product["sizes"][0]["closingStock"] == 15
        assert product["sizes"][0]["stockSold"] == 0

        resp = client.get(f"/api/products/{product['id']}")
        assert resp.status_code == 200
        assert resp.get_json()["name"] == "Toilet Cleaner"

    @pytest.mark.parametrize("payload", [
        {},
        {"name": ""},
        {"name": "X", "sizes": "500ml"},
        {"name": "X", "sizes": [{"size": "500ml"}]},
        {"name": "X", "sizes": [{"size": "500ml", "unit": "Bottles", "openingStock": -1}]},
        {"name": "X", "sizes": [{"size": "500ml", "unit": "B"}, {"size": "500ml", "unit": "B"}]},
    ])
    def test_create_rejects_bad_payload(self, client, db_session, payload):
        resp = client.post("/api/products", json=payload)
        assert resp.status_code == 400
        assert "error" in resp.get_json()

    def test_duplicate_name_conflict(self, client, soap):
        resp = client.post("/api/products", json={"name": "Soap"})
        assert resp.status_code == 409

    def test_list_with_filter(self, client, soap, bleach):
        resp = client.get("/api/products?q=SOA")
        assert resp.status_code == 200
        assert [p["name"] for p in resp.get_json()] == ["Soap"]

    def test_update_recomputes_and_ignores_ledger_fields(self, client, soap):
        resp = client.put(f"/api/products/{soap.id}", json={
            "sizes": [{"size": "500ml", "stockIn": 10, "closingStock": 0, "stockSold": 99}],
        })
        assert resp.status_code == 200
        sizes = {s["size"]: s for s in resp.get_json()["sizes"]}
        assert sizes["500ml"]["stockIn"] == 10
        assert sizes["500ml"]["stockSold"] == 0
        assert sizes["500ml"]["closingStock"] == 15

    def test_update_missing_product(self, client, db_session):
        resp = client.put("/api/products/999", json={"name": "Ghost"})
        assert resp.status_code == 404

    def test_sizes_endpoints(self, client, soap):
        resp = client.post(f"/api/products/{soap.id}/sizes", json={"size": "Box", "unit": "Boxes", "openingStock": 1})
        assert resp.status_code == 201
        assert "Box" in [s["size"] for s in resp.get_json()["sizes"]]

        resp = client.post(f"/api/products/{soap.id}/sizes", json={"size": "Box", "unit": "Boxes"})
        assert resp.status_code == 409

        resp = client.delete(f"/api/products/{soap.id}/sizes/Box")
        assert resp.status_code == 200

        resp = client.delete(f"/api/products/{soap.id}/sizes/Box")
        assert resp.status_code == 404

    def test_delete(self, client, soap):
        assert client.delete(f"/api/products/{soap.id}").status_code == 200
        assert client.get(f"/api/products/{soap.id}").status_code == 404

    def test_seed(self, client, db_session):
        resp = client.post("/api/products/seed")
        assert resp.status_code == 200
        assert resp.get_json()["created"] == 5

        resp = client.post("/api/products/seed")
        assert resp.get_json()["message"] == "Products already exist"


# =============================================================================
# Customers and workers
# =============================================================================

class TestCustomerRoutes:

    def test_upsert_then_search(self, client, db_session):
        resp = client.post("/api/customers", json={"name": "John", "phone": "0788123456"})
        assert resp.status_code == 201
        first_id = resp.get_json()["id"]

        resp = client.post("/api/customers", json={"name": "John Doe", "phone": "0788123456"})
        assert resp.status_code == 200
        assert resp.get_json()["id"] == first_id

        resp = client.get("/api/customers?search=john")
        assert resp.status_code == 200
        assert [c["name"] for c in resp.get_json()] == ["John Doe"]

    def test_missing_phone(self, client, db_session):
        resp = client.post("/api/customers", json={"name": "John"})
        assert resp.status_code == 400


class TestWorkerRoutes:

    def test_crud(self, client, db_session):
        resp = client.post("/api/workers", json={"name": "Bob", "phone": "0788000009", "role": "Cashier"})
        assert resp.status_code == 201
        worker_id = resp.get_json()["id"]
        assert resp.get_json()["active"] is True

        resp = client.put(f"/api/workers/{worker_id}", json={"active": False})
        assert resp.status_code == 200

        assert client.get("/api/workers").get_json() == []
        assert len(client.get("/api/workers?all=true").get_json()) == 1

        assert client.delete(f"/api/workers/{worker_id}").status_code == 200
        assert client.delete(f"/api/workers/{worker_id}").status_code == 404

    def test_create_requires_fields(self, client, db_session):
        resp = client.post("/api/workers", json={"name": "Bob"})
        assert resp.status_code == 400

    def test_unknown_field_rejected(self, client, worker):
        resp = client.put(f"/api/workers/{worker.id}", json={"salary": 100})
        assert resp.status_code == 400


# =============================================================================
# Sales
# =============================================================================

class TestSaleRoutes:

    def test_create_sale(self, client, soap):
        resp = client.post("/api/sales", json=sale_payload([("Soap", "500ml", 3, 1000)]))

        assert resp.status_code == 201
        sale = resp.get_json()
        assert sale["grandTotal"] == 3000.0
        assert sale["items"][0] == {
            "id": sale["items"][0]["id"],
            "product": "Soap",
            "size": "500ml",
            "quantity": 3,
            "unitPrice": 1000.0,
            "total": 3000.0,
        }
        assert sale["customer"]["phone"] == "0788123456"
        assert size_of("Soap", "500ml").closing_stock == 2

    def test_client_total_is_ignored(self, client, soap):
        payload = sale_payload([("Soap", "500ml", 2, 250)])
        payload["items"][0]["total"] = 1
        resp = client.post("/api/sales", json=payload)
        assert resp.get_json()["grandTotal"] == 500.0

    def test_single_item_body_accepted(self, client, soap):
        resp = client.post("/api/sales", json={
            "clientName": "Walk-in",
            "clientPhone": "0788555555",
            "workerName": "Alice",
            "paymentMethod": "MoMo",
            "product": "Soap",
            "size": "5L",
            "quantity": 2,
            "unitPrice": 4000,
        })
        assert resp.status_code == 201
        assert len(resp.get_json()["items"]) == 1
        assert size_of("Soap", "5L").closing_stock == 18

    def test_insufficient_stock(self, client, soap, db_session):
        resp = client.post("/api/sales", json=sale_payload([("Soap", "500ml", 6, 1000)]))

        assert resp.status_code == 400
        data = resp.get_json()
        assert data["error"] == "Insufficient stock. Only 5 units available."
        assert data["details"]["available"] == 5
        assert db_session.query(Sale).count() == 0

    @pytest.mark.parametrize("product,size", [("Shampoo", "500ml"), ("Soap", "1L")])
    def test_unknown_product_or_size(self, client, soap, product, size):
        resp = client.post("/api/sales", json=sale_payload([(product, size, 1, 100)]))
        assert resp.status_code == 404

    @pytest.mark.parametrize("override", [
        {"paymentMethod": "Card"},
        {"items": []},
        {"workerName": ""},
        {"customer": None},
        {"date": "yesterday"},
    ])
    def test_rejects_invalid_body(self, client, soap, override):
        payload = sale_payload([("Soap", "500ml", 1, 100)])
        payload.update(override)
        resp = client.post("/api/sales", json=payload)
        assert resp.status_code == 400

    @pytest.mark.parametrize("quantity", [0, -1, 1.5, "two"])
    def test_rejects_bad_quantity(self, client, soap, quantity):
        resp = client.post("/api/sales", json=sale_payload([("Soap", "500ml", quantity, 100)]))
        assert resp.status_code == 400
        assert size_of("Soap", "500ml").closing_stock == 5

    def test_list_get_and_delete(self, client, soap):
        created = client.post("/api/sales", json=sale_payload(
            [("Soap", "500ml", 3, 1000)], date="2026-10-19T09:00:00Z",
        )).get_json()

        resp = client.get("/api/sales?startDate=2026-10-19&endDate=2026-10-19")
        assert resp.status_code == 200
        data = resp.get_json()
        assert data["pagination"]["total"] == 1
        assert data["totalAmount"] == 3000.0

        assert client.get("/api/sales?startDate=2026-10-20").get_json()["pagination"]["total"] == 0
        assert client.get("/api/sales?startDate=oops").status_code == 400

        assert client.get(f"/api/sales/{created['id']}").status_code == 200

        resp = client.delete(f"/api/sales/{created['id']}")
        assert resp.status_code == 200
        assert resp.get_json()["restored"][0]["quantity"] == 3
        assert size_of("Soap", "500ml").closing_stock == 5

        assert client.get(f"/api/sales/{created['id']}").status_code == 404
        assert client.delete(f"/api/sales/{created['id']}").status_code == 404

    def test_migrate_legacy_endpoint(self, client, db_session):
        resp = client.post("/api/sales/migrate-legacy")
        assert resp.status_code == 200
        assert resp.get_json()["migrated"] == 0


# =============================================================================
# Reports
# =============================================================================

class TestReportRoutes:

    def test_dashboard_shape(self, client, soap):
        client.post("/api/sales", json=sale_payload([("Soap", "500ml", 1, 1000)]))

        resp = client.get("/api/reports/dashboard")
        assert resp.status_code == 200
        data = resp.get_json()
        for key in ("todayTotalSales", "todayCashSales", "todayMoMoSales", "totalProducts", "topProducts", "lowStockAlerts"):
            assert key in data
        assert data["todayCashSales"] == 1000.0
        assert data["lowStockAlerts"] == [{"product": "Soap", "size": "500ml", "stock": 4}]

    def test_daily(self, client, db_session):
        resp = client.get("/api/reports/daily?date=2026-10-19")
        assert resp.status_code == 200
        assert resp.get_json()["transactionCount"] == 0

        assert client.get("/api/reports/daily?date=bad").status_code == 400

    @pytest.mark.parametrize("path,target", [
        ("/api/reports/daily?date=2026-10-19", "daily_report"),
        ("/api/reports/custom?startDate=2026-10-19", "custom_report"),
    ])
    def test_unexpected_failure_is_logged_500(self, client, db_session, monkeypatch, path, target):
        def explode(*args, **kwargs):
            raise RuntimeError("boom")

        monkeypatch.setattr(reporting_service, target, explode)

        resp = client.get(path)
        assert resp.status_code == 500
        assert resp.get_json() == {"error": "Internal server error"}

    def test_custom(self, client, soap):
        client.post("/api/sales", json=sale_payload([("Soap", "5L", 2, 100)], date="2026-10-19T09:00:00Z"))

        resp = client.get("/api/reports/custom?startDate=2026-10-19&endDate=2026-10-19&worker=all")
        assert resp.status_code == 200
        assert resp.get_json()["summary"]["totalSales"] == 200.0

        resp = client.get("/api/reports/custom?startDate=2026-10-19&endDate=2026-10-19&worker=Nobody")
        assert resp.get_json()["summary"]["count"] == 0

        resp = client.get("/api/reports/custom?startDate=2026-10-20&endDate=2026-10-19")
        assert resp.status_code == 400


def test_cors_headers(app, client, db_session):
    origin = "http://shop.example.com"
    previous = app.config["CORS_ALLOWED_ORIGINS"]
    app.config["CORS_ALLOWED_ORIGINS"] = {origin}
    try:
        resp = client.get("/api/products", headers={"Origin": origin})
        assert resp.headers.get("Access-Control-Allow-Origin") == origin
    finally:
        app.config["CORS_ALLOWED_ORIGINS"] = previous
