# Overview: Pytest coverage for product and category endpoints.

from decimal import Decimal

import pytest

from stockpos.services.products_service import normalize_unit_prices


class TestNormalizeUnitPrices:
    def test_pack_price_derives_piece_and_dozen(self):
        patch = normalize_unit_prices({"pack_selling_price": Decimal("450.00")})
        assert patch["piece_selling_price"] == Decimal("150.00")
        assert patch["dozen_selling_price"] == Decimal("1800.00")

    def test_piece_wins_over_other_units(self):
        patch = normalize_unit_prices({"piece_buying_price": Decimal("10"), "dozen_buying_price": Decimal("999")})
        assert patch["dozen_buying_price"] == Decimal("120.00")

    def test_kinds_are_independent(self):
        patch = normalize_unit_prices({"piece_buying_price": Decimal("10"), "dozen_selling_price": Decimal("180")})
        assert patch["pack_buying_price"] == Decimal("30.00")
        assert patch["piece_selling_price"] == Decimal("15.00")


class TestProductEndpoints:
    def test_create_derives_unit_prices(self, client, db_session, admin_a_headers):
        resp = client.post(
            "/api/products",
            json={"sku": "SOAP-1", "name": "Bar Soap", "piece_buying_price": "40", "piece_selling_price": "55.5"},
            headers=admin_a_headers,
        )
        assert resp.status_code == 201, resp.get_json()
        data = resp.get_json()
        assert data["pack_buying_price"] == 120.0
        assert data["dozen_selling_price"] == 666.0
        assert data["quantity"] == 0

    @pytest.mark.parametrize(
        "body",
        [
            {"name": "No SKU"},
            {"sku": "X"},
            {"sku": "X", "name": "Y", "quantity": -1},
            {"sku": "X", "name": "Y", "piece_buying_price": "-5"},
            {"sku": "X", "name": "Y", "piece_selling_price": "abc"},
            {"sku": "X", "name": "Y", "category_id": 999999},
        ],
    )
    def test_invalid_product_rejected(self, client, db_session, admin_a_headers, body):
        assert client.post("/api/products", json=body, headers=admin_a_headers).status_code == 400

    def test_update_and_deactivate(self, client, db_session, admin_a_headers, product_a):
        resp = client.put(
            f"/api/products/{product_a.id}", json={"dozen_selling_price": 1920}, headers=admin_a_headers,
        )
        assert resp.status_code == 200
        assert resp.get_json()["piece_selling_price"] == 160.0

        assert client.delete(f"/api/products/{product_a.id}", headers=admin_a_headers).status_code == 200
        listed = client.get("/api/products?active=true", headers=admin_a_headers).get_json()
        assert listed["count"] == 0

    def test_search_and_pagination(self, client, db_session, admin_a_headers, store_a):
        for i in range(5):
            client.post("/api/products", json={"sku": f"TEA-{i}", "name": f"Tea {i}"}, headers=admin_a_headers)
        client.post("/api/products", json={"sku": "SUG-1", "name": "Sugar"}, headers=admin_a_headers)

        found = client.get("/api/products?search=tea", headers=admin_a_headers).get_json()
        assert found["count"] == 5

        page = client.get("/api/products?page=2&per_page=4", headers=admin_a_headers).get_json()
        assert page["count"] == 2
        assert page["pagination"]["total"] == 6
        assert page["pagination"]["has_prev"] is True
        assert page["pagination"]["has_next"] is False

    def test_low_stock(self, client, db_session, admin_a_headers, product_a):
        product_a.min_quantity = 5
        db_session.commit()
        resp = client.get("/api/products/low-stock", headers=admin_a_headers)
        assert [p["id"] for p in resp.get_json()["items"]] == [product_a.id]


class TestCategories:
    def test_create_and_assign(self, client, db_session, admin_a_headers):
        resp = client.post("/api/categories", json={"name": "Beverages"}, headers=admin_a_headers)
        assert resp.status_code == 201
        category_id = resp.get_json()["id"]

        assert client.post("/api/categories", json={"name": "Beverages"}, headers=admin_a_headers).status_code == 409

        resp = client.post(
            "/api/products", json={"sku": "COLA", "name": "Cola", "category_id": category_id}, headers=admin_a_headers,
        )
        assert resp.status_code == 201
        filtered = client.get(f"/api/products?category_id={category_id}", headers=admin_a_headers).get_json()
        assert [p["sku"] for p in filtered["items"]] == ["COLA"]

    def test_other_store_category_not_assignable(self, client, db_session, admin_a_headers, admin_b_headers):
        category_id = client.post("/api/categories", json={"name": "B only"}, headers=admin_b_headers).get_json()["id"]
        resp = client.post(
            "/api/products", json={"sku": "P", "name": "P", "category_id": category_id}, headers=admin_a_headers,
        )
        assert resp.status_code == 400
        assert client.get("/api/categories", headers=admin_a_headers).get_json()["count"] == 0

    def test_store_id_must_be_an_integer(self, client, db_session, super_headers, store_a):
        resp = client.post("/api/categories", json={"name": "Tea", "store_id": "abc"}, headers=super_headers)
        assert resp.status_code == 400
        resp = client.post("/api/products", json={"sku": "T", "name": "Tea", "store_id": "abc"}, headers=super_headers)
        assert resp.status_code == 400


class TestAdjustStockEndpoint:
    def test_adjust_down_and_up(self, client, db_session, admin_a_headers, product_a):
        resp = client.post(
            f"/api/products/{product_a.id}/adjust-stock",
            json={"quantity_change": -2, "reason": "Stock take"},
            headers=admin_a_headers,
        )
        assert resp.status_code == 200, resp.get_json()
        body = resp.get_json()
        assert body["new_quantity"] == 3
        assert body["stock_log"]["type"] == "adjustment"
        assert body["stock_log"]["quantity_added"] == -2

        resp = client.post(
            f"/api/products/{product_a.id}/adjust-stock", json={"quantity_change": "4"}, headers=admin_a_headers,
        )
        assert resp.get_json()["new_quantity"] == 7

    def test_negative_result_rejected(self, client, db_session, admin_a_headers, product_a):
        resp = client.post(
            f"/api/products/{product_a.id}/adjust-stock", json={"quantity_change": -10}, headers=admin_a_headers,
        )
        assert resp.status_code == 400
        assert resp.get_json()["error"] == "Resulting quantity cannot be negative"

    @pytest.mark.parametrize("body", [{}, {"quantity_change": 1.5}, {"quantity_change": "abc"}, {"quantity_change": 0}])
    def test_invalid_change_rejected(self, client, db_session, admin_a_headers, product_a, body):
        resp = client.post(f"/api/products/{product_a.id}/adjust-stock", json=body, headers=admin_a_headers)
        assert resp.status_code == 400

    def test_other_store_product_404(self, client, db_session, admin_a_headers, product_b):
        resp = client.post(
            f"/api/products/{product_b.id}/adjust-stock", json={"quantity_change": 1}, headers=admin_a_headers,
        )
        assert resp.status_code == 404

    def test_sales_role_denied(self, client, db_session, sales_a_headers, product_a):
        resp = client.post(
            f"/api/products/{product_a.id}/adjust-stock", json={"quantity_change": 1}, headers=sales_a_headers,
        )
        assert resp.status_code == 403


class TestBulkPriceUpdate:
    def _categorize(self, client, headers, product_id, name="Grains"):
        category_id = client.post("/api/categories", json={"name": name}, headers=headers).get_json()["id"]
        client.put(f"/api/products/{product_id}", json={"category_id": category_id}, headers=headers)
        return category_id

    def test_raises_piece_price_and_rederives_units(self, client, db_session, admin_a_headers, product_a, product_b):
        category_id = self._categorize(client, admin_a_headers, product_a.id)

        resp = client.put(
            "/api/products/bulk-price-update",
            json={"category_id": category_id, "price_increase_percent": 10},
            headers=admin_a_headers,
        )
        assert resp.status_code == 200, resp.get_json()
        assert resp.get_json()["updated_count"] == 1

        data = client.get(f"/api/products/{product_a.id}", headers=admin_a_headers).get_json()
        assert data["piece_selling_price"] == 165.0
        assert data["pack_selling_price"] == 495.0
        assert data["dozen_selling_price"] == 1980.0
        assert data["piece_buying_price"] == 100.0

    def test_negative_percent_cuts_prices(self, client, db_session, admin_a_headers, product_a):
        category_id = self._categorize(client, admin_a_headers, product_a.id)
        client.put(
            "/api/products/bulk-price-update",
            json={"category_id": category_id, "price_increase_percent": "-20"},
            headers=admin_a_headers,
        )
        data = client.get(f"/api/products/{product_a.id}", headers=admin_a_headers).get_json()
        assert data["piece_selling_price"] == 120.0

    @pytest.mark.parametrize("percent", [None, 0, "abc", -100])
    def test_invalid_percent(self, client, db_session, admin_a_headers, product_a, percent):
        category_id = self._categorize(client, admin_a_headers, product_a.id)
        resp = client.put(
            "/api/products/bulk-price-update",
            json={"category_id": category_id, "price_increase_percent": percent},
            headers=admin_a_headers,
        )
        assert resp.status_code == 400

    def test_other_store_category_404(self, client, db_session, admin_a_headers, admin_b_headers, product_b):
        category_id = self._categorize(client, admin_b_headers, product_b.id, name="B grains")
        resp = client.put(
            "/api/products/bulk-price-update",
            json={"category_id": category_id, "price_increase_percent": 10},
            headers=admin_a_headers,
        )
        assert resp.status_code == 404

        data = client.get(f"/api/products/{product_b.id}", headers=admin_b_headers).get_json()
        assert data["piece_selling_price"] == 30.0
