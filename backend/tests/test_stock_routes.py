# Overview: Pytest coverage for the stock receiving HTTP endpoints.

"""
POST /api/stock/receive end to end: auth, role checks, validation, tenant
isolation and the persisted cost/quantity/StockLog effects.
"""

from decimal import Decimal

import pytest

from stockpos.models import Product, StockLog


def _receive(client, headers, **body):
    return client.post("/api/stock/receive", json=body, headers=headers)


class TestReceiveEndpoint:
    def test_receive_updates_product_and_writes_log(self, client, db_session, admin_a_headers, product_a):
        resp = _receive(
            client, admin_a_headers,
            product_id=product_a.id, quantity=2, unit_cost=285, unit_type="pack", notes="Delivery #12",
        )
        assert resp.status_code == 200, resp.get_json()
        data = resp.get_json()

        assert data["product"]["quantity"] == 11
        assert data["product"]["piece_buying_price"] == 97.27
        assert data["product"]["pack_buying_price"] == 291.81
        assert data["product"]["dozen_buying_price"] == 1167.24
        assert data["stock_log"]["quantity_added"] == 6
        assert data["stock_log"]["notes"] == "Delivery #12"

        db_session.expire_all()
        assert db_session.get(Product, product_a.id).piece_buying_price == Decimal("97.27")
        assert db_session.query(StockLog).filter_by(product_id=product_a.id).count() == 1

    def test_buying_price_alias(self, client, db_session, admin_a_headers, product_a):
        resp = _receive(client, admin_a_headers, product_id=product_a.id, quantity=10, buying_price="95")
        assert resp.status_code == 200
        assert resp.get_json()["product"]["piece_buying_price"] == 96.67

    @pytest.mark.parametrize(
        "body,message",
        [
            ({"quantity": 0, "unit_cost": 10}, "quantity"),
            ({"quantity": -3, "unit_cost": 10}, "quantity"),
            ({"quantity": 1.5, "unit_cost": 10}, "quantity"),
            ({"quantity": 1, "unit_cost": -1}, "unit_cost"),
            ({"quantity": 1}, "unit_cost"),
            ({"quantity": 1, "unit_cost": 10, "unit_type": "crate"}, "unit_type"),
        ],
    )
    def test_invalid_input_rejected(self, client, db_session, admin_a_headers, product_a, body, message):
        resp = _receive(client, admin_a_headers, product_id=product_a.id, **body)
        assert resp.status_code == 400
        assert message in resp.get_json()["error"]

        db_session.expire_all()
        assert product_a.quantity == 5

    def test_missing_product_id(self, client, db_session, admin_a_headers):
        resp = _receive(client, admin_a_headers, quantity=1, unit_cost=1)
        assert resp.status_code == 400

    def test_unknown_product_404(self, client, db_session, admin_a_headers):
        resp = _receive(client, admin_a_headers, product_id=999999, quantity=1, unit_cost=1)
        assert resp.status_code == 404

    def test_other_store_product_404(self, client, db_session, admin_a_headers, product_b):
        resp = _receive(client, admin_a_headers, product_id=product_b.id, quantity=1, unit_cost=1)
        assert resp.status_code == 404

        db_session.expire_all()
        assert product_b.quantity == 10

    def test_super_admin_can_receive_anywhere(self, client, db_session, super_headers, product_b):
        resp = _receive(client, super_headers, product_id=product_b.id, quantity=1, unit_cost=20)
        assert resp.status_code == 200
        assert resp.get_json()["stock_log"]["store_id"] == product_b.store_id

    def test_sales_role_denied(self, client, db_session, sales_a_headers, product_a):
        resp = _receive(client, sales_a_headers, product_id=product_a.id, quantity=1, unit_cost=1)
        assert resp.status_code == 403

    def test_requires_auth(self, client, db_session, product_a):
        resp = client.post("/api/stock/receive", json={"product_id": product_a.id, "quantity": 1, "unit_cost": 1})
        assert resp.status_code == 401


class TestBulkAndReports:
    def test_bulk_receive(self, client, db_session, admin_a_headers, product_a):
        resp = client.post("/api/stock/receive/bulk", headers=admin_a_headers, json={"items": [
            {"product_id": product_a.id, "quantity": 1, "unit_cost": 100, "unit_type": "piece"},
            {"product_id": product_a.id, "quantity": 1, "unit_cost": 300, "unit_type": "pack"},
        ]})
        assert resp.status_code == 200
        assert len(resp.get_json()["items"]) == 2

        db_session.expire_all()
        assert product_a.quantity == 9

    def test_bulk_line_error_names_line(self, client, db_session, admin_a_headers, product_a):
        resp = client.post("/api/stock/receive/bulk", headers=admin_a_headers, json={"items": [
            {"product_id": product_a.id, "quantity": 1, "unit_cost": 100},
            {"product_id": product_a.id, "quantity": 0, "unit_cost": 100},
        ]})
        assert resp.status_code == 400
        assert resp.get_json()["error"].startswith("Line 2:")

    def test_logs_and_value_report(self, client, db_session, admin_a_headers, product_a):
        _receive(client, admin_a_headers, product_id=product_a.id, quantity=3, unit_cost=10)

        logs = client.get("/api/stock/logs", headers=admin_a_headers).get_json()
        assert logs["count"] == 1

        report = client.get("/api/stock/value-report", headers=admin_a_headers).get_json()
        assert report["total_value"] == 30.0
        assert report["total_quantity"] == 3

    def test_bad_date_filter(self, client, db_session, admin_a_headers):
        resp = client.get("/api/stock/logs?start_date=yesterday", headers=admin_a_headers)
        assert resp.status_code == 400
