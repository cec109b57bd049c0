# Overview: Pytest coverage for sales, split payments and voids.

from decimal import Decimal

import pytest

from stockpos.models import Sale
from stockpos.services import sales_service
from stockpos.services.sales_service import SaleError


def _line(product, quantity, unit_type="piece"):
    return {"product_id": product.id, "quantity": quantity, "unit_type": unit_type}


class TestCreateSale:
    def test_cash_sale_defaults_to_exact_payment(self, db_session, caller_a, product_a):
        sale = sales_service.create_sale(caller_a, items=[_line(product_a, 2)])

        assert sale.status == "completed"
        assert sale.subtotal == Decimal("300.00")
        assert sale.total_amount == Decimal("300.00")
        assert sale.amount_paid == Decimal("300.00")
        assert sale.change_due == Decimal("0.00")
        assert sale.payment_status == "paid"
        assert [(p.method, p.amount) for p in sale.payments] == [("cash", Decimal("300.00"))]

        db_session.expire_all()
        assert product_a.quantity == 3

    def test_unit_price_and_pieces_follow_unit_type(self, db_session, caller_a, product_a):
        product_a.quantity = 40
        db_session.commit()

        sale = sales_service.create_sale(caller_a, items=[_line(product_a, 1, "dozen"), _line(product_a, 2, "pack")])

        assert [item.unit_price for item in sale.items] == [Decimal("1800.00"), Decimal("450.00")]
        assert [item.unit_cost for item in sale.items] == [Decimal("1200.00"), Decimal("300.00")]
        assert sale.subtotal == Decimal("2700.00")
        db_session.expire_all()
        assert product_a.quantity == 40 - 12 - 6

    def test_split_payment_with_change(self, db_session, caller_a, product_a):
        sale = sales_service.create_sale(
            caller_a,
            items=[_line(product_a, 1)],
            payments=[
                {"method": "mpesa", "amount": Decimal("100.00"), "reference": "QK12ABC"},
                {"method": "cash", "amount": Decimal("100.00")},
            ],
            delivery_fee=Decimal("20.00"),
        )
        assert sale.total_amount == Decimal("170.00")
        assert sale.amount_paid == Decimal("200.00")
        assert sale.change_due == Decimal("30.00")
        assert sale.payment_status == "paid"
        assert sale.payments[0].reference == "QK12ABC"

    def test_partial_and_unpaid(self, db_session, caller_a, product_a):
        partial = sales_service.create_sale(
            caller_a, items=[_line(product_a, 1)], payments=[{"method": "card", "amount": Decimal("50.00")}],
        )
        assert partial.payment_status == "partial"
        assert partial.change_due == Decimal("0.00")

        unpaid = sales_service.create_sale(caller_a, items=[_line(product_a, 1)], payments=[])
        assert unpaid.payment_status == "unpaid"
        assert unpaid.amount_paid == Decimal("0.00")

    def test_insufficient_stock_writes_nothing(self, db_session, caller_a, product_a):
        with pytest.raises(SaleError, match="Insufficient stock") as exc:
            sales_service.create_sale(caller_a, items=[_line(product_a, 1, "pack"), _line(product_a, 3)])

        assert exc.value.details["items"][0]["requested_pieces"] == 6
        assert exc.value.details["items"][0]["on_hand"] == 5
        db_session.expire_all()
        assert product_a.quantity == 5
        assert db_session.query(Sale).count() == 0

    def test_inactive_product_rejected(self, db_session, caller_a, product_a):
        product_a.is_active = False
        db_session.commit()
        with pytest.raises(SaleError, match="inactive"):
            sales_service.create_sale(caller_a, items=[_line(product_a, 1)])

    def test_loyalty_points(self, db_session, caller_a, product_a, customer_a):
        sales_service.create_sale(caller_a, items=[_line(product_a, 2)], customer_id=customer_a.id)
        db_session.expire_all()
        # 300.00 total -> 3 points
        assert customer_a.loyalty_points == 3

    def test_foreign_customer_rejected(self, db_session, caller_b, product_b, customer_a):
        with pytest.raises(SaleError, match="Customer not found"):
            sales_service.create_sale(caller_b, items=[_line(product_b, 1)], customer_id=customer_a.id)


class TestVoidSale:
    def test_void_restores_stock_and_points(self, db_session, caller_a, product_a, customer_a, admin_a):
        sale = sales_service.create_sale(caller_a, items=[_line(product_a, 1, "pack")], customer_id=customer_a.id)
        db_session.expire_all()
        assert product_a.quantity == 2
        assert customer_a.loyalty_points == 4

        voided = sales_service.void_sale(caller_a, sale.id, reason="Customer changed mind")
        assert voided.status == "voided"
        assert voided.voided_by_user_id == admin_a.id
        assert voided.void_reason == "Customer changed mind"

        db_session.expire_all()
        assert product_a.quantity == 5
        assert customer_a.loyalty_points == 0

    def test_second_void_fails(self, db_session, caller_a, product_a):
        sale = sales_service.create_sale(caller_a, items=[_line(product_a, 1)])
        sales_service.void_sale(caller_a, sale.id)
        with pytest.raises(SaleError, match="already voided"):
            sales_service.void_sale(caller_a, sale.id)

        db_session.expire_all()
        assert product_a.quantity == 5

    def test_cannot_void_other_store_sale(self, db_session, caller_a, caller_b, product_b):
        sale = sales_service.create_sale(caller_b, items=[_line(product_b, 1)])
        with pytest.raises(SaleError, match="Sale not found"):
            sales_service.void_sale(caller_a, sale.id)


class TestSalesRoutes:
    def test_create_and_fetch(self, client, db_session, sales_a_headers, product_a):
        resp = client.post(
            "/api/sales",
            json={
                "items": [{"product_id": product_a.id, "quantity": 2}],
                "payments": [{"method": "cash", "amount": 500}],
            },
            headers=sales_a_headers,
        )
        assert resp.status_code == 201, resp.get_json()
        sale = resp.get_json()
        assert sale["total_amount"] == 300.0
        assert sale["change_due"] == 200.0
        assert len(sale["items"]) == 1

        fetched = client.get(f"/api/sales/{sale['id']}", headers=sales_a_headers)
        assert fetched.status_code == 200

    @pytest.mark.parametrize(
        "body",
        [
            {},
            {"items": []},
            {"items": [{"product_id": 1, "quantity": 0}]},
            {"items": [{"product_id": 1, "quantity": 1, "unit_type": "crate"}]},
            {"items": [{"product_id": 1, "quantity": 1}], "payments": [{"method": "barter", "amount": 1}]},
            {"items": [{"product_id": 1, "quantity": 1}], "payments": [{"method": "cash", "amount": -5}]},
        ],
    )
    def test_invalid_sale_rejected(self, client, db_session, sales_a_headers, body):
        assert client.post("/api/sales", json=body, headers=sales_a_headers).status_code == 400

    def test_insufficient_stock_400_with_details(self, client, db_session, sales_a_headers, product_a):
        resp = client.post(
            "/api/sales", json={"items": [{"product_id": product_a.id, "quantity": 99}]}, headers=sales_a_headers,
        )
        assert resp.status_code == 400
        assert resp.get_json()["details"]["items"][0]["product_id"] == product_a.id

    def test_sales_role_cannot_void(self, client, db_session, sales_a_headers, admin_a_headers, product_a):
        sale_id = client.post(
            "/api/sales", json={"items": [{"product_id": product_a.id, "quantity": 1}]}, headers=sales_a_headers,
        ).get_json()["id"]

        assert client.post(f"/api/sales/{sale_id}/void", headers=sales_a_headers).status_code == 403
        assert client.post(f"/api/sales/{sale_id}/void", json={}, headers=admin_a_headers).status_code == 200
        assert client.post(f"/api/sales/{sale_id}/void", json={}, headers=admin_a_headers).status_code == 400
