# Overview: Pytest coverage for tenant isolation behavior.

"""
Multi-Tenant Isolation Tests

SECURITY TESTS: Prove that a store A admin never sees or touches store B rows.

Cross-store reads and writes answer 404 exactly like rows that do not exist,
and a store_id supplied by the client never widens a non-super-admin scope.
"""

import pytest

from stockpos.models import Customer, Expense, Product
from stockpos.time_utils import utcnow


@pytest.fixture
def both_stores(db_session, product_a, product_b, supplier_a, supplier_b, admin_a, admin_b, store_a, store_b):
    db_session.add_all([
        Customer(store_id=store_a.id, name="Customer A"),
        Customer(store_id=store_b.id, name="Customer B"),
        Expense(store_id=store_a.id, user_id=admin_a.id, description="Rent A", amount=100, category="rent", date=utcnow()),
        Expense(store_id=store_b.id, user_id=admin_b.id, description="Rent B", amount=200, category="rent", date=utcnow()),
    ])
    db_session.commit()


class TestListEndpoints:
    @pytest.mark.parametrize(
        "path,name_key,expected",
        [
            ("/api/products", "name", ["Product A"]),
            ("/api/customers", "name", ["Customer A"]),
            ("/api/suppliers", "name", ["Acme Wholesale"]),
            ("/api/expenses", "description", ["Rent A"]),
        ],
    )
    def test_lists_only_own_store(self, client, both_stores, admin_a_headers, path, name_key, expected):
        resp = client.get(path, headers=admin_a_headers)
        assert resp.status_code == 200
        assert [row[name_key] for row in resp.get_json()["items"]] == expected

    def test_store_id_query_param_cannot_widen_scope(self, client, both_stores, admin_a_headers, store_b):
        resp = client.get(f"/api/products?store_id={store_b.id}", headers=admin_a_headers)
        assert [p["name"] for p in resp.get_json()["items"]] == ["Product A"]

    def test_super_admin_sees_every_store(self, client, both_stores, super_headers):
        resp = client.get("/api/products", headers=super_headers)
        assert {p["name"] for p in resp.get_json()["items"]} == {"Product A", "Product B"}

    def test_super_admin_can_narrow_to_a_store(self, client, both_stores, super_headers, store_b):
        resp = client.get(f"/api/products?store_id={store_b.id}", headers=super_headers)
        assert [p["name"] for p in resp.get_json()["items"]] == ["Product B"]

    def test_users_list_scoped(self, client, both_stores, admin_a_headers, admin_a):
        resp = client.get("/api/users", headers=admin_a_headers)
        assert [u["email"] for u in resp.get_json()["items"]] == [admin_a.email]


class TestDetailEndpoints:
    def test_foreign_product_read_update_delete_404(self, client, both_stores, admin_a_headers, product_b, db_session):
        assert client.get(f"/api/products/{product_b.id}", headers=admin_a_headers).status_code == 404
        assert client.put(
            f"/api/products/{product_b.id}", json={"name": "Hijacked"}, headers=admin_a_headers
        ).status_code == 404
        assert client.delete(f"/api/products/{product_b.id}", headers=admin_a_headers).status_code == 404

        db_session.expire_all()
        assert product_b.name == "Product B"
        assert product_b.is_active is True

    def test_foreign_supplier_404(self, client, both_stores, admin_a_headers, supplier_b):
        assert client.get(f"/api/suppliers/{supplier_b.id}", headers=admin_a_headers).status_code == 404

    def test_foreign_user_404(self, client, both_stores, admin_a_headers, admin_b):
        assert client.get(f"/api/users/{admin_b.id}", headers=admin_a_headers).status_code == 404
        assert client.delete(f"/api/users/{admin_b.id}", headers=admin_a_headers).status_code == 404

    def test_foreign_store_404(self, client, both_stores, admin_a_headers, store_a, store_b):
        assert client.get(f"/api/stores/{store_a.id}", headers=admin_a_headers).status_code == 200
        assert client.get(f"/api/stores/{store_b.id}", headers=admin_a_headers).status_code == 404


class TestWrites:
    def test_create_with_foreign_store_id_lands_in_own_store(
        self, client, both_stores, admin_a_headers, store_a, store_b, db_session
    ):
        resp = client.post(
            "/api/products",
            json={"sku": "NEW-1", "name": "New", "store_id": store_b.id},
            headers=admin_a_headers,
        )
        assert resp.status_code == 201
        assert resp.get_json()["store_id"] == store_a.id

        db_session.expire_all()
        assert db_session.query(Product).filter_by(sku="NEW-1").one().store_id == store_a.id

    def test_same_sku_allowed_in_different_stores(self, client, both_stores, admin_a_headers):
        resp = client.post("/api/products", json={"sku": "PROD-B-001", "name": "Clone"}, headers=admin_a_headers)
        assert resp.status_code == 201

    def test_duplicate_sku_in_same_store_conflicts(self, client, both_stores, admin_a_headers):
        resp = client.post("/api/products", json={"sku": "PROD-A-001", "name": "Dup"}, headers=admin_a_headers)
        assert resp.status_code == 409

    def test_sale_cannot_use_foreign_product(self, client, both_stores, admin_a_headers, product_b, db_session):
        resp = client.post(
            "/api/sales",
            json={"items": [{"product_id": product_b.id, "quantity": 1}]},
            headers=admin_a_headers,
        )
        assert resp.status_code == 404

        db_session.expire_all()
        assert product_b.quantity == 10

    def test_purchase_order_cannot_use_foreign_supplier(self, client, both_stores, admin_a_headers, supplier_b, product_a):
        resp = client.post(
            "/api/purchase-orders",
            json={
                "supplier_id": supplier_b.id,
                "items": [{"product_id": product_a.id, "quantity": 1, "unit_price": 10}],
            },
            headers=admin_a_headers,
        )
        assert resp.status_code == 404

    def test_stores_endpoint_super_admin_only(self, client, both_stores, admin_a_headers, super_headers):
        assert client.get("/api/stores", headers=admin_a_headers).status_code == 403
        assert client.post("/api/stores", json={"name": "X"}, headers=admin_a_headers).status_code == 403

        resp = client.post("/api/stores", json={"name": "Store C", "subdomain": "store-c"}, headers=super_headers)
        assert resp.status_code == 201
        listed = client.get("/api/stores", headers=super_headers).get_json()
        assert {s["name"] for s in listed["items"]} == {"Store A", "Store B", "Store C"}
