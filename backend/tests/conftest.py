"""
Pytest fixtures for StockPOS backend tests.

Provides test database setup, two-store tenant fixtures, users for each role,
products and the bearer-token helpers used by HTTP tests.
"""

from decimal import Decimal

import pytest
from stockpos import create_app
from stockpos.extensions import db
from stockpos.models import Store, User, Product, Customer, Supplier
from stockpos.services.auth_service import hash_password
from stockpos.services.store_scope import Caller, Role

PASSWORD = "Password123!"


@pytest.fixture(scope='session')
def password_hash():
    """bcrypt is slow on purpose; hash the shared test password once."""
    return hash_password(PASSWORD)


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
    })

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def db_session(app):
    """Create fresh database for each test."""
    with app.app_context():
        # Clear all data but keep schema
        meta = db.metadata
        for table in reversed(meta.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()

        yield db.session

        # Cleanup after test
        db.session.rollback()


@pytest.fixture(scope='function')
def store_a(db_session):
    store = Store(name="Store A", subdomain="store-a")
    db_session.add(store)
    db_session.commit()
    return store


@pytest.fixture(scope='function')
def store_b(db_session):
    store = Store(name="Store B", subdomain="store-b")
    db_session.add(store)
    db_session.commit()
    return store


def make_user(db_session, password_hash, *, email, role, store_id):
    user = User(
        email=email,
        name=email.split("@")[0],
        password_hash=password_hash,
        role=role,
        store_id=store_id,
        is_active=True,
    )
    db_session.add(user)
    db_session.commit()
    return user


@pytest.fixture(scope='function')
def admin_a(db_session, store_a, password_hash):
    return make_user(db_session, password_hash, email="admin_a@store-a.test", role="admin", store_id=store_a.id)


@pytest.fixture(scope='function')
def admin_b(db_session, store_b, password_hash):
    return make_user(db_session, password_hash, email="admin_b@store-b.test", role="admin", store_id=store_b.id)


@pytest.fixture(scope='function')
def sales_a(db_session, store_a, password_hash):
    return make_user(db_session, password_hash, email="sales_a@store-a.test", role="sales", store_id=store_a.id)


@pytest.fixture(scope='function')
def super_admin(db_session, password_hash):
    return make_user(db_session, password_hash, email="root@stockpos.test", role="super_admin", store_id=None)


def caller_for(user) -> Caller:
    return Caller(role=Role(user.role), store_id=user.store_id, user_id=user.id)


@pytest.fixture(scope='function')
def caller_a(admin_a):
    return caller_for(admin_a)


@pytest.fixture(scope='function')
def caller_b(admin_b):
    return caller_for(admin_b)


@pytest.fixture(scope='function')
def caller_super(super_admin):
    return caller_for(super_admin)


def make_product(db_session, store, *, sku, name, quantity=0, piece_buying="0", piece_selling="0", min_quantity=0):
    buying = Decimal(piece_buying)
    selling = Decimal(piece_selling)
    product = Product(
        store_id=store.id,
        sku=sku,
        name=name,
        quantity=quantity,
        min_quantity=min_quantity,
        piece_buying_price=buying,
        pack_buying_price=buying * 3,
        dozen_buying_price=buying * 12,
        piece_selling_price=selling,
        pack_selling_price=selling * 3,
        dozen_selling_price=selling * 12,
    )
    db_session.add(product)
    db_session.commit()
    return product


@pytest.fixture(scope='function')
def product_a(db_session, store_a):
    """5 pieces on hand at 100.00 per piece, selling at 150.00."""
    return make_product(
        db_session, store_a, sku="PROD-A-001", name="Product A",
        quantity=5, piece_buying="100.00", piece_selling="150.00",
    )


@pytest.fixture(scope='function')
def product_b(db_session, store_b):
    return make_product(
        db_session, store_b, sku="PROD-B-001", name="Product B",
        quantity=10, piece_buying="20.00", piece_selling="30.00",
    )


@pytest.fixture(scope='function')
def customer_a(db_session, store_a):
    customer = Customer(store_id=store_a.id, name="Jane Wanjiru", phone="0700000001")
    db_session.add(customer)
    db_session.commit()
    return customer


@pytest.fixture(scope='function')
def supplier_a(db_session, store_a):
    supplier = Supplier(store_id=store_a.id, name="Acme Wholesale", email="orders@acme.test")
    db_session.add(supplier)
    db_session.commit()
    return supplier


@pytest.fixture(scope='function')
def supplier_b(db_session, store_b):
    supplier = Supplier(store_id=store_b.id, name="Beta Distributors", email="sales@beta.test")
    db_session.add(supplier)
    db_session.commit()
    return supplier


def get_auth_token(client, email: str, password: str = PASSWORD) -> str:
    """Log in through the API and return the bearer token."""
    response = client.post('/api/auth/login', json={'email': email, 'password': password})
    assert response.status_code == 200, response.get_json()
    return response.get_json()['token']


def auth_headers(client, user) -> dict:
    return {'Authorization': f'Bearer {get_auth_token(client, user.email)}'}


@pytest.fixture(scope='function')
def admin_a_headers(client, admin_a):
    return auth_headers(client, admin_a)


@pytest.fixture(scope='function')
def admin_b_headers(client, admin_b):
    return auth_headers(client, admin_b)


@pytest.fixture(scope='function')
def sales_a_headers(client, sales_a):
    return auth_headers(client, sales_a)


@pytest.fixture(scope='function')
def super_headers(client, super_admin):
    return auth_headers(client, super_admin)
