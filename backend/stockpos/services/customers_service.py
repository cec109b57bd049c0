# Overview: Service-layer operations for customers; encapsulates business logic and database work.

from __future__ import annotations

from sqlalchemy import or_

from ..extensions import db
from ..models import Customer
from ..validation import ModelValidationPolicy
from .store_scope import get_scoped, resolve_store, scoped_query

CUSTOMER_POLICY = ModelValidationPolicy(
    writable_fields={"name", "email", "phone", "address", "is_active"},
    required_on_create={"name"},
)


def list_customers(caller, *, search: str | None = None, include_inactive: bool = False) -> list[Customer]:
    filters = {} if include_inactive else {"is_active": True}
    q = scoped_query(Customer, caller, **filters)
    if search:
        pattern = f"%{search.strip()}%"
        q = q.filter(or_(Customer.name.ilike(pattern), Customer.phone.ilike(pattern), Customer.email.ilike(pattern)))
    return q.order_by(Customer.name.asc(), Customer.id.asc()).all()


def get_customer(caller, customer_id: int) -> Customer | None:
    return get_scoped(Customer, caller, customer_id)


def create_customer(caller, *, patch: dict, store_id: int | None = None) -> Customer:
    store = resolve_store(caller, store_id)
    customer = Customer(store_id=store.id, **patch)
    db.session.add(customer)
    db.session.commit()
    return customer


def update_customer(caller, customer_id: int, patch: dict) -> Customer | None:
    customer = get_customer(caller, customer_id)
    if customer is None:
        return None
    for k, v in patch.items():
        setattr(customer, k, v)
    db.session.commit()
    return customer


def deactivate_customer(caller, customer_id: int) -> Customer | None:
    """Customers with sales history are kept; they are only hidden."""
    customer = get_customer(caller, customer_id)
    if customer is None:
        return None
    customer.is_active = False
    db.session.commit()
    return customer
