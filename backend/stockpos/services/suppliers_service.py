# Overview: Service-layer operations for suppliers; encapsulates business logic and database work.

from __future__ import annotations

from ..extensions import db
from ..models import Supplier
from ..validation import ModelValidationPolicy
from .store_scope import get_scoped, resolve_store, scoped_query

SUPPLIER_POLICY = ModelValidationPolicy(
    writable_fields={"name", "email", "phone", "address", "contact_person", "is_active"},
    required_on_create={"name", "email"},
)


def list_suppliers(caller, *, include_inactive: bool = False) -> list[Supplier]:
    filters = {} if include_inactive else {"is_active": True}
    return scoped_query(Supplier, caller, **filters).order_by(Supplier.name.asc(), Supplier.id.asc()).all()


def get_supplier(caller, supplier_id: int) -> Supplier | None:
    return get_scoped(Supplier, caller, supplier_id)


def create_supplier(caller, *, patch: dict, store_id: int | None = None) -> Supplier:
    store = resolve_store(caller, store_id)
    supplier = Supplier(store_id=store.id, **patch)
    db.session.add(supplier)
    db.session.commit()
    return supplier


def update_supplier(caller, supplier_id: int, patch: dict) -> Supplier | None:
    supplier = get_supplier(caller, supplier_id)
    if supplier is None:
        return None
    for k, v in patch.items():
        setattr(supplier, k, v)
    db.session.commit()
    return supplier


def deactivate_supplier(caller, supplier_id: int) -> Supplier | None:
    supplier = get_supplier(caller, supplier_id)
    if supplier is None:
        return None
    supplier.is_active = False
    db.session.commit()
    return supplier
