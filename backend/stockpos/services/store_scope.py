# Overview: Tenant (store) scoping of query predicates.

"""
Store Scope: Multi-Tenant Row Filtering

SECURITY INVARIANTS:
1. Non-super-admin callers only ever read or write rows of their own store.
2. A missing caller scopes to a store_id that matches nothing (default deny).
3. A client-supplied store_id never widens a non-super-admin's scope; it is
   overwritten with the caller's own store_id.

USAGE:
    from stockpos.services.store_scope import apply_store_scope, scoped_query

    where = apply_store_scope(g.caller, {"category_id": 5})
    products = scoped_query(Product, g.caller, is_active=True).all()
"""
from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Any

from ..extensions import db

# Guaranteed not to match any tenant
NO_STORE_ID = -1


class Role(str, Enum):
    SUPER_ADMIN = "super_admin"
    ADMIN = "admin"
    MANAGER = "manager"
    SALES = "sales"
    CLIENT = "client"

    def is_privileged(self) -> bool:
        """Privileged roles see every store."""
        return self is Role.SUPER_ADMIN

    @classmethod
    def parse(cls, value: Any) -> "Role | None":
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError:
            return None


class StoreContextError(ValueError):
    """Raised when a write cannot be attributed to a store."""


@dataclass(frozen=True)
class Caller:
    """
    Who is making the request, as far as tenancy is concerned.

    Built by @require_auth from the session; services receive it explicitly
    instead of reading flask.g themselves.
    """
    role: Role
    store_id: int | None
    user_id: int | None = None

    @property
    def is_privileged(self) -> bool:
        return self.role.is_privileged()


def _caller_field(caller: Any, field: str):
    if isinstance(caller, Mapping):
        return caller.get(field)
    return getattr(caller, field, None)


def caller_role(caller: Any) -> Role | None:
    if caller is None:
        return None
    return Role.parse(_caller_field(caller, "role"))


def apply_store_scope(caller: Any, predicate: Mapping | None = None) -> dict:
    """
    Return a copy of predicate constrained to the caller's store.

    - caller is None: store_id = NO_STORE_ID (matches nothing)
    - caller is super_admin: predicate unchanged
    - anyone else: store_id = caller.store_id (overwrites any given store_id)

    caller may be a Caller, any object with role/store_id attributes, or a
    mapping with those keys. Never raises.
    """
    scoped = dict(predicate or {})

    if caller is None:
        scoped["store_id"] = NO_STORE_ID
        return scoped

    role = caller_role(caller)
    if role is not None and role.is_privileged():
        return scoped

    scoped["store_id"] = _caller_field(caller, "store_id")
    return scoped


def scoped_query(model, caller: Any, **filters):
    """
    Base query for a store-owned model, filtered through apply_store_scope.

    Usage:
        scoped_query(Customer, g.caller, is_active=True).order_by(Customer.name)
    """
    return db.session.query(model).filter_by(**apply_store_scope(caller, filters))


def get_scoped(model, caller: Any, object_id: int):
    """Fetch one row by id within the caller's scope, or None."""
    return scoped_query(model, caller, id=object_id).first()


def resolve_store_id(caller: Any, requested_store_id: int | None = None) -> int:
    """
    Store a new row is written to.

    Super admins may target any store, falling back to their own store.
    Everyone else always writes to their own store, whatever they request.

    Raises StoreContextError when no store can be determined.
    """
    if caller is None:
        raise StoreContextError("Store context missing")

    role = caller_role(caller)
    own_store_id = _caller_field(caller, "store_id")

    if role is not None and role.is_privileged():
        store_id = requested_store_id or own_store_id
    else:
        store_id = own_store_id

    if not store_id:
        raise StoreContextError("Store context missing")
    return int(store_id)


def resolve_store(caller: Any, requested_store_id: int | None = None):
    """resolve_store_id plus an existence check; returns the Store row."""
    from ..models import Store

    store_id = resolve_store_id(caller, requested_store_id)
    store = db.session.get(Store, store_id)
    if store is None:
        raise StoreContextError("Store not found")
    return store
