# Overview: Service-layer operations for store (tenant) management.

"""
Store Management Service

Stores are tenants. Only super admins create stores or list all of them;
everyone else only ever sees their own store.
"""
from __future__ import annotations

from ..extensions import db
from ..models import Store
from ..validation import ConflictError, ValidationError
from .store_scope import caller_role


def _normalize_subdomain(value: str | None) -> str | None:
    if not value:
        return None
    sub = value.strip().lower()
    if not sub.replace("-", "").isalnum():
        raise ValidationError("subdomain may only contain letters, digits and '-'")
    return sub


def list_stores(caller) -> list[Store]:
    role = caller_role(caller)
    q = db.session.query(Store)
    if not (role and role.is_privileged()):
        q = q.filter(Store.id == (caller.store_id if caller else -1))
    return q.order_by(Store.name.asc()).all()


def get_store(caller, store_id: int) -> Store | None:
    role = caller_role(caller)
    if not (role and role.is_privileged()) and (caller is None or caller.store_id != store_id):
        return None
    return db.session.get(Store, store_id)


def create_store(*, name: str, subdomain: str | None = None, domain: str | None = None) -> Store:
    name = (name or "").strip()
    if not name:
        raise ValidationError("name is required")

    subdomain = _normalize_subdomain(subdomain)
    if subdomain and db.session.query(Store).filter_by(subdomain=subdomain).first():
        raise ConflictError(f"Subdomain '{subdomain}' is already taken")
    domain = domain.strip().lower() if domain else None
    if domain and db.session.query(Store).filter_by(domain=domain).first():
        raise ConflictError(f"Domain '{domain}' is already taken")

    store = Store(name=name, subdomain=subdomain, domain=domain)
    db.session.add(store)
    db.session.commit()
    return store
