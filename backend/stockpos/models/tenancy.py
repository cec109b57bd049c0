from __future__ import annotations

from ..extensions import db
from stockpos.time_utils import to_utc_z


class Store(db.Model):
    """
    Multi-tenant root: every tenant is a Store.

    All business rows (products, customers, suppliers, sales, expenses,
    purchase orders, users) carry store_id. Queries from non-super-admin
    callers must always be filtered by the caller's store_id
    (see services/store_scope.py).
    """
    __tablename__ = "stores"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(120), nullable=False)
    domain = db.Column(db.String(255), nullable=True, unique=True)
    subdomain = db.Column(db.String(64), nullable=True, unique=True, index=True)

    created_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
    )
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    def __repr__(self) -> str:
        return f"<Store id={self.id} name={self.name!r}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "domain": self.domain,
            "subdomain": self.subdomain,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
