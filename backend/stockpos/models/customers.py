from __future__ import annotations

from ..extensions import db
from stockpos.time_utils import to_utc_z


class Customer(db.Model):
    """
    Store customer. Walk-in sales have no customer.

    loyalty_points accrue on completed sales and are given back on void.
    """
    __tablename__ = "customers"
    __table_args__ = (
        db.Index("ix_customers_store_name", "store_id", "name"),
        db.Index("ix_customers_store_phone", "store_id", "phone"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    store_id = db.Column(db.Integer, db.ForeignKey("stores.id"), nullable=False, index=True)

    name = db.Column(db.String(255), nullable=False)
    email = db.Column(db.String(255), nullable=True)
    phone = db.Column(db.String(32), nullable=True)
    address = db.Column(db.Text, nullable=True)

    loyalty_points = db.Column(db.Integer, nullable=False, default=0)
    is_active = db.Column(db.Boolean, nullable=False, default=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    store = db.relationship("Store", backref=db.backref("customers", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "store_id": self.store_id,
            "name": self.name,
            "email": self.email,
            "phone": self.phone,
            "address": self.address,
            "loyalty_points": self.loyalty_points,
            "is_active": self.is_active,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
