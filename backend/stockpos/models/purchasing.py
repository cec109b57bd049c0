from __future__ import annotations

from ..extensions import db
from stockpos.money_utils import to_json_amount
from stockpos.time_utils import to_utc_z


class Supplier(db.Model):
    __tablename__ = "suppliers"
    __table_args__ = (
        db.Index("ix_suppliers_store_name", "store_id", "name"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    store_id = db.Column(db.Integer, db.ForeignKey("stores.id"), nullable=False, index=True)

    name = db.Column(db.String(255), nullable=False)
    email = db.Column(db.String(255), nullable=False)
    phone = db.Column(db.String(32), nullable=True)
    address = db.Column(db.String(255), nullable=True)
    contact_person = db.Column(db.String(120), nullable=True)

    is_active = db.Column(db.Boolean, nullable=False, default=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    store = db.relationship("Store", backref=db.backref("suppliers", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "store_id": self.store_id,
            "name": self.name,
            "email": self.email,
            "phone": self.phone,
            "address": self.address,
            "contact_person": self.contact_person,
            "is_active": self.is_active,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class PurchaseOrder(db.Model):
    """
    Purchase order to a supplier.

    STATUS FLOW:
    pending -> approved -> ordered -> received
    any non-terminal status -> cancelled

    Moving to 'received' books every line into stock through the stock
    service, so received orders feed the weighted-average cost.
    """
    __tablename__ = "purchase_orders"
    __table_args__ = (
        db.UniqueConstraint("store_id", "order_number", name="uq_purchase_orders_store_number"),
        db.Index("ix_purchase_orders_store_status", "store_id", "status"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    store_id = db.Column(db.Integer, db.ForeignKey("stores.id"), nullable=False, index=True)
    supplier_id = db.Column(db.Integer, db.ForeignKey("suppliers.id"), nullable=False, index=True)
    created_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)

    order_number = db.Column(db.String(32), nullable=False)
    order_date = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    expected_delivery_date = db.Column(db.DateTime(timezone=True), nullable=True)
    received_at = db.Column(db.DateTime(timezone=True), nullable=True)

    status = db.Column(db.String(16), nullable=False, default="pending", index=True)
    total_amount = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    notes = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    supplier = db.relationship("Supplier", backref=db.backref("purchase_orders", lazy=True))
    items = db.relationship(
        "PurchaseOrderItem",
        backref="purchase_order",
        lazy=True,
        cascade="all, delete-orphan",
        order_by="PurchaseOrderItem.id",
    )

    def to_dict(self, include_items: bool = False) -> dict:
        data = {
            "id": self.id,
            "store_id": self.store_id,
            "supplier_id": self.supplier_id,
            "supplier_name": self.supplier.name if self.supplier else None,
            "created_by_user_id": self.created_by_user_id,
            "order_number": self.order_number,
            "order_date": to_utc_z(self.order_date),
            "expected_delivery_date": to_utc_z(self.expected_delivery_date),
            "received_at": to_utc_z(self.received_at),
            "status": self.status,
            "total_amount": to_json_amount(self.total_amount),
            "notes": self.notes,
            "created_at": to_utc_z(self.created_at),
        }
        if include_items:
            data["items"] = [item.to_dict() for item in self.items]
        return data


class PurchaseOrderItem(db.Model):
    __tablename__ = "purchase_order_items"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    purchase_order_id = db.Column(db.Integer, db.ForeignKey("purchase_orders.id"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)

    unit_type = db.Column(db.String(16), nullable=False, default="piece")
    quantity = db.Column(db.Integer, nullable=False)
    unit_price = db.Column(db.Numeric(10, 2), nullable=False)
    total_price = db.Column(db.Numeric(12, 2), nullable=False)

    product = db.relationship("Product")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "purchase_order_id": self.purchase_order_id,
            "product_id": self.product_id,
            "product_name": self.product.name if self.product else None,
            "unit_type": self.unit_type,
            "quantity": self.quantity,
            "unit_price": to_json_amount(self.unit_price),
            "total_price": to_json_amount(self.total_price),
        }
