from __future__ import annotations

from ..extensions import db
from stockpos.money_utils import to_json_amount
from stockpos.time_utils import to_utc_z


class Sale(db.Model):
    """
    Completed point-of-sale transaction.

    PAYMENTS: A sale may be settled by several tenders (split payment); each
    tender is a SalePayment row. amount_paid is their sum, change_due is the
    overpayment handed back, payment_status is derived from both.

    STATUS: completed -> voided. Voiding puts stock back and is final.
    """
    __tablename__ = "sales"
    __table_args__ = (
        db.Index("ix_sales_store_created", "store_id", "created_at"),
        db.Index("ix_sales_store_status", "store_id", "status"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    store_id = db.Column(db.Integer, db.ForeignKey("stores.id"), nullable=False, index=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)
    customer_id = db.Column(db.Integer, db.ForeignKey("customers.id"), nullable=True, index=True)

    subtotal = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    delivery_fee = db.Column(db.Numeric(10, 2), nullable=False, default=0)
    total_amount = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    amount_paid = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    change_due = db.Column(db.Numeric(12, 2), nullable=False, default=0)

    status = db.Column(db.String(16), nullable=False, default="completed")
    payment_status = db.Column(db.String(16), nullable=False, default="paid")

    voided_at = db.Column(db.DateTime(timezone=True), nullable=True)
    voided_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    void_reason = db.Column(db.String(255), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    user = db.relationship("User", foreign_keys=[user_id])
    customer = db.relationship("Customer", backref=db.backref("sales", lazy=True))
    items = db.relationship(
        "SaleItem",
        backref="sale",
        lazy=True,
        cascade="all, delete-orphan",
        order_by="SaleItem.id",
    )
    payments = db.relationship(
        "SalePayment",
        backref="sale",
        lazy=True,
        cascade="all, delete-orphan",
        order_by="SalePayment.id",
    )

    def to_dict(self, include_lines: bool = True) -> dict:
        data = {
            "id": self.id,
            "store_id": self.store_id,
            "user_id": self.user_id,
            "customer_id": self.customer_id,
            "customer_name": self.customer.name if self.customer else None,
            "subtotal": to_json_amount(self.subtotal),
            "delivery_fee": to_json_amount(self.delivery_fee),
            "total_amount": to_json_amount(self.total_amount),
            "amount_paid": to_json_amount(self.amount_paid),
            "change_due": to_json_amount(self.change_due),
            "status": self.status,
            "payment_status": self.payment_status,
            "voided_at": to_utc_z(self.voided_at),
            "void_reason": self.void_reason,
            "created_at": to_utc_z(self.created_at),
        }
        if include_lines:
            data["items"] = [item.to_dict() for item in self.items]
            data["payments"] = [p.to_dict() for p in self.payments]
        return data


class SaleItem(db.Model):
    __tablename__ = "sale_items"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    sale_id = db.Column(db.Integer, db.ForeignKey("sales.id"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)

    unit_type = db.Column(db.String(16), nullable=False, default="piece")
    quantity = db.Column(db.Integer, nullable=False)
    unit_price = db.Column(db.Numeric(10, 2), nullable=False)
    total = db.Column(db.Numeric(12, 2), nullable=False)

    # Buying cost of one unit_type unit at the time of sale (profit reporting)
    unit_cost = db.Column(db.Numeric(10, 2), nullable=False, default=0)

    product = db.relationship("Product")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "sale_id": self.sale_id,
            "product_id": self.product_id,
            "product_name": self.product.name if self.product else None,
            "unit_type": self.unit_type,
            "quantity": self.quantity,
            "unit_price": to_json_amount(self.unit_price),
            "total": to_json_amount(self.total),
            "unit_cost": to_json_amount(self.unit_cost),
        }


class SalePayment(db.Model):
    __tablename__ = "sale_payments"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    sale_id = db.Column(db.Integer, db.ForeignKey("sales.id"), nullable=False, index=True)

    # cash | mpesa | card | bank_transfer | credit
    method = db.Column(db.String(32), nullable=False)
    amount = db.Column(db.Numeric(12, 2), nullable=False)
    reference = db.Column(db.String(64), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "sale_id": self.sale_id,
            "method": self.method,
            "amount": to_json_amount(self.amount),
            "reference": self.reference,
        }
