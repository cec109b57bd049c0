from __future__ import annotations

from ..extensions import db
from stockpos.money_utils import to_json_amount
from stockpos.time_utils import to_utc_z


class Expense(db.Model):
    __tablename__ = "expenses"
    __table_args__ = (
        db.Index("ix_expenses_store_date", "store_id", "date"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    store_id = db.Column(db.Integer, db.ForeignKey("stores.id"), nullable=False, index=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)

    description = db.Column(db.String(255), nullable=False)
    amount = db.Column(db.Numeric(10, 2), nullable=False)
    category = db.Column(db.String(64), nullable=False)
    payment_method = db.Column(db.String(32), nullable=False, default="cash")
    date = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    user = db.relationship("User")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "store_id": self.store_id,
            "user_id": self.user_id,
            "description": self.description,
            "amount": to_json_amount(self.amount),
            "category": self.category,
            "payment_method": self.payment_method,
            "date": to_utc_z(self.date),
            "created_at": to_utc_z(self.created_at),
        }
