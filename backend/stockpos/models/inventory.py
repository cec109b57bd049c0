from __future__ import annotations

from ..extensions import db
from stockpos.money_utils import to_json_amount
from stockpos.time_utils import to_utc_z


class Category(db.Model):
    __tablename__ = "categories"
    __table_args__ = (
        db.UniqueConstraint("store_id", "name", name="uq_categories_store_name"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    store_id = db.Column(db.Integer, db.ForeignKey("stores.id"), nullable=False, index=True)
    name = db.Column(db.String(120), nullable=False)
    description = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    store = db.relationship("Store", backref=db.backref("categories", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "store_id": self.store_id,
            "name": self.name,
            "description": self.description,
            "created_at": to_utc_z(self.created_at),
        }


class Product(db.Model):
    """
    Product master data with three units of measure.

    MULTI-TENANT: Products are scoped to stores via store_id.

    UNITS:
    - quantity is always held in pieces
    - a pack is 3 pieces, a dozen is 12 pieces
    - after any cost update, pack/dozen buying prices are 3x / 12x the piece
      buying price (see services/pricing.py)

    Products are never deleted; DELETE deactivates them (is_active=False)
    because sale and purchase order lines keep referencing them.
    """
    __tablename__ = "products"
    __table_args__ = (
        db.UniqueConstraint("store_id", "sku", name="uq_products_store_sku"),
        db.UniqueConstraint("store_id", "barcode", name="uq_products_store_barcode"),
        db.Index("ix_products_store_name", "store_id", "name"),
        db.Index("ix_products_store_active", "store_id", "is_active"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    store_id = db.Column(db.Integer, db.ForeignKey("stores.id"), nullable=False, index=True)
    category_id = db.Column(db.Integer, db.ForeignKey("categories.id"), nullable=True, index=True)

    sku = db.Column(db.String(64), nullable=False)
    barcode = db.Column(db.String(64), nullable=True)
    name = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text, nullable=True)

    piece_buying_price = db.Column(db.Numeric(10, 2), nullable=False, default=0)
    piece_selling_price = db.Column(db.Numeric(10, 2), nullable=False, default=0)
    pack_buying_price = db.Column(db.Numeric(10, 2), nullable=False, default=0)
    pack_selling_price = db.Column(db.Numeric(10, 2), nullable=False, default=0)
    dozen_buying_price = db.Column(db.Numeric(10, 2), nullable=False, default=0)
    dozen_selling_price = db.Column(db.Numeric(10, 2), nullable=False, default=0)

    # On-hand quantity in pieces
    quantity = db.Column(db.Integer, nullable=False, default=0)
    min_quantity = db.Column(db.Integer, nullable=False, default=0)

    is_active = db.Column(db.Boolean, nullable=False, default=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    store = db.relationship("Store", backref=db.backref("products", lazy=True))
    category = db.relationship("Category", backref=db.backref("products", lazy=True))

    def __repr__(self) -> str:
        return f"<Product id={self.id} sku={self.sku!r} name={self.name!r} store_id={self.store_id}>"

    @property
    def is_low_stock(self) -> bool:
        return (self.quantity or 0) <= (self.min_quantity or 0)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "store_id": self.store_id,
            "category_id": self.category_id,
            "sku": self.sku,
            "barcode": self.barcode,
            "name": self.name,
            "description": self.description,
            "piece_buying_price": to_json_amount(self.piece_buying_price),
            "piece_selling_price": to_json_amount(self.piece_selling_price),
            "pack_buying_price": to_json_amount(self.pack_buying_price),
            "pack_selling_price": to_json_amount(self.pack_selling_price),
            "dozen_buying_price": to_json_amount(self.dozen_buying_price),
            "dozen_selling_price": to_json_amount(self.dozen_selling_price),
            "quantity": self.quantity,
            "min_quantity": self.min_quantity,
            "is_low_stock": self.is_low_stock,
            "is_active": self.is_active,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class StockLog(db.Model):
    """
    Append-only audit row for every stock receipt or adjustment.

    quantity_added and unit_cost are per piece so logs from receipts in
    different units aggregate cleanly; unit_type records what was entered.
    """
    __tablename__ = "stock_logs"
    __table_args__ = (
        db.Index("ix_stock_logs_store_date", "store_id", "date"),
        db.Index("ix_stock_logs_store_product", "store_id", "product_id"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    store_id = db.Column(db.Integer, db.ForeignKey("stores.id"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)
    purchase_order_id = db.Column(db.Integer, db.ForeignKey("purchase_orders.id"), nullable=True)

    # manual_receive | bulk_receive | purchase_order | adjustment (signed quantity)
    type = db.Column(db.String(32), nullable=False, default="manual_receive")
    unit_type = db.Column(db.String(16), nullable=False, default="piece")

    quantity_added = db.Column(db.Integer, nullable=False)
    unit_cost = db.Column(db.Numeric(10, 2), nullable=False)
    total_cost = db.Column(db.Numeric(12, 2), nullable=False)

    notes = db.Column(db.Text, nullable=True)
    date = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), index=True)

    product = db.relationship("Product", backref=db.backref("stock_logs", lazy=True))
    user = db.relationship("User")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "store_id": self.store_id,
            "product_id": self.product_id,
            "product_name": self.product.name if self.product else None,
            "user_id": self.user_id,
            "purchase_order_id": self.purchase_order_id,
            "type": self.type,
            "unit_type": self.unit_type,
            "quantity_added": self.quantity_added,
            "unit_cost": to_json_amount(self.unit_cost),
            "total_cost": to_json_amount(self.total_cost),
            "notes": self.notes,
            "date": to_utc_z(self.date),
        }
