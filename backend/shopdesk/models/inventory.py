from __future__ import annotations

from ..extensions import db
from shopdesk.time_utils import to_utc_z


QUANTITY_UNITS = ("units", "kg")


class StockItem(db.Model):
    """
    Sellable product with a tracked on-hand quantity.

    Receipts reference stock by name only (no foreign key), so lookups from
    the reconciler are case-insensitive name matches within the shop.

    quantity is a float because loose goods are sold by the kg. It never goes
    below zero: sales clamp the decrement instead of rejecting the sale.
    """
    __tablename__ = "stock"
    __table_args__ = (
        db.Index("ix_stock_shop_name", "shop_id", "name"),
        db.Index("ix_stock_shop_category", "shop_id", "category"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    shop_id = db.Column(db.Integer, db.ForeignKey("shops.id"), nullable=False, index=True)

    name = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text, nullable=True)
    category = db.Column(db.String(120), nullable=True)

    # Authoritative storage in cents
    price_cents = db.Column(db.Integer, nullable=False, default=0)
    cost_price_cents = db.Column(db.Integer, nullable=False, default=0)

    quantity = db.Column(db.Float, nullable=False, default=0)
    quantity_unit = db.Column(db.String(16), nullable=False, default="units")

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    shop = db.relationship("Shop", backref=db.backref("stock_items", lazy=True, cascade="all, delete-orphan"))

    def __repr__(self) -> str:
        return f"<StockItem id={self.id} name={self.name!r} quantity={self.quantity} {self.quantity_unit}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "shop_id": self.shop_id,
            "name": self.name,
            "description": self.description,
            "category": self.category,
            "price_cents": self.price_cents,
            "cost_price_cents": self.cost_price_cents,
            "quantity": self.quantity,
            "quantity_unit": self.quantity_unit,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
