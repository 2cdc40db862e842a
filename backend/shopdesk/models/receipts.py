from __future__ import annotations

from ..extensions import db
from shopdesk.time_utils import to_utc_z


PAYMENT_METHODS = ("Cash", "Credit Card", "Debit Card", "Bank Transfer", "Mobile Payment")


class Receipt(db.Model):
    """
    A completed sale, stored as one self-contained document.

    Line items live in a JSON column (name, price_cents, quantity,
    quantity_unit, cost_price_cents) and the shop header is snapshotted at
    checkout, so later edits to stock or the shop profile never rewrite
    history.

    return_info is None until items are returned:
        {"returned_items": [{"name", "quantity", "quantity_unit", "price_cents", "amount_cents"}],
         "return_total_cents": int, "returned_at": iso}
    """
    __tablename__ = "receipts"
    __table_args__ = (
        db.Index("ix_receipts_shop_timestamp", "shop_id", "timestamp"),
        db.UniqueConstraint("shop_id", "transaction_id", name="uq_receipts_shop_transaction"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    shop_id = db.Column(db.Integer, db.ForeignKey("shops.id"), nullable=False, index=True)

    transaction_id = db.Column(db.String(16), nullable=False)
    cashier_name = db.Column(db.String(120), nullable=False)
    manager_name = db.Column(db.String(120), nullable=True)

    shop_details = db.Column(db.JSON, nullable=False, default=dict)
    items = db.Column(db.JSON, nullable=False, default=list)

    total_amount_cents = db.Column(db.Integer, nullable=False)
    discount_cents = db.Column(db.Integer, nullable=False, default=0)
    payment_method = db.Column(db.String(32), nullable=False, default="Cash")
    cash_given_cents = db.Column(db.Integer, nullable=False, default=0)
    change_cents = db.Column(db.Integer, nullable=False, default=0)

    return_info = db.Column(db.JSON, nullable=True)

    timestamp = db.Column(db.DateTime(timezone=True), nullable=False, index=True)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=True, onupdate=db.func.now())

    shop = db.relationship("Shop", backref=db.backref("receipts", lazy=True, cascade="all, delete-orphan"))

    def returned_quantities(self) -> dict[str, float]:
        """Returned quantity per lower-cased item name."""
        totals: dict[str, float] = {}
        for item in (self.return_info or {}).get("returned_items", []):
            key = item["name"].strip().lower()
            totals[key] = totals.get(key, 0) + float(item["quantity"])
        return totals

    def net_items(self) -> list[dict]:
        """
        Line items with quantity reduced by what has been returned. Returns
        are taken from the earliest lines carrying the same name.
        """
        remaining = self.returned_quantities()
        lines = []
        for item in self.items or []:
            key = item["name"].strip().lower()
            sold = float(item["quantity"])
            taken = min(sold, remaining.get(key, 0))
            if taken:
                remaining[key] -= taken
            lines.append({**item, "quantity": sold - taken})
        return lines

    @property
    def return_total_cents(self) -> int:
        return int((self.return_info or {}).get("return_total_cents", 0))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "shop_id": self.shop_id,
            "transaction_id": self.transaction_id,
            "cashier_name": self.cashier_name,
            "manager_name": self.manager_name,
            "shop_details": self.shop_details,
            "items": self.items,
            "total_amount_cents": self.total_amount_cents,
            "discount_cents": self.discount_cents,
            "payment_method": self.payment_method,
            "cash_given_cents": self.cash_given_cents,
            "change_cents": self.change_cents,
            "return_info": self.return_info,
            "net_amount_cents": self.total_amount_cents - self.return_total_cents,
            "timestamp": to_utc_z(self.timestamp),
            "updated_at": to_utc_z(self.updated_at),
        }
