from __future__ import annotations

from ..extensions import db
from shopdesk.time_utils import to_utc_z, to_iso_date


class ExpenseCategory(db.Model):
    __tablename__ = "expense_categories"
    __table_args__ = (
        db.UniqueConstraint("shop_id", "name", name="uq_expense_categories_shop_name"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    shop_id = db.Column(db.Integer, db.ForeignKey("shops.id"), nullable=False, index=True)
    name = db.Column(db.String(120), nullable=False)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "shop_id": self.shop_id,
            "name": self.name,
            "created_at": to_utc_z(self.created_at),
        }


class Expense(db.Model):
    """
    Shop expense record.

    category_id is nullable: deleting a category leaves its expenses in
    place as "Uncategorized".
    """
    __tablename__ = "expenses"
    __table_args__ = (
        db.Index("ix_expenses_shop_date", "shop_id", "expense_date"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    shop_id = db.Column(db.Integer, db.ForeignKey("shops.id"), nullable=False, index=True)
    category_id = db.Column(db.Integer, db.ForeignKey("expense_categories.id"), nullable=True, index=True)

    description = db.Column(db.String(255), nullable=False)
    amount_cents = db.Column(db.Integer, nullable=False)
    expense_date = db.Column(db.Date, nullable=False)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=True, onupdate=db.func.now())

    category = db.relationship("ExpenseCategory", backref=db.backref("expenses", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "shop_id": self.shop_id,
            "category_id": self.category_id,
            "category_name": self.category.name if self.category else "Uncategorized",
            "description": self.description,
            "amount_cents": self.amount_cents,
            "expense_date": to_iso_date(self.expense_date),
            "created_at": to_utc_z(self.created_at),
        }
