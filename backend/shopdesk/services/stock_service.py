# Overview: Service-layer operations for stock; CRUD plus receipt-driven reconciliation.

"""
Stock Service

WHY: Stock quantities move for two reasons: direct edits by the shop, and
receipts. Receipts carry item names, not stock ids, so every receipt-driven
adjustment starts by matching names (case-insensitive) against the shop's
stock.

RECONCILIATION RULES:
- A line whose unit is empty or equals the stock item's unit is adjusted
- A unit mismatch (e.g. selling "kg" against an item tracked in "units")
  skips the line entirely
- A line with no matching stock item is skipped
- Sales clamp at zero: quantity = max(0, quantity - sold)
- Each item is its own read-modify-write commit; a failure on one item is
  reported and does not undo items already written
"""

from __future__ import annotations

from dataclasses import dataclass, field

from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from ..extensions import db
from ..models import StockItem
from ..validation import (
    ModelValidationPolicy,
    NotFoundError,
    ValidationError,
    coerce_number,
    enforce_rules_stock,
    validate_payload,
)
from .concurrency import lock_for_update, run_with_retry


STOCK_POLICY = ModelValidationPolicy(
    writable_fields={
        "name",
        "description",
        "category",
        "price_cents",
        "cost_price_cents",
        "quantity",
        "quantity_unit",
    },
    required_on_create={"name"},
)

# Quantities are floats (kg); round away binary noise on every write
QUANTITY_PRECISION = 3


class StockError(Exception):
    """Raised when a single stock adjustment cannot be applied."""
    pass


@dataclass
class StockLine:
    """One receipt line as seen by the reconciler."""
    name: str
    quantity: float
    quantity_unit: str | None = None

    @classmethod
    def from_item(cls, item: dict) -> "StockLine":
        if not isinstance(item, dict):
            raise ValidationError("Each line must be an object")
        name = str(item.get("name") or "").strip()
        if not name:
            raise ValidationError("Each line requires a name")
        quantity = coerce_number("quantity", item.get("quantity"))
        unit = item.get("quantity_unit") or None
        return cls(name=name, quantity=quantity, quantity_unit=unit)


@dataclass
class LineOutcome:
    name: str
    status: str  # adjusted | skipped | failed
    reason: str | None = None
    stock_item_id: int | None = None
    previous_quantity: float | None = None
    new_quantity: float | None = None

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "status": self.status,
            "reason": self.reason,
            "stock_item_id": self.stock_item_id,
            "previous_quantity": self.previous_quantity,
            "new_quantity": self.new_quantity,
        }


@dataclass
class ReconciliationResult:
    operation: str  # sale | restore
    outcomes: list[LineOutcome] = field(default_factory=list)

    def _with_status(self, status: str) -> list[LineOutcome]:
        return [o for o in self.outcomes if o.status == status]

    @property
    def adjusted(self) -> list[LineOutcome]:
        return self._with_status("adjusted")

    @property
    def skipped(self) -> list[LineOutcome]:
        return self._with_status("skipped")

    @property
    def failed(self) -> list[LineOutcome]:
        return self._with_status("failed")

    @property
    def ok(self) -> bool:
        return not self.failed

    def to_dict(self) -> dict:
        return {
            "operation": self.operation,
            "ok": self.ok,
            "lines": [o.to_dict() for o in self.outcomes],
        }


def name_key(name: str | None) -> str:
    return (name or "").strip().lower()


def _round_quantity(value: float) -> float:
    return round(float(value), QUANTITY_PRECISION)


# =============================================================================
# CRUD
# =============================================================================

def add_stock_item(shop_id: int, payload: dict) -> StockItem:
    patch = validate_payload(model=StockItem, payload=payload, policy=STOCK_POLICY, partial=False)
    enforce_rules_stock(patch)

    if "quantity" in patch:
        patch["quantity"] = _round_quantity(patch["quantity"])

    item = StockItem(shop_id=shop_id, **patch)
    db.session.add(item)
    db.session.commit()
    return item


def list_shop_stock(shop_id: int, search: str | None = None, category: str | None = None) -> list[StockItem]:
    """
    All stock items for a shop, ordered by name.

    Read failures are logged and answered with an empty list so screens that
    depend on stock keep working.
    """
    try:
        query = db.session.query(StockItem).filter(StockItem.shop_id == shop_id)
        if search:
            query = query.filter(StockItem.name.ilike(f"%{search.strip()}%"))
        if category:
            query = query.filter(StockItem.category == category)
        return query.order_by(StockItem.name.asc(), StockItem.id.asc()).all()
    except SQLAlchemyError:
        db.session.rollback()
        current_app.logger.exception("Failed to fetch stock for shop %s", shop_id)
        return []


def get_stock_item(shop_id: int, item_id: int) -> StockItem:
    item = db.session.query(StockItem).filter_by(id=item_id, shop_id=shop_id).first()
    if not item:
        raise NotFoundError("Stock item not found")
    return item


def update_stock_item(shop_id: int, item_id: int, payload: dict) -> StockItem:
    item = get_stock_item(shop_id, item_id)

    patch = validate_payload(model=StockItem, payload=payload, policy=STOCK_POLICY, partial=True)
    enforce_rules_stock(patch)

    for key, value in patch.items():
        if key == "quantity":
            value = _round_quantity(value)
        setattr(item, key, value)

    db.session.commit()
    return item


def delete_stock_item(shop_id: int, item_id: int) -> None:
    item = get_stock_item(shop_id, item_id)
    db.session.delete(item)
    db.session.commit()


def stock_index(shop_id: int) -> dict[str, StockItem]:
    """
    Lower-cased name -> first stock item with that name (lowest id wins).

    Database errors propagate (list_shop_stock is the one that swallows them).
    """
    items = (
        db.session.query(StockItem)
        .filter(StockItem.shop_id == shop_id)
        .order_by(StockItem.id.asc())
        .all()
    )
    index: dict[str, StockItem] = {}
    for item in items:
        index.setdefault(name_key(item.name), item)
    return index


def find_stock_item_by_name(shop_id: int, name: str) -> StockItem | None:
    return stock_index(shop_id).get(name_key(name))


# =============================================================================
# RECONCILIATION
# =============================================================================

def _units_compatible(line: StockLine, item: StockItem) -> bool:
    return not line.quantity_unit or line.quantity_unit == item.quantity_unit


def _adjust_quantity(item_id: int, delta: float) -> tuple[float, float]:
    """Re-read one item under a row lock, apply delta (clamped at zero), commit."""
    item = lock_for_update(db.session.query(StockItem).filter_by(id=item_id)).first()
    if item is None:
        raise StockError("Stock item no longer exists")

    previous = item.quantity or 0
    item.quantity = _round_quantity(max(0, previous + delta))
    db.session.commit()
    return previous, item.quantity


def _reconcile(shop_id: int, lines: list[StockLine], *, operation: str, sign: int) -> ReconciliationResult:
    result = ReconciliationResult(operation=operation)
    try:
        index = stock_index(shop_id)
    except SQLAlchemyError as exc:
        db.session.rollback()
        current_app.logger.warning("Stock %s could not read stock for shop %s: %s", operation, shop_id, exc)
        result.outcomes = [
            LineOutcome(name=line.name, status="failed", reason="stock_unavailable")
            for line in lines
        ]
        return result

    for line in lines:
        item = index.get(name_key(line.name))

        if item is None:
            result.outcomes.append(LineOutcome(name=line.name, status="skipped", reason="not_in_inventory"))
            continue

        if not _units_compatible(line, item):
            current_app.logger.debug(
                "Skipping %s for %r: unit %s does not match stock unit %s",
                operation, line.name, line.quantity_unit, item.quantity_unit,
            )
            result.outcomes.append(LineOutcome(
                name=line.name,
                status="skipped",
                reason="unit_mismatch",
                stock_item_id=item.id,
            ))
            continue

        item_id = item.id
        delta = sign * line.quantity
        try:
            previous, new = run_with_retry(lambda: _adjust_quantity(item_id, delta))
        except (SQLAlchemyError, StockError) as exc:
            db.session.rollback()
            current_app.logger.warning(
                "Stock %s failed for %r (item %s) in shop %s: %s",
                operation, line.name, item_id, shop_id, exc,
            )
            result.outcomes.append(LineOutcome(
                name=line.name,
                status="failed",
                reason=str(exc),
                stock_item_id=item_id,
            ))
            continue

        result.outcomes.append(LineOutcome(
            name=line.name,
            status="adjusted",
            stock_item_id=item_id,
            previous_quantity=previous,
            new_quantity=new,
        ))

    return result


def apply_sale(shop_id: int, lines: list[StockLine]) -> ReconciliationResult:
    """Decrement stock for sold lines: quantity = max(0, quantity - sold)."""
    return _reconcile(shop_id, lines, operation="sale", sign=-1)


def restore_stock(shop_id: int, lines: list[StockLine]) -> ReconciliationResult:
    """Put quantities back after a receipt delete or a return."""
    return _reconcile(shop_id, lines, operation="restore", sign=1)


def check_availability(shop_id: int, lines: list[StockLine]) -> list[dict]:
    """
    Pre-checkout check. Advisory only: saving a receipt never rejects an
    over-sell, it clamps.
    """
    index = stock_index(shop_id)
    issues = []
    for line in lines:
        item = index.get(name_key(line.name))
        if item is None:
            issues.append({"name": line.name, "error": "itemNotInInventory"})
        elif item.quantity < line.quantity:
            issues.append({
                "name": line.name,
                "error": "insufficientQuantity",
                "available": item.quantity,
            })
    return issues
