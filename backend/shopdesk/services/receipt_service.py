# Overview: Service-layer operations for receipts; checkout, edits, deletes and returns.

"""
Receipt Service

WHY: A receipt is the record of a completed sale. It is written as one
document (header, shop snapshot and line items together) and every write
that changes what was sold is followed by a stock reconciliation.

ORDERING:
- save:   commit receipt  -> apply_sale(lines)
- delete: delete receipt  -> restore_stock(sold - returned)
- return: record returns  -> restore_stock(returned lines)

The receipt commit and the stock step are separate. A stock failure is
logged and reported back to the caller; the receipt write stands.

MONEY:
- All amounts are integer cents
- Line amount = price_cents * quantity, rounded half-up
- total = sum(line amounts) - discount_cents
"""

from __future__ import annotations

import uuid

from flask import current_app

from ..extensions import db
from ..models import Receipt, Shop
from ..models.inventory import QUANTITY_UNITS
from ..models.receipts import PAYMENT_METHODS
from ..validation import (
    NotFoundError,
    ValidationError,
    coerce_integer,
    coerce_number,
    enforce_amount_cents,
    round_cents,
)
from .stock_service import (
    ReconciliationResult,
    StockLine,
    apply_sale,
    name_key,
    restore_stock,
    stock_index,
)
from shopdesk.time_utils import parse_iso_datetime, to_utc_z, utcnow


HEADER_FIELDS = {"cashier_name", "manager_name", "payment_method"}

SORT_FIELDS = {
    "timestamp": Receipt.timestamp,
    "total_amount_cents": Receipt.total_amount_cents,
    "transaction_id": Receipt.transaction_id,
    "cashier_name": Receipt.cashier_name,
}

TRANSACTION_ID_ATTEMPTS = 5

MAX_LINE_QUANTITY = 1_000_000


class ReceiptError(Exception):
    """Raised for receipt operations that break a business rule."""
    pass


# =============================================================================
# CALCULATION
# =============================================================================

def line_amount_cents(item: dict) -> int:
    return round_cents(item["price_cents"] * item["quantity"])


def calculate_total(items: list[dict], discount_cents: int = 0) -> int:
    """Sum of price x quantity over the lines, less the discount."""
    subtotal = sum(line_amount_cents(item) for item in items)
    return subtotal - (discount_cents or 0)


def generate_transaction_id() -> str:
    """Short human-readable id: first 8 hex chars of a uuid4, upper-cased."""
    return uuid.uuid4().hex[:8].upper()


def _unique_transaction_id(shop_id: int) -> str:
    for _ in range(TRANSACTION_ID_ATTEMPTS):
        candidate = generate_transaction_id()
        exists = db.session.query(Receipt.id).filter_by(shop_id=shop_id, transaction_id=candidate).first()
        if not exists:
            return candidate
    raise ReceiptError("Could not allocate a transaction id")


# =============================================================================
# VALIDATION
# =============================================================================

def _check_quantity(name: str, quantity: float, unit: str) -> None:
    if quantity <= 0:
        raise ValidationError(f"Quantity for {name} must be greater than 0")
    if quantity > MAX_LINE_QUANTITY:
        raise ValidationError(f"Quantity for {name} cannot exceed {MAX_LINE_QUANTITY:,}")
    if unit == "units" and quantity != int(quantity):
        raise ValidationError(f"Quantity for {name} must be a whole number of units")


def _normalize_item(raw) -> dict:
    if not isinstance(raw, dict):
        raise ValidationError("Each item must be an object")

    name = str(raw.get("name") or "").strip()
    if not name:
        raise ValidationError("Each item requires a name")

    price_cents = coerce_integer("price_cents", raw.get("price_cents"))
    if price_cents <= 0:
        raise ValidationError(f"Price for {name} must be greater than 0")
    enforce_amount_cents("price_cents", price_cents)

    unit = raw.get("quantity_unit") or "units"
    if unit not in QUANTITY_UNITS:
        raise ValidationError(f"quantity_unit must be one of: {', '.join(QUANTITY_UNITS)}")

    quantity = coerce_number("quantity", raw.get("quantity"))
    _check_quantity(name, quantity, unit)
    if unit == "units":
        quantity = int(quantity)

    item = {
        "name": name,
        "price_cents": price_cents,
        "quantity": quantity,
        "quantity_unit": unit,
        "cost_price_cents": None,
    }

    cost = raw.get("cost_price_cents")
    if cost is not None:
        cost = coerce_integer("cost_price_cents", cost)
        enforce_amount_cents("cost_price_cents", cost)
        item["cost_price_cents"] = cost

    return item


def _fill_cost_prices(shop_id: int, items: list[dict]) -> None:
    """Missing cost prices come from the matching stock item, else 0."""
    if all(item["cost_price_cents"] is not None for item in items):
        return
    index = stock_index(shop_id)
    for item in items:
        if item["cost_price_cents"] is None:
            stock = index.get(name_key(item["name"]))
            item["cost_price_cents"] = stock.cost_price_cents if stock else 0


def _payment_method(value) -> str:
    method = value or "Cash"
    if method not in PAYMENT_METHODS:
        raise ValidationError(f"payment_method must be one of: {', '.join(PAYMENT_METHODS)}")
    return method


def _sale_lines(items: list[dict]) -> list[StockLine]:
    return [
        StockLine(name=i["name"], quantity=float(i["quantity"]), quantity_unit=i.get("quantity_unit"))
        for i in items
    ]


def _log_reconciliation(transaction_id: str, result: ReconciliationResult) -> None:
    for outcome in result.failed:
        current_app.logger.warning(
            "Receipt %s: stock %s failed for %r: %s",
            transaction_id, result.operation, outcome.name, outcome.reason,
        )


# =============================================================================
# STORE
# =============================================================================

def save_receipt(shop: Shop, payload: dict) -> tuple[Receipt, ReconciliationResult]:
    """
    Checkout: validate, compute totals, commit the receipt, then decrement
    stock.

    Raises:
        ValidationError: malformed payload, non-positive prices/quantities,
            discount above subtotal, cash given below total
    """
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    cashier_name = str(payload.get("cashier_name") or "").strip()
    if not cashier_name:
        raise ValidationError("cashier_name is required")

    raw_items = payload.get("items")
    if not isinstance(raw_items, list) or not raw_items:
        raise ValidationError("At least one item is required")
    items = [_normalize_item(raw) for raw in raw_items]

    discount_cents = coerce_integer("discount_cents", payload.get("discount_cents") or 0)
    enforce_amount_cents("discount_cents", discount_cents)
    if discount_cents > calculate_total(items):
        raise ValidationError("discount_cents cannot exceed the subtotal")

    total = calculate_total(items, discount_cents)
    enforce_amount_cents("total_amount_cents", total)
    payment_method = _payment_method(payload.get("payment_method"))

    cash_given = 0
    change = 0
    if payment_method == "Cash":
        raw_cash = payload.get("cash_given_cents")
        cash_given = total if raw_cash is None else coerce_integer("cash_given_cents", raw_cash)
        enforce_amount_cents("cash_given_cents", cash_given)
        if cash_given < total:
            raise ValidationError("cash_given_cents must cover the total amount")
        change = cash_given - total

    timestamp = utcnow()
    if payload.get("timestamp"):
        try:
            timestamp = parse_iso_datetime(str(payload["timestamp"]))
        except ValueError:
            raise ValidationError("timestamp must be an ISO-8601 datetime")

    _fill_cost_prices(shop.id, items)

    receipt = Receipt(
        shop_id=shop.id,
        transaction_id=_unique_transaction_id(shop.id),
        cashier_name=cashier_name,
        manager_name=(payload.get("manager_name") or "").strip() or None,
        shop_details=shop.details_snapshot(),
        items=items,
        total_amount_cents=total,
        discount_cents=discount_cents,
        payment_method=payment_method,
        cash_given_cents=cash_given,
        change_cents=change,
        timestamp=timestamp,
    )
    db.session.add(receipt)
    db.session.commit()

    result = apply_sale(shop.id, _sale_lines(items))
    _log_reconciliation(receipt.transaction_id, result)
    return receipt, result


def get_receipt(shop_id: int, receipt_id: int) -> Receipt:
    receipt = db.session.query(Receipt).filter_by(id=receipt_id, shop_id=shop_id).first()
    if not receipt:
        raise NotFoundError("Receipt not found")
    return receipt


def list_receipts(
    shop_id: int,
    search: str | None = None,
    start=None,
    end=None,
    sort: str = "timestamp",
    direction: str = "desc",
    limit: int | None = None,
) -> list[Receipt]:
    """
    Receipts for a shop. start/end are UTC-naive datetimes, end exclusive.
    search matches transaction id, cashier or manager name.
    """
    if sort not in SORT_FIELDS:
        raise ValidationError(f"sort must be one of: {', '.join(sorted(SORT_FIELDS))}")
    if direction not in ("asc", "desc"):
        raise ValidationError("direction must be asc or desc")

    query = db.session.query(Receipt).filter(Receipt.shop_id == shop_id)

    if search:
        pattern = f"%{search.strip()}%"
        query = query.filter(db.or_(
            Receipt.transaction_id.ilike(pattern),
            Receipt.cashier_name.ilike(pattern),
            Receipt.manager_name.ilike(pattern),
        ))
    if start is not None:
        query = query.filter(Receipt.timestamp >= start)
    if end is not None:
        query = query.filter(Receipt.timestamp < end)

    column = SORT_FIELDS[sort]
    query = query.order_by(column.asc() if direction == "asc" else column.desc(), Receipt.id.desc())

    if limit:
        query = query.limit(limit)
    return query.all()


def update_receipt(shop_id: int, receipt_id: int, patch: dict) -> Receipt:
    """Header edits only; lines and amounts are fixed once sold."""
    receipt = get_receipt(shop_id, receipt_id)

    if not isinstance(patch, dict):
        raise ValidationError("Invalid JSON payload")
    unknown = set(patch) - HEADER_FIELDS
    if unknown:
        raise ValidationError(f"Field not allowed: {', '.join(sorted(unknown))}")

    if "cashier_name" in patch:
        cashier_name = str(patch["cashier_name"] or "").strip()
        if not cashier_name:
            raise ValidationError("cashier_name cannot be blank")
        receipt.cashier_name = cashier_name
    if "manager_name" in patch:
        receipt.manager_name = (patch["manager_name"] or "").strip() or None
    if "payment_method" in patch:
        receipt.payment_method = _payment_method(patch["payment_method"])

    db.session.commit()
    return receipt


def _net_lines(receipt: Receipt) -> list[StockLine]:
    """Sold minus already-returned, per line."""
    return _sale_lines([i for i in receipt.net_items() if i["quantity"] > 0])


def delete_receipt(shop_id: int, receipt_id: int) -> ReconciliationResult:
    """Delete the receipt, then put back whatever it still holds out of stock."""
    receipt = get_receipt(shop_id, receipt_id)
    lines = _net_lines(receipt)
    transaction_id = receipt.transaction_id

    db.session.delete(receipt)
    db.session.commit()

    result = restore_stock(shop_id, lines)
    _log_reconciliation(transaction_id, result)
    return result


# =============================================================================
# RETURNS
# =============================================================================

def _sold_by_name(receipt: Receipt) -> dict[str, dict]:
    sold: dict[str, dict] = {}
    for item in receipt.items or []:
        key = name_key(item["name"])
        entry = sold.setdefault(key, {
            "name": item["name"],
            "quantity": 0.0,
            "quantity_unit": item.get("quantity_unit") or "units",
            "price_cents": item["price_cents"],
        })
        entry["quantity"] += float(item["quantity"])
    return sold


def return_items(shop_id: int, receipt_id: int, lines: list[dict]) -> tuple[Receipt, int, ReconciliationResult]:
    """
    Record a partial (or full) return against a receipt.

    Each line is {name, quantity}. The refund is the receipt's line price times
    the returned quantity, capped so the cumulative refund never exceeds what
    was paid.

    Returns (receipt, refund_cents, reconciliation).

    Raises:
        ReceiptError: item not on the receipt, or more returned than remains
    """
    receipt = get_receipt(shop_id, receipt_id)

    if not isinstance(lines, list) or not lines:
        raise ValidationError("At least one item to return is required")

    sold = _sold_by_name(receipt)
    already = receipt.returned_quantities()
    requested: dict[str, float] = {}
    returned_items = []

    for raw in lines:
        if not isinstance(raw, dict):
            raise ValidationError("Each returned item must be an object")
        name = str(raw.get("name") or "").strip()
        key = name_key(name)
        if key not in sold:
            raise ReceiptError(f"Item not on this receipt: {name}")

        entry = sold[key]
        quantity = coerce_number("quantity", raw.get("quantity"))
        _check_quantity(entry["name"], quantity, entry["quantity_unit"])

        requested[key] = requested.get(key, 0) + quantity
        remaining = entry["quantity"] - already.get(key, 0)
        if requested[key] > remaining + 1e-9:
            raise ReceiptError(
                f"Cannot return {requested[key]:g} of {entry['name']}; only {max(remaining, 0):g} remaining"
            )

        returned_items.append({
            "name": entry["name"],
            "quantity": int(quantity) if entry["quantity_unit"] == "units" else quantity,
            "quantity_unit": entry["quantity_unit"],
            "price_cents": entry["price_cents"],
            "amount_cents": round_cents(entry["price_cents"] * quantity),
        })

    refund = sum(i["amount_cents"] for i in returned_items)
    refund = min(refund, receipt.total_amount_cents - receipt.return_total_cents)

    previous = receipt.return_info or {}
    # JSON columns are reassigned, never mutated in place
    receipt.return_info = {
        "returned_items": list(previous.get("returned_items", [])) + returned_items,
        "return_total_cents": receipt.return_total_cents + refund,
        "returned_at": to_utc_z(utcnow()),
    }
    db.session.commit()

    result = restore_stock(shop_id, _sale_lines(returned_items))
    _log_reconciliation(receipt.transaction_id, result)
    return receipt, refund, result
