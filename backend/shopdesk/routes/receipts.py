# Overview: Flask API routes for receipt operations; parses input and returns JSON responses.

# backend/shopdesk/routes/receipts.py
"""
Receipt routes.

Saving, deleting and returning all touch stock after the receipt write.
The reconciliation outcome is returned as "stock_sync" so the client can
surface lines that were skipped (unit mismatch, unknown item) or failed.
"""
from flask import Blueprint, request, g, current_app

from ..services import receipt_service
from ..services.receipt_service import ReceiptError
from ..validation import ValidationError, NotFoundError
from ..decorators import require_auth
from shopdesk.time_utils import get_zone, local_day_bounds, parse_iso_date


receipts_bp = Blueprint("receipts", __name__, url_prefix="/api/receipts")


def _date_window(start: str | None, end: str | None):
    """Inclusive local dates -> UTC-naive [start, end)."""
    zone = get_zone(g.current_shop.timezone)
    try:
        start_day = parse_iso_date(start) if start else None
        end_day = parse_iso_date(end) if end else None
    except ValueError:
        raise ValidationError("start/end must be ISO-8601 dates (YYYY-MM-DD)")

    try:
        start_dt = local_day_bounds(start_day, zone)[0] if start_day else None
        end_dt = local_day_bounds(end_day, zone)[1] if end_day else None
    except OverflowError:
        raise ValidationError("start/end is outside the supported date range")
    return start_dt, end_dt


@receipts_bp.get("")
@require_auth
def list_receipts_route():
    """
    Query params:
    - search: transaction id, cashier or manager (optional)
    - start, end: inclusive dates in the shop's timezone (optional)
    - sort: timestamp | total_amount_cents | transaction_id | cashier_name
    - direction: asc | desc (default desc)
    - limit: int (optional)
    """
    try:
        start_dt, end_dt = _date_window(request.args.get("start"), request.args.get("end"))
        receipts = receipt_service.list_receipts(
            g.shop_id,
            search=request.args.get("search"),
            start=start_dt,
            end=end_dt,
            sort=request.args.get("sort", "timestamp"),
            direction=request.args.get("direction", "desc"),
            limit=request.args.get("limit", type=int),
        )
    except ValidationError as e:
        return {"error": str(e)}, 400

    return {"receipts": [r.to_dict() for r in receipts], "count": len(receipts)}


@receipts_bp.post("")
@require_auth
def create_receipt_route():
    """
    Checkout.

    Request body:
    {
        "cashier_name": "...",
        "manager_name": "...",              // optional
        "items": [{"name", "price_cents", "quantity", "quantity_unit", "cost_price_cents"?}],
        "discount_cents": 0,
        "payment_method": "Cash",
        "cash_given_cents": 5000            // cash only; defaults to the total
    }
    """
    payload = request.get_json(silent=True) or {}

    try:
        receipt, stock_sync = receipt_service.save_receipt(g.current_shop, payload)
    except ValidationError as e:
        return {"error": str(e)}, 400
    except ReceiptError as e:
        return {"error": str(e)}, 409
    except Exception:
        current_app.logger.exception("Failed to save receipt")
        return {"error": "Internal server error"}, 500

    return {"receipt": receipt.to_dict(), "stock_sync": stock_sync.to_dict()}, 201


@receipts_bp.get("/<int:receipt_id>")
@require_auth
def get_receipt_route(receipt_id: int):
    try:
        receipt = receipt_service.get_receipt(g.shop_id, receipt_id)
    except NotFoundError as e:
        return {"error": str(e)}, 404
    return {"receipt": receipt.to_dict()}


@receipts_bp.patch("/<int:receipt_id>")
@require_auth
def update_receipt_route(receipt_id: int):
    """Header fields only: cashier_name, manager_name, payment_method."""
    payload = request.get_json(silent=True) or {}

    try:
        receipt = receipt_service.update_receipt(g.shop_id, receipt_id, payload)
    except NotFoundError as e:
        return {"error": str(e)}, 404
    except ValidationError as e:
        return {"error": str(e)}, 400

    return {"receipt": receipt.to_dict()}


@receipts_bp.delete("/<int:receipt_id>")
@require_auth
def delete_receipt_route(receipt_id: int):
    try:
        stock_sync = receipt_service.delete_receipt(g.shop_id, receipt_id)
    except NotFoundError as e:
        return {"error": str(e)}, 404
    except Exception:
        current_app.logger.exception("Failed to delete receipt")
        return {"error": "Internal server error"}, 500

    return {"message": "Receipt deleted", "stock_sync": stock_sync.to_dict()}


@receipts_bp.post("/<int:receipt_id>/returns")
@require_auth
def return_items_route(receipt_id: int):
    """
    Return items from a receipt.

    Request body: {"items": [{"name": "...", "quantity": 1}]}
    """
    payload = request.get_json(silent=True) or {}

    try:
        receipt, refund_cents, stock_sync = receipt_service.return_items(
            g.shop_id, receipt_id, payload.get("items")
        )
    except NotFoundError as e:
        return {"error": str(e)}, 404
    except (ValidationError, ReceiptError) as e:
        return {"error": str(e)}, 400
    except Exception:
        current_app.logger.exception("Failed to process return")
        return {"error": "Internal server error"}, 500

    return {
        "receipt": receipt.to_dict(),
        "refund_cents": refund_cents,
        "stock_sync": stock_sync.to_dict(),
    }
