# Overview: Flask API routes for stock operations; parses input and returns JSON responses.

# backend/shopdesk/routes/stock.py
"""
Stock management routes.

TENANCY: Every route is scoped to g.shop_id (set by @require_auth).
Stock quantities also move as a side effect of receipts; see receipts.py.
"""
from flask import Blueprint, request, g

from ..services import stock_service
from ..services.stock_service import StockLine
from ..validation import ValidationError, NotFoundError
from ..decorators import require_auth


stock_bp = Blueprint("stock", __name__, url_prefix="/api/stock")


@stock_bp.get("")
@require_auth
def list_stock_route():
    """
    Query params:
    - search: substring match on name (optional)
    - category: exact category (optional)
    """
    items = stock_service.list_shop_stock(
        g.shop_id,
        search=request.args.get("search"),
        category=request.args.get("category"),
    )
    return {"items": [i.to_dict() for i in items], "count": len(items)}


@stock_bp.post("")
@require_auth
def create_stock_route():
    payload = request.get_json(silent=True) or {}

    try:
        item = stock_service.add_stock_item(g.shop_id, payload)
    except ValidationError as e:
        return {"error": str(e)}, 400

    return {"item": item.to_dict()}, 201


@stock_bp.get("/<int:item_id>")
@require_auth
def get_stock_route(item_id: int):
    try:
        item = stock_service.get_stock_item(g.shop_id, item_id)
    except NotFoundError as e:
        return {"error": str(e)}, 404
    return {"item": item.to_dict()}


@stock_bp.patch("/<int:item_id>")
@require_auth
def update_stock_route(item_id: int):
    payload = request.get_json(silent=True) or {}

    try:
        item = stock_service.update_stock_item(g.shop_id, item_id, payload)
    except NotFoundError as e:
        return {"error": str(e)}, 404
    except ValidationError as e:
        return {"error": str(e)}, 400

    return {"item": item.to_dict()}


@stock_bp.delete("/<int:item_id>")
@require_auth
def delete_stock_route(item_id: int):
    try:
        stock_service.delete_stock_item(g.shop_id, item_id)
    except NotFoundError as e:
        return {"error": str(e)}, 404
    return {"message": "Stock item deleted"}


@stock_bp.post("/check")
@require_auth
def check_availability_route():
    """
    Pre-checkout availability check.

    Request body: {"items": [{"name": "...", "quantity": 2}]}
    Response: {"available": bool, "issues": [...]}
    """
    payload = request.get_json(silent=True) or {}
    raw_items = payload.get("items")
    if not isinstance(raw_items, list):
        return {"error": "items must be a list"}, 400

    try:
        lines = [StockLine.from_item(raw) for raw in raw_items]
    except ValidationError as e:
        return {"error": str(e)}, 400

    issues = stock_service.check_availability(g.shop_id, lines)
    return {"available": not issues, "issues": issues}
