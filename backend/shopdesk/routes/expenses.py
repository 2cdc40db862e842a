# Overview: Flask API routes for expenses and expense categories; parses input and returns JSON responses.

from flask import Blueprint, request, g

from ..services import expense_service
from ..validation import ValidationError, ConflictError, NotFoundError
from ..decorators import require_auth


expenses_bp = Blueprint("expenses", __name__, url_prefix="/api/expenses")


# =============================================================================
# CATEGORIES
# =============================================================================

@expenses_bp.get("/categories")
@require_auth
def list_categories_route():
    categories = expense_service.list_categories(g.shop_id)
    return {"categories": [c.to_dict() for c in categories]}


@expenses_bp.post("/categories")
@require_auth
def create_category_route():
    payload = request.get_json(silent=True) or {}

    try:
        category = expense_service.create_category(g.shop_id, payload.get("name"))
    except ValidationError as e:
        return {"error": str(e)}, 400
    except ConflictError as e:
        return {"error": str(e)}, 409

    return {"category": category.to_dict()}, 201


@expenses_bp.delete("/categories/<int:category_id>")
@require_auth
def delete_category_route(category_id: int):
    try:
        moved = expense_service.delete_category(g.shop_id, category_id)
    except NotFoundError as e:
        return {"error": str(e)}, 404
    return {"message": "Category deleted", "expenses_uncategorized": moved}


# =============================================================================
# RECORDS
# =============================================================================

@expenses_bp.get("/statistics")
@require_auth
def statistics_route():
    return expense_service.expense_statistics(g.current_shop)


@expenses_bp.get("")
@require_auth
def list_expenses_route():
    """
    Query params:
    - category_id: int (optional)
    - search: substring of the description (optional)
    - start, end: inclusive dates (optional)
    """
    try:
        expenses = expense_service.list_expenses(
            g.shop_id,
            category_id=request.args.get("category_id", type=int),
            search=request.args.get("search"),
            start=request.args.get("start"),
            end=request.args.get("end"),
        )
    except ValidationError as e:
        return {"error": str(e)}, 400

    return {
        "expenses": [e.to_dict() for e in expenses],
        "count": len(expenses),
        "total_amount_cents": sum(e.amount_cents for e in expenses),
    }


@expenses_bp.post("")
@require_auth
def create_expense_route():
    payload = request.get_json(silent=True) or {}

    try:
        expense = expense_service.create_expense(g.current_shop, payload)
    except NotFoundError as e:
        return {"error": str(e)}, 404
    except ValidationError as e:
        return {"error": str(e)}, 400

    return {"expense": expense.to_dict()}, 201


@expenses_bp.get("/<int:expense_id>")
@require_auth
def get_expense_route(expense_id: int):
    try:
        expense = expense_service.get_expense(g.shop_id, expense_id)
    except NotFoundError as e:
        return {"error": str(e)}, 404
    return {"expense": expense.to_dict()}


@expenses_bp.patch("/<int:expense_id>")
@require_auth
def update_expense_route(expense_id: int):
    payload = request.get_json(silent=True) or {}

    try:
        expense = expense_service.update_expense(g.shop_id, expense_id, payload)
    except NotFoundError as e:
        return {"error": str(e)}, 404
    except ValidationError as e:
        return {"error": str(e)}, 400

    return {"expense": expense.to_dict()}


@expenses_bp.delete("/<int:expense_id>")
@require_auth
def delete_expense_route(expense_id: int):
    try:
        expense_service.delete_expense(g.shop_id, expense_id)
    except NotFoundError as e:
        return {"error": str(e)}, 404
    return {"message": "Expense deleted"}
