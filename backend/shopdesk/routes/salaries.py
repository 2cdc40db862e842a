# Overview: Flask API routes for salary payments; parses input and returns JSON responses.

from flask import Blueprint, request, g

from ..services import salary_service
from ..validation import ValidationError, NotFoundError
from ..decorators import require_auth


salaries_bp = Blueprint("salaries", __name__, url_prefix="/api/salaries")


@salaries_bp.get("")
@require_auth
def list_payments_route():
    try:
        payments = salary_service.list_payments(
            g.shop_id,
            period=request.args.get("period"),
            employee_id=request.args.get("employee_id", type=int),
        )
    except ValidationError as e:
        return {"error": str(e)}, 400
    return {"payments": [p.to_dict() for p in payments], "count": len(payments)}


@salaries_bp.post("")
@require_auth
def record_payment_route():
    """Request body: {"employee_id": 1, "period": "2024-05", "amount_cents": 2500000, "notes": "..."}"""
    payload = request.get_json(silent=True) or {}
    employee_id = payload.get("employee_id")
    if not isinstance(employee_id, int) or isinstance(employee_id, bool):
        return {"error": "employee_id must be an integer"}, 400

    try:
        payment = salary_service.record_payment(g.shop_id, employee_id, payload)
    except NotFoundError as e:
        return {"error": str(e)}, 404
    except ValidationError as e:
        return {"error": str(e)}, 400

    return {"payment": payment.to_dict()}, 201


@salaries_bp.delete("/<int:payment_id>")
@require_auth
def delete_payment_route(payment_id: int):
    try:
        salary_service.delete_payment(g.shop_id, payment_id)
    except NotFoundError as e:
        return {"error": str(e)}, 404
    return {"message": "Salary payment deleted"}


@salaries_bp.get("/summary")
@require_auth
def salary_summary_route():
    """Query params: period=YYYY-MM (required)."""
    try:
        summary = salary_service.salary_summary(g.shop_id, request.args.get("period"))
    except ValidationError as e:
        return {"error": str(e)}, 400
    return {"period": request.args.get("period"), "employees": summary}
