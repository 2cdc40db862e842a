# Overview: Flask API routes for employee operations; parses input and returns JSON responses.

from flask import Blueprint, request, g

from ..services import employee_service
from ..validation import ValidationError, NotFoundError
from ..decorators import require_auth


employees_bp = Blueprint("employees", __name__, url_prefix="/api/employees")


@employees_bp.get("")
@require_auth
def list_employees_route():
    employees = employee_service.list_employees(g.shop_id, search=request.args.get("search"))
    return {"employees": [e.to_dict() for e in employees], "count": len(employees)}


@employees_bp.post("")
@require_auth
def create_employee_route():
    """
    Required: name, position, contact.
    joining_date defaults to today in the shop's timezone; salary_cents to 0.
    """
    payload = request.get_json(silent=True) or {}

    try:
        employee = employee_service.create_employee(g.current_shop, payload)
    except ValidationError as e:
        return {"error": str(e)}, 400

    return {"employee": employee.to_dict()}, 201


@employees_bp.get("/<int:employee_id>")
@require_auth
def get_employee_route(employee_id: int):
    try:
        employee = employee_service.get_employee(g.shop_id, employee_id)
    except NotFoundError as e:
        return {"error": str(e)}, 404
    return {"employee": employee.to_dict()}


@employees_bp.patch("/<int:employee_id>")
@require_auth
def update_employee_route(employee_id: int):
    payload = request.get_json(silent=True) or {}

    try:
        employee = employee_service.update_employee(g.shop_id, employee_id, payload)
    except NotFoundError as e:
        return {"error": str(e)}, 404
    except ValidationError as e:
        return {"error": str(e)}, 400

    return {"employee": employee.to_dict()}


@employees_bp.delete("/<int:employee_id>")
@require_auth
def delete_employee_route(employee_id: int):
    try:
        employee_service.delete_employee(g.shop_id, employee_id)
    except NotFoundError as e:
        return {"error": str(e)}, 404
    return {"message": "Employee deleted"}
