# Overview: Service-layer operations for employees; CRUD scoped to the shop.

from __future__ import annotations

from ..extensions import db
from ..models import Employee, Shop
from ..validation import (
    ModelValidationPolicy,
    NotFoundError,
    enforce_rules_employee,
    validate_payload,
)
from shopdesk.time_utils import get_zone, local_today


EMPLOYEE_POLICY = ModelValidationPolicy(
    writable_fields={
        "name",
        "position",
        "contact",
        "email",
        "address",
        "joining_date",
        "salary_cents",
    },
    required_on_create={"name", "position", "contact"},
)


def create_employee(shop: Shop, payload: dict) -> Employee:
    patch = validate_payload(model=Employee, payload=payload, policy=EMPLOYEE_POLICY, partial=False)
    enforce_rules_employee(patch)

    if patch.get("joining_date") is None:
        patch["joining_date"] = local_today(get_zone(shop.timezone))
    if patch.get("salary_cents") is None:
        patch["salary_cents"] = 0

    employee = Employee(shop_id=shop.id, **patch)
    db.session.add(employee)
    db.session.commit()
    return employee


def list_employees(shop_id: int, search: str | None = None) -> list[Employee]:
    query = db.session.query(Employee).filter(Employee.shop_id == shop_id)
    if search:
        pattern = f"%{search.strip()}%"
        query = query.filter(db.or_(Employee.name.ilike(pattern), Employee.position.ilike(pattern)))
    return query.order_by(Employee.name.asc(), Employee.id.asc()).all()


def get_employee(shop_id: int, employee_id: int) -> Employee:
    employee = db.session.query(Employee).filter_by(id=employee_id, shop_id=shop_id).first()
    if not employee:
        raise NotFoundError("Employee not found")
    return employee


def update_employee(shop_id: int, employee_id: int, payload: dict) -> Employee:
    employee = get_employee(shop_id, employee_id)

    patch = validate_payload(model=Employee, payload=payload, policy=EMPLOYEE_POLICY, partial=True)
    enforce_rules_employee(patch)

    for key, value in patch.items():
        setattr(employee, key, value)

    db.session.commit()
    return employee


def delete_employee(shop_id: int, employee_id: int) -> None:
    """Attendance and salary payments go with the employee."""
    employee = get_employee(shop_id, employee_id)
    db.session.delete(employee)
    db.session.commit()
