# Overview: Service-layer operations for salaries; payments per period and a monthly summary.

from __future__ import annotations

import re
from datetime import date, timedelta

from ..extensions import db
from ..models import AttendanceRecord, Employee, SalaryPayment
from ..models.staff import ATTENDANCE_STATUSES
from ..validation import NotFoundError, ValidationError, coerce_integer, enforce_amount_cents
from .employee_service import get_employee
from shopdesk.time_utils import parse_iso_datetime, utcnow


_PERIOD_RE = re.compile(r"^\d{4}-(0[1-9]|1[0-2])$")


def validate_period(period: str | None) -> str:
    period = (period or "").strip()
    if not _PERIOD_RE.match(period):
        raise ValidationError("period must be YYYY-MM")
    return period


def period_bounds(period: str) -> tuple[date, date]:
    """Inclusive first and last calendar day of a YYYY-MM period."""
    year, month = (int(part) for part in period.split("-"))
    first = date(year, month, 1)
    following = date(year + (month == 12), month % 12 + 1, 1)
    return first, following - timedelta(days=1)


def record_payment(shop_id: int, employee_id: int, payload: dict) -> SalaryPayment:
    employee = get_employee(shop_id, employee_id)

    period = validate_period(payload.get("period"))
    amount = coerce_integer("amount_cents", payload.get("amount_cents"))
    enforce_amount_cents("amount_cents", amount, allow_zero=False)

    paid_at = utcnow()
    if payload.get("paid_at"):
        try:
            paid_at = parse_iso_datetime(str(payload["paid_at"]))
        except ValueError:
            raise ValidationError("paid_at must be an ISO-8601 datetime")

    payment = SalaryPayment(
        shop_id=shop_id,
        employee_id=employee.id,
        period=period,
        amount_cents=amount,
        paid_at=paid_at,
        notes=(payload.get("notes") or "").strip() or None,
    )
    db.session.add(payment)
    db.session.commit()
    return payment


def list_payments(shop_id: int, period: str | None = None, employee_id: int | None = None) -> list[SalaryPayment]:
    query = db.session.query(SalaryPayment).filter(SalaryPayment.shop_id == shop_id)
    if period:
        query = query.filter(SalaryPayment.period == validate_period(period))
    if employee_id is not None:
        query = query.filter(SalaryPayment.employee_id == employee_id)
    return query.order_by(SalaryPayment.paid_at.desc(), SalaryPayment.id.desc()).all()


def delete_payment(shop_id: int, payment_id: int) -> None:
    payment = db.session.query(SalaryPayment).filter_by(id=payment_id, shop_id=shop_id).first()
    if not payment:
        raise NotFoundError("Salary payment not found")
    db.session.delete(payment)
    db.session.commit()


def salary_summary(shop_id: int, period: str) -> list[dict]:
    """
    One row per employee for the period: base salary, attendance counts,
    amount paid and the balance still owed.
    """
    period = validate_period(period)
    first, last = period_bounds(period)

    employees = db.session.query(Employee).filter_by(shop_id=shop_id).order_by(Employee.name.asc()).all()

    attendance_rows = (
        db.session.query(AttendanceRecord.employee_id, AttendanceRecord.status, db.func.count(AttendanceRecord.id))
        .filter(
            AttendanceRecord.shop_id == shop_id,
            AttendanceRecord.date >= first,
            AttendanceRecord.date <= last,
        )
        .group_by(AttendanceRecord.employee_id, AttendanceRecord.status)
        .all()
    )
    attendance: dict[int, dict] = {}
    for employee_id, status, count in attendance_rows:
        attendance.setdefault(employee_id, {s: 0 for s in ATTENDANCE_STATUSES})[status] = count

    paid_rows = (
        db.session.query(SalaryPayment.employee_id, db.func.sum(SalaryPayment.amount_cents))
        .filter(SalaryPayment.shop_id == shop_id, SalaryPayment.period == period)
        .group_by(SalaryPayment.employee_id)
        .all()
    )
    paid = {employee_id: int(total or 0) for employee_id, total in paid_rows}

    summary = []
    for employee in employees:
        paid_cents = paid.get(employee.id, 0)
        summary.append({
            "employee_id": employee.id,
            "name": employee.name,
            "position": employee.position,
            "period": period,
            "salary_cents": employee.salary_cents,
            "attendance": attendance.get(employee.id, {s: 0 for s in ATTENDANCE_STATUSES}),
            "paid_cents": paid_cents,
            "balance_cents": employee.salary_cents - paid_cents,
        })
    return summary
