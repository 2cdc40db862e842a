# Overview: Service-layer operations for attendance; one mark per employee per day.

from __future__ import annotations

from datetime import date

from ..extensions import db
from ..models import AttendanceRecord
from ..models.staff import ATTENDANCE_STATUSES
from ..validation import NotFoundError, ValidationError
from .employee_service import get_employee
from shopdesk.time_utils import parse_iso_date


def _parse_day(value) -> date:
    if isinstance(value, date):
        return value
    try:
        day = parse_iso_date(value) if isinstance(value, str) else None
    except ValueError:
        day = None
    if day is None:
        raise ValidationError("date must be an ISO-8601 date (YYYY-MM-DD)")
    return day


def mark_attendance(
    shop_id: int,
    employee_id: int,
    day,
    status: str,
    notes: str | None = None,
) -> tuple[AttendanceRecord, bool]:
    """
    Upsert the mark for (employee, day).

    Returns (record, created).
    """
    if status not in ATTENDANCE_STATUSES:
        raise ValidationError(f"status must be one of: {', '.join(ATTENDANCE_STATUSES)}")

    employee = get_employee(shop_id, employee_id)
    day = _parse_day(day)

    record = db.session.query(AttendanceRecord).filter_by(employee_id=employee.id, date=day).first()
    created = record is None
    if created:
        record = AttendanceRecord(shop_id=shop_id, employee_id=employee.id, date=day)
        db.session.add(record)

    record.status = status
    record.notes = (notes or "").strip() or None
    db.session.commit()
    return record, created


def list_attendance(
    shop_id: int,
    day=None,
    employee_id: int | None = None,
    start=None,
    end=None,
) -> list[AttendanceRecord]:
    """Filter by a single day or an inclusive [start, end] date range."""
    query = db.session.query(AttendanceRecord).filter(AttendanceRecord.shop_id == shop_id)
    if day is not None:
        query = query.filter(AttendanceRecord.date == _parse_day(day))
    if start is not None:
        query = query.filter(AttendanceRecord.date >= _parse_day(start))
    if end is not None:
        query = query.filter(AttendanceRecord.date <= _parse_day(end))
    if employee_id is not None:
        query = query.filter(AttendanceRecord.employee_id == employee_id)
    return query.order_by(AttendanceRecord.date.desc(), AttendanceRecord.employee_id.asc()).all()


def delete_attendance(shop_id: int, record_id: int) -> None:
    record = db.session.query(AttendanceRecord).filter_by(id=record_id, shop_id=shop_id).first()
    if not record:
        raise NotFoundError("Attendance record not found")
    db.session.delete(record)
    db.session.commit()
