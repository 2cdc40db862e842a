# Overview: Flask API routes for attendance; parses input and returns JSON responses.

from flask import Blueprint, request, g

from ..services import attendance_service
from ..validation import ValidationError, NotFoundError
from ..decorators import require_auth


attendance_bp = Blueprint("attendance", __name__, url_prefix="/api/attendance")


@attendance_bp.get("")
@require_auth
def list_attendance_route():
    """
    Query params:
    - date: a single day (optional)
    - start, end: inclusive date range (optional)
    - employee_id: int (optional)
    """
    try:
        records = attendance_service.list_attendance(
            g.shop_id,
            day=request.args.get("date"),
            employee_id=request.args.get("employee_id", type=int),
            start=request.args.get("start"),
            end=request.args.get("end"),
        )
    except ValidationError as e:
        return {"error": str(e)}, 400

    return {"records": [r.to_dict() for r in records], "count": len(records)}


@attendance_bp.post("")
@require_auth
def mark_attendance_route():
    """
    Upsert one mark.

    Request body: {"employee_id": 1, "date": "2024-05-01", "status": "present", "notes": "..."}
    Responds 201 when a new mark was created, 200 when an existing one was overwritten.
    """
    payload = request.get_json(silent=True) or {}
    employee_id = payload.get("employee_id")
    if not isinstance(employee_id, int) or isinstance(employee_id, bool):
        return {"error": "employee_id must be an integer"}, 400

    try:
        record, created = attendance_service.mark_attendance(
            g.shop_id,
            employee_id,
            payload.get("date"),
            payload.get("status"),
            payload.get("notes"),
        )
    except NotFoundError as e:
        return {"error": str(e)}, 404
    except ValidationError as e:
        return {"error": str(e)}, 400

    return {"record": record.to_dict()}, 201 if created else 200


@attendance_bp.delete("/<int:record_id>")
@require_auth
def delete_attendance_route(record_id: int):
    try:
        attendance_service.delete_attendance(g.shop_id, record_id)
    except NotFoundError as e:
        return {"error": str(e)}, 404
    return {"message": "Attendance record deleted"}
