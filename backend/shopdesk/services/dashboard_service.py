# Overview: Service-layer operations for the dashboard; one-call snapshot of today's activity.

from __future__ import annotations

from ..extensions import db
from ..models import AttendanceRecord, Employee, Shop
from .analytics_service import daily
from .receipt_service import list_receipts
from shopdesk.time_utils import get_zone, local_today


RECENT_RECEIPTS = 5


def attendance_counts(shop_id: int, day) -> dict:
    """Half-days count as present, leave counts as absent."""
    rows = (
        db.session.query(AttendanceRecord.status, db.func.count(AttendanceRecord.id))
        .filter(AttendanceRecord.shop_id == shop_id, AttendanceRecord.date == day)
        .group_by(AttendanceRecord.status)
        .all()
    )
    by_status = dict(rows)
    present = by_status.get("present", 0) + by_status.get("half-day", 0)
    absent = by_status.get("absent", 0) + by_status.get("leave", 0)
    return {"present": present, "absent": absent, "total": present + absent}


def dashboard(shop: Shop) -> dict:
    today = local_today(get_zone(shop.timezone))
    summary = daily(shop, today)

    employee_count = db.session.query(Employee).filter_by(shop_id=shop.id).count()
    recent = list_receipts(shop.id, sort="timestamp", direction="desc", limit=RECENT_RECEIPTS)

    return {
        "date": today.isoformat(),
        "today": {
            "sales_cents": summary["sales_cents"],
            "profit_cents": summary["profit_cents"],
            "profit_margin": summary["profit_margin"],
            "total_items": summary["total_items"],
        },
        "receipt_count": summary["transaction_count"],
        "recent_receipts": [r.to_dict() for r in recent],
        "employee_count": employee_count,
        "attendance": attendance_counts(shop.id, today),
    }
