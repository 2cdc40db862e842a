# Overview: Flask API routes for analytics; parses input and returns JSON responses.

"""
Analytics Routes

Daily, monthly and yearly sales/profit summaries plus an arbitrary range.
Dates are calendar dates in the shop's timezone; when omitted they default
to the shop's "today".
"""

from flask import Blueprint, request, jsonify, g, current_app

from ..decorators import require_auth
from ..services import analytics_service
from ..services.analytics_service import AnalyticsError
from shopdesk.time_utils import get_zone, local_today, parse_iso_date


analytics_bp = Blueprint("analytics", __name__, url_prefix="/api/analytics")


def _date_arg(name: str, required: bool = False):
    raw = request.args.get(name)
    if not raw:
        if required:
            raise AnalyticsError(f"{name} is required")
        return local_today(get_zone(g.current_shop.timezone))
    try:
        return parse_iso_date(raw)
    except ValueError:
        raise AnalyticsError(f"{name} must be an ISO-8601 date (YYYY-MM-DD)")


@analytics_bp.get("/daily")
@require_auth
def daily_route():
    try:
        return jsonify(analytics_service.daily(g.current_shop, _date_arg("date")))
    except AnalyticsError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to build daily analytics")
        return jsonify({"error": "Internal server error"}), 500


@analytics_bp.get("/monthly")
@require_auth
def monthly_route():
    try:
        return jsonify(analytics_service.monthly(g.current_shop, _date_arg("date")))
    except AnalyticsError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to build monthly analytics")
        return jsonify({"error": "Internal server error"}), 500


@analytics_bp.get("/yearly")
@require_auth
def yearly_route():
    try:
        return jsonify(analytics_service.yearly(g.current_shop, _date_arg("date")))
    except AnalyticsError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to build yearly analytics")
        return jsonify({"error": "Internal server error"}), 500


@analytics_bp.get("/summary")
@require_auth
def summary_route():
    """
    Query params:
    - start, end: inclusive dates (required)
    - group_by: day | month (default day)
    """
    try:
        result = analytics_service.range_summary(
            g.current_shop,
            _date_arg("start", required=True),
            _date_arg("end", required=True),
            group_by=request.args.get("group_by", "day"),
        )
        return jsonify(result)
    except AnalyticsError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to build range analytics")
        return jsonify({"error": "Internal server error"}), 500
