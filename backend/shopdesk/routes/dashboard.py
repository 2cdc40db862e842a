# Overview: Flask API route for the dashboard snapshot.

from flask import Blueprint, g, current_app

from ..decorators import require_auth
from ..services.dashboard_service import dashboard


dashboard_bp = Blueprint("dashboard", __name__, url_prefix="/api/dashboard")


@dashboard_bp.get("")
@require_auth
def dashboard_route():
    try:
        return dashboard(g.current_shop)
    except Exception:
        current_app.logger.exception("Failed to build dashboard")
        return {"error": "Internal server error"}, 500
