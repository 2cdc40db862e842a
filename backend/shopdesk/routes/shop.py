# Overview: Flask API routes for the shop profile; parses input and returns JSON responses.

from flask import Blueprint, request, g, current_app

from ..services import auth_service
from ..services.auth_service import AuthError
from ..validation import ValidationError
from ..decorators import require_auth


shop_bp = Blueprint("shop", __name__, url_prefix="/api/shop")


@shop_bp.get("")
@require_auth
def get_shop_route():
    return {"shop": g.current_shop.to_dict()}


@shop_bp.patch("")
@require_auth
def update_shop_route():
    """
    Update the shop profile printed on receipts.

    Writable: shop_name, address, phone_numbers, logo_url,
    receipt_description, timezone, display_name.
    Existing receipts keep the snapshot taken at checkout.
    """
    payload = request.get_json(silent=True) or {}

    try:
        shop = auth_service.update_shop_profile(g.shop_id, payload)
    except ValidationError as e:
        return {"error": str(e)}, 400
    except AuthError as e:
        return {"error": str(e)}, 404
    except Exception:
        current_app.logger.exception("Failed to update shop profile")
        return {"error": "Internal server error"}, 500

    return {"shop": shop.to_dict()}
