# Overview: Flask API routes for shops.

from flask import Blueprint, g, request

from ..decorators import require_auth
from ..errors import LedgerError
from ..services import shop_service
from . import error_response, internal_error, ok

shops_bp = Blueprint("shops", __name__, url_prefix="/api/shops")


@shops_bp.post("")
@require_auth
def create_shop_route():
    try:
        shop = shop_service.create_shop(g.current_user.id, request.get_json(silent=True) or {})
        return ok(shop.to_dict(), message="Shop created successfully.", status=201)
    except LedgerError as e:
        return error_response(e)
    except Exception:
        return internal_error("create shop")


@shops_bp.get("")
@require_auth
def list_shops_route():
    shops = shop_service.list_shops(g.current_user.id)
    return ok([s.to_dict() for s in shops], count=len(shops))


@shops_bp.get("/<int:shop_id>")
@require_auth
def get_shop_route(shop_id: int):
    try:
        return ok(shop_service.get_shop(shop_id, g.current_user.id).to_dict())
    except LedgerError as e:
        return error_response(e)


@shops_bp.put("/<int:shop_id>")
@require_auth
def update_shop_route(shop_id: int):
    try:
        shop = shop_service.update_shop(shop_id, g.current_user.id, request.get_json(silent=True) or {})
        return ok(shop.to_dict(), message="Shop updated successfully.")
    except LedgerError as e:
        return error_response(e)
    except Exception:
        return internal_error("update shop")
