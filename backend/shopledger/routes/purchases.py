# Overview: Flask API routes for purchases; parses input and returns JSON responses.

"""
Purchase routes.

POST /api/purchases                    create (stock, balance and ledger in one unit)
GET  /api/purchases?shop_id=...        list, newest first
GET  /api/purchases/<id>               detail with items
POST /api/purchases/<id>/payments      record a later payment to the supplier
POST /api/purchases/<id>/cancel        cancel (terminal)
"""

from flask import Blueprint, g, request

from ..decorators import require_auth
from ..errors import LedgerError
from ..pagination import page_args
from ..services import purchase_service
from . import error_response, internal_error, ok, shop_id_from

purchases_bp = Blueprint("purchases", __name__, url_prefix="/api/purchases")


@purchases_bp.post("")
@require_auth
def create_purchase_route():
    try:
        payload = request.get_json(silent=True) or {}
        purchase = purchase_service.create_purchase(shop_id_from(payload), g.current_user.id, payload)
        kind = "Cash Purchase" if purchase.is_cash else "Supplier Purchase"
        return ok(purchase.to_dict(), message=f"Purchase created successfully ({kind}).", status=201)
    except LedgerError as e:
        return error_response(e)
    except Exception:
        return internal_error("create purchase")


@purchases_bp.get("")
@require_auth
def list_purchases_route():
    try:
        page, per_page = page_args(request.args)
        result = purchase_service.list_purchases(
            shop_id_from(request.args), g.current_user.id, request.args, page=page, per_page=per_page
        )
        return ok(result["items"], count=result["count"], pagination=result["pagination"])
    except LedgerError as e:
        return error_response(e)


@purchases_bp.get("/<int:purchase_id>")
@require_auth
def get_purchase_route(purchase_id: int):
    try:
        return ok(purchase_service.get_purchase(purchase_id, g.current_user.id).to_dict())
    except LedgerError as e:
        return error_response(e)


@purchases_bp.post("/<int:purchase_id>/payments")
@require_auth
def record_purchase_payment_route(purchase_id: int):
    try:
        purchase = purchase_service.record_purchase_payment(purchase_id, g.current_user.id, request.get_json(silent=True) or {})
        return ok(purchase.to_dict(), message="Payment recorded successfully.")
    except LedgerError as e:
        return error_response(e)
    except Exception:
        return internal_error("record purchase payment")


@purchases_bp.post("/<int:purchase_id>/cancel")
@require_auth
def cancel_purchase_route(purchase_id: int):
    try:
        purchase = purchase_service.cancel_purchase(purchase_id, g.current_user.id)
        return ok(purchase.to_dict(), message="Purchase has been successfully cancelled.")
    except LedgerError as e:
        return error_response(e)
    except Exception:
        return internal_error("cancel purchase")
