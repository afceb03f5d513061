# Overview: Flask API routes for sales; parses input and returns JSON responses.

"""
Sales routes.

POST /api/sales                    create (stock, balance and ledger in one unit)
GET  /api/sales?shop_id=...        list, newest first
GET  /api/sales/<id>               detail with items
POST /api/sales/<id>/payments      record a later customer payment
POST /api/sales/<id>/cancel        cancel (terminal)
"""

from flask import Blueprint, g, request

from ..decorators import require_auth
from ..errors import LedgerError
from ..pagination import page_args
from ..services import sale_service
from . import error_response, internal_error, ok, shop_id_from

sales_bp = Blueprint("sales", __name__, url_prefix="/api/sales")


@sales_bp.post("")
@require_auth
def create_sale_route():
    try:
        payload = request.get_json(silent=True) or {}
        sale = sale_service.create_sale(shop_id_from(payload), g.current_user.id, payload)
        kind = "Cash Sale" if sale.is_cash else "Customer Sale"
        return ok(sale.to_dict(), message=f"Sale created successfully ({kind}).", status=201)
    except LedgerError as e:
        return error_response(e)
    except Exception:
        return internal_error("create sale")


@sales_bp.get("")
@require_auth
def list_sales_route():
    try:
        page, per_page = page_args(request.args)
        result = sale_service.list_sales(
            shop_id_from(request.args), g.current_user.id, request.args, page=page, per_page=per_page
        )
        return ok(result["items"], count=result["count"], pagination=result["pagination"])
    except LedgerError as e:
        return error_response(e)


@sales_bp.get("/<int:sale_id>")
@require_auth
def get_sale_route(sale_id: int):
    try:
        return ok(sale_service.get_sale(sale_id, g.current_user.id).to_dict())
    except LedgerError as e:
        return error_response(e)


@sales_bp.post("/<int:sale_id>/payments")
@require_auth
def record_sale_payment_route(sale_id: int):
    try:
        sale = sale_service.record_sale_payment(sale_id, g.current_user.id, request.get_json(silent=True) or {})
        return ok(sale.to_dict(), message="Payment recorded successfully.")
    except LedgerError as e:
        return error_response(e)
    except Exception:
        return internal_error("record sale payment")


@sales_bp.post("/<int:sale_id>/cancel")
@require_auth
def cancel_sale_route(sale_id: int):
    try:
        sale = sale_service.cancel_sale(sale_id, g.current_user.id)
        return ok(sale.to_dict(), message="Sale has been successfully cancelled.")
    except LedgerError as e:
        return error_response(e)
    except Exception:
        return internal_error("cancel sale")
