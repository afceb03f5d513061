# Overview: Flask API routes for the cash-flow ledger.

from flask import Blueprint, g, request

from ..decorators import require_auth
from ..errors import LedgerError
from ..pagination import page_args
from ..services import ledger_service
from . import error_response, internal_error, ok, shop_id_from

transactions_bp = Blueprint("transactions", __name__, url_prefix="/api/transactions")


@transactions_bp.post("")
@require_auth
def create_transaction_route():
    """
    Record a manual entry (expenses, drawings, capital, other income).

    SALE_PAYMENT, PURCHASE_PAYMENT, SALE_RETURN and PURCHASE_RETURN are
    refused with 409; those only come from sales, purchases and cash
    allocation. There is no update or delete route.
    """
    try:
        payload = request.get_json(silent=True) or {}
        txn = ledger_service.create_manual_transaction(shop_id_from(payload), g.current_user.id, payload)
        return ok(txn.to_dict(), message="Transaction recorded successfully.", status=201)
    except LedgerError as e:
        return error_response(e)
    except Exception:
        return internal_error("create transaction")


@transactions_bp.get("")
@require_auth
def list_transactions_route():
    try:
        page, per_page = page_args(request.args)
        result = ledger_service.list_transactions(
            shop_id_from(request.args), g.current_user.id, request.args, page=page, per_page=per_page
        )
        return ok(result["items"], count=result["count"], pagination=result["pagination"])
    except LedgerError as e:
        return error_response(e)


@transactions_bp.get("/<int:transaction_id>")
@require_auth
def get_transaction_route(transaction_id: int):
    try:
        return ok(ledger_service.get_transaction(transaction_id, g.current_user.id).to_dict())
    except LedgerError as e:
        return error_response(e)
