# Overview: Flask API routes for bulk cash in / cash out.

from flask import Blueprint, g, request

from ..decorators import require_auth
from ..errors import LedgerError
from ..services import cash_service
from ..validation import format_money
from . import error_response, internal_error, ok, shop_id_from

cash_bp = Blueprint("cash", __name__, url_prefix="/api/cash")


@cash_bp.post("/in")
@require_auth
def cash_in_route():
    """
    Receive a lump payment from a customer, applied to the oldest open
    invoices first. Body: {shop_id, customer_id, amount_cents,
    payment_method?, notes?, transaction_date?}
    """
    try:
        payload = request.get_json(silent=True) or {}
        allocation = cash_service.record_cash_in(shop_id_from(payload), g.current_user.id, payload)
        return ok(
            allocation.to_dict(),
            message=f"{format_money(allocation.amount_cents)} payment from {allocation.party_name} applied successfully.",
        )
    except LedgerError as e:
        return error_response(e)
    except Exception:
        return internal_error("record cash in")


@cash_bp.post("/out")
@require_auth
def cash_out_route():
    """Pay a supplier a lump sum, applied to the oldest open bills first."""
    try:
        payload = request.get_json(silent=True) or {}
        allocation = cash_service.record_cash_out(shop_id_from(payload), g.current_user.id, payload)
        return ok(
            allocation.to_dict(),
            message=f"{format_money(allocation.amount_cents)} payment to {allocation.party_name} applied successfully.",
        )
    except LedgerError as e:
        return error_response(e)
    except Exception:
        return internal_error("record cash out")
