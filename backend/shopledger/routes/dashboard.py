# Overview: Flask API routes for dashboard figures.

from flask import Blueprint, g

from ..decorators import require_auth
from ..errors import LedgerError
from ..services import dashboard_service
from . import error_response, ok

dashboard_bp = Blueprint("dashboard", __name__, url_prefix="/api/dashboard")


@dashboard_bp.get("/<int:shop_id>/stats")
@require_auth
def stats_route(shop_id: int):
    try:
        return ok(dashboard_service.get_dashboard_stats(shop_id, g.current_user.id))
    except LedgerError as e:
        return error_response(e)


@dashboard_bp.get("/<int:shop_id>/chart")
@require_auth
def chart_route(shop_id: int):
    try:
        return ok(dashboard_service.get_monthly_chart(shop_id, g.current_user.id))
    except LedgerError as e:
        return error_response(e)
