# Overview: Flask API routes for the notification inbox.

from flask import Blueprint, g, request

from ..decorators import require_auth
from ..errors import LedgerError
from ..pagination import page_args
from ..services import notification_service
from ..validation import parse_optional_id
from . import error_response, internal_error, ok

notifications_bp = Blueprint("notifications", __name__, url_prefix="/api/notifications")


@notifications_bp.get("")
@require_auth
def list_notifications_route():
    try:
        page, per_page = page_args(request.args)
        result = notification_service.list_notifications(
            g.current_user.id,
            unread_only=request.args.get("unread", "").lower() in ("1", "true", "yes"),
            page=page,
            per_page=per_page,
        )
        return ok(
            result["items"],
            count=result["count"],
            unread_count=result["unread_count"],
            pagination=result["pagination"],
        )
    except LedgerError as e:
        return error_response(e)


@notifications_bp.post("/<int:notification_id>/read")
@require_auth
def mark_read_route(notification_id: int):
    try:
        notification = notification_service.mark_read(notification_id, g.current_user.id)
        return ok(notification.to_dict())
    except LedgerError as e:
        return error_response(e)
    except Exception:
        return internal_error("mark notification read")


@notifications_bp.post("/read-all")
@require_auth
def mark_all_read_route():
    try:
        payload = request.get_json(silent=True) or {}
        shop_id = parse_optional_id(payload.get("shop_id"), "shop_id")
        count = notification_service.mark_all_read(g.current_user.id, shop_id)
        return ok({"updated": count}, message=f"{count} notification(s) marked as read.")
    except LedgerError as e:
        return error_response(e)
    except Exception:
        return internal_error("mark notifications read")
