from flask import current_app, jsonify

from ..errors import LedgerError, ValidationError
from ..validation import coerce_int


def ok(data=None, message: str | None = None, status: int = 200, **extra):
    body = {"success": True}
    if message:
        body["message"] = message
    if data is not None:
        body["data"] = data
    body.update(extra)
    return jsonify(body), status


def error_response(e: LedgerError):
    return jsonify(e.to_dict()), e.status_code


def internal_error(action: str):
    current_app.logger.exception("Failed to %s", action)
    return jsonify({"success": False, "message": "Internal server error"}), 500


def shop_id_from(source) -> int:
    """Required shop_id from a JSON body or query args."""
    raw = source.get("shop_id")
    if raw in (None, ""):
        raise ValidationError("shop_id required")
    return coerce_int(raw, "shop_id")
