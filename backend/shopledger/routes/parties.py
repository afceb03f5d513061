# Overview: Blueprint factory for the customer and supplier CRUD routes.

from flask import Blueprint, g, request

from ..decorators import require_auth
from ..errors import LedgerError
from ..pagination import page_args
from ..services import party_service
from . import error_response, internal_error, ok, shop_id_from


def make_party_blueprint(model, name: str) -> Blueprint:
    """
    Build ``/api/<name>`` routes for a counterparty model.

    GET    /api/<name>?shop_id=&search=&sort_by=&order=&page=&per_page=
    POST   /api/<name>            {shop_id, name, phone, email?, address?}
    GET    /api/<name>/<id>
    PUT    /api/<name>/<id>
    DELETE /api/<name>/<id>       409 while documents or transactions reference it
    """
    bp = Blueprint(name, __name__, url_prefix=f"/api/{name}")
    label = model.LABEL.capitalize()

    @bp.get("")
    @require_auth
    def list_route():
        try:
            page, per_page = page_args(request.args)
            result = party_service.list_parties(
                model,
                shop_id_from(request.args),
                g.current_user.id,
                search=request.args.get("search"),
                sort_by=request.args.get("sort_by", "name"),
                order=request.args.get("order", "asc"),
                page=page,
                per_page=per_page,
            )
            return ok(result["items"], count=result["count"], pagination=result["pagination"])
        except LedgerError as e:
            return error_response(e)

    @bp.post("")
    @require_auth
    def create_route():
        try:
            payload = dict(request.get_json(silent=True) or {})
            shop_id = shop_id_from(payload)
            payload.pop("shop_id", None)
            party = party_service.create_party(model, shop_id, g.current_user.id, payload)
            return ok(party.to_dict(), message=f"{label} created successfully.", status=201)
        except LedgerError as e:
            return error_response(e)
        except Exception:
            return internal_error(f"create {model.LABEL}")

    @bp.get("/<int:party_id>")
    @require_auth
    def get_route(party_id: int):
        try:
            return ok(party_service.get_party(model, party_id, g.current_user.id).to_dict())
        except LedgerError as e:
            return error_response(e)

    @bp.put("/<int:party_id>")
    @require_auth
    def update_route(party_id: int):
        try:
            party = party_service.update_party(model, party_id, g.current_user.id, request.get_json(silent=True) or {})
            return ok(party.to_dict(), message=f"{label} updated successfully.")
        except LedgerError as e:
            return error_response(e)
        except Exception:
            return internal_error(f"update {model.LABEL}")

    @bp.delete("/<int:party_id>")
    @require_auth
    def delete_route(party_id: int):
        try:
            party_service.delete_party(model, party_id, g.current_user.id)
            return ok(message=f"{label} deleted successfully.")
        except LedgerError as e:
            return error_response(e)
        except Exception:
            return internal_error(f"delete {model.LABEL}")

    return bp
