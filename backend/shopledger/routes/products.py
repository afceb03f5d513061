# Overview: Flask API routes for the product catalog.

"""
Product routes.

Listing is shop-scoped: ``GET /api/products?shop_id=1&search=rice&page=1``.
Stock (quantity) can be set on create only; afterwards it moves through
sales and purchases.
"""

from flask import Blueprint, g, request

from ..decorators import require_auth
from ..errors import LedgerError
from ..pagination import page_args
from ..services import product_service
from . import error_response, internal_error, ok, shop_id_from

products_bp = Blueprint("products", __name__, url_prefix="/api/products")


@products_bp.get("")
@require_auth
def list_products_route():
    try:
        page, per_page = page_args(request.args)
        result = product_service.list_products(
            shop_id_from(request.args),
            g.current_user.id,
            search=request.args.get("search"),
            low_stock=request.args.get("low_stock", "").lower() in ("1", "true", "yes"),
            page=page,
            per_page=per_page,
        )
        return ok(result["items"], count=result["count"], pagination=result["pagination"])
    except LedgerError as e:
        return error_response(e)


@products_bp.post("")
@require_auth
def create_product_route():
    try:
        payload = dict(request.get_json(silent=True) or {})
        shop_id = shop_id_from(payload)
        payload.pop("shop_id", None)
        product = product_service.create_product(shop_id, g.current_user.id, payload)
        return ok(product.to_dict(), message="Product created successfully.", status=201)
    except LedgerError as e:
        return error_response(e)
    except Exception:
        return internal_error("create product")


@products_bp.get("/<int:product_id>")
@require_auth
def get_product_route(product_id: int):
    try:
        return ok(product_service.get_product(product_id, g.current_user.id).to_dict())
    except LedgerError as e:
        return error_response(e)


@products_bp.put("/<int:product_id>")
@require_auth
def update_product_route(product_id: int):
    try:
        product = product_service.update_product(product_id, g.current_user.id, request.get_json(silent=True) or {})
        return ok(product.to_dict(), message="Product updated successfully.")
    except LedgerError as e:
        return error_response(e)
    except Exception:
        return internal_error("update product")


@products_bp.delete("/<int:product_id>")
@require_auth
def delete_product_route(product_id: int):
    try:
        product_service.delete_product(product_id, g.current_user.id)
        return ok(message="Product deleted successfully.")
    except LedgerError as e:
        return error_response(e)
    except Exception:
        return internal_error("delete product")
