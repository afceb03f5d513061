# Overview: Product catalog CRUD for a shop.

from __future__ import annotations

from flask import current_app

from ..errors import ConflictError, NotFoundError, ValidationError
from ..extensions import db
from ..models import Product, PurchaseItem, SaleItem
from ..pagination import paginate_query
from ..validation import ModelValidationPolicy, validate_payload
from .shop_service import verify_shop_owner


PRODUCT_CREATE_POLICY = ModelValidationPolicy(
    writable_fields={
        "name", "description", "category",
        "purchase_price_cents", "selling_price_cents",
        "quantity", "reorder_level",
    },
    required_on_create={"name", "selling_price_cents"},
    non_negative_fields={"purchase_price_cents", "selling_price_cents", "quantity", "reorder_level"},
)

# Stock only moves through sales and purchases once the product exists
PRODUCT_UPDATE_POLICY = ModelValidationPolicy(
    writable_fields=PRODUCT_CREATE_POLICY.writable_fields - {"quantity"},
    non_negative_fields={"purchase_price_cents", "selling_price_cents", "reorder_level"},
)


def create_product(shop_id: int, user_id: int, payload: dict) -> Product:
    verify_shop_owner(shop_id, user_id)
    patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_CREATE_POLICY, partial=False)

    product = Product(shop_id=shop_id, **patch)
    db.session.add(product)
    db.session.commit()
    current_app.logger.info("Product created: id=%s shop=%s name=%s", product.id, shop_id, product.name)
    return product


def list_products(
    shop_id: int,
    user_id: int,
    *,
    search: str | None = None,
    low_stock: bool = False,
    page: int = 1,
    per_page: int = 20,
) -> dict:
    verify_shop_owner(shop_id, user_id)

    query = db.session.query(Product).filter(Product.shop_id == shop_id)
    search = (search or "").strip()
    if search:
        query = query.filter(Product.name.ilike(f"%{search}%"))
    if low_stock:
        query = query.filter(Product.quantity <= Product.reorder_level)

    query = query.order_by(Product.name.asc(), Product.id.asc())
    return paginate_query(query, page=page, per_page=per_page)


def get_product(product_id: int, user_id: int) -> Product:
    product = db.session.get(Product, product_id)
    if product is None:
        raise NotFoundError("Product not found.")
    verify_shop_owner(product.shop_id, user_id)
    return product


def update_product(product_id: int, user_id: int, payload: dict) -> Product:
    product = get_product(product_id, user_id)
    patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_UPDATE_POLICY, partial=True)
    if not patch:
        raise ValidationError("No updatable fields provided")

    for key, value in patch.items():
        setattr(product, key, value)
    db.session.commit()
    return product


def delete_product(product_id: int, user_id: int) -> None:
    """Delete a product that no sale or purchase line references."""
    product = get_product(product_id, user_id)

    sale_lines = db.session.query(SaleItem.id).filter(SaleItem.product_id == product.id).count()
    purchase_lines = db.session.query(PurchaseItem.id).filter(PurchaseItem.product_id == product.id).count()
    if sale_lines or purchase_lines:
        raise ConflictError(
            f"Cannot delete product. It appears on {sale_lines} sale lines and {purchase_lines} purchase lines.",
            details={"sale_lines": sale_lines, "purchase_lines": purchase_lines},
        )

    db.session.delete(product)
    db.session.commit()
    current_app.logger.info("Product deleted: id=%s", product_id)
