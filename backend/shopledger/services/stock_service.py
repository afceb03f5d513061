# Overview: Product stock adjustments made by the sale/purchase lifecycle.

from __future__ import annotations

from ..errors import InsufficientStockError, InsufficientStockToReverseError, NotFoundError, ValidationError
from ..extensions import db
from ..models import Product
from .concurrency import lock_for_update


def load_products_for_update(shop_id: int, product_ids) -> dict[int, Product]:
    """
    Lock and return the products referenced by a document, keyed by id.

    Rows are locked in id order so two documents touching the same products
    cannot deadlock each other.
    """
    wanted = sorted(set(product_ids))
    products = (
        lock_for_update(db.session.query(Product).filter(Product.id.in_(wanted)).order_by(Product.id))
        .all()
    )
    by_id = {p.id: p for p in products}

    for product_id in wanted:
        product = by_id.get(product_id)
        if product is None:
            raise NotFoundError(f"Product with ID {product_id} not found.")
        if product.shop_id != shop_id:
            raise ValidationError(f"Product {product.name} does not belong to this shop.")
    return by_id


def take_stock(product: Product, quantity: int) -> None:
    """Sale: remove ``quantity`` units, refusing to go below zero."""
    if product.quantity < quantity:
        raise InsufficientStockError(product, quantity)
    product.quantity -= quantity


def restock(product: Product, quantity: int, unit_cost_cents: int | None = None) -> None:
    """Purchase: add ``quantity`` units and remember the latest unit cost."""
    product.quantity += quantity
    if unit_cost_cents is not None:
        product.purchase_price_cents = unit_cost_cents


def release_stock(product: Product, quantity: int) -> None:
    """Purchase cancellation: send ``quantity`` units back to the supplier."""
    if product.quantity < quantity:
        raise InsufficientStockToReverseError(product, quantity)
    product.quantity -= quantity
