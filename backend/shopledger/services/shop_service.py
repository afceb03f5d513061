# Overview: Shop tenancy and the ownership check every ledger operation starts with.

from __future__ import annotations

from flask import current_app

from ..errors import ForbiddenError, NotFoundError, ValidationError
from ..extensions import db
from ..models import Shop
from ..validation import ModelValidationPolicy, validate_payload
from .document_service import seed_document_sequences


SHOP_POLICY = ModelValidationPolicy(
    writable_fields={"name", "address", "contact_number"},
    required_on_create={"name"},
)


def verify_shop_owner(shop_id, user_id: int) -> Shop:
    """
    Return the shop if ``user_id`` owns it.

    Raises:
        NotFoundError: no such shop
        ForbiddenError: the shop belongs to someone else
    """
    shop = db.session.get(Shop, shop_id) if shop_id is not None else None
    if shop is None:
        raise NotFoundError("Shop not found.")
    if shop.owner_user_id != user_id:
        raise ForbiddenError("You do not have permission to access this shop.")
    return shop


def create_shop(owner_user_id: int, payload: dict) -> Shop:
    """Create a shop and seed its document sequences in one commit."""
    patch = validate_payload(model=Shop, payload=payload, policy=SHOP_POLICY, partial=False)

    shop = Shop(owner_user_id=owner_user_id, **patch)
    db.session.add(shop)
    db.session.flush()
    seed_document_sequences(shop.id)
    db.session.commit()

    current_app.logger.info("Shop created: id=%s owner=%s", shop.id, owner_user_id)
    return shop


def list_shops(owner_user_id: int) -> list[Shop]:
    return (
        db.session.query(Shop)
        .filter_by(owner_user_id=owner_user_id)
        .order_by(Shop.created_at.desc(), Shop.id.desc())
        .all()
    )


def get_shop(shop_id: int, user_id: int) -> Shop:
    return verify_shop_owner(shop_id, user_id)


def update_shop(shop_id: int, user_id: int, payload: dict) -> Shop:
    shop = verify_shop_owner(shop_id, user_id)
    patch = validate_payload(model=Shop, payload=payload, policy=SHOP_POLICY, partial=True)
    if not patch:
        raise ValidationError("No updatable fields provided")

    for key, value in patch.items():
        setattr(shop, key, value)
    db.session.commit()
    return shop
