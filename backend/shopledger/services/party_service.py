# Overview: Customer and supplier CRUD shared by both counterparty kinds.

"""
Customers and suppliers share one implementation; the model class picks
which table, which documents reference it, and which ledger column links
back to it.

- phone is unique per shop (ConflictError on duplicates)
- balances and paid totals are owned by the ledger and never writable here
- deletion is refused while any document or transaction references the party
"""

from __future__ import annotations

from flask import current_app
from sqlalchemy import or_

from ..errors import ConflictError, NotFoundError, ValidationError
from ..extensions import db
from ..models import Customer, Purchase, Sale, Supplier, Transaction
from ..pagination import paginate_query
from ..validation import ModelValidationPolicy, validate_payload
from .shop_service import verify_shop_owner


PARTY_POLICY = ModelValidationPolicy(
    writable_fields={"name", "phone", "email", "address"},
    required_on_create={"name", "phone"},
)

SORTABLE_FIELDS = {"name", "created_at", "current_balance_cents"}


def _references(model):
    """(document model, document column, transaction column) pointing at ``model``."""
    if model is Customer:
        return Sale, Sale.customer_id, Transaction.related_customer_id
    if model is Supplier:
        return Purchase, Purchase.supplier_id, Transaction.related_supplier_id
    raise ValueError(f"Not a counterparty model: {model!r}")


def _label(model) -> str:
    return model.LABEL.capitalize()


def _ensure_phone_free(model, shop_id: int, phone: str, exclude_id: int | None = None) -> None:
    query = db.session.query(model.id).filter(model.shop_id == shop_id, model.phone == phone)
    if exclude_id is not None:
        query = query.filter(model.id != exclude_id)
    if query.first():
        raise ConflictError(f"A {model.LABEL} with this phone number already exists in this shop.")


def create_party(model, shop_id: int, user_id: int, payload: dict):
    verify_shop_owner(shop_id, user_id)
    patch = validate_payload(model=model, payload=payload, policy=PARTY_POLICY, partial=False)
    if patch.get("email"):
        patch["email"] = patch["email"].lower()
    _ensure_phone_free(model, shop_id, patch["phone"])

    party = model(shop_id=shop_id, **patch)
    db.session.add(party)
    db.session.commit()
    current_app.logger.info("%s created: id=%s shop=%s", _label(model), party.id, shop_id)
    return party


def list_parties(
    model,
    shop_id: int,
    user_id: int,
    *,
    search: str | None = None,
    sort_by: str = "name",
    order: str = "asc",
    page: int = 1,
    per_page: int = 20,
) -> dict:
    """Search on name or phone; sort by name, created_at or current_balance_cents."""
    verify_shop_owner(shop_id, user_id)

    query = db.session.query(model).filter(model.shop_id == shop_id)
    search = (search or "").strip()
    if search:
        like = f"%{search}%"
        query = query.filter(or_(model.name.ilike(like), model.phone.ilike(like)))

    if sort_by not in SORTABLE_FIELDS:
        raise ValidationError(f"sort_by must be one of: {', '.join(sorted(SORTABLE_FIELDS))}")
    column = getattr(model, sort_by)
    column = column.desc() if (order or "").lower() == "desc" else column.asc()

    return paginate_query(query.order_by(column, model.id.asc()), page=page, per_page=per_page)


def get_party(model, party_id: int, user_id: int):
    party = db.session.get(model, party_id)
    if party is None:
        raise NotFoundError(f"{_label(model)} not found.")
    verify_shop_owner(party.shop_id, user_id)
    return party


def update_party(model, party_id: int, user_id: int, payload: dict):
    party = get_party(model, party_id, user_id)
    patch = validate_payload(model=model, payload=payload, policy=PARTY_POLICY, partial=True)
    if not patch:
        raise ValidationError("No updatable fields provided")
    if "phone" in patch:
        _ensure_phone_free(model, party.shop_id, patch["phone"], exclude_id=party.id)
    if patch.get("email"):
        patch["email"] = patch["email"].lower()

    for key, value in patch.items():
        setattr(party, key, value)
    db.session.commit()
    return party


def delete_party(model, party_id: int, user_id: int) -> None:
    """
    Delete a customer or supplier that nothing references.

    Raises ConflictError if any sale/purchase or transaction points at it.
    """
    party = get_party(model, party_id, user_id)
    document_model, document_column, transaction_column = _references(model)

    transaction_count = db.session.query(Transaction.id).filter(transaction_column == party.id).count()
    document_count = db.session.query(document_model.id).filter(document_column == party.id).count()
    if transaction_count or document_count:
        raise ConflictError(
            f"Cannot delete {model.LABEL}. They are linked to {document_count} "
            f"{document_model.__tablename__} and {transaction_count} transactions.",
            details={"documents": document_count, "transactions": transaction_count},
        )

    db.session.delete(party)
    db.session.commit()
    current_app.logger.info("%s deleted: id=%s", _label(model), party_id)
