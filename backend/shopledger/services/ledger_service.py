# Overview: Append-only cash-flow ledger (Transaction rows) and its user-facing queries.

"""
Transaction ledger.

Two writers exist:

- record_transaction(): used inside the sale/purchase lifecycle and the
  cash allocator. It may write any category, including the protected ones.
- create_manual_transaction(): the user-facing endpoint. Protected
  categories are refused and every category has a fixed cash direction.

Nothing here updates or deletes a Transaction; the model refuses both.
"""

from __future__ import annotations

from datetime import timedelta

from flask import current_app

from ..errors import ConflictError, NotFoundError, ValidationError
from ..extensions import db
from ..models import Transaction
from ..models.transactions import CASH_IN, CASH_OUT
from ..pagination import paginate_query
from ..validation import parse_cents, parse_date, parse_optional_id
from .shop_service import verify_shop_owner
from shopledger.time_utils import utcnow


TRANSACTION_TYPES = (CASH_IN, CASH_OUT)

SALE_PAYMENT = "SALE_PAYMENT"
PURCHASE_PAYMENT = "PURCHASE_PAYMENT"
SALE_RETURN = "SALE_RETURN"
PURCHASE_RETURN = "PURCHASE_RETURN"

# Written only by the sale/purchase lifecycle and the cash allocator
PROTECTED_CATEGORIES = frozenset({SALE_PAYMENT, PURCHASE_PAYMENT, SALE_RETURN, PURCHASE_RETURN})

MANUAL_CATEGORY_DIRECTIONS = {
    "CAPITAL_INJECTION": CASH_IN,
    "OTHER_INCOME": CASH_IN,
    "EXPENSE_RENT": CASH_OUT,
    "EXPENSE_SALARY": CASH_OUT,
    "EXPENSE_UTILITIES": CASH_OUT,
    "OWNER_DRAWING": CASH_OUT,
    "OTHER_EXPENSE": CASH_OUT,
}

ALL_CATEGORIES = PROTECTED_CATEGORIES | frozenset(MANUAL_CATEGORY_DIRECTIONS)

PAYMENT_METHODS = ("CASH", "BANK_TRANSFER", "CARD", "CHEQUE", "CREDIT")


def validate_payment_method(value) -> str:
    if value in (None, ""):
        return "CASH"
    method = str(value).strip().upper()
    if method not in PAYMENT_METHODS:
        raise ValidationError(f"payment_method must be one of: {', '.join(PAYMENT_METHODS)}")
    return method


def record_transaction(
    *,
    shop_id: int,
    type: str,
    category: str,
    amount_cents: int,
    payment_method: str = "CASH",
    description: str | None = None,
    transaction_date=None,
    related_sale_id: int | None = None,
    related_purchase_id: int | None = None,
    related_customer_id: int | None = None,
    related_supplier_id: int | None = None,
    created_by_user_id: int | None = None,
) -> Transaction:
    """
    Append one ledger row to the current unit of work (flushes, does not commit).
    """
    if type not in TRANSACTION_TYPES:
        raise ValidationError(f"type must be one of: {', '.join(TRANSACTION_TYPES)}")
    if category not in ALL_CATEGORIES:
        raise ValidationError(f"Unknown transaction category: {category}")
    if amount_cents <= 0:
        raise ValidationError("Transaction amount must be positive")

    txn = Transaction(
        shop_id=shop_id,
        type=type,
        category=category,
        amount_cents=amount_cents,
        payment_method=payment_method,
        description=description,
        transaction_date=transaction_date or utcnow(),
        related_sale_id=related_sale_id,
        related_purchase_id=related_purchase_id,
        related_customer_id=related_customer_id,
        related_supplier_id=related_supplier_id,
        created_by_user_id=created_by_user_id,
    )
    db.session.add(txn)
    db.session.flush()
    return txn


def create_manual_transaction(shop_id: int, user_id: int, payload: dict) -> Transaction:
    """
    Record an expense, drawing, capital injection or other income.

    Raises:
        ConflictError: category is one of the protected lifecycle categories
        ValidationError: bad type/category/amount or direction mismatch
    """
    verify_shop_owner(shop_id, user_id)
    payload = payload or {}

    txn_type = str(payload.get("type") or "").strip().upper()
    category = str(payload.get("category") or "").strip().upper()

    if category in PROTECTED_CATEGORIES:
        raise ConflictError(
            f"{category} transactions are created automatically by sales and purchases "
            "and cannot be recorded manually."
        )
    if txn_type not in TRANSACTION_TYPES:
        raise ValidationError(f"type must be one of: {', '.join(TRANSACTION_TYPES)}")
    if category not in MANUAL_CATEGORY_DIRECTIONS:
        raise ValidationError(f"category must be one of: {', '.join(sorted(MANUAL_CATEGORY_DIRECTIONS))}")

    expected = MANUAL_CATEGORY_DIRECTIONS[category]
    if txn_type != expected:
        raise ValidationError(f"{category} must be recorded as {expected}")

    amount_cents = parse_cents(payload.get("amount_cents"), "amount_cents", positive=True)
    payment_method = validate_payment_method(payload.get("payment_method"))
    transaction_date = parse_date(payload.get("transaction_date"), "transaction_date")
    description = (payload.get("description") or "").strip() or None

    txn = record_transaction(
        shop_id=shop_id,
        type=txn_type,
        category=category,
        amount_cents=amount_cents,
        payment_method=payment_method,
        description=description,
        transaction_date=transaction_date,
        created_by_user_id=user_id,
    )
    db.session.commit()

    current_app.logger.info(
        "Manual transaction recorded: id=%s shop=%s %s %s %s", txn.id, shop_id, txn_type, category, amount_cents
    )
    return txn


def list_transactions(shop_id: int, user_id: int, filters: dict | None = None, *, page: int = 1, per_page: int = 20) -> dict:
    """
    Newest-first listing.

    filters: search (description), type, category, start_date, end_date,
    customer_id, supplier_id.
    """
    verify_shop_owner(shop_id, user_id)
    filters = filters or {}

    query = db.session.query(Transaction).filter(Transaction.shop_id == shop_id)

    search = (filters.get("search") or "").strip()
    if search:
        query = query.filter(Transaction.description.ilike(f"%{search}%"))

    txn_type = (filters.get("type") or "").strip().upper()
    if txn_type:
        query = query.filter(Transaction.type == txn_type)

    category = (filters.get("category") or "").strip().upper()
    if category:
        query = query.filter(Transaction.category == category)

    start = parse_date(filters.get("start_date"), "start_date")
    if start is not None:
        query = query.filter(Transaction.transaction_date >= start)

    end = parse_date(filters.get("end_date"), "end_date")
    if end is not None:
        # A bare date means "through the end of that day"
        if end.hour == end.minute == end.second == 0:
            end = end + timedelta(days=1)
            query = query.filter(Transaction.transaction_date < end)
        else:
            query = query.filter(Transaction.transaction_date <= end)

    customer_id = parse_optional_id(filters.get("customer_id"), "customer_id")
    if customer_id is not None:
        query = query.filter(Transaction.related_customer_id == customer_id)

    supplier_id = parse_optional_id(filters.get("supplier_id"), "supplier_id")
    if supplier_id is not None:
        query = query.filter(Transaction.related_supplier_id == supplier_id)

    query = query.order_by(Transaction.transaction_date.desc(), Transaction.id.desc())
    return paginate_query(query, page=page, per_page=per_page)


def get_transaction(transaction_id: int, user_id: int) -> Transaction:
    txn = db.session.get(Transaction, transaction_id)
    if txn is None:
        raise NotFoundError("Transaction not found.")
    verify_shop_owner(txn.shop_id, user_id)
    return txn
