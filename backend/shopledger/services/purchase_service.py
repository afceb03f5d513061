# Overview: Purchase lifecycle (create, record payment, cancel) and purchase queries.

"""
Purchase lifecycle, the mirror image of sale_service:

- creating a purchase adds stock and records the latest unit cost
- the shop owes the supplier the amount due
- money flows out (PURCHASE_PAYMENT as CASH_OUT)
- cancelling takes the stock back out and refuses to push it below zero

A purchase without a supplier is a CASH purchase and must be paid in
full when it is created.
"""

from __future__ import annotations

from flask import current_app

from ..errors import ConflictError, NotFoundError, ValidationError
from ..extensions import db
from ..models import Purchase, PurchaseItem, Supplier
from ..models.documents import CANCELLED, CASH, COMPLETED, SUPPLIER
from ..models.transactions import CASH_IN, CASH_OUT
from ..pagination import paginate_query
from ..validation import format_money, parse_cents, parse_date, parse_line_items, parse_optional_id
from .balance_service import charge, load_party_for_update, reverse, settle
from .concurrency import lock_for_update, unit_of_work
from .document_service import PURCHASE_SEQUENCE, next_document_number
from .document_totals import PAYMENT_STATUS_PAID, apply_derived_fields
from .ledger_service import PURCHASE_PAYMENT, PURCHASE_RETURN, record_transaction, validate_payment_method
from .shop_service import verify_shop_owner
from .stock_service import load_products_for_update, release_stock, restock
from shopledger.time_utils import utcnow


def _load_purchase_for_update(purchase_id: int, user_id: int) -> Purchase:
    purchase = lock_for_update(db.session.query(Purchase).filter_by(id=purchase_id)).first()
    if purchase is None:
        raise NotFoundError("Purchase not found.")
    verify_shop_owner(purchase.shop_id, user_id)
    return purchase


def _bill_number_taken(shop_id: int, bill_number: str, supplier_id) -> bool:
    return (
        db.session.query(Purchase.id)
        .filter_by(shop_id=shop_id, bill_number=bill_number, supplier_id=supplier_id)
        .first()
        is not None
    )


def create_purchase(shop_id: int, user_id: int, payload: dict) -> Purchase:
    """
    Create a purchase and apply all of its effects atomically.

    payload: supplier_id?, bill_number?, items [{product_id, quantity,
    unit_cost_cents}], discount_cents?, amount_paid_cents?,
    payment_method?, notes?, purchase_date?
    """
    payload = payload or {}
    supplier_id = parse_optional_id(payload.get("supplier_id"), "supplier_id")
    lines = parse_line_items(payload.get("items"), unit_field="unit_cost_cents", unit_required=True)
    discount_cents = parse_cents(payload.get("discount_cents"), "discount_cents", default=0)
    amount_paid_cents = parse_cents(payload.get("amount_paid_cents"), "amount_paid_cents", default=0)
    payment_method = validate_payment_method(payload.get("payment_method"))
    purchase_date = parse_date(payload.get("purchase_date"), "purchase_date") or utcnow()
    notes = (payload.get("notes") or "").strip() or None
    bill_number = (payload.get("bill_number") or "").strip() or None
    if bill_number and len(bill_number) > 64:
        raise ValidationError("bill_number exceeds max length 64")

    def _op() -> Purchase:
        verify_shop_owner(shop_id, user_id)

        supplier = None
        if supplier_id is not None:
            supplier = load_party_for_update(Supplier, shop_id, supplier_id)

        products = load_products_for_update(shop_id, [line.product_id for line in lines])

        purchase = Purchase(
            shop_id=shop_id,
            supplier_id=supplier.id if supplier else None,
            purchase_type=SUPPLIER if supplier else CASH,
            status=COMPLETED,
            discount_cents=discount_cents,
            amount_paid_cents=amount_paid_cents,
            purchase_date=purchase_date,
            notes=notes,
            created_by_user_id=user_id,
        )

        for position, line in enumerate(lines, start=1):
            product = products[line.product_id]
            restock(product, line.quantity, unit_cost_cents=line.unit_amount_cents)
            purchase.items.append(PurchaseItem(
                position=position,
                product_id=product.id,
                product_name=product.name,
                quantity=line.quantity,
                unit_cost_cents=line.unit_amount_cents,
            ))

        totals = apply_derived_fields(purchase)
        if amount_paid_cents > totals.grand_total_cents:
            raise ValidationError(
                f"Amount paid ({format_money(amount_paid_cents)}) cannot exceed the grand total "
                f"({format_money(totals.grand_total_cents)})."
            )
        if supplier is None and totals.amount_due_cents > 0:
            raise ValidationError("Cash purchases must be paid in full.")

        if bill_number:
            if _bill_number_taken(shop_id, bill_number, purchase.supplier_id):
                raise ConflictError(f"Bill #{bill_number} has already been recorded for this supplier.")
            purchase.bill_number = bill_number
        else:
            # A manual bill may already hold a sequence value; skip past it
            purchase.bill_number = next_document_number(shop_id=shop_id, document_type=PURCHASE_SEQUENCE)
            while _bill_number_taken(shop_id, purchase.bill_number, purchase.supplier_id):
                purchase.bill_number = next_document_number(shop_id=shop_id, document_type=PURCHASE_SEQUENCE)

        db.session.add(purchase)
        db.session.flush()

        if supplier is not None:
            charge(supplier, purchase.amount_due_cents, purchase.amount_paid_cents)

        if purchase.amount_paid_cents > 0:
            record_transaction(
                shop_id=shop_id,
                type=CASH_OUT,
                category=PURCHASE_PAYMENT,
                amount_cents=purchase.amount_paid_cents,
                payment_method=payment_method,
                description=f"Payment for Bill #{purchase.bill_number}",
                transaction_date=purchase_date,
                related_purchase_id=purchase.id,
                related_supplier_id=purchase.supplier_id,
                created_by_user_id=user_id,
            )
        return purchase

    purchase = unit_of_work(_op)
    current_app.logger.info(
        "Purchase created: id=%s bill=%s shop=%s type=%s total=%s due=%s",
        purchase.id, purchase.bill_number, shop_id, purchase.purchase_type,
        purchase.grand_total_cents, purchase.amount_due_cents,
    )
    return purchase


def record_purchase_payment(purchase_id: int, user_id: int, payload: dict) -> Purchase:
    """Pay the supplier part or all of what is still due on one purchase."""
    payload = payload or {}
    amount_cents = parse_cents(payload.get("amount_cents"), "amount_cents", positive=True)
    payment_method = validate_payment_method(payload.get("payment_method"))
    payment_date = parse_date(payload.get("payment_date"), "payment_date") or utcnow()

    def _op() -> Purchase:
        purchase = _load_purchase_for_update(purchase_id, user_id)
        if purchase.is_cancelled:
            raise ValidationError("Cannot record a payment for a cancelled purchase.")
        if purchase.is_cash:
            raise ValidationError("Cannot record additional payments for a cash purchase.")
        if purchase.payment_status == PAYMENT_STATUS_PAID:
            raise ValidationError("This purchase is already fully paid.")
        if amount_cents > purchase.amount_due_cents:
            raise ValidationError(
                f"Payment amount ({format_money(amount_cents)}) exceeds the amount due "
                f"({format_money(purchase.amount_due_cents)})."
            )

        supplier = load_party_for_update(Supplier, purchase.shop_id, purchase.supplier_id)

        purchase.amount_paid_cents += amount_cents
        apply_derived_fields(purchase)
        settle(supplier, amount_cents)

        record_transaction(
            shop_id=purchase.shop_id,
            type=CASH_OUT,
            category=PURCHASE_PAYMENT,
            amount_cents=amount_cents,
            payment_method=payment_method,
            description=f"Additional payment for Bill #{purchase.bill_number}",
            transaction_date=payment_date,
            related_purchase_id=purchase.id,
            related_supplier_id=purchase.supplier_id,
            created_by_user_id=user_id,
        )
        return purchase

    purchase = unit_of_work(_op)
    current_app.logger.info(
        "Purchase payment recorded: id=%s amount=%s due=%s status=%s",
        purchase.id, amount_cents, purchase.amount_due_cents, purchase.payment_status,
    )
    return purchase


def cancel_purchase(purchase_id: int, user_id: int) -> Purchase:
    """
    Cancel a purchase: the goods go back to the supplier, balances are
    reversed, and money already paid comes back in as a PURCHASE_RETURN.

    Raises InsufficientStockToReverseError if some of the stock has
    already been sold.
    """
    def _op() -> Purchase:
        purchase = _load_purchase_for_update(purchase_id, user_id)
        if purchase.is_cancelled:
            raise ValidationError("This purchase has already been cancelled.")

        products = load_products_for_update(purchase.shop_id, [item.product_id for item in purchase.items])
        for item in purchase.items:
            release_stock(products[item.product_id], item.quantity)

        if purchase.supplier_id is not None:
            supplier = load_party_for_update(Supplier, purchase.shop_id, purchase.supplier_id)
            reverse(supplier, purchase.amount_due_cents, purchase.amount_paid_cents)

        if purchase.amount_paid_cents > 0:
            record_transaction(
                shop_id=purchase.shop_id,
                type=CASH_IN,
                category=PURCHASE_RETURN,
                amount_cents=purchase.amount_paid_cents,
                description=f"Reversal/Cancellation of Bill #{purchase.bill_number}",
                related_purchase_id=purchase.id,
                related_supplier_id=purchase.supplier_id,
                created_by_user_id=user_id,
            )

        purchase.status = CANCELLED
        purchase.cancelled_at = utcnow()
        purchase.cancelled_by_user_id = user_id
        return purchase

    purchase = unit_of_work(_op)
    current_app.logger.info("Purchase cancelled: id=%s bill=%s", purchase.id, purchase.bill_number)
    return purchase


def list_purchases(shop_id: int, user_id: int, filters: dict | None = None, *, page: int = 1, per_page: int = 20) -> dict:
    """Newest first. filters: search (bill number), supplier_id, purchase_type, status."""
    verify_shop_owner(shop_id, user_id)
    filters = filters or {}

    query = db.session.query(Purchase).filter(Purchase.shop_id == shop_id)

    search = (filters.get("search") or "").strip()
    if search:
        query = query.filter(Purchase.bill_number.ilike(f"%{search}%"))

    supplier_id = parse_optional_id(filters.get("supplier_id"), "supplier_id")
    if supplier_id is not None:
        query = query.filter(Purchase.supplier_id == supplier_id)

    purchase_type = (filters.get("purchase_type") or "").strip().upper()
    if purchase_type:
        query = query.filter(Purchase.purchase_type == purchase_type)

    status = (filters.get("status") or "").strip().upper()
    if status:
        query = query.filter(Purchase.status == status)

    query = query.order_by(Purchase.purchase_date.desc(), Purchase.id.desc())
    return paginate_query(query, page=page, per_page=per_page, serialize=lambda p: p.to_dict(include_items=False))


def get_purchase(purchase_id: int, user_id: int) -> Purchase:
    purchase = db.session.get(Purchase, purchase_id)
    if purchase is None:
        raise NotFoundError("Purchase not found.")
    verify_shop_owner(purchase.shop_id, user_id)
    return purchase
