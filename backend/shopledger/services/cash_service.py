# Overview: Bulk cash-in / cash-out allocation across a counterparty's open documents.

"""
Cash allocator.

A lump payment from a customer (cash in) or to a supplier (cash out) is
spread over that party's open documents oldest first: each document is
paid off completely before the next one is touched. The party's balance
moves by the full amount and exactly one ledger row is written for the
whole payment.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from flask import current_app

from ..errors import ValidationError
from ..extensions import db
from ..models import Customer, Purchase, Sale, Supplier
from ..models.documents import COMPLETED
from ..models.transactions import CASH_IN, CASH_OUT
from ..validation import format_money, parse_cents, parse_date, parse_optional_id
from .balance_service import load_party_for_update, settle
from .concurrency import lock_for_update, unit_of_work
from .document_totals import PAYMENT_STATUS_PARTIAL, PAYMENT_STATUS_UNPAID, apply_derived_fields
from .ledger_service import PURCHASE_PAYMENT, SALE_PAYMENT, record_transaction, validate_payment_method
from .shop_service import verify_shop_owner
from shopledger.time_utils import utcnow


@dataclass
class Allocation:
    """Outcome of one bulk payment."""
    party_name: str
    amount_cents: int
    transaction_id: int
    applied: list[dict] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "party_name": self.party_name,
            "amount_cents": self.amount_cents,
            "transaction_id": self.transaction_id,
            "applied": self.applied,
        }


def allocate_oldest_first(documents, amount_cents: int) -> list[tuple[object, int]]:
    """
    Apply ``amount_cents`` to ``documents`` (already sorted oldest first).

    Mutates amount_paid_cents and the derived fields of each touched
    document and returns [(document, applied_cents), ...].
    """
    remaining = amount_cents
    applied = []
    for document in documents:
        if remaining <= 0:
            break
        portion = min(remaining, document.amount_due_cents)
        if portion <= 0:
            continue
        document.amount_paid_cents += portion
        apply_derived_fields(document)
        applied.append((document, portion))
        remaining -= portion
    return applied


def _open_documents(model, party_column, date_column, party_id):
    return (
        lock_for_update(
            db.session.query(model)
            .filter(
                party_column == party_id,
                model.status == COMPLETED,
                model.payment_status.in_((PAYMENT_STATUS_UNPAID, PAYMENT_STATUS_PARTIAL)),
            )
            .order_by(date_column.asc(), model.id.asc())
        )
        .all()
    )


def _parse_common(payload: dict, party_field: str, label: str):
    party_id = parse_optional_id(payload.get(party_field), party_field)
    raw_amount = payload.get("amount_cents")
    if party_id is None or raw_amount in (None, ""):
        raise ValidationError(f"{label} and a valid positive amount are required.")
    amount_cents = parse_cents(raw_amount, "amount_cents", positive=True)
    payment_method = validate_payment_method(payload.get("payment_method"))
    transaction_date = parse_date(payload.get("transaction_date"), "transaction_date") or utcnow()
    notes = (payload.get("notes") or "").strip() or None
    return party_id, amount_cents, payment_method, transaction_date, notes


def record_cash_in(shop_id: int, user_id: int, payload: dict) -> Allocation:
    """
    Receive a lump payment from a customer.

    payload: customer_id, amount_cents, payment_method?, notes?, transaction_date?
    """
    customer_id, amount_cents, payment_method, transaction_date, notes = _parse_common(
        payload or {}, "customer_id", "Customer"
    )

    def _op() -> Allocation:
        verify_shop_owner(shop_id, user_id)
        customer = load_party_for_update(Customer, shop_id, customer_id)
        if customer.current_balance_cents < amount_cents:
            raise ValidationError(
                f"Payment amount ({format_money(amount_cents)}) exceeds customer's total due "
                f"({format_money(customer.current_balance_cents)})."
            )

        sales = _open_documents(Sale, Sale.customer_id, Sale.sale_date, customer.id)
        applied = allocate_oldest_first(sales, amount_cents)
        settle(customer, amount_cents)

        txn = record_transaction(
            shop_id=shop_id,
            type=CASH_IN,
            category=SALE_PAYMENT,
            amount_cents=amount_cents,
            payment_method=payment_method,
            description=notes or f"Bulk payment received from {customer.name}.",
            transaction_date=transaction_date,
            related_customer_id=customer.id,
            created_by_user_id=user_id,
        )
        return Allocation(
            party_name=customer.name,
            amount_cents=amount_cents,
            transaction_id=txn.id,
            applied=[
                {"sale_id": sale.id, "invoice_number": sale.invoice_number, "applied_cents": portion}
                for sale, portion in applied
            ],
        )

    allocation = unit_of_work(_op)
    current_app.logger.info(
        "Cash in: shop=%s customer=%s amount=%s documents=%s",
        shop_id, customer_id, amount_cents, len(allocation.applied),
    )
    return allocation


def record_cash_out(shop_id: int, user_id: int, payload: dict) -> Allocation:
    """
    Pay a supplier a lump sum.

    payload: supplier_id, amount_cents, payment_method?, notes?, transaction_date?
    """
    supplier_id, amount_cents, payment_method, transaction_date, notes = _parse_common(
        payload or {}, "supplier_id", "Supplier"
    )

    def _op() -> Allocation:
        verify_shop_owner(shop_id, user_id)
        supplier = load_party_for_update(Supplier, shop_id, supplier_id)
        if supplier.current_balance_cents < amount_cents:
            raise ValidationError(
                f"Payment amount ({format_money(amount_cents)}) exceeds total payable to supplier "
                f"({format_money(supplier.current_balance_cents)})."
            )

        purchases = _open_documents(Purchase, Purchase.supplier_id, Purchase.purchase_date, supplier.id)
        applied = allocate_oldest_first(purchases, amount_cents)
        settle(supplier, amount_cents)

        txn = record_transaction(
            shop_id=shop_id,
            type=CASH_OUT,
            category=PURCHASE_PAYMENT,
            amount_cents=amount_cents,
            payment_method=payment_method,
            description=notes or f"Bulk payment made to {supplier.name}.",
            transaction_date=transaction_date,
            related_supplier_id=supplier.id,
            created_by_user_id=user_id,
        )
        return Allocation(
            party_name=supplier.name,
            amount_cents=amount_cents,
            transaction_id=txn.id,
            applied=[
                {"purchase_id": purchase.id, "bill_number": purchase.bill_number, "applied_cents": portion}
                for purchase, portion in applied
            ],
        )

    allocation = unit_of_work(_op)
    current_app.logger.info(
        "Cash out: shop=%s supplier=%s amount=%s documents=%s",
        shop_id, supplier_id, amount_cents, len(allocation.applied),
    )
    return allocation
