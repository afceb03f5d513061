# Overview: Derived money fields of sales and purchases (line totals through payment status).

"""
Ledger document totals.

The chain is:

    line total   = quantity * unit amount
    sub total    = sum(line totals)
    grand total  = sub total - discount (+ tax, sales only)
    amount due   = max(grand total - amount paid, 0)
    status       = PAID if due <= 0, PARTIAL if paid > 0, else UNPAID

compute_totals() is pure; apply_derived_fields() writes its result onto a
Sale or Purchase and must run before every flush that touches items,
discount, tax or amount paid.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable

from ..errors import ValidationError
from ..validation import MAX_AMOUNT_CENTS


PAYMENT_STATUS_PAID = "PAID"
PAYMENT_STATUS_PARTIAL = "PARTIAL"
PAYMENT_STATUS_UNPAID = "UNPAID"


@dataclass(frozen=True)
class DocumentTotals:
    line_totals: tuple[int, ...]
    sub_total_cents: int
    grand_total_cents: int
    amount_due_cents: int
    payment_status: str


def line_total(quantity: int, unit_amount_cents: int) -> int:
    return quantity * unit_amount_cents


def derive_payment_status(amount_due_cents: int, amount_paid_cents: int) -> str:
    if amount_due_cents <= 0:
        return PAYMENT_STATUS_PAID
    if amount_paid_cents > 0:
        return PAYMENT_STATUS_PARTIAL
    return PAYMENT_STATUS_UNPAID


def compute_totals(
    lines: Iterable[tuple[int, int]],
    *,
    discount_cents: int = 0,
    tax_cents: int = 0,
    amount_paid_cents: int = 0,
) -> DocumentTotals:
    """
    Compute every derived field from ``(quantity, unit_amount_cents)`` pairs.

    Raises ValidationError when the discount exceeds sub total plus tax,
    since that would make the grand total negative, or when the
    sub total or grand total exceeds MAX_AMOUNT_CENTS.
    """
    line_totals = tuple(line_total(qty, unit) for qty, unit in lines)
    sub_total = sum(line_totals)
    if sub_total > MAX_AMOUNT_CENTS:
        raise ValidationError(f"Document total cannot exceed {MAX_AMOUNT_CENTS}")

    if discount_cents > sub_total + tax_cents:
        raise ValidationError("Discount cannot exceed the document total")

    grand_total = sub_total - discount_cents + tax_cents
    if grand_total > MAX_AMOUNT_CENTS:
        raise ValidationError(f"Document total cannot exceed {MAX_AMOUNT_CENTS}")
    amount_due = max(grand_total - amount_paid_cents, 0)

    return DocumentTotals(
        line_totals=line_totals,
        sub_total_cents=sub_total,
        grand_total_cents=grand_total,
        amount_due_cents=amount_due,
        payment_status=derive_payment_status(amount_due, amount_paid_cents),
    )


def apply_derived_fields(document) -> DocumentTotals:
    """Recompute and assign the derived fields of a Sale or Purchase and its items."""
    items = list(document.items)
    totals = compute_totals(
        [(item.quantity, item.unit_amount_cents) for item in items],
        discount_cents=document.discount_cents or 0,
        tax_cents=getattr(document, "tax_cents", 0) or 0,
        amount_paid_cents=document.amount_paid_cents or 0,
    )

    for item, total in zip(items, totals.line_totals):
        item.total_cents = total
    document.sub_total_cents = totals.sub_total_cents
    document.grand_total_cents = totals.grand_total_cents
    document.amount_due_cents = totals.amount_due_cents
    document.payment_status = totals.payment_status
    return totals
