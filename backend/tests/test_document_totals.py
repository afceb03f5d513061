# Overview: Pytest coverage for the derived money fields of ledger documents.

import pytest

from shopledger.errors import ValidationError
from shopledger.models import Sale, SaleItem
from shopledger.services.document_totals import (
    PAYMENT_STATUS_PAID,
    PAYMENT_STATUS_PARTIAL,
    PAYMENT_STATUS_UNPAID,
    apply_derived_fields,
    compute_totals,
    derive_payment_status,
)


class TestComputeTotals:
    def test_partial_payment(self):
        totals = compute_totals([(2, 15000)], amount_paid_cents=20000)

        assert totals.line_totals == (30000,)
        assert totals.sub_total_cents == 30000
        assert totals.grand_total_cents == 30000
        assert totals.amount_due_cents == 10000
        assert totals.payment_status == PAYMENT_STATUS_PARTIAL

    def test_discount_and_tax(self):
        totals = compute_totals([(1, 10000), (3, 2500)], discount_cents=1500, tax_cents=1300)

        assert totals.sub_total_cents == 17500
        assert totals.grand_total_cents == 17500 - 1500 + 1300
        assert totals.amount_due_cents == totals.grand_total_cents
        assert totals.payment_status == PAYMENT_STATUS_UNPAID

    def test_overpayment_floors_due_at_zero(self):
        totals = compute_totals([(1, 5000)], amount_paid_cents=7000)
        assert totals.amount_due_cents == 0
        assert totals.payment_status == PAYMENT_STATUS_PAID

    def test_discount_larger_than_total_rejected(self):
        with pytest.raises(ValidationError):
            compute_totals([(1, 5000)], discount_cents=5001)

    def test_discount_may_consume_tax(self):
        totals = compute_totals([(1, 5000)], discount_cents=5500, tax_cents=500)
        assert totals.grand_total_cents == 0
        assert totals.payment_status == PAYMENT_STATUS_PAID


class TestPaymentStatus:
    @pytest.mark.parametrize(
        "due,paid,expected",
        [
            (0, 0, PAYMENT_STATUS_PAID),
            (0, 500, PAYMENT_STATUS_PAID),
            (100, 1, PAYMENT_STATUS_PARTIAL),
            (100, 0, PAYMENT_STATUS_UNPAID),
        ],
    )
    def test_derivation(self, due, paid, expected):
        assert derive_payment_status(due, paid) == expected


class TestApplyDerivedFields:
    def test_writes_every_derived_field(self):
        sale = Sale(discount_cents=1000, tax_cents=0, amount_paid_cents=5000)
        sale.items.append(SaleItem(position=1, product_id=1, product_name="A", quantity=2, unit_price_cents=4000))
        sale.items.append(SaleItem(position=2, product_id=2, product_name="B", quantity=1, unit_price_cents=3000))

        apply_derived_fields(sale)

        assert [item.total_cents for item in sale.items] == [8000, 3000]
        assert sale.sub_total_cents == 11000
        assert sale.grand_total_cents == 10000
        assert sale.amount_due_cents == 5000
        assert sale.payment_status == PAYMENT_STATUS_PARTIAL

    def test_recomputes_after_payment(self):
        sale = Sale(discount_cents=0, tax_cents=0, amount_paid_cents=0)
        sale.items.append(SaleItem(position=1, product_id=1, product_name="A", quantity=1, unit_price_cents=4000))
        apply_derived_fields(sale)
        assert sale.payment_status == PAYMENT_STATUS_UNPAID

        sale.amount_paid_cents = 4000
        apply_derived_fields(sale)
        assert sale.amount_due_cents == 0
        assert sale.payment_status == PAYMENT_STATUS_PAID


class TestTotalsCap:
    def test_sub_total_above_cap_rejected(self):
        with pytest.raises(ValidationError, match="Document total cannot exceed"):
            compute_totals([(10_000_000, 999_999_999)])

    def test_tax_pushing_grand_total_over_cap_rejected(self):
        with pytest.raises(ValidationError, match="Document total cannot exceed"):
            compute_totals([(1, 999_999_999)], tax_cents=1)

    def test_total_at_cap_accepted(self):
        assert compute_totals([(1, 999_999_999)]).grand_total_cents == 999_999_999
