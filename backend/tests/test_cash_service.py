# Overview: Pytest coverage for bulk cash-in / cash-out allocation.

import pytest

from shopledger.errors import ForbiddenError, ValidationError
from shopledger.models import Customer, Sale, SaleItem, Supplier, Transaction
from shopledger.services import cash_service, purchase_service, sale_service
from shopledger.services.document_totals import apply_derived_fields


def _credit_sale(shop, owner, product, customer, quantity, paid=0):
    return sale_service.create_sale(shop.id, owner.id, {
        "customer_id": customer.id,
        "items": [{"product_id": product.id, "quantity": quantity, "unit_price_cents": 10000}],
        "amount_paid_cents": paid,
    })


class TestAllocateOldestFirst:
    @staticmethod
    def _open_sale(unit_price):
        sale = Sale(discount_cents=0, tax_cents=0, amount_paid_cents=0)
        sale.items.append(SaleItem(position=1, product_id=1, product_name="A", quantity=1, unit_price_cents=unit_price))
        apply_derived_fields(sale)
        return sale

    def test_pays_documents_in_order(self):
        first = self._open_sale(20000)
        second = self._open_sale(15000)

        applied = cash_service.allocate_oldest_first([first, second], 30000)

        assert [portion for _, portion in applied] == [20000, 10000]
        assert first.payment_status == "PAID"
        assert second.amount_due_cents == 5000
        assert second.payment_status == "PARTIAL"

    def test_stops_when_money_runs_out(self):
        docs = [self._open_sale(5000) for _ in range(3)]
        applied = cash_service.allocate_oldest_first(docs, 5000)
        assert len(applied) == 1
        assert docs[2].payment_status == "UNPAID"


class TestCashIn:
    def test_lump_payment_spreads_over_sales(self, db_session, owner, shop, product, customer):
        older = _credit_sale(shop, owner, product, customer, quantity=2)
        newer = _credit_sale(shop, owner, product, customer, quantity=2, paid=5000)
        assert db_session.get(Customer, customer.id).current_balance_cents == 35000

        allocation = cash_service.record_cash_in(
            shop.id, owner.id, {"customer_id": customer.id, "amount_cents": 30000}
        )

        assert allocation.party_name == "Hari Thapa"
        assert [a["applied_cents"] for a in allocation.applied] == [20000, 10000]

        assert db_session.get(Sale, older.id).payment_status == "PAID"
        newer = db_session.get(Sale, newer.id)
        assert newer.payment_status == "PARTIAL"
        assert newer.amount_due_cents == 5000

        cust = db_session.get(Customer, customer.id)
        assert cust.current_balance_cents == 5000
        assert cust.total_spent_cents == 35000

        bulk = db_session.query(Transaction).filter(Transaction.related_sale_id.is_(None)).all()
        assert len(bulk) == 1
        assert bulk[0].id == allocation.transaction_id
        assert bulk[0].category == "SALE_PAYMENT"
        assert bulk[0].amount_cents == 30000
        assert bulk[0].description == "Bulk payment received from Hari Thapa."

    def test_payment_above_balance_rejected(self, db_session, owner, shop, product, customer):
        _credit_sale(shop, owner, product, customer, quantity=1)

        with pytest.raises(ValidationError, match="exceeds customer's total due"):
            cash_service.record_cash_in(shop.id, owner.id, {"customer_id": customer.id, "amount_cents": 10001})

        assert db_session.get(Customer, customer.id).current_balance_cents == 10000
        assert db_session.query(Transaction).count() == 0

    def test_cancelled_sales_are_skipped(self, db_session, owner, shop, product, customer):
        cancelled = _credit_sale(shop, owner, product, customer, quantity=1)
        live = _credit_sale(shop, owner, product, customer, quantity=1)
        sale_service.cancel_sale(cancelled.id, owner.id)

        allocation = cash_service.record_cash_in(
            shop.id, owner.id, {"customer_id": customer.id, "amount_cents": 10000}
        )
        assert [a["sale_id"] for a in allocation.applied] == [live.id]

    def test_customer_and_amount_required(self, db_session, owner, shop, customer):
        with pytest.raises(ValidationError, match="Customer and a valid positive amount are required."):
            cash_service.record_cash_in(shop.id, owner.id, {"customer_id": customer.id})

    def test_not_owner(self, db_session, other_user, shop, customer):
        with pytest.raises(ForbiddenError):
            cash_service.record_cash_in(shop.id, other_user.id, {"customer_id": customer.id, "amount_cents": 100})


class TestCashOut:
    def test_lump_payment_to_supplier(self, db_session, owner, shop, product, supplier):
        for _ in range(2):
            purchase_service.create_purchase(shop.id, owner.id, {
                "supplier_id": supplier.id,
                "items": [{"product_id": product.id, "quantity": 1, "unit_cost_cents": 8000}],
            })

        allocation = cash_service.record_cash_out(
            shop.id, owner.id, {"supplier_id": supplier.id, "amount_cents": 12000, "payment_method": "BANK_TRANSFER"}
        )

        assert [a["applied_cents"] for a in allocation.applied] == [8000, 4000]
        assert db_session.get(Supplier, supplier.id).current_balance_cents == 4000
        txn = db_session.get(Transaction, allocation.transaction_id)
        assert (txn.type, txn.category, txn.payment_method) == ("CASH_OUT", "PURCHASE_PAYMENT", "BANK_TRANSFER")

    def test_payment_above_payable_rejected(self, db_session, owner, shop, supplier):
        with pytest.raises(ValidationError, match="exceeds total payable to supplier"):
            cash_service.record_cash_out(shop.id, owner.id, {"supplier_id": supplier.id, "amount_cents": 1})
