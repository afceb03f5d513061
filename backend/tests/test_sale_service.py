# Overview: Pytest coverage for the sale lifecycle (create, pay, cancel).

import pytest

from shopledger.errors import (
    ForbiddenError,
    InsufficientStockError,
    NotFoundError,
    ValidationError,
)
from shopledger.models import Customer, Product, Sale, Transaction
from shopledger.services import sale_service


def _sale_payload(product, quantity=2, paid=20000, customer=None, **extra):
    payload = {
        "items": [{"product_id": product.id, "quantity": quantity, "unit_price_cents": 15000}],
        "amount_paid_cents": paid,
    }
    if customer is not None:
        payload["customer_id"] = customer.id
    payload.update(extra)
    return payload


def _outstanding(db_session, customer_id):
    sales = db_session.query(Sale).filter_by(customer_id=customer_id, status="COMPLETED").all()
    return sum(s.amount_due_cents for s in sales)


class TestCreateSale:
    def test_customer_sale_applies_all_effects(self, db_session, owner, shop, product, customer):
        sale = sale_service.create_sale(shop.id, owner.id, _sale_payload(product, customer=customer))

        assert sale.invoice_number == "INV-0001"
        assert sale.sale_type == "CUSTOMER"
        assert sale.grand_total_cents == 30000
        assert sale.amount_due_cents == 10000
        assert sale.payment_status == "PARTIAL"
        assert [i.total_cents for i in sale.items] == [30000]
        assert sale.items[0].unit_cost_cents == 10000

        assert db_session.get(Product, product.id).quantity == 8

        cust = db_session.get(Customer, customer.id)
        assert cust.current_balance_cents == 10000
        assert cust.total_spent_cents == 20000

        txns = db_session.query(Transaction).filter_by(related_sale_id=sale.id).all()
        assert len(txns) == 1
        assert txns[0].type == "CASH_IN"
        assert txns[0].category == "SALE_PAYMENT"
        assert txns[0].amount_cents == 20000
        assert txns[0].related_customer_id == customer.id

    def test_unit_price_defaults_to_selling_price(self, db_session, owner, shop, product):
        payload = {"items": [{"product_id": product.id, "quantity": 1}], "amount_paid_cents": 15000}
        sale = sale_service.create_sale(shop.id, owner.id, payload)
        assert sale.items[0].unit_price_cents == 15000
        assert sale.payment_status == "PAID"

    def test_unpaid_sale_writes_no_transaction(self, db_session, owner, shop, product, customer):
        sale = sale_service.create_sale(shop.id, owner.id, _sale_payload(product, paid=0, customer=customer))
        assert sale.payment_status == "UNPAID"
        assert db_session.query(Transaction).count() == 0

    def test_invoice_numbers_increment(self, db_session, owner, shop, product):
        first = sale_service.create_sale(shop.id, owner.id, _sale_payload(product, quantity=1, paid=15000))
        second = sale_service.create_sale(shop.id, owner.id, _sale_payload(product, quantity=1, paid=15000))
        assert (first.invoice_number, second.invoice_number) == ("INV-0001", "INV-0002")

    def test_insufficient_stock_rolls_back_everything(self, db_session, owner, shop, product, second_product, customer):
        payload = {
            "customer_id": customer.id,
            "items": [
                {"product_id": second_product.id, "quantity": 5},
                {"product_id": product.id, "quantity": 11},
            ],
        }
        with pytest.raises(InsufficientStockError) as exc:
            sale_service.create_sale(shop.id, owner.id, payload)

        assert exc.value.message == "Insufficient stock for Basmati Rice 1kg. Available: 10, Required: 11."
        assert exc.value.details["available"] == 10
        assert db_session.get(Product, second_product.id).quantity == 20
        assert db_session.get(Product, product.id).quantity == 10
        assert db_session.query(Sale).count() == 0
        assert db_session.get(Customer, customer.id).current_balance_cents == 0

    def test_repeated_product_lines_share_stock(self, db_session, owner, shop, product):
        payload = {
            "items": [
                {"product_id": product.id, "quantity": 6},
                {"product_id": product.id, "quantity": 6},
            ],
            "amount_paid_cents": 180000,
        }
        with pytest.raises(InsufficientStockError):
            sale_service.create_sale(shop.id, owner.id, payload)
        assert db_session.get(Product, product.id).quantity == 10

    def test_cash_sale_must_be_paid_in_full(self, db_session, owner, shop, product):
        with pytest.raises(ValidationError, match="Cash sales must be paid in full"):
            sale_service.create_sale(shop.id, owner.id, _sale_payload(product, paid=20000))

        assert db_session.query(Sale).count() == 0
        assert db_session.query(Transaction).count() == 0
        assert db_session.get(Product, product.id).quantity == 10

    def test_rejected_sale_does_not_consume_invoice_number(self, db_session, owner, shop, product):
        with pytest.raises(ValidationError):
            sale_service.create_sale(shop.id, owner.id, _sale_payload(product, paid=100))
        sale = sale_service.create_sale(shop.id, owner.id, _sale_payload(product, quantity=1, paid=15000))
        assert sale.invoice_number == "INV-0001"

    def test_amount_paid_above_total_rejected(self, db_session, owner, shop, product, customer):
        with pytest.raises(ValidationError, match="cannot exceed the grand total"):
            sale_service.create_sale(shop.id, owner.id, _sale_payload(product, paid=30001, customer=customer))

    def test_discount_above_total_rejected(self, db_session, owner, shop, product, customer):
        payload = _sale_payload(product, paid=0, customer=customer, discount_cents=40000, tax_cents=5000)
        with pytest.raises(ValidationError):
            sale_service.create_sale(shop.id, owner.id, payload)

    def test_customer_from_other_shop_rejected(self, db_session, owner, shop, other_shop, product):
        stranger = Customer(shop_id=other_shop.id, name="Stranger", phone="9811111111")
        db_session.add(stranger)
        db_session.commit()

        with pytest.raises(ValidationError, match="Invalid customer for this shop."):
            sale_service.create_sale(shop.id, owner.id, _sale_payload(product, customer=stranger))

    def test_product_from_other_shop_rejected(self, db_session, owner, shop, other_shop):
        foreign = Product(shop_id=other_shop.id, name="Foreign", selling_price_cents=100, quantity=5)
        db_session.add(foreign)
        db_session.commit()

        with pytest.raises(ValidationError, match="does not belong to this shop"):
            sale_service.create_sale(
                shop.id, owner.id, {"items": [{"product_id": foreign.id, "quantity": 1}], "amount_paid_cents": 100}
            )

    def test_unknown_product(self, db_session, owner, shop):
        with pytest.raises(NotFoundError):
            sale_service.create_sale(shop.id, owner.id, {"items": [{"product_id": 9999, "quantity": 1}]})

    def test_not_shop_owner(self, db_session, other_user, shop, product):
        with pytest.raises(ForbiddenError):
            sale_service.create_sale(shop.id, other_user.id, _sale_payload(product, quantity=1, paid=15000))

    def test_items_required(self, db_session, owner, shop):
        with pytest.raises(ValidationError):
            sale_service.create_sale(shop.id, owner.id, {"items": []})


class TestRecordSalePayment:
    def test_payment_settles_balance(self, db_session, owner, shop, product, customer):
        sale = sale_service.create_sale(shop.id, owner.id, _sale_payload(product, customer=customer))

        sale = sale_service.record_sale_payment(sale.id, owner.id, {"amount_cents": 10000, "payment_method": "card"})

        assert sale.amount_paid_cents == 30000
        assert sale.amount_due_cents == 0
        assert sale.payment_status == "PAID"
        assert sale.status == "COMPLETED"

        cust = db_session.get(Customer, customer.id)
        assert cust.current_balance_cents == 0
        assert cust.total_spent_cents == 30000

        txns = db_session.query(Transaction).filter_by(related_sale_id=sale.id).order_by(Transaction.id).all()
        assert [t.amount_cents for t in txns] == [20000, 10000]
        assert txns[1].payment_method == "CARD"

    def test_partial_payment_keeps_partial(self, db_session, owner, shop, product, customer):
        sale = sale_service.create_sale(shop.id, owner.id, _sale_payload(product, paid=0, customer=customer))
        sale = sale_service.record_sale_payment(sale.id, owner.id, {"amount_cents": 5000})
        assert sale.payment_status == "PARTIAL"
        assert db_session.get(Customer, customer.id).current_balance_cents == 25000

    def test_overpayment_rejected(self, db_session, owner, shop, product, customer):
        sale = sale_service.create_sale(shop.id, owner.id, _sale_payload(product, customer=customer))
        with pytest.raises(ValidationError, match="exceeds the amount due"):
            sale_service.record_sale_payment(sale.id, owner.id, {"amount_cents": 10001})
        assert db_session.get(Customer, customer.id).current_balance_cents == 10000

    def test_cash_sale_rejected(self, db_session, owner, shop, product):
        sale = sale_service.create_sale(shop.id, owner.id, _sale_payload(product, quantity=1, paid=15000))
        with pytest.raises(ValidationError, match="cash sale"):
            sale_service.record_sale_payment(sale.id, owner.id, {"amount_cents": 100})

    def test_paid_sale_rejected(self, db_session, owner, shop, product, customer):
        sale = sale_service.create_sale(shop.id, owner.id, _sale_payload(product, paid=30000, customer=customer))
        with pytest.raises(ValidationError, match="already fully paid"):
            sale_service.record_sale_payment(sale.id, owner.id, {"amount_cents": 100})

    def test_cancelled_sale_rejected(self, db_session, owner, shop, product, customer):
        sale = sale_service.create_sale(shop.id, owner.id, _sale_payload(product, customer=customer))
        sale_service.cancel_sale(sale.id, owner.id)
        with pytest.raises(ValidationError, match="cancelled"):
            sale_service.record_sale_payment(sale.id, owner.id, {"amount_cents": 100})

    def test_amount_must_be_positive(self, db_session, owner, shop, product, customer):
        sale = sale_service.create_sale(shop.id, owner.id, _sale_payload(product, customer=customer))
        with pytest.raises(ValidationError):
            sale_service.record_sale_payment(sale.id, owner.id, {"amount_cents": 0})

    def test_unknown_payment_method(self, db_session, owner, shop, product, customer):
        sale = sale_service.create_sale(shop.id, owner.id, _sale_payload(product, customer=customer))
        with pytest.raises(ValidationError, match="payment_method"):
            sale_service.record_sale_payment(sale.id, owner.id, {"amount_cents": 100, "payment_method": "BITCOIN"})

    def test_missing_sale(self, db_session, owner):
        with pytest.raises(NotFoundError):
            sale_service.record_sale_payment(12345, owner.id, {"amount_cents": 100})


class TestCancelSale:
    def test_cancel_reverses_everything(self, db_session, owner, shop, product, customer):
        sale = sale_service.create_sale(shop.id, owner.id, _sale_payload(product, customer=customer))

        sale = sale_service.cancel_sale(sale.id, owner.id)

        assert sale.status == "CANCELLED"
        assert sale.cancelled_by_user_id == owner.id
        assert db_session.get(Product, product.id).quantity == 10

        cust = db_session.get(Customer, customer.id)
        assert cust.current_balance_cents == 0
        assert cust.total_spent_cents == 0

        refund = db_session.query(Transaction).filter_by(category="SALE_RETURN").one()
        assert refund.type == "CASH_OUT"
        assert refund.amount_cents == 20000
        assert refund.related_sale_id == sale.id
        assert db_session.query(Transaction).count() == 2

    def test_cancel_unpaid_sale_writes_no_refund(self, db_session, owner, shop, product, customer):
        sale = sale_service.create_sale(shop.id, owner.id, _sale_payload(product, paid=0, customer=customer))
        sale_service.cancel_sale(sale.id, owner.id)
        assert db_session.query(Transaction).count() == 0

    def test_cancel_is_one_way(self, db_session, owner, shop, product, customer):
        sale = sale_service.create_sale(shop.id, owner.id, _sale_payload(product, customer=customer))
        sale_service.cancel_sale(sale.id, owner.id)

        with pytest.raises(ValidationError, match="already been cancelled"):
            sale_service.cancel_sale(sale.id, owner.id)
        assert db_session.get(Product, product.id).quantity == 10

    def test_cancel_by_stranger_forbidden(self, db_session, owner, other_user, shop, product, customer):
        sale = sale_service.create_sale(shop.id, owner.id, _sale_payload(product, customer=customer))
        with pytest.raises(ForbiddenError):
            sale_service.cancel_sale(sale.id, other_user.id)
        assert db_session.get(Sale, sale.id).status == "COMPLETED"


class TestBalanceInvariant:
    def test_balance_tracks_open_sales(self, db_session, owner, shop, product, customer):
        a = sale_service.create_sale(shop.id, owner.id, _sale_payload(product, quantity=1, paid=5000, customer=customer))
        b = sale_service.create_sale(shop.id, owner.id, _sale_payload(product, quantity=2, paid=0, customer=customer))
        assert db_session.get(Customer, customer.id).current_balance_cents == _outstanding(db_session, customer.id)

        sale_service.record_sale_payment(b.id, owner.id, {"amount_cents": 12000})
        assert db_session.get(Customer, customer.id).current_balance_cents == _outstanding(db_session, customer.id)

        sale_service.cancel_sale(a.id, owner.id)
        balance = db_session.get(Customer, customer.id).current_balance_cents
        assert balance == _outstanding(db_session, customer.id) == 18000


class TestSaleQueries:
    def test_list_and_search(self, db_session, owner, shop, product, customer):
        sale_service.create_sale(shop.id, owner.id, _sale_payload(product, quantity=1, paid=15000))
        sale_service.create_sale(shop.id, owner.id, _sale_payload(product, quantity=1, paid=0, customer=customer))

        result = sale_service.list_sales(shop.id, owner.id)
        assert result["pagination"]["total"] == 2
        assert result["items"][0]["invoice_number"] == "INV-0002"
        assert "items" not in result["items"][0]

        only_cash = sale_service.list_sales(shop.id, owner.id, {"sale_type": "cash"})
        assert [s["invoice_number"] for s in only_cash["items"]] == ["INV-0001"]

        searched = sale_service.list_sales(shop.id, owner.id, {"search": "0002"})
        assert searched["count"] == 1

    def test_get_sale_checks_owner(self, db_session, owner, other_user, shop, product):
        sale = sale_service.create_sale(shop.id, owner.id, _sale_payload(product, quantity=1, paid=15000))
        assert sale_service.get_sale(sale.id, owner.id).to_dict()["items"][0]["product_name"] == "Basmati Rice 1kg"
        with pytest.raises(ForbiddenError):
            sale_service.get_sale(sale.id, other_user.id)
