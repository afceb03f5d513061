# Overview: Pytest coverage for the scheduled notification checks and the inbox.

from datetime import datetime

import pytest

from shopledger.errors import NotFoundError
from shopledger.models import Notification
from shopledger.services import notification_service, purchase_service, sale_service


NOW = datetime(2026, 2, 1, 6, 0)


def _credit_sale(shop, owner, product, customer, sale_date):
    return sale_service.create_sale(shop.id, owner.id, {
        "customer_id": customer.id,
        "items": [{"product_id": product.id, "quantity": 1}],
        "sale_date": sale_date,
    })


class TestChecks:
    def test_low_stock_is_deduplicated(self, db_session, owner, shop, product):
        sale_service.create_sale(shop.id, owner.id, {
            "items": [{"product_id": product.id, "quantity": 7}],
            "amount_paid_cents": 105000,
        })

        assert notification_service.check_low_stock() == 1
        assert notification_service.check_low_stock() == 0

        note = db_session.query(Notification).one()
        assert note.type == "LOW_STOCK"
        assert note.user_id == owner.id
        assert note.link == f"/products/{product.id}"
        assert "(Current: 3)" in note.message

    def test_read_notification_can_fire_again(self, db_session, owner, shop, product):
        product.quantity = 1
        db_session.commit()

        notification_service.check_low_stock()
        note = db_session.query(Notification).one()
        notification_service.mark_read(note.id, owner.id)

        assert notification_service.check_low_stock() == 1

    def test_overdue_collection_uses_cutoff(self, db_session, owner, shop, product, customer):
        old = _credit_sale(shop, owner, product, customer, "2026-01-05")
        _credit_sale(shop, owner, product, customer, "2026-01-25")

        created = notification_service.check_overdue_collections(NOW)
        db_session.commit()

        assert created == 1
        note = db_session.query(Notification).one()
        assert note.type == "COLLECTION_OVERDUE"
        assert note.link == f"/sales/{old.id}"
        assert note.message == "Payment of Rs. 150.00 from Hari Thapa is overdue."

    def test_cancelled_and_paid_sales_are_ignored(self, db_session, owner, shop, product, customer):
        cancelled = _credit_sale(shop, owner, product, customer, "2026-01-02")
        paid = _credit_sale(shop, owner, product, customer, "2026-01-03")
        sale_service.cancel_sale(cancelled.id, owner.id)
        sale_service.record_sale_payment(paid.id, owner.id, {"amount_cents": 15000})

        assert notification_service.check_overdue_collections(NOW) == 0

    def test_due_supplier_payment(self, db_session, owner, shop, product, supplier):
        purchase_service.create_purchase(shop.id, owner.id, {
            "supplier_id": supplier.id,
            "items": [{"product_id": product.id, "quantity": 2, "unit_cost_cents": 10000}],
            "purchase_date": "2026-01-01",
        })

        results = notification_service.run_all_checks(NOW)

        assert results == {"LOW_STOCK": 0, "COLLECTION_OVERDUE": 0, "PAYMENT_DUE": 1}
        note = db_session.query(Notification).filter_by(type="PAYMENT_DUE").one()
        assert note.message == "Payment of Rs. 200.00 to Valley Wholesale is due."

    def test_failed_check_does_not_stop_others(self, db_session, owner, shop, product, monkeypatch):
        product.quantity = 0
        db_session.commit()

        def _boom(now=None):
            raise RuntimeError("boom")

        monkeypatch.setattr(notification_service, "check_overdue_collections", _boom)
        results = notification_service.run_all_checks(NOW)

        assert results["COLLECTION_OVERDUE"] is None
        assert results["LOW_STOCK"] == 1
        assert results["PAYMENT_DUE"] == 0


class TestInbox:
    def _seed(self, db_session, shop, user_id, count):
        for i in range(count):
            db_session.add(Notification(
                shop_id=shop.id, user_id=user_id, type="LOW_STOCK", message=f"note {i}", link=f"/products/{i}",
            ))
        db_session.commit()

    def test_list_and_unread_count(self, db_session, owner, shop):
        self._seed(db_session, shop, owner.id, 3)
        first = db_session.query(Notification).first()
        notification_service.mark_read(first.id, owner.id)

        everything = notification_service.list_notifications(owner.id)
        unread = notification_service.list_notifications(owner.id, unread_only=True)

        assert everything["pagination"]["total"] == 3
        assert unread["count"] == 2
        assert everything["unread_count"] == 2

    def test_cannot_read_someone_elses(self, db_session, owner, other_user, shop):
        self._seed(db_session, shop, owner.id, 1)
        note = db_session.query(Notification).one()
        with pytest.raises(NotFoundError):
            notification_service.mark_read(note.id, other_user.id)

    def test_mark_all_read(self, db_session, owner, shop):
        self._seed(db_session, shop, owner.id, 4)
        assert notification_service.mark_all_read(owner.id, shop.id) == 4
        assert notification_service.mark_all_read(owner.id) == 0
