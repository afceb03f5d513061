# Overview: Threaded tests for unit-of-work isolation against a file-backed SQLite database.

import threading

import pytest

from shopledger import create_app
from shopledger.errors import InsufficientStockError
from shopledger.extensions import db
from shopledger.models import Customer, Product, Sale, Transaction
from shopledger.services import cash_service, sale_service, shop_service
from shopledger.services.auth_service import create_user


@pytest.fixture
def file_app(tmp_path):
    """Separate app on a real file so each thread gets its own connection."""
    app = create_app({
        "TESTING": True,
        "SQLALCHEMY_DATABASE_URI": f"sqlite:///{tmp_path / 'concurrency.db'}",
        "SQLALCHEMY_ENGINE_OPTIONS": {"connect_args": {"check_same_thread": False, "timeout": 30}},
        "BCRYPT_ROUNDS": 4,
    })
    with app.app_context():
        db.create_all()

        user = create_user(first_name="Ravi", email="ravi@example.com", password="Password123")
        shop = shop_service.create_shop(user.id, {"name": "Busy Shop"})
        product = Product(shop_id=shop.id, name="Sugar 1kg", selling_price_cents=10000, quantity=5)
        customer = Customer(shop_id=shop.id, name="Kiran", phone="9811111111")
        db.session.add_all([product, customer])
        db.session.commit()

        app.config["TEST_IDS"] = {
            "user": user.id, "shop": shop.id, "product": product.id, "customer": customer.id,
        }

    yield app

    with app.app_context():
        db.session.remove()
        db.drop_all()
        db.engine.dispose()


def _run_concurrently(app, work, count=2):
    results = []
    lock = threading.Lock()
    barrier = threading.Barrier(count)

    def worker(index):
        with app.app_context():
            try:
                barrier.wait()
                outcome = work(index)
                with lock:
                    results.append(outcome)
            except Exception as exc:
                with lock:
                    results.append(exc)
            finally:
                db.session.remove()

    threads = [threading.Thread(target=worker, args=(i,)) for i in range(count)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()
    return results


class TestConcurrentSales:
    def test_stock_is_never_oversold(self, file_app):
        ids = file_app.config["TEST_IDS"]

        def sell(_):
            sale = sale_service.create_sale(ids["shop"], ids["user"], {
                "items": [{"product_id": ids["product"], "quantity": 3}],
                "amount_paid_cents": 30000,
            })
            return sale.invoice_number

        results = _run_concurrently(file_app, sell)

        numbers = [r for r in results if isinstance(r, str)]
        failures = [r for r in results if isinstance(r, Exception)]
        assert numbers == ["INV-0001"]
        assert len(failures) == 1
        assert isinstance(failures[0], InsufficientStockError)

        with file_app.app_context():
            assert db.session.get(Product, ids["product"]).quantity == 2
            assert db.session.query(Sale).count() == 1
            assert db.session.query(Transaction).count() == 1

    def test_invoice_numbers_are_unique(self, file_app):
        ids = file_app.config["TEST_IDS"]

        def sell(_):
            sale = sale_service.create_sale(ids["shop"], ids["user"], {
                "items": [{"product_id": ids["product"], "quantity": 1}],
                "amount_paid_cents": 10000,
            })
            return sale.invoice_number

        results = _run_concurrently(file_app, sell, count=4)

        assert not [r for r in results if isinstance(r, Exception)]
        assert sorted(results) == ["INV-0001", "INV-0002", "INV-0003", "INV-0004"]


class TestConcurrentCashIn:
    def test_balance_cannot_be_overpaid(self, file_app):
        ids = file_app.config["TEST_IDS"]
        with file_app.app_context():
            sale_service.create_sale(ids["shop"], ids["user"], {
                "customer_id": ids["customer"],
                "items": [{"product_id": ids["product"], "quantity": 1}],
            })

        def pay(_):
            return cash_service.record_cash_in(
                ids["shop"], ids["user"], {"customer_id": ids["customer"], "amount_cents": 8000}
            )

        results = _run_concurrently(file_app, pay)

        assert len([r for r in results if isinstance(r, Exception)]) == 1
        with file_app.app_context():
            assert db.session.get(Customer, ids["customer"]).current_balance_cents == 2000
