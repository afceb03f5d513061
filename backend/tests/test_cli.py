# Overview: Tests for the Flask CLI command groups.

from shopledger.models import Customer, User
from shopledger.services import sale_service


class TestUserCommands:
    def test_create_and_list(self, app, db_session):
        runner = app.test_cli_runner()

        result = runner.invoke(args=[
            "users", "create", "--first-name", "Dipa", "--email", "dipa@example.com", "--password", "Password123",
        ])
        assert result.exit_code == 0
        assert "PASS Created user dipa@example.com" in result.output
        assert db_session.query(User).filter_by(email="dipa@example.com").count() == 1

        result = runner.invoke(args=["users", "list"])
        assert "dipa@example.com" in result.output

    def test_weak_password(self, app, db_session):
        result = app.test_cli_runner().invoke(args=[
            "users", "create", "--first-name", "Dipa", "--email", "dipa@example.com", "--password", "weak",
        ])
        assert result.exit_code != 0
        assert "Password must be at least 8 characters long" in result.output


class TestLedgerCommands:
    def test_balances_match(self, app, owner, shop, product, customer):
        sale_service.create_sale(shop.id, owner.id, {
            "customer_id": customer.id,
            "items": [{"product_id": product.id, "quantity": 1}],
        })
        result = app.test_cli_runner().invoke(args=["ledger", "check-balances"])
        assert result.exit_code == 0
        assert "PASS" in result.output

    def test_drift_is_reported(self, app, db_session, customer):
        record = db_session.get(Customer, customer.id)
        record.current_balance_cents = 999
        db_session.commit()

        result = app.test_cli_runner().invoke(args=["ledger", "check-balances", "--shop-id", str(customer.shop_id)])
        assert result.exit_code == 1
        assert "balance=999 expected=0" in result.output


class TestNotificationCommands:
    def test_run_checks(self, app, db_session, product):
        product.quantity = 0
        db_session.commit()

        result = app.test_cli_runner().invoke(args=["notifications", "run-checks"])
        assert result.exit_code == 0
        assert "PASS LOW_STOCK: 1 notification(s) created" in result.output
