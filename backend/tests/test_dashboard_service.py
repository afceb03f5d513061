# Overview: Pytest coverage for dashboard figures.

from datetime import datetime

import pytest

from shopledger.errors import ForbiddenError
from shopledger.services import dashboard_service, purchase_service, sale_service


class TestDashboard:
    def test_stats(self, db_session, owner, shop, product, customer, supplier):
        sale_service.create_sale(shop.id, owner.id, {
            "customer_id": customer.id,
            "items": [{"product_id": product.id, "quantity": 2}],
            "amount_paid_cents": 10000,
        })
        purchase_service.create_purchase(shop.id, owner.id, {
            "supplier_id": supplier.id,
            "items": [{"product_id": product.id, "quantity": 1, "unit_cost_cents": 9000}],
        })

        stats = dashboard_service.get_dashboard_stats(shop.id, owner.id)

        assert stats == {
            "customer_count": 1,
            "supplier_count": 1,
            "total_receivable_cents": 20000,
            "total_payable_cents": 9000,
        }

    def test_empty_shop(self, db_session, owner, shop):
        stats = dashboard_service.get_dashboard_stats(shop.id, owner.id)
        assert stats["total_receivable_cents"] == 0
        assert stats["customer_count"] == 0

    def test_monthly_chart(self, db_session, owner, shop, product, customer, supplier):
        sale_service.create_sale(shop.id, owner.id, {
            "customer_id": customer.id,
            "items": [{"product_id": product.id, "quantity": 2}],
            "sale_date": "2026-09-15",
        })
        cancelled = sale_service.create_sale(shop.id, owner.id, {
            "customer_id": customer.id,
            "items": [{"product_id": product.id, "quantity": 1}],
            "sale_date": "2026-09-20",
        })
        sale_service.cancel_sale(cancelled.id, owner.id)
        purchase_service.create_purchase(shop.id, owner.id, {
            "supplier_id": supplier.id,
            "items": [{"product_id": product.id, "quantity": 1, "unit_cost_cents": 9000}],
            "purchase_date": "2026-10-02",
        })
        # Older than the window
        sale_service.create_sale(shop.id, owner.id, {
            "customer_id": customer.id,
            "items": [{"product_id": product.id, "quantity": 1}],
            "sale_date": "2025-10-31",
        })

        chart = dashboard_service.get_monthly_chart(shop.id, owner.id, now=datetime(2026, 10, 19))

        assert len(chart) == 12
        assert chart[0]["month"] == "2025-11"
        assert chart[-1] == {"month": "2026-10", "sales_cents": 0, "purchases_cents": 9000}
        assert chart[-2] == {"month": "2026-09", "sales_cents": 30000, "purchases_cents": 0}
        assert sum(m["sales_cents"] for m in chart) == 30000

    def test_other_owner_forbidden(self, db_session, other_user, shop):
        with pytest.raises(ForbiddenError):
            dashboard_service.get_monthly_chart(shop.id, other_user.id)
