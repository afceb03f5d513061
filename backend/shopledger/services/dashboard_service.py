# Overview: Read-only dashboard figures for a shop.

from __future__ import annotations

from datetime import datetime

from sqlalchemy import func

from ..extensions import db
from ..models import Customer, Purchase, Sale, Supplier
from ..models.documents import COMPLETED
from .shop_service import verify_shop_owner
from shopledger.time_utils import month_starts


CHART_MONTHS = 12


def get_dashboard_stats(shop_id: int, user_id: int) -> dict:
    """Counts plus money owed to the shop (receivable) and by it (payable)."""
    verify_shop_owner(shop_id, user_id)

    customer_count, receivable = (
        db.session.query(func.count(Customer.id), func.coalesce(func.sum(Customer.current_balance_cents), 0))
        .filter(Customer.shop_id == shop_id)
        .one()
    )
    supplier_count, payable = (
        db.session.query(func.count(Supplier.id), func.coalesce(func.sum(Supplier.current_balance_cents), 0))
        .filter(Supplier.shop_id == shop_id)
        .one()
    )

    return {
        "customer_count": customer_count,
        "supplier_count": supplier_count,
        "total_receivable_cents": int(receivable),
        "total_payable_cents": int(payable),
    }


def _monthly_totals(model, date_column, shop_id: int, since: datetime) -> dict[tuple[int, int], int]:
    rows = (
        db.session.query(date_column, model.grand_total_cents)
        .filter(
            model.shop_id == shop_id,
            model.status == COMPLETED,
            date_column >= since,
        )
        .all()
    )
    totals: dict[tuple[int, int], int] = {}
    for when, amount in rows:
        key = (when.year, when.month)
        totals[key] = totals.get(key, 0) + amount
    return totals


def get_monthly_chart(shop_id: int, user_id: int, now: datetime | None = None) -> list[dict]:
    """
    Completed sales and purchases per month for the last 12 months
    (including the current one), oldest first. Empty months report 0.
    """
    verify_shop_owner(shop_id, user_id)

    months = month_starts(CHART_MONTHS, now)
    sales = _monthly_totals(Sale, Sale.sale_date, shop_id, months[0])
    purchases = _monthly_totals(Purchase, Purchase.purchase_date, shop_id, months[0])

    return [
        {
            "month": start.strftime("%Y-%m"),
            "sales_cents": sales.get((start.year, start.month), 0),
            "purchases_cents": purchases.get((start.year, start.month), 0),
        }
        for start in months
    ]
