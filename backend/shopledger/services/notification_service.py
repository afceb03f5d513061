# Overview: Background stock/overdue checks and the in-app notification inbox.

"""
Notification checks.

run_all_checks() is what the scheduler (``flask notifications run-checks``)
calls. The checks only read products, sales and purchases; the only rows
they write are notifications, and a notification is skipped while an
unread one already exists for the same (user, link, type).
"""

from __future__ import annotations

from datetime import datetime

from flask import current_app

from ..errors import NotFoundError
from ..extensions import db
from ..models import Customer, Notification, Product, Purchase, Sale, Shop, Supplier
from ..models.documents import COMPLETED
from ..pagination import paginate_query
from ..validation import format_money
from .document_totals import PAYMENT_STATUS_PARTIAL, PAYMENT_STATUS_UNPAID
from shopledger.time_utils import days_ago, utcnow


LOW_STOCK = "LOW_STOCK"
PAYMENT_DUE = "PAYMENT_DUE"
COLLECTION_OVERDUE = "COLLECTION_OVERDUE"

OPEN_PAYMENT_STATUSES = (PAYMENT_STATUS_UNPAID, PAYMENT_STATUS_PARTIAL)


def notify_once(*, shop_id: int, user_id: int, type: str, message: str, link: str) -> Notification | None:
    """Add a notification unless an unread one exists for (user, link, type)."""
    existing = (
        db.session.query(Notification.id)
        .filter_by(user_id=user_id, link=link, type=type, is_read=False)
        .first()
    )
    if existing:
        return None

    notification = Notification(shop_id=shop_id, user_id=user_id, type=type, message=message, link=link)
    db.session.add(notification)
    db.session.flush()
    return notification


def check_low_stock() -> int:
    rows = (
        db.session.query(Product, Shop.owner_user_id)
        .join(Shop, Shop.id == Product.shop_id)
        .filter(Product.quantity <= Product.reorder_level)
        .order_by(Product.id)
        .all()
    )
    created = 0
    for product, owner_id in rows:
        if notify_once(
            shop_id=product.shop_id,
            user_id=owner_id,
            type=LOW_STOCK,
            message=f"{product.name} is running low on stock (Current: {product.quantity}).",
            link=f"/products/{product.id}",
        ):
            created += 1
    return created


def check_overdue_collections(now: datetime | None = None) -> int:
    cutoff = days_ago(current_app.config.get("OVERDUE_AFTER_DAYS", 15), now)
    rows = (
        db.session.query(Sale, Shop.owner_user_id, Customer.name)
        .join(Shop, Shop.id == Sale.shop_id)
        .join(Customer, Customer.id == Sale.customer_id)
        .filter(
            Sale.status == COMPLETED,
            Sale.payment_status.in_(OPEN_PAYMENT_STATUSES),
            Sale.sale_date <= cutoff,
        )
        .order_by(Sale.id)
        .all()
    )
    created = 0
    for sale, owner_id, customer_name in rows:
        if notify_once(
            shop_id=sale.shop_id,
            user_id=owner_id,
            type=COLLECTION_OVERDUE,
            message=f"Payment of {format_money(sale.amount_due_cents)} from {customer_name} is overdue.",
            link=f"/sales/{sale.id}",
        ):
            created += 1
    return created


def check_due_payments(now: datetime | None = None) -> int:
    cutoff = days_ago(current_app.config.get("OVERDUE_AFTER_DAYS", 15), now)
    rows = (
        db.session.query(Purchase, Shop.owner_user_id, Supplier.name)
        .join(Shop, Shop.id == Purchase.shop_id)
        .join(Supplier, Supplier.id == Purchase.supplier_id)
        .filter(
            Purchase.status == COMPLETED,
            Purchase.payment_status.in_(OPEN_PAYMENT_STATUSES),
            Purchase.purchase_date <= cutoff,
        )
        .order_by(Purchase.id)
        .all()
    )
    created = 0
    for purchase, owner_id, supplier_name in rows:
        if notify_once(
            shop_id=purchase.shop_id,
            user_id=owner_id,
            type=PAYMENT_DUE,
            message=f"Payment of {format_money(purchase.amount_due_cents)} to {supplier_name} is due.",
            link=f"/purchases/{purchase.id}",
        ):
            created += 1
    return created


def run_all_checks(now: datetime | None = None) -> dict:
    """
    Run every check, each in its own commit. A failing check is logged and
    rolled back without stopping the others.

    Returns {check_type: notifications_created} (None for a failed check).
    """
    now = now or utcnow()
    checks = (
        (LOW_STOCK, check_low_stock),
        (COLLECTION_OVERDUE, lambda: check_overdue_collections(now)),
        (PAYMENT_DUE, lambda: check_due_payments(now)),
    )

    results: dict = {}
    for name, check in checks:
        try:
            results[name] = check()
            db.session.commit()
        except Exception:
            db.session.rollback()
            current_app.logger.exception("Notification check %s failed", name)
            results[name] = None

    current_app.logger.info("Notification checks finished: %s", results)
    return results


def list_notifications(user_id: int, *, unread_only: bool = False, page: int = 1, per_page: int = 20) -> dict:
    query = db.session.query(Notification).filter(Notification.user_id == user_id)
    if unread_only:
        query = query.filter(Notification.is_read.is_(False))
    query = query.order_by(Notification.created_at.desc(), Notification.id.desc())

    result = paginate_query(query, page=page, per_page=per_page)
    result["unread_count"] = (
        db.session.query(Notification.id).filter_by(user_id=user_id, is_read=False).count()
    )
    return result


def mark_read(notification_id: int, user_id: int) -> Notification:
    notification = db.session.get(Notification, notification_id)
    # Another user's notification is reported as missing
    if notification is None or notification.user_id != user_id:
        raise NotFoundError("Notification not found.")

    if not notification.is_read:
        notification.is_read = True
        notification.read_at = utcnow()
        db.session.commit()
    return notification


def mark_all_read(user_id: int, shop_id: int | None = None) -> int:
    query = db.session.query(Notification).filter(
        Notification.user_id == user_id,
        Notification.is_read.is_(False),
    )
    if shop_id is not None:
        query = query.filter(Notification.shop_id == shop_id)

    now = utcnow()
    count = 0
    for notification in query.all():
        notification.is_read = True
        notification.read_at = now
        count += 1
    db.session.commit()
    return count
