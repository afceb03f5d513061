# Overview: Sale lifecycle (create, record payment, cancel) and sale queries.

"""
Sale lifecycle.

Every mutating operation runs inside one unit_of_work(): product stock,
the sale itself, the customer's balance and the ledger row are committed
together or not at all.

STATE MACHINE:
    COMPLETED --cancel--> CANCELLED (terminal)
    Payments keep status COMPLETED and move payment_status towards PAID.

A sale without a customer is a CASH sale and must be fully paid when
it is created; it never receives later payments.
"""

from __future__ import annotations

from flask import current_app

from ..errors import NotFoundError, ValidationError
from ..extensions import db
from ..models import Customer, Sale, SaleItem
from ..models.documents import CANCELLED, CASH, COMPLETED, CUSTOMER
from ..models.transactions import CASH_IN, CASH_OUT
from ..pagination import paginate_query
from ..validation import format_money, parse_cents, parse_date, parse_line_items, parse_optional_id
from .balance_service import charge, load_party_for_update, reverse, settle
from .concurrency import lock_for_update, unit_of_work
from .document_service import SALE_SEQUENCE, next_document_number
from .document_totals import PAYMENT_STATUS_PAID, apply_derived_fields
from .ledger_service import SALE_PAYMENT, SALE_RETURN, record_transaction, validate_payment_method
from .shop_service import verify_shop_owner
from .stock_service import load_products_for_update, restock, take_stock
from shopledger.time_utils import utcnow


def _load_sale_for_update(sale_id: int, user_id: int) -> Sale:
    sale = lock_for_update(db.session.query(Sale).filter_by(id=sale_id)).first()
    if sale is None:
        raise NotFoundError("Sale not found.")
    verify_shop_owner(sale.shop_id, user_id)
    return sale


def create_sale(shop_id: int, user_id: int, payload: dict) -> Sale:
    """
    Create a sale and apply all of its effects atomically.

    payload: customer_id?, items [{product_id, quantity, unit_price_cents?}],
    discount_cents?, tax_cents?, amount_paid_cents?, payment_method?,
    notes?, sale_date?

    A missing unit_price_cents falls back to the product's selling price.
    """
    payload = payload or {}
    customer_id = parse_optional_id(payload.get("customer_id"), "customer_id")
    lines = parse_line_items(payload.get("items"), unit_field="unit_price_cents", unit_required=False)
    discount_cents = parse_cents(payload.get("discount_cents"), "discount_cents", default=0)
    tax_cents = parse_cents(payload.get("tax_cents"), "tax_cents", default=0)
    amount_paid_cents = parse_cents(payload.get("amount_paid_cents"), "amount_paid_cents", default=0)
    payment_method = validate_payment_method(payload.get("payment_method"))
    sale_date = parse_date(payload.get("sale_date"), "sale_date") or utcnow()
    notes = (payload.get("notes") or "").strip() or None

    def _op() -> Sale:
        verify_shop_owner(shop_id, user_id)

        customer = None
        if customer_id is not None:
            customer = load_party_for_update(Customer, shop_id, customer_id)

        products = load_products_for_update(shop_id, [line.product_id for line in lines])

        sale = Sale(
            shop_id=shop_id,
            customer_id=customer.id if customer else None,
            sale_type=CUSTOMER if customer else CASH,
            status=COMPLETED,
            discount_cents=discount_cents,
            tax_cents=tax_cents,
            amount_paid_cents=amount_paid_cents,
            sale_date=sale_date,
            notes=notes,
            created_by_user_id=user_id,
        )

        for position, line in enumerate(lines, start=1):
            product = products[line.product_id]
            take_stock(product, line.quantity)
            unit_price = line.unit_amount_cents
            if unit_price is None:
                unit_price = product.selling_price_cents
            sale.items.append(SaleItem(
                position=position,
                product_id=product.id,
                product_name=product.name,
                quantity=line.quantity,
                unit_price_cents=unit_price,
                unit_cost_cents=product.purchase_price_cents or 0,
            ))

        totals = apply_derived_fields(sale)
        if amount_paid_cents > totals.grand_total_cents:
            raise ValidationError(
                f"Amount paid ({format_money(amount_paid_cents)}) cannot exceed the grand total "
                f"({format_money(totals.grand_total_cents)})."
            )
        if customer is None and totals.amount_due_cents > 0:
            raise ValidationError("Cash sales must be paid in full. Amount due cannot be greater than zero.")

        sale.invoice_number = next_document_number(shop_id=shop_id, document_type=SALE_SEQUENCE)
        db.session.add(sale)
        db.session.flush()

        if customer is not None:
            charge(customer, sale.amount_due_cents, sale.amount_paid_cents)

        if sale.amount_paid_cents > 0:
            record_transaction(
                shop_id=shop_id,
                type=CASH_IN,
                category=SALE_PAYMENT,
                amount_cents=sale.amount_paid_cents,
                payment_method=payment_method,
                description=f"Payment for Invoice #{sale.invoice_number}",
                transaction_date=sale_date,
                related_sale_id=sale.id,
                related_customer_id=sale.customer_id,
                created_by_user_id=user_id,
            )
        return sale

    sale = unit_of_work(_op)
    current_app.logger.info(
        "Sale created: id=%s invoice=%s shop=%s type=%s total=%s due=%s",
        sale.id, sale.invoice_number, shop_id, sale.sale_type, sale.grand_total_cents, sale.amount_due_cents,
    )
    return sale


def record_sale_payment(sale_id: int, user_id: int, payload: dict) -> Sale:
    """
    Apply a later payment from the customer to one sale.

    Refused for cancelled, cash and fully paid sales, and for amounts
    above what is still due.
    """
    payload = payload or {}
    amount_cents = parse_cents(payload.get("amount_cents"), "amount_cents", positive=True)
    payment_method = validate_payment_method(payload.get("payment_method"))
    payment_date = parse_date(payload.get("payment_date"), "payment_date") or utcnow()

    def _op() -> Sale:
        sale = _load_sale_for_update(sale_id, user_id)
        if sale.is_cancelled:
            raise ValidationError("Cannot record a payment for a cancelled sale.")
        if sale.is_cash:
            raise ValidationError("Cannot record additional payments for a cash sale.")
        if sale.payment_status == PAYMENT_STATUS_PAID:
            raise ValidationError("This sale is already fully paid.")
        if amount_cents > sale.amount_due_cents:
            raise ValidationError(
                f"Payment amount ({format_money(amount_cents)}) exceeds the amount due "
                f"({format_money(sale.amount_due_cents)})."
            )

        customer = load_party_for_update(Customer, sale.shop_id, sale.customer_id)

        sale.amount_paid_cents += amount_cents
        apply_derived_fields(sale)
        settle(customer, amount_cents)

        record_transaction(
            shop_id=sale.shop_id,
            type=CASH_IN,
            category=SALE_PAYMENT,
            amount_cents=amount_cents,
            payment_method=payment_method,
            description=f"Additional payment for Invoice #{sale.invoice_number}",
            transaction_date=payment_date,
            related_sale_id=sale.id,
            related_customer_id=sale.customer_id,
            created_by_user_id=user_id,
        )
        return sale

    sale = unit_of_work(_op)
    current_app.logger.info(
        "Sale payment recorded: id=%s amount=%s due=%s status=%s",
        sale.id, amount_cents, sale.amount_due_cents, sale.payment_status,
    )
    return sale


def cancel_sale(sale_id: int, user_id: int) -> Sale:
    """
    Cancel a sale: stock comes back, the customer's balance and paid total
    are reversed, and any money received is written out as a SALE_RETURN.
    """
    def _op() -> Sale:
        sale = _load_sale_for_update(sale_id, user_id)
        if sale.is_cancelled:
            raise ValidationError("This sale has already been cancelled.")

        products = load_products_for_update(sale.shop_id, [item.product_id for item in sale.items])
        for item in sale.items:
            restock(products[item.product_id], item.quantity)

        if sale.customer_id is not None:
            customer = load_party_for_update(Customer, sale.shop_id, sale.customer_id)
            reverse(customer, sale.amount_due_cents, sale.amount_paid_cents)

        if sale.amount_paid_cents > 0:
            record_transaction(
                shop_id=sale.shop_id,
                type=CASH_OUT,
                category=SALE_RETURN,
                amount_cents=sale.amount_paid_cents,
                description=f"Reversal/Cancellation of Invoice #{sale.invoice_number}",
                related_sale_id=sale.id,
                related_customer_id=sale.customer_id,
                created_by_user_id=user_id,
            )

        sale.status = CANCELLED
        sale.cancelled_at = utcnow()
        sale.cancelled_by_user_id = user_id
        return sale

    sale = unit_of_work(_op)
    current_app.logger.info("Sale cancelled: id=%s invoice=%s", sale.id, sale.invoice_number)
    return sale


def list_sales(shop_id: int, user_id: int, filters: dict | None = None, *, page: int = 1, per_page: int = 20) -> dict:
    """Newest first. filters: search (invoice number), customer_id, sale_type, status."""
    verify_shop_owner(shop_id, user_id)
    filters = filters or {}

    query = db.session.query(Sale).filter(Sale.shop_id == shop_id)

    search = (filters.get("search") or "").strip()
    if search:
        query = query.filter(Sale.invoice_number.ilike(f"%{search}%"))

    customer_id = parse_optional_id(filters.get("customer_id"), "customer_id")
    if customer_id is not None:
        query = query.filter(Sale.customer_id == customer_id)

    sale_type = (filters.get("sale_type") or "").strip().upper()
    if sale_type:
        query = query.filter(Sale.sale_type == sale_type)

    status = (filters.get("status") or "").strip().upper()
    if status:
        query = query.filter(Sale.status == status)

    query = query.order_by(Sale.sale_date.desc(), Sale.id.desc())
    return paginate_query(query, page=page, per_page=per_page, serialize=lambda s: s.to_dict(include_items=False))


def get_sale(sale_id: int, user_id: int) -> Sale:
    sale = db.session.get(Sale, sale_id)
    if sale is None:
        raise NotFoundError("Sale not found.")
    verify_shop_owner(sale.shop_id, user_id)
    return sale
