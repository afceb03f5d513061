from __future__ import annotations

from ..extensions import db
from shopledger.time_utils import to_utc_z


# Document status (terminal once CANCELLED)
COMPLETED = "COMPLETED"
CANCELLED = "CANCELLED"

# Counterparty kind
CUSTOMER = "CUSTOMER"
SUPPLIER = "SUPPLIER"
CASH = "CASH"


class DocumentSequence(db.Model):
    """
    Per-shop document number sequences (INV-0001, BILL-0001).

    Rows are seeded when the shop is created, so allocation is always a
    single UPDATE on an existing row inside the caller's unit of work.
    """
    __tablename__ = "document_sequences"
    __table_args__ = (
        db.UniqueConstraint("shop_id", "document_type", name="uq_doc_sequences_shop_type"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    shop_id = db.Column(db.Integer, db.ForeignKey("shops.id"), nullable=False, index=True)
    document_type = db.Column(db.String(32), nullable=False)
    next_number = db.Column(db.Integer, nullable=False, default=1)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())


class _LedgerDocumentColumns:
    """
    Money columns shared by sales and purchases.

    Every *_cents value except discount/tax/amount_paid is derived from the
    line items by document_totals.apply_derived_fields() and must never be
    assigned anywhere else.
    """

    id = db.Column(db.Integer, primary_key=True)
    status = db.Column(db.String(16), nullable=False, default=COMPLETED, index=True)

    sub_total_cents = db.Column(db.Integer, nullable=False, default=0)
    discount_cents = db.Column(db.Integer, nullable=False, default=0)
    grand_total_cents = db.Column(db.Integer, nullable=False, default=0)
    amount_paid_cents = db.Column(db.Integer, nullable=False, default=0)
    amount_due_cents = db.Column(db.Integer, nullable=False, default=0)
    payment_status = db.Column(db.String(16), nullable=False, default="UNPAID", index=True)  # PAID, PARTIAL, UNPAID

    notes = db.Column(db.Text, nullable=True)

    cancelled_at = db.Column(db.DateTime(timezone=True), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    @property
    def is_cancelled(self) -> bool:
        return self.status == CANCELLED

    @property
    def is_cash(self) -> bool:
        return self.party_id is None

    def _money_dict(self) -> dict:
        return {
            "status": self.status,
            "sub_total_cents": self.sub_total_cents,
            "discount_cents": self.discount_cents,
            "grand_total_cents": self.grand_total_cents,
            "amount_paid_cents": self.amount_paid_cents,
            "amount_due_cents": self.amount_due_cents,
            "payment_status": self.payment_status,
            "notes": self.notes,
            "cancelled_at": to_utc_z(self.cancelled_at),
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class Sale(_LedgerDocumentColumns, db.Model):
    """
    Sales invoice.

    LIFECYCLE:
    1. COMPLETED: created with stock already taken and balances charged
    2. CANCELLED: stock restored, balances reversed, a SALE_RETURN written

    Payments may be recorded while COMPLETED; they move payment_status
    towards PAID but never change status.
    """
    __tablename__ = "sales"
    __table_args__ = (
        db.UniqueConstraint("shop_id", "invoice_number", name="uq_sales_shop_invoice"),
        db.Index("ix_sales_shop_status_date", "shop_id", "status", "sale_date"),
        db.Index("ix_sales_customer_payment", "customer_id", "payment_status"),
        {"sqlite_autoincrement": True},
    )

    shop_id = db.Column(db.Integer, db.ForeignKey("shops.id"), nullable=False, index=True)
    customer_id = db.Column(db.Integer, db.ForeignKey("customers.id"), nullable=True, index=True)

    invoice_number = db.Column(db.String(64), nullable=False)
    sale_type = db.Column(db.String(16), nullable=False, default=CASH)  # CUSTOMER, CASH

    tax_cents = db.Column(db.Integer, nullable=False, default=0)
    sale_date = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    created_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True, index=True)
    cancelled_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    version_id = db.Column(db.Integer, nullable=False, default=1)

    shop = db.relationship("Shop", backref=db.backref("sales", lazy=True))
    customer = db.relationship("Customer", backref=db.backref("sales", lazy=True))
    items = db.relationship(
        "SaleItem",
        backref="sale",
        order_by="SaleItem.position",
        cascade="all, delete-orphan",
        lazy=True,
    )
    __mapper_args__ = {"version_id_col": version_id}

    @property
    def party_id(self):
        return self.customer_id

    def __repr__(self) -> str:
        return f"<Sale id={self.id} invoice={self.invoice_number!r} status={self.status} due={self.amount_due_cents}>"

    def to_dict(self, include_items: bool = True) -> dict:
        data = {
            "id": self.id,
            "shop_id": self.shop_id,
            "customer_id": self.customer_id,
            "customer": (
                {"id": self.customer.id, "name": self.customer.name, "phone": self.customer.phone}
                if self.customer is not None else None
            ),
            "invoice_number": self.invoice_number,
            "sale_type": self.sale_type,
            "tax_cents": self.tax_cents,
            "sale_date": to_utc_z(self.sale_date),
            "created_by_user_id": self.created_by_user_id,
            "cancelled_by_user_id": self.cancelled_by_user_id,
            "version_id": self.version_id,
        }
        data.update(self._money_dict())
        if include_items:
            data["items"] = [item.to_dict() for item in self.items]
        return data


class SaleItem(db.Model):
    """
    Sale line. product_name and unit_cost_cents are snapshots taken at sale
    time so later catalog edits never rewrite history.
    """
    __tablename__ = "sale_items"
    __table_args__ = (
        db.CheckConstraint("quantity > 0", name="ck_sale_items_quantity_positive"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    sale_id = db.Column(db.Integer, db.ForeignKey("sales.id"), nullable=False, index=True)
    position = db.Column(db.Integer, nullable=False, default=0)

    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)
    product_name = db.Column(db.String(255), nullable=False)

    quantity = db.Column(db.Integer, nullable=False)
    unit_price_cents = db.Column(db.Integer, nullable=False)
    # Purchase price of the product when it was sold
    unit_cost_cents = db.Column(db.Integer, nullable=False, default=0)
    total_cents = db.Column(db.Integer, nullable=False, default=0)

    product = db.relationship("Product")

    @property
    def unit_amount_cents(self) -> int:
        return self.unit_price_cents

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "position": self.position,
            "product_id": self.product_id,
            "product_name": self.product_name,
            "quantity": self.quantity,
            "unit_price_cents": self.unit_price_cents,
            "unit_cost_cents": self.unit_cost_cents,
            "total_cents": self.total_cents,
        }


class Purchase(_LedgerDocumentColumns, db.Model):
    """
    Supplier bill. Mirror image of Sale: stock goes in, the shop owes the
    supplier, and payments flow out. Purchases carry a discount but no tax.
    """
    __tablename__ = "purchases"
    __table_args__ = (
        db.UniqueConstraint("shop_id", "bill_number", "supplier_id", name="uq_purchases_shop_bill_supplier"),
        db.Index("ix_purchases_shop_status_date", "shop_id", "status", "purchase_date"),
        db.Index("ix_purchases_supplier_payment", "supplier_id", "payment_status"),
        {"sqlite_autoincrement": True},
    )

    shop_id = db.Column(db.Integer, db.ForeignKey("shops.id"), nullable=False, index=True)
    supplier_id = db.Column(db.Integer, db.ForeignKey("suppliers.id"), nullable=True, index=True)

    bill_number = db.Column(db.String(64), nullable=False)
    purchase_type = db.Column(db.String(16), nullable=False, default=CASH)  # SUPPLIER, CASH

    purchase_date = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    created_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True, index=True)
    cancelled_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    version_id = db.Column(db.Integer, nullable=False, default=1)

    shop = db.relationship("Shop", backref=db.backref("purchases", lazy=True))
    supplier = db.relationship("Supplier", backref=db.backref("purchases", lazy=True))
    items = db.relationship(
        "PurchaseItem",
        backref="purchase",
        order_by="PurchaseItem.position",
        cascade="all, delete-orphan",
        lazy=True,
    )
    __mapper_args__ = {"version_id_col": version_id}

    @property
    def party_id(self):
        return self.supplier_id

    def __repr__(self) -> str:
        return f"<Purchase id={self.id} bill={self.bill_number!r} status={self.status} due={self.amount_due_cents}>"

    def to_dict(self, include_items: bool = True) -> dict:
        data = {
            "id": self.id,
            "shop_id": self.shop_id,
            "supplier_id": self.supplier_id,
            "supplier": (
                {"id": self.supplier.id, "name": self.supplier.name, "phone": self.supplier.phone}
                if self.supplier is not None else None
            ),
            "bill_number": self.bill_number,
            "purchase_type": self.purchase_type,
            "purchase_date": to_utc_z(self.purchase_date),
            "created_by_user_id": self.created_by_user_id,
            "cancelled_by_user_id": self.cancelled_by_user_id,
            "version_id": self.version_id,
        }
        data.update(self._money_dict())
        if include_items:
            data["items"] = [item.to_dict() for item in self.items]
        return data


class PurchaseItem(db.Model):
    __tablename__ = "purchase_items"
    __table_args__ = (
        db.CheckConstraint("quantity > 0", name="ck_purchase_items_quantity_positive"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    purchase_id = db.Column(db.Integer, db.ForeignKey("purchases.id"), nullable=False, index=True)
    position = db.Column(db.Integer, nullable=False, default=0)

    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)
    product_name = db.Column(db.String(255), nullable=False)

    quantity = db.Column(db.Integer, nullable=False)
    unit_cost_cents = db.Column(db.Integer, nullable=False)
    total_cents = db.Column(db.Integer, nullable=False, default=0)

    product = db.relationship("Product")

    @property
    def unit_amount_cents(self) -> int:
        return self.unit_cost_cents

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "position": self.position,
            "product_id": self.product_id,
            "product_name": self.product_name,
            "quantity": self.quantity,
            "unit_cost_cents": self.unit_cost_cents,
            "total_cents": self.total_cents,
        }
