from __future__ import annotations

from sqlalchemy import event

from ..extensions import db
from ..errors import ImmutableRecordError
from shopledger.time_utils import to_utc_z


CASH_IN = "CASH_IN"
CASH_OUT = "CASH_OUT"


class Transaction(db.Model):
    """
    Append-only cash-flow record.

    Written by the sale/purchase lifecycle (SALE_PAYMENT, PURCHASE_PAYMENT,
    SALE_RETURN, PURCHASE_RETURN), the cash allocator, and the manual entry
    endpoint for the non-protected categories.

    Rows are never updated or deleted: a cancellation appends a reversing
    row in the opposite direction. The mapper events below enforce that.
    """
    __tablename__ = "transactions"
    __table_args__ = (
        db.CheckConstraint("amount_cents > 0", name="ck_transactions_amount_positive"),
        db.Index("ix_transactions_shop_date", "shop_id", "transaction_date"),
        db.Index("ix_transactions_shop_category", "shop_id", "category"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    shop_id = db.Column(db.Integer, db.ForeignKey("shops.id"), nullable=False, index=True)

    type = db.Column(db.String(16), nullable=False)  # CASH_IN, CASH_OUT
    category = db.Column(db.String(32), nullable=False)
    amount_cents = db.Column(db.Integer, nullable=False)
    payment_method = db.Column(db.String(32), nullable=False, default="CASH")

    transaction_date = db.Column(db.DateTime(timezone=True), nullable=False)
    description = db.Column(db.Text, nullable=True)

    # Back-references to whatever produced this entry
    related_sale_id = db.Column(db.Integer, db.ForeignKey("sales.id"), nullable=True, index=True)
    related_purchase_id = db.Column(db.Integer, db.ForeignKey("purchases.id"), nullable=True, index=True)
    related_customer_id = db.Column(db.Integer, db.ForeignKey("customers.id"), nullable=True, index=True)
    related_supplier_id = db.Column(db.Integer, db.ForeignKey("suppliers.id"), nullable=True, index=True)

    created_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    shop = db.relationship("Shop", backref=db.backref("transactions", lazy=True))

    def __repr__(self) -> str:
        return f"<Transaction id={self.id} {self.type} {self.category} amount={self.amount_cents}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "shop_id": self.shop_id,
            "type": self.type,
            "category": self.category,
            "amount_cents": self.amount_cents,
            "payment_method": self.payment_method,
            "transaction_date": to_utc_z(self.transaction_date),
            "description": self.description,
            "related_sale_id": self.related_sale_id,
            "related_purchase_id": self.related_purchase_id,
            "related_customer_id": self.related_customer_id,
            "related_supplier_id": self.related_supplier_id,
            "created_by_user_id": self.created_by_user_id,
            "created_at": to_utc_z(self.created_at),
        }


@event.listens_for(Transaction, "before_update")
def _reject_transaction_update(mapper, connection, target):
    raise ImmutableRecordError(f"Transaction {target.id} is append-only and cannot be modified.")


@event.listens_for(Transaction, "before_delete")
def _reject_transaction_delete(mapper, connection, target):
    raise ImmutableRecordError(f"Transaction {target.id} is append-only and cannot be deleted.")
