from __future__ import annotations

from ..extensions import db
from shopledger.time_utils import to_utc_z


class _PartyColumns:
    """Columns shared by customers and suppliers (the document counterparties)."""

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    phone = db.Column(db.String(32), nullable=False)
    email = db.Column(db.String(255), nullable=True)
    address = db.Column(db.String(255), nullable=True)

    # Signed running amount still owed on non-cancelled documents
    current_balance_cents = db.Column(db.Integer, nullable=False, default=0)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    def _base_dict(self) -> dict:
        return {
            "id": self.id,
            "shop_id": self.shop_id,
            "name": self.name,
            "phone": self.phone,
            "email": self.email,
            "address": self.address,
            "current_balance_cents": self.current_balance_cents,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class Customer(_PartyColumns, db.Model):
    """
    Customer of a shop.

    current_balance_cents: what the customer still owes the shop.
    total_spent_cents: cumulative amount actually paid (not invoiced).
    """
    __tablename__ = "customers"
    __table_args__ = (
        db.UniqueConstraint("shop_id", "phone", name="uq_customers_shop_phone"),
        db.Index("ix_customers_shop_name", "shop_id", "name"),
        {"sqlite_autoincrement": True},
    )

    PAID_TOTAL_ATTR = "total_spent_cents"
    LABEL = "customer"

    shop_id = db.Column(db.Integer, db.ForeignKey("shops.id"), nullable=False, index=True)
    total_spent_cents = db.Column(db.Integer, nullable=False, default=0)
    version_id = db.Column(db.Integer, nullable=False, default=1)

    shop = db.relationship("Shop", backref=db.backref("customers", lazy=True))
    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return f"<Customer id={self.id} name={self.name!r} balance={self.current_balance_cents}>"

    def to_dict(self) -> dict:
        data = self._base_dict()
        data["total_spent_cents"] = self.total_spent_cents
        return data


class Supplier(_PartyColumns, db.Model):
    """
    Supplier of a shop.

    current_balance_cents: what the shop still owes the supplier.
    total_supplied_cents: cumulative amount actually paid to the supplier.
    """
    __tablename__ = "suppliers"
    __table_args__ = (
        db.UniqueConstraint("shop_id", "phone", name="uq_suppliers_shop_phone"),
        db.Index("ix_suppliers_shop_name", "shop_id", "name"),
        {"sqlite_autoincrement": True},
    )

    PAID_TOTAL_ATTR = "total_supplied_cents"
    LABEL = "supplier"

    shop_id = db.Column(db.Integer, db.ForeignKey("shops.id"), nullable=False, index=True)
    total_supplied_cents = db.Column(db.Integer, nullable=False, default=0)
    version_id = db.Column(db.Integer, nullable=False, default=1)

    shop = db.relationship("Shop", backref=db.backref("suppliers", lazy=True))
    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return f"<Supplier id={self.id} name={self.name!r} balance={self.current_balance_cents}>"

    def to_dict(self) -> dict:
        data = self._base_dict()
        data["total_supplied_cents"] = self.total_supplied_cents
        return data
