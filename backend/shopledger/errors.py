# Overview: Error taxonomy shared by services and routes.

"""
Ledger errors.

Every service raises one of these; routes translate them to a JSON body
``{"success": false, "message": ..., "details": ...}`` with ``status_code``.
Raising inside a unit of work rolls back everything that unit wrote.
"""

from __future__ import annotations


class LedgerError(Exception):
    """Base class for expected, user-facing failures."""

    kind = "internal"
    status_code = 500

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict:
        body = {"success": False, "message": self.message, "error": self.kind}
        if self.details:
            body["details"] = self.details
        return body


class NotFoundError(LedgerError):
    kind = "not_found"
    status_code = 404


class ForbiddenError(LedgerError):
    kind = "forbidden"
    status_code = 403


class ConflictError(LedgerError):
    """409: duplicate phone, protected category, deletion blocked by references."""

    kind = "conflict"
    status_code = 409


class ValidationError(LedgerError):
    """400: malformed input or a business precondition that does not hold."""

    kind = "validation"
    status_code = 400


class AuthenticationError(LedgerError):
    kind = "unauthenticated"
    status_code = 401


class InsufficientStockError(ValidationError):
    kind = "insufficient_stock"

    def __init__(self, product, required: int):
        super().__init__(
            f"Insufficient stock for {product.name}. "
            f"Available: {product.quantity}, Required: {required}.",
            details={
                "product_id": product.id,
                "product_name": product.name,
                "available": product.quantity,
                "required": required,
            },
        )


class InsufficientStockToReverseError(ValidationError):
    kind = "insufficient_stock_to_reverse"

    def __init__(self, product, required: int):
        super().__init__(
            f"Cannot cancel purchase. Not enough stock for {product.name} to return. "
            f"Current stock: {product.quantity}, return required: {required}.",
            details={
                "product_id": product.id,
                "product_name": product.name,
                "available": product.quantity,
                "required": required,
            },
        )


class ImmutableRecordError(LedgerError):
    """Raised when code tries to update or delete an append-only record."""

    kind = "immutable_record"
    status_code = 500
