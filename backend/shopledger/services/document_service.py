# Overview: Per-shop invoice and bill numbering.

from __future__ import annotations

from sqlalchemy import update

from ..errors import LedgerError
from ..extensions import db
from ..models import DocumentSequence


SALE_SEQUENCE = "SALE"
PURCHASE_SEQUENCE = "PURCHASE"

SEQUENCE_PREFIXES = {
    SALE_SEQUENCE: "INV",
    PURCHASE_SEQUENCE: "BILL",
}


def seed_document_sequences(shop_id: int) -> None:
    """Create the sequence rows for a new shop (flushes, does not commit)."""
    for document_type in SEQUENCE_PREFIXES:
        db.session.add(DocumentSequence(shop_id=shop_id, document_type=document_type, next_number=1))
    db.session.flush()


def format_document_number(prefix: str, number: int, pad: int = 4) -> str:
    return f"{prefix}-{number:0{pad}d}"


def next_document_number(*, shop_id: int, document_type: str, pad: int = 4) -> str:
    """
    Allocate the next number for a shop/type.

    Must be called inside the caller's unit of work: the increment is a
    single UPDATE, so the row stays write-locked until that unit commits
    and a rolled-back document gives its number back.
    """
    prefix = SEQUENCE_PREFIXES[document_type]
    stmt = (
        update(DocumentSequence)
        .where(
            DocumentSequence.shop_id == shop_id,
            DocumentSequence.document_type == document_type,
        )
        .values(next_number=DocumentSequence.next_number + 1)
        .execution_options(synchronize_session=False)
    )
    result = db.session.execute(stmt)
    if not result.rowcount:
        raise LedgerError(f"Document sequence {document_type} missing for shop {shop_id}")

    current = (
        db.session.query(DocumentSequence.next_number)
        .filter_by(shop_id=shop_id, document_type=document_type)
        .scalar()
    )
    return format_document_number(prefix, current - 1, pad)
