# Overview: Customer/supplier running balances and paid-to-date totals.

"""
Both counterparties keep the same two numbers:

- current_balance_cents: sum of amount due on their non-cancelled documents
- total_spent_cents / total_supplied_cents: cumulative amount actually paid

The model's PAID_TOTAL_ATTR names the second column, so every helper here
works for Customer and Supplier alike.
"""

from __future__ import annotations

from ..errors import NotFoundError, ValidationError
from ..extensions import db
from .concurrency import lock_for_update


def load_party_for_update(model, shop_id: int, party_id):
    """Lock a customer or supplier and check it belongs to ``shop_id``."""
    party = lock_for_update(db.session.query(model).filter_by(id=party_id)).first()
    if party is None:
        raise NotFoundError(f"{model.LABEL.capitalize()} not found.")
    if party.shop_id != shop_id:
        raise ValidationError(f"Invalid {model.LABEL} for this shop.")
    return party


def _add_paid(party, amount_cents: int) -> None:
    attr = party.PAID_TOTAL_ATTR
    setattr(party, attr, (getattr(party, attr) or 0) + amount_cents)


def charge(party, amount_due_cents: int, amount_paid_cents: int) -> None:
    """A new document was created against ``party``."""
    party.current_balance_cents = (party.current_balance_cents or 0) + amount_due_cents
    _add_paid(party, amount_paid_cents)


def settle(party, amount_cents: int) -> None:
    """``party`` paid (or was paid) ``amount_cents`` against open documents."""
    party.current_balance_cents = (party.current_balance_cents or 0) - amount_cents
    _add_paid(party, amount_cents)


def reverse(party, amount_due_cents: int, amount_paid_cents: int) -> None:
    """A document against ``party`` was cancelled."""
    party.current_balance_cents = (party.current_balance_cents or 0) - amount_due_cents
    _add_paid(party, -amount_paid_cents)
