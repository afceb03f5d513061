# Overview: Flask CLI command groups for bootstrap, accounts, and scheduled checks.

# backend/shopledger/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init-db
#   Create all tables that do not exist yet (use 'flask db upgrade' for migrations).
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Accounts:
# - python -m flask users create --first-name Asha --email asha@example.com --password "Password123"
#   Create a shop owner account (prompts if options are omitted).
# - python -m flask users list
#
# Scheduled jobs (call from cron, e.g. daily at 06:00):
# - python -m flask notifications run-checks
#   Low stock, overdue collections and due supplier payments.
#
# Ledger inspection:
# - python -m flask ledger check-balances [--shop-id 1]
#   Compare every customer/supplier balance with the amount due on their open documents.

import click
from flask.cli import with_appcontext
from sqlalchemy import func

from .errors import LedgerError
from .extensions import db
from .models import Customer, Purchase, Sale, Supplier, User
from .models.documents import COMPLETED
from .services.auth_service import create_user
from .services.notification_service import run_all_checks


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init-db')
@with_appcontext
def init_db():
    """Create all tables that do not exist yet."""
    db.create_all()
    click.echo("PASS Tables created.")


@system_group.command('reset-db')
@click.option('--yes', is_flag=True, help='Skip confirmation')
@with_appcontext
def reset_db(yes):
    """
    DANGER: Drop all tables and recreate schema.

    This will DELETE ALL DATA!
    """
    if not yes:
        click.confirm("WARN This will DELETE ALL DATA. Are you sure?", abort=True)

    click.echo("DELETE  Dropping all tables...")
    db.drop_all()

    click.echo("BUILD  Creating all tables...")
    db.create_all()

    click.echo("PASS Database reset complete.")


@click.group('users')
def users_group():
    """Shop owner accounts."""


@users_group.command('create')
@click.option('--first-name', prompt=True, help='First name')
@click.option('--last-name', default=None, help='Last name')
@click.option('--email', prompt=True, help='Email address')
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True, help='Password')
@with_appcontext
def create_user_cli(first_name, last_name, email, password):
    """
    Create a shop owner account.

    Password must be at least 8 characters with an uppercase letter,
    a lowercase letter and a digit.
    """
    try:
        user = create_user(first_name=first_name, last_name=last_name, email=email, password=password)
    except LedgerError as e:
        db.session.rollback()
        raise click.ClickException(e.message)
    click.echo(f"PASS Created user {user.email} (id={user.id})")


@users_group.command('list')
@with_appcontext
def list_users():
    users = db.session.query(User).order_by(User.id).all()
    if not users:
        click.echo("No users found.")
        return
    for user in users:
        status = "active" if user.is_active else "inactive"
        click.echo(f"{user.id:>5}  {user.email:<40} {user.first_name} {user.last_name or ''}  [{status}]")


@click.group('notifications')
def notifications_group():
    """Scheduled notification checks."""


@notifications_group.command('run-checks')
@with_appcontext
def run_checks():
    """Run low-stock, overdue-collection and due-payment checks once."""
    results = run_all_checks()
    for name, created in results.items():
        if created is None:
            click.echo(f"FAIL {name}: check failed (see log)")
        else:
            click.echo(f"PASS {name}: {created} notification(s) created")


@click.group('ledger')
def ledger_group():
    """Ledger consistency inspection."""


def _balance_drift(party_model, document_model, party_column, shop_id):
    due = (
        db.session.query(party_column, func.coalesce(func.sum(document_model.amount_due_cents), 0))
        .filter(document_model.status == COMPLETED)
        .group_by(party_column)
    )
    due_by_party = {party_id: total for party_id, total in due if party_id is not None}

    query = db.session.query(party_model)
    if shop_id is not None:
        query = query.filter(party_model.shop_id == shop_id)

    drift = []
    for party in query.order_by(party_model.id):
        expected = int(due_by_party.get(party.id, 0))
        if party.current_balance_cents != expected:
            drift.append((party, expected))
    return drift


@ledger_group.command('check-balances')
@click.option('--shop-id', type=int, default=None, help='Limit to one shop')
@with_appcontext
def check_balances(shop_id):
    """Verify balance == sum(amount due on non-cancelled documents) for every party."""
    drift = (
        _balance_drift(Customer, Sale, Sale.customer_id, shop_id)
        + _balance_drift(Supplier, Purchase, Purchase.supplier_id, shop_id)
    )
    if not drift:
        click.echo("PASS All balances match their open documents.")
        return

    for party, expected in drift:
        click.echo(
            f"FAIL {party.LABEL} id={party.id} {party.name!r}: "
            f"balance={party.current_balance_cents} expected={expected}"
        )
    raise click.exceptions.Exit(1)


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(users_group)
    app.cli.add_command(notifications_group)
    app.cli.add_command(ledger_group)
