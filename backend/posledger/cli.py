# Overview: Flask CLI command groups for bootstrap, stock sync, and quota maintenance.

# backend/posledger/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init-db
#   Create all tables that do not exist yet (use `flask db upgrade` in production).
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Stock ledger:
# - python -m flask stock sync [--owner-id 1]
#   Reconcile stock rows with the catalog for one owner, or every owner.
#
# Membership quota:
# - python -m flask membership show --owner-id 1
#   Print the owner's quota state (applies the monthly reset if due).
# - python -m flask membership set-used --owner-id 1 --value 1200
#   Override total used quota to correct drift.

import click
from flask.cli import with_appcontext

from .extensions import db
from .services import membership_service, stock_service
from .services.errors import CommerceError


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init-db')
@with_appcontext
def init_db():
    """Create all tables that do not exist yet."""
    db.create_all()
    click.echo("PASS Database tables created")


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

    click.echo("PASS Database reset complete")


@click.group('stock')
def stock_group():
    """Stock ledger maintenance."""


@stock_group.command('sync')
@click.option('--owner-id', type=int, default=None, help='Only sync this owner')
@with_appcontext
def sync_stock(owner_id):
    """Reconcile stock rows with the product catalog (idempotent)."""
    if owner_id is None:
        synced = stock_service.sync_all_owners()
        click.echo(f"PASS Synced stock for {synced} owner(s)")
        return

    try:
        summary = stock_service.sync_from_products(owner_id)
    except CommerceError as e:
        raise click.ClickException(e.message)

    click.echo(
        f"PASS Owner {owner_id}: created={summary['created']} revived={summary['revived']} "
        f"refreshed={summary['refreshed']} retired={summary['retired']}"
    )


@click.group('membership')
def membership_group():
    """Membership quota inspection and repair."""


def _echo_state(state):
    cap = membership_service.free_quota_monthly()
    click.echo(f"Owner:           {state.owner_id}")
    click.echo(f"Window start:    {state.free_window_start}")
    click.echo(f"Free used:       {state.free_used} / {cap}")
    click.echo(f"Top-up balance:  {state.topup_balance}")
    click.echo(f"Used quota:      {state.used_quota}")


@membership_group.command('show')
@click.option('--owner-id', type=int, required=True)
@with_appcontext
def show_membership(owner_id):
    """Print the owner's quota state."""
    _echo_state(membership_service.get_state(owner_id))


@membership_group.command('set-used')
@click.option('--owner-id', type=int, required=True)
@click.option('--value', type=int, required=True, help='New total used quota')
@with_appcontext
def set_used(owner_id, value):
    """Override total used quota."""
    try:
        state = membership_service.set_used_quota(owner_id, value)
    except CommerceError as e:
        raise click.ClickException(e.message)

    click.echo("PASS Used quota updated")
    _echo_state(state)


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(stock_group)
    app.cli.add_command(membership_group)
