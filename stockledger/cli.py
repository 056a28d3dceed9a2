# Overview: Flask CLI command groups for schema reset, stock inspection, and maintenance.

# stockledger/cli.py
# Commands Legend:
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System:
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Inventory inspection/audit:
# - python -m flask inventory stock STORE PRODUCT
#   Show snapshot quantity next to the ledger-derived quantity.
# - python -m flask inventory reconcile [--store-id STORE]
#   Report every (store, product) whose snapshot differs from its ledger sum.
#
# Maintenance:
# - python -m flask maintenance cleanup-processed-events --retention-days 90
#   Delete sync dedup records older than the retention window.

import click
from flask.cli import with_appcontext

from .extensions import db
from .services import ledger_service
from .services import maintenance_service


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


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


@click.group('inventory')
def inventory_group():
    """Inventory inspection and audit commands."""


@inventory_group.command('stock')
@click.argument('store_id')
@click.argument('product_id')
@with_appcontext
def show_stock(store_id, product_id):
    """Show on-hand quantity for one product."""
    snapshot_qty = ledger_service.get_snapshot_quantity(store_id, product_id)
    ledger_qty = ledger_service.fetch_ledger_stock(store_id, product_id)
    click.echo(f"{store_id}/{product_id}: snapshot={snapshot_qty} ledger={ledger_qty}")
    if snapshot_qty != ledger_qty:
        click.echo("WARN Snapshot and ledger disagree; run 'flask inventory reconcile'.")


@inventory_group.command('reconcile')
@click.option('--store-id', default=None, help='Limit the audit to one store')
@with_appcontext
def reconcile(store_id):
    """
    Compare snapshots with ledger sums.

    Exits with status 1 when any drift is found.
    """
    drift = ledger_service.reconcile_store(store_id)
    if not drift:
        click.echo("PASS Snapshots match the ledger.")
        return

    click.echo(f"FAIL {len(drift)} product(s) drifted:")
    for row in drift:
        click.echo(
            f"  {row['store_id']}/{row['product_id']}: "
            f"snapshot={row['snapshot_qty']} ledger={row['ledger_qty']}"
        )
    raise SystemExit(1)


@click.group('maintenance')
def maintenance_group():
    """Maintenance commands."""


@maintenance_group.command('cleanup-processed-events')
@click.option('--retention-days', type=int, default=None, help='Defaults to PROCESSED_EVENT_RETENTION_DAYS')
@with_appcontext
def cleanup_processed_events_cli(retention_days):
    """Cleanup old sync dedup records."""
    try:
        deleted = maintenance_service.cleanup_processed_events(retention_days=retention_days)
    except ValueError as e:
        raise click.BadParameter(str(e), param_hint="--retention-days")
    click.echo(f"Deleted {deleted} processed events.")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(inventory_group)
    app.cli.add_command(maintenance_group)
