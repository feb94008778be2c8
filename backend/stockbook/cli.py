# Overview: Flask CLI command groups for bootstrap and stock maintenance.

# backend/stockbook/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to "stockbook:create_app".
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init-db
#   Create all tables (idempotent).
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Stock maintenance:
# - python -m flask stock seed-products
#   Insert the default catalog when no products exist yet.
# - python -m flask stock migrate-legacy-sales
#   Rewrite old single-item sales into the items shape (safe to re-run).
# - python -m flask stock low-stock [--threshold 10]
#   List product sizes whose closing stock is below the threshold.

import click
from flask.cli import with_appcontext

from .extensions import db
from .services import maintenance_service, products_service, reporting_service


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init-db')
@with_appcontext
def init_db():
    """Create all tables that do not exist yet."""
    db.create_all()
    click.echo("PASS Database tables created.")


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

    click.echo("PASS Database reset complete. Run 'python -m flask stock seed-products' to load the catalog.")


@click.group('stock')
def stock_group():
    """Catalog and sale ledger maintenance commands."""


@stock_group.command('seed-products')
@with_appcontext
def seed_products_cli():
    """Load the default product catalog into an empty database."""
    result = products_service.seed_products()
    click.echo(f"PASS {result['message']} ({result['created']} created)")


@stock_group.command('migrate-legacy-sales')
@with_appcontext
def migrate_legacy_sales_cli():
    """Convert single-item sales to the items shape."""
    result = maintenance_service.migrate_legacy_sales()
    click.echo(f"PASS Found {result['found']} legacy sales, migrated {result['migrated']}.")


@stock_group.command('low-stock')
@click.option('--threshold', type=int, default=None, help='Alert below this many units (default: LOW_STOCK_THRESHOLD)')
@with_appcontext
def low_stock_cli(threshold):
    """List product sizes running low."""
    alerts = reporting_service.low_stock_alerts(threshold)

    if not alerts:
        click.echo("No low stock alerts.")
        return

    click.echo("\n" + "="*60)
    click.echo(f"{'Product':<36} {'Size':<12} {'Stock'}")
    click.echo("="*60)
    for alert in alerts:
        click.echo(f"{alert['product']:<36} {alert['size']:<12} {alert['stock']}")
    click.echo("="*60 + "\n")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(stock_group)
