# Overview: Flask CLI command groups for bootstrap, ledger verification, and backups.

# backend/billbook/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init-db
#   Create the documents table if it does not exist.
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
# - python -m flask system seed [--namespace guest]
#   Add a starter catalog and one walk-in customer to a namespace.
# - python -m flask system namespaces
#   List collections present in the document store.
#
# Ledger verification:
# - python -m flask ledger verify [--namespace guest]
#   Compare stored balances with PENDING invoices minus payments.
# - python -m flask ledger verify --namespace u1 --fix
#   Rewrite drifted balances to the expected value.
#
# Backups:
# - python -m flask data export --namespace u1 --out backup.json
#   Write every collection of a namespace to a JSON file.
# - python -m flask data import --namespace u1 --file backup.json --yes
#   Replace the namespace's collections with the backup contents.

import json

import click
from flask.cli import with_appcontext

from .extensions import db
from .services.document_store import SqlDocumentStore
from .services.repository import GUEST_NAMESPACE, BillingRepository
from .services import customers_service, products_service
from .validation import ValidationError, ConflictError


SEED_PRODUCTS = [
    {"id": "p-laptop", "name": "Laptop", "price": "45000", "stock": "10", "category": "Electronics", "hsn": "8471", "gst_rate": "18"},
    {"id": "p-mouse", "name": "Wireless Mouse", "price": "650", "stock": "50", "category": "Electronics", "hsn": "8471", "gst_rate": "18"},
    {"id": "p-paper", "name": "A4 Paper Ream", "price": "280", "stock": "200", "category": "Stationery", "hsn": "4802", "gst_rate": "12"},
    {"id": "p-install", "name": "Installation", "price": "500", "stock": "0", "category": "Services", "hsn": "9987", "gst_rate": "18"},
]

SEED_CUSTOMERS = [
    {"id": "c-walkin", "name": "Walk-in Customer", "state": "Delhi"},
]


def _open_repository(namespace: str) -> BillingRepository:
    return BillingRepository(SqlDocumentStore(), namespace=namespace).load()


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init-db')
@with_appcontext
def init_db():
    """Create all tables (no-op for tables that already exist)."""
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

    click.echo("PASS Database reset complete. Run 'python -m flask system seed' to add sample data.")


@system_group.command('seed')
@click.option('--namespace', default=GUEST_NAMESPACE, show_default=True, help='Namespace to seed')
@with_appcontext
def seed(namespace):
    """Add the starter catalog and walk-in customer. Existing ids are skipped."""
    repo = _open_repository(namespace)

    created = 0
    for payload in SEED_PRODUCTS:
        try:
            products_service.create_product(repo, dict(payload))
            created += 1
        except ConflictError:
            click.echo(f"SKIP  Product {payload['id']} already exists")
    for payload in SEED_CUSTOMERS:
        try:
            customers_service.create_customer(repo, dict(payload))
            created += 1
        except ConflictError:
            click.echo(f"SKIP  Customer {payload['id']} already exists")

    click.echo(f"PASS Seeded {created} records into '{namespace}'.")


@system_group.command('namespaces')
@with_appcontext
def list_collections():
    """List every collection path in the document store."""
    paths = SqlDocumentStore().collections()
    if not paths:
        click.echo("No documents stored.")
        return
    for path in paths:
        click.echo(path)


@click.group('ledger')
def ledger_group():
    """Customer balance verification."""


@ledger_group.command('verify')
@click.option('--namespace', default=GUEST_NAMESPACE, show_default=True, help='Namespace to check')
@click.option('--fix', is_flag=True, help='Rewrite drifted balances')
@with_appcontext
def verify_ledger(namespace, fix):
    """Check balance = PENDING invoice totals - payments for every customer."""
    repo = _open_repository(namespace)
    found = repo.reconcile(fix=fix)

    if not found:
        click.echo(f"PASS All {len(repo.customers)} balances consistent in '{namespace}'.")
        return

    for d in found:
        click.echo(
            f"FAIL {d.customer_id}: stored={d.stored} expected={d.expected} diff={d.difference}"
        )
    if fix:
        click.echo(f"FIXED {len(found)} balance(s).")
    else:
        click.echo(f"{len(found)} discrepancy(ies). Re-run with --fix to correct.")
        raise SystemExit(1)


@click.group('data')
def data_group():
    """Backup export and restore."""


@data_group.command('export')
@click.option('--namespace', default=GUEST_NAMESPACE, show_default=True, help='Namespace to export')
@click.option('--out', 'out_file', type=click.File('w'), default='-', help='Output file (default stdout)')
@with_appcontext
def export_data(namespace, out_file):
    repo = _open_repository(namespace)
    json.dump(repo.export_data(), out_file, indent=2)
    out_file.write("\n")


@data_group.command('import')
@click.option('--namespace', default=GUEST_NAMESPACE, show_default=True, help='Namespace to restore into')
@click.option('--file', 'in_file', type=click.File('r'), required=True, help='Backup JSON file')
@click.option('--yes', is_flag=True, help='Skip confirmation')
@with_appcontext
def import_data(namespace, in_file, yes):
    """Replace collections in a namespace with a backup's contents."""
    if not yes:
        click.confirm(f"WARN This will REPLACE data in '{namespace}'. Are you sure?", abort=True)

    try:
        payload = json.load(in_file)
    except json.JSONDecodeError as e:
        raise click.ClickException(f"Invalid JSON: {e}")

    repo = _open_repository(namespace)
    try:
        counts = repo.import_data(payload)
    except ValidationError as e:
        raise click.ClickException(str(e))

    for name, count in counts.items():
        click.echo(f"PASS {name}: {count}")
    drift = repo.discrepancies()
    if drift:
        click.echo(f"WARN {len(drift)} customer balance(s) disagree with the ledger. Run 'ledger verify --fix'.")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(ledger_group)
    app.cli.add_command(data_group)
