# Overview: Flask CLI command group for bootstrap and inspection.

# backend/clinicdesk/cli.py
# Commands (run from the backend directory with FLASK_APP=wsgi.py):
# - python -m flask clinic init-db
#   Create all tables (use `flask db upgrade` for migrated databases).
# - python -m flask clinic reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
# - python -m flask clinic create-user --username desk --password "Password123"
#   Create a staff account (prompts if options are omitted).
# - python -m flask clinic check-stock
#   Compare every product's stock counter with its movements.
# - python -m flask clinic close-day --date 2026-01-31 --amount 150000
#   Close a local day from the command line.

import click
from flask import current_app
from flask.cli import with_appcontext

from .errors import ClinicError
from .extensions import db
from .models import Product
from .services import auth_service, cash_service, inventory_service
from .time_utils import parse_local_date


@click.group('clinic')
def clinic_group():
    """Clinic bootstrap and maintenance commands."""


@clinic_group.command('init-db')
@with_appcontext
def init_db():
    """Create any missing tables."""
    db.create_all()
    click.echo("PASS Database tables created.")


@clinic_group.command('reset-db')
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


@clinic_group.command('create-user')
@click.option('--username', prompt=True)
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True)
@click.option('--display-name', default=None)
@with_appcontext
def create_user_command(username, password, display_name):
    """Create a staff account."""
    try:
        user = auth_service.create_user(
            username,
            password,
            display_name,
            rounds=current_app.config.get("BCRYPT_ROUNDS", 12),
        )
    except ClinicError as e:
        raise click.ClickException(e.message)
    click.echo(f"PASS Created user {user.username} (ID: {user.id})")


@clinic_group.command('check-stock')
@with_appcontext
def check_stock():
    """Report products whose stock counter disagrees with their movements."""
    products = db.session.query(Product).order_by(Product.id.asc()).all()
    drifted = 0
    for product in products:
        report = inventory_service.reconcile_stock(product.id)
        if report["drift"]:
            drifted += 1
            click.echo(
                f"FAIL {product.name} ({product.specification or '-'}): "
                f"stock={report['stock']} expected={report['expected_stock']} drift={report['drift']}"
            )

    if drifted:
        raise click.ClickException(f"{drifted} of {len(products)} products drifted")
    click.echo(f"PASS {len(products)} products consistent")


@clinic_group.command('close-day')
@click.option('--date', 'day', required=True, help='Local day, YYYY-MM-DD')
@click.option('--amount', type=int, required=True, help='Counted closing amount')
@with_appcontext
def close_day_command(day, amount):
    """Close a local day with the counted drawer amount."""
    try:
        result = cash_service.close_day(parse_local_date(day), amount)
    except (ValueError, ClinicError) as e:
        raise click.ClickException(str(e))
    click.echo(f"PASS Closed {result['date']}: {result['closed_count']} records, amount {result['closing_amount']}")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(clinic_group)
