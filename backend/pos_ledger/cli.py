# Overview: Flask CLI command groups for bootstrap, seeding and quick inspection.

# backend/pos_ledger/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask db upgrade
#   Apply Alembic migrations (preferred for persistent databases).
# - python -m flask system init-db
#   Create all tables (idempotent; existing tables are left alone).
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
# - python -m flask system seed-demo
#   Add a handful of demo products and sales.
#
# Inspection:
# - python -m flask products list [--search widget]
# - python -m flask sales list [--start 2025-04-01] [--end 2025-04-30]
# - python -m flask stats daily 2025-04-05
# - python -m flask stats monthly 2025 4

import click
from flask.cli import with_appcontext

from .errors import PosError
from .extensions import db
from .services import products_service, sales_service, stats_service
from .time_utils import parse_iso_datetime, to_utc_z


def _money(cents: int) -> str:
    return f"{cents / 100:,.2f}"


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init-db')
@with_appcontext
def init_db():
    """Create all tables."""
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


DEMO_PRODUCTS = [
    {"name": "Widget", "variant": None, "cost_price_cents": 400, "price_cents": 1000, "quantity": 50},
    {"name": "T-Shirt", "variant": "M", "cost_price_cents": 550, "price_cents": 1299, "quantity": 20},
    {"name": "T-Shirt", "variant": "L", "cost_price_cents": 550, "price_cents": 1299, "quantity": 15},
    {"name": "Coffee Beans", "variant": "1kg", "cost_price_cents": 1800, "price_cents": 2999, "quantity": 12},
]


@system_group.command('seed-demo')
@with_appcontext
def seed_demo():
    """Add demo products (skipping ones that already exist) and two sales."""
    created = []
    for data in DEMO_PRODUCTS:
        try:
            created.append(products_service.add_product(dict(data)))
        except PosError as e:
            click.echo(f"SKIP {data['name']} {data['variant'] or ''}: {e}")

    if len(created) >= 2:
        sales_service.create_sale([
            {"product_id": created[0].id, "quantity": 2},
            {"product_id": created[1].id, "quantity": 1},
        ])
        sales_service.create_sale([{"product_id": created[-1].id, "quantity": 1}])

    click.echo(f"PASS Seeded {len(created)} product(s).")


@click.group('products')
def products_group():
    """Inventory inspection commands."""


@products_group.command('list')
@click.option('--search', default=None, help='Substring match on name or variant')
@with_appcontext
def list_products_cli(search):
    products = products_service.list_products(search=search)
    if not products:
        click.echo("No products found.")
        return

    click.echo("\n" + "="*96)
    click.echo(f"{'ID':<34} {'Name':<28} {'Cost':>10} {'Price':>10} {'Qty':>8}")
    click.echo("="*96)
    for p in products:
        click.echo(
            f"{p.id:<34} {p.display_name[:28]:<28} {_money(p.cost_price_cents):>10} "
            f"{_money(p.price_cents):>10} {p.quantity:>8}"
        )
    click.echo("="*96 + "\n")


@click.group('sales')
def sales_group():
    """Sales ledger inspection commands."""


@sales_group.command('list')
@click.option('--start', default=None, help='ISO-8601 lower bound (inclusive)')
@click.option('--end', default=None, help='ISO-8601 upper bound (inclusive)')
@with_appcontext
def list_sales_cli(start, end):
    try:
        sales = sales_service.list_sales(parse_iso_datetime(start), parse_iso_datetime(end))
    except (PosError, ValueError) as e:
        raise click.ClickException(str(e))

    if not sales:
        click.echo("No sales found.")
        return

    click.echo("\n" + "="*90)
    click.echo(f"{'ID':<34} {'Date':<22} {'Items':>6} {'Total':>12} {'Status':>12}")
    click.echo("="*90)
    for s in sales:
        click.echo(f"{s.id:<34} {to_utc_z(s.date):<22} {s.item_count:>6} {_money(s.total_cents):>12} {s.status:>12}")
    click.echo("="*90 + "\n")


@click.group('stats')
def stats_group():
    """Sales statistics."""


def _echo_totals(label: str, totals: dict) -> None:
    click.echo(label)
    click.echo(f"  sales:   {totals['sale_count']}")
    click.echo(f"  total:   {_money(totals['total_sales_cents'])}")
    click.echo(f"  items:   {totals['item_count']}")
    click.echo(f"  revenue: {_money(totals['revenue_cents'])}")


@stats_group.command('daily')
@click.argument('day')
@with_appcontext
def daily_stats_cli(day):
    try:
        totals = stats_service.daily_stats(day)
    except PosError as e:
        raise click.ClickException(str(e))
    _echo_totals(f"Daily stats for {totals['date']} (UTC)", totals)


@stats_group.command('monthly')
@click.argument('year', type=int)
@click.argument('month', type=int)
@with_appcontext
def monthly_stats_cli(year, month):
    try:
        totals = stats_service.monthly_stats(year, month)
    except PosError as e:
        raise click.ClickException(str(e))
    _echo_totals(f"Monthly stats for {year}-{month:02d} (UTC)", totals)


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(products_group)
    app.cli.add_command(sales_group)
    app.cli.add_command(stats_group)
