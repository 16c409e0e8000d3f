# Overview: Flask CLI command groups for bootstrap, inspection, and reporting.

# backend/fuelstation/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init-db
#   Create any missing tables (idempotent).
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Employees:
# - python -m flask employees create --name "Jane Doe" --position cashier
#   Create an employee and print their API token (shown once).
# - python -m flask employees list
#   List employees.
# - python -m flask employees rotate-token 3
#   Issue a new API token; the old one stops working.
#
# Shifts:
# - python -m flask shifts list --status OPEN --limit 20
#   List recent shifts with variance.
#
# Profit/loss:
# - python -m flask profit-loss snapshot --period month
# - python -m flask profit-loss snapshot --period custom --start 2024-01-01 --end 2024-03-31 --notes "Q1 close"
#   Save a profit/loss snapshot for the period.

import click
from flask.cli import with_appcontext

from .errors import StationError
from .extensions import db
from .periods import PERIOD_TYPES, resolve_period
from .services import employee_service, profit_loss_service, shift_service
from .store import SqlStore


def _open_store() -> SqlStore:
    return SqlStore(lambda: db.session).open()


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init-db')
@with_appcontext
def init_db():
    """Create all tables that do not exist yet."""
    from . import models  # noqa: F401

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

    click.echo("PASS Database reset complete. Run 'python -m flask employees create' to add staff.")


@click.group('employees')
def employees_group():
    """Employee management commands."""


@employees_group.command('create')
@click.option('--name', prompt=True, help='Full name')
@click.option('--position', default=None, help='Job title (e.g. cashier, manager)')
@with_appcontext
def create_employee_cli(name, position):
    """
    Create an employee and print their API token.

    SECURITY: The token is shown once; only its hash is stored.
    """
    store = _open_store()
    try:
        employee, token = employee_service.create_employee(store, name, position)
        click.echo(f"PASS Created employee {employee.name} (ID: {employee.id})")
        click.echo(f"API token (store it now, it will not be shown again): {token}")
    except StationError as e:
        raise click.ClickException(e.message)
    finally:
        store.close()


@employees_group.command('list')
@with_appcontext
def list_employees_cli():
    """List all employees."""
    store = _open_store()
    try:
        employees = store.list_employees()

        if not employees:
            click.echo("No employees found.")
            return

        click.echo("\n" + "="*70)
        click.echo(f"{'ID':<5} {'Name':<30} {'Position':<20} {'Status'}")
        click.echo("="*70)
        for employee in employees:
            click.echo(f"{employee.id:<5} {employee.name:<30} {employee.position or '-':<20} {employee.status}")
        click.echo("="*70 + "\n")
    finally:
        store.close()


@employees_group.command('rotate-token')
@click.argument('employee_id', type=int)
@with_appcontext
def rotate_token_cli(employee_id):
    """Issue a new API token for an employee."""
    store = _open_store()
    try:
        token = employee_service.rotate_token(store, employee_id)
    except StationError as e:
        raise click.ClickException(e.message)
    finally:
        store.close()

    click.echo(f"PASS New API token for employee {employee_id}: {token}")


@click.group('shifts')
def shifts_group():
    """Shift inspection commands."""


@shifts_group.command('list')
@click.option('--status', type=click.Choice(['OPEN', 'CLOSED']), help='Filter by status')
@click.option('--limit', type=int, default=20, help='Max shifts to show')
@with_appcontext
def list_shifts_cli(status, limit):
    """
    List recent shifts.

    Example:
        flask shifts list
        flask shifts list --status OPEN
    """
    store = _open_store()
    try:
        shifts = shift_service.list_shifts(store, status=status, limit=limit)

        if not shifts:
            click.echo("No shifts found.")
            return

        click.echo("\n" + "="*110)
        click.echo(f"{'ID':<5} {'Employee':<20} {'Status':<8} {'Started':<20} {'Sales':<12} {'Variance':<12} {'Notes'}")
        click.echo("="*110)

        for shift in shifts:
            employee_name = shift.employee.name if shift.employee else "Unknown"
            variance_str = "-"
            if shift.cash_difference is not None:
                variance_str = f"{shift.cash_difference:+.2f}"
            notes = shift.notes[:30] if shift.notes else "-"

            click.echo(f"{shift.id:<5} {employee_name:<20} {shift.status:<8} "
                       f"{str(shift.start_time)[:19]:<20} {shift.sales_total:<12.2f} {variance_str:<12} {notes}")

        click.echo("="*110 + "\n")
    finally:
        store.close()


@click.group('profit-loss')
def profit_loss_group():
    """Profit/loss reporting commands."""


@profit_loss_group.command('snapshot')
@click.option('--period', type=click.Choice(PERIOD_TYPES), default='month', show_default=True)
@click.option('--start', 'start_date', default=None, help='YYYY-MM-DD (custom period)')
@click.option('--end', 'end_date', default=None, help='YYYY-MM-DD (custom period)')
@click.option('--notes', default=None)
@with_appcontext
def snapshot_cli(period, start_date, end_date, notes):
    """Compute and save a profit/loss snapshot for the period."""
    store = _open_store()
    try:
        date_range = resolve_period(period, start_date, end_date)
        summary = profit_loss_service.generate_and_save_profit_loss(store, date_range, notes=notes)
        click.echo(
            f"PASS Saved snapshot {summary.id} for {summary.period}: "
            f"sales {summary.total_sales:.2f}, expenses {summary.total_expenses:.2f}, profit {summary.profit:.2f}"
        )
    except StationError as e:
        raise click.ClickException(e.message)
    finally:
        store.close()


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(employees_group)
    app.cli.add_command(shifts_group)
    app.cli.add_command(profit_loss_group)
