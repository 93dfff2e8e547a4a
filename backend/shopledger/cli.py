# Overview: Flask CLI command groups for bootstrap and maintenance.

# backend/shopledger/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# - python -m flask system init
#   Create tables and the default admin account (idempotent).
# - python -m flask users create --username alice --email alice@shop.local --password "Password123!" --role customer
#   Create a user (prompts if options are omitted).
# - python -m flask users list
# - python -m flask cashflow sync-orders [--start 2026-01-01] [--end 2026-01-31]
#   Derive cash-flow transactions for completed orders that have none yet.

import click
from flask.cli import with_appcontext

from .extensions import db
from .models import User
from .models.auth import ROLE_ADMIN, ROLES
from .services.auth_service import create_user, PasswordValidationError, UserError
from .services import cashflow_service
from .services.reporting_service import ReportError, parse_bound

DEFAULT_ADMIN_PASSWORD = "Password123!"


@click.group('system')
def system_group():
    """System bootstrap commands."""


@system_group.command('init')
@click.option('--admin-email', default='admin@shopledger.local', help='Email for the default admin')
@with_appcontext
def init_system(admin_email):
    """
    Create all tables and a default admin user.

    SECURITY: Change the default password immediately in production!
    """
    click.echo("START Initializing database...")
    db.create_all()

    if db.session.query(User).filter_by(username="admin").first():
        click.echo("WARN  User 'admin' already exists, skipping...")
    else:
        create_user(username="admin", email=admin_email, password=DEFAULT_ADMIN_PASSWORD, role=ROLE_ADMIN)
        click.echo(f"PASS Created user: admin ({admin_email}) with role 'admin'")
        click.echo(f"     Default password: {DEFAULT_ADMIN_PASSWORD} (CHANGE IN PRODUCTION!)")

    click.echo("DONE System initialized")


@click.group('users')
def users_group():
    """User inspection and bootstrap commands."""


@users_group.command('create')
@click.option('--username', prompt=True, help='Username')
@click.option('--email', prompt=True, help='Email address')
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True, help='Password')
@click.option('--role', type=click.Choice(list(ROLES)), prompt=True, help='Role')
@with_appcontext
def create_user_cli(username, email, password, role):
    """
    Create a new user.

    Password must meet strength requirements:
    - Minimum 8 characters
    - At least one uppercase letter
    - At least one lowercase letter
    - At least one digit
    - At least one special character
    """
    try:
        user = create_user(username=username, email=email, password=password, role=role)
    except (PasswordValidationError, UserError) as e:
        click.echo(f"FAIL {e}")
        raise SystemExit(1)

    click.echo(f"PASS Created user: {user.username} (ID: {user.id}) with role '{user.role}'")


@users_group.command('list')
@with_appcontext
def list_users_cli():
    """List all users with role and active status."""
    users = db.session.query(User).order_by(User.id.asc()).all()
    if not users:
        click.echo("No users found.")
        return
    for user in users:
        status = "active" if user.is_active else "inactive"
        click.echo(f"{user.id:>4}  {user.username:<20} {user.email:<32} {user.role:<10} {status}")


@click.group('cashflow')
def cashflow_group():
    """Cash-flow maintenance commands."""


@cashflow_group.command('sync-orders')
@click.option('--start', default=None, help='Earliest order date (ISO-8601)')
@click.option('--end', default=None, help='Latest order date (ISO-8601, date-only covers the whole day)')
@with_appcontext
def sync_orders_cli(start, end):
    """Derive cash-flow transactions for completed orders that have none yet."""
    try:
        start_dt = parse_bound(start, end_of_day=False)
        end_dt = parse_bound(end, end_of_day=True)
    except ReportError as e:
        click.echo(f"FAIL {e}")
        raise SystemExit(1)

    result = cashflow_service.sync_orders_to_transactions(start=start_dt, end=end_dt)
    click.echo(f"PASS {result['message']} ({result['total_orders_checked']} completed orders checked)")
    for item in result["results"]:
        click.echo(f"     order {item['order_id']}: total_price={item['total_price']}")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(users_group)
    app.cli.add_command(cashflow_group)
