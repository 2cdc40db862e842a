# Overview: Flask CLI command groups for bootstrap, account administration, and maintenance.

# backend/shopdesk/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init-db
#   Create any missing tables (use `flask db upgrade` for migrated deployments).
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Shop account administration:
# - python -m flask shops list [--status pending]
#   List shop accounts with status and lockout counters.
# - python -m flask shops create --email owner@shop.local --password "Password123!" --shop-name "Corner Store"
#   Create an active shop account.
# - python -m flask shops set-status owner@shop.local frozen
#   Approve (active), freeze, reject or lock an account. Freeze/reject revoke live sessions.
# - python -m flask shops unlock owner@shop.local
#   Clear a login lockout and reset the failed-attempt counter.
# - python -m flask shops lockout-status owner@shop.local
#   Show failed attempts and time until unlock.
#
# Maintenance:
# - python -m flask sessions cleanup --retention-days 30
#   Delete expired/revoked session tokens older than the retention window.

import click
from flask.cli import with_appcontext

from .extensions import db
from .models import Shop
from .models.shops import ACCOUNT_STATUSES
from .services import auth_service, login_lockout_service, session_service
from .services.auth_service import AuthError, PasswordValidationError
from .validation import ConflictError, ValidationError


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init-db')
@with_appcontext
def init_db():
    """Create all tables that do not exist yet."""
    db.create_all()
    click.echo("PASS Database schema ready.")


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

    click.echo("PASS Database reset complete. Run 'python -m flask shops create' to add an account.")


@click.group('shops')
def shops_group():
    """Shop account administration commands."""


@shops_group.command('list')
@click.option('--status', type=click.Choice(ACCOUNT_STATUSES), help='Filter by account status')
@with_appcontext
def list_shops(status):
    """List shop accounts."""
    query = db.session.query(Shop)
    if status:
        query = query.filter_by(account_status=status)

    shops = query.order_by(Shop.id.asc()).all()

    if not shops:
        click.echo("No shops found.")
        return

    click.echo("\n" + "="*100)
    click.echo(f"{'ID':<5} {'Email':<35} {'Shop':<25} {'Status':<10} {'Provider':<10} {'Failed'}")
    click.echo("="*100)

    for shop in shops:
        click.echo(
            f"{shop.id:<5} {shop.email:<35} {(shop.shop_name or '-'):<25} "
            f"{shop.account_status:<10} {shop.auth_provider:<10} {shop.failed_login_attempts}"
        )

    click.echo("="*100 + "\n")


@shops_group.command('create')
@click.option('--email', prompt=True, help='Login email')
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True, help='Password')
@click.option('--shop-name', prompt=True, help='Shop name printed on receipts')
@click.option('--timezone', 'timezone_name', default='UTC', show_default=True, help='IANA timezone')
@with_appcontext
def create_shop_cli(email, password, shop_name, timezone_name):
    """Create an active shop account."""
    try:
        shop = auth_service.register_shop(
            email,
            password,
            {"shop_name": shop_name, "timezone": timezone_name},
        )
    except (PasswordValidationError, ValidationError, ConflictError) as e:
        click.echo(f"FAIL {e}")
        return

    click.echo(f"PASS Created shop: {shop.shop_name} <{shop.email}> (ID: {shop.id})")


@shops_group.command('set-status')
@click.argument('email')
@click.argument('status', type=click.Choice(ACCOUNT_STATUSES))
@with_appcontext
def set_status_cli(email, status):
    """Change an account's status."""
    try:
        shop = auth_service.set_account_status(email, status)
    except (AuthError, ValidationError) as e:
        click.echo(f"FAIL {e}")
        return

    click.echo(f"PASS {shop.email} is now {shop.account_status}")

    if status in session_service.SESSION_REVOKING_STATUSES:
        revoked = session_service.revoke_all_shop_sessions(shop.id, reason=f"Account {status}")
        click.echo(f"PASS Revoked {revoked} active session(s)")


@shops_group.command('unlock')
@click.argument('email')
@with_appcontext
def unlock_cli(email):
    """Clear a login lockout."""
    shop = login_lockout_service.unlock_account(email)
    if not shop:
        click.echo(f"FAIL No account for {email}")
        return
    click.echo(f"PASS Unlocked {shop.email} (status: {shop.account_status})")


@shops_group.command('lockout-status')
@click.argument('email')
@with_appcontext
def lockout_status_cli(email):
    """Show failed-attempt counters for an account."""
    status = login_lockout_service.get_lockout_status(email)
    click.echo(f"Locked:          {'Yes' if status['locked'] else 'No'}")
    click.echo(f"Failed attempts: {status['failed_attempts']}/{status['max_attempts']}")
    if status["locked"]:
        click.echo(f"Locked until:    {status['locked_until']} ({status['seconds_until_unlock']}s)")


@click.group('sessions')
def sessions_group():
    """Session maintenance commands."""


@sessions_group.command('cleanup')
@click.option('--retention-days', type=int, default=30, show_default=True)
@with_appcontext
def cleanup_sessions_cli(retention_days):
    """
    Cleanup expired and revoked session tokens.

    Default retention: 30 days.
    """
    deleted = session_service.cleanup_expired_sessions(retention_days=retention_days)
    click.echo(f"Deleted {deleted} sessions older than {retention_days} days.")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(shops_group)
    app.cli.add_command(sessions_group)
