# Overview: Flask CLI command groups for bootstrap, inspection, and maintenance.

# backend/inventario/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init
#   Idempotent bootstrap: creates tables and the seed administrator.
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# User inspection/bootstrap:
# - python -m flask users list
#   List all users with roles and 2FA state.
# - python -m flask users create --real-name "Ana" --username ana --email ana@company.com --role "User Manager"
#   Create a user (prompts if options are omitted).
#
# Permission inspection:
# - python -m flask perms list --role "User Manager"
#   List permissions (optionally only those a role holds).
# - python -m flask perms show APPROVE_EQUIPMENT
#   Describe one permission and list the roles holding it.
#
# Integrations:
# - python -m flask integrations sync [--loop] [--as-user admin]
#   Sync with Absolute once, or every absolute_sync_interval hours (0 disables the loop).
#
# Maintenance:
# - python -m flask sessions cleanup --retention-days 30
#   Delete expired and revoked sessions older than the retention window.
#   Expired login challenges go too.

import time

import click
from flask import current_app
from flask.cli import with_appcontext

from .errors import InventarioError
from .extensions import db
from .models import User, UserRole
from .permissions import (
    DEFAULT_ROLE_PERMISSIONS,
    PERMISSION_DEFINITIONS,
    get_permission_definition,
    get_permissions_by_resource,
    validate_permission_code,
)
from .services import inventory_sync_service, session_service, settings_service, twofactor_service, user_service
from .services.auth_service import hash_password


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init')
@with_appcontext
def init_system():
    """
    Initialize Inventario Pro: create tables and the seed administrator.

    Credentials come from SEED_ADMIN_USERNAME / SEED_ADMIN_PASSWORD.

    SECURITY: Change the administrator password immediately in production!
    """
    click.echo("START Initializing Inventario Pro...")

    db.create_all()
    click.echo("PASS Tables ready")

    user, created = user_service.ensure_seed_admin()
    if created:
        click.echo(f"PASS Created administrator: {user.username} ({user.email})")
        click.echo("\nSECURITY Default credentials in use. Change the password immediately!")
    else:
        click.echo(f"WARN  Administrator '{user.username}' already exists, skipping...")

    click.echo("DONE Inventario Pro initialized")


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

    click.echo("PASS Database reset complete. Run 'python -m flask system init' to initialize.")


# =============================================================================
# USER MANAGEMENT COMMANDS
# =============================================================================

@click.group('users')
def users_group():
    """User inspection and bootstrap commands."""


@users_group.command('create')
@click.option('--real-name', prompt=True, help='Display name')
@click.option('--username', prompt=True, help='Username')
@click.option('--email', prompt=True, help='Email address')
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True, help='Password')
@click.option('--role', type=click.Choice(list(UserRole.ALL)), prompt=True, help='Role')
@with_appcontext
def create_user_cli(real_name, username, email, password, role):
    """
    Create a new user from the console (no actor, no audit entry).

    Password must meet strength requirements:
    - Minimum 8 characters
    - At least one uppercase letter
    - At least one lowercase letter
    - At least one digit
    - At least one special character
    """
    existing = db.session.query(User).filter(
        db.or_(User.username == username, User.email == email)
    ).first()
    if existing:
        click.echo(f"FAIL User '{username}' or email '{email}' already exists")
        return

    try:
        password_hash = hash_password(password)
    except InventarioError as e:
        click.echo(f"FAIL Password validation failed: {e.message}")
        click.echo("Requirements: 8+ chars, uppercase, lowercase, digit, special char")
        return

    user = User(real_name=real_name, username=username, email=email, password_hash=password_hash, role=role)
    db.session.add(user)
    db.session.commit()

    click.echo(f"PASS Created user: {username} ({email}) with role '{role}'")
    click.echo("SECURITY Password securely hashed with bcrypt")


@users_group.command('list')
@with_appcontext
def list_users_cli():
    """List all users with roles and 2FA state."""
    users = user_service.list_users()

    if not users:
        click.echo("No users found. Run 'python -m flask system init' first.")
        return

    click.echo("\n" + "="*90)
    click.echo(f"{'ID':<5} {'Username':<20} {'Email':<30} {'Role':<15} {'2FA':<5} {'SSO'}")
    click.echo("="*90)

    for user in users:
        two_fa = "Yes" if user.is_2fa_enabled else "No"
        click.echo(f"{user.id:<5} {user.username:<20} {user.email:<30} {user.role:<15} {two_fa:<5} {user.sso_provider or '-'}")

    click.echo("="*90 + "\n")


# =============================================================================
# PERMISSION INSPECTION
# =============================================================================

@click.group('perms')
def perms_group():
    """Permission inspection commands."""


@perms_group.command('list')
@click.option('--role', type=click.Choice(list(UserRole.ALL)), help='Only permissions held by this role')
@with_appcontext
def list_permissions_cli(role):
    """List permissions, grouped by resource."""
    held = DEFAULT_ROLE_PERMISSIONS.get(role) if role else None

    for resource in dict.fromkeys(perm[3] for perm in PERMISSION_DEFINITIONS):
        perms = [
            perm for perm in get_permissions_by_resource(resource)
            if held is None or perm[0] in held
        ]
        if not perms:
            continue
        click.echo(f"\n[{resource}]")
        for code, name, description, _ in perms:
            click.echo(f"  {code:<22} {name:<24} {description}")
    click.echo("")


@perms_group.command('show')
@click.argument('code')
@with_appcontext
def show_permission_cli(code):
    """Show one permission and the roles that hold it."""
    code = code.strip().upper()
    if not validate_permission_code(code):
        raise click.ClickException(f"Unknown permission: {code}")

    definition = get_permission_definition(code)
    roles = [role for role in UserRole.ALL if code in DEFAULT_ROLE_PERMISSIONS[role]]
    click.echo(f"{definition['code']} ({definition['resource']})")
    click.echo(f"  {definition['name']}: {definition['description']}")
    click.echo(f"  Roles: {', '.join(roles)}")


# =============================================================================
# INTEGRATIONS
# =============================================================================

@click.group('integrations')
def integrations_group():
    """External inventory integration commands."""


def _run_sync(actor_username: str) -> None:
    actor = db.session.query(User).filter(User.username == actor_username).first()
    if actor is None:
        raise click.ClickException(f"User '{actor_username}' not found")

    config = settings_service.get_integration_config()
    result = inventory_sync_service.sync_with_provider(config, actor)
    click.echo(f"PASS Absolute sync: {result['added']} added, {result['updated']} updated")


@integrations_group.command('sync')
@click.option('--loop', 'loop', is_flag=True, help='Keep syncing every absolute_sync_interval hours')
@click.option('--as-user', 'as_user', default=None, help='Actor recorded in history and audit (default: seed admin)')
@with_appcontext
def sync_cli(loop, as_user):
    """
    Reconcile the Absolute device inventory into equipment.

    With --loop the interval is re-read before every wait, so changing the
    setting takes effect without a restart. An interval of 0 stops the loop.
    """
    actor_username = as_user or current_app.config["SEED_ADMIN_USERNAME"]

    while True:
        try:
            _run_sync(actor_username)
        except InventarioError as e:
            if not loop:
                raise click.ClickException(e.message)
            click.echo(f"FAIL Absolute sync failed: {e.message}")
        finally:
            db.session.remove()

        if not loop:
            return

        interval_hours = settings_service.get_integration_config().sync_interval_hours
        db.session.remove()
        if interval_hours <= 0:
            click.echo("WARN  absolute_sync_interval is 0; periodic sync disabled")
            return

        click.echo(f"WAIT  Next sync in {interval_hours} hour(s)")
        time.sleep(interval_hours * 3600)


# =============================================================================
# MAINTENANCE
# =============================================================================

@click.group('sessions')
def sessions_group():
    """Session maintenance commands."""


@sessions_group.command('cleanup')
@click.option('--retention-days', type=int, default=30, show_default=True)
@with_appcontext
def cleanup_sessions_cli(retention_days):
    """Delete expired and revoked sessions older than the retention window."""
    deleted = session_service.cleanup_expired_sessions(retention_days=retention_days)
    challenges = twofactor_service.cleanup_expired_challenges()
    click.echo(f"Deleted {deleted} sessions older than {retention_days} days.")
    click.echo(f"Deleted {challenges} expired login challenges.")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(users_group)
    app.cli.add_command(perms_group)
    app.cli.add_command(integrations_group)
    app.cli.add_command(sessions_group)
