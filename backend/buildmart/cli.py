# Overview: Flask CLI command groups for bootstrap, inspection, and maintenance.

# backend/buildmart/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init [--admin-username admin --admin-email admin@buildmart.local --admin-password "Password123!"]
#   Create missing tables and, when all three admin options are given, the first admin account.
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# User inspection/bootstrap:
# - python -m flask users list [--role seller]
#   List users with role and active status.
# - python -m flask users create --username admin --email admin@buildmart.local --password "Password123!" --role admin
#   Create a user of any role (prompts if options are omitted). The only way to create admins.
#
# Access policy inspection:
# - python -m flask perms list [--role seller] [--category CATALOG]
#   Print the action table (roles, ownership, description).
# - python -m flask perms check alice UPDATE_PRODUCT
#   Check whether a user's role allows an action.
#
# Maintenance:
# - python -m flask maintenance cleanup-sessions --retention-days 30
#   Delete expired or revoked sessions older than the retention window.

import click
from flask.cli import with_appcontext

from .errors import BuildmartError
from .extensions import db
from .models import User
from .models.auth import ROLE_ADMIN, ROLES
from .permissions import (
    ACTION_DEFINITIONS,
    ACTION_POLICIES,
    ActionCategory,
    get_actions_by_category,
    validate_action_code,
)
from .services.auth_service import create_user, PasswordValidationError
from .services.permission_service import Principal, authorize
from .services.session_service import cleanup_expired_sessions

CATEGORIES = [
    ActionCategory.CATALOG,
    ActionCategory.CART,
    ActionCategory.ORDERS,
    ActionCategory.PROJECTS,
    ActionCategory.ADMIN,
]


@click.group('system')
def system_group():
    """Database setup."""


@system_group.command('init')
@click.option('--admin-username', help='Username for the first admin')
@click.option('--admin-email', help='Email for the first admin')
@click.option('--admin-password', help='Password for the first admin')
@with_appcontext
def init_system(admin_username, admin_email, admin_password):
    """
    Initialize the BuildMart database.

    Idempotent: tables are created only if missing and the admin is
    skipped when the username already exists.

    SECURITY: Change the admin password immediately in production!
    """
    click.echo("START Initializing BuildMart...")

    db.create_all()
    click.echo("PASS Tables ready")

    if not (admin_username and admin_email and admin_password):
        click.echo("SKIP No admin requested (pass --admin-username, --admin-email and --admin-password)")
        return

    existing = db.session.query(User).filter_by(username=admin_username).first()
    if existing:
        click.echo(f"SKIP  User '{admin_username}' already exists (role: {existing.role})")
        return

    try:
        user = create_user(admin_username, admin_email, admin_password, ROLE_ADMIN)
    except PasswordValidationError as e:
        raise click.ClickException(f"Password validation failed: {e.message}")
    except BuildmartError as e:
        raise click.ClickException(e.message)

    click.echo(f"PASS Created admin: {user.username} ({user.email})")
    click.echo("\nDONE BuildMart initialized")


@system_group.command('reset-db')
@click.option('--yes', is_flag=True, help='Skip confirmation')
@with_appcontext
def reset_db(yes):
    """Drop and recreate every table. Development databases only."""
    if not yes:
        click.confirm("WARN Every user, product, order and project will be erased. Continue?", abort=True)

    db.drop_all()
    click.echo("DELETE Tables dropped")
    db.create_all()
    click.echo("BUILD Tables recreated")
    click.echo("PASS Reset done; run 'python -m flask system init' to add an admin.")


@click.group('users')
def users_group():
    """Account creation and listing."""


@users_group.command('create')
@click.option('--username', prompt=True, help='Username')
@click.option('--email', prompt=True, help='Email address')
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True, help='Password')
@click.option('--role', type=click.Choice(list(ROLES)), prompt=True, help='Role')
@click.option('--business-name', default=None, help='Trading name (sellers)')
@with_appcontext
def create_user_cli(username, email, password, role, business_name):
    """Create an account of any role; admins can only be made here."""
    try:
        user = create_user(username, email, password, role, business_name=business_name)
    except PasswordValidationError as e:
        raise click.ClickException(f"Weak password: {e.message}")
    except BuildmartError as e:
        raise click.ClickException(f"User not created: {e.message}")

    click.echo(f"PASS {user.role} account '{user.username}' created ({user.email})")


@users_group.command('list')
@click.option('--role', type=click.Choice(list(ROLES)), help='Filter by role')
@with_appcontext
def list_users(role):
    """Accounts in creation order."""
    query = db.session.query(User).order_by(User.created_at.asc())
    if role:
        query = query.filter(User.role == role)
    users = query.all()

    if not users:
        click.echo("No matching accounts.")
        return

    click.echo(f"{'Username':<20} {'Role':<8} {'Active':<7} {'Email':<32} {'ID'}")
    click.echo("-"*100)
    for user in users:
        click.echo(
            f"{user.username:<20} {user.role:<8} {'yes' if user.is_active else 'no':<7} "
            f"{user.email:<32} {user.id}"
        )
    click.echo(f"\n {len(users)} account(s)")


@click.group('perms')
def perms_group():
    """Access policy inspection commands."""


@perms_group.command('list')
@click.option('--role', type=click.Choice(list(ROLES)), help='Only actions this role may perform')
@click.option('--category', type=click.Choice(CATEGORIES), help='Filter by category')
def list_permissions_cli(role, category):
    """List the access policy table, optionally filtered by role or category."""
    definitions = get_actions_by_category(category) if category else ACTION_DEFINITIONS
    policies = [ACTION_POLICIES[code] for code, *_ in definitions]
    if role:
        policies = [p for p in policies if authorize(Principal(id="cli", role=role), p.code).allowed]

    click.echo(f"\n{'='*100}")
    click.echo(f"{'Code':<26} {'Category':<10} {'Roles':<24} {'Owner':<7} {'Description'}")
    click.echo("-"*100)

    for p in policies:
        roles_str = ", ".join(sorted(p.roles)) or "admin"
        owner_str = "yes" if p.ownership else "no"
        click.echo(f"{p.code:<26} {p.category:<10} {roles_str:<24} {owner_str:<7} {p.description}")

    click.echo(f"\n Total: {len(policies)} actions\n")


@perms_group.command('check')
@click.argument('username')
@click.argument('action')
@with_appcontext
def check_permission_cli(username, action):
    """Check whether a user's role allows an action (ownership not considered)."""
    if not validate_action_code(action):
        raise click.ClickException(f"Unknown action: {action}")

    user = db.session.query(User).filter_by(username=username).first()
    if not user:
        raise click.ClickException(f"User '{username}' not found")

    decision = authorize(Principal(id=user.id, role=user.role), action)
    if decision.allowed:
        click.echo(f"PASS {username} ({user.role}) may {action}")
    else:
        click.echo(f"FAIL {username} ({user.role}) may not {action} ({decision.outcome})")


@click.group('maintenance')
def maintenance_group():
    """Periodic housekeeping."""


@maintenance_group.command('cleanup-sessions')
@click.option('--retention-days', type=int, default=30, show_default=True)
@with_appcontext
def cleanup_sessions_cli(retention_days):
    """Delete expired and revoked sessions older than the retention window."""
    if retention_days < 0:
        raise click.BadParameter("retention-days must be >= 0", param_hint="--retention-days")
    deleted = cleanup_expired_sessions(older_than_days=retention_days)
    click.echo(f"Deleted {deleted} sessions older than {retention_days} days.")


def register_commands(app):
    """Attach the command groups to app.cli."""
    app.cli.add_command(system_group)
    app.cli.add_command(users_group)
    app.cli.add_command(perms_group)
    app.cli.add_command(maintenance_group)
