# Overview: Flask CLI command groups for bootstrap, inspection, and maintenance.

# backend/backoffice/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init
#   Idempotent bootstrap: creates tables, the goal row and the default admin account.
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Accounts:
# - python -m flask users list
#   List all accounts with role and active status.
# - python -m flask users create --username anna --name "Анна" --role advertising --password 1234
#   Create an account (prompts if options are omitted).
# - python -m flask users set-password --username admin
#   Reset an account's password.
#
# Maintenance:
# - python -m flask sessions cleanup --older-than-days 30
#   Delete expired and disabled sessions.

import click
from flask import current_app
from flask.cli import with_appcontext

from .extensions import db
from .models import Goal, User
from .models.auth import ROLE_ADMIN, ROLES, VISIBILITY_LEVELS
from .services import session_service
from .services.auth_service import create_manager, set_password
from .validation import ConflictError, ValidationError


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init')
@with_appcontext
def init_system():
    """
    Initialize the back office: tables, goal row, default admin.

    The admin credentials come from DEFAULT_ADMIN_USERNAME /
    DEFAULT_ADMIN_PASSWORD.

    SECURITY: Change the admin password immediately in production!
    """
    click.echo("START Initializing back office...")

    db.create_all()
    click.echo("PASS Tables ready")

    if db.session.get(Goal, 1) is None:
        db.session.add(Goal(id=1, all=0, month=0, day=0))
        db.session.commit()
        click.echo("PASS Created goal row")

    username = current_app.config["DEFAULT_ADMIN_USERNAME"]
    if db.session.query(User).filter_by(username=username).first():
        click.echo(f"PASS Using existing admin: {username}")
    else:
        create_manager(
            name="Администратор",
            username=username,
            password=current_app.config["DEFAULT_ADMIN_PASSWORD"],
            role=ROLE_ADMIN,
            visibility="PARTIAL",
        )
        click.echo(f"PASS Created admin: {username}")

    click.echo("DONE Back office initialized.")


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


@click.group('users')
def users_group():
    """Account management commands."""


@users_group.command('create')
@click.option('--username', prompt=True, help='Username')
@click.option('--name', default=None, help='Full name shown in the audit log')
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True, help='Password')
@click.option('--role', type=click.Choice(list(ROLES)), prompt=True, help='Role')
@click.option('--visibility', type=click.Choice(list(VISIBILITY_LEVELS)), default=None,
              help='Dashboard visibility (required unless role is advertising)')
@with_appcontext
def create_user_cli(username, name, password, role, visibility):
    """Create an account."""
    try:
        user = create_manager(
            name=name,
            username=username,
            password=password,
            role=role,
            visibility=visibility,
        )
    except (ConflictError, ValidationError) as e:
        raise click.ClickException(str(e))

    click.echo(f"PASS Created {user.role} account: {user.username} (ID: {user.id})")


@users_group.command('list')
@with_appcontext
def list_users():
    """List all accounts."""
    users = db.session.query(User).order_by(User.id).all()

    if not users:
        click.echo("No users found.")
        return

    click.echo("\n" + "="*90)
    click.echo(f"{'ID':<5} {'Username':<20} {'Name':<25} {'Role':<12} {'Visibility':<12} {'Active'}")
    click.echo("="*90)

    for user in users:
        active_str = "Yes" if user.is_active else "No"
        click.echo(
            f"{user.id:<5} {user.username:<20} {(user.full_name or '-'):<25} "
            f"{user.role:<12} {(user.visibility or '-'):<12} {active_str}"
        )

    click.echo("="*90 + "\n")


@users_group.command('set-password')
@click.option('--username', prompt=True, help='Username')
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True, help='New password')
@with_appcontext
def set_password_cli(username, password):
    """Reset an account's password."""
    user = db.session.query(User).filter_by(username=username).first()
    if not user:
        raise click.ClickException(f"User not found: {username}")

    try:
        set_password(user.id, password)
    except ValidationError as e:
        raise click.ClickException(str(e))

    click.echo(f"PASS Password updated for {username}")


@click.group('sessions')
def sessions_group():
    """Session maintenance commands."""


@sessions_group.command('cleanup')
@click.option('--older-than-days', type=int, default=30, show_default=True)
@with_appcontext
def cleanup_sessions_cli(older_than_days):
    """Delete expired and disabled sessions."""
    deleted = session_service.cleanup_expired_sessions(older_than_days=older_than_days)
    click.echo(f"Deleted {deleted} sessions older than {older_than_days} days.")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(users_group)
    app.cli.add_command(sessions_group)
