# Overview: Flask CLI command groups for bootstrap, inspection, and maintenance.

# backend/folio/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to "folio:create_app".
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap:
# - python -m flask system init-db
#   Create all tables (idempotent). Use "flask db upgrade" when running migrations.
#
# User inspection/bootstrap:
# - python -m flask users create-admin --email admin@example.com --password "Password123" [--full-name "Admin"]
#   Provision the first admin (identity account + profile).
# - python -m flask users list [--include-inactive]
#   List users with role flags.
# - python -m flask users hard-delete USER_ID --yes
#   Irreversible cascade delete, same as POST /api/admin/users/delete.
#
# Maintenance:
# - python -m flask audit cleanup --retention-days 365
#   Delete audit records older than the retention window.

import click
from flask import current_app
from flask.cli import with_appcontext

from .extensions import db
from .permissions import AuditAction
from .services import audit_service, user_service
from .services.identity_service import IdentityProviderError, PasswordValidationError
from .validation import ConflictError


@click.group('system')
def system_group():
    """System bootstrap commands."""


@system_group.command('init-db')
@with_appcontext
def init_db():
    """Create all tables that do not exist yet."""
    db.create_all()
    click.echo("PASS Database tables created")


@click.group('users')
def users_group():
    """User inspection and bootstrap commands."""


@users_group.command('create-admin')
@click.option('--email', prompt=True, help='Email address')
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True, help='Password')
@click.option('--full-name', default=None, help='Display name')
@with_appcontext
def create_admin_cli(email, password, full_name):
    """
    Provision an admin account.

    Password must meet strength requirements:
    - Minimum 8 characters
    - At least one uppercase letter, one lowercase letter and one digit
    """
    try:
        user = user_service.create_user(email.strip().lower(), password, is_admin=True, full_name=full_name)
    except PasswordValidationError as e:
        click.echo(f"FAIL Password validation failed: {str(e)}")
        return
    except ConflictError as e:
        click.echo(f"FAIL {str(e)}")
        return

    audit_service.record_action("users", AuditAction.USER_CREATED, actor_id=None, target_user_id=user.id,
                                details="is_admin=True source=cli")
    click.echo(f"PASS Created admin: {user.email} (ID: {user.id})")
    click.echo("SECURITY Password change required at first login")


@users_group.command('list')
@click.option('--include-inactive', is_flag=True, help='Show inactive users too')
@with_appcontext
def list_users(include_inactive):
    """List users with their role flags."""
    users = user_service.list_users(include_inactive=include_inactive)

    if not users:
        click.echo("No users found.")
        return

    click.echo("\n" + "="*100)
    click.echo(f"{'ID':<38} {'Email':<36} {'Admin':<7} {'Active':<7}")
    click.echo("="*100)

    for user in users:
        admin_str = "Yes" if user.is_admin else "No"
        active_str = "Yes" if user.is_active else "No"
        click.echo(f"{user.id:<38} {user.email:<36} {admin_str:<7} {active_str:<7}")

    click.echo("="*100 + "\n")


@users_group.command('hard-delete')
@click.argument('user_id')
@click.option('--yes', is_flag=True, help='Confirm the irreversible delete')
@with_appcontext
def hard_delete_cli(user_id, yes):
    """Delete a user and all their data, grants, audit entries and identity account."""
    if not yes:
        click.echo("FAIL Refusing to delete without --yes")
        return

    try:
        result = user_service.hard_delete(user_id)
    except IdentityProviderError as e:
        click.echo(f"FAIL Identity provider failed, nothing deleted: {str(e)}")
        raise SystemExit(1)

    if not result.existed:
        click.echo(f"WARN  User {user_id} did not exist; identity account removal confirmed")
        return

    audit_service.record_action("users", AuditAction.USER_HARD_DELETED, actor_id=None,
                                details=f"user_id={user_id} source=cli")
    summary = ", ".join(f"{k}={v}" for k, v in sorted(result.removed.items()))
    click.echo(f"PASS Deleted user {user_id} ({summary})")


@click.group('audit')
def audit_group():
    """Audit feed maintenance commands."""


@audit_group.command('cleanup')
@click.option('--retention-days', type=int, default=None, help='Defaults to AUDIT_RETENTION_DAYS')
@with_appcontext
def cleanup_audit_cli(retention_days):
    """Delete audit records older than the retention window."""
    if retention_days is None:
        retention_days = current_app.config.get("AUDIT_RETENTION_DAYS", 365)
    try:
        deleted = audit_service.cleanup(retention_days)
    except ValueError as e:
        click.echo(f"FAIL {str(e)}")
        return
    click.echo(f"PASS Deleted {deleted} audit records older than {retention_days} days")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(users_group)
    app.cli.add_command(audit_group)
