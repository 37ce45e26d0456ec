# Overview: Flask CLI command groups for bootstrap, inspection, and maintenance.

# backend/fieldvisits/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to "fieldvisits:create_app" (PowerShell: $env:FLASK_APP="fieldvisits:create_app").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init
#   Idempotent bootstrap: creates tables plus the default admin and agent accounts (see Config.DEFAULT_*).
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Users:
# - python -m flask users list
# - python -m flask users create --name "Ana" --email ana@example.com --password "Password123!" --role USER
#
# Routes (stores assigned to a field agent):
# - python -m flask routes assign --email agent@fieldvisits.local --store "Main Street Market"
# - python -m flask routes show --email agent@fieldvisits.local
#
# Maintenance:
# - python -m flask maintenance cleanup-sessions
#   Delete revoked and expired session tokens.

import click
from flask import current_app
from flask.cli import with_appcontext

from .extensions import db
from .models import Role, User
from .services import auth_service, route_service, session_service
from .services.auth_service import PasswordValidationError
from .services.route_service import RouteConflictError, RouteNotFoundError
from .services import repository
from .validation import ConflictError, ValidationError


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init')
@with_appcontext
def init_system():
    """
    Create tables and the default accounts.

    SECURITY: Change the default passwords immediately in production!
    """
    click.echo("START Initializing field visits backend...")
    db.create_all()
    click.echo("PASS Tables ready")

    cfg = current_app.config
    defaults = [
        (cfg["DEFAULT_ADMIN_NAME"], cfg["DEFAULT_ADMIN_EMAIL"], cfg["DEFAULT_ADMIN_PASSWORD"], Role.ADMIN.value),
        (cfg["DEFAULT_USER_NAME"], cfg["DEFAULT_USER_EMAIL"], cfg["DEFAULT_USER_PASSWORD"], Role.USER.value),
    ]
    for name, email, password, role in defaults:
        try:
            user, created = auth_service.ensure_user(name=name, email=email, password=password, role=role)
        except (PasswordValidationError, ValidationError, ConflictError) as e:
            click.echo(f"FAIL Could not create '{email}': {e}")
            continue
        if created:
            click.echo(f"PASS Created user: {user.email} with role '{user.role}'")
        else:
            click.echo(f"WARN  User '{user.email}' already exists, skipping...")

    click.echo("DONE Initialized")


@system_group.command('reset-db')
@click.option('--yes', is_flag=True, help='Confirm destructive reset')
@with_appcontext
def reset_db(yes):
    """DEV/TEST only: drop and recreate all tables."""
    if not yes:
        click.echo("FAIL Refusing to reset without --yes")
        raise SystemExit(1)
    db.drop_all()
    db.create_all()
    click.echo("PASS Database reset")


@click.group('users')
def users_group():
    """User inspection and bootstrap."""


@users_group.command('list')
@with_appcontext
def list_users():
    users = db.session.query(User).order_by(User.name.asc()).all()
    if not users:
        click.echo("No users found")
        return
    for user in users:
        stores = ", ".join(store.name for store in user.stores) or "-"
        click.echo(f"{user.uuid}  {user.role:<5}  {user.email:<32}  {user.name}  route: {stores}")


@users_group.command('create')
@click.option('--name', prompt=True)
@click.option('--email', prompt=True)
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True)
@click.option('--role', type=click.Choice([r.value for r in Role]), default=Role.USER.value, show_default=True)
@with_appcontext
def create_user_cli(name, email, password, role):
    try:
        user = auth_service.create_user(name=name, email=email, password=password, role=role)
    except (PasswordValidationError, ValidationError, ConflictError) as e:
        click.echo(f"FAIL {e}")
        raise SystemExit(1)
    click.echo(f"PASS Created user {user.email} ({user.uuid})")


@click.group('routes')
def routes_group():
    """Field agent route management."""


@routes_group.command('assign')
@click.option('--email', required=True, help='Agent email')
@click.option('--store', 'store_name', required=True, help='Store name (case-insensitive)')
@with_appcontext
def assign_route_cli(email, store_name):
    user = repository.find_user_by_email(email)
    store = repository.find_store_by_name(store_name)
    if not user or not store:
        click.echo("FAIL User or store not found")
        raise SystemExit(1)
    try:
        route_service.assign_store_to_user(user_uuid=user.uuid, store_uuid=store.uuid)
    except (RouteNotFoundError, RouteConflictError) as e:
        click.echo(f"FAIL {e}")
        raise SystemExit(1)
    click.echo(f"PASS {store.name} added to {user.email}'s route")


@routes_group.command('show')
@click.option('--email', required=True, help='Agent email')
@with_appcontext
def show_route_cli(email):
    user = repository.find_user_by_email(email)
    if not user:
        click.echo("FAIL User not found")
        raise SystemExit(1)
    stores = route_service.list_route_stores(user.uuid)
    if not stores:
        click.echo(f"{user.email} has no assigned stores")
        return
    for store in stores:
        click.echo(f"{store.uuid}  {store.name}  ({store.address})")


@click.group('maintenance')
def maintenance_group():
    """Housekeeping commands."""


@maintenance_group.command('cleanup-sessions')
@with_appcontext
def cleanup_sessions_cli():
    deleted = session_service.cleanup_expired_sessions()
    click.echo(f"PASS Deleted {deleted} expired or revoked session(s)")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(users_group)
    app.cli.add_command(routes_group)
    app.cli.add_command(maintenance_group)
