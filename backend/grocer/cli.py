# Overview: Flask CLI command groups for bootstrap, inspection, and maintenance.

# backend/grocer/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv and export JWT_SECRET_KEY.
# - Use: python -m flask --app wsgi <group> <command> [options]
#
# System bootstrap:
# - python -m flask --app wsgi system init-db
#   Create all tables (idempotent).
# - python -m flask --app wsgi system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Users (tenants):
# - python -m flask --app wsgi users create --email owner@shop.local --name "Corner Shop" --password "Password123!"
#   Create an account (prompts if options are omitted).
# - python -m flask --app wsgi users list
#   List all accounts.
# - python -m flask --app wsgi users token owner@shop.local
#   Print a bearer token for an account.
# - python -m flask --app wsgi users delete owner@shop.local --yes
#   Delete an account, its catalog and its sales. Its tokens stop working.
#
# Catalog:
# - python -m flask --app wsgi catalog seed-sample owner@shop.local
#   Replace that account's catalog with sample products.
# - python -m flask --app wsgi catalog low-stock owner@shop.local
#   Print products at or below their reorder level.
#
# Maintenance:
# - python -m flask --app wsgi maintenance cleanup-security-events --retention-days 90
#   Delete security events older than the retention window.

import click
from flask import current_app
from flask.cli import with_appcontext

from .extensions import db
from .models import User
from .services import auth_service, products_service, security_service
from .services.auth_service import PasswordValidationError
from .validation import ConflictError, ValidationError


def _user_by_email(email: str) -> User:
    user = db.session.query(User).filter(User.email == auth_service.normalize_email(email)).first()
    if user is None:
        raise click.ClickException(f"No user with email {email}")
    return user


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init-db')
@with_appcontext
def init_db():
    """Create all tables that do not exist yet."""
    db.create_all()
    click.echo("PASS Database schema ready")


@system_group.command('reset-db')
@click.option('--yes', is_flag=True, help='Skip confirmation')
@with_appcontext
def reset_db(yes):
    """
    DANGER: Drop all tables and recreate schema.

    This will DELETE ALL DATA!
    """
    if not yes:
        click.confirm("This will delete ALL data. Continue?", abort=True)
    db.drop_all()
    db.create_all()
    click.echo("PASS Database reset")


@click.group('users')
def users_group():
    """Account management commands."""


@users_group.command('create')
@click.option('--email', prompt=True, help='Email address')
@click.option('--name', prompt=True, help='Display name')
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True, help='Password')
@with_appcontext
def create_user_cli(email, name, password):
    """
    Create a new account.

    Password must meet strength requirements:
    - Minimum 8 characters
    - At least one uppercase letter
    - At least one lowercase letter
    - At least one digit
    - At least one special character
    """
    try:
        user = auth_service.create_user(email=email, name=name, password=password)
    except (PasswordValidationError, ValidationError, ConflictError) as e:
        raise click.ClickException(str(e))
    click.echo(f"PASS Created user {user.email} (ID: {user.id})")


@users_group.command('list')
@with_appcontext
def list_users():
    """List all accounts."""
    users = db.session.query(User).order_by(User.id.asc()).all()

    if not users:
        click.echo("No users found.")
        return

    click.echo("\n" + "="*80)
    click.echo(f"{'ID':<5} {'Email':<35} {'Name':<25} {'Products':<8}")
    click.echo("="*80)

    for user in users:
        click.echo(f"{user.id:<5} {user.email:<35} {user.name:<25} {len(user.products):<8}")

    click.echo("="*80 + "\n")


@users_group.command('token')
@click.argument('email')
@with_appcontext
def issue_token_cli(email):
    """Print a bearer token for an account."""
    user = _user_by_email(email)
    click.echo(current_app.extensions["identity_guard"].issue_token(user))


@users_group.command('delete')
@click.argument('email')
@click.option('--yes', is_flag=True, help='Skip confirmation')
@with_appcontext
def delete_user_cli(email, yes):
    """Delete an account with its catalog and sales."""
    user = _user_by_email(email)
    if not yes:
        click.confirm(f"Delete {user.email} and all of its data?", abort=True)
    auth_service.delete_user(user.id)
    click.echo(f"PASS Deleted user {email}")


@click.group('catalog')
def catalog_group():
    """Catalog inspection and seeding commands."""


@catalog_group.command('seed-sample')
@click.argument('email')
@with_appcontext
def seed_sample_cli(email):
    """Replace an account's catalog with sample products."""
    user = _user_by_email(email)
    products = products_service.load_sample_products(user.id)
    click.echo(f"PASS Loaded {len(products)} sample products for {user.email}")


@catalog_group.command('low-stock')
@click.argument('email')
@with_appcontext
def low_stock_cli(email):
    """Print an account's low-stock products."""
    user = _user_by_email(email)
    products = products_service.list_low_stock(user.id)

    if not products:
        click.echo("No low-stock products.")
        return

    for p in products:
        click.echo(f"{p.id:<5} {p.sku:<12} {p.name:<30} qty={p.quantity:<6} reorder_at={p.reorder_level}")


@click.group('maintenance')
def maintenance_group():
    """Maintenance commands."""


@maintenance_group.command('cleanup-security-events')
@click.option('--retention-days', type=int, default=90, show_default=True)
@with_appcontext
def cleanup_security_events_cli(retention_days):
    """
    Cleanup old security events.

    Default retention: 90 days.
    """
    try:
        deleted = security_service.cleanup_security_events(retention_days=retention_days)
    except ValueError as e:
        raise click.ClickException(str(e))
    click.echo(f"Deleted {deleted} security events older than {retention_days} days.")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(users_group)
    app.cli.add_command(catalog_group)
    app.cli.add_command(maintenance_group)
