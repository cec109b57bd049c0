# Overview: Flask CLI command groups for bootstrap, store and user management.

"""
Operator commands, run from backend/ with FLASK_APP=wsgi.py:

    flask system init                      tables + default store + super admin
    flask system reset-db --yes            wipe and recreate the schema (dev only)
    flask system cleanup-sessions          purge dead session tokens
    flask stores list | create --name ...
    flask users create --email ... --role admin --store-id 1
"""

import click
from flask.cli import with_appcontext

from .extensions import db
from .models import Store, User
from .services.auth_service import create_user, PasswordValidationError, UserError
from .services.session_service import cleanup_expired_sessions
from .services.store_scope import Role
from .services.store_service import create_store
from .validation import ConflictError, ValidationError

DEFAULT_PASSWORD = "Password123!"


@click.group('system')
def system_group():
    """Schema and bootstrap maintenance."""


@system_group.command('init')
@click.option('--store-name', default='Main Store', help='Name of the first store')
@click.option('--admin-email', default='superadmin@stockpos.local', help='Login for the super admin')
@with_appcontext
def init_system(store_name, admin_email):
    """
    Create the schema, a first store and a super admin account.

    Safe to re-run: existing rows are reused. The super admin starts with
    the password "Password123!", which should be rotated straight away.
    """
    db.create_all()

    store = db.session.query(Store).order_by(Store.id.asc()).first()
    if store is None:
        store = create_store(name=store_name)
        click.echo(f"store #{store.id} '{store.name}' created")
    else:
        click.echo(f"store #{store.id} '{store.name}' already present")

    admin_email = admin_email.strip().lower()
    if db.session.query(User).filter_by(email=admin_email).first() is None:
        create_user(
            email=admin_email,
            name="Super Admin",
            password=DEFAULT_PASSWORD,
            role=Role.SUPER_ADMIN.value,
        )
        click.echo(f"super admin {admin_email} created")
    else:
        click.echo(f"super admin {admin_email} already present")


@system_group.command('reset-db')
@click.option('--yes', is_flag=True, help='Do not ask for confirmation')
@with_appcontext
def reset_db(yes):
    """Drop every table and rebuild an empty schema."""
    if not yes:
        click.confirm("Every store, product and sale will be erased. Continue?", abort=True)

    db.drop_all()
    db.create_all()
    click.echo("schema rebuilt; run 'flask system init' next")


@system_group.command('cleanup-sessions')
@click.option('--retention-days', default=30, type=int, help='Keep dead sessions this many days')
@with_appcontext
def cleanup_sessions(retention_days):
    deleted = cleanup_expired_sessions(retention_days=retention_days)
    click.echo(f"{deleted} session(s) removed")


@click.group('stores')
def stores_group():
    """Tenant management."""


@stores_group.command('list')
@with_appcontext
def list_stores_cli():
    stores = db.session.query(Store).order_by(Store.id.asc()).all()
    if not stores:
        click.echo("no stores yet; run 'flask system init'")
        return
    for store in stores:
        click.echo(f"{store.id:>4}  {store.name}  subdomain={store.subdomain or '-'}")


@stores_group.command('create')
@click.option('--name', required=True, help='Display name of the store')
@click.option('--subdomain', help='Unique subdomain')
@click.option('--domain', help='Custom domain')
@with_appcontext
def create_store_cli(name, subdomain, domain):
    try:
        store = create_store(name=name, subdomain=subdomain, domain=domain)
    except (ValidationError, ConflictError) as e:
        raise click.ClickException(str(e))
    click.echo(f"store #{store.id} '{store.name}' created")


@click.group('users')
def users_group():
    """Account management."""


@users_group.command('create')
@click.option('--email', prompt=True, help='Login email')
@click.option('--name', prompt=True, help='Display name')
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True, help='Initial password')
@click.option('--role', type=click.Choice([r.value for r in Role]), prompt=True, help='Role')
@click.option('--store-id', type=int, help='Home store; omit only for super_admin')
@with_appcontext
def create_user_cli(email, name, password, role, store_id):
    """Create an account; prompts for anything not given on the command line."""
    if store_id is not None and db.session.get(Store, store_id) is None:
        raise click.ClickException(f"Store ID {store_id} not found")

    try:
        user = create_user(email=email, name=name, password=password, role=role, store_id=store_id)
    except PasswordValidationError as e:
        raise click.ClickException(f"weak password: {e}")
    except UserError as e:
        raise click.ClickException(str(e))

    click.echo(f"user {user.email} created with role '{user.role}'")


def register_commands(app):
    for group in (system_group, stores_group, users_group):
        app.cli.add_command(group)
