# Overview: Flask CLI command groups for bootstrap, inspection, and maintenance.

# backend/umipos/cli.py
# Commands Legend (run from the backend directory, FLASK_APP=wsgi.py):
#
# System bootstrap/repair:
# - flask system init [--tenant "Pharmacy Name"] [--tenant-code MAIN]
#   Idempotent bootstrap: tenant, default roles, permissions, default users.
# - flask system init-permissions
#   Create missing permissions and link defaults to every tenant's roles.
# - flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Tenant management:
# - flask tenants list
# - flask tenants create --name "Westlands Pharmacy" --code WESTLANDS
#
# Permission inspection/repair:
# - flask perms list [--category INVENTORY]
# - flask perms grant --tenant-id 1 Cashier LOW_STOCK_ALERT
# - flask perms revoke --tenant-id 1 Cashier LOW_STOCK_ALERT
# - flask perms check admin ADJUST_STOCK
#
# Maintenance:
# - flask sessions cleanup
#   Delete expired and revoked sessions now (the worker does this every 15 minutes).

import click
from flask.cli import with_appcontext

from .extensions import db
from .models import Tenant, User
from .permissions import PERMISSION_DEFINITIONS, get_permissions_by_category, validate_permission_code
from .services import auth_service, permission_service, session_service
from .services.auth_service import PasswordValidationError


DEFAULT_PASSWORD = "Password123!"

DEFAULT_USERS = [
    ("admin", "admin@umipos.local", "TenantAdmin"),
    ("pharmacist", "pharmacist@umipos.local", "Pharmacist"),
    ("cashier", "cashier@umipos.local", "Cashier"),
    ("operations", "operations@umipos.local", "Operations"),
]


def bootstrap_tenant(tenant: Tenant) -> int:
    """Roles and role permissions for one tenant. Returns new role-permission links."""
    auth_service.create_default_roles(tenant.id)
    return permission_service.assign_default_role_permissions(tenant.id)


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init')
@click.option('--tenant', 'tenant_name', default='Main Pharmacy', help='Tenant name')
@click.option('--tenant-code', default='MAIN', help='Tenant code')
@with_appcontext
def init_system(tenant_name, tenant_code):
    """
    Initialize the system: tenant, roles, permissions and one user per role.

    All passwords default to "Password123!". Change them in production.
    """
    click.echo("START Initializing UmiPOS...")

    tenant = db.session.query(Tenant).filter_by(code=tenant_code).first()
    if not tenant:
        tenant = Tenant(name=tenant_name, code=tenant_code, is_active=True)
        db.session.add(tenant)
        db.session.commit()
        click.echo(f"PASS Created tenant: {tenant.name} (ID: {tenant.id}, Code: {tenant.code})")
    else:
        click.echo(f"PASS Using existing tenant: {tenant.name} (ID: {tenant.id})")

    perm_count = permission_service.initialize_permissions()
    assignment_count = bootstrap_tenant(tenant)
    click.echo(f"PASS Created {perm_count} permissions, {assignment_count} role assignments")

    for username, email, role_name in DEFAULT_USERS:
        existing = db.session.query(User).filter_by(tenant_id=tenant.id, username=username).first()
        if existing:
            click.echo(f"WARN  User '{username}' already exists, skipping...")
            continue
        try:
            user = auth_service.create_user(
                username=username,
                email=email,
                password=DEFAULT_PASSWORD,
                tenant_id=tenant.id,
            )
            auth_service.assign_role(user.id, role_name)
        except (PasswordValidationError, ValueError) as e:
            db.session.rollback()
            click.echo(f"FAIL Failed to create user '{username}': {e}")
            continue
        click.echo(f"PASS Created user: {username} ({email}) with role '{role_name}'")

    click.echo("DONE UmiPOS initialized. Default password: Password123! (CHANGE IN PRODUCTION)")


@system_group.command('init-permissions')
@with_appcontext
def init_permissions():
    """Create missing permissions and default role links for every tenant."""
    perm_count = permission_service.initialize_permissions()
    links = 0
    for tenant in db.session.query(Tenant).order_by(Tenant.id).all():
        links += bootstrap_tenant(tenant)
    click.echo(f"PASS Created {perm_count} permissions, {links} role assignments")


@system_group.command('reset-db')
@click.option('--yes', is_flag=True, help='Confirm dropping all data')
@with_appcontext
def reset_db(yes):
    """DEV/TEST only: drop and recreate all tables."""
    if not yes:
        click.echo("FAIL Refusing to reset without --yes")
        return
    db.drop_all()
    db.create_all()
    click.echo("PASS Database reset")


@click.group('tenants')
def tenants_group():
    """Tenant management commands."""


@tenants_group.command('list')
@with_appcontext
def list_tenants():
    tenants = db.session.query(Tenant).order_by(Tenant.id).all()
    if not tenants:
        click.echo("No tenants found.")
        return

    click.echo(f"{'ID':<5} {'Name':<30} {'Code':<15} {'Active':<8} {'Users'}")
    for tenant in tenants:
        user_count = db.session.query(User).filter_by(tenant_id=tenant.id).count()
        active_str = "Yes" if tenant.is_active else "No"
        click.echo(f"{tenant.id:<5} {tenant.name:<30} {tenant.code or '-':<15} {active_str:<8} {user_count}")


@tenants_group.command('create')
@click.option('--name', required=True, help='Tenant name')
@click.option('--code', required=True, help='Short code (unique)')
@with_appcontext
def create_tenant(name, code):
    """Create a tenant with its default roles."""
    if db.session.query(Tenant).filter_by(code=code).first():
        click.echo(f"FAIL Tenant with code '{code}' already exists")
        return

    tenant = Tenant(name=name, code=code, is_active=True)
    db.session.add(tenant)
    db.session.commit()

    permission_service.initialize_permissions()
    bootstrap_tenant(tenant)
    click.echo(f"PASS Created tenant: {tenant.name} (ID: {tenant.id})")


@click.group('perms')
def perms_group():
    """Permission inspection and repair."""


@perms_group.command('list')
@click.option('--category', default=None, help='Only this category (e.g. INVENTORY)')
def list_permissions(category):
    """List the permission catalogue."""
    definitions = get_permissions_by_category(category.upper()) if category else PERMISSION_DEFINITIONS
    for code, name, _description, cat in definitions:
        click.echo(f"{code:<22} {cat:<10} {name}")


@perms_group.command('grant')
@click.option('--tenant-id', type=int, required=True)
@click.argument('role_name')
@click.argument('permission_code')
@with_appcontext
def grant_permission(tenant_id, role_name, permission_code):
    try:
        permission_service.grant_permission_to_role(tenant_id, role_name, permission_code)
    except ValueError as e:
        click.echo(f"FAIL {e}")
        return
    click.echo(f"PASS Granted {permission_code} to {role_name}")


@perms_group.command('revoke')
@click.option('--tenant-id', type=int, required=True)
@click.argument('role_name')
@click.argument('permission_code')
@with_appcontext
def revoke_permission(tenant_id, role_name, permission_code):
    try:
        revoked = permission_service.revoke_permission_from_role(tenant_id, role_name, permission_code)
    except ValueError as e:
        click.echo(f"FAIL {e}")
        return
    if revoked:
        click.echo(f"PASS Revoked {permission_code} from {role_name}")
    else:
        click.echo(f"WARN  {role_name} did not have {permission_code}")


@perms_group.command('check')
@click.option('--tenant-id', type=int, default=None)
@click.argument('username')
@click.argument('permission_code')
@with_appcontext
def check_permission(tenant_id, username, permission_code):
    """Check whether a user has a permission."""
    if not validate_permission_code(permission_code):
        click.echo(f"FAIL Unknown permission '{permission_code}'")
        return

    query = db.session.query(User).filter_by(username=username)
    if tenant_id is not None:
        query = query.filter_by(tenant_id=tenant_id)
    user = query.first()
    if not user:
        click.echo(f"FAIL User '{username}' not found")
        return

    if permission_service.user_has_permission(user.id, permission_code):
        click.echo(f"PASS {username} has {permission_code}")
    else:
        click.echo(f"FAIL {username} does not have {permission_code}")


@click.group('sessions')
def sessions_group():
    """Session maintenance commands."""


@sessions_group.command('cleanup')
@with_appcontext
def cleanup_sessions():
    """Delete expired and revoked sessions."""
    deleted = session_service.cleanup_expired_sessions()
    click.echo(f"PASS Deleted {deleted} sessions")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(tenants_group)
    app.cli.add_command(perms_group)
    app.cli.add_command(sessions_group)
