# Overview: Flask CLI command groups for bootstrap, inspection, and maintenance.

# backend/app/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init-db
#   Create any missing tables (idempotent). Use `flask db upgrade` for migrations.
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# User inspection/bootstrap:
# - python -m flask users create-admin --name "Store Admin" --email admin@resinart.com --password "secret123"
#   Create an ADMIN account (prompts if options are omitted).
# - python -m flask users list [--role ADMIN]
#   List users with role and status.
#
# Catalog:
# - python -m flask catalog seed
#   Insert sample resin products (skips names that already exist).
#
# Reports:
# - python -m flask reports budget-check [--month 3 --year 2026]
#   Re-evaluate budget alerts for a period (default current month).

import click
from flask.cli import with_appcontext

from .errors import ApiError
from .extensions import db
from .models import Product, User
from .services.auth_service import create_user
from .services import products_service, report_service
from .time_utils import utcnow


SAMPLE_PRODUCTS = [
    {
        "name": "Ocean Wave Resin Coaster Set",
        "description": "Set of four coasters with layered blue resin waves and white lacing.",
        "price": "2499",
        "discountPrice": "1999",
        "category": "COASTERS",
        "stock": 25,
        "isFeatured": True,
        "tags": ["ocean", "gift", "set"],
    },
    {
        "name": "Pressed Flower Pendant",
        "description": "Real pressed flowers sealed in a clear resin teardrop pendant.",
        "price": "1499",
        "category": "JEWELRY",
        "stock": 40,
        "isCustomizable": True,
        "tags": ["floral", "necklace"],
    },
    {
        "name": "Geode Wall Clock",
        "description": "Amethyst-toned geode clock with gold leaf edges and silent movement.",
        "price": "6999",
        "category": "CLOCKS",
        "stock": 6,
        "isFeatured": True,
        "tags": ["geode", "clock"],
    },
    {
        "name": "Galaxy Serving Tray",
        "description": "Deep purple and black serving tray with shimmer and brass handles.",
        "price": "4599",
        "category": "TRAYS",
        "stock": 12,
        "tags": ["galaxy", "kitchen"],
    },
    {
        "name": "Custom Name Keychain",
        "description": "Personalised keychain with your name and a colour of your choice.",
        "price": "599",
        "category": "KEYCHAINS",
        "stock": 100,
        "isCustomizable": True,
        "tags": ["custom", "gift"],
    },
]


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init-db')
@with_appcontext
def init_db():
    """Create all tables that do not exist yet."""
    db.create_all()
    click.echo("PASS Database tables created.")


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

    click.echo("PASS Database reset complete. Run 'python -m flask users create-admin' to add an admin.")


@click.group('users')
def users_group():
    """User inspection and bootstrap commands."""


@users_group.command('create-admin')
@click.option('--name', prompt=True, help='Display name')
@click.option('--email', prompt=True, help='Email address')
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True, help='Password')
@with_appcontext
def create_admin_cli(name, email, password):
    """Create an ADMIN account. Password must be at least 6 characters."""
    try:
        user = create_user(name=name, email=email, password=password, role="ADMIN")
        db.session.commit()
    except ApiError as e:
        db.session.rollback()
        click.echo(f"FAIL {e.message}")
        return

    click.echo(f"PASS Created admin: {user.name} ({user.email})")
    click.echo(f"     User ID: {user.id}")
    click.echo("SECURITY Password securely hashed with bcrypt")


@users_group.command('list')
@click.option('--role', type=click.Choice(['USER', 'ADMIN']), help='Filter by role')
@with_appcontext
def list_users(role):
    """List all users with their role and status."""
    query = db.session.query(User)

    if role:
        query = query.filter_by(role=role)

    users = query.order_by(User.id).all()

    if not users:
        click.echo("No users found.")
        return

    click.echo("\n" + "="*90)
    click.echo(f"{'ID':<5} {'Name':<25} {'Email':<35} {'Role':<8} {'Status'}")
    click.echo("="*90)

    for user in users:
        click.echo(f"{user.id:<5} {user.name[:24]:<25} {user.email[:34]:<35} {user.role:<8} {user.status}")

    click.echo("="*90 + "\n")


@click.group('catalog')
def catalog_group():
    """Product catalog commands."""


@catalog_group.command('seed')
@with_appcontext
def seed_catalog():
    """Insert the sample products that are not already present."""
    admin = db.session.query(User).filter_by(role="ADMIN").order_by(User.id).first()
    if admin is None:
        click.echo("FAIL No admin account found. Run 'python -m flask users create-admin' first.")
        return

    created = 0
    for sample in SAMPLE_PRODUCTS:
        if db.session.query(Product).filter_by(name=sample["name"]).first():
            click.echo(f"SKIP {sample['name']} (exists)")
            continue
        products_service.create_product(dict(sample), user_id=admin.id)
        created += 1
        click.echo(f"PASS {sample['name']}")
    click.echo(f"Seeded {created} product(s).")


@click.group('reports')
def reports_group():
    """Finance report maintenance commands."""


@reports_group.command('budget-check')
@click.option('--month', type=click.IntRange(1, 12), help='Month (default current)')
@click.option('--year', type=int, help='Year (default current)')
@with_appcontext
def budget_check(month, year):
    """Re-evaluate budget alerts for one period."""
    now = utcnow()
    month = month or now.month
    year = year or now.year
    fired = report_service.recheck_budgets(month, year)
    if not fired:
        click.echo(f"No new budget alerts for {month}/{year}.")
        return
    for category, threshold in fired:
        click.echo(f"ALERT {category} reached {threshold}% of its {month}/{year} budget")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(users_group)
    app.cli.add_command(catalog_group)
    app.cli.add_command(reports_group)
