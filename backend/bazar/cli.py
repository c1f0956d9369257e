# Overview: Flask CLI command groups for bootstrap, inspection, and maintenance.

# backend/bazar/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Apply the schema first: python -m flask db upgrade
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init
#   Idempotent bootstrap: creates the default admin account if no user exists.
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
# - python -m flask system seed-demo
#   Load demo suppliers, clients, products and one invoice.
#
# User inspection/bootstrap:
# - python -m flask users list
#   List all users with role and status.
# - python -m flask users create --username ana --email ana@bazar.local --first-name Ana --last-name Ruiz --role manager
#   Create a user (prompts if options are omitted).
#
# Invoices and inventory:
# - python -m flask invoices mark-overdue
#   Move unpaid draft/sent invoices past their due date to overdue.
# - python -m flask inventory low-stock
#   List active products at or below their reorder point.

import click
from flask.cli import with_appcontext

from .errors import BazarError
from .extensions import db
from .models import User
from .services import auth_service, client_service, invoice_service, product_service, supplier_service
from .services.inventory_service import get_low_stock_products
from .services.auth_service import PasswordValidationError


DEFAULT_PASSWORD = "Password123!"


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init')
@with_appcontext
def init_system():
    """
    Initialize Bazar: create the default admin when the user table is empty.

    Default credentials: admin / Password123! (CHANGE IN PRODUCTION!)
    """
    click.echo("START Initializing Bazar...")

    if db.session.query(User.id).first() is not None:
        click.echo("PASS Users already exist, nothing to do")
        return

    auth_service.create_user(
        {
            "username": "admin",
            "email": "admin@bazar.local",
            "first_name": "System",
            "last_name": "Administrator",
            "role": "admin",
        },
        password=DEFAULT_PASSWORD,
    )
    click.echo("PASS Created user: admin (admin@bazar.local) with role 'admin'")
    click.echo("\nDefault Credentials (CHANGE IN PRODUCTION!):")
    click.echo(f"   admin -> admin@bazar.local / {DEFAULT_PASSWORD}")


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


DEMO_SUPPLIERS = [
    {
        "tax_id": "900123456", "company": "Distribuidora Andina S.A.S.", "contact_name": "Carlos Pérez",
        "phone": "+57 1 555 0101", "email": "ventas@andina.example", "bank_name": "Bancolombia",
        "bank_account": "001-234567-89",
        "address": {"street": "Calle 13 # 45-10", "city": "Bogotá", "state": "Cundinamarca"},
    },
    {
        "tax_id": "900654321", "company": "Importadora del Pacífico", "contact_name": "Lucía Gómez",
        "phone": "+57 2 555 0202", "email": "pedidos@pacifico.example", "bank_name": "Davivienda",
        "bank_account": "002-765432-10",
        "address": {"street": "Carrera 1 # 10-20", "city": "Cali", "state": "Valle del Cauca"},
    },
]

DEMO_CLIENTS = [
    {
        "tax_id": "1012345678", "client_type": "final_consumer", "first_name": "María", "last_name": "López",
        "phone": "+57 300 555 0303", "email": "maria@example.com",
        "address": {"street": "Calle 80 # 20-30", "city": "Bogotá", "state": "Cundinamarca"},
    },
    {
        "tax_id": "800111222", "client_type": "registered", "first_name": "Jorge", "last_name": "Ramírez",
        "phone": "+57 4 555 0404", "email": "compras@tienda.example", "company_name": "Tienda La Esquina",
        "business_type": "retail", "preferred_payment_method": "transfer",
        "address": {"street": "Avenida 33 # 70-15", "city": "Medellín", "state": "Antioquia"},
    },
]

DEMO_PRODUCTS = [
    {"name": "Arroz Diana 500g", "category": "Alimentos", "brand": "Diana",
     "cost_price_cents": 180000, "selling_price_cents": 250000, "current_stock": 120, "reorder_point": 30},
    {"name": "Aceite Girasol 1L", "category": "Alimentos", "brand": "Premier",
     "cost_price_cents": 650000, "selling_price_cents": 890000, "current_stock": 45, "reorder_point": 20},
    {"name": "Jabón Rey 300g", "category": "Aseo", "brand": "Rey",
     "cost_price_cents": 210000, "selling_price_cents": 320000, "current_stock": 12, "reorder_point": 20},
]


@system_group.command('seed-demo')
@with_appcontext
def seed_demo():
    """Load demo suppliers, clients and products plus one draft invoice."""
    admin = db.session.query(User).filter_by(role="admin").order_by(User.id.asc()).first()
    if admin is None:
        click.echo("FAIL No admin user found. Run 'python -m flask system init' first.")
        return

    try:
        suppliers = [supplier_service.create_supplier(data) for data in DEMO_SUPPLIERS]
        click.echo(f"PASS Created {len(suppliers)} suppliers")

        clients = [client_service.create_client(data) for data in DEMO_CLIENTS]
        click.echo(f"PASS Created {len(clients)} clients")

        products = [product_service.create_product(data, actor_user_id=admin.id) for data in DEMO_PRODUCTS]
        for product in products:
            product_service.link_supplier(
                product.id,
                supplier_id=suppliers[0].id,
                supplier_price_cents=product.cost_price_cents,
                is_preferred=True,
            )
        click.echo(f"PASS Created {len(products)} products")

        invoice = invoice_service.create_invoice(
            client_id=clients[1].id,
            items=[
                {"product_id": products[0].id, "quantity": 10},
                {"product_id": products[1].id, "quantity": 5},
            ],
            actor_user_id=admin.id,
        )
        click.echo(f"PASS Created invoice {invoice.invoice_number} ({invoice.final_amount_cents} cents)")
    except BazarError as e:
        click.echo(f"FAIL Seeding failed: {e.message}")


# =============================================================================
# USER MANAGEMENT COMMANDS
# =============================================================================

@click.group('users')
def users_group():
    """User inspection and bootstrap commands."""


@users_group.command('create')
@click.option('--username', prompt=True, help='Username')
@click.option('--email', prompt=True, help='Email address')
@click.option('--first-name', prompt=True, help='First name')
@click.option('--last-name', prompt=True, help='Last name')
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True, help='Password')
@click.option('--role', type=click.Choice(['admin', 'manager', 'employee', 'viewer']), prompt=True, help='Role')
@with_appcontext
def create_user_cli(username, email, first_name, last_name, password, role):
    """
    Create a new user interactively.

    Password must meet strength requirements:
    - Minimum 8 characters
    - At least one uppercase letter
    - At least one lowercase letter
    - At least one digit
    - At least one special character
    """
    try:
        user = auth_service.create_user(
            {
                "username": username,
                "email": email,
                "first_name": first_name,
                "last_name": last_name,
                "role": role,
            },
            password=password,
        )
        click.echo(f"PASS Created user: {user.username} ({user.email}) with role '{user.role}'")
    except PasswordValidationError as e:
        click.echo(f"FAIL Password validation failed: {e.message}")
        click.echo("Requirements: 8+ chars, uppercase, lowercase, digit, special char")
    except BazarError as e:
        click.echo(f"FAIL Failed to create user: {e.message}")


@users_group.command('list')
@with_appcontext
def list_users():
    """List all users with their roles."""
    users = db.session.query(User).order_by(User.id.asc()).all()

    if not users:
        click.echo("No users found.")
        return

    click.echo("\n" + "="*90)
    click.echo(f"{'ID':<5} {'Username':<20} {'Email':<30} {'Role':<10} {'Status':<10} {'Locked'}")
    click.echo("="*90)

    for user in users:
        locked_str = "Yes" if user.is_locked else "No"
        click.echo(f"{user.id:<5} {user.username:<20} {user.email:<30} {user.role:<10} {user.status:<10} {locked_str}")

    click.echo("="*90 + "\n")


# =============================================================================
# INVOICE / INVENTORY COMMANDS
# =============================================================================

@click.group('invoices')
def invoices_group():
    """Invoice maintenance commands."""


@invoices_group.command('mark-overdue')
@with_appcontext
def mark_overdue_cli():
    """Move unpaid draft/sent invoices past their due date to overdue."""
    invoices = invoice_service.mark_overdue_invoices()
    for invoice in invoices:
        click.echo(f"OVERDUE {invoice.invoice_number} due {invoice.due_date:%Y-%m-%d} ({invoice.client_name})")
    click.echo(f"PASS {len(invoices)} invoice(s) marked overdue")


@click.group('inventory')
def inventory_group():
    """Inventory inspection commands."""


@inventory_group.command('low-stock')
@with_appcontext
def low_stock_cli():
    """List active products at or below their reorder point."""
    products = get_low_stock_products()
    if not products:
        click.echo("No products need reordering.")
        return

    click.echo(f"{'SKU':<12} {'Name':<30} {'Stock':>6} {'Reorder':>8}")
    for product in products:
        click.echo(f"{product.sku:<12} {product.name[:30]:<30} {product.current_stock:>6} {product.reorder_point:>8}")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(users_group)
    app.cli.add_command(invoices_group)
    app.cli.add_command(inventory_group)
