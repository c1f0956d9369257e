from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z


CURRENCIES = ("COP", "USD", "EUR")
PAYMENT_METHODS = ("cash", "card", "transfer", "credit", "check")


class AddressMixin:
    """Postal address columns shared by suppliers and clients."""
    address_street = db.Column(db.String(255), nullable=False)
    address_city = db.Column(db.String(100), nullable=False)
    address_state = db.Column(db.String(100), nullable=False)
    address_country = db.Column(db.String(100), nullable=False, default="Colombia")
    address_zip_code = db.Column(db.String(20), nullable=True)

    def address_dict(self) -> dict:
        return {
            "street": self.address_street,
            "city": self.address_city,
            "state": self.address_state,
            "country": self.address_country,
            "zip_code": self.address_zip_code,
        }

    def address_line(self) -> str:
        parts = [self.address_street, self.address_city, self.address_state, self.address_country]
        return ", ".join(p for p in parts if p)


class Supplier(AddressMixin, db.Model):
    """
    Supplier master data.

    SOFT DELETE: Deleting a supplier sets status='inactive'; the row and its
    catalog stay for history and product links.
    """
    __tablename__ = "suppliers"
    __table_args__ = (
        db.Index("ix_suppliers_status", "status"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    supplier_code = db.Column(db.String(32), nullable=False, unique=True)

    # Tax identification number (digits only)
    tax_id = db.Column(db.String(32), nullable=False, unique=True)

    company = db.Column(db.String(200), nullable=False)
    contact_name = db.Column(db.String(100), nullable=False)
    phone = db.Column(db.String(32), nullable=False)
    email = db.Column(db.String(255), nullable=True)

    bank_name = db.Column(db.String(100), nullable=False)
    bank_account = db.Column(db.String(64), nullable=False)

    status = db.Column(db.String(16), nullable=False, default="active")

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    catalog = db.relationship(
        "SupplierCatalogItem",
        backref="supplier",
        lazy=True,
        cascade="all, delete-orphan",
        order_by="SupplierCatalogItem.id",
    )

    def __repr__(self) -> str:
        return f"<Supplier id={self.id} code={self.supplier_code!r} company={self.company!r}>"

    def to_dict(self, include_catalog: bool = False) -> dict:
        data = {
            "id": self.id,
            "supplier_code": self.supplier_code,
            "tax_id": self.tax_id,
            "company": self.company,
            "contact_name": self.contact_name,
            "phone": self.phone,
            "email": self.email,
            "bank_name": self.bank_name,
            "bank_account": self.bank_account,
            "address": self.address_dict(),
            "status": self.status,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
        if include_catalog:
            data["catalog"] = [item.to_dict() for item in self.catalog]
        return data


class SupplierCatalogItem(db.Model):
    """A product entry in a supplier's own catalog (their name, price and availability)."""
    __tablename__ = "supplier_catalog_items"
    __table_args__ = (
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    supplier_id = db.Column(db.Integer, db.ForeignKey("suppliers.id"), nullable=False, index=True)

    product_name = db.Column(db.String(200), nullable=False)
    description = db.Column(db.Text, nullable=True)
    category = db.Column(db.String(100), nullable=False)
    unit_price_cents = db.Column(db.Integer, nullable=False)
    currency = db.Column(db.String(3), nullable=False, default="COP")
    available_quantity = db.Column(db.Integer, nullable=False, default=0)
    minimum_order = db.Column(db.Integer, nullable=False, default=1)
    is_active = db.Column(db.Boolean, nullable=False, default=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "supplier_id": self.supplier_id,
            "product_name": self.product_name,
            "description": self.description,
            "category": self.category,
            "unit_price_cents": self.unit_price_cents,
            "currency": self.currency,
            "available_quantity": self.available_quantity,
            "minimum_order": self.minimum_order,
            "is_active": self.is_active,
        }


class Client(AddressMixin, db.Model):
    """
    Client master data.

    client_type decides which identity block matters: 'registered' clients
    usually carry business info, 'final_consumer' clients only personal info.

    Invoice history is not denormalized here; it is queried from invoices.
    """
    __tablename__ = "clients"
    __table_args__ = (
        db.Index("ix_clients_status", "status"),
        db.Index("ix_clients_type", "client_type"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    client_code = db.Column(db.String(32), nullable=False, unique=True)
    tax_id = db.Column(db.String(32), nullable=False, unique=True)
    client_type = db.Column(db.String(16), nullable=False, default="final_consumer")

    # Personal info
    first_name = db.Column(db.String(50), nullable=False)
    last_name = db.Column(db.String(50), nullable=False)
    email = db.Column(db.String(255), nullable=True, index=True)
    phone = db.Column(db.String(32), nullable=False)

    # Business info
    company_name = db.Column(db.String(200), nullable=True)
    business_type = db.Column(db.String(16), nullable=True)
    registration_number = db.Column(db.String(64), nullable=True)

    # Preferences
    preferred_payment_method = db.Column(db.String(16), nullable=False, default="cash")
    discount_level = db.Column(db.Numeric(5, 2), nullable=False, default=0)
    notes = db.Column(db.String(500), nullable=True)

    status = db.Column(db.String(16), nullable=False, default="active")

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"

    @property
    def display_name(self) -> str:
        """Name printed on invoices: company for registered clients, else the person."""
        if self.client_type == "registered" and self.company_name:
            return self.company_name
        return self.full_name

    def __repr__(self) -> str:
        return f"<Client id={self.id} code={self.client_code!r} tax_id={self.tax_id!r}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "client_code": self.client_code,
            "tax_id": self.tax_id,
            "client_type": self.client_type,
            "first_name": self.first_name,
            "last_name": self.last_name,
            "full_name": self.full_name,
            "email": self.email,
            "phone": self.phone,
            "company_name": self.company_name,
            "business_type": self.business_type,
            "registration_number": self.registration_number,
            "address": self.address_dict(),
            "preferred_payment_method": self.preferred_payment_method,
            "discount_level": float(self.discount_level or 0),
            "notes": self.notes,
            "status": self.status,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
