from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z

PRODUCT_STATUSES = ("active", "inactive", "discontinued")
MOVEMENT_TYPES = ("sale", "return", "adjustment")
STOCK_OPERATIONS = ("add", "subtract", "set")


class Product(db.Model):
    """
    Product master data with pricing and the live stock counter.

    STOCK INVARIANTS:
    - current_stock >= 0 (CHECK constraint + service guard)
    - current_stock only changes through inventory_service.apply_stock_change,
      which appends exactly one StockMovement per change
    - version_id is an optimistic lock: a concurrent update of the same row
      raises StaleDataError at flush and the operation is retried
    """
    __tablename__ = "products"
    __table_args__ = (
        db.CheckConstraint("current_stock >= 0", name="ck_products_stock_non_negative"),
        db.Index("ix_products_category", "category", "subcategory"),
        db.Index("ix_products_status", "status"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    product_code = db.Column(db.String(32), nullable=False, unique=True)

    name = db.Column(db.String(200), nullable=False, index=True)
    description = db.Column(db.String(1000), nullable=True)
    category = db.Column(db.String(100), nullable=False)
    subcategory = db.Column(db.String(100), nullable=True)
    brand = db.Column(db.String(100), nullable=True)

    sku = db.Column(db.String(64), nullable=False, unique=True)
    barcode = db.Column(db.String(64), nullable=True, unique=True)

    # Pricing, authoritative storage in cents
    cost_price_cents = db.Column(db.Integer, nullable=False, default=0)
    selling_price_cents = db.Column(db.Integer, nullable=False)
    wholesale_price_cents = db.Column(db.Integer, nullable=True)
    currency = db.Column(db.String(3), nullable=False, default="COP")
    tax_rate = db.Column(db.Numeric(5, 2), nullable=False, default=19)

    # Inventory
    current_stock = db.Column(db.Integer, nullable=False, default=0)
    minimum_stock = db.Column(db.Integer, nullable=False, default=10)
    maximum_stock = db.Column(db.Integer, nullable=True, default=1000)
    reorder_point = db.Column(db.Integer, nullable=False, default=20)
    location = db.Column(db.String(100), nullable=True, default="Bodega Principal")

    status = db.Column(db.String(16), nullable=False, default="active")

    version_id = db.Column(db.Integer, nullable=False, default=1)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    supplier_links = db.relationship(
        "ProductSupplier",
        backref="product",
        lazy=True,
        cascade="all, delete-orphan",
    )
    __mapper_args__ = {"version_id_col": version_id}

    @property
    def needs_reorder(self) -> bool:
        return self.current_stock <= self.reorder_point

    @property
    def is_out_of_stock(self) -> bool:
        return self.current_stock == 0

    def __repr__(self) -> str:
        return f"<Product id={self.id} sku={self.sku!r} name={self.name!r} stock={self.current_stock}>"

    def to_dict(self, include_suppliers: bool = False) -> dict:
        data = {
            "id": self.id,
            "product_code": self.product_code,
            "name": self.name,
            "description": self.description,
            "category": self.category,
            "subcategory": self.subcategory,
            "brand": self.brand,
            "sku": self.sku,
            "barcode": self.barcode,
            "pricing": {
                "cost_price_cents": self.cost_price_cents,
                "selling_price_cents": self.selling_price_cents,
                "wholesale_price_cents": self.wholesale_price_cents,
                "currency": self.currency,
                "tax_rate": float(self.tax_rate) if self.tax_rate is not None else None,
            },
            "inventory": {
                "current_stock": self.current_stock,
                "minimum_stock": self.minimum_stock,
                "maximum_stock": self.maximum_stock,
                "reorder_point": self.reorder_point,
                "location": self.location,
                "needs_reorder": self.needs_reorder,
                "is_out_of_stock": self.is_out_of_stock,
            },
            "status": self.status,
            "version_id": self.version_id,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
        if include_suppliers:
            data["suppliers"] = [link.to_dict() for link in self.supplier_links]
        return data


class ProductSupplier(db.Model):
    """Many-to-many link between products and the suppliers that provide them."""
    __tablename__ = "product_suppliers"
    __table_args__ = (
        db.UniqueConstraint("product_id", "supplier_id", name="uq_product_suppliers_pair"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)
    supplier_id = db.Column(db.Integer, db.ForeignKey("suppliers.id"), nullable=False, index=True)

    supplier_price_cents = db.Column(db.Integer, nullable=False)
    lead_time_days = db.Column(db.Integer, nullable=False, default=7)
    is_preferred = db.Column(db.Boolean, nullable=False, default=False)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    supplier = db.relationship("Supplier", backref=db.backref("product_links", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "product_id": self.product_id,
            "supplier_id": self.supplier_id,
            "supplier_name": self.supplier.company if self.supplier else None,
            "supplier_price_cents": self.supplier_price_cents,
            "lead_time_days": self.lead_time_days,
            "is_preferred": self.is_preferred,
        }


class StockMovement(db.Model):
    """
    Append-only log of stock changes.

    IMMUTABLE: Never update or delete. Ordered by (occurred_at, id).
    Each row records the counter before and after the change, so the log can
    be replayed and checked against Product.current_stock.
    """
    __tablename__ = "stock_movements"
    __table_args__ = (
        db.Index("ix_stock_movements_product_occurred", "product_id", "occurred_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)

    movement_type = db.Column(db.String(16), nullable=False, index=True)  # sale | return | adjustment
    operation = db.Column(db.String(16), nullable=False)  # add | subtract | set
    quantity = db.Column(db.Integer, nullable=False)
    previous_stock = db.Column(db.Integer, nullable=False)
    new_stock = db.Column(db.Integer, nullable=False)

    reason = db.Column(db.String(255), nullable=False)
    actor_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True, index=True)
    # Source document, e.g. an invoice number
    reference = db.Column(db.String(64), nullable=True, index=True)

    occurred_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    product = db.relationship("Product", backref=db.backref("movements", lazy="dynamic"))

    @property
    def delta(self) -> int:
        return self.new_stock - self.previous_stock

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "product_id": self.product_id,
            "movement_type": self.movement_type,
            "operation": self.operation,
            "quantity": self.quantity,
            "previous_stock": self.previous_stock,
            "new_stock": self.new_stock,
            "delta": self.delta,
            "reason": self.reason,
            "actor_user_id": self.actor_user_id,
            "reference": self.reference,
            "occurred_at": to_utc_z(self.occurred_at),
        }
