# Overview: Stock counter mutations and the append-only movement log.

"""
Bazar Inventory Invariants (authoritative)

Stock model:
- Product.current_stock is the live counter; StockMovement is its audit log.
- Every change of the counter appends exactly one StockMovement in the same
  DB transaction, recording previous_stock and new_stock.
- current_stock may never go negative (service guard + CHECK constraint).

Single code path:
- apply_stock_change() is the only function that writes current_stock.
  Manual adjustments (adjust_stock) and invoice creation, cancellation,
  deletion and editing all call it, so the counter and the log never diverge.

Concurrency:
- Callers load the product through lock_product() (SELECT ... FOR UPDATE where
  the database supports it).
- Product.version_id turns a lost race into StaleDataError at flush; the
  public entry points run under run_with_retry and start over.
"""

from __future__ import annotations

from flask import current_app

from ..errors import InsufficientStockError, NotFoundError, ValidationError
from ..extensions import db
from ..models import Product, StockMovement
from ..models.inventory import MOVEMENT_TYPES, STOCK_OPERATIONS
from ..time_utils import utcnow
from .concurrency import lock_for_update, run_in_transaction


def get_product(product_id: int) -> Product:
    product = db.session.get(Product, product_id)
    if product is None:
        raise NotFoundError("Product not found")
    return product


def lock_product(product_id: int) -> Product | None:
    """Load a product row for update, refreshing any stale identity-map copy."""
    query = db.session.query(Product).filter_by(id=product_id)
    return lock_for_update(query).populate_existing().first()


def _compute_new_stock(product: Product, operation: str, quantity: int) -> int:
    current = product.current_stock
    if operation == "add":
        return current + quantity
    if operation == "subtract":
        if quantity > current:
            raise InsufficientStockError(product.name, current, quantity)
        return current - quantity
    if operation == "set":
        return quantity
    raise ValidationError(f"operation must be one of: {', '.join(STOCK_OPERATIONS)}")


def apply_stock_change(
    product: Product,
    *,
    operation: str,
    quantity: int,
    movement_type: str,
    reason: str,
    actor_user_id: int | None = None,
    reference: str | None = None,
) -> StockMovement:
    """Core stock mutation without locking, retry, or commit.

    The caller owns the transaction and must have loaded product through
    lock_product(). Raises InsufficientStockError before touching the row.
    """
    if movement_type not in MOVEMENT_TYPES:
        raise ValidationError(f"movement_type must be one of: {', '.join(MOVEMENT_TYPES)}")
    if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity < 0:
        raise ValidationError("quantity must be a non-negative integer")

    previous = product.current_stock
    new_stock = _compute_new_stock(product, operation, quantity)

    product.current_stock = new_stock
    movement = StockMovement(
        product_id=product.id,
        movement_type=movement_type,
        operation=operation,
        quantity=quantity,
        previous_stock=previous,
        new_stock=new_stock,
        reason=reason,
        actor_user_id=actor_user_id,
        reference=reference,
        occurred_at=utcnow(),
    )
    db.session.add(movement)
    # Flush now so a lost version check surfaces inside the caller's retry loop
    db.session.flush()
    return movement


def adjust_stock(
    *,
    product_id: int,
    operation: str,
    quantity,
    reason: str | None,
    actor_user_id: int | None = None,
) -> tuple[Product, StockMovement]:
    """
    Manual stock adjustment.

    - add:      new = current + quantity
    - subtract: new = current - quantity (InsufficientStockError when quantity > current)
    - set:      new = quantity (absolute count, e.g. after a physical count)
    """
    if operation not in STOCK_OPERATIONS:
        raise ValidationError(f"operation must be one of: {', '.join(STOCK_OPERATIONS)}")
    if isinstance(quantity, bool) or not isinstance(quantity, int):
        raise ValidationError("quantity must be an integer")
    if quantity < 0 or (quantity == 0 and operation != "set"):
        raise ValidationError("quantity must be greater than 0" if operation != "set" else "quantity must be >= 0")
    reason = (reason or "").strip()
    if not reason:
        raise ValidationError("reason is required")

    def _op():
        product = lock_product(product_id)
        if product is None:
            raise NotFoundError("Product not found")
        movement = apply_stock_change(
            product,
            operation=operation,
            quantity=quantity,
            movement_type="adjustment",
            reason=reason,
            actor_user_id=actor_user_id,
        )
        db.session.commit()
        return product, movement

    product, movement = run_in_transaction(_op)
    current_app.logger.info(
        "Stock adjusted: product=%s %s %d (%d -> %d) by user=%s",
        product.sku, operation, quantity, movement.previous_stock, movement.new_stock, actor_user_id,
    )
    return product, movement


def list_movements(
    *,
    product_id: int,
    limit: int = 50,
    movement_type: str | None = None,
) -> list[StockMovement]:
    get_product(product_id)

    q = StockMovement.query.filter_by(product_id=product_id)
    if movement_type:
        if movement_type not in MOVEMENT_TYPES:
            raise ValidationError(f"type must be one of: {', '.join(MOVEMENT_TYPES)}")
        q = q.filter_by(movement_type=movement_type)

    return (
        q.order_by(StockMovement.occurred_at.desc(), StockMovement.id.desc())
        .limit(limit)
        .all()
    )


def get_low_stock_products() -> list[Product]:
    """Active products at or below their reorder point, emptiest first."""
    return (
        Product.query.filter(
            Product.status == "active",
            Product.current_stock <= Product.reorder_point,
        )
        .order_by(Product.current_stock.asc(), Product.name.asc())
        .all()
    )
