"""
Inventory tests: stock counter, movement log and manual adjustments.
"""

import pytest

from bazar.errors import InsufficientStockError, NotFoundError, ValidationError
from bazar.extensions import db
from bazar.models import Product, StockMovement
from bazar.services import inventory_service


def _movements(product_id):
    return (
        db.session.query(StockMovement)
        .filter_by(product_id=product_id)
        .order_by(StockMovement.id.asc())
        .all()
    )


class TestInitialStock:

    def test_initial_stock_is_logged(self, sample_product):
        movements = _movements(sample_product.id)
        assert len(movements) == 1
        assert movements[0].movement_type == "adjustment"
        assert movements[0].reason == "Initial stock"
        assert movements[0].previous_stock == 0
        assert movements[0].new_stock == 10

    def test_zero_initial_stock_logs_nothing(self, make_product):
        product = make_product(current_stock=0)
        assert product.current_stock == 0
        assert _movements(product.id) == []


class TestAdjustStock:

    def test_add(self, sample_product, admin_user):
        product, movement = inventory_service.adjust_stock(
            product_id=sample_product.id, operation="add", quantity=5,
            reason="Restock", actor_user_id=admin_user.id,
        )
        assert product.current_stock == 15
        assert movement.delta == 5
        assert movement.actor_user_id == admin_user.id

    def test_subtract(self, sample_product):
        product, movement = inventory_service.adjust_stock(
            product_id=sample_product.id, operation="subtract", quantity=4, reason="Damaged",
        )
        assert product.current_stock == 6
        assert movement.previous_stock == 10
        assert movement.new_stock == 6

    def test_set(self, sample_product):
        product, movement = inventory_service.adjust_stock(
            product_id=sample_product.id, operation="set", quantity=3, reason="Physical count",
        )
        assert product.current_stock == 3
        assert movement.delta == -7

    def test_set_to_zero_allowed(self, sample_product):
        product, _ = inventory_service.adjust_stock(
            product_id=sample_product.id, operation="set", quantity=0, reason="Count",
        )
        assert product.is_out_of_stock

    def test_subtract_more_than_available(self, sample_product):
        with pytest.raises(InsufficientStockError) as exc:
            inventory_service.adjust_stock(
                product_id=sample_product.id, operation="subtract", quantity=11, reason="Oops",
            )
        assert exc.value.available == 10
        assert exc.value.requested == 11
        assert db.session.get(Product, sample_product.id).current_stock == 10
        assert len(_movements(sample_product.id)) == 1

    @pytest.mark.parametrize(
        "operation,quantity,reason",
        [
            ("multiply", 2, "x"),
            ("add", 0, "x"),
            ("add", -3, "x"),
            ("add", 2.5, "x"),
            ("add", "3", "x"),
            ("add", 3, ""),
            ("add", 3, None),
        ],
    )
    def test_invalid_requests(self, sample_product, operation, quantity, reason):
        with pytest.raises(ValidationError):
            inventory_service.adjust_stock(
                product_id=sample_product.id, operation=operation, quantity=quantity, reason=reason,
            )

    def test_unknown_product(self, app):
        with pytest.raises(NotFoundError):
            inventory_service.adjust_stock(product_id=999, operation="add", quantity=1, reason="x")


class TestMovementLog:

    def test_log_replays_to_counter(self, sample_product):
        inventory_service.adjust_stock(product_id=sample_product.id, operation="add", quantity=7, reason="a")
        inventory_service.adjust_stock(product_id=sample_product.id, operation="subtract", quantity=2, reason="b")
        inventory_service.adjust_stock(product_id=sample_product.id, operation="set", quantity=40, reason="c")

        movements = _movements(sample_product.id)
        stock = 0
        for movement in movements:
            assert movement.previous_stock == stock
            stock = movement.new_stock
        assert stock == db.session.get(Product, sample_product.id).current_stock == 40

    def test_list_newest_first_and_filter(self, sample_product):
        inventory_service.adjust_stock(product_id=sample_product.id, operation="add", quantity=1, reason="later")
        movements = inventory_service.list_movements(product_id=sample_product.id)
        assert [m.reason for m in movements] == ["later", "Initial stock"]

        only = inventory_service.list_movements(product_id=sample_product.id, movement_type="sale")
        assert only == []

        with pytest.raises(ValidationError):
            inventory_service.list_movements(product_id=sample_product.id, movement_type="bogus")


class TestLowStock:

    def test_low_stock_at_or_below_reorder_point(self, make_product):
        make_product(name="Full", current_stock=50, reorder_point=5)
        at_point = make_product(name="At point", current_stock=5, reorder_point=5)
        empty = make_product(name="Empty", current_stock=0, reorder_point=5)
        gone = make_product(name="Gone", current_stock=0, reorder_point=5, status="discontinued")

        low = inventory_service.get_low_stock_products()
        assert [p.id for p in low] == [empty.id, at_point.id]
        assert gone.id not in [p.id for p in low]
        assert at_point.needs_reorder
