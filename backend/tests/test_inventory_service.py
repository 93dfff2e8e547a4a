"""
Stock reservation tests.

Verifies:
- Pre-check rejects unknown products and insufficient stock without writing
- Conditional decrement never drives stock below zero
- A stale pre-check surfaces as a conflict on commit
- Restock is an atomic increment
"""

import pytest

from shopledger.extensions import db
from shopledger.models import Product
from shopledger.services import inventory_service
from shopledger.services.inventory_service import (
    InsufficientStockError,
    InventoryError,
    ProductNotFoundError,
    StockConflictError,
    StockLine,
)


def _stock(product_id: int) -> int:
    db.session.expire_all()
    return db.session.get(Product, product_id).stock_quantity


class TestPreCheck:

    def test_returns_products_in_line_order(self, make_product):
        first = make_product(stock=5, name="First")
        second = make_product(stock=5, name="Second")

        products = inventory_service.check_availability([
            StockLine(second.id, 1),
            StockLine(first.id, 2),
        ])

        assert [p.id for p in products] == [second.id, first.id]

    def test_unknown_product(self, db_session):
        with pytest.raises(ProductNotFoundError) as exc:
            inventory_service.check_availability([StockLine(999999, 1)])
        assert exc.value.status_code == 400
        assert exc.value.details["product_id"] == 999999

    def test_insufficient_stock_reports_available_and_requested(self, make_product):
        product = make_product(stock=2)

        with pytest.raises(InsufficientStockError) as exc:
            inventory_service.check_availability([StockLine(product.id, 3)])

        assert exc.value.status_code == 400
        assert exc.value.details == {"product_id": product.id, "available": 2, "requested": 3}
        assert _stock(product.id) == 2

    def test_failure_on_later_line_writes_nothing(self, make_product):
        plenty = make_product(stock=10)
        scarce = make_product(stock=1)

        with pytest.raises(InsufficientStockError):
            inventory_service.reserve_stock([StockLine(plenty.id, 4), StockLine(scarce.id, 2)])
        db.session.rollback()

        assert _stock(plenty.id) == 10
        assert _stock(scarce.id) == 1


class TestCommitReservation:

    def test_exact_stock_reaches_zero(self, make_product):
        product = make_product(stock=3)

        inventory_service.reserve_stock([StockLine(product.id, 3)])
        db.session.commit()

        assert _stock(product.id) == 0

    def test_stale_precheck_conflicts_instead_of_going_negative(self, make_product):
        """Two orders pass the pre-check for the same stock; only one commits."""
        product = make_product(stock=5)
        order_a = [StockLine(product.id, 3)]
        order_b = [StockLine(product.id, 3)]

        inventory_service.check_availability(order_a)
        inventory_service.check_availability(order_b)

        inventory_service.commit_reservation(order_a)
        db.session.commit()

        with pytest.raises(StockConflictError) as exc:
            inventory_service.commit_reservation(order_b)
        db.session.rollback()

        assert exc.value.status_code == 409
        assert _stock(product.id) == 2

    def test_conflict_on_second_line_rolls_back_first(self, make_product):
        first = make_product(stock=5)
        second = make_product(stock=1)

        with pytest.raises(StockConflictError):
            inventory_service.commit_reservation([StockLine(first.id, 2), StockLine(second.id, 3)])
        db.session.rollback()

        assert _stock(first.id) == 5
        assert _stock(second.id) == 1


class TestRestock:

    def test_increments(self, make_product):
        product = make_product(stock=1)

        restocked = inventory_service.restock(product.id, 9)

        assert restocked.stock_quantity == 10

    @pytest.mark.parametrize("quantity", [0, -1, 2.5, True, None])
    def test_rejects_non_positive_quantities(self, make_product, quantity):
        product = make_product(stock=1)
        with pytest.raises(InventoryError):
            inventory_service.restock(product.id, quantity)
        assert _stock(product.id) == 1

    def test_unknown_product(self, db_session):
        with pytest.raises(ProductNotFoundError):
            inventory_service.restock(999999, 1)
