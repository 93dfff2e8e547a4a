"""
Order lifecycle tests at the service layer.

Verifies:
- Order creation validates input and reserves stock atomically
- Visibility and mutation are scoped by role
- Completing an order derives its cash-flow transactions (best effort)
"""

import pytest

from shopledger.extensions import db
from shopledger.models import CashFlowTransaction, Order, OrderLine, Product
from shopledger.models.auth import ROLE_ADMIN, ROLE_CUSTOMER
from shopledger.services import cashflow_service, inventory_service, order_service
from shopledger.services.inventory_service import InsufficientStockError, StockConflictError
from shopledger.services.order_service import OrderError, OrderNotFoundError


def _stock(product_id: int) -> int:
    db.session.expire_all()
    return db.session.get(Product, product_id).stock_quantity


def _create(user, lines, **overrides):
    kwargs = dict(lines=lines, payment_method="cash", total_price=50.0, user_id=user.id)
    kwargs.update(overrides)
    return order_service.create_order(**kwargs)


class TestCreateOrder:

    def test_creates_order_and_decrements_stock(self, customer, make_product):
        beans = make_product(stock=10)
        cups = make_product(stock=4, name="Cups")

        order = _create(customer, [
            {"product_id": beans.id, "quantity": 3},
            {"product_id": cups.id, "quantity": 4},
        ])

        assert order.id is not None
        assert order.status == "processing"
        assert order.user_id == customer.id
        assert [(line.product_id, line.quantity) for line in order.lines] == [(beans.id, 3), (cups.id, 4)]
        assert _stock(beans.id) == 7
        assert _stock(cups.id) == 0

    def test_explicit_pending_status(self, customer, make_product):
        product = make_product()
        order = _create(customer, [{"product_id": product.id, "quantity": 1}], status="pending")
        assert order.status == "pending"

    @pytest.mark.parametrize(
        "overrides",
        [
            {"lines": []},
            {"lines": None},
            {"lines": [{"product_id": 1}]},
            {"lines": [{"product_id": 1, "quantity": 0}]},
            {"lines": [{"product_id": 1, "quantity": -2}]},
            {"lines": [{"product_id": 1, "quantity": 1.5}]},
            {"lines": ["not-a-line"]},
            {"payment_method": "bitcoin"},
            {"payment_method": None},
            {"total_price": 0},
            {"total_price": -5},
            {"total_price": "12"},
            {"status": "completed"},
            {"status": "bogus"},
        ],
    )
    def test_invalid_input_rejected_without_side_effects(self, customer, make_product, overrides):
        product = make_product(stock=5)
        lines = [{"product_id": product.id, "quantity": 1}]

        with pytest.raises(OrderError) as exc:
            _create(customer, **{"lines": lines, **overrides})

        assert exc.value.status_code == 400
        assert db.session.query(Order).count() == 0
        assert _stock(product.id) == 5

    def test_insufficient_stock(self, customer, make_product):
        product = make_product(stock=1)

        with pytest.raises(InsufficientStockError):
            _create(customer, [{"product_id": product.id, "quantity": 2}])

        assert db.session.query(Order).count() == 0
        assert _stock(product.id) == 1

    def test_conflict_leaves_no_partial_reservation(self, customer, make_product, monkeypatch):
        """Stock consumed between pre-check and commit rolls back every line."""
        first = make_product(stock=5)
        second = make_product(stock=1)
        monkeypatch.setattr(inventory_service, "check_availability", lambda lines: [])

        with pytest.raises(StockConflictError):
            _create(customer, [
                {"product_id": first.id, "quantity": 2},
                {"product_id": second.id, "quantity": 3},
            ])

        assert db.session.query(Order).count() == 0
        assert _stock(first.id) == 5
        assert _stock(second.id) == 1


class TestListAndFetch:

    def test_customer_sees_only_own_orders(self, customer, other_customer, admin_user, make_product, make_order):
        product = make_product()
        mine = make_order(customer, product)
        make_order(other_customer, product)

        own = order_service.list_orders(user_id=customer.id, role=ROLE_CUSTOMER)
        everything = order_service.list_orders(user_id=admin_user.id, role=ROLE_ADMIN)

        assert [o.id for o in own] == [mine.id]
        assert len(everything) == 2

    def test_orders_for_user_by_username(self, customer, make_product, make_order):
        order = make_order(customer, make_product())

        orders = order_service.list_orders_for_user(username="alice")

        assert [o.id for o in orders] == [order.id]

    def test_orders_for_unknown_user(self, db_session):
        with pytest.raises(OrderNotFoundError):
            order_service.list_orders_for_user(target_user_id=999999)

    def test_get_order_missing(self, db_session):
        with pytest.raises(OrderNotFoundError) as exc:
            order_service.get_order(999999)
        assert exc.value.status_code == 404


class TestUpdateStatus:

    def test_rejects_unknown_status(self, customer, make_product, make_order):
        order = make_order(customer, make_product())
        with pytest.raises(OrderError):
            order_service.update_order_status(
                order_id=order.id, status="lost", user_id=customer.id, role=ROLE_CUSTOMER
            )

    def test_customer_cannot_touch_foreign_order(self, customer, other_customer, make_product, make_order):
        order = make_order(other_customer, make_product())
        with pytest.raises(OrderNotFoundError):
            order_service.update_order_status(
                order_id=order.id, status="shipped", user_id=customer.id, role=ROLE_CUSTOMER
            )

    def test_admin_completion_derives_three_transactions(self, admin_user, customer, make_product, make_order):
        order = make_order(customer, make_product(), total_price=200.0)

        updated = order_service.update_order_status(
            order_id=order.id, status="completed", user_id=admin_user.id, role=ROLE_ADMIN
        )

        assert updated.status == "completed"
        txs = db.session.query(CashFlowTransaction).filter_by(order_id=order.id).all()
        assert sorted((t.type, t.category) for t in txs) == [
            ("inflow", "product_sales"),
            ("outflow", "cost_of_goods_sold"),
            ("outflow", "shipping_costs"),
        ]

    def test_non_completed_status_derives_nothing(self, admin_user, customer, make_product, make_order):
        order = make_order(customer, make_product())
        order_service.update_order_status(
            order_id=order.id, status="delivered", user_id=admin_user.id, role=ROLE_ADMIN
        )
        assert db.session.query(CashFlowTransaction).count() == 0

    def test_derivation_failure_does_not_undo_status(self, admin_user, customer, make_product, make_order, monkeypatch):
        order = make_order(customer, make_product())

        def boom(order):
            raise RuntimeError("store unavailable")

        monkeypatch.setattr(cashflow_service, "derive_order_transactions", boom)

        updated = order_service.update_order_status(
            order_id=order.id, status="completed", user_id=admin_user.id, role=ROLE_ADMIN
        )

        assert updated.status == "completed"
        db.session.expire_all()
        assert db.session.get(Order, order.id).status == "completed"
        assert db.session.query(CashFlowTransaction).count() == 0

    def test_derivation_failure_log_does_not_reload_order(self, admin_user, customer, make_product, make_order, monkeypatch):
        order = make_order(customer, make_product())
        order_id = order.id

        def fail_after_row_vanishes(order):
            db.session.query(OrderLine).filter(OrderLine.order_id == order_id).delete(synchronize_session=False)
            db.session.query(Order).filter(Order.id == order_id).delete(synchronize_session=False)
            db.session.commit()
            raise RuntimeError("store unavailable")

        monkeypatch.setattr(cashflow_service, "derive_order_transactions", fail_after_row_vanishes)

        order_service.update_order_status(
            order_id=order_id, status="completed", user_id=admin_user.id, role=ROLE_ADMIN
        )

        assert db.session.query(CashFlowTransaction).count() == 0


class TestDeleteOrder:

    def test_delete_does_not_restore_stock(self, customer, make_product):
        product = make_product(stock=5)
        order = _create(customer, [{"product_id": product.id, "quantity": 2}])

        order_service.delete_order(order_id=order.id, user_id=customer.id, role=ROLE_CUSTOMER)

        assert db.session.query(Order).count() == 0
        assert _stock(product.id) == 3

    def test_customer_cannot_delete_foreign_order(self, customer, other_customer, make_product, make_order):
        order = make_order(other_customer, make_product())
        with pytest.raises(OrderNotFoundError):
            order_service.delete_order(order_id=order.id, user_id=customer.id, role=ROLE_CUSTOMER)

    def test_admin_deletes_any_order(self, admin_user, customer, make_product, make_order):
        order = make_order(customer, make_product())
        order_service.delete_order(order_id=order.id, user_id=admin_user.id, role=ROLE_ADMIN)
        assert db.session.query(Order).count() == 0
