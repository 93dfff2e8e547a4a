# Overview: Service-layer operations for orders; encapsulates business logic and database work.

"""
Order lifecycle: create (with stock reservation), list, fetch, status
change and delete.

Visibility rule: callers with MANAGE_ANY_ORDER see and change every order;
everyone else only their own. The caller's role is passed in explicitly.
"""

from __future__ import annotations

from flask import current_app

from ..extensions import db
from ..models import Order, OrderLine, OrderStatus, PaymentMethod
from ..permissions import has_permission
from ..time_utils import utcnow
from . import cashflow_service
from .auth_service import find_user
from .inventory_service import InventoryError, StockLine, reserve_stock

DEFAULT_STATUS = OrderStatus.PROCESSING
CREATE_STATUSES = (OrderStatus.PENDING.value, OrderStatus.PROCESSING.value)


class OrderError(Exception):
    """Raised for order operation errors."""
    status_code = 400

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}


class OrderNotFoundError(OrderError):
    status_code = 404


def _is_positive_int(value) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and value > 0


def _parse_lines(raw_lines) -> list[StockLine]:
    if not isinstance(raw_lines, list) or not raw_lines:
        raise OrderError("Products, payment method, and total price are required")

    lines = []
    for item in raw_lines:
        if not isinstance(item, dict):
            raise OrderError("Each product requires product_id and positive quantity")
        product_id = item.get("product_id")
        quantity = item.get("quantity")
        if not _is_positive_int(product_id) or not _is_positive_int(quantity):
            raise OrderError(
                "Each product requires product_id and positive quantity",
                details={"line": item},
            )
        lines.append(StockLine(product_id=product_id, quantity=quantity))
    return lines


def _validate_total_price(total_price) -> float:
    if isinstance(total_price, bool) or not isinstance(total_price, (int, float)):
        raise OrderError("Products, payment method, and total price are required")
    if total_price <= 0:
        raise OrderError("total_price must be a positive number")
    return float(total_price)


def create_order(
    *,
    lines,
    payment_method,
    total_price,
    user_id: int,
    status: str | None = None,
) -> Order:
    """
    Validate input, reserve stock for every line, then persist the order.

    The stock decrements and the order insert share one transaction: on any
    reservation failure the whole transaction is rolled back and no order is
    written.
    """
    stock_lines = _parse_lines(lines)

    if payment_method not in PaymentMethod.values():
        raise OrderError(
            f"payment_method must be one of: {', '.join(PaymentMethod.values())}"
        )

    price = _validate_total_price(total_price)

    status = status or DEFAULT_STATUS.value
    if status not in CREATE_STATUSES:
        raise OrderError(f"New orders must start as one of: {', '.join(CREATE_STATUSES)}")

    try:
        reserve_stock(stock_lines)

        order = Order(
            user_id=user_id,
            payment_method=payment_method,
            status=status,
            total_price=price,
            order_date=utcnow(),
        )
        order.lines = [
            OrderLine(position=i, product_id=line.product_id, quantity=line.quantity)
            for i, line in enumerate(stock_lines)
        ]
        db.session.add(order)
        db.session.commit()
    except InventoryError:
        db.session.rollback()
        raise

    return order


def _scoped_order_query(order_id: int, user_id: int, role: str):
    query = db.session.query(Order).filter(Order.id == order_id)
    if not has_permission(role, "MANAGE_ANY_ORDER"):
        query = query.filter(Order.user_id == user_id)
    return query


def list_orders(*, user_id: int, role: str) -> list[Order]:
    query = db.session.query(Order).order_by(Order.order_date.desc(), Order.id.desc())
    if not has_permission(role, "MANAGE_ANY_ORDER"):
        query = query.filter(Order.user_id == user_id)
    return query.all()


def list_orders_for_user(*, target_user_id: int | None = None, username: str | None = None) -> list[Order]:
    """Orders of one user, looked up by id or username."""
    user = find_user(user_id=target_user_id, username=username)

    if user is None:
        raise OrderNotFoundError("User not found")

    return (
        db.session.query(Order)
        .filter(Order.user_id == user.id)
        .order_by(Order.order_date.desc(), Order.id.desc())
        .all()
    )


def get_order(order_id: int) -> Order:
    order = db.session.get(Order, order_id)
    if order is None:
        raise OrderNotFoundError("Order not found")
    return order


def update_order_status(*, order_id: int, status, user_id: int, role: str) -> Order:
    """
    Set an order's status.

    Moving to COMPLETED also derives the order's cash-flow transactions.
    That step is best-effort: its failure is logged and never undoes the
    status change or reaches the caller. It has no duplicate guard, so
    completing the same order twice derives twice.
    """
    if status not in OrderStatus.values():
        raise OrderError(f"status must be one of: {', '.join(OrderStatus.values())}")

    order = _scoped_order_query(order_id, user_id, role).first()
    if order is None:
        raise OrderNotFoundError("Order not found")

    order.status = status
    db.session.commit()

    if status == OrderStatus.COMPLETED.value:
        _derive_after_completion(order)

    return order


def _derive_after_completion(order: Order) -> None:
    order_id = order.id
    try:
        transactions = cashflow_service.derive_order_transactions(order)
    except Exception:
        db.session.rollback()
        current_app.logger.exception(
            "Failed to generate cash flow transactions for order %s", order_id
        )
        return

    revenue, cogs, shipping = transactions
    current_app.logger.info(
        "Generated cash flow transactions for order %s: revenue=%s cogs=%s shipping=%s net=%.2f",
        order_id,
        revenue.id,
        cogs.id,
        shipping.id,
        revenue.amount - cogs.amount - shipping.amount,
    )


def delete_order(*, order_id: int, user_id: int, role: str) -> None:
    """
    Delete an order and its lines.

    Reserved stock is NOT restored, and derived cash-flow transactions are
    left in place.
    """
    order = _scoped_order_query(order_id, user_id, role).first()
    if order is None:
        raise OrderNotFoundError("Order not found")

    db.session.delete(order)
    db.session.commit()
