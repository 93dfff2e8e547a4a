# Overview: Service-layer operations for inventory; encapsulates business logic and database work.

# backend/shopledger/services/inventory_service.py

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable

from ..extensions import db
from ..models import Product
"""
Stock Reservation Invariants (authoritative)

- Product.stock_quantity is shared mutable state and is never negative.
- Reservation is two passes over the order lines, in request order:
    1. pre-check: every product exists and has stock_quantity >= quantity.
       Nothing is written if any line fails.
    2. commit: one conditional UPDATE per line
           SET stock_quantity = stock_quantity - q WHERE id = ? AND stock_quantity >= q
       A zero row count means another order consumed the stock after the
       pre-check; that surfaces as StockConflictError (409).
- No lock is held between pre-check and commit. The conditional UPDATE is
  the only synchronization point.
- Callers run the commit pass and the order insert in ONE database
  transaction and roll it back on any failure, so a conflict on line N
  also undoes the decrements already applied for lines 1..N-1.
- No retries here; clients retry on 409.
"""


class InventoryError(Exception):
    """Raised for stock reservation errors."""
    status_code = 400

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}


class ProductNotFoundError(InventoryError):
    """Referenced product does not exist (reported as 400 during reservation)."""


class InsufficientStockError(InventoryError):
    """Requested quantity exceeds current stock."""


class StockConflictError(InventoryError):
    """Stock changed between pre-check and commit."""
    status_code = 409


@dataclass(frozen=True)
class StockLine:
    product_id: int
    quantity: int


def check_availability(lines: Iterable[StockLine]) -> list[Product]:
    """
    Pre-check pass: verify every line without mutating anything.

    Returns the products in line order.
    """
    products = []
    for line in lines:
        product = db.session.get(Product, line.product_id)
        if product is None:
            raise ProductNotFoundError(
                f"Product not found: {line.product_id}",
                details={"product_id": line.product_id},
            )
        if product.stock_quantity < line.quantity:
            raise InsufficientStockError(
                f"Insufficient stock for product {product.name_en}. "
                f"Available: {product.stock_quantity}, requested: {line.quantity}",
                details={
                    "product_id": product.id,
                    "available": product.stock_quantity,
                    "requested": line.quantity,
                },
            )
        products.append(product)
    return products


def commit_reservation(lines: Iterable[StockLine]) -> None:
    """
    Commit pass: conditional decrement per line.

    Does not commit the session; the caller owns the transaction and must
    roll back when this raises.
    """
    for line in lines:
        updated = (
            db.session.query(Product)
            .filter(Product.id == line.product_id, Product.stock_quantity >= line.quantity)
            .update(
                {Product.stock_quantity: Product.stock_quantity - line.quantity},
                synchronize_session=False,
            )
        )
        if updated == 0:
            raise StockConflictError(
                "Stock changed while processing your order. Please try again.",
                details={"product_id": line.product_id, "requested": line.quantity},
            )


def reserve_stock(lines: list[StockLine]) -> None:
    """Pre-check every line, then conditionally decrement every line."""
    check_availability(lines)
    commit_reservation(lines)


def restock(product_id: int, quantity: int) -> Product:
    """Atomic increment of a product's stock."""
    if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity <= 0:
        raise InventoryError("quantity must be a positive integer")

    updated = (
        db.session.query(Product)
        .filter(Product.id == product_id)
        .update(
            {Product.stock_quantity: Product.stock_quantity + quantity},
            synchronize_session=False,
        )
    )
    if updated == 0:
        db.session.rollback()
        raise ProductNotFoundError(f"Product not found: {product_id}", details={"product_id": product_id})

    db.session.commit()
    return db.session.get(Product, product_id)
