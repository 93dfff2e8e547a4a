# Overview: Service-layer operations for cash-flow transactions; encapsulates business logic and database work.

from __future__ import annotations

from datetime import datetime

from flask import current_app

from ..extensions import db
from ..models import CashFlowTransaction, Order, OrderStatus
from ..models.cashflow import INFLOW, OUTFLOW, TRANSACTION_TYPES
from ..time_utils import parse_iso_datetime, utcnow
from ..validation import (
    ModelValidationPolicy,
    ValidationError,
    enforce_rules_transaction,
    validate_payload,
)
"""
Order -> cash-flow derivation rules (authoritative)

A completed order yields exactly three automated transactions, all dated
order.order_date and carrying order_id:
- revenue:  inflow  / product_sales      / total_price
- COGS:     outflow / cost_of_goods_sold / total_price * COGS_RATIO
- shipping: outflow / shipping_costs     / SHIPPING_COST_PER_ORDER

COGS_RATIO is a flat modelling assumption, not the real product cost.

Duplicate protection is advisory: sync_orders_to_transactions skips an order
when any transaction already references it. derive_order_transactions itself
has no guard.
"""

COGS_RATIO = 0.4
SHIPPING_COST_PER_ORDER = 10

CATEGORY_PRODUCT_SALES = "product_sales"
CATEGORY_COGS = "cost_of_goods_sold"
CATEGORY_SHIPPING = "shipping_costs"

TRANSACTION_POLICY = ModelValidationPolicy(
    writable_fields={"type", "category", "amount", "description", "date", "order_id", "automated"},
    required_on_create={"type", "category", "amount"},
)


class CashFlowError(Exception):
    """Raised for cash-flow transaction errors."""
    status_code = 400

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}


class TransactionNotFoundError(CashFlowError):
    status_code = 404


def build_order_transactions(order: Order) -> tuple[CashFlowTransaction, CashFlowTransaction, CashFlowTransaction]:
    """Pure: the (revenue, cogs, shipping) records for an order, unsaved."""
    revenue = CashFlowTransaction(
        type=INFLOW,
        category=CATEGORY_PRODUCT_SALES,
        amount=order.total_price,
        description=f"Revenue from order {order.id}",
        date=order.order_date,
        order_id=order.id,
        automated=True,
    )
    cogs = CashFlowTransaction(
        type=OUTFLOW,
        category=CATEGORY_COGS,
        amount=order.total_price * COGS_RATIO,
        description=f"Cost of goods for order {order.id}",
        date=order.order_date,
        order_id=order.id,
        automated=True,
    )
    shipping = CashFlowTransaction(
        type=OUTFLOW,
        category=CATEGORY_SHIPPING,
        amount=SHIPPING_COST_PER_ORDER,
        description=f"Shipping cost for order {order.id}",
        date=order.order_date,
        order_id=order.id,
        automated=True,
    )
    return revenue, cogs, shipping


def derive_order_transactions(order: Order) -> tuple[CashFlowTransaction, CashFlowTransaction, CashFlowTransaction]:
    """Persist the three derived transactions for an order (no duplicate guard)."""
    transactions = build_order_transactions(order)
    db.session.add_all(transactions)
    db.session.commit()
    return transactions


def has_transactions_for_order(order_id: int) -> bool:
    return db.session.query(
        db.session.query(CashFlowTransaction).filter_by(order_id=order_id).exists()
    ).scalar()


def sync_orders_to_transactions(start: datetime | None = None, end: datetime | None = None) -> dict:
    """
    Derive transactions for every completed order (optionally within an
    inclusive order_date range) that has none yet.
    """
    query = db.session.query(Order).filter(Order.status == OrderStatus.COMPLETED.value)
    if start is not None:
        query = query.filter(Order.order_date >= start)
    if end is not None:
        query = query.filter(Order.order_date <= end)

    completed_orders = query.order_by(Order.order_date.asc(), Order.id.asc()).all()

    results = []
    for order in completed_orders:
        if has_transactions_for_order(order.id):
            continue
        revenue, cogs, shipping = derive_order_transactions(order)
        results.append({
            "order_id": order.id,
            "total_price": order.total_price,
            "transactions": {
                "revenue": revenue.to_dict(),
                "cogs": cogs.to_dict(),
                "shipping": shipping.to_dict(),
            },
        })

    synced_count = len(results)
    current_app.logger.info(
        "Synced %s of %s completed orders to cash flow transactions",
        synced_count,
        len(completed_orders),
    )
    return {
        "message": f"Successfully synced {synced_count} orders to cash flow transactions",
        "synced_count": synced_count,
        "total_orders_checked": len(completed_orders),
        "results": results,
    }


def _parse_filter_date(value: str | None, name: str) -> datetime | None:
    try:
        return parse_iso_datetime(value)
    except ValueError:
        raise ValidationError(f"{name} must be an ISO-8601 date or datetime")


def list_transactions(
    *,
    page: int = 1,
    limit: int = 10,
    tx_type: str | None = None,
    category: str | None = None,
    start: str | None = None,
    end: str | None = None,
) -> dict:
    """Newest-first transaction listing with filters and pagination."""
    page = max(page, 1)
    limit = min(max(limit, 1), 100)

    query = db.session.query(CashFlowTransaction)

    # Unknown type values are ignored rather than rejected
    if tx_type in TRANSACTION_TYPES:
        query = query.filter(CashFlowTransaction.type == tx_type)
    if category:
        query = query.filter(CashFlowTransaction.category == category)

    start_dt = _parse_filter_date(start, "start_date")
    end_dt = _parse_filter_date(end, "end_date")
    if start_dt is not None:
        query = query.filter(CashFlowTransaction.date >= start_dt)
    if end_dt is not None:
        query = query.filter(CashFlowTransaction.date <= end_dt)

    total = query.count()
    total_pages = (total + limit - 1) // limit

    transactions = (
        query.order_by(CashFlowTransaction.date.desc(), CashFlowTransaction.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )

    return {
        "transactions": [tx.to_dict() for tx in transactions],
        "pagination": {
            "current_page": page,
            "total_pages": total_pages,
            "total_transactions": total,
            "has_next_page": page < total_pages,
            "has_prev_page": page > 1,
        },
    }


def get_transaction(transaction_id: int) -> CashFlowTransaction:
    tx = db.session.get(CashFlowTransaction, transaction_id)
    if tx is None:
        raise TransactionNotFoundError("Transaction not found")
    return tx


def create_transaction(payload: dict) -> CashFlowTransaction:
    """Manually entered transaction; automated defaults to False, date to now."""
    patch = validate_payload(
        model=CashFlowTransaction,
        payload=payload,
        policy=TRANSACTION_POLICY,
        partial=False,
    )
    enforce_rules_transaction(patch)

    tx = CashFlowTransaction(**patch)
    if tx.date is None:
        tx.date = utcnow()
    if tx.automated is None:
        tx.automated = False

    db.session.add(tx)
    db.session.commit()
    return tx


def update_transaction(transaction_id: int, payload: dict) -> CashFlowTransaction:
    tx = get_transaction(transaction_id)

    patch = validate_payload(
        model=CashFlowTransaction,
        payload=payload,
        policy=TRANSACTION_POLICY,
        partial=True,
    )
    enforce_rules_transaction(patch)

    for key, value in patch.items():
        setattr(tx, key, value)

    db.session.commit()
    return tx


def delete_transaction(transaction_id: int) -> None:
    tx = get_transaction(transaction_id)
    db.session.delete(tx)
    db.session.commit()
