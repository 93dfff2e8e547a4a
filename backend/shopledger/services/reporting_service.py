# Overview: Service-layer operations for cash-flow reporting; encapsulates business logic and database work.

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime, time, timedelta

from sqlalchemy import func

from ..extensions import db
from ..models import CashFlowTransaction
from ..models.cashflow import INFLOW, OUTFLOW
from ..time_utils import day_key, parse_iso_datetime, to_utc_z, utcnow
from . import cashflow_service
"""
Cash-flow report semantics (authoritative)

- Every report runs over a window [start, end], inclusive at both ends.
- Default window: end = now, start = now - period days (period defaults to 30).
- current_balance is all-time (inflows - outflows), never windowed.
- cash_burn_rate = windowed outflows / period_days.
- runway = floor(current_balance / cash_burn_rate); None when there is no burn.
- history has one row per calendar day from start.date() to end.date(),
  zero-filled for days without transactions.
"""

DEFAULT_PERIOD_DAYS = 30
MAX_PERIOD_DAYS = 3650


class ReportError(Exception):
    """Raised when report generation fails."""
    status_code = 400


@dataclass(frozen=True)
class ReportWindow:
    start: datetime
    end: datetime
    period_days: int

    def to_dict(self) -> dict:
        return {
            "start": to_utc_z(self.start),
            "end": to_utc_z(self.end),
            "period": self.period_days,
        }


def parse_days(value, *, default: int, name: str = "period", maximum: int = MAX_PERIOD_DAYS) -> int:
    """Positive whole number of days from a query-string or int value."""
    if value is None or value == "":
        return default
    if isinstance(value, bool):
        raise ReportError(f"{name} must be a positive integer")
    if isinstance(value, str):
        stripped = value.strip()
        if not stripped.isdigit():
            raise ReportError(f"{name} must be a positive integer")
        value = int(stripped)
    if not isinstance(value, int) or value < 1:
        raise ReportError(f"{name} must be a positive integer")
    if value > maximum:
        raise ReportError(f"{name} cannot exceed {maximum}")
    return value


def parse_bound(value, *, end_of_day: bool) -> datetime | None:
    if value is None or isinstance(value, datetime):
        return value
    if not isinstance(value, str):
        raise ReportError(f"Invalid date: {value}")
    try:
        dt = parse_iso_datetime(value)
    except ValueError:
        raise ReportError(f"Invalid date: {value}")
    # A bare "YYYY-MM-DD" end date covers that whole day
    if dt is not None and end_of_day and len(value.strip()) == 10:
        dt = datetime.combine(dt.date(), time.max)
    return dt


def resolve_window(
    period=None,
    start: datetime | str | None = None,
    end: datetime | str | None = None,
    now: datetime | None = None,
) -> ReportWindow:
    """
    Build the report window.

    With no explicit dates the window is the last `period` days ending now.
    With explicit dates, period_days is the number of calendar days between
    them (at least 1) unless a period is also given.
    """
    now = now or utcnow()
    start_dt = parse_bound(start, end_of_day=False)
    end_dt = parse_bound(end, end_of_day=True)

    if start_dt is None and end_dt is None:
        days = parse_days(period, default=DEFAULT_PERIOD_DAYS)
        return ReportWindow(start=now - timedelta(days=days), end=now, period_days=days)

    end_dt = end_dt or now
    if start_dt is None:
        days = parse_days(period, default=DEFAULT_PERIOD_DAYS)
        start_dt = end_dt - timedelta(days=days)

    if start_dt > end_dt:
        raise ReportError("start must not be after end")

    if period is not None and period != "":
        days = parse_days(period, default=DEFAULT_PERIOD_DAYS)
    else:
        days = max((end_dt.date() - start_dt.date()).days, 1)

    return ReportWindow(start=start_dt, end=end_dt, period_days=days)


def _in_window(query, window: ReportWindow | None):
    if window is None:
        return query
    return query.filter(
        CashFlowTransaction.date >= window.start,
        CashFlowTransaction.date <= window.end,
    )


def sum_by_type(window: ReportWindow | None = None) -> dict[str, float]:
    """Total amount per direction; window=None means all-time."""
    query = db.session.query(
        CashFlowTransaction.type,
        func.coalesce(func.sum(CashFlowTransaction.amount), 0),
    )
    rows = _in_window(query, window).group_by(CashFlowTransaction.type).all()

    totals = {INFLOW: 0.0, OUTFLOW: 0.0}
    for tx_type, total in rows:
        totals[tx_type] = float(total or 0)
    return totals


def dashboard(window: ReportWindow) -> dict:
    windowed = sum_by_type(window)
    all_time = sum_by_type()

    total_inflows = windowed[INFLOW]
    total_outflows = windowed[OUTFLOW]
    current_balance = all_time[INFLOW] - all_time[OUTFLOW]

    cash_burn_rate = total_outflows / window.period_days
    runway = math.floor(current_balance / cash_burn_rate) if cash_burn_rate > 0 else None

    return {
        "total_inflows": total_inflows,
        "total_outflows": total_outflows,
        "net_cash_flow": total_inflows - total_outflows,
        "current_balance": current_balance,
        "cash_burn_rate": cash_burn_rate,
        "runway": runway,
        "period": window.period_days,
        "start": to_utc_z(window.start),
        "end": to_utc_z(window.end),
    }


def history(window: ReportWindow) -> dict:
    day = func.date(CashFlowTransaction.date).label("day")
    query = db.session.query(
        day,
        CashFlowTransaction.type,
        func.coalesce(func.sum(CashFlowTransaction.amount), 0).label("total"),
    )
    rows = _in_window(query, window).group_by(day, CashFlowTransaction.type).all()

    by_day: dict[str, dict[str, float]] = {}
    for row_day, tx_type, total in rows:
        by_day.setdefault(day_key(row_day), {})[tx_type] = float(total or 0)

    records = []
    current = window.start.date()
    last = window.end.date()
    while current <= last:
        key = current.isoformat()
        totals = by_day.get(key, {})
        inflows = totals.get(INFLOW, 0.0)
        outflows = totals.get(OUTFLOW, 0.0)
        records.append({
            "date": key,
            "inflows": inflows,
            "outflows": outflows,
            "net_flow": inflows - outflows,
        })
        current += timedelta(days=1)

    return {"history": records, **window.to_dict()}


def by_category(window: ReportWindow) -> dict:
    query = db.session.query(
        CashFlowTransaction.category,
        CashFlowTransaction.type,
        func.coalesce(func.sum(CashFlowTransaction.amount), 0).label("total"),
        func.count(CashFlowTransaction.id).label("count"),
    )
    rows = _in_window(query, window).group_by(
        CashFlowTransaction.category, CashFlowTransaction.type
    ).all()

    grouped: dict[str, list[dict]] = {INFLOW: [], OUTFLOW: []}
    for category, tx_type, total, count in rows:
        amount = float(total or 0)
        if amount <= 0:
            continue
        grouped[tx_type].append({"category": category, "amount": amount, "count": int(count)})

    for items in grouped.values():
        items.sort(key=lambda item: (-item["amount"], item["category"]))

    return {
        "inflows": grouped[INFLOW],
        "outflows": grouped[OUTFLOW],
        "total_inflow_amount": sum(item["amount"] for item in grouped[INFLOW]),
        "total_outflow_amount": sum(item["amount"] for item in grouped[OUTFLOW]),
        **window.to_dict(),
    }


def dashboard_with_sync(window: ReportWindow, *, sync: bool) -> dict:
    """Dashboard, optionally after reconciling completed orders first."""
    if sync:
        cashflow_service.sync_orders_to_transactions()
    return {**dashboard(window), "sync_enabled": sync}
