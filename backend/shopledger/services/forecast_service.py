# Overview: Service-layer operations for cash-flow forecasting.

from __future__ import annotations

import math
from datetime import date, datetime, timedelta

from ..time_utils import utcnow
from . import reporting_service
from .reporting_service import parse_days

FORECAST_HISTORY_DAYS = 30
DEFAULT_FORECAST_DAYS = 90
MAX_FORECAST_DAYS = 3650


def round_money(value: float) -> float:
    """Two decimals, half away from zero, applied to value * 100."""
    scaled = value * 100
    rounded = math.floor(abs(scaled) + 0.5)
    return (rounded if scaled >= 0 else -rounded) / 100


def project_balance(
    *,
    current_balance: float,
    avg_daily_inflow: float,
    avg_daily_outflow: float,
    days: int,
    start_date: date,
) -> list[dict]:
    """
    Straight-line projection: each day adds (avg_daily_inflow - avg_daily_outflow)
    to the previous day's balance. Day 1 is start_date + 1.
    """
    net = avg_daily_inflow - avg_daily_outflow
    balance = current_balance
    forecast = []
    for i in range(1, days + 1):
        balance += net
        forecast.append({
            "date": (start_date + timedelta(days=i)).isoformat(),
            "projected_balance": round_money(balance),
            "projected_inflow": round_money(avg_daily_inflow),
            "projected_outflow": round_money(avg_daily_outflow),
            "net_projected_flow": round_money(net),
        })
    return forecast


def forecast(days=None, now: datetime | None = None) -> dict:
    """
    Project the balance `days` ahead (default 90) from the trailing 30-day
    daily averages.

    Summary totals are avg * days rounded once, so they can differ by a few
    cents from the sum of the rounded daily rows.
    """
    forecast_days = parse_days(days, default=DEFAULT_FORECAST_DAYS, name="days", maximum=MAX_FORECAST_DAYS)
    now = now or utcnow()

    window = reporting_service.resolve_window(period=FORECAST_HISTORY_DAYS, now=now)
    historical = reporting_service.dashboard(window)

    avg_daily_inflow = historical["total_inflows"] / FORECAST_HISTORY_DAYS
    avg_daily_outflow = historical["total_outflows"] / FORECAST_HISTORY_DAYS
    starting_balance = historical["current_balance"]

    rows = project_balance(
        current_balance=starting_balance,
        avg_daily_inflow=avg_daily_inflow,
        avg_daily_outflow=avg_daily_outflow,
        days=forecast_days,
        start_date=now.date(),
    )

    ending_balance = rows[-1]["projected_balance"] if rows else round_money(starting_balance)
    total_inflows = avg_daily_inflow * forecast_days
    total_outflows = avg_daily_outflow * forecast_days

    return {
        "forecast": rows,
        "summary": {
            "forecast_period_days": forecast_days,
            "starting_balance": round_money(starting_balance),
            "projected_ending_balance": ending_balance,
            "total_projected_inflows": round_money(total_inflows),
            "total_projected_outflows": round_money(total_outflows),
            "net_projected_flow": round_money(total_inflows - total_outflows),
        },
        "assumptions": {
            "avg_daily_inflow": round_money(avg_daily_inflow),
            "avg_daily_outflow": round_money(avg_daily_outflow),
            "based_on_days": FORECAST_HISTORY_DAYS,
            "note": f"Forecast based on {FORECAST_HISTORY_DAYS}-day historical average",
        },
    }
