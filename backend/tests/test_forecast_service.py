"""
Forecast tests.

Verifies:
- Straight-line projection from trailing 30-day averages
- Half-away-from-zero rounding
- Summary and assumptions blocks
"""

from datetime import date, datetime, timedelta

import pytest

from shopledger.models import CashFlowTransaction
from shopledger.services import forecast_service
from shopledger.services.reporting_service import ReportError

NOW = datetime(2026, 3, 31, 12, 0)


class TestRoundMoney:

    @pytest.mark.parametrize(
        "value,expected",
        [
            (0.125, 0.13),
            (-0.125, -0.13),
            (2.5, 2.5),
            (106.0, 106.0),
            (0.004, 0.0),
        ],
    )
    def test_half_away_from_zero(self, value, expected):
        assert forecast_service.round_money(value) == pytest.approx(expected)


class TestProjectBalance:

    def test_linear_projection(self):
        rows = forecast_service.project_balance(
            current_balance=100,
            avg_daily_inflow=10,
            avg_daily_outflow=4,
            days=2,
            start_date=date(2026, 3, 31),
        )

        assert rows == [
            {
                "date": "2026-04-01",
                "projected_balance": 106.0,
                "projected_inflow": 10.0,
                "projected_outflow": 4.0,
                "net_projected_flow": 6.0,
            },
            {
                "date": "2026-04-02",
                "projected_balance": 112.0,
                "projected_inflow": 10.0,
                "projected_outflow": 4.0,
                "net_projected_flow": 6.0,
            },
        ]

    def test_zero_days(self):
        rows = forecast_service.project_balance(
            current_balance=100, avg_daily_inflow=1, avg_daily_outflow=1, days=0, start_date=date(2026, 1, 1)
        )
        assert rows == []


class TestForecast:

    @pytest.fixture
    def history(self, db_session):
        db_session.add_all([
            CashFlowTransaction(type="inflow", category="sales", amount=300, date=NOW - timedelta(days=1)),
            CashFlowTransaction(type="outflow", category="rent", amount=120, date=NOW - timedelta(days=2)),
            # Older than the 30-day window: affects balance only
            CashFlowTransaction(type="outflow", category="rent", amount=80, date=NOW - timedelta(days=40)),
        ])
        db_session.commit()

    def test_forecast_from_trailing_average(self, history):
        result = forecast_service.forecast(days=3, now=NOW)

        assert [row["date"] for row in result["forecast"]] == ["2026-04-01", "2026-04-02", "2026-04-03"]
        assert [row["projected_balance"] for row in result["forecast"]] == [106.0, 112.0, 118.0]
        assert result["summary"] == {
            "forecast_period_days": 3,
            "starting_balance": 100.0,
            "projected_ending_balance": 118.0,
            "total_projected_inflows": 30.0,
            "total_projected_outflows": 12.0,
            "net_projected_flow": 18.0,
        }
        assert result["assumptions"]["avg_daily_inflow"] == 10.0
        assert result["assumptions"]["avg_daily_outflow"] == 4.0
        assert result["assumptions"]["based_on_days"] == 30

    def test_default_horizon_is_ninety_days(self, history):
        result = forecast_service.forecast(now=NOW)
        assert len(result["forecast"]) == 90
        assert result["summary"]["forecast_period_days"] == 90

    def test_empty_history_projects_flat(self, db_session):
        result = forecast_service.forecast(days=5, now=NOW)
        assert {row["projected_balance"] for row in result["forecast"]} == {0.0}

    @pytest.mark.parametrize("days", ["0", "-1", "ten", "100000"])
    def test_invalid_days(self, db_session, days):
        with pytest.raises(ReportError):
            forecast_service.forecast(days=days, now=NOW)
