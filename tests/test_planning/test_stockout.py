"""Tests for the stockout projector."""

from datetime import date, timedelta

import pytest

from restock_engine.errors import InvalidInput
from restock_engine.planning.records import DemandHistoryPoint
from restock_engine.planning.stockout import (
    NO_STOCKOUT,
    classify_days,
    days_inventory_on_hand,
    fill_rate,
    inventory_turnover,
    project_days_until_stockout,
    project_stockout,
    stockout_frequency,
)


class TestDaysUntilStockout:
    def test_basic(self):
        assert project_days_until_stockout(100, 10) == 10.0

    def test_rounds(self):
        assert project_days_until_stockout(50, 10.5) == pytest.approx(4.76)

    def test_empty_shelf(self):
        assert project_days_until_stockout(0, 10) == 0.0
        assert project_days_until_stockout(-5, 10) == 0.0

    def test_no_demand(self):
        assert project_days_until_stockout(100, 0) is NO_STOCKOUT
        assert project_days_until_stockout(0, 0) is NO_STOCKOUT

    def test_never_negative(self):
        for stock in (-10, 0, 1, 1000):
            assert project_days_until_stockout(stock, 3.3) >= 0


class TestClassifyDays:
    @pytest.mark.parametrize(
        "days,expected",
        [(None, "no_demand"), (0, "stockout"), (2.5, "critical"), (6, "warning"), (30, "ok")],
    )
    def test_bands(self, days, expected):
        assert classify_days(days) == expected


class TestProjectStockout:
    def test_insufficient_data(self):
        projection = project_stockout("p1", 40, [])
        assert projection.status == "insufficient_data"
        assert projection.days_until_stockout is None

    def test_from_history(self):
        start = date(2024, 3, 1)
        history = [DemandHistoryPoint("p1", start + timedelta(days=i), u) for i, u in enumerate([8, 12, 10])]
        projection = project_stockout("p1", 25, history)
        assert projection.average_daily_demand == pytest.approx(10.0)
        assert projection.days_until_stockout == 2.5
        assert projection.status == "critical"


class TestInventoryMetrics:
    def test_turnover(self):
        assert inventory_turnover(120_000, 20_000) == 6.0

    def test_turnover_without_inventory(self):
        assert inventory_turnover(5_000, 0) == 0.0

    def test_days_on_hand(self):
        assert days_inventory_on_hand(300, 12) == 25.0

    def test_days_on_hand_without_demand(self):
        assert days_inventory_on_hand(300, 0) is NO_STOCKOUT

    def test_fill_rate(self):
        assert fill_rate(950, 1000) == 0.95

    def test_fill_rate_without_demand(self):
        assert fill_rate(0, 0) == 1.0

    def test_fill_rate_cannot_exceed_one(self):
        with pytest.raises(InvalidInput) as exc:
            fill_rate(11, 10)
        assert exc.value.field == "demand_met"

    def test_stockout_frequency(self):
        assert stockout_frequency(3, 30) == 0.1

    def test_stockout_frequency_empty_period(self):
        assert stockout_frequency(0, 0) == 0.0

    def test_negative_rejected(self):
        with pytest.raises(InvalidInput) as exc:
            inventory_turnover(-1, 10)
        assert exc.value.field == "cost_of_goods_sold"
