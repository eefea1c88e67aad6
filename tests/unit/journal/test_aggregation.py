"""Tests for deep-dive aggregation and calendar rollups."""

from datetime import datetime, timezone

import pytest

from trade_analytics.core.enums import TradeSide, TradeStatus
from trade_analytics.journal.aggregation import (
    NO_STRATEGY,
    aggregate,
    deep_dive,
    monthly_calendar,
    monthly_rollup,
    yearly_calendar,
)

from .conftest import make_trade


def _utc(*args) -> datetime:
    return datetime(*args, tzinfo=timezone.utc)


class TestAggregate:
    def test_sorted_by_pnl_descending(self):
        trades = [
            make_trade(-10.0, symbol="ETHUSDT"),
            make_trade(50.0, symbol="BTCUSDT"),
            make_trade(5.0, symbol="SOLUSDT"),
            make_trade(20.0, symbol="ETHUSDT"),
        ]
        groups = aggregate(trades, lambda t: t.symbol)
        assert [g.name for g in groups] == ["BTCUSDT", "ETHUSDT", "SOLUSDT"]
        eth = groups[1]
        assert eth.pnl == 10.0
        assert eth.count == 2
        assert eth.win_rate == 50.0

    def test_ties_keep_first_seen_order(self):
        trades = [make_trade(5.0, symbol="B"), make_trade(5.0, symbol="A")]
        assert [g.name for g in aggregate(trades, lambda t: t.symbol)] == ["B", "A"]

    def test_empty(self):
        assert aggregate([], lambda t: t.symbol) == []

    def test_to_dict_shape(self):
        group = aggregate([make_trade(3.0)], lambda t: t.symbol)[0]
        assert group.to_dict() == {"name": "BTCUSDT", "pnl": 3.0, "winRate": 100.0, "count": 1}


class TestDeepDive:
    def test_views_and_keys(self):
        trades = [
            # Monday 2024-01-01 09:30 UTC
            make_trade(10.0, entry=_utc(2024, 1, 1, 9, 30), strategy=None),
            make_trade(-4.0, entry=_utc(2024, 1, 2, 14, 0), side=TradeSide.SHORT,
                       exchange="Bybit"),
            make_trade(None, status=TradeStatus.OPEN, entry=_utc(2024, 1, 3)),
        ]
        dive = deep_dive(trades)
        assert set(dive) == {
            "by_symbol", "by_strategy", "by_day", "by_hour", "by_side", "by_exchange",
        }
        assert [g.name for g in dive["by_day"]] == ["Monday", "Tuesday"]
        assert [g.name for g in dive["by_hour"]] == ["9:00", "14:00"]
        assert [g.name for g in dive["by_side"]] == ["LONG", "SHORT"]
        assert dive["by_strategy"][0].name == NO_STRATEGY
        assert sum(g.count for g in dive["by_symbol"]) == 2

    def test_hour_bucket_uses_local_zone(self):
        trade = make_trade(1.0, entry=_utc(2024, 1, 1, 20, 0))
        dive = deep_dive([trade], tz="Asia/Kolkata")
        assert dive["by_hour"][0].name == "1:00"
        assert dive["by_day"][0].name == "Tuesday"

    def test_counts_positive(self):
        trades = [make_trade(float(i - 3), symbol=f"S{i % 2}") for i in range(6)]
        for groups in deep_dive(trades).values():
            assert all(g.count >= 1 for g in groups)
            pnls = [g.pnl for g in groups]
            assert pnls == sorted(pnls, reverse=True)


class TestCalendar:
    def test_march_2024_grid(self):
        trades = [
            make_trade(100.0, entry=_utc(2024, 3, 5, 10), exit=_utc(2024, 3, 5, 11)),
            make_trade(-30.0, entry=_utc(2024, 3, 5, 12), exit=_utc(2024, 3, 5, 13)),
            make_trade(20.0, entry=_utc(2024, 4, 1, 10)),
        ]
        grid = monthly_calendar(trades, 2024, 3)
        # March 1st 2024 is a Friday: five blanks in a Sunday-first grid.
        assert grid[:5] == [None] * 5
        assert len(grid) == 5 + 31
        day5 = grid[5 + 4]
        assert day5.day == 5
        assert day5.pnl == 70.0
        assert day5.count == 2
        assert day5.win_count == 1
        assert sum(c.count for c in grid if c) == 2

    def test_sunday_start_has_no_blanks(self):
        # September 1st 2024 is a Sunday.
        grid = monthly_calendar([], 2024, 9)
        assert grid[0] is not None
        assert grid[0].day == 1

    def test_buckets_by_exit_date(self):
        trade = make_trade(5.0, entry=_utc(2024, 2, 28, 10), exit=_utc(2024, 3, 1, 10))
        march = monthly_calendar([trade], 2024, 3)
        assert [c.day for c in march if c and c.count] == [1]

    def test_yearly_calendar_has_twelve_months(self):
        months = yearly_calendar([make_trade(1.0, entry=_utc(2024, 6, 1))], 2024)
        assert len(months) == 12
        assert sum(c.count for c in months[5] if c) == 1

    def test_monthly_rollup(self):
        trades = [
            make_trade(10.0, entry=_utc(2024, 1, 10)),
            make_trade(-5.0, entry=_utc(2024, 3, 2)),
            make_trade(7.0, entry=_utc(2024, 1, 20)),
            make_trade(7.0, entry=_utc(2023, 12, 20)),
        ]
        rollup = monthly_rollup(trades, 2024)
        assert [g.name for g in rollup] == ["2024-01", "2024-03"]
        assert rollup[0].pnl == pytest.approx(17.0)

    def test_calendar_day_to_dict(self):
        grid = monthly_calendar([make_trade(2.0, entry=_utc(2024, 9, 1, 8))], 2024, 9)
        assert grid[0].to_dict() == {"day": 1, "pnl": 2.0, "wins": 1, "count": 1}
