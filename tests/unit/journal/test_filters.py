"""Tests for the trade filter — facets, date windows and sequencing."""

from datetime import date, datetime, timedelta, timezone

import pytest
from pydantic import ValidationError

from trade_analytics.core.clock import FixedClock
from trade_analytics.core.enums import TradeSide, TradeStatus, TradeType, WindowType
from trade_analytics.journal.filters import (
    ALL,
    DateWindow,
    FacetFilters,
    closed_sequence,
    facet_options,
    filter_trades,
    parse_quality_label,
)

from .conftest import BASE_TIME, make_trade


class TestFacetFilters:
    """Facet predicates."""

    def test_no_facets_keeps_everything(self, mixed_pool):
        assert filter_trades(mixed_pool) == mixed_pool

    def test_all_is_inactive(self, mixed_pool):
        facets = FacetFilters(symbol=ALL, strategy=ALL, side=ALL)
        assert len(filter_trades(mixed_pool, facets)) == len(mixed_pool)

    def test_symbol(self, mixed_pool):
        out = filter_trades(mixed_pool, FacetFilters(symbol="BTCUSDT"))
        assert {t.symbol for t in out} == {"BTCUSDT"}
        assert len(out) == 3

    def test_side(self, mixed_pool):
        out = filter_trades(mixed_pool, FacetFilters(side=TradeSide.SHORT))
        assert [t.symbol for t in out] == ["ETHUSDT"]

    def test_side_accepts_string(self, mixed_pool):
        out = filter_trades(mixed_pool, FacetFilters(side="SHORT"))
        assert len(out) == 1

    def test_exchange(self, mixed_pool):
        out = filter_trades(mixed_pool, FacetFilters(exchange="Bybit"))
        assert len(out) == 1

    def test_strategy(self, mixed_pool):
        out = filter_trades(mixed_pool, FacetFilters(strategy="Reversal"))
        assert len(out) == 1

    def test_setup_membership(self, mixed_pool):
        out = filter_trades(mixed_pool, FacetFilters(setup="Double Bottom"))
        assert len(out) == 1

    def test_quality_label(self, mixed_pool):
        out = filter_trades(mixed_pool, FacetFilters(quality="4 Stars"))
        assert len(out) == 1
        assert out[0].exit_quality == 4

    def test_label_matches_tags_and_mental_state(self, mixed_pool):
        assert len(filter_trades(mixed_pool, FacetFilters(label="FOMO"))) == 1
        assert len(filter_trades(mixed_pool, FacetFilters(label="Calm"))) == 1

    def test_exclude_backtest(self, mixed_pool):
        out = filter_trades(mixed_pool, FacetFilters(exclude_backtest=True))
        assert all(t.trade_type != TradeType.DATA for t in out)
        assert len(out) == 4

    def test_account(self):
        pool = [make_trade(1.0, account_id="a1"), make_trade(2.0, account_id="a2")]
        out = filter_trades(pool, FacetFilters(account_id="a2"))
        assert [t.pnl for t in out] == [2.0]

    def test_pool_not_mutated(self, mixed_pool):
        before = list(mixed_pool)
        filter_trades(mixed_pool, FacetFilters(symbol="BTCUSDT"))
        assert mixed_pool == before

    def test_parse_quality_label(self):
        assert parse_quality_label("3 Stars") == 3
        assert parse_quality_label("Stars") is None


class TestDateWindow:
    """Window construction and filtering."""

    def test_relative_requires_days(self):
        with pytest.raises(ValidationError):
            DateWindow(type=WindowType.RELATIVE)

    def test_absolute_requires_bounds(self):
        with pytest.raises(ValidationError):
            DateWindow(type=WindowType.ABSOLUTE, start=date(2024, 1, 1))

    def test_labels(self):
        assert DateWindow.lifetime().label == "Lifetime"
        assert DateWindow.relative(30).label == "Last 30 Days"
        assert DateWindow.absolute(date(2024, 1, 1), date(2024, 1, 31)).label == (
            "2024-01-01 - 2024-01-31"
        )

    def test_relative_window_reads_clock(self):
        clock = FixedClock(datetime(2024, 3, 15, 12, 0, tzinfo=timezone.utc))
        inside = make_trade(1.0, entry=datetime(2024, 3, 10, tzinfo=timezone.utc))
        outside = make_trade(2.0, entry=datetime(2024, 2, 1, tzinfo=timezone.utc))
        out = filter_trades([inside, outside], window=DateWindow.relative(7), clock=clock)
        assert out == [inside]

    def test_relative_zero_days_keeps_only_now(self):
        now = datetime(2024, 3, 15, 12, 0, tzinfo=timezone.utc)
        clock = FixedClock(now)
        at_now = make_trade(1.0, entry=now)
        earlier = make_trade(1.0, entry=now - timedelta(seconds=1))
        out = filter_trades([at_now, earlier], window=DateWindow.relative(0), clock=clock)
        assert out == [at_now]

    def test_absolute_end_day_inclusive(self):
        late = make_trade(1.0, entry=datetime(2024, 1, 31, 23, 59, 59, tzinfo=timezone.utc))
        next_day = make_trade(1.0, entry=datetime(2024, 2, 1, 0, 0, 0, tzinfo=timezone.utc))
        window = DateWindow.absolute(date(2024, 1, 1), date(2024, 1, 31))
        assert filter_trades([late, next_day], window=window) == [late]

    def test_absolute_same_day(self):
        trade = make_trade(1.0, entry=datetime(2024, 1, 5, 8, 0, tzinfo=timezone.utc))
        window = DateWindow.absolute(date(2024, 1, 5), date(2024, 1, 5))
        assert filter_trades([trade], window=window) == [trade]

    def test_absolute_start_after_end_is_empty(self):
        trade = make_trade(1.0, entry=datetime(2024, 1, 5, tzinfo=timezone.utc))
        window = DateWindow.absolute(date(2024, 1, 10), date(2024, 1, 1))
        assert filter_trades([trade], window=window) == []

    def test_absolute_uses_local_calendar(self):
        # 2024-01-05 20:00 UTC is already 2024-01-06 in Kolkata.
        trade = make_trade(1.0, entry=datetime(2024, 1, 5, 20, 0, tzinfo=timezone.utc))
        window = DateWindow.absolute(date(2024, 1, 6), date(2024, 1, 6))
        assert filter_trades([trade], window=window, tz="Asia/Kolkata") == [trade]
        assert filter_trades([trade], window=window, tz="UTC") == []

    def test_unparseable_entry_excluded_from_windows(self):
        bad = make_trade(1.0, entry="not a date")
        assert filter_trades([bad], window=DateWindow.relative(30)) == []
        assert filter_trades([bad]) == [bad]


class TestSequencing:
    """closed_sequence ordering."""

    def test_only_closed(self, mixed_pool):
        closed = closed_sequence(mixed_pool)
        assert all(t.status == TradeStatus.CLOSED for t in closed)
        assert len(closed) == 4

    def test_orders_by_exit_then_entry(self):
        a = make_trade(1.0, entry=BASE_TIME, exit=BASE_TIME + timedelta(days=5))
        b = make_trade(2.0, entry=BASE_TIME + timedelta(days=1))
        assert closed_sequence([a, b]) == [b, a]

    def test_stable_for_equal_timestamps(self):
        a = make_trade(1.0, entry=BASE_TIME)
        b = make_trade(2.0, entry=BASE_TIME)
        assert closed_sequence([a, b]) == [a, b]
        assert closed_sequence([b, a]) == [b, a]

    def test_unparseable_dates_sort_first(self):
        good = make_trade(1.0, entry=BASE_TIME)
        bad = make_trade(2.0, entry="garbage")
        assert closed_sequence([good, bad]) == [bad, good]


class TestFacetOptions:
    def test_options_lead_with_all(self, mixed_pool):
        options = facet_options(mixed_pool)
        for values in options.values():
            assert values[0] == ALL
        assert options["symbols"] == [ALL, "BTCUSDT", "ETHUSDT", "SOLUSDT"]
        assert options["qualities"] == [ALL, "4 Stars"]
        assert "Double Bottom" in options["setups"]
