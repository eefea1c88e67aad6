"""Tests for the equity / drawdown / recovery fold."""

from datetime import timedelta

import pytest

from trade_analytics.journal.equity import (
    EquityState,
    advance_equity,
    recovery_factor,
    track_equity,
)

from .conftest import BASE_TIME, make_sequence, make_trade


class TestDrawdown:
    def test_empty(self):
        stats = track_equity([])
        assert stats.max_drawdown == 0.0
        assert stats.max_recovery_time == timedelta(0)
        assert stats.samples == ()

    def test_monotone_curve_has_no_drawdown(self):
        stats = track_equity(make_sequence([10.0, 20.0, 5.0]))
        assert stats.max_drawdown == 0.0
        assert stats.max_recovery_seconds == 0.0
        assert stats.peak_equity == 35.0
        assert stats.final_balance == 35.0

    def test_currency_drawdown(self):
        stats = track_equity(make_sequence([100.0, -30.0, -20.0, 10.0]))
        assert stats.max_drawdown == 50.0
        assert stats.final_balance == 60.0

    def test_first_trade_loss_measured_from_zero(self):
        stats = track_equity(make_sequence([-40.0, 10.0]))
        assert stats.max_drawdown == 40.0
        assert stats.peak_equity == 0.0

    def test_samples_follow_sequence(self):
        stats = track_equity(make_sequence([10.0, -5.0]))
        assert [s.balance for s in stats.samples] == [10.0, 5.0]
        assert [s.drawdown for s in stats.samples] == [0.0, 5.0]


class TestRecovery:
    def test_recovery_measured_peak_to_new_peak(self):
        # Exits at day 0, 1, 2, 3 (+1h each).  Peak at day 0, recovered on day 3.
        stats = track_equity(make_sequence([100.0, -50.0, 20.0, 40.0]))
        assert stats.max_recovery_time == timedelta(days=3)
        assert stats.max_recovery_days == pytest.approx(3.0)

    def test_unrecovered_drawdown_has_no_recovery(self):
        stats = track_equity(make_sequence([100.0, -50.0, 10.0]))
        assert stats.max_drawdown == 50.0
        assert stats.max_recovery_time == timedelta(0)

    def test_recovery_from_initial_loss(self):
        # Implicit zero peak dated at the first trade's exit.
        stats = track_equity(make_sequence([-10.0, 20.0]))
        assert stats.max_recovery_time == timedelta(days=1)

    def test_equal_balance_is_not_a_new_peak(self):
        stats = track_equity(make_sequence([100.0, -50.0, 50.0, 1.0]))
        assert stats.max_recovery_time == timedelta(days=3)

    def test_longest_recovery_wins(self):
        trades = make_sequence([10.0, -5.0, 10.0, -5.0, -5.0, -5.0, 30.0])
        stats = track_equity(trades)
        # First recovery: day 0 -> day 2; second: day 2 -> day 6.
        assert stats.max_recovery_time == timedelta(days=4)


class TestFoldStep:
    def test_advance_is_pure(self):
        state = EquityState()
        trade = make_trade(10.0, entry=BASE_TIME)
        after = advance_equity(state, trade)
        assert state.balance == 0.0
        assert after.balance == 10.0
        assert after.peak_at == trade.settled_at

    def test_step_carries_only_latest_sample(self):
        first = advance_equity(EquityState(), make_trade(10.0, entry=BASE_TIME))
        second = advance_equity(first, make_trade(-4.0, entry=BASE_TIME + timedelta(days=1)))
        assert first.last_sample.balance == 10.0
        assert second.last_sample.balance == 6.0
        assert second.last_sample.drawdown == 4.0

    def test_long_sequence_keeps_every_sample(self):
        pnls = [1.0, -1.0] * 500
        stats = track_equity(make_sequence(pnls))
        assert len(stats.samples) == 1000
        assert stats.samples[-1].balance == 0.0
        assert stats.max_drawdown == 1.0


class TestRecoveryFactor:
    def test_ratio(self):
        assert recovery_factor(100.0, 50.0) == 2.0

    def test_zero_drawdown(self):
        assert recovery_factor(100.0, 0.0) == 0.0

    def test_to_dict(self):
        data = track_equity(make_sequence([10.0, -4.0])).to_dict()
        assert data["max_drawdown"] == 4.0
        assert set(data) >= {"final_balance", "peak_equity", "max_recovery_days"}
