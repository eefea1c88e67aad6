"""Property tests for the statistics, equity and aggregation folds.

Uses hypothesis to verify:
- Every closed trade is either a win or a loss
- Profit factor sentinels for one-sided sequences
- A never-falling equity curve has zero drawdown and zero recovery time
- Aggregation groups are ranked by pnl and never empty
"""

from datetime import datetime, timedelta, timezone

from hypothesis import given, settings, strategies as st

from trade_analytics.core.enums import TradeStatus
from trade_analytics.core.models import Trade
from trade_analytics.journal.aggregation import aggregate
from trade_analytics.journal.equity import track_equity
from trade_analytics.journal.statistics import PROFIT_FACTOR_CAP, compute_statistics

_BASE = datetime(2024, 1, 1, tzinfo=timezone.utc)

# Whole cents keep the ratios away from subnormal denominators.
pnl_values = st.integers(min_value=-100_000_000, max_value=100_000_000).map(lambda c: c / 100)
gains = st.integers(min_value=0, max_value=100_000_000).map(lambda c: c / 100)
losses = st.integers(min_value=-100_000_000, max_value=0).map(lambda c: c / 100)


def _closed(pnls: list[float], symbols: list[str] | None = None) -> list[Trade]:
    return [
        Trade(
            id=f"p{i}",
            symbol=(symbols[i] if symbols else "BTCUSDT"),
            entry_price=100.0,
            quantity=1.0,
            status=TradeStatus.CLOSED,
            pnl=pnl,
            entry_date=_BASE + timedelta(hours=i),
            exit_date=_BASE + timedelta(hours=i, minutes=30),
        )
        for i, pnl in enumerate(pnls)
    ]


@given(pnls=st.lists(pnl_values, max_size=60))
def test_wins_plus_losses_equals_total(pnls):
    stats = compute_statistics(_closed(pnls))
    assert stats.winning_trades + stats.losing_trades == stats.total_trades == len(pnls)
    assert 0.0 <= stats.win_rate <= 100.0


@given(pnls=st.lists(gains.filter(lambda p: p > 0), min_size=1, max_size=40))
def test_no_losses_hits_profit_factor_cap(pnls):
    assert compute_statistics(_closed(pnls)).profit_factor == PROFIT_FACTOR_CAP


@given(pnls=st.lists(losses, min_size=1, max_size=40))
def test_no_wins_has_zero_profit_factor(pnls):
    stats = compute_statistics(_closed(pnls))
    assert stats.profit_factor == 0.0
    assert stats.winning_trades == 0


@given(pnls=st.lists(pnl_values, max_size=60))
def test_ratios_are_finite(pnls):
    data = compute_statistics(_closed(pnls)).to_dict()
    for key, value in data.items():
        if isinstance(value, float):
            assert value == value, key
            assert abs(value) != float("inf"), key


@given(pnls=st.lists(gains, max_size=40))
@settings(max_examples=50)
def test_monotone_equity_has_no_drawdown(pnls):
    stats = track_equity(_closed(pnls))
    assert stats.max_drawdown == 0.0
    assert stats.max_recovery_seconds == 0.0


@given(pnls=st.lists(pnl_values, max_size=60))
def test_drawdown_non_negative_and_bounded(pnls):
    stats = track_equity(_closed(pnls))
    assert stats.max_drawdown >= 0.0
    assert stats.peak_equity >= 0.0
    if stats.samples:
        lowest = min(s.balance for s in stats.samples)
        assert stats.max_drawdown <= stats.peak_equity - min(lowest, 0.0) + 1e-6


@given(
    rows=st.lists(
        st.tuples(st.sampled_from(["BTCUSDT", "ETHUSDT", "SOLUSDT", "XRPUSDT"]), pnl_values),
        max_size=60,
    )
)
def test_groups_ranked_and_non_empty(rows):
    trades = _closed([p for _, p in rows], [s for s, _ in rows])
    groups = aggregate(trades, lambda t: t.symbol)
    assert all(g.count >= 1 for g in groups)
    assert sum(g.count for g in groups) == len(trades)
    pnls = [g.pnl for g in groups]
    assert pnls == sorted(pnls, reverse=True)
