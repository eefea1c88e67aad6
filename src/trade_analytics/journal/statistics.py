"""Performance statistics over a closed-trade sequence.

Computes the scalar metrics shown on the analytics screen: win rate,
profit factor, expectancy, averages and extremes, per-trade Sharpe and
Sortino, and win/loss streaks.

Conventions
-----------
* A trade with ``pnl > 0`` is a win; everything else (including exactly
  zero) is a loss, both for rates and for streaks.
* Every ratio has a defined fallback for empty or one-sided input.  No NaN,
  infinity or ZeroDivisionError leaves this module.
* Sharpe is per trade and unannualized.  Downside deviation squares only
  negative pnl values but divides by the full trade count.

Usage::

    closed = closed_sequence(filter_trades(pool, facets, window))
    stats = compute_statistics(closed)
    print(stats.win_rate, stats.profit_factor, stats.active_streak_type)
"""

from __future__ import annotations

import math
from collections.abc import Sequence
from dataclasses import asdict, dataclass, replace
from functools import reduce
from typing import Any

from ..core.enums import StreakType
from ..core.models import Trade

# Stand-in for an infinite profit factor (no losing pnl at all).
PROFIT_FACTOR_CAP = 999.0

# Realized R:R reported when there are wins but no losses.
REALIZED_RR_CAP = 10.0


@dataclass(frozen=True)
class StreakState:
    """Accumulator for the streak fold."""

    current_win: int = 0
    current_loss: int = 0
    max_win: int = 0
    max_loss: int = 0

    @property
    def active_count(self) -> int:
        return self.current_win or self.current_loss

    @property
    def active_type(self) -> StreakType:
        if self.current_win:
            return StreakType.WIN
        if self.current_loss:
            return StreakType.LOSS
        return StreakType.NONE


def advance_streak(state: StreakState, pnl: float) -> StreakState:
    """Fold step: extend the running streak with one trade outcome."""
    if pnl > 0:
        won = state.current_win + 1
        return replace(
            state,
            current_win=won,
            current_loss=0,
            max_win=max(state.max_win, won),
        )
    lost = state.current_loss + 1
    return replace(
        state,
        current_win=0,
        current_loss=lost,
        max_loss=max(state.max_loss, lost),
    )


def fold_streaks(pnls: Sequence[float]) -> StreakState:
    """Run :func:`advance_streak` over an ascending pnl sequence."""
    return reduce(advance_streak, pnls, StreakState())


@dataclass(frozen=True)
class PerformanceStats:
    """Scalar metrics for one closed-trade sequence."""

    total_trades: int = 0
    winning_trades: int = 0
    losing_trades: int = 0
    win_rate: float = 0.0
    gross_win: float = 0.0
    gross_loss: float = 0.0
    profit_factor: float = 0.0
    net_pnl: float = 0.0
    expectancy: float = 0.0
    avg_win: float = 0.0
    avg_loss: float = 0.0
    realized_rr: float = 0.0
    highest_win: float = 0.0
    highest_loss: float = 0.0
    highest_win_pct: float = 0.0
    highest_loss_pct: float = 0.0
    mean_pnl: float = 0.0
    variance: float = 0.0
    std_dev: float = 0.0
    sharpe_ratio: float = 0.0
    downside_deviation: float = 0.0
    sortino_ratio: float = 0.0
    max_win_streak: int = 0
    max_loss_streak: int = 0
    active_streak_count: int = 0
    active_streak_type: StreakType = StreakType.NONE
    avg_hold_seconds: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["active_streak_type"] = self.active_streak_type.value
        return data


def profit_factor(gross_win: float, gross_loss: float) -> float:
    """gross_win / gross_loss with the 999 / 0 sentinels."""
    if gross_loss > 0:
        return gross_win / gross_loss
    return PROFIT_FACTOR_CAP if gross_win > 0 else 0.0


def compute_statistics(closed: Sequence[Trade]) -> PerformanceStats:
    """Compute every scalar metric over an ascending closed-trade sequence.

    Open trades that slip into ``closed`` are ignored.
    """
    trades = [t for t in closed if t.is_closed]
    n = len(trades)
    if n == 0:
        return PerformanceStats()

    pnls = [t.realized_pnl for t in trades]
    winners = [t for t in trades if t.is_win]
    losers = [t for t in trades if not t.is_win]

    gross_win = sum(t.realized_pnl for t in winners)
    gross_loss = abs(sum(t.realized_pnl for t in losers))
    net_pnl = gross_win - gross_loss

    avg_win = gross_win / len(winners) if winners else 0.0
    avg_loss = -gross_loss / len(losers) if losers else 0.0
    if avg_loss != 0:
        realized_rr = avg_win / abs(avg_loss)
    else:
        realized_rr = REALIZED_RR_CAP if avg_win > 0 else 0.0

    # Extremes start from 0 so a one-sided sequence reports 0 for the other side.
    highest_win = max((t.realized_pnl for t in winners), default=0.0)
    highest_loss = min((t.realized_pnl for t in losers), default=0.0)
    highest_win_pct = max([0.0, *(t.pnl_percentage or 0.0 for t in winners)])
    highest_loss_pct = min([0.0, *(t.pnl_percentage or 0.0 for t in losers)])

    mean_pnl = sum(pnls) / n
    variance = sum((p - mean_pnl) ** 2 for p in pnls) / n
    std_dev = math.sqrt(variance)
    sharpe = mean_pnl / std_dev if std_dev > 0 else 0.0

    downside_var = sum(p ** 2 for p in pnls if p < 0) / n
    downside_dev = math.sqrt(downside_var)
    sortino = mean_pnl / downside_dev if downside_dev > 0 else 0.0

    streaks = fold_streaks(pnls)
    avg_hold = sum(t.hold_duration_seconds for t in trades) / n

    return PerformanceStats(
        total_trades=n,
        winning_trades=len(winners),
        losing_trades=len(losers),
        win_rate=len(winners) / n * 100,
        gross_win=gross_win,
        gross_loss=gross_loss,
        profit_factor=profit_factor(gross_win, gross_loss),
        net_pnl=net_pnl,
        expectancy=net_pnl / n,
        avg_win=avg_win,
        avg_loss=avg_loss,
        realized_rr=realized_rr,
        highest_win=highest_win,
        highest_loss=highest_loss,
        highest_win_pct=highest_win_pct,
        highest_loss_pct=highest_loss_pct,
        mean_pnl=mean_pnl,
        variance=variance,
        std_dev=std_dev,
        sharpe_ratio=sharpe,
        downside_deviation=downside_dev,
        sortino_ratio=sortino,
        max_win_streak=streaks.max_win,
        max_loss_streak=streaks.max_loss,
        active_streak_count=streaks.active_count,
        active_streak_type=streaks.active_type,
        avg_hold_seconds=avg_hold,
    )
