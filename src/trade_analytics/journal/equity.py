"""Equity curve, drawdown and recovery tracking.

A single forward pass over the ascending closed-trade sequence.  Each step
is a pure function of the previous :class:`EquityState` and one trade, so
the fold can be unit-tested without any surrounding report machinery.

Drawdown is measured in currency (peak minus current balance), not as a
percentage.  Recovery time is the wall-clock gap between the peak that
opened a drawdown and the next strictly higher peak; back-to-back peaks
with no drawdown between them do not count as a recovery.

Usage::

    stats = track_equity(closed_sequence(trades))
    print(stats.max_drawdown, stats.max_recovery_days)
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field, replace
from datetime import datetime, timedelta
from itertools import accumulate
from typing import Any

from ..core.models import Trade

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EquitySample:
    """Point on the equity curve after one closed trade."""

    timestamp: datetime | None
    balance: float
    peak: float
    drawdown: float


@dataclass(frozen=True)
class EquityState:
    """Accumulator for the equity fold."""

    balance: float = 0.0
    peak: float = 0.0
    peak_at: datetime | None = None
    in_drawdown: bool = False
    max_drawdown: float = 0.0
    max_recovery: timedelta = timedelta(0)
    last_sample: EquitySample | None = None


def advance_equity(state: EquityState, trade: Trade) -> EquityState:
    """Fold step: book one closed trade into the running equity state."""
    ts = trade.settled_at
    # The curve starts at an implicit zero peak dated at the first trade.
    peak_at = state.peak_at if state.peak_at is not None else ts
    balance = state.balance + trade.realized_pnl

    peak = state.peak
    in_drawdown = state.in_drawdown
    max_recovery = state.max_recovery

    if balance > peak:
        if in_drawdown and ts is not None and peak_at is not None:
            recovery = ts - peak_at
            if recovery > max_recovery:
                max_recovery = recovery
        peak = balance
        peak_at = ts
        in_drawdown = False
    elif balance < peak:
        in_drawdown = True

    drawdown = peak - balance
    sample = EquitySample(timestamp=ts, balance=balance, peak=peak, drawdown=drawdown)
    return replace(
        state,
        balance=balance,
        peak=peak,
        peak_at=peak_at,
        in_drawdown=in_drawdown,
        max_drawdown=max(state.max_drawdown, drawdown),
        max_recovery=max_recovery,
        last_sample=sample,
    )


@dataclass(frozen=True)
class EquityStats:
    """Result of the equity pass."""

    final_balance: float = 0.0
    peak_equity: float = 0.0
    max_drawdown: float = 0.0
    max_recovery_time: timedelta = timedelta(0)
    samples: tuple[EquitySample, ...] = field(default=(), repr=False)

    @property
    def max_recovery_seconds(self) -> float:
        return self.max_recovery_time.total_seconds()

    @property
    def max_recovery_days(self) -> float:
        return self.max_recovery_seconds / 86_400

    def to_dict(self) -> dict[str, Any]:
        return {
            "final_balance": self.final_balance,
            "peak_equity": self.peak_equity,
            "max_drawdown": self.max_drawdown,
            "max_recovery_seconds": self.max_recovery_seconds,
            "max_recovery_days": self.max_recovery_days,
        }


def track_equity(closed: Sequence[Trade]) -> EquityStats:
    """Run the equity fold over an ascending closed-trade sequence."""
    states = list(accumulate(
        (t for t in closed if t.is_closed),
        advance_equity,
        initial=EquityState(),
    ))
    state = states[-1]
    samples = tuple(s.last_sample for s in states[1:])
    if samples:
        logger.debug(
            "track_equity: %d samples, peak=%.2f, max_dd=%.2f",
            len(samples),
            state.peak,
            state.max_drawdown,
        )
    return EquityStats(
        final_balance=state.balance,
        peak_equity=state.peak,
        max_drawdown=state.max_drawdown,
        max_recovery_time=state.max_recovery,
        samples=samples,
    )


def recovery_factor(net_pnl: float, max_drawdown: float) -> float:
    """Net pnl over max drawdown, 0 when there was no drawdown."""
    return net_pnl / max_drawdown if max_drawdown > 0 else 0.0
