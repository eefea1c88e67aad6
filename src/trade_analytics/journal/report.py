"""Report assembly — filter, sequence and measure in one call.

Glues the pipeline together::

    pool --filter_trades--> subset --closed_sequence--> closed
    closed --> compute_statistics / track_equity / estimate_fees
    subset --> deep_dive

and shapes the result for its two consumers: the analytics screen
(:meth:`Report.to_dict`) and the assistant hand-off
(:func:`seek_analysis_payload`).

Usage::

    report = build_report(pool, FacetFilters(symbol="BTCUSDT"),
                          DateWindow.relative(30))
    payload = seek_analysis_payload(report)
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Any

from ..core.clock import IClock, WallClock
from ..core.config import Settings
from ..core.enums import TradeType
from ..core.models import Trade, TradeSummary
from ..observability import get_run_id
from .aggregation import AggregationGroup, deep_dive
from .equity import EquityStats, recovery_factor, track_equity
from .fees import FeeSummary, estimate_fees
from .filters import DateWindow, FacetFilters, closed_sequence, filter_trades
from .statistics import PerformanceStats, compute_statistics

logger = logging.getLogger(__name__)

# Running profit factor shown on the chart before the first loss.
SERIES_PROFIT_FACTOR_CAP = 5.0

BACKTEST_PERIOD = "DATA_SESSION"

# Payload key for each deep-dive view.
_DEEP_DIVE_KEYS = {
    "by_symbol": "bySymbol",
    "by_strategy": "byStrategy",
    "by_day": "byDay",
    "by_hour": "byHour",
    "by_side": "bySide",
    "by_exchange": "byExchange",
}


@dataclass(frozen=True)
class SeriesPoint:
    """Running metrics after the n-th closed trade."""

    label: str
    timestamp: str
    cumulative_pnl: float
    win_rate: float
    profit_factor: float
    avg_win: float
    avg_loss: float
    pnl: float

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.label,
            "date": self.timestamp,
            "cumulativePnl": self.cumulative_pnl,
            "winRate": self.win_rate,
            "profitFactor": self.profit_factor,
            "avgWin": self.avg_win,
            "avgLoss": self.avg_loss,
            "pnl": self.pnl,
        }


def performance_series(closed: Sequence[Trade]) -> list[SeriesPoint]:
    """Per-trade running metrics for the performance chart."""
    points: list[SeriesPoint] = []
    running = 0.0
    wins = 0
    win_pnl = 0.0
    loss_pnl = 0.0
    for index, trade in enumerate(closed, start=1):
        pnl = trade.realized_pnl
        running += pnl
        if pnl > 0:
            wins += 1
            win_pnl += pnl
        else:
            loss_pnl += abs(pnl)
        losses = index - wins

        if loss_pnl == 0:
            pf = SERIES_PROFIT_FACTOR_CAP if win_pnl > 0 else 0.0
        else:
            pf = win_pnl / loss_pnl

        points.append(SeriesPoint(
            label=f"Trade {index}",
            timestamp=trade.exit_date or trade.entry_date,
            cumulative_pnl=running,
            win_rate=wins / index * 100,
            profit_factor=pf,
            avg_win=win_pnl / wins if wins else 0.0,
            avg_loss=loss_pnl / losses if losses and loss_pnl > 0 else 0.0,
            pnl=pnl,
        ))
    return points


@dataclass(frozen=True)
class Report:
    """Everything the analytics screen shows for one filter selection."""

    window: DateWindow
    trades: tuple[Trade, ...]
    closed: tuple[Trade, ...]
    stats: PerformanceStats
    equity: EquityStats
    fees: FeeSummary
    deep_dive: dict[str, list[AggregationGroup]] = field(default_factory=dict)
    series: list[SeriesPoint] = field(default_factory=list, repr=False)
    run_id: str = ""

    @property
    def period(self) -> str:
        return self.window.type.value

    @property
    def recovery_factor(self) -> float:
        return recovery_factor(self.stats.net_pnl, self.equity.max_drawdown)

    def to_dict(self) -> dict[str, Any]:
        return {
            "period": self.period,
            "period_label": self.window.label,
            "trade_count": len(self.trades),
            "closed_count": len(self.closed),
            "stats": self.stats.to_dict(),
            "equity": self.equity.to_dict(),
            "recovery_factor": self.recovery_factor,
            "fees": self.fees.to_dict(),
            "deep_dive": {
                view: [g.to_dict() for g in groups]
                for view, groups in self.deep_dive.items()
            },
            "series": [p.to_dict() for p in self.series],
            "run_id": self.run_id,
        }


def build_report(
    pool: Sequence[Trade],
    facets: FacetFilters | None = None,
    window: DateWindow | None = None,
    *,
    settings: Settings | None = None,
    clock: IClock | None = None,
) -> Report:
    """Run the full analytics pipeline over ``pool``."""
    settings = settings or Settings()
    window = window or DateWindow()
    clock = clock or WallClock()

    subset = filter_trades(pool, facets, window, clock=clock, tz=settings.timezone)
    closed = closed_sequence(subset)

    report = Report(
        window=window,
        trades=tuple(subset),
        closed=tuple(closed),
        stats=compute_statistics(closed),
        equity=track_equity(closed),
        fees=estimate_fees(closed, settings.fees.exchanges, settings.fees.default),
        deep_dive=deep_dive(subset, tz=settings.timezone),
        series=performance_series(closed),
        run_id=get_run_id(),
    )
    logger.info(
        "Report built: %d trades (%d closed), net=%.2f, window=%s",
        len(subset),
        len(closed),
        report.stats.net_pnl,
        window.label,
    )
    return report


# ---------------------------------------------------------------------------
# Assistant hand-off payloads
# ---------------------------------------------------------------------------

def _summaries(trades: Sequence[Trade], *, with_labels: bool) -> list[dict[str, Any]]:
    return [
        TradeSummary(
            symbol=t.symbol,
            side=t.side,
            pnl=t.pnl,
            date=t.entry_date,
            strategy=t.strategy,
            tags=[*t.mental_state, *t.tags] if with_labels else [],
        ).model_dump(mode="json")
        for t in trades
    ]


def seek_analysis_payload(report: Report) -> dict[str, Any]:
    """The ``camelCase`` summary handed to the coaching assistant."""
    stats = report.stats
    return {
        "period": report.period,
        "tradeCount": stats.total_trades,
        "winRate": stats.win_rate,
        "profitFactor": stats.profit_factor,
        "expectancy": stats.expectancy,
        "netPnL": stats.net_pnl,
        "avgWin": stats.avg_win,
        "avgLoss": stats.avg_loss,
        "maxDrawdown": report.equity.max_drawdown,
        "trades": _summaries(report.trades, with_labels=True),
        "deepDive": {
            _DEEP_DIVE_KEYS[view]: [g.to_dict() for g in groups]
            for view, groups in report.deep_dive.items()
        },
    }


def backtest_session_payload(pool: Sequence[Trade]) -> dict[str, Any]:
    """Payload for the DATA (backtest) trades of ``pool``."""
    data_trades = [t for t in pool if t.trade_type == TradeType.DATA]
    closed = closed_sequence(data_trades)
    stats = compute_statistics(closed)
    equity = track_equity(closed)
    return {
        "period": BACKTEST_PERIOD,
        "tradeCount": stats.total_trades,
        "winRate": stats.win_rate,
        "profitFactor": stats.profit_factor,
        "expectancy": stats.expectancy,
        "netPnL": stats.net_pnl,
        "avgWin": stats.avg_win,
        "avgLoss": stats.avg_loss,
        "maxDrawdown": equity.max_drawdown,
        "trades": _summaries(data_trades, with_labels=False),
        "deepDive": {},
    }
