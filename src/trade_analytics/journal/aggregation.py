"""Deep-dive aggregation — group-by breakdowns and calendar rollups.

Breaks closed-trade performance down by an arbitrary key (symbol,
strategy, weekday, hour, side, exchange) and rolls it up by calendar day
and month.  Answers questions like "Which symbols pay my bills?" or
"Should I stop trading on Mondays?"

Usage::

    groups = aggregate(closed, lambda t: t.symbol)
    dive = deep_dive(closed, tz="Asia/Kolkata")
    grid = monthly_calendar(pool, 2024, 3)
"""

from __future__ import annotations

import calendar
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass
from datetime import date, tzinfo
from typing import Any

from ..core.models import DEFAULT_EXCHANGE, Trade
from ..core.timestamps import get_zone

NO_STRATEGY = "No Strategy"

DAY_NAMES = ["Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday"]

# Report key -> human label of the dimension.
DEEP_DIVE_VIEWS = {
    "by_symbol": "Symbol",
    "by_strategy": "Strategy",
    "by_day": "Day",
    "by_hour": "Hour",
    "by_side": "Side",
    "by_exchange": "Exchange",
}


@dataclass
class AggregationGroup:
    """Accumulated stats for one group key.  Never built with count 0."""

    name: str
    pnl: float = 0.0
    count: int = 0
    win_count: int = 0

    def record(self, trade: Trade) -> None:
        pnl = trade.realized_pnl
        self.pnl += pnl
        self.count += 1
        if pnl > 0:
            self.win_count += 1

    @property
    def win_rate(self) -> float:
        return self.win_count / self.count * 100 if self.count else 0.0

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "pnl": self.pnl,
            "winRate": self.win_rate,
            "count": self.count,
        }


def aggregate(
    trades: Iterable[Trade],
    key_fn: Callable[[Trade], str],
) -> list[AggregationGroup]:
    """Group trades by ``key_fn`` and rank groups by summed pnl, descending.

    Ties keep first-seen order.
    """
    groups: dict[str, AggregationGroup] = {}
    for trade in trades:
        key = key_fn(trade)
        group = groups.get(key)
        if group is None:
            group = groups[key] = AggregationGroup(name=key)
        group.record(trade)
    return sorted(groups.values(), key=lambda g: g.pnl, reverse=True)


# ---------------------------------------------------------------------------
# Deep dive
# ---------------------------------------------------------------------------

def _weekday_key(zone: tzinfo) -> Callable[[Trade], str]:
    def key(t: Trade) -> str:
        entry = t.entry_at
        return DAY_NAMES[entry.astimezone(zone).weekday()] if entry else "Unknown"

    return key


def _hour_key(zone: tzinfo) -> Callable[[Trade], str]:
    def key(t: Trade) -> str:
        entry = t.entry_at
        return f"{entry.astimezone(zone).hour}:00" if entry else "Unknown"

    return key


def deep_dive(
    trades: Sequence[Trade],
    *,
    tz: str = "UTC",
) -> dict[str, list[AggregationGroup]]:
    """All standard breakdowns over the CLOSED trades in ``trades``."""
    zone = get_zone(tz)
    closed = [t for t in trades if t.is_closed]
    return {
        "by_symbol": aggregate(closed, lambda t: t.symbol),
        "by_strategy": aggregate(closed, lambda t: t.strategy or NO_STRATEGY),
        "by_day": aggregate(closed, _weekday_key(zone)),
        "by_hour": aggregate(closed, _hour_key(zone)),
        "by_side": aggregate(closed, lambda t: t.side.value),
        "by_exchange": aggregate(closed, lambda t: t.exchange or DEFAULT_EXCHANGE),
    }


# ---------------------------------------------------------------------------
# Calendar
# ---------------------------------------------------------------------------

@dataclass
class CalendarDay:
    """One cell of the calendar grid."""

    day: int
    pnl: float = 0.0
    win_count: int = 0
    count: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {"day": self.day, "pnl": self.pnl, "wins": self.win_count, "count": self.count}


def _local_dates(trades: Iterable[Trade], zone: tzinfo) -> list[tuple[date, Trade]]:
    out = []
    for t in trades:
        if not t.is_closed:
            continue
        ts = t.settled_at
        if ts is not None:
            out.append((ts.astimezone(zone).date(), t))
    return out


def _leading_blanks(year: int, month: int) -> int:
    # Sunday-first grid: Monday=0 in Python -> one blank, Sunday -> none.
    return (date(year, month, 1).weekday() + 1) % 7


def monthly_calendar(
    trades: Iterable[Trade],
    year: int,
    month: int,
    *,
    tz: str = "UTC",
) -> list[CalendarDay | None]:
    """Day cells for one month, padded for a 7-column Sunday-first grid."""
    zone = get_zone(tz)
    days_in_month = calendar.monthrange(year, month)[1]
    cells = {d: CalendarDay(day=d) for d in range(1, days_in_month + 1)}

    for local_date, trade in _local_dates(trades, zone):
        if local_date.year == year and local_date.month == month:
            cell = cells[local_date.day]
            pnl = trade.realized_pnl
            cell.pnl += pnl
            cell.count += 1
            if pnl > 0:
                cell.win_count += 1

    grid: list[CalendarDay | None] = [None] * _leading_blanks(year, month)
    grid.extend(cells[d] for d in range(1, days_in_month + 1))
    return grid


def yearly_calendar(
    trades: Iterable[Trade],
    year: int,
    *,
    tz: str = "UTC",
) -> list[list[CalendarDay | None]]:
    """Twelve monthly grids for ``year``."""
    pool = list(trades)
    return [monthly_calendar(pool, year, m, tz=tz) for m in range(1, 13)]


def monthly_rollup(
    trades: Iterable[Trade],
    year: int,
    *,
    tz: str = "UTC",
) -> list[AggregationGroup]:
    """One group per month of ``year`` that has closed trades, in calendar order."""
    zone = get_zone(tz)
    groups: dict[int, AggregationGroup] = {}
    for local_date, trade in _local_dates(trades, zone):
        if local_date.year != year:
            continue
        group = groups.get(local_date.month)
        if group is None:
            group = groups[local_date.month] = AggregationGroup(
                name=f"{year}-{local_date.month:02d}"
            )
        group.record(trade)
    return [groups[m] for m in sorted(groups)]
