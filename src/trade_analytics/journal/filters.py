"""Trade filter — facet filters plus a date window.

Selects the working subset of a trade pool.  All predicates are passed in
as immutable parameter objects so the same pool can be filtered many ways
without any shared state.

Usage::

    facets = FacetFilters(symbol="BTCUSDT", side=TradeSide.LONG)
    window = DateWindow.relative(30)
    subset = filter_trades(pool, facets, window)
    closed = closed_sequence(subset)
"""

from __future__ import annotations

import logging
import re
from collections.abc import Callable, Iterable, Sequence
from datetime import date, datetime, time, timedelta, timezone

from pydantic import BaseModel, ConfigDict, model_validator

from ..core.clock import IClock, WallClock
from ..core.enums import TradeSide, TradeType, WindowType
from ..core.models import Trade
from ..core.timestamps import get_zone

logger = logging.getLogger(__name__)

ALL = "All"

_QUALITY_RE = re.compile(r"^\s*(\d+)")

# Unparseable dates sort first rather than raising.
_EPOCH = datetime.min.replace(tzinfo=timezone.utc)


class FacetFilters(BaseModel):
    """Facet selections.  ``None`` or ``"All"`` disables a facet."""

    model_config = ConfigDict(frozen=True)

    symbol: str | None = None
    exchange: str | None = None
    strategy: str | None = None
    setup: str | None = None
    side: TradeSide | str | None = None
    quality: str | None = None  # "3 Stars" -> exit_quality == 3
    label: str | None = None  # tags | entry_reasons | mental_state
    account_id: str | None = None
    exclude_backtest: bool = False


class DateWindow(BaseModel):
    """Date window over entry dates."""

    model_config = ConfigDict(frozen=True)

    type: WindowType = WindowType.LIFETIME
    days: int | None = None
    start: date | None = None
    end: date | None = None

    @model_validator(mode="after")
    def _check_bounds(self) -> DateWindow:
        if self.type == WindowType.RELATIVE and (self.days is None or self.days < 0):
            raise ValueError("RELATIVE window requires a non-negative 'days'")
        if self.type == WindowType.ABSOLUTE and (self.start is None or self.end is None):
            raise ValueError("ABSOLUTE window requires 'start' and 'end'")
        return self

    @classmethod
    def lifetime(cls) -> DateWindow:
        return cls(type=WindowType.LIFETIME)

    @classmethod
    def relative(cls, days: int) -> DateWindow:
        return cls(type=WindowType.RELATIVE, days=days)

    @classmethod
    def absolute(cls, start: date, end: date) -> DateWindow:
        return cls(type=WindowType.ABSOLUTE, start=start, end=end)

    @property
    def label(self) -> str:
        """Human-readable period label."""
        if self.type == WindowType.RELATIVE:
            return f"Last {self.days} Days"
        if self.type == WindowType.ABSOLUTE:
            return f"{self.start.isoformat()} - {self.end.isoformat()}"
        return "Lifetime"


# ---------------------------------------------------------------------------
# Predicates
# ---------------------------------------------------------------------------

def _active(value: object) -> bool:
    return value is not None and value != ALL


def parse_quality_label(label: str) -> int | None:
    """Extract the star count from a label like ``"3 Stars"``."""
    m = _QUALITY_RE.match(label)
    return int(m.group(1)) if m else None


def _facet_predicates(facets: FacetFilters) -> list[Callable[[Trade], bool]]:
    preds: list[Callable[[Trade], bool]] = []
    if _active(facets.symbol):
        preds.append(lambda t: t.symbol == facets.symbol)
    if _active(facets.exchange):
        preds.append(lambda t: t.exchange == facets.exchange)
    if _active(facets.strategy):
        preds.append(lambda t: t.strategy == facets.strategy)
    if _active(facets.setup):
        preds.append(lambda t: facets.setup in t.setups)
    if _active(facets.side):
        side = TradeSide(facets.side)
        preds.append(lambda t: t.side == side)
    if _active(facets.quality):
        stars = parse_quality_label(facets.quality)
        if stars is not None:
            preds.append(lambda t: t.exit_quality == stars)
    if _active(facets.label):
        preds.append(lambda t: facets.label in t.labels)
    if _active(facets.account_id):
        preds.append(lambda t: t.account_id == facets.account_id)
    if facets.exclude_backtest:
        preds.append(lambda t: t.trade_type != TradeType.DATA)
    return preds


def _window_predicate(
    window: DateWindow,
    clock: IClock,
    tz: str,
) -> Callable[[Trade], bool] | None:
    if window.type == WindowType.RELATIVE:
        # Read "now" at filter time so a long-lived window keeps sliding.
        cutoff = clock.now() - timedelta(days=window.days)

        def _in_relative(t: Trade) -> bool:
            entry = t.entry_at
            return entry is not None and entry >= cutoff

        return _in_relative

    if window.type == WindowType.ABSOLUTE:
        zone = get_zone(tz)
        start = datetime.combine(window.start, time.min, tzinfo=zone)
        end = datetime.combine(window.end, time(23, 59, 59, 999000), tzinfo=zone)

        def _in_absolute(t: Trade) -> bool:
            entry = t.entry_at
            return entry is not None and start <= entry <= end

        return _in_absolute

    return None


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def filter_trades(
    pool: Iterable[Trade],
    facets: FacetFilters | None = None,
    window: DateWindow | None = None,
    *,
    clock: IClock | None = None,
    tz: str = "UTC",
) -> list[Trade]:
    """Return the trades matching every active facet and the date window.

    The pool is never mutated.  Output order follows the pool; callers
    sequence closed trades with :func:`closed_sequence`.
    """
    preds = _facet_predicates(facets or FacetFilters())
    window_pred = _window_predicate(window or DateWindow(), clock or WallClock(), tz)
    if window_pred is not None:
        preds.append(window_pred)

    trades = list(pool)
    selected = [t for t in trades if all(p(t) for p in preds)]
    logger.debug("filter_trades: kept %d of %d trades", len(selected), len(trades))
    return selected


def sequence_key(trade: Trade) -> datetime:
    """Ordering key: exit date, falling back to entry date."""
    return trade.settled_at or _EPOCH


def closed_sequence(trades: Iterable[Trade]) -> list[Trade]:
    """CLOSED trades in ascending exit-or-entry order.

    Every sequential metric (streaks, equity curve, drawdown) reads this
    ordering.  The sort is stable, so equal timestamps keep pool order.
    """
    return sorted((t for t in trades if t.is_closed), key=sequence_key)


def facet_options(pool: Sequence[Trade]) -> dict[str, list[str]]:
    """Sorted option lists for each facet, each led by ``"All"``."""
    symbols = {t.symbol for t in pool}
    strategies = {t.strategy for t in pool if t.strategy}
    setups = {s for t in pool for s in t.setups}
    exchanges = {t.exchange for t in pool}
    labels = {label for t in pool for label in t.labels}
    qualities = {t.exit_quality for t in pool if t.exit_quality is not None}
    return {
        "symbols": [ALL, *sorted(symbols)],
        "strategies": [ALL, *sorted(strategies)],
        "setups": [ALL, *sorted(setups)],
        "exchanges": [ALL, *sorted(exchanges)],
        "labels": [ALL, *sorted(labels)],
        "qualities": [ALL, *(f"{q} Stars" for q in sorted(qualities))],
        "sides": [ALL, TradeSide.LONG.value, TradeSide.SHORT.value],
    }
