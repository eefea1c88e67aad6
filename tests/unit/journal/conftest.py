"""Shared fixtures for journal tests."""

from datetime import datetime, timedelta, timezone

import pytest

from trade_analytics.core.enums import TradeSide, TradeStatus, TradeType
from trade_analytics.core.models import Trade
from trade_analytics.journal.normalizer import CsvNormalizer

BASE_TIME = datetime(2024, 1, 1, 12, 0, 0, tzinfo=timezone.utc)

_counter = {"n": 0}


def make_trade(
    pnl: float | None = 0.0,
    *,
    symbol: str = "BTCUSDT",
    side: TradeSide = TradeSide.LONG,
    status: TradeStatus = TradeStatus.CLOSED,
    entry: datetime | str | None = None,
    exit: datetime | str | None = None,
    entry_price: float = 100.0,
    exit_price: float | None = None,
    quantity: float = 1.0,
    exchange: str = "Binance",
    strategy: str | None = "Breakout",
    trade_type: TradeType = TradeType.LIVE,
    **extra,
) -> Trade:
    """Helper to create a Trade.  Closed trades exit one hour after entry."""
    _counter["n"] += 1
    entry = entry if entry is not None else BASE_TIME
    if exit is None and status == TradeStatus.CLOSED and isinstance(entry, datetime):
        exit = entry + timedelta(hours=1)
    return Trade(
        id=extra.pop("id", f"t{_counter['n']}"),
        symbol=symbol,
        side=side,
        exchange=exchange,
        entry_price=entry_price,
        exit_price=exit_price,
        quantity=quantity,
        status=status,
        pnl=pnl if status == TradeStatus.CLOSED else extra.pop("open_pnl", None),
        entry_date=entry,
        exit_date=exit,
        strategy=strategy,
        trade_type=trade_type,
        **extra,
    )


def make_sequence(pnls: list[float], *, start: datetime = BASE_TIME, **kwargs) -> list[Trade]:
    """Closed trades with the given pnls, one per day in order."""
    return [
        make_trade(p, entry=start + timedelta(days=i), **kwargs)
        for i, p in enumerate(pnls)
    ]


@pytest.fixture
def base_time():
    return BASE_TIME


@pytest.fixture
def normalizer(fixed_clock):
    return CsvNormalizer(clock=fixed_clock)


@pytest.fixture
def mixed_pool():
    """A small pool across symbols, sides, exchanges and provenance."""
    return [
        make_trade(150.0, symbol="BTCUSDT", entry=BASE_TIME, tags=["FOMO"]),
        make_trade(-50.0, symbol="ETHUSDT", side=TradeSide.SHORT,
                   entry=BASE_TIME + timedelta(days=1), exchange="Bybit"),
        make_trade(80.0, symbol="BTCUSDT", entry=BASE_TIME + timedelta(days=2),
                   strategy="Reversal", setups=["Double Bottom"], exit_quality=4),
        make_trade(None, symbol="SOLUSDT", status=TradeStatus.OPEN,
                   entry=BASE_TIME + timedelta(days=3)),
        make_trade(-20.0, symbol="BTCUSDT", entry=BASE_TIME + timedelta(days=4),
                   trade_type=TradeType.DATA, mental_state=["Calm"]),
    ]
