"""Enumerations used across the analytics core."""

from enum import Enum


class TradeSide(str, Enum):
    LONG = "LONG"
    SHORT = "SHORT"


class TradeStatus(str, Enum):
    OPEN = "OPEN"
    CLOSED = "CLOSED"


class TradeType(str, Enum):
    """Provenance of a trade record."""

    LIVE = "LIVE"  # Logged in real time from the journal
    PAST = "PAST"  # Back-filled or imported history
    DATA = "DATA"  # Backtest / research data, excluded from live stats on request


class FeeType(str, Enum):
    PERCENTAGE = "PERCENTAGE"
    FIXED = "FIXED"


class StreakType(str, Enum):
    WIN = "WIN"
    LOSS = "LOSS"
    NONE = "NONE"


class WindowType(str, Enum):
    LIFETIME = "LIFETIME"
    RELATIVE = "RELATIVE"
    ABSOLUTE = "ABSOLUTE"
