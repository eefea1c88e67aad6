"""Core domain models used across the analytics core.

These are the canonical "truth models" for the system.  Trade records
arrive from the persistence layer or from the CSV normalizer; both end up
as the same immutable :class:`Trade` shape.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

from .enums import FeeType, TradeSide, TradeStatus, TradeType
from .timestamps import parse_timestamp, to_iso

UNKNOWN_SYMBOL = "UNKNOWN"
DEFAULT_EXCHANGE = "Manual"


def normalize_symbol(raw: Any) -> str:
    """Upper-case a symbol and strip ``_`` / ``/`` separators.

    ``"btc/usdt"`` -> ``"BTCUSDT"``.  An empty result becomes
    :data:`UNKNOWN_SYMBOL`.
    """
    if raw is None:
        return UNKNOWN_SYMBOL
    symbol = str(raw).strip().upper().replace("_", "").replace("/", "")
    return symbol or UNKNOWN_SYMBOL


# ---------------------------------------------------------------------------
# Fee schedule
# ---------------------------------------------------------------------------

class FeeConfig(BaseModel):
    """Maker/taker fee schedule for one exchange (or the user default).

    For ``PERCENTAGE`` schedules the rates are percentages (0.05 = 0.05%).
    For ``FIXED`` schedules ``taker`` is a flat amount per execution.
    """

    maker: float = 0.02
    taker: float = 0.05
    type: FeeType = FeeType.PERCENTAGE


# ---------------------------------------------------------------------------
# Trade
# ---------------------------------------------------------------------------

class Trade(BaseModel):
    """One journal trade.

    Immutable once created.  Accepts both ``snake_case`` field names and
    the ``camelCase`` names used by the persistence layer
    (``entryPrice``, ``exitDate`` ...).
    """

    model_config = ConfigDict(
        frozen=True,
        populate_by_name=True,
        alias_generator=to_camel,
    )

    # Identity / instrument
    id: str
    symbol: str
    side: TradeSide = TradeSide.LONG
    exchange: str = DEFAULT_EXCHANGE

    # Economics
    entry_price: float = 0.0
    exit_price: float | None = None
    quantity: float = 0.0
    leverage: float = 1.0
    capital: float = 0.0

    # Outcome
    status: TradeStatus = TradeStatus.OPEN
    pnl: float | None = None
    pnl_percentage: float | None = None

    # Timing (ISO-8601 strings; may be unparseable in a dirty pool)
    entry_date: str
    exit_date: str | None = None

    # Classification
    strategy: str | None = None
    setups: tuple[str, ...] = ()
    tags: tuple[str, ...] = ()
    entry_reasons: tuple[str, ...] = ()
    mental_state: tuple[str, ...] = ()

    # Quality / provenance
    exit_quality: int | None = None
    trade_type: TradeType = TradeType.LIVE
    account_id: str | None = None
    notes: str = ""

    # ------------------------------------------------------------------ #
    # Coercion                                                             #
    # ------------------------------------------------------------------ #

    @field_validator("symbol", mode="before")
    @classmethod
    def _normalize_symbol(cls, v: Any) -> str:
        symbol = normalize_symbol(v)
        if symbol == UNKNOWN_SYMBOL and (v is None or not str(v).strip()):
            raise ValueError("symbol must not be empty")
        return symbol

    @field_validator("exchange", mode="before")
    @classmethod
    def _default_exchange(cls, v: Any) -> str:
        if v is None or not str(v).strip():
            return DEFAULT_EXCHANGE
        return str(v).strip()

    @field_validator("entry_price", mode="after")
    @classmethod
    def _clamp_price(cls, v: float) -> float:
        return max(0.0, v)

    @field_validator("quantity", mode="after")
    @classmethod
    def _abs_quantity(cls, v: float) -> float:
        return abs(v)

    @field_validator("leverage", mode="before")
    @classmethod
    def _clamp_leverage(cls, v: Any) -> float:
        if v is None:
            return 1.0
        return max(1.0, float(v))

    @field_validator("exit_quality", mode="before")
    @classmethod
    def _clamp_quality(cls, v: Any) -> int | None:
        if v is None or v == "":
            return None
        return min(5, max(0, int(round(float(v)))))

    @field_validator("entry_date", "exit_date", mode="before")
    @classmethod
    def _format_dates(cls, v: Any) -> Any:
        if isinstance(v, datetime):
            return to_iso(v)
        return v

    @field_validator("setups", "tags", "entry_reasons", "mental_state", mode="before")
    @classmethod
    def _clean_labels(cls, v: Any) -> tuple[str, ...]:
        if v is None:
            return ()
        if isinstance(v, str):
            v = [v]
        return tuple(str(item).strip() for item in v if str(item).strip())

    @model_validator(mode="after")
    def _closed_invariants(self) -> Trade:
        # CLOSED trades always carry a pnl; derive it from the fill prices
        # when the source did not provide one.
        if self.status == TradeStatus.CLOSED and self.pnl is None:
            exit_px = self.exit_price if self.exit_price is not None else self.entry_price
            if self.side == TradeSide.LONG:
                derived = (exit_px - self.entry_price) * self.quantity
            else:
                derived = (self.entry_price - exit_px) * self.quantity
            object.__setattr__(self, "pnl", derived)

        entry_at, exit_at = self.entry_at, self.exit_at
        if entry_at is not None and exit_at is not None and exit_at < entry_at:
            object.__setattr__(self, "exit_date", self.entry_date)
        return self

    # ------------------------------------------------------------------ #
    # Derived views                                                        #
    # ------------------------------------------------------------------ #

    @property
    def is_closed(self) -> bool:
        return self.status == TradeStatus.CLOSED

    @property
    def realized_pnl(self) -> float:
        """Signed pnl, 0.0 when absent."""
        return self.pnl if self.pnl is not None else 0.0

    @property
    def is_win(self) -> bool:
        """A strictly positive pnl.  Zero counts as a loss."""
        return self.realized_pnl > 0

    @property
    def entry_at(self) -> datetime | None:
        return parse_timestamp(self.entry_date)

    @property
    def exit_at(self) -> datetime | None:
        return parse_timestamp(self.exit_date)

    @property
    def settled_at(self) -> datetime | None:
        """Exit timestamp, falling back to entry (closed-trade ordering key)."""
        return self.exit_at or self.entry_at

    @property
    def labels(self) -> tuple[str, ...]:
        """Tags, entry reasons and mental-state labels together."""
        return self.tags + self.entry_reasons + self.mental_state

    @property
    def hold_duration_seconds(self) -> float:
        """Seconds between entry and exit (0 when either is missing)."""
        entry_at = self.entry_at
        if entry_at is None:
            return 0.0
        end = self.exit_at or entry_at
        return (end - entry_at).total_seconds()

    def to_dict(self) -> dict[str, Any]:
        """Export to a flat ``camelCase`` dictionary for collaborators."""
        return self.model_dump(mode="json", by_alias=True)


class TradeSummary(BaseModel):
    """Per-trade line in the analysis payload handed to the assistant."""

    model_config = ConfigDict(frozen=True)

    symbol: str
    side: TradeSide
    pnl: float | None = None
    date: str
    strategy: str | None = None
    tags: list[str] = Field(default_factory=list)
