"""Fee estimation for closed trades.

Round-trip commission estimates from per-exchange fee schedules.
Percentage schedules charge the taker rate on entry and exit notional;
fixed schedules charge a flat amount for each of the two executions.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any

from ..core.enums import FeeType
from ..core.models import FeeConfig, Trade


class FeeModel:
    """Computes the estimated round-trip fee for one trade."""

    def __init__(self, config: FeeConfig) -> None:
        self._config = config

    @property
    def config(self) -> FeeConfig:
        return self._config

    def compute_fee(self, trade: Trade) -> float:
        """Entry + exit fee in quote currency."""
        if self._config.type == FeeType.FIXED:
            return self._config.taker * 2

        rate = self._config.taker / 100
        entry_notional = trade.entry_price * trade.quantity
        exit_px = trade.exit_price if trade.exit_price is not None else trade.entry_price
        exit_notional = exit_px * trade.quantity
        return entry_notional * rate + exit_notional * rate


@dataclass(frozen=True)
class FeeSummary:
    """Fee totals overall and per exchange."""

    total: float = 0.0
    by_exchange: dict[str, float] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {"total": self.total, "exchange_fees": dict(self.by_exchange)}


def resolve_fee_config(
    exchange: str,
    exchange_fees: Mapping[str, FeeConfig] | None,
    default: FeeConfig | None,
) -> FeeConfig | None:
    """Exchange-specific schedule, else the user default (may be None)."""
    if exchange_fees and exchange in exchange_fees:
        return exchange_fees[exchange]
    return default


def estimate_fees(
    closed: Sequence[Trade],
    exchange_fees: Mapping[str, FeeConfig] | None = None,
    default: FeeConfig | None = None,
) -> FeeSummary:
    """Estimate fees for every closed trade.

    A trade whose exchange has no schedule and no default contributes 0
    but still appears in the per-exchange breakdown.
    """
    by_exchange: dict[str, float] = {}
    total = 0.0
    for trade in closed:
        if not trade.is_closed:
            continue
        config = resolve_fee_config(trade.exchange, exchange_fees, default)
        fee = FeeModel(config).compute_fee(trade) if config is not None else 0.0
        by_exchange[trade.exchange] = by_exchange.get(trade.exchange, 0.0) + fee
        total += fee
    return FeeSummary(total=total, by_exchange=by_exchange)
