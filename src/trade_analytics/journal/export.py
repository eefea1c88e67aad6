"""Trade export — CSV/TSV/JSON output and periodic summaries.

Writes trades in the canonical column layout the normalizer reads back,
so an exported file re-imports to the same closed/open split and pnl.

Usage::

    exporter = TradeExporter()
    csv_str = exporter.to_csv(trades)
    json_str = exporter.to_json(trades)
    report = exporter.periodic_report(trades, period="monthly")
"""

from __future__ import annotations

import csv
import io
import json
import logging
from collections import defaultdict
from collections.abc import Sequence
from datetime import date
from typing import Any

from ..core.config import ExportConfig
from ..core.models import Trade
from ..core.timestamps import get_zone
from .statistics import profit_factor

logger = logging.getLogger(__name__)

# Canonical columns; every name is an exact synonym in the normalizer.
EXPORT_COLUMNS = [
    "id",
    "symbol",
    "side",
    "exchange",
    "entry_price",
    "exit_price",
    "quantity",
    "leverage",
    "capital",
    "status",
    "pnl",
    "pnl_percentage",
    "entry_date",
    "exit_date",
    "strategy",
    "setups",
    "tags",
    "entry_reasons",
    "mental_state",
    "exit_quality",
    "trade_type",
    "account_id",
    "notes",
]

FORMAT_EXTENSIONS = {"csv": "csv", "tsv": "tsv", "json": "json"}


def export_filename(fmt: str = "csv", today: date | None = None) -> str:
    """``trades_export_YYYY-MM-DD.<ext>``."""
    ext = FORMAT_EXTENSIONS.get(fmt.lower(), "csv")
    return f"trades_export_{(today or date.today()).isoformat()}.{ext}"


def format_number(value: float | None, decimal_places: int = 8) -> str:
    """Fixed-point text without exponent or trailing zeros; ``None`` -> ``""``."""
    if value is None:
        return ""
    text = f"{value:.{decimal_places}f}"
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return "0" if text in ("", "-0") else text


class TradeExporter:
    """Export trades to CSV/TSV/JSON and build periodic summaries.

    Parameters
    ----------
    config : ExportConfig | None
        Numeric precision and list separator.  Defaults to 8 decimals
        and ``|``.
    """

    def __init__(self, config: ExportConfig | None = None) -> None:
        self._config = config or ExportConfig()

    # ------------------------------------------------------------------ #
    # Delimited export                                                     #
    # ------------------------------------------------------------------ #

    def to_csv(
        self,
        trades: Sequence[Trade],
        *,
        columns: list[str] | None = None,
        delimiter: str = ",",
    ) -> str:
        """Export trades as delimited text with a header row.

        Parameters
        ----------
        trades : Sequence[Trade]
            Trades to export, in output order.
        columns : list[str] | None
            Column selection.  Defaults to :data:`EXPORT_COLUMNS`.
        delimiter : str
            Field separator (``","`` or ``"\\t"``).

        Returns
        -------
        str
            Delimited string with header row.
        """
        cols = columns or EXPORT_COLUMNS
        buf = io.StringIO()
        writer = csv.DictWriter(
            buf,
            fieldnames=cols,
            extrasaction="ignore",
            delimiter=delimiter,
            lineterminator="\n",
        )
        writer.writeheader()

        for trade in trades:
            row = self._trade_to_row(trade)
            writer.writerow({c: row.get(c, "") for c in cols})

        logger.debug("Exported %d trades (%d columns)", len(trades), len(cols))
        return buf.getvalue()

    def to_tsv(self, trades: Sequence[Trade], *, columns: list[str] | None = None) -> str:
        return self.to_csv(trades, columns=columns, delimiter="\t")

    # ------------------------------------------------------------------ #
    # JSON export                                                          #
    # ------------------------------------------------------------------ #

    def to_json(self, trades: Sequence[Trade], *, indent: int = 2) -> str:
        """Export trades as a JSON list of ``camelCase`` objects."""
        return json.dumps([t.to_dict() for t in trades], indent=indent, default=str)

    def export(self, trades: Sequence[Trade], fmt: str = "csv") -> str:
        """Dispatch on ``fmt`` (``csv``, ``tsv`` or ``json``)."""
        fmt = fmt.lower()
        if fmt == "json":
            return self.to_json(trades)
        if fmt == "tsv":
            return self.to_tsv(trades)
        if fmt == "csv":
            return self.to_csv(trades)
        raise ValueError(f"Unsupported export format: {fmt}")

    # ------------------------------------------------------------------ #
    # Periodic report                                                      #
    # ------------------------------------------------------------------ #

    def periodic_report(
        self,
        trades: Sequence[Trade],
        *,
        period: str = "daily",
        tz: str = "UTC",
    ) -> dict[str, Any]:
        """Summarize closed trades per day, ISO week or month.

        Parameters
        ----------
        trades : Sequence[Trade]
            Trades to analyse; open trades are ignored.
        period : str
            ``"daily"``, ``"weekly"`` or ``"monthly"``.
        tz : str
            Zone whose calendar defines the buckets.

        Returns
        -------
        dict
            ``period`` : str
            ``buckets`` : list of per-period stats, oldest first
            ``totals`` : summary across all periods
        """
        closed = [t for t in trades if t.is_closed]
        if not closed:
            return {"period": period, "buckets": [], "totals": self._group_stats("all", [])}

        zone = get_zone(tz)
        buckets: dict[str, list[Trade]] = defaultdict(list)
        for trade in closed:
            key = self._period_key(trade, period, zone)
            if key:
                buckets[key].append(trade)

        totals = self._group_stats("all", closed)
        totals.pop("period_key", None)
        return {
            "period": period,
            "buckets": [self._group_stats(k, buckets[k]) for k in sorted(buckets)],
            "totals": totals,
        }

    # ------------------------------------------------------------------ #
    # Private helpers                                                      #
    # ------------------------------------------------------------------ #

    def _trade_to_row(self, trade: Trade) -> dict[str, Any]:
        """Flatten a trade into export cells."""
        dp = self._config.decimal_places
        sep = self._config.list_separator
        # Open trades carry no realized outcome; writing one would flip
        # them to closed on re-import.
        closed = trade.is_closed
        return {
            "id": trade.id,
            "symbol": trade.symbol,
            "side": trade.side.value,
            "exchange": trade.exchange,
            "entry_price": format_number(trade.entry_price, dp),
            "exit_price": format_number(trade.exit_price, dp) if closed else "",
            "quantity": format_number(trade.quantity, dp),
            "leverage": format_number(trade.leverage, dp),
            "capital": format_number(trade.capital, dp),
            "status": trade.status.value,
            "pnl": format_number(trade.pnl, dp) if closed else "",
            "pnl_percentage": format_number(trade.pnl_percentage, dp) if closed else "",
            "entry_date": trade.entry_date,
            "exit_date": (trade.exit_date or "") if closed else "",
            "strategy": trade.strategy or "",
            "setups": sep.join(trade.setups),
            "tags": sep.join(trade.tags),
            "entry_reasons": sep.join(trade.entry_reasons),
            "mental_state": sep.join(trade.mental_state),
            "exit_quality": "" if trade.exit_quality is None else str(trade.exit_quality),
            "trade_type": trade.trade_type.value,
            "account_id": trade.account_id or "",
            "notes": trade.notes,
        }

    @staticmethod
    def _period_key(trade: Trade, period: str, zone) -> str | None:
        ts = trade.settled_at
        if ts is None:
            return None
        local = ts.astimezone(zone)
        if period == "weekly":
            iso = local.isocalendar()
            return f"{iso[0]}-W{iso[1]:02d}"
        if period == "monthly":
            return local.strftime("%Y-%m")
        return local.strftime("%Y-%m-%d")

    def _group_stats(self, key: str, group: list[Trade]) -> dict[str, Any]:
        dp = self._config.decimal_places
        pnls = [t.realized_pnl for t in group]
        gross_wins = sum(p for p in pnls if p > 0)
        gross_losses = abs(sum(p for p in pnls if p <= 0))
        wins = sum(1 for p in pnls if p > 0)
        total_pnl = sum(pnls)
        n = len(group)
        return {
            "period_key": key,
            "trades": n,
            "wins": wins,
            "losses": n - wins,
            "win_rate": round(wins / n * 100, dp) if n else 0.0,
            "total_pnl": round(total_pnl, dp),
            "avg_pnl": round(total_pnl / n, dp) if n else 0.0,
            "profit_factor": round(profit_factor(gross_wins, gross_losses), dp),
            "best_trade": round(max(pnls), dp) if pnls else 0.0,
            "worst_trade": round(min(pnls), dp) if pnls else 0.0,
        }
