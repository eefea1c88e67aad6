"""CSV normalizer — broker exports in, canonical trades out.

Turns loosely structured tabular exports (any broker, any header naming,
mixed date and number formats) into :class:`~trade_analytics.core.models.Trade`
records.

Column resolution is driven by :data:`COLUMN_SPECS`, an ordered table of
canonical fields and their header synonyms.  Resolution runs in two passes:

1. **exact**: every field, in table order, claims the first header that
   equals one of its synonyms (synonyms scanned in priority order);
2. **contains**: fields still unresolved claim the first unclaimed header
   that contains one of their synonyms.

A column claimed by one field is never reused by another, and the
mapping depends only on the table, not on the order of the headers.

Failure policy
--------------
* Missing symbol / price / date column: the whole file fails with one
  error string per missing column and no trades.
* Anything else is row-local: the row is skipped, logged and reported in
  ``warnings``; the batch continues.
* Calling without a header row is a programmer error and raises
  :class:`~trade_analytics.core.errors.NormalizationError`.

Usage::

    result = CsvNormalizer().normalize_text(open("bybit.csv").read())
    if result.errors:
        print("\\n".join(result.errors))
    pool.extend(result.trades)
"""

from __future__ import annotations

import csv
import io
import logging
import math
import re
import uuid
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from datetime import datetime, tzinfo
from typing import Any, Union

from ..core.clock import IClock, WallClock
from ..core.config import ImportConfig
from ..core.enums import TradeSide, TradeStatus, TradeType
from ..core.errors import NormalizationError
from ..core.models import UNKNOWN_SYMBOL, Trade, normalize_symbol
from ..core.timestamps import get_zone, parse_timestamp, to_iso

logger = logging.getLogger(__name__)

Row = Union[Sequence[Any], Mapping[str, Any]]

PNL_EPSILON = 1e-6

_SKIP_STATUS_RE = re.compile(r"cancelled|rejected|failed", re.IGNORECASE)
_UTC_SUFFIX_RE = re.compile(r"\s+UTC$", re.IGNORECASE)
_ZONE_SUFFIX_RE = re.compile(r"\s+[A-Z]{3,4}\s+[A-Za-z]+/[A-Za-z_]+$")
_NON_NUMERIC_RE = re.compile(r"[^0-9.\-]")
_LEADING_NUMBER_RE = re.compile(r"-?(?:\d+\.?\d*|\.\d+)")
_LIST_SPLIT_RE = re.compile(r"[|;,]")


@dataclass(frozen=True)
class ColumnSpec:
    """One canonical field and the headers that may carry it."""

    field: str
    synonyms: tuple[str, ...]
    required: bool = False
    exact_only: bool = False
    label: str = ""


# Order matters: specific fields come before generic ones so that, in the
# contains pass, "exit date" is claimed before "date" can swallow it.
COLUMN_SPECS: tuple[ColumnSpec, ...] = (
    ColumnSpec("id", ("id", "trade_id", "trade id"), exact_only=True),
    ColumnSpec("trade_type", ("trade_type", "trade type", "tradetype"), exact_only=True),
    ColumnSpec("account_id", ("account_id", "account id", "accountid", "account")),
    ColumnSpec("entry_reasons", ("entry_reasons", "entry reasons", "entryreasons", "reasons")),
    ColumnSpec("mental_state", ("mental_state", "mental state", "mentalstate", "emotions", "mindset")),
    ColumnSpec("exit_quality", ("exit_quality", "exit quality", "exitquality", "rating", "stars")),
    ColumnSpec("setups", ("setups", "setup")),
    ColumnSpec("tags", ("tags", "tag", "labels")),
    ColumnSpec("strategy", ("strategy", "playbook")),
    ColumnSpec("notes", ("notes", "note", "comment", "remarks")),
    ColumnSpec(
        "symbol",
        ("symbol", "pair", "ticker", "contract", "instrument", "market", "currency pair", "item"),
        required=True,
        label="Missing Symbol column (e.g., Symbol, Pair, Ticker).",
    ),
    ColumnSpec(
        "exit_date",
        ("exit_date", "exit date", "exitdate", "exit time", "close time", "closed at",
         "close date", "closing time"),
    ),
    ColumnSpec(
        "entry_date",
        ("entry_date", "entry date", "entrydate", "entry time", "open time", "opened at",
         "date", "time", "created", "timestamp", "datetime"),
        required=True,
        label="Missing Date column (e.g., Date, Time, Created).",
    ),
    ColumnSpec(
        "pnl_percentage",
        ("pnl_percentage", "pnl percentage", "pnlpercentage", "pnl %", "pnl%", "roi", "roe",
         "return %"),
    ),
    ColumnSpec(
        "pnl",
        ("pnl", "realized p&l", "realised p&l", "realized pnl", "realised pnl", "net pnl",
         "p&l", "profit", "realized", "realised"),
    ),
    ColumnSpec("fee", ("fee", "fees", "trading fees", "commission")),
    ColumnSpec(
        "exit_price",
        ("exit_price", "exit price", "exitprice", "close price", "closing price",
         "avg close price", "exit"),
    ),
    ColumnSpec(
        "entry_price",
        ("entry_price", "entry price", "entryprice", "exec.price", "avg price", "open price",
         "price", "avg", "entry", "fill"),
        required=True,
        label="Missing Price column (e.g., Price, Avg Price, Entry).",
    ),
    ColumnSpec("quantity", ("quantity", "qty", "amount", "size", "volume", "executed")),
    ColumnSpec("leverage", ("leverage",)),
    ColumnSpec("capital", ("capital", "margin", "cost")),
    ColumnSpec("status", ("status", "state")),
    ColumnSpec("side", ("side", "direction", "type", "action")),
    ColumnSpec("exchange", ("exchange", "broker", "venue")),
)


def _header_key(header: Any) -> str:
    return str(header if header is not None else "").lower().strip()


def resolve_columns(
    headers: Sequence[str],
    specs: Sequence[ColumnSpec] = COLUMN_SPECS,
) -> dict[str, int]:
    """Map canonical field names to header indices.  Unresolved fields are absent."""
    normalized = [_header_key(h) for h in headers]
    claimed: set[int] = set()
    mapping: dict[str, int] = {}

    def _claim(spec: ColumnSpec, match) -> None:
        for syn in spec.synonyms:
            for idx, header in enumerate(normalized):
                if idx not in claimed and header and match(header, syn):
                    mapping[spec.field] = idx
                    claimed.add(idx)
                    return

    for spec in specs:
        _claim(spec, lambda header, syn: header == syn)

    for spec in specs:
        if spec.field in mapping or spec.exact_only:
            continue
        _claim(spec, lambda header, syn: syn in header)

    return mapping


# ---------------------------------------------------------------------------
# Cell parsers
# ---------------------------------------------------------------------------

def _has_value(raw: Any) -> bool:
    return raw is not None and str(raw).strip() != ""


def _has_number(raw: Any) -> bool:
    """True when the cell carries a readable number (``"--"``, ``"N/A"`` do not)."""
    if raw is None or isinstance(raw, bool):
        return False
    if isinstance(raw, (int, float)):
        return math.isfinite(raw)
    return _LEADING_NUMBER_RE.match(_NON_NUMERIC_RE.sub("", str(raw))) is not None


def parse_number(raw: Any) -> float:
    """Lenient float parse: keep digits, ``.`` and ``-``; read the leading number.

    ``"$1,234.50"`` -> 1234.5, ``"abc"`` -> 0.0.  Never raises.
    """
    if raw is None or isinstance(raw, bool):
        return 0.0
    if isinstance(raw, (int, float)):
        return float(raw) if math.isfinite(raw) else 0.0
    cleaned = _NON_NUMERIC_RE.sub("", str(raw))
    m = _LEADING_NUMBER_RE.match(cleaned)
    return float(m.group()) if m else 0.0


def parse_date(raw: Any, *, default_tz: tzinfo) -> datetime | None:
    """Lenient timestamp parse.

    Strips a trailing ``" UTC"`` (or ``"IST Asia/Kolkata"``-style suffix),
    tries a direct parse, then retries with ``.`` replaced by ``-``.
    """
    if not _has_value(raw):
        return None
    if isinstance(raw, datetime):
        return parse_timestamp(raw, default_tz=default_tz)
    text = _ZONE_SUFFIX_RE.sub("", str(raw).strip())
    is_utc = bool(_UTC_SUFFIX_RE.search(text))
    text = _UTC_SUFFIX_RE.sub("", text).strip()
    zone = get_zone("UTC") if is_utc else default_tz
    parsed = parse_timestamp(text, default_tz=zone)
    if parsed is None:
        parsed = parse_timestamp(text.replace(".", "-"), default_tz=zone)
    return parsed


def infer_side(raw: Any) -> TradeSide:
    """SHORT for "short"/"sell" anywhere in the text or an exact "s"."""
    if raw is None:
        return TradeSide.LONG
    text = str(raw).strip().lower()
    if "short" in text or "sell" in text or text == "s":
        return TradeSide.SHORT
    return TradeSide.LONG


def infer_status(status_text: Any, exit_at: datetime | None, pnl: float) -> TradeStatus:
    """CLOSED on an explicit "closed", a parsed exit date, or a non-zero pnl."""
    if _has_value(status_text) and str(status_text).strip().lower() == "closed":
        return TradeStatus.CLOSED
    if exit_at is not None or abs(pnl) > PNL_EPSILON:
        return TradeStatus.CLOSED
    return TradeStatus.OPEN


def split_list(raw: Any) -> list[str]:
    """Split a list cell on ``|``, ``;`` or ``,`` and drop empty pieces."""
    if not _has_value(raw):
        return []
    return [piece.strip() for piece in _LIST_SPLIT_RE.split(str(raw)) if piece.strip()]


# ---------------------------------------------------------------------------
# Result
# ---------------------------------------------------------------------------

@dataclass
class NormalizationResult:
    """Outcome of one import.

    ``errors`` is non-empty only for whole-file failures.  ``warnings``
    lists rows that were dropped or could not be built.
    """

    trades: list[Trade] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    column_map: dict[str, str] = field(default_factory=dict)
    rows_seen: int = 0
    rows_skipped: int = 0

    @property
    def ok(self) -> bool:
        return not self.errors

    def summary(self) -> dict[str, Any]:
        closed = sum(1 for t in self.trades if t.is_closed)
        return {
            "rows_seen": self.rows_seen,
            "imported": len(self.trades),
            "closed": closed,
            "open": len(self.trades) - closed,
            "skipped": self.rows_skipped,
            "errors": list(self.errors),
            "warnings": len(self.warnings),
        }


# ---------------------------------------------------------------------------
# Normalizer
# ---------------------------------------------------------------------------

class CsvNormalizer:
    """Normalize raw tabular rows into canonical trades.

    Parameters
    ----------
    config : ImportConfig | None
        Defaults for fields the file does not carry (exchange, strategy,
        trade type, timezone of naive timestamps).
    clock : IClock | None
        Source of "now" for rows whose entry date cannot be parsed.
    """

    def __init__(
        self,
        config: ImportConfig | None = None,
        *,
        clock: IClock | None = None,
    ) -> None:
        self._config = config or ImportConfig()
        self._clock = clock or WallClock()
        self._zone = get_zone(self._config.timezone)

    # ------------------------------------------------------------------ #
    # Entry points                                                         #
    # ------------------------------------------------------------------ #

    def normalize(
        self,
        header_row: Sequence[str] | None,
        rows: Sequence[Row],
    ) -> NormalizationResult:
        """Convert ``rows`` (aligned with ``header_row``) into trades."""
        if not header_row:
            raise NormalizationError("normalize() requires a header row")

        headers = list(header_row)
        mapping = resolve_columns(headers)
        result = NormalizationResult(
            column_map={name: headers[idx] for name, idx in mapping.items()},
            rows_seen=len(rows),
        )

        for spec in COLUMN_SPECS:
            if spec.required and spec.field not in mapping:
                result.errors.append(spec.label)
        if result.errors:
            logger.warning("Import rejected: %s", "; ".join(result.errors))
            return result

        batch = uuid.uuid4().hex[:8]
        for i, row in enumerate(rows):
            try:
                trade = self._build_trade(headers, mapping, row, i, batch, result)
            except Exception as exc:
                logger.warning("Row %d: could not build trade: %s", i + 1, exc)
                result.warnings.append(f"Row {i + 1}: {exc}")
                result.rows_skipped += 1
                continue
            if trade is not None:
                result.trades.append(trade)

        logger.info(
            "Import finished: %d trades from %d rows (%d skipped)",
            len(result.trades),
            result.rows_seen,
            result.rows_skipped,
        )
        return result

    def normalize_text(
        self,
        text: str,
        *,
        delimiter: str | None = None,
    ) -> NormalizationResult:
        """Parse CSV/TSV text (header first) and normalize it.

        The delimiter is a tab when the header line contains one, a comma
        otherwise, unless given explicitly.
        """
        lines = [row for row in self._read_rows(text, delimiter) if any(c.strip() for c in row)]
        if not lines:
            raise NormalizationError("input has no header row")
        return self.normalize(lines[0], lines[1:])

    # ------------------------------------------------------------------ #
    # Row building                                                         #
    # ------------------------------------------------------------------ #

    @staticmethod
    def _read_rows(text: str, delimiter: str | None) -> list[list[str]]:
        if delimiter is None:
            first_line = text.lstrip("﻿").split("\n", 1)[0]
            delimiter = "\t" if "\t" in first_line else ","
        reader = csv.reader(io.StringIO(text.lstrip("﻿")), delimiter=delimiter)
        return [row for row in reader]

    def _build_trade(
        self,
        headers: list[str],
        mapping: dict[str, int],
        row: Row,
        index: int,
        batch: str,
        result: NormalizationResult,
    ) -> Trade | None:
        def cell(name: str) -> Any:
            idx = mapping.get(name)
            if idx is None:
                return None
            if isinstance(row, Mapping):
                return row.get(headers[idx])
            return row[idx] if idx < len(row) else None

        status_text = cell("status")
        if _has_value(status_text) and _SKIP_STATUS_RE.search(str(status_text)):
            logger.debug("Row %d: skipped (status=%s)", index + 1, status_text)
            result.rows_skipped += 1
            return None

        symbol = normalize_symbol(cell("symbol"))
        entry_price = parse_number(cell("entry_price"))
        if symbol == UNKNOWN_SYMBOL or entry_price <= 0:
            logger.debug("Row %d: dropped (symbol=%s, price=%s)", index + 1, symbol, entry_price)
            result.warnings.append(f"Row {index + 1}: no usable symbol or entry price")
            result.rows_skipped += 1
            return None

        entry_at = parse_date(cell("entry_date"), default_tz=self._zone)
        if entry_at is None:
            # Lossy on purpose: keep the row, date it now.
            entry_at = self._clock.now()
            result.warnings.append(f"Row {index + 1}: unparseable entry date, using now")
        exit_at = parse_date(cell("exit_date"), default_tz=self._zone)
        if exit_at is not None and exit_at < entry_at:
            exit_at = entry_at

        quantity = abs(parse_number(cell("quantity")))
        side = infer_side(cell("side"))

        exit_price = parse_number(cell("exit_price")) if _has_number(cell("exit_price")) else None
        pnl = parse_number(cell("pnl")) if _has_number(cell("pnl")) else None

        # Only a pnl read from the file can close a row; one derived from
        # the exit price is filled in after the status is known.
        status = infer_status(status_text, exit_at, pnl or 0.0)
        exit_date: str | None = None
        if status == TradeStatus.CLOSED:
            if pnl is None and exit_price is not None:
                move = exit_price - entry_price if side == TradeSide.LONG else entry_price - exit_price
                pnl = move * quantity
            pnl = pnl if pnl is not None else 0.0
            exit_date = to_iso(exit_at or entry_at)
            if exit_price is None:
                # Back out an exit price from the realized pnl.
                if quantity > 0:
                    step = pnl / quantity
                    exit_price = entry_price + step if side == TradeSide.LONG else entry_price - step
                else:
                    exit_price = entry_price
        else:
            exit_price = None

        notional = entry_price * quantity
        if _has_value(cell("pnl_percentage")):
            pnl_pct = parse_number(cell("pnl_percentage"))
        elif pnl is not None and notional > 0:
            # Not direction-adjusted; downstream displays expect this form.
            pnl_pct = pnl / notional * 100
        else:
            pnl_pct = 0.0

        capital = parse_number(cell("capital")) if _has_value(cell("capital")) else abs(notional)
        leverage = parse_number(cell("leverage")) if _has_value(cell("leverage")) else 1.0

        notes = str(cell("notes")).strip() if _has_value(cell("notes")) else ""
        if _has_value(cell("fee")):
            fee_note = f"Imported via CSV. Fees: {parse_number(cell('fee')):.4f}"
            notes = f"{notes}\n{fee_note}" if notes else fee_note

        raw_type = str(cell("trade_type") or "").strip().upper()
        trade_type = TradeType(raw_type) if raw_type in TradeType.__members__ else self._config.trade_type

        raw_quality = cell("exit_quality")
        exit_quality = int(parse_number(raw_quality)) if _has_value(raw_quality) else None

        raw_id = cell("id")
        trade_id = (
            str(raw_id).strip()
            if _has_value(raw_id)
            else f"{self._config.id_prefix}-{batch}-{index}"
        )

        return Trade(
            id=trade_id,
            symbol=symbol,
            side=side,
            exchange=str(cell("exchange")).strip() if _has_value(cell("exchange")) else self._config.default_exchange,
            entry_price=entry_price,
            exit_price=exit_price,
            quantity=quantity,
            leverage=leverage,
            capital=capital,
            status=status,
            pnl=pnl,
            pnl_percentage=pnl_pct,
            entry_date=to_iso(entry_at),
            exit_date=exit_date,
            strategy=str(cell("strategy")).strip() if _has_value(cell("strategy")) else self._config.default_strategy,
            setups=split_list(cell("setups")),
            tags=split_list(cell("tags")),
            entry_reasons=split_list(cell("entry_reasons")),
            mental_state=split_list(cell("mental_state")),
            exit_quality=exit_quality,
            trade_type=trade_type,
            account_id=str(cell("account_id")).strip() if _has_value(cell("account_id")) else None,
            notes=notes,
        )


def normalize(
    header_row: Sequence[str] | None,
    rows: Sequence[Row],
    *,
    config: ImportConfig | None = None,
    clock: IClock | None = None,
) -> NormalizationResult:
    """Functional shortcut for :meth:`CsvNormalizer.normalize`."""
    return CsvNormalizer(config, clock=clock).normalize(header_row, rows)
