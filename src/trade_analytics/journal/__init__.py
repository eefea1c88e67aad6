"""Trade journal analytics — filter, measure and normalize trades.

Key components
--------------
**Selection**

FacetFilters        Immutable facet selections (symbol, strategy, side ...)
DateWindow          LIFETIME / RELATIVE / ABSOLUTE entry-date window
filter_trades       Apply facets and window to a trade pool
closed_sequence     Closed trades in ascending settlement order

**Measurement**

compute_statistics  Win rate, profit factor, Sharpe/Sortino, streaks
track_equity        Equity curve, max drawdown, max recovery time
estimate_fees       Round-trip fee estimates per exchange
deep_dive           Group-by breakdowns ranked by pnl
monthly_calendar    Sunday-first day grid for one month
build_report        The whole pipeline in one call

**Ingestion & output**

CsvNormalizer       Broker CSV/TSV exports -> canonical trades
TradeExporter       CSV/TSV/JSON export and periodic summaries
RiskSimulator       Monte Carlo projection of fixed-fractional sizing
"""

from .aggregation import (
    AggregationGroup,
    CalendarDay,
    aggregate,
    deep_dive,
    monthly_calendar,
    monthly_rollup,
    yearly_calendar,
)
from .equity import EquityStats, recovery_factor, track_equity
from .export import TradeExporter, export_filename
from .fees import FeeModel, FeeSummary, estimate_fees
from .filters import (
    DateWindow,
    FacetFilters,
    closed_sequence,
    facet_options,
    filter_trades,
)
from .normalizer import CsvNormalizer, NormalizationResult, normalize
from .report import (
    Report,
    backtest_session_payload,
    build_report,
    performance_series,
    seek_analysis_payload,
)
from .simulator import RiskSimulator, SimulationResult
from .statistics import PerformanceStats, compute_statistics

__all__ = [
    "AggregationGroup",
    "CalendarDay",
    "aggregate",
    "deep_dive",
    "monthly_calendar",
    "monthly_rollup",
    "yearly_calendar",
    "EquityStats",
    "recovery_factor",
    "track_equity",
    "TradeExporter",
    "export_filename",
    "FeeModel",
    "FeeSummary",
    "estimate_fees",
    "DateWindow",
    "FacetFilters",
    "closed_sequence",
    "facet_options",
    "filter_trades",
    "CsvNormalizer",
    "NormalizationResult",
    "normalize",
    "Report",
    "backtest_session_payload",
    "build_report",
    "performance_series",
    "seek_analysis_payload",
    "RiskSimulator",
    "SimulationResult",
    "PerformanceStats",
    "compute_statistics",
]
