"""Custom exception hierarchy for the analytics core."""


class TradeAnalyticsError(Exception):
    """Base exception for all analytics errors."""


# --- Configuration ---
class ConfigError(TradeAnalyticsError):
    """Invalid or missing configuration."""


# --- Data ---
class DataError(TradeAnalyticsError):
    """Data ingestion or quality error."""


class NormalizationError(DataError):
    """The normalizer was called in a way it cannot recover from.

    Raised for programmer errors only (e.g. no header row).  Dirty data
    never raises; it is reported through the result object instead.
    """
