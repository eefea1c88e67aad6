"""Trade analytics and ingestion core for a trading journal."""

__version__ = "0.1.0"
