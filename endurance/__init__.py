"""Market data storage, technical indicators, opportunity scoring and related services."""

__version__ = "0.1.0"

__all__ = [
    "exchange",
    "indicators",
    "keys",
    "market_events",
    "markets",
    "messaging",
    "models",
    "scoring",
]