"""Domain errors, entities and value objects shared by the services."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from uuid import UUID, uuid4


class DomainError(Exception):
    """Base class for every error raised by the domain services."""


class NotFoundError(DomainError, LookupError):
    """A requested record or resource does not exist."""


class ValidationError(DomainError, ValueError):
    """An entity holds values that break its rules."""


class InsufficientDataError(DomainError):
    """Not enough data points are available for a calculation."""


class StaleDataError(DomainError):
    """The most recent data point is too old to be used."""


class AccessDeniedError(DomainError, PermissionError):
    """The caller does not own the resource it asked for."""


class ExchangeError(DomainError):
    """The exchange rejected a request or returned unusable data."""


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(kw_only=True)
class MarketData:
    """One candle of a symbol together with its technical indicators."""

    symbol: str
    timestamp: datetime | None
    open: float
    high: float
    low: float
    close: float
    volume: float
    id: UUID = field(default_factory=uuid4)
    correlation_id: UUID | None = None
    macd: float | None = None
    macd_signal: float | None = None
    macd_hist: float | None = None
    rsi6: float | None = None
    rsi12: float | None = None
    rsi24: float | None = None
    sma20: float | None = None
    sma50: float | None = None
    sma200: float | None = None
    atr: float | None = None
    bollinger_bands: float | None = None
    bollinger_bands_width: float | None = None
    bollinger_bands_upper: float | None = None
    bollinger_bands_lower: float | None = None
    obv: float | None = None
    adx: float | None = None
    adx_index: float | None = None
    adx_positive: float | None = None
    adx_negative: float | None = None
    score: float | None = None
    created_at: datetime = field(default_factory=_utcnow)
    updated_at: datetime = field(default_factory=_utcnow)

    def validate(self) -> None:
        """Raise ValidationError unless symbol, timestamp and OHLCV are sound."""
        if not self.symbol or not self.symbol.endswith("USDT") or self.symbol == "USDT":
            raise ValidationError(f"invalid symbol: {self.symbol!r}")
        if self.timestamp is None:
            raise ValidationError("timestamp is required")
        for name in ("open", "high", "low", "close", "volume"):
            if getattr(self, name) < 0:
                raise ValidationError(f"{name} must not be negative")


@dataclass
class SymbolScore:
    """Opportunity score of a symbol and its place in a ranking."""

    symbol: str
    score: float
    ranking: int = 0


@dataclass(frozen=True)
class ExchangeBalance:
    """Free and locked amounts of one asset held on the exchange."""

    asset: str
    free: float
    locked: float


@dataclass(frozen=True)
class ExchangeTicker:
    """Last price and 24 hour statistics of a symbol."""

    symbol: str
    price: float
    volume: float
    price_percentage_change: float


@dataclass(frozen=True)
class ExchangeAvailableSymbol:
    """A symbol listed on the exchange."""

    symbol: str
    base_asset: str
    quote_asset: str
    status: str
    quote_precision: int


@dataclass(frozen=True)
class ExchangeKline:
    """One candle returned by the exchange."""

    open_time: datetime
    open: float
    high: float
    low: float
    close: float
    volume: float
    trades: int


@dataclass
class ConversionQuote:
    """A quote to convert one asset into another."""

    id: str
    from_asset: str
    to_asset: str
    from_amount: float
    to_amount: float
    ratio: float
    inverse_ratio: float
    valid_time: int

    def validate(self) -> None:
        """Raise ValidationError unless the quote can be accepted."""
        if not self.id:
            raise ValidationError("quote id is required")
        if not self.from_asset or not self.to_asset:
            raise ValidationError("both assets are required")
        for name in ("from_amount", "to_amount", "ratio", "inverse_ratio"):
            if getattr(self, name) <= 0:
                raise ValidationError(f"{name} must be positive")


@dataclass(frozen=True)
class ConversionOrder:
    """The order created when a conversion quote is accepted."""

    id: int
    created_at: datetime
    status: str


@dataclass(kw_only=True)
class ApiKey:
    """Credentials a user stores for an outside service."""

    user_id: UUID
    type: str
    key: str
    secret: str
    id: UUID = field(default_factory=uuid4)
    created_at: datetime = field(default_factory=_utcnow)
    updated_at: datetime = field(default_factory=_utcnow)

    def validate(self) -> None:
        """Raise ValidationError unless type, key and secret are present."""
        if self.user_id is None:
            raise ValidationError("user id is required")
        for name in ("type", "key", "secret"):
            if not getattr(self, name):
                raise ValidationError(f"{name} is required")