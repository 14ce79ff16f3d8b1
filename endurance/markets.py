"""Market data storage, technical indicator calculation and opportunity scores."""

from __future__ import annotations

import operator
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field, replace
from datetime import datetime, timedelta, timezone
from uuid import UUID

from . import indicators, scoring
from .models import (
    InsufficientDataError,
    MarketData,
    NotFoundError,
    StaleDataError,
    SymbolScore,
    ValidationError,
)

STALE_AFTER = timedelta(minutes=2)

_COMPARISONS = {
    "gte": operator.ge,
    "gt": operator.gt,
    "lte": operator.le,
    "lt": operator.lt,
}

_CLONED_FIELDS = (
    "timestamp", "open", "high", "low", "close", "volume",
    "macd", "macd_signal", "macd_hist",
    "rsi6", "rsi12", "rsi24",
    "sma20", "sma50", "sma200",
    "atr",
    "bollinger_bands", "bollinger_bands_width",
    "bollinger_bands_upper", "bollinger_bands_lower",
    "obv",
    "adx", "adx_index", "adx_positive", "adx_negative",
    "score",
)


@dataclass
class MarketDataQuery:
    """Filters, ordering and paging for a market data lookup.

    Filter keys name a field, optionally followed by ``__gte``, ``__gt``,
    ``__lte`` or ``__lt``; a bare field name means equality.
    """

    filters: dict[str, object] = field(default_factory=dict)
    order_by: str = "created_at"
    descending: bool = True
    page: int = 1
    limit: int = 100


def _matches(record: MarketData, filters: dict[str, object]) -> bool:
    for key, expected in filters.items():
        name, _, suffix = key.partition("__")
        actual = getattr(record, name)
        if not suffix:
            if actual != expected:
                return False
            continue
        compare = _COMPARISONS.get(suffix)
        if compare is None:
            raise ValueError(f"unsupported filter: {key}")
        if actual is None or not compare(actual, expected):
            return False
    return True


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class InMemoryMarketDataRepository:
    """Market data records kept in memory, keyed by id."""

    def __init__(self) -> None:
        self._records: dict[UUID, MarketData] = {}

    def get_by_id(self, market_data_id: UUID) -> MarketData:
        try:
            return replace(self._records[market_data_id])
        except KeyError:
            raise NotFoundError(f"market data {market_data_id} not found") from None

    def get_all(self, query: MarketDataQuery) -> list[MarketData]:
        matched = [record for record in self._records.values() if _matches(record, query.filters)]
        matched.sort(key=lambda record: getattr(record, query.order_by), reverse=query.descending)
        start = (max(query.page, 1) - 1) * query.limit
        return [replace(record) for record in matched[start:start + query.limit]]

    def create(self, market_data: MarketData) -> MarketData:
        if market_data.id in self._records:
            raise ValidationError(f"market data {market_data.id} already exists")
        self._records[market_data.id] = replace(market_data)
        return replace(market_data)

    def update(self, market_data: MarketData) -> MarketData:
        if market_data.id not in self._records:
            raise NotFoundError(f"market data {market_data.id} not found")
        stored = replace(market_data, updated_at=_utcnow())
        self._records[stored.id] = stored
        return replace(stored)

    def delete(self, market_data_id: UUID) -> None:
        try:
            del self._records[market_data_id]
        except KeyError:
            raise NotFoundError(f"market data {market_data_id} not found") from None


def _nonzero(value: float) -> float | None:
    return None if value == 0 else value


def _prepare(market_datas: Iterable[MarketData], minimum: int, name: str) -> list[MarketData]:
    records = list(market_datas)
    if len(records) < minimum:
        raise InsufficientDataError(f"insufficient data for {name} calculation")
    return indicators.chronological(records)


def _columns(records: list[MarketData], *names: str) -> tuple[list[float], ...]:
    return tuple([getattr(record, name) for record in records] for name in names)


class MarketDataService:
    """Stores candles, computes their technical indicators and scores symbols."""

    def __init__(self, repository, clock: Callable[[], datetime] | None = None) -> None:
        self._repository = repository
        self._clock = clock or _utcnow

    def get_by_id(self, market_data_id: UUID) -> MarketData:
        return self._repository.get_by_id(market_data_id)

    def get_all(self, query: MarketDataQuery) -> list[MarketData]:
        return self._repository.get_all(query)

    def _newest(self, symbol: str) -> MarketData:
        found = self._repository.get_all(MarketDataQuery({"symbol": symbol}, limit=1))
        if not found:
            raise InsufficientDataError(f"no market data for {symbol}")
        newest = found[0]
        if newest.timestamp < self._clock() - STALE_AFTER:
            raise StaleDataError(f"market data for {symbol} is too old")
        return newest

    def get_latest(self, symbol: str) -> MarketData:
        """The newest record of a symbol, provided it is at most two minutes old."""
        return self._newest(symbol)

    def create(self, market_data: MarketData) -> MarketData:
        """Store a record, or merge it into one of the same symbol and minute."""
        market_data.validate()
        lower = market_data.timestamp.replace(second=0, microsecond=0)
        query = MarketDataQuery(
            {
                "symbol": market_data.symbol,
                "timestamp__gte": lower,
                "timestamp__lt": lower + timedelta(minutes=1),
            },
            limit=100,
        )
        existing = self._repository.get_all(query)
        if existing:
            merged = replace(
                existing[0], **{name: getattr(market_data, name) for name in _CLONED_FIELDS}
            )
            return self.update(merged)
        return self._repository.create(market_data)

    def update(self, market_data: MarketData) -> MarketData:
        return self._repository.update(market_data)

    def delete(self, market_data_id: UUID) -> None:
        self._repository.delete(market_data_id)

    def get_scores(self, symbols: Iterable[str]) -> list[SymbolScore]:
        """Scores of the symbols, best first, ranked from 1."""
        scores = sorted(
            (self.get_symbol_score(symbol) for symbol in symbols),
            key=lambda symbol_score: symbol_score.score,
            reverse=True,
        )
        for ranking, symbol_score in enumerate(scores, start=1):
            symbol_score.ranking = ranking
        return scores

    def get_symbol_score(self, symbol: str) -> SymbolScore:
        newest = self._newest(symbol)
        if newest.score is None:
            raise InsufficientDataError(f"no score for {symbol}")
        return SymbolScore(symbol=symbol, score=newest.score, ranking=0)

    def calculate_macd(self, market_datas: Iterable[MarketData]) -> MarketData:
        records = _prepare(market_datas, 26, "MACD")
        (closes,) = _columns(records, "close")
        macd_line, signal_line, histogram = indicators.macd(closes, 12, 26, 9)
        return replace(
            records[-1],
            **{
                name: value
                for name, value in (
                    ("macd", _nonzero(macd_line[-1])),
                    ("macd_signal", _nonzero(signal_line[-1])),
                    ("macd_hist", _nonzero(histogram[-1])),
                )
                if value is not None
            },
        )

    def calculate_rsi(self, market_datas: Iterable[MarketData]) -> MarketData:
        records = _prepare(market_datas, 24, "RSI")
        (closes,) = _columns(records, "close")
        values = {f"rsi{period}": _nonzero(indicators.rsi(closes, period)[-1]) for period in (6, 12, 24)}
        return replace(records[-1], **{k: v for k, v in values.items() if v is not None})

    def calculate_sma(self, market_datas: Iterable[MarketData]) -> MarketData:
        records = _prepare(market_datas, 200, "SMA")
        (closes,) = _columns(records, "close")
        values = {f"sma{period}": _nonzero(indicators.sma(closes, period)[-1]) for period in (20, 50, 200)}
        return replace(records[-1], **{k: v for k, v in values.items() if v is not None})

    def calculate_atr(self, market_datas: Iterable[MarketData]) -> MarketData:
        records = _prepare(market_datas, 14, "ATR")
        highs, lows, closes = _columns(records, "high", "low", "close")
        value = _nonzero(indicators.atr(highs, lows, closes, 14)[-1])
        return replace(records[-1]) if value is None else replace(records[-1], atr=value)

    def calculate_bollinger_bands(self, market_datas: Iterable[MarketData]) -> MarketData:
        records = _prepare(market_datas, 20, "Bollinger Bands")
        (closes,) = _columns(records, "close")
        _, upper, lower = indicators.bollinger_bands(closes, 20, 2.0)
        if lower[-1] == 0:
            return replace(records[-1])
        return replace(
            records[-1],
            bollinger_bands=(lower[-1] + upper[-1]) / 2,
            bollinger_bands_upper=upper[-1],
            bollinger_bands_lower=lower[-1],
            bollinger_bands_width=upper[-1] - lower[-1],
        )

    def calculate_obv(self, market_datas: Iterable[MarketData]) -> MarketData:
        records = _prepare(market_datas, 14, "OBV")
        (volumes,) = _columns(records, "volume")
        value = _nonzero(indicators.on_balance_volume(volumes)[-1])
        return replace(records[-1]) if value is None else replace(records[-1], obv=value)

    def calculate_adx(self, market_datas: Iterable[MarketData]) -> MarketData:
        records = _prepare(market_datas, 14, "ADX")
        highs, lows, closes = _columns(records, "high", "low", "close")
        index, positive, negative = indicators.adx(highs, lows, closes, 14)
        return replace(
            records[-1], adx=index, adx_index=index, adx_positive=positive, adx_negative=negative
        )

    def calculate_general_technical_indicators(self, market_datas: Iterable[MarketData]) -> MarketData:
        """Every indicator for the series, placed on the earliest created record."""
        records = list(market_datas)
        macd = self.calculate_macd(records)
        rsi = self.calculate_rsi(records)
        sma = self.calculate_sma(records)
        atr = self.calculate_atr(records)
        bands = self.calculate_bollinger_bands(records)
        obv = self.calculate_obv(records)
        adx = self.calculate_adx(records)
        target = sorted(records, key=lambda record: record.created_at, reverse=True)[-1]
        return replace(
            target,
            macd=macd.macd,
            macd_signal=macd.macd_signal,
            macd_hist=macd.macd_hist,
            rsi6=rsi.rsi6,
            rsi12=rsi.rsi12,
            rsi24=rsi.rsi24,
            sma20=sma.sma20,
            sma50=sma.sma50,
            sma200=sma.sma200,
            atr=atr.atr,
            bollinger_bands=bands.bollinger_bands,
            bollinger_bands_upper=bands.bollinger_bands_upper,
            bollinger_bands_lower=bands.bollinger_bands_lower,
            bollinger_bands_width=bands.bollinger_bands_width,
            obv=obv.obv,
            adx=adx.adx,
            adx_index=adx.adx_index,
            adx_positive=adx.adx_positive,
            adx_negative=adx.adx_negative,
        )

    def calculate_opportunity_score(self, market_data: MarketData) -> MarketData:
        """A copy of the record carrying its opportunity score from 0 to 100."""
        return replace(market_data, score=scoring.opportunity_score(market_data))