"""Account, market data and conversion operations against a spot exchange.

The services talk to duck-typed clients that return decoded JSON payloads
and raise an exception when a request fails:

``client.get_account()``
    ``{"balances": [{"asset", "free", "locked"}, ...]}`` with amounts as text.
``client.get_ticker_24hr(symbol)``
    a list of ``{"symbol", "lastPrice", "volume", "priceChangePercent"}``.
``client.get_exchange_info()``
    ``{"symbols": [{"symbol", "baseAsset", "quoteAsset", "status", "quotePrecision"}, ...]}``.
``client.get_convert_quote(from_asset, to_asset, from_amount, wallet_type)``
    ``{"quoteId", "ratio", "inverseRatio", "toAmount", "validTime"}``.
``client.accept_convert_quote(quote_id)``
    ``{"orderId", "createTime", "orderStatus"}``.
``client.get_klines(symbol, interval, start_time, end_time)``
    a list of ``{"openTime", "open", "high", "low", "close", "volume", "tradeNum"}``;
    the bounds are Unix milliseconds.
``stream.serve(symbol, interval, on_kline, on_error)``
    starts a kline stream; ``on_kline`` receives
    ``{"symbol", "startTime", "open", "high", "low", "close", "volume", "isFinal"}``.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from datetime import datetime, timedelta, timezone
from decimal import Decimal

from .market_events import EventType, MarketDataEvent
from .models import (
    ConversionOrder,
    ConversionQuote,
    ExchangeAvailableSymbol,
    ExchangeBalance,
    ExchangeError,
    ExchangeKline,
    ExchangeTicker,
    NotFoundError,
)

logger = logging.getLogger(__name__)

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)

_QUOTE_ERRORS = (
    ("insufficient balance", "insufficient balance"),
    ("invalid symbol", "invalid symbol"),
    ("invalid amount", "invalid amount for quote"),
)


def _parse_float(value, message: str) -> float:
    """Parse a decimal amount sent as text, raising ExchangeError on bad input."""
    if isinstance(value, str) and (value != value.strip() or "_" in value):
        logger.error("Error parsing %r: %s", value, message)
        raise ExchangeError(message)
    try:
        return float(value)
    except (TypeError, ValueError) as exc:
        logger.error("Error parsing %r: %s", value, message)
        raise ExchangeError(message) from exc


def _format_amount(amount: float) -> str:
    """Shortest plain decimal text for an amount, without an exponent."""
    text = format(Decimal(repr(float(amount))), "f")
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return text


def _from_unix(seconds) -> datetime:
    return datetime.fromtimestamp(int(seconds), tz=timezone.utc)


def _unix_millis(moment: datetime) -> int:
    if moment.tzinfo is None:
        moment = moment.astimezone()
    return (moment - _EPOCH) // timedelta(milliseconds=1)


class ExchangeService:
    """Balances, tickers, listed symbols and asset conversion."""

    def __init__(self, client) -> None:
        self._client = client

    def get_balance(self, asset: str) -> ExchangeBalance:
        """The balance of one asset; NotFoundError when nothing is held."""
        for balance in self.get_balances():
            if balance.asset == asset:
                return balance
        raise NotFoundError(f"balance for {asset} not found")

    def get_balances(self) -> list[ExchangeBalance]:
        """Every asset with a free or locked amount."""
        try:
            account = self._client.get_account()
        except Exception as exc:
            logger.error("Error getting account: %s", exc)
            raise ExchangeError("account not available") from exc
        logger.info("Account: %r", account)
        entries = account.get("balances") or []
        if not entries:
            logger.error("No balances available")
            raise ExchangeError("no balance available")
        return [
            ExchangeBalance(
                asset=entry["asset"],
                free=_parse_float(entry["free"], "invalid balance"),
                locked=_parse_float(entry["locked"], "invalid balance"),
            )
            for entry in entries
            if not (entry["free"] == "0" and entry["locked"] == "0")
        ]

    def get_ticker(self, symbol: str) -> ExchangeTicker:
        """Last price, volume and 24 hour change of a symbol."""
        try:
            tickers = self._client.get_ticker_24hr(symbol)
        except Exception as exc:
            logger.error("Error getting ticker: %s", exc)
            raise ExchangeError("ticker not available") from exc
        if not tickers:
            logger.error("No ticker found for symbol: %s", symbol)
            raise ExchangeError("ticker not available")
        ticker = tickers[0]
        return ExchangeTicker(
            symbol=ticker["symbol"],
            price=_parse_float(ticker["lastPrice"], "invalid price"),
            volume=_parse_float(ticker["volume"], "invalid volume"),
            price_percentage_change=_parse_float(
                ticker["priceChangePercent"], "invalid price percentage change"
            ),
        )

    def get_available_symbols(self) -> list[ExchangeAvailableSymbol]:
        """Symbols that are currently trading."""
        try:
            info = self._client.get_exchange_info()
        except Exception as exc:
            logger.error("Error getting exchange info: %s", exc)
            raise ExchangeError("exchange info not available") from exc
        return [
            ExchangeAvailableSymbol(
                symbol=entry["symbol"],
                base_asset=entry["baseAsset"],
                quote_asset=entry["quoteAsset"],
                status=entry["status"],
                quote_precision=int(entry["quotePrecision"]),
            )
            for entry in info.get("symbols") or []
            if entry["status"] == "TRADING"
        ]

    def get_conversion_quote(
        self, from_asset: str, to_asset: str, from_amount: float, wallet_type: str
    ) -> ConversionQuote:
        """Ask for a quote to convert an amount of one asset into another."""
        try:
            raw = self._client.get_convert_quote(
                from_asset, to_asset, _format_amount(from_amount), wallet_type
            )
        except Exception as exc:
            text = str(exc)
            for fragment, message in _QUOTE_ERRORS:
                if fragment in text:
                    raise ExchangeError(message) from exc
            logger.error("Error getting conversion quote: %s", exc)
            raise ExchangeError("conversion quote not available") from exc
        quote = ConversionQuote(
            id=str(raw["quoteId"]),
            from_asset=from_asset,
            to_asset=to_asset,
            from_amount=from_amount,
            to_amount=_parse_float(raw["toAmount"], "invalid to amount"),
            ratio=_parse_float(raw["ratio"], "invalid ratio"),
            inverse_ratio=_parse_float(raw["inverseRatio"], "invalid inverse ratio"),
            valid_time=int(raw["validTime"]),
        )
        quote.validate()
        return quote

    def accept_conversion_quote(self, quote_id: str) -> ConversionOrder:
        """Accept a quote and return the order it created."""
        try:
            raw = self._client.accept_convert_quote(quote_id)
        except Exception as exc:
            if "quote expired" in str(exc):
                raise ExchangeError("quote expired") from exc
            logger.error("Error accepting conversion quote: %s", exc)
            raise ExchangeError("conversion quote not available") from exc
        return ConversionOrder(
            id=int(raw["orderId"]),
            created_at=_from_unix(raw["createTime"]),
            status=raw["orderStatus"],
        )

    def convert_asset(
        self,
        user_id,
        from_asset: str,
        to_asset: str,
        from_amount: float,
        wallet_type: str,
    ) -> ConversionOrder:
        """Get a quote for the conversion and accept it straight away."""
        quote = self.get_conversion_quote(from_asset, to_asset, from_amount, wallet_type)
        logger.info("Quote for user %s: %r", user_id, quote)
        order = self.accept_conversion_quote(quote.id)
        logger.info("Order for user %s: %r", user_id, order)
        return order


class ExchangeDataService:
    """Historical candles from the exchange."""

    def __init__(self, client) -> None:
        self._client = client

    def get_klines(
        self, symbol: str, interval: str, start: datetime, end: datetime
    ) -> list[ExchangeKline]:
        """Candles of a symbol between two moments."""
        try:
            raw_klines = self._client.get_klines(
                symbol, interval, _unix_millis(start), _unix_millis(end)
            )
        except Exception as exc:
            logger.error("Error getting klines: %s", exc)
            raise ExchangeError("klines not available") from exc
        return [
            ExchangeKline(
                open_time=_from_unix(kline["openTime"]),
                open=_parse_float(kline["open"], "invalid open"),
                high=_parse_float(kline["high"], "invalid high"),
                low=_parse_float(kline["low"], "invalid low"),
                close=_parse_float(kline["close"], "invalid close"),
                volume=_parse_float(kline["volume"], "invalid volume"),
                trades=int(kline["tradeNum"]),
            )
            for kline in raw_klines
        ]


class KlineStreamService:
    """Turns streamed candles into market data events on the bus."""

    def __init__(self, bus, stream) -> None:
        self._bus = bus
        self._stream = stream

    def handle_kline(self, kline: Mapping) -> MarketDataEvent:
        """Publish a streamed candle as a market data pushed event."""
        event = MarketDataEvent(
            type=EventType.MARKET_DATA_PUSHED,
            symbol=kline["symbol"],
            data_timestamp=_from_unix(kline["startTime"]),
            open=_parse_float(kline["open"], "invalid open"),
            high=_parse_float(kline["high"], "invalid high"),
            low=_parse_float(kline["low"], "invalid low"),
            close=_parse_float(kline["close"], "invalid close"),
            volume=_parse_float(kline["volume"], "invalid volume"),
            candle_close=bool(kline["isFinal"]),
        )
        self._bus.publish(event)
        return event

    def handle_error(self, error: BaseException) -> None:
        print(f"Error: {error}")

    def subscribe(self, symbols: Iterable[str], interval: str) -> None:
        """Start a kline stream for each symbol; failures are logged."""
        for symbol in symbols:
            try:
                self._stream.serve(symbol, interval, self.handle_kline, self.handle_error)
            except Exception as exc:
                logger.error("Error subscribing to klines: %s", exc)