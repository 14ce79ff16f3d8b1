# endurance

Services for storing crypto candle data, computing technical indicators
on it and scoring symbols by a weighted opportunity score. The package has
no third-party dependencies.

## Modules

- `endurance.models`: the records (`MarketData`, `SymbolScore`, `ApiKey`,
  `ConversionQuote`, `ConversionOrder`, `ExchangeBalance`, `ExchangeTicker`,
  `ExchangeAvailableSymbol`, `ExchangeKline`) and the errors. `DomainError`
  is the base class. `NotFoundError`, `ValidationError`,
  `InsufficientDataError`, `StaleDataError`, `AccessDeniedError` and
  `ExchangeError` derive from it. `MarketData.validate()` requires a symbol
  that ends in `USDT`, a timestamp, and OHLCV values that are not negative.
- `endurance.indicators`: plain functions over lists of numbers. These are
  `ema`, `smoothed_ema`, `sma`, `macd`, `rsi`, `atr`, `bollinger_bands`,
  `on_balance_volume` and `adx`, plus `chronological`, which orders records
  oldest first. The series functions return one value per input and give
  zero until the first full window. `on_balance_volume` returns each
  candle's raw volume. `adx` returns a single
  `(index, plus_percent, minus_percent)` tuple.
- `endurance.scoring`: component scores between 0 and 1. These are
  `macd_score`, `rsi_score`, `sma_score`, `bollinger_bands_score`,
  `volume_score`, `trend_score` and `volatility_score`. `opportunity_score`
  combines them into a weighted score from 0 to 100, using only the
  indicator groups present on a record.
- `endurance.markets`: `MarketDataService` over a repository such as
  `InMemoryMarketDataRepository`. Lookups take a `MarketDataQuery`, whose
  filter keys may end in `__gte`, `__gt`, `__lte` or `__lt`. The service
  provides the following:
  - `create` merges a record into an existing one of the same symbol and
    minute.
  - `get_latest` and `get_symbol_score` raise `StaleDataError` when the
    newest record is more than two minutes old.
  - `get_scores` ranks symbols best first, starting at 1.
  - The `calculate_*` methods raise `InsufficientDataError` when there are
    too few records. The minimums are 26 for MACD, 24 for RSI, 200 for SMA,
    20 for Bollinger Bands, and 14 for ATR, OBV and ADX.
- `endurance.market_events`: `MarketDataEvent` has `to_json` and
  `from_json`. `EventType` names the two event kinds.
  `MarketDataEventHandler` works as follows:
  - A closed candle in a "pushed" event is stored, and a "partial" event is
    published for it.
  - A "partial" event computes the indicators and score from up to 15 days
    of history.

  `MarketDataEventRegistry.handle_event` decodes a message and routes it.
  It ignores messages it cannot decode and event types it does not know.
  `InMemoryEventBus` collects published events as encoded bytes.
- `endurance.messaging`: `MessagingService.process_message` handles
  messages whose subject contains the domain events root (by default
  `domain.events.`) and acknowledges them. A message whose handling fails
  is passed to the dead-letter callable first. Messages on other subjects
  are rejected with `nak`. `Message` may be settled only once.
- `endurance.exchange`: `ExchangeService` covers balances, tickers, trading
  symbols and asset conversion by quote. `ExchangeDataService.get_klines`
  fetches historical candles. `KlineStreamService` publishes streamed
  candles as "pushed" events. All three work against a client object you
  supply. The module docstring lists the methods and payloads they expect.
  Failures are raised as `ExchangeError`.
- `endurance.keys`: `ApiKeyService` over `InMemoryApiKeyRepository`. When
  the service is given a `user_id`, it only lets that user read, change or
  delete their own keys. `get_telegram_keys` returns the newest key of type
  `telegram`.

## Example

```python
from datetime import datetime, timedelta, timezone

from endurance.markets import InMemoryMarketDataRepository, MarketDataService
from endurance.models import MarketData

service = MarketDataService(InMemoryMarketDataRepository())
start = datetime.now(timezone.utc) - timedelta(minutes=250)

candles = []
for minute in range(250):
    moment = start + timedelta(minutes=minute)
    price = 100 + minute * 0.1
    candles.append(service.create(MarketData(
        symbol="BTCUSDT", timestamp=moment,
        open=price, high=price + 2, low=price - 1.5,
        close=price + minute * 0.05, volume=1000 + minute * 10,
        created_at=moment,
    )))

enriched = service.calculate_general_technical_indicators(candles)
scored = service.calculate_opportunity_score(enriched)
print(scored.rsi6, scored.sma200, scored.score)
```

`calculate_general_technical_indicators` computes every indicator from the
whole series. It returns a copy of the earliest created record carrying the
results.

## Event pipeline

```python
from endurance.market_events import (
    InMemoryEventBus, MarketDataEventHandler, MarketDataEventRegistry,
)
from endurance.messaging import Message, MessagingService

bus = InMemoryEventBus()
registry = MarketDataEventRegistry(MarketDataEventHandler(service, bus))
dead_letters = []
messaging = MessagingService(registry, dead_letters.append)

message = Message(subject="domain.events.market", data=some_event.to_json())
messaging.process_message(message)
assert message.acknowledged
```

## What it does not do

- It has no command-line program and no HTTP server.
- Storage is in memory only. `InMemoryMarketDataRepository` and
  `InMemoryApiKeyRepository` keep records for the life of the process.
  Another repository with the same methods can be passed in instead.
- It does not connect to a message broker or to an exchange. You supply the
  event bus, the dead-letter callable, the exchange client and the kline
  stream.

## Installation and tests

```
pip install .
pip install .[test]
pytest
```