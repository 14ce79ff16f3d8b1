"""Market data domain events and the handlers that react to them."""

from __future__ import annotations

import json
import logging
from collections.abc import Callable
from dataclasses import asdict, dataclass, field
from datetime import datetime, timedelta
from enum import Enum
from uuid import UUID, uuid4

from .markets import MarketDataQuery, MarketDataService
from .models import InsufficientDataError, MarketData

logger = logging.getLogger(__name__)

HISTORY_WINDOW = timedelta(days=15)
HISTORY_LIMIT = 1000


class EventType(str, Enum):
    """Kinds of market data events."""

    MARKET_DATA_PUSHED = "market_data.pushed"
    PARTIAL_MARKET_DATA = "market_data.partial"


@dataclass(kw_only=True)
class MarketDataEvent:
    """A market data event as carried on the message bus."""

    type: str
    id: UUID = field(default_factory=uuid4)
    symbol: str = ""
    data_timestamp: datetime | None = None
    open: float = 0.0
    high: float = 0.0
    low: float = 0.0
    close: float = 0.0
    volume: float = 0.0
    candle_close: bool = False
    datapoint_id: UUID | None = None

    def __post_init__(self) -> None:
        if isinstance(self.type, EventType):
            self.type = self.type.value

    def to_json(self) -> bytes:
        payload = asdict(self)
        payload["id"] = str(self.id)
        payload["data_timestamp"] = self.data_timestamp.isoformat() if self.data_timestamp else None
        payload["datapoint_id"] = str(self.datapoint_id) if self.datapoint_id else None
        return json.dumps(payload).encode()

    @classmethod
    def from_json(cls, data: bytes | str) -> MarketDataEvent:
        """Decode an event; raise ValueError when the data is not a valid event."""
        payload = json.loads(data)
        if not isinstance(payload, dict):
            raise ValueError("event must be a JSON object")
        try:
            timestamp = payload.get("data_timestamp")
            datapoint = payload.get("datapoint_id")
            return cls(
                type=str(payload["type"]),
                id=UUID(payload["id"]),
                symbol=str(payload.get("symbol", "")),
                data_timestamp=datetime.fromisoformat(timestamp) if timestamp else None,
                open=float(payload.get("open", 0.0)),
                high=float(payload.get("high", 0.0)),
                low=float(payload.get("low", 0.0)),
                close=float(payload.get("close", 0.0)),
                volume=float(payload.get("volume", 0.0)),
                candle_close=bool(payload.get("candle_close", False)),
                datapoint_id=UUID(datapoint) if datapoint else None,
            )
        except (KeyError, TypeError, AttributeError) as exc:
            raise ValueError(f"malformed event: {exc}") from exc


class InMemoryEventBus:
    """Collects published events as encoded messages."""

    def __init__(self) -> None:
        self.messages: list[bytes] = []

    def publish(self, event: MarketDataEvent) -> None:
        self.messages.append(event.to_json())


class MarketDataEventHandler:
    """Stores pushed candles and computes indicators for stored ones."""

    def __init__(self, service: MarketDataService, bus) -> None:
        self._service = service
        self._bus = bus

    def handle_market_data_pushed(self, event: MarketDataEvent) -> None:
        logger.info("Handling market data pushed event...")
        seen = self._service.get_all(MarketDataQuery({"correlation_id": event.id}, limit=1))
        if seen:
            logger.info("Event already processed. Skipping.")
            return
        if not event.candle_close:
            logger.info("Candle not closed. Skipping.")
            return
        market_data = MarketData(
            correlation_id=event.id,
            symbol=event.symbol,
            timestamp=event.data_timestamp,
            open=event.open,
            high=event.high,
            low=event.low,
            close=event.close,
            volume=event.volume,
        )
        market_data.validate()
        stored = self._service.create(market_data)
        self._bus.publish(
            MarketDataEvent(type=EventType.PARTIAL_MARKET_DATA, datapoint_id=stored.id)
        )

    def handle_partial_market_data(self, event: MarketDataEvent) -> None:
        logger.info("Handling partial market data event...")
        datapoint = self._service.get_by_id(event.datapoint_id)
        query = MarketDataQuery(
            {
                "symbol": datapoint.symbol,
                "timestamp__gte": datapoint.timestamp - HISTORY_WINDOW,
                "timestamp__lte": datapoint.timestamp,
            },
            order_by="timestamp",
            descending=False,
            limit=HISTORY_LIMIT,
        )
        history = self._service.get_all(query)
        if not history:
            raise InsufficientDataError(f"no market data for {datapoint.symbol}")
        enriched = self._service.calculate_general_technical_indicators(history)
        enriched = self._service.calculate_opportunity_score(enriched)
        self._service.update(enriched)


class MarketDataEventRegistry:
    """Routes encoded market data events to the matching handler."""

    def __init__(self, handler: MarketDataEventHandler) -> None:
        self._handlers: dict[str, Callable[[MarketDataEvent], None]] = {
            EventType.MARKET_DATA_PUSHED.value: handler.handle_market_data_pushed,
            EventType.PARTIAL_MARKET_DATA.value: handler.handle_partial_market_data,
        }

    def handle_event(self, message: bytes | str) -> None:
        """Handle one message; undecodable or unknown events are ignored."""
        try:
            event = MarketDataEvent.from_json(message)
        except ValueError:
            return None
        logger.info("Market domain event received: %s", event.type)
        handler = self._handlers.get(event.type)
        if handler is None:
            logger.error("No handler found for market domain event: %s", event.type)
            return None
        return handler(event)