from dataclasses import replace
from datetime import datetime, timezone
from uuid import uuid4

import pytest

from endurance.models import (
    AccessDeniedError,
    ApiKey,
    ConversionQuote,
    DomainError,
    ExchangeError,
    InsufficientDataError,
    MarketData,
    NotFoundError,
    StaleDataError,
    SymbolScore,
    ValidationError,
)


def _market_data(**overrides):
    values = dict(
        symbol="BTCUSDT",
        timestamp=datetime.now(timezone.utc),
        open=50000.0,
        high=51000.0,
        low=49000.0,
        close=50500.0,
        volume=1000.0,
    )
    values.update(overrides)
    return MarketData(**values)


def _quote(**overrides):
    values = dict(
        id="quote-1",
        from_asset="USDT",
        to_asset="BTC",
        from_amount=100.0,
        to_amount=0.002,
        ratio=0.00002,
        inverse_ratio=50000.0,
        valid_time=10,
    )
    values.update(overrides)
    return ConversionQuote(**values)


def _api_key(**overrides):
    values = dict(user_id=uuid4(), type="telegram", key="placeholder", secret="secret")
    values.update(overrides)
    return ApiKey(**values)


@pytest.mark.parametrize(
    "error", [NotFoundError, ValidationError, InsufficientDataError, StaleDataError, AccessDeniedError, ExchangeError]
)
def test_errors_share_a_base(error):
    with pytest.raises(DomainError) as excinfo:
        raise error("boom")
    assert type(excinfo.value) is error
    assert str(excinfo.value) == "boom"


def test_validation_error_is_a_value_error():
    with pytest.raises(ValueError):
        _market_data(symbol="INVALID").validate()


def test_valid_market_data_passes_and_keeps_values():
    data = _market_data()
    data.validate()
    assert data.symbol == "BTCUSDT"
    assert data.macd is None and data.score is None


def test_market_data_rejects_symbol_without_usdt():
    with pytest.raises(ValidationError):
        _market_data(symbol="INVALID").validate()


def test_market_data_rejects_missing_timestamp():
    with pytest.raises(ValidationError):
        _market_data(timestamp=None).validate()


@pytest.mark.parametrize("name", ["open", "high", "low", "close", "volume"])
def test_market_data_rejects_negative_ohlcv(name):
    with pytest.raises(ValidationError):
        _market_data(**{name: -50000.0}).validate()


def test_market_data_ids_are_unique():
    first, second = _market_data(), _market_data()
    assert len({first.id, second.id}) == 2


def test_market_data_copy_keeps_identity_fields():
    data = _market_data()
    copy = replace(data, close=120.0)
    assert copy.id == data.id
    assert copy.close == 120.0
    assert data.close == 50500.0


def test_symbol_score_defaults_to_no_ranking():
    score = SymbolScore(symbol="BTCUSDT", score=42.0)
    assert score.ranking == 0


def test_valid_quote_passes():
    quote = _quote()
    quote.validate()
    assert quote.from_amount == 100.0


@pytest.mark.parametrize(
    "overrides",
    [{"id": ""}, {"from_asset": ""}, {"to_amount": 0.0}, {"ratio": -1.0}, {"inverse_ratio": 0.0}, {"from_amount": 0.0}],
)
def test_quote_rejects_bad_values(overrides):
    with pytest.raises(ValidationError):
        _quote(**overrides).validate()


def test_valid_api_key_passes():
    api_key = _api_key()
    api_key.validate()
    assert api_key.type == "telegram"


@pytest.mark.parametrize("name", ["type", "key", "secret"])
def test_api_key_rejects_empty_fields(name):
    with pytest.raises(ValidationError):
        _api_key(**{name: ""}).validate()


def test_api_key_rejects_missing_user():
    with pytest.raises(ValidationError):
        _api_key(user_id=None).validate()