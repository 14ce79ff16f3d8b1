"""Opportunity scoring built from technical indicator readings."""

from __future__ import annotations


def macd_score(macd: float, signal: float, histogram: float) -> float:
    """Score between 0 and 1 from MACD crossover, histogram and strength."""
    score = 30.0 if macd > signal else 10.0
    if histogram > 0 and histogram >= 0.1:
        score += 20
    strength = abs(macd)
    if strength > 0.5:
        score += 25
    elif strength > 0.2:
        score += 15
    return score / 100.0


def rsi_score(rsi6: float, rsi12: float, rsi24: float) -> float:
    """Score between 0 and 1 from RSI levels and their alignment."""
    if rsi6 < 30 and rsi12 < 35 and rsi24 < 40:
        score = 50.0
    elif rsi6 > 70 and rsi12 > 65 and rsi24 > 60:
        score = 0.0
    elif rsi6 < 40 and rsi12 < 45:
        score = 25.0
    elif rsi6 > 60 and rsi12 > 55:
        score = 10.0
    else:
        score = 20.0
    if rsi6 > rsi12 > rsi24:
        score += 30
    elif rsi6 < rsi12 < rsi24:
        score += 10
    else:
        score += 20
    return score / 100.0


def sma_score(close: float, sma20: float, sma50: float, sma200: float) -> float:
    """Score between 0 and 1 from price against moving averages."""
    if close > sma20 and close > sma50 and close > sma200:
        score = 40.0
    elif close > sma20 and close > sma50:
        score = 30.0
    elif close > sma20:
        score = 20.0
    elif close < sma20 and close < sma50 and close < sma200:
        score = 5.0
    else:
        score = 15.0
    if sma20 > sma50 > sma200:
        score += 30
    elif sma20 < sma50 < sma200:
        score += 10
    else:
        score += 20
    distance = (abs(close - sma20) + abs(close - sma50) + abs(close - sma200)) / 3 / close
    if distance > 0.05:
        score += 20
    elif distance > 0.02:
        score += 10
    else:
        score += 5
    return score / 100.0


def bollinger_bands_score(close: float, upper: float, lower: float, width: float) -> float:
    """Score between 0 and 1 from band position, width and squeeze."""
    score = 0.0
    band_range = upper - lower
    if band_range > 0:
        position = (close - lower) / band_range
        if position < 0.2:
            score += 40
        elif position > 0.8:
            score += 10
        elif 0.4 < position < 0.6:
            score += 25
        else:
            score += 15
    normalized_width = width / close
    if normalized_width > 0.05:
        score += 30
    elif normalized_width > 0.03:
        score += 20
    else:
        score += 10
    if normalized_width < 0.02:
        score += 20
    return score / 100.0


def volume_score(obv: float, volume: float) -> float:
    """Score between 0 and 1 from OBV sign and volume size."""
    score = 30.0 if obv > 0 else 10.0
    if volume > 1000:
        score += 25
    elif volume > 500:
        score += 15
    else:
        score += 5
    score += 20
    return score / 100.0


def trend_score(adx: float, adx_positive: float, adx_negative: float) -> float:
    """Score between 0 and 1 from trend strength and direction."""
    if adx > 25:
        score = 40.0
    elif adx > 20:
        score = 25.0
    else:
        score = 10.0
    score += 30 if adx_positive > adx_negative else 10
    bias = abs(adx_positive - adx_negative)
    if bias > 10:
        score += 20
    elif bias > 5:
        score += 15
    else:
        score += 10
    return score / 100.0


def volatility_score(atr: float, close: float) -> float:
    """Score between 0 and 1 from ATR relative to price."""
    normalized = atr / close
    if normalized > 0.03:
        score = 35.0
    elif normalized > 0.02:
        score = 25.0
    elif normalized > 0.01:
        score = 15.0
    else:
        score = 5.0
    if normalized > 0.04:
        score += 25
    elif normalized > 0.025:
        score += 20
    else:
        score += 15
    score += 20
    return score / 100.0


def _components(data):
    """Yield (component score, weight) for every indicator group present."""
    if None not in (data.macd, data.macd_signal, data.macd_hist):
        yield macd_score(data.macd, data.macd_signal, data.macd_hist), 0.20
    if None not in (data.rsi6, data.rsi12, data.rsi24):
        yield rsi_score(data.rsi6, data.rsi12, data.rsi24), 0.15
    if None not in (data.sma20, data.sma50, data.sma200):
        yield sma_score(data.close, data.sma20, data.sma50, data.sma200), 0.20
    if None not in (data.bollinger_bands_upper, data.bollinger_bands_lower, data.bollinger_bands_width):
        yield bollinger_bands_score(
            data.close, data.bollinger_bands_upper, data.bollinger_bands_lower, data.bollinger_bands_width
        ), 0.15
    if data.obv is not None:
        yield volume_score(data.obv, data.volume), 0.10
    if None not in (data.adx, data.adx_positive, data.adx_negative):
        yield trend_score(data.adx, data.adx_positive, data.adx_negative), 0.10
    if data.atr is not None:
        yield volatility_score(data.atr, data.close), 0.10


def opportunity_score(market_data) -> float:
    """Weighted opportunity score from 0 to 100 over the indicators present."""
    score = 0.0
    total_weight = 0.0
    for component, weight in _components(market_data):
        score += component * weight
        total_weight += weight
    if total_weight > 0:
        score = score / total_weight * 100
    return min(max(score, 0.0), 100.0)