"""Technical indicator series computed from candle data."""

from __future__ import annotations

import math
from collections.abc import Callable, Iterable, Sequence
from itertools import pairwise


def chronological(market_datas: Iterable) -> list:
    """Return the records ordered oldest first by creation time."""
    newest_first = sorted(market_datas, key=lambda data: data.created_at, reverse=True)
    newest_first.reverse()
    return newest_first


def _check_period(period: int) -> None:
    if period < 1:
        raise ValueError(f"period must be at least 1, got {period}")


def _seeded_average(
    values: Iterable[float], period: int, step: Callable[[float, float], float]
) -> list[float]:
    """Zero until the window fills, seeded with a simple average, then recursive."""
    _check_period(period)
    values = [float(value) for value in values]
    result: list[float] = []
    for index, value in enumerate(values):
        if index < period - 1:
            current = 0.0
        elif index == period - 1:
            current = sum(values[:period]) / period
        else:
            current = step(result[-1], value)
        result.append(current)
    return result


def ema(values: Iterable[float], period: int) -> list[float]:
    """Exponential moving average series, zero before the first full window."""
    alpha = 2.0 / (period + 1)
    return _seeded_average(values, period, lambda previous, value: value * alpha + previous * (1 - alpha))


def smoothed_ema(values: Iterable[float], period: int) -> list[float]:
    """Wilder's modified moving average series, zero before the first full window."""
    alpha = 1.0 / period if period else 0.0
    return _seeded_average(values, period, lambda previous, value: previous + alpha * (value - previous))


def sma(values: Iterable[float], period: int) -> list[float]:
    """Simple moving average series, zero before the first full window."""
    _check_period(period)
    values = [float(value) for value in values]
    return [
        sum(values[end - period:end]) / period if end >= period else 0.0
        for end in range(1, len(values) + 1)
    ]


def macd(
    closes: Iterable[float], fast: int = 12, slow: int = 26, signal: int = 9
) -> tuple[list[float], list[float], list[float]]:
    """MACD line, its signal line and the histogram between them."""
    closes = list(closes)
    macd_line = [f - s for f, s in zip(ema(closes, fast), ema(closes, slow))]
    signal_line = ema(macd_line, signal)
    histogram = [m - s for m, s in zip(macd_line, signal_line)]
    return macd_line, signal_line, histogram


def rsi(closes: Iterable[float], period: int) -> list[float]:
    """Relative strength index series; 100 wherever the average loss is zero."""
    _check_period(period)
    closes = [float(close) for close in closes]
    if not closes:
        return []
    gains = [0.0] + [max(current - previous, 0.0) for previous, current in pairwise(closes)]
    losses = [0.0] + [max(previous - current, 0.0) for previous, current in pairwise(closes)]
    result = []
    for gain, loss in zip(smoothed_ema(gains, period), smoothed_ema(losses, period)):
        result.append(100.0 if loss == 0 else 100.0 - 100.0 / (1.0 + gain / loss))
    return result


def _true_ranges(highs, lows, closes) -> list[float]:
    bars = list(zip(highs, lows, closes, strict=True))
    if not bars:
        return []
    return [0.0] + [
        max(high, previous_close) - min(low, previous_close)
        for (_, _, previous_close), (high, low, _) in pairwise(bars)
    ]


def atr(
    highs: Iterable[float], lows: Iterable[float], closes: Iterable[float], period: int = 14
) -> list[float]:
    """Average true range series; zero while fewer than period ranges exist."""
    _check_period(period)
    ranges = _true_ranges(highs, lows, closes)
    return [
        sum(ranges[index - period + 1:index + 1]) / period if index >= period else 0.0
        for index in range(len(ranges))
    ]


def bollinger_bands(
    closes: Iterable[float], period: int = 20, deviations: float = 2.0
) -> tuple[list[float], list[float], list[float]]:
    """Middle, upper and lower Bollinger band series."""
    closes = [float(close) for close in closes]
    middle = sma(closes, period)
    upper, lower = [], []
    for index, average in enumerate(middle):
        window = closes[max(0, index - period + 1):index + 1]
        spread = math.sqrt(sum((value - average) ** 2 for value in window) / len(window))
        upper.append(average + spread * deviations)
        lower.append(average - spread * deviations)
    return middle, upper, lower


def on_balance_volume(volumes: Iterable[float]) -> list[float]:
    """Volume reading used for the OBV field: the raw volume of each candle."""
    return [float(volume) for volume in volumes]


def _divide(numerator: float, denominator: float) -> float:
    if denominator:
        return numerator / denominator
    if numerator == 0 or math.isnan(numerator):
        return math.nan
    return math.copysign(math.inf, numerator) * math.copysign(1.0, denominator)


def _running_ema(values: Sequence[float], period: int) -> float:
    """Exponential average seeded with the first value; zero for no values."""
    if not values:
        return 0.0
    multiplier = 2.0 / (period + 1)
    average = values[0]
    for value in values[1:]:
        average = value * multiplier + average * (1 - multiplier)
    return average


def adx(
    highs: Iterable[float], lows: Iterable[float], closes: Iterable[float], period: int = 14
) -> tuple[float, float, float]:
    """Directional index with the positive and negative directional percentages."""
    _check_period(period)
    bars = list(zip(highs, lows, closes, strict=True))
    ranges, plus_moves, minus_moves = [], [], []
    for (prev_high, prev_low, prev_close), (high, low, _) in pairwise(bars):
        ranges.append(max(high - low, abs(high - prev_close), abs(low - prev_close)))
        up_move = high - prev_high
        down_move = prev_low - low
        plus_moves.append(up_move if up_move > down_move and up_move > 0 else 0.0)
        minus_moves.append(down_move if down_move > up_move and down_move > 0 else 0.0)
    average_range = _running_ema(ranges, period)
    plus_percent = _divide(_running_ema(plus_moves, period), average_range) * 100
    minus_percent = _divide(_running_ema(minus_moves, period), average_range) * 100
    index = _divide(abs(plus_percent - minus_percent), plus_percent + minus_percent) * 100
    return index, plus_percent, minus_percent