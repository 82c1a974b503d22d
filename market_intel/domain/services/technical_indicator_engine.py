"""
TECHNICAL INDICATOR ENGINE
Single-snapshot indicators for the primary index

RULES:
❌ No history / no candles
❌ No I/O
✅ Pure function of one snapshot
"""

from market_intel.domain.models import MarketSnapshot, TechnicalIndicators, TrendStrength

# Volume is reported in units of one million for the ratio
VOLUME_UNIT = 1_000_000

NEAR_LEVEL_TOLERANCE = 0.01
NEAR_MID_TOLERANCE = 0.005


def calculate_technical_indicators(snapshot: MarketSnapshot) -> TechnicalIndicators:
    """
    Derive indicators from the day's OHLC and change figures.

    Price position is where the last price sits in the day's range (0-100,
    50 for a flat range). The RSI value is a proxy built from the day's
    change only, clamped to [30, 70].
    """
    current = snapshot.ltp
    high = snapshot.high
    low = snapshot.low
    close = snapshot.close
    day_range = high - low

    price_position = 50.0 if day_range == 0 else (current - low) / day_range * 100

    momentum = snapshot.change_percent
    momentum_strength = abs(momentum)

    volatility = 0.0 if close == 0 or day_range == 0 else day_range / close * 100

    if momentum > 0:
        rsi = min(70.0, 50 + momentum * 2)
    else:
        rsi = max(30.0, 50 + momentum * 2)

    if (price_position > 70 and momentum > 0.5) or (price_position < 30 and momentum < -0.5):
        trend_strength = TrendStrength.STRONG
    elif price_position > 60 or price_position < 40:
        trend_strength = TrendStrength.MODERATE
    else:
        trend_strength = TrendStrength.WEAK

    mid = (high + low) / 2
    body_size = abs(current - snapshot.open)

    if current > snapshot.open:
        price_action = "bullish"
    elif current < snapshot.open:
        price_action = "bearish"
    else:
        price_action = "neutral"

    return TechnicalIndicators(
        price_position=round(price_position, 2),
        momentum=round(momentum, 2),
        momentum_strength=round(momentum_strength, 2),
        volatility=round(volatility, 2),
        rsi_approximation=round(rsi, 2),
        trend_strength=trend_strength,
        is_near_support=current <= low * (1 + NEAR_LEVEL_TOLERANCE),
        is_near_resistance=current >= high * (1 - NEAR_LEVEL_TOLERANCE),
        volume_indicator="normal" if snapshot.volume > 0 else "low",
        volume_ratio=round(snapshot.volume / VOLUME_UNIT, 2),
        support_level=round(low, 2),
        resistance_level=round(high, 2),
        mid_level=round(mid, 2),
        price_action=price_action,
        body_size=round(body_size, 2),
        body_percent=round(body_size / close * 100, 2) if close else 0.0,
        is_near_mid=bool(mid) and abs(current - mid) / mid < NEAR_MID_TOLERANCE,
    )
