"""
Synthetic technical signals.

Providers used here supply fundamentals only, so every indicator is derived
from the price's position inside its 52-week range:

    position = (price - low) / (high - low)      clamped to [0, 1]
    value    = 30 + position * 40                 (30..70 oscillator scale)
    signal   = BUY if position > 0.6, SELL if position < 0.4, else HOLD

Support and resistance are fixed offsets from the current price, bounded by
the 52-week extremes and listed nearest first.
"""

from typing import List, Optional, Tuple

from fundamentals.financial_scorers.health_classifier import classify_position
from utils.numeric_utils import clean_numeric, round_price
from utils.unified_schema import HealthLabel, Signal, TechnicalBlock, TechnicalIndicator

INDICATOR_NAMES = {
    'stochastic_rsi': "Stochastic RSI",
    'connors_rsi': "Connors RSI",
    'macd': "MACD",
    'patterns': "Pattern Analysis",
}

BUY_POSITION = 0.6
SELL_POSITION = 0.4

# Used when no 52-week range is reported
RANGE_FALLBACK_HIGH = 1.2
RANGE_FALLBACK_LOW = 0.8


def resolve_range(price: float, high: Optional[float], low: Optional[float]) -> Tuple[float, float]:
    """52-week (high, low), substituting +/-20% of price when either is missing or inverted."""
    high, low = clean_numeric(high), clean_numeric(low)
    if high is None or low is None or high < low or high <= 0:
        return price * RANGE_FALLBACK_HIGH, price * RANGE_FALLBACK_LOW
    return high, low


def range_position(price: float, high: float, low: float) -> float:
    """Where the price sits in [low, high]; 0.5 for a degenerate range."""
    if high == low:
        return 0.5
    return min(1.0, max(0.0, (price - low) / (high - low)))


def signal_for(position: float) -> Signal:
    if position > BUY_POSITION:
        return Signal.BUY
    if position < SELL_POSITION:
        return Signal.SELL
    return Signal.HOLD


def build_indicator(name: str, price: float, position: float) -> TechnicalIndicator:
    return TechnicalIndicator(
        indicator=name,
        value=round(30 + position * 40, 2),
        signal=signal_for(position),
        health_label=classify_position(position),
        description=f"{name} based on current market position and price momentum",
        buy_price=round_price(price * 0.98),
        target_price=round_price(price * (1.05 + position * 0.1)),
        stop_loss=round_price(price * 0.92),
    )


def support_levels(price: float, low: float) -> List[float]:
    """Nearest first; the 52-week low can pull the deepest level above the others."""
    return sorted([
        round_price(price * 0.95),
        round_price(price * 0.90),
        round_price(max(low, price * 0.85)),
    ], reverse=True)


def resistance_levels(price: float, high: float) -> List[float]:
    """Nearest first; the 52-week high can pull the farthest level below the others."""
    return sorted([
        round_price(price * 1.05),
        round_price(price * 1.12),
        round_price(min(high, price * 1.20)),
    ])


def build_technical_block(
    price: Optional[float],
    fifty_two_week_high: Optional[float] = None,
    fifty_two_week_low: Optional[float] = None
) -> TechnicalBlock:
    """
    Derive all four indicators plus support/resistance.

    Without a usable price every indicator is a neutral HOLD with no levels.
    """
    price = clean_numeric(price)
    if price is None or price <= 0:
        return neutral_technical_block()

    high, low = resolve_range(price, fifty_two_week_high, fifty_two_week_low)
    position = range_position(price, high, low)
    indicators = {key: build_indicator(name, price, position) for key, name in INDICATOR_NAMES.items()}
    return TechnicalBlock(
        **indicators,
        support=support_levels(price, low),
        resistance=resistance_levels(price, high),
    )


def neutral_technical_block() -> TechnicalBlock:
    indicators = {
        key: TechnicalIndicator(
            indicator=name,
            value=50.0,
            signal=Signal.HOLD,
            health_label=HealthLabel.NORMAL,
            description=f"{name} unavailable without a current price",
        )
        for key, name in INDICATOR_NAMES.items()
    }
    return TechnicalBlock(**indicators)
