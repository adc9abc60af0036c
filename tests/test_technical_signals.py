import pytest

from fundamentals.technical_scorers.technical_signals import (
    build_technical_block, range_position, resolve_range
)
from utils.unified_schema import HealthLabel, Signal


def test_indicator_formula():
    block = build_technical_block(price=3800, fifty_two_week_high=4000, fifty_two_week_low=3000)
    # position = 0.8
    assert block.macd.value == pytest.approx(62.0)
    assert block.macd.signal == Signal.BUY
    assert block.macd.health_label == HealthLabel.BEST
    assert block.stochastic_rsi.value == block.patterns.value


def test_sell_and_hold_bands():
    assert build_technical_block(3100, 4000, 3000).connors_rsi.signal == Signal.SELL
    assert build_technical_block(3500, 4000, 3000).connors_rsi.signal == Signal.HOLD


def test_range_defaults_and_clamping():
    assert resolve_range(100, None, None) == pytest.approx((120, 80))
    assert range_position(150, 120, 80) == 1.0
    assert range_position(100, 100, 100) == 0.5


def test_support_and_resistance_levels():
    block = build_technical_block(100, 110, 90)
    assert block.support == [95.0, 90.0, 90.0]
    assert block.resistance == [105.0, 110.0, 112.0]


def test_levels_nearest_first_at_range_extremes():
    at_high = build_technical_block(100, 100, 80)
    assert at_high.resistance == [100.0, 105.0, 112.0]
    assert at_high.support == [95.0, 90.0, 85.0]

    at_low = build_technical_block(100, 120, 100)
    assert at_low.support == [100.0, 95.0, 90.0]
    assert at_low.resistance == [105.0, 112.0, 120.0]


def test_no_price_gives_neutral_block():
    block = build_technical_block(None, 4000, 3000)
    assert block.macd.signal == Signal.HOLD
    assert block.macd.value == 50.0
    assert block.support == []
