import math

import pytest

from fundamentals.financial_scorers.health_classifier import classify, classify_position
from utils.unified_schema import HealthLabel, RatioKind


@pytest.mark.parametrize("value, expected", [
    (20.01, HealthLabel.BEST),
    (20, HealthLabel.GOOD),
    (15.5, HealthLabel.GOOD),
    (15, HealthLabel.NORMAL),
    (10, HealthLabel.BAD),
    (0.5, HealthLabel.BAD),
    (0, HealthLabel.WORSE),
    (-3, HealthLabel.WORSE),
])
def test_percentage_boundaries(value, expected):
    assert classify(value, RatioKind.PERCENTAGE) == expected


@pytest.mark.parametrize("kind, value, expected", [
    (RatioKind.INTEREST_COVERAGE, 5, HealthLabel.BEST),
    (RatioKind.INTEREST_COVERAGE, 3, HealthLabel.GOOD),
    (RatioKind.INTEREST_COVERAGE, 1.5, HealthLabel.NORMAL),
    (RatioKind.INTEREST_COVERAGE, 1, HealthLabel.BAD),
    (RatioKind.INTEREST_COVERAGE, 0, HealthLabel.WORSE),
    (RatioKind.DEBT_TO_EQUITY, 0.29, HealthLabel.BEST),
    (RatioKind.DEBT_TO_EQUITY, 0.3, HealthLabel.GOOD),
    (RatioKind.DEBT_TO_EQUITY, 0.5, HealthLabel.NORMAL),
    (RatioKind.DEBT_TO_EQUITY, 1.0, HealthLabel.BAD),
    (RatioKind.DEBT_TO_EQUITY, 2.0, HealthLabel.WORSE),
    (RatioKind.PE_RATIO, 14.9, HealthLabel.BEST),
    (RatioKind.PE_RATIO, 15, HealthLabel.GOOD),
    (RatioKind.PE_RATIO, 25, HealthLabel.NORMAL),
    (RatioKind.PE_RATIO, 35, HealthLabel.BAD),
    (RatioKind.DIVIDEND_YIELD, 3.1, HealthLabel.BEST),
    (RatioKind.DIVIDEND_YIELD, 3, HealthLabel.GOOD),
    (RatioKind.DIVIDEND_YIELD, 2, HealthLabel.NORMAL),
    (RatioKind.DIVIDEND_YIELD, 0, HealthLabel.BAD),
    (RatioKind.LIQUIDITY_RATIO, 2.0, HealthLabel.BEST),
    (RatioKind.LIQUIDITY_RATIO, 0.8, HealthLabel.BAD),
])
def test_other_kinds(kind, value, expected):
    assert classify(value, kind) == expected


def test_total_for_non_finite_input():
    assert classify(None, RatioKind.PERCENTAGE) == HealthLabel.WORSE
    assert classify(math.nan, RatioKind.PE_RATIO) == HealthLabel.BAD


def test_position_labels():
    assert classify_position(0.71) == HealthLabel.BEST
    assert classify_position(0.7) == HealthLabel.GOOD
    assert classify_position(0.5) == HealthLabel.NORMAL
