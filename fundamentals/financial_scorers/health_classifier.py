"""
Health Classifier.

Maps a metric value to a five-tier HealthLabel using the fixed thresholds in
scoring_config. Pure and total: every input produces a label, and the label
depends only on the number and its ratio kind, never on provenance.
"""

import operator
from typing import Any, Dict, Optional

from fundamentals.financial_scorers.scoring_config import (
    HEALTH_THRESHOLDS, POSITION_HEALTH_THRESHOLDS
)
from utils.numeric_utils import clean_numeric
from utils.unified_schema import HealthLabel, RatioKind

_COMPARATORS = {
    '>': operator.gt,
    '>=': operator.ge,
    '<': operator.lt,
    '<=': operator.le,
}


def _apply_tiers(value: Optional[float], table: Dict[str, Any]) -> HealthLabel:
    # Non-finite or missing input matches no tier
    if value is None:
        return table['fallback']
    for comparison, bound, label in table['tiers']:
        if _COMPARATORS[comparison](value, bound):
            return label
    return table['fallback']


def classify(value: Any, ratio_kind: RatioKind) -> HealthLabel:
    """
    Classify a metric value.

    Args:
        value: Metric value in catalogue units (percent for percentage kinds)
        ratio_kind: Threshold family to apply

    Returns:
        HealthLabel for the value

    Examples:
        >>> classify(20, RatioKind.PERCENTAGE)
        <HealthLabel.GOOD: 'GOOD'>
        >>> classify(20.01, RatioKind.PERCENTAGE)
        <HealthLabel.BEST: 'BEST'>
    """
    return _apply_tiers(clean_numeric(value), HEALTH_THRESHOLDS[RatioKind(ratio_kind)])


def classify_position(position: float) -> HealthLabel:
    """Technical health from the price's position within its 52-week range."""
    return _apply_tiers(clean_numeric(position), POSITION_HEALTH_THRESHOLDS)
