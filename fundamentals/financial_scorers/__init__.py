"""
Scorers module - maps metric values onto health labels using fixed
thresholds per ratio kind.
"""

from fundamentals.financial_scorers.health_classifier import classify, classify_position
from fundamentals.financial_scorers.scoring_config import HEALTH_THRESHOLDS

__all__ = [
    'classify',
    'classify_position',
    'HEALTH_THRESHOLDS',
]
