"""
Metric Merger - declarative provenance-priority merge policy.

A candidate value replaces the current one only when its provenance ranks
strictly higher. Combined with the orchestrator filling metrics in trust
order, provenance never decreases along the pipeline.
"""

from typing import Callable, Dict, Optional

from config.analysis_config import ZERO_IS_MEANINGFUL, ratio_kind_for
from fundamentals.financial_scorers.health_classifier import classify
from utils.numeric_utils import clean_numeric
from utils.unified_schema import (
    HealthLabel, MetricWithSource, Provenance, RatioKind, provenance_trust
)


class MetricMerger:
    """Builds classified metrics and merges them by provenance."""

    def __init__(self, classifier: Callable[[float, RatioKind], HealthLabel] = classify):
        self.classifier = classifier

    @staticmethod
    def is_usable(name: str, value: Optional[float]) -> bool:
        """Zero policy: a literal 0 counts only for metrics where zero is a real reading."""
        value = clean_numeric(value)
        if value is None:
            return False
        return value != 0 or name in ZERO_IS_MEANINGFUL

    def candidate(
        self,
        name: str,
        value: Optional[float],
        provenance: Provenance,
        source_detail: Optional[str] = None
    ) -> MetricWithSource:
        """Classified metric, or an unavailable one when the value is unusable."""
        if not self.is_usable(name, value):
            return MetricWithSource.unavailable(name)
        value = clean_numeric(value)
        return MetricWithSource.available(
            name, value, provenance, self.classifier(value, ratio_kind_for(name)), source_detail
        )

    @staticmethod
    def merge(current: MetricWithSource, candidate: MetricWithSource) -> MetricWithSource:
        if not candidate.is_available:
            return current
        if provenance_trust(candidate.provenance) > provenance_trust(current.provenance):
            return candidate
        return current

    def offer(
        self,
        metrics: Dict[str, MetricWithSource],
        name: str,
        value: Optional[float],
        provenance: Provenance,
        source_detail: Optional[str] = None
    ) -> bool:
        """
        Offer a value for ``metrics[name]``.

        Returns:
            True when the offered value was taken
        """
        current = metrics.get(name) or MetricWithSource.unavailable(name)
        merged = self.merge(current, self.candidate(name, value, provenance, source_detail))
        metrics[name] = merged
        return merged is not current
