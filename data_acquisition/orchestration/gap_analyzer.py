"""
Gap Analyzer - Data Completeness Check
"""
from typing import Dict, List

from config.analysis_config import METRIC_CATALOGUE
from utils.logger import setup_logger
from utils.unified_schema import MetricWithSource

logger = setup_logger('gap_analyzer')


class GapAnalyzer:
    """
    Lists catalogue metrics still unavailable, per category.
    Drives the per-category AI top-up decision.
    """

    def missing_by_category(
        self,
        categories: Dict[str, Dict[str, MetricWithSource]]
    ) -> Dict[str, List[str]]:
        """
        Returns:
            {category: [missing metric names]} for categories with gaps only
        """
        gaps: Dict[str, List[str]] = {}
        for category, metric_names in METRIC_CATALOGUE.items():
            block = categories.get(category, {})
            missing = [
                name for name in metric_names
                if name not in block or not block[name].is_available
            ]
            if missing:
                gaps[category] = missing
        return gaps

    def coverage(self, categories: Dict[str, Dict[str, MetricWithSource]]) -> float:
        """Share of catalogue metrics that are available (0..1)."""
        total = sum(len(names) for names in METRIC_CATALOGUE.values())
        missing = sum(len(names) for names in self.missing_by_category(categories).values())
        return (total - missing) / total if total else 1.0

    def log_gaps(self, symbol: str, gaps: Dict[str, List[str]]) -> None:
        if not gaps:
            logger.info(f"[{symbol}] No metric gaps")
            return
        for category, names in gaps.items():
            logger.info(f"[{symbol}] Missing {category}: {', '.join(names)}")
