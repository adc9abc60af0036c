"""
Statement-level and qualitative health labels.

Statement labels reuse the final metric labels where one metric speaks for
the statement; qualitative labels have no data source and keep their
defaults.
"""

from typing import Dict, Optional, Sequence

from fundamentals.financial_scorers.scoring_config import QUALITATIVE_DEFAULTS
from utils.numeric_utils import clean_numeric
from utils.unified_schema import (
    FinancialStatements, HealthLabel, MetricWithSource, StatementHealth
)


def _label_of(metrics: Dict[str, MetricWithSource], name: str) -> HealthLabel:
    metric = metrics.get(name)
    if metric is None or not metric.is_available:
        return HealthLabel.NORMAL
    return metric.health_label


def latest_operating_cash_flow(statements: Sequence[FinancialStatements]) -> Optional[float]:
    """Most recent operating cash flow across snapshots (quarterly before annual)."""
    for stmts in statements:
        for entry in stmts.cash_flow_quarterly + stmts.cash_flow_annual:
            value = clean_numeric(entry.operating_cash_flow)
            if value is not None and value != 0:
                return value
    return None


def cash_flow_label(operating_cash_flow: Optional[float]) -> HealthLabel:
    if operating_cash_flow is None:
        return HealthLabel.NORMAL
    return HealthLabel.GOOD if operating_cash_flow > 0 else HealthLabel.BAD


def assess_statements(
    metrics: Dict[str, MetricWithSource],
    statements: Sequence[FinancialStatements] = ()
) -> StatementHealth:
    """
    Args:
        metrics: Final catalogue metrics keyed by display name
        statements: Normalized statements in provider priority order
    """
    return StatementHealth(
        income_statement=_label_of(metrics, 'Net Margin'),
        balance_sheet=_label_of(metrics, 'Debt-to-Equity'),
        cash_flow=cash_flow_label(latest_operating_cash_flow(statements)),
    )


def qualitative_labels() -> Dict[str, HealthLabel]:
    return dict(QUALITATIVE_DEFAULTS)
