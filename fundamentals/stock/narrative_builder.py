"""
Narrative Builder - key points, pros and cons from the assembled metrics.

Every line is generated from a metric that is actually available; nothing is
said about a metric shown as N/A.
"""

from typing import Dict, List, Optional

from config.constants import DEFAULT_SECTOR, SECTOR_HINTS
from utils import console_utils
from utils.numeric_utils import safe_format
from utils.unified_schema import HealthLabel, MetricWithSource, RatioKind

CRORE = 10_000_000
MAX_POINTS = 6

_PERCENT_KINDS = {RatioKind.PERCENTAGE, RatioKind.DIVIDEND_YIELD}

GENERIC_PROS = [
    "Established market presence in the Indian equity market",
    "Liquidity and trading volume support",
]
GENERIC_CONS = [
    "Market volatility and systematic risks",
    "Economic cycle dependency",
]


def format_rupees(value: Optional[float]) -> str:
    return f"{console_utils.symbol.RUPEE}{safe_format(value, ',.2f')}" if value is not None else "N/A"


def format_crores(value: Optional[float]) -> str:
    if value is None:
        return "N/A"
    return f"{console_utils.symbol.RUPEE}{safe_format(value / CRORE, ',.0f')} Cr"


def format_metric(metric: MetricWithSource, kind: RatioKind) -> str:
    if not metric.is_available:
        return "N/A"
    if kind in _PERCENT_KINDS:
        return safe_format(metric.value, ".1f", suffix="%")
    return safe_format(metric.value, ".2f")


def guess_sector(symbol: str) -> str:
    """Sector hint from the static ticker table, for records without provider data."""
    for sector, tickers in SECTOR_HINTS.items():
        if symbol.upper() in tickers:
            return sector
    return DEFAULT_SECTOR


def default_about(symbol: str, company_name: Optional[str]) -> str:
    name = company_name if company_name and company_name != "N/A" else symbol.upper()
    return f"{name} is a company listed on the Indian stock exchanges (NSE/BSE)."


def build_key_points(
    current_price: MetricWithSource,
    market_cap: MetricWithSource,
    fifty_two_week_high: Optional[float],
    fifty_two_week_low: Optional[float],
    metrics: Dict[str, MetricWithSource],
) -> List[str]:
    points = []
    if current_price.is_available:
        points.append(f"Current market price: {format_rupees(current_price.value)}")
    if market_cap.is_available:
        points.append(f"Market capitalization: {format_crores(market_cap.value)}")
    if fifty_two_week_low is not None and fifty_two_week_high is not None:
        points.append(f"52-week range: {format_rupees(fifty_two_week_low)} - {format_rupees(fifty_two_week_high)}")
    for name, kind in (('P/E Ratio', RatioKind.PE_RATIO), ('ROE', RatioKind.PERCENTAGE),
                       ('Debt-to-Equity', RatioKind.DEBT_TO_EQUITY),
                       ('Revenue CAGR (3Y)', RatioKind.PERCENTAGE)):
        metric = metrics.get(name)
        if metric is not None and metric.is_available:
            points.append(f"{name}: {format_metric(metric, kind)}")
    return points[:MAX_POINTS]


def build_pros_cons(metrics: Dict[str, MetricWithSource], kinds: Dict[str, RatioKind]):
    """
    Strong metrics (BEST/GOOD) become pros, weak ones (BAD/WORSE) cons.

    Returns:
        (pros, cons), each capped and padded with generic market lines
    """
    pros, cons = [], []
    for name, metric in metrics.items():
        if not metric.is_available:
            continue
        shown = format_metric(metric, kinds.get(name, RatioKind.PERCENTAGE))
        if metric.health_label == HealthLabel.BEST:
            pros.append(f"Excellent {name} ({shown})")
        elif metric.health_label == HealthLabel.GOOD:
            pros.append(f"Healthy {name} ({shown})")
        elif metric.health_label == HealthLabel.WORSE:
            cons.append(f"Very weak {name} ({shown})")
        elif metric.health_label == HealthLabel.BAD:
            cons.append(f"Weak {name} ({shown})")

    pros = pros[:MAX_POINTS] or list(GENERIC_PROS)
    cons = cons[:MAX_POINTS] or list(GENERIC_CONS)
    return pros, cons
