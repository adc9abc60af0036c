"""
Console Utilities - Helper functions for safe console output.
Handles platform-specific encoding issues (e.g., Windows cp1252 vs Unicode).
"""

import os
from typing import List

from config.analysis_config import CATEGORIES
from utils.numeric_utils import safe_format
from utils.unified_schema import (
    ChartData, MetricWithSource, RatioKind, RecommendationResponse, StockAnalysisRecord
)


def is_windows():
    return os.name == 'nt'


class Symbol:
    """
    Console symbols that adapt to the platform.
    ASCII fallbacks on Windows avoid UnicodeEncodeError.
    """

    @property
    def OK(self) -> str:
        return "[OK]" if is_windows() else "✓"

    @property
    def FAIL(self) -> str:
        return "[ERROR]" if is_windows() else "✗"

    @property
    def WARN(self) -> str:
        return "[WARN]" if is_windows() else "!"

    @property
    def RUPEE(self) -> str:
        return "Rs." if is_windows() else "₹"


# Global instance
symbol = Symbol()

WIDTH = 70


def print_header(title: str):
    print("\n" + "=" * WIDTH)
    print(f"  {title}")
    print("=" * WIDTH)


def print_step(step: int, total: int, message: str):
    """Print a formatted step header."""
    header = f"[{step}/{total}] {message}"
    print(f"\n{header}")
    print("-" * len(header))


def print_separator():
    print("=" * WIDTH)


def _metric_line(metric: MetricWithSource, kind: RatioKind) -> str:
    if not metric.is_available:
        return f"      - {metric.name:<22}: {'N/A':>10}"
    suffix = "%" if kind in (RatioKind.PERCENTAGE, RatioKind.DIVIDEND_YIELD) else ""
    value = safe_format(metric.value, ".2f", suffix=suffix)
    return f"      - {metric.name:<22}: {value:>10}  [{metric.health_label.value}] ({metric.provenance.value})"


def format_analysis_report(record: StockAnalysisRecord, kinds) -> str:
    """
    Plain-text report of one analysis record.

    Args:
        record: The assembled record
        kinds: {metric name: RatioKind} for unit formatting
    """
    rupee = symbol.RUPEE
    lines: List[str] = []
    lines.append("-" * WIDTH)
    title = f"{record.symbol} - {record.company_name}"
    if record.is_mock:
        title += "  (MOCK DATA)"
    lines.append(title)
    lines.append(f"Sector: {record.sector} | Industry: {record.industry}")
    lines.append("-" * WIDTH)

    price = record.current_price
    if price.is_available:
        change = safe_format(record.change_percent, "+.2f", suffix="%")
        lines.append(f"Price: {rupee}{safe_format(price.value, ',.2f')} ({change})  [{price.provenance.value}]")
    else:
        lines.append("Price: N/A")

    for category in CATEGORIES:
        lines.append("")
        lines.append(f"  {category.title()}")
        for name, metric in record.category(category).items():
            lines.append(_metric_line(metric, kinds.get(name, RatioKind.PERCENTAGE)))

    health = record.statement_health
    lines.append("")
    lines.append(
        f"Statements: Income {health.income_statement.value} | "
        f"Balance {health.balance_sheet.value} | Cash Flow {health.cash_flow.value}"
    )

    tech = record.technical_indicators
    lines.append(
        f"Technicals: {tech.macd.signal.value} (position {safe_format(tech.macd.value, '.1f')}) | "
        f"Support {', '.join(safe_format(s, ',.2f') for s in tech.support) or 'N/A'} | "
        f"Resistance {', '.join(safe_format(r, ',.2f') for r in tech.resistance) or 'N/A'}"
    )

    for heading, items in (("Key Points", record.key_points), ("Pros", record.pros), ("Cons", record.cons)):
        lines.append("")
        lines.append(f"{heading}:")
        lines.extend(f"  - {item}" for item in items)

    lines.append("")
    lines.append(f"Sources: {', '.join(record.data_sources)}")
    lines.append("-" * WIDTH)
    return "\n".join(lines)


def format_chart_summary(chart: ChartData) -> str:
    if not chart.bars:
        return f"{chart.symbol} {chart.time_range}: no price bars"
    first, last = chart.bars[0], chart.bars[-1]
    origin = "real" if chart.is_real_data else "mock"
    return (
        f"{chart.symbol} {chart.time_range}: {len(chart.bars)} bars ({origin}), "
        f"{first.date:%Y-%m-%d} close {safe_format(first.close, ',.2f')} -> "
        f"{last.date:%Y-%m-%d} close {safe_format(last.close, ',.2f')}"
    )


def _money(value) -> str:
    return f"{symbol.RUPEE}{safe_format(value, ',.2f')}" if value is not None else "N/A"


def format_recommendations(response: RecommendationResponse) -> str:
    meta = response.metadata
    lines: List[str] = [
        "-" * WIDTH,
        f"Recommendations {meta.time_frame.value} | Sector {meta.sector} | {meta.model_used}",
        f"Analyzed {meta.total_analyzed} stocks at {meta.generated_at:%Y-%m-%d %H:%M}",
        "-" * WIDTH,
    ]
    if not response.recommendations:
        lines.append("  No recommendations: no candidate returned market data.")
    for rank, rec in enumerate(response.recommendations, 1):
        lines.append(
            f"{rank}. {rec.symbol:<12} {rec.recommendation.value:<4} "
            f"confidence {safe_format(rec.confidence, '.0f')} | "
            f"price {_money(rec.current_price)} | target {_money(rec.target_price)} | stop {_money(rec.stop_loss)}"
        )
        lines.extend(f"     + {reason}" for reason in rec.reasoning)
        lines.extend(f"     - {risk}" for risk in rec.risks)
    lines.append("-" * WIDTH)
    return "\n".join(lines)
