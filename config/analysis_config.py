"""
Analysis Configuration
Metric catalogue, zero-value policy and AI top-up switches.
"""

from typing import Dict, List

from utils.unified_schema import RatioKind

# --- Metric Catalogue ---
# category -> {display name: ratio kind used for health classification}
# Dict order is the display order of the assembled record.
METRIC_CATALOGUE: Dict[str, Dict[str, RatioKind]] = {
    'profitability': {
        'ROE': RatioKind.PERCENTAGE,
        'ROA': RatioKind.PERCENTAGE,
        'ROCE': RatioKind.PERCENTAGE,
        'Gross Margin': RatioKind.PERCENTAGE,
        'Operating Margin': RatioKind.PERCENTAGE,
        'Net Margin': RatioKind.PERCENTAGE,
    },
    'liquidity': {
        'Current Ratio': RatioKind.LIQUIDITY_RATIO,
        'Quick Ratio': RatioKind.LIQUIDITY_RATIO,
        'Debt-to-Equity': RatioKind.DEBT_TO_EQUITY,
        'Interest Coverage': RatioKind.INTEREST_COVERAGE,
    },
    'valuation': {
        'P/E Ratio': RatioKind.PE_RATIO,
        'P/B Ratio': RatioKind.PRICE_TO_BOOK,
        'P/S Ratio': RatioKind.PRICE_TO_SALES,
        'EV/EBITDA': RatioKind.EV_TO_EBITDA,
        'Dividend Yield': RatioKind.DIVIDEND_YIELD,
    },
    'growth': {
        'Revenue CAGR (3Y)': RatioKind.PERCENTAGE,
        'EPS Growth (3Y)': RatioKind.PERCENTAGE,
        'Market Share Growth': RatioKind.PERCENTAGE,
    },
}

CATEGORIES: List[str] = list(METRIC_CATALOGUE.keys())

# --- Zero Policy ---
# A literal 0 reported by a provider is accepted only for these metrics.
# Everywhere else a zero is a placeholder and the metric counts as missing.
ZERO_IS_MEANINGFUL = {
    'Dividend Yield',
    'Debt-to-Equity',
    'Market Share Growth',
}

# --- Derivation ---
# Metrics that are never computed from statements (AI estimate or N/A)
NOT_DERIVABLE = {
    'Market Share Growth',
}

# --- AI Top-up ---
AI_TOPUP = {
    "ENABLED": True,
    # Categories the AI estimate provider may fill
    "CATEGORIES": ['profitability', 'liquidity', 'valuation', 'growth'],
}


def ratio_kind_for(metric_name: str) -> RatioKind:
    """Look up the ratio kind of a catalogue metric."""
    for metrics in METRIC_CATALOGUE.values():
        if metric_name in metrics:
            return metrics[metric_name]
    raise KeyError(f"Unknown metric: {metric_name}")

