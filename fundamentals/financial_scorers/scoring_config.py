"""
Absolute threshold configurations for health classification.
Cross-industry standards that apply regardless of sector.

Each entry is an ordered list of (comparison, bound, label) tiers checked top
to bottom, plus a fallback label for values that match no tier.
Percent-unit metrics use percent bounds (20 = 20%).
"""

from utils.unified_schema import HealthLabel, RatioKind

BEST, GOOD, NORMAL, BAD, WORSE = (
    HealthLabel.BEST, HealthLabel.GOOD, HealthLabel.NORMAL, HealthLabel.BAD, HealthLabel.WORSE
)

HEALTH_THRESHOLDS = {
    # Margins, returns and growth rates (higher is better)
    RatioKind.PERCENTAGE: {
        'tiers': [('>', 20.0, BEST), ('>', 15.0, GOOD), ('>', 10.0, NORMAL), ('>', 0.0, BAD)],
        'fallback': WORSE,
    },

    # EBIT / interest expense multiplier
    RatioKind.INTEREST_COVERAGE: {
        'tiers': [('>=', 5.0, BEST), ('>=', 3.0, GOOD), ('>=', 1.5, NORMAL), ('>', 0.0, BAD)],
        'fallback': WORSE,
    },

    # Lower is better
    RatioKind.DEBT_TO_EQUITY: {
        'tiers': [('<', 0.3, BEST), ('<', 0.5, GOOD), ('<', 1.0, NORMAL), ('<', 2.0, BAD)],
        'fallback': WORSE,
    },

    # A high P/E is a caution, not a failure: no WORSE tier
    RatioKind.PE_RATIO: {
        'tiers': [('<', 15.0, BEST), ('<', 25.0, GOOD), ('<', 35.0, NORMAL)],
        'fallback': BAD,
    },

    RatioKind.DIVIDEND_YIELD: {
        'tiers': [('>', 3.0, BEST), ('>', 2.0, GOOD), ('>', 1.0, NORMAL)],
        'fallback': BAD,
    },

    # Current / quick ratio
    RatioKind.LIQUIDITY_RATIO: {
        'tiers': [('>=', 2.0, BEST), ('>=', 1.5, GOOD), ('>=', 1.0, NORMAL), ('>', 0.0, BAD)],
        'fallback': WORSE,
    },

    RatioKind.PRICE_TO_BOOK: {
        'tiers': [('<', 1.0, BEST), ('<', 3.0, GOOD), ('<', 5.0, NORMAL)],
        'fallback': BAD,
    },

    RatioKind.PRICE_TO_SALES: {
        'tiers': [('<', 2.0, BEST), ('<', 4.0, GOOD), ('<', 8.0, NORMAL)],
        'fallback': BAD,
    },

    RatioKind.EV_TO_EBITDA: {
        'tiers': [('<', 10.0, BEST), ('<', 15.0, GOOD), ('<', 20.0, NORMAL)],
        'fallback': BAD,
    },
}

# 52-week position (0..1) -> technical health
POSITION_HEALTH_THRESHOLDS = {
    'tiers': [('>', 0.7, BEST), ('>', 0.5, GOOD)],
    'fallback': NORMAL,
}

# Qualitative labels when no provider supplies an assessment
QUALITATIVE_DEFAULTS = {
    'management': GOOD,
    'industry_position': GOOD,
    'risks': NORMAL,
    'outlook': GOOD,
}
