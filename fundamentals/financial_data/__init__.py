"""
Financial data package.

Derive catalogue ratios from raw statement line items.
Basic Principle: Raw Statements -> TTM / Latest Period -> Formula -> Metric
"""

from .ratio_calculator import RatioCalculator, StatementSeries, compound_annual_growth_rate

__all__ = [
    'RatioCalculator',
    'StatementSeries',
    'compound_annual_growth_rate',
]
