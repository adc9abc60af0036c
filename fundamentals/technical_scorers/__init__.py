"""
Technical Scorers Module.

Range-position signals derived from the current price and the 52-week range:
- Stochastic RSI, Connors RSI, MACD and Patterns share one position value
- Support and resistance levels at fixed offsets from the price
"""

from .technical_signals import build_technical_block, neutral_technical_block

__all__ = [
    'build_technical_block',
    'neutral_technical_block',
]
