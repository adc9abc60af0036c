"""
Deterministic mock data.

Last-resort fallback when no provider returns anything usable. The random
generator is seeded from the symbol (sum of character codes), so repeated
calls for one symbol produce the same record and the same chart. Every value
is tagged MOCK.
"""

from datetime import datetime, timedelta
from typing import Dict, Optional, Tuple

import numpy as np

from config.analysis_config import METRIC_CATALOGUE
from config.constants import CHART_RANGES, DEFAULT_CHART_RANGE
from fundamentals.financial_scorers.health_classifier import classify
from fundamentals.financial_scorers.statement_health import assess_statements, qualitative_labels
from fundamentals.stock.narrative_builder import (
    build_key_points, build_pros_cons, default_about, guess_sector
)
from fundamentals.technical_scorers.technical_signals import build_technical_block
from utils.unified_schema import (
    ChartData, MetricWithSource, PriceBar, Provenance, StockAnalysisRecord
)

MOCK_SOURCE = "mock"

# metric -> (base, span): value = base + u * span, u ~ U[0, 1)
MOCK_RANGES: Dict[str, Tuple[float, float]] = {
    'ROE': (15, 10),
    'ROA': (10, 8),
    'ROCE': (18, 12),
    'Gross Margin': (35, 15),
    'Operating Margin': (15, 10),
    'Net Margin': (12, 8),
    'Current Ratio': (1.5, 1),
    'Quick Ratio': (1.2, 0.8),
    'Debt-to-Equity': (0.2, 0.4),
    'Interest Coverage': (5, 10),
    'P/E Ratio': (20, 15),
    'P/B Ratio': (2, 3),
    'P/S Ratio': (4, 4),
    'EV/EBITDA': (15, 10),
    'Dividend Yield': (1, 2),
    'Revenue CAGR (3Y)': (15, 15),
    'EPS Growth (3Y)': (20, 20),
    'Market Share Growth': (10, 15),
}

PRICE_RANGE = (1000, 2000)
MARKET_CAP_RANGE = (50_000e6, 200_000e6)

# Trading days per chart range for the synthetic series
_CHART_POINTS = {'1D': 78, '1W': 5, '1M': 22, '3M': 66, '6M': 126, '1Y': 252, '5Y': 260}


def symbol_seed(symbol: str) -> int:
    """Sum of character codes of the uppercased symbol."""
    return sum(ord(ch) for ch in symbol.upper())


class MockDataGenerator:
    """Builds complete MOCK-tagged records and chart series."""

    def _rng(self, symbol: str, salt: int = 0) -> np.random.Generator:
        return np.random.default_rng(symbol_seed(symbol) + salt)

    def generate(self, symbol: str) -> StockAnalysisRecord:
        symbol = symbol.upper()
        rng = self._rng(symbol)

        price = round(PRICE_RANGE[0] + rng.random() * PRICE_RANGE[1], 2)
        market_cap = round(MARKET_CAP_RANGE[0] + rng.random() * MARKET_CAP_RANGE[1])
        high, low = round(price * 1.2, 2), round(price * 0.8, 2)

        categories: Dict[str, Dict[str, MetricWithSource]] = {}
        kinds = {}
        for category, metrics in METRIC_CATALOGUE.items():
            block = {}
            for name, kind in metrics.items():
                base, span = MOCK_RANGES[name]
                value = round(base + rng.random() * span, 2)
                block[name] = MetricWithSource.available(
                    name, value, Provenance.MOCK, classify(value, kind), MOCK_SOURCE
                )
                kinds[name] = kind
            categories[category] = block

        all_metrics = {k: v for block in categories.values() for k, v in block.items()}
        current_price = MetricWithSource.available("Current Price", price, Provenance.MOCK, source_detail=MOCK_SOURCE)
        cap_metric = MetricWithSource.available("Market Cap", float(market_cap), Provenance.MOCK, source_detail=MOCK_SOURCE)
        pros, cons = build_pros_cons(all_metrics, kinds)
        qualitative = qualitative_labels()

        return StockAnalysisRecord(
            symbol=symbol,
            company_name=f"{symbol} Limited",
            sector=guess_sector(symbol),
            industry="Indian Equity",
            about=default_about(symbol, f"{symbol} Limited"),
            current_price=current_price,
            market_cap=cap_metric,
            change=0.0,
            change_percent=0.0,
            fifty_two_week_high=high,
            fifty_two_week_low=low,
            **categories,
            statement_health=assess_statements(all_metrics),
            management=qualitative['management'],
            industry_position=qualitative['industry_position'],
            risks=qualitative['risks'],
            outlook=qualitative['outlook'],
            technical_indicators=build_technical_block(price, high, low),
            key_points=build_key_points(current_price, cap_metric, high, low, all_metrics),
            pros=pros,
            cons=cons,
            data_sources=[MOCK_SOURCE],
            is_mock=True,
        )

    def generate_chart(self, symbol: str, time_range: str = DEFAULT_CHART_RANGE, anchor_price: Optional[float] = None) -> ChartData:
        """Seeded random-walk price series ending at ``anchor_price`` (or the mock price)."""
        time_range = time_range.upper() if time_range.upper() in CHART_RANGES else DEFAULT_CHART_RANGE
        points = _CHART_POINTS[time_range]
        rng = self._rng(symbol, salt=points)
        if anchor_price is None:
            anchor_price = self.generate(symbol).current_price.value

        # Walk backwards from the anchor so the last bar matches the quote
        growth = 1 + rng.normal(0.0, 0.015, size=points - 1)
        remaining = np.append(np.cumprod(growth[::-1])[::-1], 1.0)
        closes = anchor_price / remaining
        step = timedelta(minutes=5) if time_range == '1D' else timedelta(days=1)
        end = datetime.now().replace(second=0, microsecond=0)

        bars = []
        for index, close in enumerate(closes):
            spread = abs(rng.normal(0.0, 0.008)) * close
            bars.append(PriceBar(
                date=end - step * (points - 1 - index),
                open=round(float(close - spread / 2), 2),
                high=round(float(close + spread), 2),
                low=round(float(close - spread), 2),
                close=round(float(close), 2),
                volume=float(rng.integers(100_000, 5_000_000)),
            ))

        return ChartData(
            symbol=symbol.upper(),
            time_range=time_range,
            bars=bars,
            provenance=Provenance.MOCK,
            is_real_data=False,
            metadata={'source': MOCK_SOURCE},
        )
