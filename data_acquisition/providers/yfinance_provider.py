"""
Yahoo Finance adapter via yfinance (secondary source).

yfinance returns a flat ``info`` dict plus statement DataFrames (rows are
line items, columns are period end dates, most recent first). Frames are
converted to lists of per-period dicts so the shared table-driven
normalization in BaseProvider applies unchanged.
"""

from typing import Any, Callable, Dict, List, Union

import pandas as pd
import yfinance as yf

from config.constants import CHART_INTERVALS, CHART_RANGES, DEFAULT_CHART_RANGE
from data_acquisition.providers.base_provider import BaseProvider, FieldSpec
from data_acquisition.providers.errors import NoDataForSymbol, ProviderError, Unavailable, UnavailableReason
from utils.logger import setup_logger
from utils.numeric_utils import clean_numeric
from utils.unified_schema import ChartData, PriceBar, Provenance

logger = setup_logger('yfinance_provider')

_INFO = ('quote',)

# Ticker attribute names per endpoint: (annual frame, quarterly frame)
_STATEMENT_FRAMES = {
    'financials': ('income_stmt', 'quarterly_income_stmt'),
    'balance_sheet': ('balance_sheet', 'quarterly_balance_sheet'),
    'cash_flow': ('cashflow', 'quarterly_cashflow'),
}


def frame_to_records(frame: pd.DataFrame) -> List[Dict[str, Any]]:
    """
    Convert a yfinance statement frame into per-period dicts.

    Returns:
        One dict per column (period), most recent first, keyed by row label,
        with ``period_end`` holding the column date.
    """
    if frame is None or frame.empty:
        return []
    records = []
    ordered = sorted(frame.columns, key=lambda c: pd.Timestamp(c), reverse=True)
    for column in ordered:
        series = frame[column]
        period = pd.Timestamp(column).strftime('%Y-%m-%d')
        record: Dict[str, Any] = {'period_end': period}
        for label, value in series.items():
            cleaned = clean_numeric(value)
            if cleaned is not None:
                record[str(label)] = cleaned
        records.append(record)
    return records


class YFinanceProvider(BaseProvider):
    """Secondary source backed by the yfinance client library."""

    name = "yfinance"
    provenance = Provenance.SECONDARY_API
    key_name = None

    # info covers quote, statistics, profile and summary in one call
    BUNDLE_ENDPOINTS = ('quote', 'financials', 'balance_sheet', 'cash_flow')

    QUOTE_FIELDS = {
        'current_price': FieldSpec([["currentPrice"], ["regularMarketPrice"]], _INFO),
        'change': FieldSpec([["regularMarketChange"]], _INFO),
        'change_percent': FieldSpec([["regularMarketChangePercent"]], _INFO),
        'market_cap': FieldSpec([["marketCap"]], _INFO),
        'fifty_two_week_high': FieldSpec([["fiftyTwoWeekHigh"]], _INFO),
        'fifty_two_week_low': FieldSpec([["fiftyTwoWeekLow"]], _INFO),
        'shares_outstanding': FieldSpec([["sharesOutstanding"]], _INFO),
    }

    TEXT_FIELDS = {
        'company_name': FieldSpec([["longName"], ["shortName"]], _INFO),
        'sector': FieldSpec([["sector"]], _INFO),
        'industry': FieldSpec([["industry"]], _INFO),
        'about': FieldSpec([["longBusinessSummary"]], _INFO),
    }

    METRIC_FIELDS = {
        'ROE': FieldSpec([["returnOnEquity"]], _INFO, scale=100),
        'ROA': FieldSpec([["returnOnAssets"]], _INFO, scale=100),
        'Gross Margin': FieldSpec([["grossMargins"]], _INFO, scale=100),
        'Operating Margin': FieldSpec([["operatingMargins"]], _INFO, scale=100),
        'Net Margin': FieldSpec([["profitMargins"]], _INFO, scale=100),
        'Current Ratio': FieldSpec([["currentRatio"]], _INFO),
        'Quick Ratio': FieldSpec([["quickRatio"]], _INFO),
        'Debt-to-Equity': FieldSpec([["debtToEquity"]], _INFO, scale=0.01),
        'P/E Ratio': FieldSpec([["trailingPE"]], _INFO),
        'P/B Ratio': FieldSpec([["priceToBook"]], _INFO),
        'P/S Ratio': FieldSpec([["priceToSalesTrailing12Months"]], _INFO),
        'EV/EBITDA': FieldSpec([["enterpriseToEbitda"]], _INFO),
        # trailingAnnualDividendYield stays a decimal across yfinance releases
        'Dividend Yield': FieldSpec([["trailingAnnualDividendYield"]], _INFO, scale=100),
    }

    STATEMENT_LISTS = {
        'income_annual': FieldSpec([["annual"]], ('financials',)),
        'income_quarterly': FieldSpec([["quarterly"]], ('financials',)),
        'balance_annual': FieldSpec([["annual"]], ('balance_sheet',)),
        'balance_quarterly': FieldSpec([["quarterly"]], ('balance_sheet',)),
        'cash_flow_annual': FieldSpec([["annual"]], ('cash_flow',)),
        'cash_flow_quarterly': FieldSpec([["quarterly"]], ('cash_flow',)),
    }

    STATEMENT_FIELDS = {
        'income': {
            'revenue': [["Total Revenue"], ["Operating Revenue"]],
            'gross_profit': [["Gross Profit"]],
            'operating_income': [["Operating Income"]],
            'ebit': [["EBIT"]],
            'ebitda': [["EBITDA"], ["Normalized EBITDA"]],
            'net_income': [["Net Income"], ["Net Income Common Stockholders"]],
            'interest_expense': [["Interest Expense"], ["Interest Expense Non Operating"]],
            'eps': [["Diluted EPS"], ["Basic EPS"]],
        },
        'balance': {
            'total_assets': [["Total Assets"]],
            'total_current_assets': [["Current Assets"]],
            'total_current_liabilities': [["Current Liabilities"]],
            'total_liabilities': [["Total Liabilities Net Minority Interest"]],
            'total_equity': [["Stockholders Equity"], ["Common Stock Equity"]],
            'inventory': [["Inventory"]],
            'cash': [["Cash And Cash Equivalents"], ["Cash Cash Equivalents And Short Term Investments"]],
            'total_debt': [["Total Debt"]],
            'shares_outstanding': [["Ordinary Shares Number"], ["Share Issued"]],
        },
        'cash_flow': {
            'operating_cash_flow': [["Operating Cash Flow"]],
            'capital_expenditure': [["Capital Expenditure"]],
            'free_cash_flow': [["Free Cash Flow"]],
            'dividends_paid': [["Cash Dividends Paid"], ["Common Stock Dividend Paid"]],
        },
    }

    PERIOD_PATHS = [["period_end"]]

    def __init__(self, ticker_factory: Callable[[str], Any] = yf.Ticker, **kwargs):
        super().__init__(**kwargs)
        self._ticker_factory = ticker_factory

    def _fetch_endpoint(self, endpoint: str, provider_symbol: str) -> Any:
        ticker = self._ticker_factory(provider_symbol)
        if endpoint in _STATEMENT_FRAMES:
            annual_attr, quarterly_attr = _STATEMENT_FRAMES[endpoint]
            annual = frame_to_records(getattr(ticker, annual_attr))
            quarterly = frame_to_records(getattr(ticker, quarterly_attr))
            if not annual and not quarterly:
                raise NoDataForSymbol(f"yfinance has no {endpoint} for {provider_symbol}")
            return {'annual': annual, 'quarterly': quarterly}

        info = ticker.info or {}
        # Unknown tickers come back as a stub dict without any price
        if info.get('regularMarketPrice') is None and info.get('currentPrice') is None:
            raise NoDataForSymbol(f"yfinance does not recognise {provider_symbol}")
        return info

    def fetch_price_history(self, symbol: str, time_range: str = DEFAULT_CHART_RANGE) -> Union[ChartData, Unavailable]:
        """Price bars for a chart range ('1D', '1W', '1M', '3M', '6M', '1Y', '5Y')."""
        period = CHART_RANGES.get(time_range.upper(), CHART_RANGES[DEFAULT_CHART_RANGE])
        interval = CHART_INTERVALS.get(time_range.upper(), '1d')
        try:
            provider_symbol = self.provider_symbol(symbol)
            if self.rate_limiter is not None:
                self.rate_limiter.acquire()
            history = self._ticker_factory(provider_symbol).history(period=period, interval=interval)
            if history is None or history.empty:
                raise NoDataForSymbol(f"yfinance has no price history for {provider_symbol}")
        except ProviderError as e:
            logger.warning(f"yfinance history unavailable for {symbol}: {e}")
            return Unavailable.from_error(self.name, e)
        except Exception as e:
            logger.error(f"yfinance history failed for {symbol}: {type(e).__name__}: {e}")
            return Unavailable(self.name, UnavailableReason.MALFORMED, str(e))

        bars = []
        for date, row in history.iterrows():
            close = clean_numeric(row.get('Close'))
            if close is None:
                continue
            bars.append(PriceBar(
                date=pd.Timestamp(date).to_pydatetime(),
                open=clean_numeric(row.get('Open')),
                high=clean_numeric(row.get('High')),
                low=clean_numeric(row.get('Low')),
                close=close,
                volume=clean_numeric(row.get('Volume')),
            ))
        logger.info(f"Fetched {len(bars)} bars of {time_range} history for {symbol}")
        return ChartData(
            symbol=symbol.upper(),
            time_range=time_range.upper(),
            bars=bars,
            provenance=self.provenance,
            is_real_data=True,
            metadata={'source': self.name, 'period': period, 'interval': interval},
        )
