"""
RapidAPI "Yahoo Finance Real Time" adapter (primary source).

The service wraps Yahoo's quoteSummary modules, but the envelope differs by
endpoint (``quoteSummary.result[0]``, ``body``, ``data`` or bare modules), so
every field is looked up under each known root.
"""

from typing import Any, Callable, Optional

from config.constants import (
    RAPIDAPI_ENDPOINTS, RAPIDAPI_LANG, RAPIDAPI_REGION, RAPIDAPI_RETRIES,
    RAPIDAPI_TIMEOUT_SECONDS, RAPIDAPI_YAHOO_BASE_URL, RAPIDAPI_YAHOO_HOST
)
from data_acquisition.providers.base_provider import BaseProvider, FieldSpec
from data_acquisition.providers.errors import MalformedResponse, NoDataForSymbol
from utils.http_utils import make_request
from utils.logger import setup_logger
from utils.unified_schema import Provenance

logger = setup_logger('rapidapi_yahoo_provider')

# Yahoo fields arrive either as {"raw": x, "fmt": "..."} or bare numbers;
# the extractor unwraps both.
_YAHOO_INCOME_FIELDS = {
    'revenue': [["totalRevenue"]],
    'gross_profit': [["grossProfit"]],
    'operating_income': [["operatingIncome"]],
    'ebit': [["ebit"]],
    'ebitda': [["ebitda"], ["normalizedEBITDA"]],
    'net_income': [["netIncome"], ["netIncomeApplicableToCommonShares"]],
    'interest_expense': [["interestExpense"]],
    'eps': [["dilutedEPS"], ["basicEPS"]],
}

_YAHOO_BALANCE_FIELDS = {
    'total_assets': [["totalAssets"]],
    'total_current_assets': [["totalCurrentAssets"]],
    'total_current_liabilities': [["totalCurrentLiabilities"]],
    'total_liabilities': [["totalLiab"], ["totalLiabilities"]],
    'total_equity': [["totalStockholderEquity"], ["stockholdersEquity"]],
    'inventory': [["inventory"]],
    'cash': [["cash"], ["cashAndCashEquivalents"]],
    'total_debt': [["totalDebt"], ["longTermDebt"]],
    'shares_outstanding': [["sharesOutstanding"], ["ordinarySharesNumber"]],
}

_YAHOO_CASH_FLOW_FIELDS = {
    'operating_cash_flow': [["totalCashFromOperatingActivities"], ["operatingCashFlow"]],
    'capital_expenditure': [["capitalExpenditures"], ["capitalExpenditure"]],
    'free_cash_flow': [["freeCashFlow"]],
    'dividends_paid': [["dividendsPaid"], ["cashDividendsPaid"]],
}


class RapidApiYahooProvider(BaseProvider):
    """Primary quote, statistics and statement source."""

    name = "rapidapi_yahoo"
    provenance = Provenance.REAL_API
    key_name = 'RAPIDAPI'

    ROOT_PREFIXES = (
        ["quoteSummary", "result", 0],
        ["body"],
        ["data"],
        ["quoteResponse", "result", 0],
        [],
    )

    QUOTE_FIELDS = {
        'current_price': FieldSpec([["price", "regularMarketPrice"], ["financialData", "currentPrice"],
                                    ["regularMarketPrice"]]),
        'change': FieldSpec([["price", "regularMarketChange"], ["regularMarketChange"]]),
        'change_percent': FieldSpec([["regularMarketChangePercent"]]),
        'market_cap': FieldSpec([["price", "marketCap"], ["summaryDetail", "marketCap"], ["marketCap"]]),
        'fifty_two_week_high': FieldSpec([["summaryDetail", "fiftyTwoWeekHigh"], ["fiftyTwoWeekHigh"]]),
        'fifty_two_week_low': FieldSpec([["summaryDetail", "fiftyTwoWeekLow"], ["fiftyTwoWeekLow"]]),
        'shares_outstanding': FieldSpec([["defaultKeyStatistics", "sharesOutstanding"], ["sharesOutstanding"]]),
    }

    TEXT_FIELDS = {
        'company_name': FieldSpec([["price", "longName"], ["price", "shortName"], ["quoteType", "longName"],
                                   ["longName"], ["shortName"]]),
        'sector': FieldSpec([["assetProfile", "sector"], ["summaryProfile", "sector"], ["sector"]]),
        'industry': FieldSpec([["assetProfile", "industry"], ["summaryProfile", "industry"], ["industry"]]),
        'about': FieldSpec([["assetProfile", "longBusinessSummary"], ["summaryProfile", "longBusinessSummary"],
                            ["longBusinessSummary"]]),
    }

    METRIC_FIELDS = {
        'ROE': FieldSpec([["financialData", "returnOnEquity"]], scale=100),
        'ROA': FieldSpec([["financialData", "returnOnAssets"]], scale=100),
        'Gross Margin': FieldSpec([["financialData", "grossMargins"]], scale=100),
        'Operating Margin': FieldSpec([["financialData", "operatingMargins"]], scale=100),
        'Net Margin': FieldSpec([["financialData", "profitMargins"], ["defaultKeyStatistics", "profitMargins"]],
                                scale=100),
        'Current Ratio': FieldSpec([["financialData", "currentRatio"]]),
        'Quick Ratio': FieldSpec([["financialData", "quickRatio"]]),
        # Yahoo reports D/E as a percentage (45.2 means 0.452)
        'Debt-to-Equity': FieldSpec([["financialData", "debtToEquity"]], scale=0.01),
        'P/E Ratio': FieldSpec([["summaryDetail", "trailingPE"], ["defaultKeyStatistics", "trailingPE"],
                                ["trailingPE"]]),
        'P/B Ratio': FieldSpec([["defaultKeyStatistics", "priceToBook"], ["priceToBook"]]),
        'P/S Ratio': FieldSpec([["summaryDetail", "priceToSalesTrailing12Months"]]),
        'EV/EBITDA': FieldSpec([["defaultKeyStatistics", "enterpriseToEbitda"]]),
        'Dividend Yield': FieldSpec([["summaryDetail", "dividendYield"],
                                     ["summaryDetail", "trailingAnnualDividendYield"]], scale=100),
    }

    STATEMENT_LISTS = {
        'income_annual': FieldSpec([["incomeStatementHistory", "incomeStatementHistory"]]),
        'income_quarterly': FieldSpec([["incomeStatementHistoryQuarterly", "incomeStatementHistory"]]),
        'balance_annual': FieldSpec([["balanceSheetHistory", "balanceSheetStatements"]]),
        'balance_quarterly': FieldSpec([["balanceSheetHistoryQuarterly", "balanceSheetStatements"]]),
        'cash_flow_annual': FieldSpec([["cashflowStatementHistory", "cashflowStatements"]]),
        'cash_flow_quarterly': FieldSpec([["cashflowStatementHistoryQuarterly", "cashflowStatements"]]),
    }

    STATEMENT_FIELDS = {
        'income': _YAHOO_INCOME_FIELDS,
        'balance': _YAHOO_BALANCE_FIELDS,
        'cash_flow': _YAHOO_CASH_FLOW_FIELDS,
    }

    PERIOD_PATHS = [["endDate"], ["asOfDate"]]

    def __init__(self, request_fn: Callable[..., Any] = make_request, **kwargs):
        super().__init__(**kwargs)
        self._request = request_fn

    def _headers(self) -> dict:
        return {
            "X-RapidAPI-Key": self.api_key,
            "X-RapidAPI-Host": RAPIDAPI_YAHOO_HOST,
            "Accept": "application/json",
        }

    def _fetch_endpoint(self, endpoint: str, provider_symbol: str) -> Any:
        path = RAPIDAPI_ENDPOINTS[endpoint]
        payload = self._request(
            f"{RAPIDAPI_YAHOO_BASE_URL}{path}",
            params={"symbol": provider_symbol, "lang": RAPIDAPI_LANG, "region": RAPIDAPI_REGION},
            headers=self._headers(),
            timeout=RAPIDAPI_TIMEOUT_SECONDS,
            retries=RAPIDAPI_RETRIES,
            source_name=f"RapidAPI {endpoint}",
        )
        return self._validate(endpoint, provider_symbol, payload)

    def _validate(self, endpoint: str, provider_symbol: str, payload: Any) -> Any:
        if not isinstance(payload, (dict, list)):
            raise MalformedResponse(f"RapidAPI {endpoint} returned {type(payload).__name__}")
        if isinstance(payload, dict):
            summary = payload.get("quoteSummary")
            error = summary.get("error") if isinstance(summary, dict) else None
            if error:
                raise NoDataForSymbol(f"RapidAPI {endpoint} error for {provider_symbol}: {error}")
            if summary is not None and not (isinstance(summary, dict) and summary.get("result")):
                raise NoDataForSymbol(f"RapidAPI {endpoint} has no result for {provider_symbol}")
            if payload.get("message") and len(payload) == 1:
                # Gateway errors come back as {"message": "..."}
                raise MalformedResponse(f"RapidAPI {endpoint}: {payload['message']}")
        return payload
