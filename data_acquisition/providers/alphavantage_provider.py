"""
Alpha Vantage adapter (secondary source).

Alpha Vantage answers HTTP 200 even when throttled or when the symbol is
unknown, signalling both inside the JSON body. Those bodies are translated
into RateLimited / NoDataForSymbol here. All numbers arrive as strings
("None" for missing), which the field extractor already handles.
"""

from typing import Any, Callable, Dict

from config.constants import (
    ALPHAVANTAGE_BASE_URL, ALPHAVANTAGE_EXCHANGE_SUFFIX, ALPHAVANTAGE_FUNCTIONS,
    ALPHAVANTAGE_RETRIES, ALPHAVANTAGE_TIMEOUT_SECONDS
)
from data_acquisition.providers.base_provider import BaseProvider, FieldSpec, base_ticker
from data_acquisition.providers.errors import NoDataForSymbol, RateLimited, MalformedResponse
from utils.field_extractor import extract
from utils.http_utils import make_request
from utils.logger import setup_logger
from utils.unified_schema import IncomeEntry, Provenance, ProviderSnapshot

logger = setup_logger('alphavantage_provider')

# Seven generic reads map onto six Alpha Vantage functions
_ENDPOINT_FUNCTIONS = {
    'quote': 'quote',
    'statistics': 'overview',
    'profile': 'overview',
    'summary': 'earnings',
    'financials': 'income_statement',
    'balance_sheet': 'balance_sheet',
    'cash_flow': 'cash_flow',
}

_OVERVIEW = ('statistics',)
_QUOTE = ('quote',)


class AlphaVantageProvider(BaseProvider):
    """Secondary source for statements and company overview."""

    name = "alphavantage"
    provenance = Provenance.SECONDARY_API
    key_name = 'ALPHAVANTAGE'

    # OVERVIEW serves both statistics and profile; fetch it once
    BUNDLE_ENDPOINTS = ('quote', 'statistics', 'financials', 'balance_sheet', 'cash_flow', 'summary')

    QUOTE_FIELDS = {
        'current_price': FieldSpec([["Global Quote", "05. price"]], _QUOTE),
        'change': FieldSpec([["Global Quote", "09. change"]], _QUOTE),
        'change_percent': FieldSpec([["Global Quote", "10. change percent"]], _QUOTE),
        'market_cap': FieldSpec([["MarketCapitalization"]], _OVERVIEW),
        'fifty_two_week_high': FieldSpec([["52WeekHigh"]], _OVERVIEW),
        'fifty_two_week_low': FieldSpec([["52WeekLow"]], _OVERVIEW),
        'shares_outstanding': FieldSpec([["SharesOutstanding"]], _OVERVIEW),
    }

    TEXT_FIELDS = {
        'company_name': FieldSpec([["Name"]], _OVERVIEW),
        'sector': FieldSpec([["Sector"]], _OVERVIEW),
        'industry': FieldSpec([["Industry"]], _OVERVIEW),
        'about': FieldSpec([["Description"]], _OVERVIEW),
    }

    METRIC_FIELDS = {
        'ROE': FieldSpec([["ReturnOnEquityTTM"]], _OVERVIEW, scale=100),
        'ROA': FieldSpec([["ReturnOnAssetsTTM"]], _OVERVIEW, scale=100),
        'Operating Margin': FieldSpec([["OperatingMarginTTM"]], _OVERVIEW, scale=100),
        'Net Margin': FieldSpec([["ProfitMargin"]], _OVERVIEW, scale=100),
        'P/E Ratio': FieldSpec([["PERatio"], ["TrailingPE"]], _OVERVIEW),
        'P/B Ratio': FieldSpec([["PriceToBookRatio"]], _OVERVIEW),
        'P/S Ratio': FieldSpec([["PriceToSalesRatioTTM"]], _OVERVIEW),
        'EV/EBITDA': FieldSpec([["EVToEBITDA"]], _OVERVIEW),
        'Dividend Yield': FieldSpec([["DividendYield"]], _OVERVIEW, scale=100),
    }

    STATEMENT_LISTS = {
        'income_annual': FieldSpec([["annualReports"]], ('financials',)),
        'income_quarterly': FieldSpec([["quarterlyReports"]], ('financials',)),
        'balance_annual': FieldSpec([["annualReports"]], ('balance_sheet',)),
        'balance_quarterly': FieldSpec([["quarterlyReports"]], ('balance_sheet',)),
        'cash_flow_annual': FieldSpec([["annualReports"]], ('cash_flow',)),
        'cash_flow_quarterly': FieldSpec([["quarterlyReports"]], ('cash_flow',)),
    }

    STATEMENT_FIELDS = {
        'income': {
            'revenue': [["totalRevenue"]],
            'gross_profit': [["grossProfit"]],
            'operating_income': [["operatingIncome"]],
            'ebit': [["ebit"]],
            'ebitda': [["ebitda"]],
            'net_income': [["netIncome"]],
            'interest_expense': [["interestExpense"]],
        },
        'balance': {
            'total_assets': [["totalAssets"]],
            'total_current_assets': [["totalCurrentAssets"]],
            'total_current_liabilities': [["totalCurrentLiabilities"]],
            'total_liabilities': [["totalLiabilities"]],
            'total_equity': [["totalShareholderEquity"]],
            'inventory': [["inventory"]],
            'cash': [["cashAndCashEquivalentsAtCarryingValue"], ["cashAndShortTermInvestments"]],
            'total_debt': [["shortLongTermDebtTotal"], ["longTermDebt"]],
            'shares_outstanding': [["commonStockSharesOutstanding"]],
        },
        'cash_flow': {
            'operating_cash_flow': [["operatingCashflow"]],
            'capital_expenditure': [["capitalExpenditures"]],
            'dividends_paid': [["dividendPayout"], ["dividendPayoutCommonStock"]],
        },
    }

    PERIOD_PATHS = [["fiscalDateEnding"]]

    def __init__(self, request_fn: Callable[..., Any] = make_request, **kwargs):
        super().__init__(**kwargs)
        self._request = request_fn

    def provider_symbol(self, symbol: str) -> str:
        """Alpha Vantage lists Indian equities under its own BSE suffix."""
        return f"{base_ticker(symbol)}{ALPHAVANTAGE_EXCHANGE_SUFFIX}"

    def _fetch_endpoint(self, endpoint: str, provider_symbol: str) -> Any:
        function = ALPHAVANTAGE_FUNCTIONS[_ENDPOINT_FUNCTIONS[endpoint]]
        payload = self._request(
            ALPHAVANTAGE_BASE_URL,
            params={'function': function, 'symbol': provider_symbol, 'apikey': self.api_key},
            timeout=ALPHAVANTAGE_TIMEOUT_SECONDS,
            retries=ALPHAVANTAGE_RETRIES,
            source_name=f"Alpha Vantage {function}",
        )
        return self.check_payload(function, provider_symbol, payload)

    @staticmethod
    def check_payload(function: str, provider_symbol: str, payload: Any) -> Dict[str, Any]:
        """Translate Alpha Vantage's in-body status messages into errors."""
        if not isinstance(payload, dict):
            raise MalformedResponse(f"Alpha Vantage {function} returned {type(payload).__name__}")
        if 'Note' in payload or 'Information' in payload:
            raise RateLimited(f"Alpha Vantage throttled {function}: {payload.get('Note') or payload.get('Information')}")
        if 'Error Message' in payload:
            raise NoDataForSymbol(f"Alpha Vantage {function} has no data for {provider_symbol}")
        if not payload or payload.get('Global Quote') == {}:
            raise NoDataForSymbol(f"Alpha Vantage {function} returned an empty body for {provider_symbol}")
        return payload

    def post_process(self, snapshot: ProviderSnapshot, bundle: Dict[str, Any]) -> ProviderSnapshot:
        """EPS lives in the EARNINGS function; attach it to income entries by fiscal year."""
        earnings = self.statement_items(bundle, FieldSpec([["annualEarnings"]], ('summary',)))
        eps_by_year = {}
        for item in earnings:
            period = item.get('fiscalDateEnding')
            eps = extract(item, [["reportedEPS"]])
            if isinstance(period, str) and eps is not None:
                eps_by_year[period[:4]] = eps

        if not eps_by_year:
            return snapshot

        annual = snapshot.statements.income_annual
        if annual:
            for entry in annual:
                year = (entry.period_end or "")[:4]
                if entry.eps is None and year in eps_by_year:
                    entry.eps = eps_by_year[year]
        else:
            # No income statement: keep the EPS history for growth on its own
            snapshot.statements.income_annual = [
                IncomeEntry(period_end=f"{year}-12-31", eps=eps)
                for year, eps in sorted(eps_by_year.items(), reverse=True)
            ]
        return snapshot
