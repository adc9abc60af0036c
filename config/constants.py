"""
Centralized constants for the application.
Stores API base URLs, timeouts, rate ceilings, cache windows and the exchange table.
"""

import os
from typing import Any, Dict, List

# --- API Configuration ---

# RapidAPI "Yahoo Finance Real Time" (primary)
RAPIDAPI_YAHOO_HOST = "yahoo-finance-real-time1.p.rapidapi.com"
RAPIDAPI_YAHOO_BASE_URL = f"https://{RAPIDAPI_YAHOO_HOST}"
RAPIDAPI_TIMEOUT_SECONDS = 10
RAPIDAPI_RETRIES = 2
RAPIDAPI_LANG = "en-IN"
RAPIDAPI_REGION = "IN"

# Alpha Vantage (secondary)
ALPHAVANTAGE_BASE_URL = "https://www.alphavantage.co/query"
ALPHAVANTAGE_TIMEOUT_SECONDS = 30
ALPHAVANTAGE_RETRIES = 2

# Yahoo Finance via yfinance (secondary)
YAHOO_TIMEOUT_SECONDS = 20

# OpenRouter (AI estimates)
OPENROUTER_BASE_URL = "https://openrouter.ai/api/v1/chat/completions"
OPENROUTER_MODEL = os.getenv('OPENROUTER_MODEL', "openrouter/auto")
OPENROUTER_TEMPERATURE = 0.3
OPENROUTER_MAX_TOKENS = 2000
OPENROUTER_TIMEOUT_SECONDS = 45
OPENROUTER_APP_TITLE = "Stock Recommender App"
OPENROUTER_REFERER = os.getenv('OPENROUTER_REFERER', "http://localhost")

# --- Rate Limits (requests per rolling 60 s window, per provider) ---
RATE_LIMIT_WINDOW_SECONDS = 60.0
RATE_LIMITS: Dict[str, int] = {
    'rapidapi_yahoo': int(os.getenv('RAPIDAPI_RATE_LIMIT', '10')),
    'yfinance': int(os.getenv('YFINANCE_RATE_LIMIT', '30')),
    'alphavantage': int(os.getenv('ALPHAVANTAGE_RATE_LIMIT', '5')),
    'openrouter': int(os.getenv('OPENROUTER_RATE_LIMIT', '10')),
}

# --- Orchestration ---

# Upper bound on one provider's whole fetch before it is treated as unavailable
PROVIDER_TIMEOUT_SECONDS = float(os.getenv('PROVIDER_TIMEOUT_SECONDS', '30'))
AI_TIMEOUT_SECONDS = float(os.getenv('AI_TIMEOUT_SECONDS', '60'))

# Statement history depth used for trailing sums and CAGR
TTM_QUARTERS = 4
MAX_CAGR_YEARS = 4

# --- Cache (file-backed, relative to project root) ---
DATA_CACHE_ANALYSIS = "data/cache/analysis"
ANALYSIS_CACHE_SECONDS = 2 * 60 * 60
CHART_CACHE_SECONDS = 5 * 60

# --- Exchange Lookup ---

# Home market suffix applied to bare tickers
DEFAULT_EXCHANGE_SUFFIX = os.getenv('DEFAULT_EXCHANGE_SUFFIX', ".NS")
ALPHAVANTAGE_EXCHANGE_SUFFIX = ".BSE"
KNOWN_EXCHANGE_SUFFIXES: List[str] = [".NS", ".BO", ".BSE"]

# Tickers whose listing differs from the default suffix
EXCHANGE_OVERRIDES: Dict[str, str] = {
    'SENSEX': ".BO",
}

# Artefacts some ticker lists append to symbols
SYMBOL_ARTEFACTS: List[str] = ["_25", "_"]

# --- API Endpoints ---
RAPIDAPI_ENDPOINTS: Dict[str, str] = {
    'summary': '/stock/get-summary',
    'quote': '/stock/get-quote-summary',
    'financials': '/stock/get-financials',
    'statistics': '/stock/get-statistics',
    'balance_sheet': '/stock/get-balance-sheet',
    'cash_flow': '/stock/get-cashflow',
    'profile': '/stock/get-profile',
    'chart': '/stock/get-chart',
}

ALPHAVANTAGE_FUNCTIONS: Dict[str, str] = {
    'quote': 'GLOBAL_QUOTE',
    'overview': 'OVERVIEW',
    'income_statement': 'INCOME_STATEMENT',
    'balance_sheet': 'BALANCE_SHEET',
    'cash_flow': 'CASH_FLOW',
    'earnings': 'EARNINGS',
}

# yfinance period strings accepted for chart ranges
CHART_RANGES: Dict[str, str] = {
    '1D': '1d',
    '1W': '5d',
    '1M': '1mo',
    '3M': '3mo',
    '6M': '6mo',
    '1Y': '1y',
    '5Y': '5y',
}
CHART_INTERVALS: Dict[str, str] = {
    '1D': '5m',
    '1W': '30m',
}
DEFAULT_CHART_RANGE = '1M'

# --- Sector Hints ---
# Used when no provider reports a sector, and as the recommendation universe
SECTOR_HINTS: Dict[str, List[str]] = {
    'Information Technology': ["TCS", "INFY", "WIPRO", "HCLTECH", "TECHM", "LTIM"],
    'Banking & Financial Services': ["HDFCBANK", "ICICIBANK", "KOTAKBANK", "AXISBANK", "SBIN", "BAJFINANCE"],
    'Automotive': ["MARUTI", "TATAMOTORS", "M&M", "BAJAJ-AUTO", "EICHERMOT"],
    'Energy - Oil & Gas': ["RELIANCE", "ONGC", "BPCL"],
    'FMCG': ["HINDUNILVR", "ITC", "NESTLEIND", "BRITANNIA"],
    'Pharmaceuticals': ["SUNPHARMA", "DRREDDY", "CIPLA"],
    'Metals': ["TATASTEEL", "HINDALCO", "JSWSTEEL"],
    'Telecommunications': ["BHARTIARTL"],
    'Infrastructure & Power': ["LT", "NTPC", "POWERGRID"],
}
DEFAULT_SECTOR = "Diversified"

# --- Recommendations ---

# Time frame -> stop-loss fraction below price, cache window, horizon wording
RECOMMENDATION_TIME_FRAMES: Dict[str, Dict[str, Any]] = {
    '7D': {'stop_loss': 0.03, 'cache_seconds': 15 * 60, 'horizon': "short-term trading (1 week horizon)"},
    '1M': {'stop_loss': 0.05, 'cache_seconds': 30 * 60, 'horizon': "short to medium-term investment (1 month horizon)"},
    '3M': {'stop_loss': 0.08, 'cache_seconds': 60 * 60, 'horizon': "medium-term investment (3 month horizon)"},
    '6M': {'stop_loss': 0.10, 'cache_seconds': 2 * 60 * 60, 'horizon': "medium to long-term investment (6 month horizon)"},
    '1Y': {'stop_loss': 0.15, 'cache_seconds': 4 * 60 * 60, 'horizon': "long-term investment (1 year horizon)"},
}

# Sector filter -> keywords matched against a candidate's sector hint
ALL_SECTORS = 'ALL'
RECOMMENDATION_SECTORS: Dict[str, List[str]] = {
    ALL_SECTORS: [],
    'TECHNOLOGY': ["Information Technology", "Technology", "Software"],
    'IT': ["Information Technology", "Technology", "Software"],
    'FINANCIAL': ["Banking", "Financial Services", "Insurance"],
    'BANKING': ["Banking"],
    'ENERGY': ["Energy", "Oil & Gas", "Power"],
    'AUTO': ["Automotive", "Automobile"],
    'FMCG': ["FMCG"],
    'CONSUMER_STAPLES': ["FMCG", "Food & Beverages"],
    'PHARMA': ["Pharmaceuticals"],
    'HEALTHCARE': ["Pharmaceuticals", "Healthcare"],
    'METALS': ["Metals"],
    'MATERIALS': ["Metals", "Chemicals", "Cement"],
    'TELECOM': ["Telecommunications"],
    'INFRASTRUCTURE': ["Infrastructure"],
    'UTILITIES': ["Power", "Utilities"],
}

RECOMMENDATION_COUNT = 5
# Candidates analyzed and shown to the model per request
RECOMMENDATION_MAX_CANDIDATES = 20
RECOMMENDATION_WORKERS = 4
