"""
Derived Ratio Calculator.

Recomputes catalogue metrics from raw statement line items when providers
omit the ratio itself. Every function is pure and null-propagating: a
missing or zero input yields None, never a plausible-looking number.

Series conventions:
- Statement lists are ordered most recent first (as providers report them).
- ``compound_annual_growth_rate`` takes a chronological series (oldest first).
- Percentages are returned in percent units (15.0 = 15%).
"""

from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Sequence

from config.constants import MAX_CAGR_YEARS, TTM_QUARTERS
from utils.logger import setup_logger
from utils.numeric_utils import clean_numeric, safe_divide
from utils.unified_schema import FinancialStatements, IncomeEntry

logger = setup_logger('ratio_calculator')


@dataclass
class StatementSeries:
    """One line item across quarterly and annual statements (most recent first)."""
    quarterly: List[Optional[float]] = field(default_factory=list)
    annual: List[Optional[float]] = field(default_factory=list)


def _non_zero(value: Optional[float]) -> Optional[float]:
    cleaned = clean_numeric(value)
    if cleaned is None or cleaned == 0:
        return None
    return cleaned


def trailing_sum(quarterly: Sequence[Optional[float]], quarters: int = TTM_QUARTERS) -> Optional[float]:
    """Sum of up to ``quarters`` most recent non-zero quarterly values."""
    values = [v for v in (_non_zero(q) for q in quarterly) if v is not None][:quarters]
    if not values:
        return None
    return sum(values)


def latest_non_zero(annual: Sequence[Optional[float]]) -> Optional[float]:
    for value in annual:
        cleaned = _non_zero(value)
        if cleaned is not None:
            return cleaned
    return None


def resolve_flow(series: StatementSeries) -> Optional[float]:
    """Trailing-twelve-month figure, falling back to the latest annual one."""
    ttm = trailing_sum(series.quarterly)
    if ttm is not None:
        return ttm
    return latest_non_zero(series.annual)


def _paired_ttm(numerator: Sequence[Optional[float]], denominator: Sequence[Optional[float]]):
    # Only quarters where both sides are reported, so the sums cover the same periods
    num_total, den_total, used = 0.0, 0.0, 0
    for num, den in zip(numerator, denominator):
        num, den = _non_zero(num), _non_zero(den)
        if num is None or den is None:
            continue
        num_total += num
        den_total += den
        used += 1
        if used == TTM_QUARTERS:
            break
    if used == 0:
        return None, None
    return num_total, den_total


def _paired_latest(numerator: Sequence[Optional[float]], denominator: Sequence[Optional[float]]):
    for num, den in zip(numerator, denominator):
        num, den = _non_zero(num), _non_zero(den)
        if num is not None and den is not None:
            return num, den
    return None, None


def margin_ratio(numerator: StatementSeries, denominator: StatementSeries) -> Optional[float]:
    """
    Margin of one line item over another, in percent.

    Prefers a trailing-twelve-month sum over matching quarters, then the
    latest annual period where both sides are reported.

    Returns:
        Percentage, or None when either side resolves to null/zero
    """
    num, den = _paired_ttm(numerator.quarterly, denominator.quarterly)
    if num is None:
        num, den = _paired_latest(numerator.annual, denominator.annual)
    if num is None or den is None:
        return None
    return num / den * 100


def interest_coverage(entries: Sequence[IncomeEntry]) -> Optional[float]:
    """
    EBIT (or operating income) over absolute interest expense.

    Entries are scanned most recent first; those without a non-zero interest
    expense are skipped.
    """
    for entry in entries:
        interest = _non_zero(entry.interest_expense)
        if interest is None:
            continue
        earnings = clean_numeric(entry.ebit)
        if earnings is None:
            earnings = clean_numeric(entry.operating_income)
        if earnings is None:
            continue
        return earnings / abs(interest)
    return None


def compound_annual_growth_rate(series: Sequence[Optional[float]]) -> Optional[float]:
    """
    Compound annual growth rate of a chronological series, in percent.

    Missing points keep their year slot: the exponent is the distance in
    years between the first and last valid points, so a gap never shortens
    the span.

    Examples:
        >>> compound_annual_growth_rate([100, 121])
        21.0
        >>> compound_annual_growth_rate([100, 110, 121])
        10.0
        >>> compound_annual_growth_rate([100, None, 121])
        10.0
        >>> compound_annual_growth_rate([0, 121]) is None
        True
    """
    points = [(year, v) for year, v in enumerate(clean_numeric(s) for s in series) if v is not None]
    if len(points) < 2:
        return None
    (first_year, first), (last_year, last) = points[0], points[-1]
    if first <= 0 or last <= 0:
        return None
    try:
        rate = ((last / first) ** (1 / (last_year - first_year)) - 1) * 100
    except (OverflowError, ZeroDivisionError):
        return None
    return clean_numeric(round(rate, 10))


def return_on_assets_from_ttm(trailing_net_income: Optional[float], total_assets: Optional[float]) -> Optional[float]:
    ratio = safe_divide(trailing_net_income, _non_zero(total_assets))
    return ratio * 100 if ratio is not None else None


def return_on_equity_from_ttm(trailing_net_income: Optional[float], total_equity: Optional[float]) -> Optional[float]:
    equity = clean_numeric(total_equity)
    if equity is None or equity <= 0:
        return None
    ratio = safe_divide(trailing_net_income, equity)
    return ratio * 100 if ratio is not None else None


def return_on_capital_employed_from_ttm(
    ebit_ttm: Optional[float],
    total_assets: Optional[float],
    total_current_liabilities: Optional[float]
) -> Optional[float]:
    """
    EBIT over capital employed (total assets - current liabilities), in percent.
    """
    assets = clean_numeric(total_assets)
    liabilities = clean_numeric(total_current_liabilities)
    if assets is None or liabilities is None:
        return None
    capital_employed = assets - liabilities
    if capital_employed <= 0:
        return None
    ratio = safe_divide(ebit_ttm, capital_employed)
    return ratio * 100 if ratio is not None else None


def current_ratio(current_assets: Optional[float], current_liabilities: Optional[float]) -> Optional[float]:
    return safe_divide(_non_zero(current_assets), _non_zero(current_liabilities))


def quick_ratio(
    current_assets: Optional[float],
    inventory: Optional[float],
    current_liabilities: Optional[float]
) -> Optional[float]:
    """(Current assets - inventory) / current liabilities. Needs an inventory figure; 0 counts."""
    assets = _non_zero(current_assets)
    stock = clean_numeric(inventory)
    if assets is None or stock is None:
        return None
    return safe_divide(assets - stock, _non_zero(current_liabilities))


def debt_to_equity(total_debt: Optional[float], total_equity: Optional[float]) -> Optional[float]:
    """Debt over equity. Zero debt is a genuine 0.0; non-positive equity is undefined."""
    debt = clean_numeric(total_debt)
    equity = clean_numeric(total_equity)
    if debt is None or equity is None or equity <= 0:
        return None
    return debt / equity


def price_to_earnings(price: Optional[float], eps: Optional[float]) -> Optional[float]:
    return safe_divide(_non_zero(price), _non_zero(eps))


def price_to_book(market_cap: Optional[float], total_equity: Optional[float]) -> Optional[float]:
    equity = clean_numeric(total_equity)
    if equity is None or equity <= 0:
        return None
    return safe_divide(_non_zero(market_cap), equity)


def price_to_sales(market_cap: Optional[float], revenue_ttm: Optional[float]) -> Optional[float]:
    return safe_divide(_non_zero(market_cap), _non_zero(revenue_ttm))


def ev_to_ebitda(
    market_cap: Optional[float],
    total_debt: Optional[float],
    cash: Optional[float],
    ebitda_ttm: Optional[float]
) -> Optional[float]:
    cap = _non_zero(market_cap)
    debt = clean_numeric(total_debt)
    cash_value = clean_numeric(cash)
    if cap is None or debt is None or cash_value is None:
        return None
    return safe_divide(cap + debt - cash_value, _non_zero(ebitda_ttm))


class RatioCalculator:
    """
    Binds the ratio functions to one provider's normalized statements.

    ``derive(name)`` returns the metric in catalogue units, or None when the
    statements do not carry enough line items.
    """

    FORMULAS: Dict[str, str] = {
        'ROE': "TTM net income / total equity",
        'ROA': "TTM net income / total assets",
        'ROCE': "TTM EBIT / (total assets - current liabilities)",
        'Gross Margin': "gross profit / revenue",
        'Operating Margin': "operating income / revenue",
        'Net Margin': "net income / revenue",
        'Current Ratio': "current assets / current liabilities",
        'Quick Ratio': "(current assets - inventory) / current liabilities",
        'Debt-to-Equity': "total debt / total equity",
        'Interest Coverage': "EBIT / interest expense",
        'P/E Ratio': "price / TTM EPS",
        'P/B Ratio': "market cap / total equity",
        'P/S Ratio': "market cap / TTM revenue",
        'EV/EBITDA': "(market cap + debt - cash) / TTM EBITDA",
        'Dividend Yield': "annual dividends paid / market cap",
        'Revenue CAGR (3Y)': "CAGR of annual revenue",
        'EPS Growth (3Y)': "CAGR of annual EPS",
    }

    def __init__(
        self,
        statements: FinancialStatements,
        price: Optional[float] = None,
        market_cap: Optional[float] = None,
        shares_outstanding: Optional[float] = None
    ):
        self.statements = statements
        self.price = clean_numeric(price)
        self.shares_outstanding = clean_numeric(shares_outstanding) or self._latest_balance('shares_outstanding')
        self.market_cap = clean_numeric(market_cap)
        if self.market_cap is None and self.price is not None and self.shares_outstanding:
            self.market_cap = self.price * self.shares_outstanding

        self._derivations: Dict[str, Callable[[], Optional[float]]] = {
            'ROE': self._roe,
            'ROA': self._roa,
            'ROCE': self._roce,
            'Gross Margin': lambda: margin_ratio(self._income('gross_profit'), self._income('revenue')),
            'Operating Margin': lambda: margin_ratio(self._income('operating_income'), self._income('revenue')),
            'Net Margin': lambda: margin_ratio(self._income('net_income'), self._income('revenue')),
            'Current Ratio': self._current_ratio,
            'Quick Ratio': self._quick_ratio,
            'Debt-to-Equity': self._debt_to_equity,
            'Interest Coverage': lambda: interest_coverage(
                self.statements.income_quarterly + self.statements.income_annual
            ),
            'P/E Ratio': self._pe,
            'P/B Ratio': lambda: price_to_book(self.market_cap, self._latest_balance('total_equity')),
            'P/S Ratio': lambda: price_to_sales(self.market_cap, resolve_flow(self._income('revenue'))),
            'EV/EBITDA': self._ev_ebitda,
            'Dividend Yield': self._dividend_yield,
            'Revenue CAGR (3Y)': lambda: self._cagr('revenue'),
            'EPS Growth (3Y)': lambda: self._cagr('eps'),
        }

    def can_derive(self, metric_name: str) -> bool:
        return metric_name in self._derivations

    def derive(self, metric_name: str) -> Optional[float]:
        derivation = self._derivations.get(metric_name)
        if derivation is None:
            return None
        value = clean_numeric(derivation())
        if value is not None:
            logger.debug(f"Derived {metric_name} = {value:.4f} ({self.FORMULAS[metric_name]})")
        return value

    # --- Series access ---

    def _income(self, attr: str) -> StatementSeries:
        return StatementSeries(
            quarterly=[getattr(e, attr) for e in self.statements.income_quarterly],
            annual=[getattr(e, attr) for e in self.statements.income_annual],
        )

    def _latest_balance(self, attr: str) -> Optional[float]:
        # Quarterly balance sheets are more recent than annual ones
        for entry in self.statements.balance_quarterly + self.statements.balance_annual:
            value = clean_numeric(getattr(entry, attr))
            if value is not None:
                return value
        return None

    def _latest_balance_pair(self, first: str, second: str):
        for entry in self.statements.balance_quarterly + self.statements.balance_annual:
            a, b = clean_numeric(getattr(entry, first)), clean_numeric(getattr(entry, second))
            if a is not None and b is not None:
                return entry
        return None

    def _ebit_series(self) -> StatementSeries:
        ebit = self._income('ebit')
        operating = self._income('operating_income')
        return StatementSeries(
            quarterly=[e if e is not None else o for e, o in zip(ebit.quarterly, operating.quarterly)],
            annual=[e if e is not None else o for e, o in zip(ebit.annual, operating.annual)],
        )

    # --- Derivations ---

    def _roe(self):
        return return_on_equity_from_ttm(resolve_flow(self._income('net_income')), self._latest_balance('total_equity'))

    def _roa(self):
        return return_on_assets_from_ttm(resolve_flow(self._income('net_income')), self._latest_balance('total_assets'))

    def _roce(self):
        entry = self._latest_balance_pair('total_assets', 'total_current_liabilities')
        if entry is None:
            return None
        return return_on_capital_employed_from_ttm(
            resolve_flow(self._ebit_series()), entry.total_assets, entry.total_current_liabilities
        )

    def _current_ratio(self):
        entry = self._latest_balance_pair('total_current_assets', 'total_current_liabilities')
        if entry is None:
            return None
        return current_ratio(entry.total_current_assets, entry.total_current_liabilities)

    def _quick_ratio(self):
        entry = self._latest_balance_pair('total_current_assets', 'total_current_liabilities')
        if entry is None:
            return None
        return quick_ratio(entry.total_current_assets, entry.inventory, entry.total_current_liabilities)

    def _debt_to_equity(self):
        entry = self._latest_balance_pair('total_debt', 'total_equity')
        if entry is None:
            return None
        return debt_to_equity(entry.total_debt, entry.total_equity)

    def _pe(self):
        eps = resolve_flow(self._income('eps'))
        if eps is None and self.shares_outstanding:
            eps = safe_divide(resolve_flow(self._income('net_income')), self.shares_outstanding)
        return price_to_earnings(self.price, eps)

    def _ev_ebitda(self):
        entry = self._latest_balance_pair('total_debt', 'cash')
        if entry is None:
            return None
        return ev_to_ebitda(self.market_cap, entry.total_debt, entry.cash, resolve_flow(self._income('ebitda')))

    def _dividend_yield(self):
        dividends = latest_non_zero([e.dividends_paid for e in self.statements.cash_flow_annual])
        ratio = safe_divide(abs(dividends) if dividends is not None else None, _non_zero(self.market_cap))
        return ratio * 100 if ratio is not None else None

    def _cagr(self, attr: str):
        annual = [getattr(e, attr) for e in self.statements.income_annual][:MAX_CAGR_YEARS]
        return compound_annual_growth_rate(list(reversed(annual)))
