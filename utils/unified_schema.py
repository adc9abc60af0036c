"""
Unified Data Schema
===================

Standardized data models shared by providers, the orchestrator and the CLI.

Unit Conventions
----------------
- **Monetary Values** (revenue, net income, debt, market cap):
  - Unit: raw rupee value as reported by the provider (NOT in crores)

- **Percentage Metrics** (margins, ROE, ROA, ROCE, growth rates, dividend yield):
  - Unit: percent (NOT decimal)
  - Example: 15% = 15.0, not 0.15
  - Provider fields reported as decimals are scaled when extracted.

- **Multiplier Ratios** (current/quick ratio, D/E, P/E, P/B, P/S, EV/EBITDA,
  interest coverage):
  - Unit: pure ratio
  - Example: P/E of 25x = 25.0

Provenance
----------
Every metric records how its value was obtained. Trust order, highest first:

    REAL_API > SECONDARY_API > CALCULATED > AI_ESTIMATED > MOCK

An unavailable metric carries no provenance at all and never a fabricated 0.
"""

from datetime import datetime
from enum import Enum
from typing import Optional, Dict, List, Any
from pydantic import BaseModel, Field


class Provenance(str, Enum):
    """How a value was obtained."""
    REAL_API = "REAL_API"
    SECONDARY_API = "SECONDARY_API"
    CALCULATED = "CALCULATED"
    AI_ESTIMATED = "AI_ESTIMATED"
    MOCK = "MOCK"

    @property
    def trust(self) -> int:
        return _PROVENANCE_TRUST[self]


_PROVENANCE_TRUST = {
    Provenance.REAL_API: 5,
    Provenance.SECONDARY_API: 4,
    Provenance.CALCULATED: 3,
    Provenance.AI_ESTIMATED: 2,
    Provenance.MOCK: 1,
}


def provenance_trust(provenance: Optional[Provenance]) -> int:
    """Trust rank of a provenance; an unavailable metric ranks 0."""
    return provenance.trust if provenance is not None else 0


class HealthLabel(str, Enum):
    BEST = "BEST"
    GOOD = "GOOD"
    NORMAL = "NORMAL"
    BAD = "BAD"
    WORSE = "WORSE"


class Signal(str, Enum):
    BUY = "BUY"
    SELL = "SELL"
    HOLD = "HOLD"


class RatioKind(str, Enum):
    """Threshold family used to classify a metric."""
    PERCENTAGE = "percentage"
    INTEREST_COVERAGE = "interest_coverage"
    DEBT_TO_EQUITY = "debt_to_equity"
    PE_RATIO = "pe_ratio"
    DIVIDEND_YIELD = "dividend_yield"
    LIQUIDITY_RATIO = "liquidity_ratio"
    PRICE_TO_BOOK = "price_to_book"
    PRICE_TO_SALES = "price_to_sales"
    EV_TO_EBITDA = "ev_to_ebitda"


# --- Metrics ---

class MetricWithSource(BaseModel):
    """A metric value together with its provenance and health label."""
    name: str
    value: Optional[float] = None
    is_available: bool = False
    provenance: Optional[Provenance] = None
    health_label: HealthLabel = HealthLabel.NORMAL
    source_detail: Optional[str] = Field(None, description="Provider or formula that produced the value")
    last_updated: datetime = Field(default_factory=datetime.now)

    @classmethod
    def available(
        cls,
        name: str,
        value: float,
        provenance: Provenance,
        health_label: HealthLabel = HealthLabel.NORMAL,
        source_detail: Optional[str] = None,
    ) -> "MetricWithSource":
        return cls(
            name=name,
            value=value,
            is_available=True,
            provenance=provenance,
            health_label=health_label,
            source_detail=source_detail,
        )

    @classmethod
    def unavailable(cls, name: str) -> "MetricWithSource":
        return cls(name=name)


class TechnicalIndicator(BaseModel):
    """Synthetic indicator derived from the 52-week range."""
    indicator: str
    value: float
    signal: Signal
    health_label: HealthLabel
    description: str
    buy_price: Optional[float] = None
    target_price: Optional[float] = None
    stop_loss: Optional[float] = None


class TechnicalBlock(BaseModel):
    stochastic_rsi: TechnicalIndicator
    connors_rsi: TechnicalIndicator
    macd: TechnicalIndicator
    patterns: TechnicalIndicator
    support: List[float] = Field(default_factory=list, description="Support levels, nearest first")
    resistance: List[float] = Field(default_factory=list, description="Resistance levels, nearest first")


class StatementHealth(BaseModel):
    income_statement: HealthLabel = HealthLabel.NORMAL
    balance_sheet: HealthLabel = HealthLabel.NORMAL
    cash_flow: HealthLabel = HealthLabel.NORMAL


# --- Normalized Statements ---
# Lists are ordered most recent first.

class IncomeEntry(BaseModel):
    period_end: Optional[str] = None
    revenue: Optional[float] = None
    gross_profit: Optional[float] = None
    operating_income: Optional[float] = None
    ebit: Optional[float] = None
    ebitda: Optional[float] = None
    net_income: Optional[float] = None
    interest_expense: Optional[float] = None
    eps: Optional[float] = None


class BalanceEntry(BaseModel):
    period_end: Optional[str] = None
    total_assets: Optional[float] = None
    total_current_assets: Optional[float] = None
    total_current_liabilities: Optional[float] = None
    total_liabilities: Optional[float] = None
    total_equity: Optional[float] = None
    inventory: Optional[float] = None
    cash: Optional[float] = None
    total_debt: Optional[float] = None
    shares_outstanding: Optional[float] = None


class CashFlowEntry(BaseModel):
    period_end: Optional[str] = None
    operating_cash_flow: Optional[float] = None
    capital_expenditure: Optional[float] = None
    free_cash_flow: Optional[float] = None
    dividends_paid: Optional[float] = None


class FinancialStatements(BaseModel):
    income_quarterly: List[IncomeEntry] = Field(default_factory=list)
    income_annual: List[IncomeEntry] = Field(default_factory=list)
    balance_quarterly: List[BalanceEntry] = Field(default_factory=list)
    balance_annual: List[BalanceEntry] = Field(default_factory=list)
    cash_flow_quarterly: List[CashFlowEntry] = Field(default_factory=list)
    cash_flow_annual: List[CashFlowEntry] = Field(default_factory=list)

    def is_empty(self) -> bool:
        return not any([
            self.income_quarterly, self.income_annual,
            self.balance_quarterly, self.balance_annual,
            self.cash_flow_quarterly, self.cash_flow_annual,
        ])


class ProviderSnapshot(BaseModel):
    """Normalized output of one provider for one symbol."""
    source: str
    provenance: Provenance
    symbol: str
    company_name: Optional[str] = None
    sector: Optional[str] = None
    industry: Optional[str] = None
    about: Optional[str] = None
    current_price: Optional[float] = None
    change: Optional[float] = None
    change_percent: Optional[float] = None
    market_cap: Optional[float] = None
    fifty_two_week_high: Optional[float] = None
    fifty_two_week_low: Optional[float] = None
    shares_outstanding: Optional[float] = None
    direct_metrics: Dict[str, float] = Field(default_factory=dict, description="Catalogue metrics reported directly")
    statements: FinancialStatements = Field(default_factory=FinancialStatements)
    failures: Dict[str, str] = Field(default_factory=dict, description="Endpoint -> unavailable reason")

    def has_data(self) -> bool:
        """True when the snapshot carries anything a record can be built from."""
        return (
            self.current_price is not None
            or bool(self.direct_metrics)
            or not self.statements.is_empty()
        )


# --- Assembled Record ---

class StockAnalysisRecord(BaseModel):
    """Fully-shaped analysis of one equity."""
    symbol: str
    company_name: str = "N/A"
    sector: str = "N/A"
    industry: str = "N/A"
    about: str = ""

    current_price: MetricWithSource
    market_cap: MetricWithSource
    change: Optional[float] = None
    change_percent: Optional[float] = None
    fifty_two_week_high: Optional[float] = None
    fifty_two_week_low: Optional[float] = None

    profitability: Dict[str, MetricWithSource] = Field(default_factory=dict)
    liquidity: Dict[str, MetricWithSource] = Field(default_factory=dict)
    valuation: Dict[str, MetricWithSource] = Field(default_factory=dict)
    growth: Dict[str, MetricWithSource] = Field(default_factory=dict)

    statement_health: StatementHealth = Field(default_factory=StatementHealth)
    management: HealthLabel = HealthLabel.GOOD
    industry_position: HealthLabel = HealthLabel.GOOD
    risks: HealthLabel = HealthLabel.NORMAL
    outlook: HealthLabel = HealthLabel.GOOD

    technical_indicators: TechnicalBlock
    key_points: List[str] = Field(default_factory=list)
    pros: List[str] = Field(default_factory=list)
    cons: List[str] = Field(default_factory=list)

    data_sources: List[str] = Field(default_factory=list, description="Providers that contributed at least one value")
    is_mock: bool = False
    last_updated: datetime = Field(default_factory=datetime.now)

    def category(self, name: str) -> Dict[str, MetricWithSource]:
        return getattr(self, name)

    def all_metrics(self) -> Dict[str, MetricWithSource]:
        merged: Dict[str, MetricWithSource] = {}
        for block in (self.profitability, self.liquidity, self.valuation, self.growth):
            merged.update(block)
        return merged


# --- Chart ---

class PriceBar(BaseModel):
    date: datetime
    open: Optional[float] = None
    high: Optional[float] = None
    low: Optional[float] = None
    close: float
    volume: Optional[float] = None


class ChartData(BaseModel):
    symbol: str
    time_range: str
    bars: List[PriceBar] = Field(default_factory=list)
    provenance: Provenance
    is_real_data: bool = False
    metadata: Dict[str, Any] = Field(default_factory=dict)


# --- Recommendations ---

class TimeFrame(str, Enum):
    """Holding horizon a recommendation is made for."""
    SEVEN_DAYS = "7D"
    ONE_MONTH = "1M"
    THREE_MONTHS = "3M"
    SIX_MONTHS = "6M"
    ONE_YEAR = "1Y"


class KeyMetrics(BaseModel):
    pe: Optional[float] = None
    pb: Optional[float] = None
    roe: Optional[float] = None
    market_cap: Optional[float] = None


class StockRecommendation(BaseModel):
    symbol: str
    name: str
    sector: str = Field(description="Sector filter the recommendation was made under")
    time_frame: TimeFrame
    recommendation: Signal
    confidence: float
    current_price: Optional[float] = None
    target_price: Optional[float] = None
    stop_loss: Optional[float] = Field(None, description="None for SELL calls")
    upside: Optional[float] = Field(None, description="Expected move to target, percent")
    reasoning: List[str] = Field(default_factory=list)
    risks: List[str] = Field(default_factory=list)
    key_metrics: KeyMetrics = Field(default_factory=KeyMetrics)
    ai_score: float
    generated_at: datetime
    valid_until: datetime


class RecommendationMetadata(BaseModel):
    time_frame: TimeFrame
    sector: str
    total_analyzed: int = 0
    model_used: str
    generated_at: datetime = Field(default_factory=datetime.now)


class RecommendationResponse(BaseModel):
    recommendations: List[StockRecommendation] = Field(default_factory=list)
    metadata: RecommendationMetadata
