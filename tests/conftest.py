import os
import sys

# Loggers pick their level at import time
os.environ.setdefault('LOG_MODE', 'silent')

project_root = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if project_root not in sys.path:
    sys.path.insert(0, project_root)

import pytest

from utils.unified_schema import (
    BalanceEntry, CashFlowEntry, FinancialStatements, IncomeEntry, Provenance, ProviderSnapshot
)


class FakeClock:
    """Manually advanced clock for rate limiter and cache tests."""

    def __init__(self, start=1_000_000.0):
        self.now = start

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def sample_statements():
    """Two years of annual and four quarters of statements, most recent first."""
    return FinancialStatements(
        income_quarterly=[
            IncomeEntry(period_end="2024-03-31", revenue=250, gross_profit=100, operating_income=60,
                        ebit=60, ebitda=70, net_income=40, interest_expense=5, eps=4),
            IncomeEntry(period_end="2023-12-31", revenue=250, gross_profit=100, operating_income=60,
                        ebit=60, ebitda=70, net_income=40, interest_expense=5, eps=4),
            IncomeEntry(period_end="2023-09-30", revenue=250, gross_profit=100, operating_income=60,
                        ebit=60, ebitda=70, net_income=40, interest_expense=5, eps=4),
            IncomeEntry(period_end="2023-06-30", revenue=250, gross_profit=100, operating_income=60,
                        ebit=60, ebitda=70, net_income=40, interest_expense=5, eps=4),
        ],
        income_annual=[
            IncomeEntry(period_end="2024-03-31", revenue=1210, net_income=160, eps=16),
            IncomeEntry(period_end="2023-03-31", revenue=1100, net_income=140, eps=14),
            IncomeEntry(period_end="2022-03-31", revenue=1000, net_income=120, eps=12),
        ],
        balance_annual=[
            BalanceEntry(period_end="2024-03-31", total_assets=2000, total_current_assets=600,
                         total_current_liabilities=400, total_equity=800, inventory=100,
                         cash=150, total_debt=400, shares_outstanding=100),
        ],
        cash_flow_annual=[
            CashFlowEntry(period_end="2024-03-31", operating_cash_flow=220, dividends_paid=-40),
        ],
    )


def make_snapshot(source, provenance, **kwargs):
    return ProviderSnapshot(source=source, provenance=provenance, symbol=kwargs.pop('symbol', 'TCS'), **kwargs)


@pytest.fixture
def snapshot_factory():
    return make_snapshot


@pytest.fixture
def real_api():
    return Provenance.REAL_API
