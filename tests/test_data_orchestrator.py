import threading

import pytest

from config.analysis_config import METRIC_CATALOGUE
from config.constants import RATE_LIMITS
from data_acquisition.orchestration.analysis_cache import AnalysisCache
from data_acquisition.orchestration.data_orchestrator import AnalysisOrchestrator, provider_rate_limiter
from data_acquisition.providers.alphavantage_provider import AlphaVantageProvider
from data_acquisition.providers.errors import InvalidSymbolError, Unavailable, UnavailableReason
from utils.unified_schema import (
    BalanceEntry, ChartData, FinancialStatements, HealthLabel, PriceBar, Provenance,
    ProviderSnapshot, Signal
)


class FakeProvider:
    """Returns a canned snapshot; counts calls."""

    def __init__(self, name, snapshot=None, error=None, delay=None):
        self.name = name
        self.snapshot = snapshot
        self.error = error
        self.delay = delay
        self.calls = 0

    def fetch_snapshot(self, symbol):
        self.calls += 1
        if self.delay is not None:
            self.delay.wait(5)
        if self.error is not None:
            raise self.error
        if self.snapshot is None:
            return ProviderSnapshot(source=self.name, provenance=Provenance.SECONDARY_API, symbol=symbol)
        return self.snapshot


class FakeAIProvider:
    name = "openrouter"

    def __init__(self, value=12.0, extra=None):
        self.value = value
        self.extra = extra or {}
        self.requests = {}

    def is_configured(self):
        return True

    def estimate(self, symbol, category, missing_metrics):
        self.requests[category] = list(missing_metrics)
        estimates = {name: self.value for name in missing_metrics}
        estimates.update(self.extra)
        return estimates


def tcs_providers():
    primary = ProviderSnapshot(
        source="rapidapi_yahoo", provenance=Provenance.REAL_API, symbol="TCS",
        company_name="Tata Consultancy Services Limited",
        current_price=3500.0, fifty_two_week_high=4000.0, fifty_two_week_low=3000.0,
        direct_metrics={'P/E Ratio': 28.0},
    )
    secondary = ProviderSnapshot(
        source="alphavantage", provenance=Provenance.SECONDARY_API, symbol="TCS",
        company_name="TATA CONSULTANCY SERVICES",
        statements=FinancialStatements(
            balance_annual=[BalanceEntry(total_current_assets=200, total_current_liabilities=100)]
        ),
    )
    return [FakeProvider("rapidapi_yahoo", primary), FakeProvider("alphavantage", secondary)]


class TestAnalyze:

    def test_tcs_scenario(self):
        ai = FakeAIProvider(extra={'P/E Ratio': 99.0, 'Current Ratio': 7.0})
        record = AnalysisOrchestrator(tcs_providers(), ai_provider=ai).analyze("TCS")

        assert record.current_price.value == 3500.0
        assert record.current_price.provenance == Provenance.REAL_API
        assert record.valuation['P/E Ratio'].value == 28.0
        assert record.valuation['P/E Ratio'].provenance == Provenance.REAL_API
        assert record.liquidity['Current Ratio'].value == pytest.approx(2.0)
        assert record.liquidity['Current Ratio'].provenance == Provenance.CALCULATED
        assert record.liquidity['Current Ratio'].health_label == HealthLabel.BEST
        for metric in record.profitability.values():
            assert metric.provenance == Provenance.AI_ESTIMATED
        assert record.company_name == "Tata Consultancy Services Limited"
        assert record.data_sources == ["rapidapi_yahoo", "alphavantage", "openrouter"]
        assert not record.is_mock

    def test_ai_asked_only_for_gaps(self):
        ai = FakeAIProvider()
        AnalysisOrchestrator(tcs_providers(), ai_provider=ai).analyze("TCS")

        assert set(ai.requests) == set(METRIC_CATALOGUE)
        assert 'Current Ratio' not in ai.requests['liquidity']
        assert 'P/E Ratio' not in ai.requests['valuation']
        assert 'Market Share Growth' in ai.requests['growth']

    def test_without_ai_gaps_stay_unavailable(self):
        record = AnalysisOrchestrator(tcs_providers(), ai_provider=FakeAIProvider(), use_ai=False).analyze("TCS")

        assert all(not m.is_available for m in record.profitability.values())
        assert record.growth['Market Share Growth'].provenance is None
        assert record.data_sources == ["rapidapi_yahoo", "alphavantage"]

    def test_unavailable_ai_reply_leaves_gaps(self):
        class UnavailableAI(FakeAIProvider):
            def estimate(self, symbol, category, missing_metrics):
                return Unavailable(self.name, UnavailableReason.AI_UNPARSEABLE)

        record = AnalysisOrchestrator(tcs_providers(), ai_provider=UnavailableAI()).analyze("TCS")

        assert all(not m.is_available for m in record.profitability.values())
        assert "openrouter" not in record.data_sources

    def test_provenance_never_decreases(self):
        secondary = ProviderSnapshot(
            source="yfinance", provenance=Provenance.SECONDARY_API, symbol="TCS",
            current_price=3490.0, direct_metrics={'P/E Ratio': 30.0, 'ROE': 40.0},
            statements=FinancialStatements(
                balance_annual=[BalanceEntry(total_current_assets=300, total_current_liabilities=100,
                                             total_debt=50, total_equity=500)]
            ),
        )
        primary = ProviderSnapshot(
            source="rapidapi_yahoo", provenance=Provenance.REAL_API, symbol="TCS",
            current_price=3500.0, direct_metrics={'P/E Ratio': 28.0, 'Debt-to-Equity': 0.2},
        )
        # Lower-trust provider listed first: trust order still wins
        providers = [FakeProvider("yfinance", secondary), FakeProvider("rapidapi_yahoo", primary)]
        record = AnalysisOrchestrator(providers, ai_provider=FakeAIProvider()).analyze("TCS")

        assert record.current_price.value == 3500.0
        assert record.valuation['P/E Ratio'].provenance == Provenance.REAL_API
        assert record.profitability['ROE'].provenance == Provenance.SECONDARY_API
        assert record.liquidity['Debt-to-Equity'].value == 0.2
        assert record.liquidity['Debt-to-Equity'].provenance == Provenance.REAL_API
        assert record.liquidity['Current Ratio'].provenance == Provenance.CALCULATED

    def test_all_unavailable_falls_back_to_mock(self):
        providers = [
            FakeProvider("rapidapi_yahoo"),
            FakeProvider("yfinance", error=RuntimeError("client exploded")),
        ]
        ai = FakeAIProvider()
        record = AnalysisOrchestrator(providers, ai_provider=ai).analyze("ZZZZ")

        assert record.is_mock
        assert record.current_price.provenance == Provenance.MOCK
        for metric in record.all_metrics().values():
            assert metric.is_available
            assert metric.provenance == Provenance.MOCK
        assert ai.requests == {}

    def test_no_providers_is_mock(self):
        assert AnalysisOrchestrator([]).analyze("TCS").is_mock

    @pytest.mark.parametrize("symbol", ["", "  ", "TCS;DROP"])
    def test_invalid_symbol_rejected_before_fetch(self, symbol):
        provider = FakeProvider("rapidapi_yahoo")
        with pytest.raises(InvalidSymbolError):
            AnalysisOrchestrator([provider]).analyze(symbol)
        assert provider.calls == 0

    def test_slow_provider_times_out(self):
        release = threading.Event()
        slow = FakeProvider("rapidapi_yahoo", tcs_providers()[0].snapshot, delay=release)
        fast = tcs_providers()[1]
        try:
            record = AnalysisOrchestrator([slow, fast], provider_timeout=0.2, use_ai=False).analyze("TCS")
        finally:
            release.set()

        assert record.data_sources == ["alphavantage"]
        assert not record.current_price.is_available
        # Neutral technicals without a price
        assert record.technical_indicators.macd.signal == Signal.HOLD

    def test_technicals_from_price_and_range(self):
        record = AnalysisOrchestrator(tcs_providers(), use_ai=False).analyze("TCS")
        # position (3500 - 3000) / 1000 = 0.5
        assert record.technical_indicators.macd.value == pytest.approx(50.0)
        assert record.technical_indicators.macd.signal == Signal.HOLD
        assert record.key_points[0].startswith("Current market price")


class TestCaching:

    def test_cache_window(self, tmp_path, clock):
        providers = tcs_providers()
        orchestrator = AnalysisOrchestrator(providers, cache=AnalysisCache(tmp_path, clock=clock), use_ai=False)

        first = orchestrator.analyze("TCS")
        clock.advance(3600)
        cached = orchestrator.analyze("tcs")
        assert providers[0].calls == 1
        assert cached.valuation['P/E Ratio'].value == first.valuation['P/E Ratio'].value
        assert cached.liquidity['Current Ratio'].provenance == Provenance.CALCULATED

        clock.advance(2 * 3600)
        orchestrator.analyze("TCS")
        assert providers[0].calls == 2

    def test_bypass_cache(self, tmp_path, clock):
        providers = tcs_providers()
        orchestrator = AnalysisOrchestrator(providers, cache=AnalysisCache(tmp_path, clock=clock), use_ai=False)
        orchestrator.analyze("TCS")
        orchestrator.analyze("TCS", use_cache=False)
        assert providers[0].calls == 2

    def test_mock_records_not_cached(self, tmp_path, clock):
        provider = FakeProvider("rapidapi_yahoo")
        orchestrator = AnalysisOrchestrator([provider], cache=AnalysisCache(tmp_path, clock=clock))
        orchestrator.analyze("TCS")
        orchestrator.analyze("TCS")
        assert provider.calls == 2


class FakeHistoryProvider(FakeProvider):

    def __init__(self, name, chart):
        super().__init__(name)
        self.chart = chart
        self.history_calls = 0

    def fetch_price_history(self, symbol, time_range):
        self.history_calls += 1
        return self.chart


class TestChartData:

    def test_real_history_cached(self, tmp_path, clock):
        from datetime import datetime
        chart = ChartData(symbol="TCS", time_range="1M", provenance=Provenance.SECONDARY_API, is_real_data=True,
                          bars=[PriceBar(date=datetime(2024, 5, 2), close=3500.0)])
        provider = FakeHistoryProvider("yfinance", chart)
        orchestrator = AnalysisOrchestrator([provider], cache=AnalysisCache(tmp_path, clock=clock))

        assert orchestrator.get_chart_data("TCS", "1m").is_real_data
        assert orchestrator.get_chart_data("TCS", "1M").bars[0].close == 3500.0
        assert provider.history_calls == 1

    def test_mock_series_when_history_unavailable(self):
        provider = FakeHistoryProvider("yfinance", Unavailable("yfinance", UnavailableReason.NO_DATA))
        chart = AnalysisOrchestrator([provider]).get_chart_data("TCS", "bogus")

        assert chart.time_range == "1M"
        assert chart.provenance == Provenance.MOCK
        assert not chart.is_real_data
        assert chart.bars


class TestDefaultWiring:

    def test_rate_ceiling_covers_a_whole_bundle(self, monkeypatch):
        monkeypatch.setitem(RATE_LIMITS, 'alphavantage', 5)
        calls = []

        def request(url, params=None, headers=None, **kwargs):
            calls.append(params['function'])
            return {"Symbol": "TCS.BSE"}

        provider = AlphaVantageProvider(
            request_fn=request, api_key="av-key",
            rate_limiter=provider_rate_limiter('alphavantage', len(AlphaVantageProvider.BUNDLE_ENDPOINTS)),
        )
        snapshot = provider.fetch_snapshot("TCS")

        assert snapshot.failures == {}
        assert len(calls) == len(AlphaVantageProvider.BUNDLE_ENDPOINTS)

    def test_configured_ceiling_kept_when_larger(self, monkeypatch):
        monkeypatch.setitem(RATE_LIMITS, 'yfinance', 30)
        assert provider_rate_limiter('yfinance', 4).max_requests == 30
        assert provider_rate_limiter('openrouter').max_requests == RATE_LIMITS['openrouter']


class TestMalformedCacheEntries:

    def test_malformed_chart_entry_removed(self, tmp_path, clock):
        cache = AnalysisCache(tmp_path, clock=clock)
        cache.set("chart_TCS_1M", {"bars": "not a list"})
        provider = FakeHistoryProvider("yfinance", Unavailable("yfinance", UnavailableReason.NO_DATA))

        chart = AnalysisOrchestrator([provider], cache=cache).get_chart_data("TCS", "1M")

        assert chart.provenance == Provenance.MOCK
        assert not (tmp_path / "chart_TCS_1M.json").exists()

    def test_malformed_analysis_entry_refetched(self, tmp_path, clock):
        cache = AnalysisCache(tmp_path, clock=clock)
        cache.set("analysis_TCS", {"symbol": "TCS"})
        providers = tcs_providers()

        record = AnalysisOrchestrator(providers, cache=cache, use_ai=False).analyze("TCS")

        assert providers[0].calls == 1
        assert record.current_price.value == 3500.0
        assert cache.get("analysis_TCS", 60)["current_price"]["value"] == 3500.0
