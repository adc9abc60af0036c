import json

import pytest

from data_acquisition.orchestration.analysis_cache import AnalysisCache
from data_acquisition.providers.errors import RateLimited
from fundamentals.stock.mock_generator import MockDataGenerator
from fundamentals.stock.recommendations import (
    AI_MODEL_LABEL, FALLBACK_MODEL_LABEL, RecommendationService, candidate_symbols, overall_health,
    overall_signal, parse_sector, parse_time_frame, stop_loss_for
)
from fundamentals.technical_scorers.technical_signals import build_technical_block
from utils.unified_schema import (
    HealthLabel, MetricWithSource, Provenance, Signal, StockAnalysisRecord, TimeFrame
)

UNIVERSE = {
    'Information Technology': ["TCS", "INFY"],
    'Banking & Financial Services': ["HDFCBANK", "SBIN"],
    'Automotive': ["MARUTI"],
}


def make_record(symbol, price=100.0, health=HealthLabel.NORMAL, pe=20.0):
    """Real-data record; the 80..120 range puts 115 at BUY, 100 at HOLD, 85 at SELL."""
    return StockAnalysisRecord(
        symbol=symbol,
        company_name=f"{symbol} Limited",
        current_price=MetricWithSource.available("Current Price", price, Provenance.REAL_API),
        market_cap=MetricWithSource.available("Market Cap", 5e11, Provenance.REAL_API),
        valuation={'P/E Ratio': MetricWithSource.available('P/E Ratio', pe, Provenance.REAL_API, health)},
        technical_indicators=build_technical_block(price, 120.0, 80.0),
    )


class StubOrchestrator:

    def __init__(self, records):
        self.records = records
        self.analyzed = []
        self.cache = None

    def analyze(self, symbol, use_cache=True):
        self.analyzed.append(symbol)
        record = self.records.get(symbol)
        if isinstance(record, Exception):
            raise record
        return record or MockDataGenerator().generate(symbol)


class FakeClient:

    def __init__(self, completion=None, error=None, configured=True):
        self.completion = completion
        self.error = error
        self.configured = configured
        self.prompts = []

    def is_configured(self):
        return self.configured

    def generate_text(self, prompt, system_prompt=None):
        self.prompts.append(prompt)
        if self.error is not None:
            raise self.error
        return self.completion


def service_for(records, client=None, cache=None):
    return RecommendationService(
        StubOrchestrator(records), client=client or FakeClient(configured=False), cache=cache, universe=UNIVERSE
    )


class TestCandidates:

    def test_all_sectors_interleaved(self):
        assert candidate_symbols('ALL', UNIVERSE) == ["TCS", "HDFCBANK", "MARUTI", "INFY", "SBIN"]
        assert candidate_symbols('ALL', UNIVERSE, limit=2) == ["TCS", "HDFCBANK"]

    def test_sector_keywords(self):
        assert candidate_symbols('BANKING', UNIVERSE) == ["HDFCBANK", "SBIN"]
        assert candidate_symbols('IT', UNIVERSE) == ["TCS", "INFY"]
        assert candidate_symbols('PHARMA', UNIVERSE) == []

    def test_unknown_inputs_rejected(self):
        assert parse_time_frame(" 3m ") == TimeFrame.THREE_MONTHS
        assert parse_sector("consumer staples") == "CONSUMER_STAPLES"
        with pytest.raises(ValueError):
            parse_time_frame("2W")
        with pytest.raises(ValueError):
            parse_sector("SPACE")


@pytest.mark.parametrize("time_frame, expected", [
    (TimeFrame.SEVEN_DAYS, 970.0),
    (TimeFrame.ONE_MONTH, 950.0),
    (TimeFrame.THREE_MONTHS, 920.0),
    (TimeFrame.SIX_MONTHS, 900.0),
    (TimeFrame.ONE_YEAR, 850.0),
])
def test_stop_loss_widens_with_horizon(time_frame, expected):
    assert stop_loss_for(1000, Signal.BUY, time_frame) == pytest.approx(expected)
    assert stop_loss_for(1000, Signal.HOLD, time_frame) == pytest.approx(expected)
    assert stop_loss_for(1000, Signal.SELL, time_frame) is None


def test_overall_labels():
    record = make_record("TCS", price=115.0, health=HealthLabel.BEST)
    assert overall_health(record) == HealthLabel.BEST
    assert overall_signal(record) == Signal.BUY
    assert overall_health(make_record("X").model_copy(update={'valuation': {}})) == HealthLabel.NORMAL


class TestFallbackRanking:

    def test_ranked_by_health_plus_signal(self):
        records = {
            "TCS": make_record("TCS", price=85.0, health=HealthLabel.WORSE),
            "HDFCBANK": make_record("HDFCBANK", price=115.0, health=HealthLabel.BEST),
            "MARUTI": make_record("MARUTI", price=100.0, health=HealthLabel.NORMAL),
        }
        response = service_for(records).get_recommendations("1M", "ALL")

        assert response.metadata.model_used == FALLBACK_MODEL_LABEL
        assert response.metadata.total_analyzed == 3
        assert [r.symbol for r in response.recommendations] == ["HDFCBANK", "MARUTI", "TCS"]

        best, hold, sell = response.recommendations
        assert best.recommendation == Signal.BUY
        assert best.confidence == 80
        assert best.target_price == pytest.approx(126.5)
        assert best.upside == 10
        assert best.stop_loss == pytest.approx(109.25)
        assert best.reasoning == ["Strong best fundamentals", "Current signal: BUY"]
        assert hold.target_price is None and hold.upside is None
        assert hold.ai_score == 80
        assert sell.recommendation == Signal.SELL
        assert sell.stop_loss is None

    def test_mock_and_failed_candidates_excluded(self):
        records = {"TCS": make_record("TCS"), "INFY": RuntimeError("provider exploded")}
        service = service_for(records)
        response = service.get_recommendations("7D", "IT")

        assert sorted(service.orchestrator.analyzed) == ["INFY", "TCS"]
        assert [r.symbol for r in response.recommendations] == ["TCS"]

    def test_no_market_data_means_no_picks(self):
        response = service_for({}).get_recommendations("7D", "BANKING")
        assert response.recommendations == []
        assert response.metadata.total_analyzed == 0


class TestAIRanking:

    def test_picks_limited_to_candidates(self):
        completion = "Here you go:\n" + json.dumps({"recommendations": [
            {"symbol": "XYZ", "recommendation": "BUY", "confidence": 99},
            {"symbol": "tcs", "recommendation": "BUY", "confidence": 88, "targetPrice": "1,150.5",
             "upside": "15%", "reasoning": ["Order book"], "risks": "Currency", "aiScore": 91},
            {"symbol": "HDFCBANK", "recommendation": "MAYBE"},
            {"symbol": "MARUTI", "recommendation": "sell"},
        ]})
        records = {s: make_record(s, price=1000.0) for s in ("TCS", "HDFCBANK", "MARUTI")}
        client = FakeClient(completion)

        response = service_for(records, client=client).get_recommendations("3M")

        assert response.metadata.model_used == AI_MODEL_LABEL
        assert [r.symbol for r in response.recommendations] == ["TCS", "MARUTI"]
        tcs, maruti = response.recommendations
        assert tcs.target_price == pytest.approx(1150.5)
        assert tcs.upside == pytest.approx(15.0)
        assert tcs.stop_loss == pytest.approx(920.0)
        assert tcs.risks == ["Currency"]
        assert tcs.ai_score == 91
        assert tcs.key_metrics.pe == 20.0
        assert maruti.recommendation == Signal.SELL
        assert maruti.confidence == 75
        assert maruti.stop_loss is None
        assert maruti.reasoning == ["AI-based analysis"]

        prompt = client.prompts[0]
        assert "overall market" in prompt
        assert '"symbol": "HDFCBANK"' in prompt
        assert "medium-term investment (3 month horizon)" in prompt

    @pytest.mark.parametrize("client", [
        FakeClient("I would rather not say."),
        FakeClient('{"recommendations": []}'),
        FakeClient(error=RateLimited("429")),
    ])
    def test_unusable_reply_falls_back(self, client):
        records = {"TCS": make_record("TCS", price=115.0)}
        response = service_for(records, client=client).get_recommendations("6M", "IT")
        assert response.metadata.model_used == FALLBACK_MODEL_LABEL
        assert [r.symbol for r in response.recommendations] == ["TCS"]


class TestRecommendationCache:

    def test_window_depends_on_time_frame(self, tmp_path, clock):
        service = service_for({"TCS": make_record("TCS")}, cache=AnalysisCache(tmp_path, clock=clock))

        first = service.get_recommendations("7D", "IT")
        clock.advance(10 * 60)
        cached = service.get_recommendations("7d", "it")
        assert cached.recommendations[0].symbol == first.recommendations[0].symbol
        assert sorted(service.orchestrator.analyzed) == ["INFY", "TCS"]
        assert (tmp_path / "recommendations_7D_IT.json").exists()

        clock.advance(6 * 60)
        service.get_recommendations("7D", "IT")
        assert sorted(service.orchestrator.analyzed) == ["INFY", "INFY", "TCS", "TCS"]

    def test_empty_response_not_cached(self, tmp_path, clock):
        service = service_for({}, cache=AnalysisCache(tmp_path, clock=clock))
        service.get_recommendations("1Y", "AUTO")
        assert not (tmp_path / "recommendations_1Y_AUTO.json").exists()
