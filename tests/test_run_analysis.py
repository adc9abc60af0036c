import json

import pytest

import run_analysis
from data_acquisition.providers.base_provider import validate_symbol
from fundamentals.stock.mock_generator import MockDataGenerator


class StubOrchestrator:
    """Answers from the mock generator; records what the CLI asked for."""

    def __init__(self):
        self.generator = MockDataGenerator()
        self.analyzed = []
        self.charts = []
        self.cleared = False

    def analyze(self, symbol, use_cache=True):
        symbol = validate_symbol(symbol)
        self.analyzed.append((symbol, use_cache))
        return self.generator.generate(symbol)

    def get_chart_data(self, symbol, time_range, use_cache=True):
        self.charts.append(time_range)
        return self.generator.generate_chart(symbol, time_range)

    def clear_cache(self):
        self.cleared = True
        return 3


@pytest.fixture
def stub(monkeypatch):
    orchestrator = StubOrchestrator()
    monkeypatch.setattr(run_analysis, 'build_default_orchestrator', lambda use_ai=True: orchestrator)
    return orchestrator


def test_text_report(stub, capsys):
    assert run_analysis.main(['tcs']) == 0
    out = capsys.readouterr().out
    assert "TCS - TCS Limited" in out
    assert "Profitability" in out
    assert "illustrative only" in out
    assert stub.analyzed == [('TCS', True)]


def test_json_output_with_chart(stub, capsys):
    assert run_analysis.main(['INFY', '--json', '--no-cache', '--chart', '1W']) == 0
    payload = json.loads(capsys.readouterr().out)
    assert payload['analysis']['symbol'] == 'INFY'
    assert payload['analysis']['is_mock'] is True
    assert payload['chart']['time_range'] == '1W'
    assert stub.analyzed == [('INFY', False)]


def test_invalid_symbol_exit_code(stub, capsys):
    assert run_analysis.main(['BAD$SYMBOL']) == 2
    assert "Invalid symbol" in capsys.readouterr().out


def test_clear_cache(stub, capsys):
    assert run_analysis.main(['--clear-cache']) == 0
    assert stub.cleared
    assert "Removed 3" in capsys.readouterr().out


class StubRecommendationService:

    def __init__(self, response):
        self.response = response
        self.requests = []

    def get_recommendations(self, time_frame, sector=None, use_cache=True):
        self.requests.append((time_frame, sector, use_cache))
        return self.response


def recommendation_response(symbols):
    from datetime import datetime
    from utils.unified_schema import (
        RecommendationMetadata, RecommendationResponse, Signal, StockRecommendation, TimeFrame
    )
    now = datetime(2024, 5, 2, 10, 30)
    return RecommendationResponse(
        recommendations=[
            StockRecommendation(
                symbol=s, name=f"{s} Limited", sector="BANKING", time_frame=TimeFrame.ONE_MONTH,
                recommendation=Signal.BUY, confidence=80, current_price=1500.0, target_price=1650.0,
                stop_loss=1425.0, upside=10, reasoning=["Current signal: BUY"], risks=["Market volatility"],
                ai_score=85, generated_at=now, valid_until=now,
            )
            for s in symbols
        ],
        metadata=RecommendationMetadata(time_frame=TimeFrame.ONE_MONTH, sector="BANKING", total_analyzed=len(symbols),
                                        model_used="Fallback Analysis", generated_at=now),
    )


@pytest.fixture
def recommender(monkeypatch, stub):
    service = StubRecommendationService(recommendation_response(["HDFCBANK", "SBIN"]))
    monkeypatch.setattr(run_analysis, 'build_recommendation_service', lambda orchestrator, use_ai=True: service)
    return service


def test_recommend_text(recommender, capsys):
    assert run_analysis.main(['--recommend', '1m', '--sector', 'banking']) == 0
    out = capsys.readouterr().out
    assert recommender.requests == [('1M', 'BANKING', True)]
    assert "Recommendations 1M | Sector BANKING | Fallback Analysis" in out
    assert "1. HDFCBANK" in out
    assert "2. SBIN" in out


def test_recommend_json(recommender, capsys):
    assert run_analysis.main(['--recommend', '1M', '--json', '--no-cache']) == 0
    payload = json.loads(capsys.readouterr().out)
    assert [r['symbol'] for r in payload['recommendations']['recommendations']] == ["HDFCBANK", "SBIN"]
    assert recommender.requests == [('1M', 'ALL', False)]


def test_recommend_without_picks_fails(recommender, capsys):
    recommender.response = recommendation_response([])
    assert run_analysis.main(['--recommend', '7D']) == 1
    assert "No recommendations" in capsys.readouterr().out


def test_unknown_time_frame_rejected(recommender):
    with pytest.raises(SystemExit):
        run_analysis.main(['--recommend', '2W'])
