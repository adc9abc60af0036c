from data_acquisition.orchestration.analysis_cache import AnalysisCache, analysis_key, chart_key


def test_freshness_window(tmp_path, clock):
    cache = AnalysisCache(tmp_path, clock=clock)
    cache.set(analysis_key("tcs"), {"symbol": "TCS"})

    clock.advance(3600)
    assert cache.get(analysis_key("TCS"), 7200) == {"symbol": "TCS"}
    clock.advance(3600)
    assert cache.get(analysis_key("TCS"), 7200) is None


def test_stored_envelope(tmp_path, clock):
    import json
    cache = AnalysisCache(tmp_path, clock=clock)
    cache.set(chart_key("TCS", "1m"), [1, 2])
    stored = json.loads((tmp_path / "chart_TCS_1M.json").read_text(encoding='utf-8'))
    assert stored == {"timestamp": clock.now, "data": [1, 2]}


def test_unsafe_characters_in_key(tmp_path, clock):
    cache = AnalysisCache(tmp_path, clock=clock)
    cache.set(analysis_key("M&M"), {"ok": True})
    assert cache.get(analysis_key("M&M"), 60) == {"ok": True}
    assert [p.name for p in tmp_path.iterdir()] == ["analysis_M_M.json"]


def test_corrupt_entry_is_a_miss(tmp_path, clock):
    (tmp_path / "analysis_TCS.json").write_text("{not json", encoding='utf-8')
    assert AnalysisCache(tmp_path, clock=clock).get(analysis_key("TCS"), 7200) is None


def test_clear(tmp_path, clock):
    cache = AnalysisCache(tmp_path, clock=clock)
    cache.set("a", 1)
    cache.set("b", 2)
    assert cache.clear() == 2
    assert cache.get("a", 60) is None
    assert AnalysisCache(tmp_path / "missing").clear() == 0


def test_delete(tmp_path, clock):
    cache = AnalysisCache(tmp_path, clock=clock)
    cache.set(analysis_key("TCS"), {"symbol": "TCS"})
    assert cache.delete(analysis_key("TCS"))
    assert cache.get(analysis_key("TCS"), 60) is None
    assert not cache.delete(analysis_key("TCS"))
