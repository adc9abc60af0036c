import pytest

from data_acquisition.providers.errors import (
    AIResponseUnparseable, KeyRejected, MalformedResponse, MissingAPIKey, RateLimited, UnavailableReason
)
from fundamentals.ai_estimates.estimate_provider import (
    AIEstimateProvider, extract_json_object, filter_estimates
)
from fundamentals.ai_estimates.llm_client import LLMClient
from fundamentals.ai_estimates.prompts import build_estimate_prompt


class TestJsonExtraction:

    def test_object_inside_prose_and_fences(self):
        text = 'Sure! Here are my estimates:\n```json\n{"ROE": 18.5, "ROA": "9.1%"}\n```\nHope this helps.'
        assert extract_json_object(text) == {"ROE": 18.5, "ROA": "9.1%"}

    def test_braces_inside_strings_ignored(self):
        text = 'Note {not json} then {"note": "a } brace", "ROE": 12}'
        assert extract_json_object(text) == {"note": "a } brace", "ROE": 12}

    def test_nested_object_kept_whole(self):
        assert extract_json_object('{"a": {"b": 1}}') == {"a": {"b": 1}}

    @pytest.mark.parametrize("text", ["no json here", "{broken: ", "[1, 2, 3]", None])
    def test_unparseable(self, text):
        with pytest.raises(AIResponseUnparseable):
            extract_json_object(text)


def test_filter_keeps_requested_finite_numbers():
    parsed = {"roe": "18.5%", "Gross-Margin": 40, "Net Margin": None, "P/E Ratio": 30, "ROA": "n/a"}
    requested = ["ROE", "Gross Margin", "Net Margin", "ROA"]
    assert filter_estimates(parsed, requested) == {"ROE": 18.5, "Gross Margin": 40.0}


def test_prompt_lists_only_requested_metrics():
    prompt = build_estimate_prompt("tcs", "liquidity", ["Quick Ratio"])
    assert '"Quick Ratio": null' in prompt
    assert "Current Ratio" not in prompt
    assert "TCS" in prompt


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


class TestAIEstimateProvider:

    def test_estimate_filters_to_request(self):
        client = FakeClient('{"ROE": 21.0, "ROA": 9.5, "ROCE": 25}')
        estimates = AIEstimateProvider(client=client).estimate("TCS", "profitability", ["ROE", "ROA"])
        assert estimates == {"ROE": 21.0, "ROA": 9.5}

    def test_nothing_requested_means_no_call(self):
        client = FakeClient('{}')
        assert AIEstimateProvider(client=client).estimate("TCS", "growth", []) == {}
        assert client.prompts == []

    @pytest.mark.parametrize("error, reason", [
        (MissingAPIKey("no key"), UnavailableReason.MISSING_KEY),
        (RateLimited("429"), UnavailableReason.RATE_LIMITED),
        (MalformedResponse("bad"), UnavailableReason.MALFORMED),
    ])
    def test_client_failures_become_unavailable(self, error, reason):
        result = AIEstimateProvider(client=FakeClient(error=error)).estimate("TCS", "growth", ["Market Share Growth"])
        assert result.reason == reason

    def test_prose_only_reply(self):
        result = AIEstimateProvider(client=FakeClient("I cannot help with that.")).estimate("TCS", "growth", ["EPS Growth (3Y)"])
        assert result.reason == UnavailableReason.AI_UNPARSEABLE


class TestLLMClient:

    def test_payload_and_content(self):
        sent = {}

        def post(url, payload, headers=None, **kwargs):
            sent.update(url=url, payload=payload, headers=headers)
            return {"choices": [{"message": {"content": '{"ROE": 20}'}}]}

        client = LLMClient(api_key="sk-or-test", model="test/model", post_fn=post)
        assert client.generate_text("prompt", system_prompt="system") == '{"ROE": 20}'
        assert sent['payload']['model'] == "test/model"
        assert sent['payload']['temperature'] == 0.3
        assert sent['payload']['messages'][0] == {"role": "system", "content": "system"}
        assert sent['headers']['Authorization'] == "Bearer sk-or-test"
        assert 'X-Title' in sent['headers']

    def test_falls_back_to_next_model(self):
        models = []

        def post(url, payload, headers=None, **kwargs):
            models.append(payload['model'])
            if payload['model'] == "test/model":
                return {"choices": []}
            return {"choices": [{"message": {"content": "ok"}}]}

        client = LLMClient(api_key="sk-or-test", model="test/model", post_fn=post)
        assert client.generate_text("prompt") == "ok"
        assert models == ["test/model", "openrouter/auto"]

    def test_rate_limit_not_retried_on_other_models(self):
        models = []

        def post(url, payload, headers=None, **kwargs):
            models.append(payload['model'])
            raise RateLimited("429")

        client = LLMClient(api_key="sk-or-test", model="test/model", post_fn=post)
        with pytest.raises(RateLimited):
            client.generate_text("prompt")
        assert models == ["test/model"]

    def test_missing_key(self, monkeypatch):
        from config.settings import settings
        monkeypatch.setitem(settings.manager._keys, 'OPENROUTER', [])
        client = LLMClient(post_fn=lambda *a, **k: {})
        assert not client.is_configured()
        with pytest.raises(MissingAPIKey):
            client.generate_text("prompt")

    def test_rejected_pooled_key_rotates(self, monkeypatch):
        from config.settings import settings
        monkeypatch.setitem(settings.manager._keys, 'OPENROUTER', ["sk-or-first-key", "sk-or-second-key"])
        monkeypatch.setitem(settings.manager._active, 'OPENROUTER', 0)
        used = []

        def post(url, payload, headers=None, **kwargs):
            used.append(headers['Authorization'])
            if headers['Authorization'] == "Bearer sk-or-first-key":
                raise KeyRejected("401")
            return {"choices": [{"message": {"content": "ok"}}]}

        client = LLMClient(model="test/model", post_fn=post)
        assert client.generate_text("prompt") == "ok"
        assert used == ["Bearer sk-or-first-key", "Bearer sk-or-second-key"]
        assert settings.OPENROUTER_API_KEY == "sk-or-second-key"

    def test_rejected_key_raised_once_pool_exhausted(self, monkeypatch):
        from config.settings import settings
        monkeypatch.setitem(settings.manager._keys, 'OPENROUTER', ["sk-or-first-key", "sk-or-second-key"])
        monkeypatch.setitem(settings.manager._active, 'OPENROUTER', 0)
        calls = []

        def post(url, payload, headers=None, **kwargs):
            calls.append(headers['Authorization'])
            raise KeyRejected("403")

        with pytest.raises(KeyRejected):
            LLMClient(model="test/model", post_fn=post).generate_text("prompt")
        assert len(calls) == 2

    def test_explicit_key_never_rotates(self, monkeypatch):
        from config.settings import settings
        monkeypatch.setitem(settings.manager._keys, 'OPENROUTER', ["sk-or-first-key", "sk-or-second-key"])
        monkeypatch.setitem(settings.manager._active, 'OPENROUTER', 0)

        def post(url, payload, headers=None, **kwargs):
            raise KeyRejected("401")

        with pytest.raises(KeyRejected):
            LLMClient(api_key="sk-or-explicit", post_fn=post).generate_text("prompt")
        assert settings.manager.get('OPENROUTER') == "sk-or-first-key"
