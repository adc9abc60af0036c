"""
LLM Client Module
=================

Infrastructure layer for OpenRouter chat completions.
Handles authentication, model fallback and response unwrapping.
Agnostic to the content being generated.
"""

from typing import Any, Callable, List, Optional

from config.constants import (
    OPENROUTER_APP_TITLE, OPENROUTER_BASE_URL, OPENROUTER_MAX_TOKENS, OPENROUTER_MODEL,
    OPENROUTER_REFERER, OPENROUTER_TEMPERATURE, OPENROUTER_TIMEOUT_SECONDS
)
from config.settings import settings
from data_acquisition.providers.errors import (
    KeyRejected, MalformedResponse, MissingAPIKey, NoDataForSymbol, ProviderError, RateLimited
)
from utils.http_utils import post_json
from utils.logger import setup_logger

logger = setup_logger('llm_client')

KEY_POOL = 'OPENROUTER'


class LLMClient:
    """
    Client for the OpenRouter chat-completions endpoint.
    """

    FALLBACK_MODELS = [
        "openrouter/auto",
    ]

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: str = OPENROUTER_MODEL,
        post_fn: Callable[..., Any] = post_json
    ):
        self._api_key = api_key
        self.model = model
        self._post = post_fn

    @property
    def api_key(self) -> Optional[str]:
        return self._api_key or settings.manager.get(KEY_POOL)

    def is_configured(self) -> bool:
        return bool(self._api_key) or settings.has_key(KEY_POOL)

    def _models(self) -> List[str]:
        models = [self.model]
        models.extend(m for m in self.FALLBACK_MODELS if m != self.model)
        return models

    def generate_text(self, prompt: str, system_prompt: Optional[str] = None) -> str:
        """
        Generate a completion, trying the configured model then the fallbacks.

        A refused pooled key is swapped for the next key in the OpenRouter
        pool and the request retried; an explicitly passed key never rotates.

        Raises:
            MissingAPIKey: No OpenRouter key configured
            RateLimited: OpenRouter answered 429 (fallback models share the quota)
            KeyRejected: OpenRouter refused every key in the pool
            ProviderError: Every model failed
        """
        if not self.api_key:
            raise MissingAPIKey("OpenRouter key not configured; AI estimates disabled")

        spare_keys = 0 if self._api_key else settings.manager.key_count(KEY_POOL) - 1
        while True:
            key = self.api_key
            try:
                return self._generate_with_fallback(prompt, system_prompt)
            except KeyRejected:
                if spare_keys <= 0 or not settings.manager.rotate(KEY_POOL, rejected=key):
                    raise
                spare_keys -= 1
                logger.warning(f"OpenRouter rejected key {settings.mask_api_key(key)}; rotating")

    def _generate_with_fallback(self, prompt: str, system_prompt: Optional[str]) -> str:
        last_error: Optional[ProviderError] = None
        for model in self._models():
            try:
                return self._call_api(model, prompt, system_prompt)
            except (RateLimited, KeyRejected):
                raise
            except ProviderError as e:
                logger.warning(f"Model {model} failed: {e}")
                last_error = e

        logger.error("All models failed to generate text.")
        raise last_error

    def _call_api(self, model: str, prompt: str, system_prompt: Optional[str]) -> str:
        messages = []
        if system_prompt:
            messages.append({"role": "system", "content": system_prompt})
        messages.append({"role": "user", "content": prompt})

        payload = {
            "model": model,
            "messages": messages,
            "temperature": OPENROUTER_TEMPERATURE,
            "max_tokens": OPENROUTER_MAX_TOKENS,
            "stream": False,
        }
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
            "HTTP-Referer": OPENROUTER_REFERER,
            "X-Title": OPENROUTER_APP_TITLE,
        }

        result = self._post(
            OPENROUTER_BASE_URL,
            payload,
            headers=headers,
            timeout=OPENROUTER_TIMEOUT_SECONDS,
            source_name=f"OpenRouter {model}",
        )

        if not isinstance(result, dict):
            raise MalformedResponse(f"OpenRouter returned {type(result).__name__}")
        if result.get("error"):
            raise MalformedResponse(f"OpenRouter error: {result['error']}")

        choices = result.get("choices") or []
        if not choices or not isinstance(choices[0], dict):
            raise MalformedResponse(f"OpenRouter response from {model} has no choices")
        content = (choices[0].get("message") or {}).get("content")
        if not isinstance(content, str) or not content.strip():
            raise NoDataForSymbol(f"OpenRouter {model} returned an empty completion")
        return content
