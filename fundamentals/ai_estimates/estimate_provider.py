"""
AI Estimate Provider.

Fills metric gaps one category at a time with a narrow chat-completion
request. Completions are untrusted text: the first balanced JSON object is
cut out of any surrounding prose or code fences, and only requested metrics
with finite numeric values survive.
"""

import json
import re
from typing import Any, Dict, List, Optional, Union

from data_acquisition.providers.errors import (
    AIResponseUnparseable, ProviderError, Unavailable
)
from data_acquisition.providers.rate_limiter import RollingWindowRateLimiter
from fundamentals.ai_estimates.llm_client import LLMClient
from fundamentals.ai_estimates.prompts import SYSTEM_PROMPT, build_estimate_prompt
from utils.logger import setup_logger
from utils.numeric_utils import parse_number
from utils.unified_schema import Provenance

logger = setup_logger('estimate_provider')


def iter_json_objects(text: str):
    """
    Yield every top-level balanced ``{...}`` substring, left to right.

    Braces inside JSON strings (including escaped quotes) do not count.
    """
    depth = 0
    start = None
    in_string = False
    escaped = False
    for index, char in enumerate(text):
        if in_string:
            if escaped:
                escaped = False
            elif char == '\\':
                escaped = True
            elif char == '"':
                in_string = False
            continue
        if char == '"' and depth > 0:
            in_string = True
        elif char == '{':
            if depth == 0:
                start = index
            depth += 1
        elif char == '}' and depth > 0:
            depth -= 1
            if depth == 0:
                yield text[start:index + 1]


def extract_json_object(text: str) -> Dict[str, Any]:
    """
    Parse the first balanced JSON object found in a completion.

    Raises:
        AIResponseUnparseable: No balanced block parses as a JSON object
    """
    if not isinstance(text, str):
        raise AIResponseUnparseable("Completion is not text")
    for block in iter_json_objects(text):
        try:
            parsed = json.loads(block)
        except ValueError:
            continue
        if isinstance(parsed, dict):
            return parsed
    raise AIResponseUnparseable(f"No JSON object in completion: {text[:120]!r}")


def _canonical(name: str) -> str:
    return re.sub(r'[^a-z0-9]', '', name.lower())


def filter_estimates(parsed: Dict[str, Any], requested: List[str]) -> Dict[str, float]:
    """Keep requested metrics whose values are finite numbers."""
    wanted = {_canonical(name): name for name in requested}
    estimates: Dict[str, float] = {}
    for key, raw in parsed.items():
        name = wanted.get(_canonical(str(key)))
        if name is None or name in estimates:
            continue
        value = parse_number(raw)
        if value is not None:
            estimates[name] = value
    return estimates


class AIEstimateProvider:
    """Category-scoped metric estimates tagged AI_ESTIMATED."""

    name = "openrouter"
    provenance = Provenance.AI_ESTIMATED

    def __init__(
        self,
        client: Optional[LLMClient] = None,
        rate_limiter: Optional[RollingWindowRateLimiter] = None
    ):
        self.client = client or LLMClient()
        self.rate_limiter = rate_limiter

    def is_configured(self) -> bool:
        return self.client.is_configured()

    def estimate(
        self,
        symbol: str,
        category: str,
        missing_metrics: List[str]
    ) -> Union[Dict[str, float], Unavailable]:
        """
        Estimate only the listed metrics of one category.

        Returns:
            {metric name: value} for the metrics the model could estimate
            (possibly empty), or Unavailable.
        """
        if not missing_metrics:
            return {}
        try:
            if self.rate_limiter is not None:
                self.rate_limiter.acquire()
            completion = self.client.generate_text(
                build_estimate_prompt(symbol, category, missing_metrics),
                system_prompt=SYSTEM_PROMPT,
            )
            estimates = filter_estimates(extract_json_object(completion), missing_metrics)
        except ProviderError as e:
            logger.warning(f"AI {category} estimate unavailable for {symbol}: {e}")
            return Unavailable.from_error(self.name, e)

        logger.info(f"AI estimated {len(estimates)}/{len(missing_metrics)} {category} metrics for {symbol}")
        return estimates
