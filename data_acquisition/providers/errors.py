"""
Provider error taxonomy and the Unavailable sentinel.

Exceptions are raised inside adapters and converted to ``Unavailable`` at the
adapter boundary. The orchestrator only ever sees payloads or sentinels.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any


class UnavailableReason(Enum):
    UNAVAILABLE = "provider_unavailable"
    RATE_LIMITED = "rate_limited"
    MALFORMED = "malformed_response"
    NO_DATA = "no_data_for_symbol"
    AI_UNPARSEABLE = "ai_response_unparseable"
    MISSING_KEY = "missing_api_key"
    TIMEOUT = "timeout"


class ProviderError(Exception):
    """Base class for failures raised inside a provider adapter."""
    reason = UnavailableReason.UNAVAILABLE


class ProviderUnavailable(ProviderError):
    """Network, HTTP or auth failure."""
    reason = UnavailableReason.UNAVAILABLE


class ProviderTimeout(ProviderUnavailable):
    """Every attempt timed out."""
    reason = UnavailableReason.TIMEOUT


class KeyRejected(ProviderUnavailable):
    """Provider refused the active API key (HTTP 401/403)."""


class RateLimited(ProviderError):
    """Local rolling-window ceiling hit, or the provider answered 429."""
    reason = UnavailableReason.RATE_LIMITED


class MalformedResponse(ProviderError):
    """Payload did not have the expected shape."""
    reason = UnavailableReason.MALFORMED


class NoDataForSymbol(ProviderError):
    """Provider does not recognise the symbol."""
    reason = UnavailableReason.NO_DATA


class AIResponseUnparseable(ProviderError):
    """Completion held no extractable JSON object."""
    reason = UnavailableReason.AI_UNPARSEABLE


class MissingAPIKey(ProviderError):
    reason = UnavailableReason.MISSING_KEY


class InvalidSymbolError(ValueError):
    """Empty or malformed ticker, rejected before any network call."""


@dataclass(frozen=True)
class Unavailable:
    """Sentinel returned in place of a payload."""
    source: str
    reason: UnavailableReason
    message: str = ""

    @classmethod
    def from_error(cls, source: str, error: ProviderError) -> "Unavailable":
        return cls(source=source, reason=error.reason, message=str(error))


def is_unavailable(value: Any) -> bool:
    return isinstance(value, Unavailable)
