"""
Base provider adapter.

A provider exposes seven independent reads (quote, statistics, financials,
balance sheet, cash flow, profile, summary). Each read:

1. normalizes the symbol to the provider's exchange-suffixed form,
2. takes a slot from the provider's rolling-window rate limiter,
3. returns the raw payload, or an ``Unavailable`` sentinel on any failure.

Nothing raises past this boundary. ``fetch_snapshot`` fans the reads out
concurrently and normalizes the results into a ProviderSnapshot using the
subclass's declarative field maps.
"""

import re
from abc import ABC, abstractmethod
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union

from config.settings import settings
from config.constants import (
    DEFAULT_EXCHANGE_SUFFIX, EXCHANGE_OVERRIDES, KNOWN_EXCHANGE_SUFFIXES, SYMBOL_ARTEFACTS
)
from data_acquisition.providers.errors import (
    InvalidSymbolError, KeyRejected, MissingAPIKey, NoDataForSymbol, ProviderError, Unavailable, UnavailableReason
)
from data_acquisition.providers.rate_limiter import RollingWindowRateLimiter
from utils.field_extractor import ExtractionState, Path, extract, extract_field, extract_text, resolve_path
from utils.logger import setup_logger
from utils.numeric_utils import safe_divide
from utils.unified_schema import (
    BalanceEntry, CashFlowEntry, FinancialStatements, IncomeEntry, Provenance, ProviderSnapshot
)

logger = setup_logger('base_provider')

Payload = Union[Dict[str, Any], List[Any]]
FetchResult = Union[Payload, Unavailable]

ENDPOINTS: Tuple[str, ...] = (
    'quote', 'statistics', 'financials', 'balance_sheet', 'cash_flow', 'profile', 'summary'
)

_SYMBOL_PATTERN = re.compile(r'^[A-Z0-9&\-\.]{1,20}$')

_STATEMENT_MODELS = {
    'income': IncomeEntry,
    'balance': BalanceEntry,
    'cash_flow': CashFlowEntry,
}


def validate_symbol(symbol: Any) -> str:
    """
    Uppercase and check a ticker before any network call.

    Raises:
        InvalidSymbolError: empty, non-string or containing unexpected characters
    """
    if not isinstance(symbol, str) or not symbol.strip():
        raise InvalidSymbolError("Symbol must be a non-empty string")
    cleaned = symbol.strip().upper()
    for artefact in SYMBOL_ARTEFACTS:
        cleaned = cleaned.replace(artefact, "")
    if not _SYMBOL_PATTERN.match(cleaned):
        raise InvalidSymbolError(f"Invalid symbol: {symbol!r}")
    return cleaned


def base_ticker(symbol: str) -> str:
    """Ticker without any known exchange suffix (TCS.NS -> TCS)."""
    cleaned = validate_symbol(symbol)
    for suffix in KNOWN_EXCHANGE_SUFFIXES:
        if cleaned.endswith(suffix):
            return cleaned[:-len(suffix)]
    return cleaned


def normalize_symbol(symbol: str, default_suffix: str = DEFAULT_EXCHANGE_SUFFIX) -> str:
    """
    Map a bare ticker to its exchange-qualified form.

    Already-suffixed symbols are kept; bare ones use the static override
    table, then the home exchange.

    Examples:
        >>> normalize_symbol("tcs")
        'TCS.NS'
        >>> normalize_symbol("INFY_25")
        'INFY.NS'
        >>> normalize_symbol("RELIANCE.BO")
        'RELIANCE.BO'
    """
    cleaned = validate_symbol(symbol)
    if any(cleaned.endswith(suffix) for suffix in KNOWN_EXCHANGE_SUFFIXES):
        return cleaned
    return f"{cleaned}{EXCHANGE_OVERRIDES.get(cleaned, default_suffix)}"


@dataclass(frozen=True)
class FieldSpec:
    """
    Where one value lives in a provider's payloads.

    Attributes:
        paths: Candidate paths, most preferred first
        endpoints: Bundle endpoints to search, in order (empty = all)
        scale: Multiplier into catalogue units (e.g. 100 for decimal ratios)
    """
    paths: Sequence[Path]
    endpoints: Sequence[str] = ()
    scale: float = 1.0


class BaseProvider(ABC):
    """
    Abstract provider adapter.

    Subclasses set ``name``, ``provenance`` and the field maps, and implement
    ``_fetch_endpoint``.
    """

    name: str = "provider"
    provenance: Provenance = Provenance.SECONDARY_API
    key_name: Optional[str] = None

    # Endpoints fetch_bundle fans out to
    BUNDLE_ENDPOINTS: Tuple[str, ...] = ENDPOINTS

    # Payload roots tried in front of every relative path
    ROOT_PREFIXES: Sequence[Path] = ([],)

    QUOTE_FIELDS: Dict[str, FieldSpec] = {}
    TEXT_FIELDS: Dict[str, FieldSpec] = {}
    METRIC_FIELDS: Dict[str, FieldSpec] = {}
    # statements attribute (e.g. 'income_annual') -> where the entry list lives
    STATEMENT_LISTS: Dict[str, FieldSpec] = {}
    # 'income' | 'balance' | 'cash_flow' -> {entry attribute: paths}
    STATEMENT_FIELDS: Dict[str, Dict[str, Sequence[Path]]] = {}
    PERIOD_PATHS: Sequence[Path] = ()

    def __init__(
        self,
        rate_limiter: Optional[RollingWindowRateLimiter] = None,
        api_key: Optional[str] = None
    ):
        self.rate_limiter = rate_limiter
        self._api_key = api_key

    # --- Configuration ---

    @property
    def api_key(self) -> Optional[str]:
        if self._api_key:
            return self._api_key
        if self.key_name is None:
            return None
        return settings.manager.get(self.key_name)

    def is_configured(self) -> bool:
        return self.key_name is None or bool(self._api_key) or settings.has_key(self.key_name)

    def provider_symbol(self, symbol: str) -> str:
        """Symbol in the form this provider expects."""
        return normalize_symbol(symbol)

    # --- Adapter boundary ---

    @abstractmethod
    def _fetch_endpoint(self, endpoint: str, provider_symbol: str) -> Any:
        """Perform one raw read. May raise ProviderError."""

    def _fetch_with_rotation(self, endpoint: str, provider_symbol: str) -> Any:
        """Raw read; a refused pooled key is swapped for the next one and retried."""
        pooled = self._api_key is None and self.key_name is not None
        spare_keys = settings.manager.key_count(self.key_name) - 1 if pooled else 0
        while True:
            key = self.api_key
            try:
                return self._fetch_endpoint(endpoint, provider_symbol)
            except KeyRejected:
                if spare_keys <= 0 or not settings.manager.rotate(self.key_name, rejected=key):
                    raise
                spare_keys -= 1
                logger.warning(f"{self.name} rejected key {settings.mask_api_key(key)}; rotating")

    def _guarded(self, endpoint: str, symbol: str) -> FetchResult:
        try:
            if not self.is_configured():
                raise MissingAPIKey(f"{self.name}: API key not configured")
            provider_symbol = self.provider_symbol(symbol)
            if self.rate_limiter is not None:
                self.rate_limiter.acquire()
            payload = self._fetch_with_rotation(endpoint, provider_symbol)
            if not payload:
                raise NoDataForSymbol(f"{self.name}: empty {endpoint} payload for {provider_symbol}")
            return payload
        except ProviderError as e:
            logger.warning(f"{self.name} {endpoint} unavailable for {symbol}: {e}")
            return Unavailable.from_error(self.name, e)
        except InvalidSymbolError as e:
            return Unavailable(self.name, UnavailableReason.NO_DATA, str(e))
        except Exception as e:
            # Third-party client internals (yfinance, pandas) fail in many ways
            logger.error(f"{self.name} {endpoint} failed for {symbol}: {type(e).__name__}: {e}")
            return Unavailable(self.name, UnavailableReason.MALFORMED, f"{type(e).__name__}: {e}")

    def fetch_quote(self, symbol: str) -> FetchResult:
        return self._guarded('quote', symbol)

    def fetch_statistics(self, symbol: str) -> FetchResult:
        return self._guarded('statistics', symbol)

    def fetch_financials(self, symbol: str) -> FetchResult:
        return self._guarded('financials', symbol)

    def fetch_balance_sheet(self, symbol: str) -> FetchResult:
        return self._guarded('balance_sheet', symbol)

    def fetch_cash_flow(self, symbol: str) -> FetchResult:
        return self._guarded('cash_flow', symbol)

    def fetch_profile(self, symbol: str) -> FetchResult:
        return self._guarded('profile', symbol)

    def fetch_summary(self, symbol: str) -> FetchResult:
        return self._guarded('summary', symbol)

    def fetch_bundle(self, symbol: str) -> Dict[str, FetchResult]:
        """Issue every bundle endpoint concurrently and wait for all of them."""
        if not self.is_configured():
            missing = Unavailable(self.name, UnavailableReason.MISSING_KEY, "API key not configured")
            return {endpoint: missing for endpoint in self.BUNDLE_ENDPOINTS}

        with ThreadPoolExecutor(max_workers=len(self.BUNDLE_ENDPOINTS),
                                thread_name_prefix=self.name) as pool:
            futures = {
                endpoint: pool.submit(self._guarded, endpoint, symbol)
                for endpoint in self.BUNDLE_ENDPOINTS
            }
            return {endpoint: future.result() for endpoint, future in futures.items()}

    def fetch_snapshot(self, symbol: str) -> ProviderSnapshot:
        bundle = self.fetch_bundle(symbol)
        snapshot = self.normalize(symbol, bundle)
        available = [e for e, p in bundle.items() if not isinstance(p, Unavailable)]
        logger.info(
            f"{self.name}: {len(available)}/{len(bundle)} endpoints, "
            f"{len(snapshot.direct_metrics)} direct metrics for {symbol}"
        )
        return snapshot

    # --- Normalization ---

    def _payloads(self, bundle: Dict[str, FetchResult], endpoints: Sequence[str]) -> List[Payload]:
        names = endpoints or list(bundle.keys())
        return [bundle[n] for n in names if n in bundle and not isinstance(bundle[n], Unavailable)]

    def _expand(self, paths: Sequence[Path]) -> List[List[Any]]:
        return [list(prefix) + list(path) for prefix in self.ROOT_PREFIXES for path in paths]

    def extract_value(self, bundle: Dict[str, FetchResult], spec: FieldSpec) -> Optional[float]:
        """
        First non-zero value across the field's endpoints; a zero only when
        nothing non-zero is reported anywhere.
        """
        zero_found = False
        paths = self._expand(spec.paths)
        for payload in self._payloads(bundle, spec.endpoints):
            result = extract_field(payload, paths)
            if result.state == ExtractionState.FOUND:
                return result.value * spec.scale
            if result.state == ExtractionState.ZERO:
                zero_found = True
        return 0.0 if zero_found else None

    def extract_string(self, bundle: Dict[str, FetchResult], spec: FieldSpec) -> Optional[str]:
        paths = self._expand(spec.paths)
        for payload in self._payloads(bundle, spec.endpoints):
            text = extract_text(payload, paths)
            if text:
                return text
        return None

    def statement_items(self, bundle: Dict[str, FetchResult], spec: FieldSpec) -> List[Dict[str, Any]]:
        """Raw statement entries (most recent first) for one statement list."""
        for payload in self._payloads(bundle, spec.endpoints):
            for path in self._expand(spec.paths):
                node = resolve_path(payload, path)
                if isinstance(node, list) and node:
                    return [item for item in node if isinstance(item, dict)]
        return []

    def build_statements(self, bundle: Dict[str, FetchResult]) -> FinancialStatements:
        statements = FinancialStatements()
        for attr, spec in self.STATEMENT_LISTS.items():
            kind = attr.rsplit('_', 1)[0]
            model = _STATEMENT_MODELS[kind]
            field_paths = self.STATEMENT_FIELDS.get(kind, {})
            entries = []
            for item in self.statement_items(bundle, spec):
                values = {name: extract(item, paths) for name, paths in field_paths.items()}
                entries.append(model(period_end=extract_text(item, self.PERIOD_PATHS), **values))
            setattr(statements, attr, entries)
        return statements

    def normalize(self, symbol: str, bundle: Dict[str, FetchResult]) -> ProviderSnapshot:
        """Turn a raw bundle into a ProviderSnapshot via the field maps."""
        quote = {name: self.extract_value(bundle, spec) for name, spec in self.QUOTE_FIELDS.items()}
        text = {name: self.extract_string(bundle, spec) for name, spec in self.TEXT_FIELDS.items()}

        # Zero prices/caps are placeholders, never real quotes
        for key in ('current_price', 'market_cap', 'fifty_two_week_high', 'fifty_two_week_low', 'shares_outstanding'):
            if quote.get(key) == 0:
                quote[key] = None

        price, change = quote.get('current_price'), quote.get('change')
        if price is not None and change is not None:
            previous_close = price - change
            derived = safe_divide(change * 100, previous_close)
            if derived is not None:
                quote['change_percent'] = derived

        direct_metrics = {}
        for metric, spec in self.METRIC_FIELDS.items():
            value = self.extract_value(bundle, spec)
            if value is not None:
                direct_metrics[metric] = value

        snapshot = ProviderSnapshot(
            source=self.name,
            provenance=self.provenance,
            symbol=symbol.upper(),
            direct_metrics=direct_metrics,
            statements=self.build_statements(bundle),
            failures={e: p.reason.value for e, p in bundle.items() if isinstance(p, Unavailable)},
            **{k: v for k, v in quote.items() if v is not None},
            **{k: v for k, v in text.items() if v is not None},
        )
        return self.post_process(snapshot, bundle)

    def post_process(self, snapshot: ProviderSnapshot, bundle: Dict[str, FetchResult]) -> ProviderSnapshot:
        """Hook for provider-specific fix-ups after table-driven normalization."""
        return snapshot
