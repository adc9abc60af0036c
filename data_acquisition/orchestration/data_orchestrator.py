"""
Data Orchestrator - Central Coordinator for Stock Analysis

Phases:
1. Cache lookup (fresh records are returned as-is)
2. Provider fan-out (every provider concurrently, bounded by a timeout)
3. Direct metrics, merged by provenance
4. Derived metrics from statements (CALCULATED), only where still missing
5. AI top-up per category with gaps (AI_ESTIMATED), only where still missing
6. Labels, technical block and narrative
7. Cache write

When no provider returns anything usable the whole record comes from the
deterministic mock generator instead.
"""
from concurrent.futures import ThreadPoolExecutor, wait
from typing import Dict, List, Optional, Sequence

from pydantic import ValidationError

from config.analysis_config import AI_TOPUP, METRIC_CATALOGUE, NOT_DERIVABLE, ratio_kind_for
from config.constants import (
    AI_TIMEOUT_SECONDS, ANALYSIS_CACHE_SECONDS, CHART_CACHE_SECONDS, CHART_RANGES,
    DEFAULT_CHART_RANGE, PROVIDER_TIMEOUT_SECONDS, RATE_LIMIT_WINDOW_SECONDS, RATE_LIMITS
)
from data_acquisition.orchestration.analysis_cache import AnalysisCache, analysis_key, chart_key
from data_acquisition.orchestration.gap_analyzer import GapAnalyzer
from data_acquisition.orchestration.metric_merger import MetricMerger
from data_acquisition.providers.alphavantage_provider import AlphaVantageProvider
from data_acquisition.providers.base_provider import BaseProvider, validate_symbol
from data_acquisition.providers.errors import is_unavailable
from data_acquisition.providers.rapidapi_yahoo_provider import RapidApiYahooProvider
from data_acquisition.providers.rate_limiter import RollingWindowRateLimiter
from data_acquisition.providers.yfinance_provider import YFinanceProvider
from fundamentals.ai_estimates.estimate_provider import AIEstimateProvider
from fundamentals.financial_data.ratio_calculator import RatioCalculator
from fundamentals.financial_scorers.statement_health import assess_statements, qualitative_labels
from fundamentals.stock.mock_generator import MockDataGenerator
from fundamentals.stock.narrative_builder import build_key_points, build_pros_cons, default_about
from fundamentals.technical_scorers.technical_signals import build_technical_block
from utils.logger import setup_logger
from utils.unified_schema import (
    ChartData, MetricWithSource, Provenance, ProviderSnapshot, StockAnalysisRecord, provenance_trust
)

logger = setup_logger('data_orchestrator')

_QUOTE_ATTRS = ('change', 'change_percent', 'fifty_two_week_high', 'fifty_two_week_low', 'shares_outstanding')


class AnalysisOrchestrator:
    """
    Coordinates providers, derivation, AI top-up and caching for one symbol.

    Providers are consulted concurrently; their snapshots are then applied in
    trust order so a value is only ever replaced by a more trusted one.
    """

    def __init__(
        self,
        providers: Sequence[BaseProvider],
        ai_provider: Optional[AIEstimateProvider] = None,
        cache: Optional[AnalysisCache] = None,
        mock_generator: Optional[MockDataGenerator] = None,
        provider_timeout: float = PROVIDER_TIMEOUT_SECONDS,
        ai_timeout: float = AI_TIMEOUT_SECONDS,
        use_ai: bool = AI_TOPUP["ENABLED"]
    ):
        self.providers = list(providers)
        self.ai_provider = ai_provider
        self.cache = cache
        self.mock_generator = mock_generator or MockDataGenerator()
        self.provider_timeout = provider_timeout
        self.ai_timeout = ai_timeout
        self.use_ai = use_ai
        self.merger = MetricMerger()
        self.gap_analyzer = GapAnalyzer()

    # --- Public API ---

    def analyze(self, symbol: str, use_cache: bool = True) -> StockAnalysisRecord:
        """
        Build the full analysis record for one symbol.

        Raises:
            InvalidSymbolError: malformed symbol (checked before any network call)
        """
        symbol = validate_symbol(symbol)
        logger.info(f"Starting analysis for {symbol}")

        if use_cache:
            cached = self._cached_record(symbol)
            if cached is not None:
                logger.info(f"Using cached analysis for {symbol}")
                return cached

        snapshots = [s for s in self._collect_snapshots(symbol) if s.has_data()]
        if not snapshots:
            logger.warning(f"No provider returned data for {symbol}; using mock data")
            return self.mock_generator.generate(symbol)

        record = self._assemble(symbol, snapshots)
        if self.cache is not None:
            self.cache.set(analysis_key(symbol), record.model_dump(mode='json'))

        coverage = self.gap_analyzer.coverage({category: record.category(category) for category in METRIC_CATALOGUE})
        logger.info(
            f"Analysis complete for {symbol}: {coverage:.0%} of catalogue metrics "
            f"from {', '.join(record.data_sources)}"
        )
        return record

    def get_chart_data(self, symbol: str, time_range: str = DEFAULT_CHART_RANGE, use_cache: bool = True) -> ChartData:
        """Price bars for one range: cache, then real history, then a mock series."""
        symbol = validate_symbol(symbol)
        time_range = (time_range or DEFAULT_CHART_RANGE).upper()
        if time_range not in CHART_RANGES:
            logger.warning(f"Unknown chart range {time_range!r}, using {DEFAULT_CHART_RANGE}")
            time_range = DEFAULT_CHART_RANGE

        key = chart_key(symbol, time_range)
        if use_cache and self.cache is not None:
            cached = self.cache.get(key, CHART_CACHE_SECONDS)
            if cached is not None:
                try:
                    return ChartData.model_validate(cached)
                except ValidationError as e:
                    logger.warning(f"Discarding malformed cached chart {key}: {e}")
                    self.cache.delete(key)

        for provider in self.providers:
            fetch_history = getattr(provider, 'fetch_price_history', None)
            if fetch_history is None:
                continue
            chart = fetch_history(symbol, time_range)
            if isinstance(chart, ChartData) and chart.bars:
                if self.cache is not None:
                    self.cache.set(key, chart.model_dump(mode='json'))
                return chart

        logger.warning(f"No price history for {symbol} {time_range}; using mock series")
        anchor = None
        record = self._cached_record(symbol) if self.cache is not None else None
        if record is not None and record.current_price.is_available:
            anchor = record.current_price.value
        return self.mock_generator.generate_chart(symbol, time_range, anchor_price=anchor)

    def clear_cache(self) -> int:
        return self.cache.clear() if self.cache is not None else 0

    # --- Phases ---

    def _cached_record(self, symbol: str) -> Optional[StockAnalysisRecord]:
        if self.cache is None:
            return None
        cached = self.cache.get(analysis_key(symbol), ANALYSIS_CACHE_SECONDS)
        if cached is None:
            return None
        try:
            return StockAnalysisRecord.model_validate(cached)
        except ValidationError as e:
            logger.warning(f"Discarding malformed cached analysis for {symbol}: {e}")
            self.cache.delete(analysis_key(symbol))
            return None

    def _collect_snapshots(self, symbol: str) -> List[ProviderSnapshot]:
        """Fetch every provider concurrently; late or failing providers are skipped."""
        if not self.providers:
            return []
        pool = ThreadPoolExecutor(max_workers=len(self.providers), thread_name_prefix='provider')
        try:
            futures = {pool.submit(p.fetch_snapshot, symbol): p for p in self.providers}
            done, not_done = wait(futures, timeout=self.provider_timeout)
            for future in not_done:
                logger.warning(f"{futures[future].name} timed out after {self.provider_timeout}s for {symbol}")

            snapshots = []
            for provider in self.providers:
                future = next(f for f, p in futures.items() if p is provider)
                if future not in done:
                    continue
                try:
                    snapshots.append(future.result())
                except Exception as e:
                    logger.error(f"{provider.name} failed for {symbol}: {type(e).__name__}: {e}")
        finally:
            pool.shutdown(wait=False, cancel_futures=True)

        # Stable sort keeps the configured order among equally trusted providers
        return sorted(snapshots, key=lambda s: provenance_trust(s.provenance), reverse=True)

    def _assemble(self, symbol: str, snapshots: List[ProviderSnapshot]) -> StockAnalysisRecord:
        contributors: List[str] = []

        def credit(source: str) -> None:
            if source not in contributors:
                contributors.append(source)

        current_price = self._quote_metric("Current Price", 'current_price', snapshots, credit)
        market_cap = self._quote_metric("Market Cap", 'market_cap', snapshots, credit)
        quote = {attr: self._first(snapshots, attr) for attr in _QUOTE_ATTRS}

        categories: Dict[str, Dict[str, MetricWithSource]] = {
            category: {name: MetricWithSource.unavailable(name) for name in names}
            for category, names in METRIC_CATALOGUE.items()
        }
        lookup = {name: block for block in categories.values() for name in block}

        for snapshot in snapshots:
            for name, value in snapshot.direct_metrics.items():
                if name in lookup and self.merger.offer(lookup[name], name, value, snapshot.provenance, snapshot.source):
                    credit(snapshot.source)

        self._fill_derived(snapshots, lookup, current_price, market_cap, quote['shares_outstanding'], credit)
        self._fill_ai_estimates(symbol, categories, lookup, credit)

        all_metrics = {name: block[name] for name, block in lookup.items()}
        kinds = {name: ratio_kind_for(name) for name in all_metrics}
        pros, cons = build_pros_cons(all_metrics, kinds)
        qualitative = qualitative_labels()

        company_name = self._first(snapshots, 'company_name') or "N/A"
        return StockAnalysisRecord(
            symbol=symbol,
            company_name=company_name,
            sector=self._first(snapshots, 'sector') or "N/A",
            industry=self._first(snapshots, 'industry') or "N/A",
            about=self._first(snapshots, 'about') or default_about(symbol, company_name),
            current_price=current_price,
            market_cap=market_cap,
            change=quote['change'],
            change_percent=quote['change_percent'],
            fifty_two_week_high=quote['fifty_two_week_high'],
            fifty_two_week_low=quote['fifty_two_week_low'],
            **categories,
            statement_health=assess_statements(all_metrics, [s.statements for s in snapshots]),
            management=qualitative['management'],
            industry_position=qualitative['industry_position'],
            risks=qualitative['risks'],
            outlook=qualitative['outlook'],
            technical_indicators=build_technical_block(
                current_price.value, quote['fifty_two_week_high'], quote['fifty_two_week_low']
            ),
            key_points=build_key_points(
                current_price, market_cap, quote['fifty_two_week_high'], quote['fifty_two_week_low'], all_metrics
            ),
            pros=pros,
            cons=cons,
            data_sources=contributors,
            is_mock=False,
        )

    def _fill_derived(self, snapshots, lookup, current_price, market_cap, shares_outstanding, credit) -> None:
        for snapshot in snapshots:
            if snapshot.statements.is_empty():
                continue
            calculator = RatioCalculator(
                snapshot.statements,
                price=current_price.value,
                market_cap=market_cap.value,
                shares_outstanding=shares_outstanding or snapshot.shares_outstanding,
            )
            for name, block in lookup.items():
                if name in NOT_DERIVABLE or block[name].is_available or not calculator.can_derive(name):
                    continue
                value = calculator.derive(name)
                detail = f"{snapshot.source} statements"
                if self.merger.offer(block, name, value, Provenance.CALCULATED, detail):
                    credit(snapshot.source)

    def _fill_ai_estimates(self, symbol, categories, lookup, credit) -> None:
        if not self.use_ai or self.ai_provider is None:
            return
        gaps = {
            category: names
            for category, names in self.gap_analyzer.missing_by_category(categories).items()
            if category in AI_TOPUP["CATEGORIES"]
        }
        self.gap_analyzer.log_gaps(symbol, gaps)
        if not gaps:
            return
        if not self.ai_provider.is_configured():
            logger.info("AI top-up skipped: no OpenRouter key configured")
            return

        pool = ThreadPoolExecutor(max_workers=len(gaps), thread_name_prefix='ai')
        try:
            futures = {
                pool.submit(self.ai_provider.estimate, symbol, category, names): category
                for category, names in gaps.items()
            }
            done, not_done = wait(futures, timeout=self.ai_timeout)
            for future in not_done:
                logger.warning(f"AI {futures[future]} estimate timed out for {symbol}")

            for future in done:
                category = futures[future]
                try:
                    estimates = future.result()
                except Exception as e:
                    logger.error(f"AI {category} estimate failed for {symbol}: {type(e).__name__}: {e}")
                    continue
                if is_unavailable(estimates):
                    continue
                for name, value in estimates.items():
                    # Only metrics the request asked for, and only where still missing
                    if name not in gaps[category] or lookup[name][name].is_available:
                        continue
                    if self.merger.offer(lookup[name], name, value, Provenance.AI_ESTIMATED, self.ai_provider.name):
                        credit(self.ai_provider.name)
        finally:
            pool.shutdown(wait=False, cancel_futures=True)

    # --- Helpers ---

    @staticmethod
    def _first(snapshots: List[ProviderSnapshot], attr: str):
        for snapshot in snapshots:
            value = getattr(snapshot, attr)
            if value is not None:
                return value
        return None

    @staticmethod
    def _quote_metric(name, attr, snapshots, credit) -> MetricWithSource:
        for snapshot in snapshots:
            value = getattr(snapshot, attr)
            if value is not None and value > 0:
                credit(snapshot.source)
                return MetricWithSource.available(name, value, snapshot.provenance, source_detail=snapshot.source)
        return MetricWithSource.unavailable(name)


def provider_rate_limiter(name: str, bundle_size: int = 1) -> RollingWindowRateLimiter:
    """
    Limiter for one provider's configured ceiling.

    A snapshot bundle is fetched as one unit, so the ceiling never drops
    below the number of reads in a bundle.
    """
    return RollingWindowRateLimiter(max(RATE_LIMITS[name], bundle_size), RATE_LIMIT_WINDOW_SECONDS, name=name)


def build_default_orchestrator(use_ai: bool = AI_TOPUP["ENABLED"], cache_dir=None) -> AnalysisOrchestrator:
    """Wire the production providers, each behind its own rate limiter."""
    providers = [
        provider_cls(rate_limiter=provider_rate_limiter(provider_cls.name, len(provider_cls.BUNDLE_ENDPOINTS)))
        for provider_cls in (RapidApiYahooProvider, YFinanceProvider, AlphaVantageProvider)
    ]
    return AnalysisOrchestrator(
        providers,
        ai_provider=AIEstimateProvider(rate_limiter=provider_rate_limiter('openrouter')),
        cache=AnalysisCache(cache_dir),
        use_ai=use_ai,
    )
