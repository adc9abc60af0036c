"""
Recommendations - ranked picks for one holding horizon and sector.

Candidates come from the sector hint table and are analyzed through the
regular pipeline; mock records carry no market data and are left out. The
model is asked to rank the summarized candidates. When it is unavailable,
unconfigured or answers with nothing usable, candidates are ranked by
overall health plus technical signal instead.

Responses are cached per (time frame, sector) for a horizon-dependent window.
"""

from collections import Counter
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timedelta
from itertools import zip_longest
from typing import Any, Dict, Iterable, List, Optional

from pydantic import ValidationError

from config.constants import (
    ALL_SECTORS, RECOMMENDATION_COUNT, RECOMMENDATION_MAX_CANDIDATES, RECOMMENDATION_SECTORS,
    RECOMMENDATION_TIME_FRAMES, RECOMMENDATION_WORKERS, SECTOR_HINTS
)
from data_acquisition.orchestration.analysis_cache import AnalysisCache
from data_acquisition.orchestration.data_orchestrator import AnalysisOrchestrator, provider_rate_limiter
from data_acquisition.providers.errors import ProviderError
from data_acquisition.providers.rate_limiter import RollingWindowRateLimiter
from fundamentals.ai_estimates.estimate_provider import extract_json_object
from fundamentals.ai_estimates.llm_client import LLMClient
from fundamentals.ai_estimates.prompts import RECOMMENDATION_SYSTEM_PROMPT, build_recommendation_prompt
from utils.logger import setup_logger
from utils.numeric_utils import clean_numeric, parse_number, round_price
from utils.unified_schema import (
    HealthLabel, KeyMetrics, RecommendationMetadata, RecommendationResponse, Signal,
    StockAnalysisRecord, StockRecommendation, TimeFrame
)

logger = setup_logger('recommendations')

AI_MODEL_LABEL = "OpenRouter AI"
FALLBACK_MODEL_LABEL = "Fallback Analysis"

HEALTH_SCORES = {
    HealthLabel.BEST: 5,
    HealthLabel.GOOD: 4,
    HealthLabel.NORMAL: 3,
    HealthLabel.BAD: 2,
    HealthLabel.WORSE: 1,
}
SIGNAL_SCORES = {Signal.BUY: 3, Signal.HOLD: 2, Signal.SELL: 1}

DEFAULT_CONFIDENCE = 75.0
DEFAULT_REASONING = ["AI-based analysis"]
DEFAULT_RISKS = ["Market risk"]
FALLBACK_RISKS = ["Market volatility", "Sector-specific risks"]


def parse_time_frame(value: str) -> TimeFrame:
    try:
        return TimeFrame(str(value).strip().upper())
    except ValueError:
        raise ValueError(
            f"Unknown time frame {value!r}; expected one of {', '.join(t.value for t in TimeFrame)}"
        ) from None


def parse_sector(value: Optional[str]) -> str:
    sector = (value or ALL_SECTORS).strip().upper().replace(' ', '_')
    if sector not in RECOMMENDATION_SECTORS:
        raise ValueError(f"Unknown sector {value!r}; expected one of {', '.join(RECOMMENDATION_SECTORS)}")
    return sector


def stop_loss_for(price: Optional[float], recommendation: Signal, time_frame: TimeFrame) -> Optional[float]:
    """
    Protective exit below the current price, wider for longer horizons.

    Examples:
        >>> stop_loss_for(1000, Signal.BUY, TimeFrame.ONE_MONTH)
        950.0
        >>> stop_loss_for(1000, Signal.SELL, TimeFrame.ONE_MONTH) is None
        True
    """
    price = clean_numeric(price)
    if recommendation == Signal.SELL or price is None or price <= 0:
        return None
    return round_price(price * (1 - RECOMMENDATION_TIME_FRAMES[time_frame.value]['stop_loss']))


def candidate_symbols(
    sector: str,
    universe: Dict[str, List[str]] = SECTOR_HINTS,
    limit: int = RECOMMENDATION_MAX_CANDIDATES
) -> List[str]:
    """
    Tickers whose hint sector matches the filter, interleaved across sectors.

    Interleaving keeps one large sector from filling the whole candidate list
    when every sector is requested.
    """
    keywords = [k.lower() for k in RECOMMENDATION_SECTORS[sector]]
    groups = [
        tickers for hint, tickers in universe.items()
        if not keywords or any(k in hint.lower() for k in keywords)
    ]
    symbols: List[str] = []
    for row in zip_longest(*groups):
        symbols.extend(s for s in row if s is not None and s not in symbols)
    return symbols[:limit]


def overall_health(record: StockAnalysisRecord) -> HealthLabel:
    """Mean label of the available catalogue metrics; NORMAL when none are available."""
    scores = [HEALTH_SCORES[m.health_label] for m in record.all_metrics().values() if m.is_available]
    if not scores:
        return HealthLabel.NORMAL
    mean = round(sum(scores) / len(scores))
    return next(label for label, score in HEALTH_SCORES.items() if score == mean)


def overall_signal(record: StockAnalysisRecord) -> Signal:
    tech = record.technical_indicators
    votes = Counter(i.signal for i in (tech.stochastic_rsi, tech.connors_rsi, tech.macd, tech.patterns))
    return votes.most_common(1)[0][0]


def key_metrics(record: StockAnalysisRecord) -> KeyMetrics:
    def value(block: Dict[str, Any], name: str) -> Optional[float]:
        metric = block.get(name)
        return metric.value if metric is not None and metric.is_available else None

    return KeyMetrics(
        pe=value(record.valuation, 'P/E Ratio'),
        pb=value(record.valuation, 'P/B Ratio'),
        roe=value(record.profitability, 'ROE'),
        market_cap=record.market_cap.value if record.market_cap.is_available else None,
    )


def summarize(record: StockAnalysisRecord) -> Dict[str, Any]:
    """Compact view of one record for the ranking prompt."""
    metrics = key_metrics(record)
    return {
        'symbol': record.symbol,
        'name': record.company_name,
        'sector': record.sector,
        'price': record.current_price.value,
        'change': record.change_percent,
        'pe': metrics.pe,
        'pb': metrics.pb,
        'roe': metrics.roe,
        'marketCap': metrics.market_cap,
        'health': overall_health(record).value,
        'signal': overall_signal(record).value,
    }


def _text_list(raw: Any, default: List[str]) -> List[str]:
    if isinstance(raw, str) and raw.strip():
        return [raw.strip()]
    if isinstance(raw, list):
        items = [str(item).strip() for item in raw if str(item).strip()]
        if items:
            return items
    return list(default)


class RecommendationService:
    """
    Ranked picks per (time frame, sector) over the analysis pipeline.
    """

    def __init__(
        self,
        orchestrator: AnalysisOrchestrator,
        client: Optional[LLMClient] = None,
        cache: Optional[AnalysisCache] = None,
        rate_limiter: Optional[RollingWindowRateLimiter] = None,
        universe: Optional[Dict[str, List[str]]] = None,
        use_ai: bool = True
    ):
        self.orchestrator = orchestrator
        self.client = client or LLMClient()
        self.cache = cache
        self.rate_limiter = rate_limiter
        self.universe = universe if universe is not None else SECTOR_HINTS
        self.use_ai = use_ai

    @staticmethod
    def cache_key(time_frame: TimeFrame, sector: str) -> str:
        return f"recommendations_{time_frame.value}_{sector}"

    def get_recommendations(
        self,
        time_frame: str,
        sector: Optional[str] = None,
        use_cache: bool = True
    ) -> RecommendationResponse:
        """
        Raises:
            ValueError: Unknown time frame or sector
        """
        time_frame = parse_time_frame(time_frame)
        sector = parse_sector(sector)
        key = self.cache_key(time_frame, sector)
        max_age = RECOMMENDATION_TIME_FRAMES[time_frame.value]['cache_seconds']

        if use_cache and self.cache is not None:
            cached = self.cache.get(key, max_age)
            if cached is not None:
                try:
                    response = RecommendationResponse.model_validate(cached)
                except ValidationError as e:
                    logger.warning(f"Discarding malformed cached recommendations {key}: {e}")
                    self.cache.delete(key)
                else:
                    logger.info(f"Using cached recommendations for {time_frame.value}/{sector}")
                    return response

        records = self._analyze_candidates(candidate_symbols(sector, self.universe), use_cache)
        generated_at = datetime.now()
        valid_until = generated_at + timedelta(seconds=max_age)

        recommendations: List[StockRecommendation] = []
        model_used = FALLBACK_MODEL_LABEL
        if records:
            recommendations = self._ai_recommendations(records, time_frame, sector, generated_at, valid_until)
            if recommendations:
                model_used = AI_MODEL_LABEL
            else:
                recommendations = self.fallback_recommendations(records, time_frame, sector, generated_at, valid_until)
        else:
            logger.warning(f"No candidate with market data for {sector}; nothing to recommend")

        response = RecommendationResponse(
            recommendations=recommendations,
            metadata=RecommendationMetadata(
                time_frame=time_frame,
                sector=sector,
                total_analyzed=len(records),
                model_used=model_used,
                generated_at=generated_at,
            ),
        )
        if self.cache is not None and records:
            self.cache.set(key, response.model_dump(mode='json'))
        logger.info(f"{len(recommendations)} {time_frame.value}/{sector} recommendations from {model_used}")
        return response

    def clear_cache(self) -> int:
        return self.cache.clear() if self.cache is not None else 0

    # --- Candidates ---

    def _analyze_candidates(self, symbols: Iterable[str], use_cache: bool) -> List[StockAnalysisRecord]:
        symbols = list(symbols)
        if not symbols:
            return []

        def analyze(symbol: str) -> Optional[StockAnalysisRecord]:
            try:
                return self.orchestrator.analyze(symbol, use_cache=use_cache)
            except Exception as e:
                logger.error(f"Analysis failed for candidate {symbol}: {type(e).__name__}: {e}")
                return None

        with ThreadPoolExecutor(max_workers=min(RECOMMENDATION_WORKERS, len(symbols)),
                                thread_name_prefix='candidate') as pool:
            results = list(pool.map(analyze, symbols))

        records = [r for r in results if r is not None and not r.is_mock and r.current_price.is_available]
        logger.info(f"{len(records)}/{len(symbols)} candidates have market data")
        return records

    # --- AI ranking ---

    def _ai_recommendations(self, records, time_frame, sector, generated_at, valid_until) -> List[StockRecommendation]:
        if not self.use_ai:
            return []
        if not self.client.is_configured():
            logger.info("AI ranking skipped: no OpenRouter key configured")
            return []

        prompt = build_recommendation_prompt(
            [summarize(r) for r in records],
            horizon=RECOMMENDATION_TIME_FRAMES[time_frame.value]['horizon'],
            sector_label="overall market" if sector == ALL_SECTORS else sector,
            time_frame=time_frame.value,
            count=RECOMMENDATION_COUNT,
        )
        try:
            if self.rate_limiter is not None:
                self.rate_limiter.acquire()
            completion = self.client.generate_text(prompt, system_prompt=RECOMMENDATION_SYSTEM_PROMPT)
            parsed = extract_json_object(completion)
        except ProviderError as e:
            logger.warning(f"AI ranking unavailable for {time_frame.value}/{sector}: {e}")
            return []
        return self.parse_ai_recommendations(parsed, records, time_frame, sector, generated_at, valid_until)

    @staticmethod
    def parse_ai_recommendations(
        parsed: Dict[str, Any],
        records: List[StockAnalysisRecord],
        time_frame: TimeFrame,
        sector: str,
        generated_at: datetime,
        valid_until: datetime
    ) -> List[StockRecommendation]:
        """
        Picks for analyzed candidates only; unknown symbols and bad signals are dropped.
        """
        by_symbol = {r.symbol: r for r in records}
        items = parsed.get('recommendations')
        if not isinstance(items, list):
            logger.warning("AI ranking reply has no recommendations list")
            return []

        picks: List[StockRecommendation] = []
        for item in items:
            if not isinstance(item, dict):
                continue
            record = by_symbol.get(str(item.get('symbol', '')).strip().upper())
            if record is None or any(p.symbol == record.symbol for p in picks):
                continue
            try:
                signal = Signal(str(item.get('recommendation', '')).strip().upper())
            except ValueError:
                logger.debug(f"Dropping {record.symbol}: unknown call {item.get('recommendation')!r}")
                continue

            price = record.current_price.value
            confidence = parse_number(item.get('confidence')) or DEFAULT_CONFIDENCE
            picks.append(StockRecommendation(
                symbol=record.symbol,
                name=record.company_name,
                sector=sector,
                time_frame=time_frame,
                recommendation=signal,
                confidence=confidence,
                current_price=price,
                target_price=parse_number(item.get('targetPrice')),
                stop_loss=stop_loss_for(price, signal, time_frame),
                upside=parse_number(item.get('upside')),
                reasoning=_text_list(item.get('reasoning'), DEFAULT_REASONING),
                risks=_text_list(item.get('risks'), DEFAULT_RISKS),
                key_metrics=key_metrics(record),
                ai_score=parse_number(item.get('aiScore')) or confidence,
                generated_at=generated_at,
                valid_until=valid_until,
            ))
        return picks[:RECOMMENDATION_COUNT]

    # --- Fallback ranking ---

    @staticmethod
    def fallback_recommendations(
        records: List[StockAnalysisRecord],
        time_frame: TimeFrame,
        sector: str,
        generated_at: datetime,
        valid_until: datetime
    ) -> List[StockRecommendation]:
        """Top candidates by health score plus signal score; ties keep candidate order."""
        scored = [(r, overall_health(r), overall_signal(r)) for r in records]
        ranked = sorted(scored, key=lambda x: HEALTH_SCORES[x[1]] + SIGNAL_SCORES[x[2]], reverse=True)

        picks = []
        for index, (record, health, signal) in enumerate(ranked[:RECOMMENDATION_COUNT]):
            price = record.current_price.value
            is_buy = signal == Signal.BUY
            picks.append(StockRecommendation(
                symbol=record.symbol,
                name=record.company_name,
                sector=sector,
                time_frame=time_frame,
                recommendation=signal,
                confidence=max(60, 80 - index * 5),
                current_price=price,
                target_price=round_price(price * 1.1) if is_buy else None,
                stop_loss=stop_loss_for(price, signal, time_frame),
                upside=10 - index * 2 if is_buy else None,
                reasoning=[f"Strong {health.value.lower()} fundamentals", f"Current signal: {signal.value}"],
                risks=list(FALLBACK_RISKS),
                key_metrics=key_metrics(record),
                ai_score=max(60, 85 - index * 5),
                generated_at=generated_at,
                valid_until=valid_until,
            ))
        return picks


def build_recommendation_service(orchestrator: AnalysisOrchestrator, use_ai: bool = True) -> RecommendationService:
    """Service over an existing orchestrator, sharing its cache directory."""
    return RecommendationService(
        orchestrator,
        cache=orchestrator.cache,
        rate_limiter=provider_rate_limiter('openrouter'),
        use_ai=use_ai,
    )
