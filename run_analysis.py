"""
Indian Equity Analysis - Single Stock Analyzer
Runs the full analysis pipeline for one NSE/BSE symbol:
1. Provider fan-out (RapidAPI Yahoo, yfinance, Alpha Vantage)
2. Provenance merge and derived ratios
3. AI top-up for missing metrics (OpenRouter, optional)
4. Health labels, technical signals and narrative

With --recommend it instead ranks the sector hint universe for one holding
horizon (AI ranking when configured, health and signal ranking otherwise).
"""

import argparse
import json
import logging
import os
import sys

# Add project root to path
current_dir = os.path.dirname(os.path.abspath(__file__))
if current_dir not in sys.path:
    sys.path.insert(0, current_dir)

from config.analysis_config import METRIC_CATALOGUE, ratio_kind_for
from config.constants import ALL_SECTORS, CHART_RANGES, RECOMMENDATION_SECTORS, RECOMMENDATION_TIME_FRAMES
from data_acquisition.orchestration.data_orchestrator import build_default_orchestrator
from data_acquisition.providers.errors import InvalidSymbolError
from fundamentals.stock.recommendations import build_recommendation_service
from utils.console_utils import (
    format_analysis_report, format_chart_summary, format_recommendations, print_header, print_step, symbol
)
from utils.logger import LoggingContext, set_logging_mode, setup_logger

logger = setup_logger('run_analysis')


def configure_logging(json_output: bool):
    """
    Keep provider and calculator chatter off the console.
    An explicit LOG_MODE in the environment wins.
    """
    if 'LOG_MODE' not in os.environ:
        set_logging_mode(LoggingContext.PIPELINE_QUIET if json_output else LoggingContext.ORCHESTRATED)
    # yfinance logs every failed lookup at ERROR
    logging.getLogger('yfinance').setLevel(logging.CRITICAL)


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Analyze one Indian equity (NSE/BSE).")
    parser.add_argument('symbol', nargs='?', help="Ticker, e.g. TCS, RELIANCE.NS, M&M")
    parser.add_argument('--json', action='store_true', help="Print the record as JSON")
    parser.add_argument('--no-cache', action='store_true', help="Ignore cached results")
    parser.add_argument('--no-ai', action='store_true', help="Skip AI estimates for missing metrics")
    parser.add_argument('--clear-cache', action='store_true', help="Delete cached results and exit")
    parser.add_argument('--chart', metavar='RANGE', choices=sorted(CHART_RANGES),
                        help="Also fetch price history for a range")
    parser.add_argument('--recommend', metavar='TIMEFRAME', type=str.upper, choices=list(RECOMMENDATION_TIME_FRAMES),
                        help="Rank stocks for a holding horizon instead of analyzing one symbol")
    parser.add_argument('--sector', default=ALL_SECTORS, type=str.upper, choices=list(RECOMMENDATION_SECTORS),
                        help="Sector filter for --recommend")
    return parser.parse_args(argv)


def run_recommendations(orchestrator, args) -> int:
    service = build_recommendation_service(orchestrator, use_ai=not args.no_ai)
    if not args.json:
        print_header("INDIAN EQUITY RECOMMENDATIONS")
        print_step(1, 1, f"Ranking {args.sector} stocks for {args.recommend}")
    response = service.get_recommendations(args.recommend, args.sector, use_cache=not args.no_cache)

    if args.json:
        print(json.dumps({'recommendations': response.model_dump(mode='json')}, indent=2, ensure_ascii=False))
    else:
        print(format_recommendations(response))
    return 0 if response.recommendations else 1


def main(argv=None) -> int:
    args = parse_args(argv)
    configure_logging(args.json)
    orchestrator = build_default_orchestrator(use_ai=not args.no_ai)

    if args.clear_cache:
        removed = orchestrator.clear_cache()
        print(f"{symbol.OK} Removed {removed} cached entries")
        return 0

    if args.recommend:
        return run_recommendations(orchestrator, args)

    ticker = args.symbol or input("Enter stock symbol (e.g., TCS): ").strip()
    if not ticker:
        print(f"{symbol.FAIL} Symbol is required.")
        return 1

    use_cache = not args.no_cache
    try:
        if not args.json:
            print_header("INDIAN EQUITY ANALYSIS")
            print_step(1, 2 if args.chart else 1, f"Analyzing {ticker.upper()}")
        record = orchestrator.analyze(ticker, use_cache=use_cache)
        chart = orchestrator.get_chart_data(ticker, args.chart, use_cache=use_cache) if args.chart else None
    except InvalidSymbolError as e:
        logger.error(f"Rejected symbol {ticker!r}: {e}")
        print(f"{symbol.FAIL} {e}")
        return 2

    if args.json:
        payload = {'analysis': record.model_dump(mode='json')}
        if chart is not None:
            payload['chart'] = chart.model_dump(mode='json')
        print(json.dumps(payload, indent=2, ensure_ascii=False))
        return 0

    kinds = {name: ratio_kind_for(name) for names in METRIC_CATALOGUE.values() for name in names}
    print(format_analysis_report(record, kinds))
    if record.is_mock:
        print(f"{symbol.WARN} No provider returned data; values above are illustrative only.")

    if chart is not None:
        print_step(2, 2, f"Price History ({args.chart})")
        print(f"  {symbol.OK} {format_chart_summary(chart)}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
