"""
Utilities module for the Indian Equity Analysis system.

--- Quick Reference ---

1. Numeric handling (numeric_utils.py)
   from utils.numeric_utils import clean_numeric, parse_number, safe_divide, safe_format
   - clean_numeric(value)        NaN/Inf/None -> None
   - parse_number("12.5%")       strings with %, commas or rupee signs -> float
   - safe_divide(a, b)           None on zero or missing denominator
   - safe_format(val, ".2f")     "N/A" for invalid values

2. Field extraction (field_extractor.py)
   from utils.field_extractor import extract, extract_field, extract_text
   - extract(payload, [["a", "b"], ["c"]])  first usable number along candidate paths
   - extract_field(...)          same, with FOUND/ZERO/MISSING/UNPARSEABLE state

3. Logging (logger.py)
   from utils.logger import setup_logger
   - logger = setup_logger('module_name')
   - LOG_MODE=standalone|orchestrated|silent|pipeline_quiet in the environment

4. HTTP requests (http_utils.py)
   from utils.http_utils import make_request, post_json
   - Retries with backoff on 5xx; 429 raises RateLimited, 404 NoDataForSymbol

5. Console output (console_utils.py)
   from utils.console_utils import symbol, print_step, format_analysis_report

--- Data Models ---

6. unified_schema.py    Provenance, MetricWithSource, ProviderSnapshot, StockAnalysisRecord, ChartData

=== Notes ===
- Use clean_numeric() / safe_divide() for arithmetic on provider values
- Use make_request() rather than calling requests directly
- Use setup_logger(), not print(), for diagnostics
"""
