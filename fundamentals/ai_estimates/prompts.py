"""
AI Prompt Templates
Category-scoped prompts for filling individual metric gaps, and the
ranked-picks prompt used by recommendations.
"""
import json
from typing import Any, Dict, List

SYSTEM_PROMPT = (
    "You are an equity research assistant covering companies listed on Indian exchanges. "
    "You answer with a single JSON object and nothing else. "
    "Use null for any value you cannot estimate with reasonable confidence."
)

CATEGORY_UNITS = {
    'profitability': "percentages (15.2 means 15.2%)",
    'liquidity': "plain ratios (1.8 means 1.8x)",
    'valuation': "plain multiples, except Dividend Yield in percent",
    'growth': "annualised percentages (12.0 means 12% per year)",
}


def build_estimate_prompt(symbol: str, category: str, metrics: List[str]) -> str:
    """
    Ask for only the named metrics of one category.

    The response template lists exactly the requested keys so the model has
    no room to volunteer other figures.
    """
    template = json.dumps({name: None for name in metrics}, ensure_ascii=False)
    units = CATEGORY_UNITS.get(category, "numbers")
    return (
        f"Estimate the latest {category} metrics for the NSE-listed stock {symbol.upper()}.\n"
        f"Return ONLY this JSON object with numeric values filled in, expressed as {units}:\n"
        f"{template}\n"
        f"Do not add keys, commentary or units."
    )


RECOMMENDATION_SYSTEM_PROMPT = "You are a professional stock analyst providing investment recommendations."

_RECOMMENDATION_TEMPLATE = {
    "recommendations": [{
        "symbol": "STOCK_SYMBOL",
        "recommendation": "BUY|SELL|HOLD",
        "confidence": 85,
        "targetPrice": 2800.50,
        "upside": 15.5,
        "reasoning": ["Strong fundamentals", "Growing market share"],
        "risks": ["Market volatility", "Sector headwinds"],
        "aiScore": 88,
    }]
}


def build_recommendation_prompt(
    candidates: List[Dict[str, Any]],
    horizon: str,
    sector_label: str,
    time_frame: str,
    count: int
) -> str:
    """
    Ask for ``count`` ranked picks among the summarized candidates only.

    Args:
        candidates: One summary dict per analyzed stock
        horizon: Wording for the holding period
        sector_label: Sector name, or "overall market"
    """
    return (
        f"Analyze the following Indian stocks for {horizon} recommendations "
        f"in the {sector_label} sector.\n\n"
        f"Stock Data:\n{json.dumps(candidates, indent=2, ensure_ascii=False)}\n\n"
        f"Provide exactly {count} stock recommendations, chosen only from the symbols above, "
        f"as a JSON object with this structure:\n"
        f"{json.dumps(_RECOMMENDATION_TEMPLATE, indent=2)}\n\n"
        f"Weigh P/E, P/B, ROE, market cap, health and current signal against the risk "
        f"of a {time_frame} horizon. Give realistic target prices in rupees. "
        f"Return the JSON object only."
    )
