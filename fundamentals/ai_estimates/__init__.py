"""
AI estimates - OpenRouter-backed estimates for metrics no provider reports.
"""
