"""
Orchestration: provider fan-out, provenance merge, AI top-up and caching.
"""
