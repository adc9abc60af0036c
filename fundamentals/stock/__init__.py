"""
Record-level helpers: narrative text, deterministic mock data and
horizon-based recommendations.
"""
