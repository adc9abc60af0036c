"""
Fundamentals module - derived ratios, health labels, technical signals,
AI estimates and narrative for one analysis record.
"""
