"""
SecFeed Aggregation - Web3 security news monitoring.

This package aggregates RSS/Atom feeds, keeps items relevant to Web3
security, classifies and deduplicates them, and pushes new findings to a
messaging channel while tracking what was already delivered.
"""

__version__ = "0.1.0"
