"""
Marketplace Analytics Engine

Engagement tracking, per-business insights, platform trends and business
reports over the marketplace database.
"""

__version__ = "1.0.0"
