"""
Data Generation Module
"""
from .generators import MarketplaceDataGenerator, TABLE_ORDER

__all__ = [
    "MarketplaceDataGenerator",
    "TABLE_ORDER",
]
