"""
Marketplace Analytics Engine
Configuration Module
"""
from .settings import Settings, AnalyticsSettings, get_settings

__all__ = ["Settings", "AnalyticsSettings", "get_settings"]
