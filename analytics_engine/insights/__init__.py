"""
Insight Module

Read-side services: per-business insights, platform trends and reports.
"""
from .window import DateWindow
from .business import BusinessInsightCalculator
from .platform import PlatformReportType, PlatformTrendAggregator
from .reports import ReportCompiler, ReportFormat, RenderedReport

__all__ = [
    "DateWindow",
    "BusinessInsightCalculator",
    "PlatformTrendAggregator",
    "PlatformReportType",
    "ReportCompiler",
    "ReportFormat",
    "RenderedReport",
]
