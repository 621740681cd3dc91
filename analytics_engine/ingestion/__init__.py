"""
Data Ingestion Module
"""
from .event_ingestor import EventIngestor, EngagementEventType, counter_field_for

__all__ = [
    "EventIngestor",
    "EngagementEventType",
    "counter_field_for",
]
