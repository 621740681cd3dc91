"""
Metric Derivation Module
"""
from .metrics import (
    AppointmentFunnel,
    PeakHour,
    appointment_funnel,
    average_rating,
    conversion_rate,
    growth_rate,
    peak_hours,
    rating_distribution,
    round_half_up,
)

__all__ = [
    "AppointmentFunnel",
    "PeakHour",
    "appointment_funnel",
    "average_rating",
    "conversion_rate",
    "growth_rate",
    "peak_hours",
    "rating_distribution",
    "round_half_up",
]
