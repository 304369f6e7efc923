"""Productivity analytics."""

from voicetasks.analytics.engine import (
    AnalyticsEngine,
    EnergyLevel,
    EnergyWindow,
    EstimationFactors,
    ProductivityPattern,
    TaskEstimation,
    TaskRecommendation,
    TimeSuggestion,
)

__all__ = [
    "AnalyticsEngine",
    "EnergyLevel",
    "EnergyWindow",
    "EstimationFactors",
    "ProductivityPattern",
    "TaskEstimation",
    "TaskRecommendation",
    "TimeSuggestion",
]
