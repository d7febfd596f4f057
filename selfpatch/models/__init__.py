"""
Models package for SelfPatch.

Usage:
    from selfpatch.models import Bug, DetectedPattern, PatternType
"""

from selfpatch.models.entities import (
    AnalyticsEvent,
    Bug,
    BugDiagnosticResponse,
    Crash,
    DetectedPattern,
    UserProfile,
    VersionEntry,
    WeeklyDiagnostic,
    week_anchor,
)
from selfpatch.models.enums import (
    BugIntensity,
    BugStatus,
    EventContext,
    EventType,
    PatternSeverity,
    PatternType,
    RecommendationAction,
    TrendDirection,
    VersionChangeType,
)

__all__ = [
    # Entities
    "AnalyticsEvent",
    "Bug",
    "BugDiagnosticResponse",
    "Crash",
    "DetectedPattern",
    "UserProfile",
    "VersionEntry",
    "WeeklyDiagnostic",
    "week_anchor",
    # Enums
    "BugIntensity",
    "BugStatus",
    "EventContext",
    "EventType",
    "PatternSeverity",
    "PatternType",
    "RecommendationAction",
    "TrendDirection",
    "VersionChangeType",
]
