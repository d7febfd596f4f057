"""Services for SelfPatch."""

from selfpatch.services.bug_intensity import BugIntensityProvider
from selfpatch.services.bug_lifecycle import (
    BugLifecycleInfo,
    BugLifecycleService,
    LifecycleTransition,
)
from selfpatch.services.crash_service import CrashService
from selfpatch.services.diagnostic_engine import DiagnosticEngine
from selfpatch.services.pattern_surfacing import PatternSurfacingService
from selfpatch.services.recommendations import (
    PatternRecommendation,
    generate_recommendations,
    recommendations_for,
)
from selfpatch.services.streak import StreakInfo, StreakService
from selfpatch.services.trend_analysis import BugTrend, TrendAnalysisService, TrendDataPoint
from selfpatch.services.version import VersionProgress, VersionService
from selfpatch.services.weekly_diagnostic import WeeklyDiagnosticService

__all__ = [
    "BugIntensityProvider",
    "BugLifecycleInfo",
    "BugLifecycleService",
    "BugTrend",
    "CrashService",
    "DiagnosticEngine",
    "LifecycleTransition",
    "PatternRecommendation",
    "PatternSurfacingService",
    "StreakInfo",
    "StreakService",
    "TrendAnalysisService",
    "TrendDataPoint",
    "VersionProgress",
    "VersionService",
    "WeeklyDiagnosticService",
    "generate_recommendations",
    "recommendations_for",
]
