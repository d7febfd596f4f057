"""
Closed enumerations for SelfPatch.

Every value set the engine branches on is enumerated here. Pattern types are
a closed set: adding one requires a detector (or an emitting service) and a
recommendation entry.
"""

from __future__ import annotations

from enum import StrEnum


class EventType(StrEnum):
    """Kinds of analytics events appended by user-facing flows."""

    CRASH_LOGGED = "crash_logged"
    CRASH_REBOOTED = "crash_rebooted"
    FIX_ASSIGNED = "fix_assigned"
    FIX_APPLIED = "fix_applied"
    FIX_SKIPPED = "fix_skipped"
    FIX_FAILED = "fix_failed"
    FIX_SHARED = "fix_shared"
    WEEKLY_COMPLETED = "weekly_completed"
    PATTERN_VIEWED = "pattern_viewed"
    PATTERN_DISMISSED = "pattern_dismissed"


class EventContext(StrEnum):
    """Where the user was when a bug showed up."""

    WORK = "work"
    HOME = "home"
    SOCIAL = "social"
    FAMILY = "family"
    ONLINE = "online"
    UNKNOWN = "unknown"

    @property
    def display_name(self) -> str:
        return self.value.capitalize()


class BugIntensity(StrEnum):
    """Self-reported weekly intensity of a bug."""

    QUIET = "quiet"
    PRESENT = "present"
    LOUD = "loud"

    @property
    def score(self) -> int:
        """Ordinal value: quiet 0, present 1, loud 2."""
        return _INTENSITY_SCORES[self]


_INTENSITY_ORDER: tuple[BugIntensity, ...] = (
    BugIntensity.QUIET,
    BugIntensity.PRESENT,
    BugIntensity.LOUD,
)
_INTENSITY_SCORES: dict[BugIntensity, int] = {
    intensity: index for index, intensity in enumerate(_INTENSITY_ORDER)
}


class PatternSeverity(StrEnum):
    """Severity of a detected pattern, used for surfacing priority."""

    ALERT = "alert"
    INSIGHT = "insight"
    OBSERVATION = "observation"

    @property
    def priority(self) -> int:
        """Surfacing priority: alert 3 > insight 2 > observation 1."""
        return _SEVERITY_PRIORITY[self]


_SEVERITY_PRIORITY: dict[PatternSeverity, int] = {
    PatternSeverity.ALERT: 3,
    PatternSeverity.INSIGHT: 2,
    PatternSeverity.OBSERVATION: 1,
}


class PatternType(StrEnum):
    """The closed set of analytic findings."""

    AVOIDANCE = "avoidance"
    TEMPORAL_CRASH = "temporal_crash"
    CONTEXTUAL_SPIKE = "contextual_spike"
    CORRELATED_BUGS = "correlated_bugs"
    PLATEAU = "plateau"
    REGRESSION = "regression"
    IMPROVEMENT = "improvement"


class BugStatus(StrEnum):
    """Lifecycle states of a tracked bug."""

    IDENTIFIED = "identified"
    ACTIVE = "active"
    STABLE = "stable"
    RESOLVED = "resolved"


class RecommendationAction(StrEnum):
    """Action categories attached to pattern recommendations."""

    ADJUST_PRIORITY = "adjust_priority"
    PRACTICE_MORE = "practice_more"
    AVOID_CONTEXT = "avoid_context"
    CELEBRATE_PROGRESS = "celebrate_progress"
    SEEK_SUPPORT = "seek_support"
    REVIEW_TIME = "review_time"
    SLOW_DOWN = "slow_down"
    FOCUS_ON_ONE = "focus_on_one"
    CHANGE_APPROACH = "change_approach"
    MAINTAIN_COURSE = "maintain_course"


class VersionChangeType(StrEnum):
    """Why the user's version string moved."""

    MAJOR_UPDATE = "major_update"
    MINOR_UPDATE = "minor_update"


class TrendDirection(StrEnum):
    """Direction of a bug's intensity over recent diagnostics."""

    IMPROVING = "improving"
    WORSENING = "worsening"
    STABLE = "stable"

    @property
    def label(self) -> str:
        return self.value.upper()

    @property
    def comment(self) -> str:
        return _TREND_COMMENTS[self]


_TREND_COMMENTS: dict[TrendDirection, str] = {
    TrendDirection.IMPROVING: "// Keep it up",
    TrendDirection.WORSENING: "// Worth attention",
    TrendDirection.STABLE: "// Holding steady",
}
