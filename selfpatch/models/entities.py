"""
Domain entities for SelfPatch.

Plain dataclasses passed between repositories, detectors and services. They
are mutated in place by the services and then handed back to a repository's
``save``; repositories store copies, so an entity loaded in one call is never
aliased by another.

Data Classification: SENSITIVE
- Crash.note and Bug.description may hold personal reflections.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta

from selfpatch.lib.clock import utc_now
from selfpatch.models.enums import (
    BugIntensity,
    BugStatus,
    EventContext,
    EventType,
    PatternSeverity,
    PatternType,
    VersionChangeType,
)

INITIAL_VERSION = "1.0"


def week_anchor(moment: date | datetime) -> date:
    """
    Return the ISO week start (Monday) for a date or datetime.

    Weekly diagnostics are keyed by this anchor, so it must not depend on
    locale settings.
    """
    day = moment.date() if isinstance(moment, datetime) else moment
    return day - timedelta(days=day.weekday())


# =============================================================================
# Bugs
# =============================================================================

@dataclass
class Bug:
    """A tracked recurring behavior and its lifecycle state."""

    slug: str
    title: str
    description: str = ""
    id: uuid.UUID = field(default_factory=uuid.uuid4)
    status: BugStatus = BugStatus.IDENTIFIED
    is_active: bool = False
    activated_at: datetime | None = None
    stable_at: datetime | None = None
    resolved_at: datetime | None = None
    created_at: datetime = field(default_factory=utc_now)
    updated_at: datetime = field(default_factory=utc_now)
    deleted_at: datetime | None = None


# =============================================================================
# Analytics events
# =============================================================================

@dataclass
class AnalyticsEvent:
    """
    One entry of the append-only event log.

    day_of_week is ISO numbering (1 = Monday ... 7 = Sunday) and hour_of_day is
    0-23, both taken from the event's own timestamp.
    """

    user_id: uuid.UUID
    event_type: EventType
    day_of_week: int
    hour_of_day: int
    bug_id: uuid.UUID | None = None
    fix_id: uuid.UUID | None = None
    context: EventContext | None = None
    timestamp: datetime = field(default_factory=utc_now)
    id: uuid.UUID = field(default_factory=uuid.uuid4)

    @classmethod
    def record(
        cls,
        user_id: uuid.UUID,
        event_type: EventType,
        at: datetime,
        bug_id: uuid.UUID | None = None,
        fix_id: uuid.UUID | None = None,
        context: EventContext | None = None,
    ) -> AnalyticsEvent:
        """Build an event whose weekday and hour are derived from ``at``."""
        return cls(
            user_id=user_id,
            event_type=event_type,
            day_of_week=at.isoweekday(),
            hour_of_day=at.hour,
            bug_id=bug_id,
            fix_id=fix_id,
            context=context,
            timestamp=at,
        )


# =============================================================================
# Weekly diagnostics
# =============================================================================

@dataclass(frozen=True)
class BugDiagnosticResponse:
    """A single bug's self-reported intensity within a weekly diagnostic."""

    bug_id: uuid.UUID
    intensity: BugIntensity
    primary_context: EventContext | None = None


@dataclass
class WeeklyDiagnostic:
    """A user's weekly self-report; at most one per ISO week."""

    user_id: uuid.UUID
    week_starting: date
    responses: list[BugDiagnosticResponse] = field(default_factory=list)
    completed_at: datetime = field(default_factory=utc_now)
    id: uuid.UUID = field(default_factory=uuid.uuid4)
    deleted_at: datetime | None = None

    def response_for(self, bug_id: uuid.UUID) -> BugDiagnosticResponse | None:
        """Return this week's response for ``bug_id``, if the bug was assessed."""
        for response in self.responses:
            if response.bug_id == bug_id:
                return response
        return None

    @property
    def assessed_bug_ids(self) -> list[uuid.UUID]:
        return [response.bug_id for response in self.responses]


# =============================================================================
# Crashes
# =============================================================================

@dataclass
class Crash:
    """A logged relapse into a bug's behavior."""

    user_id: uuid.UUID
    bug_id: uuid.UUID | None = None
    note: str | None = None
    crashed_at: datetime = field(default_factory=utc_now)
    rebooted_at: datetime | None = None
    id: uuid.UUID = field(default_factory=uuid.uuid4)
    created_at: datetime = field(default_factory=utc_now)
    updated_at: datetime = field(default_factory=utc_now)
    deleted_at: datetime | None = None


# =============================================================================
# Detected patterns
# =============================================================================

@dataclass
class DetectedPattern:
    """
    An analytic finding produced by a detector or the lifecycle service.

    related_bug_ids behaves as an ordered set: duplicates are dropped on
    construction, first occurrence wins.
    """

    user_id: uuid.UUID
    pattern_type: PatternType
    severity: PatternSeverity
    title: str
    body: str
    related_bug_ids: list[uuid.UUID] = field(default_factory=list)
    data_points: int = 0
    detected_at: datetime = field(default_factory=utc_now)
    viewed_at: datetime | None = None
    dismissed_at: datetime | None = None
    id: uuid.UUID = field(default_factory=uuid.uuid4)
    deleted_at: datetime | None = None

    def __post_init__(self) -> None:
        self.related_bug_ids = list(dict.fromkeys(self.related_bug_ids))


# =============================================================================
# Versions
# =============================================================================

@dataclass
class VersionEntry:
    """One step in the user's version history."""

    user_id: uuid.UUID
    version: str
    change_type: VersionChangeType
    description: str
    created_at: datetime = field(default_factory=utc_now)
    id: uuid.UUID = field(default_factory=uuid.uuid4)
    deleted_at: datetime | None = None


# =============================================================================
# User profile
# =============================================================================

@dataclass
class UserProfile:
    """Streak, version and scheduling bookkeeping for the single local user."""

    id: uuid.UUID = field(default_factory=uuid.uuid4)
    current_streak: int = 0
    longest_streak: int = 0
    last_engagement_date: date | None = None
    streak_freeze_available: bool = True
    last_freeze_reset_date: date | None = None
    last_diagnostics_run_at: datetime | None = None
    last_pattern_shown_at: datetime | None = None
    current_version: str = INITIAL_VERSION
    created_at: datetime = field(default_factory=utc_now)
    updated_at: datetime = field(default_factory=utc_now)
