"""
Shared test fixtures for SelfPatch.

This module provides common fixtures used across all test modules:
- FakeClock (controllable time source)
- EngineSettings with product defaults
- In-memory repositories wired to the fake clock
- A seeded user profile
- Builders for events, diagnostics and bugs

Usage:
    All fixtures are automatically available to any test in the tests/ directory.
    pytest discovers conftest.py files and makes their fixtures available
    to all tests in the same directory and below.
"""

from __future__ import annotations

import uuid
from datetime import UTC, date, datetime, timedelta

import pytest

from selfpatch.config.settings import EngineSettings
from selfpatch.models.entities import (
    AnalyticsEvent,
    Bug,
    BugDiagnosticResponse,
    UserProfile,
    WeeklyDiagnostic,
)
from selfpatch.models.enums import BugIntensity, BugStatus, EventContext, EventType
from selfpatch.repositories.memory import (
    InMemoryAnalyticsEventRepository,
    InMemoryBugRepository,
    InMemoryCrashRepository,
    InMemoryPatternRepository,
    InMemoryUserRepository,
    InMemoryVersionEntryRepository,
    InMemoryWeeklyDiagnosticRepository,
)

# Monday 2 March 2026, 09:00 UTC
START = datetime(2026, 3, 2, 9, 0, tzinfo=UTC)


class FakeClock:
    """Callable time source that only moves when told to."""

    def __init__(self, start: datetime = START) -> None:
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now

    def set(self, moment: datetime) -> None:
        self.now = moment


# =============================================================================
# Clock and settings
# =============================================================================


@pytest.fixture
def clock():
    """Fake clock starting Monday 2026-03-02 09:00 UTC."""
    return FakeClock()


@pytest.fixture
def settings():
    return EngineSettings()


# =============================================================================
# Repositories
# =============================================================================


@pytest.fixture
def bug_repo():
    return InMemoryBugRepository()


@pytest.fixture
def diagnostic_repo():
    return InMemoryWeeklyDiagnosticRepository()


@pytest.fixture
def crash_repo():
    return InMemoryCrashRepository()


@pytest.fixture
def pattern_repo(clock):
    return InMemoryPatternRepository(clock=clock)


@pytest.fixture
def event_repo():
    return InMemoryAnalyticsEventRepository()


@pytest.fixture
def version_repo():
    return InMemoryVersionEntryRepository()


@pytest.fixture
def user_repo():
    return InMemoryUserRepository()


@pytest.fixture
async def user(user_repo, clock):
    """A persisted user profile with no history."""
    profile = UserProfile(created_at=clock(), updated_at=clock())
    await user_repo.save(profile)
    return profile


@pytest.fixture
def user_id(user):
    return user.id


# =============================================================================
# Builders
# =============================================================================


@pytest.fixture
def make_event():
    """Build an AnalyticsEvent whose weekday/hour come from ``at``."""

    def _make(
        user_id: uuid.UUID,
        event_type: EventType,
        at: datetime,
        bug_id: uuid.UUID | None = None,
    ) -> AnalyticsEvent:
        return AnalyticsEvent.record(user_id, event_type, at, bug_id=bug_id)

    return _make


@pytest.fixture
def make_diagnostic():
    """Build a WeeklyDiagnostic; every response shares ``context``."""

    def _make(
        user_id: uuid.UUID,
        week_starting: date,
        responses: dict[uuid.UUID, BugIntensity],
        context: EventContext | None = None,
    ) -> WeeklyDiagnostic:
        return WeeklyDiagnostic(
            user_id=user_id,
            week_starting=week_starting,
            responses=[
                BugDiagnosticResponse(bug_id=b, intensity=i, primary_context=context)
                for b, i in responses.items()
            ],
            completed_at=datetime.combine(week_starting, datetime.min.time(), tzinfo=UTC),
        )

    return _make


@pytest.fixture
def weekly_series(make_diagnostic):
    """One diagnostic per week for a single bug, oldest first, ending on ``last_week``."""

    def _make(
        user_id: uuid.UUID,
        bug_id: uuid.UUID,
        intensities: list[BugIntensity],
        last_week: date = START.date(),
    ) -> list[WeeklyDiagnostic]:
        count = len(intensities)
        return [
            make_diagnostic(
                user_id,
                last_week - timedelta(weeks=count - 1 - index),
                {bug_id: intensity},
            )
            for index, intensity in enumerate(intensities)
        ]

    return _make


@pytest.fixture
def make_bug():
    def _make(
        slug: str = "need-to-be-right",
        title: str = "Need to be right",
        status: BugStatus = BugStatus.IDENTIFIED,
    ) -> Bug:
        return Bug(
            slug=slug,
            title=title,
            status=status,
            is_active=status in (BugStatus.ACTIVE, BugStatus.STABLE),
        )

    return _make
