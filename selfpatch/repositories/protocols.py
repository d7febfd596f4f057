"""
Repository Protocols for SelfPatch.

These are the storage contracts the engine consumes. Services depend only on
these protocols; ``selfpatch.repositories.memory`` and
``selfpatch.repositories.sql`` provide implementations.

Contract shared by all repositories:
- Lookups by id return None when nothing matches (absence is not an error).
- Soft-deleted rows (deleted_at set) are invisible to every query.
- Returned entities are detached copies; mutate them and pass them to save().
- I/O failures propagate to the caller; nothing here retries.
"""

from __future__ import annotations

import uuid
from datetime import date
from typing import Protocol

from selfpatch.models.entities import (
    AnalyticsEvent,
    Bug,
    Crash,
    DetectedPattern,
    UserProfile,
    VersionEntry,
    WeeklyDiagnostic,
)
from selfpatch.models.enums import PatternType


class BugRepository(Protocol):
    """Durable storage for tracked bugs."""

    async def get_by_id(self, bug_id: uuid.UUID) -> Bug | None:
        ...

    async def get_all(self) -> list[Bug]:
        ...

    async def get_active(self) -> list[Bug]:
        """Bugs with is_active set."""
        ...

    async def save(self, bug: Bug) -> None:
        ...


class WeeklyDiagnosticRepository(Protocol):
    """Durable storage for weekly self-reports."""

    async def get_for_user(self, user_id: uuid.UUID) -> list[WeeklyDiagnostic]:
        """All diagnostics for the user, most recent week first."""
        ...

    async def get_recent(self, user_id: uuid.UUID, limit: int) -> list[WeeklyDiagnostic]:
        """At most ``limit`` diagnostics, most recent week first."""
        ...

    async def get_for_week(
        self,
        week_starting: date,
        user_id: uuid.UUID,
    ) -> WeeklyDiagnostic | None:
        """The diagnostic whose week anchor falls in [week_starting, week_starting + 7d)."""
        ...

    async def save(self, diagnostic: WeeklyDiagnostic) -> None:
        ...


class CrashRepository(Protocol):
    """Durable storage for crashes."""

    async def get_for_user(self, user_id: uuid.UUID) -> list[Crash]:
        ...

    async def get_by_id(self, crash_id: uuid.UUID) -> Crash | None:
        ...

    async def get_unrebooted(self, user_id: uuid.UUID) -> list[Crash]:
        """Crashes without rebooted_at, most recent first."""
        ...

    async def save(self, crash: Crash) -> None:
        ...


class PatternRepository(Protocol):
    """Durable storage for detected patterns."""

    async def get_for_user(self, user_id: uuid.UUID) -> list[DetectedPattern]:
        ...

    async def get_recent_by_type(
        self,
        pattern_type: PatternType,
        user_id: uuid.UUID,
        within_days: int,
    ) -> list[DetectedPattern]:
        """Patterns of ``pattern_type`` detected at or after now - within_days."""
        ...

    async def get_unviewed(self, user_id: uuid.UUID) -> list[DetectedPattern]:
        ...

    async def get_by_id(self, pattern_id: uuid.UUID) -> DetectedPattern | None:
        ...

    async def save(self, pattern: DetectedPattern) -> None:
        ...


class AnalyticsEventRepository(Protocol):
    """Append-only analytics event log."""

    async def get_for_user(self, user_id: uuid.UUID) -> list[AnalyticsEvent]:
        """All events for the user, oldest first."""
        ...

    async def save(self, event: AnalyticsEvent) -> None:
        ...


class VersionEntryRepository(Protocol):
    """Version history; entries are never rewritten."""

    async def get_for_user(self, user_id: uuid.UUID) -> list[VersionEntry]:
        """All entries for the user, oldest first."""
        ...

    async def get_latest(self, user_id: uuid.UUID) -> VersionEntry | None:
        ...

    async def save(self, entry: VersionEntry) -> None:
        ...


class UserRepository(Protocol):
    """Storage for the user profile singleton."""

    async def get(self) -> UserProfile | None:
        """The local user, if one exists."""
        ...

    async def get_by_id(self, user_id: uuid.UUID) -> UserProfile | None:
        ...

    async def save(self, user: UserProfile) -> None:
        ...
