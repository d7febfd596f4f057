"""
In-memory repositories for SelfPatch.

Each repository is an arena of entities keyed by id. Entities are deep-copied
on the way in and on the way out, so callers get the same load -> mutate ->
save semantics a database gives them and can never mutate stored state by
holding on to a reference. Writes are last-write-wins.

Used by the test-suite and by callers that embed the engine without a
database.
"""

from __future__ import annotations

import copy
import uuid
from datetime import date, timedelta
from typing import TypeVar

from selfpatch.lib.clock import Clock, utc_now
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

T = TypeVar("T")


def _detached(entity: T) -> T:
    return copy.deepcopy(entity)


class InMemoryBugRepository:
    """Bug arena; soft-deleted bugs are hidden."""

    def __init__(self) -> None:
        self._bugs: dict[uuid.UUID, Bug] = {}

    async def get_by_id(self, bug_id: uuid.UUID) -> Bug | None:
        bug = self._bugs.get(bug_id)
        if bug is None or bug.deleted_at is not None:
            return None
        return _detached(bug)

    async def get_all(self) -> list[Bug]:
        return [_detached(b) for b in self._bugs.values() if b.deleted_at is None]

    async def get_active(self) -> list[Bug]:
        return [b for b in await self.get_all() if b.is_active]

    async def save(self, bug: Bug) -> None:
        self._bugs[bug.id] = _detached(bug)


class InMemoryWeeklyDiagnosticRepository:
    """Weekly diagnostic arena, ordered by week anchor on read."""

    def __init__(self) -> None:
        self._diagnostics: dict[uuid.UUID, WeeklyDiagnostic] = {}

    async def get_for_user(self, user_id: uuid.UUID) -> list[WeeklyDiagnostic]:
        rows = [
            d for d in self._diagnostics.values()
            if d.user_id == user_id and d.deleted_at is None
        ]
        rows.sort(key=lambda d: (d.week_starting, d.completed_at), reverse=True)
        return [_detached(d) for d in rows]

    async def get_recent(self, user_id: uuid.UUID, limit: int) -> list[WeeklyDiagnostic]:
        return (await self.get_for_user(user_id))[:limit]

    async def get_for_week(
        self,
        week_starting: date,
        user_id: uuid.UUID,
    ) -> WeeklyDiagnostic | None:
        week_end = week_starting + timedelta(days=7)
        for diagnostic in await self.get_for_user(user_id):
            if week_starting <= diagnostic.week_starting < week_end:
                return diagnostic
        return None

    async def save(self, diagnostic: WeeklyDiagnostic) -> None:
        self._diagnostics[diagnostic.id] = _detached(diagnostic)


class InMemoryCrashRepository:
    """Crash arena."""

    def __init__(self) -> None:
        self._crashes: dict[uuid.UUID, Crash] = {}

    async def get_for_user(self, user_id: uuid.UUID) -> list[Crash]:
        rows = [
            c for c in self._crashes.values()
            if c.user_id == user_id and c.deleted_at is None
        ]
        rows.sort(key=lambda c: c.crashed_at)
        return [_detached(c) for c in rows]

    async def get_by_id(self, crash_id: uuid.UUID) -> Crash | None:
        crash = self._crashes.get(crash_id)
        if crash is None or crash.deleted_at is not None:
            return None
        return _detached(crash)

    async def get_unrebooted(self, user_id: uuid.UUID) -> list[Crash]:
        crashes = [c for c in await self.get_for_user(user_id) if c.rebooted_at is None]
        return list(reversed(crashes))

    async def save(self, crash: Crash) -> None:
        self._crashes[crash.id] = _detached(crash)


class InMemoryPatternRepository:
    """
    Detected pattern arena.

    Args:
        clock: Time source for the cooldown lookback in get_recent_by_type
    """

    def __init__(self, clock: Clock | None = None) -> None:
        self._patterns: dict[uuid.UUID, DetectedPattern] = {}
        self._clock = clock or utc_now

    async def get_for_user(self, user_id: uuid.UUID) -> list[DetectedPattern]:
        rows = [
            p for p in self._patterns.values()
            if p.user_id == user_id and p.deleted_at is None
        ]
        rows.sort(key=lambda p: p.detected_at)
        return [_detached(p) for p in rows]

    async def get_recent_by_type(
        self,
        pattern_type: PatternType,
        user_id: uuid.UUID,
        within_days: int,
    ) -> list[DetectedPattern]:
        cutoff = self._clock() - timedelta(days=within_days)
        return [
            p for p in await self.get_for_user(user_id)
            if p.pattern_type == pattern_type and p.detected_at >= cutoff
        ]

    async def get_unviewed(self, user_id: uuid.UUID) -> list[DetectedPattern]:
        return [p for p in await self.get_for_user(user_id) if p.viewed_at is None]

    async def get_by_id(self, pattern_id: uuid.UUID) -> DetectedPattern | None:
        pattern = self._patterns.get(pattern_id)
        if pattern is None or pattern.deleted_at is not None:
            return None
        return _detached(pattern)

    async def save(self, pattern: DetectedPattern) -> None:
        self._patterns[pattern.id] = _detached(pattern)


class InMemoryAnalyticsEventRepository:
    """Append-only event log; saving an existing id overwrites it."""

    def __init__(self) -> None:
        self._events: dict[uuid.UUID, AnalyticsEvent] = {}

    async def get_for_user(self, user_id: uuid.UUID) -> list[AnalyticsEvent]:
        rows = [e for e in self._events.values() if e.user_id == user_id]
        rows.sort(key=lambda e: e.timestamp)
        return [_detached(e) for e in rows]

    async def save(self, event: AnalyticsEvent) -> None:
        self._events[event.id] = _detached(event)


class InMemoryVersionEntryRepository:
    """Version history arena."""

    def __init__(self) -> None:
        self._entries: dict[uuid.UUID, VersionEntry] = {}

    async def get_for_user(self, user_id: uuid.UUID) -> list[VersionEntry]:
        rows = [
            e for e in self._entries.values()
            if e.user_id == user_id and e.deleted_at is None
        ]
        rows.sort(key=lambda e: e.created_at)
        return [_detached(e) for e in rows]

    async def get_latest(self, user_id: uuid.UUID) -> VersionEntry | None:
        entries = await self.get_for_user(user_id)
        return entries[-1] if entries else None

    async def save(self, entry: VersionEntry) -> None:
        self._entries[entry.id] = _detached(entry)


class InMemoryUserRepository:
    """User profile store; ``get()`` returns the first profile saved."""

    def __init__(self) -> None:
        self._users: dict[uuid.UUID, UserProfile] = {}

    async def get(self) -> UserProfile | None:
        for user in self._users.values():
            return _detached(user)
        return None

    async def get_by_id(self, user_id: uuid.UUID) -> UserProfile | None:
        user = self._users.get(user_id)
        return _detached(user) if user is not None else None

    async def save(self, user: UserProfile) -> None:
        self._users[user.id] = _detached(user)
