"""
SQLAlchemy repositories for SelfPatch.

Async implementations of the repository protocols on top of an
``AsyncSession``. Rows live in ``selfpatch.models.tables``; entities are
converted on every read and write, so the session identity map never leaks
into services.

Every public method commits its own unit of work. SQLAlchemy failures are
re-raised as ``RepositoryError`` after rolling the session back.

Usage:
    engine = create_async_engine("sqlite+aiosqlite:///selfpatch.db")
    await create_schema(engine)
    async with async_sessionmaker(engine)() as session:
        bugs = SqlBugRepository(session)
"""

from __future__ import annotations

import uuid
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import UTC, date, datetime, timedelta
from typing import Any

import structlog
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession

from selfpatch.lib.clock import Clock, utc_now
from selfpatch.lib.exceptions import RepositoryError
from selfpatch.models.base import Base
from selfpatch.models.entities import (
    AnalyticsEvent,
    Bug,
    BugDiagnosticResponse,
    Crash,
    DetectedPattern,
    UserProfile,
    VersionEntry,
    WeeklyDiagnostic,
)
from selfpatch.models.enums import (
    BugIntensity,
    BugStatus,
    EventContext,
    EventType,
    PatternSeverity,
    PatternType,
    VersionChangeType,
)
from selfpatch.models.tables import (
    AnalyticsEventRow,
    BugRow,
    CrashRow,
    DetectedPatternRow,
    UserProfileRow,
    VersionEntryRow,
    WeeklyDiagnosticRow,
)

logger = structlog.get_logger(__name__)


async def create_schema(engine: AsyncEngine) -> None:
    """Create all SelfPatch tables that do not exist yet."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


# =============================================================================
# Conversion helpers
# =============================================================================

def _aware(value: datetime | None) -> datetime | None:
    """Re-attach UTC to datetimes read back from backends that drop tzinfo."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def _required_aware(value: datetime) -> datetime:
    result = _aware(value)
    assert result is not None
    return result


def _bug_from_row(row: BugRow) -> Bug:
    return Bug(
        id=row.id,
        slug=row.slug,
        title=row.title,
        description=row.description,
        status=BugStatus(row.status),
        is_active=row.is_active,
        activated_at=_aware(row.activated_at),
        stable_at=_aware(row.stable_at),
        resolved_at=_aware(row.resolved_at),
        created_at=_required_aware(row.created_at),
        updated_at=_required_aware(row.updated_at),
        deleted_at=_aware(row.deleted_at),
    )


def _bug_values(bug: Bug) -> dict[str, Any]:
    return {
        "id": bug.id,
        "slug": bug.slug,
        "title": bug.title,
        "description": bug.description,
        "status": bug.status.value,
        "is_active": bug.is_active,
        "activated_at": _aware(bug.activated_at),
        "stable_at": _aware(bug.stable_at),
        "resolved_at": _aware(bug.resolved_at),
        "created_at": _aware(bug.created_at),
        "updated_at": _aware(bug.updated_at),
        "deleted_at": _aware(bug.deleted_at),
    }


def _event_from_row(row: AnalyticsEventRow) -> AnalyticsEvent:
    return AnalyticsEvent(
        id=row.id,
        user_id=row.user_id,
        event_type=EventType(row.event_type),
        bug_id=row.bug_id,
        fix_id=row.fix_id,
        context=EventContext(row.context) if row.context else None,
        day_of_week=row.day_of_week,
        hour_of_day=row.hour_of_day,
        timestamp=_required_aware(row.timestamp),
    )


def _event_values(event: AnalyticsEvent) -> dict[str, Any]:
    return {
        "id": event.id,
        "user_id": event.user_id,
        "event_type": event.event_type.value,
        "bug_id": event.bug_id,
        "fix_id": event.fix_id,
        "context": event.context.value if event.context else None,
        "day_of_week": event.day_of_week,
        "hour_of_day": event.hour_of_day,
        "timestamp": _aware(event.timestamp),
    }


def _response_to_json(response: BugDiagnosticResponse) -> dict[str, Any]:
    return {
        "bug_id": str(response.bug_id),
        "intensity": response.intensity.value,
        "primary_context": response.primary_context.value if response.primary_context else None,
    }


def _response_from_json(data: dict[str, Any]) -> BugDiagnosticResponse:
    context = data.get("primary_context")
    return BugDiagnosticResponse(
        bug_id=uuid.UUID(data["bug_id"]),
        intensity=BugIntensity(data["intensity"]),
        primary_context=EventContext(context) if context else None,
    )


def _diagnostic_from_row(row: WeeklyDiagnosticRow) -> WeeklyDiagnostic:
    return WeeklyDiagnostic(
        id=row.id,
        user_id=row.user_id,
        week_starting=row.week_starting,
        responses=[_response_from_json(item) for item in row.responses or []],
        completed_at=_required_aware(row.completed_at),
        deleted_at=_aware(row.deleted_at),
    )


def _diagnostic_values(diagnostic: WeeklyDiagnostic) -> dict[str, Any]:
    return {
        "id": diagnostic.id,
        "user_id": diagnostic.user_id,
        "week_starting": diagnostic.week_starting,
        "responses": [_response_to_json(r) for r in diagnostic.responses],
        "completed_at": _aware(diagnostic.completed_at),
        "deleted_at": _aware(diagnostic.deleted_at),
    }


def _crash_from_row(row: CrashRow) -> Crash:
    return Crash(
        id=row.id,
        user_id=row.user_id,
        bug_id=row.bug_id,
        note=row.note,
        crashed_at=_required_aware(row.crashed_at),
        rebooted_at=_aware(row.rebooted_at),
        created_at=_required_aware(row.created_at),
        updated_at=_required_aware(row.updated_at),
        deleted_at=_aware(row.deleted_at),
    )


def _crash_values(crash: Crash) -> dict[str, Any]:
    return {
        "id": crash.id,
        "user_id": crash.user_id,
        "bug_id": crash.bug_id,
        "note": crash.note,
        "crashed_at": _aware(crash.crashed_at),
        "rebooted_at": _aware(crash.rebooted_at),
        "created_at": _aware(crash.created_at),
        "updated_at": _aware(crash.updated_at),
        "deleted_at": _aware(crash.deleted_at),
    }


def _pattern_from_row(row: DetectedPatternRow) -> DetectedPattern:
    return DetectedPattern(
        id=row.id,
        user_id=row.user_id,
        pattern_type=PatternType(row.pattern_type),
        severity=PatternSeverity(row.severity),
        title=row.title,
        body=row.body,
        related_bug_ids=[uuid.UUID(value) for value in row.related_bug_ids or []],
        data_points=row.data_points,
        detected_at=_required_aware(row.detected_at),
        viewed_at=_aware(row.viewed_at),
        dismissed_at=_aware(row.dismissed_at),
        deleted_at=_aware(row.deleted_at),
    )


def _pattern_values(pattern: DetectedPattern) -> dict[str, Any]:
    return {
        "id": pattern.id,
        "user_id": pattern.user_id,
        "pattern_type": pattern.pattern_type.value,
        "severity": pattern.severity.value,
        "title": pattern.title,
        "body": pattern.body,
        "related_bug_ids": [str(bug_id) for bug_id in pattern.related_bug_ids],
        "data_points": pattern.data_points,
        "detected_at": _aware(pattern.detected_at),
        "viewed_at": _aware(pattern.viewed_at),
        "dismissed_at": _aware(pattern.dismissed_at),
        "deleted_at": _aware(pattern.deleted_at),
    }


def _user_from_row(row: UserProfileRow) -> UserProfile:
    return UserProfile(
        id=row.id,
        current_streak=row.current_streak,
        longest_streak=row.longest_streak,
        last_engagement_date=row.last_engagement_date,
        streak_freeze_available=row.streak_freeze_available,
        last_freeze_reset_date=row.last_freeze_reset_date,
        last_diagnostics_run_at=_aware(row.last_diagnostics_run_at),
        last_pattern_shown_at=_aware(row.last_pattern_shown_at),
        current_version=row.current_version,
        created_at=_required_aware(row.created_at),
        updated_at=_required_aware(row.updated_at),
    )


def _user_values(user: UserProfile) -> dict[str, Any]:
    return {
        "id": user.id,
        "current_streak": user.current_streak,
        "longest_streak": user.longest_streak,
        "last_engagement_date": user.last_engagement_date,
        "streak_freeze_available": user.streak_freeze_available,
        "last_freeze_reset_date": user.last_freeze_reset_date,
        "last_diagnostics_run_at": _aware(user.last_diagnostics_run_at),
        "last_pattern_shown_at": _aware(user.last_pattern_shown_at),
        "current_version": user.current_version,
        "created_at": _aware(user.created_at),
        "updated_at": _aware(user.updated_at),
    }


def _version_from_row(row: VersionEntryRow) -> VersionEntry:
    return VersionEntry(
        id=row.id,
        user_id=row.user_id,
        version=row.version,
        change_type=VersionChangeType(row.change_type),
        description=row.description,
        created_at=_required_aware(row.created_at),
        deleted_at=_aware(row.deleted_at),
    )


def _version_values(entry: VersionEntry) -> dict[str, Any]:
    return {
        "id": entry.id,
        "user_id": entry.user_id,
        "version": entry.version,
        "change_type": entry.change_type.value,
        "description": entry.description,
        "created_at": _aware(entry.created_at),
        "deleted_at": _aware(entry.deleted_at),
    }


# =============================================================================
# Base repository
# =============================================================================

class _SqlRepository:
    """Shared session handling: error translation and upserts."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    @asynccontextmanager
    async def _unit_of_work(self, operation: str) -> AsyncIterator[None]:
        try:
            yield
        except SQLAlchemyError as exc:
            await self.session.rollback()
            logger.error("repository.failure", operation=operation, error=str(exc))
            raise RepositoryError(f"{operation} failed: {exc}") from exc

    async def _upsert(self, row_cls: type, values: dict[str, Any], operation: str) -> None:
        async with self._unit_of_work(operation):
            row = await self.session.get(row_cls, values["id"])
            if row is None:
                self.session.add(row_cls(**values))
            else:
                for key, value in values.items():
                    setattr(row, key, value)
            await self.session.commit()

    async def _fetch(self, stmt: Any, operation: str) -> list[Any]:
        async with self._unit_of_work(operation):
            result = await self.session.execute(stmt)
            return list(result.scalars().all())


# =============================================================================
# Repositories
# =============================================================================

class SqlBugRepository(_SqlRepository):
    """Bugs table."""

    async def get_by_id(self, bug_id: uuid.UUID) -> Bug | None:
        rows = await self._fetch(
            select(BugRow).where(BugRow.id == bug_id, BugRow.deleted_at.is_(None)),
            "bugs.get_by_id",
        )
        return _bug_from_row(rows[0]) if rows else None

    async def get_all(self) -> list[Bug]:
        rows = await self._fetch(
            select(BugRow).where(BugRow.deleted_at.is_(None)).order_by(BugRow.created_at),
            "bugs.get_all",
        )
        return [_bug_from_row(row) for row in rows]

    async def get_active(self) -> list[Bug]:
        rows = await self._fetch(
            select(BugRow)
            .where(BugRow.deleted_at.is_(None), BugRow.is_active.is_(True))
            .order_by(BugRow.created_at),
            "bugs.get_active",
        )
        return [_bug_from_row(row) for row in rows]

    async def save(self, bug: Bug) -> None:
        await self._upsert(BugRow, _bug_values(bug), "bugs.save")


class SqlWeeklyDiagnosticRepository(_SqlRepository):
    """Weekly diagnostics table."""

    def _for_user(self, user_id: uuid.UUID) -> Any:
        return (
            select(WeeklyDiagnosticRow)
            .where(
                WeeklyDiagnosticRow.user_id == user_id,
                WeeklyDiagnosticRow.deleted_at.is_(None),
            )
            .order_by(
                WeeklyDiagnosticRow.week_starting.desc(),
                WeeklyDiagnosticRow.completed_at.desc(),
            )
        )

    async def get_for_user(self, user_id: uuid.UUID) -> list[WeeklyDiagnostic]:
        rows = await self._fetch(self._for_user(user_id), "weekly_diagnostics.get_for_user")
        return [_diagnostic_from_row(row) for row in rows]

    async def get_recent(self, user_id: uuid.UUID, limit: int) -> list[WeeklyDiagnostic]:
        rows = await self._fetch(
            self._for_user(user_id).limit(limit),
            "weekly_diagnostics.get_recent",
        )
        return [_diagnostic_from_row(row) for row in rows]

    async def get_for_week(
        self,
        week_starting: date,
        user_id: uuid.UUID,
    ) -> WeeklyDiagnostic | None:
        rows = await self._fetch(
            self._for_user(user_id).where(
                WeeklyDiagnosticRow.week_starting >= week_starting,
                WeeklyDiagnosticRow.week_starting < week_starting + timedelta(days=7),
            ),
            "weekly_diagnostics.get_for_week",
        )
        return _diagnostic_from_row(rows[0]) if rows else None

    async def save(self, diagnostic: WeeklyDiagnostic) -> None:
        await self._upsert(
            WeeklyDiagnosticRow,
            _diagnostic_values(diagnostic),
            "weekly_diagnostics.save",
        )


class SqlCrashRepository(_SqlRepository):
    """Crashes table."""

    async def get_for_user(self, user_id: uuid.UUID) -> list[Crash]:
        rows = await self._fetch(
            select(CrashRow)
            .where(CrashRow.user_id == user_id, CrashRow.deleted_at.is_(None))
            .order_by(CrashRow.crashed_at),
            "crashes.get_for_user",
        )
        return [_crash_from_row(row) for row in rows]

    async def get_by_id(self, crash_id: uuid.UUID) -> Crash | None:
        rows = await self._fetch(
            select(CrashRow).where(CrashRow.id == crash_id, CrashRow.deleted_at.is_(None)),
            "crashes.get_by_id",
        )
        return _crash_from_row(rows[0]) if rows else None

    async def get_unrebooted(self, user_id: uuid.UUID) -> list[Crash]:
        rows = await self._fetch(
            select(CrashRow)
            .where(
                CrashRow.user_id == user_id,
                CrashRow.deleted_at.is_(None),
                CrashRow.rebooted_at.is_(None),
            )
            .order_by(CrashRow.crashed_at.desc()),
            "crashes.get_unrebooted",
        )
        return [_crash_from_row(row) for row in rows]

    async def save(self, crash: Crash) -> None:
        await self._upsert(CrashRow, _crash_values(crash), "crashes.save")


class SqlPatternRepository(_SqlRepository):
    """
    Detected patterns table.

    Args:
        session: Async database session
        clock: Time source for the cooldown lookback in get_recent_by_type
    """

    def __init__(self, session: AsyncSession, clock: Clock | None = None) -> None:
        super().__init__(session)
        self._clock = clock or utc_now

    def _for_user(self, user_id: uuid.UUID) -> Any:
        return (
            select(DetectedPatternRow)
            .where(
                DetectedPatternRow.user_id == user_id,
                DetectedPatternRow.deleted_at.is_(None),
            )
            .order_by(DetectedPatternRow.detected_at)
        )

    async def get_for_user(self, user_id: uuid.UUID) -> list[DetectedPattern]:
        rows = await self._fetch(self._for_user(user_id), "patterns.get_for_user")
        return [_pattern_from_row(row) for row in rows]

    async def get_recent_by_type(
        self,
        pattern_type: PatternType,
        user_id: uuid.UUID,
        within_days: int,
    ) -> list[DetectedPattern]:
        cutoff = self._clock().astimezone(UTC) - timedelta(days=within_days)
        rows = await self._fetch(
            self._for_user(user_id).where(
                DetectedPatternRow.pattern_type == pattern_type.value,
                DetectedPatternRow.detected_at >= cutoff,
            ),
            "patterns.get_recent_by_type",
        )
        return [_pattern_from_row(row) for row in rows]

    async def get_unviewed(self, user_id: uuid.UUID) -> list[DetectedPattern]:
        rows = await self._fetch(
            self._for_user(user_id).where(DetectedPatternRow.viewed_at.is_(None)),
            "patterns.get_unviewed",
        )
        return [_pattern_from_row(row) for row in rows]

    async def get_by_id(self, pattern_id: uuid.UUID) -> DetectedPattern | None:
        rows = await self._fetch(
            select(DetectedPatternRow).where(
                DetectedPatternRow.id == pattern_id,
                DetectedPatternRow.deleted_at.is_(None),
            ),
            "patterns.get_by_id",
        )
        return _pattern_from_row(rows[0]) if rows else None

    async def save(self, pattern: DetectedPattern) -> None:
        await self._upsert(DetectedPatternRow, _pattern_values(pattern), "patterns.save")


class SqlAnalyticsEventRepository(_SqlRepository):
    """Analytics events table."""

    async def get_for_user(self, user_id: uuid.UUID) -> list[AnalyticsEvent]:
        rows = await self._fetch(
            select(AnalyticsEventRow)
            .where(AnalyticsEventRow.user_id == user_id)
            .order_by(AnalyticsEventRow.timestamp),
            "analytics_events.get_for_user",
        )
        return [_event_from_row(row) for row in rows]

    async def save(self, event: AnalyticsEvent) -> None:
        await self._upsert(AnalyticsEventRow, _event_values(event), "analytics_events.save")


class SqlVersionEntryRepository(_SqlRepository):
    """Version entries table."""

    def _for_user(self, user_id: uuid.UUID) -> Any:
        return select(VersionEntryRow).where(
            VersionEntryRow.user_id == user_id,
            VersionEntryRow.deleted_at.is_(None),
        )

    async def get_for_user(self, user_id: uuid.UUID) -> list[VersionEntry]:
        rows = await self._fetch(
            self._for_user(user_id).order_by(VersionEntryRow.created_at),
            "version_entries.get_for_user",
        )
        return [_version_from_row(row) for row in rows]

    async def get_latest(self, user_id: uuid.UUID) -> VersionEntry | None:
        rows = await self._fetch(
            self._for_user(user_id).order_by(VersionEntryRow.created_at.desc()).limit(1),
            "version_entries.get_latest",
        )
        return _version_from_row(rows[0]) if rows else None

    async def save(self, entry: VersionEntry) -> None:
        await self._upsert(VersionEntryRow, _version_values(entry), "version_entries.save")


class SqlUserRepository(_SqlRepository):
    """User profiles table."""

    async def get(self) -> UserProfile | None:
        rows = await self._fetch(
            select(UserProfileRow).order_by(UserProfileRow.created_at).limit(1),
            "user_profiles.get",
        )
        return _user_from_row(rows[0]) if rows else None

    async def get_by_id(self, user_id: uuid.UUID) -> UserProfile | None:
        rows = await self._fetch(
            select(UserProfileRow).where(UserProfileRow.id == user_id),
            "user_profiles.get_by_id",
        )
        return _user_from_row(rows[0]) if rows else None

    async def save(self, user: UserProfile) -> None:
        await self._upsert(UserProfileRow, _user_values(user), "user_profiles.save")
