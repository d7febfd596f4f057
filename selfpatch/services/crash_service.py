"""
Crash Service for SelfPatch.

Logs relapses, marks recoveries ("reboots") and keeps the analytics log in
step. After a crash is logged the bug lifecycle is re-checked so a crash
spike on a resolved bug reopens it; a failure in that follow-up is logged
and never fails the crash itself.
"""

from __future__ import annotations

import uuid

import structlog

from selfpatch.lib.clock import Clock, utc_now
from selfpatch.models.entities import AnalyticsEvent, Crash
from selfpatch.models.enums import EventType
from selfpatch.repositories.protocols import (
    AnalyticsEventRepository,
    CrashRepository,
    UserRepository,
)
from selfpatch.services.bug_lifecycle import BugLifecycleService

logger = structlog.get_logger(__name__)


class CrashService:
    """Crash logging and reboot bookkeeping."""

    def __init__(
        self,
        crashes: CrashRepository,
        events: AnalyticsEventRepository,
        users: UserRepository,
        lifecycle: BugLifecycleService | None = None,
        clock: Clock | None = None,
    ) -> None:
        self.crashes = crashes
        self.events = events
        self.users = users
        self.lifecycle = lifecycle
        self._clock = clock or utc_now

    async def log_crash(
        self,
        user_id: uuid.UUID,
        bug_id: uuid.UUID | None = None,
        note: str | None = None,
    ) -> Crash | None:
        """
        Persist a crash and its crash_logged event.

        Returns:
            The saved crash, or None when the user does not exist
        """
        if await self.users.get_by_id(user_id) is None:
            return None

        now = self._clock()
        crash = Crash(
            user_id=user_id,
            bug_id=bug_id,
            note=note,
            crashed_at=now,
            created_at=now,
            updated_at=now,
        )
        await self.crashes.save(crash)
        await self.events.save(
            AnalyticsEvent.record(user_id, EventType.CRASH_LOGGED, now, bug_id=bug_id)
        )
        logger.info("crash.logged", has_bug=bug_id is not None)

        await self._run_lifecycle_checks(user_id)
        return crash

    async def reboot(self, crash_id: uuid.UUID) -> Crash | None:
        """Mark a crash as recovered from; repeat calls keep the first timestamp."""
        crash = await self.crashes.get_by_id(crash_id)
        if crash is None:
            return None
        if crash.rebooted_at is not None:
            return crash

        now = self._clock()
        crash.rebooted_at = now
        crash.updated_at = now
        await self.crashes.save(crash)
        await self.events.save(
            AnalyticsEvent.record(crash.user_id, EventType.CRASH_REBOOTED, now, bug_id=crash.bug_id)
        )
        logger.info("crash.rebooted", crash_id=str(crash.id))
        return crash

    async def get_unrebooted(self, user_id: uuid.UUID) -> list[Crash]:
        return await self.crashes.get_unrebooted(user_id)

    async def _run_lifecycle_checks(self, user_id: uuid.UUID) -> None:
        if self.lifecycle is None:
            return
        try:
            await self.lifecycle.run_lifecycle_checks(user_id)
        except Exception:
            logger.exception("crash.lifecycle_check_failed")
