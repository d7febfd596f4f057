"""
Pattern Surfacing Service for SelfPatch.

Decides when a detected pattern interrupts the daily flow: alerts before the
day's fix, insights after its outcome, and never more than one pattern per
session.
"""

from __future__ import annotations

import uuid

import structlog

from selfpatch.lib.clock import Clock, utc_now
from selfpatch.models.entities import AnalyticsEvent, DetectedPattern
from selfpatch.models.enums import EventType, PatternSeverity
from selfpatch.repositories.protocols import AnalyticsEventRepository, UserRepository
from selfpatch.services.diagnostic_engine import DiagnosticEngine

logger = structlog.get_logger(__name__)


class PatternSurfacingService:
    """Per-session gate in front of DiagnosticEngine.get_pattern_to_surface."""

    def __init__(
        self,
        engine: DiagnosticEngine,
        events: AnalyticsEventRepository,
        users: UserRepository,
        clock: Clock | None = None,
    ) -> None:
        self.engine = engine
        self.events = events
        self.users = users
        self._clock = clock or utc_now
        self._session_pattern_shown = False

    @property
    def session_pattern_shown(self) -> bool:
        return self._session_pattern_shown

    def reset_session(self) -> None:
        self._session_pattern_shown = False

    async def should_show_pattern_before_fix(self, user_id: uuid.UUID) -> DetectedPattern | None:
        """The surfaced pattern, if it is an alert and nothing was shown yet."""
        return await self._candidate(user_id, PatternSeverity.ALERT)

    async def should_show_pattern_after_fix(self, user_id: uuid.UUID) -> DetectedPattern | None:
        """The surfaced pattern, if it is an insight and nothing was shown yet."""
        return await self._candidate(user_id, PatternSeverity.INSIGHT)

    async def mark_pattern_shown(self, user_id: uuid.UUID, pattern_id: uuid.UUID) -> None:
        self._session_pattern_shown = True
        await self.engine.mark_pattern_viewed(pattern_id)

        now = self._clock()
        user = await self.users.get_by_id(user_id)
        if user is not None:
            user.last_pattern_shown_at = now
            user.updated_at = now
            await self.users.save(user)

        await self.events.save(AnalyticsEvent.record(user_id, EventType.PATTERN_VIEWED, now))
        logger.info("surfacing.pattern_shown", pattern_id=str(pattern_id))

    async def dismiss_pattern(self, user_id: uuid.UUID, pattern_id: uuid.UUID) -> None:
        await self.engine.dismiss_pattern(pattern_id)
        await self.events.save(
            AnalyticsEvent.record(user_id, EventType.PATTERN_DISMISSED, self._clock())
        )
        logger.info("surfacing.pattern_dismissed", pattern_id=str(pattern_id))

    async def _candidate(
        self,
        user_id: uuid.UUID,
        severity: PatternSeverity,
    ) -> DetectedPattern | None:
        if self.session_pattern_shown:
            return None
        pattern = await self.engine.get_pattern_to_surface(user_id)
        if pattern is None or pattern.severity != severity:
            return None
        return pattern
