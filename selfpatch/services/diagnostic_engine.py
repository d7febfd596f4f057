"""
Diagnostic Engine for SelfPatch.

Runs the registered pattern detectors over a user's history, enforces the
per-type cooldown, persists new findings and picks the one pattern worth
surfacing next.

Cooldown rule:
- A detector is skipped while any pattern of its type detected within the
  last ``pattern_cooldown_days`` exists for the user, whether or not that
  pattern was viewed or dismissed.

Usage:
    engine = DiagnosticEngine(events, diagnostics, patterns, users, bugs=bugs)
    if await engine.should_run_diagnostics(user_id):
        new_patterns = await engine.run_diagnostics(user_id)
"""

from __future__ import annotations

import uuid
from collections.abc import Sequence
from datetime import timedelta

import structlog

from selfpatch.config.settings import EngineSettings, get_settings
from selfpatch.detectors import PatternDetector, default_detectors
from selfpatch.lib.clock import Clock, utc_now
from selfpatch.models.entities import DetectedPattern
from selfpatch.repositories.protocols import (
    AnalyticsEventRepository,
    BugRepository,
    PatternRepository,
    UserRepository,
    WeeklyDiagnosticRepository,
)

logger = structlog.get_logger(__name__)


def surfacing_key(pattern: DetectedPattern) -> tuple[int, float, str]:
    """Sort key putting the most urgent pattern first."""
    return (-pattern.severity.priority, -pattern.detected_at.timestamp(), str(pattern.id))


class DiagnosticEngine:
    """
    Orchestrates pattern detection for a single user.

    Detectors run in list order; each one is invoked only when the user has
    enough events for it and its pattern type is out of cooldown.
    """

    def __init__(
        self,
        events: AnalyticsEventRepository,
        diagnostics: WeeklyDiagnosticRepository,
        patterns: PatternRepository,
        users: UserRepository,
        bugs: BugRepository | None = None,
        detectors: Sequence[PatternDetector] | None = None,
        settings: EngineSettings | None = None,
        clock: Clock | None = None,
    ) -> None:
        self.events = events
        self.diagnostics = diagnostics
        self.patterns = patterns
        self.users = users
        self.bugs = bugs
        self.settings = settings or get_settings()
        self.detectors = list(
            detectors
            if detectors is not None
            else default_detectors(self.settings.avoidance_window_days)
        )
        self._clock = clock or utc_now

    async def run_diagnostics(self, user_id: uuid.UUID) -> list[DetectedPattern]:
        """
        Run every eligible detector and persist what they find.

        Returns:
            Newly detected patterns, in detector order
        """
        events = await self.events.get_for_user(user_id)
        diagnostics = await self.diagnostics.get_for_user(user_id)
        bug_names = {bug.id: bug.title for bug in await self.bugs.get_all()} if self.bugs else {}

        detected: list[DetectedPattern] = []
        for detector in self.detectors:
            if len(events) < detector.minimum_data_points:
                continue

            recent = await self.patterns.get_recent_by_type(
                detector.pattern_type,
                user_id,
                within_days=self.settings.pattern_cooldown_days,
            )
            if recent:
                logger.debug(
                    "diagnostics.cooldown_active",
                    pattern_type=detector.pattern_type.value,
                )
                continue

            pattern = detector.analyze(events, diagnostics, user_id, bug_names)
            if pattern is None:
                continue

            pattern.detected_at = self._clock()
            await self.patterns.save(pattern)
            detected.append(pattern)
            logger.info(
                "diagnostics.pattern_detected",
                pattern_type=pattern.pattern_type.value,
                severity=pattern.severity.value,
                data_points=pattern.data_points,
            )

        user = await self.users.get_by_id(user_id)
        if user is not None:
            now = self._clock()
            user.last_diagnostics_run_at = now
            user.updated_at = now
            await self.users.save(user)

        logger.info(
            "diagnostics.run_complete",
            events=len(events),
            diagnostics=len(diagnostics),
            detected=len(detected),
        )
        return detected

    async def should_run_diagnostics(self, user_id: uuid.UUID) -> bool:
        """True when the user exists and the last run is unset or old enough."""
        user = await self.users.get_by_id(user_id)
        if user is None:
            return False
        if user.last_diagnostics_run_at is None:
            return True
        interval = timedelta(days=self.settings.diagnostics_interval_days)
        return self._clock() - user.last_diagnostics_run_at >= interval

    async def get_pattern_to_surface(self, user_id: uuid.UUID) -> DetectedPattern | None:
        """Highest-severity unviewed pattern; newest first within a severity."""
        unviewed = await self.patterns.get_unviewed(user_id)
        if not unviewed:
            return None
        return min(unviewed, key=surfacing_key)

    async def mark_pattern_viewed(self, pattern_id: uuid.UUID) -> DetectedPattern | None:
        pattern = await self.patterns.get_by_id(pattern_id)
        if pattern is None:
            return None
        if pattern.viewed_at is None:
            pattern.viewed_at = self._clock()
            await self.patterns.save(pattern)
        return pattern

    async def dismiss_pattern(self, pattern_id: uuid.UUID) -> DetectedPattern | None:
        pattern = await self.patterns.get_by_id(pattern_id)
        if pattern is None:
            return None
        if pattern.dismissed_at is None:
            pattern.dismissed_at = self._clock()
            await self.patterns.save(pattern)
        return pattern
