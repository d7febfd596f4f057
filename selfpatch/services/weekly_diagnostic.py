"""
Weekly Diagnostic Service for SelfPatch.

Prompts for, rotates and records the weekly self-report. At most one
diagnostic exists per user and ISO week; lifecycle checks run after each
submission with failures isolated from the submission itself.
"""

from __future__ import annotations

import uuid
from collections.abc import Sequence

import structlog

from selfpatch.config.settings import EngineSettings, get_settings
from selfpatch.lib.clock import Clock, utc_now
from selfpatch.lib.exceptions import DiagnosticAlreadySubmittedError, ValidationError
from selfpatch.models.entities import (
    AnalyticsEvent,
    Bug,
    BugDiagnosticResponse,
    WeeklyDiagnostic,
    week_anchor,
)
from selfpatch.models.enums import EventType
from selfpatch.repositories.protocols import (
    AnalyticsEventRepository,
    BugRepository,
    UserRepository,
    WeeklyDiagnosticRepository,
)
from selfpatch.services.bug_lifecycle import BugLifecycleService

logger = structlog.get_logger(__name__)

# ISO weekdays on which the diagnostic is offered
PROMPT_WEEKDAYS = frozenset({7, 1})  # Sunday, Monday


class WeeklyDiagnosticService:
    """Weekly self-report scheduling, bug rotation and submission."""

    def __init__(
        self,
        bugs: BugRepository,
        diagnostics: WeeklyDiagnosticRepository,
        events: AnalyticsEventRepository,
        users: UserRepository,
        lifecycle: BugLifecycleService | None = None,
        settings: EngineSettings | None = None,
        clock: Clock | None = None,
    ) -> None:
        self.bugs = bugs
        self.diagnostics = diagnostics
        self.events = events
        self.users = users
        self.lifecycle = lifecycle
        self.settings = settings or get_settings()
        self._clock = clock or utc_now

    async def should_prompt_diagnostic(self, user_id: uuid.UUID) -> bool:
        """True on Sunday or Monday when this week's diagnostic is still open."""
        now = self._clock()
        if now.isoweekday() not in PROMPT_WEEKDAYS:
            return False
        existing = await self.diagnostics.get_for_week(week_anchor(now), user_id)
        return existing is None

    async def get_bugs_for_diagnostic(self, user_id: uuid.UUID) -> list[Bug]:
        """
        Active bugs to ask about this week, at most ``max_bugs_per_diagnostic``.

        When there are more active bugs than slots, bugs missing from the
        recent diagnostics go first and recently assessed ones fill the rest.
        """
        limit = self.settings.max_bugs_per_diagnostic
        active = await self.bugs.get_active()
        if len(active) <= limit:
            return active

        recent = await self.diagnostics.get_recent(
            user_id, self.settings.rotation_lookback_diagnostics
        )
        recently_assessed = {bug_id for d in recent for bug_id in d.assessed_bug_ids}

        unassessed = [b for b in active if b.id not in recently_assessed]
        assessed = [b for b in active if b.id in recently_assessed]
        return (unassessed + assessed)[:limit]

    async def submit_diagnostic(
        self,
        user_id: uuid.UUID,
        responses: Sequence[BugDiagnosticResponse],
    ) -> WeeklyDiagnostic | None:
        """
        Record this week's diagnostic.

        Returns:
            The saved diagnostic, or None when the user does not exist

        Raises:
            ValidationError: If a bug appears in more than one response
            DiagnosticAlreadySubmittedError: If this week already has one
        """
        if await self.users.get_by_id(user_id) is None:
            return None

        bug_ids = [r.bug_id for r in responses]
        if len(bug_ids) != len(set(bug_ids)):
            raise ValidationError("Each bug may appear at most once in a weekly diagnostic")

        now = self._clock()
        week_starting = week_anchor(now)
        if await self.diagnostics.get_for_week(week_starting, user_id) is not None:
            raise DiagnosticAlreadySubmittedError(user_id, week_starting)

        diagnostic = WeeklyDiagnostic(
            user_id=user_id,
            week_starting=week_starting,
            responses=list(responses),
            completed_at=now,
        )
        await self.diagnostics.save(diagnostic)
        await self.events.save(AnalyticsEvent.record(user_id, EventType.WEEKLY_COMPLETED, now))
        logger.info(
            "weekly_diagnostic.submitted",
            week_starting=week_starting.isoformat(),
            responses=len(diagnostic.responses),
        )

        if self.lifecycle is not None:
            try:
                await self.lifecycle.run_lifecycle_checks(user_id)
            except Exception:
                logger.exception("weekly_diagnostic.lifecycle_check_failed")

        return diagnostic
