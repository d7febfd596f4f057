"""
Bug Intensity Provider for SelfPatch.

Answers "how loud is this bug right now?" by combining the latest weekly
self-report with the past week's crashes. A crash-heavy week overrides a
quiet report, and a bug with no data at all is shown as present: calm is
never assumed.
"""

from __future__ import annotations

import uuid
from datetime import timedelta

from selfpatch.config.settings import EngineSettings, get_settings
from selfpatch.lib.clock import Clock, utc_now
from selfpatch.models.enums import BugIntensity
from selfpatch.repositories.protocols import CrashRepository, WeeklyDiagnosticRepository

LOUD_CRASH_COUNT = 3


def combine_intensity(reported: BugIntensity | None, recent_crashes: int) -> BugIntensity:
    """
    Resolve a reported intensity and a recent crash count into one value.

    Rules, first match wins:
    - reported loud, or 3+ crashes -> loud
    - reported present, or 1-2 crashes -> present
    - reported quiet with no crashes -> quiet
    - no report and no crashes -> present
    """
    if reported == BugIntensity.LOUD or recent_crashes >= LOUD_CRASH_COUNT:
        return BugIntensity.LOUD
    if reported == BugIntensity.PRESENT or recent_crashes >= 1:
        return BugIntensity.PRESENT
    if reported == BugIntensity.QUIET:
        return BugIntensity.QUIET
    return BugIntensity.PRESENT


class BugIntensityProvider:
    """Current intensity per bug from diagnostics and crash frequency."""

    def __init__(
        self,
        diagnostics: WeeklyDiagnosticRepository,
        crashes: CrashRepository,
        settings: EngineSettings | None = None,
        clock: Clock | None = None,
    ) -> None:
        self.diagnostics = diagnostics
        self.crashes = crashes
        self.settings = settings or get_settings()
        self._clock = clock or utc_now

    async def current_intensity(self, bug_id: uuid.UUID, user_id: uuid.UUID) -> BugIntensity:
        reported = await self.latest_reported_intensity(bug_id, user_id)
        recent = await self.recent_crash_count(bug_id, user_id)
        return combine_intensity(reported, recent)

    async def latest_reported_intensity(
        self,
        bug_id: uuid.UUID,
        user_id: uuid.UUID,
    ) -> BugIntensity | None:
        """Intensity from the newest of the recent diagnostics that assessed the bug."""
        recent = await self.diagnostics.get_recent(
            user_id, self.settings.intensity_lookback_diagnostics
        )
        for diagnostic in recent:
            response = diagnostic.response_for(bug_id)
            if response is not None:
                return response.intensity
        return None

    async def recent_crash_count(self, bug_id: uuid.UUID, user_id: uuid.UUID) -> int:
        cutoff = self._clock() - timedelta(days=self.settings.intensity_crash_window_days)
        return sum(
            1 for crash in await self.crashes.get_for_user(user_id)
            if crash.bug_id == bug_id and crash.crashed_at >= cutoff
        )
