"""Plateau: fixes keep getting applied but the bug doesn't quiet down."""

from __future__ import annotations

import uuid
from collections import Counter
from collections.abc import Sequence

from selfpatch.detectors.base import BugNames, bug_label, newest_first
from selfpatch.models.entities import AnalyticsEvent, DetectedPattern, WeeklyDiagnostic
from selfpatch.models.enums import BugIntensity, EventType, PatternSeverity, PatternType


class PlateauDetector:
    """
    Flags a bug with many applied fixes that was still present or loud in
    every one of the most recent ``stagnant_weeks`` diagnostics.
    """

    pattern_type = PatternType.PLATEAU
    minimum_data_points = 6

    def __init__(self, minimum_fixes_applied: int = 6, stagnant_weeks: int = 4) -> None:
        self.minimum_fixes_applied = minimum_fixes_applied
        self.stagnant_weeks = stagnant_weeks

    def analyze(
        self,
        events: Sequence[AnalyticsEvent],
        diagnostics: Sequence[WeeklyDiagnostic],
        user_id: uuid.UUID,
        bug_names: BugNames | None = None,
    ) -> DetectedPattern | None:
        if len(diagnostics) < self.stagnant_weeks:
            return None

        applied: Counter[uuid.UUID] = Counter(
            e.bug_id for e in events
            if e.event_type == EventType.FIX_APPLIED and e.bug_id is not None
        )
        recent = newest_first(diagnostics)[: self.stagnant_weeks]

        for bug_id, fix_count in sorted(applied.items(), key=lambda item: (-item[1], str(item[0]))):
            if fix_count < self.minimum_fixes_applied:
                continue
            if not all(self._still_active(d, bug_id) for d in recent):
                continue

            return DetectedPattern(
                user_id=user_id,
                pattern_type=self.pattern_type,
                severity=PatternSeverity.ALERT,
                title="Progress Plateau",
                body=(
                    f"You've applied {fix_count} fixes for {bug_label(bug_names, bug_id)}, "
                    f"but it's stayed active for {self.stagnant_weeks} weeks. "
                    "Time to try a different approach?"
                ),
                related_bug_ids=[bug_id],
                data_points=fix_count,
            )
        return None

    @staticmethod
    def _still_active(diagnostic: WeeklyDiagnostic, bug_id: uuid.UUID) -> bool:
        response = diagnostic.response_for(bug_id)
        return response is not None and response.intensity in (
            BugIntensity.PRESENT,
            BugIntensity.LOUD,
        )
