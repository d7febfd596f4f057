"""Improvement: a bug trending downward and ending quiet."""

from __future__ import annotations

import uuid
from collections.abc import Sequence

from selfpatch.detectors.base import (
    BugNames,
    assessed_bug_ids,
    assessed_intensities,
    bug_label,
    oldest_first,
)
from selfpatch.models.entities import AnalyticsEvent, DetectedPattern, WeeklyDiagnostic
from selfpatch.models.enums import BugIntensity, PatternSeverity, PatternType


def is_improving(timeline: Sequence[BugIntensity]) -> bool:
    """True when the timeline ends quiet and steps down more often than up."""
    if not timeline or timeline[-1] != BugIntensity.QUIET:
        return False

    downs = ups = 0
    for previous, current in zip(timeline, timeline[1:]):
        if current.score < previous.score:
            downs += 1
        elif current.score > previous.score:
            ups += 1
    return downs > ups


class ImprovementDetector:
    """Celebrates the first bug (in stable id order) with an improving recent trend."""

    pattern_type = PatternType.IMPROVEMENT
    minimum_data_points = 4

    def __init__(self, trend_weeks: int = 4) -> None:
        self.trend_weeks = trend_weeks

    def analyze(
        self,
        events: Sequence[AnalyticsEvent],
        diagnostics: Sequence[WeeklyDiagnostic],
        user_id: uuid.UUID,
        bug_names: BugNames | None = None,
    ) -> DetectedPattern | None:
        if len(diagnostics) < self.trend_weeks:
            return None

        ordered = oldest_first(diagnostics)
        for bug_id in assessed_bug_ids(ordered):
            timeline = assessed_intensities(ordered, bug_id)
            if len(timeline) < self.trend_weeks:
                continue
            if not is_improving(timeline[-self.trend_weeks:]):
                continue

            label = bug_label(bug_names, bug_id, fallback="This bug")
            return DetectedPattern(
                user_id=user_id,
                pattern_type=self.pattern_type,
                severity=PatternSeverity.OBSERVATION,
                title="Still running",
                body=(
                    f"{label} has quieted down over your last {self.trend_weeks} "
                    "check-ins. Whatever you're doing, it's working."
                ),
                related_bug_ids=[bug_id],
                data_points=len(timeline),
            )
        return None
