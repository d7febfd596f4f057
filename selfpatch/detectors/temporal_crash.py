"""Temporal crash clustering: crashes bunching on a weekday or time of day."""

from __future__ import annotations

import uuid
from collections import Counter
from collections.abc import Sequence

from selfpatch.detectors.base import BugNames
from selfpatch.models.entities import AnalyticsEvent, DetectedPattern, WeeklyDiagnostic
from selfpatch.models.enums import EventType, PatternSeverity, PatternType

# ISO weekday numbering, matching AnalyticsEvent.day_of_week
DAY_NAMES: dict[int, str] = {
    1: "Monday",
    2: "Tuesday",
    3: "Wednesday",
    4: "Thursday",
    5: "Friday",
    6: "Saturday",
    7: "Sunday",
}


def time_bucket(hour: int) -> str:
    """Map an hour (0-23) to night, morning, afternoon or evening."""
    if 6 <= hour < 12:
        return "morning"
    if 12 <= hour < 18:
        return "afternoon"
    if 18 <= hour < 24:
        return "evening"
    return "night"


class TemporalCrashDetector:
    """
    Looks for crashes concentrated on one weekday (alert) or, failing that,
    in one part of the day (insight).
    """

    pattern_type = PatternType.TEMPORAL_CRASH
    minimum_data_points = 3

    def __init__(
        self,
        day_threshold: float = 0.4,
        time_threshold: float = 0.5,
        minimum_crashes: int = 3,
    ) -> None:
        self.day_threshold = day_threshold
        self.time_threshold = time_threshold
        self.minimum_crashes = minimum_crashes

    def analyze(
        self,
        events: Sequence[AnalyticsEvent],
        diagnostics: Sequence[WeeklyDiagnostic],
        user_id: uuid.UUID,
        bug_names: BugNames | None = None,
    ) -> DetectedPattern | None:
        crashes = [e for e in events if e.event_type == EventType.CRASH_LOGGED]
        if len(crashes) < self.minimum_crashes:
            return None

        return (
            self._detect_day_pattern(crashes, user_id, bug_names)
            or self._detect_time_pattern(crashes, user_id)
        )

    def _detect_day_pattern(
        self,
        crashes: list[AnalyticsEvent],
        user_id: uuid.UUID,
        bug_names: BugNames | None,
    ) -> DetectedPattern | None:
        total = len(crashes)
        day_counts = Counter(e.day_of_week for e in crashes)

        for day, count in sorted(day_counts.items(), key=lambda item: (-item[1], item[0])):
            if count < self.minimum_crashes or count / total <= self.day_threshold:
                continue

            day_name = DAY_NAMES.get(day, "Unknown")
            related = [e.bug_id for e in crashes if e.day_of_week == day and e.bug_id]
            names = [bug_names[b] for b in dict.fromkeys(related) if bug_names and b in bug_names]
            bug_context = f" Related: {', '.join(names)}." if names else ""

            return DetectedPattern(
                user_id=user_id,
                pattern_type=self.pattern_type,
                severity=PatternSeverity.ALERT,
                title=f"{day_name}s are rough",
                body=(
                    f"{count} of {total} crashes happened on {day_name}s. "
                    f"Something about that day gets you.{bug_context}"
                ),
                related_bug_ids=related,
                data_points=total,
            )
        return None

    def _detect_time_pattern(
        self,
        crashes: list[AnalyticsEvent],
        user_id: uuid.UUID,
    ) -> DetectedPattern | None:
        total = len(crashes)
        bucket_counts = Counter(time_bucket(e.hour_of_day) for e in crashes)

        for bucket, count in sorted(bucket_counts.items(), key=lambda item: (-item[1], item[0])):
            if count < self.minimum_crashes or count / total <= self.time_threshold:
                continue

            related = [
                e.bug_id for e in crashes
                if time_bucket(e.hour_of_day) == bucket and e.bug_id
            ]
            return DetectedPattern(
                user_id=user_id,
                pattern_type=self.pattern_type,
                severity=PatternSeverity.INSIGHT,
                title=f"{bucket.capitalize()} slips",
                body=f"{count} of {total} crashes in the {bucket}. Your defenses drop then.",
                related_bug_ids=related,
                data_points=total,
            )
        return None
