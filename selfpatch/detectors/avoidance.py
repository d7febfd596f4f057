"""Avoidance: a bug whose fixes get skipped more often than applied."""

from __future__ import annotations

import uuid
from collections import Counter
from collections.abc import Sequence
from datetime import timedelta

from selfpatch.detectors.base import BugNames, bug_label
from selfpatch.models.entities import AnalyticsEvent, DetectedPattern, WeeklyDiagnostic
from selfpatch.models.enums import EventType, PatternSeverity, PatternType


class AvoidanceDetector:
    """
    Flags the bug with the highest skip rate over the trailing window.

    skip_rate = skipped / (skipped + applied), counted per bug over the
    ``window_days`` ending at the newest bug-linked event. Fires when a bug
    has at least ``minimum_skips`` skips and its skip rate exceeds
    ``skip_rate_threshold``.
    """

    pattern_type = PatternType.AVOIDANCE
    minimum_data_points = 4

    def __init__(
        self,
        skip_rate_threshold: float = 0.5,
        minimum_skips: int = 4,
        window_days: int = 28,
    ) -> None:
        self.skip_rate_threshold = skip_rate_threshold
        self.minimum_skips = minimum_skips
        self.window_days = window_days

    def analyze(
        self,
        events: Sequence[AnalyticsEvent],
        diagnostics: Sequence[WeeklyDiagnostic],
        user_id: uuid.UUID,
        bug_names: BugNames | None = None,
    ) -> DetectedPattern | None:
        fix_events = [
            e for e in events
            if e.bug_id is not None
            and e.event_type in (EventType.FIX_SKIPPED, EventType.FIX_APPLIED)
        ]
        if not fix_events:
            return None

        window_end = max(e.timestamp for e in fix_events)
        window_start = window_end - timedelta(days=self.window_days)

        skips: Counter[uuid.UUID] = Counter()
        applies: Counter[uuid.UUID] = Counter()
        for event in fix_events:
            if event.timestamp < window_start:
                continue
            assert event.bug_id is not None
            if event.event_type == EventType.FIX_SKIPPED:
                skips[event.bug_id] += 1
            else:
                applies[event.bug_id] += 1

        candidates: list[tuple[float, int, uuid.UUID]] = []
        for bug_id, skip_count in skips.items():
            if skip_count < self.minimum_skips:
                continue
            total = skip_count + applies[bug_id]
            skip_rate = skip_count / total
            if skip_rate > self.skip_rate_threshold:
                candidates.append((skip_rate, skip_count, bug_id))

        if not candidates:
            return None

        candidates.sort(key=lambda c: (-c[0], -c[1], str(c[2])))
        _, skip_count, bug_id = candidates[0]
        total = skip_count + applies[bug_id]

        return DetectedPattern(
            user_id=user_id,
            pattern_type=self.pattern_type,
            severity=PatternSeverity.INSIGHT,
            title="Avoidance Pattern",
            body=(
                f"You've skipped {skip_count} of {total} fixes for "
                f"{bug_label(bug_names, bug_id)}. Avoidance is often a sign "
                "the bug is particularly active."
            ),
            related_bug_ids=[bug_id],
            data_points=total,
        )
