"""Contextual spike: one context where bugs are reported loud most of the time."""

from __future__ import annotations

import uuid
from collections import Counter
from collections.abc import Sequence

from selfpatch.detectors.base import BugNames
from selfpatch.models.entities import AnalyticsEvent, DetectedPattern, WeeklyDiagnostic
from selfpatch.models.enums import BugIntensity, EventContext, PatternSeverity, PatternType


class ContextSpikeDetector:
    """Compares loud responses to all responses, per primary context."""

    pattern_type = PatternType.CONTEXTUAL_SPIKE
    minimum_data_points = 3

    def __init__(self, loud_rate_threshold: float = 0.6, minimum_loud: int = 3) -> None:
        self.loud_rate_threshold = loud_rate_threshold
        self.minimum_loud = minimum_loud

    def analyze(
        self,
        events: Sequence[AnalyticsEvent],
        diagnostics: Sequence[WeeklyDiagnostic],
        user_id: uuid.UUID,
        bug_names: BugNames | None = None,
    ) -> DetectedPattern | None:
        totals: Counter[EventContext] = Counter()
        louds: Counter[EventContext] = Counter()
        loud_bugs: dict[EventContext, list[uuid.UUID]] = {}

        for diagnostic in diagnostics:
            for response in diagnostic.responses:
                if response.primary_context is None:
                    continue
                context = response.primary_context
                totals[context] += 1
                if response.intensity == BugIntensity.LOUD:
                    louds[context] += 1
                    loud_bugs.setdefault(context, []).append(response.bug_id)

        candidates: list[tuple[float, int, EventContext]] = []
        for context, loud_count in louds.items():
            if loud_count < self.minimum_loud:
                continue
            loud_rate = loud_count / totals[context]
            if loud_rate > self.loud_rate_threshold:
                candidates.append((loud_rate, loud_count, context))

        if not candidates:
            return None

        candidates.sort(key=lambda c: (-c[0], -c[1], c[2].value))
        _, loud_count, context = candidates[0]
        total = totals[context]

        return DetectedPattern(
            user_id=user_id,
            pattern_type=self.pattern_type,
            severity=PatternSeverity.INSIGHT,
            title=f"{context.display_name} Spike",
            body=(
                f"Your bugs run loudest in the {context.value} context. "
                f"{loud_count} of {total} responses there were 'loud'."
            ),
            related_bug_ids=sorted(set(loud_bugs[context]), key=str),
            data_points=total,
        )
