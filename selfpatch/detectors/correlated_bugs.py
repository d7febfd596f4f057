"""Correlated bugs: two bugs whose weekly intensities move together."""

from __future__ import annotations

import math
import uuid
from collections.abc import Sequence
from itertools import combinations

from selfpatch.detectors.base import BugNames, assessed_bug_ids, oldest_first
from selfpatch.models.entities import AnalyticsEvent, DetectedPattern, WeeklyDiagnostic
from selfpatch.models.enums import BugIntensity, PatternSeverity, PatternType

# Numeric encoding for correlation; a bug missing from a week counts as quiet
INTENSITY_VALUES: dict[BugIntensity, float] = {
    BugIntensity.QUIET: 0.0,
    BugIntensity.PRESENT: 0.5,
    BugIntensity.LOUD: 1.0,
}


def pearson(xs: Sequence[float], ys: Sequence[float]) -> float:
    """
    Pearson correlation coefficient of two equal-length series.

    Returns 0.0 when either series is constant or shorter than two points.
    """
    n = len(xs)
    if n < 2 or n != len(ys):
        return 0.0

    mean_x = sum(xs) / n
    mean_y = sum(ys) / n
    covariance = sum((x - mean_x) * (y - mean_y) for x, y in zip(xs, ys))
    spread_x = math.sqrt(sum((x - mean_x) ** 2 for x in xs))
    spread_y = math.sqrt(sum((y - mean_y) ** 2 for y in ys))

    denominator = spread_x * spread_y
    if denominator == 0:
        return 0.0
    return covariance / denominator


class CorrelatedBugsDetector:
    """Finds the most strongly correlated bug pair across weekly diagnostics."""

    pattern_type = PatternType.CORRELATED_BUGS
    minimum_data_points = 6

    def __init__(self, correlation_threshold: float = 0.7, minimum_diagnostics: int = 6) -> None:
        self.correlation_threshold = correlation_threshold
        self.minimum_diagnostics = minimum_diagnostics

    def analyze(
        self,
        events: Sequence[AnalyticsEvent],
        diagnostics: Sequence[WeeklyDiagnostic],
        user_id: uuid.UUID,
        bug_names: BugNames | None = None,
    ) -> DetectedPattern | None:
        if len(diagnostics) < self.minimum_diagnostics:
            return None

        ordered = oldest_first(diagnostics)
        bug_ids = assessed_bug_ids(ordered)
        if len(bug_ids) < 2:
            return None

        series: dict[uuid.UUID, list[float]] = {}
        for bug_id in bug_ids:
            values = []
            for diagnostic in ordered:
                response = diagnostic.response_for(bug_id)
                values.append(INTENSITY_VALUES[response.intensity] if response else 0.0)
            series[bug_id] = values

        best: tuple[float, uuid.UUID, uuid.UUID] | None = None
        for first, second in combinations(bug_ids, 2):
            correlation = pearson(series[first], series[second])
            if correlation <= self.correlation_threshold:
                continue
            if best is None or correlation > best[0]:
                best = (correlation, first, second)

        if best is None:
            return None

        correlation, first, second = best
        if bug_names and first in bug_names and second in bug_names:
            body = (
                f"'{bug_names[first]}' and '{bug_names[second]}' tend to flare up "
                "together. They might share a root cause."
            )
        else:
            body = "Two of your bugs tend to flare up together. They might share a root cause."

        return DetectedPattern(
            user_id=user_id,
            pattern_type=self.pattern_type,
            severity=PatternSeverity.INSIGHT,
            title="Linked Bugs",
            body=body,
            related_bug_ids=[first, second],
            data_points=len(ordered),
        )
