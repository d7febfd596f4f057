"""
Trend Analysis Service for SelfPatch.

Turns weekly diagnostics into per-bug intensity series for charting and
classifies each series as improving, worsening or stable by comparing the
average of its most recent points against its oldest ones.
"""

from __future__ import annotations

import uuid
from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import date

from selfpatch.config.settings import EngineSettings, get_settings
from selfpatch.models.enums import TrendDirection
from selfpatch.repositories.protocols import BugRepository, WeeklyDiagnosticRepository

# Average intensity change (0-2 scale) needed to call a direction
DIRECTION_THRESHOLD = 0.3
COMPARISON_POINTS = 4


@dataclass(frozen=True)
class TrendDataPoint:
    """One week's intensity for a bug: quiet 0, present 1, loud 2."""

    week_starting: date
    value: float
    label: str


@dataclass(frozen=True)
class BugTrend:
    """A bug's intensity series and its direction."""

    bug_id: uuid.UUID
    bug_name: str
    direction: TrendDirection
    data_points: list[TrendDataPoint] = field(default_factory=list)


def calculate_direction(points: Sequence[TrendDataPoint]) -> TrendDirection:
    """
    Compare the mean of the last (up to) 4 points against the first 4.

    Fewer than two points is always stable. Lower intensity is improvement.
    For short series the two windows overlap, which damps the difference.
    """
    if len(points) < 2:
        return TrendDirection.STABLE

    count = min(COMPARISON_POINTS, len(points))
    recent = [p.value for p in points[-count:]]
    older = [p.value for p in points[:count]]
    diff = sum(recent) / len(recent) - sum(older) / len(older)

    if diff < -DIRECTION_THRESHOLD:
        return TrendDirection.IMPROVING
    if diff > DIRECTION_THRESHOLD:
        return TrendDirection.WORSENING
    return TrendDirection.STABLE


class TrendAnalysisService:
    """Intensity trends per bug over the most recent weekly diagnostics."""

    def __init__(
        self,
        diagnostics: WeeklyDiagnosticRepository,
        bugs: BugRepository,
        settings: EngineSettings | None = None,
    ) -> None:
        self.diagnostics = diagnostics
        self.bugs = bugs
        self.settings = settings or get_settings()

    async def get_bug_intensity_trend(
        self,
        bug_id: uuid.UUID,
        user_id: uuid.UUID,
        weeks: int | None = None,
    ) -> list[TrendDataPoint]:
        """
        Intensity points for ``bug_id`` from the last ``weeks`` diagnostics.

        Points are oldest first. Weeks in the window that did not assess the
        bug contribute no point.
        """
        weeks = weeks or self.settings.trend_weeks
        diagnostics = await self.diagnostics.get_for_user(user_id)
        window = sorted(diagnostics, key=lambda d: d.week_starting)[-weeks:]

        points: list[TrendDataPoint] = []
        for diagnostic in window:
            response = diagnostic.response_for(bug_id)
            if response is None:
                continue
            points.append(
                TrendDataPoint(
                    week_starting=diagnostic.week_starting,
                    value=float(response.intensity.score),
                    label=diagnostic.week_starting.strftime("%m/%d"),
                )
            )
        return points

    def get_trend_direction(self, points: Sequence[TrendDataPoint]) -> TrendDirection:
        return calculate_direction(points)

    async def get_bug_trends(
        self,
        user_id: uuid.UUID,
        weeks: int | None = None,
    ) -> list[BugTrend]:
        """Trends for every active bug that has at least one point."""
        trends: list[BugTrend] = []
        for bug in await self.bugs.get_active():
            points = await self.get_bug_intensity_trend(bug.id, user_id, weeks)
            if not points:
                continue
            trends.append(
                BugTrend(
                    bug_id=bug.id,
                    bug_name=bug.title,
                    direction=calculate_direction(points),
                    data_points=points,
                )
            )
        return trends
