"""
Pattern Detector contract for SelfPatch.

A detector is a pure function of the history handed to it: no hidden state,
no I/O, and the same input always yields the same output. Ties are broken by
explicit sort keys, never by dict or set iteration order.

The diagnostic engine holds an ordered list of detectors and knows nothing
about their internals beyond this protocol.
"""

from __future__ import annotations

import uuid
from collections.abc import Mapping, Sequence
from typing import Protocol

from selfpatch.models.entities import AnalyticsEvent, DetectedPattern, WeeklyDiagnostic
from selfpatch.models.enums import BugIntensity, PatternType

BugNames = Mapping[uuid.UUID, str]


class PatternDetector(Protocol):
    """Every detector implements this interface."""

    pattern_type: PatternType
    minimum_data_points: int  # Events required before the engine invokes analyze()

    def analyze(
        self,
        events: Sequence[AnalyticsEvent],
        diagnostics: Sequence[WeeklyDiagnostic],
        user_id: uuid.UUID,
        bug_names: BugNames | None = None,
    ) -> DetectedPattern | None:
        """Return a finding for this detector's pattern type, or None."""
        ...


# =============================================================================
# Helpers shared by detectors
# =============================================================================

def oldest_first(diagnostics: Sequence[WeeklyDiagnostic]) -> list[WeeklyDiagnostic]:
    return sorted(diagnostics, key=lambda d: (d.week_starting, d.completed_at))


def newest_first(diagnostics: Sequence[WeeklyDiagnostic]) -> list[WeeklyDiagnostic]:
    return sorted(diagnostics, key=lambda d: (d.week_starting, d.completed_at), reverse=True)


def assessed_bug_ids(diagnostics: Sequence[WeeklyDiagnostic]) -> list[uuid.UUID]:
    """Every bug that appears in any response, in a stable order."""
    ids = {response.bug_id for d in diagnostics for response in d.responses}
    return sorted(ids, key=str)


def assessed_intensities(
    diagnostics: Sequence[WeeklyDiagnostic],
    bug_id: uuid.UUID,
) -> list[BugIntensity]:
    """Intensities reported for ``bug_id``, in the order of ``diagnostics``; gaps skipped."""
    timeline: list[BugIntensity] = []
    for diagnostic in diagnostics:
        response = diagnostic.response_for(bug_id)
        if response is not None:
            timeline.append(response.intensity)
    return timeline


def bug_label(bug_names: BugNames | None, bug_id: uuid.UUID, fallback: str = "this bug") -> str:
    """Quoted bug title for personal copy, or a neutral fallback."""
    if bug_names and bug_id in bug_names:
        return f"'{bug_names[bug_id]}'"
    return fallback
