"""
Pattern detectors for SelfPatch.

default_detectors() returns the built-in strategy list in the order the
diagnostic engine runs them.
"""

from selfpatch.detectors.avoidance import AvoidanceDetector
from selfpatch.detectors.base import PatternDetector
from selfpatch.detectors.context_spike import ContextSpikeDetector
from selfpatch.detectors.correlated_bugs import CorrelatedBugsDetector
from selfpatch.detectors.improvement import ImprovementDetector
from selfpatch.detectors.plateau import PlateauDetector
from selfpatch.detectors.temporal_crash import TemporalCrashDetector


def default_detectors(avoidance_window_days: int = 28) -> list[PatternDetector]:
    return [
        AvoidanceDetector(window_days=avoidance_window_days),
        TemporalCrashDetector(),
        ContextSpikeDetector(),
        CorrelatedBugsDetector(),
        PlateauDetector(),
        ImprovementDetector(),
    ]


__all__ = [
    "AvoidanceDetector",
    "ContextSpikeDetector",
    "CorrelatedBugsDetector",
    "ImprovementDetector",
    "PatternDetector",
    "PlateauDetector",
    "TemporalCrashDetector",
    "default_detectors",
]
