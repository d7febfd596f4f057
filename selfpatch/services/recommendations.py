"""
Recommendation Dispatcher for SelfPatch.

Maps every pattern type to two concrete next steps. The table is checked for
totality when this module is imported, so a new PatternType without an
entry fails at startup rather than at the moment a pattern is surfaced.
"""

from __future__ import annotations

from dataclasses import dataclass

from selfpatch.lib.exceptions import ConfigurationError
from selfpatch.models.entities import DetectedPattern
from selfpatch.models.enums import PatternType, RecommendationAction


@dataclass(frozen=True)
class PatternRecommendation:
    """A suggested action for a detected pattern; priority 1 comes first."""

    action_type: RecommendationAction
    title: str
    description: str
    priority: int


# (action, title, description) in priority order
_RECOMMENDATIONS: dict[PatternType, tuple[tuple[RecommendationAction, str, str], ...]] = {
    PatternType.AVOIDANCE: (
        (
            RecommendationAction.ADJUST_PRIORITY,
            "Face it",
            "The ones you skip are usually the ones that matter. Make this bug top priority.",
        ),
        (
            RecommendationAction.PRACTICE_MORE,
            "Just the first step",
            "Don't commit to the whole fix. Just the first step. See what happens.",
        ),
    ),
    PatternType.TEMPORAL_CRASH: (
        (
            RecommendationAction.REVIEW_TIME,
            "Schedule around it",
            "No important decisions during your crash window. Move the meeting. Delay the text.",
        ),
        (
            RecommendationAction.SLOW_DOWN,
            "Pre-game",
            "Five minutes before your usual crash time. Just notice you're entering the danger zone.",
        ),
    ),
    PatternType.CONTEXTUAL_SPIKE: (
        (
            RecommendationAction.AVOID_CONTEXT,
            "Know before you go",
            "Before entering that context, name the bug out loud. It helps.",
        ),
        (
            RecommendationAction.PRACTICE_MORE,
            "Lower the stakes",
            "Practice in that context when nothing's on the line. Build tolerance.",
        ),
    ),
    PatternType.CORRELATED_BUGS: (
        (
            RecommendationAction.FOCUS_ON_ONE,
            "Pick one",
            "They move together. Fix one, the other usually follows.",
        ),
        (
            RecommendationAction.SEEK_SUPPORT,
            "Dig deeper",
            "Two bugs, same root. Worth asking what's underneath both.",
        ),
    ),
    PatternType.PLATEAU: (
        (
            RecommendationAction.CHANGE_APPROACH,
            "Try something else",
            "Same approach, same result. Time for a different angle.",
        ),
        (
            RecommendationAction.SEEK_SUPPORT,
            "Get outside eyes",
            "Blind spots are called that for a reason. Someone else might see what you can't.",
        ),
    ),
    PatternType.REGRESSION: (
        (
            RecommendationAction.SLOW_DOWN,
            "It happens",
            "Regression is data, not failure. Something triggered the old pattern. Find out what.",
        ),
        (
            RecommendationAction.PRACTICE_MORE,
            "Back to basics",
            "The simple fixes that worked before. Do those again.",
        ),
    ),
    PatternType.IMPROVEMENT: (
        (
            RecommendationAction.CELEBRATE_PROGRESS,
            "Still running",
            "Whatever you're doing, it's working. Don't overthink it.",
        ),
        (
            RecommendationAction.MAINTAIN_COURSE,
            "Stay the course",
            "Don't fix what isn't broken.",
        ),
    ),
}


def validate_recommendation_table(
    table: dict[PatternType, tuple[tuple[RecommendationAction, str, str], ...]],
) -> None:
    """
    Raise ConfigurationError unless every PatternType has exactly two entries.
    """
    missing = [t.value for t in PatternType if t not in table]
    if missing:
        raise ConfigurationError(f"No recommendations for pattern types: {', '.join(missing)}")
    malformed = [t.value for t, entries in table.items() if len(entries) != 2]
    if malformed:
        raise ConfigurationError(
            f"Pattern types must have exactly two recommendations: {', '.join(malformed)}"
        )


validate_recommendation_table(_RECOMMENDATIONS)


def recommendations_for(pattern_type: PatternType) -> list[PatternRecommendation]:
    """Fresh list of recommendations for ``pattern_type``, priority 1 first."""
    return [
        PatternRecommendation(
            action_type=action,
            title=title,
            description=description,
            priority=priority,
        )
        for priority, (action, title, description) in enumerate(
            _RECOMMENDATIONS[pattern_type], start=1
        )
    ]


def generate_recommendations(pattern: DetectedPattern) -> list[PatternRecommendation]:
    return recommendations_for(pattern.pattern_type)
