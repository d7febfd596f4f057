"""
Storage layer for SelfPatch.

Protocols live in ``protocols``; ``memory`` holds the in-process
implementation and ``sql`` the async SQLAlchemy one.
"""

from selfpatch.repositories.memory import (
    InMemoryAnalyticsEventRepository,
    InMemoryBugRepository,
    InMemoryCrashRepository,
    InMemoryPatternRepository,
    InMemoryUserRepository,
    InMemoryVersionEntryRepository,
    InMemoryWeeklyDiagnosticRepository,
)
from selfpatch.repositories.protocols import (
    AnalyticsEventRepository,
    BugRepository,
    CrashRepository,
    PatternRepository,
    UserRepository,
    VersionEntryRepository,
    WeeklyDiagnosticRepository,
)

__all__ = [
    "AnalyticsEventRepository",
    "BugRepository",
    "CrashRepository",
    "InMemoryAnalyticsEventRepository",
    "InMemoryBugRepository",
    "InMemoryCrashRepository",
    "InMemoryPatternRepository",
    "InMemoryUserRepository",
    "InMemoryVersionEntryRepository",
    "InMemoryWeeklyDiagnosticRepository",
    "PatternRepository",
    "UserRepository",
    "VersionEntryRepository",
    "WeeklyDiagnosticRepository",
]
