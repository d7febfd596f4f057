"""
Bug Lifecycle Service for SelfPatch.

State machine for tracked bugs:
- identified -> active: user picks the bug
- active -> stable: quiet in each of the last ``weeks_for_stable`` diagnostics
- stable -> resolved: manual user action
- resolved -> active: regression (crash spike) or manual reactivation
- any -> identified: deactivation

Every operation is a no-op on unknown bug ids or unmet preconditions.
Manual transitions return whether they applied.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta

import structlog

from selfpatch.config.settings import EngineSettings, get_settings
from selfpatch.lib.clock import Clock, utc_now
from selfpatch.models.entities import Bug, DetectedPattern
from selfpatch.models.enums import BugIntensity, BugStatus, PatternSeverity, PatternType
from selfpatch.repositories.protocols import (
    BugRepository,
    CrashRepository,
    PatternRepository,
    WeeklyDiagnosticRepository,
)

logger = structlog.get_logger(__name__)


# ============================================================================
# Supporting Types
# ============================================================================

@dataclass(frozen=True)
class LifecycleTransition:
    """A status change applied by run_lifecycle_checks."""

    bug_id: uuid.UUID
    bug_slug: str
    from_status: BugStatus
    to_status: BugStatus


_STATUS_COMMENTS: dict[BugStatus, str] = {
    BugStatus.IDENTIFIED: "// Not yet tracked",
    BugStatus.ACTIVE: "// Currently being worked on",
    BugStatus.STABLE: "// Consistently quiet. Consider resolving.",
    BugStatus.RESOLVED: "// No longer active",
}


def _relative(moment: datetime, now: datetime) -> str:
    """Abbreviated relative time: 'just now', '5 min ago', '3 days ago'."""
    seconds = max(int((now - moment).total_seconds()), 0)
    if seconds < 60:
        return "just now"
    if seconds < 3600:
        return f"{seconds // 60} min ago"
    if seconds < 86400:
        return f"{seconds // 3600} hr ago"
    days = seconds // 86400
    if days < 14:
        return f"{days} day{'s' if days != 1 else ''} ago"
    if days < 60:
        return f"{days // 7} wk ago"
    if days < 365:
        return f"{days // 30} mo ago"
    return f"{days // 365} yr ago"


@dataclass(frozen=True)
class BugLifecycleInfo:
    """Display projection of a bug's lifecycle state."""

    id: uuid.UUID
    slug: str
    title: str
    description: str
    status: BugStatus
    activated_at: datetime | None
    stable_at: datetime | None
    resolved_at: datetime | None

    @property
    def status_label(self) -> str:
        return self.status.value.upper()

    @property
    def status_comment(self) -> str:
        return _STATUS_COMMENTS[self.status]

    def duration_label(self, now: datetime) -> str | None:
        """How long the bug has held its status, e.g. 'stable 3 days ago'."""
        since = {
            BugStatus.ACTIVE: self.activated_at,
            BugStatus.STABLE: self.stable_at,
            BugStatus.RESOLVED: self.resolved_at,
        }.get(self.status)
        if since is None:
            return None
        return f"{self.status.value} {_relative(since, now)}"


# ============================================================================
# Service Implementation
# ============================================================================

class BugLifecycleService:
    """Applies manual and automatic lifecycle transitions to bugs."""

    def __init__(
        self,
        bugs: BugRepository,
        diagnostics: WeeklyDiagnosticRepository,
        crashes: CrashRepository,
        patterns: PatternRepository,
        settings: EngineSettings | None = None,
        clock: Clock | None = None,
    ) -> None:
        self.bugs = bugs
        self.diagnostics = diagnostics
        self.crashes = crashes
        self.patterns = patterns
        self.settings = settings or get_settings()
        self._clock = clock or utc_now

    # ------------------------------------------------------------------------
    # Manual transitions
    # ------------------------------------------------------------------------

    async def activate(self, bug_id: uuid.UUID) -> bool:
        """identified -> active."""
        bug = await self.bugs.get_by_id(bug_id)
        if bug is None or bug.status != BugStatus.IDENTIFIED:
            return False

        now = self._clock()
        bug.status = BugStatus.ACTIVE
        bug.is_active = True
        bug.activated_at = now
        await self._save(bug, BugStatus.IDENTIFIED, now)
        return True

    async def resolve(self, bug_id: uuid.UUID) -> bool:
        """stable -> resolved."""
        bug = await self.bugs.get_by_id(bug_id)
        if bug is None or bug.status != BugStatus.STABLE:
            return False

        now = self._clock()
        bug.status = BugStatus.RESOLVED
        bug.is_active = False
        bug.resolved_at = now
        await self._save(bug, BugStatus.STABLE, now)
        return True

    async def reactivate(self, bug_id: uuid.UUID) -> bool:
        """resolved -> active, without the crash threshold."""
        bug = await self.bugs.get_by_id(bug_id)
        if bug is None or bug.status != BugStatus.RESOLVED:
            return False

        await self._reopen(bug)
        return True

    async def deactivate(self, bug_id: uuid.UUID) -> bool:
        """any -> identified; clears every lifecycle timestamp."""
        bug = await self.bugs.get_by_id(bug_id)
        if bug is None:
            return False

        previous = bug.status
        bug.status = BugStatus.IDENTIFIED
        bug.is_active = False
        bug.activated_at = None
        bug.stable_at = None
        bug.resolved_at = None
        await self._save(bug, previous, self._clock())
        return True

    # ------------------------------------------------------------------------
    # Automatic checks
    # ------------------------------------------------------------------------

    async def check_for_stability_transition(
        self,
        bug_id: uuid.UUID,
        user_id: uuid.UUID,
    ) -> bool:
        """
        active -> stable when the bug was assessed quiet in every one of the
        most recent ``weeks_for_stable`` diagnostics.

        A week where the bug wasn't assessed does not count as quiet.
        """
        bug = await self.bugs.get_by_id(bug_id)
        if bug is None or bug.status != BugStatus.ACTIVE:
            return False

        weeks = self.settings.weeks_for_stable
        recent = await self.diagnostics.get_recent(user_id, weeks)
        if len(recent) < weeks:
            return False

        for diagnostic in recent[:weeks]:
            response = diagnostic.response_for(bug_id)
            if response is None or response.intensity != BugIntensity.QUIET:
                return False

        now = self._clock()
        bug.status = BugStatus.STABLE
        bug.stable_at = now
        await self._save(bug, BugStatus.ACTIVE, now)
        return True

    async def check_for_regression(self, bug_id: uuid.UUID, user_id: uuid.UUID) -> bool:
        """
        resolved -> active when the bug crashed at least
        ``regression_crash_threshold`` times in the trailing window.

        Also persists an alert-severity regression pattern for the user.
        """
        bug = await self.bugs.get_by_id(bug_id)
        if bug is None or bug.status != BugStatus.RESOLVED:
            return False

        now = self._clock()
        cutoff = now - timedelta(days=self.settings.regression_window_days)
        recent_crashes = [
            c for c in await self.crashes.get_for_user(user_id)
            if c.bug_id == bug_id and c.crashed_at >= cutoff
        ]
        if len(recent_crashes) < self.settings.regression_crash_threshold:
            return False

        await self._reopen(bug)

        pattern = DetectedPattern(
            user_id=user_id,
            pattern_type=PatternType.REGRESSION,
            severity=PatternSeverity.ALERT,
            title=f"Regression: {bug.title}",
            body=(
                f"'{bug.title}' crashed {len(recent_crashes)} times in the last "
                f"{self.settings.regression_window_days} days. It was resolved, "
                "but it's back. That happens."
            ),
            related_bug_ids=[bug.id],
            data_points=len(recent_crashes),
            detected_at=now,
        )
        await self.patterns.save(pattern)
        logger.info(
            "lifecycle.regression_detected",
            bug_slug=bug.slug,
            crash_count=len(recent_crashes),
        )
        return True

    async def run_lifecycle_checks(self, user_id: uuid.UUID) -> list[LifecycleTransition]:
        """Check active bugs for stability and resolved bugs for regression."""
        transitions: list[LifecycleTransition] = []
        all_bugs = await self.bugs.get_all()

        for bug in (b for b in all_bugs if b.status == BugStatus.ACTIVE):
            if await self.check_for_stability_transition(bug.id, user_id):
                transitions.append(
                    LifecycleTransition(bug.id, bug.slug, BugStatus.ACTIVE, BugStatus.STABLE)
                )

        for bug in (b for b in all_bugs if b.status == BugStatus.RESOLVED):
            if await self.check_for_regression(bug.id, user_id):
                transitions.append(
                    LifecycleTransition(bug.id, bug.slug, BugStatus.RESOLVED, BugStatus.ACTIVE)
                )

        return transitions

    def get_lifecycle_info(self, bug: Bug) -> BugLifecycleInfo:
        return BugLifecycleInfo(
            id=bug.id,
            slug=bug.slug,
            title=bug.title,
            description=bug.description,
            status=bug.status,
            activated_at=bug.activated_at,
            stable_at=bug.stable_at,
            resolved_at=bug.resolved_at,
        )

    # ------------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------------

    async def _reopen(self, bug: Bug) -> None:
        bug.status = BugStatus.ACTIVE
        bug.is_active = True
        bug.resolved_at = None
        bug.stable_at = None
        await self._save(bug, BugStatus.RESOLVED, self._clock())

    async def _save(self, bug: Bug, previous: BugStatus, now: datetime) -> None:
        bug.updated_at = now
        await self.bugs.save(bug)
        logger.info(
            "lifecycle.transition",
            bug_slug=bug.slug,
            from_status=previous.value,
            to_status=bug.status.value,
        )
