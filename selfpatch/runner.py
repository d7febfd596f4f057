"""
Maintenance runner for SelfPatch.

Wires the services onto one database session and performs the periodic
housekeeping a client triggers on launch: lifecycle checks for every bug,
a version check against applied fixes, then a diagnostics run when the
interval has elapsed.
"""

from __future__ import annotations

from dataclasses import dataclass, field

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from selfpatch.config.settings import EngineSettings, get_settings
from selfpatch.lib.clock import Clock, utc_now
from selfpatch.lib.logging import bind_user, clear_bound_context
from selfpatch.models.entities import DetectedPattern, VersionEntry
from selfpatch.repositories.sql import (
    SqlAnalyticsEventRepository,
    SqlBugRepository,
    SqlCrashRepository,
    SqlPatternRepository,
    SqlUserRepository,
    SqlVersionEntryRepository,
    SqlWeeklyDiagnosticRepository,
)
from selfpatch.services.bug_lifecycle import BugLifecycleService, LifecycleTransition
from selfpatch.services.diagnostic_engine import DiagnosticEngine
from selfpatch.services.version import VersionService

logger = structlog.get_logger(__name__)


@dataclass
class MaintenanceReport:
    """What a maintenance pass changed."""

    user_found: bool = False
    diagnostics_ran: bool = False
    transitions: list[LifecycleTransition] = field(default_factory=list)
    patterns: list[DetectedPattern] = field(default_factory=list)
    version_entry: VersionEntry | None = None


async def run_maintenance(
    session: AsyncSession,
    settings: EngineSettings | None = None,
    clock: Clock | None = None,
) -> MaintenanceReport:
    """Run lifecycle and version checks and (when due) diagnostics for the local user."""
    settings = settings or get_settings()
    clock = clock or utc_now

    bugs = SqlBugRepository(session)
    diagnostics = SqlWeeklyDiagnosticRepository(session)
    crashes = SqlCrashRepository(session)
    patterns = SqlPatternRepository(session, clock=clock)
    events = SqlAnalyticsEventRepository(session)
    users = SqlUserRepository(session)
    versions = SqlVersionEntryRepository(session)

    report = MaintenanceReport()
    user = await users.get()
    if user is None:
        logger.info("maintenance.no_user")
        return report
    report.user_found = True

    bind_user(user.id)
    try:
        lifecycle = BugLifecycleService(
            bugs, diagnostics, crashes, patterns, settings=settings, clock=clock
        )
        report.transitions = await lifecycle.run_lifecycle_checks(user.id)

        version = VersionService(users, versions, events, settings=settings, clock=clock)
        report.version_entry = await version.check_and_increment_version(user.id)

        engine = DiagnosticEngine(
            events, diagnostics, patterns, users, bugs=bugs, settings=settings, clock=clock
        )
        if await engine.should_run_diagnostics(user.id):
            report.diagnostics_ran = True
            report.patterns = await engine.run_diagnostics(user.id)

        logger.info(
            "maintenance.complete",
            transitions=len(report.transitions),
            version_changed=report.version_entry is not None,
            diagnostics_ran=report.diagnostics_ran,
            patterns=len(report.patterns),
        )
    finally:
        clear_bound_context()

    return report
