"""
Version Service for SelfPatch.

The user's "version" is derived from how many fixes they have applied:
every ``fixes_per_minor_version`` applied fixes bump the minor number, and
every ``minor_versions_per_major`` minor bumps roll over into the next major
(1.0 -> 1.1 -> ... -> 1.9 -> 2.0). Each change writes a VersionEntry.

The version is recomputed from the full fix_applied history each time, so a
check after a burst of fixes jumps straight to the right version with a
single entry.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass

import structlog

from selfpatch.config.settings import EngineSettings, get_settings
from selfpatch.lib.clock import Clock, utc_now
from selfpatch.models.entities import INITIAL_VERSION, VersionEntry
from selfpatch.models.enums import EventType, VersionChangeType
from selfpatch.repositories.protocols import (
    AnalyticsEventRepository,
    UserRepository,
    VersionEntryRepository,
)

logger = structlog.get_logger(__name__)


def parse_version(version: str) -> tuple[int, int]:
    """
    Split ``"major.minor"`` into integers.

    Non-numeric components are skipped; anything with fewer than two numeric
    components parses as (1, 0).
    """
    components: list[int] = []
    for part in version.split("."):
        try:
            components.append(int(part))
        except ValueError:
            continue
    if len(components) < 2:
        return 1, 0
    return components[0], components[1]


def increment_version(major: int, minor: int, minor_versions_per_major: int = 10) -> str:
    """Next minor version, rolling over into a new major."""
    new_major, new_minor = major, minor + 1
    if new_minor >= minor_versions_per_major:
        new_major, new_minor = major + 1, 0
    return f"{new_major}.{new_minor}"


def version_for_applied_fixes(
    applied: int,
    fixes_per_minor_version: int = 7,
    minor_versions_per_major: int = 10,
) -> str:
    """The version a user with ``applied`` applied fixes should be on."""
    minor_updates = applied // fixes_per_minor_version
    major = minor_updates // minor_versions_per_major + 1
    minor = minor_updates % minor_versions_per_major
    return f"{major}.{minor}"


@dataclass(frozen=True)
class VersionProgress:
    """Where the user stands between two versions."""

    current_version: str
    next_version: str
    applied_fixes: int
    fixes_until_next: int


class VersionService:
    """Keeps UserProfile.current_version in step with applied fixes."""

    def __init__(
        self,
        users: UserRepository,
        versions: VersionEntryRepository,
        events: AnalyticsEventRepository,
        settings: EngineSettings | None = None,
        clock: Clock | None = None,
    ) -> None:
        self.users = users
        self.versions = versions
        self.events = events
        self.settings = settings or get_settings()
        self._clock = clock or utc_now

    async def get_current_version(self, user_id: uuid.UUID) -> str:
        user = await self.users.get_by_id(user_id)
        if user is None:
            return INITIAL_VERSION
        return user.current_version

    async def get_version_progress(self, user_id: uuid.UUID) -> VersionProgress | None:
        user = await self.users.get_by_id(user_id)
        if user is None:
            return None
        applied = await self._applied_fixes(user_id)
        major, minor = parse_version(user.current_version)
        per_minor = self.settings.fixes_per_minor_version
        return VersionProgress(
            current_version=user.current_version,
            next_version=increment_version(
                major, minor, self.settings.minor_versions_per_major
            ),
            applied_fixes=applied,
            fixes_until_next=per_minor - applied % per_minor,
        )

    async def check_and_increment_version(self, user_id: uuid.UUID) -> VersionEntry | None:
        """
        Move the user to the version their applied-fix count has earned.

        Returns:
            The new VersionEntry, or None when the version is unchanged or
            the user does not exist
        """
        user = await self.users.get_by_id(user_id)
        if user is None:
            return None

        applied = await self._applied_fixes(user_id)
        expected = version_for_applied_fixes(
            applied,
            self.settings.fixes_per_minor_version,
            self.settings.minor_versions_per_major,
        )
        if expected == user.current_version:
            return None

        major, minor = parse_version(expected)
        if minor == 0 and major > 1:
            change_type = VersionChangeType.MAJOR_UPDATE
            description = "Major update: Significant progress made"
        else:
            change_type = VersionChangeType.MINOR_UPDATE
            description = (
                f"Minor update: {self.settings.fixes_per_minor_version} fixes applied"
            )

        now = self._clock()
        entry = VersionEntry(
            user_id=user_id,
            version=expected,
            change_type=change_type,
            description=description,
            created_at=now,
        )
        await self.versions.save(entry)

        previous = user.current_version
        user.current_version = expected
        user.updated_at = now
        await self.users.save(user)

        logger.info(
            "version.updated",
            previous=previous,
            version=expected,
            change_type=change_type.value,
            applied_fixes=applied,
        )
        return entry

    async def _applied_fixes(self, user_id: uuid.UUID) -> int:
        return sum(
            1 for event in await self.events.get_for_user(user_id)
            if event.event_type == EventType.FIX_APPLIED
        )
