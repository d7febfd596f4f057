"""
Streak Service for SelfPatch.

Counts consecutive calendar days of engagement. One missed day per freeze
window is forgiven by a freeze token; anything longer quietly restarts the
streak at 1.

A reset is never announced: this module emits no log line, event or return
value that tells a reset apart from a first engagement.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import date, datetime

from selfpatch.config.settings import EngineSettings, get_settings
from selfpatch.lib.clock import Clock, utc_now
from selfpatch.models.entities import UserProfile
from selfpatch.repositories.protocols import UserRepository


@dataclass(frozen=True)
class StreakInfo:
    """Streak state for display."""

    current_streak: int
    longest_streak: int
    last_engagement_date: date | None
    freeze_available: bool


class StreakService:
    """Maintains current/longest streak and the weekly freeze token."""

    def __init__(
        self,
        users: UserRepository,
        settings: EngineSettings | None = None,
        clock: Clock | None = None,
    ) -> None:
        self.users = users
        self.settings = settings or get_settings()
        self._clock = clock or utc_now

    async def record_engagement(
        self,
        user_id: uuid.UUID,
        on: date | datetime | None = None,
    ) -> None:
        """
        Record that the user engaged on ``on`` (default: today).

        Same-day and earlier-day calls change nothing.
        """
        user = await self.users.get_by_id(user_id)
        if user is None:
            return

        if on is None:
            today = self._clock().date()
        elif isinstance(on, datetime):
            today = on.date()
        else:
            today = on

        self._refresh_freeze(user, today)

        last = user.last_engagement_date
        if last is None:
            user.current_streak = 1
            user.longest_streak = max(user.longest_streak, 1)
        else:
            gap = (today - last).days
            if gap <= 0:
                return
            if gap == 1:
                user.current_streak += 1
            elif gap == 2 and user.streak_freeze_available:
                user.streak_freeze_available = False
                user.current_streak += 1
            else:
                user.current_streak = 1
            user.longest_streak = max(user.longest_streak, user.current_streak)

        user.last_engagement_date = today
        user.updated_at = self._clock()
        await self.users.save(user)

    async def get_streak_info(self, user_id: uuid.UUID) -> StreakInfo | None:
        user = await self.users.get_by_id(user_id)
        if user is None:
            return None
        return StreakInfo(
            current_streak=user.current_streak,
            longest_streak=user.longest_streak,
            last_engagement_date=user.last_engagement_date,
            freeze_available=user.streak_freeze_available,
        )

    def _refresh_freeze(self, user: UserProfile, today: date) -> None:
        anchor = user.last_freeze_reset_date
        if anchor is None or (today - anchor).days >= self.settings.freeze_window_days:
            user.streak_freeze_available = True
            user.last_freeze_reset_date = today
