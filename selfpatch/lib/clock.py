"""Time source shared by services and repositories."""

from __future__ import annotations

from collections.abc import Callable
from datetime import UTC, datetime
from typing_extensions import TypeAlias

Clock: TypeAlias = Callable[[], datetime]


def utc_now() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(UTC)
