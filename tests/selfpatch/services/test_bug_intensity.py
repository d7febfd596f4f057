"""
Tests for the BugIntensityProvider.

Tests cover:
- combine_intensity precedence (loud > present > quiet > no-data present)
- Latest assessing diagnostic among the 4 most recent wins
- 7-day crash window boundary
- Crashes for other bugs are ignored
"""

from __future__ import annotations

import uuid
from datetime import timedelta

import pytest

from selfpatch.models.entities import Crash
from selfpatch.models.enums import BugIntensity
from selfpatch.services.bug_intensity import BugIntensityProvider, combine_intensity

Q, P, L = BugIntensity.QUIET, BugIntensity.PRESENT, BugIntensity.LOUD


@pytest.fixture
def provider(diagnostic_repo, crash_repo, settings, clock):
    return BugIntensityProvider(diagnostic_repo, crash_repo, settings=settings, clock=clock)


@pytest.fixture
def bug_id():
    return uuid.uuid4()


@pytest.fixture
def save_crashes(crash_repo, clock):
    async def _save(user_id, bug_id, *days_ago):
        for days in days_ago:
            await crash_repo.save(
                Crash(user_id=user_id, bug_id=bug_id, crashed_at=clock() - timedelta(days=days))
            )

    return _save


@pytest.fixture
def save_weeks(diagnostic_repo, weekly_series):
    async def _save(user_id, bug_id, intensities):
        for diagnostic in weekly_series(user_id, bug_id, intensities):
            await diagnostic_repo.save(diagnostic)

    return _save


# =============================================================================
# combine_intensity
# =============================================================================


@pytest.mark.parametrize(
    "reported,crashes,expected",
    [
        (None, 0, P),
        (Q, 0, Q),
        (P, 0, P),
        (L, 0, L),
        (None, 1, P),
        (None, 2, P),
        (None, 3, L),
        (Q, 2, P),
        (Q, 3, L),
        (P, 5, L),
        (L, 1, L),
    ],
)
def test_combine_intensity(reported, crashes, expected):
    assert combine_intensity(reported, crashes) == expected


# =============================================================================
# current_intensity
# =============================================================================


@pytest.mark.asyncio
async def test_no_data_is_present(provider, user_id, bug_id):
    assert await provider.current_intensity(bug_id, user_id) == P


@pytest.mark.asyncio
async def test_quiet_report_without_crashes(provider, save_weeks, user_id, bug_id):
    await save_weeks(user_id, bug_id, [L, Q])

    assert await provider.current_intensity(bug_id, user_id) == Q


@pytest.mark.asyncio
async def test_quiet_report_overridden_by_crash_week(
    provider, save_weeks, save_crashes, user_id, bug_id
):
    await save_weeks(user_id, bug_id, [Q])
    await save_crashes(user_id, bug_id, 1, 2, 3)

    assert await provider.current_intensity(bug_id, user_id) == L


@pytest.mark.asyncio
async def test_skips_diagnostics_without_the_bug(
    provider, diagnostic_repo, make_diagnostic, save_weeks, user_id, bug_id
):
    await save_weeks(user_id, bug_id, [L, P])
    other = uuid.uuid4()
    newest = (await diagnostic_repo.get_recent(user_id, 1))[0].week_starting
    await diagnostic_repo.save(
        make_diagnostic(user_id, newest + timedelta(weeks=1), {other: Q})
    )

    assert await provider.latest_reported_intensity(bug_id, user_id) == P


@pytest.mark.asyncio
async def test_reports_older_than_lookback_are_ignored(
    provider, diagnostic_repo, make_diagnostic, save_weeks, user_id, bug_id
):
    await save_weeks(user_id, bug_id, [Q])
    newest = (await diagnostic_repo.get_recent(user_id, 1))[0].week_starting
    other = uuid.uuid4()
    for week in range(1, 5):
        await diagnostic_repo.save(
            make_diagnostic(user_id, newest + timedelta(weeks=week), {other: L})
        )

    assert await provider.latest_reported_intensity(bug_id, user_id) is None
    assert await provider.current_intensity(bug_id, user_id) == P


# =============================================================================
# Crash window
# =============================================================================


@pytest.mark.asyncio
async def test_old_crashes_ignored(provider, save_crashes, user_id, bug_id):
    await save_crashes(user_id, bug_id, 10, 14, 21)

    assert await provider.recent_crash_count(bug_id, user_id) == 0
    assert await provider.current_intensity(bug_id, user_id) == P


@pytest.mark.asyncio
async def test_crash_window_boundary(provider, save_crashes, user_id, bug_id, clock):
    await save_crashes(user_id, bug_id, 7, 7, 7)

    assert await provider.recent_crash_count(bug_id, user_id) == 3

    clock.advance(seconds=1)
    assert await provider.recent_crash_count(bug_id, user_id) == 0


@pytest.mark.asyncio
async def test_other_bugs_crashes_ignored(provider, save_crashes, save_weeks, user_id, bug_id):
    await save_weeks(user_id, bug_id, [Q])
    await save_crashes(user_id, uuid.uuid4(), 1, 1, 1)
    await save_crashes(user_id, None, 1)

    assert await provider.current_intensity(bug_id, user_id) == Q
