"""
Tests for the WeeklyDiagnosticService.

Tests cover:
- should_prompt_diagnostic weekday rules and once-per-week gating
- get_bugs_for_diagnostic cap and rotation toward unassessed bugs
- submit_diagnostic validation, duplicate-week rejection and side effects
- Lifecycle follow-up after submission, failures isolated
"""

from __future__ import annotations

import uuid
from datetime import date, timedelta

import pytest
from structlog.testing import capture_logs

from selfpatch.lib.exceptions import DiagnosticAlreadySubmittedError, ValidationError
from selfpatch.models.entities import BugDiagnosticResponse
from selfpatch.models.enums import BugIntensity, BugStatus, EventContext, EventType
from selfpatch.services.bug_lifecycle import BugLifecycleService
from selfpatch.services.weekly_diagnostic import WeeklyDiagnosticService

Q, P, L = BugIntensity.QUIET, BugIntensity.PRESENT, BugIntensity.LOUD

# Clock fixture starts on Monday 2026-03-02
WEEK = date(2026, 3, 2)


class ExplodingLifecycle:
    async def run_lifecycle_checks(self, user_id):
        raise RuntimeError("lifecycle store unavailable")


@pytest.fixture
def lifecycle(bug_repo, diagnostic_repo, crash_repo, pattern_repo, settings, clock):
    return BugLifecycleService(
        bug_repo, diagnostic_repo, crash_repo, pattern_repo, settings=settings, clock=clock
    )


@pytest.fixture
def make_service(bug_repo, diagnostic_repo, event_repo, user_repo, lifecycle, settings, clock):
    def _make(lifecycle_service=lifecycle):
        return WeeklyDiagnosticService(
            bug_repo,
            diagnostic_repo,
            event_repo,
            user_repo,
            lifecycle=lifecycle_service,
            settings=settings,
            clock=clock,
        )

    return _make


@pytest.fixture
def service(make_service):
    return make_service()


@pytest.fixture
def active_bugs(bug_repo, make_bug):
    async def _save(count: int):
        bugs = []
        for i in range(count):
            bug = make_bug(slug=f"bug-{i}", title=f"Bug {i}", status=BugStatus.ACTIVE)
            await bug_repo.save(bug)
            bugs.append(bug)
        return bugs

    return _save


# =============================================================================
# should_prompt_diagnostic
# =============================================================================


@pytest.mark.asyncio
async def test_prompts_on_monday(service, user_id):
    assert await service.should_prompt_diagnostic(user_id) is True


@pytest.mark.asyncio
async def test_prompts_on_sunday(service, user_id, clock):
    clock.advance(days=6)
    assert await service.should_prompt_diagnostic(user_id) is True


@pytest.mark.asyncio
@pytest.mark.parametrize("offset", [1, 2, 3, 4, 5])
async def test_no_prompt_midweek(service, user_id, clock, offset):
    clock.advance(days=offset)
    assert await service.should_prompt_diagnostic(user_id) is False


@pytest.mark.asyncio
async def test_no_prompt_after_submission(service, user_id, clock):
    await service.submit_diagnostic(user_id, [])

    assert await service.should_prompt_diagnostic(user_id) is False
    # Sunday of the same ISO week
    clock.advance(days=6)
    assert await service.should_prompt_diagnostic(user_id) is False
    # Next Monday opens a new week
    clock.advance(days=1)
    assert await service.should_prompt_diagnostic(user_id) is True


# =============================================================================
# get_bugs_for_diagnostic
# =============================================================================


@pytest.mark.asyncio
async def test_few_bugs_are_all_returned(service, active_bugs, user_id):
    bugs = await active_bugs(2)

    selected = await service.get_bugs_for_diagnostic(user_id)

    assert [b.id for b in selected] == [b.id for b in bugs]


@pytest.mark.asyncio
async def test_inactive_bugs_are_excluded(service, bug_repo, make_bug, user_id):
    await bug_repo.save(make_bug(slug="identified", status=BugStatus.IDENTIFIED))

    assert await service.get_bugs_for_diagnostic(user_id) == []


@pytest.mark.asyncio
async def test_rotation_prefers_unassessed_bugs(
    service, diagnostic_repo, make_diagnostic, active_bugs, user_id
):
    bugs = await active_bugs(5)
    await diagnostic_repo.save(
        make_diagnostic(user_id, WEEK - timedelta(weeks=1), {bugs[0].id: L, bugs[1].id: P})
    )

    selected = await service.get_bugs_for_diagnostic(user_id)

    assert [b.id for b in selected] == [bugs[2].id, bugs[3].id, bugs[4].id]


@pytest.mark.asyncio
async def test_rotation_fills_with_recently_assessed(
    service, diagnostic_repo, make_diagnostic, active_bugs, user_id
):
    bugs = await active_bugs(4)
    await diagnostic_repo.save(
        make_diagnostic(
            user_id,
            WEEK - timedelta(weeks=1),
            {bugs[0].id: L, bugs[1].id: P, bugs[2].id: Q},
        )
    )

    selected = await service.get_bugs_for_diagnostic(user_id)

    assert [b.id for b in selected] == [bugs[3].id, bugs[0].id, bugs[1].id]


@pytest.mark.asyncio
async def test_rotation_ignores_old_diagnostics(
    service, diagnostic_repo, make_diagnostic, active_bugs, user_id
):
    bugs = await active_bugs(4)
    # Oldest diagnostic falls outside the four most recent
    await diagnostic_repo.save(
        make_diagnostic(user_id, WEEK - timedelta(weeks=5), {bugs[0].id: L})
    )
    for weeks_ago in range(1, 5):
        await diagnostic_repo.save(
            make_diagnostic(user_id, WEEK - timedelta(weeks=weeks_ago), {bugs[3].id: Q})
        )

    selected = await service.get_bugs_for_diagnostic(user_id)

    assert [b.id for b in selected] == [bugs[0].id, bugs[1].id, bugs[2].id]


# =============================================================================
# submit_diagnostic
# =============================================================================


@pytest.mark.asyncio
async def test_submit_persists_diagnostic_and_event(
    service, diagnostic_repo, event_repo, user_id, clock
):
    bug_id = uuid.uuid4()
    clock.advance(days=6, hours=10)  # Sunday evening

    diagnostic = await service.submit_diagnostic(
        user_id, [BugDiagnosticResponse(bug_id, L, EventContext.WORK)]
    )

    assert diagnostic.week_starting == WEEK
    assert diagnostic.completed_at == clock()
    stored = await diagnostic_repo.get_for_week(WEEK, user_id)
    assert stored.id == diagnostic.id
    assert stored.response_for(bug_id).primary_context == EventContext.WORK

    (event,) = await event_repo.get_for_user(user_id)
    assert event.event_type == EventType.WEEKLY_COMPLETED
    assert event.day_of_week == 7


@pytest.mark.asyncio
async def test_submit_rejects_duplicate_bug(service, user_id):
    bug_id = uuid.uuid4()

    with pytest.raises(ValidationError):
        await service.submit_diagnostic(
            user_id, [BugDiagnosticResponse(bug_id, L), BugDiagnosticResponse(bug_id, Q)]
        )


@pytest.mark.asyncio
async def test_submit_twice_in_one_week(service, diagnostic_repo, user_id, clock):
    await service.submit_diagnostic(user_id, [])
    clock.advance(days=3)

    with pytest.raises(DiagnosticAlreadySubmittedError) as exc_info:
        await service.submit_diagnostic(user_id, [])

    assert exc_info.value.week_starting == WEEK
    assert len(await diagnostic_repo.get_for_user(user_id)) == 1


@pytest.mark.asyncio
async def test_submit_unknown_user(service, diagnostic_repo):
    missing = uuid.uuid4()

    assert await service.submit_diagnostic(missing, []) is None
    assert await diagnostic_repo.get_for_user(missing) == []


@pytest.mark.asyncio
async def test_fourth_quiet_week_makes_bug_stable(
    service, bug_repo, diagnostic_repo, make_diagnostic, active_bugs, user_id
):
    (bug,) = await active_bugs(1)
    for weeks_ago in range(1, 4):
        await diagnostic_repo.save(
            make_diagnostic(user_id, WEEK - timedelta(weeks=weeks_ago), {bug.id: Q})
        )

    await service.submit_diagnostic(user_id, [BugDiagnosticResponse(bug.id, Q)])

    assert (await bug_repo.get_by_id(bug.id)).status == BugStatus.STABLE


@pytest.mark.asyncio
async def test_lifecycle_failure_does_not_fail_submission(make_service, diagnostic_repo, user_id):
    service = make_service(ExplodingLifecycle())

    with capture_logs() as logs:
        diagnostic = await service.submit_diagnostic(user_id, [])

    assert diagnostic is not None
    assert await diagnostic_repo.get_for_week(WEEK, user_id) is not None
    assert "weekly_diagnostic.lifecycle_check_failed" in [entry["event"] for entry in logs]
