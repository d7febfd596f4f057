"""
Tests for the DiagnosticEngine.

Tests cover:
- run_diagnostics persists detections and stamps the run time
- Detector order and the minimum_data_points gate
- 14-day per-type cooldown, regardless of viewed/dismissed state
- should_run_diagnostics interval policy
- get_pattern_to_surface ordering (severity, then recency, then id)
- mark_pattern_viewed / dismiss_pattern keep the first timestamp
"""

from __future__ import annotations

import uuid
from datetime import timedelta

import pytest

from selfpatch.detectors import default_detectors
from selfpatch.models.entities import DetectedPattern
from selfpatch.models.enums import EventType, PatternSeverity, PatternType
from selfpatch.services.diagnostic_engine import DiagnosticEngine


class StubDetector:
    """Detector that always finds a pattern and counts its invocations."""

    def __init__(
        self,
        pattern_type: PatternType,
        severity: PatternSeverity = PatternSeverity.INSIGHT,
        minimum_data_points: int = 0,
    ) -> None:
        self.pattern_type = pattern_type
        self.severity = severity
        self.minimum_data_points = minimum_data_points
        self.calls = 0

    def analyze(self, events, diagnostics, user_id, bug_names=None):
        self.calls += 1
        return DetectedPattern(
            user_id=user_id,
            pattern_type=self.pattern_type,
            severity=self.severity,
            title=f"{self.pattern_type.value} found",
            body="stub",
        )


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def make_engine(event_repo, diagnostic_repo, pattern_repo, user_repo, bug_repo, settings, clock):
    def _make(detectors=None):
        return DiagnosticEngine(
            event_repo,
            diagnostic_repo,
            pattern_repo,
            user_repo,
            bugs=bug_repo,
            detectors=detectors,
            settings=settings,
            clock=clock,
        )

    return _make


@pytest.fixture
async def skipped_fixes(event_repo, make_event, user_id, clock):
    """Five skipped fixes for one bug: enough for the avoidance detector."""
    bug_id = uuid.uuid4()
    for day in range(5):
        await event_repo.save(
            make_event(user_id, EventType.FIX_SKIPPED, clock() - timedelta(days=day), bug_id)
        )
    return bug_id


async def _pattern(pattern_repo, user_id, severity, detected_at, pattern_type=PatternType.PLATEAU):
    pattern = DetectedPattern(
        user_id=user_id,
        pattern_type=pattern_type,
        severity=severity,
        title="t",
        body="b",
        detected_at=detected_at,
    )
    await pattern_repo.save(pattern)
    return pattern


# =============================================================================
# run_diagnostics
# =============================================================================


@pytest.mark.asyncio
async def test_run_persists_detected_pattern(
    make_engine, pattern_repo, user_repo, user_id, clock, skipped_fixes
):
    engine = make_engine()

    detected = await engine.run_diagnostics(user_id)

    assert [p.pattern_type for p in detected] == [PatternType.AVOIDANCE]
    assert detected[0].detected_at == clock()
    assert detected[0].related_bug_ids == [skipped_fixes]
    stored = await pattern_repo.get_for_user(user_id)
    assert [p.id for p in stored] == [detected[0].id]

    user = await user_repo.get_by_id(user_id)
    assert user.last_diagnostics_run_at == clock()


@pytest.mark.asyncio
async def test_run_with_no_history_finds_nothing(make_engine, user_id):
    assert await make_engine().run_diagnostics(user_id) == []


@pytest.mark.asyncio
async def test_detectors_run_in_order(make_engine, user_id):
    first = StubDetector(PatternType.PLATEAU)
    second = StubDetector(PatternType.IMPROVEMENT)

    detected = await make_engine([first, second]).run_diagnostics(user_id)

    assert [p.pattern_type for p in detected] == [PatternType.PLATEAU, PatternType.IMPROVEMENT]


@pytest.mark.asyncio
async def test_minimum_data_points_gate(make_engine, event_repo, make_event, user_id, clock):
    for _ in range(3):
        await event_repo.save(make_event(user_id, EventType.CRASH_LOGGED, clock()))
    hungry = StubDetector(PatternType.TEMPORAL_CRASH, minimum_data_points=4)
    satisfied = StubDetector(PatternType.PLATEAU, minimum_data_points=3)

    detected = await make_engine([hungry, satisfied]).run_diagnostics(user_id)

    assert hungry.calls == 0
    assert satisfied.calls == 1
    assert [p.pattern_type for p in detected] == [PatternType.PLATEAU]


@pytest.mark.asyncio
async def test_default_detectors_are_used(make_engine):
    engine = make_engine()
    assert [d.pattern_type for d in engine.detectors] == [
        d.pattern_type for d in default_detectors()
    ]


# =============================================================================
# Cooldown
# =============================================================================


@pytest.mark.asyncio
async def test_cooldown_blocks_repeat_detection(make_engine, user_id, clock):
    detector = StubDetector(PatternType.PLATEAU)
    engine = make_engine([detector])

    assert len(await engine.run_diagnostics(user_id)) == 1
    clock.advance(days=13)
    assert await engine.run_diagnostics(user_id) == []
    assert detector.calls == 1


@pytest.mark.asyncio
async def test_cooldown_expires(make_engine, user_id, clock):
    detector = StubDetector(PatternType.PLATEAU)
    engine = make_engine([detector])

    await engine.run_diagnostics(user_id)
    clock.advance(days=15)
    detected = await engine.run_diagnostics(user_id)

    assert [p.pattern_type for p in detected] == [PatternType.PLATEAU]


@pytest.mark.asyncio
async def test_three_runs_inside_window_yield_one_pattern(make_engine, pattern_repo, user_id, clock):
    engine = make_engine([StubDetector(PatternType.PLATEAU)])

    for _ in range(3):
        await engine.run_diagnostics(user_id)
        clock.advance(days=4)

    stored = await pattern_repo.get_for_user(user_id)
    assert len(stored) == 1


@pytest.mark.asyncio
async def test_dismissed_pattern_still_counts_for_cooldown(make_engine, user_id, clock):
    engine = make_engine([StubDetector(PatternType.PLATEAU)])

    (pattern,) = await engine.run_diagnostics(user_id)
    await engine.dismiss_pattern(pattern.id)
    await engine.mark_pattern_viewed(pattern.id)
    clock.advance(days=1)

    assert await engine.run_diagnostics(user_id) == []


@pytest.mark.asyncio
async def test_cooldown_is_per_type(make_engine, user_id, clock):
    plateau = StubDetector(PatternType.PLATEAU)
    engine = make_engine([plateau])
    await engine.run_diagnostics(user_id)

    improvement = StubDetector(PatternType.IMPROVEMENT)
    engine.detectors.append(improvement)
    clock.advance(days=1)
    detected = await engine.run_diagnostics(user_id)

    assert [p.pattern_type for p in detected] == [PatternType.IMPROVEMENT]


# =============================================================================
# should_run_diagnostics
# =============================================================================


@pytest.mark.asyncio
async def test_should_run_without_user(make_engine):
    assert await make_engine().should_run_diagnostics(uuid.uuid4()) is False


@pytest.mark.asyncio
async def test_should_run_interval(make_engine, user_id, clock):
    engine = make_engine([])

    assert await engine.should_run_diagnostics(user_id) is True
    await engine.run_diagnostics(user_id)
    assert await engine.should_run_diagnostics(user_id) is False

    clock.advance(days=6, hours=23)
    assert await engine.should_run_diagnostics(user_id) is False
    clock.advance(hours=1)
    assert await engine.should_run_diagnostics(user_id) is True


# =============================================================================
# Surfacing
# =============================================================================


@pytest.mark.asyncio
async def test_surface_prefers_alert(make_engine, pattern_repo, user_id, clock):
    await _pattern(pattern_repo, user_id, PatternSeverity.OBSERVATION, clock())
    alert = await _pattern(pattern_repo, user_id, PatternSeverity.ALERT, clock() - timedelta(days=3))
    await _pattern(pattern_repo, user_id, PatternSeverity.INSIGHT, clock())

    surfaced = await make_engine().get_pattern_to_surface(user_id)

    assert surfaced.id == alert.id


@pytest.mark.asyncio
async def test_surface_prefers_newest_within_severity(make_engine, pattern_repo, user_id, clock):
    await _pattern(pattern_repo, user_id, PatternSeverity.INSIGHT, clock() - timedelta(days=2))
    newest = await _pattern(pattern_repo, user_id, PatternSeverity.INSIGHT, clock())

    surfaced = await make_engine().get_pattern_to_surface(user_id)

    assert surfaced.id == newest.id


@pytest.mark.asyncio
async def test_surface_skips_viewed(make_engine, pattern_repo, user_id, clock):
    engine = make_engine()
    alert = await _pattern(pattern_repo, user_id, PatternSeverity.ALERT, clock())
    insight = await _pattern(pattern_repo, user_id, PatternSeverity.INSIGHT, clock())

    await engine.mark_pattern_viewed(alert.id)

    assert (await engine.get_pattern_to_surface(user_id)).id == insight.id


@pytest.mark.asyncio
async def test_surface_nothing(make_engine, user_id):
    assert await make_engine().get_pattern_to_surface(user_id) is None


# =============================================================================
# Viewed / dismissed
# =============================================================================


@pytest.mark.asyncio
async def test_mark_viewed_keeps_first_timestamp(make_engine, pattern_repo, user_id, clock):
    engine = make_engine()
    pattern = await _pattern(pattern_repo, user_id, PatternSeverity.ALERT, clock())
    first = clock()

    await engine.mark_pattern_viewed(pattern.id)
    clock.advance(hours=2)
    await engine.mark_pattern_viewed(pattern.id)

    assert (await pattern_repo.get_by_id(pattern.id)).viewed_at == first


@pytest.mark.asyncio
async def test_dismiss_keeps_first_timestamp(make_engine, pattern_repo, user_id, clock):
    engine = make_engine()
    pattern = await _pattern(pattern_repo, user_id, PatternSeverity.ALERT, clock())
    first = clock()

    await engine.dismiss_pattern(pattern.id)
    clock.advance(hours=2)
    await engine.dismiss_pattern(pattern.id)

    stored = await pattern_repo.get_by_id(pattern.id)
    assert stored.dismissed_at == first
    assert stored.viewed_at is None


@pytest.mark.asyncio
async def test_unknown_pattern_is_noop(make_engine):
    engine = make_engine()
    assert await engine.mark_pattern_viewed(uuid.uuid4()) is None
    assert await engine.dismiss_pattern(uuid.uuid4()) is None
