"""
Tests for core.activity_loader: parallel fetches, soft report failure,
and last-started-wins refresh semantics.
"""

from __future__ import annotations

import asyncio
from typing import Any, Optional

import pytest

from core.activity_loader import ActivityRefresher, StudentActivity, StudentActivityLoader
from core.exceptions import NotFoundError, TelemetryFetchError
from events.signal_models import BurstSeverity


class _ScriptedSource:
    """TelemetrySource double with per-student timelines, reports and gates."""

    def __init__(self) -> None:
        self.timelines: dict[str, list[dict[str, Any]]] = {}
        self.reports: dict[str, Any] = {}
        self.gates: dict[str, asyncio.Event] = {}
        self.timeline_limits: list[Optional[int]] = []
        self.report_delay = 0.0
        self.timeline_delay = 0.0

    async def list_assignments(self) -> list[dict[str, Any]]:
        return []

    async def list_students(self, assignment_id: str) -> list[dict[str, Any]]:
        return []

    async def fetch_timeline(self, assignment_id, student_id, *, signal_type=None, limit=None):
        self.timeline_limits.append(limit)
        if student_id in self.gates:
            await self.gates[student_id].wait()
        if self.timeline_delay:
            await asyncio.sleep(self.timeline_delay)
        if student_id not in self.timelines:
            raise NotFoundError("student", student_id)
        return self.timelines[student_id]

    async def fetch_report(self, assignment_id, student_id):
        if self.report_delay:
            await asyncio.sleep(self.report_delay)
        report = self.reports.get(student_id)
        if isinstance(report, Exception):
            raise report
        if report is None:
            raise NotFoundError("student", student_id)
        return report


@pytest.fixture
def source(make_signal):
    src = _ScriptedSource()
    src.timelines["dev-1"] = [
        make_signal("SESSION_START", session_id="s1"),
        make_signal("TIME_TICK", {"focused_delta_seconds": 50, "active_delta_seconds": 20}, session_id="s1"),
        make_signal("SESSION_END", {"focused_seconds": 600, "active_seconds": 300}, session_id="s1"),
        make_signal("BURST_FLAG", {"severity": "medium"}, session_id="s1"),
    ]
    src.reports["dev-1"] = {
        "time": {"total_focused_seconds": 1000, "total_active_seconds": 0, "session_count": 2},
        "bursts": {"total_count": 0, "by_severity": {"low": 0, "medium": 0, "high": 0}},
    }
    return src


class TestStudentActivity:

    def test_build_runs_the_core(self, make_signal):
        activity = StudentActivity.build(
            "a1", "dev-1",
            [make_signal("TIME_TICK", {"focused_delta_seconds": 30})],
            None,
        )
        assert activity.report is None
        assert activity.summary.focused_seconds_from_ticks == 30
        assert activity.metrics.focused_seconds == 30
        assert activity.metrics.using_fallback is True
        assert [row.type for row in activity.type_distribution] == ["TIME_TICK"]

    def test_build_ignores_non_mapping_report(self):
        activity = StudentActivity.build("a1", "dev-1", [], ["not", "a", "report"])
        assert activity.report is None


class TestLoader:

    @pytest.mark.asyncio
    async def test_load_reconciles_both_sources(self, source):
        loader = StudentActivityLoader(source, timeline_limit=1000, fetch_timeout=1.0)
        activity = await loader.load("a1", "dev-1")

        assert activity.report is not None
        assert activity.metrics.focused_seconds == 1000
        assert activity.metrics.active_seconds == 300
        assert activity.metrics.session_count == 2
        assert activity.metrics.using_fallback is False
        # server burst counts are authoritative even though events saw one
        assert activity.metrics.burst_total == 0
        assert activity.summary.burst_by_severity[BurstSeverity.MEDIUM] == 1
        assert source.timeline_limits == [1000]

    @pytest.mark.asyncio
    async def test_fetches_run_concurrently(self, make_signal):
        timeline_started = asyncio.Event()
        report_started = asyncio.Event()

        class _Rendezvous(_ScriptedSource):
            async def fetch_timeline(self, *args, **kwargs):
                timeline_started.set()
                await report_started.wait()
                return [make_signal("SESSION_START")]

            async def fetch_report(self, *args, **kwargs):
                report_started.set()
                await timeline_started.wait()
                return {}

        loader = StudentActivityLoader(_Rendezvous(), fetch_timeout=1.0)
        activity = await loader.load("a1", "dev-1")
        assert len(activity.signals) == 1
        assert activity.report is not None

    @pytest.mark.asyncio
    async def test_report_failure_falls_back_to_events(self, source):
        source.reports["dev-1"] = TelemetryFetchError("report", "upstream returned 500")
        loader = StudentActivityLoader(source, fetch_timeout=1.0)

        activity = await loader.load("a1", "dev-1")

        assert activity.report is None
        assert activity.metrics.focused_seconds == 600
        assert activity.metrics.active_seconds == 300
        assert activity.metrics.using_fallback is True

    @pytest.mark.asyncio
    async def test_unexpected_report_error_falls_back_to_events(self, source):
        source.reports["dev-1"] = ValueError("malformed JSON from upstream")
        loader = StudentActivityLoader(source, fetch_timeout=1.0)

        activity = await loader.load("a1", "dev-1")

        assert activity.report is None
        assert activity.metrics.focused_seconds == 600

    @pytest.mark.asyncio
    async def test_report_timeout_falls_back_to_events(self, source):
        source.report_delay = 0.5
        loader = StudentActivityLoader(source, fetch_timeout=0.05)
        activity = await loader.load("a1", "dev-1")
        assert activity.report is None
        assert activity.metrics.session_count == 1

    @pytest.mark.asyncio
    async def test_timeline_timeout_raises(self, source):
        source.timeline_delay = 0.5
        loader = StudentActivityLoader(source, fetch_timeout=0.05)
        with pytest.raises(TelemetryFetchError):
            await loader.load("a1", "dev-1")

    @pytest.mark.asyncio
    async def test_unknown_student_raises(self, source):
        loader = StudentActivityLoader(source, fetch_timeout=1.0)
        with pytest.raises(NotFoundError):
            await loader.load("a1", "nobody")


class TestRefresher:

    @pytest.mark.asyncio
    async def test_stale_refresh_is_discarded(self, source, make_signal):
        source.timelines["slow"] = [make_signal("TIME_TICK", {"focused_delta_seconds": 1})]
        source.reports["slow"] = {}
        source.gates["slow"] = asyncio.Event()

        refresher = ActivityRefresher(StudentActivityLoader(source, fetch_timeout=1.0))
        slow = asyncio.create_task(refresher.refresh("a1", "slow"))
        await asyncio.sleep(0)  # slow refresh takes its token and blocks

        fresh = await refresher.refresh("a1", "dev-1")
        source.gates["slow"].set()

        assert await slow is None
        assert fresh is not None
        assert refresher.current is fresh
        assert refresher.current.student_id == "dev-1"

    @pytest.mark.asyncio
    async def test_failed_stale_refresh_is_discarded(self, source):
        source.gates["ghost"] = asyncio.Event()

        refresher = ActivityRefresher(StudentActivityLoader(source, fetch_timeout=1.0))
        stale = asyncio.create_task(refresher.refresh("a1", "ghost"))
        await asyncio.sleep(0)

        fresh = await refresher.refresh("a1", "dev-1")
        source.gates["ghost"].set()

        assert await stale is None
        assert refresher.current is fresh

    @pytest.mark.asyncio
    async def test_latest_failure_propagates(self, source):
        refresher = ActivityRefresher(StudentActivityLoader(source, fetch_timeout=1.0))
        first = await refresher.refresh("a1", "dev-1")
        with pytest.raises(NotFoundError):
            await refresher.refresh("a1", "nobody")
        assert refresher.current is first
