"""
Demo runner — prints reconciled activity for every synthetic student.

Runs the same load path as the API (parallel fetches, aggregation,
reconciliation) against the demo telemetry source.
"""

from __future__ import annotations

import asyncio
import logging

from analytics.presentation import format_duration, integrity_status
from config.settings import get_settings
from core.activity_loader import ActivityRefresher, StudentActivity, StudentActivityLoader
from services.demo_source import DemoTelemetrySource

logger = logging.getLogger(__name__)


def _setup_logging() -> None:
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s | %(levelname)-8s | %(name)-30s | %(message)s",
        datefmt="%H:%M:%S",
    )


async def run_demo() -> None:
    """Load and print every student of every demo assignment."""
    _setup_logging()
    settings = get_settings()

    print("\n" + "═" * 70)
    print(f"  {settings.APP_NAME.upper()} — DEMO")
    print("═" * 70)

    source = DemoTelemetrySource()
    refresher = ActivityRefresher(StudentActivityLoader(source))

    for assignment in await source.list_assignments():
        assignment_id = assignment["assignment_id"]
        print(f"\n▶ Assignment {assignment_id} ({assignment['signal_count']} signals)")
        print("─" * 50)
        for student in await source.list_students(assignment_id):
            activity = await refresher.refresh(assignment_id, student["device_id"])
            if activity is not None:
                _print_activity(activity)

    print("\n" + "═" * 70 + "\n")


def _print_activity(activity: StudentActivity) -> None:
    metrics = activity.metrics
    bursts = ", ".join(f"{s.value}={c}" for s, c in metrics.burst_by_severity.items())
    print(f"  Device {activity.student_id}: {len(activity.signals)} events")
    print(f"    Integrity:    {integrity_status(activity.report)}")
    print(f"    Sessions:     {metrics.session_count}")
    print(f"    Focused:      {format_duration(metrics.focused_seconds)}")
    print(f"    Active:       {format_duration(metrics.active_seconds)} ({metrics.focus_ratio}%)")
    print(f"    Bursts:       {bursts}")
    print(f"    First / last: {metrics.first_seen or '—'} / {metrics.last_seen or '—'}")
    if metrics.using_fallback:
        print("    ⚠ Totals derived from timeline events; server report had no time data")


if __name__ == "__main__":
    asyncio.run(run_demo())
