"""
ReconciledReport — merges the event-derived summary with the server report.

Policy, per independent metric:

  - focused / active seconds and session count take the maximum of the
    server value and the event-derived value.  Event-derived time prefers
    SESSION_END rollups and falls back to TIME_TICK deltas.
  - burst counts take the server value whenever the report carries one
    and fall back to event-derived counts otherwise.  They are not maxed.
  - first / last seen prefer the server's session boundaries.

A missing report is treated as all zeros / absent, so event-derived
values win unconditionally.  Nothing here raises.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Any, Optional

from analytics.event_aggregator import DerivedSummary
from events.server_report import ServerReport
from events.signal_models import BurstSeverity, format_timestamp


@dataclass(frozen=True)
class ReconciledMetrics:
    """Final display values for one student on one assignment."""

    focused_seconds: float = 0.0
    active_seconds: float = 0.0
    session_count: int = 0
    burst_by_severity: dict[BurstSeverity, int] = field(default_factory=dict)
    using_fallback: bool = False
    first_seen: Optional[str] = None
    last_seen: Optional[str] = None

    @property
    def focus_ratio(self) -> int:
        """Active time as a rounded percentage of focused time.

        0 when there is no focused time.  May exceed 100.
        """
        return focus_ratio(self.focused_seconds, self.active_seconds)

    @property
    def burst_total(self) -> int:
        return sum(self.burst_by_severity.values())

    def to_dict(self) -> dict[str, Any]:
        """Convert to a JSON-friendly dictionary."""
        return {
            "focused_seconds": self.focused_seconds,
            "active_seconds": self.active_seconds,
            "session_count": self.session_count,
            "burst_by_severity": {s.value: c for s, c in self.burst_by_severity.items()},
            "using_fallback": self.using_fallback,
            "first_seen": self.first_seen,
            "last_seen": self.last_seen,
            "focus_ratio": self.focus_ratio,
        }


def focus_ratio(focused_seconds: float, active_seconds: float) -> int:
    """``round(active / focused * 100)`` with halves rounded up; 0 if unfocused."""
    if focused_seconds <= 0:
        return 0
    ratio = active_seconds / focused_seconds * 100 + 0.5
    if not math.isfinite(ratio):
        return 0
    return int(math.floor(ratio))


def reconcile(summary: DerivedSummary, report: Optional[ServerReport] = None) -> ReconciledMetrics:
    """Combine event-derived and server-side metrics into display values."""
    time = report.time if report is not None else None

    report_focused = (time.total_focused_seconds if time else None) or 0.0
    report_active = (time.total_active_seconds if time else None) or 0.0
    report_sessions = (time.session_count if time else None) or 0

    events_focused = summary.preferred_focused_seconds
    events_active = summary.preferred_active_seconds

    bursts: dict[BurstSeverity, int] = {}
    for severity in BurstSeverity:
        server_count = report.bursts.by_severity.get(severity) if report is not None else None
        bursts[severity] = (
            max(0, server_count) if server_count is not None
            else summary.burst_by_severity.get(severity, 0)
        )

    report_has_time = report_focused > 0 or report_active > 0
    events_have_time = events_focused > 0 or events_active > 0

    first_seen = time.first_session_start if time else None
    if first_seen is None and summary.first_timestamp is not None:
        first_seen = format_timestamp(summary.first_timestamp)
    last_seen = time.last_session_end if time else None
    if last_seen is None and summary.last_timestamp is not None:
        last_seen = format_timestamp(summary.last_timestamp)

    return ReconciledMetrics(
        focused_seconds=max(report_focused, events_focused, 0.0),
        active_seconds=max(report_active, events_active, 0.0),
        session_count=max(report_sessions, summary.session_count, 0),
        burst_by_severity=bursts,
        using_fallback=not report_has_time and events_have_time,
        first_seen=first_seen,
        last_seen=last_seen,
    )
