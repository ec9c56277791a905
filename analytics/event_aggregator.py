"""
EventAggregator — derives an activity summary from a raw signal window.

Pure and total: every input, however malformed, yields a well-defined
summary.  The caller supplies the authoritative window; nothing is
paged or deduplicated here.
"""

from __future__ import annotations

import math
from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Iterable, Optional

from events.signal_models import (
    BurstFlagPayload,
    BurstSeverity,
    SessionEndPayload,
    Signal,
    TimeTickPayload,
    decode_signals,
)


def _empty_bursts() -> dict[BurstSeverity, int]:
    return {severity: 0 for severity in BurstSeverity}


@dataclass(frozen=True)
class DerivedSummary:
    """Activity metrics reconstructed from the event stream alone.

    Attributes:
        session_count: Distinct ``session_id`` values seen.
        type_counts: Occurrences per type tag, unknown tags included.
        burst_by_severity: BURST_FLAG counts for low / medium / high.
        focused_seconds_from_ticks: Sum of TIME_TICK focused deltas.
        active_seconds_from_ticks: Sum of TIME_TICK active deltas.
        focused_seconds_from_session_end: Sum of SESSION_END focused totals.
        active_seconds_from_session_end: Sum of SESSION_END active totals.
        first_timestamp: Earliest parseable ``ts`` (UTC), if any.
        last_timestamp: Latest parseable ``ts`` (UTC), if any.
        event_count: Number of events aggregated.
    """

    session_count: int = 0
    type_counts: dict[str, int] = field(default_factory=dict)
    burst_by_severity: dict[BurstSeverity, int] = field(default_factory=_empty_bursts)
    focused_seconds_from_ticks: float = 0.0
    active_seconds_from_ticks: float = 0.0
    focused_seconds_from_session_end: float = 0.0
    active_seconds_from_session_end: float = 0.0
    first_timestamp: Optional[datetime] = None
    last_timestamp: Optional[datetime] = None
    event_count: int = 0

    @property
    def preferred_focused_seconds(self) -> float:
        """SESSION_END rollup when present, otherwise the TIME_TICK sum."""
        if self.focused_seconds_from_session_end > 0:
            return self.focused_seconds_from_session_end
        return self.focused_seconds_from_ticks

    @property
    def preferred_active_seconds(self) -> float:
        if self.active_seconds_from_session_end > 0:
            return self.active_seconds_from_session_end
        return self.active_seconds_from_ticks

    def to_dict(self) -> dict[str, Any]:
        """Convert to a JSON-friendly dictionary."""
        return {
            "session_count": self.session_count,
            "type_counts": dict(self.type_counts),
            "burst_by_severity": {s.value: c for s, c in self.burst_by_severity.items()},
            "focused_seconds_from_ticks": self.focused_seconds_from_ticks,
            "active_seconds_from_ticks": self.active_seconds_from_ticks,
            "focused_seconds_from_session_end": self.focused_seconds_from_session_end,
            "active_seconds_from_session_end": self.active_seconds_from_session_end,
            "first_timestamp": self.first_timestamp.isoformat() if self.first_timestamp else None,
            "last_timestamp": self.last_timestamp.isoformat() if self.last_timestamp else None,
            "event_count": self.event_count,
        }


def _accumulate(total: float, delta: Optional[float]) -> float:
    """Add ``delta`` to ``total``, skipping a delta that would overflow to inf."""
    if delta is None:
        return total
    result = total + delta
    return result if math.isfinite(result) else total


def aggregate(events: Iterable[Signal | dict[str, Any]]) -> DerivedSummary:
    """Fold a signal window into a :class:`DerivedSummary`.

    Accepts decoded :class:`Signal` objects or raw upstream records.
    Unparseable timestamps are left out of the time range but still
    counted toward session and type tallies.  Duplicate event ids each
    contribute.
    """
    signals = decode_signals(events)

    sessions: set[Optional[str]] = set()
    type_counts: Counter[str] = Counter()
    bursts = _empty_bursts()
    focused_ticks = active_ticks = 0.0
    focused_end = active_end = 0.0
    first: Optional[datetime] = None
    last: Optional[datetime] = None

    for signal in signals:
        sessions.add(signal.session_id)
        type_counts[signal.type] += 1

        ts = signal.timestamp
        if ts is not None:
            # strict comparisons: ties keep the first-seen extremum
            if first is None or ts < first:
                first = ts
            if last is None or ts > last:
                last = ts

        payload = signal.payload
        if isinstance(payload, TimeTickPayload):
            focused_ticks = _accumulate(focused_ticks, payload.focused_delta_seconds)
            active_ticks = _accumulate(active_ticks, payload.active_delta_seconds)
        elif isinstance(payload, SessionEndPayload):
            focused_end = _accumulate(focused_end, payload.focused_seconds)
            active_end = _accumulate(active_end, payload.active_seconds)
        elif isinstance(payload, BurstFlagPayload) and payload.severity is not None:
            bursts[payload.severity] += 1

    return DerivedSummary(
        session_count=len(sessions),
        type_counts=dict(type_counts),
        burst_by_severity=bursts,
        focused_seconds_from_ticks=focused_ticks,
        active_seconds_from_ticks=active_ticks,
        focused_seconds_from_session_end=focused_end,
        active_seconds_from_session_end=active_end,
        first_timestamp=first,
        last_timestamp=last,
        event_count=len(signals),
    )
