"""
Synthetic telemetry generators for demo and testing.

Generates a small proctoring dataset covering:
  • Students whose sessions closed cleanly (SESSION_END rollups)
  • Students with only TIME_TICK deltas and an empty server time section
  • Burst-edit flags across severities
  • Integrity issues, checkpoints, unverified changes
  • Malformed timestamps and payloads
  • A student with no server report at all
"""

from __future__ import annotations

import random
import uuid
from datetime import datetime, timedelta, timezone
from typing import Any

from events.signal_models import format_timestamp

_COURSE_ID = "cs101"
_ASSIGNMENTS = ["cs101/hw1-linked-lists", "cs101/hw2-hash-maps"]
_SEVERITIES = ["low", "low", "medium", "high"]


def _signal(ts: datetime | str, session_id: str, type_tag: str, payload: Any, rng: random.Random) -> dict[str, Any]:
    return {
        "event_id": str(uuid.UUID(int=rng.getrandbits(128))),
        "ts": format_timestamp(ts) if isinstance(ts, datetime) else ts,
        "session_id": session_id,
        "type": type_tag,
        "payload": payload,
    }


def generate_student_timeline(
    *,
    rng: random.Random,
    base_time: datetime,
    sessions: int = 2,
    ticks_per_session: int = 6,
    close_sessions: bool = True,
    bursts: int = 2,
    noisy: bool = False,
) -> list[dict[str, Any]]:
    """Generate one student's signal window.

    Each session opens with SESSION_START, emits TIME_TICKs every minute,
    a checkpoint halfway through, and optionally closes with a
    SESSION_END whose totals equal the sum of its ticks.

    Returns:
        A list of raw signal records in chronological order.
    """
    signals: list[dict[str, Any]] = []
    cursor = base_time

    for index in range(sessions):
        session_id = f"sess-{index + 1}-{rng.randint(1000, 9999)}"
        signals.append(_signal(cursor, session_id, "SESSION_START", {"editor": "vscode"}, rng))

        focused_total = active_total = 0
        for tick in range(ticks_per_session):
            cursor += timedelta(seconds=60)
            focused = rng.randint(40, 60)
            active = rng.randint(10, focused)
            focused_total += focused
            active_total += active
            signals.append(_signal(
                cursor, session_id, "TIME_TICK",
                {"focused_delta_seconds": focused, "active_delta_seconds": active},
                rng,
            ))
            if tick == ticks_per_session // 2:
                signals.append(_signal(
                    cursor, session_id, "CHECKPOINT_CREATED",
                    {"checkpoint_id": f"ckpt-{index + 1}-{tick}"},
                    rng,
                ))

        if close_sessions:
            cursor += timedelta(seconds=5)
            signals.append(_signal(
                cursor, session_id, "SESSION_END",
                {"focused_seconds": focused_total, "active_seconds": active_total},
                rng,
            ))
        cursor += timedelta(hours=rng.randint(2, 20))

    last_session = signals[-1]["session_id"] if signals else "sess-0"
    for _ in range(bursts):
        cursor += timedelta(seconds=rng.randint(1, 30))
        signals.append(_signal(
            cursor, last_session, "BURST_FLAG",
            {"severity": rng.choice(_SEVERITIES), "chars_inserted": rng.randint(200, 4000)},
            rng,
        ))

    if noisy:
        signals.append(_signal("not-a-timestamp", last_session, "TIME_TICK", {"focused_delta_seconds": "90"}, rng))
        signals.append(_signal(cursor, last_session, "BURST_FLAG", {"severity": "extreme"}, rng))
        signals.append(_signal(cursor, last_session, "CLIPBOARD_PASTE", {"length": 512}, rng))
        signals.append(_signal(cursor, last_session, "SESSION_END", None, rng))

    return signals


def _report_for(
    assignment_id: str,
    device_id: str,
    signals: list[dict[str, Any]],
    *,
    include_time: bool,
) -> dict[str, Any]:
    """Build a server-style report roughly consistent with ``signals``."""
    sessions = {s["session_id"] for s in signals}
    ends = [s for s in signals if s["type"] == "SESSION_END" and isinstance(s["payload"], dict)]
    starts = [s["ts"] for s in signals if s["type"] == "SESSION_START"]
    bursts = {"low": 0, "medium": 0, "high": 0}
    for s in signals:
        severity = (s["payload"] or {}).get("severity") if s["type"] == "BURST_FLAG" else None
        if severity in bursts:
            bursts[severity] += 1
    checkpoints = [s["payload"]["checkpoint_id"] for s in signals if s["type"] == "CHECKPOINT_CREATED"]
    integrity_events = [s for s in signals if s["type"] == "INTEGRITY_COMPROMISED"]

    return {
        "assignment_id": assignment_id,
        "device_id": device_id,
        "integrity": {
            "passed": not integrity_events and bursts["high"] == 0,
            "issues": (
                [{"type": "HIGH_BURST", "description": f"{bursts['high']} high-severity burst(s) detected"}]
                if bursts["high"] else []
            ),
        },
        "time": {
            "total_focused_seconds": sum(e["payload"]["focused_seconds"] for e in ends) if include_time else 0,
            "total_active_seconds": sum(e["payload"]["active_seconds"] for e in ends) if include_time else 0,
            "session_count": len(sessions) if include_time else 0,
            "first_session_start": starts[0] if include_time and starts else None,
            "last_session_end": ends[-1]["ts"] if include_time and ends else None,
        },
        "bursts": {"total_count": sum(bursts.values()), "by_severity": bursts},
        "checkpoints": {
            "count": len(checkpoints),
            "latest_checkpoint_id": checkpoints[-1] if checkpoints else None,
        },
        "unverified_changes": 0,
    }


def generate_dataset(seed: int = 7) -> dict[str, Any]:
    """Generate a full demo store: assignments, students, timelines, reports."""
    rng = random.Random(seed)
    base_time = datetime(2026, 9, 1, 14, 0, tzinfo=timezone.utc)

    profiles = [
        ("dev-a1f3", {"login": "ada", "name": "Ada Lovelace"}, dict(close_sessions=True), True, True),
        ("dev-b7c2", {"login": "grace", "name": "Grace Hopper"}, dict(close_sessions=False, bursts=3), False, True),
        ("dev-c9d4", {"login": "alan"}, dict(sessions=3, noisy=True), True, True),
        ("dev-e5f6", None, dict(sessions=1, bursts=0), True, False),
    ]

    assignments: list[dict[str, Any]] = []
    students: dict[str, list[dict[str, Any]]] = {}
    timelines: dict[str, dict[str, list[dict[str, Any]]]] = {}
    reports: dict[str, dict[str, dict[str, Any]]] = {}

    for a_index, assignment_id in enumerate(_ASSIGNMENTS):
        students[assignment_id] = []
        timelines[assignment_id] = {}
        reports[assignment_id] = {}
        for device_id, user, options, include_time, has_report in profiles:
            start = base_time + timedelta(days=7 * a_index, hours=rng.randint(0, 48))
            signals = generate_student_timeline(rng=rng, base_time=start, **options)
            timelines[assignment_id][device_id] = signals
            if has_report:
                reports[assignment_id][device_id] = _report_for(
                    assignment_id, device_id, signals, include_time=include_time
                )
            valid_ts = sorted(s["ts"] for s in signals if s["ts"][:1].isdigit())
            students[assignment_id].append({
                "device_id": device_id,
                "user": user,
                "first_seen": valid_ts[0],
                "last_seen": valid_ts[-1],
                "signal_count": len(signals),
                "session_count": len({s["session_id"] for s in signals}),
            })
        assignments.append({
            "assignment_id": assignment_id,
            "course_id": _COURSE_ID,
            "signal_count": sum(len(t) for t in timelines[assignment_id].values()),
        })

    return {
        "assignments": assignments,
        "students": students,
        "timelines": timelines,
        "reports": reports,
    }
