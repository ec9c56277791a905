"""
ServerReport — the reporting service's per-student rollup.

Produced outside this viewer; decoded here into immutable sections.
Any field may be missing or malformed upstream, so every value is
optional and decoding never raises.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Optional

from events.signal_models import BurstSeverity, coerce_number


def _section(data: Mapping[str, Any], key: str) -> Mapping[str, Any]:
    value = data.get(key)
    return value if isinstance(value, Mapping) else {}


def _optional_int(value: Any) -> Optional[int]:
    number = coerce_number(value)
    return int(number) if number is not None else None


def _optional_str(value: Any) -> Optional[str]:
    return value if isinstance(value, str) else None


@dataclass(frozen=True)
class IntegrityIssue:
    type: str
    description: str


@dataclass(frozen=True)
class IntegritySection:
    """Integrity verdict.  ``passed`` is None when the report omits it."""

    passed: Optional[bool] = None
    issues: tuple[IntegrityIssue, ...] = ()


@dataclass(frozen=True)
class TimeSection:
    total_focused_seconds: Optional[float] = None
    total_active_seconds: Optional[float] = None
    session_count: Optional[int] = None
    first_session_start: Optional[str] = None
    last_session_end: Optional[str] = None


@dataclass(frozen=True)
class BurstSection:
    """Burst totals; severities absent from the report are missing keys."""

    total_count: Optional[int] = None
    by_severity: dict[BurstSeverity, int] = field(default_factory=dict)


@dataclass(frozen=True)
class CheckpointSection:
    count: Optional[int] = None
    latest_checkpoint_id: Optional[str] = None


@dataclass(frozen=True)
class ServerReport:
    """Per (assignment, student) report from the reporting service."""

    assignment_id: Optional[str] = None
    device_id: Optional[str] = None
    integrity: IntegritySection = field(default_factory=IntegritySection)
    time: TimeSection = field(default_factory=TimeSection)
    bursts: BurstSection = field(default_factory=BurstSection)
    checkpoints: CheckpointSection = field(default_factory=CheckpointSection)
    unverified_changes: Optional[int] = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> ServerReport:
        """Decode a raw report record."""
        integrity = _section(data, "integrity")
        time = _section(data, "time")
        bursts = _section(data, "bursts")
        checkpoints = _section(data, "checkpoints")

        issues = []
        raw_issues = integrity.get("issues")
        for issue in raw_issues if isinstance(raw_issues, list) else []:
            if isinstance(issue, Mapping):
                issues.append(
                    IntegrityIssue(
                        type=str(issue.get("type") or ""),
                        description=str(issue.get("description") or ""),
                    )
                )

        passed = integrity.get("passed")
        by_severity_raw = _section(bursts, "by_severity")
        by_severity: dict[BurstSeverity, int] = {}
        for severity in BurstSeverity:
            count = _optional_int(by_severity_raw.get(severity.value))
            if count is not None:
                by_severity[severity] = count

        return cls(
            assignment_id=_optional_str(data.get("assignment_id")),
            device_id=_optional_str(data.get("device_id")),
            integrity=IntegritySection(
                passed=passed if isinstance(passed, bool) else None,
                issues=tuple(issues),
            ),
            time=TimeSection(
                total_focused_seconds=coerce_number(time.get("total_focused_seconds")),
                total_active_seconds=coerce_number(time.get("total_active_seconds")),
                session_count=_optional_int(time.get("session_count")),
                first_session_start=_optional_str(time.get("first_session_start")),
                last_session_end=_optional_str(time.get("last_session_end")),
            ),
            bursts=BurstSection(
                total_count=_optional_int(bursts.get("total_count")),
                by_severity=by_severity,
            ),
            checkpoints=CheckpointSection(
                count=_optional_int(checkpoints.get("count")),
                latest_checkpoint_id=_optional_str(checkpoints.get("latest_checkpoint_id")),
            ),
            unverified_changes=_optional_int(data.get("unverified_changes")),
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to a JSON-friendly dictionary in the upstream shape."""
        return {
            "assignment_id": self.assignment_id,
            "device_id": self.device_id,
            "integrity": {
                "passed": self.integrity.passed,
                "issues": [
                    {"type": i.type, "description": i.description}
                    for i in self.integrity.issues
                ],
            },
            "time": {
                "total_focused_seconds": self.time.total_focused_seconds,
                "total_active_seconds": self.time.total_active_seconds,
                "session_count": self.time.session_count,
                "first_session_start": self.time.first_session_start,
                "last_session_end": self.time.last_session_end,
            },
            "bursts": {
                "total_count": self.bursts.total_count,
                "by_severity": {s.value: c for s, c in self.bursts.by_severity.items()},
            },
            "checkpoints": {
                "count": self.checkpoints.count,
                "latest_checkpoint_id": self.checkpoints.latest_checkpoint_id,
            },
            "unverified_changes": self.unverified_changes,
        }
