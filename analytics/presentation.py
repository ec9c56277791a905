"""
Presentation helpers — display-ready views over signals and summaries.

Nothing here changes reconciled values; these functions only shape
them for the student activity page.
"""

from __future__ import annotations

import json
import math
from dataclasses import dataclass
from typing import Iterable, Literal, Optional

from analytics.event_aggregator import DerivedSummary
from events.server_report import ServerReport
from events.signal_models import Signal

SortOrder = Literal["asc", "desc"]


@dataclass(frozen=True)
class TypeShare:
    """One row of the signal-type distribution."""

    type: str
    count: int
    percent: float


def format_duration(seconds: float) -> str:
    """Render seconds as ``"1h 5m"``; seconds appear only under a minute."""
    if not isinstance(seconds, (int, float)) or not math.isfinite(seconds) or seconds <= 0:
        return "0s"
    hours = int(seconds // 3600)
    minutes = int((seconds % 3600) // 60)
    remaining = int(seconds % 60)

    parts: list[str] = []
    if hours > 0:
        parts.append(f"{hours}h")
    if minutes > 0:
        parts.append(f"{minutes}m")
    if hours == 0 and minutes == 0:
        parts.append(f"{remaining}s")
    return " ".join(parts)


def signal_type_distribution(summary: DerivedSummary) -> list[TypeShare]:
    """Type counts sorted by count (descending), then by type name."""
    total = summary.event_count
    rows = sorted(summary.type_counts.items(), key=lambda item: (-item[1], item[0]))
    return [
        TypeShare(
            type=type_tag,
            count=count,
            percent=min(count / total * 100, 100.0) if total > 0 else 0.0,
        )
        for type_tag, count in rows
    ]


def signal_types(signals: Iterable[Signal]) -> list[str]:
    """Distinct type tags present in ``signals``, sorted."""
    return sorted({signal.type for signal in signals})


def _payload_text(signal: Signal) -> str:
    raw = signal.payload.raw
    if not raw:
        return ""
    return json.dumps(raw, default=str).lower()


def filter_timeline(
    signals: Iterable[Signal],
    *,
    type_filter: Optional[str] = None,
    query: Optional[str] = None,
    order: SortOrder = "desc",
) -> list[Signal]:
    """Filter by exact type and free-text query, then sort by raw ``ts``.

    The query matches case-insensitively against the type tag, the
    session id and the JSON-serialized payload.
    """
    needle = (query or "").strip().lower()

    def matches(signal: Signal) -> bool:
        if type_filter and signal.type != type_filter:
            return False
        if not needle:
            return True
        return (
            needle in signal.type.lower()
            or needle in (signal.session_id or "").lower()
            or needle in _payload_text(signal)
        )

    selected = [signal for signal in signals if matches(signal)]
    return sorted(selected, key=lambda s: s.ts, reverse=(order == "desc"))


def integrity_status(report: Optional[ServerReport]) -> str:
    """``"passed"``, ``"flagged"``, or ``"unknown"`` when no verdict exists."""
    if report is None or report.integrity.passed is None:
        return "unknown"
    return "passed" if report.integrity.passed else "flagged"
