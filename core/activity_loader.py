"""
Student activity loading — fetch, aggregate, reconcile.

One refresh issues the timeline fetch and the report fetch in parallel,
waits for both, then runs aggregation and reconciliation over the
results.  The report is optional: if its fetch fails the page still
renders from events alone.  The timeline is required.

``ActivityRefresher`` adds last-started-wins semantics on top, so a
slow refresh that finishes after a newer one never replaces it.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Optional

from analytics.event_aggregator import DerivedSummary, aggregate
from analytics.presentation import TypeShare, signal_type_distribution
from analytics.reconciliation import ReconciledMetrics, reconcile
from config.settings import get_settings
from core.exceptions import TelemetryFetchError, ViewerBaseError
from events.server_report import ServerReport
from events.signal_models import Signal, decode_signals
from services.telemetry_source import TelemetrySource

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StudentActivity:
    """Everything the student page shows, built once per refresh."""

    assignment_id: str
    student_id: str
    signals: tuple[Signal, ...]
    report: Optional[ServerReport]
    summary: DerivedSummary
    metrics: ReconciledMetrics
    type_distribution: tuple[TypeShare, ...]
    loaded_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @classmethod
    def build(
        cls,
        assignment_id: str,
        student_id: str,
        raw_signals: Any,
        raw_report: Optional[dict[str, Any]],
    ) -> StudentActivity:
        """Decode inputs and run the aggregation / reconciliation core."""
        signals = decode_signals(raw_signals)
        report = ServerReport.from_dict(raw_report) if isinstance(raw_report, dict) else None
        summary = aggregate(signals)
        return cls(
            assignment_id=assignment_id,
            student_id=student_id,
            signals=tuple(signals),
            report=report,
            summary=summary,
            metrics=reconcile(summary, report),
            type_distribution=tuple(signal_type_distribution(summary)),
        )


class StudentActivityLoader:
    """Fetches both inputs concurrently and builds a ``StudentActivity``."""

    def __init__(
        self,
        source: TelemetrySource,
        *,
        timeline_limit: Optional[int] = None,
        fetch_timeout: Optional[float] = None,
    ) -> None:
        settings = get_settings()
        self._source = source
        self._timeline_limit = timeline_limit or settings.TIMELINE_FETCH_LIMIT
        self._fetch_timeout = fetch_timeout or settings.FETCH_TIMEOUT_SECONDS

    async def load(self, assignment_id: str, student_id: str) -> StudentActivity:
        """Run one refresh.

        Raises:
            NotFoundError: If the source does not know the student.
            TelemetryFetchError: If the timeline cannot be fetched.
        """
        raw_signals, raw_report = await asyncio.gather(
            self._fetch_timeline(assignment_id, student_id),
            self._fetch_report(assignment_id, student_id),
        )
        activity = StudentActivity.build(assignment_id, student_id, raw_signals, raw_report)
        logger.info(
            "Loaded activity for %s/%s: %d signals, report=%s, fallback=%s",
            assignment_id,
            student_id,
            len(activity.signals),
            "yes" if activity.report is not None else "no",
            activity.metrics.using_fallback,
        )
        return activity

    async def _fetch_timeline(self, assignment_id: str, student_id: str) -> list[dict[str, Any]]:
        try:
            return await asyncio.wait_for(
                self._source.fetch_timeline(
                    assignment_id, student_id, limit=self._timeline_limit
                ),
                timeout=self._fetch_timeout,
            )
        except asyncio.TimeoutError as exc:
            raise TelemetryFetchError(
                "timeline", f"Timed out after {self._fetch_timeout:.1f}s"
            ) from exc

    async def _fetch_report(
        self, assignment_id: str, student_id: str
    ) -> Optional[dict[str, Any]]:
        try:
            return await asyncio.wait_for(
                self._source.fetch_report(assignment_id, student_id),
                timeout=self._fetch_timeout,
            )
        except asyncio.TimeoutError:
            logger.warning(
                "Report fetch for %s/%s timed out; using events only",
                assignment_id,
                student_id,
            )
        except ViewerBaseError as exc:
            logger.warning(
                "Report unavailable for %s/%s (%s); using events only",
                assignment_id,
                student_id,
                exc.message,
            )
        except Exception as exc:
            logger.warning(
                "Report fetch for %s/%s failed (%s: %s); using events only",
                assignment_id,
                student_id,
                type(exc).__name__,
                exc,
            )
        return None


class ActivityRefresher:
    """Last-started-wins wrapper around ``StudentActivityLoader``.

    Each ``refresh()`` takes a new request token.  When it completes, its
    result is applied only if no newer refresh has started meanwhile.

    Usage::

        refresher = ActivityRefresher(loader)
        activity = await refresher.refresh("cs101/hw1", "dev-a1f3")
        if activity is None:
            ...  # superseded by a newer refresh
    """

    def __init__(self, loader: StudentActivityLoader) -> None:
        self._loader = loader
        self._latest_token = 0
        self._current: Optional[StudentActivity] = None

    @property
    def current(self) -> Optional[StudentActivity]:
        """The most recently applied activity."""
        return self._current

    async def refresh(self, assignment_id: str, student_id: str) -> Optional[StudentActivity]:
        """Load and apply a fresh activity, or return None if superseded.

        Errors from a superseded refresh are discarded with it; errors
        from the latest refresh propagate.
        """
        self._latest_token += 1
        token = self._latest_token

        try:
            activity = await self._loader.load(assignment_id, student_id)
        except ViewerBaseError as exc:
            if token != self._latest_token:
                logger.info("Discarding failed stale refresh #%d: %s", token, exc.message)
                return None
            raise

        if token != self._latest_token:
            logger.info(
                "Discarding stale refresh #%d for %s/%s (latest is #%d)",
                token,
                assignment_id,
                student_id,
                self._latest_token,
            )
            return None

        self._current = activity
        return activity
