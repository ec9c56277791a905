"""
DemoTelemetrySource — file-backed telemetry for local runs and tests.

Reads a JSON store (``TELEMETRY_STORE_PATH``) with the shape::

    {
      "assignments": [...],
      "students":  {assignment_id: [...]},
      "timelines": {assignment_id: {student_id: [signal, ...]}},
      "reports":   {assignment_id: {student_id: report}}
    }

When the file is missing and ``DEMO_MODE`` is on, a synthetic dataset
is generated instead so the viewer can be demonstrated offline.
"""

from __future__ import annotations

import copy
import json
import logging
from pathlib import Path
from typing import Any, Optional

from config.settings import get_settings
from core.exceptions import NotFoundError, TelemetryFetchError
from demo.synthetic_signals import generate_dataset

logger = logging.getLogger(__name__)


class DemoTelemetrySource:
    """In-memory telemetry store satisfying ``TelemetrySource``.

    Usage::

        source = DemoTelemetrySource()
        signals = await source.fetch_timeline("cs101/hw1", "dev-a1f3", limit=1000)
    """

    def __init__(self, store: Optional[dict[str, Any]] = None) -> None:
        self._settings = get_settings()
        self._store: dict[str, Any] = store if store is not None else self._load()

    # ── TelemetrySource ─────────────────────────────────────────────────

    async def list_assignments(self) -> list[dict[str, Any]]:
        return copy.deepcopy(self._store.get("assignments", []))

    async def list_students(self, assignment_id: str) -> list[dict[str, Any]]:
        students = self._store.get("students", {})
        if assignment_id not in students:
            raise NotFoundError("assignment", assignment_id)
        return copy.deepcopy(students[assignment_id])

    async def fetch_timeline(
        self,
        assignment_id: str,
        student_id: str,
        *,
        signal_type: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> list[dict[str, Any]]:
        signals = self._lookup("timelines", assignment_id, student_id)
        if not isinstance(signals, list):
            raise TelemetryFetchError("timeline", "Invalid response format from store")
        if signal_type:
            signals = [s for s in signals if isinstance(s, dict) and s.get("type") == signal_type]
        if limit is not None:
            signals = signals[:limit]
        logger.debug(
            "Fetched %d signals for %s/%s", len(signals), assignment_id, student_id
        )
        return copy.deepcopy(signals)

    async def fetch_report(self, assignment_id: str, student_id: str) -> dict[str, Any]:
        report = self._lookup("reports", assignment_id, student_id)
        if not isinstance(report, dict):
            raise TelemetryFetchError("report", "Invalid response format from store")
        return copy.deepcopy(report)

    # ── Internals ───────────────────────────────────────────────────────

    def _lookup(self, section: str, assignment_id: str, student_id: str) -> Any:
        by_assignment = self._store.get(section, {})
        if assignment_id not in by_assignment:
            raise NotFoundError("assignment", assignment_id)
        by_student = by_assignment[assignment_id]
        if student_id not in by_student:
            raise NotFoundError("student", student_id)
        return by_student[student_id]

    def _load(self) -> dict[str, Any]:
        path = Path(self._settings.TELEMETRY_STORE_PATH)
        if path.exists():
            try:
                store = json.loads(path.read_text())
            except (OSError, json.JSONDecodeError) as exc:
                raise TelemetryFetchError(
                    "store", f"Failed to load telemetry store {path}: {exc}"
                ) from exc
            logger.info(
                "Loaded %d assignments from %s", len(store.get("assignments", [])), path
            )
            return store

        if self._settings.DEMO_MODE:
            logger.info("No telemetry store at %s, generating synthetic dataset", path)
            return generate_dataset()

        logger.warning("No telemetry store at %s and demo mode is off", path)
        return {"assignments": [], "students": {}, "timelines": {}, "reports": {}}
