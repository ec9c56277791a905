"""
TelemetrySource — the upstream interface the viewer reads from.

The real implementation lives behind the instructor API (bearer-token
HTTP client with a single retry on expiry) and is not part of this
repository.  Anything satisfying this protocol can back the viewer.
"""

from __future__ import annotations

from typing import Any, Optional, Protocol, runtime_checkable


@runtime_checkable
class TelemetrySource(Protocol):
    """Read-only access to assignments, students, timelines and reports.

    Implementations raise ``NotFoundError`` for unknown identifiers and
    ``TelemetryFetchError`` for transport failures.
    """

    async def list_assignments(self) -> list[dict[str, Any]]:
        ...

    async def list_students(self, assignment_id: str) -> list[dict[str, Any]]:
        ...

    async def fetch_timeline(
        self,
        assignment_id: str,
        student_id: str,
        *,
        signal_type: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> list[dict[str, Any]]:
        """Return raw signal records for one student."""
        ...

    async def fetch_report(self, assignment_id: str, student_id: str) -> dict[str, Any]:
        """Return the raw server report for one student."""
        ...
