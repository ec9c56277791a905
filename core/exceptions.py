"""
Custom exception hierarchy for the Proctor Telemetry Viewer.

Only the transport, auth and source layers raise these; aggregation and
reconciliation are total and never raise.
"""

from __future__ import annotations


class ViewerBaseError(Exception):
    """Root exception for the viewer."""

    def __init__(self, message: str, details: dict | None = None) -> None:
        self.message = message
        self.details = details or {}
        super().__init__(self.message)


class SecurityError(ViewerBaseError):
    """Raised on authentication / authorization failures."""


class ValidationError(ViewerBaseError):
    """Raised when request parameters fail validation."""


class NotFoundError(ViewerBaseError):
    """Raised when an assignment or student is unknown to the source."""

    def __init__(self, kind: str, identifier: str) -> None:
        self.kind = kind
        self.identifier = identifier
        super().__init__(
            f"{kind.capitalize()} '{identifier}' not found",
            {"kind": kind, "identifier": identifier},
        )


class TelemetryFetchError(ViewerBaseError):
    """Raised when an upstream telemetry fetch fails."""

    def __init__(self, resource: str, message: str, details: dict | None = None) -> None:
        self.resource = resource
        super().__init__(f"[{resource}] {message}", details)
