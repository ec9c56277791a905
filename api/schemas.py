"""
Pydantic schemas for all API request / response payloads.

Provides strict type validation and auto-generated OpenAPI documentation.
"""

from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel, Field


# ── Request schemas ─────────────────────────────────────────────────────


class TokenRequest(BaseModel):
    """Login credentials."""

    username: str = Field(..., min_length=1, max_length=100, description="Username")
    password: str = Field(..., min_length=1, max_length=100, description="Password")


# ── Response schemas ────────────────────────────────────────────────────


class TokenResponse(BaseModel):
    """JWT token response."""

    access_token: str
    token_type: str = "bearer"
    expires_in_minutes: int
    role: str


class HealthResponse(BaseModel):
    """Health check response."""

    status: str = "healthy"
    service: str
    demo_mode: bool
    timestamp: str


class AssignmentOut(BaseModel):
    assignment_id: str
    course_id: Optional[str] = None
    signal_count: int = 0


class StudentUser(BaseModel):
    login: str
    name: Optional[str] = None
    email: Optional[str] = None


class StudentOut(BaseModel):
    """One student (device) enrolled in an assignment."""

    device_id: str
    user: Optional[StudentUser] = None
    first_seen: Optional[str] = None
    last_seen: Optional[str] = None
    signal_count: int = 0
    session_count: int = 0


class SignalOut(BaseModel):
    event_id: str
    ts: str
    session_id: Optional[str] = None
    type: str
    payload: Any = None


class BurstCounts(BaseModel):
    low: int = 0
    medium: int = 0
    high: int = 0


class TypeShareOut(BaseModel):
    type: str
    count: int
    percent: float


class DerivedSummaryOut(BaseModel):
    """Event-derived breakdown, independent of the reconciliation policy."""

    event_count: int
    session_count: int
    type_counts: dict[str, int]
    burst_by_severity: BurstCounts
    focused_seconds_from_ticks: float
    active_seconds_from_ticks: float
    focused_seconds_from_session_end: float
    active_seconds_from_session_end: float
    first_timestamp: Optional[str] = None
    last_timestamp: Optional[str] = None


class ReconciledMetricsOut(BaseModel):
    """Final display values after reconciling events with the server report."""

    focused_seconds: float
    active_seconds: float
    session_count: int
    burst_by_severity: BurstCounts
    using_fallback: bool
    first_seen: Optional[str] = None
    last_seen: Optional[str] = None
    focus_ratio: int
    focused_display: str
    active_display: str


class IntegrityOut(BaseModel):
    status: str = Field(..., description="passed | flagged | unknown")
    issues: list[dict[str, str]] = Field(default_factory=list)


class CheckpointsOut(BaseModel):
    count: int = 0
    latest_checkpoint_id: Optional[str] = None


class StudentActivityResponse(BaseModel):
    """Everything the student activity page renders."""

    assignment_id: str
    student_id: str
    loaded_at: str
    report_available: bool
    metrics: ReconciledMetricsOut
    summary: DerivedSummaryOut
    type_distribution: list[TypeShareOut]
    integrity: IntegrityOut
    burst_total: int
    checkpoints: CheckpointsOut
    unverified_changes: int = 0


class TimelineResponse(BaseModel):
    assignment_id: str
    student_id: str
    total: int
    signal_types: list[str]
    signals: list[SignalOut]
