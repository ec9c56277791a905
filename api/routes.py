"""
FastAPI routes for the Proctor Telemetry Viewer.

Endpoints:
  GET  /health                                           — Health check (public)
  POST /auth/token                                       — Login and get JWT
  GET  /assignments                                      — List assignments
  GET  /assignments/{aid}/students                       — List students
  GET  /assignments/{aid}/students/{sid}/activity        — Reconciled activity
  GET  /assignments/{aid}/students/{sid}/timeline        — Filtered signal timeline
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status

from analytics.presentation import (
    filter_timeline,
    format_duration,
    integrity_status,
    signal_types,
)
from api.schemas import (
    AssignmentOut,
    BurstCounts,
    CheckpointsOut,
    DerivedSummaryOut,
    HealthResponse,
    IntegrityOut,
    ReconciledMetricsOut,
    SignalOut,
    StudentActivityResponse,
    StudentOut,
    TimelineResponse,
    TokenRequest,
    TokenResponse,
    TypeShareOut,
)
from config.settings import get_settings
from core.activity_loader import StudentActivity, StudentActivityLoader
from core.exceptions import (
    NotFoundError,
    SecurityError,
    TelemetryFetchError,
    ValidationError as ViewerValidationError,
    ViewerBaseError,
)
from events.signal_models import BurstSeverity, decode_signals
from security.auth import Role, authenticate_instructor, create_token, require_role
from security.validation import (
    validate_identifier,
    validate_query,
    validate_sort_order,
    validate_type_filter,
)
from services.telemetry_source import TelemetrySource

logger = logging.getLogger(__name__)

router = APIRouter()

# ── Module-level source reference (set by main.py) ──────────────────────

_source: TelemetrySource | None = None


def set_source(source: TelemetrySource | None) -> None:
    """Set the global telemetry source (called during app startup)."""
    global _source
    _source = source


def _get_source() -> TelemetrySource:
    """Get the telemetry source or raise if not initialized."""
    if _source is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Telemetry source not initialized",
        )
    return _source


def _to_http(exc: ViewerBaseError) -> HTTPException:
    """Map a viewer error onto an HTTP status."""
    if isinstance(exc, ViewerValidationError):
        return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=exc.message)
    if isinstance(exc, NotFoundError):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=exc.message)
    if isinstance(exc, TelemetryFetchError):
        return HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=exc.message)
    return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=exc.message)


def _burst_counts(counts: dict[BurstSeverity, int]) -> BurstCounts:
    return BurstCounts(**{s.value: counts.get(s, 0) for s in BurstSeverity})


def _activity_response(activity: StudentActivity) -> StudentActivityResponse:
    metrics = activity.metrics
    summary = activity.summary
    report = activity.report

    burst_total = metrics.burst_total
    if report is not None and report.bursts.total_count is not None:
        burst_total = max(0, report.bursts.total_count)

    return StudentActivityResponse(
        assignment_id=activity.assignment_id,
        student_id=activity.student_id,
        loaded_at=activity.loaded_at.isoformat(),
        report_available=report is not None,
        metrics=ReconciledMetricsOut(
            focused_seconds=metrics.focused_seconds,
            active_seconds=metrics.active_seconds,
            session_count=metrics.session_count,
            burst_by_severity=_burst_counts(metrics.burst_by_severity),
            using_fallback=metrics.using_fallback,
            first_seen=metrics.first_seen,
            last_seen=metrics.last_seen,
            focus_ratio=metrics.focus_ratio,
            focused_display=format_duration(metrics.focused_seconds),
            active_display=format_duration(metrics.active_seconds),
        ),
        summary=DerivedSummaryOut(
            **{**summary.to_dict(), "burst_by_severity": _burst_counts(summary.burst_by_severity)}
        ),
        type_distribution=[
            TypeShareOut(type=row.type, count=row.count, percent=row.percent)
            for row in activity.type_distribution
        ],
        integrity=IntegrityOut(
            status=integrity_status(report),
            issues=[
                {"type": issue.type, "description": issue.description}
                for issue in (report.integrity.issues if report else ())
            ],
        ),
        burst_total=burst_total,
        checkpoints=CheckpointsOut(
            count=(report.checkpoints.count or 0) if report else 0,
            latest_checkpoint_id=report.checkpoints.latest_checkpoint_id if report else None,
        ),
        unverified_changes=(report.unverified_changes or 0) if report else 0,
    )


# ── Public endpoints ────────────────────────────────────────────────────


@router.get(
    "/health",
    response_model=HealthResponse,
    tags=["System"],
    summary="Health check",
)
async def health_check() -> HealthResponse:
    """Return the service health status."""
    settings = get_settings()
    return HealthResponse(
        status="healthy",
        service=settings.APP_NAME,
        demo_mode=settings.DEMO_MODE,
        timestamp=datetime.now(timezone.utc).isoformat(),
    )


# ── Authentication ──────────────────────────────────────────────────────


@router.post(
    "/auth/token",
    response_model=TokenResponse,
    tags=["Authentication"],
    summary="Login and get JWT token",
)
async def login(request: TokenRequest) -> TokenResponse:
    """Authenticate an instructor and receive a JWT token."""
    try:
        account = authenticate_instructor(request.username, request.password)
    except SecurityError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid credentials",
        )

    settings = get_settings()
    return TokenResponse(
        access_token=create_token(account["username"], account["role"]),
        expires_in_minutes=settings.JWT_EXPIRY_MINUTES,
        role=account["role"].value,
    )


# ── Assignments & students ──────────────────────────────────────────────


@router.get(
    "/assignments",
    response_model=list[AssignmentOut],
    tags=["Assignments"],
    summary="List assignments with telemetry",
)
async def list_assignments(
    user: dict[str, Any] = Depends(require_role(Role.INSTRUCTOR)),
) -> list[dict[str, Any]]:
    source = _get_source()
    try:
        return await source.list_assignments()
    except ViewerBaseError as exc:
        raise _to_http(exc)


@router.get(
    "/assignments/{assignment_id:path}/students",
    response_model=list[StudentOut],
    tags=["Assignments"],
    summary="List students for an assignment",
)
async def list_students(
    assignment_id: str,
    user: dict[str, Any] = Depends(require_role(Role.INSTRUCTOR)),
) -> list[dict[str, Any]]:
    source = _get_source()
    try:
        return await source.list_students(validate_identifier(assignment_id, "assignment_id"))
    except ViewerBaseError as exc:
        raise _to_http(exc)


# ── Student activity ────────────────────────────────────────────────────


@router.get(
    "/assignments/{assignment_id:path}/students/{student_id}/activity",
    response_model=StudentActivityResponse,
    tags=["Students"],
    summary="Reconciled activity metrics for one student",
)
async def student_activity(
    assignment_id: str,
    student_id: str,
    user: dict[str, Any] = Depends(require_role(Role.INSTRUCTOR)),
) -> StudentActivityResponse:
    """Fetch the timeline and server report in parallel and reconcile them.

    A missing server report is not an error: metrics fall back to the
    event stream and ``using_fallback`` tells the caller so.
    """
    loader = StudentActivityLoader(_get_source())
    try:
        activity = await loader.load(
            validate_identifier(assignment_id, "assignment_id"),
            validate_identifier(student_id, "student_id"),
        )
    except ViewerBaseError as exc:
        raise _to_http(exc)

    logger.info(
        "Activity for %s/%s served to '%s'",
        assignment_id,
        student_id,
        user.get("username"),
    )
    return _activity_response(activity)


@router.get(
    "/assignments/{assignment_id:path}/students/{student_id}/timeline",
    response_model=TimelineResponse,
    tags=["Students"],
    summary="Filtered signal timeline for one student",
)
async def student_timeline(
    assignment_id: str,
    student_id: str,
    signal_type: Optional[str] = Query(default=None, alias="type", description="Exact signal type tag"),
    q: Optional[str] = Query(default=None, description="Search type, session, payload"),
    order: str = Query(default="desc", description="desc (newest first) | asc"),
    user: dict[str, Any] = Depends(require_role(Role.INSTRUCTOR)),
) -> TimelineResponse:
    source = _get_source()
    settings = get_settings()
    try:
        aid = validate_identifier(assignment_id, "assignment_id")
        sid = validate_identifier(student_id, "student_id")
        type_filter = validate_type_filter(signal_type)
        query = validate_query(q)
        sort_order = validate_sort_order(order)
        raw = await source.fetch_timeline(aid, sid, limit=settings.TIMELINE_FETCH_LIMIT)
    except ViewerBaseError as exc:
        raise _to_http(exc)

    signals = decode_signals(raw)
    selected = filter_timeline(signals, type_filter=type_filter, query=query, order=sort_order)
    return TimelineResponse(
        assignment_id=aid,
        student_id=sid,
        total=len(signals),
        signal_types=signal_types(signals),
        signals=[SignalOut(**signal.to_dict()) for signal in selected],
    )
