"""
Signal models — typed, immutable views over raw proctoring signal records.

Raw signals arrive as loosely-shaped JSON objects whose ``payload`` depends
on ``type``.  Decoding happens once, here: each known type gets its own
payload variant carrying only the fields that type defines, and unknown
types decode to :class:`UnrecognizedPayload`.  Downstream code dispatches
on the variant instead of probing untyped dicts.

Decoding never raises.  Malformed fields decode to ``None``.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Mapping
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional, Union

logger = logging.getLogger(__name__)


class SignalType(str, Enum):
    """Known signal type tags."""

    SESSION_START = "SESSION_START"
    SESSION_END = "SESSION_END"
    TIME_TICK = "TIME_TICK"
    BURST_FLAG = "BURST_FLAG"
    CHECKPOINT_CREATED = "CHECKPOINT_CREATED"
    UNVERIFIED_CHANGES = "UNVERIFIED_CHANGES"
    INTEGRITY_COMPROMISED = "INTEGRITY_COMPROMISED"


class BurstSeverity(str, Enum):
    """Severity of a burst-edit flag."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


# ── Field coercion ──────────────────────────────────────────────────────


def coerce_number(value: Any) -> Optional[float]:
    """Return ``value`` as a float if it is a finite real number, else None.

    Booleans and numeric strings are not numbers here.
    """
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    try:
        number = float(value)
    except OverflowError:
        return None
    if not math.isfinite(number):
        return None
    return number


def parse_timestamp(value: Any) -> Optional[datetime]:
    """Parse an ISO-8601 string into an aware UTC datetime.

    A trailing ``Z`` is accepted.  Naive timestamps are read as UTC.
    Returns None for anything unparseable.
    """
    if not isinstance(value, str) or not value.strip():
        return None
    text = value.strip()
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
        if parsed.tzinfo is None:
            return parsed.replace(tzinfo=timezone.utc)
        return parsed.astimezone(timezone.utc)
    except (ValueError, OverflowError):
        # OverflowError: valid offset time that falls outside the UTC range
        return None


def format_timestamp(value: datetime) -> str:
    """Render a datetime as ``YYYY-MM-DDTHH:MM:SS.mmmZ`` in UTC."""
    utc = value.astimezone(timezone.utc)
    return utc.strftime("%Y-%m-%dT%H:%M:%S.") + f"{utc.microsecond // 1000:03d}Z"


def _optional_str(value: Any) -> Optional[str]:
    return value if isinstance(value, str) else None


# ── Payload variants ────────────────────────────────────────────────────


@dataclass(frozen=True)
class SessionStartPayload:
    raw: Any = None


@dataclass(frozen=True)
class SessionEndPayload:
    """Per-session rollup emitted when a session closes cleanly."""

    focused_seconds: Optional[float] = None
    active_seconds: Optional[float] = None
    raw: Any = None


@dataclass(frozen=True)
class TimeTickPayload:
    """Incremental focus/activity deltas since the previous tick."""

    focused_delta_seconds: Optional[float] = None
    active_delta_seconds: Optional[float] = None
    raw: Any = None


@dataclass(frozen=True)
class BurstFlagPayload:
    """A burst-edit flag.  ``severity`` is None when unrecognized."""

    severity: Optional[BurstSeverity] = None
    raw: Any = None


@dataclass(frozen=True)
class CheckpointCreatedPayload:
    checkpoint_id: Optional[str] = None
    raw: Any = None


@dataclass(frozen=True)
class UnverifiedChangesPayload:
    raw: Any = None


@dataclass(frozen=True)
class IntegrityCompromisedPayload:
    reason: Optional[str] = None
    raw: Any = None


@dataclass(frozen=True)
class UnrecognizedPayload:
    """Payload of a signal type this viewer does not know about."""

    raw: Any = None


SignalPayload = Union[
    SessionStartPayload,
    SessionEndPayload,
    TimeTickPayload,
    BurstFlagPayload,
    CheckpointCreatedPayload,
    UnverifiedChangesPayload,
    IntegrityCompromisedPayload,
    UnrecognizedPayload,
]


def decode_payload(type_tag: str, raw: Any) -> SignalPayload:
    """Decode a raw payload into the variant matching ``type_tag``."""
    fields: Mapping[str, Any] = raw if isinstance(raw, Mapping) else {}

    if type_tag == SignalType.SESSION_END.value:
        return SessionEndPayload(
            focused_seconds=coerce_number(fields.get("focused_seconds")),
            active_seconds=coerce_number(fields.get("active_seconds")),
            raw=raw,
        )
    if type_tag == SignalType.TIME_TICK.value:
        return TimeTickPayload(
            focused_delta_seconds=coerce_number(fields.get("focused_delta_seconds")),
            active_delta_seconds=coerce_number(fields.get("active_delta_seconds")),
            raw=raw,
        )
    if type_tag == SignalType.BURST_FLAG.value:
        severity = fields.get("severity")
        try:
            parsed = BurstSeverity(severity) if isinstance(severity, str) else None
        except ValueError:
            logger.debug("Ignoring unrecognized burst severity %r", severity)
            parsed = None
        return BurstFlagPayload(severity=parsed, raw=raw)
    if type_tag == SignalType.SESSION_START.value:
        return SessionStartPayload(raw=raw)
    if type_tag == SignalType.CHECKPOINT_CREATED.value:
        return CheckpointCreatedPayload(
            checkpoint_id=_optional_str(fields.get("checkpoint_id")), raw=raw
        )
    if type_tag == SignalType.UNVERIFIED_CHANGES.value:
        return UnverifiedChangesPayload(raw=raw)
    if type_tag == SignalType.INTEGRITY_COMPROMISED.value:
        return IntegrityCompromisedPayload(
            reason=_optional_str(fields.get("reason")), raw=raw
        )
    return UnrecognizedPayload(raw=raw)


# ── Signal ──────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class Signal:
    """A single proctoring signal for one student on one assignment.

    Attributes:
        event_id: Opaque unique identifier.
        ts: Timestamp exactly as received (ISO-8601, possibly malformed).
        session_id: Groups events into a session.  May be None when the
            upstream record omitted it; None still counts as one session.
        type: Type tag as received, known or not.
        payload: Decoded payload variant.
    """

    event_id: str
    ts: str
    session_id: Optional[str]
    type: str
    payload: SignalPayload

    @property
    def timestamp(self) -> Optional[datetime]:
        """Parsed ``ts``, or None if it does not parse."""
        return parse_timestamp(self.ts)

    @property
    def known_type(self) -> Optional[SignalType]:
        try:
            return SignalType(self.type)
        except ValueError:
            return None

    # ── Serialization ───────────────────────────────────────────────────

    def to_dict(self) -> dict[str, Any]:
        """Convert back to the upstream record shape."""
        return {
            "event_id": self.event_id,
            "ts": self.ts,
            "session_id": self.session_id,
            "type": self.type,
            "payload": self.payload.raw,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Signal:
        """Decode a raw upstream record.  Never raises on bad field values."""
        type_tag = data.get("type")
        if not isinstance(type_tag, str):
            type_tag = "" if type_tag is None else str(type_tag)
        session_id = data.get("session_id")
        if session_id is not None and not isinstance(session_id, str):
            session_id = str(session_id)
        ts = data.get("ts")
        return cls(
            event_id=str(data.get("event_id") or ""),
            ts=ts if isinstance(ts, str) else "",
            session_id=session_id,
            type=type_tag,
            payload=decode_payload(type_tag, data.get("payload")),
        )


def decode_signals(records: Any) -> list[Signal]:
    """Decode a sequence of raw records, passing ``Signal`` instances through.

    Entries that are neither mappings nor signals are dropped.
    """
    signals: list[Signal] = []
    for record in records or []:
        if isinstance(record, Signal):
            signals.append(record)
        elif isinstance(record, Mapping):
            signals.append(Signal.from_dict(record))
        else:
            logger.debug("Dropping non-object signal record of type %s", type(record).__name__)
    return signals
