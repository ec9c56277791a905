"""
Validation — request parameter checks for the viewer API.

Validates:
  • Assignment / student identifiers
  • Timeline filter parameters (type tag, search query, sort order)
"""

from __future__ import annotations

import logging
import re
from typing import Optional

from core.exceptions import ValidationError

logger = logging.getLogger(__name__)

# ── Constants ───────────────────────────────────────────────────────────

MAX_IDENTIFIER_LENGTH = 200
MAX_QUERY_LENGTH = 200

# Assignment ids look like "course/assignment"; device ids are opaque tokens.
_IDENTIFIER_PATTERN = re.compile(r"^[A-Za-z0-9][A-Za-z0-9._:/@-]*$")
_TYPE_TAG_PATTERN = re.compile(r"^[A-Z][A-Z0-9_]*$")
_SORT_ORDERS = {"asc", "desc"}


def validate_identifier(value: str, kind: str) -> str:
    """Validate an assignment or student identifier.

    Raises:
        ValidationError: If the identifier is empty, too long, or contains
            characters outside the allowed set.
    """
    cleaned = value.strip()
    if not cleaned:
        raise ValidationError(f"{kind} must not be empty")
    if len(cleaned) > MAX_IDENTIFIER_LENGTH:
        raise ValidationError(
            f"{kind} too long: {len(cleaned)} chars (max: {MAX_IDENTIFIER_LENGTH})"
        )
    if not _IDENTIFIER_PATTERN.match(cleaned) or ".." in cleaned:
        logger.warning("Rejected malformed %s: %r", kind, value)
        raise ValidationError(f"Invalid {kind}: '{value}'")
    return cleaned


def validate_type_filter(type_filter: Optional[str]) -> Optional[str]:
    """Validate an optional signal type filter.  Unknown tags are allowed.

    Raises:
        ValidationError: If the tag is not an upper-case identifier.
    """
    if type_filter is None or not type_filter.strip():
        return None
    cleaned = type_filter.strip()
    if not _TYPE_TAG_PATTERN.match(cleaned):
        raise ValidationError(f"Invalid signal type filter: '{type_filter}'")
    return cleaned


def validate_query(query: Optional[str]) -> Optional[str]:
    """Trim a search query and bound its length."""
    if query is None:
        return None
    if len(query) > MAX_QUERY_LENGTH:
        raise ValidationError(
            f"Search query too long: {len(query)} chars (max: {MAX_QUERY_LENGTH})"
        )
    return query.strip() or None


def validate_sort_order(order: str) -> str:
    """Normalize a sort order to ``asc`` or ``desc``.

    Raises:
        ValidationError: If the order is not recognized.
    """
    cleaned = order.strip().lower()
    if cleaned not in _SORT_ORDERS:
        raise ValidationError(
            f"Invalid sort order: '{order}'. Valid orders: {sorted(_SORT_ORDERS)}"
        )
    return cleaned
