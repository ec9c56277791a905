"""
Tests for the security layer: auth and request validation.
"""

from __future__ import annotations

import os
import sys

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))
os.environ["DEMO_MODE"] = "true"

import pytest

from security.auth import authenticate_instructor, create_token, verify_token, Role
from security.validation import (
    validate_identifier,
    validate_query,
    validate_sort_order,
    validate_type_filter,
)
from core.exceptions import SecurityError, ValidationError


# ═══════════════════════════════════════════════════════════════════════
# Authentication Tests
# ═══════════════════════════════════════════════════════════════════════


class TestAuth:
    """Tests for JWT auth and roles."""

    def test_authenticate_instructor(self):
        account = authenticate_instructor("instructor", "instructor")
        assert account["username"] == "instructor"
        assert account["role"] == Role.INSTRUCTOR

    def test_authenticate_admin(self):
        assert authenticate_instructor("admin", "admin")["role"] == Role.ADMIN

    def test_authenticate_invalid_password(self):
        with pytest.raises(SecurityError):
            authenticate_instructor("instructor", "wrong")

    def test_authenticate_unknown_user(self):
        with pytest.raises(SecurityError):
            authenticate_instructor("nobody", "instructor")

    def test_create_and_verify_token(self):
        token = create_token("instructor", Role.INSTRUCTOR)
        payload = verify_token(token)
        assert payload["username"] == "instructor"
        assert payload["role"] == Role.INSTRUCTOR

    def test_verify_invalid_token(self):
        with pytest.raises(SecurityError):
            verify_token("invalid.token.here")

    def test_verify_token_with_unknown_role(self):
        from jose import jwt
        from config.settings import get_settings

        settings = get_settings()
        token = jwt.encode(
            {"sub": "mallory", "role": "superuser"},
            settings.JWT_SECRET,
            algorithm=settings.JWT_ALGORITHM,
        )
        with pytest.raises(SecurityError):
            verify_token(token)


# ═══════════════════════════════════════════════════════════════════════
# Validation Tests
# ═══════════════════════════════════════════════════════════════════════


class TestValidation:
    """Tests for identifier and timeline parameter validation."""

    @pytest.mark.parametrize("value", ["cs101/hw1-linked-lists", "dev-a1f3", "a.b:c@d_e"])
    def test_valid_identifiers(self, value):
        assert validate_identifier(f"  {value} ", "assignment_id") == value

    @pytest.mark.parametrize("value", ["", "   ", "../etc/passwd", "a/../b", "-leading", "has space", "x" * 201])
    def test_invalid_identifiers(self, value):
        with pytest.raises(ValidationError):
            validate_identifier(value, "student_id")

    def test_type_filter(self):
        assert validate_type_filter(None) is None
        assert validate_type_filter("  ") is None
        assert validate_type_filter("BURST_FLAG") == "BURST_FLAG"
        assert validate_type_filter("CLIPBOARD_PASTE") == "CLIPBOARD_PASTE"
        with pytest.raises(ValidationError):
            validate_type_filter("burst_flag; drop")

    def test_query(self):
        assert validate_query(None) is None
        assert validate_query("  session  ") == "session"
        assert validate_query("   ") is None
        with pytest.raises(ValidationError):
            validate_query("q" * 201)

    def test_sort_order(self):
        assert validate_sort_order("ASC") == "asc"
        assert validate_sort_order(" desc ") == "desc"
        with pytest.raises(ValidationError):
            validate_sort_order("sideways")
