"""
Unit tests for input validation functions.
"""

import pytest
from pydantic import ValidationError as SchemaValidationError

from codereview.core.schemas.audits import AuditCreate, AuditResultInput, AuditUpdate
from codereview.core.validation import (
    ValidationError,
    check_unique_logins,
    clean_warnings,
    validate_login,
    validate_track,
)

# ============================================================================
# Logins
# ============================================================================


class TestLoginValidation:
    def test_valid_login(self):
        assert validate_login("jdoe") == "jdoe"

    def test_login_keeps_casing(self):
        """Casing is preserved; comparisons lowercase later."""
        assert validate_login("JDoe") == "JDoe"

    def test_login_is_stripped(self):
        assert validate_login("  jdoe  ") == "jdoe"

    def test_login_allows_dots_dashes_underscores(self):
        assert validate_login("j.doe-2_b") == "j.doe-2_b"

    def test_reject_empty_login(self):
        with pytest.raises(ValidationError, match="cannot be empty"):
            validate_login("   ")

    def test_reject_none_login(self):
        with pytest.raises(ValidationError, match="cannot be empty"):
            validate_login(None)

    def test_reject_invalid_characters(self):
        with pytest.raises(ValidationError, match="Invalid student login"):
            validate_login("j doe")


# ============================================================================
# Tracks
# ============================================================================


class TestTrackValidation:
    @pytest.mark.parametrize(
        ("raw", "expected"),
        [("Golang", "Golang"), ("rust", "Rust"), ("JAVASCRIPT", "Javascript"), (" java ", "Java")],
    )
    def test_track_normalization(self, raw, expected):
        assert validate_track(raw) == expected

    def test_reject_unknown_track(self):
        with pytest.raises(ValidationError, match="Unknown track"):
            validate_track("Python")

    def test_reject_empty_track(self):
        with pytest.raises(ValidationError, match="cannot be empty"):
            validate_track("")


# ============================================================================
# Warnings
# ============================================================================


class TestWarningCleanup:
    def test_blank_and_duplicate_warnings_removed(self):
        assert clean_warnings(["  late ", "", "late", "no tests"]) == ["late", "no tests"]

    def test_inner_whitespace_collapsed(self):
        assert clean_warnings(["missing   error\nhandling"]) == ["missing error handling"]

    def test_none_gives_empty_list(self):
        assert clean_warnings(None) == []


class TestUniqueLogins:
    def test_distinct_logins_accepted(self):
        check_unique_logins(["alice", "bob"])

    def test_repeated_login_rejected_case_insensitively(self):
        with pytest.raises(ValidationError, match="Duplicate student logins: Alice"):
            check_unique_logins(["alice", "bob", "Alice"])


# ============================================================================
# Request schemas
# ============================================================================


class TestAuditSchemas:
    def test_audit_create_normalizes_track(self):
        audit = AuditCreate(
            promo_id="526",
            track="rust",
            project_name="Smart-road",
            group_id="42",
            auditor_name="Alice",
            results=[{"student_login": "jdoe", "validated": True}],
        )

        assert audit.track == "Rust"
        assert audit.summary == ""
        assert audit.results[0].warnings == []

    def test_audit_create_rejects_unknown_track(self):
        with pytest.raises(SchemaValidationError):
            AuditCreate(
                promo_id="526",
                track="Cobol",
                project_name="Smart-road",
                group_id="42",
                auditor_name="Alice",
                results=[],
            )

    def test_result_rejects_bad_login(self):
        with pytest.raises(SchemaValidationError):
            AuditResultInput(student_login="not a login", validated=False)

    def test_update_results_default_to_none(self):
        """Omitting results leaves the stored set untouched."""
        update = AuditUpdate(summary="ok")
        assert update.results is None

    def test_audit_create_rejects_duplicate_results(self):
        with pytest.raises(SchemaValidationError, match="Duplicate student logins"):
            AuditCreate(
                promo_id="526",
                track="Golang",
                project_name="Forum",
                group_id="1",
                auditor_name="Alice",
                results=[
                    {"student_login": "alice", "validated": True},
                    {"student_login": "ALICE", "validated": False},
                ],
            )

    def test_update_rejects_duplicate_results(self):
        with pytest.raises(SchemaValidationError, match="Duplicate student logins"):
            AuditUpdate(
                results=[
                    {"student_login": "alice", "validated": True},
                    {"student_login": "alice", "validated": True},
                ]
            )
