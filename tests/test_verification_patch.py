# Copyright 2026 HEVA
# SPDX-License-Identifier: MIT
"""Tests: verification evidence patch validation and application."""

from __future__ import annotations

import pytest

from heva.core.errors import ValidationError
from heva.core.identity.models import Document, Reference, Verification
from heva.core.identity.verification import (
    apply_verification_patch,
    as_unverified,
    missing_evidence,
    validate_verification_patch,
)


def test_valid_patch_has_no_errors() -> None:
    patch = {
        "emailVerified": True,
        "phoneVerified": False,
        "references": [{"verified": True, "name": "Chief Otieno", "relationship": "elder"}],
        "documents": [{"verified": True, "type": "national_id", "uploadedAt": "2026-03-01"}],
    }
    assert validate_verification_patch(patch) == []


def test_none_patch_is_valid() -> None:
    assert validate_verification_patch(None) == []


def test_non_object_patch() -> None:
    assert validate_verification_patch(["emailVerified"]) == ["evidence must be an object"]


def test_unknown_field_rejected() -> None:
    errors = validate_verification_patch({"fingerprintVerified": True})
    assert len(errors) == 1
    assert "fingerprintVerified" in errors[0]


def test_flag_must_be_boolean() -> None:
    errors = validate_verification_patch({"emailVerified": "yes", "phoneVerified": 1})
    assert "emailVerified must be a boolean" in errors
    assert "phoneVerified must be a boolean" in errors


def test_list_items_validated() -> None:
    errors = validate_verification_patch({
        "references": [{"verified": "true"}, "not-an-object"],
        "documents": {"verified": True},
    })
    assert "references[0].verified must be a boolean" in errors
    assert "references[1] must be an object" in errors
    assert "documents must be a list" in errors


def test_apply_patch_updates_only_given_flags() -> None:
    before = Verification(phone_verified=True)
    after = apply_verification_patch(before, {"emailVerified": True})
    assert after.email_verified is True
    assert after.phone_verified is True
    assert before.email_verified is False


def test_apply_patch_replaces_lists_wholesale() -> None:
    before = Verification(references=(Reference(verified=True), Reference(verified=True)))
    after = apply_verification_patch(before, {"references": [{"verified": False, "name": "Neighbour"}]})
    assert after.references == (Reference(verified=False, name="Neighbour"),)


def test_apply_invalid_patch_changes_nothing() -> None:
    """One bad field rejects the whole patch."""
    before = Verification()
    with pytest.raises(ValidationError) as exc_info:
        apply_verification_patch(before, {"emailVerified": True, "phoneVerified": "maybe"})
    assert exc_info.value.errors == ["phoneVerified must be a boolean"]
    assert before == Verification()


def test_empty_patch_returns_same_evidence() -> None:
    v = Verification(location_verified=True)
    assert apply_verification_patch(v, {}) is v


def test_missing_evidence() -> None:
    v = Verification(email_verified=True, documents=(Document(verified=True),))
    assert missing_evidence(v) == [
        "idDocumentVerified", "phoneVerified", "locationVerified", "references",
    ]
    assert "references" in missing_evidence(Verification(references=(Reference(verified=False),)))


def test_as_unverified_clears_every_claim() -> None:
    patch = {
        "emailVerified": True,
        "locationVerified": False,
        "references": [{"verified": True, "name": "Chief Otieno"}],
        "documents": [{"verified": True, "filename": "id.png"}, {"filename": "bill.pdf"}],
    }
    cleared = as_unverified(patch)
    assert cleared == {
        "emailVerified": False,
        "locationVerified": False,
        "references": [{"verified": False, "name": "Chief Otieno"}],
        "documents": [{"verified": False, "filename": "id.png"}, {"verified": False, "filename": "bill.pdf"}],
    }
    assert patch["emailVerified"] is True
    assert apply_verification_patch(Verification(), cleared).references[0].name == "Chief Otieno"
