# Copyright 2026 HEVA
# SPDX-License-Identifier: MIT
"""Tests: appeal state machine."""

from __future__ import annotations

import pytest

from heva.core.errors import ConflictError, InvalidStateError, PermissionDeniedError
from heva.core.identity.models import AppealStatus, ApprovalStatus, Identity, RiskLevel, Role
from heva.core.state_machine.appeal import (
    ALLOWED_TRANSITIONS,
    DENIED_COMMENT,
    GRANTED_COMMENT,
    open_appeal,
    resolve,
)


def _identity(**overrides) -> Identity:
    fields = dict(
        id="usr_applicant",
        name="Amina Wanjiru",
        email="amina@example.org",
        role=Role.BENEFICIARY,
        approval_status=ApprovalStatus.REJECTED,
        trust_score=50,
        risk_level=RiskLevel.MEDIUM,
        rejection_reason="Missing documents",
    )
    fields.update(overrides)
    return Identity(**fields)


ADMIN = _identity(id="usr_admin", role=Role.ADMINISTRATOR, approval_status=ApprovalStatus.APPROVED)


# ---------------------------------------------------------------------------
# Opening an appeal
# ---------------------------------------------------------------------------


def test_terminal_states_have_no_transitions() -> None:
    assert ALLOWED_TRANSITIONS[AppealStatus.APPROVED] == set()
    assert ALLOWED_TRANSITIONS[AppealStatus.REJECTED] == set()


def test_open_appeal_on_rejection() -> None:
    updated = open_appeal(_identity(), "I uploaded my ID", "usr_applicant", now="2026-05-02T00:00:00+00:00")
    assert updated.appeal_status is AppealStatus.PENDING
    assert updated.appeal_comment == "I uploaded my ID"
    assert updated.appeal_submitted_at == "2026-05-02T00:00:00+00:00"
    assert updated.approval_status is ApprovalStatus.REJECTED


def test_only_owner_may_appeal() -> None:
    with pytest.raises(PermissionDeniedError):
        open_appeal(_identity(), "Reconsider", "usr_someone_else")


def test_appeal_on_pending_application_is_invalid_state() -> None:
    with pytest.raises(InvalidStateError) as exc_info:
        open_appeal(_identity(approval_status=ApprovalStatus.PENDING), "Why?", "usr_applicant")
    assert exc_info.value.extra["approvalStatus"] == "pending"


def test_appeal_on_approved_application_is_invalid_state() -> None:
    with pytest.raises(InvalidStateError):
        open_appeal(_identity(approval_status=ApprovalStatus.APPROVED), "Why?", "usr_applicant")


@pytest.mark.parametrize("appeal_status", [AppealStatus.PENDING, AppealStatus.REJECTED])
def test_second_appeal_is_conflict(appeal_status: AppealStatus) -> None:
    with pytest.raises(ConflictError) as exc_info:
        open_appeal(_identity(appeal_status=appeal_status), "Again", "usr_applicant")
    assert exc_info.value.extra["appealStatus"] == appeal_status.value


def test_administrator_may_not_appeal() -> None:
    admin = _identity(id="usr_admin2", role=Role.ADMINISTRATOR)
    with pytest.raises(PermissionDeniedError):
        open_appeal(admin, "Reconsider", "usr_admin2")


# ---------------------------------------------------------------------------
# Resolving an appeal
# ---------------------------------------------------------------------------


def test_grant_appeal_approves_and_resets() -> None:
    pending = _identity(appeal_status=AppealStatus.PENDING, appeal_comment="Please")
    updated = resolve(pending, True, ADMIN)
    assert updated.approval_status is ApprovalStatus.APPROVED
    assert updated.is_approved is True
    assert updated.appeal_status is AppealStatus.NONE
    assert updated.appeal_comment is None
    assert updated.approved_by == "usr_admin"
    assert updated.approval_comment == GRANTED_COMMENT


def test_deny_appeal_is_final() -> None:
    pending = _identity(appeal_status=AppealStatus.PENDING, appeal_comment="Please")
    updated = resolve(pending, False, ADMIN)
    assert updated.approval_status is ApprovalStatus.REJECTED
    assert updated.appeal_status is AppealStatus.REJECTED
    assert updated.approval_comment == DENIED_COMMENT
    assert updated.approved_by == "usr_admin"
    with pytest.raises(ConflictError):
        open_appeal(updated, "One more time", "usr_applicant")


def test_resolve_keeps_custom_comment() -> None:
    pending = _identity(appeal_status=AppealStatus.PENDING)
    assert resolve(pending, False, ADMIN, comment="Documents still missing").approval_comment == "Documents still missing"


def test_resolve_without_pending_appeal() -> None:
    with pytest.raises(InvalidStateError):
        resolve(_identity(), True, ADMIN)


def test_only_admin_resolves() -> None:
    officer = _identity(id="usr_officer", role=Role.FIELD_OFFICER, approval_status=ApprovalStatus.APPROVED)
    with pytest.raises(PermissionDeniedError):
        resolve(_identity(appeal_status=AppealStatus.PENDING), True, officer)
