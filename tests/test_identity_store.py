# Copyright 2026 HEVA
# SPDX-License-Identifier: MIT
"""Tests: SQLite identity store, uniqueness and compare-and-swap."""

from __future__ import annotations

from dataclasses import replace

import pytest

from heva.core.errors import ConflictError
from heva.core.identity.models import (
    AppealStatus,
    ApprovalStatus,
    Document,
    Identity,
    Reference,
    RiskLevel,
    Role,
    Verification,
)
from heva.core.identity.store import IdentityStore


@pytest.fixture
def store(tmp_path):
    return IdentityStore(db_path=tmp_path / "identities.db")


def _identity(identity_id: str, email: str, **overrides) -> Identity:
    fields = dict(
        id=identity_id,
        name="Test Person",
        email=email,
        role=Role.BENEFICIARY,
        approval_status=ApprovalStatus.PENDING,
        trust_score=50,
        risk_level=RiskLevel.MEDIUM,
        password_hash="hash",
        created_at="2026-01-01T00:00:00+00:00",
        updated_at="2026-01-01T00:00:00+00:00",
    )
    fields.update(overrides)
    return Identity(**fields)


def test_insert_and_get(store: IdentityStore) -> None:
    verification = Verification(
        email_verified=True,
        references=(Reference(verified=True, name="Elder"),),
        documents=(Document(verified=False, filename="id.jpg"),),
    )
    stored = store.insert(_identity("usr_1", "One@Example.org", verification=verification))
    assert stored.version == 1
    assert stored.email == "one@example.org"

    loaded = store.get("usr_1")
    assert loaded == stored
    assert loaded.verification == verification
    assert store.get_by_email("ONE@example.org").id == "usr_1"


def test_get_missing_returns_none(store: IdentityStore) -> None:
    assert store.get("usr_missing") is None
    assert store.get_by_email("nobody@example.org") is None


def test_duplicate_email_is_conflict(store: IdentityStore) -> None:
    store.insert(_identity("usr_1", "dup@example.org"))
    with pytest.raises(ConflictError) as exc_info:
        store.insert(_identity("usr_2", "DUP@example.org"))
    assert "already registered" in exc_info.value.message


def test_compare_and_swap_bumps_version(store: IdentityStore) -> None:
    stored = store.insert(_identity("usr_1", "one@example.org"))
    updated = store.compare_and_swap(replace(stored, approval_status=ApprovalStatus.APPROVED), expected_version=1)
    assert updated.version == 2
    loaded = store.get("usr_1")
    assert loaded.approval_status is ApprovalStatus.APPROVED
    assert loaded.is_approved is True
    assert loaded.version == 2


def test_stale_write_rejected(store: IdentityStore) -> None:
    """Two writers read version 1; the second write loses."""
    stored = store.insert(_identity("usr_1", "one@example.org"))
    store.compare_and_swap(replace(stored, approval_status=ApprovalStatus.APPROVED), expected_version=stored.version)
    with pytest.raises(ConflictError):
        store.compare_and_swap(replace(stored, approval_status=ApprovalStatus.REJECTED), expected_version=stored.version)
    assert store.get("usr_1").approval_status is ApprovalStatus.APPROVED


def test_compare_and_swap_missing_identity(store: IdentityStore) -> None:
    with pytest.raises(ConflictError):
        store.compare_and_swap(_identity("usr_ghost", "ghost@example.org"), expected_version=1)


def test_query_filters(store: IdentityStore) -> None:
    store.insert(_identity("usr_a", "a@example.org", created_at="2026-01-01T00:00:01+00:00"))
    store.insert(_identity(
        "usr_b", "b@example.org",
        approval_status=ApprovalStatus.REJECTED, appeal_status=AppealStatus.PENDING,
        created_at="2026-01-01T00:00:02+00:00",
    ))
    store.insert(_identity(
        "usr_c", "c@example.org",
        role=Role.FIELD_OFFICER, approval_status=ApprovalStatus.APPROVED, trust_score=90,
        risk_level=RiskLevel.LOW, created_at="2026-01-01T00:00:03+00:00",
    ))

    assert [i.id for i in store.list_all()] == ["usr_a", "usr_b", "usr_c"]
    assert [i.id for i in store.query(approval_statuses=[ApprovalStatus.PENDING])] == ["usr_a"]
    assert [i.id for i in store.query(appeal_statuses=[AppealStatus.PENDING])] == ["usr_b"]
    assert [i.id for i in store.query(roles=[Role.FIELD_OFFICER])] == ["usr_c"]
    assert [i.id for i in store.query(max_trust_score=79)] == ["usr_a", "usr_b"]
    assert store.query(roles=[]) == []


def test_persists_across_instances(tmp_path) -> None:
    db = tmp_path / "identities.db"
    IdentityStore(db_path=db).insert(_identity("usr_1", "one@example.org"))
    assert IdentityStore(db_path=db).get("usr_1") is not None
