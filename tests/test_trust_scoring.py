# Copyright 2026 HEVA
# SPDX-License-Identifier: MIT
"""Tests: trust score calculator and risk classifier."""

from __future__ import annotations

from itertools import product

import pytest

from heva.core.identity.models import Document, Reference, RiskLevel, Role, Verification
from heva.core.scoring import classify_risk, clamp_score, compute_trust_score, score_and_classify


# ---------------------------------------------------------------------------
# Trust score
# ---------------------------------------------------------------------------


def test_base_beneficiary_score_is_50() -> None:
    """No evidence, beneficiary role -> base score."""
    assert compute_trust_score(Verification(), Role.BENEFICIARY) == 50


def test_email_phone_id_document_gives_85() -> None:
    v = Verification(email_verified=True, phone_verified=True, id_document_verified=True)
    # 50 + 10 + 10 + 15
    assert compute_trust_score(v, Role.BENEFICIARY) == 85


def test_location_adds_5() -> None:
    v = Verification(location_verified=True)
    assert compute_trust_score(v, Role.BENEFICIARY) == 55


def test_role_bonus() -> None:
    """Officer +10, administrator +20."""
    assert compute_trust_score(Verification(), Role.FIELD_OFFICER) == 60
    assert compute_trust_score(Verification(), Role.ADMINISTRATOR) == 70


def test_only_verified_references_and_documents_count() -> None:
    v = Verification(
        references=(Reference(verified=True, name="A"), Reference(verified=False), Reference(verified=True)),
        documents=(Document(verified=True), Document(verified=False, filename="id.png")),
    )
    # 50 + 2*5 + 1*3
    assert compute_trust_score(v, Role.BENEFICIARY) == 63


def test_reference_count_is_unbounded_but_score_saturates() -> None:
    v = Verification(references=tuple(Reference(verified=True) for _ in range(30)))
    assert compute_trust_score(v, Role.BENEFICIARY) == 100


def test_everything_verified_admin_clamps_to_100() -> None:
    v = Verification(
        id_document_verified=True,
        phone_verified=True,
        email_verified=True,
        location_verified=True,
        references=(Reference(verified=True), Reference(verified=True)),
        documents=(Document(verified=True),) * 3,
    )
    assert compute_trust_score(v, Role.ADMINISTRATOR) == 100


def test_score_is_deterministic() -> None:
    v = Verification(email_verified=True, documents=(Document(verified=True),))
    scores = {compute_trust_score(v, Role.FIELD_OFFICER) for _ in range(5)}
    assert scores == {73}


def test_clamp_score_saturates() -> None:
    assert clamp_score(-12) == 0
    assert clamp_score(0) == 0
    assert clamp_score(100) == 100
    assert clamp_score(137) == 100


def test_all_evidence_combinations_stay_in_range_and_match_risk_table() -> None:
    """Score in [0,100] and risk level consistent for every evidence/role combination."""
    for flags in product([False, True], repeat=4):
        for n_refs, n_docs in product(range(4), range(4)):
            for role in Role:
                v = Verification(
                    id_document_verified=flags[0],
                    phone_verified=flags[1],
                    email_verified=flags[2],
                    location_verified=flags[3],
                    references=tuple(Reference(verified=True) for _ in range(n_refs)),
                    documents=tuple(Document(verified=True) for _ in range(n_docs)),
                )
                score, risk = score_and_classify(v, role)
                assert 0 <= score <= 100
                if score >= 80:
                    assert risk is RiskLevel.LOW
                elif score >= 50:
                    assert risk is RiskLevel.MEDIUM
                else:
                    assert risk is RiskLevel.HIGH


# ---------------------------------------------------------------------------
# Risk classifier
# ---------------------------------------------------------------------------


@pytest.mark.parametrize(
    "score,expected",
    [
        (100, RiskLevel.LOW),
        (80, RiskLevel.LOW),
        (79, RiskLevel.MEDIUM),
        (50, RiskLevel.MEDIUM),
        (49, RiskLevel.HIGH),
        (0, RiskLevel.HIGH),
    ],
)
def test_classify_risk_thresholds(score: int, expected: RiskLevel) -> None:
    assert classify_risk(score) is expected
