# Copyright 2026 HEVA
# SPDX-License-Identifier: MIT
"""Trust score calculator. Deterministic; same evidence and role always give the same score."""

from __future__ import annotations

from typing import Tuple

from heva.core.identity.models import RiskLevel, Role, Verification
from heva.core.scoring.config import (
    EMAIL_VERIFIED_POINTS,
    ID_DOCUMENT_VERIFIED_POINTS,
    LOCATION_VERIFIED_POINTS,
    PHONE_VERIFIED_POINTS,
    TRUST_SCORE_BASE,
    TRUST_SCORE_MAX,
    TRUST_SCORE_MIN,
    VERIFIED_DOCUMENT_POINTS,
    VERIFIED_REFERENCE_POINTS,
)
from heva.core.scoring.risk import classify_risk


def clamp_score(raw: int) -> int:
    """Saturate to [TRUST_SCORE_MIN, TRUST_SCORE_MAX]."""
    return min(TRUST_SCORE_MAX, max(TRUST_SCORE_MIN, int(raw)))


def compute_trust_score(verification: Verification, role: Role) -> int:
    """
    Score = base 50
      + 10 email, +10 phone, +5 location, +15 id document
      + 5 per verified reference, +3 per verified document
      + role bonus (officer +10, admin +20)
    clamped to 0..100.
    """
    score = TRUST_SCORE_BASE
    if verification.email_verified:
        score += EMAIL_VERIFIED_POINTS
    if verification.phone_verified:
        score += PHONE_VERIFIED_POINTS
    if verification.location_verified:
        score += LOCATION_VERIFIED_POINTS
    if verification.id_document_verified:
        score += ID_DOCUMENT_VERIFIED_POINTS

    score += VERIFIED_REFERENCE_POINTS * sum(1 for r in verification.references if r.verified)
    score += VERIFIED_DOCUMENT_POINTS * sum(1 for d in verification.documents if d.verified)

    score += role.capabilities.trust_bonus
    return clamp_score(score)


def score_and_classify(verification: Verification, role: Role) -> Tuple[int, RiskLevel]:
    """Trust score and its risk level, computed together so they never drift apart."""
    score = compute_trust_score(verification, role)
    return score, classify_risk(score)
