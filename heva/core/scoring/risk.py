# Copyright 2026 HEVA
# SPDX-License-Identifier: MIT
"""Risk classifier: trust score -> LOW | MEDIUM | HIGH."""

from __future__ import annotations

from heva.core.identity.models import RiskLevel
from heva.core.scoring.config import LOW_RISK_MIN, MEDIUM_RISK_MIN


def classify_risk(score: int) -> RiskLevel:
    """
    Assign risk tier from trust score.
    >= 80 LOW, 50..79 MEDIUM, < 50 HIGH.
    """
    s = int(score)
    if s >= LOW_RISK_MIN:
        return RiskLevel.LOW
    if s >= MEDIUM_RISK_MIN:
        return RiskLevel.MEDIUM
    return RiskLevel.HIGH
