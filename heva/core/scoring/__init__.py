# Copyright 2026 HEVA
# SPDX-License-Identifier: MIT
"""Trust scoring and risk classification."""

from heva.core.scoring.risk import classify_risk
from heva.core.scoring.trust import clamp_score, compute_trust_score, score_and_classify

__all__ = [
    "classify_risk",
    "clamp_score",
    "compute_trust_score",
    "score_and_classify",
]
