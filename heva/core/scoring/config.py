# Copyright 2026 HEVA
# SPDX-License-Identifier: MIT
"""Trust scoring config. Evidence weights and risk thresholds."""

from __future__ import annotations

TRUST_SCORE_BASE = 50
TRUST_SCORE_MIN = 0
TRUST_SCORE_MAX = 100

# Flat increments for verified evidence
EMAIL_VERIFIED_POINTS = 10
PHONE_VERIFIED_POINTS = 10
LOCATION_VERIFIED_POINTS = 5
ID_DOCUMENT_VERIFIED_POINTS = 15

# Per-item increments (no cap on count)
VERIFIED_REFERENCE_POINTS = 5
VERIFIED_DOCUMENT_POINTS = 3

# Risk thresholds (classify_risk)
LOW_RISK_MIN = 80     # LOW: score >= 80
MEDIUM_RISK_MIN = 50  # MEDIUM: 50 <= score < 80
# HIGH: score < 50
