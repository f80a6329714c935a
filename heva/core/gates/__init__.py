# Copyright 2026 HEVA
# SPDX-License-Identifier: MIT
"""Per-request access gates."""

from heva.core.gates.access_gate import GateDecision, authorize

__all__ = ["authorize", "GateDecision"]
